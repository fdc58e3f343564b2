"""
Procedure Gateway Abstract Base Class

Stored procedures (RPC) and reporting views live in the database schema.
Handlers never build SQL for them directly; they go through this gateway,
which validates identifiers and shapes results as plain JSON values.
"""

import re
from abc import ABC, abstractmethod
from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_]*$")

# (column, descending)
OrderBy = Sequence[tuple[str, bool]]


def check_identifier(name: str) -> str:
    if not IDENTIFIER_RE.match(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


class BaseProcedureService(ABC):

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def call(self, db: AsyncSession, name: str, params: Optional[dict] = None) -> Any:
        """
        Call a stored procedure with named parameters.

        Scalar and JSON-returning functions yield their value; set-returning
        functions yield a list of row dicts.

        Raises:
            ServiceError: If the procedure raises or the call fails
        """
        pass

    @abstractmethod
    async def read_view(
        self,
        db: AsyncSession,
        name: str,
        filters: Optional[dict] = None,
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        """Read rows from a view with equality filters."""
        pass
