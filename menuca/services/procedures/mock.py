"""
Mock Procedure Gateway

Answers procedure calls and view reads from registered fixtures and keeps
a log of every call. Unregistered procedures return an empty list.
"""

import logging
from typing import Any, Callable, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from menuca.core.errors import ServiceError
from menuca.services.procedures.base import BaseProcedureService, OrderBy, check_identifier

logger = logging.getLogger(__name__)

Response = Union[Any, Callable[[dict], Any], Exception]


class MockProcedureService(BaseProcedureService):

    def __init__(self):
        self.calls: list[tuple[str, dict]] = []
        self.responses: dict[str, Response] = {}
        self.views: dict[str, list[dict]] = {}

    @property
    def provider_name(self) -> str:
        return "mock"

    def set_response(self, name: str, response: Response) -> None:
        self.responses[name] = response

    def set_view(self, name: str, rows: list[dict]) -> None:
        self.views[name] = rows

    def reset(self) -> None:
        self.calls.clear()
        self.responses.clear()
        self.views.clear()

    async def call(self, db: AsyncSession, name: str, params: Optional[dict] = None) -> Any:
        check_identifier(name)
        params = params or {}
        self.calls.append((name, params))
        logger.debug(f"Mock: procedure {name}({params})")

        response = self.responses.get(name, [])
        if isinstance(response, ServiceError):
            raise response
        if isinstance(response, Exception):
            raise ServiceError(str(response))
        if callable(response):
            return response(params)
        return response

    async def read_view(
        self,
        db: AsyncSession,
        name: str,
        filters: Optional[dict] = None,
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        check_identifier(name)
        self.calls.append((name, dict(filters or {})))

        rows = [
            row for row in self.views.get(name, [])
            if all(row.get(k) == v for k, v in (filters or {}).items())
        ]
        # Apply sort keys last-to-first so the first key wins
        for column, descending in reversed(list(order_by or [])):
            rows.sort(key=lambda r: (r.get(column) is None, r.get(column)), reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return rows
