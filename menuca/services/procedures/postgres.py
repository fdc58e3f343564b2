"""
Postgres Procedure Gateway

Runs stored procedures with named-argument notation
(``SELECT * FROM schema.fn(p_a => :p_a)``) on the request's session.
dict and list arguments are sent as jsonb.
"""

import json
import logging
from typing import Any, Optional

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession

from menuca.core.config import get_settings
from menuca.core.errors import ServiceError
from menuca.services.procedures.base import BaseProcedureService, OrderBy, check_identifier

logger = logging.getLogger(__name__)

# SQLSTATE classes raised by procedures for bad input
CLIENT_ERROR_STATES = ("P0001", "22", "23")


class PostgresProcedureService(BaseProcedureService):

    def __init__(self, schema: Optional[str] = None):
        self.schema = check_identifier(schema or get_settings().database_schema)

    @property
    def provider_name(self) -> str:
        return "postgres"

    def _error(self, name: str, exc: DBAPIError) -> ServiceError:
        sqlstate = getattr(exc.orig, "sqlstate", None) or ""
        diag = getattr(exc.orig, "diag", None)
        message = getattr(diag, "message_primary", None) or str(exc.orig)
        is_client_error = any(sqlstate.startswith(state) for state in CLIENT_ERROR_STATES)
        logger.warning(f"Procedure {name} failed ({sqlstate or 'no sqlstate'}): {message}")
        return ServiceError(message, 400 if is_client_error else 500)

    async def call(self, db: AsyncSession, name: str, params: Optional[dict] = None) -> Any:
        check_identifier(name)
        params = params or {}

        args = []
        bind = {}
        for key, value in params.items():
            check_identifier(key)
            if isinstance(value, (dict, list)):
                args.append(f"{key} => CAST(:{key} AS jsonb)")
                bind[key] = json.dumps(value)
            else:
                args.append(f"{key} => :{key}")
                bind[key] = value

        statement = text(f"SELECT * FROM {self.schema}.{name}({', '.join(args)})")

        try:
            result = await db.execute(statement, bind)
            rows = [dict(row) for row in result.mappings().all()]
            await db.commit()
        except DBAPIError as e:
            await db.rollback()
            raise self._error(name, e)

        # Scalar functions come back as one row with a column named after them
        if len(rows) == 1 and list(rows[0].keys()) == [name]:
            return rows[0][name]
        return rows

    async def read_view(
        self,
        db: AsyncSession,
        name: str,
        filters: Optional[dict] = None,
        order_by: Optional[OrderBy] = None,
        limit: Optional[int] = None,
    ) -> list[dict]:
        check_identifier(name)
        sql = f"SELECT * FROM {self.schema}.{name}"
        bind = {}

        if filters:
            clauses = []
            for column, value in filters.items():
                check_identifier(column)
                clauses.append(f"{column} = :{column}")
                bind[column] = value
            sql += " WHERE " + " AND ".join(clauses)

        if order_by:
            sql += " ORDER BY " + ", ".join(
                f"{check_identifier(column)} {'DESC' if descending else 'ASC'}"
                for column, descending in order_by
            )

        if limit is not None:
            sql += " LIMIT :_limit"
            bind["_limit"] = int(limit)

        try:
            result = await db.execute(text(sql), bind)
        except DBAPIError as e:
            await db.rollback()
            raise self._error(name, e)

        return [dict(row) for row in result.mappings().all()]
