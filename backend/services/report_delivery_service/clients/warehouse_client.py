"""
Warehouse client for running report queries.

Slides and custom variables carry SQL that is executed against the
analytics warehouse. The warehouse is reached through a synchronous
SQLAlchemy engine on WAREHOUSE_URL (any installed dialect: PostgreSQL,
Snowflake, BigQuery, ...), and every query runs on a dedicated thread pool
so refreshes of many elements proceed in parallel without blocking the
event loop.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
import re
from typing import Any

from loguru import logger
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from services.report_delivery_service.errors import WarehouseError

READ_STATEMENT = re.compile(r"^\s*(\(\s*)*(select|with|show|describe|explain|values)\b", re.IGNORECASE)


@dataclass
class QueryResult:
    """Columns ({"name", "type"}) and positional rows returned by a query."""

    columns: list[dict[str, str]] = field(default_factory=list)
    rows: list[list[Any]] = field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [column["name"] for column in self.columns]

    def records(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Rows keyed by column name, optionally truncated to limit."""
        names = self.column_names
        rows = self.rows if limit is None else self.rows[:limit]
        return [dict(zip(names, row)) for row in rows]

    def first_scalar(self) -> Any:
        """First column of the first row, or None when there are no rows."""
        if not self.rows or not self.rows[0]:
            return None
        return self.rows[0][0]


def _column_types(cursor: Any, column_count: int) -> list[str]:
    """DBAPI type codes from the cursor description, "unknown" where absent."""
    description = getattr(cursor, "description", None)
    if not description:
        return ["unknown"] * column_count
    return [str(column[1]) if column[1] is not None else "unknown" for column in description]


class WarehouseClient:
    """Executes read queries against the analytics warehouse."""

    def __init__(self, warehouse_url: str, max_workers: int = 4, engine: Engine | None = None):
        if not warehouse_url and engine is None:
            msg = "WAREHOUSE_URL is not configured"
            raise WarehouseError(msg)

        self.engine = engine or create_engine(warehouse_url, pool_pre_ping=True)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="warehouse-worker"
        )
        logger.info(f"Initialized warehouse client ({self.engine.dialect.name}, {max_workers} workers)")

    def _run_query(self, query: str) -> QueryResult:
        try:
            with self.engine.connect() as connection:
                result = connection.execute(text(query))
                if not result.returns_rows:
                    return QueryResult()
                names = list(result.keys())
                types = _column_types(result.cursor, len(names))
                rows = [list(row) for row in result.fetchall()]
        except SQLAlchemyError as e:
            logger.error(f"Warehouse query failed: {e}")
            logger.debug(f"Query: {query}")
            raise WarehouseError(str(e)) from e

        return QueryResult(
            columns=[{"name": name, "type": type_name} for name, type_name in zip(names, types)],
            rows=rows,
        )

    async def execute(self, query: str) -> QueryResult:
        """
        Run a read-only query and return its columns and rows.

        Raises:
            WarehouseError: If the query is empty, is not a read statement,
                or fails in the warehouse.
        """
        if not query or not query.strip():
            msg = "Query is empty"
            raise WarehouseError(msg)
        if not READ_STATEMENT.match(query):
            msg = "Only read queries may be executed against the warehouse"
            raise WarehouseError(msg)

        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._run_query, query)

    def close(self) -> None:
        self._executor.shutdown(wait=False)
        self.engine.dispose()
