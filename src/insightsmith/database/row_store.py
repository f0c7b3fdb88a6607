"""Row-query access to the relational data store."""

import asyncio
from abc import ABC, abstractmethod
from datetime import date, datetime, time as dtime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..errors import SchemaOrPromptError
from ..logger import get_logger

logger = get_logger(__name__)


def _jsonable(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.strftime("%Y-%m-%d %H:%M:%S")
    if isinstance(value, date):
        return value.strftime("%Y-%m-%d")
    if isinstance(value, dtime):
        return value.strftime("%H:%M:%S")
    if isinstance(value, Decimal):
        return float(value)
    return value


class RowStore(ABC):
    """Executes a parameterized read statement and returns rows."""

    @abstractmethod
    async def fetch_rows(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        """
        Execute SQL and return results.

        Returns:
            Dictionary with:
                - columns: List of column names
                - rows: List of row dictionaries
                - row_count: Number of rows returned
                - truncated: Whether results were truncated

        Raises:
            SchemaOrPromptError: the statement could not be executed
        """

    async def dispose(self) -> None:
        return None


class SqlAlchemyRowStore(RowStore):
    """RowStore over a synchronous SQLAlchemy engine, run off the event loop."""

    def __init__(self, database_url: Optional[str] = None, engine: Optional[Engine] = None, max_rows: int = 1000):
        if engine is None:
            if not database_url:
                raise ValueError("database_url or engine is required")
            engine = create_engine(database_url, pool_pre_ping=True)
        self.engine = engine
        self.max_rows = max_rows

    def _execute(self, sql: str, params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        with self.engine.connect() as conn:
            result = conn.execute(text(sql), dict(params or {}))
            columns = list(result.keys())
            # Fetch one extra to detect truncation
            fetched = result.mappings().fetchmany(self.max_rows + 1)

        truncated = len(fetched) > self.max_rows
        rows: List[Dict[str, Any]] = [
            {k: _jsonable(v) for k, v in row.items()} for row in fetched[: self.max_rows]
        ]
        logger.info(
            f"[sql-exec] query executed successfully: {len(rows)} rows returned"
            f"{' (truncated)' if truncated else ''}"
        )
        return {"columns": columns, "rows": rows, "row_count": len(rows), "truncated": truncated}

    async def fetch_rows(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        try:
            return await asyncio.to_thread(self._execute, sql, params)
        except SQLAlchemyError as e:
            logger.error(f"[sql-exec] database error: {e}")
            raise SchemaOrPromptError(f"SQL execution failed: {e}", provider="database") from e

    def test_connection(self) -> bool:
        try:
            with self.engine.connect() as conn:
                return conn.execute(text("SELECT 1")).scalar() == 1
        except SQLAlchemyError as e:
            logger.error(f"[sql-exec] connection test failed: {e}")
            return False

    async def dispose(self) -> None:
        self.engine.dispose()
