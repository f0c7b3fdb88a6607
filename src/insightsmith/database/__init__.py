"""Database access for InsightSmith."""

from .row_store import RowStore, SqlAlchemyRowStore

__all__ = ["RowStore", "SqlAlchemyRowStore"]
