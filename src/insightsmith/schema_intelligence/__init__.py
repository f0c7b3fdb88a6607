"""Schema registry and prompt context for InsightSmith."""

from .schema_context import SchemaContextBuilder, load_registry
from .schema_models import BusinessGlossary, ColumnDefinition, SchemaRegistry, TableDefinition

__all__ = [
    "SchemaContextBuilder",
    "load_registry",
    "BusinessGlossary",
    "ColumnDefinition",
    "SchemaRegistry",
    "TableDefinition",
]
