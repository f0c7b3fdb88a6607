"""
Schema Context Builder

Loads the static table/column registry and business glossary once and
serializes them into the prompt blocks shared by every SQL generation
request. The rendered strings never change after construction, so the
same question always produces the same prompt.
"""

from pathlib import Path
from typing import List, Optional, Union

import yaml

from ..logger import get_logger
from .schema_models import SchemaRegistry, TableDefinition

logger = get_logger(__name__)

DEFAULT_SCHEMA_FILE = Path(__file__).parent / "retail_schema.yaml"


def load_registry(path: Optional[Union[str, Path]] = None) -> SchemaRegistry:
    """Read and validate a registry YAML document."""
    schema_path = Path(path) if path else DEFAULT_SCHEMA_FILE
    with open(schema_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}
    registry = SchemaRegistry.model_validate(raw)
    logger.info(f"[schema] loaded {len(registry.tables)} tables from {schema_path.name}")
    return registry


class SchemaContextBuilder:
    """Holds the registry and its serialized prompt context."""

    def __init__(self, registry: Optional[SchemaRegistry] = None, schema_file: Optional[str] = None):
        self.registry = registry or load_registry(schema_file)
        self._schema_context = self._render_schema()
        self._business_context = self._render_business()

    @property
    def schema_context(self) -> str:
        return self._schema_context

    @property
    def business_context(self) -> str:
        return self._business_context

    def table_names(self) -> List[str]:
        return list(self.registry.tables.keys())

    def get_table(self, name: str) -> Optional[TableDefinition]:
        return self.registry.tables.get(name)

    def _render_schema(self) -> str:
        lines: List[str] = []
        for table in self.registry.tables.values():
            lines.append(f"Table: {table.name}")
            lines.append(f"Description: {table.description}")
            lines.append("Columns:")
            for col in table.columns:
                line = f"  - {col.name} ({col.type}): {col.description}"
                if col.sample_values:
                    line += f" [Examples: {', '.join(col.sample_values)}]"
                if col.foreign_key:
                    line += f" [FK: {col.foreign_key}]"
                lines.append(line)
            lines.append(f"Relationships: {', '.join(table.relationships)}")
            lines.append(f"Common Queries: {', '.join(table.common_queries)}")
            lines.append("")
        return "\n".join(lines).rstrip() + "\n"

    def _render_business(self) -> str:
        g = self.registry.glossary
        lines = [f"- This is a {g.domain.lower()} system"] if g.domain else []
        if g.primary_client:
            lines.append(f"- Primary client: {g.primary_client}")
        lines.extend(f"- {fact}" for fact in g.facts)
        lines.append(f"- Currency: {g.currency}")
        lines.append(f"- Time zone: {g.timezone}")
        if g.key_questions:
            lines.append("")
            lines.append("KEY BUSINESS QUESTIONS:")
            lines.extend(f"{i}. {q}" for i, q in enumerate(g.key_questions, start=1))
        return "\n".join(lines) + "\n"
