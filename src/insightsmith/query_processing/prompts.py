"""Prompt construction for the three generation modes."""

import json
from enum import Enum
from typing import Any, Dict, List, Sequence

from ..models import Query, QueryType
from ..schema_intelligence import SchemaContextBuilder
from .insight_templates import InsightTemplate

SQL_SYSTEM_PROMPT = "You are a SQL expert for a Philippine retail analytics system."
INSIGHT_SYSTEM_PROMPT = "You are a retail analytics expert providing actionable insights."

SQL_RESPONSE_FORMAT = """RESPONSE FORMAT:
{
  "sql": "SELECT ...",
  "explanation": "Brief explanation of what this query does",
  "confidence": 0.8
}"""

# Rows shown to the model when narrating executed SQL
NARRATIVE_ROW_LIMIT = 10

# Types whose free-text questions are answered with generated SQL
SQL_QUERY_TYPES = frozenset({
    QueryType.ANALYTICAL,
    QueryType.OPERATIONAL,
    QueryType.COMPARATIVE,
    QueryType.ANALYSIS,
})


class GenerationMode(str, Enum):
    INSIGHT = "insight"
    SQL = "sql"
    QUESTION = "question"


def _dumps(value: Dict[str, Any]) -> str:
    return json.dumps(value or {}, sort_keys=True, default=str)


class PromptBuilder:
    """Builds provider prompts around the shared schema context."""

    def __init__(self, schema: SchemaContextBuilder):
        self.schema = schema

    def system_prompt(self, mode: GenerationMode) -> str:
        return SQL_SYSTEM_PROMPT if mode == GenerationMode.SQL else INSIGHT_SYSTEM_PROMPT

    def build_insight_prompt(self, template: InsightTemplate, query: Query) -> str:
        return (
            "You are analyzing retail data with the following context:\n"
            f"- Template: {template.name}\n"
            f"- Description: {template.description}\n"
            f"- Current Filters: {_dumps(query.filters)}\n"
            f"- Available Data: {_dumps(query.data)}\n"
            + (f"- Question: {query.text}\n" if query.text else "")
            + f"\n{template.prompt}\n\n"
            "Provide actionable insights in 2-3 sentences. Be specific and include numbers where relevant."
        )

    def build_question_prompt(self, query: Query) -> str:
        context = _dumps(query.context) if query.context else "General retail analytics"
        parts = [
            f'As a retail analytics expert, answer this question: "{query.text or ""}"',
            "",
            f"Context: {context}",
        ]
        if query.filters:
            parts.append(f"Active Filters: {_dumps(query.filters)}")
        if query.data:
            parts.append(f"Available Data: {_dumps(query.data)}")
        parts.append("")
        parts.append(
            "Provide a clear, actionable answer with specific numbers and recommendations where relevant."
        )
        return "\n".join(parts)

    def build_sql_prompt(self, query: Query) -> str:
        intent = query.intent
        entities = ", ".join(intent.entities) if intent and intent.entities else "none"
        metrics = ", ".join(intent.metrics) if intent and intent.metrics else "none"
        filters = f"\nACTIVE FILTERS: {_dumps(query.filters)}\n" if query.filters else ""
        return (
            "Generate PostgreSQL queries based on natural language.\n\n"
            f"DATABASE SCHEMA:\n{self.schema.schema_context}\n"
            f"BUSINESS CONTEXT:\n{self.schema.business_context}\n"
            f"USER INTENT: {(intent.type if intent else query.type).value}\n"
            f"DETECTED ENTITIES: {entities}\n"
            f"DETECTED METRICS: {metrics}\n"
            f"{filters}\n"
            f'QUERY: "{query.text or ""}"\n\n'
            "REQUIREMENTS:\n"
            "1. Generate ONLY valid, read-only PostgreSQL SQL\n"
            "2. Use proper JOINs for related tables\n"
            "3. Include appropriate WHERE clauses for filtering\n"
            "4. Use aggregate functions for summary queries\n"
            "5. Format dates for the Asia/Manila timezone\n"
            "6. Handle NULL values appropriately\n\n"
            f"{SQL_RESPONSE_FORMAT}"
        )

    def build_data_insight_prompt(self, query: Query, rows: Sequence[Dict[str, Any]]) -> str:
        sample: List[Dict[str, Any]] = list(rows[:NARRATIVE_ROW_LIMIT])
        parts = [
            f"Based on this data: {json.dumps(sample, default=str)}, "
            f'provide insights for: "{query.text or ""}"',
        ]
        if query.filters:
            parts.append(f"Active Filters: {_dumps(query.filters)}")
        parts.append("")
        parts.append("Provide actionable insights in 2-3 sentences. Be specific and include numbers where relevant.")
        return "\n".join(parts)
