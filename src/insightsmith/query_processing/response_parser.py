"""
Tolerant parser for SQL-generation output.

Models are asked for a JSON object ``{"sql", "explanation", "confidence"}``
but routinely wrap it in markdown fences or prose, or return bare SQL.
Anything that cannot be turned into a read-only statement raises
``MalformedOutputError`` so the executor can take the fallback path.
"""

import json
import re
from typing import Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..errors import MalformedOutputError

_FENCE_RE = re.compile(r"```(?:json|sql)?\s*(.*?)```", re.S | re.I)
_READ_ONLY_RE = re.compile(r"^\s*(select|with)\b", re.I)
_FORBIDDEN_RE = re.compile(
    r"\b(insert|update|delete|drop|alter|truncate|create|grant|revoke)\b", re.I
)


class SqlGenerationResult(BaseModel):
    """Validated SQL-generation payload."""
    sql: str = Field(min_length=1)
    explanation: str = ""
    confidence: float = 0.8

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v):
        try:
            v = float(v)
        except (TypeError, ValueError):
            return 0.8
        return min(max(v, 0.0), 1.0)

    @field_validator("sql")
    @classmethod
    def _read_only(cls, v: str) -> str:
        v = v.strip().rstrip(";").strip()
        if not _READ_ONLY_RE.match(v):
            raise ValueError("generated SQL must start with SELECT or WITH")
        if _FORBIDDEN_RE.search(v):
            raise ValueError("generated SQL contains a write/DDL statement")
        return v


def _extract_json_object(text: str) -> Optional[str]:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]


def parse_sql_generation(text: Optional[str], provider: Optional[str] = None) -> SqlGenerationResult:
    """
    Parse raw model output into a SqlGenerationResult.

    Args:
        text: Raw text returned by the provider
        provider: Provider name, attached to the raised error

    Returns:
        Validated SqlGenerationResult

    Raises:
        MalformedOutputError: output is empty, not parseable or not read-only
    """
    if not text or not text.strip():
        raise MalformedOutputError("empty SQL generation output", provider=provider)

    body = text.strip()
    fence = _FENCE_RE.search(body)
    if fence:
        body = fence.group(1).strip()

    candidate = _extract_json_object(body)
    if candidate is not None:
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as e:
            raise MalformedOutputError(f"invalid JSON in SQL output: {e}", provider=provider) from e
        if not isinstance(payload, dict):
            raise MalformedOutputError("SQL output JSON is not an object", provider=provider)
        try:
            return SqlGenerationResult.model_validate(payload)
        except ValidationError as e:
            raise MalformedOutputError(f"SQL output failed validation: {e.errors()[0]['msg']}", provider=provider) from e

    # Bare SQL without the JSON envelope
    try:
        return SqlGenerationResult(sql=body, explanation="", confidence=0.7)
    except ValidationError as e:
        raise MalformedOutputError("output is neither JSON nor a SELECT statement", provider=provider) from e
