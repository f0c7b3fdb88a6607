"""Tests for the tolerant SQL-generation output parser."""

import pytest

from insightsmith.errors import MalformedOutputError, ProviderError
from insightsmith.query_processing import parse_sql_generation


def test_plain_json():
    result = parse_sql_generation('{"sql": "SELECT 1", "explanation": "one", "confidence": 0.9}')
    assert result.sql == "SELECT 1"
    assert result.explanation == "one"
    assert result.confidence == 0.9


def test_fenced_json_with_prose():
    text = (
        "Here is the query you asked for:\n"
        "```json\n"
        '{"sql": "SELECT region, SUM(total_amount) FROM transactions GROUP BY region;", '
        '"explanation": "Revenue by region"}\n'
        "```\n"
        "Let me know if you need anything else."
    )
    result = parse_sql_generation(text)
    assert result.sql == "SELECT region, SUM(total_amount) FROM transactions GROUP BY region"
    assert result.confidence == 0.8


def test_bare_sql_is_accepted():
    result = parse_sql_generation("```sql\nWITH t AS (SELECT 1) SELECT * FROM t;\n```")
    assert result.sql.startswith("WITH t AS")
    assert result.confidence == 0.7


def test_confidence_is_clamped():
    assert parse_sql_generation('{"sql": "SELECT 1", "confidence": 1.7}').confidence == 1.0
    assert parse_sql_generation('{"sql": "SELECT 1", "confidence": "high"}').confidence == 0.8


def test_columns_containing_keywords_are_allowed():
    result = parse_sql_generation('{"sql": "SELECT created_at, last_update FROM t"}')
    assert "created_at" in result.sql


@pytest.mark.parametrize("text", [
    "",
    "   ",
    "I cannot answer that.",
    '{"sql": "DELETE FROM transactions"}',
    '{"sql": "SELECT 1; DROP TABLE stores"}',
    '{"explanation": "missing sql"}',
    '{"sql": SELECT}',
    '["SELECT 1"]',
])
def test_malformed_output_raises(text):
    with pytest.raises(MalformedOutputError) as exc:
        parse_sql_generation(text, provider="openai")
    # malformed output takes the provider-failure path
    assert isinstance(exc.value, ProviderError)
    assert exc.value.provider == "openai"
