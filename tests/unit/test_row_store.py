"""Tests for the SQLAlchemy row store."""

import asyncio
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, text

from insightsmith.database import SqlAlchemyRowStore
from insightsmith.database.row_store import _jsonable
from insightsmith.errors import ProviderError, SchemaOrPromptError


@pytest.fixture
def engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'retail.db'}",
        connect_args={"check_same_thread": False},
    )
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE transactions (id INTEGER PRIMARY KEY, region TEXT, total_amount REAL)"))
        for i, region in enumerate(["NCR", "NCR", "Visayas", "Mindanao", "Visayas"], start=1):
            conn.execute(
                text("INSERT INTO transactions (id, region, total_amount) VALUES (:id, :region, :amount)"),
                {"id": i, "region": region, "amount": i * 100.0},
            )
    yield engine
    engine.dispose()


def test_fetch_rows(engine):
    store = SqlAlchemyRowStore(engine=engine)
    result = asyncio.run(store.fetch_rows(
        "SELECT region, SUM(total_amount) AS revenue FROM transactions GROUP BY region ORDER BY region"
    ))
    assert result["columns"] == ["region", "revenue"]
    assert result["row_count"] == 3
    assert result["truncated"] is False
    assert result["rows"][0] == {"region": "Mindanao", "revenue": 400.0}


def test_parameters_are_bound(engine):
    store = SqlAlchemyRowStore(engine=engine)
    result = asyncio.run(store.fetch_rows(
        "SELECT id FROM transactions WHERE region = :region ORDER BY id", {"region": "Visayas"}
    ))
    assert [row["id"] for row in result["rows"]] == [3, 5]


def test_rows_are_truncated(engine):
    store = SqlAlchemyRowStore(engine=engine, max_rows=2)
    result = asyncio.run(store.fetch_rows("SELECT * FROM transactions"))
    assert result["row_count"] == 2
    assert result["truncated"] is True


def test_bad_sql_raises_provider_error(engine):
    store = SqlAlchemyRowStore(engine=engine)
    with pytest.raises(SchemaOrPromptError) as exc:
        asyncio.run(store.fetch_rows("SELECT nope FROM missing_table"))
    assert isinstance(exc.value, ProviderError)
    assert exc.value.provider == "database"


def test_connection_check(engine):
    assert SqlAlchemyRowStore(engine=engine).test_connection() is True


def test_requires_url_or_engine():
    with pytest.raises(ValueError):
        SqlAlchemyRowStore()


def test_jsonable_values():
    assert _jsonable(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02 03:04:05"
    assert _jsonable(date(2024, 1, 2)) == "2024-01-02"
    assert _jsonable(Decimal("12.50")) == 12.5
    assert _jsonable("x") == "x"
