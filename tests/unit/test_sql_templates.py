"""Tests for the SQL template library and keyword matcher."""

from insightsmith.query_processing import (
    INSIGHT_TEMPLATES,
    SQL_TEMPLATES,
    SqlTemplateId,
    TemplateMatcher,
    detect_best_template,
    get_insight_template,
)
from insightsmith.errors import TemplateMismatch
from insightsmith.models import Query, QueryType

import pytest


def _template(template_id):
    return next(t for t in SQL_TEMPLATES if t.id == template_id)


def test_daily_sales_trend_matches_verbatim():
    match = TemplateMatcher().match("Show me the daily sales trend")
    assert match is not None
    assert match.template.id == SqlTemplateId.DAILY_SALES
    assert match.template.sql == _template(SqlTemplateId.DAILY_SALES).sql
    assert set(match.matched_keywords) == {"daily", "sales", "trend"}


def test_single_keyword_does_not_match():
    assert TemplateMatcher().match("sales") is None
    assert TemplateMatcher().match("how is performance") is None


def test_matching_is_case_insensitive():
    match = TemplateMatcher().match("BRAND ANALYSIS please")
    assert match.template.id == SqlTemplateId.BRAND_ANALYSIS


def test_first_declared_template_wins():
    # qualifies for both regional_performance and brand_analysis
    match = TemplateMatcher().match("regional brand performance")
    assert match.template.id == SqlTemplateId.REGIONAL_PERFORMANCE


def test_empty_text_never_matches():
    assert TemplateMatcher().match("") is None
    assert TemplateMatcher().match(None) is None


def test_min_keyword_hits_is_configurable():
    matcher = TemplateMatcher(min_keyword_hits=1)
    assert matcher.match("substitution").template.id == SqlTemplateId.SUBSTITUTION_ANALYSIS


def test_lookup_by_id():
    matcher = TemplateMatcher()
    assert matcher.get("brand_analysis").id == SqlTemplateId.BRAND_ANALYSIS
    assert matcher.get("missing") is None
    assert matcher.ids()[0] == "daily_sales"


def test_templates_are_read_only():
    for template in SQL_TEMPLATES:
        assert template.sql.upper().startswith("SELECT")


class TestInsightTemplates:
    def test_catalog_ids(self):
        ids = [t.id for t in INSIGHT_TEMPLATES]
        assert "priceSensitivity" in ids
        assert "promotionEffectiveness" in ids
        assert len(ids) == len(set(ids))

    def test_unknown_template_raises_mismatch(self):
        with pytest.raises(TemplateMismatch):
            get_insight_template("doesNotExist")

    def test_detect_best_template(self):
        assert detect_best_template(Query(type=QueryType.INSIGHT, text="price elasticity")) == "priceSensitivity"
        assert detect_best_template(Query(type=QueryType.INSIGHT, text="who switches brands")) == "substitutionMap"
        assert detect_best_template(Query(type=QueryType.INSIGHT, data={"gender": "F"})) == "genderPreference"
        assert detect_best_template(Query(type=QueryType.INSIGHT, text="typical basket")) == "basketComposition"
        assert detect_best_template(Query(type=QueryType.INSIGHT, text="predict next week")) == "demandForecast"
        assert detect_best_template(Query(type=QueryType.INSIGHT, text="anything")) == INSIGHT_TEMPLATES[0].id
