"""
Pre-vetted SQL templates for common retail questions.

The matcher is the fast path of generation: when at least two of a
template's keywords appear in the question, the template's SQL is returned
verbatim and no language model is consulted.
"""

import textwrap
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from ..logger import get_logger

logger = get_logger(__name__)

TEMPLATE_CONFIDENCE = 0.9
TEMPLATE_EXPLANATION = "Using optimized template for common query pattern"


class SqlTemplateId(str, Enum):
    DAILY_SALES = "daily_sales"
    REGIONAL_PERFORMANCE = "regional_performance"
    BRAND_ANALYSIS = "brand_analysis"
    SUBSTITUTION_ANALYSIS = "substitution_analysis"
    AI_EFFECTIVENESS = "ai_effectiveness"


@dataclass(frozen=True)
class SqlTemplate:
    id: SqlTemplateId
    keywords: Tuple[str, ...]
    sql: str
    description: str = ""


@dataclass(frozen=True)
class TemplateMatch:
    template: SqlTemplate
    matched_keywords: Tuple[str, ...]


def _sql(text: str) -> str:
    return textwrap.dedent(text).strip()


# Declaration order decides which template wins when several qualify.
SQL_TEMPLATES: Tuple[SqlTemplate, ...] = (
    SqlTemplate(
        id=SqlTemplateId.DAILY_SALES,
        keywords=("daily", "sales", "trend"),
        description="Daily transaction count, revenue and basket size for the last 30 days",
        sql=_sql("""
            SELECT
              DATE(timestamp) as date,
              COUNT(*) as transaction_count,
              SUM(total_amount) as revenue,
              AVG(total_amount) as avg_basket
            FROM transactions
            WHERE timestamp >= CURRENT_DATE - INTERVAL '30 days'
            GROUP BY DATE(timestamp)
            ORDER BY date DESC
        """),
    ),
    SqlTemplate(
        id=SqlTemplateId.REGIONAL_PERFORMANCE,
        keywords=("regional", "performance", "region"),
        description="Revenue and basket size per region for the last 30 days",
        sql=_sql("""
            SELECT
              s.region,
              COUNT(t.id) as transactions,
              SUM(t.total_amount) as revenue,
              AVG(t.total_amount) as avg_basket
            FROM transactions t
            JOIN stores s ON t.store_id = s.id
            WHERE t.timestamp >= CURRENT_DATE - INTERVAL '30 days'
            GROUP BY s.region
            ORDER BY revenue DESC
        """),
    ),
    SqlTemplate(
        id=SqlTemplateId.BRAND_ANALYSIS,
        keywords=("brand", "analysis", "performance"),
        description="Units, revenue and transactions per brand and category",
        sql=_sql("""
            SELECT
              p.brand,
              p.category,
              SUM(ti.quantity) as units_sold,
              SUM(ti.total_price) as revenue,
              COUNT(DISTINCT ti.transaction_id) as transactions
            FROM transaction_items ti
            JOIN products p ON ti.product_id = p.id
            JOIN transactions t ON ti.transaction_id = t.id
            WHERE t.timestamp >= CURRENT_DATE - INTERVAL '30 days'
            GROUP BY p.brand, p.category
            ORDER BY revenue DESC
        """),
    ),
    SqlTemplate(
        id=SqlTemplateId.SUBSTITUTION_ANALYSIS,
        keywords=("substitution", "switching"),
        description="Substitution counts and share per brand and category",
        sql=_sql("""
            SELECT
              p.brand,
              p.category,
              COUNT(*) as substitution_count,
              COUNT(*) * 100.0 / SUM(COUNT(*)) OVER() as substitution_rate
            FROM transaction_items ti
            JOIN products p ON ti.product_id = p.id
            WHERE ti.is_substitution = true
            GROUP BY p.brand, p.category
            ORDER BY substitution_count DESC
        """),
    ),
    SqlTemplate(
        id=SqlTemplateId.AI_EFFECTIVENESS,
        keywords=("ai", "suggestion", "effectiveness"),
        description="Daily share of items that came from AI suggestions",
        sql=_sql("""
            SELECT
              DATE(t.timestamp) as date,
              COUNT(CASE WHEN ti.suggested_by_ai THEN 1 END) as ai_suggestions,
              COUNT(*) as total_items,
              COUNT(CASE WHEN ti.suggested_by_ai THEN 1 END) * 100.0 / COUNT(*) as suggestion_rate
            FROM transaction_items ti
            JOIN transactions t ON ti.transaction_id = t.id
            WHERE t.timestamp >= CURRENT_DATE - INTERVAL '30 days'
            GROUP BY DATE(t.timestamp)
            ORDER BY date DESC
        """),
    ),
)


class TemplateMatcher:
    """Keyword matcher over an ordered template table."""

    def __init__(self, templates: Sequence[SqlTemplate] = SQL_TEMPLATES, min_keyword_hits: int = 2):
        self.templates = tuple(templates)
        self.min_keyword_hits = min_keyword_hits

    def match(self, text: Optional[str]) -> Optional[TemplateMatch]:
        """Return the first template with enough keyword hits, or None."""
        if not text:
            return None
        lowered = text.lower()
        for template in self.templates:
            hits = tuple(kw for kw in template.keywords if kw in lowered)
            if len(hits) >= self.min_keyword_hits:
                logger.info(f"[template] matched {template.id.value} on {list(hits)}")
                return TemplateMatch(template=template, matched_keywords=hits)
        return None

    def get(self, template_id: str) -> Optional[SqlTemplate]:
        for template in self.templates:
            if template.id.value == template_id:
                return template
        return None

    def ids(self) -> List[str]:
        return [t.id.value for t in self.templates]
