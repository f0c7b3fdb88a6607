"""Narrative insight templates used for structured dashboard requests."""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from ..errors import TemplateMismatch
from ..models import Query


@dataclass(frozen=True)
class InsightTemplate:
    id: str
    name: str
    category: str
    description: str
    prompt: str


INSIGHT_TEMPLATES: Tuple[InsightTemplate, ...] = (
    InsightTemplate(
        id="priceSensitivity",
        name="Price Sensitivity",
        category="pricing",
        description="How demand responds to price changes",
        prompt="Estimate price elasticity from the data and state whether current pricing is optimal.",
    ),
    InsightTemplate(
        id="substitutionMap",
        name="Substitution Map",
        category="brand switching",
        description="Which brands customers switch to when their first choice is unavailable",
        prompt="Identify the most common substitution flows and their share, and suggest stock actions.",
    ),
    InsightTemplate(
        id="basketComposition",
        name="Basket Composition",
        category="basket",
        description="What typically ends up in the same basket",
        prompt="Describe average basket size, dominant categories and one bundling opportunity.",
    ),
    InsightTemplate(
        id="peakHourAnalysis",
        name="Peak Hour Analysis",
        category="timing",
        description="When stores are busiest during the day",
        prompt="Name the peak and off-peak hours with their share of volume and a staffing recommendation.",
    ),
    InsightTemplate(
        id="genderPreference",
        name="Gender Preference",
        category="demographics",
        description="Purchase differences across gender and age segments",
        prompt="Compare segments by basket value and growth and recommend a targeting move.",
    ),
    InsightTemplate(
        id="demandForecast",
        name="Demand Forecast",
        category="forecasting",
        description="Expected volume for the coming week",
        prompt="Forecast next 7 days of volume by category and call out expected surges.",
    ),
    InsightTemplate(
        id="stockoutPrediction",
        name="Stockout Prediction",
        category="inventory",
        description="SKUs at risk of running out",
        prompt="List SKUs with the fewest days of supply and the number of affected stores.",
    ),
    InsightTemplate(
        id="churnRiskAnalysis",
        name="Churn Risk Analysis",
        category="customer",
        description="Customers with declining visit frequency",
        prompt="Size the at-risk customer group and recommend a retention offer.",
    ),
    InsightTemplate(
        id="promotionEffectiveness",
        name="Promotion Effectiveness",
        category="promotion",
        description="Return on recent promotions",
        prompt="Report promotion ROI and the discount depth with the best return.",
    ),
)

_BY_ID: Dict[str, InsightTemplate] = {t.id: t for t in INSIGHT_TEMPLATES}


def get_insight_template(template_id: Optional[str]) -> InsightTemplate:
    """Look up a template by id; unknown ids raise TemplateMismatch."""
    template = _BY_ID.get(template_id or "")
    if template is None:
        raise TemplateMismatch(f"Unknown insight template: {template_id!r}")
    return template


def detect_best_template(query: Query) -> Optional[str]:
    """Pick an insight template from the question text and data keys."""
    data_keys = set((query.data or {}).keys())
    text = (query.text or "").lower()

    if "unit_price" in data_keys or "price" in text:
        return "priceSensitivity"
    if "substitut" in text or "switch" in text:
        return "substitutionMap"
    if "gender" in data_keys or "age_group" in data_keys:
        return "genderPreference"
    if "basket" in data_keys or "basket" in text:
        return "basketComposition"
    if "forecast" in text or "predict" in text:
        return "demandForecast"
    return INSIGHT_TEMPLATES[0].id if INSIGHT_TEMPLATES else None
