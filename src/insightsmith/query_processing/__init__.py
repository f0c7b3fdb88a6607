"""
Query processing module for InsightSmith.

Handles intent classification, SQL template matching, insight templates,
prompt construction and parsing of model output.
"""

from .intent_classifier import IntentClassifier
from .sql_templates import (
    SQL_TEMPLATES,
    SqlTemplate,
    SqlTemplateId,
    TemplateMatch,
    TemplateMatcher,
    TEMPLATE_CONFIDENCE,
    TEMPLATE_EXPLANATION,
)
from .insight_templates import INSIGHT_TEMPLATES, InsightTemplate, detect_best_template, get_insight_template
from .prompts import GenerationMode, PromptBuilder, SQL_QUERY_TYPES
from .response_parser import SqlGenerationResult, parse_sql_generation

__all__ = [
    "IntentClassifier",
    "SQL_TEMPLATES",
    "SqlTemplate",
    "SqlTemplateId",
    "TemplateMatch",
    "TemplateMatcher",
    "TEMPLATE_CONFIDENCE",
    "TEMPLATE_EXPLANATION",
    "INSIGHT_TEMPLATES",
    "InsightTemplate",
    "detect_best_template",
    "get_insight_template",
    "GenerationMode",
    "PromptBuilder",
    "SQL_QUERY_TYPES",
    "SqlGenerationResult",
    "parse_sql_generation",
]
