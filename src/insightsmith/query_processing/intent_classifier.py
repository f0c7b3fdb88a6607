"""
Query Intent Classifier for InsightSmith

Scores a natural language question against per-type pattern sets and
extracts the retail entities (brands, regions) and metric categories it
mentions. Pure function of the input text.
"""

import re
from typing import Dict, List, Pattern, Tuple

from ..errors import ClassificationAmbiguity
from ..logger import get_logger
from ..models import Intent, QueryType

logger = get_logger(__name__)


# Declaration order is the tie-break order.
INTENT_PATTERNS: Dict[QueryType, List[Pattern]] = {
    QueryType.ANALYTICAL: [
        re.compile(r'\b(trend|pattern|analysis|compare|correlation)', re.I),
        re.compile(r'\b(revenue|sales|performance|growth)', re.I),
        re.compile(r'\b(top|best|worst|ranking)', re.I),
    ],
    QueryType.OPERATIONAL: [
        re.compile(r'\b(alert|issue|problem|stock|inventory)', re.I),
        re.compile(r'\b(operational|efficiency|process)', re.I),
        re.compile(r'\b(real.?time|current|now|today)\b', re.I),
    ],
    QueryType.PREDICTIVE: [
        re.compile(r'\b(forecast|predict|future|next|expected)', re.I),
        re.compile(r'\b(will|going to|likely|probable)\b', re.I),
        re.compile(r'\b(demand|projection|estimate)', re.I),
    ],
    QueryType.COMPARATIVE: [
        re.compile(r'\b(vs|versus|compared to|against)\b', re.I),
        re.compile(r'\b(difference|better|worse|higher|lower)', re.I),
        re.compile(r'\b(benchmark|baseline|competition)', re.I),
    ],
}

DEFAULT_TYPE = QueryType.ANALYTICAL

BRANDS = ['jti', 'philip morris', 'unilever', 'nestle', 'coca-cola', 'pepsi']
REGIONS = ['ncr', 'metro manila', 'mindanao', 'visayas', 'luzon']

METRIC_KEYWORDS: Dict[str, List[str]] = {
    'sales': ['sales', 'revenue', 'income'],
    'volume': ['volume', 'quantity', 'units'],
    'basket': ['basket', 'transaction', 'purchase'],
    'substitution': ['substitution', 'replacement', 'switch'],
}

MATCHED_CONFIDENCE = 0.8
UNMATCHED_CONFIDENCE = 0.5


class IntentClassifier:
    """Pattern-count intent classifier with vocabulary-based extraction."""

    def __init__(
        self,
        patterns: Dict[QueryType, List[Pattern]] = None,
        brands: List[str] = None,
        regions: List[str] = None,
        metric_keywords: Dict[str, List[str]] = None,
    ):
        self.patterns = patterns or INTENT_PATTERNS
        self.brands = brands or BRANDS
        self.regions = regions or REGIONS
        self.metric_keywords = metric_keywords or METRIC_KEYWORDS

    def classify(self, text: str) -> Intent:
        """
        Classify a natural language question.

        Args:
            text: Raw question text

        Returns:
            Intent with type, entities, metrics and confidence
        """
        text = text or ""
        scores = self.score(text)
        try:
            intent_type = self._pick_type(scores)
        except ClassificationAmbiguity as amb:
            logger.debug(f"[intent] {amb}; using {amb.fallback_type}")
            intent_type = QueryType(amb.fallback_type)

        best = max(scores.values()) if scores else 0
        lowered = text.lower()
        intent = Intent(
            type=intent_type,
            entities=self.extract_entities(lowered),
            metrics=self.extract_metrics(lowered),
            confidence=MATCHED_CONFIDENCE if best > 0 else UNMATCHED_CONFIDENCE,
        )
        logger.debug(
            f"[intent] type={intent.type.value} entities={intent.entities} "
            f"metrics={intent.metrics} confidence={intent.confidence}"
        )
        return intent

    def score(self, text: str) -> Dict[QueryType, int]:
        """Number of matching patterns per candidate type."""
        return {
            qtype: sum(1 for pattern in patterns if pattern.search(text))
            for qtype, patterns in self.patterns.items()
        }

    def _pick_type(self, scores: Dict[QueryType, int]) -> QueryType:
        ranked: List[Tuple[QueryType, int]] = list(scores.items())
        best = max((count for _, count in ranked), default=0)
        if best == 0:
            raise ClassificationAmbiguity(
                "no intent pattern matched", fallback_type=DEFAULT_TYPE.value
            )
        leaders = [qtype for qtype, count in ranked if count == best]
        if len(leaders) > 1:
            raise ClassificationAmbiguity(
                f"tie between {[t.value for t in leaders]}",
                fallback_type=leaders[0].value,
                tied_types=[t.value for t in leaders],
            )
        return leaders[0]

    def extract_entities(self, lowered: str) -> List[str]:
        entities = [brand for brand in self.brands if brand in lowered]
        entities.extend(region for region in self.regions if region in lowered)
        return entities

    def extract_metrics(self, lowered: str) -> List[str]:
        return [
            metric for metric, keywords in self.metric_keywords.items()
            if any(keyword in lowered for keyword in keywords)
        ]
