"""
Response style classification.

Classifies how a respondent uses the answer scale and which item format is
likely to measure them best:

    FENCE_SITTING       -> POLARIZING items (forced choice, "always/never")
    EXTREME_RESPONDING  -> NUANCED items (frequency scales, "how often")
    INCONSISTENT        -> CONCRETE items (behavioral, time-framed)
    HIGHLY_CONSISTENT   -> VARIED items (reverse-keyed, mixed formats)
    BALANCED            -> STANDARD items

The selector's adaptive-match factor uses score_item_match() to favor items
that fit the detected style.
"""

import logging
import statistics
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from libs.domain_types import ResponseType
from psyche.core.intelligence._types import Response
from psyche.core.scales import SCALE_MAX, SCALE_MIDPOINT, SCALE_MIN, keyed_value
from psyche.schemas.items import Item

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
STANDARD = "STANDARD"

# Score returned by score_item_match when no style is known
NEUTRAL_MATCH_SCORE = 50.0


@dataclass(frozen=True)
class ResponseStyleThresholds:
    """Classification thresholds, applied in order."""

    min_responses: int = 5
    fence_sitting_rate: float = 0.50
    extremity_rate: float = 0.70
    inconsistent_below: float = 0.50
    inconsistent_min_variance: float = 1.5
    highly_consistent_above: float = 0.85
    # Used when no trait has two or more answers
    default_consistency: float = 0.5


@dataclass
class StyleMetrics:
    """Scale-use metrics from the most recent classification."""

    extremity: float = 0.0
    fence_sitting: float = 0.0
    variance: float = 0.0
    consistency: float = 0.0


@dataclass(frozen=True)
class _Style:
    pattern: str
    preferred_item_type: str
    confidence: float
    rationale: str
    adjustments: tuple = field(default_factory=tuple)


_FENCE_SITTING = _Style(
    "FENCE_SITTING",
    "POLARIZING",
    0.80,
    "Tends to avoid commitment; polarizing items force clearer distinctions.",
    (
        "Prefer forced-choice questions",
        'Use "always/never" language',
        "Avoid middle-ground options",
        "Use concrete behavioral examples",
    ),
)
_EXTREME_RESPONDING = _Style(
    "EXTREME_RESPONDING",
    "NUANCED",
    0.75,
    "Responds in extremes; nuanced items capture subtlety.",
    (
        'Use frequency-based questions ("how often")',
        "Include context-specific scenarios",
        "Use graduated intensity questions",
        "Avoid absolute language",
    ),
)
_INCONSISTENT = _Style(
    "INCONSISTENT",
    "CONCRETE",
    0.65,
    "Inconsistent responses suggest confusion; concrete behavioral items help.",
    (
        "Use specific behavioral examples",
        "Avoid abstract concepts",
        'Include time frames ("in the past week")',
        "Use simple, clear language",
    ),
)
_HIGHLY_CONSISTENT = _Style(
    "HIGHLY_CONSISTENT",
    "VARIED",
    0.70,
    "Very consistent responses; introduce variety for validation.",
    (
        "Mix question formats",
        "Include reverse-scored items",
        "Vary response scales",
        "Add situational context",
    ),
)
_BALANCED = _Style(
    "BALANCED",
    STANDARD,
    0.60,
    "Balanced response pattern; continue with standard items.",
)

_RECOMMENDATIONS: Dict[str, Dict[str, List[str]]] = {
    "FENCE_SITTING": {
        "do_more": [
            "Use forced-choice formats",
            "Ask about specific behaviors rather than tendencies",
            'Use "always/never" language to force commitment',
            "Frame questions in terms of concrete actions",
        ],
        "do_less": [
            "Avoid Likert scales with neutral midpoint",
            "Reduce abstract or philosophical questions",
            'Minimize "sometimes" or "maybe" language',
        ],
    },
    "EXTREME_RESPONDING": {
        "do_more": [
            "Use frequency scales (never/rarely/sometimes/often/always)",
            "Ask context-specific questions",
            "Use graded intensity (mild/moderate/severe)",
            "Include situational qualifiers",
        ],
        "do_less": [
            "Avoid simple agree/disagree formats",
            "Reduce absolute statements",
            "Minimize binary choices",
        ],
    },
    "INCONSISTENT": {
        "do_more": [
            "Use concrete behavioral examples",
            "Include specific time frames",
            "Ask about observable actions",
            "Use simple, clear language",
        ],
        "do_less": [
            "Avoid abstract concepts",
            "Reduce complex sentences",
            "Minimize philosophical questions",
        ],
    },
    "HIGHLY_CONSISTENT": {
        "do_more": [
            "Add reverse-scored items for validation",
            "Mix question formats",
            "Include validity check questions",
            "Vary response scales",
        ],
        "do_less": ["Do not cluster similar questions together"],
    },
}


def within_trait_consistency(
    responses: List[Response], default: float = 0.5
) -> float:
    """
    Mean of 1 - sd/2 over traits with two or more answers.

    Answers are re-keyed for reverse scoring first, so agreeing with an item
    and disagreeing with its reverse-keyed twin counts as consistent.
    """
    by_trait: Dict[str, List[int]] = defaultdict(list)
    for r in responses:
        key = r.trait.value if r.trait is not None else r.trait_label
        if not key:
            continue
        by_trait[key].append(keyed_value(r.raw_value, r.reverse_scored))

    scores = [
        1.0 - statistics.pstdev(values) / 2.0
        for values in by_trait.values()
        if len(values) >= 2
    ]
    if not scores:
        return default
    return statistics.fmean(scores)


class ResponseStyleClassifier:
    """Per-session response style classifier."""

    def __init__(self, thresholds: Optional[ResponseStyleThresholds] = None):
        self.thresholds = thresholds or ResponseStyleThresholds()
        self.metrics = StyleMetrics()

    def classify(self, history: List[Response]) -> Dict[str, Any]:
        """
        Classify the respondent's answering style from all answers so far.

        Returns:
            Dictionary containing:
            {
                "pattern": str,              # e.g. FENCE_SITTING, INSUFFICIENT_DATA
                "preferred_item_type": str,  # e.g. POLARIZING, STANDARD
                "confidence": float,
                "rationale": str,
                "adjustments": List[str],
                "metrics": Dict[str, float],
            }
        """
        t = self.thresholds
        if len(history) < t.min_responses:
            return {
                "pattern": INSUFFICIENT_DATA,
                "preferred_item_type": STANDARD,
                "confidence": 0.0,
                "rationale": (
                    f"At least {t.min_responses} answers are needed to classify "
                    "response style."
                ),
                "adjustments": [],
                "metrics": {},
            }

        values = [r.raw_value for r in history]
        n = len(values)
        self.metrics = StyleMetrics(
            extremity=sum(1 for v in values if v in (SCALE_MIN, SCALE_MAX)) / n,
            fence_sitting=sum(1 for v in values if v == SCALE_MIDPOINT) / n,
            variance=statistics.pvariance(values),
            consistency=within_trait_consistency(history, t.default_consistency),
        )
        style = self._determine_style(self.metrics)

        return {
            "pattern": style.pattern,
            "preferred_item_type": style.preferred_item_type,
            "confidence": style.confidence,
            "rationale": style.rationale,
            "adjustments": list(style.adjustments),
            "metrics": {
                "extremity": round(self.metrics.extremity, 3),
                "fence_sitting": round(self.metrics.fence_sitting, 3),
                "variance": round(self.metrics.variance, 3),
                "consistency": round(self.metrics.consistency, 3),
            },
        }

    def _determine_style(self, m: StyleMetrics) -> _Style:
        t = self.thresholds
        if m.fence_sitting > t.fence_sitting_rate:
            return _FENCE_SITTING
        if m.extremity > t.extremity_rate:
            return _EXTREME_RESPONDING
        if m.consistency < t.inconsistent_below and m.variance > t.inconsistent_min_variance:
            return _INCONSISTENT
        if m.consistency > t.highly_consistent_above:
            return _HIGHLY_CONSISTENT
        return _BALANCED

    @staticmethod
    def score_item_match(item: Item, preferred_item_type: Optional[str]) -> float:
        """How well an item's wording and format fit the preferred type (0-100)."""
        if not preferred_item_type:
            return NEUTRAL_MATCH_SCORE

        score = NEUTRAL_MATCH_SCORE
        text = (item.text or "").lower()

        if preferred_item_type == "POLARIZING":
            if "always" in text or "never" in text:
                score += 30
            if "typically" in text or "usually" in text:
                score += 15
            if "sometimes" in text or "occasionally" in text:
                score -= 20
            if item.response_type is ResponseType.BINARY:
                score += 25
        elif preferred_item_type == "NUANCED":
            if item.response_type is ResponseType.FREQUENCY:
                score += 30
            if "how often" in text:
                score += 25
            if "sometimes" in text:
                score += 15
            if "always" in text or "never" in text:
                score -= 25
        elif preferred_item_type == "CONCRETE":
            if "i do" in text or "i have" in text:
                score += 20
            if "in the past" in text:
                score += 20
            if item.has_tag("behavioral"):
                score += 25
            if item.has_tag("abstract"):
                score -= 20
        elif preferred_item_type == "VARIED":
            if item.reverse_scored:
                score += 15
            if item.response_type is not ResponseType.LIKERT:
                score += 10

        return max(0.0, min(100.0, score))

    @staticmethod
    def get_recommendations(pattern: str) -> Dict[str, List[str]]:
        """Item-design guidance for a detected pattern."""
        recs = _RECOMMENDATIONS.get(pattern, {"do_more": [], "do_less": []})
        return {"do_more": list(recs["do_more"]), "do_less": list(recs["do_less"])}

    def get_pattern_summary(self) -> Dict[str, Any]:
        m = self.metrics
        return {
            "metrics": {
                "extremity": m.extremity,
                "fence_sitting": m.fence_sitting,
                "variance": m.variance,
                "consistency": m.consistency,
            },
            "interpretation": {
                "extremity": _interpret_extremity(m.extremity),
                "fence_sitting": _interpret_fence_sitting(m.fence_sitting),
                "consistency": _interpret_consistency(m.consistency),
            },
        }

    def reset(self) -> None:
        self.metrics = StyleMetrics()


def _interpret_extremity(score: float) -> str:
    if score > 0.80:
        return "Very high: almost all responses are extreme (1 or 5)"
    if score > 0.60:
        return "High: frequent use of extreme responses"
    if score > 0.40:
        return "Moderate: balanced use of scale"
    if score > 0.20:
        return "Low: infrequent use of extremes"
    return "Very low: rarely uses extremes"


def _interpret_fence_sitting(score: float) -> str:
    if score > 0.60:
        return "Very high: strong tendency to choose neutral (3)"
    if score > 0.45:
        return "High: frequent neutral responses"
    if score > 0.30:
        return "Moderate: balanced scale use"
    if score > 0.15:
        return "Low: infrequent neutral responses"
    return "Very low: rarely neutral"


def _interpret_consistency(score: float) -> str:
    if score > 0.85:
        return "Very high: extremely consistent within traits"
    if score > 0.70:
        return "High: good consistency"
    if score > 0.55:
        return "Moderate: acceptable consistency"
    if score > 0.40:
        return "Low: some inconsistency"
    return "Very low: high inconsistency"
