"""
Semantic contradiction detection.

Compares each new answer against a static table of semantically opposed
items (e.g. "I keep things organized" vs. "I leave my belongings around")
and against same-trait items keyed in the opposite direction. Agreeing (or
disagreeing) with both sides of an opposed pair is a contradiction.

Contradictions are advisory. generate_clarification() turns one into a
prompt offering the respondent four ways to resolve it; nothing is ever
resolved automatically.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Tuple

from psyche.core.intelligence._types import Contradiction, Response
from psyche.core.scales import (
    HIGH_BAND_MIN,
    LOW_BAND_MAX,
    SCALE_MAX,
    SCALE_MIN,
    format_likert,
    keyed_value,
    same_extreme_band,
)
from psyche.schemas.interventions import (
    Intervention,
    InterventionOption,
    InterventionType,
)

logger = logging.getLogger(__name__)

PAIR_TABLE_CONFIDENCE = 0.75
SAME_TRAIT_CONFIDENCE = 0.65


@dataclass(frozen=True)
class OpposedPair:
    """Two groups of items that describe opposite behavior."""

    positive: FrozenSet[str]
    negative: FrozenSet[str]
    description: str


@dataclass(frozen=True)
class ContradictionRule:
    """All opposed pairs scoped to one trait."""

    trait: str
    pairs: Tuple[OpposedPair, ...]


def _pair(positive: Tuple[str, ...], negative: Tuple[str, ...], description: str) -> OpposedPair:
    return OpposedPair(frozenset(positive), frozenset(negative), description)


DEFAULT_CONTRADICTION_RULES: Tuple[ContradictionRule, ...] = (
    ContradictionRule(
        "conscientiousness",
        (
            _pair(
                ("BASELINE_CONSCIENTIOUSNESS_1", "CONSCIENTIOUSNESS_ORGANIZED"),
                ("BASELINE_CONSCIENTIOUSNESS_5_R", "CONSCIENTIOUSNESS_MESSY"),
                "Organization vs. Disorganization",
            ),
            _pair(
                ("CONSCIENTIOUSNESS_PUNCTUAL", "CONSCIENTIOUSNESS_DEADLINES"),
                ("CONSCIENTIOUSNESS_LATE", "CONSCIENTIOUSNESS_PROCRASTINATE"),
                "Punctuality vs. Lateness",
            ),
        ),
    ),
    ContradictionRule(
        "neuroticism",
        (
            _pair(
                ("BASELINE_NEUROTICISM_1", "NEUROTICISM_ANXIOUS"),
                ("NEUROTICISM_CALM", "NEUROTICISM_RELAXED"),
                "Anxious vs. Calm",
            ),
            _pair(
                ("NEUROTICISM_WORRIED", "WORRY_FREQUENCY"),
                ("PROBE_STRESS_1", "RESILIENCE_BOUNCE_BACK"),
                "Worry vs. Stress Resilience",
            ),
        ),
    ),
    ContradictionRule(
        "depression",
        (
            _pair(
                ("DEPRESSION_PHQ9_1", "DEPRESSION_ANHEDONIA"),
                ("PROBE_INTEREST_1", "LIFE_SATISFACTION"),
                "Anhedonia vs. Life Engagement",
            ),
            _pair(
                ("DEPRESSION_PHQ9_4", "DEPRESSION_ENERGY_LOW"),
                ("PROBE_ENERGY_1", "ENERGY_HIGH"),
                "Low Energy vs. High Energy",
            ),
            _pair(
                ("DEPRESSION_PHQ9_2", "DEPRESSION_MOOD_LOW"),
                ("PROBE_MOOD_1", "MOOD_POSITIVE"),
                "Low Mood vs. Positive Mood",
            ),
        ),
    ),
    ContradictionRule(
        "extraversion",
        (
            _pair(
                ("BASELINE_EXTRAVERSION_1", "EXTRAVERSION_SOCIAL"),
                ("EXTRAVERSION_SOLITARY", "EXTRAVERSION_WITHDRAWN"),
                "Social vs. Solitary",
            ),
            _pair(
                ("EXTRAVERSION_TALKATIVE", "EXTRAVERSION_OUTGOING"),
                ("EXTRAVERSION_QUIET", "EXTRAVERSION_RESERVED"),
                "Talkative vs. Reserved",
            ),
        ),
    ),
    ContradictionRule(
        "adhd",
        (
            _pair(
                ("ADHD_INATTENTION_1", "ADHD_DISTRACTED"),
                ("PROBE_CONCENTRATION_1", "CONCENTRATION_EXCELLENT"),
                "Inattention vs. Good Concentration",
            ),
            _pair(
                ("ADHD_HYPERACTIVITY_1", "ADHD_RESTLESS"),
                ("CALM_SITTING", "PATIENCE_HIGH"),
                "Restlessness vs. Calm",
            ),
        ),
    ),
    ContradictionRule(
        "anxiety",
        (
            _pair(
                ("ANXIETY_GAD7_1", "ANXIETY_WORRIED"),
                ("ANXIETY_CALM", "PROBE_WORRY_1"),
                "Worry vs. Calmness",
            ),
        ),
    ),
)


def check_opposed_values(first: int, second: int) -> str | None:
    """
    Severity of a contradiction between two keyed answers, or None.

    HIGH when both sit at the same scale extreme, MEDIUM when both are
    merely in the same agree/disagree band.
    """
    if first >= HIGH_BAND_MIN and second >= HIGH_BAND_MIN:
        return "HIGH" if first == second == SCALE_MAX else "MEDIUM"
    if first <= LOW_BAND_MAX and second <= LOW_BAND_MAX:
        return "HIGH" if first == second == SCALE_MIN else "MEDIUM"
    return None


class SemanticContradictionDetector:
    """Detects contradictions between the current answer and earlier ones."""

    def __init__(
        self, rules: Tuple[ContradictionRule, ...] = DEFAULT_CONTRADICTION_RULES
    ):
        self.rules = rules

    def detect(self, current: Response, history: List[Response]) -> List[Contradiction]:
        """
        Find contradictions involving the current answer.

        Args:
            current: The answer just given.
            history: Earlier answers, oldest first (current excluded).

        Returns:
            Contradictions, earlier answer first in each.
        """
        found: List[Contradiction] = []
        seen: set = set()

        for rule in self.rules:
            for pair in rule.pairs:
                if current.item_id in pair.positive:
                    partners = pair.negative
                elif current.item_id in pair.negative:
                    partners = pair.positive
                else:
                    continue
                for earlier in history:
                    if earlier.item_id not in partners:
                        continue
                    severity = check_opposed_values(
                        keyed_value(earlier.raw_value, earlier.reverse_scored),
                        keyed_value(current.raw_value, current.reverse_scored),
                    )
                    if severity is None:
                        continue
                    seen.add(frozenset((earlier.item_id, current.item_id)))
                    found.append(
                        Contradiction(
                            trait=rule.trait,
                            pair_description=pair.description,
                            first=earlier,
                            second=current,
                            severity=severity,
                            confidence=PAIR_TABLE_CONFIDENCE,
                        )
                    )

        found.extend(self._same_trait_contradictions(current, history, seen))

        if found:
            logger.debug(
                f"{len(found)} contradiction(s) on {current.item_id}: "
                f"{[c.pair_description for c in found]}"
            )
        return found

    @staticmethod
    def _same_trait_contradictions(
        current: Response, history: List[Response], seen: set
    ) -> List[Contradiction]:
        # Opposite keying means agreement with both items is the conflict, so
        # raw answers are compared without re-keying
        if current.trait is None:
            return []
        found = []
        for earlier in history:
            if earlier.trait is not current.trait:
                continue
            if earlier.reverse_scored == current.reverse_scored:
                continue
            if frozenset((earlier.item_id, current.item_id)) in seen:
                continue
            if not same_extreme_band(earlier.raw_value, current.raw_value):
                continue
            severity = check_opposed_values(earlier.raw_value, current.raw_value)
            found.append(
                Contradiction(
                    trait=current.trait.value,
                    pair_description=f"{current.trait.value} trait inconsistency",
                    first=earlier,
                    second=current,
                    severity=severity or "MEDIUM",
                    confidence=SAME_TRAIT_CONFIDENCE,
                    source="same_trait",
                )
            )
        return found

    @staticmethod
    def generate_clarification(contradiction: Contradiction) -> Intervention:
        """Build a disambiguation prompt for one contradiction."""
        first, second = contradiction.first, contradiction.second
        return Intervention(
            type=InterventionType.CLARIFICATION,
            source="contradiction",
            priority="high" if contradiction.severity == "HIGH" else "medium",
            trait=contradiction.trait,
            message=(
                f"We noticed different responses about "
                f"{contradiction.pair_description.lower()}. "
                "This helps us understand you better."
            ),
            question="Which better describes you overall?",
            options=[
                InterventionOption(
                    value="first", label="The first answer is more accurate"
                ),
                InterventionOption(
                    value="second", label="The second answer is more accurate"
                ),
                InterventionOption(
                    value="both", label="Both are true in different contexts"
                ),
                InterventionOption(
                    value="neither",
                    label="I may have misunderstood one of the questions",
                ),
            ],
            details={
                "first": {
                    "item_id": first.item_id,
                    "text": first.text,
                    "answer": format_likert(first.raw_value),
                },
                "second": {
                    "item_id": second.item_id,
                    "text": second.text,
                    "answer": format_likert(second.raw_value),
                },
                "severity": contradiction.severity,
                "confidence": contradiction.confidence,
            },
        )

    @staticmethod
    def get_summary(contradictions: List[Contradiction]) -> Dict[str, Any]:
        """Counts by severity and an overall severity for reporting."""
        if not contradictions:
            return {
                "count": 0,
                "high_severity": 0,
                "medium_severity": 0,
                "severity": "NONE",
                "message": "No contradictions detected; responses are internally consistent",
                "traits_affected": [],
            }

        high = sum(1 for c in contradictions if c.severity == "HIGH")
        medium = sum(1 for c in contradictions if c.severity == "MEDIUM")

        if high > 2:
            severity = "HIGH"
            message = (
                "Multiple significant contradictions suggest confusion or careless responding"
            )
        elif high > 0 or medium > 3:
            severity = "MEDIUM"
            message = (
                "Some contradictions detected; may indicate context-dependent "
                "responses or response variability"
            )
        else:
            severity = "LOW"
            message = "Minor inconsistencies detected"

        return {
            "count": len(contradictions),
            "high_severity": high,
            "medium_severity": medium,
            "severity": severity,
            "message": message,
            "traits_affected": sorted({c.trait for c in contradictions}),
        }
