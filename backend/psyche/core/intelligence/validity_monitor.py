"""
Real-time validity monitoring.

Runs after every answer and maintains five validity scales for the session:

1. Response timing (delegated to ResponseTimeAnalyzer)
2. Inconsistency: known opposed item pairs and same-trait, opposite-keyed
   items answered in the same extreme band
3. Random responding: normalized Shannon entropy of the last 10 answers
   combined with the rate of alternating extremes
4. Social desirability: favorably keyed answers on personality,
   interpersonal and wellbeing items
5. Infrequency: endorsement of items tagged as rare-response checks

An extreme-response counter is kept as an informational sixth signal.

Findings are data, not errors: they are returned as flags and intervention
records. The monitor never inserts items itself.

Based on:
- Meade & Craig (2012): Identifying careless responses in survey data
- Huang et al. (2012): Detecting and deterring insufficient effort responding
- Paulhus (1984): Two-component models of socially desirable responding
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from libs.domain_types import TopicCategory, ValidityLevel
from psyche.core.intelligence._types import Response
from psyche.core.intelligence.response_time import (
    ATTENTION_CHECK_ITEM_ID,
    ResponseTimeAnalyzer,
)
from psyche.core.scales import (
    HIGH_BAND_MIN,
    LOW_BAND_MAX,
    SCALE_MAX,
    SCALE_MIN,
    same_extreme_band,
)
from psyche.schemas.interventions import Intervention, InterventionType
from psyche.schemas.items import Item

logger = logging.getLogger(__name__)

_SEVERITY_ORDER = {"none": 0, "low": 1, "medium": 2, "high": 3}


@dataclass(frozen=True)
class ConsistencyPair:
    """Two items expected to be answered in opposite directions."""

    positive: str
    negative: str
    trait: str
    expected_correlation: float


DEFAULT_CONSISTENCY_PAIRS: Tuple[ConsistencyPair, ...] = (
    # "I'm organized" vs. "I'm messy"
    ConsistencyPair(
        "BASELINE_CONSCIENTIOUSNESS_1",
        "BASELINE_CONSCIENTIOUSNESS_5_R",
        "conscientiousness",
        -0.70,
    ),
    # Anhedonia vs. interest in activities
    ConsistencyPair("DEPRESSION_PHQ9_1", "PROBE_INTEREST_1", "depression", -0.65),
    # "I worry often" vs. "I bounce back from stress"
    ConsistencyPair("BASELINE_NEUROTICISM_1", "PROBE_STRESS_1", "neuroticism", -0.60),
)


@dataclass(frozen=True)
class ValidityThresholds:
    """Flagging thresholds for each validity scale."""

    inconsistency_rate: float = 0.30
    randomness: float = 0.25
    randomness_window: int = 10
    entropy_weight: float = 0.6
    alternation_weight: float = 0.4
    alternation_min_jump: int = 3  # |difference| counted as an alternating extreme
    social_desirability: float = 0.75
    social_desirability_min_responses: int = 15
    infrequency_rate: float = 0.15
    infrequency_tag: str = "infrequency"
    extreme_responding: float = 0.80
    extreme_responding_min_responses: int = 20

    # overall_validity bands, applied to the inconsistency rate, randomness
    # score and infrequency rate alike
    questionable_above: float = 0.30
    fair_above: float = 0.20
    good_above: float = 0.10


# Topics where favorable self-presentation is possible
_DESIRABILITY_TOPICS = frozenset(
    {TopicCategory.PERSONALITY, TopicCategory.INTERPERSONAL, TopicCategory.WELLBEING}
)


@dataclass
class ValidityState:
    """Running validity aggregates for one session."""

    inconsistent_pairs: List[Dict[str, Any]] = field(default_factory=list)
    random_pattern_score: float = 0.0
    social_desirability_score: float = 0.0
    infrequency_count: int = 0
    extreme_response_count: int = 0
    total_responses: int = 0
    flags: List[Dict[str, Any]] = field(default_factory=list)
    overall_validity: ValidityLevel = ValidityLevel.EXCELLENT

    def rate(self, count: int) -> float:
        if self.total_responses == 0:
            return 0.0
        return count / self.total_responses

    @property
    def inconsistency_rate(self) -> float:
        return self.rate(len(self.inconsistent_pairs))

    @property
    def infrequency_rate(self) -> float:
        return self.rate(self.infrequency_count)

    @property
    def extreme_rate(self) -> float:
        return self.rate(self.extreme_response_count)


def _escalate(current: str, new: str) -> str:
    return new if _SEVERITY_ORDER[new] > _SEVERITY_ORDER[current] else current


def randomness_score(
    values: List[int],
    entropy_weight: float = 0.6,
    alternation_weight: float = 0.4,
    min_jump: int = 3,
) -> float:
    """
    Combined random-responding score for a window of ordinal answers.

    Normalized Shannon entropy (0 = always the same answer, 1 = uniform use
    of all five options) weighted with the fraction of consecutive answers
    that jump between scale extremes.
    """
    if len(values) < 2:
        return 0.0
    window = np.asarray(values)
    _, counts = np.unique(window, return_counts=True)
    p = counts / counts.sum()
    entropy = float(-(p * np.log2(p)).sum())
    normalized_entropy = entropy / float(np.log2(SCALE_MAX - SCALE_MIN + 1))

    jumps = int((np.abs(np.diff(window)) >= min_jump).sum())
    alternation_rate = jumps / (len(window) - 1)

    return normalized_entropy * entropy_weight + alternation_rate * alternation_weight


class RealTimeValidityMonitor:
    """Per-session validity monitor."""

    def __init__(
        self,
        thresholds: Optional[ValidityThresholds] = None,
        consistency_pairs: Tuple[ConsistencyPair, ...] = DEFAULT_CONSISTENCY_PAIRS,
        time_analyzer: Optional[ResponseTimeAnalyzer] = None,
    ):
        self.thresholds = thresholds or ValidityThresholds()
        self.consistency_pairs = consistency_pairs
        self.time_analyzer = time_analyzer or ResponseTimeAnalyzer()
        self.state = ValidityState()

    def monitor(
        self,
        item: Item,
        value: int,
        response_time_ms: Optional[float],
        history: List[Response],
        response: Optional[Response] = None,
    ) -> Dict[str, Any]:
        """
        Run all validity checks for one answer.

        Args:
            item: The item just answered.
            value: Ordinal answer (1-5).
            response_time_ms: Answer latency, or None if not measured.
            history: Answers before this one, oldest first.
            response: The already-recorded Response for this answer, if the
                caller has one; built from item and value otherwise.

        Returns:
            Dictionary containing:
            {
                "flags": List[str],
                "severity": str,             # none, low, medium, high
                "interventions": List[Intervention],
                "confidence": float,         # confidence in this answer, 0-1
                "overall_validity": str,
                "time_analysis": Dict,
            }
        """
        if response is None:
            response = Response.from_item(item, value, response_time_ms)

        t = self.thresholds
        state = self.state
        state.total_responses = len(history) + 1

        flags: List[str] = []
        interventions: List[Intervention] = []
        severity = "none"
        confidence = 1.0

        # 1. Timing
        time_analysis = self.time_analyzer.analyze(
            item, response_time_ms, value, history
        )
        if time_analysis["flags"]:
            flags.extend(time_analysis["flags"])
            interventions.extend(time_analysis["suggested_actions"])
            if time_analysis["severity"] == "high":
                severity = "high"
                confidence -= 0.15

        # 2. Inconsistency
        inconsistencies = self.detect_inconsistencies(response, history)
        if inconsistencies:
            flags.append("INCONSISTENCY")
            state.inconsistent_pairs.extend(inconsistencies)
            severity = _escalate(severity, "medium")
            if state.inconsistency_rate > t.inconsistency_rate:
                severity = "high"
                confidence -= 0.25
                interventions.append(
                    Intervention(
                        type=InterventionType.CLARIFICATION,
                        source="validity",
                        priority="high",
                        message=(
                            "Some of your recent answers seem to contradict each "
                            "other. Would you like to review them?"
                        ),
                        details={"inconsistencies": inconsistencies},
                    )
                )

        # 3. Random responding
        window = [r.raw_value for r in history[-(t.randomness_window - 1):]]
        window.append(response.raw_value)
        if len(window) >= t.randomness_window:
            state.random_pattern_score = randomness_score(
                window, t.entropy_weight, t.alternation_weight, t.alternation_min_jump
            )
        if state.random_pattern_score > t.randomness:
            flags.append("RANDOM_RESPONDING")
            severity = "high"
            confidence -= 0.30
            interventions.append(
                Intervention(
                    type=InterventionType.ATTENTION_CHECK,
                    source="validity",
                    priority="critical",
                    message="Please read each question carefully and answer thoughtfully.",
                    insert_item_id=ATTENTION_CHECK_ITEM_ID,
                    details={"randomness_score": round(state.random_pattern_score, 3)},
                )
            )

        # 4. Social desirability
        state.social_desirability_score = self.social_desirability(
            history + [response]
        )
        if (
            state.total_responses >= t.social_desirability_min_responses
            and state.social_desirability_score > t.social_desirability
        ):
            flags.append("SOCIAL_DESIRABILITY")
            severity = _escalate(severity, "medium")
            confidence -= 0.10

        # 5. Infrequency
        if response.has_tag(t.infrequency_tag) and response.raw_value >= HIGH_BAND_MIN:
            state.infrequency_count += 1
        if state.infrequency_rate > t.infrequency_rate:
            flags.append("INFREQUENCY")
            severity = _escalate(severity, "medium")
            confidence -= 0.15

        # Extreme responding (informational)
        if response.raw_value in (SCALE_MIN, SCALE_MAX):
            state.extreme_response_count += 1
        if (
            state.total_responses > t.extreme_responding_min_responses
            and state.extreme_rate > t.extreme_responding
        ):
            flags.append("EXTREME_RESPONDING")
            severity = _escalate(severity, "low")

        state.overall_validity = self.compute_overall_validity()

        if flags:
            state.flags.append(
                {
                    "response_number": state.total_responses,
                    "item_id": response.item_id,
                    "flags": list(flags),
                    "severity": severity,
                    "timestamp": response.timestamp.isoformat(),
                }
            )
            logger.debug(
                f"Validity flags on {response.item_id}: {flags} (severity={severity})"
            )

        return {
            "flags": flags,
            "severity": severity,
            "interventions": interventions,
            "confidence": max(0.0, confidence),
            "overall_validity": state.overall_validity.value,
            "time_analysis": time_analysis,
        }

    def detect_inconsistencies(
        self, response: Response, history: List[Response]
    ) -> List[Dict[str, Any]]:
        """Opposed pairs answered in the same extreme band."""
        found: List[Dict[str, Any]] = []
        seen: set = set()

        def record(kind: str, trait: str, earlier: Response, severity: str) -> None:
            key = frozenset((earlier.item_id, response.item_id))
            if key in seen:
                return
            seen.add(key)
            found.append(
                {
                    "type": kind,
                    "trait": trait,
                    "item1": earlier.item_id,
                    "response1": earlier.raw_value,
                    "item2": response.item_id,
                    "response2": response.raw_value,
                    "severity": severity,
                }
            )

        by_id = {r.item_id: r for r in history}
        for pair in self.consistency_pairs:
            if response.item_id == pair.positive:
                partner = by_id.get(pair.negative)
            elif response.item_id == pair.negative:
                partner = by_id.get(pair.positive)
            else:
                continue
            if partner is not None and same_extreme_band(
                response.raw_value, partner.raw_value
            ):
                record("LOGICAL_INCONSISTENCY", pair.trait, partner, "high")

        if response.trait is not None:
            for earlier in history:
                if (
                    earlier.trait is response.trait
                    and earlier.reverse_scored != response.reverse_scored
                    and same_extreme_band(response.raw_value, earlier.raw_value)
                ):
                    record(
                        "TRAIT_INCONSISTENCY", response.trait.value, earlier, "medium"
                    )

        return found

    @staticmethod
    def social_desirability(responses: List[Response]) -> float:
        """Fraction of favorably keyed answers on self-presentation topics."""
        relevant = [r for r in responses if r.topic in _DESIRABILITY_TOPICS]
        if not relevant:
            return 0.0
        favorable = sum(
            1
            for r in relevant
            if (r.raw_value <= LOW_BAND_MAX if r.reverse_scored else r.raw_value >= HIGH_BAND_MIN)
        )
        return favorable / len(relevant)

    def compute_overall_validity(self) -> ValidityLevel:
        t = self.thresholds
        worst = max(
            self.state.inconsistency_rate,
            self.state.random_pattern_score,
            self.state.infrequency_rate,
        )
        if worst > t.questionable_above:
            return ValidityLevel.QUESTIONABLE
        if worst > t.fair_above:
            return ValidityLevel.FAIR
        if worst > t.good_above:
            return ValidityLevel.GOOD
        return ValidityLevel.EXCELLENT

    def calculate_confidence(self) -> float:
        """Overall confidence in the session's results, 0-1."""
        state = self.state
        confidence = 1.0
        confidence -= state.inconsistency_rate * 0.5
        confidence -= state.random_pattern_score * 0.6
        confidence -= state.infrequency_rate * 0.4
        # Only penalized above an even split of favorable answers
        confidence -= max(0.0, state.social_desirability_score - 0.5) * 0.2
        return max(0.0, min(1.0, confidence))

    def get_validity_report(self) -> Dict[str, Any]:
        """Per-scale scores and interpretations for end-of-session reporting."""
        t = self.thresholds
        state = self.state
        return {
            "overall_validity": state.overall_validity.value,
            "confidence": round(self.calculate_confidence(), 3),
            "scales": {
                "inconsistency": {
                    "score": state.inconsistency_rate,
                    "interpretation": _interpret_inconsistency(state.inconsistency_rate),
                    "flagged": state.inconsistency_rate > t.inconsistency_rate,
                },
                "randomness": {
                    "score": state.random_pattern_score,
                    "interpretation": _interpret_randomness(state.random_pattern_score),
                    "flagged": state.random_pattern_score > t.randomness,
                },
                "social_desirability": {
                    "score": state.social_desirability_score,
                    "interpretation": _interpret_social_desirability(
                        state.social_desirability_score
                    ),
                    "flagged": state.social_desirability_score > t.social_desirability,
                },
                "infrequency": {
                    "score": state.infrequency_rate,
                    "interpretation": _interpret_infrequency(state.infrequency_rate),
                    "flagged": state.infrequency_rate > t.infrequency_rate,
                },
                "extreme_responding": {
                    "score": state.extreme_rate,
                    "interpretation": _interpret_extreme_responding(state.extreme_rate),
                    "informational": True,
                },
            },
            "response_pattern": self.time_analyzer.get_session_summary(),
            "flags": list(state.flags),
            "flagged_responses": len(state.flags),
            "recommendation": _RECOMMENDATIONS[state.overall_validity],
        }

    def reset(self) -> None:
        self.state = ValidityState()
        self.time_analyzer.reset()


_RECOMMENDATIONS = {
    ValidityLevel.QUESTIONABLE: (
        "Results should be interpreted with significant caution. "
        "Consider retaking the assessment."
    ),
    ValidityLevel.FAIR: (
        "Results are generally valid but should be interpreted with some caution."
    ),
    ValidityLevel.GOOD: "Results appear valid and can be interpreted with confidence.",
    ValidityLevel.EXCELLENT: (
        "Results show excellent validity and can be interpreted with high confidence."
    ),
}


def _interpret_inconsistency(rate: float) -> str:
    if rate > 0.30:
        return "High inconsistency suggests careless responding or confusion"
    if rate > 0.20:
        return "Moderate inconsistency may indicate confusion or variability in self-view"
    if rate > 0.10:
        return "Mild inconsistency is within normal range"
    return "Highly consistent responding"


def _interpret_randomness(score: float) -> str:
    if score > 0.25:
        return "Pattern suggests random or careless responding"
    if score > 0.15:
        return "Some randomness detected, results should be interpreted cautiously"
    return "Response pattern appears thoughtful and non-random"


def _interpret_social_desirability(score: float) -> str:
    if score > 0.80:
        return "Strong tendency to present self in overly favorable light"
    if score > 0.65:
        return "Moderate impression management detected"
    if score > 0.50:
        return "Mild positive presentation bias"
    return "Honest and balanced self-presentation"


def _interpret_infrequency(rate: float) -> str:
    if rate > 0.20:
        return "High rate of unusual responses suggests invalid profile"
    if rate > 0.15:
        return "Some unusual responses detected"
    return "Response pattern within normal range"


def _interpret_extreme_responding(rate: float) -> str:
    if rate > 0.85:
        return "Very high use of extreme responses"
    if rate > 0.70:
        return "Frequent use of extreme responses"
    if rate > 0.40:
        return "Moderate use of extreme responses"
    return "Balanced use of response scale"
