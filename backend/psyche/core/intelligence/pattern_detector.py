"""
Neurodivergence response-pattern screening.

Looks at HOW a respondent answers (profile shape, scale use, consistency,
speed) rather than at item content, and reports autism- and ADHD-associated
patterns as likelihood bands. Runs as a periodic batch over the whole
session (every 10th answer once 20 exist), not per answer.

This is a screening heuristic, not a diagnosis. Every result carries
SCREENING_CAVEAT and must be reported with its likelihood band only.

Research foundation:
- Baron-Cohen et al. (2001): The Autism-Spectrum Quotient
- Barkley (2015): Attention-Deficit Hyperactivity Disorder handbook
- Kooij et al. (2019): Updated European consensus on adult ADHD
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

import numpy as np

from libs.domain_types import Trait
from psyche.core.intelligence._types import Response
from psyche.core.scales import NEUTRAL_PERCENT, SCALE_MAX, SCALE_MIN

logger = logging.getLogger(__name__)

SCREENING_CAVEAT = (
    "These patterns are screening signals derived from how questions were "
    "answered. They are not a diagnosis; only a qualified professional can "
    "assess autism or ADHD."
)


@dataclass(frozen=True)
class PatternThresholds:
    """Indicator thresholds. Trait estimates are on the 0-100 scale."""

    # Autism indicators
    spike_index: float = 0.75  # max |estimate - mean| / mean
    spike_min_traits: int = 3
    domain_consistency: float = 0.90  # mean(1 - sd/2) within traits
    low_extraversion: float = 30.0
    low_agreeableness: float = 35.0
    low_openness: float = 35.0
    high_conscientiousness: float = 65.0
    categorical_extremity: float = 0.75
    autism_confidence_cap: float = 0.90

    # ADHD indicators
    trait_variability: float = 1.5  # mean within-trait SD on the 1-5 scale
    trait_variability_min_answers: int = 3
    impulsive_min_timings: int = 20
    impulsive_mean_ms: float = 2500.0
    impulsive_fast_ms: float = 2000.0
    impulsive_fast_rate: float = 0.60
    inconsistent_pair_gap: int = 3
    inconsistent_pair_rate: float = 0.25
    adhd_confidence_cap: float = 0.85

    # General indicators
    complexity: float = 0.75  # transition entropy / 4 bits
    score_range: float = 60.0


def _answers_by_trait(history: Sequence[Response]) -> Dict[str, np.ndarray]:
    grouped: Dict[str, List[int]] = defaultdict(list)
    for r in history:
        key = r.trait.value if r.trait is not None else (r.trait_label or r.subcategory)
        if key:
            grouped[key].append(r.raw_value)
    return {k: np.asarray(v, dtype=float) for k, v in grouped.items()}


def spike_index(estimates: Sequence[float], min_traits: int = 3) -> float:
    """Largest deviation from the profile mean, relative to the mean."""
    values = np.asarray(estimates, dtype=float)
    if values.size < min_traits:
        return 0.0
    mean = values.mean()
    if mean <= 0:
        return 0.0
    return float(np.abs(values - mean).max() / mean)


def within_domain_consistency(history: Sequence[Response]) -> float:
    """Mean of 1 - sd/2 over traits with two or more answers; 0 if none."""
    scores = [
        1.0 - values.std() / 2.0
        for values in _answers_by_trait(history).values()
        if values.size >= 2
    ]
    return float(np.mean(scores)) if scores else 0.0


def extremity_rate(history: Sequence[Response]) -> float:
    if not history:
        return 0.0
    values = np.asarray([r.raw_value for r in history])
    return float(np.isin(values, (SCALE_MIN, SCALE_MAX)).mean())


def trait_variability(history: Sequence[Response], min_answers: int = 3) -> float:
    """Mean within-trait SD over traits with at least min_answers answers."""
    sds = [
        float(values.std())
        for values in _answers_by_trait(history).values()
        if values.size >= min_answers
    ]
    return float(np.mean(sds)) if sds else 0.0


def inconsistent_pair_rate(history: Sequence[Response], gap: int = 3) -> float:
    """Fraction of same-trait answer pairs that differ by at least gap points."""
    inconsistent = 0
    total = 0
    for values in _answers_by_trait(history).values():
        if values.size < 2:
            continue
        diffs = np.abs(values[:, None] - values[None, :])
        upper = diffs[np.triu_indices(values.size, k=1)]
        total += upper.size
        inconsistent += int((upper >= gap).sum())
    return inconsistent / total if total else 0.0


def pattern_complexity(history: Sequence[Response]) -> float:
    """Shannon entropy of answer-to-answer transitions, scaled by 4 bits."""
    if len(history) < 2:
        return 0.0
    values = np.asarray([r.raw_value for r in history])
    transitions = np.diff(values)
    _, counts = np.unique(transitions, return_counts=True)
    p = counts / counts.sum()
    entropy = float(-(p * np.log2(p)).sum())
    return entropy / 4.0


def _likelihood(indicator_count: int) -> str:
    if indicator_count >= 3:
        return "HIGH"
    if indicator_count == 2:
        return "MODERATE"
    return "LOW"


class NeurodivergencePatternDetector:
    """Batch screening of autism- and ADHD-associated response patterns."""

    def __init__(self, thresholds: Optional[PatternThresholds] = None):
        self.thresholds = thresholds or PatternThresholds()

    def analyze(
        self,
        history: Sequence[Response],
        trait_estimates: Mapping[Trait, float],
        response_times: Sequence[float],
    ) -> Dict[str, Any]:
        """
        Screen the whole session for atypical response patterns.

        Args:
            history: All answers so far, oldest first.
            trait_estimates: Current 0-100 estimates for measured traits only.
            response_times: Answer latencies in milliseconds.

        Returns:
            {"autism": {...}, "adhd": {...}, "general": {...},
             "caveat": str, "responses_analyzed": int}
        """
        return {
            "autism": self.detect_autism_pattern(history, trait_estimates),
            "adhd": self.detect_adhd_pattern(history, response_times),
            "general": self.detect_general_pattern(history, trait_estimates),
            "caveat": SCREENING_CAVEAT,
            "responses_analyzed": len(history),
        }

    def detect_autism_pattern(
        self, history: Sequence[Response], estimates: Mapping[Trait, float]
    ) -> Dict[str, Any]:
        t = self.thresholds
        indicators: List[Dict[str, Any]] = []

        spike = spike_index(list(estimates.values()), t.spike_min_traits)
        if spike > t.spike_index:
            indicators.append(
                {
                    "type": "SPIKY_PROFILE",
                    "confidence": 0.70,
                    "value": round(spike, 3),
                    "description": "Very uneven profile across traits",
                }
            )

        consistency = within_domain_consistency(history)
        if consistency > t.domain_consistency:
            indicators.append(
                {
                    "type": "EXTREME_CONSISTENCY",
                    "confidence": 0.65,
                    "value": round(consistency, 3),
                    "description": "Extremely consistent answers within the same domains",
                }
            )

        extraversion = estimates.get(Trait.EXTRAVERSION, NEUTRAL_PERCENT)
        agreeableness = estimates.get(Trait.AGREEABLENESS, NEUTRAL_PERCENT)
        if extraversion < t.low_extraversion and agreeableness < t.low_agreeableness:
            indicators.append(
                {
                    "type": "SOCIAL_WITHDRAWAL",
                    "confidence": 0.60,
                    "description": "Very low extraversion with low agreeableness",
                }
            )

        openness = estimates.get(Trait.OPENNESS, NEUTRAL_PERCENT)
        conscientiousness = estimates.get(Trait.CONSCIENTIOUSNESS, NEUTRAL_PERCENT)
        if openness < t.low_openness and conscientiousness > t.high_conscientiousness:
            indicators.append(
                {
                    "type": "ROUTINE_PREFERENCE",
                    "confidence": 0.55,
                    "description": "Strong preference for routine and predictability",
                }
            )

        extremity = extremity_rate(history)
        if extremity > t.categorical_extremity:
            indicators.append(
                {
                    "type": "CATEGORICAL_THINKING",
                    "confidence": 0.60,
                    "value": round(extremity, 3),
                    "description": "Frequent use of scale extremes",
                }
            )

        return self._summarize(
            indicators,
            t.autism_confidence_cap,
            high_note="Pattern resembles autism-associated response styles.",
            low_note="Some autism-associated patterns present but not conclusive.",
        )

    def detect_adhd_pattern(
        self, history: Sequence[Response], response_times: Sequence[float]
    ) -> Dict[str, Any]:
        t = self.thresholds
        indicators: List[Dict[str, Any]] = []

        variability = trait_variability(history, t.trait_variability_min_answers)
        if variability > t.trait_variability:
            indicators.append(
                {
                    "type": "INCONSISTENT_SELF_VIEW",
                    "confidence": 0.70,
                    "value": round(variability, 3),
                    "description": "High variability when answering similar questions",
                }
            )

        if len(response_times) > t.impulsive_min_timings:
            times = np.asarray(response_times, dtype=float)
            fast_rate = float((times < t.impulsive_fast_ms).mean())
            if times.mean() < t.impulsive_mean_ms and fast_rate > t.impulsive_fast_rate:
                indicators.append(
                    {
                        "type": "IMPULSIVE_RESPONDING",
                        "confidence": 0.65,
                        "value": round(fast_rate, 3),
                        "description": "Very fast answers throughout the session",
                    }
                )

        pair_rate = inconsistent_pair_rate(history, t.inconsistent_pair_gap)
        if pair_rate > t.inconsistent_pair_rate:
            indicators.append(
                {
                    "type": "POOR_SELF_MONITORING",
                    "confidence": 0.60,
                    "value": round(pair_rate, 3),
                    "description": "Inconsistent answers to same-trait questions",
                }
            )

        return self._summarize(
            indicators,
            t.adhd_confidence_cap,
            high_note="Pattern resembles ADHD-associated response styles.",
            low_note="Some ADHD-associated patterns present but not conclusive.",
        )

    def detect_general_pattern(
        self, history: Sequence[Response], estimates: Mapping[Trait, float]
    ) -> Dict[str, Any]:
        t = self.thresholds
        indicators: List[str] = []

        complexity = pattern_complexity(history)
        if complexity > t.complexity:
            indicators.append("Complex, non-typical response pattern")

        values = list(estimates.values())
        score_range = (max(values) - min(values)) if values else 0.0
        if score_range > t.score_range:
            indicators.append("Very wide range of trait scores")

        return {
            "indicators": indicators,
            "complexity": round(complexity, 3),
            "score_range": round(score_range, 1),
        }

    @staticmethod
    def _summarize(
        indicators: List[Dict[str, Any]],
        cap: float,
        high_note: str,
        low_note: str,
    ) -> Dict[str, Any]:
        if indicators:
            confidence = min(cap, sum(i["confidence"] for i in indicators) / len(indicators))
        else:
            confidence = 0.0
        likelihood = _likelihood(len(indicators))
        return {
            "likelihood": likelihood,
            "confidence": round(confidence, 3),
            "indicators": indicators,
            "note": high_note if likelihood != "LOW" else low_note,
            "caveat": SCREENING_CAVEAT,
        }
