"""
Response time analysis for single answers.

Classifies the latency of each answer against an item-specific expected
time and tracks session-level timing patterns that may indicate validity
concerns or respondent state:

- Discomfort: prolonged hesitation, weighted toward sensitive items
- Rushing: very fast answers relative to the respondent's own baseline
- Fatigue: answers much slower than the respondent's early pace
- Variability/outliers: informational timing irregularities

Based on:
- Yan & Tourangeau (2008): Fast times and easy questions: the effects of
  age, experience and question complexity on web survey response times
- Bassili & Fletcher (1991): Response-time measurement in survey research
"""

import logging
import math
import statistics
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from libs.domain_types import ResponseType, Sensitivity
from psyche.core.intelligence._types import Response
from psyche.schemas.interventions import (
    Intervention,
    InterventionType,
    options_from_labels,
)
from psyche.schemas.items import Item

logger = logging.getLogger(__name__)

# Item inserted by the session layer when an attention check is requested
ATTENTION_CHECK_ITEM_ID = "VALIDITY_ATTENTION_CHECK"

# Stand-in for answers recorded without a response time
DEFAULT_RESPONSE_TIME_MS = 3000.0


@dataclass(frozen=True)
class ResponseTimeThresholds:
    """Timing thresholds in milliseconds unless noted."""

    # Speed band upper bounds
    very_fast_ms: float = 800.0  # possibly not reading carefully
    fast_ms: float = 2000.0  # quick but plausible
    normal_ms: float = 5000.0  # thoughtful consideration
    slow_ms: float = 8000.0  # extended consideration
    very_slow_ms: float = 12000.0  # possible hesitation or discomfort
    extreme_ms: float = 15000.0  # clear difficulty or distraction

    # Expected-time model
    base_expected_ms: float = 3000.0
    long_text_chars: int = 150
    long_text_bonus_ms: float = 2000.0
    medium_text_chars: int = 100
    medium_text_bonus_ms: float = 1000.0
    short_text_chars: int = 50
    short_text_bonus_ms: float = 500.0
    moderate_sensitivity_bonus_ms: float = 1000.0
    high_sensitivity_bonus_ms: float = 2000.0
    extreme_sensitivity_bonus_ms: float = 3000.0
    format_bonus_ms: float = 1000.0  # frequency and multi-select formats

    # Discomfort: time > max(multiplier * expected, slow_ms)
    discomfort_multiplier: float = 2.0

    # Rushing: time < very_fast_ms and < ratio * rolling baseline
    rushing_ratio: float = 0.4
    rushing_window: int = 5
    rushing_min_history: int = 3
    rushing_intervention_run: int = 6

    # Fatigue: time > multiplier * early average and > slow_ms
    fatigue_multiplier: float = 2.0
    fatigue_early_window: int = 10
    fatigue_intervention_run: int = 4

    # Informational checks
    variability_deviation: float = 2.0  # |time - expected| / expected
    variability_min_history: int = 10
    outlier_window: int = 5
    outlier_sd: float = 2.0


@dataclass
class _SessionTiming:
    """Online timing statistics (Welford) plus consecutive-flag counters."""

    count: int = 0
    mean: float = 0.0
    m2: float = 0.0
    consecutive_fast: int = 0
    consecutive_slow: int = 0

    def add(self, value: float) -> None:
        self.count += 1
        delta = value - self.mean
        self.mean += delta / self.count
        self.m2 += delta * (value - self.mean)

    @property
    def variance(self) -> float:
        if self.count < 2:
            return 0.0
        return self.m2 / (self.count - 1)


def _time_of(response: Response) -> float:
    if response.response_time_ms is None:
        return DEFAULT_RESPONSE_TIME_MS
    return float(response.response_time_ms)


class ResponseTimeAnalyzer:
    """Per-session response time analysis."""

    def __init__(self, thresholds: Optional[ResponseTimeThresholds] = None):
        self.thresholds = thresholds or ResponseTimeThresholds()
        self._stats = _SessionTiming()

    def classify_speed(self, response_time_ms: float) -> str:
        """Place a response time into one of seven speed bands."""
        t = self.thresholds
        if response_time_ms < t.very_fast_ms:
            return "very_fast"
        if response_time_ms < t.fast_ms:
            return "fast"
        if response_time_ms < t.normal_ms:
            return "normal"
        if response_time_ms < t.slow_ms:
            return "slow"
        if response_time_ms < t.very_slow_ms:
            return "very_slow"
        if response_time_ms < t.extreme_ms:
            return "extreme"
        return "distracted"

    def estimate_expected_time(self, item: Item) -> float:
        """Expected answer time for an item, from text length, sensitivity and format."""
        t = self.thresholds
        expected = t.base_expected_ms

        text_length = len(item.text or "")
        if text_length > t.long_text_chars:
            expected += t.long_text_bonus_ms
        elif text_length > t.medium_text_chars:
            expected += t.medium_text_bonus_ms
        elif text_length > t.short_text_chars:
            expected += t.short_text_bonus_ms

        if item.sensitivity is Sensitivity.EXTREME:
            expected += t.extreme_sensitivity_bonus_ms
        elif item.sensitivity is Sensitivity.HIGH:
            expected += t.high_sensitivity_bonus_ms
        elif item.sensitivity is Sensitivity.MODERATE:
            expected += t.moderate_sensitivity_bonus_ms

        if item.response_type in (ResponseType.FREQUENCY, ResponseType.MULTI_SELECT):
            expected += t.format_bonus_ms

        return expected

    def analyze(
        self,
        item: Item,
        response_time_ms: Optional[float],
        value: Optional[int],
        history: List[Response],
    ) -> Dict[str, Any]:
        """
        Analyze one answer's timing.

        Args:
            item: The item just answered.
            response_time_ms: Latency of the answer. None skips the analysis.
            value: The answer given (unused by timing checks; kept for
                callers that log it alongside the result).
            history: Answers before this one, oldest first.

        Returns:
            Dictionary containing:
            {
                "response_time_ms": float | None,
                "classification": str | None,   # speed band
                "expected_time_ms": float | None,
                "flags": List[str],
                "severity": str,                # none, medium, high
                "suggested_actions": List[Intervention],
                "insights": List[Dict],
            }
        """
        result: Dict[str, Any] = {
            "response_time_ms": response_time_ms,
            "classification": None,
            "expected_time_ms": None,
            "flags": [],
            "severity": "none",
            "suggested_actions": [],
            "insights": [],
        }
        if response_time_ms is None:
            return result

        t = self.thresholds
        self._stats.add(response_time_ms)

        expected = self.estimate_expected_time(item)
        deviation = (response_time_ms - expected) / expected
        result["classification"] = self.classify_speed(response_time_ms)
        result["expected_time_ms"] = expected

        if self.detect_discomfort(response_time_ms, expected):
            result["flags"].append("DISCOMFORT")
            result["severity"] = (
                "high" if item.sensitivity is Sensitivity.EXTREME else "medium"
            )
            result["insights"].append(
                {
                    "type": "discomfort",
                    "message": (
                        f"Prolonged hesitation ({response_time_ms / 1000:.1f}s) on "
                        f"{item.sensitivity.value} sensitivity item"
                    ),
                    "confidence": 0.75,
                }
            )
            if item.sensitivity in (Sensitivity.HIGH, Sensitivity.EXTREME):
                result["suggested_actions"].append(
                    Intervention(
                        type=InterventionType.META_QUESTION,
                        source="response_time",
                        priority="medium",
                        message=(
                            "That question took a moment to answer. Was it unclear, "
                            "or would you prefer to skip similar questions?"
                        ),
                        options=options_from_labels(
                            ["It was clear", "Please clarify", "Skip similar questions"]
                        ),
                        details={"item_id": item.item_id},
                    )
                )

        if self.detect_rushing(response_time_ms, history):
            result["flags"].append("RUSHING")
            self._stats.consecutive_fast += 1
            if self._stats.consecutive_fast >= t.rushing_intervention_run:
                result["severity"] = "high"
                result["insights"].append(
                    {
                        "type": "rushing",
                        "message": (
                            f"{self._stats.consecutive_fast} consecutive very fast responses"
                        ),
                        "confidence": 0.80,
                    }
                )
                result["suggested_actions"].append(
                    Intervention(
                        type=InterventionType.ATTENTION_CHECK,
                        source="response_time",
                        priority="high",
                        message="Possible inattentive responding detected",
                        insert_item_id=ATTENTION_CHECK_ITEM_ID,
                        details={"consecutive_fast": self._stats.consecutive_fast},
                    )
                )
        else:
            self._stats.consecutive_fast = 0

        if self.detect_fatigue(response_time_ms, history):
            result["flags"].append("FATIGUE")
            self._stats.consecutive_slow += 1
            if self._stats.consecutive_slow >= t.fatigue_intervention_run:
                if result["severity"] == "none":
                    result["severity"] = "medium"
                result["insights"].append(
                    {
                        "type": "fatigue",
                        "message": "Increasing response times suggest possible fatigue",
                        "confidence": 0.70,
                    }
                )
                result["suggested_actions"].append(
                    Intervention(
                        type=InterventionType.PACE_ADJUSTMENT,
                        source="response_time",
                        priority="medium",
                        message=(
                            "You seem to be taking more time. Would you like a brief break?"
                        ),
                        options=options_from_labels(
                            ["Continue", "Take a 30-second break"]
                        ),
                        details={"consecutive_slow": self._stats.consecutive_slow},
                    )
                )
        else:
            self._stats.consecutive_slow = 0

        if (
            abs(deviation) > t.variability_deviation
            and len(history) > t.variability_min_history
        ):
            result["flags"].append("EXTREME_VARIABILITY")
            result["insights"].append(
                {
                    "type": "variability",
                    "message": (
                        "Response time much "
                        f"{'slower' if deviation > 0 else 'faster'} than expected"
                    ),
                    "confidence": 0.60,
                }
            )

        if self.detect_timing_outlier(response_time_ms, history):
            result["flags"].append("INCONSISTENT_TIMING")
            result["insights"].append(
                {
                    "type": "inconsistency",
                    "message": "Response timing varies significantly from recent pattern",
                    "confidence": 0.65,
                }
            )

        return result

    def detect_discomfort(self, response_time_ms: float, expected_ms: float) -> bool:
        t = self.thresholds
        return response_time_ms > max(expected_ms * t.discomfort_multiplier, t.slow_ms)

    def _rushing_baseline(self, history: List[Response]) -> float:
        # Rushed answers are excluded so a run of them cannot drag the
        # baseline down with it
        t = self.thresholds
        unrushed = [
            _time_of(r) for r in history if _time_of(r) >= t.very_fast_ms
        ][-t.rushing_window:]
        if not unrushed:
            return DEFAULT_RESPONSE_TIME_MS
        return statistics.fmean(unrushed)

    def detect_rushing(self, response_time_ms: float, history: List[Response]) -> bool:
        t = self.thresholds
        if response_time_ms >= t.very_fast_ms:
            return False
        if len(history) < t.rushing_min_history:
            return False
        return response_time_ms < self._rushing_baseline(history) * t.rushing_ratio

    def detect_fatigue(self, response_time_ms: float, history: List[Response]) -> bool:
        t = self.thresholds
        if len(history) < t.fatigue_early_window:
            return False
        early = statistics.fmean(_time_of(r) for r in history[: t.fatigue_early_window])
        return (
            response_time_ms > early * t.fatigue_multiplier
            and response_time_ms > t.slow_ms
        )

    def detect_timing_outlier(
        self, response_time_ms: float, history: List[Response]
    ) -> bool:
        t = self.thresholds
        if len(history) < t.outlier_window:
            return False
        recent = [_time_of(r) for r in history[-t.outlier_window:]]
        mean = statistics.fmean(recent)
        sd = statistics.pstdev(recent)
        if sd == 0:
            return False
        return abs(response_time_ms - mean) > t.outlier_sd * sd

    def get_session_summary(self) -> Dict[str, Any]:
        """Session-level timing statistics with pace and consistency reading."""
        stats = self._stats
        sd = math.sqrt(stats.variance)
        return {
            "total_responses": stats.count,
            "average_time_ms": round(stats.mean),
            "standard_deviation_ms": round(sd),
            "interpretation": self._interpret_session(stats.mean, sd),
        }

    @staticmethod
    def _interpret_session(mean: float, sd: float) -> Dict[str, Optional[str]]:
        if mean <= 0:
            return {"pace": None, "quality": None, "engagement": None}

        if mean < 2000:
            pace, engagement = "very_fast", "possible_rushing"
        elif mean < 3500:
            pace, engagement = "fast", "efficient"
        elif mean < 6000:
            pace, engagement = "normal", "thoughtful"
        elif mean < 10000:
            pace, engagement = "slow", "careful"
        else:
            pace, engagement = "very_slow", "possible_difficulty"

        cv = sd / mean
        if cv < 0.3:
            quality = "very_consistent"
        elif cv < 0.6:
            quality = "consistent"
        elif cv < 1.0:
            quality = "variable"
        else:
            quality = "highly_variable"

        return {"pace": pace, "quality": quality, "engagement": engagement}

    def reset(self) -> None:
        self._stats = _SessionTiming()
