"""
Response scale conventions.

Raw answers are ordinal Likert values (1-5). Every trait quantity inside the
engine (beliefs, cross-predictions, trigger thresholds, pattern estimates)
lives on a 0-100 scale. ordinal_to_percent() is the only place the two meet.
"""

from typing import Optional

SCALE_MIN = 1
SCALE_MAX = 5
SCALE_MIDPOINT = 3

# Answers at or beyond these values count as "agree" / "disagree" bands
HIGH_BAND_MIN = 4
LOW_BAND_MAX = 2

# Neutral value on the 0-100 trait scale
NEUTRAL_PERCENT = 50.0

LIKERT_LABELS = {
    1: "Strongly Disagree",
    2: "Disagree",
    3: "Neutral",
    4: "Agree",
    5: "Strongly Agree",
}


def validate_ordinal(value: int) -> int:
    """Return value unchanged, or raise ValueError if it is off the 1-5 scale."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"Response value must be an integer, got {value!r}")
    if not SCALE_MIN <= value <= SCALE_MAX:
        raise ValueError(
            f"Response value must be between {SCALE_MIN} and {SCALE_MAX}, got {value}"
        )
    return value


def ordinal_to_percent(value: float, reverse_scored: bool = False) -> float:
    """
    Convert an ordinal answer to the 0-100 trait scale.

    Args:
        value: Ordinal answer on the 1-5 scale.
        reverse_scored: Whether the item is keyed against its trait.

    Returns:
        Trait-scale value; 1 maps to 0 and 5 maps to 100 (inverted when
        reverse_scored).
    """
    percent = (value - SCALE_MIN) / (SCALE_MAX - SCALE_MIN) * 100.0
    if reverse_scored:
        percent = 100.0 - percent
    return percent


def keyed_value(value: int, reverse_scored: bool) -> int:
    """Ordinal answer re-keyed so that higher always means more of the trait."""
    return (SCALE_MAX + SCALE_MIN) - value if reverse_scored else value


def same_extreme_band(first: int, second: int) -> bool:
    """True when both answers agree (>= 4) or both disagree (<= 2)."""
    both_high = first >= HIGH_BAND_MIN and second >= HIGH_BAND_MIN
    both_low = first <= LOW_BAND_MAX and second <= LOW_BAND_MAX
    return both_high or both_low


def format_likert(value: Optional[int]) -> str:
    """Human-readable label for an ordinal answer."""
    if value is None:
        return "No answer"
    return LIKERT_LABELS.get(value, str(value))
