"""
Engine configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Dict, Literal, Self


# Tolerance for floating-point weight summation checks
_WEIGHT_SUM_TOLERANCE = 1e-6

# Factor names of the item-priority score, in reporting order
SELECTION_FACTORS = (
    "information_gain",
    "context_diversity",
    "phase_alignment",
    "quality",
    "completion_priority",
    "adaptive_match",
)


class Settings(BaseSettings):
    """Engine settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Psyche Assessment Engine"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    # Session pacing
    # Nominal number of items in a full assessment; drives progress messages
    ASSESSMENT_LENGTH: int = Field(
        default=70, gt=0, description="Nominal number of items per assessment"
    )

    # Item priority weights. Each factor is scored 0-100, the weighted sum is
    # the candidate's priority before the cross-prediction boost.
    SELECTION_WEIGHTS: Dict[str, float] = {
        "information_gain": 0.30,  # reduce uncertainty on weakly measured traits
        "context_diversity": 0.25,  # avoid clustering on one topic
        "phase_alignment": 0.20,  # match the pacing schedule
        "quality": 0.15,  # item discrimination
        "completion_priority": 0.05,  # finish partially administered instruments
        "adaptive_match": 0.05,  # fit the detected response style
    }
    # Bonus added when the belief network reports a direct vs. cross-predicted
    # discrepancy for the item's trait
    CROSS_PREDICTION_BOOST: float = Field(default=15.0, ge=0.0)

    # Context diversity
    CONTEXT_WINDOW: int = Field(
        default=5, ge=1, description="Recent answers compared for similarity"
    )
    OPTIMAL_TOPIC_RUN: int = Field(
        default=3, ge=1, description="Topic run length that starts a soft penalty"
    )
    MAX_TOPIC_RUN: int = Field(
        default=5, ge=1, description="Topic run length that is never exceeded"
    )

    # Neurodivergence pattern analysis cadence
    PATTERN_ANALYSIS_INTERVAL: int = Field(default=10, ge=1)
    PATTERN_ANALYSIS_MIN_RESPONSES: int = Field(default=20, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",  # Ignore extra fields from .env not defined in Settings
    )

    @model_validator(mode="after")
    def validate_selection_weights(self) -> Self:
        """Validate SELECTION_WEIGHTS: known factors, non-negative, summing to 1.0."""
        weights = self.SELECTION_WEIGHTS
        expected = set(SELECTION_FACTORS)
        if set(weights.keys()) != expected:
            raise ValueError(
                f"SELECTION_WEIGHTS keys must be {sorted(expected)}, "
                f"got {sorted(weights.keys())}"
            )
        negative = [k for k, v in weights.items() if v < 0]
        if negative:
            raise ValueError(
                f"Selection weights must be non-negative, got negative: {negative}"
            )
        total = sum(weights.values())
        if abs(total - 1.0) > _WEIGHT_SUM_TOLERANCE:
            raise ValueError(f"SELECTION_WEIGHTS must sum to 1.0, got {total}")
        return self

    @model_validator(mode="after")
    def validate_topic_runs(self) -> Self:
        """The hard topic-run cap cannot be shorter than the soft one."""
        if self.MAX_TOPIC_RUN < self.OPTIMAL_TOPIC_RUN:
            raise ValueError(
                f"MAX_TOPIC_RUN ({self.MAX_TOPIC_RUN}) must be >= "
                f"OPTIMAL_TOPIC_RUN ({self.OPTIMAL_TOPIC_RUN})"
            )
        return self


settings = Settings()
