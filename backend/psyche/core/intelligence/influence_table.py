"""
Conditional Influence Table (CIT) for cross-trait belief propagation.

Each target trait lists the traits that predict it, with a correlational
weight and a direction. The table is immutable configuration: it is built
once at import time and handed by reference to each BeliefNetwork.

Weights approximate published trait correlations:
- Neuroticism as a transdiagnostic risk factor for depression and anxiety
  (Kotov et al., 2010)
- Low conscientiousness in ADHD inattention (Gomez & Corr, 2014)
- Introversion and low agreeableness in autistic adults (Lodi-Smith et al., 2019)
"""

import enum
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Tuple

from libs.domain_types import Trait


class Direction(str, enum.Enum):
    """How a predictor moves its target."""

    POSITIVE = "positive"  # high predictor -> high target
    NEGATIVE = "negative"  # high predictor -> low target
    BOTH = "both"  # non-linear relationship; half-strength positive influence


@dataclass(frozen=True)
class Predictor:
    """One predictor entry of the influence table."""

    trait: Trait
    weight: float
    direction: Direction
    description: str = ""

    def __post_init__(self) -> None:
        if not 0.0 <= self.weight <= 1.0:
            raise ValueError(f"Predictor weight must be in [0, 1], got {self.weight}")

    def influence(self, source_mean: float, baseline: float = 50.0) -> float:
        """Signed influence of a source belief on the target, in trait points."""
        deviation = (source_mean - baseline) * self.weight
        if self.direction is Direction.NEGATIVE:
            return -deviation
        if self.direction is Direction.BOTH:
            return deviation * 0.5
        return deviation


InfluenceTable = Mapping[Trait, Tuple[Predictor, ...]]


def _p(trait: Trait, weight: float, direction: str, description: str) -> Predictor:
    return Predictor(trait, weight, Direction(direction), description)


def build_influence_table(
    entries: Mapping[Trait, Tuple[Predictor, ...]],
) -> InfluenceTable:
    """Freeze a target -> predictors mapping into a read-only table."""
    return MappingProxyType({target: tuple(preds) for target, preds in entries.items()})


DEFAULT_INFLUENCE_TABLE: InfluenceTable = build_influence_table(
    {
        Trait.DEPRESSION: (
            _p(Trait.NEUROTICISM, 0.70, "positive", "High neuroticism predicts depression"),
            _p(Trait.EXTRAVERSION, 0.50, "negative", "Low extraversion predicts depression"),
            _p(Trait.CONSCIENTIOUSNESS, 0.30, "negative", "Low conscientiousness predicts depression"),
            _p(Trait.ANXIETY, 0.60, "positive", "Anxiety is highly comorbid with depression"),
            _p(Trait.RESILIENCE, 0.55, "negative", "Low resilience predicts depression"),
        ),
        Trait.ANXIETY: (
            _p(Trait.NEUROTICISM, 0.75, "positive", "Neuroticism is the strongest anxiety predictor"),
            _p(Trait.CONSCIENTIOUSNESS, 0.35, "both", "Both very high and very low conscientiousness relate to anxiety"),
            _p(Trait.DEPRESSION, 0.60, "positive", "Depression and anxiety co-occur"),
        ),
        Trait.MANIA: (
            _p(Trait.EXTRAVERSION, 0.50, "positive", "High extraversion relates to hypomanic traits"),
            _p(Trait.OPENNESS, 0.40, "positive", "High openness relates to creative states"),
            _p(Trait.NEUROTICISM, 0.45, "positive", "Emotional instability in bipolar presentations"),
            _p(Trait.CONSCIENTIOUSNESS, 0.35, "negative", "Impulsivity in manic episodes"),
        ),
        Trait.ADHD_INATTENTION: (
            _p(Trait.CONSCIENTIOUSNESS, 0.60, "negative", "Low conscientiousness is the core ADHD marker"),
            _p(Trait.NEUROTICISM, 0.40, "positive", "Emotional dysregulation in ADHD"),
            _p(Trait.OPENNESS, 0.30, "positive", "Novelty seeking"),
        ),
        Trait.ADHD_HYPERACTIVITY: (
            _p(Trait.EXTRAVERSION, 0.55, "positive", "High energy and sociability"),
            _p(Trait.CONSCIENTIOUSNESS, 0.45, "negative", "Impulsivity"),
        ),
        Trait.AUTISM: (
            _p(Trait.EXTRAVERSION, 0.60, "negative", "Social preferences"),
            _p(Trait.AGREEABLENESS, 0.45, "negative", "Differences in social communication"),
            _p(Trait.OPENNESS, 0.30, "both", "Narrow intense interests vs. broad curiosity"),
        ),
        Trait.BORDERLINE: (
            _p(Trait.NEUROTICISM, 0.70, "positive", "Emotional instability"),
            _p(Trait.AGREEABLENESS, 0.50, "negative", "Interpersonal difficulties"),
            _p(Trait.CONSCIENTIOUSNESS, 0.40, "negative", "Impulsivity"),
            _p(Trait.ATTACHMENT_ANXIETY, 0.65, "positive", "Fear of abandonment"),
        ),
        Trait.RESILIENCE: (
            _p(Trait.NEUROTICISM, 0.60, "negative", "Emotional stability supports resilience"),
            _p(Trait.CONSCIENTIOUSNESS, 0.50, "positive", "Self-discipline and goal orientation"),
            _p(Trait.EXTRAVERSION, 0.45, "positive", "Social support seeking"),
            _p(Trait.DEPRESSION, 0.55, "negative", "Depression undermines resilience"),
        ),
    }
)


def targets_of(table: InfluenceTable, source: Trait) -> Tuple[Tuple[Trait, Predictor], ...]:
    """Every (target, predictor) pair in which source acts as the predictor."""
    return tuple(
        (target, predictor)
        for target, predictors in table.items()
        for predictor in predictors
        if predictor.trait is source
    )
