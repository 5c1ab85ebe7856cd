"""
Cross-trait belief network.

Maintains one running estimate (mean on the 0-100 scale, effective sample
size, confidence) for every tracked trait. Each answer updates the trait it
measures directly, then propagates a damped influence to every trait that
lists the measured trait as a predictor in the Conditional Influence Table.

Update rule (sample-size-weighted blend):

    mean' = mean * n / (n + w) + evidence * w / (n + w)
    n'    = n + w

with w = 1.0 for direct evidence and w = 0.5 * predictor_weight for
propagated evidence. Confidence is a deterministic function of n:

    confidence = min(0.95, 1 - exp(-n / 10))

The cap reflects irreducible measurement uncertainty.

Cross-prediction estimates a trait purely from its predictors' beliefs,
independent of direct evidence; a large gap between the two surfaces
profiles where self-report and personality-implied expectation disagree.
"""

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from libs.domain_types import Trait
from psyche.core.intelligence._types import Response
from psyche.core.intelligence.influence_table import (
    DEFAULT_INFLUENCE_TABLE,
    InfluenceTable,
    targets_of,
)
from psyche.core.scales import NEUTRAL_PERCENT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BeliefNetworkConfig:
    """Tunable constants of the belief network."""

    direct_weight: float = 1.0
    # Propagated evidence weight = propagation_factor * predictor weight
    propagation_factor: float = 0.5
    confidence_cap: float = 0.95
    confidence_scale: float = 10.0
    # Predictors below this confidence do not contribute to cross-predictions
    min_predictor_confidence: float = 0.20
    cross_confidence_cap: float = 0.85
    discrepancy_threshold: float = 25.0
    discrepancy_min_confidence: float = 0.50
    discrepancy_min_samples: float = 3.0


@dataclass
class Belief:
    """Running estimate for one trait."""

    mean: float = NEUTRAL_PERCENT
    sample_size: float = 0.0
    confidence: float = 0.0


@dataclass(frozen=True)
class CrossPrediction:
    """A trait estimate derived only from its predictors' beliefs."""

    predicted: float
    confidence: float
    method: str  # "cross_prediction" | "baseline"
    contributors: tuple = ()


# Reading of a direct-vs-predicted gap: (direct higher, direct lower)
_DISCREPANCY_INTERPRETATIONS: Dict[Trait, tuple[str, str]] = {
    Trait.DEPRESSION: (
        "Reports more depression than personality suggests; may indicate an "
        "acute episode or help-seeking bias",
        "Reports less depression than personality suggests; possible denial "
        "or effective coping",
    ),
    Trait.ANXIETY: (
        "Anxiety symptoms exceed personality prediction; possible situational stressors",
        "Lower anxiety than expected; strong coping mechanisms",
    ),
    Trait.ADHD_INATTENTION: (
        "Inattention higher than personality alone suggests",
        "Lower inattention than personality suggests; compensatory strategies working",
    ),
    Trait.RESILIENCE: (
        "Resilience exceeds personality prediction; strong protective factors",
        "Lower resilience than expected; recent stressors or burnout",
    ),
}
_DEFAULT_INTERPRETATION = (
    "Discrepancy between direct and predicted values warrants attention"
)


class BeliefNetwork:
    """
    Per-session belief state over all tracked traits.

    The influence table is shared, read-only configuration; beliefs are
    owned by the instance.
    """

    def __init__(
        self,
        influence_table: InfluenceTable = DEFAULT_INFLUENCE_TABLE,
        config: Optional[BeliefNetworkConfig] = None,
    ):
        self.influence_table = influence_table
        self.config = config or BeliefNetworkConfig()
        self.beliefs: Dict[Trait, Belief] = self._initial_beliefs()

    @staticmethod
    def _initial_beliefs() -> Dict[Trait, Belief]:
        return {trait: Belief() for trait in Trait}

    def confidence_for(self, sample_size: float) -> float:
        """Confidence as a function of effective sample size."""
        if sample_size <= 0:
            return 0.0
        raw = 1.0 - math.exp(-sample_size / self.config.confidence_scale)
        return min(self.config.confidence_cap, raw)

    def _blend(self, belief: Belief, evidence: float, weight: float) -> None:
        n = belief.sample_size
        belief.mean = belief.mean * n / (n + weight) + evidence * weight / (n + weight)
        belief.sample_size = n + weight
        belief.confidence = self.confidence_for(belief.sample_size)

    def update_beliefs(
        self, response: Response, history: Optional[List[Response]] = None
    ) -> Dict[str, Dict[str, float]]:
        """
        Fold one answer into the network.

        Args:
            response: The latest answer.
            history: Answers so far. Accepted for interface symmetry with
                the other monitors; the update depends only on the current
                belief state.

        Returns:
            Snapshot of all beliefs after the update.
        """
        trait = response.trait
        if trait is None:
            logger.debug(f"Item {response.item_id} has no trait mapping; no update")
            return self.snapshot()

        direct = self.beliefs[trait]
        self._blend(direct, response.percent, self.config.direct_weight)

        for target, predictor in targets_of(self.influence_table, trait):
            influenced = NEUTRAL_PERCENT + predictor.influence(direct.mean)
            weight = self.config.propagation_factor * predictor.weight
            if weight <= 0:
                continue
            self._blend(self.beliefs[target], influenced, weight)

        return self.snapshot()

    def get_cross_prediction(self, trait: Trait) -> CrossPrediction:
        """
        Predict a trait from its predictors' beliefs alone.

        Traits without an influence-table entry return their current belief
        with zero confidence.
        """
        predictors = self.influence_table.get(trait)
        if not predictors:
            return CrossPrediction(
                predicted=self.beliefs[trait].mean, confidence=0.0, method="baseline"
            )

        offset = 0.0
        total_weight = 0.0
        contributors = []
        for predictor in predictors:
            source = self.beliefs[predictor.trait]
            contributors.append(
                {
                    "trait": predictor.trait.value,
                    "weight": predictor.weight,
                    "confidence": round(source.confidence, 3),
                }
            )
            if source.confidence < self.config.min_predictor_confidence:
                continue
            offset += predictor.influence(source.mean) * source.confidence
            total_weight += predictor.weight * source.confidence

        predicted = NEUTRAL_PERCENT + offset
        if total_weight > 0:
            # Shrink toward the baseline while predictor evidence is thin
            predicted = NEUTRAL_PERCENT + offset * min(1.0, total_weight)

        confidence = min(self.config.cross_confidence_cap, total_weight / len(predictors))
        return CrossPrediction(
            predicted=max(0.0, min(100.0, predicted)),
            confidence=confidence,
            method="cross_prediction",
            contributors=tuple(contributors),
        )

    def detect_discrepancies(self) -> List[Dict[str, Any]]:
        """Traits whose direct belief and cross-prediction diverge by > 25 points."""
        cfg = self.config
        discrepancies = []
        for trait, belief in self.beliefs.items():
            if belief.sample_size < cfg.discrepancy_min_samples:
                continue
            if belief.confidence < cfg.discrepancy_min_confidence:
                continue
            cross = self.get_cross_prediction(trait)
            if cross.confidence < cfg.discrepancy_min_confidence:
                continue
            difference = abs(belief.mean - cross.predicted)
            if difference <= cfg.discrepancy_threshold:
                continue
            discrepancies.append(
                {
                    "trait": trait.value,
                    "direct_value": round(belief.mean),
                    "predicted_value": round(cross.predicted),
                    "difference": round(difference),
                    "interpretation": self.interpret_discrepancy(
                        trait, belief.mean, cross.predicted
                    ),
                }
            )
        return discrepancies

    @staticmethod
    def interpret_discrepancy(trait: Trait, direct: float, predicted: float) -> str:
        readings = _DISCREPANCY_INTERPRETATIONS.get(trait)
        if readings is None:
            return _DEFAULT_INTERPRETATION
        return readings[0] if direct > predicted else readings[1]

    def get_all_beliefs(self) -> Dict[str, Dict[str, Any]]:
        """Current value, confidence and cross-prediction for every trait."""
        table: Dict[str, Dict[str, Any]] = {}
        for trait, belief in self.beliefs.items():
            cross = self.get_cross_prediction(trait)
            table[trait.value] = {
                "current_value": round(belief.mean),
                "confidence": round(belief.confidence * 100),
                "sample_size": round(belief.sample_size, 2),
                "cross_prediction": {
                    "predicted": round(cross.predicted),
                    "confidence": round(cross.confidence * 100),
                    "method": cross.method,
                },
            }
        return table

    def measured_traits(self) -> Dict[Trait, float]:
        """Belief means for traits that have received any evidence."""
        return {t: b.mean for t, b in self.beliefs.items() if b.sample_size > 0}

    def snapshot(self) -> Dict[str, Dict[str, float]]:
        return {
            trait.value: {
                "mean": belief.mean,
                "sample_size": belief.sample_size,
                "confidence": belief.confidence,
            }
            for trait, belief in self.beliefs.items()
        }

    def reset(self) -> None:
        """Discard all evidence and return every trait to the neutral prior."""
        self.beliefs = self._initial_beliefs()
