"""
Session simulation for exercising the adaptive engine end to end.

Generates a synthetic item bank covering every tracked trait and runs
simulated respondents through a full QuestionSelector session. Used by the
property tests and by scripts/run_session_simulation.py.

Respondent styles:
    consistent     answers follow a latent trait level with occasional noise
    random         uniform answers, fast
    fence_sitting  mostly the scale midpoint
    extreme        always a scale endpoint, in the direction of the latent level
"""

import logging
import random
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import numpy as np

from libs.domain_types import (
    AssessmentTier,
    ResponseType,
    Sensitivity,
    Trait,
    TraitDomain,
)
from psyche.core.intelligence.item_priority import SelectorConfig
from psyche.core.intelligence.selector import QuestionSelector
from psyche.core.scales import SCALE_MAX, SCALE_MIDPOINT, SCALE_MIN
from psyche.core.traits import BIG_FIVE, TRAIT_DOMAINS
from psyche.schemas.interventions import Intervention
from psyche.schemas.items import Item

logger = logging.getLogger(__name__)

RESPONDENT_STYLES = ("consistent", "random", "fence_sitting", "extreme")

# Bank category per trait domain
_DOMAIN_CATEGORIES = {
    TraitDomain.PERSONALITY: "personality",
    TraitDomain.CLINICAL: "clinical",
    TraitDomain.NEURODIVERSITY: "neurodiversity",
    TraitDomain.ATTACHMENT: "interpersonal",
    TraitDomain.WELLBEING: "wellbeing",
}

_INSTRUMENTS = {
    Trait.DEPRESSION: "PHQ-9",
    Trait.ANXIETY: "GAD-7",
    Trait.MANIA: "MDQ",
    Trait.PSYCHOSIS: "PQ-B",
    Trait.SOMATIC: "PHQ-15",
    Trait.BORDERLINE: "MSI-BPD",
    Trait.ADHD_INATTENTION: "ASRS-5",
    Trait.ADHD_HYPERACTIVITY: "ASRS-5",
    Trait.AUTISM: "AQ-10",
    Trait.RESILIENCE: "CD-RISC",
    Trait.ATTACHMENT_ANXIETY: "ECR-R",
    Trait.ATTACHMENT_AVOIDANCE: "ECR-R",
}

# (stem template, response type); rotated across each trait's items
_STEMS = (
    ("I always notice things related to {label}.", ResponseType.LIKERT),
    ("How often do you experience {label}?", ResponseType.FREQUENCY),
    ("In the past week, I have acted in ways typical of {label}.", ResponseType.LIKERT),
    ("I usually describe myself in terms of {label}.", ResponseType.LIKERT),
)

_CLINICAL_SENSITIVITY = (Sensitivity.MODERATE, Sensitivity.HIGH, Sensitivity.EXTREME)

# Answer-latency model per style: (mean ms, sd ms, floor ms)
_TIMING = {
    "consistent": (3500.0, 900.0, 900.0),
    "random": (650.0, 150.0, 250.0),
    "fence_sitting": (2800.0, 700.0, 800.0),
    "extreme": (2200.0, 600.0, 700.0),
}


@dataclass
class SimulationConfig:
    """Configuration for one simulated session."""

    respondent_style: str = "consistent"
    n_items_per_trait: int = 6
    max_responses: int = 70
    tier: AssessmentTier = AssessmentTier.COMPREHENSIVE
    addon_enabled: bool = False
    seed: int = 42


@dataclass
class SessionTranscript:
    """Everything observable from one simulated session."""

    config: SimulationConfig
    item_ids: List[str] = field(default_factory=list)
    values: List[int] = field(default_factory=list)
    phases: List[str] = field(default_factory=list)
    interventions: List[Intervention] = field(default_factory=list)
    insights: Dict[str, Any] = field(default_factory=dict)
    stop_reason: str = "max_responses"

    @property
    def responses(self) -> int:
        return len(self.item_ids)

    def intervention_counts(self) -> Dict[str, int]:
        return dict(Counter(i.type.value for i in self.interventions))


def generate_item_bank(n_items_per_trait: int = 6, seed: int = 42) -> List[Item]:
    """
    Build a synthetic bank with n_items_per_trait items for every trait.

    Personality and resilience items are CORE; neurodiversity and attachment
    items are COMPREHENSIVE; clinical items alternate between COMPREHENSIVE
    and CLINICAL_ADDON and cycle through the MODERATE, HIGH and EXTREME
    sensitivity tiers. Every second item is reverse-scored.

    Args:
        n_items_per_trait: Items generated per trait.
        seed: Random seed for discrimination indices.

    Returns:
        List of validated Item models.
    """
    rng = np.random.default_rng(seed)
    bank: List[Item] = []

    for trait in Trait:
        domain = TRAIT_DOMAINS[trait]
        label = trait.value.replace("_", " ")
        for i in range(n_items_per_trait):
            stem, response_type = _STEMS[i % len(_STEMS)]

            if domain is TraitDomain.CLINICAL:
                sensitivity = _CLINICAL_SENSITIVITY[i % len(_CLINICAL_SENSITIVITY)]
                tiers = ["clinical_addon"] if i % 2 else ["comprehensive"]
            elif domain is TraitDomain.NEURODIVERSITY:
                sensitivity, tiers = Sensitivity.LOW, ["comprehensive"]
            elif domain is TraitDomain.ATTACHMENT:
                sensitivity, tiers = Sensitivity.LOW, ["comprehensive"]
            else:
                sensitivity, tiers = Sensitivity.NONE, ["core"]

            tags = ["baseline"] if trait in BIG_FIVE and i == 0 else []
            subcategory = None
            if trait in (Trait.ATTACHMENT_ANXIETY, Trait.ATTACHMENT_AVOIDANCE):
                subcategory = "anxious" if trait is Trait.ATTACHMENT_ANXIETY else "avoidant"

            bank.append(
                Item.model_validate(
                    {
                        "itemId": f"SIM_{trait.value.upper()}_{i + 1:02d}",
                        "text": stem.format(label=label),
                        "category": _DOMAIN_CATEGORIES[domain],
                        "subcategory": subcategory,
                        "trait": trait.value,
                        "instrument": _INSTRUMENTS.get(trait, "NEO-PI-R"),
                        "responseType": response_type.value,
                        "sensitivity": sensitivity.value,
                        "assessmentTiers": tiers,
                        "tags": tags,
                        "reverseScored": bool(i % 2),
                        "adaptive": {
                            "discriminationIndex": round(float(rng.uniform(0.4, 0.95)), 3),
                            "isBaseline": bool(tags),
                        },
                    }
                )
            )
    return bank


class SimulatedRespondent:
    """Answers items according to a fixed response style."""

    def __init__(
        self,
        style: str = "consistent",
        trait_levels: Optional[Dict[Trait, float]] = None,
        seed: int = 42,
        noise: float = 0.15,
    ):
        if style not in RESPONDENT_STYLES:
            raise ValueError(
                f"Unknown respondent style {style!r}; expected one of {RESPONDENT_STYLES}"
            )
        self.style = style
        self.rng = random.Random(seed)
        self.noise = noise
        self.trait_levels = trait_levels or {
            trait: self.rng.uniform(10.0, 90.0) for trait in Trait
        }

    def _keyed_answer(self, item: Item) -> int:
        level = self.trait_levels.get(item.belief_trait, 50.0) if item.belief_trait else 50.0
        keyed = SCALE_MIN + round(level / 25.0)
        if self.rng.random() < self.noise:
            keyed += self.rng.choice((-1, 1))
        keyed = max(SCALE_MIN, min(SCALE_MAX, keyed))
        return (SCALE_MAX + SCALE_MIN) - keyed if item.reverse_scored else keyed

    def answer(self, item: Item) -> int:
        if self.style == "random":
            return self.rng.randint(SCALE_MIN, SCALE_MAX)
        if self.style == "fence_sitting":
            if self.rng.random() < 0.7:
                return SCALE_MIDPOINT
            return self._keyed_answer(item)
        if self.style == "extreme":
            keyed = self._keyed_answer(item)
            if keyed == SCALE_MIDPOINT:
                return SCALE_MAX
            return SCALE_MAX if keyed > SCALE_MIDPOINT else SCALE_MIN
        return self._keyed_answer(item)

    def response_time(self, item: Item) -> float:
        mean, sd, floor = _TIMING[self.style]
        if item.response_type is ResponseType.FREQUENCY:
            mean += 1000.0
        return max(floor, self.rng.gauss(mean, sd))


def run_session(
    config: Optional[SimulationConfig] = None,
    bank: Optional[List[Item]] = None,
    respondent: Optional[SimulatedRespondent] = None,
    selector: Optional[QuestionSelector] = None,
) -> SessionTranscript:
    """
    Run one simulated respondent through a full adaptive session.

    Args:
        config: Session configuration. Defaults to SimulationConfig().
        bank: Item bank. Generated from config when None.
        respondent: Respondent. Built from config when None.
        selector: Selector to drive. A fresh one when None.

    Returns:
        SessionTranscript with the administered items, answers, phases,
        interventions and the final intelligence insights.
    """
    config = config or SimulationConfig()
    bank = bank if bank is not None else generate_item_bank(
        config.n_items_per_trait, config.seed
    )
    respondent = respondent or SimulatedRespondent(
        config.respondent_style, seed=config.seed
    )
    selector = selector or QuestionSelector(SelectorConfig())
    transcript = SessionTranscript(config=config)

    for _ in range(config.max_responses):
        result = selector.select_next(
            bank, tier=config.tier, addon_enabled=config.addon_enabled
        )
        transcript.interventions.extend(result.interventions)
        if result.item is None:
            transcript.stop_reason = "pool_exhausted"
            break

        item = result.item
        value = respondent.answer(item)
        selector.process_response(item, value, respondent.response_time(item))

        transcript.item_ids.append(item.item_id)
        transcript.values.append(value)
        transcript.phases.append(result.phase or "")

    transcript.interventions.extend(selector.drain_interventions())
    transcript.insights = selector.get_intelligence_insights()

    logger.info(
        f"Simulated {config.respondent_style} session: "
        f"{transcript.responses} responses, stop={transcript.stop_reason}, "
        f"validity={transcript.insights['summary']['overall_validity']}"
    )
    return transcript
