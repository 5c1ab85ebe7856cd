"""
Candidate filtering and multi-factor priority scoring for item selection.

The selection pipeline:
1. Tier gate: the session tier decides which item tiers are reachable
2. Sensitivity gate: sensitive items unlock only after enough answers
3. Trigger conditions: gated items require a count, a phase, or trait
   thresholds against current beliefs
4. Topic-run cap: never extend a run of one topic beyond MAX_TOPIC_RUN, even
   when that leaves no candidate
5. Score the remaining candidates on six 0-100 factors, take the weighted sum,
   and add the cross-prediction boost when the belief network reports a
   discrepancy for the item's trait

The factors:
    information_gain     100 - mean confidence of the item's dimensions (+20 if any
                         is unmeasured)
    context_diversity    penalizes similarity to the last CONTEXT_WINDOW answers
    phase_alignment      fit with the pacing phase (warm-up ... completion)
    quality              discrimination index x 100
    completion_priority  finishing a partially administered instrument
    adaptive_match       fit with the respondent's detected response style
"""

import logging
import math
import statistics
from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple

from libs.domain_types import (
    AssessmentPhase,
    AssessmentTier,
    Sensitivity,
    TopicCategory,
    Trait,
    TraitDomain,
)
from psyche.core.config import SELECTION_FACTORS, Settings, settings
from psyche.core.intelligence._types import Response
from psyche.core.intelligence.belief_network import Belief
from psyche.core.traits import TRAIT_DOMAINS
from psyche.schemas.items import SEVERITY_LEVELS, Item, RequiredSignals

logger = logging.getLogger(__name__)

# Pacing phases as half-open answer-count ranges; the last phase is open-ended
PHASE_SCHEDULE: Tuple[Tuple[AssessmentPhase, int], ...] = (
    (AssessmentPhase.WARMUP, 0),
    (AssessmentPhase.EXPLORATION, 10),
    (AssessmentPhase.DEEPENING, 30),
    (AssessmentPhase.PRECISION, 50),
    (AssessmentPhase.COMPLETION, 65),
)

# Answers required before items of a sensitivity tier may be shown
SENSITIVITY_MIN_ANSWERS = MappingProxyType(
    {
        Sensitivity.MODERATE: 20,
        Sensitivity.HIGH: 30,
        Sensitivity.EXTREME: 40,
    }
)

# Approximate item counts of common instruments
INSTRUMENT_SIZES = MappingProxyType(
    {
        "PHQ-9": 9,
        "GAD-7": 7,
        "MDQ": 13,
        "PQ-B": 21,
        "PHQ-15": 15,
        "MSI-BPD": 10,
        "ASRS-5": 5,
        "AQ-10": 10,
        "AUDIT": 10,
        "DAST": 10,
        "ACEs": 10,
        "CD-RISC": 10,
        "IIP-32": 32,
        "HEXACO-60": 60,
        "NEO-PI-R": 240,
    }
)
DEFAULT_INSTRUMENT_SIZE = 10

NEUTRAL_FACTOR_SCORE = 50.0

# Facet confidence follows the belief-network curve on raw answer counts
FACET_CONFIDENCE_SCALE = 10.0
FACET_CONFIDENCE_CAP = 0.95

# Tags that add a clinical dimension to an item
_CLINICAL_TAG_TRAITS = MappingProxyType(
    {
        trait.value: trait
        for trait, domain in TRAIT_DOMAINS.items()
        if domain is TraitDomain.CLINICAL
    }
)


class InvalidTierError(ValueError):
    """Raised when a session tier is not CORE or COMPREHENSIVE."""


@dataclass(frozen=True)
class SelectorConfig:
    """Selection parameters. Defaults come from Settings."""

    weights: Mapping[str, float] = field(
        default_factory=lambda: MappingProxyType(dict(settings.SELECTION_WEIGHTS))
    )
    cross_prediction_boost: float = settings.CROSS_PREDICTION_BOOST
    context_window: int = settings.CONTEXT_WINDOW
    optimal_topic_run: int = settings.OPTIMAL_TOPIC_RUN
    max_topic_run: int = settings.MAX_TOPIC_RUN
    assessment_length: int = settings.ASSESSMENT_LENGTH
    pattern_analysis_interval: int = settings.PATTERN_ANALYSIS_INTERVAL
    pattern_analysis_min_responses: int = settings.PATTERN_ANALYSIS_MIN_RESPONSES
    default_discrimination: float = 0.7
    unmeasured_trait_bonus: float = 20.0

    @classmethod
    def from_settings(cls, source: Settings) -> "SelectorConfig":
        return cls(
            weights=MappingProxyType(dict(source.SELECTION_WEIGHTS)),
            cross_prediction_boost=source.CROSS_PREDICTION_BOOST,
            context_window=source.CONTEXT_WINDOW,
            optimal_topic_run=source.OPTIMAL_TOPIC_RUN,
            max_topic_run=source.MAX_TOPIC_RUN,
            assessment_length=source.ASSESSMENT_LENGTH,
            pattern_analysis_interval=source.PATTERN_ANALYSIS_INTERVAL,
            pattern_analysis_min_responses=source.PATTERN_ANALYSIS_MIN_RESPONSES,
        )


# ---------------------------------------------------------------------------
# Gates
# ---------------------------------------------------------------------------


def accessible_tiers(
    tier: AssessmentTier | str, addon_enabled: bool = False
) -> FrozenSet[AssessmentTier]:
    """
    Item tiers reachable from a session tier.

    CORE sessions see CORE items only. COMPREHENSIVE sessions see CORE and
    COMPREHENSIVE items, plus CLINICAL_ADDON items when the respondent has
    opted in.

    Raises:
        InvalidTierError: If tier is anything other than CORE or COMPREHENSIVE.
    """
    try:
        session_tier = AssessmentTier(tier.lower() if isinstance(tier, str) else tier)
    except ValueError:
        raise InvalidTierError(f"Unknown assessment tier: {tier!r}") from None

    if session_tier is AssessmentTier.CORE:
        if addon_enabled:
            logger.warning("Clinical add-on requested for a CORE session; ignoring")
        return frozenset({AssessmentTier.CORE})
    if session_tier is AssessmentTier.COMPREHENSIVE:
        tiers = {AssessmentTier.CORE, AssessmentTier.COMPREHENSIVE}
        if addon_enabled:
            tiers.add(AssessmentTier.CLINICAL_ADDON)
        return frozenset(tiers)
    raise InvalidTierError(
        f"Session tier must be core or comprehensive, got {session_tier.value!r}"
    )


def determine_phase(answer_count: int) -> AssessmentPhase:
    phase = PHASE_SCHEDULE[0][0]
    for candidate, start in PHASE_SCHEDULE:
        if answer_count >= start:
            phase = candidate
    return phase


def passes_sensitivity_gate(item: Item, answer_count: int) -> bool:
    required = SENSITIVITY_MIN_ANSWERS.get(item.sensitivity, 0)
    return answer_count >= required


def severity_level(score: float) -> str:
    """Severity band of a 0-100 trait estimate."""
    if score < 20:
        return "minimal"
    if score < 40:
        return "mild"
    if score < 60:
        return "moderate"
    if score < 80:
        return "severe"
    return "extreme"


def meets_trigger_conditions(
    signals: Optional[RequiredSignals],
    answer_count: int,
    phase: AssessmentPhase,
    beliefs: Mapping[Trait, Belief],
) -> bool:
    """
    Check a gated item's required signals against the session state.

    A trait condition fails when its trait has not been measured yet.
    """
    if signals is None:
        return True
    if signals.min_question_count is not None and answer_count < signals.min_question_count:
        return False
    if signals.required_phase is not None and phase is not signals.required_phase:
        return False
    if not signals.trigger_conditions:
        return True

    def holds(condition) -> bool:
        belief = beliefs.get(condition.dimension)
        if belief is None or belief.sample_size <= 0:
            return False
        score = belief.mean
        if condition.min_score is not None and score < condition.min_score:
            return False
        if condition.max_score is not None and score > condition.max_score:
            return False
        if condition.min_level is not None:
            current = SEVERITY_LEVELS.index(severity_level(score))
            if current < SEVERITY_LEVELS.index(condition.min_level):
                return False
        return True

    if signals.any_of:
        return any(holds(c) for c in signals.trigger_conditions)
    return all(holds(c) for c in signals.trigger_conditions)


def topic_run_length(topic: TopicCategory, history: Sequence[Response]) -> int:
    """Consecutive most-recent answers on the given topic."""
    run = 0
    for response in reversed(history):
        if response.topic is not topic:
            break
        run += 1
    return run


def apply_topic_run_cap(
    candidates: List[Item], history: Sequence[Response], max_run: int
) -> List[Item]:
    """
    Drop candidates that would extend a topic run past max_run.

    The cap never relaxes: when every remaining candidate shares the capped
    topic the result is empty and the caller ends the session.
    """
    if not history:
        return candidates
    capped_topic = history[-1].topic
    if topic_run_length(capped_topic, history) < max_run:
        return candidates
    others = [item for item in candidates if item.topic is not capped_topic]
    if len(others) < len(candidates):
        logger.debug(
            f"Topic run cap: excluding {len(candidates) - len(others)} "
            f"{capped_topic.value} candidates"
        )
    return others


# ---------------------------------------------------------------------------
# Factors
# ---------------------------------------------------------------------------


def facet_dimension(trait: Optional[Trait], facet: Optional[str]) -> Optional[str]:
    """Key of a trait facet, e.g. "extraversion_warmth"; None without both parts."""
    if trait is None or not facet:
        return None
    return f"{trait.value}_{facet.strip().lower()}"


def facet_answer_counts(history: Sequence[Response]) -> Counter:
    """Answers received per facet dimension."""
    keys = (facet_dimension(r.trait, r.facet) for r in history)
    return Counter(key for key in keys if key)


def facet_confidence(count: int) -> float:
    if count <= 0:
        return 0.0
    return min(FACET_CONFIDENCE_CAP, 1.0 - math.exp(-count / FACET_CONFIDENCE_SCALE))


def item_traits(item: Item) -> Tuple[Trait, ...]:
    """The item's belief trait plus any clinical traits named by its tags."""
    traits = [item.belief_trait] if item.belief_trait is not None else []
    for tag in item.tags:
        trait = _CLINICAL_TAG_TRAITS.get(tag.strip().lower())
        if trait is not None and trait not in traits:
            traits.append(trait)
    return tuple(traits)


def information_gain(
    item: Item,
    beliefs: Mapping[Trait, Belief],
    unmeasured_bonus: float = 20.0,
    facet_counts: Optional[Mapping[str, int]] = None,
) -> float:
    """
    Expected uncertainty reduction from asking the item.

    Averages the confidence of every dimension the item measures: its traits
    and, when it names one, its facet. Items touching any unmeasured
    dimension earn unmeasured_bonus. Items measuring nothing score neutral.
    """
    confidences: List[float] = []
    unmeasured = False

    for trait in item_traits(item):
        belief = beliefs.get(trait)
        if belief is None or belief.sample_size <= 0:
            unmeasured = True
            confidences.append(0.0)
        else:
            confidences.append(belief.confidence)

    facet = facet_dimension(item.belief_trait, item.facet)
    if facet is not None:
        count = (facet_counts or {}).get(facet, 0)
        if count <= 0:
            unmeasured = True
        confidences.append(facet_confidence(count))

    if not confidences:
        return NEUTRAL_FACTOR_SCORE
    score = 100.0 - statistics.fmean(confidences) * 100.0
    if unmeasured:
        score += unmeasured_bonus
    return min(100.0, score)


def item_similarity(item: Item, response: Response) -> float:
    """0 (unrelated) to 1 (same instrument, category, trait and subcategory)."""
    similarity = 0.0
    if item.instrument and item.instrument == response.instrument:
        similarity += 0.4
    if item.category and item.category == response.category:
        similarity += 0.2
    if item.trait and item.trait == response.trait_label:
        similarity += 0.2
    if item.subcategory and item.subcategory == response.subcategory:
        similarity += 0.2
    return similarity


def context_diversity(
    item: Item,
    history: Sequence[Response],
    window: int = 5,
    optimal_run: int = 3,
    max_run: int = 5,
) -> float:
    recent = list(history[-window:])
    if not recent:
        return 100.0

    score = 100.0
    for position, response in enumerate(recent, start=1):
        recency = position / len(recent)
        score -= item_similarity(item, response) * recency * 20.0

    run = topic_run_length(item.topic, history)
    if run >= max_run:
        score -= 50.0
    elif run >= optimal_run:
        score -= 20.0
    return max(0.0, score)


def _endorsed_subcategory(item: Item, history: Sequence[Response]) -> bool:
    if not item.subcategory:
        return False
    endorsements = sum(
        1 for r in history if r.subcategory == item.subcategory and r.raw_value >= 3
    )
    return endorsements >= 2


def _fills_gap(item: Item, history: Sequence[Response]) -> bool:
    if item.category not in {r.category for r in history}:
        return True
    asked_instruments = {r.instrument for r in history if r.instrument}
    return bool(item.instrument) and item.instrument not in asked_instruments


def phase_alignment(
    item: Item, phase: AssessmentPhase, history: Sequence[Response]
) -> float:
    score = NEUTRAL_FACTOR_SCORE

    if phase is AssessmentPhase.WARMUP:
        if item.adaptive.is_baseline or item.has_tag("baseline"):
            score += 30
        if item.topic is TopicCategory.PERSONALITY:
            score += 20
        if item.instrument and "NEO" in item.instrument:
            score += 10
    elif phase is AssessmentPhase.EXPLORATION:
        if item.topic is TopicCategory.PERSONALITY:
            score += 25
        if item.trait:
            score += 15
        if item.facet:
            score += 10
    elif phase is AssessmentPhase.DEEPENING:
        if item.domain is TraitDomain.CLINICAL:
            score += 30
        if item.domain is TraitDomain.NEURODIVERSITY:
            score += 20
        if _endorsed_subcategory(item, history):
            score += 20
    elif phase is AssessmentPhase.PRECISION:
        # Uncertainty is already targeted by information gain
        score += 10
    elif phase is AssessmentPhase.COMPLETION:
        if _fills_gap(item, history):
            score += 30

    return min(100.0, score)


def quality(item: Item, default_discrimination: float = 0.7) -> float:
    index = item.discrimination_index
    if index is None:
        index = default_discrimination
    return index * 100.0


def completion_priority(item: Item, history: Sequence[Response]) -> float:
    if not item.instrument:
        return 0.0
    size = INSTRUMENT_SIZES.get(item.instrument, DEFAULT_INSTRUMENT_SIZE)
    answered = sum(1 for r in history if r.instrument == item.instrument)
    completion = answered / size
    if completion >= 0.75:
        return 80.0
    if completion >= 0.5:
        return 40.0
    return 0.0


@dataclass
class ScoredCandidate:
    """A candidate item with its total priority and factor breakdown."""

    item: Item
    total: float
    breakdown: Dict[str, float]


def score_candidate(
    item: Item,
    *,
    history: Sequence[Response],
    beliefs: Mapping[Trait, Belief],
    phase: AssessmentPhase,
    adaptive_match: float,
    discrepant_traits: FrozenSet[str],
    config: SelectorConfig,
    facet_counts: Optional[Mapping[str, int]] = None,
) -> ScoredCandidate:
    """Weighted six-factor priority plus the cross-prediction boost."""
    factors = {
        "information_gain": information_gain(
            item, beliefs, config.unmeasured_trait_bonus, facet_counts
        ),
        "context_diversity": context_diversity(
            item,
            history,
            config.context_window,
            config.optimal_topic_run,
            config.max_topic_run,
        ),
        "phase_alignment": phase_alignment(item, phase, history),
        "quality": quality(item, config.default_discrimination),
        "completion_priority": completion_priority(item, history),
        "adaptive_match": adaptive_match,
    }
    total = sum(factors[name] * config.weights.get(name, 0.0) for name in SELECTION_FACTORS)

    boost = 0.0
    if item.belief_trait is not None and item.belief_trait.value in discrepant_traits:
        boost = config.cross_prediction_boost
    total += boost

    breakdown = {name: round(value) for name, value in factors.items()}
    breakdown["cross_prediction_boost"] = round(boost)
    return ScoredCandidate(item=item, total=total, breakdown=breakdown)


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


def progress_message(
    answer_count: int,
    phase: AssessmentPhase,
    average_confidence: float,
    assessment_length: int = 70,
) -> str:
    """Respondent-facing progress line for the current phase."""
    remaining = max(0, assessment_length - answer_count)
    suffix = f"({remaining} questions remaining)"
    if phase is AssessmentPhase.WARMUP:
        return f"Getting to know you... {suffix}"
    if phase is AssessmentPhase.EXPLORATION:
        return (
            f"Building your profile... {round(average_confidence * 100)}% confident "
            f"{suffix}"
        )
    if phase is AssessmentPhase.DEEPENING:
        return f"Exploring key areas in depth... {suffix}"
    if phase is AssessmentPhase.PRECISION:
        return f"Fine-tuning your unique patterns... {suffix}"
    return f"Nearly complete! {suffix}"
