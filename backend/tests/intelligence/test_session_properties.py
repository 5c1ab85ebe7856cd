"""
Property tests over simulated sessions.

Every session, whatever the respondent does, must respect the selection
gates: sensitivity tiers unlock only after enough answers, clinical add-on
items appear only after opt-in, and no topic runs longer than the cap in any
tier.
"""
import random

import pytest

from libs.domain_types import AssessmentTier, Sensitivity
from psyche.core.config import settings
from psyche.core.intelligence._types import Response
from psyche.core.intelligence.item_priority import (
    SENSITIVITY_MIN_ANSWERS,
    accessible_tiers,
    topic_run_length,
)
from psyche.core.intelligence.selector import QuestionSelector
from psyche.core.intelligence.simulation import (
    RESPONDENT_STYLES,
    SimulationConfig,
    run_session,
)

SEEDS = (3, 42)
TIER_OPTIONS = (
    (AssessmentTier.CORE, False),
    (AssessmentTier.CORE, True),
    (AssessmentTier.COMPREHENSIVE, False),
    (AssessmentTier.COMPREHENSIVE, True),
)


def _longest_topic_run(topics):
    longest = current = 0
    previous = None
    for topic in topics:
        current = current + 1 if topic is previous else 1
        previous = topic
        longest = max(longest, current)
    return longest


@pytest.fixture(scope="module")
def bank_by_id(item_bank):
    return {item.item_id: item for item in item_bank}


@pytest.mark.parametrize("seed", SEEDS)
@pytest.mark.parametrize("style", RESPONDENT_STYLES)
@pytest.mark.parametrize("tier,addon_enabled", TIER_OPTIONS)
class TestSessionGates:
    """Gate properties for every style, seed and tier combination."""

    @pytest.fixture
    def transcript(self, item_bank, seed, style, tier, addon_enabled):
        config = SimulationConfig(
            respondent_style=style,
            max_responses=70,
            tier=tier,
            addon_enabled=addon_enabled,
            seed=seed,
        )
        return run_session(config, bank=item_bank)

    def test_sensitive_items_wait_for_enough_answers(self, transcript, bank_by_id):
        for index, item_id in enumerate(transcript.item_ids):
            required = SENSITIVITY_MIN_ANSWERS.get(bank_by_id[item_id].sensitivity, 0)
            assert index >= required, f"{item_id} shown after only {index} answers"

    def test_extreme_items_never_before_forty(self, transcript, bank_by_id):
        extreme = [
            index
            for index, item_id in enumerate(transcript.item_ids)
            if bank_by_id[item_id].sensitivity is Sensitivity.EXTREME
        ]
        assert all(index >= 40 for index in extreme)

    def test_addon_items_need_comprehensive_opt_in(
        self, transcript, bank_by_id, tier, addon_enabled
    ):
        addon_only = [
            item_id
            for item_id in transcript.item_ids
            if bank_by_id[item_id].assessment_tiers == [AssessmentTier.CLINICAL_ADDON]
        ]
        if tier is not AssessmentTier.COMPREHENSIVE or not addon_enabled:
            assert addon_only == []

    def test_items_come_from_accessible_tiers(
        self, transcript, bank_by_id, tier, addon_enabled
    ):
        tiers = accessible_tiers(tier, addon_enabled)
        for item_id in transcript.item_ids:
            assert tiers.intersection(bank_by_id[item_id].assessment_tiers)

    def test_no_item_repeated(self, transcript):
        assert len(set(transcript.item_ids)) == len(transcript.item_ids)


@pytest.mark.parametrize("seed", SEEDS)
@pytest.mark.parametrize("style", RESPONDENT_STYLES)
@pytest.mark.parametrize("addon_enabled", [False, True])
def test_topic_runs_capped_in_comprehensive_sessions(
    item_bank, bank_by_id, seed, style, addon_enabled
):
    config = SimulationConfig(
        respondent_style=style,
        max_responses=50,
        tier=AssessmentTier.COMPREHENSIVE,
        addon_enabled=addon_enabled,
        seed=seed,
    )

    transcript = run_session(config, bank=item_bank)

    topics = [bank_by_id[item_id].topic for item_id in transcript.item_ids]
    assert transcript.responses == 50
    assert _longest_topic_run(topics) <= settings.MAX_TOPIC_RUN


@pytest.mark.parametrize("seed", (1,) + SEEDS)
@pytest.mark.parametrize("style", RESPONDENT_STYLES)
def test_topic_runs_capped_in_core_sessions(item_bank, bank_by_id, seed, style):
    # CORE holds mostly personality items, so the cap can end the session early
    config = SimulationConfig(
        respondent_style=style,
        max_responses=40,
        tier=AssessmentTier.CORE,
        seed=seed,
    )

    transcript = run_session(config, bank=item_bank)

    topics = [bank_by_id[item_id].topic for item_id in transcript.item_ids]
    assert _longest_topic_run(topics) <= settings.MAX_TOPIC_RUN
    if transcript.responses < 40:
        assert transcript.stop_reason == "pool_exhausted"


@pytest.mark.parametrize("seed", range(12))
def test_selection_from_arbitrary_history_respects_gates(item_bank, seed):
    rng = random.Random(seed)
    answered = rng.sample(item_bank, rng.randint(0, 60))
    history = [
        Response.from_item(item, rng.randint(1, 5), response_time_ms=3000.0)
        for item in answered
    ]
    tier, addon_enabled = rng.choice(TIER_OPTIONS)

    result = QuestionSelector().select_next(
        item_bank, history=history, tier=tier, addon_enabled=addon_enabled
    )

    if result.item is None:
        return
    item = result.item
    assert topic_run_length(item.topic, history) < settings.MAX_TOPIC_RUN
    assert item.item_id not in {r.item_id for r in history}
    assert len(history) >= SENSITIVITY_MIN_ANSWERS.get(item.sensitivity, 0)
    assert accessible_tiers(tier, addon_enabled).intersection(item.assessment_tiers)


@pytest.mark.parametrize("style", RESPONDENT_STYLES)
def test_reset_restores_initial_beliefs(item_bank, style):
    selector = QuestionSelector()
    initial = selector.belief_network.snapshot()

    run_session(
        SimulationConfig(respondent_style=style, max_responses=30),
        bank=item_bank,
        selector=selector,
    )
    assert selector.belief_network.snapshot() != initial

    selector.reset()

    assert selector.belief_network.snapshot() == initial
    assert selector.history == []
