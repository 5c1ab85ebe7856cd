"""
Tests for the real-time validity monitor.
"""
import math

import pytest

from libs.domain_types import ValidityLevel
from psyche.core.intelligence.response_time import ATTENTION_CHECK_ITEM_ID
from psyche.core.intelligence.validity_monitor import (
    ConsistencyPair,
    RealTimeValidityMonitor,
    ValidityThresholds,
    randomness_score,
)
from psyche.schemas.interventions import InterventionType


@pytest.fixture
def monitor():
    return RealTimeValidityMonitor()


@pytest.fixture
def run_session(make_item, make_response):
    """Feed (item_overrides, value) answers through a monitor; return every result."""

    def _run(monitor, answers, history=None):
        history = list(history or [])
        results = []
        for overrides, value in answers:
            item = make_item(**overrides)
            results.append(monitor.monitor(item, value, 3000.0, history))
            history.append(make_response(item=item, value=value))
        return results, history

    return _run


def _answers(values, prefix="OPEN", **overrides):
    overrides.setdefault("trait", "openness")
    return [({"item_id": f"{prefix}_{i}", **overrides}, v) for i, v in enumerate(values)]


class TestCleanResponding:
    def test_single_answer_has_no_flags(self, monitor, make_item):
        result = monitor.monitor(make_item(), 3, 3000.0, [])

        assert result["flags"] == []
        assert result["severity"] == "none"
        assert result["interventions"] == []
        assert result["confidence"] == pytest.approx(1.0)
        assert result["overall_validity"] == "excellent"
        assert result["time_analysis"]["classification"] == "normal"

    def test_straight_lining_midpoint_is_not_random(self, monitor, run_session):
        results, _ = run_session(monitor, _answers([3] * 12))

        assert "RANDOM_RESPONDING" not in results[-1]["flags"]
        assert monitor.state.random_pattern_score == pytest.approx(0.0)


class TestInconsistency:
    def test_opposed_pair_in_same_band_is_high(self, monitor, run_session):
        results, _ = run_session(
            monitor,
            [
                ({"item_id": "BASELINE_CONSCIENTIOUSNESS_1", "trait": "conscientiousness"}, 5),
                (
                    {
                        "item_id": "BASELINE_CONSCIENTIOUSNESS_5_R",
                        "trait": "conscientiousness",
                        "reverse_scored": True,
                    },
                    5,
                ),
            ],
        )

        result = results[-1]
        assert "INCONSISTENCY" in result["flags"]
        # one inconsistency in two answers exceeds the 30% rate
        assert result["severity"] == "high"
        assert result["interventions"][0].type == InterventionType.CLARIFICATION
        # the trait-keying check finds the same pair; it is recorded once
        assert len(monitor.state.inconsistent_pairs) == 1
        assert monitor.state.inconsistent_pairs[0]["type"] == "LOGICAL_INCONSISTENCY"

    def test_opposed_pair_in_opposite_bands_is_consistent(self, monitor, run_session):
        results, _ = run_session(
            monitor,
            [
                ({"item_id": "BASELINE_CONSCIENTIOUSNESS_1", "trait": "conscientiousness"}, 5),
                ({"item_id": "BASELINE_CONSCIENTIOUSNESS_5_R", "trait": "conscientiousness"}, 1),
            ],
        )

        assert "INCONSISTENCY" not in results[-1]["flags"]

    def test_same_trait_opposite_keying_below_rate_is_medium(self, monitor, run_session):
        answers = _answers([3] * 8)
        answers.append(({"item_id": "EXT_FWD", "trait": "extraversion"}, 5))
        answers.append(
            ({"item_id": "EXT_REV", "trait": "extraversion", "reverse_scored": True}, 5)
        )

        results, _ = run_session(monitor, answers)

        result = results[-1]
        assert "INCONSISTENCY" in result["flags"]
        assert result["severity"] == "medium"
        assert monitor.state.inconsistent_pairs[0]["type"] == "TRAIT_INCONSISTENCY"
        assert not any(i.type == InterventionType.CLARIFICATION for i in result["interventions"])

    def test_custom_pair_table(self, run_session):
        monitor = RealTimeValidityMonitor(
            consistency_pairs=(ConsistencyPair("CALM_1", "WORRY_1", "neuroticism", -0.8),)
        )

        results, _ = run_session(
            monitor,
            [
                ({"item_id": "WORRY_1", "trait": None, "category": "misc"}, 1),
                ({"item_id": "CALM_1", "trait": None, "category": "misc"}, 2),
            ],
        )

        assert "INCONSISTENCY" in results[-1]["flags"]


class TestRandomResponding:
    def test_alternating_extremes_trigger_attention_check(self, monitor, run_session):
        results, _ = run_session(monitor, _answers([1, 5] * 5))

        result = results[-1]
        assert monitor.state.random_pattern_score > 0.25
        assert "RANDOM_RESPONDING" in result["flags"]
        assert result["severity"] == "high"
        check = next(
            i for i in result["interventions"] if i.type == InterventionType.ATTENTION_CHECK
        )
        assert check.priority == "critical"
        assert check.insert_item_id == ATTENTION_CHECK_ITEM_ID

    def test_needs_a_full_window(self, monitor, run_session):
        results, _ = run_session(monitor, _answers([1, 5] * 4 + [1]))

        assert all("RANDOM_RESPONDING" not in r["flags"] for r in results)

    @pytest.mark.parametrize(
        "values,expected",
        [
            ([3], 0.0),
            ([3] * 10, 0.0),
        ],
    )
    def test_score_degenerate_windows(self, values, expected):
        assert randomness_score(values) == pytest.approx(expected)

    def test_score_alternating_extremes(self):
        # one bit of entropy over log2(5), and every transition is a jump
        score = randomness_score([1, 5] * 5)
        assert score == pytest.approx(0.6 / math.log2(5) + 0.4)
        assert isinstance(score, float)

    def test_score_uniform_use_of_scale(self):
        # full entropy (0.6) plus one 5 -> 1 jump out of nine transitions
        score = randomness_score([1, 2, 3, 4, 5, 1, 2, 3, 4, 5])
        assert score == pytest.approx(0.6 + 0.4 / 9)

    def test_threshold_is_configurable(self, run_session):
        monitor = RealTimeValidityMonitor(ValidityThresholds(randomness=0.9))

        results, _ = run_session(monitor, _answers([1, 5] * 5))

        assert "RANDOM_RESPONDING" not in results[-1]["flags"]


class TestSocialDesirability:
    def test_flagged_only_from_fifteen_answers(self, monitor, run_session):
        results, _ = run_session(monitor, _answers([4] * 15))

        assert "SOCIAL_DESIRABILITY" not in results[13]["flags"]
        assert "SOCIAL_DESIRABILITY" in results[14]["flags"]
        assert results[14]["severity"] == "medium"

    def test_reverse_keyed_disagreement_is_favorable(self, make_response):
        responses = [
            make_response(value=1, item_id=f"N_{i}", trait="neuroticism", reverse_scored=True)
            for i in range(4)
        ]

        assert RealTimeValidityMonitor.social_desirability(responses) == pytest.approx(1.0)

    def test_clinical_items_not_counted(self, make_response):
        responses = [
            make_response(value=5, item_id="D_1", category="clinical", trait="depression")
        ]

        assert RealTimeValidityMonitor.social_desirability(responses) == 0.0


class TestInfrequency:
    def test_endorsed_rare_item_flags(self, monitor, make_item):
        item = make_item(item_id="INF_1", tags=["infrequency"], category="validity", trait=None)

        result = monitor.monitor(item, 5, 3000.0, [])

        assert "INFREQUENCY" in result["flags"]
        assert monitor.state.infrequency_count == 1

    def test_rejected_rare_item_does_not_flag(self, monitor, make_item):
        item = make_item(item_id="INF_1", tags=["infrequency"], category="validity", trait=None)

        result = monitor.monitor(item, 2, 3000.0, [])

        assert "INFREQUENCY" not in result["flags"]


class TestExtremeResponding:
    def test_informational_after_twenty_answers(self, monitor, run_session):
        results, _ = run_session(
            monitor, _answers([5] * 21, prefix="DEP", category="clinical", trait="depression")
        )

        assert "EXTREME_RESPONDING" not in results[19]["flags"]
        assert "EXTREME_RESPONDING" in results[20]["flags"]
        assert results[20]["severity"] == "low"


class TestOverallValidity:
    @pytest.mark.parametrize(
        "randomness,expected",
        [
            (0.35, ValidityLevel.QUESTIONABLE),
            (0.25, ValidityLevel.FAIR),
            (0.15, ValidityLevel.GOOD),
            (0.05, ValidityLevel.EXCELLENT),
        ],
    )
    def test_bands(self, monitor, randomness, expected):
        monitor.state.random_pattern_score = randomness

        assert monitor.compute_overall_validity() == expected

    def test_worst_scale_wins(self, monitor):
        monitor.state.total_responses = 10
        monitor.state.infrequency_count = 4
        monitor.state.random_pattern_score = 0.05

        assert monitor.compute_overall_validity() == ValidityLevel.QUESTIONABLE


class TestValidityReport:
    def test_report_shape(self, monitor, run_session):
        run_session(monitor, _answers([1, 5] * 5))

        report = monitor.get_validity_report()

        assert report["overall_validity"] == "questionable"
        assert report["scales"]["randomness"]["flagged"] is True
        assert report["scales"]["extreme_responding"]["informational"] is True
        assert report["response_pattern"]["total_responses"] == 10
        assert report["flagged_responses"] == len(report["flags"])
        assert "caution" in report["recommendation"]
        assert 0.0 <= report["confidence"] < 1.0

    def test_reset(self, monitor, run_session):
        run_session(monitor, _answers([1, 5] * 5))

        monitor.reset()

        report = monitor.get_validity_report()
        assert report["overall_validity"] == "excellent"
        assert report["flags"] == []
        assert report["response_pattern"]["total_responses"] == 0
