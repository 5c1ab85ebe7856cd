"""
Tests for semantic contradiction detection.
"""
import pytest

from psyche.core.intelligence._types import Contradiction
from psyche.core.intelligence.contradictions import (
    PAIR_TABLE_CONFIDENCE,
    SAME_TRAIT_CONFIDENCE,
    ContradictionRule,
    OpposedPair,
    SemanticContradictionDetector,
    check_opposed_values,
)
from psyche.schemas.interventions import InterventionType


@pytest.fixture
def detector():
    return SemanticContradictionDetector()


@pytest.fixture
def conscientiousness(make_response):
    def _make(item_id, value, reverse_scored=False):
        return make_response(
            value=value,
            item_id=item_id,
            trait="conscientiousness",
            reverse_scored=reverse_scored,
            text=f"Statement {item_id}",
        )

    return _make


class TestCheckOpposedValues:
    @pytest.mark.parametrize(
        "first,second,expected",
        [
            (5, 5, "HIGH"),
            (1, 1, "HIGH"),
            (5, 4, "MEDIUM"),
            (2, 1, "MEDIUM"),
            (5, 1, None),
            (3, 5, None),
            (3, 3, None),
        ],
    )
    def test_severity(self, first, second, expected):
        assert check_opposed_values(first, second) == expected


class TestPairTable:
    """Contradictions from the static opposed-pair table."""

    def test_both_extremes_give_exactly_one_high(self, detector, conscientiousness):
        earlier = conscientiousness("BASELINE_CONSCIENTIOUSNESS_1", 5)
        current = conscientiousness("CONSCIENTIOUSNESS_MESSY", 5)

        found = detector.detect(current, [earlier])

        assert len(found) == 1
        contradiction = found[0]
        assert contradiction.severity == "HIGH"
        assert contradiction.trait == "conscientiousness"
        assert contradiction.pair_description == "Organization vs. Disorganization"
        assert contradiction.first is earlier
        assert contradiction.second is current
        assert contradiction.confidence == pytest.approx(PAIR_TABLE_CONFIDENCE)
        assert contradiction.source == "pair_table"

    def test_detected_from_either_side(self, detector, conscientiousness):
        earlier = conscientiousness("CONSCIENTIOUSNESS_MESSY", 4)
        current = conscientiousness("CONSCIENTIOUSNESS_ORGANIZED", 5)

        found = detector.detect(current, [earlier])

        assert [c.severity for c in found] == ["MEDIUM"]

    def test_opposite_answers_are_consistent(self, detector, conscientiousness):
        earlier = conscientiousness("BASELINE_CONSCIENTIOUSNESS_1", 5)
        current = conscientiousness("CONSCIENTIOUSNESS_MESSY", 1)

        assert detector.detect(current, [earlier]) == []

    def test_unrelated_items_ignored(self, detector, conscientiousness):
        earlier = conscientiousness("BASELINE_CONSCIENTIOUSNESS_1", 5)
        current = conscientiousness("CONSCIENTIOUSNESS_PUNCTUAL", 5)

        assert detector.detect(current, [earlier]) == []

    def test_item_ids_match_exactly(self, detector, conscientiousness):
        earlier = conscientiousness("BASELINE_CONSCIENTIOUSNESS_10", 5)
        current = conscientiousness("CONSCIENTIOUSNESS_MESSY", 5)

        assert detector.detect(current, [earlier]) == []

    def test_custom_rules(self, make_response):
        detector = SemanticContradictionDetector(
            rules=(
                ContradictionRule(
                    "openness",
                    (OpposedPair(frozenset({"NOVEL"}), frozenset({"ROUTINE"}), "Novelty vs. Routine"),),
                ),
            )
        )
        earlier = make_response(value=1, item_id="NOVEL", trait="openness")
        current = make_response(value=1, item_id="ROUTINE", trait="openness")

        found = detector.detect(current, [earlier])

        assert [(c.trait, c.severity) for c in found] == [("openness", "HIGH")]


class TestSameTrait:
    """Contradictions between same-trait items keyed in opposite directions."""

    def test_agreeing_with_opposite_keyed_items(self, detector, conscientiousness):
        earlier = conscientiousness("C_TIDY", 5)
        current = conscientiousness("C_CHAOS_R", 4, reverse_scored=True)

        found = detector.detect(current, [earlier])

        assert len(found) == 1
        assert found[0].source == "same_trait"
        assert found[0].severity == "MEDIUM"
        assert found[0].confidence == pytest.approx(SAME_TRAIT_CONFIDENCE)
        assert found[0].pair_description == "conscientiousness trait inconsistency"

    def test_same_keying_is_not_a_contradiction(self, detector, conscientiousness):
        earlier = conscientiousness("C_TIDY", 5)
        current = conscientiousness("C_PLANNER", 5)

        assert detector.detect(current, [earlier]) == []

    def test_pair_already_reported_is_not_repeated(self, detector, conscientiousness):
        earlier = conscientiousness("BASELINE_CONSCIENTIOUSNESS_1", 1)
        current = conscientiousness("BASELINE_CONSCIENTIOUSNESS_5_R", 5, reverse_scored=True)

        found = detector.detect(current, [earlier])

        # keyed values 1 and 1 hit the pair table; the same-trait check skips the pair
        assert len(found) == 1
        assert found[0].source == "pair_table"

    def test_unmapped_items_skipped(self, detector, make_response):
        earlier = make_response(value=5, item_id="X_1", trait=None, category="misc")
        current = make_response(
            value=5, item_id="X_2", trait=None, category="misc", reverse_scored=True
        )

        assert detector.detect(current, [earlier]) == []


class TestClarification:
    def test_prompt_offers_four_resolutions(self, detector, conscientiousness):
        earlier = conscientiousness("BASELINE_CONSCIENTIOUSNESS_1", 5)
        current = conscientiousness("CONSCIENTIOUSNESS_MESSY", 5)
        contradiction = detector.detect(current, [earlier])[0]

        intervention = detector.generate_clarification(contradiction)

        assert intervention.type == InterventionType.CLARIFICATION
        assert intervention.priority == "high"
        assert intervention.trait == "conscientiousness"
        assert [o.value for o in intervention.options] == ["first", "second", "both", "neither"]
        assert "organization vs. disorganization" in intervention.message
        assert intervention.details["first"]["answer"] == "Strongly Agree"
        assert intervention.details["second"]["item_id"] == "CONSCIENTIOUSNESS_MESSY"

    def test_medium_contradiction_has_medium_priority(self, detector, conscientiousness):
        contradiction = detector.detect(
            conscientiousness("CONSCIENTIOUSNESS_MESSY", 4),
            [conscientiousness("CONSCIENTIOUSNESS_ORGANIZED", 4)],
        )[0]

        assert detector.generate_clarification(contradiction).priority == "medium"


class TestSummary:
    def _contradiction(self, response, severity, trait="conscientiousness"):
        return Contradiction(
            trait=trait,
            pair_description="test",
            first=response,
            second=response,
            severity=severity,
            confidence=0.75,
        )

    def test_empty(self, detector):
        summary = detector.get_summary([])

        assert summary["count"] == 0
        assert summary["severity"] == "NONE"

    @pytest.mark.parametrize(
        "severities,expected",
        [
            (["HIGH"] * 3, "HIGH"),
            (["HIGH"], "MEDIUM"),
            (["MEDIUM"] * 4, "MEDIUM"),
            (["MEDIUM"] * 2, "LOW"),
        ],
    )
    def test_overall_severity(self, detector, make_response, severities, expected):
        response = make_response()
        contradictions = [self._contradiction(response, s) for s in severities]

        assert detector.get_summary(contradictions)["severity"] == expected

    def test_traits_affected(self, detector, make_response):
        response = make_response()
        summary = detector.get_summary(
            [
                self._contradiction(response, "HIGH", trait="neuroticism"),
                self._contradiction(response, "MEDIUM", trait="depression"),
                self._contradiction(response, "MEDIUM", trait="neuroticism"),
            ]
        )

        assert summary["traits_affected"] == ["depression", "neuroticism"]
        assert summary["high_severity"] == 1
        assert summary["medium_severity"] == 2
