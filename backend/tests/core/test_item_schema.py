"""
Tests for the item-bank record schemas.
"""
import pytest
from pydantic import ValidationError

from libs.domain_types import (
    AssessmentPhase,
    AssessmentTier,
    Sensitivity,
    TopicCategory,
    Trait,
    TraitDomain,
)
from psyche.schemas.interventions import (
    Intervention,
    InterventionType,
    options_from_labels,
)
from psyche.schemas.items import Item, RequiredSignals, TriggerCondition


class TestItemValidation:
    """Tests for Item parsing and metadata resolution."""

    def test_camel_case_record(self):
        """Records from the bank repository arrive in camelCase."""
        item = Item.model_validate(
            {
                "itemId": "PHQ9_1",
                "text": "Little interest or pleasure in doing things",
                "category": "clinical",
                "trait": "depression",
                "instrument": "PHQ-9",
                "responseType": "Frequency",
                "sensitivity": "HIGH",
                "assessmentTiers": ["Comprehensive", "clinical-addon"],
                "reverseScored": False,
                "adaptive": {"discriminationIndex": 0.85, "isBaseline": False},
            }
        )

        assert item.item_id == "PHQ9_1"
        assert item.sensitivity == Sensitivity.HIGH
        assert item.assessment_tiers == [
            AssessmentTier.COMPREHENSIVE,
            AssessmentTier.CLINICAL_ADDON,
        ]
        assert item.discrimination_index == pytest.approx(0.85)

    def test_question_id_alias(self):
        item = Item.model_validate({"questionId": "Q1", "trait": "openness"})
        assert item.item_id == "Q1"

    def test_resolves_trait_domain_and_topic(self, make_item):
        item = make_item(item_id="AUT_1", category="neurodiversity", trait="autism")

        assert item.belief_trait == Trait.AUTISM
        assert item.domain == TraitDomain.NEURODIVERSITY
        assert item.topic == TopicCategory.NEURODIVERSITY

    def test_supplied_resolved_fields_are_overwritten(self, make_item):
        item = make_item(belief_trait="depression", topic="clinical")

        assert item.belief_trait == Trait.EXTRAVERSION
        assert item.topic == TopicCategory.PERSONALITY

    def test_unmapped_item_has_no_trait(self, make_item):
        item = make_item(category="demographics", trait=None)

        assert item.belief_trait is None
        assert item.domain is None
        assert item.topic == TopicCategory.OTHER

    def test_defaults(self, make_item):
        item = make_item()

        assert item.active is True
        assert item.reverse_scored is False
        assert item.sensitivity == Sensitivity.NONE
        assert item.discrimination_index is None
        assert item.required_signals is None

    def test_empty_item_id_rejected(self):
        with pytest.raises(ValidationError):
            Item.model_validate({"itemId": ""})

    def test_unknown_sensitivity_rejected(self, make_item):
        with pytest.raises(ValidationError):
            make_item(sensitivity="catastrophic")

    def test_discrimination_out_of_range_rejected(self, make_item):
        with pytest.raises(ValidationError):
            make_item(adaptive={"discrimination_index": 1.5})

    def test_has_tag(self, make_item):
        item = make_item(tags=["baseline", "social"])

        assert item.has_tag("baseline")
        assert not item.has_tag("clinical")

    def test_null_tags_become_empty(self, make_item):
        assert make_item(tags=None).tags == []


class TestRequiredSignals:
    """Tests for gating metadata."""

    def test_top_level_required_signals_lifted(self):
        item = Item.model_validate(
            {
                "itemId": "SUICIDE_1",
                "trait": "depression",
                "requiredSignals": {
                    "minQuestionCount": 40,
                    "requiredPhase": "deepening",
                    "triggerConditions": [{"dimension": "depression", "minScore": 60}],
                },
            }
        )

        signals = item.required_signals
        assert signals is not None
        assert signals.min_question_count == 40
        assert signals.required_phase == AssessmentPhase.DEEPENING
        assert signals.trigger_conditions[0].dimension == Trait.DEPRESSION
        assert signals.trigger_conditions[0].min_score == pytest.approx(60.0)

    def test_nested_signals_take_precedence_over_top_level(self):
        item = Item.model_validate(
            {
                "itemId": "X_1",
                "requiredSignals": {"minQuestionCount": 10},
                "adaptive": {"requiredSignals": {"minQuestionCount": 30}},
            }
        )
        assert item.required_signals.min_question_count == 30

    def test_conditions_alias_and_any_of(self):
        signals = RequiredSignals.model_validate(
            {
                "conditions": [
                    {"dimension": "adhd", "minScore": 55},
                    {"dimension": "autism", "minScore": 55},
                ],
                "anyOf": True,
            }
        )

        assert [c.dimension for c in signals.trigger_conditions] == [
            Trait.ADHD_INATTENTION,
            Trait.AUTISM,
        ]
        assert signals.any_of is True

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("broad_screening", AssessmentPhase.WARMUP),
            ("clinical validation", AssessmentPhase.DEEPENING),
            ("Precision", AssessmentPhase.PRECISION),
        ],
    )
    def test_phase_aliases(self, raw, expected):
        assert RequiredSignals(required_phase=raw).required_phase == expected

    def test_unknown_phase_rejected(self):
        with pytest.raises(ValidationError):
            RequiredSignals(required_phase="cooldown")


class TestTriggerCondition:
    def test_min_level_normalized(self):
        condition = TriggerCondition(dimension="anxiety", min_level="Moderate")
        assert condition.min_level == "moderate"

    def test_unknown_min_level_rejected(self):
        with pytest.raises(ValidationError, match="min_level"):
            TriggerCondition(dimension="anxiety", min_level="catastrophic")

    def test_score_bounds(self):
        with pytest.raises(ValidationError):
            TriggerCondition(dimension="anxiety", min_score=120)

    def test_unknown_dimension_rejected(self):
        with pytest.raises(ValidationError):
            TriggerCondition(dimension="favorite_color")


class TestIntervention:
    def test_options_from_labels(self):
        options = options_from_labels(["Yes, both are true", "Not sure"])

        assert [o.value for o in options] == ["yes,_both_are_true", "not_sure"]
        assert options[1].label == "Not sure"

    def test_defaults(self):
        intervention = Intervention(
            type=InterventionType.PACE_ADJUSTMENT,
            source="response_time",
            message="Take your time.",
        )

        assert intervention.priority == "medium"
        assert intervention.options == []
        assert intervention.details == {}

    def test_invalid_priority_rejected(self):
        with pytest.raises(ValidationError):
            Intervention(
                type=InterventionType.ATTENTION_CHECK,
                source="validity",
                message="Please read carefully.",
                priority="urgent",
            )
