"""Tests for shared domain types package."""

import json

import pytest

from libs.domain_types import (
    AssessmentPhase,
    AssessmentTier,
    ResponseType,
    Sensitivity,
    TopicCategory,
    Trait,
    TraitDomain,
    ValidityLevel,
)


class TestTrait:
    """Tests for Trait enum."""

    def test_count(self):
        assert len(Trait) == 17

    def test_big_five_present(self):
        assert {
            Trait.OPENNESS,
            Trait.CONSCIENTIOUSNESS,
            Trait.EXTRAVERSION,
            Trait.AGREEABLENESS,
            Trait.NEUROTICISM,
        } <= set(Trait)

    def test_string_values(self):
        assert Trait.ADHD_INATTENTION.value == "adhd_inattention"
        assert Trait.ATTACHMENT_AVOIDANCE.value == "attachment_avoidance"
        assert Trait.RESILIENCE.value == "resilience"

    def test_str_mixin(self):
        assert Trait("neuroticism") == Trait.NEUROTICISM

    def test_json_serializable(self):
        assert json.dumps(Trait.DEPRESSION) == '"depression"'


class TestTraitDomain:
    """Tests for TraitDomain enum."""

    def test_count(self):
        assert len(TraitDomain) == 5


class TestTopicCategory:
    """Tests for TopicCategory enum."""

    def test_values(self):
        assert TopicCategory.PERSONALITY.value == "personality"
        assert TopicCategory.OTHER.value == "other"

    def test_count(self):
        assert len(TopicCategory) == 9


class TestSensitivity:
    """Tests for Sensitivity enum."""

    def test_values(self):
        assert [s.value for s in Sensitivity] == [
            "none",
            "low",
            "moderate",
            "high",
            "extreme",
        ]


class TestAssessmentTier:
    """Tests for AssessmentTier enum."""

    def test_values(self):
        assert AssessmentTier.CORE.value == "core"
        assert AssessmentTier.COMPREHENSIVE.value == "comprehensive"
        assert AssessmentTier.CLINICAL_ADDON.value == "clinical_addon"

    def test_count(self):
        assert len(AssessmentTier) == 3


class TestResponseType:
    """Tests for ResponseType enum."""

    def test_count(self):
        assert len(ResponseType) == 5

    def test_str_mixin(self):
        assert ResponseType("multi_select") is ResponseType.MULTI_SELECT


class TestAssessmentPhase:
    """Tests for AssessmentPhase enum."""

    def test_order(self):
        assert [p.value for p in AssessmentPhase] == [
            "warmup",
            "exploration",
            "deepening",
            "precision",
            "completion",
        ]


class TestValidityLevel:
    """Tests for ValidityLevel enum."""

    def test_count(self):
        assert len(ValidityLevel) == 4


class TestEnumContract:
    """Tests verifying the shared contract of all domain enums."""

    def test_all_enums_are_str_subclass(self):
        """All domain enums should be str subclasses for JSON serialization."""
        for enum_cls in [
            Trait,
            TraitDomain,
            TopicCategory,
            Sensitivity,
            AssessmentTier,
            ResponseType,
            AssessmentPhase,
            ValidityLevel,
        ]:
            for member in enum_cls:
                assert isinstance(member, str), (
                    f"{enum_cls.__name__}.{member.name} is not a str instance"
                )

    def test_invalid_value_raises(self):
        """Invalid values should raise ValueError."""
        with pytest.raises(ValueError):
            Trait("life_satisfaction")
        with pytest.raises(ValueError):
            AssessmentTier("premium")

    def test_cross_package_identity(self):
        """Enums imported via different paths should be identical objects."""
        from libs.domain_types import Trait as DirectImport
        from psyche.core.traits import Trait as ReExported

        assert DirectImport is Trait
        assert ReExported is Trait
