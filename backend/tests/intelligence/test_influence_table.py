"""
Tests for the Conditional Influence Table.
"""
import pytest

from libs.domain_types import Trait
from psyche.core.intelligence.influence_table import (
    DEFAULT_INFLUENCE_TABLE,
    Direction,
    Predictor,
    build_influence_table,
    targets_of,
)


class TestPredictor:
    """Tests for Predictor.influence."""

    def test_positive(self):
        assert Predictor(Trait.NEUROTICISM, 0.7, Direction.POSITIVE).influence(100) == pytest.approx(35.0)

    def test_negative(self):
        assert Predictor(Trait.EXTRAVERSION, 0.5, Direction.NEGATIVE).influence(100) == pytest.approx(-25.0)

    def test_both_is_half_positive(self):
        assert Predictor(Trait.OPENNESS, 0.3, Direction.BOTH).influence(100) == pytest.approx(7.5)

    def test_neutral_source_has_no_influence(self):
        for direction in Direction:
            assert Predictor(Trait.OPENNESS, 0.9, direction).influence(50) == 0.0

    @pytest.mark.parametrize("weight", [-0.1, 1.1])
    def test_weight_out_of_range_rejected(self, weight):
        with pytest.raises(ValueError, match="weight"):
            Predictor(Trait.OPENNESS, weight, Direction.POSITIVE)


class TestDefaultTable:
    """Structural checks on the shipped table."""

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            DEFAULT_INFLUENCE_TABLE[Trait.OPENNESS] = ()

    def test_weights_in_unit_interval(self):
        for predictors in DEFAULT_INFLUENCE_TABLE.values():
            for predictor in predictors:
                assert 0.0 <= predictor.weight <= 1.0

    def test_no_self_prediction(self):
        for target, predictors in DEFAULT_INFLUENCE_TABLE.items():
            assert target not in {p.trait for p in predictors}

    def test_neuroticism_drives_clinical_targets(self):
        targets = {target for target, _ in targets_of(DEFAULT_INFLUENCE_TABLE, Trait.NEUROTICISM)}

        assert {Trait.DEPRESSION, Trait.ANXIETY, Trait.BORDERLINE, Trait.RESILIENCE} <= targets

    def test_trait_predicting_nothing(self):
        assert targets_of(DEFAULT_INFLUENCE_TABLE, Trait.PSYCHOSIS) == ()


class TestBuildInfluenceTable:
    def test_predictor_lists_frozen_to_tuples(self):
        table = build_influence_table(
            {Trait.MANIA: [Predictor(Trait.EXTRAVERSION, 0.5, Direction.POSITIVE)]}
        )

        assert isinstance(table[Trait.MANIA], tuple)
        assert targets_of(table, Trait.EXTRAVERSION)[0][0] == Trait.MANIA
