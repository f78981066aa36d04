"""Tests for pillar weighting and weight validation."""

import pytest

from bdscore.models import Pillar, PillarScore, PillarScores, WeightConfig
from bdscore.models.scoring import RecommendationThresholds, ValidationSeverity
from bdscore.score import ScoringEngine, WeightingEngine, WEIGHT_PROFILES


def make_pillar_scores(raw: list[float]) -> PillarScores:
    """Create pillar scores from raw values in pillar order."""
    return PillarScores.from_dict({
        pillar: PillarScore(pillar=pillar, raw_score=score, confidence=0.8)
        for pillar, score in zip(Pillar, raw)
    })


class TestApplyWeights:
    """Tests for weighted aggregation."""

    def test_default_weights_aggregate(self):
        engine = WeightingEngine()
        scores = make_pillar_scores([4.2, 3.8, 3.5, 4.0, 3.2, 3.7])
        weighted = engine.apply_weights(scores, WeightConfig())
        assert weighted.total == pytest.approx(3.835)

    def test_aggregate_maps_to_buy(self):
        engine = WeightingEngine()
        scores = make_pillar_scores([4.2, 3.8, 3.5, 4.0, 3.2, 3.7])
        total = engine.apply_weights(scores, WeightConfig()).total
        assert ScoringEngine.recommend(total, RecommendationThresholds()).value == "Buy"

    def test_contributions_sum_to_total(self):
        engine = WeightingEngine()
        scores = make_pillar_scores([1.0, 2.0, 3.0, 4.0, 5.0, 2.5])
        weighted = engine.apply_weights(scores, WeightConfig())
        assert sum(weighted.contributions.values()) == pytest.approx(weighted.total)
        assert weighted.contributions[Pillar.ASSET_QUALITY] == pytest.approx(0.25)

    def test_zero_weight_excludes_pillar_from_total(self):
        engine = WeightingEngine()
        weights = WeightConfig.from_list([0.5, 0.5, 0.0, 0.0, 0.0, 0.0])
        low = engine.apply_weights(make_pillar_scores([4.0, 4.0, 1.0, 1.0, 1.0, 1.0]), weights)
        high = engine.apply_weights(make_pillar_scores([4.0, 4.0, 5.0, 5.0, 5.0, 5.0]), weights)
        assert low.total == pytest.approx(high.total)

    def test_raising_one_pillar_never_lowers_total(self):
        engine = WeightingEngine()
        weights = WeightConfig()
        base = [3.0, 3.0, 3.0, 3.0, 3.0, 3.0]
        before = engine.apply_weights(make_pillar_scores(base), weights).total
        for i in range(len(base)):
            raised = list(base)
            raised[i] = 4.5
            after = engine.apply_weights(make_pillar_scores(raised), weights).total
            assert after >= before

    def test_aggregate_matches_apply_weights(self):
        engine = WeightingEngine()
        scores = make_pillar_scores([4.2, 3.8, 3.5, 4.0, 3.2, 3.7])
        weights = WEIGHT_PROFILES["strategic"]
        assert engine.aggregate(scores.raw_scores(), weights) == pytest.approx(
            engine.apply_weights(scores, weights).total
        )

    def test_reweighting_is_repeatable(self):
        engine = WeightingEngine()
        scores = make_pillar_scores([4.2, 3.8, 3.5, 4.0, 3.2, 3.7])
        first = engine.apply_weights(scores, WEIGHT_PROFILES["aggressive"])
        second = engine.apply_weights(scores, WEIGHT_PROFILES["aggressive"])
        assert first == second


class TestValidateWeights:
    """Tests for weight validation."""

    def test_default_weights_valid(self):
        result = WeightingEngine().validate_weights(WeightConfig())
        assert result.is_valid
        assert not result.errors

    def test_imbalanced_weights_warn(self):
        weights = WeightConfig.from_list([0.5, 0.1, 0.1, 0.1, 0.1, 0.1])
        result = WeightingEngine().validate_weights(weights)
        assert result.is_valid
        assert any("imbalance" in w.message.lower() for w in result.warnings)

    def test_sum_off_by_more_than_tolerance_is_error(self):
        weights = WeightConfig.from_list([0.3, 0.2, 0.15, 0.2, 0.1, 0.1])
        result = WeightingEngine().validate_weights(weights)
        assert not result.is_valid
        assert any(e.field == "total_weight" for e in result.errors)

    def test_sum_within_tolerance_is_valid(self):
        weights = WeightConfig.from_list([0.2505, 0.2, 0.15, 0.2, 0.1, 0.1])
        assert WeightingEngine().validate_weights(weights).is_valid

    def test_negative_weight_is_error(self):
        weights = WeightConfig.from_list([-0.1, 0.3, 0.2, 0.3, 0.2, 0.1])
        result = WeightingEngine().validate_weights(weights)
        assert not result.is_valid
        assert any(e.field == "asset_quality" for e in result.errors)

    def test_all_zero_is_critical(self):
        weights = WeightConfig.from_list([0.0] * 6)
        result = WeightingEngine().validate_weights(weights)
        assert result.has_fatal_errors
        assert result.errors[0].severity == ValidationSeverity.CRITICAL

    def test_zero_weight_warns(self):
        weights = WeightConfig.from_list([0.3, 0.2, 0.0, 0.3, 0.1, 0.1])
        result = WeightingEngine().validate_weights(weights)
        assert any(w.field == "capital_intensity" for w in result.warnings)


class TestNormalization:
    """Tests for validate-then-normalize."""

    def test_normalizes_off_sum(self):
        engine = WeightingEngine()
        normalized, result = engine.validate_and_normalize(WeightConfig.from_list([0.4, 0.4, 0.4, 0.4, 0.2, 0.2]))
        assert normalized.total == pytest.approx(1.0)
        assert result.is_valid
        assert normalized.asset_quality == pytest.approx(0.2)

    def test_does_not_normalize_negative_weights(self):
        weights = WeightConfig.from_list([-0.2, 0.4, 0.2, 0.2, 0.2, 0.2])
        normalized, result = WeightingEngine().validate_and_normalize(weights)
        assert normalized == weights
        assert not result.is_valid

    def test_all_zero_normalized_to_equal(self):
        normalized = WeightConfig.from_list([0.0] * 6).normalized()
        assert all(w == pytest.approx(1 / 6) for w in normalized.as_dict().values())

    def test_from_list_requires_six(self):
        with pytest.raises(ValueError):
            WeightConfig.from_list([0.5, 0.5])


class TestWeightImpact:
    """Tests for comparing two weight sets."""

    def test_impact_reports_difference(self):
        engine = WeightingEngine()
        scores = make_pillar_scores([5.0, 1.0, 3.0, 3.0, 3.0, 3.0])
        impact = engine.weight_impact(scores, WEIGHT_PROFILES["default"], WEIGHT_PROFILES["aggressive"])
        assert impact.total_difference == pytest.approx(impact.new_total - impact.old_total)
        assert Pillar.ASSET_QUALITY in impact.significant_changes

    def test_unknown_profile(self):
        with pytest.raises(KeyError):
            WeightingEngine.profile("nonexistent")

    def test_profiles_sum_to_one(self):
        for name, weights in WEIGHT_PROFILES.items():
            assert weights.is_valid, name
