"""Tests for the scoring engine."""

import pytest
from datetime import date

from bdscore.comparables import ComparablesMatcher
from bdscore.errors import InputError
from bdscore.models import (
    BasicInfo,
    CompanyData,
    CompetitivePosition,
    Competitor,
    DevelopmentStage,
    EvaluationError,
    Financials,
    InvestmentRecommendation,
    Market,
    MarketContext,
    Pillar,
    PillarScore,
    PillarScores,
    Pipeline,
    Program,
    RiskLevel,
    ScoringConfig,
    ScoringResult,
    WeightConfig,
)
from bdscore.models.scoring import RecommendationThresholds, RiskThresholds
from bdscore.score import ScoringEngine

CONTEXT = MarketContext(as_of=date(2024, 6, 30))


def make_company(**kwargs) -> CompanyData:
    """Create test company with defaults."""
    defaults = {
        "basic_info": BasicInfo(
            name="Neurovance",
            therapeutic_areas=["Neurology"],
            stage=DevelopmentStage.PHASE_2,
        ),
        "pipeline": Pipeline(programs=[
            Program(
                name="NV-01",
                indication="Alzheimer's disease",
                stage=DevelopmentStage.PHASE_2,
                mechanism="Tau aggregation inhibitor",
                differentiators=["Oral"],
                competitive_position=CompetitivePosition.FIRST_IN_CLASS,
            ),
        ]),
        "financials": Financials(cash_position=120.0, burn_rate=5.0),
        "market": Market(
            addressable_market=12.0,
            competitors=[Competitor(name="Big Pharma", stage=DevelopmentStage.PHASE_3)],
        ),
    }
    defaults.update(kwargs)
    return CompanyData(**defaults)


def make_pillar_scores(raw: list[float], confidence: float = 0.8) -> PillarScores:
    return PillarScores.from_dict({
        pillar: PillarScore(pillar=pillar, raw_score=score, confidence=confidence)
        for pillar, score in zip(Pillar, raw)
    })


class TestEvaluateCompany:
    """Tests for end-to-end evaluation."""

    def test_returns_scoring_result(self):
        result = ScoringEngine().evaluate_company(make_company(), context=CONTEXT)
        assert isinstance(result, ScoringResult)
        assert 1.0 <= result.overall_score <= 5.0
        assert 0.0 <= result.confidence.overall <= 1.0
        assert result.company_name == "Neurovance"

    def test_overall_equals_weighted_total(self):
        result = ScoringEngine().evaluate_company(make_company(), context=CONTEXT)
        expected = sum(
            result.pillar_scores.get(p).raw_score * WeightConfig().get(p) for p in Pillar
        )
        assert result.overall_score == pytest.approx(expected, abs=1e-5)

    def test_idempotent(self):
        engine = ScoringEngine()
        first = engine.evaluate_company(make_company(), context=CONTEXT)
        second = engine.evaluate_company(make_company(), context=CONTEXT)
        assert first.overall_score == second.overall_score
        assert first.pillar_scores == second.pillar_scores
        assert first.recommendation == second.recommendation

    def test_parallel_matches_sequential(self):
        parallel = ScoringEngine(parallel=True).evaluate_company(make_company(), context=CONTEXT)
        sequential = ScoringEngine(parallel=False).evaluate_company(make_company(), context=CONTEXT)
        assert parallel.pillar_scores == sequential.pillar_scores
        assert parallel.overall_score == sequential.overall_score

    def test_empty_name_returns_evaluation_error(self):
        company = make_company(basic_info=BasicInfo(name="  "))
        result = ScoringEngine().evaluate_company(company, context=CONTEXT)
        assert isinstance(result, EvaluationError)
        assert result.errors

    def test_evaluate_or_raise_raises_input_error(self):
        company = make_company(basic_info=BasicInfo(name=""))
        with pytest.raises(InputError):
            ScoringEngine().evaluate_or_raise(company, context=CONTEXT)

    def test_no_programs_still_scores(self):
        company = make_company(pipeline=Pipeline(programs=[]))
        result = ScoringEngine().evaluate_company(company, context=CONTEXT)
        assert isinstance(result, ScoringResult)
        assert result.pillar_scores.asset_quality.raw_score == 1.0

    def test_negative_cash_lowers_confidence(self):
        engine = ScoringEngine()
        healthy = engine.evaluate_company(make_company(), context=CONTEXT)
        negative = engine.evaluate_company(
            make_company(financials=Financials(cash_position=-5.0, burn_rate=5.0)), context=CONTEXT,
        )
        assert isinstance(negative, ScoringResult)
        assert negative.confidence.overall < healthy.confidence.overall
        assert any("negative" in w.lower() for w in negative.warnings)

    def test_invalid_config_is_rejected(self):
        config = ScoringConfig(name="Broken", weights=WeightConfig.from_list([0.5, 0.5, 0.5, 0.0, 0.0, 0.0]))
        result = ScoringEngine().evaluate_company(make_company(), config, CONTEXT)
        assert isinstance(result, EvaluationError)

    def test_imbalanced_config_warns_but_scores(self):
        config = ScoringConfig(name="Lopsided", weights=WeightConfig.from_list([0.5, 0.1, 0.1, 0.1, 0.1, 0.1]))
        result = ScoringEngine().evaluate_company(make_company(), config, CONTEXT)
        assert isinstance(result, ScoringResult)
        assert any("imbalance" in w.lower() for w in result.warnings)

    def test_config_name_recorded(self):
        config = ScoringConfig(name="Custom", weights=WeightConfig.from_list([0.2, 0.2, 0.2, 0.2, 0.1, 0.1]))
        result = ScoringEngine().evaluate_company(make_company(), config, CONTEXT)
        assert result.config_name == "Custom"

    def test_comparables_feed_confidence(self):
        company = make_company()
        search = ComparablesMatcher().find_comparables_for_company(company, as_of=CONTEXT.as_of)
        result = ScoringEngine().evaluate_company(company, context=CONTEXT, comparables=search)
        if search.matches:
            assert result.confidence.comparable_quality > 0.0
        else:
            assert result.confidence.comparable_quality == pytest.approx(0.15)


class TestRecommendation:
    """Tests for score-to-recommendation mapping."""

    @pytest.mark.parametrize("score,expected", [
        (4.5, InvestmentRecommendation.STRONG_BUY),
        (4.2, InvestmentRecommendation.STRONG_BUY),
        (3.835, InvestmentRecommendation.BUY),
        (3.0, InvestmentRecommendation.HOLD),
        (2.0, InvestmentRecommendation.SELL),
        (1.2, InvestmentRecommendation.STRONG_SELL),
    ])
    def test_thresholds(self, score, expected):
        assert ScoringEngine.recommend(score, RecommendationThresholds()) == expected

    def test_custom_thresholds(self):
        strict = RecommendationThresholds(strong_buy=4.8, buy=4.0, hold=3.0, sell=2.0)
        assert ScoringEngine.recommend(3.835, strict) == InvestmentRecommendation.HOLD


class TestRiskLevel:
    """Tests for risk assessment."""

    def test_strong_scores_low_risk(self):
        scores = make_pillar_scores([4.0, 4.0, 4.0, 4.0, 4.8, 4.8])
        assert ScoringEngine.assess_risk(scores, 0.9, RiskThresholds()) == RiskLevel.LOW

    def test_weak_regulatory_and_financial_raise_risk(self):
        scores = make_pillar_scores([5.0, 5.0, 5.0, 5.0, 1.0, 1.0])
        assert ScoringEngine.assess_risk(scores, 0.3, RiskThresholds()) == RiskLevel.VERY_HIGH

    def test_low_confidence_raises_risk(self):
        scores = make_pillar_scores([3.5, 3.5, 3.5, 3.5, 3.5, 3.5])
        confident = ScoringEngine.assess_risk(scores, 0.95, RiskThresholds())
        unsure = ScoringEngine.assess_risk(scores, 0.1, RiskThresholds())
        order = list(RiskLevel)
        assert order.index(unsure) > order.index(confident)


class TestStatistics:
    """Tests for result statistics."""

    def test_empty(self):
        assert ScoringEngine.statistics([])["count"] == 0

    def test_counts(self):
        engine = ScoringEngine()
        results = [engine.evaluate_company(make_company(), context=CONTEXT) for _ in range(3)]
        stats = ScoringEngine.statistics(results)
        assert stats["count"] == 3
        assert sum(stats["score_distribution"].values()) == 3
