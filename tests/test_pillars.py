"""Tests for the six pillar scorers."""

import pytest
from datetime import date

from bdscore.models import (
    BasicInfo,
    CompanyData,
    CompetitivePosition,
    Competitor,
    DevelopmentStage,
    Financials,
    FundingRound,
    FundingType,
    Market,
    MarketContext,
    MarketDynamics,
    Pillar,
    Pipeline,
    Program,
    Regulatory,
    RegulatoryPathway,
    RegulatoryStrategy,
)
from bdscore.score.pillars import (
    PILLAR_SCORERS,
    AssetQualityScorer,
    FinancialReadinessScorer,
    build_scorers,
    explain_score,
)

AS_OF = date(2024, 6, 30)


def make_program(**kwargs) -> Program:
    """Create test program with defaults."""
    defaults = {
        "name": "ONC-101",
        "indication": "Non-small cell lung cancer",
        "stage": DevelopmentStage.PHASE_2,
        "mechanism": "KRAS G12C inhibitor",
        "differentiators": ["Oral dosing", "Best-in-class selectivity"],
        "competitive_position": CompetitivePosition.BEST_IN_CLASS,
    }
    defaults.update(kwargs)
    return Program(**defaults)


def make_company(**kwargs) -> CompanyData:
    """Create test company with defaults."""
    defaults = {
        "basic_info": BasicInfo(
            name="Test Therapeutics",
            therapeutic_areas=["Oncology"],
            stage=DevelopmentStage.PHASE_2,
            description="Precision oncology company",
        ),
        "pipeline": Pipeline(programs=[
            make_program(),
            make_program(name="ONC-202", indication="Colorectal cancer", stage=DevelopmentStage.PHASE_1),
        ]),
        "financials": Financials(
            cash_position=150.0,
            burn_rate=6.0,
            last_funding=FundingRound(type=FundingType.SERIES_B, amount=100.0, date=date(2024, 1, 15)),
        ),
        "market": Market(
            addressable_market=8.0,
            competitors=[Competitor(name="Rival Bio", stage=DevelopmentStage.PHASE_3)],
            market_dynamics=MarketDynamics(growth_rate=0.09, drivers=["Aging population"]),
        ),
        "regulatory": Regulatory(
            regulatory_strategy=RegulatoryStrategy(pathway=RegulatoryPathway.FAST_TRACK, timeline=36),
        ),
    }
    defaults.update(kwargs)
    return CompanyData(**defaults)


def make_sparse_company(**kwargs) -> CompanyData:
    """Company with nothing but a name."""
    defaults = {"basic_info": BasicInfo(name="Sparse Bio")}
    defaults.update(kwargs)
    return CompanyData(**defaults)


CONTEXT = MarketContext(as_of=AS_OF)


class TestPillarBounds:
    """Every scorer returns bounded scores for any input."""

    @pytest.mark.parametrize("pillar", list(Pillar))
    def test_full_company_in_range(self, pillar):
        score = PILLAR_SCORERS[pillar]().score(make_company(), CONTEXT)
        assert 1.0 <= score.raw_score <= 5.0
        assert 0.0 <= score.confidence <= 1.0
        assert score.pillar == pillar

    @pytest.mark.parametrize("pillar", list(Pillar))
    def test_sparse_company_in_range(self, pillar):
        score = PILLAR_SCORERS[pillar]().score(make_sparse_company(), CONTEXT)
        assert 1.0 <= score.raw_score <= 5.0
        assert 0.0 <= score.confidence <= 1.0

    @pytest.mark.parametrize("pillar", list(Pillar))
    def test_factor_weights_sum_to_one(self, pillar):
        score = PILLAR_SCORERS[pillar]().score(make_company(), CONTEXT)
        assert sum(f.weight for f in score.factors) == pytest.approx(1.0)

    def test_sparse_data_lowers_confidence(self):
        for pillar, scorer in build_scorers().items():
            full = scorer.score(make_company(), CONTEXT)
            sparse = scorer.score(make_sparse_company(), CONTEXT)
            assert sparse.confidence < full.confidence, pillar

    def test_one_scorer_per_pillar(self):
        assert set(build_scorers()) == set(Pillar)


class TestAssetQuality:
    """Tests for asset quality scoring."""

    def test_no_programs_scores_minimum(self):
        company = make_company(pipeline=Pipeline(programs=[]))
        score = AssetQualityScorer().score(company, CONTEXT)
        assert score.raw_score == 1.0
        assert score.warnings[0].startswith("Critical")

    def test_later_stage_scores_higher(self):
        early = make_company(pipeline=Pipeline(programs=[make_program(stage=DevelopmentStage.PRECLINICAL)]))
        late = make_company(pipeline=Pipeline(programs=[make_program(stage=DevelopmentStage.PHASE_3)]))
        scorer = AssetQualityScorer()
        assert scorer.score(late, CONTEXT).raw_score > scorer.score(early, CONTEXT).raw_score

    def test_missing_differentiators_warns(self):
        company = make_company(pipeline=Pipeline(programs=[make_program(differentiators=[])]))
        score = AssetQualityScorer().score(company, CONTEXT)
        assert any("differentiators" in w for w in score.warnings)


class TestFinancialReadiness:
    """Tests for financial readiness scoring."""

    def test_short_runway_is_critical(self):
        company = make_company(financials=Financials(cash_position=10.0, burn_rate=5.0))
        score = FinancialReadinessScorer().score(company, CONTEXT)
        assert "Critical: Less than 6 months runway remaining" in score.warnings

    def test_runway_under_year_warns(self):
        company = make_company(financials=Financials(cash_position=50.0, burn_rate=5.0))
        score = FinancialReadinessScorer().score(company, CONTEXT)
        assert "Warning: Less than 12 months runway remaining" in score.warnings

    def test_long_runway_beats_short(self):
        scorer = FinancialReadinessScorer()
        short = scorer.score(make_company(financials=Financials(cash_position=20.0, burn_rate=5.0)), CONTEXT)
        long = scorer.score(make_company(financials=Financials(cash_position=300.0, burn_rate=5.0)), CONTEXT)
        assert long.raw_score > short.raw_score

    def test_stale_funding_warns(self):
        funding = FundingRound(type=FundingType.SERIES_A, amount=30.0, date=date(2021, 1, 1))
        company = make_company(financials=Financials(cash_position=150.0, burn_rate=6.0, last_funding=funding))
        score = FinancialReadinessScorer().score(company, CONTEXT)
        assert "Stale funding data (>2 years)" in score.warnings

    def test_zero_burn_does_not_crash(self):
        company = make_company(financials=Financials(cash_position=150.0, burn_rate=0.0))
        score = FinancialReadinessScorer().score(company, CONTEXT)
        assert 1.0 <= score.raw_score <= 5.0


class TestDeterminism:
    """Scoring depends only on the company and the context date."""

    def test_same_input_same_output(self):
        company = make_company()
        for scorer in build_scorers().values():
            assert scorer.score(company, CONTEXT) == scorer.score(company, CONTEXT)


class TestExplainScore:
    """Tests for score explanations."""

    def test_explanation_covers_all_factors(self):
        score = AssetQualityScorer().score(make_company(), CONTEXT)
        explanation = explain_score(score)
        assert explanation.pillar == Pillar.ASSET_QUALITY
        assert len(explanation.factors) == len(score.factors)
        assert explanation.methodology

    def test_contributions_sum_to_raw_score(self):
        score = AssetQualityScorer().score(make_company(), CONTEXT)
        explanation = explain_score(score)
        assert sum(f.contribution for f in explanation.factors) == pytest.approx(score.raw_score, abs=1e-3)

    def test_warnings_become_limitations(self):
        score = AssetQualityScorer().score(make_company(pipeline=Pipeline(programs=[])), CONTEXT)
        explanation = explain_score(score)
        assert explanation.limitations == score.warnings
        assert "Limitations" in explanation.as_text()

    def test_field_requirements_declared(self):
        scorer = FinancialReadinessScorer()
        assert "financials.cash_position" in scorer.required_fields()
        assert set(scorer.required_fields()).isdisjoint(scorer.optional_fields())
