"""Tests for the valuation engine and rNPV sensitivity model."""

import pytest
from datetime import date

from bdscore.comparables import ComparablesMatcher, ComparablesRepository
from bdscore.models import (
    BasicInfo,
    Comparable,
    ComparableMatch,
    ComparableProgram,
    CompanyData,
    Competitor,
    DevelopmentStage,
    Financials,
    Market,
    Pipeline,
    Program,
    Regulatory,
    RegulatoryPathway,
    RegulatoryStrategy,
    ScenarioName,
    TransactionType,
    ValuationFlag,
)
from bdscore.valuation import RnpvAssumptions, ValuationEngine, assumptions_for, rnpv, sensitivity_table

AS_OF = date(2024, 6, 30)


def make_company(**kwargs) -> CompanyData:
    """Create test company with defaults."""
    defaults = {
        "basic_info": BasicInfo(name="Valuco", therapeutic_areas=["Oncology"], stage=DevelopmentStage.PHASE_2),
        "pipeline": Pipeline(programs=[
            Program(name="V-1", indication="Lung cancer", stage=DevelopmentStage.PHASE_2, mechanism="KRAS inhibitor"),
        ]),
        "financials": Financials(cash_position=90.0, burn_rate=5.0),
        "market": Market(
            addressable_market=10.0,
            competitors=[Competitor(name="Rival", stage=DevelopmentStage.PHASE_3)],
        ),
    }
    defaults.update(kwargs)
    return CompanyData(**defaults)


def make_comparable(**kwargs) -> Comparable:
    defaults = {
        "id": "cmp",
        "company_name": "Deal Co",
        "transaction_type": TransactionType.ACQUISITION,
        "date": date(2024, 1, 1),
        "valuation": 500.0,
        "stage": DevelopmentStage.PHASE_2,
        "therapeutic_areas": ["Oncology"],
        "lead_program": ComparableProgram(
            name="D-1", indication="Lung cancer", mechanism="KRAS inhibitor", stage=DevelopmentStage.PHASE_2,
        ),
        "market_size": 10.0,
        "confidence": 0.8,
    }
    defaults.update(kwargs)
    return Comparable(**defaults)


def make_match(valuation: float, similarity: float = 0.8, confidence: float = 0.8, name: str = "Deal Co") -> ComparableMatch:
    return ComparableMatch(
        comparable=make_comparable(company_name=name, valuation=valuation, confidence=confidence),
        similarity=similarity,
        confidence=confidence,
    )


def make_engine(top_k: int = 5) -> ValuationEngine:
    return ValuationEngine(matcher=ComparablesMatcher(ComparablesRepository()), top_k=top_k)


class TestCalculateValuation:
    """Tests for comparables-based valuation."""

    def test_no_comparables(self):
        result = make_engine().calculate_valuation(make_company(), [], as_of=AS_OF)
        assert result.base_valuation is None
        assert result.range is None
        assert result.scenarios == []
        assert result.confidence == 0.0
        assert result.insufficient_comparables
        assert len(result.risks) == 4

    def test_equal_weights_average(self):
        matches = [make_match(400.0, name=f"Co {i}") for i in range(2)] + [make_match(700.0, name="Co 9")]
        result = make_engine(top_k=3).calculate_valuation(make_company(), matches, as_of=AS_OF)
        assert result.base_valuation == pytest.approx(500.0)

    def test_higher_score_carries_more_weight(self):
        matches = [make_match(1000.0, similarity=1.0, name="Strong"), make_match(100.0, similarity=0.2, name="Weak")]
        result = make_engine(top_k=2).calculate_valuation(make_company(), matches, as_of=AS_OF)
        assert result.base_valuation > 550.0

    def test_only_top_k_used(self):
        matches = [make_match(500.0, similarity=0.9, name=f"Top {i}") for i in range(3)]
        matches.append(make_match(5000.0, similarity=0.1, name="Outlier"))
        result = make_engine(top_k=3).calculate_valuation(make_company(), matches, as_of=AS_OF)
        assert len(result.comparables_used) == 3
        assert result.base_valuation == pytest.approx(500.0)

    def test_fewer_than_k_reduces_confidence(self):
        matches = [make_match(500.0, name="A"), make_match(520.0, name="B")]
        result = make_engine(top_k=5).calculate_valuation(make_company(), matches, as_of=AS_OF)
        assert result.confidence == pytest.approx(0.8 * 2 / 5)
        assert ValuationFlag.INSUFFICIENT_COMPARABLES in result.flags

    def test_full_set_keeps_mean_confidence(self):
        matches = [make_match(500.0 + i * 50, confidence=0.7, name=f"Co {i}") for i in range(5)]
        result = make_engine(top_k=5).calculate_valuation(make_company(), matches, as_of=AS_OF)
        assert result.confidence == pytest.approx(0.7)
        assert ValuationFlag.INSUFFICIENT_COMPARABLES not in result.flags

    def test_wide_dispersion_flagged(self):
        matches = [make_match(100.0, name="Low"), make_match(1000.0, name="High")]
        result = make_engine(top_k=2).calculate_valuation(make_company(), matches, as_of=AS_OF)
        assert ValuationFlag.WIDE_DISPERSION in result.flags
        assert result.dispersion > 0.75

    def test_narrow_dispersion_flagged(self):
        matches = [make_match(500.0, name="A"), make_match(501.0, name="B")]
        result = make_engine(top_k=2).calculate_valuation(make_company(), matches, as_of=AS_OF)
        assert ValuationFlag.NARROW_DISPERSION in result.flags

    def test_single_comparable_not_narrow(self):
        result = make_engine(top_k=1).calculate_valuation(make_company(), [make_match(500.0)], as_of=AS_OF)
        assert ValuationFlag.NARROW_DISPERSION not in result.flags
        assert result.dispersion == 0.0

    def test_range_brackets_base(self):
        matches = [make_match(300.0, name="A"), make_match(600.0, name="B"), make_match(900.0, name="C")]
        result = make_engine(top_k=3).calculate_valuation(make_company(), matches, as_of=AS_OF)
        assert result.range.low <= result.range.base <= result.range.high
        assert result.range.base == pytest.approx(result.base_valuation)

    def test_plain_comparables_are_ranked(self):
        comparables = [make_comparable(id="a", company_name="A"), make_comparable(id="b", company_name="B", valuation=700.0)]
        result = make_engine(top_k=2).calculate_valuation(make_company(), comparables, as_of=AS_OF)
        assert len(result.comparables_used) == 2
        assert all(isinstance(m, ComparableMatch) for m in result.comparables_used)
        assert 500.0 <= result.base_valuation <= 700.0

    def test_deterministic(self):
        matches = [make_match(300.0, name="A"), make_match(600.0, name="B")]
        engine = make_engine(top_k=2)
        first = engine.calculate_valuation(make_company(), matches, as_of=AS_OF)
        second = engine.calculate_valuation(make_company(), matches, as_of=AS_OF)
        assert first.base_valuation == second.base_valuation
        assert first.sensitivity == second.sensitivity


class TestScenarios:
    """Tests for Bear / Base / Bull scenarios."""

    def test_probabilities_sum_to_one(self):
        scenarios = make_engine().generate_scenarios(500.0, 0.3)
        assert sum(s.probability for s in scenarios) == pytest.approx(1.0)
        assert [s.name for s in scenarios] == [ScenarioName.BEAR, ScenarioName.BASE, ScenarioName.BULL]

    def test_ordering(self):
        bear, base, bull = make_engine().generate_scenarios(500.0, 0.3)
        assert bear.valuation <= base.valuation <= bull.valuation
        assert base.valuation == 500.0

    def test_default_dispersion_uses_minimum_spread(self):
        bear, _, bull = make_engine().generate_scenarios(100.0)
        assert bear.valuation == pytest.approx(92.5)
        assert bull.valuation == pytest.approx(107.5)

    def test_bear_floor(self):
        bear, _, _ = make_engine().generate_scenarios(100.0, 2.0)
        assert bear.valuation == pytest.approx(10.0)

    def test_timelines(self):
        bear, base, bull = make_engine().generate_scenarios(100.0, timeline=36)
        assert (bear.timeline, base.timeline, bull.timeline) == (54, 36, 27)

    def test_expected_value(self):
        matches = [make_match(400.0, name="A"), make_match(600.0, name="B")]
        result = make_engine(top_k=2).calculate_valuation(make_company(), matches, as_of=AS_OF)
        assert result.expected_value == pytest.approx(result.base_valuation)


class TestSensitivity:
    """Tests for the rNPV sensitivity table."""

    def test_four_rows(self):
        rows = sensitivity_table(500.0, assumptions_for(make_company(), 0.12))
        assert [r.assumption for r in rows] == ["Peak sales", "Success probability", "Time to peak", "Discount rate"]
        assert all(r.base_valuation == 500.0 for r in rows)

    def test_directions(self):
        rows = {r.assumption: r for r in sensitivity_table(500.0, assumptions_for(make_company(), 0.12))}
        assert rows["Peak sales"].high_valuation > 500.0 > rows["Peak sales"].low_valuation
        assert rows["Success probability"].high_valuation > rows["Success probability"].low_valuation
        assert rows["Time to peak"].high_valuation < rows["Time to peak"].low_valuation
        assert rows["Discount rate"].high_valuation < rows["Discount rate"].low_valuation

    def test_peak_sales_is_linear(self):
        rows = sensitivity_table(500.0, assumptions_for(make_company(), 0.12))
        assert rows[0].high_valuation == pytest.approx(600.0)
        assert rows[0].low_valuation == pytest.approx(400.0)

    def test_higher_discount_rate_lowers_rnpv(self):
        company = make_company()
        assert rnpv(assumptions_for(company, 0.20)) < rnpv(assumptions_for(company, 0.10))

    def test_zero_rnpv_keeps_base(self):
        rows = sensitivity_table(500.0, RnpvAssumptions(0.0, 0.5, 5.0, 0.12))
        assert all(r.low_valuation == r.high_valuation == 500.0 for r in rows)

    def test_success_probability_capped(self):
        assumptions = RnpvAssumptions(100.0, 0.95, 3.0, 0.1).perturbed("success_probability", 1.2)
        assert assumptions.success_probability == 1.0

    def test_assumptions_from_company(self):
        company = make_company(regulatory=Regulatory(
            regulatory_strategy=RegulatoryStrategy(pathway=RegulatoryPathway.FAST_TRACK),
        ))
        a = assumptions_for(company, 0.12)
        assert a.peak_sales == pytest.approx(10.0 * 1000 * 0.05)
        assert a.success_probability == pytest.approx(0.5 * 0.9 * 0.9)
        assert a.time_to_peak == pytest.approx(48 / 12 + 3)

    def test_valuation_carries_sensitivity(self):
        result = make_engine(top_k=1).calculate_valuation(make_company(), [make_match(500.0)], as_of=AS_OF)
        assert len(result.sensitivity) == 4


class TestDriversAndRisks:
    def test_drivers_without_scoring(self):
        drivers = make_engine().identify_drivers(make_company())
        assert [d.name for d in drivers] == ["Market Size", "Development Stage", "Cash Runway"]

    def test_risks(self):
        risks = {r.name: r for r in make_engine().assess_risks(make_company())}
        assert risks["Clinical Risk"].probability == pytest.approx(0.5)
        assert risks["Competitive Risk"].probability == pytest.approx(0.1)
        # 18 months of runway
        assert risks["Funding Risk"].probability == pytest.approx(0.4)

    def test_expected_loss(self):
        risks = {r.name: r for r in make_engine().assess_risks(make_company())}
        assert risks["Regulatory Risk"].expected_loss == pytest.approx(0.3 * 0.6)

    def test_sensitivity_deltas(self):
        rows = sensitivity_table(500.0, assumptions_for(make_company(), 0.12))
        peak = rows[0]
        assert peak.low_delta == pytest.approx(-100.0)
        assert peak.high_delta == pytest.approx(100.0)
        assert peak.swing == pytest.approx(200.0)
