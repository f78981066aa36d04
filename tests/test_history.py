"""Tests for the historical score sink."""

from datetime import date

from bdscore.history import HistoricalScoreSink
from bdscore.models import (
    BasicInfo,
    CompanyData,
    DevelopmentStage,
    Financials,
    Market,
    MarketContext,
    Pipeline,
    Program,
)
from bdscore.models.database import DBScoringRecord, DBValuationRecord, init_db
from bdscore.score import ScoringEngine
from bdscore.score.engine import default_config
from bdscore.valuation import ValuationEngine

CONTEXT = MarketContext(as_of=date(2024, 6, 30))


def make_company(**kwargs) -> CompanyData:
    """Create test company with defaults."""
    defaults = {
        "basic_info": BasicInfo(name="Archive Bio", therapeutic_areas=["Oncology"], stage=DevelopmentStage.PHASE_2),
        "pipeline": Pipeline(programs=[
            Program(name="AB-1", indication="Melanoma", stage=DevelopmentStage.PHASE_2, mechanism="PD-1 inhibitor"),
        ]),
        "financials": Financials(cash_position=150.0, burn_rate=8.0),
        "market": Market(addressable_market=12.0),
    }
    defaults.update(kwargs)
    return CompanyData(**defaults)


def make_sink(tmp_path):
    factory = init_db(f"sqlite:///{tmp_path / 'history.db'}")
    return HistoricalScoreSink(session_factory=factory), factory


class TestHistoricalScoreSink:
    """Tests for writing score and valuation history."""

    def test_record_score(self, tmp_path):
        sink, factory = make_sink(tmp_path)
        config = default_config()
        result = ScoringEngine(parallel=False).evaluate_company(make_company(), config, CONTEXT)

        record_id = sink.record_score(result, config)

        session = factory()
        try:
            row = session.get(DBScoringRecord, record_id)
            assert row.company_name == "Archive Bio"
            assert row.overall_score == result.overall_score
            assert row.recommendation == result.recommendation.value
            assert len(row.get_pillar_scores()) == 6
            assert row.get_weights()["asset_quality"] == 0.25
        finally:
            session.close()

    def test_weights_omitted_without_config(self, tmp_path):
        sink, factory = make_sink(tmp_path)
        result = ScoringEngine(parallel=False).evaluate_company(make_company(), context=CONTEXT)
        record_id = sink.record_score(result)

        session = factory()
        try:
            assert session.get(DBScoringRecord, record_id).get_weights() == {}
        finally:
            session.close()

    def test_record_valuation(self, tmp_path):
        sink, factory = make_sink(tmp_path)
        valuation = ValuationEngine().calculate_valuation(make_company(), [], as_of=CONTEXT.as_of)

        record_id = sink.record_valuation(valuation)

        session = factory()
        try:
            row = session.get(DBValuationRecord, record_id)
            assert row.base_valuation is None
            assert row.get_scenarios() == []
            assert "insufficient_comparables" in row.flags
            assert row.get_comparable_ids() == []
        finally:
            session.close()

    def test_records_accumulate(self, tmp_path):
        sink, factory = make_sink(tmp_path)
        engine = ScoringEngine(parallel=False)
        for _ in range(3):
            sink.record_score(engine.evaluate_company(make_company(), context=CONTEXT))

        session = factory()
        try:
            assert session.query(DBScoringRecord).count() == 3
        finally:
            session.close()
