"""Tests for comparables filtering, matching, caching and analytics."""

import json
import pytest
from datetime import date

from bdscore.comparables import (
    ComparableFilter,
    ComparablesMatcher,
    ComparablesRepository,
    SearchCache,
    analyze,
    criteria_from_company,
    validate_comparable,
)
from bdscore.comparables.filters import _matches_any
from bdscore.errors import PersistenceError
from bdscore.models import (
    BasicInfo,
    Comparable,
    ComparableCriteria,
    ComparableProgram,
    CompanyData,
    CompetitivePosition,
    DevelopmentStage,
    Financials,
    Market,
    Pipeline,
    Program,
    TargetProfile,
    TransactionType,
)
from bdscore.models.comparables import ComparableFinancials
from bdscore.models.database import init_db

AS_OF = date(2024, 6, 30)


def make_comparable(**kwargs) -> Comparable:
    """Create test comparable with defaults."""
    defaults = {
        "id": "cmp-1",
        "company_name": "Kinase Bio",
        "transaction_type": TransactionType.ACQUISITION,
        "date": AS_OF,
        "valuation": 500.0,
        "stage": DevelopmentStage.PHASE_2,
        "therapeutic_areas": ["Oncology"],
        "lead_program": ComparableProgram(
            name="KB-1",
            indication="Lung cancer",
            mechanism="KRAS inhibitor",
            stage=DevelopmentStage.PHASE_2,
            competitive_position=CompetitivePosition.BEST_IN_CLASS,
        ),
        "market_size": 10.0,
        "financials": ComparableFinancials(cash_at_transaction=100.0, burn_rate=5.0, runway=20.0),
        "confidence": 0.8,
    }
    defaults.update(kwargs)
    return Comparable(**defaults)


def make_profile(**kwargs) -> TargetProfile:
    """Profile identical to the default comparable."""
    defaults = {
        "therapeutic_areas": ["Oncology"],
        "stage": DevelopmentStage.PHASE_2,
        "market_size": 10.0,
        "mechanism": "KRAS inhibitor",
        "competitive_position": CompetitivePosition.BEST_IN_CLASS,
        "cash_position": 100.0,
        "burn_rate": 5.0,
        "runway": 20.0,
    }
    defaults.update(kwargs)
    return TargetProfile(**defaults)


def make_company(**kwargs) -> CompanyData:
    defaults = {
        "basic_info": BasicInfo(name="Target Bio", therapeutic_areas=["Oncology"], stage=DevelopmentStage.PHASE_2),
        "pipeline": Pipeline(programs=[
            Program(name="TB-1", indication="Lung cancer", stage=DevelopmentStage.PHASE_2, mechanism="KRAS inhibitor"),
        ]),
        "financials": Financials(cash_position=100.0, burn_rate=5.0),
        "market": Market(addressable_market=10.0),
    }
    defaults.update(kwargs)
    return CompanyData(**defaults)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class TestMatching:
    """Tests for similarity scoring and ranking."""

    def test_identical_candidate_scores_one(self):
        match = ComparablesMatcher(ComparablesRepository()).score_match(make_comparable(), make_profile(), AS_OF)
        assert match.similarity == pytest.approx(1.0)
        assert match.matching_factors.therapeutic_area_match == 1.0

    def test_identical_blank_mechanism_and_unknown_position_score_one(self):
        comparable = make_comparable(lead_program=ComparableProgram(
            name="KB-1", indication="Lung cancer", stage=DevelopmentStage.PHASE_2,
        ))
        profile = make_profile(mechanism=None, competitive_position=CompetitivePosition.UNKNOWN)
        match = ComparablesMatcher(ComparablesRepository()).score_match(comparable, profile, AS_OF)
        assert match.matching_factors.mechanism_match == 1.0
        assert match.matching_factors.competitive_position_match == 1.0
        assert match.similarity == pytest.approx(1.0)

    def test_unknown_against_known_position_is_neutral(self):
        profile = make_profile(competitive_position=CompetitivePosition.UNKNOWN)
        match = ComparablesMatcher(ComparablesRepository()).score_match(make_comparable(), profile, AS_OF)
        assert match.matching_factors.competitive_position_match == 0.5

    def test_similarity_bounded(self):
        matcher = ComparablesMatcher(ComparablesRepository())
        odd = make_comparable(
            therapeutic_areas=["Dermatology"],
            stage=DevelopmentStage.PRECLINICAL,
            market_size=0.5,
            date=date(2010, 1, 1),
        )
        match = matcher.score_match(odd, make_profile(), AS_OF)
        assert 0.0 <= match.similarity < 0.5

    def test_ranked_by_weighted_score(self):
        close = make_comparable(id="a", company_name="Close")
        far = make_comparable(id="b", company_name="Far", therapeutic_areas=["Cardiology"])
        matches = ComparablesMatcher(ComparablesRepository()).rank([far, close], make_profile(), AS_OF)
        assert [m.comparable.company_name for m in matches] == ["Close", "Far"]

    def test_equal_scores_prefer_newer(self):
        # Both dates after as_of, so time relevance is 1.0 for each
        older = make_comparable(id="a", company_name="A Older", date=date(2024, 7, 1))
        newer = make_comparable(id="b", company_name="Z Newer", date=date(2024, 8, 1))
        matches = ComparablesMatcher(ComparablesRepository()).rank([older, newer], make_profile(), AS_OF)
        assert matches[0].weighted_score == matches[1].weighted_score
        assert [m.comparable.company_name for m in matches] == ["Z Newer", "A Older"]

    def test_equal_scores_and_dates_fall_back_to_name(self):
        first = make_comparable(id="a", company_name="Beta")
        second = make_comparable(id="b", company_name="Alpha")
        matches = ComparablesMatcher(ComparablesRepository()).rank([first, second], make_profile(), AS_OF)
        assert [m.comparable.company_name for m in matches] == ["Alpha", "Beta"]

    def test_weighted_score_blend(self):
        match = ComparablesMatcher(ComparablesRepository()).score_match(
            make_comparable(confidence=0.5), make_profile(), AS_OF,
        )
        assert match.weighted_score == pytest.approx(0.7 * match.similarity + 0.3 * 0.5)


class TestFindComparables:
    """Tests for filtered searches over the pool."""

    def test_empty_pool(self):
        result = ComparablesMatcher(ComparablesRepository()).find_comparables(ComparableCriteria(), as_of=AS_OF)
        assert result.total_found == 0
        assert result.matches == []
        assert result.average_confidence == 0.0

    def test_omitted_as_of_uses_today(self):
        matcher = ComparablesMatcher(ComparablesRepository([make_comparable(date=date(2020, 1, 1))]))
        implicit = matcher.find_comparables(ComparableCriteria(max_age=None), profile=make_profile())
        explicit = matcher.find_comparables(ComparableCriteria(max_age=None), profile=make_profile(), as_of=date.today())
        assert implicit.matches[0].matching_factors.time_relevance == explicit.matches[0].matching_factors.time_relevance

    def test_everything_filtered(self):
        repo = ComparablesRepository([make_comparable()])
        criteria = ComparableCriteria(therapeutic_areas=["Cardiology"])
        result = ComparablesMatcher(repo).find_comparables(criteria, as_of=AS_OF)
        assert result.total_found == 0
        assert not result.matches

    def test_max_results_truncates_but_counts_all(self):
        repo = ComparablesRepository([make_comparable(id=f"c{i}", company_name=f"Co {i}") for i in range(5)])
        result = ComparablesMatcher(repo).find_comparables(ComparableCriteria(), max_results=2, as_of=AS_OF)
        assert result.total_found == 5
        assert len(result.matches) == 2

    def test_for_company_uses_derived_criteria(self):
        repo = ComparablesRepository([
            make_comparable(id="a", company_name="Match"),
            make_comparable(id="b", company_name="Wrong Stage", stage=DevelopmentStage.PHASE_3),
        ])
        result = ComparablesMatcher(repo).find_comparables_for_company(make_company(), as_of=AS_OF)
        assert [m.comparable.company_name for m in result.matches] == ["Match"]

    def test_sample_pool_search(self):
        result = ComparablesMatcher().find_comparables(
            ComparableCriteria(therapeutic_areas=["Oncology"], max_age=None), as_of=AS_OF,
        )
        assert result.total_found >= 1
        assert all(
            any("oncology" in a.lower() for a in m.comparable.therapeutic_areas) for m in result.matches
        )


class TestFilters:
    """Tests for hard pre-filters."""

    def test_failures_listed(self):
        criteria = ComparableCriteria(
            stages=[DevelopmentStage.PHASE_3],
            min_valuation=1000.0,
            min_confidence=0.9,
        )
        result = ComparableFilter().apply(make_comparable(), criteria, AS_OF)
        assert not result.passed
        assert set(result.failed_filters) == {"stage", "min_valuation", "min_confidence"}

    def test_too_old(self):
        result = ComparableFilter().apply(make_comparable(date=date(2015, 1, 1)), ComparableCriteria(), AS_OF)
        assert "max_age" in result.failed_filters

    def test_default_criteria_pass(self):
        assert ComparableFilter().apply(make_comparable(), ComparableCriteria(), AS_OF).passed

    def test_matches_any_substring(self):
        assert _matches_any(["onco"], ["Oncology"])
        assert _matches_any(["Immuno-Oncology"], ["oncology"])
        assert not _matches_any(["Cardiology"], ["Oncology"])
        assert not _matches_any(["  "], ["Oncology"])


class TestCriteria:
    def test_cache_key_order_insensitive(self):
        a = ComparableCriteria(therapeutic_areas=["Oncology", "Immunology"])
        b = ComparableCriteria(therapeutic_areas=["immunology", "oncology"])
        assert a.cache_key() == b.cache_key()

    def test_cache_key_differs_on_bounds(self):
        assert ComparableCriteria(min_market_size=1.0).cache_key() != ComparableCriteria().cache_key()

    def test_criteria_from_company(self):
        criteria = criteria_from_company(make_company())
        assert criteria.stages == [DevelopmentStage.PHASE_2]
        assert criteria.min_market_size == pytest.approx(5.0)
        assert criteria.max_market_size == pytest.approx(20.0)


class TestSearchCache:
    """Tests for the TTL cache."""

    def test_second_search_is_cached(self):
        cache = SearchCache(ttl_seconds=60, clock=FakeClock())
        matcher = ComparablesMatcher(ComparablesRepository([make_comparable()]), cache=cache)
        first = matcher.find_comparables(ComparableCriteria(), as_of=AS_OF)
        second = matcher.find_comparables(ComparableCriteria(), as_of=AS_OF)
        assert second is first
        assert cache.hits == 1

    def test_entries_expire(self):
        clock = FakeClock()
        cache = SearchCache(ttl_seconds=60, clock=clock)
        matcher = ComparablesMatcher(ComparablesRepository([make_comparable()]), cache=cache)
        first = matcher.find_comparables(ComparableCriteria(), as_of=AS_OF)
        clock.now = 61
        second = matcher.find_comparables(ComparableCriteria(), as_of=AS_OF)
        assert second is not first
        assert cache.misses == 2

    def test_refresh_invalidates(self):
        cache = SearchCache(ttl_seconds=60, clock=FakeClock())
        repo = ComparablesRepository([make_comparable()])
        matcher = ComparablesMatcher(repo, cache=cache)
        assert matcher.find_comparables(ComparableCriteria(), as_of=AS_OF).total_found == 1
        repo.refresh([])
        assert len(cache) == 0
        assert matcher.find_comparables(ComparableCriteria(), as_of=AS_OF).total_found == 0

    def test_purge_expired(self):
        clock = FakeClock()
        cache = SearchCache(ttl_seconds=10, clock=clock)
        matcher = ComparablesMatcher(ComparablesRepository([make_comparable()]), cache=cache)
        matcher.find_comparables(ComparableCriteria(), as_of=AS_OF)
        clock.now = 11
        assert cache.purge_expired() == 1


class TestRepository:
    """Tests for loading the pool."""

    def test_from_json(self, tmp_path):
        path = tmp_path / "pool.json"
        path.write_text(json.dumps([make_comparable().model_dump(mode="json")]))
        repo = ComparablesRepository.from_json(path)
        assert len(repo) == 1
        assert repo.get("cmp-1").company_name == "Kinase Bio"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(PersistenceError):
            ComparablesRepository.from_json(tmp_path / "missing.json")

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "pool.json"
        path.write_text("{not json")
        with pytest.raises(PersistenceError):
            ComparablesRepository.from_json(path)

    def test_snapshot_survives_refresh(self):
        repo = ComparablesRepository([make_comparable()])
        before = repo.snapshot()
        repo.refresh([])
        assert len(before) == 1
        assert len(repo.snapshot()) == 0


class TestAnalytics:
    """Tests for pool analytics and comparable validation."""

    def test_analyze_empty(self):
        assert analyze([], AS_OF).total == 0

    def test_analyze_counts(self):
        pool = [
            make_comparable(id="a", valuation=100.0),
            make_comparable(id="b", valuation=300.0, transaction_type=TransactionType.LICENSING,
                            date=date(2019, 1, 1), confidence=0.9),
        ]
        analytics = analyze(pool, AS_OF)
        assert analytics.total == 2
        assert analytics.average_valuation == pytest.approx(200.0)
        assert analytics.valuation_range == (100.0, 300.0)
        assert analytics.recent_transactions == 1
        assert analytics.high_confidence == 1
        assert analytics.by_transaction_type == {"Acquisition": 1, "Licensing": 1}

    def test_validate_sparse_comparable(self):
        sparse = make_comparable(
            financials=None,
            lead_program=ComparableProgram(name="X", indication="", stage=DevelopmentStage.PHASE_1),
            date=date(2015, 1, 1),
        )
        validation = validate_comparable(sparse, AS_OF)
        assert validation.is_valid
        assert validation.completeness < 0.5
        assert validation.adjusted_confidence == pytest.approx(0.8 * 0.8 * 0.9)
        assert len(validation.issues) == 2

    def test_validate_zero_valuation(self):
        assert not validate_comparable(make_comparable(valuation=0.0), AS_OF).is_valid

    def test_database_round_trip(self, tmp_path):
        factory = init_db(f"sqlite:///{tmp_path / 'pool.db'}")
        ComparablesRepository.sample().save_to_database(factory)
        repo = ComparablesRepository.from_database(factory)
        assert len(repo) == len(ComparablesRepository.sample())
        assert repo.get("comp-001").deal_structure.total_value == 850.0

    def test_top_matches(self):
        result = ComparablesMatcher().find_comparables(ComparableCriteria(max_age=None, min_confidence=0.0), as_of=AS_OF)
        assert len(result.top_matches(3)) == 3
        assert result.top_matches(3) == result.matches[:3]
