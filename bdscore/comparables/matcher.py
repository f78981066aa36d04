"""Similarity matching of comparable transactions against a target company."""

import logging
import math
import re
from datetime import date
from statistics import mean
from typing import Optional

from bdscore.config import settings
from bdscore.models.comparables import (
    Comparable,
    ComparableCriteria,
    ComparableMatch,
    ComparableSearchResult,
    MatchingFactors,
    TargetProfile,
    TransactionType,
)
from bdscore.models.company import CompanyData, CompetitivePosition, DevelopmentStage
from .cache import SearchCache
from .filters import ComparableFilter
from .repository import ComparablesRepository

logger = logging.getLogger(__name__)

NEUTRAL = 0.5
MAX_STAGE_DISTANCE = len(DevelopmentStage) - 1
RANKED_POSITIONS = [
    CompetitivePosition.FIRST_IN_CLASS,
    CompetitivePosition.BEST_IN_CLASS,
    CompetitivePosition.FAST_FOLLOWER,
    CompetitivePosition.ME_TOO,
]
DEAL_TYPES_FOR_COMPANY = [TransactionType.ACQUISITION, TransactionType.LICENSING, TransactionType.PARTNERSHIP]


def _tokens(text: str) -> set[str]:
    return {t for t in re.split(r"[^a-z0-9]+", text.lower()) if t}


def therapeutic_area_match(target: list[str], candidate: list[str]) -> float:
    """Jaccard overlap of the two area sets."""
    a = {x.strip().lower() for x in target if x.strip()}
    b = {x.strip().lower() for x in candidate if x.strip()}
    if not a and not b:
        return 1.0
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def stage_match(target: Optional[DevelopmentStage], candidate: DevelopmentStage) -> float:
    if target is None:
        return NEUTRAL
    return 1.0 - abs(target.ordinal - candidate.ordinal) / MAX_STAGE_DISTANCE


def market_size_match(target: Optional[float], candidate: float) -> float:
    """1.0 at equal size, falling linearly in log space to 0 at a tenfold difference."""
    if target is None or target <= 0 or candidate <= 0:
        return NEUTRAL
    return 1.0 - min(1.0, abs(math.log(target) - math.log(candidate)) / math.log(10))


def mechanism_match(target: Optional[str], candidate: str) -> float:
    if not target and not candidate:
        return 1.0
    if not target or not candidate:
        return NEUTRAL
    if target.strip().lower() == candidate.strip().lower():
        return 1.0
    a, b = _tokens(target), _tokens(candidate)
    if not a or not b:
        return 0.0
    return len(a & b) / len(a | b)


def competitive_position_match(target: CompetitivePosition, candidate: CompetitivePosition) -> float:
    if target == candidate:
        return 1.0
    if target not in RANKED_POSITIONS or candidate not in RANKED_POSITIONS:
        return NEUTRAL
    distance = abs(RANKED_POSITIONS.index(target) - RANKED_POSITIONS.index(candidate))
    return 1.0 - distance / (len(RANKED_POSITIONS) - 1)


def time_relevance(comparable: Comparable, as_of: date, horizon_years: float) -> float:
    if horizon_years <= 0:
        return 1.0
    return max(0.0, 1.0 - comparable.age_in_years(as_of) / horizon_years)


def _closeness(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None or b is None:
        return None
    if math.isinf(a) or math.isinf(b):
        return 1.0 if a == b else 0.0
    a, b = abs(a), abs(b)
    if a == b:
        return 1.0
    return min(a, b) / max(a, b)


def financial_similarity(target: TargetProfile, comparable: Comparable) -> float:
    """Mean closeness over cash, burn and runway where both sides report them."""
    fin = comparable.financials
    if fin is None:
        return NEUTRAL
    pairs = [
        _closeness(target.cash_position, fin.cash_at_transaction),
        _closeness(target.burn_rate, fin.burn_rate),
        _closeness(target.runway, fin.runway),
    ]
    values = [p for p in pairs if p is not None]
    if not values:
        return NEUTRAL
    return mean(values)


def profile_from_company(company: CompanyData) -> TargetProfile:
    lead = company.pipeline.lead_program
    return TargetProfile(
        therapeutic_areas=list(company.basic_info.therapeutic_areas),
        stage=company.basic_info.stage or (lead.stage if lead else None),
        market_size=company.market.addressable_market,
        mechanism=lead.mechanism if lead else None,
        competitive_position=lead.competitive_position if lead else CompetitivePosition.UNKNOWN,
        cash_position=company.financials.cash_position,
        burn_rate=company.financials.burn_rate,
        runway=company.financials.runway,
    )


def profile_from_criteria(criteria: ComparableCriteria) -> TargetProfile:
    """Best-effort reference point when only filter criteria are known."""
    if criteria.min_market_size and criteria.max_market_size:
        market = math.sqrt(criteria.min_market_size * criteria.max_market_size)
    else:
        market = criteria.max_market_size or criteria.min_market_size
    return TargetProfile(
        therapeutic_areas=list(criteria.therapeutic_areas),
        stage=criteria.stages[0] if criteria.stages else None,
        market_size=market,
        mechanism=criteria.mechanisms[0] if criteria.mechanisms else None,
        competitive_position=(
            criteria.competitive_positions[0] if criteria.competitive_positions else CompetitivePosition.UNKNOWN
        ),
    )


def criteria_from_company(company: CompanyData) -> ComparableCriteria:
    """Default search criteria for valuing a company."""
    stage = company.basic_info.stage
    market = company.market.addressable_market
    return ComparableCriteria(
        therapeutic_areas=list(company.basic_info.therapeutic_areas),
        stages=[stage] if stage else [],
        transaction_types=list(DEAL_TYPES_FOR_COMPANY),
        min_market_size=market * 0.5 if market else None,
        max_market_size=market * 2.0 if market else None,
        max_age=settings.time_horizon_years,
        min_confidence=0.6,
    )


class ComparablesMatcher:
    """Find and rank comparables for a target."""

    def __init__(
        self,
        repository: Optional[ComparablesRepository] = None,
        cache: Optional[SearchCache] = None,
        horizon_years: Optional[float] = None,
    ):
        self.repository = repository or ComparablesRepository.sample()
        self.cache = cache
        self.horizon_years = horizon_years or settings.time_horizon_years
        self.filters = ComparableFilter()
        if self.cache is not None:
            self.repository.on_refresh(self.cache.invalidate)

    def find_comparables(
        self,
        criteria: ComparableCriteria,
        profile: Optional[TargetProfile] = None,
        max_results: Optional[int] = None,
        as_of: Optional[date] = None,
    ) -> ComparableSearchResult:
        """Filter the pool by criteria, then score and rank survivors against the profile.

        as_of anchors time relevance and defaults to today. Pass it explicitly
        for repeatable rankings.
        """
        as_of = as_of or date.today()
        profile = profile or profile_from_criteria(criteria)

        key = self._cache_key(criteria, profile, max_results, as_of)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Comparables search served from cache")
                return cached

        pool = self.repository.snapshot()
        survivors = self.filters.filter(pool, criteria, as_of)
        matches = self.rank(survivors, profile, as_of)
        if max_results is not None:
            matches = matches[:max_results]

        result = ComparableSearchResult(
            matches=matches,
            total_found=len(survivors),
            criteria=criteria,
            average_confidence=mean(m.confidence for m in matches) if matches else 0.0,
        )
        logger.info(f"Comparables search: {len(survivors)} of {len(pool)} passed filters")

        if self.cache is not None:
            self.cache.put(key, result)
        return result

    def find_comparables_for_company(
        self,
        company: CompanyData,
        max_results: Optional[int] = None,
        as_of: Optional[date] = None,
        criteria: Optional[ComparableCriteria] = None,
    ) -> ComparableSearchResult:
        return self.find_comparables(
            criteria or criteria_from_company(company),
            profile=profile_from_company(company),
            max_results=max_results,
            as_of=as_of,
        )

    def score_match(self, comparable: Comparable, profile: TargetProfile, as_of: date) -> ComparableMatch:
        program = comparable.lead_program
        factors = MatchingFactors(
            therapeutic_area_match=therapeutic_area_match(profile.therapeutic_areas, comparable.therapeutic_areas),
            stage_match=stage_match(profile.stage, comparable.stage),
            market_size_match=market_size_match(profile.market_size, comparable.market_size),
            mechanism_match=mechanism_match(profile.mechanism, program.mechanism),
            competitive_position_match=competitive_position_match(
                profile.competitive_position, program.competitive_position,
            ),
            time_relevance=time_relevance(comparable, as_of, self.horizon_years),
            financial_similarity=financial_similarity(profile, comparable),
        )
        return ComparableMatch(
            comparable=comparable,
            similarity=factors.overall,
            confidence=comparable.confidence,
            matching_factors=factors,
        )

    def rank(self, comparables: list[Comparable], profile: TargetProfile, as_of: date) -> list[ComparableMatch]:
        """Score and rank an explicit list without applying criteria filters."""
        matches = [self.score_match(c, profile, as_of) for c in comparables]
        matches.sort(key=lambda m: (-m.weighted_score, -m.comparable.date.toordinal(), m.comparable.company_name))
        return matches

    def _cache_key(
        self,
        criteria: ComparableCriteria,
        profile: TargetProfile,
        max_results: Optional[int],
        as_of: date,
    ) -> str:
        return f"{criteria.cache_key()}:{profile.cache_key()}:{max_results}:{as_of.isoformat()}"
