"""API routes for the BD Scoring & Valuation Engine."""

import logging
from datetime import date
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from bdscore.batch import BatchEvaluator
from bdscore.comparables import ComparablesMatcher, ComparablesRepository, SearchCache
from bdscore.config import settings
from bdscore.config_store import ConfigStore
from bdscore.errors import ConfigurationError, PersistenceError
from bdscore.history import HistoricalScoreSink
from bdscore.models import (
    Comparable,
    ComparableCriteria,
    ComparableSearchResult,
    CompanyData,
    EvaluationError,
    InvestmentRecommendation,
    MarketContext,
    Pillar,
    ScoringConfig,
    ScoringResult,
    TargetProfile,
    ValidationResult,
    ValuationResult,
    WeightConfig,
)
from bdscore.score import ScoringEngine, WeightingEngine
from bdscore.score.pillars.base import clamp
from bdscore.valuation import ValuationEngine

logger = logging.getLogger(__name__)

router = APIRouter()


def _load_repository() -> ComparablesRepository:
    if settings.comparables_path:
        return ComparablesRepository.from_json(settings.comparables_path)
    return ComparablesRepository.sample()


def _load_config_store(path: Optional[Path] = None) -> ConfigStore:
    store = ConfigStore(path)
    loaded = store.load()
    if loaded:
        logger.info(f"Loaded {loaded} custom scoring configurations from {store.path}")
    return store


config_store = _load_config_store()
weighting = WeightingEngine()
scoring_engine = ScoringEngine(weighting=weighting)
matcher = ComparablesMatcher(_load_repository(), cache=SearchCache(settings.cache_ttl_seconds))
valuation_engine = ValuationEngine(matcher=matcher)

_history: Optional[HistoricalScoreSink] = None


def get_history() -> HistoricalScoreSink:
    global _history
    if _history is None:
        _history = HistoricalScoreSink()
    return _history


class EvaluateRequest(BaseModel):
    """Request body for a single-company evaluation."""
    company: CompanyData
    config_name: Optional[str] = None
    config: Optional[ScoringConfig] = None
    context: Optional[MarketContext] = None
    include_valuation: bool = True
    persist: bool = False


class EvaluateResponse(BaseModel):
    scoring: ScoringResult
    valuation: Optional[ValuationResult] = None
    comparables_found: int = 0


class WeightApplyRequest(BaseModel):
    """Live re-weighting of already computed pillar scores."""
    pillar_scores: dict[Pillar, float]
    weights: WeightConfig
    config_name: Optional[str] = None


class WeightApplyResponse(BaseModel):
    overall_score: float
    contributions: dict[Pillar, float]
    recommendation: InvestmentRecommendation
    weights: WeightConfig
    validation: ValidationResult


class SearchRequest(BaseModel):
    criteria: ComparableCriteria
    profile: Optional[TargetProfile] = None
    max_results: Optional[int] = Field(default=None, ge=1)
    as_of: Optional[date] = None


class ValuationRequest(BaseModel):
    """Value a company; without explicit comparables the pool is searched."""
    company: CompanyData
    comparables: Optional[list[Comparable]] = None
    config_name: Optional[str] = None
    as_of: Optional[date] = None
    persist: bool = False


class BatchRequest(BaseModel):
    companies: list[CompanyData]
    config_name: Optional[str] = None
    context: Optional[MarketContext] = None


class BatchItemResponse(BaseModel):
    company_name: str
    status: str
    scoring: Optional[ScoringResult] = None
    valuation: Optional[ValuationResult] = None
    error: Optional[str] = None


def _resolve_config(name: Optional[str], inline: Optional[ScoringConfig] = None) -> ScoringConfig:
    if inline is not None:
        return inline
    if name is None:
        return config_store.default()
    try:
        return config_store.get(name)
    except ConfigurationError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate(request: EvaluateRequest):
    """Score a company across all pillars, optionally with a comparables-based valuation."""
    config = _resolve_config(request.config_name, request.config)
    context = request.context or MarketContext()

    search = matcher.find_comparables_for_company(request.company, as_of=context.as_of)
    result = scoring_engine.evaluate_company(request.company, config, context, comparables=search)
    if isinstance(result, EvaluationError):
        raise HTTPException(status_code=400, detail=result.model_dump(mode="json"))

    valuation = None
    if request.include_valuation:
        valuation = valuation_engine.calculate_valuation(
            request.company,
            search.matches,
            scoring=result,
            parameters=config.parameters,
            as_of=context.as_of,
        )

    if request.persist:
        _persist(result, valuation, config)

    return EvaluateResponse(scoring=result, valuation=valuation, comparables_found=search.total_found)


@router.post("/validate", response_model=ValidationResult)
async def validate(company: CompanyData):
    """Check company data without scoring it."""
    return scoring_engine.validate_input_data(company)


@router.post("/weights/apply", response_model=WeightApplyResponse)
async def apply_weights(request: WeightApplyRequest):
    """Recompute the overall score for new weights without re-running the pillars."""
    missing = [p.value for p in Pillar if p not in request.pillar_scores]
    if missing:
        raise HTTPException(status_code=400, detail=f"Missing pillar scores: {', '.join(missing)}")

    weights, validation = weighting.validate_and_normalize(request.weights)
    if not validation.is_valid:
        raise HTTPException(status_code=400, detail=validation.model_dump(mode="json"))

    config = _resolve_config(request.config_name)
    overall = clamp(weighting.aggregate(request.pillar_scores, weights))
    return WeightApplyResponse(
        overall_score=overall,
        contributions={p: request.pillar_scores[p] * weights.get(p) for p in Pillar},
        recommendation=ScoringEngine.recommend(overall, config.recommendation_thresholds),
        weights=weights,
        validation=validation,
    )


@router.post("/weights/validate", response_model=ValidationResult)
async def validate_weights(weights: WeightConfig):
    return weighting.validate_weights(weights)


@router.get("/configs", response_model=list[str])
async def list_configs():
    return config_store.list_names()


@router.get("/configs/{name}", response_model=ScoringConfig)
async def get_config(name: str):
    return _resolve_config(name)


@router.post("/comparables/search", response_model=ComparableSearchResult)
async def search_comparables(request: SearchRequest):
    return matcher.find_comparables(
        request.criteria,
        profile=request.profile,
        max_results=request.max_results,
        as_of=request.as_of,
    )


@router.post("/valuation", response_model=ValuationResult)
async def valuation(request: ValuationRequest):
    config = _resolve_config(request.config_name)
    if request.comparables is None:
        comparables = matcher.find_comparables_for_company(request.company, as_of=request.as_of).matches
    else:
        comparables = request.comparables

    result = valuation_engine.calculate_valuation(
        request.company,
        comparables,
        parameters=config.parameters,
        as_of=request.as_of,
    )
    if request.persist:
        _persist(None, result, config)
    return result


@router.post("/batch", response_model=list[BatchItemResponse])
async def batch(request: BatchRequest):
    """Evaluate many companies concurrently; one failure does not affect the others."""
    if not request.companies:
        raise HTTPException(status_code=400, detail="No companies supplied")

    config = _resolve_config(request.config_name)
    evaluator = BatchEvaluator(scoring_engine, matcher, valuation_engine)
    items = await evaluator.run(request.companies, config, request.context)
    return [
        BatchItemResponse(
            company_name=item.company_name,
            status=item.status.value,
            scoring=item.scoring,
            valuation=item.valuation,
            error=item.error,
        )
        for item in items
    ]


def _persist(result: Optional[ScoringResult], valuation_result: Optional[ValuationResult], config: ScoringConfig):
    history = get_history()
    try:
        if result is not None:
            history.record_score(result, config)
        if valuation_result is not None:
            history.record_valuation(valuation_result)
    except PersistenceError as e:
        logger.error(f"Failed to persist results: {e}")
        raise HTTPException(status_code=500, detail=str(e))

