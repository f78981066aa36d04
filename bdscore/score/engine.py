"""Scoring engine: runs the pillar scorers, weights them and classifies the result."""

import logging
from concurrent.futures import ThreadPoolExecutor
from statistics import mean
from typing import Optional, Union

from bdscore.config import settings
from bdscore.errors import InputError
from bdscore.models.comparables import ComparableMatch, ComparableSearchResult
from bdscore.models.company import CompanyData
from bdscore.models.scoring import (
    ConfidenceMetrics,
    EvaluationError,
    InvestmentRecommendation,
    MarketContext,
    Pillar,
    PillarScore,
    PillarScores,
    RecommendationThresholds,
    RiskLevel,
    RiskThresholds,
    ScoringConfig,
    ScoringResult,
    ValidationResult,
    WeightConfig,
    WeightedScores,
)
from .pillars import PillarScorer, build_scorers
from .pillars.base import clamp
from .validation import CompanyValidator, ConfigValidator
from .weighting import WeightingEngine

logger = logging.getLogger(__name__)

MODEL_ACCURACY = 0.85


def default_config() -> ScoringConfig:
    return ScoringConfig(name="Default Configuration", weights=WeightConfig(), is_default=True)


class ScoringEngine:
    """Evaluate companies across the six pillars."""

    def __init__(
        self,
        scorers: Optional[dict[Pillar, PillarScorer]] = None,
        weighting: Optional[WeightingEngine] = None,
        validator: Optional[CompanyValidator] = None,
        parallel: Optional[bool] = None,
        max_workers: Optional[int] = None,
    ):
        self.scorers = scorers or build_scorers()
        self.weighting = weighting or WeightingEngine()
        self.validator = validator or CompanyValidator()
        self.config_validator = ConfigValidator(self.weighting)
        self.parallel = settings.parallel_pillars if parallel is None else parallel
        self.max_workers = max_workers or settings.max_workers

    def evaluate_company(
        self,
        company: CompanyData,
        config: Optional[ScoringConfig] = None,
        context: Optional[MarketContext] = None,
        comparables: Optional[Union[ComparableSearchResult, list[ComparableMatch]]] = None,
    ) -> Union[ScoringResult, EvaluationError]:
        """Evaluate a company. Fatal input problems come back as an EvaluationError."""
        try:
            return self.evaluate_or_raise(company, config, context, comparables)
        except InputError as e:
            logger.warning(f"Evaluation rejected for {company.basic_info.name!r}: {e}")
            return EvaluationError(
                company_name=company.basic_info.name or None,
                message=str(e),
                errors=e.errors,
            )

    def evaluate_or_raise(
        self,
        company: CompanyData,
        config: Optional[ScoringConfig] = None,
        context: Optional[MarketContext] = None,
        comparables: Optional[Union[ComparableSearchResult, list[ComparableMatch]]] = None,
    ) -> ScoringResult:
        """Evaluate a company, raising InputError on fatal input problems."""
        config = config or default_config()
        context = context or MarketContext()

        config_validation = self.config_validator.validate(config)
        if not config_validation.is_valid:
            raise InputError(f"Invalid scoring configuration '{config.name}'", errors=config_validation.errors)

        validation = self.validate_input_data(company, context)
        if validation.has_fatal_errors:
            raise InputError(
                "; ".join(e.message for e in validation.critical_errors),
                errors=validation.critical_errors,
            )

        pillar_scores = self.score_pillars(company, context)
        weighted = self.calculate_weighted_score(pillar_scores, config.weights)
        overall = clamp(weighted.total)

        matches = self._matches(comparables)
        confidence = self.calculate_confidence(pillar_scores, validation, matches)
        recommendation = self.recommend(overall, config.recommendation_thresholds)
        risk_level = self.assess_risk(
            pillar_scores, confidence.overall, config.risk_thresholds, config.parameters.risk_adjustment,
        )

        warnings = [w.message for w in config_validation.warnings]
        warnings.extend(e.message for e in validation.errors)
        warnings.extend(w.message for w in validation.warnings)
        for pillar, score in pillar_scores.as_dict().items():
            warnings.extend(f"{pillar.label}: {w}" for w in score.warnings)

        result = ScoringResult(
            company_name=company.name,
            overall_score=round(overall, 6),
            pillar_scores=pillar_scores,
            weighted_scores=weighted,
            confidence=confidence,
            recommendation=recommendation,
            risk_level=risk_level,
            recommendations=self.generate_recommendations(pillar_scores, overall, confidence, config),
            warnings=warnings,
            config_name=config.name,
        )
        logger.info(
            f"Scored {company.name}: {overall:.2f} ({recommendation.value}, "
            f"risk {risk_level.value}, confidence {confidence.overall:.2f})"
        )
        return result

    def validate_input_data(self, company: CompanyData, context: Optional[MarketContext] = None) -> ValidationResult:
        as_of = context.as_of if context else None
        return self.validator.validate(company, as_of=as_of)

    def calculate_weighted_score(self, pillar_scores: PillarScores, weights: WeightConfig) -> WeightedScores:
        return self.weighting.apply_weights(pillar_scores, weights)

    def score_pillars(self, company: CompanyData, context: MarketContext) -> PillarScores:
        """Run all six scorers; results are keyed by pillar so completion order is irrelevant."""
        results: dict[Pillar, PillarScore] = {}
        if self.parallel:
            with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
                futures = {
                    pillar: pool.submit(scorer.score, company, context)
                    for pillar, scorer in self.scorers.items()
                }
                for pillar, future in futures.items():
                    results[pillar] = future.result()
        else:
            for pillar, scorer in self.scorers.items():
                results[pillar] = scorer.score(company, context)
        return PillarScores.from_dict(results)

    def calculate_confidence(
        self,
        pillar_scores: PillarScores,
        validation: ValidationResult,
        matches: Optional[list[ComparableMatch]] = None,
    ) -> ConfidenceMetrics:
        pillar_confidence = mean(s.confidence for s in pillar_scores.as_dict().values())
        completeness = validation.completeness

        if matches is None:
            comparable_quality = 0.0
            overall = 0.6 * pillar_confidence + 0.4 * completeness
        else:
            comparable_quality = self._comparable_quality(matches)
            overall = 0.5 * pillar_confidence + 0.3 * completeness + 0.2 * comparable_quality

        # Non-critical validation errors (e.g. negative cash) cost confidence
        overall *= max(0.5, 1.0 - 0.1 * len(validation.errors))

        return ConfidenceMetrics(
            overall=round(clamp(overall, 0.0, 1.0), 6),
            data_completeness=round(completeness, 6),
            model_accuracy=MODEL_ACCURACY,
            comparable_quality=round(comparable_quality, 6),
        )

    @staticmethod
    def _comparable_quality(matches: list[ComparableMatch]) -> float:
        count = len(matches)
        if count >= 10:
            count_score = 0.9
        elif count >= 5:
            count_score = 0.7
        elif count >= 2:
            count_score = 0.5
        else:
            count_score = 0.3
        average = mean(m.confidence for m in matches) if matches else 0.0
        return 0.5 * count_score + 0.5 * average

    @staticmethod
    def _matches(comparables) -> Optional[list[ComparableMatch]]:
        if comparables is None:
            return None
        if isinstance(comparables, ComparableSearchResult):
            return list(comparables.matches)
        return list(comparables)

    @staticmethod
    def recommend(score: float, thresholds: RecommendationThresholds) -> InvestmentRecommendation:
        if score >= thresholds.strong_buy:
            return InvestmentRecommendation.STRONG_BUY
        if score >= thresholds.buy:
            return InvestmentRecommendation.BUY
        if score >= thresholds.hold:
            return InvestmentRecommendation.HOLD
        if score >= thresholds.sell:
            return InvestmentRecommendation.SELL
        return InvestmentRecommendation.STRONG_SELL

    @staticmethod
    def assess_risk(
        pillar_scores: PillarScores,
        confidence: float,
        thresholds: RiskThresholds,
        risk_adjustment: float = 1.0,
    ) -> RiskLevel:
        """Risk rises as regulatory risk, financial readiness or confidence fall."""
        regulatory = 5.0 - pillar_scores.regulatory_risk.raw_score
        financial = 5.0 - pillar_scores.financial_readiness.raw_score
        uncertainty = 4.0 * (1.0 - confidence)
        signal = (regulatory + financial + uncertainty) / 3 * risk_adjustment

        if signal >= thresholds.very_high:
            return RiskLevel.VERY_HIGH
        if signal >= thresholds.high:
            return RiskLevel.HIGH
        if signal >= thresholds.medium:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def generate_recommendations(
        self,
        pillar_scores: PillarScores,
        overall: float,
        confidence: ConfidenceMetrics,
        config: ScoringConfig,
    ) -> list[str]:
        """Analyst-facing notes on the strongest and weakest areas."""
        notes = []
        if overall >= 4.0:
            notes.append("Strong candidate for partnership or acquisition")
        elif overall >= 3.0:
            notes.append("Moderate investment opportunity with specific strengths")
        else:
            notes.append("High-risk investment requiring careful evaluation")

        asset = pillar_scores.asset_quality.raw_score
        if asset >= 4.0:
            notes.append("High-quality pipeline assets support premium valuation")
        elif asset < 2.5:
            notes.append("Pipeline quality concerns warrant detailed technical diligence")
        if pillar_scores.market_outlook.raw_score >= 4.0:
            notes.append("Attractive market opportunity")
        if pillar_scores.financial_readiness.raw_score < 2.5:
            notes.append("Near-term financing need; consider structuring with funding commitments")
        if pillar_scores.regulatory_risk.raw_score < 2.5:
            notes.append("Elevated regulatory risk; engage regulatory experts early")
        if pillar_scores.strategic_fit.raw_score >= 4.0:
            notes.append("Strong strategic alignment with core therapeutic areas")

        if confidence.overall < config.parameters.confidence_threshold:
            notes.append("Confidence below configured threshold; gather additional data before deciding")
        if confidence.data_completeness < 0.7:
            notes.append("Improve data completeness to raise scoring reliability")
        return notes

    @staticmethod
    def statistics(results: list[ScoringResult]) -> dict:
        """Distribution summary over a set of scoring results."""
        if not results:
            return {"count": 0, "average_score": 0.0, "average_confidence": 0.0,
                    "score_distribution": {}, "recommendation_distribution": {}}

        buckets = {"1-2": 0, "2-3": 0, "3-4": 0, "4-5": 0}
        for r in results:
            if r.overall_score < 2:
                buckets["1-2"] += 1
            elif r.overall_score < 3:
                buckets["2-3"] += 1
            elif r.overall_score < 4:
                buckets["3-4"] += 1
            else:
                buckets["4-5"] += 1

        recommendations: dict[str, int] = {}
        for r in results:
            recommendations[r.recommendation.value] = recommendations.get(r.recommendation.value, 0) + 1

        return {
            "count": len(results),
            "average_score": mean(r.overall_score for r in results),
            "average_confidence": mean(r.confidence.overall for r in results),
            "score_distribution": buckets,
            "recommendation_distribution": recommendations,
        }
