"""Abstract base class for pillar scorers."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from bdscore.models.company import CompanyData, DevelopmentStage
from bdscore.models.scoring import MarketContext, Pillar, PillarScore, ScoringFactor

logger = logging.getLogger(__name__)

MIN_SCORE = 1.0
MAX_SCORE = 5.0
NEUTRAL_SCORE = 3.0

LOW_CONFIDENCE_WARNING = "Low confidence score due to insufficient data"
DATA_GAP_WARNING = "Significant data gaps may affect scoring accuracy"
LOW_SCORE_WARNING = "Low score indicates significant concerns"


def clamp(value: float, low: float = MIN_SCORE, high: float = MAX_SCORE) -> float:
    return max(low, min(high, value))


def describe_score(score: float) -> str:
    if score >= 4.5:
        return "Excellent"
    if score >= 3.5:
        return "Good"
    if score >= 2.5:
        return "Average"
    if score >= 1.5:
        return "Below Average"
    return "Poor"


def contains_any(text: str, keywords) -> bool:
    text = text.lower()
    return any(k in text for k in keywords)


@dataclass
class Factor:
    """Intermediate factor result; `degraded` marks a fallback used for missing data."""

    name: str
    weight: float
    score: float
    rationale: str
    degraded: bool = False

    def to_scoring_factor(self) -> ScoringFactor:
        return ScoringFactor(
            name=self.name,
            weight=self.weight,
            score=round(clamp(self.score), 4),
            rationale=self.rationale,
        )


@dataclass
class FactorExplanation:
    name: str
    weight: float
    score: float
    contribution: float
    explanation: str


@dataclass
class ScoreExplanation:
    pillar: Pillar
    summary: str
    factors: list[FactorExplanation] = field(default_factory=list)
    methodology: str = ""
    limitations: list[str] = field(default_factory=list)

    def as_text(self) -> str:
        lines = [self.summary]
        for f in self.factors:
            lines.append(f"- {f.name} ({f.weight:.0%}): {f.score:.2f} -> {f.contribution:.2f}. {f.explanation}")
        if self.limitations:
            lines.append("Limitations: " + "; ".join(self.limitations))
        return "\n".join(lines)


METHODOLOGIES = {
    Pillar.ASSET_QUALITY: "Weighted assessment of pipeline depth, stage, differentiation and competitive position",
    Pillar.MARKET_OUTLOOK: "Weighted assessment of market size, growth, competition, pathway and reimbursement",
    Pillar.CAPITAL_INTENSITY: "Weighted assessment of development, manufacturing and regulatory capital needs",
    Pillar.STRATEGIC_FIT: "Weighted assessment of therapeutic alignment, synergies and integration complexity",
    Pillar.FINANCIAL_READINESS: "Weighted assessment of cash, burn efficiency, runway and financing timing",
    Pillar.REGULATORY_RISK: "Weighted assessment of pathway, clinical, safety, manufacturing and timeline risk",
}


def explain_score(score: PillarScore) -> ScoreExplanation:
    """Rebuild a human-readable explanation from a stored pillar score."""
    factors = [
        FactorExplanation(
            name=f.name,
            weight=f.weight,
            score=f.score,
            contribution=f.weight * f.score,
            explanation=f.rationale,
        )
        for f in score.factors
    ]
    summary = (
        f"{score.pillar.label} score of {score.raw_score:.2f} ({describe_score(score.raw_score)}) "
        f"with {score.confidence:.0%} confidence"
    )
    return ScoreExplanation(
        pillar=score.pillar,
        summary=summary,
        factors=factors,
        methodology=METHODOLOGIES[score.pillar],
        limitations=list(score.warnings),
    )


def resolve_field(company: CompanyData, path: str):
    """Walk a dotted attribute path; returns None when any step is missing."""
    value = company
    for part in path.split("."):
        value = getattr(value, part, None)
        if value is None:
            return None
    return value


def is_present(value) -> bool:
    if value is None:
        return False
    if isinstance(value, (list, tuple, set, dict, str)):
        return len(value) > 0
    return True


class PillarScorer(ABC):
    """Common contract for the six pillar scorers."""

    pillar: Pillar
    methodology_reliability: float = 0.8
    required: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()

    def required_fields(self) -> list[str]:
        """Dotted CompanyData paths this pillar needs for a full-confidence score."""
        return list(self.required)

    def optional_fields(self) -> list[str]:
        return list(self.optional)

    def score(self, company: CompanyData, context: Optional[MarketContext] = None) -> PillarScore:
        """Score the company on this pillar. Never raises on sparse data."""
        context = context or MarketContext()
        factors = self.score_factors(company, context)

        raw = clamp(sum(f.weight * clamp(f.score) for f in factors))
        completeness = self.data_completeness(company)
        quality = clamp(self.data_quality(company), 0.0, 1.0)
        confidence = completeness * 0.4 + quality * 0.3 + self.methodology_reliability * 0.3

        degraded_weight = sum(f.weight for f in factors if f.degraded)
        confidence = clamp(confidence * (1.0 - degraded_weight), 0.0, 1.0)

        warnings = self.missing_field_warnings(company)
        warnings.extend(self.pillar_warnings(company, context))
        raw = self.adjust_score(company, raw, warnings)
        warnings.extend(self._generic_warnings(raw, confidence, completeness))

        logger.debug(
            "%s for %s: raw=%.3f confidence=%.3f degraded=%.2f",
            self.pillar.value, company.name, raw, confidence, degraded_weight,
        )
        return PillarScore(
            pillar=self.pillar,
            raw_score=round(raw, 6),
            confidence=round(confidence, 6),
            factors=[f.to_scoring_factor() for f in factors],
            warnings=warnings,
            explanation=f"{describe_score(raw)} {self.pillar.label.lower()}",
        )

    def explain_score(self, score: PillarScore) -> ScoreExplanation:
        return explain_score(score)

    def data_completeness(self, company: CompanyData) -> float:
        fields = self.required + self.optional
        if not fields:
            return 1.0
        present = sum(1 for path in fields if is_present(resolve_field(company, path)))
        return present / len(fields)

    def missing_field_warnings(self, company: CompanyData) -> list[str]:
        return [
            f"Missing required data: {path}"
            for path in self.required
            if not is_present(resolve_field(company, path))
        ]

    def adjust_score(self, company: CompanyData, raw: float, warnings: list[str]) -> float:
        """Hook for pillars that override the weighted score in edge cases."""
        return raw

    @abstractmethod
    def score_factors(self, company: CompanyData, context: MarketContext) -> list[Factor]:
        """Compute the weighted sub-factors of this pillar."""
        pass

    @abstractmethod
    def data_quality(self, company: CompanyData) -> float:
        """Quality of the available inputs, 0 to 1."""
        pass

    def pillar_warnings(self, company: CompanyData, context: MarketContext) -> list[str]:
        return []

    @staticmethod
    def _generic_warnings(raw: float, confidence: float, completeness: float) -> list[str]:
        warnings = []
        if confidence < 0.3:
            warnings.append(LOW_CONFIDENCE_WARNING)
        if completeness < 0.5:
            warnings.append(DATA_GAP_WARNING)
        if raw <= 2.0:
            warnings.append(LOW_SCORE_WARNING)
        return warnings

    @staticmethod
    def company_stage(company: CompanyData) -> tuple[DevelopmentStage, bool]:
        """Company stage, falling back to the lead program then Preclinical (degraded)."""
        if company.basic_info.stage is not None:
            return company.basic_info.stage, False
        lead = company.pipeline.lead_program
        if lead is not None:
            return lead.stage, True
        return DevelopmentStage.PRECLINICAL, True
