"""Scoring configuration and result models."""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

WEIGHT_TOLERANCE = 0.001


class Pillar(str, Enum):
    """The six evaluation pillars, in aggregation order."""

    ASSET_QUALITY = "asset_quality"
    MARKET_OUTLOOK = "market_outlook"
    CAPITAL_INTENSITY = "capital_intensity"
    STRATEGIC_FIT = "strategic_fit"
    FINANCIAL_READINESS = "financial_readiness"
    REGULATORY_RISK = "regulatory_risk"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class ScoringFactor(BaseModel):
    """One named sub-factor of a pillar score."""

    name: str
    weight: float = Field(ge=0.0, le=1.0)
    score: float = Field(ge=1.0, le=5.0)
    rationale: str = ""


class PillarScore(BaseModel):
    """Score for a single pillar, self-contained enough to be re-explained later."""

    pillar: Pillar
    raw_score: float = Field(ge=1.0, le=5.0)
    confidence: float = Field(ge=0.0, le=1.0)
    factors: list[ScoringFactor] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    explanation: Optional[str] = None


class PillarScores(BaseModel):
    asset_quality: PillarScore
    market_outlook: PillarScore
    capital_intensity: PillarScore
    strategic_fit: PillarScore
    financial_readiness: PillarScore
    regulatory_risk: PillarScore

    def get(self, pillar: Pillar) -> PillarScore:
        return getattr(self, pillar.value)

    def as_dict(self) -> dict[Pillar, PillarScore]:
        return {pillar: self.get(pillar) for pillar in Pillar}

    def raw_scores(self) -> dict[Pillar, float]:
        return {pillar: self.get(pillar).raw_score for pillar in Pillar}

    @classmethod
    def from_dict(cls, scores: dict[Pillar, PillarScore]) -> "PillarScores":
        return cls(**{pillar.value: scores[pillar] for pillar in Pillar})


class WeightConfig(BaseModel):
    """Pillar weights. Zero excludes a pillar from the aggregate only."""

    asset_quality: float = 0.25
    market_outlook: float = 0.20
    capital_intensity: float = 0.15
    strategic_fit: float = 0.20
    financial_readiness: float = 0.10
    regulatory_risk: float = 0.10

    def get(self, pillar: Pillar) -> float:
        return getattr(self, pillar.value)

    def as_dict(self) -> dict[Pillar, float]:
        return {pillar: self.get(pillar) for pillar in Pillar}

    @property
    def total(self) -> float:
        return sum(self.as_dict().values())

    @property
    def is_valid(self) -> bool:
        return all(w >= 0.0 for w in self.as_dict().values()) and abs(self.total - 1.0) <= WEIGHT_TOLERANCE

    def normalized(self) -> "WeightConfig":
        """Return a copy scaled to sum to 1.0 (equal weights when all are zero)."""
        total = self.total
        if total <= 0:
            return WeightConfig(**{pillar.value: 1.0 / len(Pillar) for pillar in Pillar})
        return WeightConfig(**{pillar.value: w / total for pillar, w in self.as_dict().items()})

    @classmethod
    def from_list(cls, weights: list[float]) -> "WeightConfig":
        if len(weights) != len(Pillar):
            raise ValueError(f"Expected {len(Pillar)} weights, got {len(weights)}")
        return cls(**{pillar.value: w for pillar, w in zip(Pillar, weights)})


class ScoringParameters(BaseModel):
    risk_adjustment: float = 1.0
    time_horizon: int = Field(default=5, description="Years")
    discount_rate: float = 0.12
    confidence_threshold: float = 0.7


class RecommendationThresholds(BaseModel):
    """Lower bounds of each recommendation band on the aggregate score."""

    strong_buy: float = 4.2
    buy: float = 3.5
    hold: float = 2.5
    sell: float = 1.5


class RiskThresholds(BaseModel):
    """Lower bounds of each risk band on the averaged risk signal (0 to 4)."""

    very_high: float = 3.5
    high: float = 2.5
    medium: float = 1.5


class ScoringConfig(BaseModel):
    """A named, complete scoring configuration."""

    name: str
    weights: WeightConfig = Field(default_factory=WeightConfig)
    parameters: ScoringParameters = Field(default_factory=ScoringParameters)
    recommendation_thresholds: RecommendationThresholds = Field(default_factory=RecommendationThresholds)
    risk_thresholds: RiskThresholds = Field(default_factory=RiskThresholds)
    is_default: bool = False


class WeightedScores(BaseModel):
    contributions: dict[Pillar, float]
    total: float


class WeightImpact(BaseModel):
    """Effect of switching from one weight set to another on fixed pillar scores."""

    old_total: float
    new_total: float
    total_difference: float
    percent_change: float
    pillar_impacts: dict[Pillar, float]
    significant_changes: list[Pillar] = Field(default_factory=list)


class ConfidenceMetrics(BaseModel):
    overall: float = Field(ge=0.0, le=1.0)
    data_completeness: float = Field(ge=0.0, le=1.0)
    model_accuracy: float = Field(ge=0.0, le=1.0)
    comparable_quality: float = Field(ge=0.0, le=1.0)


class InvestmentRecommendation(str, Enum):
    STRONG_BUY = "Strong Buy"
    BUY = "Buy"
    HOLD = "Hold"
    SELL = "Sell"
    STRONG_SELL = "Strong Sell"


class RiskLevel(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    VERY_HIGH = "Very High"


class ScoringResult(BaseModel):
    """Complete evaluation of one company."""

    company_name: str
    overall_score: float = Field(ge=1.0, le=5.0)
    pillar_scores: PillarScores
    weighted_scores: WeightedScores
    confidence: ConfidenceMetrics
    recommendation: InvestmentRecommendation
    risk_level: RiskLevel
    recommendations: list[str] = Field(default_factory=list, description="Analyst-facing notes")
    warnings: list[str] = Field(default_factory=list)
    config_name: str = ""
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ValidationSeverity(str, Enum):
    CRITICAL = "Critical"
    ERROR = "Error"
    WARNING = "Warning"
    INFO = "Info"


class ValidationIssue(BaseModel):
    field: str
    message: str
    severity: ValidationSeverity = ValidationSeverity.ERROR


class ValidationWarning(BaseModel):
    field: str
    message: str
    suggestion: Optional[str] = None


class ValidationResult(BaseModel):
    is_valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationWarning] = Field(default_factory=list)
    completeness: float = Field(default=1.0, ge=0.0, le=1.0)

    @property
    def critical_errors(self) -> list[ValidationIssue]:
        return [e for e in self.errors if e.severity == ValidationSeverity.CRITICAL]

    @property
    def has_fatal_errors(self) -> bool:
        return bool(self.critical_errors)


class EvaluationError(BaseModel):
    """Returned in place of a ScoringResult when input cannot be evaluated."""

    company_name: Optional[str] = None
    message: str
    errors: list[ValidationIssue] = Field(default_factory=list)


class IpoActivity(str, Enum):
    HOT = "Hot"
    MODERATE = "Moderate"
    COLD = "Cold"


class FundingEnvironment(str, Enum):
    ABUNDANT = "Abundant"
    MODERATE = "Moderate"
    CONSTRAINED = "Constrained"


class RegulatoryClimate(str, Enum):
    SUPPORTIVE = "Supportive"
    NEUTRAL = "Neutral"
    RESTRICTIVE = "Restrictive"


class MarketConditions(BaseModel):
    biotech_index: float = 100.0
    ipo_activity: IpoActivity = IpoActivity.MODERATE
    funding_environment: FundingEnvironment = FundingEnvironment.MODERATE
    regulatory_climate: RegulatoryClimate = RegulatoryClimate.NEUTRAL


class IndustryMetrics(BaseModel):
    average_valuation: float = Field(default=500.0, description="$M")
    median_timeline: int = Field(default=36, description="Months")
    success_rate: float = 0.15
    average_runway: float = Field(default=18.0, description="Months")


class MarketContext(BaseModel):
    """External context for scoring; as_of anchors every date-based factor.

    as_of defaults to the day the context is built. Callers that need
    repeatable results set it explicitly.
    """

    as_of: date = Field(default_factory=date.today)
    benchmark_data: dict[str, float] = Field(default_factory=dict)
    market_conditions: MarketConditions = Field(default_factory=MarketConditions)
    comparable_companies: list[str] = Field(default_factory=list)
    industry_metrics: IndustryMetrics = Field(default_factory=IndustryMetrics)
