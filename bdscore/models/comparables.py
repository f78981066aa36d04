"""Comparable transaction models."""

import hashlib
import json
from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from .company import CompetitivePosition, DevelopmentStage

# therapeutic area, stage, market size, mechanism, competitive position, time, financials
MATCHING_WEIGHTS = (0.25, 0.20, 0.15, 0.15, 0.10, 0.10, 0.05)
SIMILARITY_WEIGHT = 0.7
CONFIDENCE_WEIGHT = 0.3


class TransactionType(str, Enum):
    ACQUISITION = "Acquisition"
    LICENSING = "Licensing"
    PARTNERSHIP = "Partnership"
    IPO = "IPO"
    MERGER = "Merger"


class ComparableProgram(BaseModel):
    name: str
    indication: str
    mechanism: str = ""
    stage: DevelopmentStage
    differentiators: list[str] = Field(default_factory=list)
    competitive_position: CompetitivePosition = CompetitivePosition.UNKNOWN


class ComparableFinancials(BaseModel):
    """Financial snapshot at transaction time; $M and months."""

    cash_at_transaction: Optional[float] = None
    burn_rate: Optional[float] = None
    runway: Optional[float] = None
    last_funding_amount: Optional[float] = None
    revenue: Optional[float] = None
    employees: Optional[int] = None


class DealStructure(BaseModel):
    upfront: float = Field(default=0.0, description="$M")
    milestones: float = Field(default=0.0, description="$M")
    royalties: Optional[float] = Field(default=None, description="Royalty rate, 0.1 = 10%")
    equity: Optional[float] = None
    terms: list[str] = Field(default_factory=list)

    @property
    def total_value(self) -> float:
        return self.upfront + self.milestones + (self.equity or 0.0)


class Comparable(BaseModel):
    """A historical BD or IPO transaction used as a valuation benchmark."""

    id: str
    company_name: str
    transaction_type: TransactionType
    date: date
    valuation: float = Field(ge=0.0, description="Deal or IPO valuation in $M")
    stage: DevelopmentStage
    therapeutic_areas: list[str] = Field(default_factory=list)
    lead_program: ComparableProgram
    market_size: float = Field(ge=0.0, description="Addressable market in $B")
    financials: Optional[ComparableFinancials] = None
    deal_structure: Optional[DealStructure] = None
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)

    def age_in_years(self, as_of: date) -> float:
        return max(0.0, (as_of - self.date).days / 365.25)


class ComparableCriteria(BaseModel):
    """Filter bounds for pre-selecting comparables. Empty collections mean no constraint."""

    therapeutic_areas: list[str] = Field(default_factory=list)
    stages: list[DevelopmentStage] = Field(default_factory=list)
    transaction_types: list[TransactionType] = Field(default_factory=list)
    min_market_size: Optional[float] = None
    max_market_size: Optional[float] = None
    min_valuation: Optional[float] = None
    max_valuation: Optional[float] = None
    max_age: Optional[float] = Field(default=5.0, description="Years")
    min_confidence: float = Field(default=0.6, ge=0.0, le=1.0)
    competitive_positions: list[CompetitivePosition] = Field(default_factory=list)
    mechanisms: list[str] = Field(default_factory=list)
    indications: list[str] = Field(default_factory=list)

    def normalized(self) -> dict:
        """Order- and case-insensitive form used for cache keys."""
        data = self.model_dump(mode="json")
        for key, value in data.items():
            if isinstance(value, list):
                data[key] = sorted({str(v).strip().lower() for v in value})
        return data

    def cache_key(self) -> str:
        payload = json.dumps(self.normalized(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class TargetProfile(BaseModel):
    """The attributes of a target company that comparables are measured against."""

    therapeutic_areas: list[str] = Field(default_factory=list)
    stage: Optional[DevelopmentStage] = None
    market_size: Optional[float] = None
    mechanism: Optional[str] = None
    competitive_position: CompetitivePosition = CompetitivePosition.UNKNOWN
    cash_position: Optional[float] = None
    burn_rate: Optional[float] = None
    runway: Optional[float] = None

    def cache_key(self) -> str:
        payload = self.model_dump_json()
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()


class MatchingFactors(BaseModel):
    therapeutic_area_match: float = Field(ge=0.0, le=1.0)
    stage_match: float = Field(ge=0.0, le=1.0)
    market_size_match: float = Field(ge=0.0, le=1.0)
    mechanism_match: float = Field(ge=0.0, le=1.0)
    competitive_position_match: float = Field(ge=0.0, le=1.0)
    time_relevance: float = Field(ge=0.0, le=1.0)
    financial_similarity: float = Field(ge=0.0, le=1.0)

    def values(self) -> tuple[float, ...]:
        return (
            self.therapeutic_area_match,
            self.stage_match,
            self.market_size_match,
            self.mechanism_match,
            self.competitive_position_match,
            self.time_relevance,
            self.financial_similarity,
        )

    @property
    def overall(self) -> float:
        return min(1.0, max(0.0, sum(w * v for w, v in zip(MATCHING_WEIGHTS, self.values()))))


class ComparableMatch(BaseModel):
    comparable: Comparable
    similarity: float = Field(ge=0.0, le=1.0)
    confidence: float = Field(ge=0.0, le=1.0)
    matching_factors: Optional[MatchingFactors] = None

    @property
    def weighted_score(self) -> float:
        return SIMILARITY_WEIGHT * self.similarity + CONFIDENCE_WEIGHT * self.confidence


class ComparableSearchResult(BaseModel):
    matches: list[ComparableMatch] = Field(default_factory=list)
    total_found: int = 0
    criteria: ComparableCriteria
    average_confidence: float = 0.0
    search_timestamp: datetime = Field(default_factory=datetime.utcnow)

    def top_matches(self, n: int = 5) -> list[ComparableMatch]:
        return self.matches[:n]

    @property
    def comparables(self) -> list[Comparable]:
        return [m.comparable for m in self.matches]


class ComparableAnalytics(BaseModel):
    total: int = 0
    by_transaction_type: dict[str, int] = Field(default_factory=dict)
    by_therapeutic_area: dict[str, int] = Field(default_factory=dict)
    by_stage: dict[str, int] = Field(default_factory=dict)
    average_valuation: float = 0.0
    median_valuation: float = 0.0
    valuation_range: tuple[float, float] = (0.0, 0.0)
    recent_transactions: int = 0
    high_confidence: int = 0


class ComparableValidation(BaseModel):
    is_valid: bool
    completeness: float = Field(ge=0.0, le=1.0)
    adjusted_confidence: float = Field(ge=0.0, le=1.0)
    issues: list[str] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
