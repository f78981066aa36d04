"""Valuation result models."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, computed_field

from .comparables import ComparableMatch


class ScenarioName(str, Enum):
    BEAR = "Bear"
    BASE = "Base"
    BULL = "Bull"


class ValuationScenario(BaseModel):
    name: ScenarioName
    description: str
    valuation: float = Field(ge=0.0, description="$M")
    probability: float = Field(ge=0.0, le=1.0)
    key_assumptions: list[str] = Field(default_factory=list)
    timeline: int = Field(default=36, description="Months to realization")


class ValuationRange(BaseModel):
    low: float
    base: float
    high: float
    confidence: float = Field(ge=0.0, le=1.0)


class SensitivityRow(BaseModel):
    """One-factor-at-a-time perturbation of a single valuation assumption."""

    assumption: str
    base_value: float
    low_valuation: float
    base_valuation: float
    high_valuation: float

    @computed_field  # type: ignore[misc]
    @property
    def low_delta(self) -> float:
        return self.low_valuation - self.base_valuation

    @computed_field  # type: ignore[misc]
    @property
    def high_delta(self) -> float:
        return self.high_valuation - self.base_valuation

    @computed_field  # type: ignore[misc]
    @property
    def swing(self) -> float:
        return abs(self.high_valuation - self.low_valuation)


class DriverImpact(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    VERY_HIGH = "Very High"


class ValuationDriver(BaseModel):
    name: str
    description: str
    impact: DriverImpact
    quantification: Optional[str] = None


class ValuationRisk(BaseModel):
    name: str
    description: str
    probability: float = Field(ge=0.0, le=1.0)
    impact: float = Field(ge=0.0, le=1.0, description="Fraction of value lost if realized")

    @computed_field  # type: ignore[misc]
    @property
    def expected_loss(self) -> float:
        return self.probability * self.impact


class ValuationFlag(str, Enum):
    INSUFFICIENT_COMPARABLES = "insufficient_comparables"
    WIDE_DISPERSION = "wide_dispersion"
    NARROW_DISPERSION = "narrow_dispersion"


class ValuationResult(BaseModel):
    company_name: str
    base_valuation: Optional[float] = None
    range: Optional[ValuationRange] = None
    scenarios: list[ValuationScenario] = Field(default_factory=list)
    comparables_used: list[ComparableMatch] = Field(default_factory=list)
    sensitivity: list[SensitivityRow] = Field(default_factory=list)
    drivers: list[ValuationDriver] = Field(default_factory=list)
    risks: list[ValuationRisk] = Field(default_factory=list)
    dispersion: float = 0.0
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    flags: list[ValuationFlag] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    methodology: str = "Comparable transactions"
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    @property
    def insufficient_comparables(self) -> bool:
        return ValuationFlag.INSUFFICIENT_COMPARABLES in self.flags

    @property
    def expected_value(self) -> Optional[float]:
        if not self.scenarios:
            return None
        return sum(s.valuation * s.probability for s in self.scenarios)
