"""Company profile models consumed by the scoring engine."""

import math
from datetime import date
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class DevelopmentStage(str, Enum):
    """Development stage, ordered from earliest to latest."""

    PRECLINICAL = "Preclinical"
    PHASE_1 = "Phase I"
    PHASE_2 = "Phase II"
    PHASE_3 = "Phase III"
    APPROVED = "Approved"
    MARKETED = "Marketed"

    @property
    def ordinal(self) -> int:
        return list(DevelopmentStage).index(self)


class FundingType(str, Enum):
    SEED = "Seed"
    SERIES_A = "Series A"
    SERIES_B = "Series B"
    SERIES_C = "Series C"
    IPO = "IPO"
    DEBT = "Debt"


class ReimbursementEnvironment(str, Enum):
    FAVORABLE = "Favorable"
    MODERATE = "Moderate"
    CHALLENGING = "Challenging"
    UNKNOWN = "Unknown"


class ApprovalType(str, Enum):
    FULL = "Full Approval"
    CONDITIONAL = "Conditional Approval"
    BREAKTHROUGH = "Breakthrough Designation"
    FAST_TRACK = "Fast Track"
    ORPHAN = "Orphan Drug"


class TrialStatus(str, Enum):
    PLANNED = "Planned"
    RECRUITING = "Recruiting"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    SUSPENDED = "Suspended"
    TERMINATED = "Terminated"


class RegulatoryPathway(str, Enum):
    STANDARD = "Standard"
    ACCELERATED = "Accelerated"
    BREAKTHROUGH = "Breakthrough"
    FAST_TRACK = "Fast Track"
    ORPHAN = "Orphan"


class MilestoneStatus(str, Enum):
    UPCOMING = "Upcoming"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    DELAYED = "Delayed"
    CANCELLED = "Cancelled"


class RiskProbability(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class RiskImpact(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class CompetitivePosition(str, Enum):
    """Competitive position of a program; Unknown sits outside the ordinal scale."""

    FIRST_IN_CLASS = "First-in-Class"
    BEST_IN_CLASS = "Best-in-Class"
    FAST_FOLLOWER = "Fast Follower"
    ME_TOO = "Me-Too"
    UNKNOWN = "Unknown"


ACTIVE_TRIAL_STATUSES = {TrialStatus.RECRUITING, TrialStatus.ACTIVE}
ADVANCED_STAGES = {DevelopmentStage.PHASE_3, DevelopmentStage.APPROVED, DevelopmentStage.MARKETED}


class BasicInfo(BaseModel):
    """Identity and high-level profile."""

    name: str = Field(description="Company name")
    ticker: Optional[str] = Field(default=None, description="Exchange ticker if public")
    sector: str = Field(default="Biotechnology")
    therapeutic_areas: list[str] = Field(default_factory=list)
    stage: Optional[DevelopmentStage] = Field(default=None, description="Most advanced stage")
    description: Optional[str] = None


class Milestone(BaseModel):
    name: str
    expected_date: date
    status: MilestoneStatus = MilestoneStatus.UPCOMING
    description: Optional[str] = None


class Risk(BaseModel):
    category: str
    description: str
    probability: RiskProbability = RiskProbability.MEDIUM
    impact: RiskImpact = RiskImpact.MEDIUM
    mitigation: Optional[str] = None


class Program(BaseModel):
    """A single pipeline program."""

    name: str
    indication: str
    stage: DevelopmentStage
    mechanism: str = ""
    differentiators: list[str] = Field(default_factory=list)
    risks: list[Risk] = Field(default_factory=list)
    timeline: list[Milestone] = Field(default_factory=list)
    competitive_position: CompetitivePosition = CompetitivePosition.UNKNOWN


class Pipeline(BaseModel):
    programs: list[Program] = Field(default_factory=list, description="Ordered; first is the lead program")

    @property
    def lead_program(self) -> Optional[Program]:
        return self.programs[0] if self.programs else None

    @property
    def total_programs(self) -> int:
        return len(self.programs)

    @property
    def indications(self) -> set[str]:
        return {p.indication.lower() for p in self.programs if p.indication}

    @property
    def mechanisms(self) -> set[str]:
        return {p.mechanism.lower() for p in self.programs if p.mechanism}


class FundingRound(BaseModel):
    type: FundingType
    amount: float = Field(ge=0.0, description="Round size in $M")
    date: date
    investors: list[str] = Field(default_factory=list)


class Financials(BaseModel):
    """Cash in $M, burn in $M per month."""

    cash_position: Optional[float] = None
    burn_rate: Optional[float] = None
    last_funding: Optional[FundingRound] = None

    @property
    def runway(self) -> Optional[float]:
        """Months of cash at the current burn; infinite when the company is not burning."""
        if self.cash_position is None or self.burn_rate is None:
            return None
        if self.burn_rate <= 0:
            return math.inf
        return self.cash_position / self.burn_rate


class Competitor(BaseModel):
    name: str
    stage: DevelopmentStage
    market_share: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


class MarketDynamics(BaseModel):
    growth_rate: float = Field(default=0.0, description="Annual growth rate, 0.1 = 10%")
    barriers: list[str] = Field(default_factory=list)
    drivers: list[str] = Field(default_factory=list)
    reimbursement: ReimbursementEnvironment = ReimbursementEnvironment.UNKNOWN


class Market(BaseModel):
    addressable_market: Optional[float] = Field(default=None, description="Addressable market in $B")
    competitors: list[Competitor] = Field(default_factory=list)
    market_dynamics: Optional[MarketDynamics] = None


class Approval(BaseModel):
    type: ApprovalType
    date: date
    indication: str
    region: str


class ClinicalTrial(BaseModel):
    name: str
    phase: DevelopmentStage
    indication: str
    status: TrialStatus
    start_date: Optional[date] = None
    expected_completion: Optional[date] = None
    patient_count: Optional[int] = Field(default=None, ge=0)


class RegulatoryStrategy(BaseModel):
    pathway: RegulatoryPathway = RegulatoryPathway.STANDARD
    timeline: int = Field(default=60, ge=0, description="Months to approval")
    risks: list[str] = Field(default_factory=list)
    mitigations: list[str] = Field(default_factory=list)


class Regulatory(BaseModel):
    approvals: list[Approval] = Field(default_factory=list)
    clinical_trials: list[ClinicalTrial] = Field(default_factory=list)
    regulatory_strategy: Optional[RegulatoryStrategy] = None


class CompanyData(BaseModel):
    """Full company record evaluated by the scoring and valuation engines."""

    basic_info: BasicInfo
    pipeline: Pipeline = Field(default_factory=Pipeline)
    financials: Financials = Field(default_factory=Financials)
    market: Market = Field(default_factory=Market)
    regulatory: Regulatory = Field(default_factory=Regulatory)

    @property
    def name(self) -> str:
        return self.basic_info.name

    @property
    def areas_lower(self) -> list[str]:
        return [a.lower() for a in self.basic_info.therapeutic_areas]
