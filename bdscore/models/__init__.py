"""Data models for the BD Scoring & Valuation Engine."""

from .company import (
    BasicInfo,
    ClinicalTrial,
    CompanyData,
    CompetitivePosition,
    Competitor,
    DevelopmentStage,
    Financials,
    FundingRound,
    FundingType,
    Market,
    MarketDynamics,
    Milestone,
    Pipeline,
    Program,
    Regulatory,
    RegulatoryPathway,
    RegulatoryStrategy,
    ReimbursementEnvironment,
    TrialStatus,
)
from .scoring import (
    ConfidenceMetrics,
    EvaluationError,
    InvestmentRecommendation,
    MarketContext,
    Pillar,
    PillarScore,
    PillarScores,
    RiskLevel,
    ScoringConfig,
    ScoringFactor,
    ScoringParameters,
    ScoringResult,
    ValidationResult,
    WeightConfig,
    WeightedScores,
)
from .comparables import (
    Comparable,
    ComparableCriteria,
    ComparableMatch,
    ComparableProgram,
    ComparableSearchResult,
    MatchingFactors,
    TargetProfile,
    TransactionType,
)
from .valuation import (
    ScenarioName,
    SensitivityRow,
    ValuationFlag,
    ValuationRange,
    ValuationResult,
    ValuationScenario,
)

__all__ = [
    "BasicInfo",
    "ClinicalTrial",
    "CompanyData",
    "CompetitivePosition",
    "Competitor",
    "DevelopmentStage",
    "Financials",
    "FundingRound",
    "FundingType",
    "Market",
    "MarketDynamics",
    "Milestone",
    "Pipeline",
    "Program",
    "Regulatory",
    "RegulatoryPathway",
    "RegulatoryStrategy",
    "ReimbursementEnvironment",
    "TrialStatus",
    "ConfidenceMetrics",
    "EvaluationError",
    "InvestmentRecommendation",
    "MarketContext",
    "Pillar",
    "PillarScore",
    "PillarScores",
    "RiskLevel",
    "ScoringConfig",
    "ScoringFactor",
    "ScoringParameters",
    "ScoringResult",
    "ValidationResult",
    "WeightConfig",
    "WeightedScores",
    "Comparable",
    "ComparableCriteria",
    "ComparableMatch",
    "ComparableProgram",
    "ComparableSearchResult",
    "MatchingFactors",
    "TargetProfile",
    "TransactionType",
    "ScenarioName",
    "SensitivityRow",
    "ValuationFlag",
    "ValuationRange",
    "ValuationResult",
    "ValuationScenario",
]
