"""The six pillar scorers. The set is closed: one scorer per Pillar."""

from bdscore.models.scoring import Pillar
from .base import PillarScorer, ScoreExplanation, explain_score
from .asset_quality import AssetQualityScorer
from .market_outlook import MarketOutlookScorer
from .capital_intensity import CapitalIntensityScorer
from .strategic_fit import StrategicFitScorer
from .financial_readiness import FinancialReadinessScorer
from .regulatory_risk import RegulatoryRiskScorer

PILLAR_SCORERS: dict[Pillar, type[PillarScorer]] = {
    Pillar.ASSET_QUALITY: AssetQualityScorer,
    Pillar.MARKET_OUTLOOK: MarketOutlookScorer,
    Pillar.CAPITAL_INTENSITY: CapitalIntensityScorer,
    Pillar.STRATEGIC_FIT: StrategicFitScorer,
    Pillar.FINANCIAL_READINESS: FinancialReadinessScorer,
    Pillar.REGULATORY_RISK: RegulatoryRiskScorer,
}


def build_scorers() -> dict[Pillar, PillarScorer]:
    """Instantiate one scorer per pillar."""
    return {pillar: scorer_cls() for pillar, scorer_cls in PILLAR_SCORERS.items()}


__all__ = [
    "PILLAR_SCORERS",
    "PillarScorer",
    "ScoreExplanation",
    "explain_score",
    "build_scorers",
    "AssetQualityScorer",
    "MarketOutlookScorer",
    "CapitalIntensityScorer",
    "StrategicFitScorer",
    "FinancialReadinessScorer",
    "RegulatoryRiskScorer",
]
