"""Market Outlook pillar."""

from bdscore.models.company import (
    ADVANCED_STAGES,
    CompanyData,
    RegulatoryPathway,
    ReimbursementEnvironment,
)
from bdscore.models.scoring import MarketContext, Pillar
from .base import Factor, PillarScorer, contains_any

PATHWAY_SCORES = {
    RegulatoryPathway.BREAKTHROUGH: 5.0,
    RegulatoryPathway.FAST_TRACK: 4.5,
    RegulatoryPathway.ACCELERATED: 4.0,
    RegulatoryPathway.ORPHAN: 4.0,
    RegulatoryPathway.STANDARD: 3.0,
}

REIMBURSEMENT_SCORES = {
    ReimbursementEnvironment.FAVORABLE: 5.0,
    ReimbursementEnvironment.MODERATE: 3.0,
    ReimbursementEnvironment.CHALLENGING: 2.0,
    ReimbursementEnvironment.UNKNOWN: 2.5,
}

HIGH_IMPACT_DRIVERS = ["unmet need", "aging population", "breakthrough", "innovation"]


class MarketOutlookScorer(PillarScorer):
    """Score the size, growth and accessibility of the target market."""

    pillar = Pillar.MARKET_OUTLOOK
    methodology_reliability = 0.80
    required = ("market.addressable_market", "basic_info.therapeutic_areas")
    optional = ("market.competitors", "market.market_dynamics")

    def score_factors(self, company: CompanyData, context: MarketContext) -> list[Factor]:
        return [
            self._score_market_size(company),
            self._score_growth_potential(company),
            self._score_competitive_landscape(company),
            self._score_regulatory_pathway(company),
            self._score_reimbursement(company),
            self._score_market_dynamics(company),
        ]

    def data_quality(self, company: CompanyData) -> float:
        market = company.market
        checks = [
            market.addressable_market is not None and market.addressable_market > 0,
            market.market_dynamics is not None,
            bool(market.competitors),
            company.regulatory.regulatory_strategy is not None,
            market.market_dynamics is not None
            and bool(market.market_dynamics.drivers or market.market_dynamics.barriers),
        ]
        return sum(checks) / len(checks)

    def pillar_warnings(self, company: CompanyData, context: MarketContext) -> list[str]:
        warnings = []
        market = company.market
        if market.addressable_market is not None and market.addressable_market < 0.1:
            warnings.append("Very small addressable market (<$100M)")
        if market.market_dynamics is not None and market.market_dynamics.growth_rate < 0:
            warnings.append("Negative market growth rate")
        approved = [c for c in market.competitors if c.stage.ordinal >= 4]
        if len(approved) > 2:
            warnings.append("Multiple approved competitors in market")
        if not market.competitors:
            warnings.append("Empty competitor list; competitive landscape may be understated")
        strategy = company.regulatory.regulatory_strategy
        if strategy is not None and strategy.timeline > 60:
            warnings.append("Long regulatory timeline (>5 years)")
        if (
            market.market_dynamics is not None
            and market.market_dynamics.reimbursement == ReimbursementEnvironment.CHALLENGING
        ):
            warnings.append("Challenging reimbursement environment")
        return warnings

    def _score_market_size(self, company: CompanyData) -> Factor:
        size = company.market.addressable_market
        if size is None:
            return Factor("Market Size", 0.30, 3.0, "Addressable market not provided", degraded=True)
        if size >= 10:
            score = 5.0
        elif size >= 5:
            score = 4.0
        elif size >= 1:
            score = 3.0
        elif size >= 0.1:
            score = 2.0
        else:
            score = 1.0
        return Factor("Market Size", 0.30, score, f"${size:.1f}B addressable market")

    def _score_growth_potential(self, company: CompanyData) -> Factor:
        dynamics = company.market.market_dynamics
        if dynamics is None:
            return Factor("Growth Potential", 0.25, 3.0, "Market dynamics not provided", degraded=True)
        rate = dynamics.growth_rate
        if rate >= 0.15:
            score = 5.0
        elif rate >= 0.08:
            score = 4.0
        elif rate >= 0.03:
            score = 3.0
        elif rate >= 0:
            score = 2.0
        else:
            score = 1.0
        if len(dynamics.drivers) > len(dynamics.barriers):
            score += 0.5
        elif len(dynamics.barriers) > len(dynamics.drivers):
            score -= 0.5
        return Factor("Growth Potential", 0.25, score, f"{rate:.1%} annual growth")

    def _score_competitive_landscape(self, company: CompanyData) -> Factor:
        competitors = company.market.competitors
        n = len(competitors)
        if n == 0:
            score = 5.0
        elif n <= 2:
            score = 4.0
        elif n <= 5:
            score = 3.0
        elif n <= 10:
            score = 2.0
        else:
            score = 1.0
        rationale = f"{n} competitor(s)"
        if competitors:
            advanced = sum(1 for c in competitors if c.stage in ADVANCED_STAGES)
            if advanced > n / 2:
                score -= 1.0
                rationale += ", majority late-stage"
            with_weaknesses = sum(1 for c in competitors if c.weaknesses)
            if with_weaknesses > n / 2:
                score += 0.5
                rationale += ", most with known weaknesses"
        return Factor("Competitive Landscape", 0.20, score, rationale)

    def _score_regulatory_pathway(self, company: CompanyData) -> Factor:
        strategy = company.regulatory.regulatory_strategy
        if strategy is None:
            return Factor("Regulatory Pathway", 0.15, 3.0, "No regulatory strategy provided", degraded=True)
        score = PATHWAY_SCORES[strategy.pathway]
        if strategy.timeline <= 24:
            score += 0.5
        elif strategy.timeline >= 60:
            score -= 0.5
        if len(strategy.risks) > 3:
            score -= 0.5
        return Factor(
            "Regulatory Pathway", 0.15, score,
            f"{strategy.pathway.value} pathway, {strategy.timeline} months",
        )

    def _score_reimbursement(self, company: CompanyData) -> Factor:
        dynamics = company.market.market_dynamics
        env = dynamics.reimbursement if dynamics else ReimbursementEnvironment.UNKNOWN
        return Factor("Reimbursement", 0.05, REIMBURSEMENT_SCORES[env], f"{env.value} reimbursement environment")

    def _score_market_dynamics(self, company: CompanyData) -> Factor:
        dynamics = company.market.market_dynamics
        if dynamics is None:
            return Factor("Market Dynamics", 0.05, 3.0, "Market dynamics not provided", degraded=True)
        net = len(dynamics.drivers) - len(dynamics.barriers)
        if net >= 3:
            score = 5.0
        elif net >= 1:
            score = 4.0
        elif net == 0:
            score = 3.0
        elif net >= -2:
            score = 2.0
        else:
            score = 1.0
        if any(contains_any(d, HIGH_IMPACT_DRIVERS) for d in dynamics.drivers):
            score += 0.5
        return Factor(
            "Market Dynamics", 0.05, score,
            f"{len(dynamics.drivers)} driver(s) vs {len(dynamics.barriers)} barrier(s)",
        )
