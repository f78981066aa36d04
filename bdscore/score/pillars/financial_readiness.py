"""Financial Readiness pillar: cash, burn and runway."""

import math

from bdscore.models.company import CompanyData, DevelopmentStage
from bdscore.models.scoring import MarketContext, Pillar
from .base import Factor, PillarScorer

OPTIMAL_RUNWAY_MONTHS = 24
MINIMUM_RUNWAY_MONTHS = 12
FINANCING_LEAD_MONTHS = 9
STALE_FUNDING_DAYS = 730

CASH_THRESHOLDS = (500.0, 200.0, 100.0, 50.0)
CASH_STAGE_MULTIPLIER = {
    DevelopmentStage.PRECLINICAL: 0.5,
    DevelopmentStage.PHASE_1: 0.7,
    DevelopmentStage.PHASE_2: 1.0,
    DevelopmentStage.PHASE_3: 1.5,
    DevelopmentStage.APPROVED: 1.2,
    DevelopmentStage.MARKETED: 2.0,
}

# Expected monthly burn ($M) by stage
EXPECTED_BURN = {
    DevelopmentStage.PRECLINICAL: (1.0, 5.0),
    DevelopmentStage.PHASE_1: (3.0, 10.0),
    DevelopmentStage.PHASE_2: (5.0, 20.0),
    DevelopmentStage.PHASE_3: (10.0, 50.0),
    DevelopmentStage.APPROVED: (5.0, 30.0),
    DevelopmentStage.MARKETED: (10.0, 100.0),
}

STAGE_INTENSITY = {
    DevelopmentStage.PRECLINICAL: 0.2,
    DevelopmentStage.PHASE_1: 0.4,
    DevelopmentStage.PHASE_2: 0.6,
    DevelopmentStage.PHASE_3: 0.9,
    DevelopmentStage.APPROVED: 0.5,
    DevelopmentStage.MARKETED: 0.3,
}

# Later-stage companies raise on better terms
FINANCING_STAGE_ADVANTAGE = {
    DevelopmentStage.PRECLINICAL: 0.8,
    DevelopmentStage.PHASE_1: 0.9,
    DevelopmentStage.PHASE_2: 1.0,
    DevelopmentStage.PHASE_3: 1.2,
    DevelopmentStage.APPROVED: 1.3,
    DevelopmentStage.MARKETED: 1.1,
}


def runway_score(runway: float) -> float:
    if runway >= 24:
        return 5.0
    if runway >= 18:
        return 4.0
    if runway >= 12:
        return 3.0
    if runway >= 6:
        return 2.0
    return 1.0


class FinancialReadinessScorer(PillarScorer):
    """Score the company's ability to fund itself to the next value inflection."""

    pillar = Pillar.FINANCIAL_READINESS
    methodology_reliability = 0.90
    required = ("financials.cash_position", "financials.burn_rate", "financials.runway")
    optional = ("financials.last_funding",)

    def score_factors(self, company: CompanyData, context: MarketContext) -> list[Factor]:
        return [
            self._score_cash_position(company),
            self._score_burn_efficiency(company),
            self._score_runway(company),
            self._score_capital_intensity(company),
            self._score_financing_timing(company),
            self._score_data_freshness(company, context),
        ]

    def data_quality(self, company: CompanyData) -> float:
        financials = company.financials
        quality = 1.0
        if financials.cash_position is None or financials.burn_rate is None:
            quality *= 0.5
        if financials.last_funding is None:
            quality *= 0.8
        runway = financials.runway
        if runway is not None and not (0 < runway <= 120):
            quality *= 0.7
        return quality

    def pillar_warnings(self, company: CompanyData, context: MarketContext) -> list[str]:
        warnings = []
        financials = company.financials
        runway = financials.runway
        if runway is not None:
            if runway < 6:
                warnings.append("Critical: Less than 6 months runway remaining")
            elif runway < MINIMUM_RUNWAY_MONTHS:
                warnings.append("Warning: Less than 12 months runway remaining")
        if financials.cash_position is not None and financials.cash_position < 0:
            warnings.append("Negative cash position reported")
        if (
            financials.cash_position is not None
            and financials.burn_rate is not None
            and financials.burn_rate > 0.1 * financials.cash_position
        ):
            warnings.append("High burn rate relative to cash position")
        if financials.last_funding is not None:
            days = (context.as_of - financials.last_funding.date).days
            if days > STALE_FUNDING_DAYS:
                warnings.append("Stale funding data (>2 years)")
            elif days > 540:
                warnings.append("No recent funding activity (>18 months)")
        return warnings

    def _score_cash_position(self, company: CompanyData) -> Factor:
        cash = company.financials.cash_position
        if cash is None:
            return Factor("Cash Position", 0.25, 1.0, "Cash position not provided", degraded=True)
        stage, degraded = self.company_stage(company)
        multiplier = CASH_STAGE_MULTIPLIER[stage]
        score = 1.0
        for threshold, value in zip(CASH_THRESHOLDS, (5.0, 4.0, 3.0, 2.0)):
            if cash >= threshold * multiplier:
                score = value
                break
        return Factor("Cash Position", 0.25, score, f"${cash:.1f}M cash at {stage.value}", degraded=degraded)

    def _score_burn_efficiency(self, company: CompanyData) -> Factor:
        burn = company.financials.burn_rate
        if burn is None:
            return Factor("Burn Rate Efficiency", 0.20, 3.0, "Burn rate not provided", degraded=True)
        stage, degraded = self.company_stage(company)
        low, high = EXPECTED_BURN[stage]
        if burn <= low:
            score = 5.0
        elif burn <= low * 1.5:
            score = 4.0
        elif burn <= high:
            score = 3.0
        elif burn <= high * 1.5:
            score = 2.0
        else:
            score = 1.0
        return Factor(
            "Burn Rate Efficiency", 0.20, score,
            f"${burn:.1f}M/month against expected ${low:.0f}-{high:.0f}M",
            degraded=degraded,
        )

    def _score_runway(self, company: CompanyData) -> Factor:
        runway = company.financials.runway
        if runway is None:
            return Factor("Funding Runway", 0.30, 1.0, "Runway cannot be derived", degraded=True)
        label = "unlimited" if math.isinf(runway) else f"{runway:.1f} months"
        return Factor("Funding Runway", 0.30, runway_score(runway), f"Runway {label}")

    def _score_capital_intensity(self, company: CompanyData) -> Factor:
        stage, degraded = self.company_stage(company)
        stage_intensity = STAGE_INTENSITY[stage]
        pipeline_complexity = (
            min(1.0, company.pipeline.total_programs / 10) + min(1.0, len(company.pipeline.indications) / 5)
        ) / 2
        combined = (stage_intensity + pipeline_complexity) / 2
        if combined < 0.3:
            score = 5.0
        elif combined < 0.5:
            score = 4.0
        elif combined < 0.7:
            score = 3.0
        elif combined < 0.9:
            score = 2.0
        else:
            score = 1.0
        return Factor("Capital Intensity", 0.15, score, f"Combined intensity {combined:.2f}", degraded=degraded)

    def _score_financing_timing(self, company: CompanyData) -> Factor:
        runway = company.financials.runway
        if runway is None:
            return Factor("Financing Need Timing", 0.08, 1.0, "Runway cannot be derived", degraded=True)
        months = max(0.0, runway - FINANCING_LEAD_MONTHS)
        if months >= 18:
            score = 5.0
        elif months >= 12:
            score = 4.0
        elif months >= 6:
            score = 3.0
        elif months >= 3:
            score = 2.0
        else:
            score = 1.0
        stage, _ = self.company_stage(company)
        score = min(5.0, score * FINANCING_STAGE_ADVANTAGE[stage])
        label = "no near-term raise needed" if math.isinf(months) else f"raise needed in {months:.0f} months"
        return Factor("Financing Need Timing", 0.08, score, label)

    def _score_data_freshness(self, company: CompanyData, context: MarketContext) -> Factor:
        funding = company.financials.last_funding
        if funding is None:
            return Factor("Data Freshness", 0.02, 5.0, "No funding record to age")
        days = (context.as_of - funding.date).days
        if days < 30:
            score = 5.0
        elif days < 60:
            score = 4.0
        elif days < 90:
            score = 3.0
        elif days < 180:
            score = 2.0
        else:
            score = 1.0
        return Factor("Data Freshness", 0.02, score, f"Last funding {days} days before {context.as_of.isoformat()}")
