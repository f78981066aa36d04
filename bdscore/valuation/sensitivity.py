"""Risk-adjusted NPV model used for one-factor-at-a-time sensitivity analysis."""

from dataclasses import dataclass, replace
from typing import Optional

from bdscore.models.company import CompanyData, DevelopmentStage, RegulatoryPathway
from bdscore.models.valuation import SensitivityRow

PERTURBATION = 0.20
OPERATING_MARGIN = 0.30
COMMERCIAL_YEARS = 10
RAMP_YEARS = 3.0
DEFAULT_MARKET_SIZE = 1.0  # $B, used when the company reports none

PEAK_PENETRATION = {
    DevelopmentStage.PRECLINICAL: 0.01,
    DevelopmentStage.PHASE_1: 0.02,
    DevelopmentStage.PHASE_2: 0.05,
    DevelopmentStage.PHASE_3: 0.10,
    DevelopmentStage.APPROVED: 0.15,
    DevelopmentStage.MARKETED: 0.20,
}

MONTHS_TO_MARKET = {
    DevelopmentStage.PRECLINICAL: 84,
    DevelopmentStage.PHASE_1: 72,
    DevelopmentStage.PHASE_2: 48,
    DevelopmentStage.PHASE_3: 24,
    DevelopmentStage.APPROVED: 6,
    DevelopmentStage.MARKETED: 0,
}

CLINICAL_SUCCESS = {
    DevelopmentStage.PRECLINICAL: 0.1,
    DevelopmentStage.PHASE_1: 0.3,
    DevelopmentStage.PHASE_2: 0.5,
    DevelopmentStage.PHASE_3: 0.7,
    DevelopmentStage.APPROVED: 0.9,
    DevelopmentStage.MARKETED: 1.0,
}

REGULATORY_SUCCESS = {
    RegulatoryPathway.BREAKTHROUGH: 0.9,
    RegulatoryPathway.FAST_TRACK: 0.9,
    RegulatoryPathway.ACCELERATED: 0.8,
    RegulatoryPathway.ORPHAN: 0.85,
    RegulatoryPathway.STANDARD: 0.7,
}


@dataclass(frozen=True)
class RnpvAssumptions:
    peak_sales: float  # $M per year
    success_probability: float
    time_to_peak: float  # years
    discount_rate: float

    def perturbed(self, name: str, factor: float) -> "RnpvAssumptions":
        value = getattr(self, name) * factor
        if name == "success_probability":
            value = min(1.0, value)
        return replace(self, **{name: value})


SENSITIVITY_ASSUMPTIONS = {
    "peak_sales": "Peak sales",
    "success_probability": "Success probability",
    "time_to_peak": "Time to peak",
    "discount_rate": "Discount rate",
}


def assumptions_for(company: CompanyData, discount_rate: float, stage: Optional[DevelopmentStage] = None) -> RnpvAssumptions:
    """Derive base-case model assumptions from the company profile."""
    stage = stage or company.basic_info.stage or DevelopmentStage.PRECLINICAL
    market = company.market.addressable_market or DEFAULT_MARKET_SIZE

    strategy = company.regulatory.regulatory_strategy
    pathway = strategy.pathway if strategy else RegulatoryPathway.STANDARD
    regulatory = 1.0 if stage in (DevelopmentStage.APPROVED, DevelopmentStage.MARKETED) else REGULATORY_SUCCESS[pathway]
    competitive = max(0.5, 1.0 - 0.1 * len(company.market.competitors))

    return RnpvAssumptions(
        peak_sales=market * 1000.0 * PEAK_PENETRATION[stage],
        success_probability=CLINICAL_SUCCESS[stage] * regulatory * competitive,
        time_to_peak=MONTHS_TO_MARKET[stage] / 12.0 + RAMP_YEARS,
        discount_rate=discount_rate,
    )


def rnpv(a: RnpvAssumptions) -> float:
    """Probability-weighted present value of post-peak operating cash flows."""
    annual = a.peak_sales * OPERATING_MARGIN
    rate = 1.0 + a.discount_rate
    commercial_value = sum(annual / rate ** year for year in range(1, COMMERCIAL_YEARS + 1))
    return a.success_probability * commercial_value / rate ** a.time_to_peak


def sensitivity_table(base_valuation: float, assumptions: RnpvAssumptions) -> list[SensitivityRow]:
    """Scale the comparables-based valuation by the rNPV response to each ±20% move."""
    base_value = rnpv(assumptions)
    rows = []
    for name, label in SENSITIVITY_ASSUMPTIONS.items():
        if base_value > 0:
            low = base_valuation * rnpv(assumptions.perturbed(name, 1.0 - PERTURBATION)) / base_value
            high = base_valuation * rnpv(assumptions.perturbed(name, 1.0 + PERTURBATION)) / base_value
        else:
            low = high = base_valuation
        rows.append(SensitivityRow(
            assumption=label,
            base_value=getattr(assumptions, name),
            low_valuation=low,
            base_valuation=base_valuation,
            high_valuation=high,
        ))
    return rows
