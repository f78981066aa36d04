"""Comparables-based valuation with scenarios and sensitivity analysis."""

import logging
import math
from datetime import date
from statistics import mean, pstdev
from typing import Optional, Union

from bdscore.comparables.matcher import ComparablesMatcher, profile_from_company
from bdscore.config import settings
from bdscore.models.comparables import Comparable, ComparableMatch
from bdscore.models.company import CompanyData, DevelopmentStage
from bdscore.models.scoring import ScoringParameters, ScoringResult
from bdscore.models.valuation import (
    DriverImpact,
    ScenarioName,
    ValuationDriver,
    ValuationFlag,
    ValuationRange,
    ValuationResult,
    ValuationRisk,
    ValuationScenario,
)
from .sensitivity import MONTHS_TO_MARKET, assumptions_for, sensitivity_table

logger = logging.getLogger(__name__)

SCENARIO_PROBABILITIES = {ScenarioName.BEAR: 0.25, ScenarioName.BASE: 0.50, ScenarioName.BULL: 0.25}
SCENARIO_WIDTH = 1.5  # bear/bull offset in units of spread
MIN_SPREAD = 0.05
MAX_SPREAD = 0.9
BEAR_FLOOR = 0.1  # fraction of base
WIDE_DISPERSION = 0.75
NARROW_DISPERSION = 0.05

CLINICAL_FAILURE = {
    DevelopmentStage.PRECLINICAL: 0.9,
    DevelopmentStage.PHASE_1: 0.7,
    DevelopmentStage.PHASE_2: 0.5,
    DevelopmentStage.PHASE_3: 0.3,
    DevelopmentStage.APPROVED: 0.1,
    DevelopmentStage.MARKETED: 0.05,
}


def spread_from_dispersion(cv: float) -> float:
    return min(MAX_SPREAD, max(MIN_SPREAD, cv))


class ValuationEngine:
    """Value a company from ranked comparable transactions."""

    def __init__(
        self,
        matcher: Optional[ComparablesMatcher] = None,
        top_k: Optional[int] = None,
        parameters: Optional[ScoringParameters] = None,
    ):
        self.matcher = matcher or ComparablesMatcher()
        self.top_k = top_k or settings.valuation_top_k
        self.parameters = parameters or ScoringParameters()

    def calculate_valuation(
        self,
        company: CompanyData,
        comparables: list[Union[ComparableMatch, Comparable]],
        scoring: Optional[ScoringResult] = None,
        parameters: Optional[ScoringParameters] = None,
        as_of: Optional[date] = None,
    ) -> ValuationResult:
        """Weighted-average valuation over the top comparables, with range, scenarios and sensitivity.

        as_of anchors comparable age. When omitted it falls back to today, so
        repeatable results need an explicit date.
        """
        as_of = as_of or date.today()
        matches = self._as_matches(company, comparables, as_of)

        if not matches:
            logger.info(f"No comparables available for {company.name}; valuation withheld")
            return ValuationResult(
                company_name=company.name,
                confidence=0.0,
                flags=[ValuationFlag.INSUFFICIENT_COMPARABLES],
                warnings=["Insufficient comparables: no transactions matched the search criteria"],
                risks=self.assess_risks(company),
            )

        used = sorted(
            matches,
            key=lambda m: (-m.weighted_score, -m.comparable.date.toordinal(), m.comparable.company_name),
        )[: self.top_k]

        total_weight = sum(m.weighted_score for m in used)
        if total_weight > 0:
            weights = [m.weighted_score / total_weight for m in used]
        else:
            weights = [1.0 / len(used)] * len(used)
        valuations = [m.comparable.valuation for m in used]
        base = sum(w * v for w, v in zip(weights, valuations))

        cv = self.dispersion(valuations)
        spread = spread_from_dispersion(cv)

        confidence = mean(m.confidence for m in used)
        flags = []
        warnings = []
        if len(used) < self.top_k:
            confidence *= len(used) / self.top_k
            flags.append(ValuationFlag.INSUFFICIENT_COMPARABLES)
            warnings.append(f"Only {len(used)} of {self.top_k} comparables available; confidence reduced")
        if cv > WIDE_DISPERSION:
            flags.append(ValuationFlag.WIDE_DISPERSION)
            warnings.append(f"Comparable valuations are widely dispersed (CV {cv:.2f})")
        elif len(used) >= 2 and cv < NARROW_DISPERSION:
            flags.append(ValuationFlag.NARROW_DISPERSION)
            warnings.append(f"Comparable valuations are unusually tight (CV {cv:.2f})")

        stage = company.basic_info.stage or used[0].comparable.stage
        assumptions = assumptions_for(company, (parameters or self.parameters).discount_rate, stage)
        timeline = MONTHS_TO_MARKET[stage] or 12

        result = ValuationResult(
            company_name=company.name,
            base_valuation=base,
            range=ValuationRange(
                low=base * (1.0 - spread),
                base=base,
                high=base * (1.0 + spread),
                confidence=confidence,
            ),
            scenarios=self.generate_scenarios(base, cv, timeline),
            comparables_used=used,
            sensitivity=sensitivity_table(base, assumptions),
            drivers=self.identify_drivers(company, scoring),
            risks=self.assess_risks(company),
            dispersion=cv,
            confidence=confidence,
            flags=flags,
            warnings=warnings,
        )
        logger.info(
            f"Valued {company.name} at ${base:,.0f}M "
            f"(${result.range.low:,.0f}M-${result.range.high:,.0f}M) from {len(used)} comparable(s)"
        )
        return result

    def generate_scenarios(self, base_valuation: float, dispersion: float = 0.0, timeline: int = 36) -> list[ValuationScenario]:
        """Bear, Base and Bull cases offset from base by a multiple of comparable dispersion."""
        spread = spread_from_dispersion(dispersion)
        offset = SCENARIO_WIDTH * spread
        bear = max(base_valuation * BEAR_FLOOR, base_valuation * (1.0 - offset))
        bull = base_valuation * (1.0 + offset)
        return [
            ValuationScenario(
                name=ScenarioName.BEAR,
                description="Clinical or commercial setbacks push value toward the low end of comparables",
                valuation=bear,
                probability=SCENARIO_PROBABILITIES[ScenarioName.BEAR],
                key_assumptions=["Trial delays or mixed data", "Weaker deal terms", f"-{offset:.0%} versus base"],
                timeline=int(timeline * 1.5),
            ),
            ValuationScenario(
                name=ScenarioName.BASE,
                description="Value in line with the weighted comparable set",
                valuation=base_valuation,
                probability=SCENARIO_PROBABILITIES[ScenarioName.BASE],
                key_assumptions=["Development proceeds on plan", "Deal terms in line with comparables"],
                timeline=timeline,
            ),
            ValuationScenario(
                name=ScenarioName.BULL,
                description="Strong data and competitive interest push value above comparables",
                valuation=bull,
                probability=SCENARIO_PROBABILITIES[ScenarioName.BULL],
                key_assumptions=["Best-in-class data", "Competitive bidding", f"+{offset:.0%} versus base"],
                timeline=max(1, int(timeline * 0.75)),
            ),
        ]

    @staticmethod
    def dispersion(valuations: list[float]) -> float:
        """Coefficient of variation (population)."""
        if len(valuations) < 2:
            return 0.0
        average = mean(valuations)
        if average <= 0:
            return 0.0
        return pstdev(valuations) / average

    def identify_drivers(self, company: CompanyData, scoring: Optional[ScoringResult] = None) -> list[ValuationDriver]:
        drivers = []
        market = company.market.addressable_market
        if market is not None:
            impact = DriverImpact.VERY_HIGH if market >= 10 else DriverImpact.HIGH if market >= 5 else DriverImpact.MEDIUM
            drivers.append(ValuationDriver(
                name="Market Size",
                description="Addressable market sets the revenue ceiling",
                impact=impact,
                quantification=f"${market:.1f}B",
            ))
        stage = company.basic_info.stage
        if stage is not None:
            impact = DriverImpact.HIGH if stage.ordinal >= DevelopmentStage.PHASE_2.ordinal else DriverImpact.MEDIUM
            drivers.append(ValuationDriver(
                name="Development Stage",
                description="Later-stage assets carry less clinical risk",
                impact=impact,
                quantification=stage.value,
            ))
        runway = company.financials.runway
        if runway is not None:
            impact = DriverImpact.HIGH if runway < 12 else DriverImpact.MEDIUM if runway < 24 else DriverImpact.LOW
            label = "unlimited" if math.isinf(runway) else f"{runway:.0f} months"
            drivers.append(ValuationDriver(
                name="Cash Runway",
                description="Short runway weakens negotiating position",
                impact=impact,
                quantification=label,
            ))
        count = company.pipeline.total_programs
        if count > 1:
            drivers.append(ValuationDriver(
                name="Pipeline Breadth",
                description="Additional programs provide optionality",
                impact=DriverImpact.MEDIUM if count > 3 else DriverImpact.LOW,
                quantification=f"{count} programs",
            ))
        if scoring is not None:
            drivers.append(ValuationDriver(
                name="Overall Score",
                description=f"{scoring.recommendation.value} rating with {scoring.risk_level.value.lower()} risk",
                impact=DriverImpact.HIGH if scoring.overall_score >= 4.0 else DriverImpact.MEDIUM,
                quantification=f"{scoring.overall_score:.2f} / 5",
            ))
        return drivers

    def assess_risks(self, company: CompanyData) -> list[ValuationRisk]:
        stage = company.basic_info.stage or DevelopmentStage.PRECLINICAL
        competitors = len(company.market.competitors)
        runway = company.financials.runway
        if runway is None or runway < 12:
            funding_probability = 0.7
        elif runway < 24:
            funding_probability = 0.4
        else:
            funding_probability = 0.2
        return [
            ValuationRisk(
                name="Clinical Risk",
                description="Failure to meet clinical endpoints",
                probability=CLINICAL_FAILURE[stage],
                impact=0.4,
            ),
            ValuationRisk(
                name="Regulatory Risk",
                description="Delay or rejection of approval",
                probability=0.3,
                impact=0.6,
            ),
            ValuationRisk(
                name="Competitive Risk",
                description="Competitors reach market first or with better data",
                probability=min(0.8, 0.1 * competitors),
                impact=0.3,
            ),
            ValuationRisk(
                name="Funding Risk",
                description="Dilutive or distressed financing before the next milestone",
                probability=funding_probability,
                impact=0.5,
            ),
        ]

    def _as_matches(
        self,
        company: CompanyData,
        comparables: list[Union[ComparableMatch, Comparable]],
        as_of: date,
    ) -> list[ComparableMatch]:
        matches = [c for c in comparables if isinstance(c, ComparableMatch)]
        raw = [c for c in comparables if isinstance(c, Comparable)]
        if raw:
            matches.extend(self.matcher.rank(raw, profile_from_company(company), as_of))
        return matches
