"""Capital Intensity pillar. Higher scores mean less capital is needed to reach value."""

from bdscore.models.company import (
    ACTIVE_TRIAL_STATUSES,
    CompanyData,
    DevelopmentStage,
    MilestoneStatus,
    RegulatoryPathway,
)
from bdscore.models.scoring import MarketContext, Pillar
from .base import Factor, PillarScorer, contains_any

DEVELOPMENT_COST = {
    DevelopmentStage.PRECLINICAL: 4.5,
    DevelopmentStage.PHASE_1: 4.0,
    DevelopmentStage.PHASE_2: 3.0,
    DevelopmentStage.PHASE_3: 2.0,
    DevelopmentStage.APPROVED: 4.0,
    DevelopmentStage.MARKETED: 4.0,
}

TIME_TO_MARKET = {
    DevelopmentStage.PRECLINICAL: 2.0,
    DevelopmentStage.PHASE_1: 2.5,
    DevelopmentStage.PHASE_2: 3.5,
    DevelopmentStage.PHASE_3: 4.0,
    DevelopmentStage.APPROVED: 5.0,
    DevelopmentStage.MARKETED: 5.0,
}

REGULATORY_COST = {
    RegulatoryPathway.ORPHAN: 4.5,
    RegulatoryPathway.BREAKTHROUGH: 4.0,
    RegulatoryPathway.FAST_TRACK: 4.0,
    RegulatoryPathway.ACCELERATED: 3.5,
    RegulatoryPathway.STANDARD: 3.0,
}

COMPLEX_AREAS = ["oncology", "neurology", "rare disease", "gene therapy"]
HIGH_COMPLEXITY_AREAS = ["gene therapy", "cell therapy", "biologics", "personalized medicine"]
MODERATE_COMPLEXITY_AREAS = ["monoclonal antibod", "vaccine", "protein therapeutic"]
PLATFORM_AREAS = ["platform", "gene therapy", "cell therapy", "antibody"]


class CapitalIntensityScorer(PillarScorer):
    """Score how capital-hungry the path to market is."""

    pillar = Pillar.CAPITAL_INTENSITY
    methodology_reliability = 0.80
    required = ("financials.burn_rate", "basic_info.stage")
    optional = ("pipeline.programs", "regulatory.clinical_trials")

    def score_factors(self, company: CompanyData, context: MarketContext) -> list[Factor]:
        return [
            self._score_development_cost(company),
            self._score_capital_efficiency(company),
            self._score_manufacturing_complexity(company),
            self._score_regulatory_cost(company),
            self._score_time_to_market(company, context),
            self._score_scalability(company),
        ]

    def data_quality(self, company: CompanyData) -> float:
        checks = [
            company.financials.burn_rate is not None and company.financials.burn_rate > 0,
            company.financials.cash_position is not None,
            bool(company.pipeline.programs),
            all(p.mechanism for p in company.pipeline.programs) if company.pipeline.programs else False,
            company.regulatory.regulatory_strategy is not None,
        ]
        return sum(checks) / len(checks)

    def pillar_warnings(self, company: CompanyData, context: MarketContext) -> list[str]:
        warnings = []
        burn = company.financials.burn_rate
        if burn is not None and burn > 20:
            warnings.append("High monthly burn rate (>$20M)")
        phase3 = [t for t in company.regulatory.clinical_trials if t.phase == DevelopmentStage.PHASE_3]
        if len(phase3) > 1:
            warnings.append("Multiple Phase III trials imply heavy near-term spend")
        return warnings

    def _score_development_cost(self, company: CompanyData) -> Factor:
        stage, degraded = self.company_stage(company)
        score = DEVELOPMENT_COST[stage]
        if any(contains_any(a, COMPLEX_AREAS) for a in company.areas_lower):
            score -= 0.5
        count = company.pipeline.total_programs
        if count > 3:
            score -= 0.3
        elif count == 1:
            score += 0.2
        return Factor("Development Cost", 0.25, score, f"{stage.value} with {count} program(s)", degraded=degraded)

    def _score_capital_efficiency(self, company: CompanyData) -> Factor:
        burn = company.financials.burn_rate
        if burn is None:
            return Factor("Capital Efficiency", 0.20, 3.0, "Burn rate not provided", degraded=True)
        programs = max(1, company.pipeline.total_programs)
        per_program = burn / programs
        if per_program <= 2:
            score = 4.5
        elif per_program <= 5:
            score = 4.0
        elif per_program <= 10:
            score = 3.0
        elif per_program <= 20:
            score = 2.0
        else:
            score = 1.5
        cash = company.financials.cash_position
        if cash is not None:
            cash_per_program = cash / programs
            if cash_per_program > 50:
                score += 0.3
            elif cash_per_program < 10:
                score -= 0.3
        return Factor("Capital Efficiency", 0.20, score, f"${per_program:.1f}M monthly burn per program")

    def _score_manufacturing_complexity(self, company: CompanyData) -> Factor:
        level = 0
        areas = company.areas_lower
        if any(contains_any(a, HIGH_COMPLEXITY_AREAS) for a in areas):
            level = 3
        elif any(contains_any(a, MODERATE_COMPLEXITY_AREAS) for a in areas):
            level = 2

        for program in company.pipeline.programs:
            mechanism = program.mechanism.lower()
            if contains_any(mechanism, ["gene", "cell", "viral"]):
                level = max(level, 3)
            elif contains_any(mechanism, ["antibody", "protein"]):
                level = max(level, 2)

        score = {0: 4.5, 1: 4.5, 2: 3.5, 3: 2.0}[level]
        labels = {0: "low", 1: "low", 2: "moderate", 3: "high"}
        return Factor("Manufacturing Complexity", 0.20, score, f"{labels[level].capitalize()} manufacturing complexity")

    def _score_regulatory_cost(self, company: CompanyData) -> Factor:
        strategy = company.regulatory.regulatory_strategy
        pathway = strategy.pathway if strategy else RegulatoryPathway.STANDARD
        score = REGULATORY_COST[pathway]

        trials = company.regulatory.clinical_trials
        phase3 = sum(1 for t in trials if t.phase == DevelopmentStage.PHASE_3)
        active = sum(1 for t in trials if t.status in ACTIVE_TRIAL_STATUSES)
        patients = sum(t.patient_count or 0 for t in trials)
        if phase3 > 1:
            score -= 0.5
        if active > 3:
            score -= 0.3
        if patients > 1000:
            score -= 0.4
        elif trials and patients < 100:
            score += 0.2
        return Factor(
            "Regulatory Cost", 0.15, score,
            f"{pathway.value} pathway; {len(trials)} trial(s), {patients} patients",
        )

    def _score_time_to_market(self, company: CompanyData, context: MarketContext) -> Factor:
        stage, degraded = self.company_stage(company)
        score = TIME_TO_MARKET[stage]
        strategy = company.regulatory.regulatory_strategy
        if strategy is not None:
            if strategy.timeline <= 24:
                score += 0.5
            elif strategy.timeline > 60:
                score -= 0.5

        lead = company.pipeline.lead_program
        if lead is not None:
            near_term = [
                m for m in lead.timeline
                if m.status == MilestoneStatus.UPCOMING
                and context.as_of <= m.expected_date
                and m.expected_date.year == context.as_of.year
            ]
            if near_term:
                score += 0.3
        return Factor("Time to Market", 0.10, score, f"{stage.value} stage", degraded=degraded)

    def _score_scalability(self, company: CompanyData) -> Factor:
        size = company.market.addressable_market
        if size is None:
            score = 3.0
        elif size <= 1:
            score = 2.0
        elif size <= 5:
            score = 3.0
        elif size <= 20:
            score = 4.0
        else:
            score = 4.5
        if any(contains_any(a, PLATFORM_AREAS) for a in company.areas_lower):
            score += 0.5
        if len(company.pipeline.indications) > 2:
            score += 0.2
        if any(contains_any(p.mechanism, ["small molecule", "oral"]) for p in company.pipeline.programs):
            score += 0.3
        return Factor("Scalability", 0.10, score, "Commercial scale-up potential", degraded=size is None)
