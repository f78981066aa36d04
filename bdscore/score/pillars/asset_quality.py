"""Asset Quality pillar: pipeline depth, maturity and differentiation."""

from bdscore.models.company import (
    ADVANCED_STAGES,
    CompanyData,
    CompetitivePosition,
    DevelopmentStage,
    RiskImpact,
    RiskProbability,
)
from bdscore.models.scoring import MarketContext, Pillar
from .base import Factor, PillarScorer, contains_any

STAGE_SCORES = {
    DevelopmentStage.PRECLINICAL: 2.0,
    DevelopmentStage.PHASE_1: 2.5,
    DevelopmentStage.PHASE_2: 3.5,
    DevelopmentStage.PHASE_3: 4.0,
    DevelopmentStage.APPROVED: 4.5,
    DevelopmentStage.MARKETED: 5.0,
}

POSITION_SCORES = {
    CompetitivePosition.FIRST_IN_CLASS: 4.5,
    CompetitivePosition.BEST_IN_CLASS: 4.2,
    CompetitivePosition.FAST_FOLLOWER: 3.0,
    CompetitivePosition.ME_TOO: 2.0,
}

STRONG_DIFFERENTIATORS = ["first-in-class", "best-in-class", "novel", "oral", "once", "superior", "durable"]
HIGH_UNMET_NEED = ["rare", "orphan", "oncology", "alzheimer", "neurology", "fibrosis", "gene therapy"]

EMPTY_PIPELINE_WARNING = "Critical: No pipeline programs; asset quality set to minimum"


class AssetQualityScorer(PillarScorer):
    """Score the strength of the pipeline as an asset."""

    pillar = Pillar.ASSET_QUALITY
    methodology_reliability = 0.85
    required = ("pipeline.programs", "basic_info.therapeutic_areas", "basic_info.stage")
    optional = (
        "pipeline.lead_program.differentiators",
        "pipeline.lead_program.risks",
        "market.competitors",
    )

    def score_factors(self, company: CompanyData, context: MarketContext) -> list[Factor]:
        return [
            self._score_pipeline_strength(company),
            self._score_development_stage(company),
            self._score_competitive_positioning(company),
            self._score_differentiation(company),
            self._score_unmet_need(company),
            self._score_risk_profile(company),
        ]

    def adjust_score(self, company: CompanyData, raw: float, warnings: list[str]) -> float:
        if not company.pipeline.programs:
            warnings.insert(0, EMPTY_PIPELINE_WARNING)
            return 1.0
        return raw

    def data_quality(self, company: CompanyData) -> float:
        programs = company.pipeline.programs
        if not programs:
            return 0.0
        checks = [
            all(p.mechanism for p in programs),
            all(p.indication for p in programs),
            bool(programs[0].differentiators),
            any(p.timeline for p in programs),
            company.basic_info.stage is None or programs[0].stage.ordinal <= company.basic_info.stage.ordinal,
        ]
        return sum(checks) / len(checks)

    def pillar_warnings(self, company: CompanyData, context: MarketContext) -> list[str]:
        warnings = []
        if company.pipeline.programs and not company.market.competitors:
            warnings.append("No competitor data; competitive positioning estimated")
        lead = company.pipeline.lead_program
        if lead is not None and not lead.differentiators:
            warnings.append("Lead program has no stated differentiators")
        return warnings

    def _score_pipeline_strength(self, company: CompanyData) -> Factor:
        count = company.pipeline.total_programs
        if count == 0:
            score = 1.0
        elif count == 1:
            score = 2.5
        elif count <= 3:
            score = 3.5
        elif count <= 6:
            score = 4.0
        else:
            score = 4.5

        indications = company.pipeline.indications
        if len(indications) >= 3:
            score += 0.3
        elif count > 1 and len(indications) == 1:
            score -= 0.2

        return Factor(
            "Pipeline Strength", 0.25, score,
            f"{count} program(s) across {len(indications)} indication(s)",
        )

    def _score_development_stage(self, company: CompanyData) -> Factor:
        lead = company.pipeline.lead_program
        if lead is None:
            return Factor("Development Stage", 0.20, 1.0, "No programs to stage", degraded=True)
        stage = lead.stage
        score = STAGE_SCORES[stage]
        advanced = sum(1 for p in company.pipeline.programs if p.stage.ordinal >= DevelopmentStage.PHASE_2.ordinal)
        if advanced >= 2:
            score += 0.3
        return Factor(
            "Development Stage", 0.20, score,
            f"Lead asset at {stage.value}; {advanced} program(s) at Phase II or later",
        )

    def _score_competitive_positioning(self, company: CompanyData) -> Factor:
        lead = company.pipeline.lead_program
        if lead is None:
            return Factor("Competitive Positioning", 0.20, 1.0, "No lead program", degraded=True)

        competitors = company.market.competitors
        if lead.competitive_position in POSITION_SCORES:
            score = POSITION_SCORES[lead.competitive_position]
            rationale = f"Lead program positioned {lead.competitive_position.value}"
        else:
            n = len(competitors)
            if n == 0:
                score = 4.0
            elif n <= 3:
                score = 3.5
            elif n <= 6:
                score = 3.0
            else:
                score = 2.5
            rationale = f"Position inferred from {n} competitor(s)"

        if competitors:
            advanced = sum(1 for c in competitors if c.stage in ADVANCED_STAGES)
            if advanced > len(competitors) / 2:
                score -= 0.5
                rationale += "; most competitors are late-stage"
        return Factor("Competitive Positioning", 0.20, score, rationale)

    def _score_differentiation(self, company: CompanyData) -> Factor:
        lead = company.pipeline.lead_program
        if lead is None:
            return Factor("Differentiation", 0.15, 1.0, "No lead program", degraded=True)
        n = len(lead.differentiators)
        if n == 0:
            score = 2.0
        elif n == 1:
            score = 3.0
        elif n == 2:
            score = 3.5
        elif n == 3:
            score = 4.0
        else:
            score = 4.5
        if any(contains_any(d, STRONG_DIFFERENTIATORS) for d in lead.differentiators):
            score += 0.3
        return Factor("Differentiation", 0.15, score, f"{n} differentiator(s) on lead program")

    def _score_unmet_need(self, company: CompanyData) -> Factor:
        areas = company.areas_lower
        if not areas:
            return Factor("Unmet Need", 0.10, 3.0, "No therapeutic areas provided", degraded=True)
        score = 3.0
        high_need = [a for a in areas if contains_any(a, HIGH_UNMET_NEED)]
        if high_need:
            score = 4.0
        if len(set(areas)) >= 2:
            score += 0.3
        return Factor(
            "Unmet Need", 0.10, score,
            f"{len(high_need)} high unmet-need area(s) of {len(areas)}",
        )

    def _score_risk_profile(self, company: CompanyData) -> Factor:
        lead = company.pipeline.lead_program
        if lead is None:
            return Factor("Risk Profile", 0.10, 1.0, "No lead program", degraded=True)
        score = 4.0
        for risk in lead.risks:
            if risk.probability == RiskProbability.HIGH:
                score -= 0.5
            elif risk.probability == RiskProbability.MEDIUM:
                score -= 0.2
            if risk.impact == RiskImpact.CRITICAL:
                score -= 0.5
            if risk.mitigation:
                score += 0.1
        return Factor("Risk Profile", 0.10, score, f"{len(lead.risks)} identified risk(s) on lead program")
