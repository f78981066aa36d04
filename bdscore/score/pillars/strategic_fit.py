"""Strategic Fit pillar: alignment with a typical acquirer portfolio."""

from bdscore.models.company import (
    ACTIVE_TRIAL_STATUSES,
    CompanyData,
    DevelopmentStage,
    RegulatoryPathway,
    ReimbursementEnvironment,
)
from bdscore.models.scoring import MarketContext, Pillar
from .base import Factor, PillarScorer, contains_any

STRATEGIC_AREAS = [
    "oncology", "immunology", "neurology", "rare disease", "ophthalmology",
    "dermatology", "respiratory", "cardiovascular", "metabolic", "infectious disease",
]
HIGH_VALUE_AREAS = ["oncology", "rare disease", "gene therapy", "immunology"]
PLATFORM_MECHANISMS = ["gene therapy", "cell therapy", "antibody platform", "delivery platform"]
SPECIALIZED_AREAS = ["rare disease", "pediatric", "precision medicine", "biomarker"]
CUTTING_EDGE_AREAS = [
    "gene therapy", "cell therapy", "precision medicine", "ai/ml", "artificial intelligence", "machine learning",
]
MAJOR_REGIONS = ["us", "eu", "japan", "china"]

CAPABILITY_BY_STAGE = {
    DevelopmentStage.PRECLINICAL: 3.5,
    DevelopmentStage.PHASE_1: 4.0,
    DevelopmentStage.PHASE_2: 4.5,
    DevelopmentStage.PHASE_3: 4.0,
    DevelopmentStage.APPROVED: 3.5,
    DevelopmentStage.MARKETED: 3.0,
}

INTEGRATION_BY_STAGE = {
    DevelopmentStage.PRECLINICAL: 4.0,
    DevelopmentStage.PHASE_1: 3.5,
    DevelopmentStage.PHASE_2: 3.0,
    DevelopmentStage.PHASE_3: 2.5,
    DevelopmentStage.APPROVED: 2.0,
    DevelopmentStage.MARKETED: 1.5,
}


class StrategicFitScorer(PillarScorer):
    """Score how well the company would slot into an acquirer's business."""

    pillar = Pillar.STRATEGIC_FIT
    methodology_reliability = 0.75
    required = ("basic_info.therapeutic_areas", "pipeline.programs")
    optional = ("market.competitors", "regulatory.approvals")

    def score_factors(self, company: CompanyData, context: MarketContext) -> list[Factor]:
        return [
            self._score_therapeutic_alignment(company),
            self._score_capability_complement(company),
            self._score_synergy_potential(company),
            self._score_integration_complexity(company),
            self._score_geographic_fit(company),
            self._score_cultural_fit(company),
        ]

    def data_quality(self, company: CompanyData) -> float:
        checks = [
            bool(company.basic_info.therapeutic_areas),
            bool(company.pipeline.programs),
            all(p.mechanism for p in company.pipeline.programs) if company.pipeline.programs else False,
            bool(company.regulatory.clinical_trials),
            company.basic_info.description is not None,
        ]
        return sum(checks) / len(checks)

    def pillar_warnings(self, company: CompanyData, context: MarketContext) -> list[str]:
        warnings = []
        areas = company.areas_lower
        if areas and not any(contains_any(a, STRATEGIC_AREAS) for a in areas):
            warnings.append("No overlap with core strategic therapeutic areas")
        if company.pipeline.total_programs > 5:
            warnings.append("Broad pipeline may complicate integration")
        return warnings

    def _score_therapeutic_alignment(self, company: CompanyData) -> Factor:
        areas = company.areas_lower
        if not areas:
            return Factor("Therapeutic Alignment", 0.25, 2.0, "No therapeutic areas provided", degraded=True)
        aligned = [a for a in areas if contains_any(a, STRATEGIC_AREAS)]
        ratio = len(aligned) / len(areas)
        if ratio >= 0.8:
            score = 4.5
        elif ratio >= 0.6:
            score = 4.0
        elif ratio >= 0.4:
            score = 3.5
        elif ratio >= 0.2:
            score = 2.5
        else:
            score = 2.0
        if any(contains_any(a, HIGH_VALUE_AREAS) for a in areas):
            score += 0.3
        indications = company.pipeline.indications
        if len(indications) == 1:
            score += 0.2
        elif len(indications) > 5:
            score -= 0.2
        return Factor("Therapeutic Alignment", 0.25, score, f"{len(aligned)} of {len(areas)} area(s) strategic")

    def _score_capability_complement(self, company: CompanyData) -> Factor:
        stage, degraded = self.company_stage(company)
        score = CAPABILITY_BY_STAGE[stage]
        mechanisms = company.pipeline.mechanisms
        if any(contains_any(m, PLATFORM_MECHANISMS) for m in mechanisms):
            score += 0.4
        if len(mechanisms) > 2:
            score += 0.2
        if any(contains_any(a, SPECIALIZED_AREAS) for a in company.areas_lower):
            score += 0.3
        return Factor(
            "Capability Complement", 0.20, score,
            f"{stage.value} assets with {len(mechanisms)} mechanism(s)", degraded=degraded,
        )

    def _score_synergy_potential(self, company: CompanyData) -> Factor:
        rd = self._rd_synergy(company)
        commercial = self._commercial_synergy(company)
        manufacturing = self._manufacturing_synergy(company)
        regulatory = self._regulatory_synergy(company)
        score = 2.5 + rd * 0.4 + commercial * 0.3 + manufacturing * 0.2 + regulatory * 0.1
        return Factor(
            "Synergy Potential", 0.20, score,
            f"R&D {rd:.1f}, commercial {commercial:.1f}, manufacturing {manufacturing:.1f}, "
            f"regulatory {regulatory:.1f}",
            degraded=not company.pipeline.programs,
        )

    def _rd_synergy(self, company: CompanyData) -> float:
        value = 0.0
        if any(contains_any(a, STRATEGIC_AREAS) for a in company.areas_lower):
            value += 1.0
        if any(contains_any(m, PLATFORM_MECHANISMS) for m in company.pipeline.mechanisms):
            value += 0.5
        if company.pipeline.total_programs > 1:
            value += 0.5
        return value

    def _commercial_synergy(self, company: CompanyData) -> float:
        value = 0.0
        size = company.market.addressable_market
        if size is not None and size >= 5:
            value += 1.0
        stage, _ = self.company_stage(company)
        if stage.ordinal >= DevelopmentStage.PHASE_3.ordinal:
            value += 0.5
        dynamics = company.market.market_dynamics
        if dynamics is not None and dynamics.reimbursement == ReimbursementEnvironment.FAVORABLE:
            value += 0.5
        return value

    def _manufacturing_synergy(self, company: CompanyData) -> float:
        mechanisms = company.pipeline.mechanisms
        if not mechanisms:
            return 1.0
        if any(contains_any(m, ["gene", "cell"]) for m in mechanisms):
            return 0.5
        if any(contains_any(m, ["small molecule", "oral"]) for m in mechanisms):
            return 1.5
        return 1.0

    def _regulatory_synergy(self, company: CompanyData) -> float:
        if company.regulatory.approvals:
            return 1.5
        strategy = company.regulatory.regulatory_strategy
        if strategy is not None and strategy.pathway in (
            RegulatoryPathway.BREAKTHROUGH, RegulatoryPathway.FAST_TRACK, RegulatoryPathway.ORPHAN,
        ):
            return 1.0
        return 0.5

    def _score_integration_complexity(self, company: CompanyData) -> Factor:
        stage, degraded = self.company_stage(company)
        score = INTEGRATION_BY_STAGE[stage]
        trials = company.regulatory.clinical_trials
        active = sum(1 for t in trials if t.status in ACTIVE_TRIAL_STATUSES)
        if active > 3:
            score -= 0.5
        elif active == 0:
            score += 0.3
        count = company.pipeline.total_programs
        if count > 5:
            score -= 0.3
        elif count == 1:
            score += 0.2
        if any((t.patient_count or 0) > 500 for t in trials):
            score -= 0.2
        return Factor(
            "Integration Complexity", 0.15, score,
            f"{active} active trial(s), {count} program(s)", degraded=degraded,
        )

    def _score_geographic_fit(self, company: CompanyData) -> Factor:
        regions = {a.region.lower() for a in company.regulatory.approvals}
        major = [r for r in MAJOR_REGIONS if r in regions]
        score = {0: 3.0, 1: 3.5, 2: 4.0}.get(len(major), 4.5)
        if any((t.patient_count or 0) > 300 for t in company.regulatory.clinical_trials):
            score += 0.2
        if "us" in regions:
            score += 0.2
        return Factor("Geographic Fit", 0.10, score, f"Approvals in {len(major)} major region(s)")

    def _score_cultural_fit(self, company: CompanyData) -> Factor:
        mechanisms = company.pipeline.mechanisms
        innovation = min(4.5, 3.0 + 0.2 * len(mechanisms))
        score = (3.5 + innovation) / 2
        stage, degraded = self.company_stage(company)
        if stage in (DevelopmentStage.PRECLINICAL, DevelopmentStage.PHASE_1):
            score += 0.2
        elif stage == DevelopmentStage.PHASE_2:
            score += 0.1
        else:
            score -= 0.1
        if any(p.differentiators for p in company.pipeline.programs):
            score += 0.2
        if any(contains_any(a, CUTTING_EDGE_AREAS) for a in company.areas_lower):
            score += 0.3
        return Factor("Cultural Fit", 0.10, score, "Innovation profile and organizational maturity", degraded=degraded)
