"""Regulatory Risk pillar. Higher scores mean lower regulatory risk."""

from bdscore.models.company import (
    ApprovalType,
    CompanyData,
    DevelopmentStage,
    RegulatoryPathway,
    TrialStatus,
)
from bdscore.models.scoring import MarketContext, Pillar
from .base import Factor, PillarScorer, contains_any

PATHWAY_COMPLEXITY = {
    RegulatoryPathway.ORPHAN: 4.5,
    RegulatoryPathway.BREAKTHROUGH: 4.2,
    RegulatoryPathway.FAST_TRACK: 4.0,
    RegulatoryPathway.ACCELERATED: 3.8,
    RegulatoryPathway.STANDARD: 3.0,
}

# First matching keyword wins per therapeutic area
AREA_COMPLEXITY_ADJUSTMENTS = [
    ("gene therapy", -0.8),
    ("cell therapy", -0.7),
    ("neurology", -0.5),
    ("psychiatry", -0.5),
    ("cardiovascular", -0.3),
    ("oncology", -0.2),
    ("rare disease", 0.3),
    ("infectious disease", 0.2),
    ("dermatology", 0.3),
]

STAGE_PATHWAY_ADJUSTMENT = {
    DevelopmentStage.PRECLINICAL: -0.2,
    DevelopmentStage.PHASE_1: 0.1,
    DevelopmentStage.PHASE_2: 0.2,
    DevelopmentStage.PHASE_3: 0.3,
}

CLINICAL_RISK_BY_STAGE = {
    DevelopmentStage.PRECLINICAL: 3.5,
    DevelopmentStage.PHASE_1: 3.0,
    DevelopmentStage.PHASE_2: 2.5,
    DevelopmentStage.PHASE_3: 2.0,
    DevelopmentStage.APPROVED: 4.5,
    DevelopmentStage.MARKETED: 4.5,
}

# Months to approval that are typical from each stage
EXPECTED_TIMELINE = {
    DevelopmentStage.PRECLINICAL: (60, 120),
    DevelopmentStage.PHASE_1: (48, 84),
    DevelopmentStage.PHASE_2: (36, 60),
    DevelopmentStage.PHASE_3: (24, 48),
    DevelopmentStage.APPROVED: (0, 12),
    DevelopmentStage.MARKETED: (0, 6),
}

HARD_ENDPOINT_AREAS = ["neurology", "psychiatry", "alzheimer", "depression"]
ESTABLISHED_AREAS = ["oncology", "cardiovascular", "diabetes", "infectious disease", "dermatology"]
EMERGING_AREAS = ["gene therapy", "cell therapy", "microbiome", "digital therapeutic"]
CHALLENGING_AREAS = ["neurology", "psychiatry", "alzheimer", "obesity"]
ESTABLISHED_MECHANISMS = ["small molecule", "antibody", "kinase inhibitor", "vaccine", "enzyme replacement"]
NOVEL_MECHANISMS = ["gene editing", "crispr", "mrna", "car-t", "oligonucleotide", "gene"]
MATURE_AREAS = ["oncology", "cardiovascular", "diabetes"]

HIGH_RISK_SAFETY_AREAS = ["oncology", "gene therapy", "cell therapy", "immunology"]
MODERATE_RISK_SAFETY_AREAS = ["neurology", "cardiovascular", "psychiatry"]
LOW_RISK_SAFETY_AREAS = ["dermatology", "ophthalmology", "infectious disease"]
HIGH_RISK_MECHANISMS = ["gene", "car-t", "cytotoxic", "viral"]
MODERATE_RISK_MECHANISMS = ["antibody", "protein", "immunomodulat"]
LOW_RISK_MECHANISMS = ["small molecule", "enzyme replacement", "vaccine"]
VULNERABLE_POPULATIONS = ["pediatric", "elderly", "immunocompromised", "pregnan"]

HIGH_COMPLEXITY_MANUFACTURING = ["gene", "cell", "viral", "car-t"]
MODERATE_COMPLEXITY_MANUFACTURING = ["antibody", "protein", "biologic", "mrna"]
LOW_COMPLEXITY_MANUFACTURING = ["small molecule", "oral", "peptide"]
SCALE_UP_KEYWORDS = ["autologous", "personalized", "fresh", "living"]
SUPPLY_CHAIN_KEYWORDS = ["cold chain", "cryopreserv", "short shelf life"]


class RegulatoryRiskScorer(PillarScorer):
    """Score the likelihood and cost of regulatory setbacks."""

    pillar = Pillar.REGULATORY_RISK
    methodology_reliability = 0.80
    required = ("basic_info.stage", "basic_info.therapeutic_areas")
    optional = ("regulatory.approvals", "regulatory.clinical_trials", "regulatory.regulatory_strategy")

    def score_factors(self, company: CompanyData, context: MarketContext) -> list[Factor]:
        return [
            self._score_pathway_complexity(company),
            self._score_clinical_risk(company),
            self._score_regulatory_precedent(company),
            self._score_safety_profile(company),
            self._score_manufacturing_risk(company),
            self._score_timeline_risk(company, context),
        ]

    def data_quality(self, company: CompanyData) -> float:
        trials = company.regulatory.clinical_trials
        checks = [
            company.regulatory.regulatory_strategy is not None,
            bool(trials),
            all(t.patient_count is not None for t in trials) if trials else False,
            all(t.expected_completion is not None for t in trials) if trials else False,
            bool(company.pipeline.programs),
        ]
        return sum(checks) / len(checks)

    def pillar_warnings(self, company: CompanyData, context: MarketContext) -> list[str]:
        warnings = []
        trials = company.regulatory.clinical_trials
        if any(t.status in (TrialStatus.SUSPENDED, TrialStatus.TERMINATED) for t in trials):
            warnings.append("Suspended or terminated clinical trials on record")
        if self._overdue_trials(company, context):
            warnings.append("Clinical trials past expected completion")
        strategy = company.regulatory.regulatory_strategy
        if strategy is not None and len(strategy.risks) > len(strategy.mitigations):
            warnings.append("Regulatory risks outnumber documented mitigations")
        return warnings

    def _score_pathway_complexity(self, company: CompanyData) -> Factor:
        strategy = company.regulatory.regulatory_strategy
        pathway = strategy.pathway if strategy else RegulatoryPathway.STANDARD
        score = PATHWAY_COMPLEXITY[pathway]
        for area in company.areas_lower:
            for keyword, adjustment in AREA_COMPLEXITY_ADJUSTMENTS:
                if keyword in area:
                    score += adjustment
                    break
        stage, degraded = self.company_stage(company)
        if stage in (DevelopmentStage.APPROVED, DevelopmentStage.MARKETED):
            score = 4.5
        else:
            score += STAGE_PATHWAY_ADJUSTMENT[stage]
        return Factor(
            "Pathway Complexity", 0.25, score, f"{pathway.value} pathway at {stage.value}",
            degraded=degraded or strategy is None,
        )

    def _score_clinical_risk(self, company: CompanyData) -> Factor:
        stage, degraded = self.company_stage(company)
        score = CLINICAL_RISK_BY_STAGE[stage]
        trials = company.regulatory.clinical_trials
        if sum(1 for t in trials if t.phase == DevelopmentStage.PHASE_3) > 1:
            score -= 0.5
        if sum(1 for t in trials if t.phase == DevelopmentStage.PHASE_2) > 2:
            score -= 0.3
        if trials:
            patients = sum(t.patient_count or 0 for t in trials)
            if patients <= 100:
                score += 0.2
            elif patients <= 500:
                score += 0.1
            elif patients <= 1500:
                score -= 0.1
            else:
                score -= 0.3
        if any(t.status in (TrialStatus.SUSPENDED, TrialStatus.TERMINATED) for t in trials):
            score -= 0.4
        if any(contains_any(a, HARD_ENDPOINT_AREAS) for a in company.areas_lower):
            score -= 0.3
        return Factor("Clinical Risk", 0.20, score, f"{len(trials)} trial(s) at {stage.value}", degraded=degraded)

    def _score_regulatory_precedent(self, company: CompanyData) -> Factor:
        score = 3.0
        for area in company.areas_lower:
            if contains_any(area, ESTABLISHED_AREAS):
                score += 0.3
            elif contains_any(area, EMERGING_AREAS):
                score -= 0.4
            elif contains_any(area, CHALLENGING_AREAS):
                score -= 0.2
        for mechanism in company.pipeline.mechanisms:
            if contains_any(mechanism, NOVEL_MECHANISMS):
                score -= 0.3
            elif contains_any(mechanism, ESTABLISHED_MECHANISMS):
                score += 0.2
        approvals = company.regulatory.approvals
        if approvals:
            score += 0.4
            if any(a.type != ApprovalType.FULL for a in approvals):
                score += 0.2
        if any(contains_any(a, MATURE_AREAS) for a in company.areas_lower):
            score += 0.2
        return Factor(
            "Regulatory Precedent", 0.20, score, f"{len(approvals)} prior approval(s)",
            degraded=not company.basic_info.therapeutic_areas,
        )

    def _score_safety_profile(self, company: CompanyData) -> Factor:
        score = 3.5
        areas = company.areas_lower
        if any(contains_any(a, HIGH_RISK_SAFETY_AREAS) for a in areas):
            score -= 0.4
        elif any(contains_any(a, MODERATE_RISK_SAFETY_AREAS) for a in areas):
            score -= 0.1
        elif any(contains_any(a, LOW_RISK_SAFETY_AREAS) for a in areas):
            score += 0.2

        mechanisms = company.pipeline.mechanisms
        if any(contains_any(m, HIGH_RISK_MECHANISMS) for m in mechanisms):
            score -= 0.3
        elif any(contains_any(m, MODERATE_RISK_MECHANISMS) for m in mechanisms):
            score -= 0.1
        elif any(contains_any(m, LOW_RISK_MECHANISMS) for m in mechanisms):
            score += 0.2

        stage, _ = self.company_stage(company)
        trials = company.regulatory.clinical_trials
        if stage != DevelopmentStage.PRECLINICAL:
            if any(t.status == TrialStatus.COMPLETED for t in trials):
                score += 0.3
            if any(t.status == TrialStatus.SUSPENDED for t in trials):
                score -= 0.5
        if any(contains_any(i, VULNERABLE_POPULATIONS) for i in company.pipeline.indications):
            score -= 0.2
        if any(contains_any(m, ["combination", "plus"]) for m in mechanisms):
            score -= 0.2
        return Factor("Safety Profile", 0.15, score, "Therapeutic area and modality safety profile")

    def _score_manufacturing_risk(self, company: CompanyData) -> Factor:
        score = 3.5
        mechanisms = company.pipeline.mechanisms
        if any(contains_any(m, HIGH_COMPLEXITY_MANUFACTURING) for m in mechanisms):
            score -= 0.4
        elif any(contains_any(m, MODERATE_COMPLEXITY_MANUFACTURING) for m in mechanisms):
            score -= 0.1
        elif any(contains_any(m, LOW_COMPLEXITY_MANUFACTURING) for m in mechanisms):
            score += 0.2
        if any(contains_any(a, ["gene therapy", "cell therapy", "biologic"]) for a in company.areas_lower):
            score -= 0.3
        texts = list(mechanisms) + [d.lower() for p in company.pipeline.programs for d in p.differentiators]
        if any(contains_any(t, SCALE_UP_KEYWORDS) for t in texts):
            score -= 0.3
        if any(contains_any(t, SUPPLY_CHAIN_KEYWORDS) for t in texts):
            score -= 0.2
        return Factor(
            "Manufacturing Risk", 0.10, score, "Modality manufacturing and supply-chain risk",
            degraded=not mechanisms,
        )

    def _score_timeline_risk(self, company: CompanyData, context: MarketContext) -> Factor:
        strategy = company.regulatory.regulatory_strategy
        stage, degraded = self.company_stage(company)
        if strategy is None:
            return Factor("Timeline Risk", 0.10, 3.0, "No regulatory timeline provided", degraded=True)

        timeline = strategy.timeline
        if timeline <= 24:
            score = 4.5
        elif timeline <= 48:
            score = 4.0
        elif timeline <= 72:
            score = 3.0
        elif timeline <= 96:
            score = 2.5
        else:
            score = 2.0

        low, high = EXPECTED_TIMELINE[stage]
        if low <= timeline <= high:
            score += 0.2
        elif timeline > high:
            score -= 0.3
        else:
            score -= 0.1

        if self._overdue_trials(company, context):
            score -= 0.4
        if any((t.patient_count or 0) > 500 for t in company.regulatory.clinical_trials):
            score -= 0.2
        if any(contains_any(a, ["rare", "orphan"]) for a in company.areas_lower):
            score -= 0.1
        if strategy.pathway in (RegulatoryPathway.BREAKTHROUGH, RegulatoryPathway.FAST_TRACK):
            score += 0.3
        elif strategy.pathway == RegulatoryPathway.ACCELERATED:
            score += 0.2
        elif strategy.pathway == RegulatoryPathway.ORPHAN:
            score += 0.1
        return Factor(
            "Timeline Risk", 0.10, score, f"{timeline} months to approval (typical {low}-{high})",
            degraded=degraded,
        )

    @staticmethod
    def _overdue_trials(company: CompanyData, context: MarketContext) -> list:
        return [
            t for t in company.regulatory.clinical_trials
            if t.expected_completion is not None
            and t.expected_completion < context.as_of
            and t.status not in (TrialStatus.COMPLETED, TrialStatus.TERMINATED)
        ]
