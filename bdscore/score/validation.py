"""Input validation for company data and scoring configurations."""

import logging
from datetime import date
from typing import Optional

from bdscore.models.company import CompanyData
from bdscore.models.scoring import (
    ScoringConfig,
    ScoringParameters,
    ValidationIssue,
    ValidationResult,
    ValidationSeverity,
    ValidationWarning,
)
from .pillars.base import is_present, resolve_field
from .weighting import WeightingEngine

logger = logging.getLogger(__name__)

STALE_FUNDING_DAYS = 730

# Fields counted for data completeness, grouped by section
COMPLETENESS_FIELDS = [
    "basic_info.name",
    "basic_info.sector",
    "basic_info.therapeutic_areas",
    "basic_info.stage",
    "basic_info.description",
    "pipeline.programs",
    "pipeline.lead_program.differentiators",
    "financials.cash_position",
    "financials.burn_rate",
    "financials.last_funding",
    "market.addressable_market",
    "market.competitors",
    "market.market_dynamics",
    "regulatory.approvals",
    "regulatory.clinical_trials",
    "regulatory.regulatory_strategy",
]


class CompanyValidator:
    """Pre-flight checks on company data. Only identity problems are critical."""

    def validate(self, company: CompanyData, as_of: Optional[date] = None) -> ValidationResult:
        errors: list[ValidationIssue] = []
        warnings: list[ValidationWarning] = []

        self._check_identity(company, errors)
        self._check_pipeline(company, warnings)
        self._check_financials(company, errors, warnings, as_of)
        self._check_market(company, warnings)
        self._check_regulatory(company, warnings)

        completeness = self.completeness(company)
        if completeness < 0.5:
            warnings.append(ValidationWarning(
                field="data_completeness",
                message=f"Only {completeness:.0%} of key fields are populated",
                suggestion="Scores will carry reduced confidence",
            ))

        result = ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            completeness=completeness,
        )
        logger.debug(
            "Validated %s: %d error(s), %d warning(s), completeness %.2f",
            company.basic_info.name or "<unnamed>", len(errors), len(warnings), completeness,
        )
        return result

    @staticmethod
    def completeness(company: CompanyData) -> float:
        present = sum(1 for path in COMPLETENESS_FIELDS if is_present(resolve_field(company, path)))
        return present / len(COMPLETENESS_FIELDS)

    def _check_identity(self, company: CompanyData, errors: list[ValidationIssue]):
        if not company.basic_info.name.strip():
            errors.append(ValidationIssue(
                field="basic_info.name",
                message="Company name is required",
                severity=ValidationSeverity.CRITICAL,
            ))
        for i, program in enumerate(company.pipeline.programs):
            if not program.name.strip():
                errors.append(ValidationIssue(
                    field=f"pipeline.programs[{i}].name",
                    message="Program name is required",
                    severity=ValidationSeverity.CRITICAL,
                ))

    def _check_pipeline(self, company: CompanyData, warnings: list):
        programs = company.pipeline.programs
        if not programs:
            warnings.append(ValidationWarning(
                field="pipeline.programs",
                message="No pipeline programs",
                suggestion="Asset quality will be scored at the minimum",
            ))
            return
        stage = company.basic_info.stage
        if stage is not None and any(p.stage.ordinal > stage.ordinal for p in programs):
            warnings.append(ValidationWarning(
                field="basic_info.stage",
                message="A program is more advanced than the company stage",
            ))
        if not company.basic_info.therapeutic_areas:
            warnings.append(ValidationWarning(
                field="basic_info.therapeutic_areas",
                message="No therapeutic areas specified",
                suggestion="Add areas to improve strategic fit and comparables matching",
            ))
        if stage is None:
            warnings.append(ValidationWarning(
                field="basic_info.stage",
                message="Development stage missing; lead program stage will be used",
            ))

    def _check_financials(self, company: CompanyData, errors: list, warnings: list, as_of: Optional[date]):
        financials = company.financials
        if financials.cash_position is None:
            warnings.append(ValidationWarning(field="financials.cash_position", message="Cash position missing"))
        elif financials.cash_position < 0:
            errors.append(ValidationIssue(
                field="financials.cash_position",
                message="Cash position is negative",
                severity=ValidationSeverity.ERROR,
            ))
        elif financials.cash_position == 0:
            warnings.append(ValidationWarning(field="financials.cash_position", message="Cash position is zero"))

        if financials.burn_rate is None:
            warnings.append(ValidationWarning(field="financials.burn_rate", message="Burn rate missing"))
        elif financials.burn_rate <= 0:
            warnings.append(ValidationWarning(
                field="financials.burn_rate",
                message="Burn rate is zero or negative; runway treated as unlimited",
            ))

        if financials.last_funding is not None and as_of is not None:
            if (as_of - financials.last_funding.date).days > STALE_FUNDING_DAYS:
                warnings.append(ValidationWarning(
                    field="financials.last_funding",
                    message="Funding data is more than 2 years old",
                    suggestion="Refresh financials before relying on readiness scores",
                ))

    def _check_market(self, company: CompanyData, warnings: list):
        market = company.market
        if market.addressable_market is None:
            warnings.append(ValidationWarning(field="market.addressable_market", message="Addressable market missing"))
        elif market.addressable_market <= 0:
            warnings.append(ValidationWarning(
                field="market.addressable_market",
                message="Addressable market must be positive",
            ))
        if not market.competitors:
            warnings.append(ValidationWarning(
                field="market.competitors",
                message="Competitor list is empty",
                suggestion="Competitive landscape may be overstated",
            ))

    def _check_regulatory(self, company: CompanyData, warnings: list):
        for i, trial in enumerate(company.regulatory.clinical_trials):
            if trial.start_date and trial.expected_completion and trial.expected_completion < trial.start_date:
                warnings.append(ValidationWarning(
                    field=f"regulatory.clinical_trials[{i}]",
                    message=f"Trial {trial.name} completes before it starts",
                ))
        if company.regulatory.regulatory_strategy is None:
            warnings.append(ValidationWarning(
                field="regulatory.regulatory_strategy",
                message="Regulatory strategy missing",
            ))


class ConfigValidator:
    """Validate a complete ScoringConfig: name, weights and parameters."""

    def __init__(self, weighting: Optional[WeightingEngine] = None):
        self.weighting = weighting or WeightingEngine()

    def validate(self, config: ScoringConfig) -> ValidationResult:
        errors: list[ValidationIssue] = []
        warnings: list[ValidationWarning] = []

        if not config.name.strip():
            errors.append(ValidationIssue(
                field="name",
                message="Configuration name is required",
                severity=ValidationSeverity.CRITICAL,
            ))

        weight_result = self.weighting.validate_weights(config.weights)
        errors.extend(
            ValidationIssue(field=f"weights.{e.field}", message=e.message, severity=e.severity)
            for e in weight_result.errors
        )
        warnings.extend(
            ValidationWarning(field=f"weights.{w.field}", message=w.message, suggestion=w.suggestion)
            for w in weight_result.warnings
        )

        param_result = self.validate_parameters(config.parameters)
        errors.extend(param_result.errors)
        warnings.extend(param_result.warnings)

        thresholds = config.recommendation_thresholds
        if not (thresholds.strong_buy >= thresholds.buy >= thresholds.hold >= thresholds.sell):
            errors.append(ValidationIssue(
                field="recommendation_thresholds",
                message="Recommendation thresholds must be descending",
            ))

        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            completeness=weight_result.completeness,
        )

    @staticmethod
    def validate_parameters(params: ScoringParameters) -> ValidationResult:
        errors = []
        warnings = []
        if not 0.1 <= params.risk_adjustment <= 3.0:
            errors.append(ValidationIssue(
                field="parameters.risk_adjustment",
                message="Risk adjustment factor must be between 0.1 and 3.0",
            ))
        elif not 0.5 <= params.risk_adjustment <= 2.0:
            warnings.append(ValidationWarning(
                field="parameters.risk_adjustment",
                message="Risk adjustment factor outside typical range (0.5-2.0)",
            ))
        if not 1 <= params.time_horizon <= 20:
            errors.append(ValidationIssue(
                field="parameters.time_horizon",
                message="Time horizon must be between 1 and 20 years",
            ))
        if not 0.0 < params.discount_rate <= 0.5:
            errors.append(ValidationIssue(
                field="parameters.discount_rate",
                message="Discount rate must be greater than 0 and at most 0.5",
            ))
        elif not 0.05 <= params.discount_rate <= 0.25:
            warnings.append(ValidationWarning(
                field="parameters.discount_rate",
                message="Discount rate outside typical range (5%-25%)",
            ))
        if not 0.0 <= params.confidence_threshold <= 1.0:
            errors.append(ValidationIssue(
                field="parameters.confidence_threshold",
                message="Confidence threshold must be between 0 and 1",
            ))
        return ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
