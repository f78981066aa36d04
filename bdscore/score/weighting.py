"""Pillar weighting: aggregation, weight validation and named weight profiles."""

import logging

from bdscore.models.scoring import (
    WEIGHT_TOLERANCE,
    Pillar,
    PillarScores,
    ValidationIssue,
    ValidationResult,
    ValidationSeverity,
    ValidationWarning,
    WeightConfig,
    WeightedScores,
    WeightImpact,
)

logger = logging.getLogger(__name__)

IMBALANCE_THRESHOLD = 0.5
DISPARITY_THRESHOLD = 0.4
SIGNIFICANT_IMPACT = 0.1

WEIGHT_PROFILES = {
    "default": WeightConfig(),
    "conservative": WeightConfig(
        asset_quality=0.20,
        market_outlook=0.15,
        capital_intensity=0.20,
        strategic_fit=0.15,
        financial_readiness=0.15,
        regulatory_risk=0.15,
    ),
    "aggressive": WeightConfig(
        asset_quality=0.35,
        market_outlook=0.30,
        capital_intensity=0.10,
        strategic_fit=0.15,
        financial_readiness=0.05,
        regulatory_risk=0.05,
    ),
    "balanced": WeightConfig(**{p.value: 1.0 / 6 for p in Pillar}),
    "strategic": WeightConfig(
        asset_quality=0.30,
        market_outlook=0.20,
        capital_intensity=0.10,
        strategic_fit=0.30,
        financial_readiness=0.05,
        regulatory_risk=0.05,
    ),
}


class WeightingEngine:
    """Combine pillar scores with weights. Stateless; safe to call on every slider move."""

    def apply_weights(self, pillar_scores: PillarScores, weights: WeightConfig) -> WeightedScores:
        """Weighted contribution per pillar and their sum. Weights are not re-normalized."""
        contributions = {
            pillar: pillar_scores.get(pillar).raw_score * weights.get(pillar)
            for pillar in Pillar
        }
        return WeightedScores(contributions=contributions, total=sum(contributions.values()))

    def aggregate(self, raw_scores: dict[Pillar, float], weights: WeightConfig) -> float:
        """Aggregate bare raw scores, for re-weighting persisted pillar values."""
        return sum(raw_scores[pillar] * weights.get(pillar) for pillar in Pillar)

    def validate_weights(self, weights: WeightConfig) -> ValidationResult:
        errors = []
        warnings = []
        values = weights.as_dict()

        for pillar, weight in values.items():
            if weight < 0.0:
                errors.append(ValidationIssue(field=pillar.value, message="Weight cannot be negative"))
            if weight > 1.0:
                errors.append(ValidationIssue(field=pillar.value, message="Weight cannot exceed 1.0 (100%)"))
            if weight == 0.0:
                warnings.append(ValidationWarning(
                    field=pillar.value,
                    message="Zero weight will exclude this pillar from scoring",
                    suggestion="The pillar is still scored and reported but does not affect the total",
                ))

        total = weights.total
        if all(w == 0.0 for w in values.values()):
            errors.append(ValidationIssue(
                field="total_weight",
                message="All weights are zero",
                severity=ValidationSeverity.CRITICAL,
            ))
        elif abs(total - 1.0) > WEIGHT_TOLERANCE:
            relation = "less than" if total < 1.0 else "exceeds"
            errors.append(ValidationIssue(
                field="total_weight",
                message=f"Total weights sum to {total:.3f}, which {relation} 1.0",
            ))

        max_weight = max(values.values())
        min_weight = min(values.values())
        if max_weight >= IMBALANCE_THRESHOLD:
            warnings.append(ValidationWarning(
                field="weight_balance",
                message=f"Weight imbalance: one pillar carries {max_weight:.0%} of the total",
                suggestion="Consider a more balanced distribution across pillars",
            ))
        if max_weight - min_weight > DISPARITY_THRESHOLD and min_weight > 0.0:
            warnings.append(ValidationWarning(
                field="weight_balance",
                message="Large weight disparity detected between pillars",
                suggestion="Review whether the distribution reflects evaluation priorities",
            ))

        nonzero = sum(1 for w in values.values() if w > 0.0)
        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            completeness=nonzero / len(values),
        )

    def validate_and_normalize(self, weights: WeightConfig) -> tuple[WeightConfig, ValidationResult]:
        """Validate, then normalize to sum 1.0 when the weights are structurally usable.

        Negative or over-one weights are left untouched; a sum that is merely off
        is corrected and its error dropped from the returned validation.
        """
        validation = self.validate_weights(weights)
        structural = [e for e in validation.errors if e.field != "total_weight"]
        if structural or weights.total <= 0:
            return weights, validation

        if abs(weights.total - 1.0) > WEIGHT_TOLERANCE:
            logger.debug("Normalizing weights from total %.4f", weights.total)
        normalized = weights.normalized()
        return normalized, self.validate_weights(normalized)

    def weight_impact(
        self,
        pillar_scores: PillarScores,
        old_weights: WeightConfig,
        new_weights: WeightConfig,
    ) -> WeightImpact:
        """Compare aggregates under two weight sets without re-scoring pillars."""
        old = self.apply_weights(pillar_scores, old_weights)
        new = self.apply_weights(pillar_scores, new_weights)
        impacts = {
            pillar: new.contributions[pillar] - old.contributions[pillar]
            for pillar in Pillar
        }
        difference = new.total - old.total
        return WeightImpact(
            old_total=old.total,
            new_total=new.total,
            total_difference=difference,
            percent_change=(difference / old.total * 100.0) if old.total else 0.0,
            pillar_impacts=impacts,
            significant_changes=[p for p, v in impacts.items() if abs(v) > SIGNIFICANT_IMPACT],
        )

    @staticmethod
    def profile(name: str) -> WeightConfig:
        try:
            return WEIGHT_PROFILES[name.lower()].model_copy()
        except KeyError:
            raise KeyError(f"Unknown weight profile: {name}") from None
