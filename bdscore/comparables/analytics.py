"""Descriptive analytics and data-quality checks over comparables."""

from collections import Counter
from datetime import date
from statistics import mean, median

from bdscore.models.comparables import Comparable, ComparableAnalytics, ComparableValidation

RECENT_YEARS = 2
HIGH_CONFIDENCE = 0.8
STALE_YEARS = 5


def analyze(comparables: list[Comparable], as_of: date) -> ComparableAnalytics:
    if not comparables:
        return ComparableAnalytics()

    valuations = [c.valuation for c in comparables]
    areas = Counter(area for c in comparables for area in c.therapeutic_areas)
    return ComparableAnalytics(
        total=len(comparables),
        by_transaction_type=dict(Counter(c.transaction_type.value for c in comparables)),
        by_therapeutic_area=dict(areas),
        by_stage=dict(Counter(c.stage.value for c in comparables)),
        average_valuation=mean(valuations),
        median_valuation=median(valuations),
        valuation_range=(min(valuations), max(valuations)),
        recent_transactions=sum(1 for c in comparables if c.age_in_years(as_of) <= RECENT_YEARS),
        high_confidence=sum(1 for c in comparables if c.confidence > HIGH_CONFIDENCE),
    )


def validate_comparable(comparable: Comparable, as_of: date) -> ComparableValidation:
    """Completeness over twelve fields, with confidence discounted for gaps and age."""
    program = comparable.lead_program
    fin = comparable.financials
    checks = [
        bool(comparable.company_name.strip()),
        comparable.valuation > 0,
        bool(comparable.therapeutic_areas),
        comparable.market_size > 0,
        bool(program.name),
        bool(program.indication),
        bool(program.mechanism),
        bool(program.differentiators),
        fin is not None and fin.cash_at_transaction is not None,
        fin is not None and fin.burn_rate is not None,
        fin is not None and fin.runway is not None,
        comparable.deal_structure is not None,
    ]
    completeness = sum(checks) / len(checks)

    issues = []
    recommendations = []
    adjusted = comparable.confidence
    if completeness < 0.5:
        adjusted *= 0.8
        issues.append("Less than half of the key fields are populated")
        recommendations.append("Source financial and deal-term data for this transaction")
    age = comparable.age_in_years(as_of)
    if age > STALE_YEARS:
        adjusted *= 0.9
        issues.append(f"Transaction is {age:.1f} years old")
        recommendations.append("Prefer more recent transactions where available")
    if comparable.valuation <= 0:
        issues.append("Valuation must be positive")
    if not comparable.company_name.strip():
        issues.append("Company name is required")
    if fin is None:
        recommendations.append("Add a financial snapshot to enable financial similarity matching")

    return ComparableValidation(
        is_valid=comparable.valuation > 0 and bool(comparable.company_name.strip()),
        completeness=completeness,
        adjusted_confidence=adjusted,
        issues=issues,
        recommendations=recommendations,
    )
