"""Hard pre-filters that eliminate comparables before similarity scoring."""

from dataclasses import dataclass, field
from datetime import date

from bdscore.models.comparables import Comparable, ComparableCriteria


@dataclass
class FilterResult:
    """Result of applying criteria filters to one comparable."""

    passed: bool = True
    failed_filters: list[str] = field(default_factory=list)


def _matches_any(values: list[str], candidates: list[str]) -> bool:
    """Case-insensitive substring match in either direction."""
    wanted = [v.strip().lower() for v in values if v.strip()]
    have = [c.strip().lower() for c in candidates if c.strip()]
    return any(w in h or h in w for w in wanted for h in have)


class ComparableFilter:
    """Apply ComparableCriteria bounds to comparables."""

    def apply(self, comparable: Comparable, criteria: ComparableCriteria, as_of: date) -> FilterResult:
        result = FilterResult()

        if criteria.stages and comparable.stage not in criteria.stages:
            result.failed_filters.append("stage")

        if criteria.transaction_types and comparable.transaction_type not in criteria.transaction_types:
            result.failed_filters.append("transaction_type")

        if criteria.min_market_size is not None and comparable.market_size < criteria.min_market_size:
            result.failed_filters.append("min_market_size")
        if criteria.max_market_size is not None and comparable.market_size > criteria.max_market_size:
            result.failed_filters.append("max_market_size")

        if criteria.min_valuation is not None and comparable.valuation < criteria.min_valuation:
            result.failed_filters.append("min_valuation")
        if criteria.max_valuation is not None and comparable.valuation > criteria.max_valuation:
            result.failed_filters.append("max_valuation")

        if criteria.max_age is not None and comparable.age_in_years(as_of) > criteria.max_age:
            result.failed_filters.append("max_age")

        if comparable.confidence < criteria.min_confidence:
            result.failed_filters.append("min_confidence")

        if criteria.therapeutic_areas and not _matches_any(criteria.therapeutic_areas, comparable.therapeutic_areas):
            result.failed_filters.append("therapeutic_areas")

        program = comparable.lead_program
        if criteria.mechanisms and not _matches_any(criteria.mechanisms, [program.mechanism]):
            result.failed_filters.append("mechanisms")
        if criteria.indications and not _matches_any(criteria.indications, [program.indication]):
            result.failed_filters.append("indications")
        if criteria.competitive_positions and program.competitive_position not in criteria.competitive_positions:
            result.failed_filters.append("competitive_positions")

        result.passed = not result.failed_filters
        return result

    def filter(self, comparables, criteria: ComparableCriteria, as_of: date) -> list[Comparable]:
        return [c for c in comparables if self.apply(c, criteria, as_of).passed]
