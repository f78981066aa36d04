"""Comparable transaction search and matching."""

from .analytics import analyze, validate_comparable
from .cache import SearchCache
from .filters import ComparableFilter, FilterResult
from .matcher import (
    ComparablesMatcher,
    criteria_from_company,
    profile_from_company,
    profile_from_criteria,
)
from .repository import ComparablesRepository, sample_comparables

__all__ = [
    "analyze",
    "validate_comparable",
    "SearchCache",
    "ComparableFilter",
    "FilterResult",
    "ComparablesMatcher",
    "criteria_from_company",
    "profile_from_company",
    "profile_from_criteria",
    "ComparablesRepository",
    "sample_comparables",
]
