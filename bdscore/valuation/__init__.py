"""Valuation from comparable transactions."""

from .engine import ValuationEngine
from .sensitivity import RnpvAssumptions, assumptions_for, rnpv, sensitivity_table

__all__ = ["ValuationEngine", "RnpvAssumptions", "assumptions_for", "rnpv", "sensitivity_table"]
