"""Scoring engine for biotech BD targets."""

from .engine import ScoringEngine
from .validation import CompanyValidator, ConfigValidator
from .weighting import WeightingEngine, WEIGHT_PROFILES

__all__ = ["ScoringEngine", "CompanyValidator", "ConfigValidator", "WeightingEngine", "WEIGHT_PROFILES"]
