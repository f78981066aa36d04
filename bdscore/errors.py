"""Shared error classes for scoring, comparables and valuation."""


class BDScoreError(RuntimeError):
    """Base exception raised by the scoring engine."""

    def __init__(self, message: str, code: str = "BDSCORE_ERROR"):
        super().__init__(message)
        self.code = code


class InputError(BDScoreError):
    """Raised when company data or a configuration cannot be evaluated at all."""

    def __init__(self, message: str, errors: list = None, code: str = "INPUT_ERROR"):
        super().__init__(message, code=code)
        self.errors = errors or []


class ConfigurationError(BDScoreError):
    """Raised for unknown presets or configurations that fail validation."""

    def __init__(self, message: str, code: str = "CONFIGURATION_ERROR"):
        super().__init__(message, code=code)


class PersistenceError(BDScoreError):
    """Raised when the history sink or config store cannot read or write."""

    def __init__(self, message: str, code: str = "PERSISTENCE_ERROR"):
        super().__init__(message, code=code)
