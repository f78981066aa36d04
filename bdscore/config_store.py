"""Named scoring configurations with JSON file persistence."""

import json
import logging
from pathlib import Path
from typing import Optional

from pydantic import ValidationError

from bdscore.config import settings
from bdscore.errors import ConfigurationError, PersistenceError
from bdscore.models.scoring import ScoringConfig, ScoringParameters
from bdscore.score.validation import ConfigValidator
from bdscore.score.weighting import WEIGHT_PROFILES

logger = logging.getLogger(__name__)


def preset_configs() -> dict[str, ScoringConfig]:
    """Built-in configurations. A fresh copy on every call."""
    return {
        "Default": ScoringConfig(
            name="Default",
            weights=WEIGHT_PROFILES["default"].model_copy(),
            is_default=True,
        ),
        "Conservative": ScoringConfig(
            name="Conservative",
            weights=WEIGHT_PROFILES["conservative"].model_copy(),
            parameters=ScoringParameters(risk_adjustment=1.2, discount_rate=0.15, confidence_threshold=0.8),
        ),
        "Aggressive": ScoringConfig(
            name="Aggressive",
            weights=WEIGHT_PROFILES["aggressive"].model_copy(),
            parameters=ScoringParameters(risk_adjustment=0.8, discount_rate=0.10, confidence_threshold=0.6),
        ),
        "Balanced": ScoringConfig(name="Balanced", weights=WEIGHT_PROFILES["balanced"].model_copy()),
        "Strategic": ScoringConfig(name="Strategic", weights=WEIGHT_PROFILES["strategic"].model_copy()),
    }


PRESET_NAMES = frozenset(preset_configs())


class ConfigStore:
    """In-memory store of named configurations, seeded with the presets."""

    def __init__(self, path: Optional[Path] = None, validator: Optional[ConfigValidator] = None):
        self.path = path or settings.config_store_path
        self.validator = validator or ConfigValidator()
        self._configs: dict[str, ScoringConfig] = preset_configs()

    def get(self, name: str) -> ScoringConfig:
        config = self._configs.get(name)
        if config is None:
            raise ConfigurationError(f"Unknown scoring configuration: {name}", code="UNKNOWN_CONFIG")
        return config.model_copy(deep=True)

    def list_names(self) -> list[str]:
        return list(self._configs)

    def default(self) -> ScoringConfig:
        return self.get("Default")

    def save(self, config: ScoringConfig) -> ScoringConfig:
        """Validate and store a configuration. Presets cannot be overwritten."""
        if config.name in PRESET_NAMES:
            raise ConfigurationError(f"Cannot overwrite preset configuration: {config.name}", code="PRESET_PROTECTED")

        validation = self.validator.validate(config)
        if not validation.is_valid:
            details = "; ".join(f"{e.field}: {e.message}" for e in validation.errors)
            raise ConfigurationError(f"Invalid configuration '{config.name}': {details}")
        for warning in validation.warnings:
            logger.warning(f"Config '{config.name}': {warning.message}")

        self._configs[config.name] = config.model_copy(deep=True)
        logger.info(f"Saved scoring configuration '{config.name}'")
        return config

    def delete(self, name: str):
        if name in PRESET_NAMES:
            raise ConfigurationError(f"Cannot delete preset configuration: {name}", code="PRESET_PROTECTED")
        if self._configs.pop(name, None) is None:
            raise ConfigurationError(f"Unknown scoring configuration: {name}", code="UNKNOWN_CONFIG")
        logger.info(f"Deleted scoring configuration '{name}'")

    def load(self) -> int:
        """Read custom configurations from the JSON file. Returns the number loaded."""
        if not self.path.exists():
            logger.debug(f"No config store at {self.path}")
            return 0
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceError(f"Failed to read config store {self.path}: {e}") from e

        loaded = 0
        for item in data:
            try:
                config = ScoringConfig(**item)
            except ValidationError as e:
                raise ConfigurationError(f"Malformed configuration in {self.path}: {e}") from e
            if config.name in PRESET_NAMES:
                logger.warning(f"Ignoring stored config shadowing preset '{config.name}'")
                continue
            self.save(config)
            loaded += 1
        return loaded

    def persist(self):
        """Write custom (non-preset) configurations to the JSON file."""
        custom = [c.model_dump(mode="json") for name, c in self._configs.items() if name not in PRESET_NAMES]
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(custom, f, indent=2)
        except OSError as e:
            raise PersistenceError(f"Failed to write config store {self.path}: {e}") from e
        logger.info(f"Persisted {len(custom)} configuration(s) to {self.path}")
