"""Configuration settings for the BD Scoring & Valuation Engine."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Paths
    base_dir: Path = Path(__file__).parent.parent
    data_dir: Path = base_dir / "data"
    db_path: Path = data_dir / "bdscore.db"
    config_store_path: Path = data_dir / "scoring_configs.json"
    comparables_path: Optional[Path] = None  # JSON pool; built-in sample pool when unset

    # Scoring
    parallel_pillars: bool = True
    max_workers: int = 6

    # Comparables
    cache_ttl_seconds: int = 3600
    time_horizon_years: float = 5.0

    # Valuation
    valuation_top_k: int = 5

    # Batch evaluation
    batch_concurrency: int = 4
    batch_timeout_seconds: float = 30.0

    # Database URL
    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.db_path}"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "BDSCORE_"


settings = Settings()

# Ensure data directory exists
settings.data_dir.mkdir(parents=True, exist_ok=True)
