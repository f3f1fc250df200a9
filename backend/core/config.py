"""
PharmaAnalytics Backend Configuration

Uses pydantic-settings for type-safe environment variable loading.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

# Find .env file: check CWD first, then parent (project root)
_env_file = Path(".env")
if not _env_file.exists():
    _parent_env = Path(__file__).resolve().parent.parent.parent / ".env"
    if _parent_env.exists():
        _env_file = _parent_env


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Runtime
    app_env: str = "local"
    debug: bool = False

    # Aggregation cache
    cache_default_ttl_seconds: float = 300.0
    cache_sweep_interval_seconds: float = 60.0

    # Forecasting
    forecast_batch_size: int = 1000
    forecast_max_features: int = 50
    forecast_default_horizon: int = 12

    # Facility directory export (facility → zone → region), JSON
    facility_directory_path: str = ""

    model_config = {
        "env_file": str(_env_file),
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache
def get_settings() -> Settings:
    """Cached settings instance."""
    settings = Settings()
    _enforce_runtime_guardrails(settings)
    return settings


def _enforce_runtime_guardrails(settings: Settings) -> None:
    if settings.cache_default_ttl_seconds <= 0:
        raise ValueError("cache_default_ttl_seconds must be positive")
    if settings.cache_sweep_interval_seconds <= 0:
        raise ValueError("cache_sweep_interval_seconds must be positive")
    if settings.forecast_batch_size < 1:
        raise ValueError("forecast_batch_size must be at least 1")
    if settings.forecast_max_features < 1:
        raise ValueError("forecast_max_features must be at least 1")
    if settings.forecast_default_horizon < 1:
        raise ValueError("forecast_default_horizon must be at least 1")

    env = settings.app_env.strip().lower()
    is_local = env in {"", "local", "dev", "development", "test"}
    if is_local:
        return

    if settings.debug:
        raise ValueError("Refusing to start with debug=true outside local/dev/test")
