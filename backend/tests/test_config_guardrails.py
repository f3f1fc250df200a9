import pytest

from analytics.cache import CacheManager
from core import config as config_module
from ml.forecasting import ForecastingEngine

pytestmark = pytest.mark.usefixtures("reset_settings")


def test_non_local_debug_mode_is_blocked(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("DEBUG", "true")

    with pytest.raises(ValueError, match="debug=true"):
        config_module.get_settings()


def test_local_allows_debug(monkeypatch):
    monkeypatch.setenv("APP_ENV", "local")
    monkeypatch.setenv("DEBUG", "true")

    settings = config_module.get_settings()
    assert settings.app_env == "local"
    assert settings.debug is True


def test_defaults(monkeypatch):
    for var in (
        "APP_ENV",
        "DEBUG",
        "CACHE_DEFAULT_TTL_SECONDS",
        "CACHE_SWEEP_INTERVAL_SECONDS",
        "FORECAST_BATCH_SIZE",
        "FORECAST_MAX_FEATURES",
        "FORECAST_DEFAULT_HORIZON",
    ):
        monkeypatch.delenv(var, raising=False)

    settings = config_module.get_settings()
    assert settings.cache_default_ttl_seconds == 300.0
    assert settings.forecast_batch_size == 1000
    assert settings.forecast_max_features == 50


def test_settings_are_cached(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    assert config_module.get_settings() is config_module.get_settings()


@pytest.mark.parametrize(
    ("var", "value", "message"),
    [
        ("CACHE_DEFAULT_TTL_SECONDS", "0", "cache_default_ttl_seconds"),
        ("CACHE_SWEEP_INTERVAL_SECONDS", "-5", "cache_sweep_interval_seconds"),
        ("FORECAST_BATCH_SIZE", "0", "forecast_batch_size"),
        ("FORECAST_MAX_FEATURES", "0", "forecast_max_features"),
        ("FORECAST_DEFAULT_HORIZON", "0", "forecast_default_horizon"),
    ],
)
def test_non_positive_tuning_values_are_rejected(monkeypatch, var, value, message):
    monkeypatch.setenv("APP_ENV", "local")
    monkeypatch.setenv(var, value)

    with pytest.raises(ValueError, match=message):
        config_module.get_settings()


def test_cache_manager_from_settings(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("CACHE_DEFAULT_TTL_SECONDS", "45")
    monkeypatch.setenv("CACHE_SWEEP_INTERVAL_SECONDS", "5")

    cache = CacheManager.from_settings()
    assert cache.default_ttl == 45.0
    assert cache.sweep_interval == 5.0


def test_forecasting_engine_from_settings(monkeypatch):
    monkeypatch.setenv("APP_ENV", "test")
    monkeypatch.setenv("FORECAST_BATCH_SIZE", "25")
    monkeypatch.setenv("FORECAST_MAX_FEATURES", "8")
    monkeypatch.setenv("FORECAST_DEFAULT_HORIZON", "6")

    engine = ForecastingEngine.from_settings()
    assert engine.batch_size == 25
    assert engine.max_features == 8
    assert engine.default_horizon == 6
