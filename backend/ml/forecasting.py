"""
Forecasting Engine — Batched per-product consumption forecasts.

Per product:
  extract_time_series → engineer_features → strategy(model_type)
    → predictions + confidence intervals
    → accuracy / MAE / RMSE by replaying the first k predictions against
      the last k observations (k = min(n, horizon))

Error policy:
  - Unsupported model type: ValueError before any product is touched.
  - Anything failing inside one product's pipeline (too little history,
    non-finite output, arithmetic errors) degrades that product to a flat
    AAMC forecast with accuracy 50. One bad product never fails a batch.

Batching: products are split into fixed-size batches (default 1000).
Batches run one after another; products inside a batch run as concurrent
asyncio tasks joined with ``asyncio.gather``.
"""

from __future__ import annotations

import asyncio
import math
import time
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np
import structlog

from core.config import get_settings
from inventory.records import ProductRecord
from ml.features import MAX_FEATURES, engineer_features, extract_time_series
from ml.metrics_contract import compute_forecast_metrics
from ml.patterns import PatternDetectionResult, detect_patterns
from ml.strategies import MODEL_TRAINING_TIMES, MLModelConfig, get_strategy

logger = structlog.get_logger()

DEFAULT_BATCH_SIZE = 1000
DEFAULT_HORIZON = 12
MIN_HISTORY_POINTS = 2

# Fallback: flat forecast at the product's AAMC
FALLBACK_ACCURACY = 50.0
FALLBACK_LOWER = 0.7
FALLBACK_UPPER = 1.3
FALLBACK_MAE_RATIO = 0.3
FALLBACK_RMSE_RATIO = 0.4


@dataclass(frozen=True)
class ConfidenceInterval:
    lower: float
    upper: float


@dataclass(frozen=True)
class ModelMetrics:
    training_time: float
    inference_time: float
    memory_usage: float


@dataclass(frozen=True)
class ForecastResult:
    predictions: list[float]
    confidence_intervals: list[ConfidenceInterval]
    accuracy: float
    mae: float
    rmse: float
    model_metrics: ModelMetrics
    coverage: float | None = None
    is_fallback: bool = False

    def as_dict(self) -> dict:
        return {
            "predictions": list(self.predictions),
            "confidence_intervals": [{"lower": ci.lower, "upper": ci.upper} for ci in self.confidence_intervals],
            "accuracy": self.accuracy,
            "mae": self.mae,
            "rmse": self.rmse,
            "coverage": self.coverage,
            "is_fallback": self.is_fallback,
            "model_metrics": {
                "training_time": self.model_metrics.training_time,
                "inference_time": self.model_metrics.inference_time,
                "memory_usage": self.model_metrics.memory_usage,
            },
        }


def generate_fallback_forecast(product: ProductRecord, horizon: int) -> ForecastResult:
    aamc = max(0.0, float(product.annual_averages.aamc))
    return ForecastResult(
        predictions=[aamc] * horizon,
        confidence_intervals=[ConfidenceInterval(aamc * FALLBACK_LOWER, aamc * FALLBACK_UPPER)] * horizon,
        accuracy=FALLBACK_ACCURACY,
        mae=aamc * FALLBACK_MAE_RATIO,
        rmse=aamc * FALLBACK_RMSE_RATIO,
        model_metrics=ModelMetrics(training_time=0, inference_time=1, memory_usage=1),
        is_fallback=True,
    )


def estimate_memory_usage(n_rows: int) -> int:
    """Rough MB estimate from the number of feature rows."""
    return math.ceil(n_rows * 0.1)


@dataclass
class ForecastingEngine:
    batch_size: int = DEFAULT_BATCH_SIZE
    max_features: int = MAX_FEATURES
    default_horizon: int = DEFAULT_HORIZON

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")

    @classmethod
    def from_settings(cls) -> ForecastingEngine:
        settings = get_settings()
        return cls(
            batch_size=settings.forecast_batch_size,
            max_features=settings.forecast_max_features,
            default_horizon=settings.forecast_default_horizon,
        )

    async def forecast(
        self,
        products: Sequence[ProductRecord],
        config: MLModelConfig,
        horizon: int | None = None,
    ) -> dict[str, ForecastResult]:
        horizon = self.default_horizon if horizon is None else horizon
        if horizon < 1:
            raise ValueError(f"horizon must be at least 1, got {horizon}")
        get_strategy(config.model_type)

        logger.info(
            "forecast.started",
            n_products=len(products),
            model_type=config.model_type,
            horizon=horizon,
        )
        start = time.perf_counter()

        results: dict[str, ForecastResult] = {}
        for offset in range(0, len(products), self.batch_size):
            batch = products[offset : offset + self.batch_size]
            batch_results = await asyncio.gather(*(self._forecast_task(p, config, horizon) for p in batch))
            for product, result in zip(batch, batch_results):
                results[product.id] = result
            logger.debug("forecast.batch_completed", batch_start=offset, batch_size=len(batch))

        logger.info(
            "forecast.completed",
            n_products=len(results),
            n_fallbacks=sum(1 for r in results.values() if r.is_fallback),
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return results

    async def _forecast_task(self, product: ProductRecord, config: MLModelConfig, horizon: int) -> ForecastResult:
        return self.forecast_product(product, config, horizon)

    def forecast_product(self, product: ProductRecord, config: MLModelConfig, horizon: int) -> ForecastResult:
        """Forecast one product. Never raises except for an unsupported model type."""
        strategy = get_strategy(config.model_type)
        start = time.perf_counter()

        try:
            series = extract_time_series(product)
            if len(series) < MIN_HISTORY_POINTS:
                raise ValueError(f"Insufficient history: {len(series)} positive periods")

            features = engineer_features(series, product, self.max_features)
            predictions, lower, upper = strategy(features, horizon, config)
            if not (np.isfinite(predictions).all() and np.isfinite(lower).all() and np.isfinite(upper).all()):
                raise ValueError("Model produced non-finite values")

            k = min(len(series), horizon)
            replay = compute_forecast_metrics(
                series[-k:],
                predictions[:k],
                lower_bound=lower[:k],
                upper_bound=upper[:k],
            )
        except Exception as exc:
            logger.warning(
                "forecast.fallback",
                product_id=product.id,
                model_type=config.model_type,
                error=str(exc),
            )
            return generate_fallback_forecast(product, horizon)

        return ForecastResult(
            predictions=[float(p) for p in predictions],
            confidence_intervals=[ConfidenceInterval(float(lo), float(hi)) for lo, hi in zip(lower, upper)],
            accuracy=replay["accuracy"],
            mae=replay["mae"],
            rmse=replay["rmse"],
            coverage=replay["coverage"],
            model_metrics=ModelMetrics(
                training_time=MODEL_TRAINING_TIMES.get(config.model_type, 1800),
                inference_time=(time.perf_counter() - start) * 1000,
                memory_usage=estimate_memory_usage(len(features)),
            ),
        )

    def detect_patterns(self, product: ProductRecord) -> PatternDetectionResult:
        return detect_patterns(product)
