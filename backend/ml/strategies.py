"""
Forecast Strategies — Self-contained smoothing models behind model names.

Model names are the ones planners pick in the dashboard:

  prophet: moving-average trend + period-12 seasonal profile,
           linear trend extrapolation, ±15% band
  arima:   triple exponential smoothing (level / trend / 12 seasonal
           factors), band = 1.96 × in-sample residual std (95%)
  lstm:    exponentially weighted window (decay 0.1) over the last
           min(12, n) points, auto-regressive, ±20% band

Every strategy takes the engineered feature frame (only ``value`` is read),
a horizon and the model config, and returns
``(predictions, lower_bounds, upper_bounds)`` arrays of length ``horizon``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Literal

import numpy as np
import pandas as pd

ModelType = Literal["prophet", "arima", "lstm"]

SEASON_LENGTH = 12

PROPHET_BAND = 0.15
LSTM_BAND = 0.20
LSTM_DECAY = 0.1
LSTM_MAX_SEQUENCE = 12
CONFIDENCE_Z = 1.96  # 95%

# phi (trend damping) is accepted but the arima strategy runs undamped
DEFAULT_HYPERPARAMETERS = {"alpha": 0.3, "beta": 0.1, "gamma": 0.1, "phi": 1.0}

# Simulated training time reported alongside each forecast
MODEL_TRAINING_TIMES: dict[str, int] = {
    "prophet": 2700,
    "arima": 1800,
    "lstm": 5400,
}

StrategyOutput = tuple[np.ndarray, np.ndarray, np.ndarray]


@dataclass(frozen=True)
class MLModelConfig:
    model_type: str
    parameters: dict[str, Any] = field(default_factory=dict)
    hyperparameters: dict[str, float] = field(default_factory=dict)

    def hyperparameter(self, name: str) -> float:
        value = self.hyperparameters.get(name)
        return DEFAULT_HYPERPARAMETERS[name] if value is None else float(value)


def _values(features: pd.DataFrame) -> np.ndarray:
    return features["value"].to_numpy(dtype=float)


# ── Prophet-style ─────────────────────────────────────────────────────────


def extract_trend(values: np.ndarray) -> np.ndarray:
    """Centred moving average with window min(6, n // 3)."""
    n = len(values)
    half = min(6, n // 3) // 2
    return np.array([values[max(0, i - half) : min(n, i + half + 1)].mean() for i in range(n)])


def extract_seasonality(values: np.ndarray, period: int = SEASON_LENGTH) -> np.ndarray:
    """Mean value per slot ``index % period``; empty slots are 0."""
    slots = np.arange(len(values)) % period
    sums = np.bincount(slots, weights=values, minlength=period)
    counts = np.bincount(slots, minlength=period)
    return np.divide(sums, counts, out=np.zeros(period), where=counts > 0)


def trend_slope(trend: np.ndarray) -> float:
    if len(trend) < 2:
        return 0.0
    return float((trend[-1] - trend[0]) / (len(trend) - 1))


def apply_prophet_model(features: pd.DataFrame, horizon: int, config: MLModelConfig) -> StrategyOutput:
    values = _values(features)
    trend = extract_trend(values)
    seasonal = extract_seasonality(values, SEASON_LENGTH)
    slope = trend_slope(trend)

    steps = np.arange(1, horizon + 1)
    trend_values = trend[-1] + steps * slope
    seasonal_values = seasonal[(steps - 1) % len(seasonal)]
    predictions = np.maximum(0.0, trend_values + seasonal_values)

    band = predictions * PROPHET_BAND
    return predictions, np.maximum(0.0, predictions - band), predictions + band


# ── ARIMA-style (Holt-Winters multiplicative) ─────────────────────────────


def apply_arima_model(features: pd.DataFrame, horizon: int, config: MLModelConfig) -> StrategyOutput:
    values = _values(features)
    alpha = config.hyperparameter("alpha")
    beta = config.hyperparameter("beta")
    gamma = config.hyperparameter("gamma")

    level = values[0]
    trend = 0.0
    seasonal = np.ones(SEASON_LENGTH)
    for i in range(1, len(values)):
        prev_level = level
        slot = i % SEASON_LENGTH
        level = alpha * (values[i] / seasonal[slot]) + (1 - alpha) * (level + trend)
        trend = beta * (level - prev_level) + (1 - beta) * trend
        seasonal[slot] = gamma * (values[i] / level) + (1 - gamma) * seasonal[slot]

    steps = np.arange(1, horizon + 1)
    predictions = np.maximum(0.0, (level + steps * trend) * seasonal[(steps - 1) % SEASON_LENGTH])

    confidence = CONFIDENCE_Z * residual_std(values, level, trend, seasonal)
    return predictions, np.maximum(0.0, predictions - confidence), predictions + confidence


def residual_std(values: np.ndarray, level: float, trend: float, seasonal: np.ndarray) -> float:
    idx = np.arange(len(values))
    fitted = (level + idx * trend) * seasonal[idx % len(seasonal)]
    return float(np.std(values - fitted))


# ── LSTM-style ────────────────────────────────────────────────────────────


def apply_lstm_model(features: pd.DataFrame, horizon: int, config: MLModelConfig) -> StrategyOutput:
    history = list(_values(features))
    sequence_length = min(LSTM_MAX_SEQUENCE, len(history))
    # Oldest point in the window gets the smallest weight
    weights = np.exp(-LSTM_DECAY * np.arange(sequence_length - 1, -1, -1))

    predictions = []
    for _ in range(horizon):
        recent = np.array(history[-sequence_length:])
        prediction = max(0.0, float((recent * weights).sum() / weights.sum()))
        predictions.append(prediction)
        history.append(prediction)

    predictions_arr = np.array(predictions, dtype=float)
    band = predictions_arr * LSTM_BAND
    return predictions_arr, np.maximum(0.0, predictions_arr - band), predictions_arr + band


# ── Dispatch ──────────────────────────────────────────────────────────────

Strategy = Callable[[pd.DataFrame, int, MLModelConfig], StrategyOutput]

STRATEGIES: dict[str, Strategy] = {
    "prophet": apply_prophet_model,
    "arima": apply_arima_model,
    "lstm": apply_lstm_model,
}


def get_strategy(model_type: str) -> Strategy:
    """
    Resolve a model name to its strategy.

    Raises:
        ValueError if the model type is unsupported.
    """
    strategy = STRATEGIES.get(model_type)
    if strategy is None:
        raise ValueError(f"Unsupported model type '{model_type}'. Known: {list(STRATEGIES.keys())}")
    return strategy


def apply_model(features: pd.DataFrame, horizon: int, config: MLModelConfig) -> StrategyOutput:
    return get_strategy(config.model_type)(features, horizon, config)
