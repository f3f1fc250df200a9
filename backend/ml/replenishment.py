"""
Replenishment Planning — Classic consumption forecasts + stock levels.

Turns a product's period history (and its consumption analysis) into an
ordering plan:
  Safety Stock  = Z(service level) × σ(consumption) × √(lead time in months)
  Reorder Point = mean forecast + Safety Stock
  Max Stock     = Reorder Point + 2 × mean forecast   (two months of buffer)
  Confidence    = 0.8 when the no-stock-out aAMC is positive, else 0.3

Forecast methods:
  - moving_average:          mean of the last ``periods`` observations
  - exponential_smoothing:   single smoothing with ``alpha``
  - seasonal_decomposition:  Holt-Winters with 12 seasonal slots; falls back
                             to exponential smoothing below two full seasons
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Literal

import numpy as np
import structlog

from inventory.records import ProductRecord
from ml.consumption import ConsumptionAnalysis, analyze_product

logger = structlog.get_logger()

ForecastMethod = Literal["moving_average", "exponential_smoothing", "seasonal_decomposition"]

SEASON_LENGTH = 12
PLAN_HORIZON = 12
BUFFER_MONTHS = 2
DAYS_PER_MONTH = 30

# Service level → Z-score (standard normal)
Z_SCORES = {
    0.90: 1.282,
    0.95: 1.645,
    0.99: 2.326,
}


@dataclass
class ReplenishmentParameters:
    method: ForecastMethod = "exponential_smoothing"
    periods: int = 6
    alpha: float = 0.3
    beta: float = 0.1
    gamma: float = 0.1
    safety_stock_days: int = 30
    service_level: float = 0.95


@dataclass
class ReplenishmentPlan:
    """Ordering plan for one product."""

    product_id: str
    predicted_consumption: list[float]
    safety_stock: float
    reorder_point: float
    max_stock: float
    forecast_accuracy: float
    confidence: float
    parameters: ReplenishmentParameters = field(default_factory=ReplenishmentParameters)


def get_z_score(service_level: float) -> float:
    if service_level >= 0.99:
        return Z_SCORES[0.99]
    if service_level >= 0.95:
        return Z_SCORES[0.95]
    return Z_SCORES[0.90]


def _non_negative(data: list[float]) -> list[float]:
    return [float(c) for c in data if c >= 0]


def moving_average_forecast(data: list[float], periods: int = 3, forecast_periods: int = PLAN_HORIZON) -> list[float]:
    if len(data) < periods:
        return [0.0] * forecast_periods
    valid = _non_negative(data)
    if not valid:
        return [0.0] * forecast_periods
    average = float(np.mean(valid[-periods:]))
    return [average] * forecast_periods


def exponential_smoothing_forecast(
    data: list[float],
    alpha: float = 0.3,
    forecast_periods: int = PLAN_HORIZON,
) -> list[float]:
    valid = _non_negative(data)
    if not valid:
        return [0.0] * forecast_periods
    smoothed = valid[0]
    for value in valid[1:]:
        smoothed = alpha * value + (1 - alpha) * smoothed
    return [smoothed] * forecast_periods


def _initial_trend(data: list[float], season_length: int) -> float:
    trend = sum((data[i + season_length] - data[i]) / season_length for i in range(season_length))
    return trend / season_length


def _initial_seasonals(data: list[float], season_length: int) -> list[float]:
    averages = [float(np.mean(data[i : i + season_length])) for i in range(0, len(data), season_length)]
    seasonals = []
    for slot in range(season_length):
        ratios = [
            data[j] / averages[j // season_length]
            for j in range(slot, len(data), season_length)
            if averages[j // season_length] > 0
        ]
        seasonals.append(sum(ratios) / len(ratios) if ratios else 1.0)
    return seasonals


def holt_winters_forecast(
    data: list[float],
    alpha: float = 0.3,
    beta: float = 0.1,
    gamma: float = 0.1,
    season_length: int = SEASON_LENGTH,
    forecast_periods: int = PLAN_HORIZON,
) -> list[float]:
    valid = _non_negative(data)
    if len(valid) < season_length * 2:
        return exponential_smoothing_forecast(valid, alpha, forecast_periods)

    level = sum(valid[:season_length]) / season_length
    trend = _initial_trend(valid, season_length)
    seasonal = _initial_seasonals(valid, season_length)

    for i in range(season_length, len(valid)):
        prev_level = level
        slot = i % season_length
        level = alpha * (valid[i] - seasonal[slot]) + (1 - alpha) * (level + trend)
        trend = beta * (level - prev_level) + (1 - beta) * trend
        seasonal[slot] = gamma * (valid[i] - level) + (1 - gamma) * seasonal[slot]

    return [max(0.0, (level + (i + 1) * trend) * seasonal[i % season_length]) for i in range(forecast_periods)]


def calculate_safety_stock(data: list[float], lead_time_days: float = 30, service_level: float = 0.95) -> float:
    valid = _non_negative(data)
    if len(valid) < 2:
        return 0.0
    std_dev = float(np.std(valid, ddof=1))
    return get_z_score(service_level) * std_dev * math.sqrt(lead_time_days / DAYS_PER_MONTH)


def estimate_forecast_accuracy(product: ProductRecord, analysis: ConsumptionAnalysis | None = None) -> float:
    """0-1 blend of data completeness and pattern stability."""
    analysis = analysis or analyze_product(product)
    total = len(product.periods)
    if total == 0:
        return 0.0
    data_quality = sum(1 for p in product.periods if p.consumption_issue > 0) / total
    pattern_stability = max(0.0, 1 - analysis.metrics.variability_coefficient / 100)
    return min(1.0, (data_quality + pattern_stability) / 2)


def generate_replenishment_plan(
    product: ProductRecord,
    parameters: ReplenishmentParameters | None = None,
) -> ReplenishmentPlan:
    params = parameters or ReplenishmentParameters()
    analysis = analyze_product(product)
    consumption = [p.consumption_issue for p in product.periods]

    if params.method == "moving_average":
        predicted = moving_average_forecast(consumption, params.periods, PLAN_HORIZON)
    elif params.method == "seasonal_decomposition":
        predicted = holt_winters_forecast(
            consumption, params.alpha, params.beta, params.gamma, SEASON_LENGTH, PLAN_HORIZON
        )
    elif params.method == "exponential_smoothing":
        predicted = exponential_smoothing_forecast(consumption, params.alpha, PLAN_HORIZON)
    else:
        raise ValueError(
            f"Unknown forecast method '{params.method}'. "
            "Known: ['moving_average', 'exponential_smoothing', 'seasonal_decomposition']"
        )

    safety_stock = calculate_safety_stock(consumption, params.safety_stock_days, params.service_level)
    avg_forecast = sum(predicted) / len(predicted)
    reorder_point = avg_forecast + safety_stock

    plan = ReplenishmentPlan(
        product_id=product.id,
        predicted_consumption=predicted,
        safety_stock=safety_stock,
        reorder_point=reorder_point,
        max_stock=reorder_point + avg_forecast * BUFFER_MONTHS,
        forecast_accuracy=estimate_forecast_accuracy(product, analysis),
        confidence=0.8 if analysis.metrics.aamc > 0 else 0.3,
        parameters=params,
    )
    logger.debug(
        "replenishment.plan_generated",
        product_id=product.id,
        method=params.method,
        reorder_point=round(reorder_point, 2),
    )
    return plan
