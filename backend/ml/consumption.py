"""
Consumption Analysis — Per-product consumption statistics and advice.

Metrics (positive-consumption periods only):
  aAMC        = mean consumption over periods with no stock-out days
  AMC         = mean consumption over every consuming period
  Variability = population std / mean × 100 (CV %); 100 below 3 points
  Trend       = least-squares slope / mean × 100 (% change per period)
  Seasonality = mean |c − mean| / mean; 0 below 4 points

Pattern:
  CV > 50          → irregular
  |trend| < 5      → stable
  trend > 5 / < -5 → increasing / decreasing
  trend == ±5      → seasonal if the half-length lag product is positive,
                     otherwise stable

Confidence = min(1, share of consuming periods × max(0, 1 − CV / 100)).

Usage:
    analysis = analyze_product(product)
    analysis.metrics.aamc              # → 20.0
    analysis.metrics.pattern           # → "increasing"
    analysis.recommendations           # → ["3 stock-out periods detected - review safety stock"]
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Literal

import numpy as np

from inventory.records import PeriodRecord, ProductRecord

ConsumptionPattern = Literal["stable", "increasing", "decreasing", "seasonal", "irregular"]

MIN_PATTERN_POINTS = 3
MIN_SEASONALITY_POINTS = 4
MIN_SEASONAL_LAG_POINTS = 6
IRREGULAR_CV = 50.0
TREND_BAND = 5.0
STRONG_TREND = 20.0
SEASONALITY_INDEX_THRESHOLD = 0.3
SEASONAL_CORRELATION_THRESHOLD = 0.6


@dataclass(frozen=True)
class ConsumptionMetrics:
    aamc: float
    amc: float
    pattern: ConsumptionPattern
    seasonality_index: float
    variability_coefficient: float
    trend: float


@dataclass(frozen=True)
class ConsumptionAnalysis:
    product_id: str
    metrics: ConsumptionMetrics
    recommendations: list[str] = field(default_factory=list)
    confidence: float = 0.0


def _positive(periods: Sequence[PeriodRecord]) -> list[float]:
    return [p.consumption_issue for p in periods if p.consumption_issue > 0]


def calculate_aamc(periods: Sequence[PeriodRecord]) -> float:
    """Adjusted AMC: ignores periods that had any stock-out days."""
    valid = [p.consumption_issue for p in periods if p.consumption_issue > 0 and p.stock_out_days == 0]
    if not valid:
        return 0.0
    return float(np.mean(valid))


def calculate_amc(periods: Sequence[PeriodRecord]) -> float:
    valid = _positive(periods)
    if not valid:
        return 0.0
    return float(np.mean(valid))


def calculate_trend(values: Sequence[float]) -> float:
    """Least-squares slope as a percentage of the mean."""
    n = len(values)
    if n < 2:
        return 0.0
    y = np.asarray(values, dtype=float)
    x = np.arange(n, dtype=float)
    slope = (n * (x * y).sum() - x.sum() * y.sum()) / (n * (x * x).sum() - x.sum() ** 2)
    mean = y.mean()
    return float(slope / mean * 100) if mean > 0 else 0.0


def has_seasonal_lag(values: Sequence[float]) -> bool:
    if len(values) < MIN_SEASONAL_LAG_POINTS:
        return False
    lag = len(values) // 2
    y = np.asarray(values, dtype=float)
    correlation = float((y[: len(y) - lag] * y[lag:]).sum())
    return abs(correlation) > SEASONAL_CORRELATION_THRESHOLD


def analyze_consumption_pattern(periods: Sequence[PeriodRecord]) -> tuple[ConsumptionPattern, float, float]:
    """Return ``(pattern, trend %, variability %)``."""
    valid = _positive(periods)
    if len(valid) < MIN_PATTERN_POINTS:
        return "irregular", 0.0, 100.0

    trend = calculate_trend(valid)
    mean = float(np.mean(valid))
    variability = float(np.std(valid)) / mean * 100 if mean > 0 else 100.0

    if variability > IRREGULAR_CV:
        pattern: ConsumptionPattern = "irregular"
    elif abs(trend) < TREND_BAND:
        pattern = "stable"
    elif trend > TREND_BAND:
        pattern = "increasing"
    elif trend < -TREND_BAND:
        pattern = "decreasing"
    else:
        pattern = "seasonal" if has_seasonal_lag(valid) else "stable"
    return pattern, trend, variability


def calculate_seasonality_index(periods: Sequence[PeriodRecord]) -> float:
    valid = _positive(periods)
    if len(valid) < MIN_SEASONALITY_POINTS:
        return 0.0
    y = np.asarray(valid, dtype=float)
    mean = y.mean()
    return float((np.abs(y - mean) / mean).mean())


def generate_recommendations(metrics: ConsumptionMetrics, product: ProductRecord) -> list[str]:
    recommendations = []
    if metrics.variability_coefficient > IRREGULAR_CV:
        recommendations.append("High variability detected - review ordering patterns")
    if metrics.pattern == "increasing" and metrics.trend > STRONG_TREND:
        recommendations.append("Increasing consumption trend - consider higher safety stock")
    if metrics.pattern == "decreasing" and metrics.trend < -STRONG_TREND:
        recommendations.append("Decreasing consumption trend - review stock levels")
    if metrics.seasonality_index > SEASONALITY_INDEX_THRESHOLD:
        recommendations.append("Seasonal patterns detected - implement seasonal forecasting")

    stock_out_periods = sum(1 for p in product.periods if p.stock_out_days > 0)
    if stock_out_periods:
        recommendations.append(f"{stock_out_periods} stock-out periods detected - review safety stock")
    return recommendations


def calculate_confidence(periods: Sequence[PeriodRecord], metrics: ConsumptionMetrics) -> float:
    if not periods:
        return 0.0
    data_quality = len(_positive(periods)) / len(periods)
    variability_factor = max(0.0, 1 - metrics.variability_coefficient / 100)
    return min(1.0, data_quality * variability_factor)


def analyze_product(product: ProductRecord) -> ConsumptionAnalysis:
    pattern, trend, variability = analyze_consumption_pattern(product.periods)
    metrics = ConsumptionMetrics(
        aamc=calculate_aamc(product.periods),
        amc=calculate_amc(product.periods),
        pattern=pattern,
        seasonality_index=calculate_seasonality_index(product.periods),
        variability_coefficient=variability,
        trend=trend,
    )
    return ConsumptionAnalysis(
        product_id=product.id,
        metrics=metrics,
        recommendations=generate_recommendations(metrics, product),
        confidence=calculate_confidence(product.periods, metrics),
    )
