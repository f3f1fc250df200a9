"""
Pattern Detection — Seasonality, trend, anomalies and cycles in consumption.

Runs directly on the raw positive-consumption series, independent of any
forecast:
  - Seasonality: autocorrelation at lags 2..min(12, n // 2);
    detected when the best correlation exceeds 0.5
  - Trend: least-squares slope vs. period index, ±0.1 dead band,
    confidence = R²
  - Anomalies: Tukey fences (1.5 × IQR beyond Q1/Q3), scored by distance
    from the Q1/Q3 midpoint
  - Cycles: RMS of period-lagged differences for periods 3..min(24, n / 2),
    reported when above 0.3, strongest first
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Literal

import numpy as np

from inventory.records import ProductRecord
from ml.features import extract_time_series

TrendDirection = Literal["increasing", "decreasing", "stable"]

SEASONALITY_MAX_LAG = 12
SEASONALITY_THRESHOLD = 0.5
TREND_DEADBAND = 0.1
IQR_MULTIPLIER = 1.5
CYCLE_MIN_PERIOD = 3
CYCLE_MAX_PERIOD = 24
CYCLE_AMPLITUDE_THRESHOLD = 0.3


@dataclass(frozen=True)
class SeasonalityPattern:
    detected: bool
    period: int
    strength: float


@dataclass(frozen=True)
class TrendPattern:
    direction: TrendDirection
    magnitude: float
    confidence: float


@dataclass(frozen=True)
class AnomalyReport:
    indices: list[int] = field(default_factory=list)
    scores: list[float] = field(default_factory=list)
    threshold: float = 0.0


@dataclass(frozen=True)
class Cycle:
    period: int
    amplitude: float


@dataclass(frozen=True)
class CyclicPatterns:
    detected: bool
    cycles: list[Cycle] = field(default_factory=list)


@dataclass(frozen=True)
class PatternDetectionResult:
    seasonality: SeasonalityPattern
    trend: TrendPattern
    anomalies: AnomalyReport
    cyclic_patterns: CyclicPatterns


def autocorrelation(values: np.ndarray, lag: int) -> float:
    n = len(values)
    if lag >= n:
        return 0.0
    deviations = values - values.mean()
    numerator = float((deviations[: n - lag] * deviations[lag:]).sum())
    denominator = float((deviations**2).sum())
    return numerator / denominator if denominator > 0 else 0.0


def detect_seasonality(values: np.ndarray) -> SeasonalityPattern:
    values = np.asarray(values, dtype=float)
    max_lag = min(SEASONALITY_MAX_LAG, len(values) // 2)
    best_period = 0
    best_correlation = 0.0
    for lag in range(2, max_lag + 1):
        correlation = autocorrelation(values, lag)
        if correlation > best_correlation:
            best_correlation = correlation
            best_period = lag
    return SeasonalityPattern(
        detected=best_correlation > SEASONALITY_THRESHOLD,
        period=best_period,
        strength=best_correlation,
    )


def detect_trend(values: np.ndarray) -> TrendPattern:
    y = np.asarray(values, dtype=float)
    n = len(y)
    if n < 3:
        return TrendPattern(direction="stable", magnitude=0.0, confidence=0.0)

    x = np.arange(n, dtype=float)
    sum_x, sum_y = x.sum(), y.sum()
    sum_xy, sum_xx = (x * y).sum(), (x * x).sum()
    slope = float((n * sum_xy - sum_x * sum_y) / (n * sum_xx - sum_x * sum_x))
    intercept = float((sum_y - slope * sum_x) / n)

    total_ss = float(((y - sum_y / n) ** 2).sum())
    residual_ss = float(((y - (slope * x + intercept)) ** 2).sum())
    # Flat series: R² is undefined, report no confidence
    r_squared = 1 - residual_ss / total_ss if total_ss > 0 else 0.0

    if slope > TREND_DEADBAND:
        direction: TrendDirection = "increasing"
    elif slope < -TREND_DEADBAND:
        direction = "decreasing"
    else:
        direction = "stable"
    return TrendPattern(direction=direction, magnitude=abs(slope), confidence=r_squared)


def detect_anomalies(values: np.ndarray) -> AnomalyReport:
    values = np.asarray(values, dtype=float)
    n = len(values)
    if n == 0:
        return AnomalyReport()

    ordered = np.sort(values)
    q1 = float(ordered[math.floor(n * 0.25)])
    q3 = float(ordered[math.floor(n * 0.75)])
    threshold = IQR_MULTIPLIER * (q3 - q1)
    midpoint = (q1 + q3) / 2

    outliers = np.flatnonzero((values < q1 - threshold) | (values > q3 + threshold))
    return AnomalyReport(
        indices=[int(i) for i in outliers],
        scores=[abs(float(values[i]) - midpoint) for i in outliers],
        threshold=threshold,
    )


def cyclic_amplitude(values: np.ndarray, period: int) -> float:
    if period >= len(values):
        return 0.0
    diffs = values[period:] - values[:-period]
    return float(np.sqrt((diffs**2).mean()))


def detect_cyclic_patterns(values: np.ndarray) -> CyclicPatterns:
    values = np.asarray(values, dtype=float)
    max_period = math.floor(min(CYCLE_MAX_PERIOD, len(values) / 2))
    cycles = []
    for period in range(CYCLE_MIN_PERIOD, max_period + 1):
        amplitude = cyclic_amplitude(values, period)
        if amplitude > CYCLE_AMPLITUDE_THRESHOLD:
            cycles.append(Cycle(period=period, amplitude=amplitude))
    cycles.sort(key=lambda c: c.amplitude, reverse=True)
    return CyclicPatterns(detected=bool(cycles), cycles=cycles)


def detect_patterns(product: ProductRecord) -> PatternDetectionResult:
    series = extract_time_series(product)
    return PatternDetectionResult(
        seasonality=detect_seasonality(series),
        trend=detect_trend(series),
        anomalies=detect_anomalies(series),
        cyclic_patterns=detect_cyclic_patterns(series),
    )
