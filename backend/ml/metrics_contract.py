"""Canonical forecast metric definitions used for in-sample replay scoring."""

from __future__ import annotations

from typing import Any

import numpy as np
import pandas as pd


def _to_series(values: Any) -> pd.Series:
    series = pd.Series(values, dtype="float64").reset_index(drop=True)
    return pd.to_numeric(series, errors="coerce").fillna(0.0)


def mae(y_true: Any, y_pred: Any) -> float:
    actual = _to_series(y_true)
    pred = _to_series(y_pred)
    if actual.empty:
        return 0.0
    return float(np.abs(pred - actual).mean())


def rmse(y_true: Any, y_pred: Any) -> float:
    actual = _to_series(y_true)
    pred = _to_series(y_pred)
    if actual.empty:
        return 0.0
    return float(np.sqrt(((pred - actual) ** 2).mean()))


def mean_absolute_percentage_error(y_true: Any, y_pred: Any) -> float:
    """
    Percentage error averaged over *all* points:
      zero actuals contribute nothing to the sum but still count in n.
    """
    actual = _to_series(y_true)
    pred = _to_series(y_pred)
    if actual.empty:
        return 0.0
    mask = actual != 0
    errors = (np.abs(actual[mask] - pred[mask]) / actual[mask]).sum()
    return float(errors / len(actual))


def forecast_accuracy(y_true: Any, y_pred: Any) -> float:
    """Accuracy in percent: max(0, 1 − MAPE) × 100. Empty input scores 0."""
    if len(_to_series(y_true)) == 0:
        return 0.0
    return max(0.0, 1 - mean_absolute_percentage_error(y_true, y_pred)) * 100


def coverage_rate(y_true: Any, lower_bound: Any, upper_bound: Any) -> float:
    actual = _to_series(y_true)
    lower = _to_series(lower_bound)
    upper = _to_series(upper_bound)
    if actual.empty:
        return 0.0
    return float(((actual >= lower) & (actual <= upper)).mean())


def compute_forecast_metrics(
    y_true: Any,
    y_pred: Any,
    *,
    lower_bound: Any | None = None,
    upper_bound: Any | None = None,
) -> dict[str, float | None]:
    coverage = None
    if lower_bound is not None and upper_bound is not None:
        coverage = coverage_rate(y_true, lower_bound, upper_bound)
    return {
        "accuracy": forecast_accuracy(y_true, y_pred),
        "mae": mae(y_true, y_pred),
        "rmse": rmse(y_true, y_pred),
        "coverage": coverage,
    }
