import pandas as pd
import pytest

from ml.metrics_contract import (
    compute_forecast_metrics,
    coverage_rate,
    forecast_accuracy,
    mean_absolute_percentage_error,
)


def test_metrics_contract_values_are_deterministic():
    y_true = pd.Series([10.0, 0.0, 5.0])
    y_pred = pd.Series([8.0, 2.0, 0.0])

    metrics = compute_forecast_metrics(y_true, y_pred)

    assert round(float(metrics["mae"]), 6) == 3.0
    assert round(float(metrics["rmse"]), 6) == round(((4 + 4 + 25) / 3) ** 0.5, 6)
    # (0.2 + 1.0) / 3 points: the zero actual still counts in the denominator
    assert round(float(metrics["accuracy"]), 6) == 60.0
    assert metrics["coverage"] is None


def test_mape_skips_zero_actuals_but_keeps_them_in_n():
    assert mean_absolute_percentage_error([0.0, 0.0], [5.0, 5.0]) == 0.0
    assert mean_absolute_percentage_error([10.0, 0.0], [5.0, 3.0]) == pytest.approx(0.25)


def test_accuracy_is_clamped_at_zero():
    assert forecast_accuracy([1.0, 1.0], [10.0, 10.0]) == 0.0


def test_accuracy_of_empty_input_is_zero():
    assert forecast_accuracy([], []) == 0.0
    assert compute_forecast_metrics([], [])["mae"] == 0.0


def test_perfect_forecast_scores_100():
    metrics = compute_forecast_metrics([3.0, 4.0, 5.0], [3.0, 4.0, 5.0], lower_bound=[2, 3, 4], upper_bound=[4, 5, 6])
    assert metrics["accuracy"] == 100.0
    assert metrics["rmse"] == 0.0
    assert metrics["coverage"] == 1.0


def test_coverage_rate():
    y_true = [10, 8, 12, 6]
    lower = [9, 9, 10, 7]
    upper = [11, 11, 13, 9]
    assert coverage_rate(y_true, lower, upper) == 0.5
