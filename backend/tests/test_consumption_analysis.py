"""
Tests for Consumption Analysis — aAMC/AMC, pattern, seasonality, advice.

Covers:
  - aAMC excludes stock-out periods; AMC does not
  - Pattern classification (irregular / stable / increasing / decreasing)
  - Seasonality index and confidence
  - Recommendation strings
"""

import pytest

from ml.consumption import (
    analyze_consumption_pattern,
    analyze_product,
    calculate_aamc,
    calculate_amc,
    calculate_seasonality_index,
    calculate_trend,
    has_seasonal_lag,
)

# ── Averages ───────────────────────────────────────────────────────────


class TestAverages:
    def test_aamc_skips_stock_out_periods(self, make_product):
        product = make_product(consumption=[10.0, 40.0, 30.0], stock_out_days=[0, 5, 0])
        assert calculate_aamc(product.periods) == 20.0
        assert calculate_amc(product.periods) == pytest.approx(80.0 / 3)

    def test_zero_consumption_ignored(self, make_product):
        product = make_product(consumption=[0.0, 12.0, 0.0, 18.0])
        assert calculate_aamc(product.periods) == 15.0
        assert calculate_amc(product.periods) == 15.0

    def test_every_period_stocked_out(self, make_product):
        product = make_product(consumption=[10.0, 20.0], stock_out_days=[3, 7])
        assert calculate_aamc(product.periods) == 0.0
        assert calculate_amc(product.periods) == 15.0

    def test_no_periods(self):
        assert calculate_aamc(()) == 0.0
        assert calculate_amc(()) == 0.0


# ── Pattern ────────────────────────────────────────────────────────────


class TestConsumptionPattern:
    def test_short_history_is_irregular(self, make_product):
        pattern, trend, variability = analyze_consumption_pattern(make_product(consumption=[10.0, 20.0]).periods)
        assert pattern == "irregular"
        assert trend == 0.0
        assert variability == 100.0

    def test_increasing(self, make_product):
        pattern, trend, variability = analyze_consumption_pattern(
            make_product(consumption=[10.0, 20.0, 30.0, 40.0]).periods
        )
        # slope 10 on a mean of 25
        assert pattern == "increasing"
        assert trend == pytest.approx(40.0)
        assert variability == pytest.approx(125**0.5 / 25 * 100)

    def test_decreasing(self, make_product):
        pattern, trend, _ = analyze_consumption_pattern(make_product(consumption=[40.0, 30.0, 20.0, 10.0]).periods)
        assert pattern == "decreasing"
        assert trend == pytest.approx(-40.0)

    def test_stable(self, make_product):
        pattern, trend, _ = analyze_consumption_pattern(make_product(consumption=[100.0, 102.0, 98.0, 100.0]).periods)
        assert pattern == "stable"
        assert trend == pytest.approx(-0.4)

    def test_high_variability_is_irregular(self, make_product):
        pattern, _, variability = analyze_consumption_pattern(make_product(consumption=[1.0, 100.0, 1.0, 100.0]).periods)
        assert variability > 50
        assert pattern == "irregular"

    def test_trend_of_single_point(self):
        assert calculate_trend([5.0]) == 0.0

    def test_seasonal_lag_needs_six_points(self):
        assert has_seasonal_lag([1.0] * 6)
        assert not has_seasonal_lag([1.0] * 5)


# ── Seasonality Index ──────────────────────────────────────────────────


class TestSeasonalityIndex:
    def test_mean_relative_deviation(self, make_product):
        # |10-25|/25, |20-25|/25, ... → 0.6, 0.2, 0.2, 0.6
        product = make_product(consumption=[10.0, 20.0, 30.0, 40.0])
        assert calculate_seasonality_index(product.periods) == pytest.approx(0.4)

    def test_fewer_than_four_points(self, make_product):
        assert calculate_seasonality_index(make_product(consumption=[10.0, 20.0, 30.0]).periods) == 0.0


# ── Product Analysis ───────────────────────────────────────────────────


class TestAnalyzeProduct:
    def test_recommendations_for_rising_seasonal_product(self, make_product):
        analysis = analyze_product(make_product(consumption=[10.0, 20.0, 30.0, 40.0], stock_out_days=[0, 2, 0, 4]))

        assert analysis.product_id == "P1"
        assert analysis.metrics.pattern == "increasing"
        assert analysis.recommendations == [
            "Increasing consumption trend - consider higher safety stock",
            "Seasonal patterns detected - implement seasonal forecasting",
            "2 stock-out periods detected - review safety stock",
        ]

    def test_recommendations_for_irregular_product(self, make_product):
        analysis = analyze_product(make_product(consumption=[1.0, 100.0, 1.0, 100.0]))
        assert "High variability detected - review ordering patterns" in analysis.recommendations

    def test_decreasing_recommendation(self, make_product):
        analysis = analyze_product(make_product(consumption=[40.0, 30.0, 20.0, 10.0]))
        assert "Decreasing consumption trend - review stock levels" in analysis.recommendations

    def test_steady_product_has_no_recommendations(self, make_product):
        analysis = analyze_product(make_product(consumption=[50.0, 50.0, 50.0, 50.0]))
        assert analysis.recommendations == []
        assert analysis.confidence == 1.0

    def test_confidence_scales_with_data_quality(self, make_product):
        analysis = analyze_product(make_product(consumption=[50.0, 50.0, 50.0, 0.0]))
        assert analysis.confidence == pytest.approx(0.75)

    def test_empty_product(self, make_product):
        analysis = analyze_product(make_product(consumption=[]))
        assert analysis.metrics.aamc == 0.0
        assert analysis.metrics.pattern == "irregular"
        assert analysis.confidence == 0.0
        assert analysis.recommendations == []
