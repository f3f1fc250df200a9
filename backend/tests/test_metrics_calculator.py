"""
Tests for the Metrics Calculator — Rollup of product records per level.

Covers:
  - Empty input → all-zero metrics
  - Stock-out rate, wastage rate, AAMC and facility count arithmetic
  - Performance score bounds, clamps and monotonicity
"""

import pytest

from analytics.metrics import AggregatedMetrics, calculate_performance_score, compute_metrics

# ── Core Rollup ────────────────────────────────────────────────────────


class TestComputeMetrics:
    def test_empty_input_returns_all_zero(self):
        assert compute_metrics([]) == AggregatedMetrics()
        assert compute_metrics([]).as_dict() == {
            "total_consumption": 0.0,
            "total_products": 0,
            "average_aamc": 0.0,
            "stock_out_rate": 0.0,
            "wastage_rate": 0.0,
            "facility_count": 0,
            "performance_score": 0,
        }

    def test_three_products_one_with_stock_out(self, make_product):
        """1 of 3 products stocked out → 33.33%; wastage averaged across all 3."""
        records = [
            make_product(
                product_id="P1",
                consumption=[100, 100, 100, 100],
                stock_out_days=[0, 5, 0, 0],
                wastage_rate=10.0,
                aamc=90.0,
            ),
            make_product(product_id="P2", consumption=[50, 50, 50, 50], aamc=60.0),
            make_product(product_id="P3", consumption=[20, 20, 20, 20], aamc=30.0),
        ]

        metrics = compute_metrics(records)

        assert metrics.total_products == 3
        assert metrics.stock_out_rate == pytest.approx(33.333, abs=0.01)
        assert metrics.wastage_rate == pytest.approx(10.0 / 3)
        assert metrics.total_consumption == 680.0
        assert metrics.average_aamc == pytest.approx(60.0)
        assert metrics.facility_count == 1
        # stock-out component: max(0, 100 - 133.3) = 0; wastage: 100 - 20 = 80
        assert metrics.performance_score == 40

    def test_distinct_facilities_counted(self, make_product):
        records = [
            make_product(product_id="A", facility_id="F1"),
            make_product(product_id="B", facility_id="F2"),
            make_product(product_id="C", facility_id="F2"),
        ]
        assert compute_metrics(records).facility_count == 2

    def test_products_without_periods_do_not_divide_by_zero(self, make_product):
        record = make_product(consumption=[], aamc=0.0)
        metrics = compute_metrics([record])
        assert metrics.total_products == 1
        assert metrics.stock_out_rate == 0.0
        assert metrics.performance_score == 100

    def test_input_records_are_not_modified(self, make_product):
        records = [make_product(product_id="P1"), make_product(product_id="P2")]
        snapshot = list(records)
        compute_metrics(records)
        assert records == snapshot


# ── Performance Score ─────────────────────────────────────────────────


class TestPerformanceScore:
    def test_perfect_score(self):
        assert calculate_performance_score(0, 0) == 100

    def test_wastage_penalized_harder_than_stock_outs(self):
        assert calculate_performance_score(5, 0) == 90  # (80 + 100) / 2
        assert calculate_performance_score(0, 5) == 85  # (100 + 70) / 2

    def test_components_floor_at_zero(self):
        assert calculate_performance_score(100, 100) == 0
        assert calculate_performance_score(30, 0) == 50

    def test_rounds_half_up(self):
        # (100 - 0.5*4 + 100) / 2 = 99.0; (100 - 0.25*4 + 100)/2 = 99.5 → 100
        assert calculate_performance_score(0.5, 0) == 99
        assert calculate_performance_score(0.25, 0) == 100

    @pytest.mark.parametrize("stock_out", [0, 1, 5, 12.5, 25, 60, 100])
    @pytest.mark.parametrize("wastage", [0, 0.5, 3, 10, 16.7, 40])
    def test_score_in_range(self, stock_out, wastage):
        assert 0 <= calculate_performance_score(stock_out, wastage) <= 100

    def test_monotonically_non_increasing(self):
        rates = [i * 0.5 for i in range(0, 60)]
        by_stock_out = [calculate_performance_score(r, 2.0) for r in rates]
        by_wastage = [calculate_performance_score(2.0, r) for r in rates]
        assert all(a >= b for a, b in zip(by_stock_out, by_stock_out[1:]))
        assert all(a >= b for a, b in zip(by_wastage, by_wastage[1:]))
