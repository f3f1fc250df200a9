"""
Test Configuration — Fixtures for product records, facility directory, and a
controllable clock for cache expiry.
"""

import pytest

from analytics.hierarchy import FacilityDirectory, FacilityLocation
from core import config as config_module
from inventory.records import AnnualAverages, PeriodRecord, ProductRecord


class FakeClock:
    """Monotonic clock the tests advance by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def build_product(
    product_id: str = "P1",
    facility_id: str = "F1",
    consumption: list[float] | None = None,
    stock_out_days: list[float] | None = None,
    aamc: float = 100.0,
    wastage_rate: float = 0.0,
    ven: str = "V",
    unit_price: float = 2.5,
) -> ProductRecord:
    consumption = consumption if consumption is not None else [100.0, 110.0, 95.0, 105.0]
    stock_out_days = stock_out_days or [0.0] * len(consumption)
    periods = tuple(
        PeriodRecord(
            period=i + 1,
            period_name=f"Q{i + 1}",
            beginning_balance=500.0,
            received=200.0,
            consumption_issue=qty,
            stock_out_days=stock_out_days[i],
        )
        for i, qty in enumerate(consumption)
    )
    return ProductRecord(
        id=product_id,
        product_name=f"Product {product_id}",
        ven_classification=ven,
        unit_price=unit_price,
        facility_id=facility_id,
        periods=periods,
        annual_averages=AnnualAverages(
            annual_consumption=sum(consumption),
            aamc=aamc,
            wastage_rate=wastage_rate,
            awamc=aamc,
        ),
    )


@pytest.fixture
def make_product():
    """Factory fixture: make_product(product_id=..., facility_id=..., consumption=[...])."""
    return build_product


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def directory():
    """
    R1 ── Z1 ── F1, F2
       └─ Z2 ── F3
    R2 ── Z3 ── F4
    """
    return FacilityDirectory(
        [
            FacilityLocation("F1", "Z1", "R1"),
            FacilityLocation("F2", "Z1", "R1"),
            FacilityLocation("F3", "Z2", "R1"),
            FacilityLocation("F4", "Z3", "R2"),
        ]
    )


@pytest.fixture
def national_records(make_product):
    """Two products in each facility of the directory fixture."""
    return [
        make_product(product_id=f"{facility}-{n}", facility_id=facility)
        for facility in ("F1", "F2", "F3", "F4")
        for n in (1, 2)
    ]


@pytest.fixture
def reset_settings():
    config_module.get_settings.cache_clear()
    yield
    config_module.get_settings.cache_clear()
