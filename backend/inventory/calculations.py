"""
Period Calculations — Derive ending balance, AAMC and wastage per period.

Formulas (quarterly reporting, 30.5-day months):
  Ending Balance = max(0, Begin + Received + Adj(+) − Adj(−) − Issued − Expired)
  AAMC           = Issued / (3 × 30.5 − Stock-out Days) × 30.5
                   (only when stock-out days < 90 and available days > 0)
  Wastage Rate % = Expired / (Begin + Received + Adj(+)) × 100

Annual averages roll the period values up: total consumption, mean AAMC,
mean wastage rate. Every function returns new records; inputs are never
mutated.
"""

from __future__ import annotations

import dataclasses

from inventory.records import AnnualAverages, PeriodRecord, ProductRecord

DAYS_PER_MONTH = 30.5
MONTHS_PER_PERIOD = 3
MAX_STOCK_OUT_DAYS_FOR_AAMC = 90


def calculate_period_metrics(period: PeriodRecord, months_in_period: int = MONTHS_PER_PERIOD) -> PeriodRecord:
    """Return a copy of ``period`` with ending balance, AAMC and wastage derived."""
    ending_balance = max(
        0.0,
        period.beginning_balance
        + period.received
        + period.positive_adj
        - period.negative_adj
        - period.consumption_issue
        - period.expired_damaged,
    )

    aamc = period.aamc
    if period.stock_out_days < MAX_STOCK_OUT_DAYS_FOR_AAMC:
        available_days = months_in_period * DAYS_PER_MONTH - period.stock_out_days
        if available_days > 0:
            aamc = period.consumption_issue / available_days * DAYS_PER_MONTH

    wastage_rate = period.wastage_rate
    total_available = period.beginning_balance + period.received + period.positive_adj
    if total_available > 0:
        wastage_rate = period.expired_damaged / total_available * 100

    return dataclasses.replace(period, ending_balance=ending_balance, aamc=aamc, wastage_rate=wastage_rate)


def calculate_annual_averages(periods: tuple[PeriodRecord, ...] | list[PeriodRecord]) -> AnnualAverages:
    if not periods:
        return AnnualAverages()
    total_consumption = sum(p.consumption_issue for p in periods)
    avg_aamc = sum(p.aamc for p in periods) / len(periods)
    avg_wastage = sum(p.wastage_rate for p in periods) / len(periods)
    return AnnualAverages(
        annual_consumption=total_consumption,
        aamc=avg_aamc,
        wastage_rate=avg_wastage,
        awamc=avg_aamc,
    )


def recalculate_product(product: ProductRecord, months_in_period: int = MONTHS_PER_PERIOD) -> ProductRecord:
    """Recompute every period and the annual averages of a product."""
    periods = tuple(calculate_period_metrics(p, months_in_period) for p in product.periods)
    return dataclasses.replace(product, periods=periods, annual_averages=calculate_annual_averages(periods))


def quarterly_seasonality(product: ProductRecord) -> dict[str, float] | None:
    """
    Share of annual consumption per quarter for 4-period products.

    Returns None when the product is not reported quarterly.
    """
    if len(product.periods) != 4:
        return None
    total = sum(p.consumption_issue for p in product.periods)
    shares = {
        f"q{i + 1}": (p.consumption_issue / total if total > 0 else 0.0) for i, p in enumerate(product.periods)
    }
    shares["total"] = 1.0
    return shares
