"""Summary statistics for a set of product records (one aggregation level)."""

from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import asdict, dataclass

import pandas as pd

from inventory.records import ProductRecord

# Points lost per percentage point. Wastage is penalized harder than stock-outs.
STOCK_OUT_PENALTY = 4
WASTAGE_PENALTY = 6


@dataclass(frozen=True)
class AggregatedMetrics:
    total_consumption: float = 0.0
    total_products: int = 0
    average_aamc: float = 0.0
    stock_out_rate: float = 0.0
    wastage_rate: float = 0.0
    facility_count: int = 0
    performance_score: int = 0

    def as_dict(self) -> dict[str, float | int]:
        return asdict(self)


def calculate_performance_score(stock_out_rate: float, wastage_rate: float) -> int:
    """
    Score 0-100; lower stock-out and wastage rates score higher.

    Each component is floored at zero before averaging, then rounded half-up.
    """
    stock_out_score = max(0.0, 100 - stock_out_rate * STOCK_OUT_PENALTY)
    wastage_score = max(0.0, 100 - wastage_rate * WASTAGE_PENALTY)
    return int(math.floor((stock_out_score + wastage_score) / 2 + 0.5))


def compute_metrics(records: Sequence[ProductRecord]) -> AggregatedMetrics:
    """Roll up product records into an AggregatedMetrics value. Pure."""
    if len(records) == 0:
        return AggregatedMetrics()

    frame = pd.DataFrame(
        {
            "annual_consumption": [r.annual_averages.annual_consumption for r in records],
            "aamc": [r.annual_averages.aamc for r in records],
            "wastage_rate": [r.annual_averages.wastage_rate for r in records],
            "has_stock_out": [r.has_stock_out for r in records],
            "facility_id": [r.facility_id for r in records],
        }
    )
    total_products = len(frame)
    stock_out_rate = float(frame["has_stock_out"].sum()) / total_products * 100
    wastage_rate = float(frame["wastage_rate"].sum()) / total_products

    return AggregatedMetrics(
        total_consumption=float(frame["annual_consumption"].sum()),
        total_products=total_products,
        average_aamc=float(frame["aamc"].sum()) / total_products,
        stock_out_rate=stock_out_rate,
        wastage_rate=wastage_rate,
        facility_count=int(frame["facility_id"].nunique()),
        performance_score=calculate_performance_score(stock_out_rate, wastage_rate),
    )
