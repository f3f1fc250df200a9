"""
Inventory Records — Read-only product/period values consumed by analytics.

Records arrive from the import layer (spreadsheet uploads, hosted DB rows)
as camelCase or snake_case mappings. They are normalized once into frozen
dataclasses so that aggregation and forecasting never see shared mutable
state; recalculation (see inventory.calculations) returns new instances.

VEN classification:
  - V: Vital — life-saving, must always be available
  - E: Essential — treats common conditions
  - N: Non-essential — nice to have
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

VENClassification = Literal["V", "E", "N"]

VEN_CLASSES: tuple[VENClassification, ...] = ("V", "E", "N")


def _pick(data: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _num(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


@dataclass(frozen=True)
class PeriodRecord:
    """A single reporting interval (usually a quarter) for one product."""

    period: int
    period_name: str = ""
    beginning_balance: float = 0.0
    received: float = 0.0
    positive_adj: float = 0.0
    negative_adj: float = 0.0
    ending_balance: float = 0.0
    stock_out_days: float = 0.0
    expired_damaged: float = 0.0
    consumption_issue: float = 0.0
    aamc: float = 0.0
    wastage_rate: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PeriodRecord:
        return cls(
            period=int(_num(_pick(data, "period", default=0))),
            period_name=str(_pick(data, "period_name", "periodName", default="")),
            beginning_balance=_num(_pick(data, "beginning_balance", "beginningBalance")),
            received=_num(_pick(data, "received")),
            positive_adj=_num(_pick(data, "positive_adj", "positiveAdj")),
            negative_adj=_num(_pick(data, "negative_adj", "negativeAdj")),
            ending_balance=_num(_pick(data, "ending_balance", "endingBalance")),
            stock_out_days=_num(_pick(data, "stock_out_days", "stockOutDays")),
            expired_damaged=_num(_pick(data, "expired_damaged", "expiredDamaged")),
            consumption_issue=_num(_pick(data, "consumption_issue", "consumptionIssue")),
            aamc=_num(_pick(data, "aamc")),
            wastage_rate=_num(_pick(data, "wastage_rate", "wastageRate")),
        )


@dataclass(frozen=True)
class AnnualAverages:
    annual_consumption: float = 0.0
    aamc: float = 0.0
    wastage_rate: float = 0.0
    awamc: float = 0.0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnnualAverages:
        return cls(
            annual_consumption=_num(_pick(data, "annual_consumption", "annualConsumption")),
            aamc=_num(_pick(data, "aamc")),
            wastage_rate=_num(_pick(data, "wastage_rate", "wastageRate")),
            awamc=_num(_pick(data, "awamc")),
        )


@dataclass(frozen=True)
class ProductRecord:
    """One product at one facility, with its ordered reporting periods."""

    id: str
    product_name: str
    ven_classification: VENClassification
    unit_price: float
    facility_id: str
    periods: tuple[PeriodRecord, ...] = ()
    annual_averages: AnnualAverages = field(default_factory=AnnualAverages)
    unit: str = ""
    product_code: str | None = None

    def __post_init__(self) -> None:
        if self.ven_classification not in VEN_CLASSES:
            raise ValueError(f"Unknown VEN classification '{self.ven_classification}'. Known: {list(VEN_CLASSES)}")
        if not isinstance(self.periods, tuple):
            object.__setattr__(self, "periods", tuple(self.periods))

    @property
    def has_stock_out(self) -> bool:
        return any(p.stock_out_days > 0 for p in self.periods)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProductRecord:
        """Build a record from an import-layer mapping (camelCase or snake_case)."""
        periods = sorted(
            (PeriodRecord.from_dict(p) for p in _pick(data, "periods", default=[])),
            key=lambda p: p.period,
        )
        ven = str(_pick(data, "ven_classification", "venClassification", default="N")).strip().upper()
        return cls(
            id=str(_pick(data, "id", "product_id")),
            product_name=str(_pick(data, "product_name", "productName", default="")),
            ven_classification=ven,  # type: ignore[arg-type]
            unit_price=_num(_pick(data, "unit_price", "unitPrice")),
            facility_id=str(_pick(data, "facility_id", "facilityId", default="")),
            periods=tuple(periods),
            annual_averages=AnnualAverages.from_dict(_pick(data, "annual_averages", "annualAverages", default={})),
            unit=str(_pick(data, "unit", default="")),
            product_code=_pick(data, "product_code", "productCode"),
        )
