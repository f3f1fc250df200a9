"""
Feature Engineering — Per-product consumption features for forecasting.

One row per observed period (periods with zero consumption are dropped
before anything else). Column groups:
  1. Observation (2)        — value, time_index
  2. Seasonal (4)           — annual and quarterly sine/cosine terms
  3. Product (6)            — VEN one-hot, unit price, AAMC, wastage rate
  4. History (7)            — lag_1..lag_6, 3-period moving average

Lags and the moving average are NaN until enough history exists, so every
row has the same width. The frame is truncated to ``max_features`` columns.
"""

import numpy as np
import pandas as pd

from inventory.records import ProductRecord

MAX_LAGS = 6
MAX_FEATURES = 50

OBSERVATION_COLS = ["value", "time_index"]
SEASONAL_COLS = ["annual_sin", "annual_cos", "quarterly_sin", "quarterly_cos"]
PRODUCT_COLS = ["ven_v", "ven_e", "ven_n", "unit_price", "aamc", "wastage_rate"]
HISTORY_COLS = [f"lag_{lag}" for lag in range(1, MAX_LAGS + 1)] + ["ma_3"]

FEATURE_COLS = OBSERVATION_COLS + SEASONAL_COLS + PRODUCT_COLS + HISTORY_COLS  # 19 total


def extract_time_series(product: ProductRecord) -> np.ndarray:
    """Consumption of every period with positive consumption, in period order."""
    return np.array(
        [p.consumption_issue for p in product.periods if p.consumption_issue > 0],
        dtype=float,
    )


def engineer_features(
    series: np.ndarray,
    product: ProductRecord,
    max_features: int = MAX_FEATURES,
) -> pd.DataFrame:
    values = pd.Series(np.asarray(series, dtype=float))
    idx = np.arange(len(values), dtype=float)
    n = len(values)

    features = pd.DataFrame(
        {
            "value": values,
            "time_index": idx,
            "annual_sin": np.sin(2 * np.pi * idx / 12),
            "annual_cos": np.cos(2 * np.pi * idx / 12),
            "quarterly_sin": np.sin(2 * np.pi * idx / 4),
            "quarterly_cos": np.cos(2 * np.pi * idx / 4),
            "ven_v": np.full(n, 1.0 if product.ven_classification == "V" else 0.0),
            "ven_e": np.full(n, 1.0 if product.ven_classification == "E" else 0.0),
            "ven_n": np.full(n, 1.0 if product.ven_classification == "N" else 0.0),
            "unit_price": np.full(n, float(product.unit_price)),
            "aamc": np.full(n, float(product.annual_averages.aamc)),
            "wastage_rate": np.full(n, float(product.annual_averages.wastage_rate)),
        }
    )
    for lag in range(1, MAX_LAGS + 1):
        features[f"lag_{lag}"] = values.shift(lag)
    features["ma_3"] = values.rolling(window=3).mean()

    return features[FEATURE_COLS[:max_features]]
