"""Price statistics, IQR outliers and quality profiling.

Prices that are null, zero or negative are invalid for price analysis:
they are left out of every figure here but never removed from the table.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from parcelclean.conf import CleaningConf
from parcelclean.schema import (
    LAND_USE, OWNER_ADDRESS, PROPERTY_ADDRESS, PROPERTY_CITY, SALE_DATE,
    SALE_PRICE, UNIQUE_ID,
)

log = logging.getLogger("parcelclean.analytics")

QUALITY_COLUMNS = (PROPERTY_ADDRESS, OWNER_ADDRESS, SALE_DATE, SALE_PRICE)


def valid_prices(df: pd.DataFrame) -> pd.Series:
    """sale_price restricted to positive values, indexed like ``df``."""
    prices = pd.to_numeric(df[SALE_PRICE], errors="coerce")
    return prices[prices > 0]


@dataclass(frozen=True)
class PriceStats:
    count: int
    min: Optional[float]
    max: Optional[float]
    mean: Optional[float]


def price_statistics(df: pd.DataFrame) -> PriceStats:
    prices = valid_prices(df)
    if prices.empty:
        return PriceStats(count=0, min=None, max=None, mean=None)
    return PriceStats(
        count=int(prices.count()),
        min=float(prices.min()),
        max=float(prices.max()),
        mean=float(prices.mean()),
    )


@dataclass
class OutlierReport:
    q1: Optional[float]
    q3: Optional[float]
    iqr: Optional[float]
    lower_bound: Optional[float]
    upper_bound: Optional[float]
    count: int = 0
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    unique_ids: List[int] = field(default_factory=list)


def price_quartiles(prices) -> tuple:
    """(Q1, Q3) by linear interpolation between order statistics."""
    values = np.asarray(prices, dtype="float64")
    q1, q3 = np.quantile(values, [0.25, 0.75], method="linear")
    return float(q1), float(q3)


def iqr_outliers(df: pd.DataFrame, multiplier: float = CleaningConf.iqr_multiplier) -> OutlierReport:
    """Flag prices strictly outside [Q1 - k*IQR, Q3 + k*IQR]."""
    prices = valid_prices(df)
    if prices.empty:
        return OutlierReport(q1=None, q3=None, iqr=None, lower_bound=None, upper_bound=None)

    q1, q3 = price_quartiles(prices)
    iqr = q3 - q1
    lower, upper = q1 - multiplier * iqr, q3 + multiplier * iqr
    outside = prices[(prices < lower) | (prices > upper)]

    report = OutlierReport(q1=q1, q3=q3, iqr=iqr, lower_bound=lower, upper_bound=upper,
                           count=int(outside.count()))
    if not outside.empty:
        report.min_price = float(outside.min())
        report.max_price = float(outside.max())
        report.unique_ids = df.loc[outside.index, UNIQUE_ID].astype(int).tolist()
    log.info("IQR bounds [%.2f, %.2f]: %d outliers", lower, upper, report.count)
    return report


def city_price_summary(df: pd.DataFrame) -> pd.DataFrame:
    """Sales count and avg/min/max positive price per property city,
    highest average first."""
    prices = valid_prices(df)
    scoped = df.loc[prices.index]
    scoped = scoped[scoped[PROPERTY_CITY].notna()]
    summary = (scoped.assign(**{SALE_PRICE: prices.loc[scoped.index]})
               .groupby(PROPERTY_CITY)[SALE_PRICE]
               .agg(sales_count="count", avg_price="mean", min_price="min", max_price="max"))
    return (summary.sort_values(["avg_price", "sales_count"], ascending=[False, False], kind="stable")
            .reset_index())


def land_use_distribution(df: pd.DataFrame) -> pd.Series:
    """Record count per land_use value, most common first."""
    return df[LAND_USE].value_counts(dropna=False).rename("count")


@dataclass
class QualityAssessment:
    """Profile of the table before any cleaning pass runs."""
    total_records: int
    null_counts: Dict[str, int]
    invalid_price_count: int
    land_use_counts: Dict[str, int]


def assess_quality(df: pd.DataFrame, columns=QUALITY_COLUMNS) -> QualityAssessment:
    prices = pd.to_numeric(df[SALE_PRICE], errors="coerce")
    land_use = land_use_distribution(df)
    return QualityAssessment(
        total_records=len(df),
        null_counts={col: int(df[col].isna().sum()) for col in columns if col in df.columns},
        invalid_price_count=int((prices.isna() | (prices <= 0)).sum()),
        land_use_counts={(None if pd.isna(k) else k): int(v) for k, v in land_use.items()},
    )
