"""Derived datasets for the three dashboard charts.

Every function here is a pure transform of ``(records, selection)``: the
records frame is never modified and each call returns a fresh DataFrame.
"""

from __future__ import annotations

from typing import Iterable, Literal

import pandas as pd

from core.filters import ALL, FILTER_FIELDS, FilterSelection

Granularity = Literal["make", "body", "record"]

TOP_MODELS_LIMIT = 10
TOP_MODEL_COLUMNS = ["model", "make", "body", "count", "avg_price"]
TREND_COLUMNS = ["month", "avg_price", "sales_count", "std_dev"]
DIMENSIONS = ["year", "odometer", "mmr", "sellingprice"]
DIMENSION_COLUMNS = ["label", "make", "body", *DIMENSIONS, "condition", "count", "granularity"]


def filter_records(
    records: pd.DataFrame,
    selection: FilterSelection,
    fields: Iterable[str] = FILTER_FIELDS,
) -> pd.DataFrame:
    if records.empty:
        return records.copy()
    mask = pd.Series(True, index=records.index)
    for name in fields:
        value = getattr(selection, name)
        if value != ALL:
            mask &= records[name] == value
    return records[mask]


def _group_mean(df: pd.DataFrame, key: str, column: str) -> pd.Series:
    # NaN anywhere in a group makes that group's mean NaN.
    values = df[column]
    means = values.groupby(df[key], sort=False).mean()
    has_nan = values.isna().groupby(df[key], sort=False).any()
    return means.mask(has_nan)


# ---------------- (a) Top models by sales count ----------------
def aggregate_top_models(
    records: pd.DataFrame,
    selection: FilterSelection,
    limit: int = TOP_MODELS_LIMIT,
) -> pd.DataFrame:
    filtered = filter_records(records, selection)
    if filtered.empty:
        return pd.DataFrame(columns=TOP_MODEL_COLUMNS)

    grouped = filtered.groupby("model", sort=False)
    top = pd.DataFrame(
        {
            "make": grouped["make"].first(),
            "body": grouped["body"].first(),
            "count": grouped.size(),
            "avg_price": _group_mean(filtered, "model", "sellingprice"),
        }
    )
    top.index.name = "model"
    top = top.reset_index()
    # Stable sort keeps first-appearance order among equal counts.
    top = top.sort_values("count", ascending=False, kind="stable").head(limit)
    return top[TOP_MODEL_COLUMNS].reset_index(drop=True)


# ---------------- (b) Monthly price trend ----------------
def fill_missing_months(monthly: pd.DataFrame) -> pd.DataFrame:
    """Insert zero rows so months run contiguously from the first to the last."""
    if monthly.empty:
        return monthly
    months = pd.period_range(start=monthly["month"].iloc[0], end=monthly["month"].iloc[-1], freq="M").strftime("%Y-%m")
    filled = monthly.set_index("month").reindex(months, fill_value=0)
    filled.index.name = "month"
    return filled.reset_index()[TREND_COLUMNS]


def aggregate_monthly_trend(records: pd.DataFrame, selection: FilterSelection) -> pd.DataFrame:
    filtered = filter_records(records, selection)
    if filtered.empty:
        return pd.DataFrame(columns=TREND_COLUMNS)

    frame = pd.DataFrame({"month": filtered["saledate"].str.slice(0, 7), "sellingprice": filtered["sellingprice"]})
    prices = frame.groupby("month")["sellingprice"]
    counts = prices.size()
    std_dev = prices.std(ddof=1).where(counts >= 2, 0.0)
    has_nan = frame["sellingprice"].isna().groupby(frame["month"]).any()
    monthly = pd.DataFrame(
        {
            "avg_price": _group_mean(frame, "month", "sellingprice"),
            "sales_count": counts,
            "std_dev": std_dev.mask(has_nan),
        }
    )
    monthly.index.name = "month"
    monthly = monthly.sort_index().reset_index()
    return fill_missing_months(monthly[TREND_COLUMNS])


# ---------------- (c) Parallel-coordinate dimensions ----------------
def dimension_granularity(selection: FilterSelection) -> Granularity:
    if selection.make == ALL:
        return "make"
    if selection.body == ALL:
        return "body"
    return "record"


def aggregate_dimensions(records: pd.DataFrame, selection: FilterSelection) -> pd.DataFrame:
    """One tuple per make, per body type of the selected make, or per vehicle.

    The coarser the selection, the coarser (and averaged) the tuples.
    """
    filtered = filter_records(records, selection)
    if filtered.empty:
        return pd.DataFrame(columns=DIMENSION_COLUMNS)

    granularity = dimension_granularity(selection)
    if granularity == "record":
        tuples = filtered[["vin", "make", "body", *DIMENSIONS, "condition"]].rename(columns={"vin": "label"})
        tuples = tuples.assign(count=1, granularity=granularity)
        return tuples[DIMENSION_COLUMNS].reset_index(drop=True)

    key = granularity
    grouped = filtered.groupby(key, sort=False)
    columns = {
        "make": grouped["make"].first(),
        "body": grouped["body"].first(),
    }
    for col in [*DIMENSIONS, "condition"]:
        columns[col] = _group_mean(filtered, key, col)
    columns["count"] = grouped.size()
    tuples = pd.DataFrame(columns)
    tuples.index.name = "label"
    tuples = tuples.reset_index().assign(granularity=granularity)
    return tuples[DIMENSION_COLUMNS]
