from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from core.aggregations import dimension_granularity
from core.filters import FilterSelection


def compute_debug(filters: FilterSelection, ctx: Dict[str, Any]) -> Dict[str, Any]:
    records: pd.DataFrame = ctx.get("records", pd.DataFrame())
    filtered: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())
    report = ctx.get("report")
    payload: Dict[str, Any] = {
        "filters": asdict(filters),
        "load": asdict(report) if report is not None else {},
        "row_counts": {
            "records": int(len(records)),
            "filtered_records": int(len(filtered)),
        },
        "granularity": dimension_granularity(filters),
        "non_numeric_counts": {},
        "sale_date_range": None,
    }
    if records.empty:
        return payload

    numeric = records.select_dtypes(include="number")
    payload["non_numeric_counts"] = {col: int(numeric[col].isna().sum()) for col in numeric.columns}
    payload["sale_date_range"] = {"min": str(records["saledate"].min()), "max": str(records["saledate"].max())}
    return payload
