from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from core.aggregations import aggregate_monthly_trend
from core.charts import TREND_TITLE_THRESHOLD, title_font_size, to_vega_spec, trend_line_chart, trend_title
from core.filters import FilterSelection


def compute_trend(filters: FilterSelection, ctx: Dict[str, Any]) -> Dict[str, Any]:
    records: pd.DataFrame = ctx.get("records", pd.DataFrame())
    title = trend_title(filters)
    payload: Dict[str, Any] = {
        "filters": asdict(filters),
        "title": title,
        "title_font_size": title_font_size(title, TREND_TITLE_THRESHOLD),
        "rows": [],
        "charts": {},
    }
    if records.empty:
        return payload

    monthly = aggregate_monthly_trend(records, filters)
    if monthly.empty:
        return payload
    payload["rows"] = monthly.to_dict(orient="records")
    payload["gap_months"] = monthly.loc[monthly["sales_count"] == 0, "month"].tolist()
    payload["charts"] = {"line": to_vega_spec(trend_line_chart(monthly, filters))}
    return payload
