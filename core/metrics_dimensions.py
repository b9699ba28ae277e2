from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from core.aggregations import aggregate_dimensions, dimension_granularity
from core.charts import (
    DIMENSIONS_TITLE_THRESHOLD,
    dimensions_title,
    parallel_coordinates_chart,
    title_font_size,
    to_vega_spec,
)
from core.filters import FilterSelection


def compute_dimensions(filters: FilterSelection, ctx: Dict[str, Any]) -> Dict[str, Any]:
    records: pd.DataFrame = ctx.get("records", pd.DataFrame())
    title = dimensions_title(filters)
    payload: Dict[str, Any] = {
        "filters": asdict(filters),
        "title": title,
        "title_font_size": title_font_size(title, DIMENSIONS_TITLE_THRESHOLD),
        "granularity": dimension_granularity(filters),
        "rows": [],
        "charts": {},
    }
    if records.empty:
        return payload

    tuples = aggregate_dimensions(records, filters)
    if tuples.empty:
        return payload
    payload["rows"] = tuples.to_dict(orient="records")
    payload["charts"] = {"parallel": to_vega_spec(parallel_coordinates_chart(tuples, filters))}
    return payload
