from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

import pandas as pd

from core.aggregations import aggregate_top_models
from core.charts import RANKING_TITLE_THRESHOLD, ranked_bar_chart, ranking_title, title_font_size, to_vega_spec
from core.filters import FilterSelection


def compute_ranking(filters: FilterSelection, ctx: Dict[str, Any]) -> Dict[str, Any]:
    records: pd.DataFrame = ctx.get("records", pd.DataFrame())
    title = ranking_title(filters)
    payload: Dict[str, Any] = {
        "filters": asdict(filters),
        "title": title,
        "title_font_size": title_font_size(title, RANKING_TITLE_THRESHOLD),
        "rows": [],
        "charts": {},
    }
    if records.empty:
        return payload

    top = aggregate_top_models(records, filters)
    if top.empty:
        return payload
    payload["rows"] = top.to_dict(orient="records")
    payload["charts"] = {"bar": to_vega_spec(ranked_bar_chart(top, filters))}
    return payload
