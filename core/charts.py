from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List

import altair as alt
import pandas as pd

from core.aggregations import DIMENSIONS, dimension_granularity
from core.filters import ALL, FilterSelection
from core.scales import BandScale, LinearScale, PointScale

alt.data_transformers.disable_max_rows()

BAR_COLOR = "steelblue"
LINE_COLOR = "steelblue"
PARALLEL_COLOR = "red"

TITLE_FONT_SIZE = 16
TITLE_FONT_SIZE_SMALL = 12
RANKING_TITLE_THRESHOLD = 36
TREND_TITLE_THRESHOLD = 40
DIMENSIONS_TITLE_THRESHOLD = 40

DIMENSION_TITLES = {"year": "Year", "odometer": "Odometer", "mmr": "MMR", "sellingprice": "Sale Price"}
POLYLINE_COLUMNS = [
    "series",
    "order",
    "dimension",
    "px",
    "py",
    "label",
    "make",
    "body",
    "count",
    "condition",
    *DIMENSIONS,
    "opacity",
]


@dataclass(frozen=True)
class Margin:
    top: int
    right: int
    bottom: int
    left: int


@dataclass(frozen=True)
class ChartLayout:
    width: int
    height: int
    margin: Margin

    @property
    def inner_width(self) -> int:
        return self.width - self.margin.left - self.margin.right

    @property
    def inner_height(self) -> int:
        return self.height - self.margin.top - self.margin.bottom

    def padding(self) -> Dict[str, int]:
        m = self.margin
        return {"top": m.top, "right": m.right, "bottom": m.bottom, "left": m.left}


TREND_LAYOUT = ChartLayout(width=500, height=400, margin=Margin(top=40, right=30, bottom=70, left=70))
PARALLEL_LAYOUT = ChartLayout(width=700, height=400, margin=Margin(top=30, right=30, bottom=30, left=50))


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


# ---------- titles ----------
def title_font_size(title: str, threshold: int) -> int:
    return TITLE_FONT_SIZE_SMALL if len(title) > threshold else TITLE_FONT_SIZE


def _in_state(selection: FilterSelection) -> str:
    return f" in {selection.state}" if selection.state != ALL else ""


def ranking_title(selection: FilterSelection) -> str:
    subject = " ".join(v for v in (selection.make, selection.body) if v != ALL)
    prefix = f"Top {subject}" if subject else "Top"
    return f"{prefix} Models by Sales Count{_in_state(selection)} (Max 10)"


def trend_title(selection: FilterSelection) -> str:
    make, body = selection.make, selection.body
    if make == ALL and body == ALL:
        title = "Monthly Average Sale Price Trend of All Cars"
    elif make == ALL:
        title = f"Monthly Average Sale Price Trend of All {body}"
    elif body == ALL:
        title = f"Monthly Average Sale Price Trend of {make} Cars"
    else:
        title = f"Monthly Average Sale Price Trend of {make} {body}"
    return title + _in_state(selection)


def dimensions_title(selection: FilterSelection) -> str:
    granularity = dimension_granularity(selection)
    if granularity == "make":
        title = "Average Vehicle Profile by Make"
    elif granularity == "body":
        title = f"{selection.make} Vehicle Profile by Body Type"
    else:
        title = f"{selection.make} {selection.body} Vehicles"
    return title + _in_state(selection)


def _title_params(title: str, threshold: int) -> alt.TitleParams:
    return alt.TitleParams(text=title, fontSize=title_font_size(title, threshold), fontWeight="bold", anchor="middle")


# ---------- ranked bar chart ----------
def bar_chart_layout(models: List[str]) -> ChartLayout:
    # Rotated x labels need more room the longer the model name.
    longest = max((len(str(m)) for m in models), default=0)
    margin = Margin(top=40, right=30, bottom=min(100, 60 + longest * 6), left=80)
    return ChartLayout(width=500, height=400 + margin.bottom, margin=margin)


def bar_scales(rows: pd.DataFrame, layout: ChartLayout) -> tuple[BandScale, LinearScale]:
    m = layout.margin
    x = BandScale(rows["model"].tolist(), (m.left, layout.width - m.right), padding=0.1)
    y = LinearScale.from_values(rows["count"], (layout.height - m.bottom, m.top), zero=True).nice()
    return x, y


def ranked_bar_chart(rows: pd.DataFrame, selection: FilterSelection) -> alt.Chart:
    layout = bar_chart_layout(rows["model"].tolist())
    x, y = bar_scales(rows, layout)
    title = ranking_title(selection)
    hover = alt.selection_point(name="bar_hover", fields=["model"], on="mouseover", empty="all")
    return (
        alt.Chart(rows)
        .mark_bar(color=BAR_COLOR)
        .encode(
            x=alt.X(
                "model:N",
                title="Car Models",
                sort=list(x.domain),
                scale=alt.Scale(paddingInner=x.padding_inner, paddingOuter=x.padding_outer),
                axis=alt.Axis(labelAngle=-45, labelAlign="right", grid=False),
            ),
            y=alt.Y(
                "count:Q",
                title="Number of Sales",
                scale=alt.Scale(domain=list(y.domain), nice=False),
                axis=alt.Axis(values=y.ticks(), gridDash=[4, 4], domain=False),
            ),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.6)),
            tooltip=[
                alt.Tooltip("make:N", title="Make"),
                alt.Tooltip("model:N", title="Model"),
                alt.Tooltip("body:N", title="Body Type"),
                alt.Tooltip("count:Q", title="Sales"),
                alt.Tooltip("avg_price:Q", title="Avg Price", format="$,.2f"),
            ],
        )
        .add_params(hover)
        .properties(
            width=layout.inner_width,
            height=layout.inner_height,
            padding=layout.padding(),
            title=_title_params(title, RANKING_TITLE_THRESHOLD),
        )
    )


# ---------- monthly trend line chart ----------
def trend_scales(rows: pd.DataFrame, layout: ChartLayout = TREND_LAYOUT) -> tuple[BandScale, LinearScale]:
    m = layout.margin
    x = BandScale(rows["month"].tolist(), (m.left, layout.width - m.right))
    y = LinearScale.from_values(rows["avg_price"], (layout.height - m.bottom, m.top), zero=True).nice()
    return x, y


def trend_line_chart(rows: pd.DataFrame, selection: FilterSelection) -> alt.LayerChart:
    layout = TREND_LAYOUT
    x, y = trend_scales(rows, layout)
    title = trend_title(selection)
    hover = alt.selection_point(name="trend_hover", fields=["month"], on="mouseover", empty="all")
    base = alt.Chart(rows).encode(
        x=alt.X(
            "month:O",
            title="Month",
            sort=list(x.domain),
            scale=alt.Scale(type="band", paddingInner=0, paddingOuter=0),
            axis=alt.Axis(labelAngle=-45, labelAlign="right", grid=False),
        ),
        y=alt.Y(
            "avg_price:Q",
            title="Average Sale Price",
            scale=alt.Scale(domain=list(y.domain), nice=False),
            axis=alt.Axis(values=y.ticks(6), format="$~s", gridDash=[4, 4], domain=False),
        ),
    )
    line = base.mark_line(color=LINE_COLOR, strokeWidth=2)
    points = (
        base.mark_circle(color=LINE_COLOR, size=50)
        .encode(
            opacity=alt.condition(hover, alt.value(1), alt.value(0.7)),
            tooltip=[
                alt.Tooltip("month:O", title="Month"),
                alt.Tooltip("sales_count:Q", title="Sales"),
                alt.Tooltip("avg_price:Q", title="Avg Price", format="$,.2f"),
                alt.Tooltip("std_dev:Q", title="Price Std Dev", format="$,.2f"),
            ],
        )
        .add_params(hover)
    )
    return alt.layer(line, points).properties(
        width=layout.inner_width,
        height=layout.inner_height,
        padding=layout.padding(),
        title=_title_params(title, TREND_TITLE_THRESHOLD),
    )


# ---------- parallel coordinates ----------
def dimension_scales(rows: pd.DataFrame, layout: ChartLayout = PARALLEL_LAYOUT) -> Dict[str, LinearScale]:
    chart_height = layout.inner_height
    return {dim: LinearScale.from_values(rows[dim], (chart_height, 0)) for dim in DIMENSIONS}


def axis_positions(layout: ChartLayout = PARALLEL_LAYOUT) -> PointScale:
    return PointScale(DIMENSIONS, (layout.margin.left, layout.inner_width + layout.margin.left))


def condition_opacity(condition: object) -> float:
    # Condition scores run 1-5; out-of-range or missing values are clamped.
    try:
        value = float(condition)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if pd.isna(value):
        return 0.0
    return min(1.0, max(0.0, value / 5))


def layout_polylines(rows: pd.DataFrame, layout: ChartLayout = PARALLEL_LAYOUT) -> pd.DataFrame:
    """Long-format vertices: one row per (tuple, dimension) with pixel coords.

    Vertices whose value is not a number are left out so the line breaks there.
    """
    scales = dimension_scales(rows, layout)
    x = axis_positions(layout)
    vertices = []
    for i, row in enumerate(rows.itertuples(index=False)):
        record = row._asdict()
        for order, dim in enumerate(DIMENSIONS):
            py = scales[dim](record[dim])
            if pd.isna(py):
                continue
            vertices.append(
                {
                    "series": i,
                    "order": order,
                    "dimension": dim,
                    "px": x(dim),
                    "py": py,
                    "label": record["label"],
                    "make": record["make"],
                    "body": record["body"],
                    "count": record["count"],
                    "condition": record["condition"],
                    "year": record["year"],
                    "odometer": record["odometer"],
                    "mmr": record["mmr"],
                    "sellingprice": record["sellingprice"],
                    "opacity": condition_opacity(record["condition"]),
                }
            )
    return pd.DataFrame(vertices, columns=POLYLINE_COLUMNS)


def _format_tick(value: float) -> str:
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def layout_axes(rows: pd.DataFrame, layout: ChartLayout = PARALLEL_LAYOUT, tick_count: int = 5) -> pd.DataFrame:
    scales = dimension_scales(rows, layout)
    x = axis_positions(layout)
    ticks = []
    for dim in DIMENSIONS:
        scale = scales[dim]
        for value in scale.ticks(tick_count):
            ticks.append({"dimension": dim, "px": x(dim), "py": scale(value), "text": _format_tick(value)})
    return pd.DataFrame(ticks, columns=["dimension", "px", "py", "text"])


def parallel_coordinates_chart(rows: pd.DataFrame, selection: FilterSelection) -> alt.LayerChart:
    layout = PARALLEL_LAYOUT
    x = axis_positions(layout)
    chart_height = layout.inner_height
    title = dimensions_title(selection)
    top = -layout.margin.top

    px_scale = alt.Scale(domain=[0, layout.width], nice=False)
    py_scale = alt.Scale(domain=[top, chart_height], reverse=True, nice=False)
    px = alt.X("px:Q", scale=px_scale, axis=None)
    py = alt.Y("py:Q", scale=py_scale, axis=None)

    hover = alt.selection_point(name="parallel_hover", fields=["series"], on="mouseover", empty="all")
    lines = (
        alt.Chart(layout_polylines(rows, layout))
        .mark_line(color=PARALLEL_COLOR, strokeWidth=1)
        .encode(
            x=px,
            y=py,
            detail="series:N",
            order="order:Q",
            opacity=alt.Opacity("opacity:Q", scale=None),
            strokeWidth=alt.condition(hover, alt.value(2.5), alt.value(1)),
            tooltip=[
                alt.Tooltip("label:N", title="Group"),
                alt.Tooltip("count:Q", title="Vehicles"),
                alt.Tooltip("condition:Q", title="Condition", format=".2f"),
                alt.Tooltip("year:Q", title="Year", format=".1f"),
                alt.Tooltip("odometer:Q", title="Odometer", format=",.0f"),
                alt.Tooltip("mmr:Q", title="MMR", format="$,.0f"),
                alt.Tooltip("sellingprice:Q", title="Sale Price", format="$,.0f"),
            ],
        )
        .add_params(hover)
    )

    axis_frame = pd.DataFrame(
        {
            "dimension": DIMENSIONS,
            "px": [x(d) for d in DIMENSIONS],
            "py": [0] * len(DIMENSIONS),
            "py2": [chart_height] * len(DIMENSIONS),
            "title": [DIMENSION_TITLES[d] for d in DIMENSIONS],
            "title_py": [-10] * len(DIMENSIONS),
        }
    )
    axis_lines = alt.Chart(axis_frame).mark_rule(color="black").encode(x=px, y=py, y2="py2:Q")
    axis_titles = (
        alt.Chart(axis_frame)
        .mark_text(color="black", fontWeight="bold", baseline="bottom")
        .encode(x=px, y=alt.Y("title_py:Q", scale=py_scale, axis=None), text="title:N")
    )
    tick_labels = (
        alt.Chart(layout_axes(rows, layout))
        .mark_text(align="right", dx=-6, fontSize=10, color="black")
        .encode(x=px, y=py, text="text:N")
    )
    return alt.layer(lines, axis_lines, axis_titles, tick_labels).properties(
        width=layout.width,
        height=chart_height - top,
        title=_title_params(title, DIMENSIONS_TITLE_THRESHOLD),
    )
