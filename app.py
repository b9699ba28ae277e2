import pandas as pd
import streamlit as st
from contextlib import contextmanager
from typing import Any, Dict, Optional

from core.data import DEFAULT_DATA_FILE, clear_dashboard_cache, format_currency_columns, load_dashboard_data
from core.filters import ALL, FILTER_FIELDS, FILTER_LABELS, FilterSelection, filter_scope, use_filter_state
from core.logging_config import LOG_FORMAT, LOG_LEVEL, configure_logging
from core.session import DashboardSession

DATA_FILE_PATH = DEFAULT_DATA_FILE


# ---------- UI / layout helpers ----------
def inject_base_styles():
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;color: #111827;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )


@contextmanager
def card(title: str, font_size: int = 16):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title" style="font-size:{font_size}px">{title}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(selection: FilterSelection) -> str:
    chips = [f"{FILTER_LABELS[name]}: {getattr(selection, name)}" for name in FILTER_FIELDS]
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_page_header(title: str, breadcrumb: str, filter_summary_html: str, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    c1, c2 = st.columns([8, 2])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        btn_cols = st.columns(2)
        if btn_cols[0].button("Reload"):
            clear_dashboard_cache()
            st.rerun()
        if export_df is not None and not export_df.empty:
            btn_cols[1].download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{filter_summary_html}</div>", unsafe_allow_html=True)


# ---------- session ----------
def get_session() -> DashboardSession:
    data_ctx = load_dashboard_data(DATA_FILE_PATH)
    session: Optional[DashboardSession] = st.session_state.get("dashboard_session")
    if session is None:
        session = DashboardSession(data_ctx["records"], report=data_ctx["report"])
        st.session_state["dashboard_session"] = session
    elif session.records is not data_ctx["records"]:
        # The CSV changed on disk since this session last loaded it.
        token = session.begin_load()
        session.finish_load(token, data_ctx["records"], data_ctx["report"])
    return session


def _on_filter_change(name: str):
    session: DashboardSession = st.session_state["dashboard_session"]
    session.select(name, st.session_state[f"filter_{name}"])


def render_filter_bars(session: DashboardSession):
    options = session.options
    for name in FILTER_FIELDS:
        # Keep the widget in step with resets made by the filter panel.
        st.session_state[f"filter_{name}"] = session.state.get(name)
        st.selectbox(
            FILTER_LABELS[name],
            options=options.for_field(name),
            key=f"filter_{name}",
            on_change=_on_filter_change,
            args=(name,),
        )


# ---------- chart renderers ----------
def render_chart(payload: Dict[str, Any], chart_key: str, empty_message: str):
    with card(payload["title"], font_size=payload["title_font_size"]):
        spec = payload["charts"].get(chart_key)
        if spec is None:
            st.info(empty_message)
            return
        st.vega_lite_chart(spec, use_container_width=False)


def render_ranking_table(payload: Dict[str, Any]):
    if not payload["rows"]:
        return
    table = pd.DataFrame(payload["rows"])
    table.insert(0, "rank", range(1, len(table) + 1))
    st.dataframe(format_currency_columns(table, ["avg_price"]), hide_index=True, use_container_width=True)


def render_data_quality(payload: Dict[str, Any]):
    with st.expander("Data quality", expanded=False):
        load = payload.get("load") or {}
        cols = st.columns(5)
        cols[0].metric("Rows read", f"{load.get('raw_rows', 0):,}")
        cols[1].metric("Malformed lines skipped", f"{load.get('dropped_malformed', 0):,}")
        cols[2].metric("Incomplete rows dropped", f"{load.get('dropped_missing', 0):,}")
        cols[3].metric("Outside sale window", f"{load.get('dropped_date', 0):,}")
        cols[4].metric("Records", f"{payload['row_counts']['records']:,}")
        if load.get("error"):
            st.error(f"Load failed: {load['error']}")
        st.json(payload, expanded=False)


def render_dashboard(session: DashboardSession):
    selection = use_filter_state().selection
    payloads = session.payloads
    filtered_export = pd.DataFrame(payloads["ranking"]["rows"])
    render_page_header(
        "Car Sales Dashboard",
        "Home / Car Sales",
        format_filter_summary(selection),
        export_df=filtered_export,
        export_name="top_models.csv",
    )
    if session.records.empty:
        st.warning(f"No car records loaded from {DATA_FILE_PATH}. Charts will stay empty.")

    top_cols = st.columns(2)
    with top_cols[0]:
        render_chart(payloads["ranking"], "bar", "No sales match the current filters.")
        render_ranking_table(payloads["ranking"])
    with top_cols[1]:
        render_chart(payloads["trend"], "line", "No monthly sales match the current filters.")
        if payloads["trend"].get("gap_months"):
            st.caption("Months without sales: " + ", ".join(payloads["trend"]["gap_months"]))

    render_chart(payloads["dimensions"], "parallel", "No vehicles match the current filters.")
    granularity = payloads["dimensions"]["granularity"]
    st.caption(
        {
            "make": "Each line is the average of one make. Pick a make to drill down to body types.",
            "body": "Each line is the average of one body type. Pick a body type to see individual vehicles.",
            "record": "Each line is one vehicle; opacity follows its condition score.",
        }[granularity]
    )
    render_data_quality(payloads["debug"])


# ---------- UI setup ----------
configure_logging(LOG_LEVEL, fmt=LOG_FORMAT)
st.set_page_config(page_title="Car Sales Dashboard", layout="wide")
inject_base_styles()

session = get_session()
with st.sidebar:
    st.markdown("### Filters")
    render_filter_bars(session)
    if session.selection != FilterSelection():
        if st.button("Reset filters"):
            for name in FILTER_FIELDS:
                session.select(name, ALL)
            st.rerun()

with filter_scope(session.state):
    render_dashboard(session)
