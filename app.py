import logging
import os
from contextlib import contextmanager
from typing import Optional

import altair as alt
import pandas as pd
import streamlit as st

from devstats.charts import daily_bar_chart, donut_chart, trend_line_chart
from devstats.data import TABLE_LIMIT, load_session, prepare_context
from devstats.filters import ALL, DATE_WINDOW_CHOICES, FilterCriteria
from devstats.metrics_overview import compute_overview
from devstats.metrics_table import compute_table

logging.basicConfig(level=os.environ.get("DEVSTATS_LOG_LEVEL", "INFO").upper())
alt.data_transformers.disable_max_rows()

BADGE_COLORS = {"success": "#16a34a", "primary": "#2563eb", "warning": "#d97706", "danger": "#dc2626"}


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-header {display: flex;justify-content: space-between;align-items: center;margin-bottom: 8px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .chip-row {display: flex;flex-wrap: wrap;gap: 6px;margin-top: 6px;}
        .chip {background: #f3f4f6;border: 1px solid #e5e7eb;border-radius: 14px;padding: 4px 10px;font-size: 0.85rem;color: #374151;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(
        f"""
        <div class="card">
          <div class="card-header">
            <div class="card-title">{title}</div>
          </div>
        """,
        unsafe_allow_html=True,
    )
    body = container.container()
    with body:
        yield body
    container.markdown("</div>", unsafe_allow_html=True)


def format_filter_summary(criteria: FilterCriteria) -> str:
    window_chip = "Dates: All" if criteria.window_days is None else f"Dates: last {criteria.window_days} days"
    model_chip = "Model: All" if criteria.device_model == ALL else f"Model: {criteria.device_model}"
    version_chip = "Android: All" if criteria.android_version == ALL else f"Android: {criteria.android_version}"
    chips = [window_chip, model_chip, version_chip]
    if criteria.device_query:
        chips.append(f"Device ID: *{criteria.device_query}*")
    return "".join([f"<span class='chip'>{txt}</span>" for txt in chips])


def render_page_header(title: str, breadcrumb: str, filter_summary_html: str, export_df: Optional[pd.DataFrame] = None, export_name: str = "export.csv"):
    inject_base_styles()
    top = st.container()
    c1, c2 = top.columns([7, 3])
    with c1:
        st.markdown(
            f"<div class='app-top-bar'><div class='breadcrumb'>{breadcrumb}</div><div class='page-title'>{title}</div></div>",
            unsafe_allow_html=True,
        )
    with c2:
        btn_cols = st.columns(2)
        if btn_cols[0].button("Refresh"):
            get_session.clear()
            st.rerun()
        if export_df is not None and not export_df.empty:
            btn_cols[1].download_button(
                "Export CSV",
                data=export_df.to_csv(index=False).encode("utf-8"),
                file_name=export_name,
                mime="text/csv",
            )
    st.markdown(f"<div class='chip-row'>{filter_summary_html}</div>", unsafe_allow_html=True)


@st.cache_resource(show_spinner="Loading device stats…")
def get_session():
    return load_session()


# ---------- UI setup ----------
st.set_page_config(page_title="Device Usage Dashboard", layout="wide")
inject_base_styles()
st.title("Device Usage Dashboard")
st.caption("Daily app opens by device, Android version and country.")

session = get_session()
if not session.ok:
    st.error("Failed to load device stats. Please try again later.")
    st.caption(session.error)
    st.stop()

options = session.options

# ----- Sidebar: filters -----
with st.sidebar:
    st.markdown("### Filters")
    date_window = st.selectbox(
        "Date range",
        options=DATE_WINDOW_CHOICES,
        index=0,
        format_func=lambda v: "All dates" if v == ALL else f"Last {v} days",
    )
    device_model = st.selectbox("Device model", options=[ALL] + options["device_models"], format_func=lambda v: "All models" if v == ALL else v)
    android_version = st.selectbox(
        "Android version",
        options=[ALL] + options["android_versions"],
        format_func=lambda v: "All versions" if v == ALL else f"Android {v}",
    )
    device_query = st.text_input("Device ID search (optional)", "")

filters = FilterCriteria(
    date_window=date_window,
    device_model=device_model,
    android_version=android_version,
    device_query=device_query,
)

ctx = prepare_context(filters, session)
filtered_records = ctx["filtered_records"]
overview = compute_overview(filters, ctx)
table = compute_table(filters, ctx, limit=TABLE_LIMIT)
aggregates = ctx["aggregates"]


def render_kpi_tiles(kpis):
    cols = st.columns(4)
    cols[0].metric("Total opens", f"{kpis['total_opens']:,}")
    cols[1].metric("Unique devices", f"{kpis['unique_devices']:,}")
    cols[2].metric("Android versions", f"{kpis['android_versions']:,}")
    cols[3].metric("Countries", f"{kpis['unique_countries']:,}")


def render_table(table_payload):
    if not table_payload["rows"]:
        st.info(table_payload["message"])
        return
    display = pd.DataFrame(table_payload["rows"])
    display = display[["date", "device_id_short", "open_count", "device_model", "android_version", "manufacturer", "report_time", "status_label", "badge"]]
    styled = display.drop(columns=["badge"]).style.apply(
        lambda col: [f"color: {BADGE_COLORS.get(b, '#374151')}; font-weight: 600" for b in display["badge"]],
        subset=["status_label"],
    )
    st.dataframe(
        styled,
        use_container_width=True,
        hide_index=True,
        column_config={
            "date": "Date",
            "device_id_short": "Device ID",
            "open_count": "Opens",
            "device_model": "Model",
            "android_version": "Android",
            "manufacturer": "Manufacturer",
            "report_time": "Reported",
            "status_label": "Status",
        },
    )
    if table_payload["total_rows"] > len(table_payload["rows"]):
        st.caption(f"Showing the {len(table_payload['rows'])} most recent of {table_payload['total_rows']:,} records.")


def render_overview_page():
    render_page_header("Overview", "Home / Overview", format_filter_summary(filters), export_df=filtered_records, export_name="device_stats.csv")
    with card("KPI Tiles"):
        render_kpi_tiles(overview["kpis"])

    if not aggregates.daily_series:
        st.info("No records match the selected filters.")
    else:
        trend_cols = st.columns(2)
        with trend_cols[0]:
            with card("Total opens (daily)"):
                st.altair_chart(daily_bar_chart(aggregates.daily_series), use_container_width=True)
        with trend_cols[1]:
            with card("Usage trend"):
                st.altair_chart(trend_line_chart(aggregates.daily_series), use_container_width=True)

        donut_cols = st.columns(3)
        for col, (key, title) in zip(donut_cols, [("device_models", "Top devices"), ("android_versions", "Top Android versions"), ("countries", "Top countries")]):
            with col:
                with card(title):
                    rows = overview["top"][key]
                    if rows:
                        st.altair_chart(donut_chart(rows), use_container_width=True)
                    else:
                        st.info("No data.")

    with card(f"Latest records (max {TABLE_LIMIT})"):
        render_table(table)


render_overview_page()
