from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence, Tuple

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

PALETTE = ["#4361ee", "#4cc9f0", "#3f37c9", "#6c757d", "#ff9f40"]


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def daily_bar_chart(series: Sequence[Tuple[str, int]], title: str = "Total opens") -> alt.Chart:
    df = pd.DataFrame(list(series), columns=["date", "opens"])
    return (
        alt.Chart(df)
        .mark_bar(color=PALETTE[0], opacity=0.8)
        .encode(
            x=alt.X("date:O", title="Date", axis=alt.Axis(grid=False)),
            y=alt.Y("opens:Q", title=title, axis=alt.Axis(format="~s", gridDash=[4, 4], domain=False, ticks=False)),
            tooltip=[alt.Tooltip("date:N", title="Date"), alt.Tooltip("opens:Q", title=title, format=",")],
        )
        .properties(height=260)
    )


def trend_line_chart(series: Sequence[Tuple[str, int]]) -> alt.Chart:
    df = pd.DataFrame(list(series), columns=["date", "opens"])
    base = alt.Chart(df).encode(
        x=alt.X("date:O", title="Date", axis=alt.Axis(grid=False)),
        y=alt.Y("opens:Q", title="Opens", axis=alt.Axis(format="~s", gridDash=[4, 4], domain=False, ticks=False)),
    )
    area = base.mark_area(color=PALETTE[0], opacity=0.1, interpolate="monotone")
    line = base.mark_line(color=PALETTE[0], point={"filled": True}, interpolate="monotone").encode(
        tooltip=[alt.Tooltip("date:N", title="Date"), alt.Tooltip("opens:Q", title="Opens", format=",")],
    )
    return (area + line).properties(height=260)


def donut_chart(rows: List[Dict[str, Any]], title: Optional[str] = None) -> alt.Chart:
    """Donut of the ``label``/``value`` rows of a top-N breakdown, in rank order."""
    df = pd.DataFrame(rows, columns=["label", "value"])
    df["rank"] = range(len(df))
    hover = alt.selection_point(fields=["label"], on="mouseover", empty="all")
    chart = (
        alt.Chart(df)
        .transform_joinaggregate(total="sum(value)")
        .transform_calculate(share="datum.total > 0 ? datum.value / datum.total : 0")
        .mark_arc(innerRadius=70)
        .encode(
            theta=alt.Theta("value:Q", stack=True),
            color=alt.Color("label:N", title=None, sort=df["label"].tolist(), scale=alt.Scale(range=PALETTE)),
            order=alt.Order("rank:Q"),
            opacity=alt.condition(hover, alt.value(1), alt.value(0.4)),
            tooltip=[
                alt.Tooltip("label:N", title="Group"),
                alt.Tooltip("value:Q", title="Opens", format=","),
                alt.Tooltip("share:Q", title="Share", format=".0%"),
            ],
        )
        .add_params(hover)
        .properties(height=260)
    )
    if title:
        chart = chart.properties(title=title)
    return chart
