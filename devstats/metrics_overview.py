from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Tuple

import pandas as pd

from devstats.charts import daily_bar_chart, donut_chart, to_vega_spec, trend_line_chart
from devstats.csv_parser import parse_open_count
from devstats.filters import FilterCriteria

GROUP_COLUMNS = ["date", "device_id", "device_model", "android_version", "country"]


@dataclass(frozen=True)
class AggregateResult:
    total_opens: int = 0
    unique_devices: int = 0
    android_versions: int = 0
    unique_countries: int = 0
    daily_series: List[Tuple[str, int]] = field(default_factory=list)
    top_device_models: List[Tuple[str, int]] = field(default_factory=list)
    top_android_versions: List[Tuple[str, int]] = field(default_factory=list)
    top_countries: List[Tuple[str, int]] = field(default_factory=list)


def _column(df: pd.DataFrame, col: str) -> pd.Series:
    if col not in df.columns:
        return pd.Series("", index=df.index, dtype=object)
    return df[col].fillna("").astype(str)


def _opens_frame(df: pd.DataFrame) -> pd.DataFrame:
    work = pd.DataFrame({c: _column(df, c) for c in GROUP_COLUMNS}, index=df.index)
    # Python ints: counts are unbounded and must not overflow int64.
    work["opens"] = pd.Series([parse_open_count(v) for v in _column(df, "open_count")], index=df.index, dtype=object)
    return work


def group_totals(work: pd.DataFrame, key: str) -> pd.Series:
    """Sum of opens per key, keys in order of first appearance."""
    return work.groupby(key, sort=False)["opens"].sum()


def rank_top(totals: pd.Series, n: int) -> List[Tuple[str, int]]:
    # Stable sort keeps first-appearance order among equal totals.
    ranked = totals.sort_values(ascending=False, kind="stable").head(n)
    return [(str(k), int(v)) for k, v in ranked.items()]


def compute_aggregates(frame: pd.DataFrame, *, top_n: int = 5) -> AggregateResult:
    if frame.empty:
        return AggregateResult()
    work = _opens_frame(frame)

    daily = work.groupby("date", sort=True)["opens"].sum()
    models = group_totals(work, "device_model")
    versions = group_totals(work, "android_version")
    countries = group_totals(work, "country")

    return AggregateResult(
        total_opens=int(work["opens"].sum()),
        unique_devices=int(work["device_id"].nunique()),
        android_versions=int(sum(1 for k in versions.index if k)),
        unique_countries=int(sum(1 for k in countries.index if k)),
        daily_series=[(str(d), int(v)) for d, v in daily.items()],
        top_device_models=rank_top(models, top_n),
        top_android_versions=rank_top(versions, top_n),
        top_countries=rank_top(countries, top_n),
    )


def model_label(value: str) -> str:
    return value or "Unknown device"


def version_label(value: str) -> str:
    return f"Android {value}" if value else "Unknown version"


def country_label(value: str) -> str:
    return value or "Unknown country"


def _top_rows(entries: List[Tuple[str, int]], label: Callable[[str], str]) -> List[Dict[str, Any]]:
    return [{"key": k, "label": label(k), "value": v} for k, v in entries]


def compute_overview(filters: FilterCriteria, ctx: Dict[str, Any]) -> Dict[str, Any]:
    agg: AggregateResult = ctx.get("aggregates") or AggregateResult()
    filtered: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())

    top = {
        "device_models": _top_rows(agg.top_device_models, model_label),
        "android_versions": _top_rows(agg.top_android_versions, version_label),
        "countries": _top_rows(agg.top_countries, country_label),
    }

    charts: Dict[str, Any] = {}
    if agg.daily_series:
        charts["total_opens"] = to_vega_spec(daily_bar_chart(agg.daily_series))
        charts["trend"] = to_vega_spec(trend_line_chart(agg.daily_series))
    for key, title in [("device_models", "Devices"), ("android_versions", "Android versions"), ("countries", "Countries")]:
        if top[key]:
            charts[key] = to_vega_spec(donut_chart(top[key], title=title))

    return {
        "filters": asdict(filters),
        "record_count": int(len(filtered)),
        "kpis": {
            "total_opens": agg.total_opens,
            "unique_devices": agg.unique_devices,
            "android_versions": agg.android_versions,
            "unique_countries": agg.unique_countries,
        },
        "daily_series": [{"date": d, "opens": v} for d, v in agg.daily_series],
        "top": top,
        "charts": charts,
    }
