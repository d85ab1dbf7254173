from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Dict, List, Optional, Union

import pandas as pd

ALL = "all"
DATE_WINDOW_CHOICES = [ALL, 7, 30, 90]


@dataclass(frozen=True)
class FilterCriteria:
    date_window: Union[str, int] = ALL
    device_model: str = ALL
    android_version: str = ALL
    device_query: str = ""

    @property
    def window_days(self) -> Optional[int]:
        return None if self.date_window == ALL else int(self.date_window)


def _as_window(value: object) -> Union[str, int]:
    if value is None or str(value).strip().lower() in {"", ALL}:
        return ALL
    try:
        days = int(str(value).strip())
    except Exception:
        return ALL
    return max(0, days)


def _as_selector(value: object) -> str:
    if value is None:
        return ALL
    s = str(value)
    return ALL if s.strip() == "" or s.strip().lower() == ALL else s


def normalize_criteria(raw: dict) -> FilterCriteria:
    raw = raw or {}
    return FilterCriteria(
        date_window=_as_window(raw.get("date_window", ALL)),
        device_model=_as_selector(raw.get("device_model")),
        android_version=_as_selector(raw.get("android_version")),
        device_query=str(raw.get("device_query") or ""),
    )


def parse_date(value: object) -> Optional[date]:
    """Parse a date string, dropping any time of day. Returns None when unparseable."""
    if value is None:
        return None
    s = str(value).strip()
    if not s:
        return None
    try:
        ts = pd.to_datetime(s, errors="coerce")
    except Exception:
        return None
    if ts is None or pd.isna(ts):
        return None
    return ts.date()


def today_local() -> date:
    return datetime.now().date()


def date_cutoff(days: int, today: Optional[date] = None) -> date:
    try:
        return (today or today_local()) - timedelta(days=days)
    except OverflowError:
        # Window reaches past year 1: nothing is excluded by date.
        return date.min


def _on_or_after(value: object, cutoff: date) -> bool:
    parsed = parse_date(value)
    return parsed is not None and parsed >= cutoff


def filter_records(frame: pd.DataFrame, criteria: FilterCriteria, *, today: Optional[date] = None) -> pd.DataFrame:
    """Apply every predicate of ``criteria``; row order is preserved."""
    if frame.empty:
        return frame.copy()

    mask = pd.Series(True, index=frame.index)

    days = criteria.window_days
    if days is not None:
        cutoff = date_cutoff(days, today)
        passes = frame["date"].map(lambda v: _on_or_after(v, cutoff))
        mask &= passes.astype(bool)

    if criteria.device_model != ALL:
        mask &= frame["device_model"] == criteria.device_model

    if criteria.android_version != ALL:
        mask &= frame["android_version"] == criteria.android_version

    q = criteria.device_query.lower()
    if q:
        mask &= frame["device_id"].str.lower().str.contains(q, regex=False, na=False)

    return frame[mask].copy()


def _distinct_non_empty(series: pd.Series) -> List[str]:
    values = [v for v in series.tolist() if v]
    return list(dict.fromkeys(values))


def filter_options(frame: pd.DataFrame) -> Dict[str, List[str]]:
    if frame.empty:
        return {"device_models": [], "android_versions": []}
    return {
        "device_models": _distinct_non_empty(frame["device_model"]),
        "android_versions": _distinct_non_empty(frame["android_version"]),
    }
