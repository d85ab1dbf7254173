from __future__ import annotations

from dataclasses import asdict
from datetime import date
from typing import Any, Dict, Optional

import pandas as pd

from devstats.filters import FilterCriteria, parse_date
from devstats.status import STATUS_BADGES, STATUS_LABELS, classify_status

TABLE_COLUMNS = [
    "date",
    "device_id",
    "open_count",
    "device_model",
    "android_version",
    "manufacturer",
    "report_time",
]
EMPTY_CELL = "--"


def recent_records(frame: pd.DataFrame, limit: int = 100) -> pd.DataFrame:
    """Newest records first; ties keep file order and unparseable dates sort last."""
    if frame.empty:
        return frame.copy()
    parsed = pd.to_datetime(frame["date"].map(parse_date), errors="coerce")
    order = parsed.sort_values(ascending=False, kind="stable", na_position="last").index
    return frame.loc[order].head(max(0, int(limit)))


def short_device_id(device_id: str, width: int = 8) -> str:
    return device_id[:width] + "..."


def format_row(record: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    status = classify_status(record.get("date"), today)
    version = record.get("android_version") or ""
    return {
        "date": record.get("date") or EMPTY_CELL,
        "device_id": record.get("device_id") or "",
        "device_id_short": short_device_id(record.get("device_id") or ""),
        "open_count": record.get("open_count") or EMPTY_CELL,
        "device_model": record.get("device_model") or EMPTY_CELL,
        "android_version": f"Android {version}" if version else EMPTY_CELL,
        "manufacturer": record.get("manufacturer") or EMPTY_CELL,
        "report_time": record.get("report_time") or EMPTY_CELL,
        "status": status,
        "status_label": STATUS_LABELS[status],
        "badge": STATUS_BADGES[status],
    }


def compute_table(
    filters: FilterCriteria,
    ctx: Dict[str, Any],
    *,
    limit: int = 100,
    today: Optional[date] = None,
) -> Dict[str, Any]:
    filtered: pd.DataFrame = ctx.get("filtered_records", pd.DataFrame())
    if filtered.empty:
        return {"filters": asdict(filters), "total_rows": 0, "rows": [], "message": "No matching records found."}

    recent = recent_records(filtered, limit)
    rows = [format_row(r, today) for r in recent.to_dict(orient="records")]
    return {"filters": asdict(filters), "total_rows": int(len(filtered)), "rows": rows, "message": None}
