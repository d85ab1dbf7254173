from __future__ import annotations

from datetime import date
from typing import Optional

from devstats.filters import parse_date, today_local

TODAY_ACTIVE = "today-active"
ACTIVE_7_DAYS = "active-within-7-days"
ACTIVE_30_DAYS = "active-within-30-days"
HISTORICAL = "historical"

STATUS_ORDER = [TODAY_ACTIVE, ACTIVE_7_DAYS, ACTIVE_30_DAYS, HISTORICAL]

STATUS_LABELS = {
    TODAY_ACTIVE: "Active today",
    ACTIVE_7_DAYS: "Active in last 7 days",
    ACTIVE_30_DAYS: "Active in last 30 days",
    HISTORICAL: "Historical",
}

STATUS_BADGES = {
    TODAY_ACTIVE: "success",
    ACTIVE_7_DAYS: "primary",
    ACTIVE_30_DAYS: "warning",
    HISTORICAL: "danger",
}


def elapsed_days(value: object, today: Optional[date] = None) -> Optional[int]:
    parsed = parse_date(value)
    if parsed is None:
        return None
    return ((today or today_local()) - parsed).days


def classify_status(value: object, today: Optional[date] = None) -> str:
    """Bucket a record date by whole days elapsed since it.

    Future dates land in the 7-day bucket; unparseable dates are historical.
    """
    days = elapsed_days(value, today)
    if days is None:
        return HISTORICAL
    if days == 0:
        return TODAY_ACTIVE
    if days <= 7:
        return ACTIVE_7_DAYS
    if days <= 30:
        return ACTIVE_30_DAYS
    return HISTORICAL
