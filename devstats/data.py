from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Callable, Dict, List, Optional

import pandas as pd
import requests

from devstats.csv_parser import EXPECTED_COLUMNS, parse_csv, records_to_frame
from devstats.filters import FilterCriteria, filter_options, filter_records, normalize_criteria
from devstats.metrics_overview import compute_aggregates

logger = logging.getLogger(__name__)

DEFAULT_CSV_URL = "https://raw.githubusercontent.com/nspron/DuolingoKill/main/stats/device_stats.csv"
CSV_URL = os.environ.get("DEVSTATS_CSV_URL", DEFAULT_CSV_URL)

TOP_N = 5
TABLE_LIMIT = 100


class FetchError(Exception):
    """The CSV could not be retrieved (transport error or non-2xx response)."""


def fetch_timeout() -> Optional[float]:
    raw = os.environ.get("DEVSTATS_FETCH_TIMEOUT", "").strip()
    if not raw:
        return None
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid DEVSTATS_FETCH_TIMEOUT=%r", raw)
        return None


def fetch_csv_text(url: Optional[str] = None, *, timeout: Optional[float] = None) -> str:
    url = url or CSV_URL
    try:
        response = requests.get(url, timeout=timeout if timeout is not None else fetch_timeout())
        response.raise_for_status()
    except requests.exceptions.RequestException as exc:
        raise FetchError(f"Failed to fetch {url}: {exc}") from exc
    return response.text


@dataclass
class DashboardSession:
    """Full record set of one successful fetch, or the error that prevented it."""

    source_url: str
    records: pd.DataFrame = field(default_factory=lambda: pd.DataFrame(columns=EXPECTED_COLUMNS))
    error: Optional[str] = None
    loaded_at: Optional[datetime] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def options(self) -> Dict[str, List[str]]:
        return filter_options(self.records)


def session_from_text(text: str, source_url: str = "") -> DashboardSession:
    frame = records_to_frame(parse_csv(text))
    logger.info("Loaded %d device records from %s", len(frame), source_url or "text")
    return DashboardSession(source_url=source_url, records=frame, loaded_at=datetime.now())


def load_session(url: Optional[str] = None, *, fetch: Callable[[str], str] = fetch_csv_text) -> DashboardSession:
    url = url or CSV_URL
    try:
        text = fetch(url)
    except FetchError as exc:
        logger.exception("Loading device stats failed")
        return DashboardSession(source_url=url, error=str(exc))
    return session_from_text(text, source_url=url)


def prepare_context(
    filters: dict | FilterCriteria,
    session: DashboardSession,
    *,
    today: Optional[date] = None,
) -> Dict[str, object]:
    filt = filters if isinstance(filters, FilterCriteria) else normalize_criteria(filters)
    filtered = filter_records(session.records, filt, today=today)
    return {
        "filters": filt,
        "all_records": session.records,
        "filtered_records": filtered,
        "aggregates": compute_aggregates(filtered, top_n=TOP_N),
        "options": session.options,
    }
