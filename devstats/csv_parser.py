from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional

import pandas as pd

logger = logging.getLogger(__name__)

Record = Dict[str, str]

EXPECTED_COLUMNS = [
    "date",
    "device_id",
    "open_count",
    "device_model",
    "android_version",
    "country",
    "manufacturer",
    "report_time",
]
REQUIRED_COLUMNS = ["date", "device_id", "open_count"]

# One field: a quoted run (with "" escapes) or anything up to the next comma,
# followed by the separator or end of line.
FIELD_RE = re.compile(r'\s*("(?:[^"]|"")*"|[^,]*)\s*(,|$)')
INT_PREFIX_RE = re.compile(r"^\s*([+-]?[0-9]+)")


def strip_quotes(value: str) -> str:
    value = value.strip()
    quoted = len(value) >= 2 and value.startswith('"') and value.endswith('"')
    value = re.sub(r'^"|"$', "", value)
    if quoted:
        value = value.replace('""', '"')
    return value


def split_fields(line: str) -> List[str]:
    """Tokenize one CSV line. Empty fields stay in place as ``""``."""
    fields: List[str] = []
    pos = 0
    while pos <= len(line):
        match = FIELD_RE.match(line, pos)
        if match is None:
            break
        fields.append(strip_quotes(match.group(1)))
        if match.group(2) != ",":
            break
        pos = match.end()
    return fields


def parse_csv(text: Optional[str]) -> List[Record]:
    """Parse raw CSV text into header-keyed records.

    The first non-blank line is the header. Rows shorter than the header are
    padded with empty strings, extra tokens are ignored and a duplicated header
    name takes the value of its last column.
    """
    if not text:
        return []
    lines = [line.rstrip("\r") for line in text.split("\n")]
    lines = [line for line in lines if line.strip() != ""]
    if len(lines) < 2:
        return []

    headers = split_fields(lines[0])
    records: List[Record] = []
    for line in lines[1:]:
        values = split_fields(line)
        entry: Record = {}
        for i, header in enumerate(headers):
            entry[header] = values[i] if i < len(values) else ""
        records.append(entry)
    return records


def parse_open_count(value: object) -> int:
    """Read the leading integer of ``value``; anything else counts as 0."""
    if value is None:
        return 0
    match = INT_PREFIX_RE.match(str(value))
    if not match:
        return 0
    return max(0, int(match.group(1)))


def has_required_fields(record: Record) -> bool:
    return all(record.get(col) for col in REQUIRED_COLUMNS)


def records_to_frame(records: Iterable[Record]) -> pd.DataFrame:
    """Build the working set: required fields present, every expected column as ``str``."""
    records = list(records)
    kept = [r for r in records if has_required_fields(r)]
    dropped = len(records) - len(kept)
    if dropped:
        logger.info("Dropped %d records missing date, device_id or open_count", dropped)

    columns: List[str] = list(EXPECTED_COLUMNS)
    for r in kept:
        columns.extend(c for c in r if c not in columns)
    df = pd.DataFrame.from_records(kept, columns=columns)
    df = df.fillna("").astype(str)

    coerced = sum(1 for v in df["open_count"] if not INT_PREFIX_RE.match(v))
    if coerced:
        logger.debug("%d records have a non-numeric open_count; counted as 0", coerced)
    return df.reset_index(drop=True)
