"""
Timestamp normalisation for metering exports.

Every parser here returns a tz-aware ``pd.Timestamp`` in the reference zone
(``canon.DEFAULT_TZ`` unless overridden), or ``pd.NaT`` when the input can't be
resolved. Callers check ``is_valid`` before using a result; nothing in this
module raises on bad input.

Accepted encodings:
  - ``pd.Timestamp`` / ``datetime`` / ``np.datetime64`` (naive = local wall clock)
  - spreadsheet serial days since 1899-12-30, as numbers or numeric strings
  - ``dd-mm-yyyy hh:mm[:ss]`` with an optional ``" tot hh:mm"`` end marker
  - ISO-8601 text
"""

from __future__ import annotations

import math
import re
from datetime import datetime
from typing import Any, Iterable, Optional
from zoneinfo import ZoneInfo

import numpy as np
import pandas as pd

from . import canon

_SERIAL_RE = re.compile(r"^\d+(\.\d+)?$")
_LOCAL_RE = re.compile(
    r"^(\d{1,2})-(\d{1,2})-(\d{4})\s+(\d{1,2}):(\d{2})(?::(\d{2}))?"
    r"(?:\s+tot\s+\d{1,2}:\d{2}(?::\d{2})?)?$",
    re.IGNORECASE,
)
_ISO_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}"
    r"(?:[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d+)?)?)?"
    r"(?:Z|[+-]\d{2}(?::?\d{2})?)?$"
)
_SNAP = f"{canon.INTERVAL_MIN}min"


def _zone(tz: Optional[str]) -> ZoneInfo:
    return ZoneInfo(tz or canon.DEFAULT_TZ)


def _localize(naive: pd.Timestamp, tz: Optional[str]) -> pd.Timestamp:
    # Spring-forward gaps move to the first valid instant; the repeated autumn
    # hour resolves to its first (summer-time) occurrence.
    return naive.tz_localize(_zone(tz), ambiguous=True, nonexistent="shift_forward")


def _as_zone(ts: pd.Timestamp, tz: Optional[str]) -> pd.Timestamp:
    if ts.tz is None:
        return _localize(ts, tz)
    return ts.tz_convert(_zone(tz))


def _is_number(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return False
    return isinstance(value, (int, float, np.integer, np.floating))


def from_serial(value: float, tz: Optional[str] = None) -> pd.Timestamp:
    """Spreadsheet serial day count → local instant snapped to the quarter hour."""
    value = float(value)
    if not math.isfinite(value):
        return pd.NaT
    try:
        naive = canon.EXCEL_EPOCH + pd.to_timedelta(value, unit="D")
        # Serials drift by sub-second amounts (16:00 stored as 15:59:59.99994)
        return _localize(naive.round(_SNAP), tz)
    except (OverflowError, ValueError):
        return pd.NaT


def _from_local_text(match: re.Match, tz: Optional[str]) -> pd.Timestamp:
    day, month, year, hour, minute, second = match.groups()
    try:
        naive = pd.Timestamp(
            year=int(year),
            month=int(month),
            day=int(day),
            hour=int(hour),
            minute=int(minute),
            second=int(second or 0),
        )
    except ValueError:
        return pd.NaT
    return _localize(naive, tz)


def parse_timestamp(value: Any, tz: Optional[str] = None) -> pd.Timestamp:
    """Resolve one raw timestamp cell. Returns ``pd.NaT`` when unparseable."""
    if value is None or value is pd.NaT:
        return pd.NaT

    if isinstance(value, (datetime, np.datetime64)):
        ts = pd.Timestamp(value)
        if pd.isna(ts):
            return pd.NaT
        return _as_zone(ts, tz)

    if _is_number(value):
        return from_serial(value, tz)

    if not isinstance(value, str):
        return pd.NaT

    s = value.strip()
    if not s:
        return pd.NaT

    if _SERIAL_RE.match(s):
        return from_serial(float(s), tz)

    m = _LOCAL_RE.match(s)
    if m:
        return _from_local_text(m, tz)

    if _ISO_RE.match(s):
        try:
            ts = pd.Timestamp(s)
        except ValueError:
            return pd.NaT
        return _as_zone(ts, tz)

    return pd.NaT


def parse_many(values: Iterable[Any], tz: Optional[str] = None) -> pd.DatetimeIndex:
    """Vectorised ``parse_timestamp``; invalid cells become NaT."""
    parsed = [parse_timestamp(v, tz) for v in values]
    return pd.DatetimeIndex(pd.to_datetime(parsed, utc=True)).tz_convert(_zone(tz))


def is_valid(ts: Any) -> bool:
    return ts is not None and not pd.isna(ts)


def to_instant(ts: pd.Timestamp) -> pd.Timestamp:
    """Absolute instant (UTC) of a parsed timestamp."""
    if not is_valid(ts):
        return pd.NaT
    return _as_zone(pd.Timestamp(ts), None).tz_convert("UTC")


def local_day(ts: pd.Timestamp, tz: Optional[str] = None) -> Optional[str]:
    """Calendar day ``YYYY-MM-DD`` of the instant as seen in the reference zone."""
    if not is_valid(ts):
        return None
    return _as_zone(pd.Timestamp(ts), tz).strftime("%Y-%m-%d")


def local_hour_minute(ts: pd.Timestamp, tz: Optional[str] = None) -> Optional[tuple[int, int]]:
    if not is_valid(ts):
        return None
    local = _as_zone(pd.Timestamp(ts), tz)
    return local.hour, local.minute


def local_days(idx: pd.DatetimeIndex, tz: Optional[str] = None) -> np.ndarray:
    """Vectorised ``local_day`` over a tz-aware index."""
    idx = pd.DatetimeIndex(idx)
    if idx.tz is None:
        idx = idx.tz_localize(_zone(tz), ambiguous="infer", nonexistent="shift_forward")
    else:
        idx = idx.tz_convert(_zone(tz))
    return np.asarray(idx.strftime("%Y-%m-%d"), dtype=object)


def format_timestamp(value: Any, tz: Optional[str] = None) -> str:
    """``dd-mm-yyyy HH:MM`` in the reference zone, or ``-`` when invalid."""
    ts = parse_timestamp(value, tz)
    if not is_valid(ts):
        return "-"
    return ts.strftime("%d-%m-%Y %H:%M")
