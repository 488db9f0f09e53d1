from __future__ import annotations

import logging
import math
from dataclasses import asdict
from typing import Any, Iterable, Mapping, Optional, Union
from zoneinfo import ZoneInfo

import numpy as np
import pandas as pd

from . import canon, timestamps
from .types import IntervalFrame, RawMeasurement

logger = logging.getLogger(__name__)

RawRow = Union[RawMeasurement, Mapping[str, Any]]


def parse_number(value: Any) -> tuple[float, bool]:
    """
    Explicit, fallible numeric parse for one cell.

    Returns (value, valid). Booleans, blanks, NaN/inf and junk are invalid.
    Strings may use a decimal comma ("12,5") when no decimal point is present.
    """
    if value is None or isinstance(value, (bool, np.bool_)):
        return math.nan, False
    if isinstance(value, (int, float, np.integer, np.floating)):
        v = float(value)
        return (v, True) if math.isfinite(v) else (math.nan, False)
    if not isinstance(value, str):
        return math.nan, False

    s = value.strip()
    if not s:
        return math.nan, False
    if "," in s and "." not in s:
        s = s.replace(",", ".")
    try:
        v = float(s)
    except ValueError:
        return math.nan, False
    return (v, True) if math.isfinite(v) else (math.nan, False)


def _row_dict(row: RawRow) -> Mapping[str, Any]:
    if isinstance(row, RawMeasurement):
        return asdict(row)
    return row


def _optional(value: Any) -> float:
    v, ok = parse_number(value)
    return v if ok else math.nan


def empty_frame(tz: str = canon.DEFAULT_TZ) -> IntervalFrame:
    """Empty normalized frame with the right tz-aware index and columns."""
    idx = pd.DatetimeIndex([], tz=ZoneInfo(tz), name=canon.INDEX_NAME)
    return IntervalFrame(
        {c: pd.Series([], index=idx, dtype=float) for c in canon.NORMALIZED_COLS},
        index=idx,
    )


def prepare_rows(
    rows: Iterable[RawRow], *, tz: str = canon.DEFAULT_TZ
) -> tuple[IntervalFrame, int]:
    """
    Parse raw rows into a normalized frame sorted by instant.

    Rows whose timestamp or consumption can't be resolved are dropped and
    counted; the caller reports them as diagnostics. Optional export/PV cells
    that don't parse become NaN. Sorting is stable, so duplicate instants keep
    their input order.
    """
    stamps: list[pd.Timestamp] = []
    kwh: list[float] = []
    export: list[float] = []
    pv: list[float] = []
    invalid = 0

    for raw in rows:
        row = _row_dict(raw)
        ts = timestamps.parse_timestamp(row.get("timestamp"), tz)
        value, ok = parse_number(row.get("consumption_kwh"))
        if not ok or not timestamps.is_valid(ts):
            invalid += 1
            continue
        stamps.append(ts)
        kwh.append(value)
        export.append(_optional(row.get("export_kwh")))
        pv.append(_optional(row.get("pv_kwh")))

    if invalid:
        logger.info("Dropped %d row(s) with unparseable timestamp or consumption", invalid)

    if not stamps:
        return empty_frame(tz), invalid

    idx = pd.DatetimeIndex(pd.to_datetime(stamps, utc=True)).tz_convert(ZoneInfo(tz))
    idx.name = canon.INDEX_NAME
    df = IntervalFrame(
        {"kwh": kwh, "export_kwh": export, "pv_kwh": pv},
        index=idx,
        dtype=float,
    )
    return df.sort_index(kind="mergesort"), invalid


def from_dataframe(df: pd.DataFrame, *, tz: str = canon.DEFAULT_TZ) -> tuple[IntervalFrame, int]:
    """
    Adapt an already column-mapped DataFrame.

    The timestamp is taken from a 'timestamp' column or, failing that, from the
    index. Consumption must be in 'consumption_kwh'.
    """
    if "consumption_kwh" not in df.columns:
        raise ValueError("Missing required column: consumption_kwh")

    if "timestamp" in df.columns:
        ts = df["timestamp"].tolist()
    else:
        ts = list(df.index)

    def col(name: str) -> list[Any]:
        return df[name].tolist() if name in df.columns else [None] * len(df)

    rows = [
        {"timestamp": t, "consumption_kwh": c, "export_kwh": e, "pv_kwh": p}
        for t, c, e, p in zip(ts, col("consumption_kwh"), col("export_kwh"), col("pv_kwh"))
    ]
    return prepare_rows(rows, tz=tz)
