from __future__ import annotations

from typing import Iterable
from zoneinfo import ZoneInfo

import numpy as np
import pandas as pd

from . import canon
from .types import DataQualityReport


def build_quality_report(
    instants: Iterable[pd.Timestamp] | pd.DatetimeIndex,
    *,
    nominal_minutes: float = canon.INTERVAL_MIN,
    epsilon_minutes: float = canon.QUALITY_EPSILON_MIN,
    tz: str = canon.DEFAULT_TZ,
) -> DataQualityReport:
    """
    Audit timestamp health independently of normalisation.

    - duplicates: exact repeated instants
    - non-nominal transitions: consecutive deltas off the nominal cadence by more
      than ``epsilon_minutes`` (sub-second drift from spreadsheet serials is fine)
    - missing intervals: round(delta / nominal) - 1 for every gap longer than nominal
    """
    idx = pd.DatetimeIndex(pd.to_datetime(list(instants), utc=True))
    rows = len(idx)
    if rows == 0:
        return DataQualityReport(
            rows=0,
            start_date=None,
            end_date=None,
            missing_intervals_count=0,
            duplicate_count=0,
            non_nominal_intervals=0,
            warnings=("No rows found in dataset.",),
        )

    valid = idx[~idx.isna()].sort_values().tz_convert(ZoneInfo(tz))
    duplicate_count = int(len(valid) - valid.nunique())

    diffs_min = np.diff(valid.asi8) / 6e10 if len(valid) > 1 else np.array([], dtype=float)
    off_nominal = np.abs(diffs_min - nominal_minutes) > epsilon_minutes
    non_nominal = int(np.count_nonzero(off_nominal))

    gaps = diffs_min[off_nominal & (diffs_min > nominal_minutes)]
    # half-up rounding
    missing = np.maximum(0, np.floor(gaps / nominal_minutes + 0.5) - 1)
    missing_intervals = int(missing.sum())

    warnings: list[str] = []
    if duplicate_count > 0:
        warnings.append(f"Detected {duplicate_count} duplicate timestamps.")
    if non_nominal > 0:
        warnings.append(
            f"Detected {non_nominal} non-{nominal_minutes:g}-minute interval transitions."
        )
    if missing_intervals > 0:
        warnings.append(f"Estimated {missing_intervals} missing interval(s).")
    if len(valid) < rows:
        warnings.append(f"{rows - len(valid)} row(s) without a valid timestamp.")

    return DataQualityReport(
        rows=rows,
        start_date=valid[0] if len(valid) else None,
        end_date=valid[-1] if len(valid) else None,
        missing_intervals_count=missing_intervals,
        duplicate_count=duplicate_count,
        non_nominal_intervals=non_nominal,
        warnings=tuple(warnings),
    )
