from __future__ import annotations

import pandas as pd

from . import canon
from .exceptions import IntervalError, require


def assert_intervals(df: pd.DataFrame, *, processed: bool = False) -> None:
    """
    Check the interval frame invariants every downstream stage relies on.

    ``processed=True`` also requires the kW / excess columns added by
    ``transform.process_intervals``.
    """
    idx = df.index
    require(
        idx.name == canon.INDEX_NAME,
        f"Interval index must be named '{canon.INDEX_NAME}', got {idx.name!r}.",
        IntervalError,
    )
    require(
        isinstance(idx, pd.DatetimeIndex) and idx.tz is not None,
        "Interval index must be a tz-aware DatetimeIndex.",
        IntervalError,
    )

    required = canon.PROCESSED_COLS if processed else ["kwh"]
    missing = [c for c in required if c not in df.columns]
    require(not missing, f"Missing interval column(s): {', '.join(missing)}.", IntervalError)

    require(idx.is_monotonic_increasing, "Intervals must be in t_start order.", IntervalError)
    n_negative = int((df["kwh"] < 0).sum())
    require(
        n_negative == 0,
        f"{n_negative} interval(s) with negative kWh; interval energy is never negative.",
        IntervalError,
    )
