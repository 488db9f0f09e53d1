from __future__ import annotations

from typing import Optional

import numpy as np
import pandas as pd

from . import canon, exceptions, timestamps, validate
from .types import ExceededInterval, IntervalFrame, MaxObservation

# Ordered local day → positional indices into an interval frame
DayIndex = dict[str, np.ndarray]


def process_intervals(
    df: IntervalFrame,
    contracted_power_kw: float,
    *,
    interval_h: float = canon.INTERVAL_H,
) -> IntervalFrame:
    """
    Add instantaneous power and excess over the contracted limit.

      kw         = kwh / interval_h
      excess_kw  = max(0, kw - contracted_power_kw)
      excess_kwh = excess_kw * interval_h

    Pure and order-preserving; the input frame is not modified.
    """
    exceptions.require(
        contracted_power_kw > 0, "contracted_power_kw must be > 0", exceptions.ConfigError
    )
    validate.assert_intervals(df)

    kw = df["kwh"].to_numpy(dtype=float) / interval_h
    excess_kw = np.maximum(0.0, kw - contracted_power_kw)
    out = df.assign(kw=kw, excess_kw=excess_kw, excess_kwh=excess_kw * interval_h)
    return IntervalFrame(out)


def day_index(df: pd.DataFrame, tz: Optional[str] = None) -> DayIndex:
    """
    Group interval positions by local calendar day in one pass.

    Days appear in chronological order. Built once per run and shared by
    sizing and simulation.
    """
    if len(df) == 0:
        return {}
    labels = timestamps.local_days(pd.DatetimeIndex(df.index), tz)
    groups = pd.Series(np.arange(len(labels))).groupby(labels, sort=False).indices
    return {day: np.asarray(groups[day]) for day in pd.unique(labels)}


def find_max_observed(df: IntervalFrame) -> MaxObservation:
    """Highest observed kW; ties resolve to the earliest instant."""
    if len(df) == 0:
        return MaxObservation(max_observed_kw=0.0, max_observed_at=None)
    kw = df["kw"].to_numpy(dtype=float)
    # argmax returns the first occurrence and the frame is sorted
    pos = int(np.argmax(kw))
    return MaxObservation(max_observed_kw=float(kw[pos]), max_observed_at=df.index[pos])


def find_highest_peak_day(
    df: IntervalFrame, days: Optional[DayIndex] = None, *, tz: Optional[str] = None
) -> Optional[str]:
    """Local day with the largest summed excess kW (first day wins ties)."""
    days = day_index(df, tz) if days is None else days
    excess = df["excess_kw"].to_numpy(dtype=float)
    best_day: Optional[str] = None
    best_total = -1.0
    for day, pos in days.items():
        total = float(excess[pos].sum())
        if total > best_total:
            best_total = total
            best_day = day
    return best_day


def top_exceeded_intervals(
    df: IntervalFrame,
    day: Optional[str],
    limit: int = 20,
    *,
    tz: Optional[str] = None,
    days: Optional[DayIndex] = None,
) -> list[ExceededInterval]:
    """
    Exceeding intervals of one local day, by excess desc then instant asc.

    Pass the run's ``days`` index to reuse its grouping; otherwise days are
    labelled in ``tz``.
    """
    if not day or len(df) == 0:
        return []
    days = day_index(df, tz) if days is None else days
    excess = df["excess_kw"].to_numpy(dtype=float)
    kw = df["kw"].to_numpy(dtype=float)

    in_day = np.asarray(days.get(day, []), dtype=int)
    pos = in_day[excess[in_day] > 0]
    order = pos[np.lexsort((pos, -excess[pos]))]
    return [
        ExceededInterval(timestamp=df.index[i], kw=float(kw[i]), excess_kw=float(excess[i]))
        for i in order[:limit]
    ]


def day_profile(df: IntervalFrame, day: str, *, tz: Optional[str] = None) -> pd.DataFrame:
    """
    Quarter-hour kW profile of one local day: 96 slots labelled 'HH:MM'.

    Slots without data are 0. On the autumn DST day two intervals share a
    wall-clock slot; the higher kW is kept.
    """
    slot_kw = np.zeros(canon.SLOTS_PER_DAY, dtype=float)
    if len(df):
        idx = pd.DatetimeIndex(df.index)
        local = idx.tz_convert(tz or canon.DEFAULT_TZ)
        mask = timestamps.local_days(idx, tz) == day
        if mask.any():
            minutes = local.hour[mask] * 60 + local.minute[mask]
            slots = np.asarray(minutes // canon.INTERVAL_MIN, dtype=int)
            np.maximum.at(slot_kw, slots, df["kw"].to_numpy(dtype=float)[mask])

    labels = [
        f"{(i * canon.INTERVAL_MIN) // 60:02d}:{(i * canon.INTERVAL_MIN) % 60:02d}"
        for i in range(canon.SLOTS_PER_DAY)
    ]
    return pd.DataFrame({"slot": labels, "kw": slot_kw})


def exceedance_count(df: IntervalFrame) -> int:
    if len(df) == 0:
        return 0
    return int(np.count_nonzero(df["excess_kw"].to_numpy(dtype=float) > 0))
