from __future__ import annotations

import logging
import math
from typing import Optional, Sequence

import numpy as np

from . import canon, catalog, exceptions, transform
from .types import IntervalFrame, Method, PeakEvent, SizingResult

logger = logging.getLogger(__name__)


def percentile(values: Sequence[float], p: float) -> float:
    """Ceiling-rank percentile: sorted[ceil(p/100 * n) - 1], clamped to range."""
    if len(values) == 0:
        return 0.0
    ordered = np.sort(np.asarray(values, dtype=float))
    idx = math.ceil((p / 100.0) * len(ordered)) - 1
    return float(ordered[max(0, min(idx, len(ordered) - 1))])


def _largest_event(events: Sequence[PeakEvent]) -> tuple[float, float]:
    if not events:
        return 0.0, 0.0
    # max() keeps the first of equal events, matching a stable sort
    top = max(events, key=lambda e: e.total_excess_kwh)
    return top.total_excess_kwh, top.max_excess_kw


def _worst_day(
    df: IntervalFrame, days: Optional[transform.DayIndex], tz: Optional[str] = None
) -> tuple[float, float]:
    if len(df) == 0:
        return 0.0, 0.0
    days = transform.day_index(df, tz) if days is None else days
    excess_kwh = df["excess_kwh"].to_numpy(dtype=float)
    excess_kw = df["excess_kw"].to_numpy(dtype=float)

    max_day_kwh = 0.0
    max_day_kw = 0.0
    for pos in days.values():
        day_kwh = float(excess_kwh[pos].sum())
        if day_kwh > max_day_kwh:
            max_day_kwh = day_kwh
            max_day_kw = float(excess_kw[pos].max())
    return max_day_kwh, max_day_kw


def raw_requirement(
    df: IntervalFrame,
    events: Sequence[PeakEvent],
    method: Method,
    *,
    days: Optional[transform.DayIndex] = None,
    tz: Optional[str] = None,
) -> tuple[float, float]:
    """(kWh, kW) the chosen method asks for, before compliance and margins."""
    if method == "MAX_PEAK":
        return _largest_event(events)
    if method == "P95":
        # too few events for a stable percentile
        if len(events) < canon.P95_MIN_EVENTS:
            return _largest_event(events)
        return (
            percentile([e.total_excess_kwh for e in events], 95),
            percentile([e.max_excess_kw for e in events], 95),
        )
    if method == "FULL_COVERAGE":
        return _worst_day(df, days, tz)
    raise exceptions.ConfigError(f"Unknown sizing method: {method!r}")


def compute_sizing(
    df: IntervalFrame,
    events: Sequence[PeakEvent],
    method: Method,
    *,
    compliance: float,
    safety_factor: float,
    efficiency: float,
    days: Optional[transform.DayIndex] = None,
    tz: Optional[str] = None,
) -> SizingResult:
    """
    Required storage for a processed series and its events.

    The raw requirement is scaled in three separate, auditable steps:
      raw    *= compliance                (share of exceedance to shave)
      kwh     = raw_kwh / efficiency * safety_factor
      kw      = raw_kw * safety_factor
    The final kWh is handed to the cost optimizer; raises
    NoFeasibleBatteryError only for a non-finite requirement.
    """
    exceptions.require(efficiency > 0, "efficiency must be > 0", exceptions.ConfigError)
    exceptions.require(safety_factor > 0, "safety_factor must be > 0", exceptions.ConfigError)

    kwh_raw, kw_raw = raw_requirement(df, events, method, days=days, tz=tz)
    kwh_raw *= compliance
    kw_raw *= compliance

    kwh_needed = (kwh_raw / efficiency) * safety_factor
    kw_needed = kw_raw * safety_factor

    recommended, alternative = catalog.select_minimum_cost_options(kwh_needed)
    logger.debug(
        "%s sizing: raw %.2f kWh / %.2f kW → %.2f kWh / %.2f kW, recommend %s",
        method,
        kwh_raw,
        kw_raw,
        kwh_needed,
        kw_needed,
        recommended.label,
    )
    return SizingResult(
        method=method,
        kwh_needed_raw=kwh_raw,
        kw_needed_raw=kw_raw,
        kwh_needed=kwh_needed,
        kw_needed=kw_needed,
        recommended_product=recommended,
        alternative_product=alternative,
    )
