from __future__ import annotations

import logging

import pandas as pd

from . import validate
from .types import IntervalFrame, PeakEvent

logger = logging.getLogger(__name__)


def group_peak_events(df: IntervalFrame) -> list[PeakEvent]:
    """
    Partition a processed series into peak events.

    An event is a maximal run of consecutive intervals with excess_kw > 0; a
    single non-exceeding interval always closes it. Within a run the peak is
    the largest excess, with the earliest instant winning ties.
    """
    validate.assert_intervals(df, processed=True)

    idx = pd.DatetimeIndex(df.index)
    excess_kw = df["excess_kw"].to_numpy(dtype=float)
    excess_kwh = df["excess_kwh"].to_numpy(dtype=float)

    events: list[PeakEvent] = []
    run: list[int] = []
    peak_pos = -1
    total_kwh = 0.0

    def close() -> None:
        events.append(
            PeakEvent(
                start=idx[run[0]],
                end=idx[run[-1]],
                peak_timestamp=idx[peak_pos],
                duration_intervals=len(run),
                max_excess_kw=float(excess_kw[peak_pos]),
                total_excess_kwh=total_kwh,
                interval_indexes=tuple(run),
            )
        )

    for i in range(len(excess_kw)):
        if excess_kw[i] > 0:
            if not run:
                peak_pos = i
                total_kwh = 0.0
            elif excess_kw[i] > excess_kw[peak_pos]:
                peak_pos = i
            elif excess_kw[i] == excess_kw[peak_pos] and idx[i] < idx[peak_pos]:
                peak_pos = i
            run.append(i)
            total_kwh += float(excess_kwh[i])
        elif run:
            close()
            run = []

    if run:
        close()

    logger.debug("Grouped %d peak event(s) from %d intervals", len(events), len(excess_kw))
    return events
