"""
Series normalisation: decide whether a measurement column holds per-interval
energy or cumulative meter readings, convert it to per-interval kWh, and drop
samples that can't be real (negative energy, physically implausible power).

Nothing here raises on messy data. Every dropped or clamped sample is counted
in ``NormalizationDiagnostics`` so the caller can show what happened.
"""

from __future__ import annotations

import logging
from typing import Iterable, Optional

import numpy as np

from . import canon, ingest
from .config import NormalizeOptions
from .types import (
    Interpretation,
    InterpretationMode,
    IntervalFrame,
    NormalizationDiagnostics,
)

logger = logging.getLogger(__name__)


def resolve_interpretation(
    values: np.ndarray,
    mode: InterpretationMode = "AUTO",
    huge_kwh_threshold: float = canon.DEFAULT_HUGE_KWH_THRESHOLD,
) -> tuple[Interpretation, float, float, float]:
    """
    Returns (interpretation_used, fraction_non_decreasing, median_delta, fraction_huge_values).

    AUTO picks CUMULATIVE_DELTA when the readings almost never go down and
    typically go up, or when any meaningful share of them is too large to be a
    quarter-hour of energy. The statistics are returned for every mode so they
    can be shown next to an explicit choice.
    """
    values = np.asarray(values, dtype=float)
    n = len(values)

    if n < 2:
        used: Interpretation = "CUMULATIVE_DELTA" if mode == "CUMULATIVE_DELTA" else "INTERVAL"
        huge = 1.0 if n == 1 and values[0] > huge_kwh_threshold else 0.0
        return used, 0.0, 0.0, huge

    deltas = np.diff(values)
    fraction_non_decreasing = float(np.count_nonzero(deltas >= 0) / (n - 1))
    median_delta = float(np.median(deltas))
    fraction_huge = float(np.count_nonzero(values > huge_kwh_threshold) / n)

    if mode == "INTERVAL" or mode == "CUMULATIVE_DELTA":
        return mode, fraction_non_decreasing, median_delta, fraction_huge

    looks_cumulative = (
        fraction_non_decreasing > canon.CUMULATIVE_NON_DECREASING_FRACTION
        and median_delta >= 0
    ) or fraction_huge > canon.CUMULATIVE_HUGE_FRACTION
    used = "CUMULATIVE_DELTA" if looks_cumulative else "INTERVAL"
    return used, fraction_non_decreasing, median_delta, fraction_huge


def to_interval_energy(
    values: np.ndarray, interpretation: Interpretation, allow_negative_deltas: bool = False
) -> tuple[np.ndarray, int]:
    """
    Per-interval kWh for each reading, plus the number of clamped negative deltas.

    Cumulative readings become first differences; the first reading has no
    baseline and contributes 0.
    """
    values = np.asarray(values, dtype=float)
    if interpretation == "INTERVAL" or len(values) == 0:
        return values.copy(), 0

    energy = np.diff(values, prepend=values[0])
    negative = energy < 0
    n_negative = 0
    if not allow_negative_deltas:
        n_negative = int(np.count_nonzero(negative))
        energy[negative] = 0.0
    return energy, n_negative


def normalize_frame(
    prepared: IntervalFrame,
    options: Optional[NormalizeOptions] = None,
    *,
    rows_total: Optional[int] = None,
    invalid_rows: int = 0,
) -> tuple[IntervalFrame, NormalizationDiagnostics]:
    """Normalize an already parsed and sorted frame (see ``ingest.prepare_rows``)."""
    opts = options or NormalizeOptions()
    interval_h = opts.interval_minutes / 60.0
    rows_total = len(prepared) + invalid_rows if rows_total is None else rows_total

    values = prepared["kwh"].to_numpy(dtype=float)
    used, frac_nd, med_delta, frac_huge = resolve_interpretation(
        values, opts.interpretation_mode, opts.huge_kwh_threshold
    )
    energy, n_negative_deltas = to_interval_energy(values, used, opts.allow_negative_deltas)

    negative = energy < 0
    kw = energy / interval_h
    outlier = (kw > opts.outlier_kw_threshold) & ~negative
    keep = ~negative & ~outlier

    n_outliers = int(np.count_nonzero(outlier))
    max_outlier_kw = float(kw[outlier].max()) if n_outliers else None
    first_outlier = prepared.index[np.flatnonzero(outlier)[0]] if n_outliers else None

    out = prepared.assign(kwh=energy)[keep]
    logger.debug(
        "Normalized %d/%d rows as %s (requested %s)",
        len(out),
        rows_total,
        used,
        opts.interpretation_mode,
    )

    warnings: list[str] = []
    if invalid_rows:
        warnings.append(f"{invalid_rows} row(s) with unparseable timestamp or value skipped.")
    if n_negative_deltas:
        warnings.append(f"{n_negative_deltas} negative delta(s) set to 0.")
        logger.info("Clamped %d negative cumulative delta(s) to 0", n_negative_deltas)
    n_negative_values = int(np.count_nonzero(negative))
    if n_negative_values:
        warnings.append(f"{n_negative_values} negative interval value(s) excluded.")
    if n_outliers:
        warnings.append(
            f"{n_outliers} outlier(s) above {opts.outlier_kw_threshold:g} kW excluded."
        )
        logger.info("Excluded %d outlier(s), max %.1f kW", n_outliers, max_outlier_kw)
    if len(out) == 0:
        warnings.append("No usable rows after normalization.")
        logger.warning("No usable rows after normalization (%d input rows)", rows_total)

    diagnostics = NormalizationDiagnostics(
        interpretation_requested=opts.interpretation_mode,
        interpretation_used=used,
        rows_total=int(rows_total),
        rows_used=int(len(out)),
        invalid_rows=int(invalid_rows),
        count_outliers=n_outliers,
        max_outlier_kw=max_outlier_kw,
        first_outlier_timestamp=first_outlier,
        negative_delta_count=n_negative_deltas,
        negative_values_dropped=n_negative_values,
        fraction_non_decreasing=frac_nd,
        median_delta=med_delta,
        fraction_huge_values=frac_huge,
        warnings=tuple(warnings),
    )
    return out, diagnostics


def normalize_consumption(
    rows: Iterable[ingest.RawRow], options: Optional[NormalizeOptions] = None
) -> tuple[IntervalFrame, NormalizationDiagnostics]:
    """Raw measurement rows → per-interval kWh frame plus diagnostics."""
    opts = options or NormalizeOptions()
    rows = list(rows)
    prepared, invalid = ingest.prepare_rows(rows, tz=opts.tz)
    return normalize_frame(prepared, opts, rows_total=len(rows), invalid_rows=invalid)
