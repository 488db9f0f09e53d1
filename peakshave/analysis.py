from __future__ import annotations

import logging
from typing import Iterable, Optional

from . import events as events_mod
from . import ingest, normalize, quality, scenario, sizing, transform
from .config import AnalysisSettings, default_settings
from .types import AnalysisResult

logger = logging.getLogger(__name__)


def run(
    rows: Iterable[ingest.RawRow],
    settings: Optional[AnalysisSettings] = None,
) -> AnalysisResult:
    """
    One full, synchronous analysis pass over column-mapped rows.

    parse → normalize → process → {events, quality} → sizing → cost search →
    scenario simulation. Bad rows, outliers and empty data end up in the
    diagnostics; only invalid settings or an infeasible battery requirement
    raise.
    """
    cfg = settings or default_settings()
    tz = cfg.timezone
    rows = list(rows)

    prepared, invalid = ingest.prepare_rows(rows, tz=tz)
    report = quality.build_quality_report(prepared.index, tz=tz)
    normalized, diagnostics = normalize.normalize_frame(
        prepared, cfg.normalize_options(), rows_total=len(rows), invalid_rows=invalid
    )

    intervals = transform.process_intervals(normalized, cfg.contracted_power_kw)
    days = transform.day_index(intervals, tz)
    peak_events = events_mod.group_peak_events(intervals)

    result = sizing.compute_sizing(
        intervals,
        peak_events,
        cfg.method,
        compliance=cfg.compliance,
        safety_factor=cfg.safety_factor,
        efficiency=cfg.efficiency,
        days=days,
        tz=tz,
    )

    scenarios = []
    if cfg.include_scenarios and len(intervals):
        scenarios = scenario.simulate_all_scenarios(
            intervals,
            cfg.contracted_power_kw,
            result.kw_needed,
            result.kwh_needed,
            cfg.simulation_config(),
            max_total_options=cfg.max_scenario_options,
            days=days,
            tz=tz,
        )

    highest_day = transform.find_highest_peak_day(intervals, days) if len(intervals) else None
    logger.info(
        "Analysed %d/%d rows: %d event(s), %s needs %.1f kWh / %.1f kW",
        diagnostics.rows_used,
        diagnostics.rows_total,
        len(peak_events),
        cfg.method,
        result.kwh_needed,
        result.kw_needed,
    )

    return AnalysisResult(
        intervals=intervals,
        events=tuple(peak_events),
        sizing=result,
        scenarios=tuple(scenarios),
        quality=report,
        normalization=diagnostics,
        max_observation=transform.find_max_observed(intervals),
        highest_peak_day=highest_day,
        top_exceeded_intervals=tuple(
            transform.top_exceeded_intervals(intervals, highest_day, tz=tz, days=days)
        ),
        exceedance_intervals=transform.exceedance_count(intervals),
    )
