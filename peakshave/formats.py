from __future__ import annotations

import dataclasses
import math
from typing import Any

import numpy as np
import pandas as pd

from . import canon
from .types import AnalysisResult, ScenarioResult


def _plain(value: Any) -> Any:
    """Recursively convert engine values into JSON-ready builtins."""
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    if isinstance(value, pd.DataFrame):
        return frame_to_records(value)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, dict):
        return {str(k): _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    if isinstance(value, (np.bool_, bool)):
        return bool(value)
    if isinstance(value, (np.integer,)):
        return int(value)
    if isinstance(value, (np.floating, float)):
        v = float(value)
        return None if math.isnan(v) else v
    return value


def frame_to_records(df: pd.DataFrame) -> list[dict[str, Any]]:
    """Interval-style frame → list of dicts with an ISO 't_start' per row."""
    if len(df) == 0:
        return []
    out = df.reset_index()
    records = out.to_dict(orient="records")
    return [{str(k): _plain(v) for k, v in r.items()} for r in records]


def intervals_to_records(df: pd.DataFrame) -> list[dict[str, Any]]:
    """Processed intervals with the timestamp under canon.INDEX_NAME."""
    df = df.copy()
    df.index.name = canon.INDEX_NAME
    return frame_to_records(df)


def scenario_to_payload(result: ScenarioResult, *, include_series: bool = True) -> dict[str, Any]:
    payload = _plain(result)
    if not include_series:
        payload.pop("shaved_series", None)
    return payload


def to_payload(result: AnalysisResult, *, include_series: bool = True) -> dict[str, Any]:
    """
    Whole analysis result as plain dicts/lists, ready for json.dumps.

    ``include_series=False`` drops the per-interval arrays (intervals and the
    per-scenario shaved series) for compact summaries.
    """
    payload = {
        "intervals": intervals_to_records(result.intervals) if include_series else [],
        "events": _plain(result.events),
        "sizing": _plain(result.sizing),
        "scenarios": [
            scenario_to_payload(s, include_series=include_series) for s in result.scenarios
        ],
        "quality": _plain(result.quality),
        "normalization": _plain(result.normalization),
        "max_observation": _plain(result.max_observation),
        "highest_peak_day": result.highest_peak_day,
        "top_exceeded_intervals": _plain(result.top_exceeded_intervals),
        "exceedance_intervals": int(result.exceedance_intervals),
    }
    return payload
