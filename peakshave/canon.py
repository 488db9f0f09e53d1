from __future__ import annotations
from typing import Final

import pandas as pd

INDEX_NAME: Final[str] = "t_start"
DEFAULT_TZ: Final[str] = "Europe/Amsterdam"
INTERVAL_MIN: Final[int] = 15
INTERVAL_H: Final[float] = INTERVAL_MIN / 60.0
SLOTS_PER_DAY: Final[int] = 1440 // INTERVAL_MIN

# Spreadsheet serial day zero (Lotus/Excel 1900 system with the leap-year bug folded in)
EXCEL_EPOCH: Final[pd.Timestamp] = pd.Timestamp("1899-12-30")

# Normalized interval frame
NORMALIZED_COLS: Final[list[str]] = ["kwh", "export_kwh", "pv_kwh"]
# Processed interval frame
PROCESSED_COLS: Final[list[str]] = NORMALIZED_COLS + ["kw", "excess_kw", "excess_kwh"]

# Raw row keys accepted by ingest
RAW_KEYS: Final[tuple[str, ...]] = ("timestamp", "consumption_kwh", "export_kwh", "pv_kwh")

DEFAULT_OUTLIER_KW_THRESHOLD: Final[float] = 5000.0
DEFAULT_HUGE_KWH_THRESHOLD: Final[float] = 1000.0

# AUTO interpretation thresholds
CUMULATIVE_NON_DECREASING_FRACTION: Final[float] = 0.98
CUMULATIVE_HUGE_FRACTION: Final[float] = 0.001

P95_MIN_EVENTS: Final[int] = 20
QUALITY_EPSILON_MIN: Final[float] = 0.01

# Residual excess below this is float noise, not an exceedance
EXCESS_TOLERANCE_KW: Final[float] = 1e-9
