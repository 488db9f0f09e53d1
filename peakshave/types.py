from __future__ import annotations
from typing import Literal, Optional, Any
from dataclasses import dataclass, field

import pandas as pd

Method = Literal["MAX_PEAK", "P95", "FULL_COVERAGE"]
InterpretationMode = Literal["AUTO", "INTERVAL", "CUMULATIVE_DELTA"]
Interpretation = Literal["INTERVAL", "CUMULATIVE_DELTA"]


# Interval frame
class IntervalFrame(pd.DataFrame):
    """
    Interval dataframe shared by every stage.

    Expected:
      - DatetimeIndex named 't_start', tz-aware (reference zone), non-decreasing
      - Columns: ['kwh', 'export_kwh', 'pv_kwh'] once normalized
      - plus ['kw', 'excess_kw', 'excess_kwh'] once processed
    """

    @property
    def _constructor(self):
        return IntervalFrame

    @property
    def kwh(self) -> pd.Series:
        return self["kwh"]

    @property
    def kw(self) -> pd.Series:
        return self["kw"]

    @property
    def excess_kw(self) -> pd.Series:
        return self["excess_kw"]

    @property
    def excess_kwh(self) -> pd.Series:
        return self["excess_kwh"]


## Input
@dataclass(frozen=True)
class RawMeasurement:
    timestamp: Any  # str, spreadsheet serial, datetime or pd.Timestamp
    consumption_kwh: Any
    export_kwh: Any = None
    pv_kwh: Any = None


## Diagnostics
@dataclass(frozen=True)
class NormalizationDiagnostics:
    interpretation_requested: InterpretationMode
    interpretation_used: Interpretation
    rows_total: int
    rows_used: int
    invalid_rows: int
    count_outliers: int
    max_outlier_kw: Optional[float]
    first_outlier_timestamp: Optional[pd.Timestamp]
    negative_delta_count: int
    negative_values_dropped: int
    fraction_non_decreasing: float
    median_delta: float
    fraction_huge_values: float
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class DataQualityReport:
    rows: int
    start_date: Optional[pd.Timestamp]
    end_date: Optional[pd.Timestamp]
    missing_intervals_count: int
    duplicate_count: int
    non_nominal_intervals: int
    warnings: tuple[str, ...] = ()


## Events
@dataclass(frozen=True)
class PeakEvent:
    start: pd.Timestamp
    end: pd.Timestamp
    peak_timestamp: pd.Timestamp
    duration_intervals: int
    max_excess_kw: float
    total_excess_kwh: float
    interval_indexes: tuple[int, ...]


@dataclass(frozen=True)
class MaxObservation:
    max_observed_kw: float
    max_observed_at: Optional[pd.Timestamp]


@dataclass(frozen=True)
class ExceededInterval:
    timestamp: pd.Timestamp
    kw: float
    excess_kw: float


## Batteries
@dataclass(frozen=True)
class BatterySpec:
    capacity_kwh: float  # usable
    max_charge_kw: float
    max_discharge_kw: float
    round_trip_efficiency: float


@dataclass(frozen=True)
class BatteryProduct:
    label: str
    capacity_kwh: float
    total_price_eur: float
    max_charge_kw: float
    max_discharge_kw: float
    round_trip_efficiency: float
    modular: bool = False
    unit_capacity_kwh: Optional[float] = None
    unit_count: int = 1


@dataclass(frozen=True)
class SizingResult:
    method: Method
    kwh_needed_raw: float
    kw_needed_raw: float
    kwh_needed: float
    kw_needed: float
    recommended_product: BatteryProduct
    alternative_product: Optional[BatteryProduct]


## Simulation
@dataclass(frozen=True)
class ScenarioResult:
    option_label: str
    capacity_kwh: float
    spec: BatterySpec  # limits actually simulated; stacks keep their own unit
    power_cap_kw: float
    exceedance_intervals_before: int
    exceedance_intervals_after: int
    exceedance_energy_kwh_before: float
    exceedance_energy_kwh_after: float
    achieved_compliance_dataset: float
    achieved_compliance_daily_average: float
    max_remaining_excess_kw: float
    ending_soc_kwh: float
    # index t_start; columns original_kw, shaved_kw, soc_kwh
    shaved_series: pd.DataFrame = field(repr=False, compare=False)


## Whole run
@dataclass(frozen=True)
class AnalysisResult:
    intervals: IntervalFrame = field(repr=False, compare=False)
    events: tuple[PeakEvent, ...]
    sizing: SizingResult
    scenarios: tuple[ScenarioResult, ...]
    quality: DataQualityReport
    normalization: NormalizationDiagnostics
    max_observation: MaxObservation
    highest_peak_day: Optional[str]
    top_exceeded_intervals: tuple[ExceededInterval, ...]
    exceedance_intervals: int
