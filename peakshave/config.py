from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from . import canon
from .exceptions import ConfigError
from .types import InterpretationMode, Method


class AnalysisSettings(BaseModel):
    """Everything one analysis run can be told. Unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    contracted_power_kw: float = Field(500.0, gt=0)
    method: Method = "MAX_PEAK"
    compliance: float = Field(0.95, ge=0.70, le=1.00)  # share of exceedance to shave
    safety_factor: float = Field(1.2, gt=0)
    efficiency: float = Field(0.9, gt=0, le=1)  # round-trip
    interpretation_mode: InterpretationMode = "AUTO"
    timezone: str = canon.DEFAULT_TZ

    # Normalization
    outlier_kw_threshold: float = Field(canon.DEFAULT_OUTLIER_KW_THRESHOLD, gt=0)
    huge_kwh_threshold: float = Field(canon.DEFAULT_HUGE_KWH_THRESHOLD, gt=0)
    allow_negative_deltas: bool = False

    # Simulation
    include_scenarios: bool = True
    initial_soc_ratio: float = Field(0.5, ge=0, le=1)
    max_scenario_options: int = Field(12, ge=1)

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown time zone: {v!r}") from exc
        return v

    def normalize_options(self) -> "NormalizeOptions":
        return NormalizeOptions(
            interpretation_mode=self.interpretation_mode,
            outlier_kw_threshold=self.outlier_kw_threshold,
            huge_kwh_threshold=self.huge_kwh_threshold,
            allow_negative_deltas=self.allow_negative_deltas,
            tz=self.timezone,
        )

    def simulation_config(self) -> "SimulationConfig":
        return SimulationConfig(initial_soc_ratio=self.initial_soc_ratio)


@dataclass
class NormalizeOptions:
    interval_minutes: int = canon.INTERVAL_MIN
    interpretation_mode: InterpretationMode = "AUTO"
    outlier_kw_threshold: float = canon.DEFAULT_OUTLIER_KW_THRESHOLD
    huge_kwh_threshold: float = canon.DEFAULT_HUGE_KWH_THRESHOLD
    allow_negative_deltas: bool = False
    tz: str = canon.DEFAULT_TZ


@dataclass
class SimulationConfig:
    # None → sizing kW, else min(max excess, half the capacity)
    power_cap_kw: Optional[float] = None
    initial_soc_ratio: float = 0.5


def default_settings() -> AnalysisSettings:
    return AnalysisSettings()


def load_settings(values: Optional[Mapping[str, Any]] = None) -> AnalysisSettings:
    """Build settings from a plain mapping, raising ConfigError on anything invalid."""
    try:
        return AnalysisSettings(**dict(values or {}))
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
