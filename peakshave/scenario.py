from __future__ import annotations

import logging
import math
from typing import Optional

import numpy as np
import pandas as pd

from . import canon, catalog, exceptions, transform, validate
from .config import SimulationConfig
from .types import BatteryProduct, BatterySpec, IntervalFrame, ScenarioResult

logger = logging.getLogger(__name__)


def resolve_power_cap(
    config: SimulationConfig, sizing_kw_needed: float, max_excess_kw: float, capacity_kwh: float
) -> float:
    if config.power_cap_kw is not None:
        return float(config.power_cap_kw)
    if sizing_kw_needed > 0:
        return float(sizing_kw_needed)
    return float(min(max_excess_kw, capacity_kwh * 0.5))


def dispatch_peak_shave(
    kw: np.ndarray,
    excess_kw: np.ndarray,
    contracted_power_kw: float,
    spec: BatterySpec,
    power_cap_kw: float,
    initial_soc_kwh: float,
    interval_h: float = canon.INTERVAL_H,
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Returns (shaved_kw, remaining_excess_kw, soc_series_kwh)
      - charges from unused contract headroom, up to max_charge_kw
      - discharges only while excess_kw > 0, up to min(max_discharge_kw, power cap)
      - round-trip losses split as sqrt(eff) on each leg
    """
    n = len(kw)
    shaved = np.zeros(n, dtype=float)
    remaining = np.zeros(n, dtype=float)
    soc = np.zeros(n, dtype=float)

    cap = max(spec.capacity_kwh, 0.0)
    leg_eff = math.sqrt(spec.round_trip_efficiency)
    discharge_limit_kw = max(0.0, min(spec.max_discharge_kw, power_cap_kw))

    soc_now = min(max(initial_soc_kwh, 0.0), cap)

    for i in range(n):
        # 1) Charge from headroom under the contract
        headroom_kw = max(0.0, contracted_power_kw - kw[i])
        charge_kw = min(headroom_kw, spec.max_charge_kw)
        if charge_kw > 0:
            soc_now = min(cap, soc_now + charge_kw * interval_h * leg_eff)

        # 2) Discharge against the excess
        if excess_kw[i] > 0:
            target_kw = min(excess_kw[i], discharge_limit_kw)
            drawn = min(target_kw * interval_h / leg_eff, soc_now) if leg_eff > 0 else 0.0
            soc_now = max(0.0, soc_now - drawn)
            delivered_kw = drawn * leg_eff / interval_h
            left = max(0.0, excess_kw[i] - delivered_kw)
            shaved[i] = delivered_kw
            remaining[i] = left if left > canon.EXCESS_TOLERANCE_KW else 0.0

        soc[i] = soc_now

    return shaved, remaining, soc


def simulate_scenario(
    df: IntervalFrame,
    capacity_kwh: float,
    contracted_power_kw: float,
    sizing_kw_needed: float,
    max_excess_kw: float,
    config: Optional[SimulationConfig] = None,
    *,
    label: Optional[str] = None,
    spec: Optional[BatterySpec] = None,
    days: Optional[transform.DayIndex] = None,
    tz: Optional[str] = None,
) -> ScenarioResult:
    """
    Time-step one battery capacity against a processed series.

    Power and efficiency come from ``spec`` when given, else from
    ``catalog.spec_for_capacity`` so stacked capacities simulate with scaled
    limits. Days are local days in ``tz`` unless a prebuilt ``days`` index is
    passed. Compliance is reported both over
    the whole dataset and as the mean of per-day ratios (days without
    exceedance count as 1).
    """
    validate.assert_intervals(df, processed=True)
    exceptions.require(
        contracted_power_kw > 0, "contracted_power_kw must be > 0", exceptions.SimulationError
    )
    cfg = config or SimulationConfig()
    exceptions.require(
        0.0 <= cfg.initial_soc_ratio <= 1.0,
        "initial_soc_ratio must be within [0, 1]",
        exceptions.SimulationError,
    )

    spec = spec or catalog.spec_for_capacity(capacity_kwh)
    power_cap_kw = resolve_power_cap(cfg, sizing_kw_needed, max_excess_kw, capacity_kwh)

    kw = df["kw"].to_numpy(dtype=float)
    excess_kw = df["excess_kw"].to_numpy(dtype=float)
    excess_kwh = df["excess_kwh"].to_numpy(dtype=float)
    interval_h = canon.INTERVAL_H

    shaved_kw, remaining_kw, soc = dispatch_peak_shave(
        kw,
        excess_kw,
        contracted_power_kw,
        spec,
        power_cap_kw,
        spec.capacity_kwh * cfg.initial_soc_ratio,
        interval_h,
    )
    remaining_kwh = remaining_kw * interval_h

    before_kwh = float(excess_kwh.sum())
    after_kwh = float(remaining_kwh.sum())
    compliance_dataset = 1.0 if before_kwh == 0 else 1.0 - after_kwh / before_kwh

    days = transform.day_index(df, tz) if days is None else days
    daily: list[float] = []
    for pos in days.values():
        day_before = float(excess_kwh[pos].sum())
        day_after = float(remaining_kwh[pos].sum())
        daily.append(1.0 if day_before == 0 else 1.0 - day_after / day_before)
    compliance_daily = float(np.mean(daily)) if daily else 1.0

    series = pd.DataFrame(
        {"original_kw": kw, "shaved_kw": kw - shaved_kw, "soc_kwh": soc},
        index=df.index,
    )

    return ScenarioResult(
        option_label=label or catalog.label_for_capacity(capacity_kwh),
        capacity_kwh=float(capacity_kwh),
        spec=spec,
        power_cap_kw=power_cap_kw,
        exceedance_intervals_before=int(np.count_nonzero(excess_kw > 0)),
        exceedance_intervals_after=int(np.count_nonzero(remaining_kw > 0)),
        exceedance_energy_kwh_before=before_kwh,
        exceedance_energy_kwh_after=after_kwh,
        achieved_compliance_dataset=min(1.0, max(0.0, compliance_dataset)),
        achieved_compliance_daily_average=min(1.0, max(0.0, compliance_daily)),
        max_remaining_excess_kw=float(remaining_kw.max()) if len(remaining_kw) else 0.0,
        ending_soc_kwh=float(soc[-1]) if len(soc) else spec.capacity_kwh * cfg.initial_soc_ratio,
        shaved_series=series,
    )


def scenario_label(product: BatteryProduct) -> str:
    if product.modular and product.unit_capacity_kwh is not None:
        return f"{product.unit_count}x{product.unit_capacity_kwh:g} ({product.capacity_kwh:g} kWh)"
    return product.label


def generate_scenario_options(
    target_kwh: float, max_total_options: int = 12
) -> list[BatteryProduct]:
    """
    Compact set of configurations to simulate around a target capacity.

    Per modular base: the smallest sufficient stack and its neighbours (one
    unit fewer and one more). Fixed containers are always included. Options are
    deduplicated by capacity, modular ones kept by closeness to the target, and
    returned in ascending capacity.
    """
    exceptions.require(max_total_options >= 1, "max_total_options must be >= 1")
    target = max(0.0, float(target_kwh)) if math.isfinite(target_kwh) else 0.0

    modular: list[BatteryProduct] = []
    for entry in catalog.modular_entries():
        n0 = max(1, math.ceil(target / entry.nominal_kwh))
        for n in (n0 - 1, n0, n0 + 1):
            if n >= 1:
                modular.append(catalog.stack_product(entry, n))
    modular.sort(key=lambda p: (abs(p.capacity_kwh - target), p.total_price_eur))
    fixed = [catalog.fixed_product(e) for e in catalog.fixed_entries()]

    picked: list[BatteryProduct] = []
    seen: set[float] = set()
    for product in fixed + modular:
        if len(picked) >= max_total_options:
            break
        if product.capacity_kwh in seen:
            continue
        seen.add(product.capacity_kwh)
        picked.append(product)

    return sorted(picked, key=lambda p: p.capacity_kwh)


def simulate_all_scenarios(
    df: IntervalFrame,
    contracted_power_kw: float,
    sizing_kw_needed: float,
    target_kwh: float,
    config: Optional[SimulationConfig] = None,
    *,
    max_total_options: int = 12,
    days: Optional[transform.DayIndex] = None,
    tz: Optional[str] = None,
) -> list[ScenarioResult]:
    """
    Simulate every generated option; the input frame is shared read-only.

    Each option runs with its own product spec, so a 2x96 stack discharges at
    96 kW even though a bare 192 kWh capacity maps to 3x64.
    """
    max_excess_kw = float(df["excess_kw"].max()) if len(df) else 0.0
    max_excess_kw = max(0.0, max_excess_kw)
    days = transform.day_index(df, tz) if days is None else days

    options = generate_scenario_options(target_kwh, max_total_options)
    logger.debug("Simulating %d scenario option(s) around %.1f kWh", len(options), target_kwh)
    return [
        simulate_scenario(
            df,
            p.capacity_kwh,
            contracted_power_kw,
            sizing_kw_needed,
            max_excess_kw,
            config,
            label=scenario_label(p),
            spec=catalog.spec_for_product(p),
            days=days,
        )
        for p in options
    ]
