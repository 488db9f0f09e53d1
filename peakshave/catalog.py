"""
Battery catalog, cost-optimal selection and capacity → spec mapping.

The catalog is a process-wide constant. Modular cabinets stack in any whole
number of units; containers are indivisible. Stacked products are
built on demand and never added to the catalog.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from . import exceptions
from .types import BatteryProduct, BatterySpec

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogEntry:
    label: str
    nominal_kwh: float  # capacity used for sizing and labels
    price_eur: float  # per unit
    spec: BatterySpec  # brochure values, capacity is usable kWh
    modular: bool


# Brochure specs per product
CATALOG: tuple[CatalogEntry, ...] = (
    CatalogEntry(
        label="WattsNext ESS Cabinet 64 kWh",
        nominal_kwh=64.0,
        price_eur=14872.40,
        spec=BatterySpec(64.3, 32.0, 30.0, 0.90),
        modular=True,
    ),
    CatalogEntry(
        label="WattsNext ESS Cabinet 96 kWh",
        nominal_kwh=96.0,
        price_eur=22225.98,
        spec=BatterySpec(96.46, 48.0, 48.0, 0.90),
        modular=True,
    ),
    CatalogEntry(
        label="ESS All-in-one Cabinet 261 kWh",
        nominal_kwh=261.0,
        price_eur=43995.96,
        spec=BatterySpec(261.24, 125.0, 125.0, 0.90),
        modular=True,
    ),
    CatalogEntry(
        label="WattsNext All-in-one Container 2.09 MWh",
        nominal_kwh=2090.0,
        price_eur=318658.06,
        spec=BatterySpec(2090.0, 1000.0, 1000.0, 0.90),
        modular=False,
    ),
    CatalogEntry(
        label="WattsNext All-in-one Container 5.01 MWh",
        nominal_kwh=5015.0,
        price_eur=699843.12,
        spec=BatterySpec(5015.88, 2580.0, 2580.0, 0.88),
        modular=False,
    ),
)

FIXED_CAPACITY_TOLERANCE_KWH = 1.0
MODULAR_TOLERANCE = 1e-6
# Stack lookup order for spec_for_capacity; 192 kWh resolves to 3x64, not 2x96
MODULAR_LOOKUP_ORDER: tuple[float, ...] = (261.0, 64.0, 96.0)

DEFAULT_EFFICIENCY = 0.9


def modular_entries() -> list[CatalogEntry]:
    return [e for e in CATALOG if e.modular]


def fixed_entries() -> list[CatalogEntry]:
    return [e for e in CATALOG if not e.modular]


def _entry_for_nominal(nominal_kwh: float) -> CatalogEntry:
    for e in CATALOG:
        if e.nominal_kwh == nominal_kwh:
            return e
    raise exceptions.CatalogError(f"No catalog entry with nominal capacity {nominal_kwh:g} kWh")


def _fmt_kwh(v: float) -> str:
    return f"{v:g}"


def stack_product(entry: CatalogEntry, count: int) -> BatteryProduct:
    """N identical modular units as one product; power scales with N."""
    exceptions.require(entry.modular, f"{entry.label} is not modular", exceptions.CatalogError)
    exceptions.require(count >= 1, "unit count must be >= 1", exceptions.CatalogError)
    return BatteryProduct(
        label=f"{count}x {_fmt_kwh(entry.nominal_kwh)} kWh (modular)",
        capacity_kwh=entry.nominal_kwh * count,
        total_price_eur=round(entry.price_eur * count, 2),
        max_charge_kw=entry.spec.max_charge_kw * count,
        max_discharge_kw=entry.spec.max_discharge_kw * count,
        round_trip_efficiency=entry.spec.round_trip_efficiency,
        modular=True,
        unit_capacity_kwh=entry.nominal_kwh,
        unit_count=count,
    )


def fixed_product(entry: CatalogEntry) -> BatteryProduct:
    return BatteryProduct(
        label=entry.label,
        capacity_kwh=entry.nominal_kwh,
        total_price_eur=entry.price_eur,
        max_charge_kw=entry.spec.max_charge_kw,
        max_discharge_kw=entry.spec.max_discharge_kw,
        round_trip_efficiency=entry.spec.round_trip_efficiency,
    )


def candidate_products(required_kwh: float) -> list[BatteryProduct]:
    """
    Every configuration whose capacity meets ``required_kwh``, unranked.

    Per modular base only the smallest sufficient unit count is considered
    (more units of the same base only cost more). Fixed containers qualify when
    their capacity alone suffices.
    """
    if not math.isfinite(required_kwh):
        return []
    required = max(0.0, float(required_kwh))
    out: list[BatteryProduct] = []

    for entry in modular_entries():
        count = max(1, math.ceil(required / entry.nominal_kwh))
        out.append(stack_product(entry, count))

    for entry in fixed_entries():
        if entry.nominal_kwh >= required:
            out.append(fixed_product(entry))

    return out


def rank_products(products: list[BatteryProduct], required_kwh: float) -> list[BatteryProduct]:
    """Price ascending, then smallest overshoot, then smallest capacity."""
    return sorted(
        products,
        key=lambda p: (p.total_price_eur, p.capacity_kwh - required_kwh, p.capacity_kwh),
    )


def select_minimum_cost_options(
    required_kwh: float,
) -> tuple[BatteryProduct, Optional[BatteryProduct]]:
    """
    Cheapest capacity-sufficient configuration and the runner-up.

    Any finite requirement is met by a large enough stack. Raises
    NoFeasibleBatteryError for the rest instead of falling back to something
    smaller.
    """
    ranked = rank_products(candidate_products(required_kwh), required_kwh)
    if not ranked:
        raise exceptions.NoFeasibleBatteryError(
            f"No catalog configuration provides {required_kwh:,.1f} kWh"
        )
    logger.debug(
        "%d candidate(s) for %.1f kWh; cheapest %s (EUR %.2f)",
        len(ranked),
        required_kwh,
        ranked[0].label,
        ranked[0].total_price_eur,
    )
    alternative = ranked[1] if len(ranked) > 1 else None
    return ranked[0], alternative


def _near(value: float, target: float, tolerance: float) -> bool:
    return abs(value - target) <= tolerance


def _copy(spec: BatterySpec) -> BatterySpec:
    return BatterySpec(
        spec.capacity_kwh, spec.max_charge_kw, spec.max_discharge_kw, spec.round_trip_efficiency
    )


def spec_for_capacity(capacity_kwh: float) -> BatterySpec:
    """
    Map a realised capacity back to power and efficiency figures.

    Order: fixed containers (within 1 kWh of nominal or usable), single
    cabinets (same tolerance), integer stacks of a cabinet (power scaled by the
    count, efficiency kept), then a generic C/2 battery at 0.9 efficiency.
    """
    if not math.isfinite(capacity_kwh) or capacity_kwh <= 0:
        return BatterySpec(0.0, 0.0, 0.0, DEFAULT_EFFICIENCY)

    for group in (fixed_entries(), modular_entries()):
        for entry in group:
            if _near(capacity_kwh, entry.nominal_kwh, FIXED_CAPACITY_TOLERANCE_KWH) or _near(
                capacity_kwh, entry.spec.capacity_kwh, FIXED_CAPACITY_TOLERANCE_KWH
            ):
                return _copy(entry.spec)

    for base in MODULAR_LOOKUP_ORDER:
        ratio = capacity_kwh / base
        count = round(ratio)
        if count >= 1 and _near(ratio, count, MODULAR_TOLERANCE):
            spec = _entry_for_nominal(base).spec
            return BatterySpec(
                capacity_kwh=capacity_kwh,
                max_charge_kw=spec.max_charge_kw * count,
                max_discharge_kw=spec.max_discharge_kw * count,
                round_trip_efficiency=spec.round_trip_efficiency,
            )

    return BatterySpec(capacity_kwh, capacity_kwh / 2, capacity_kwh / 2, DEFAULT_EFFICIENCY)


def spec_for_product(product: BatteryProduct) -> BatterySpec:
    """
    Spec of a concrete product, stacked from its own unit.

    Unlike ``spec_for_capacity`` this never re-resolves the capacity, so 2x96
    keeps 96 kW of discharge instead of mapping to 3x64.
    """
    if not product.modular or product.unit_capacity_kwh is None:
        return _copy(_entry_for_nominal(product.capacity_kwh).spec)
    unit = _entry_for_nominal(product.unit_capacity_kwh).spec
    if product.unit_count == 1:
        return _copy(unit)
    return BatterySpec(
        capacity_kwh=product.capacity_kwh,
        max_charge_kw=unit.max_charge_kw * product.unit_count,
        max_discharge_kw=unit.max_discharge_kw * product.unit_count,
        round_trip_efficiency=unit.round_trip_efficiency,
    )


def label_for_capacity(capacity_kwh: float) -> str:
    for entry in CATALOG:
        if entry.nominal_kwh == capacity_kwh:
            return entry.label
    return f"{_fmt_kwh(capacity_kwh)} kWh"
