import pytest

from peakshave import catalog, exceptions


@pytest.mark.parametrize(
    "required,label,capacity,price",
    [
        (500, "2x 261 kWh (modular)", 522, 87991.92),
        (2000, "WattsNext All-in-one Container 2.09 MWh", 2090, 318658.06),
        (2600, "10x 261 kWh (modular)", 2610, 439959.6),
        (70, "1x 96 kWh (modular)", 96, 22225.98),
        (0, "1x 64 kWh (modular)", 64, 14872.40),
        (5100, "20x 261 kWh (modular)", 5220, 879919.2),
    ],
)
def test_cheapest_configuration(required, label, capacity, price):
    rec, _ = catalog.select_minimum_cost_options(required)
    assert rec.label == label
    assert rec.capacity_kwh == pytest.approx(capacity)
    assert rec.total_price_eur == pytest.approx(price)


def test_runner_up_is_next_cheapest():
    rec, alt = catalog.select_minimum_cost_options(500)
    assert alt is not None
    assert alt.label == "8x 64 kWh (modular)"
    assert alt.total_price_eur > rec.total_price_eur


def test_every_base_offers_its_smallest_sufficient_stack():
    labels = [p.label for p in catalog.candidate_products(2000)]
    assert "32x 64 kWh (modular)" in labels
    assert "21x 96 kWh (modular)" in labels
    assert "8x 261 kWh (modular)" in labels
    assert "WattsNext All-in-one Container 2.09 MWh" in labels


def test_requirement_beyond_largest_container_is_stacked():
    """Input:
    - 6000 kWh, more than the 5.01 MWh container holds.
    Expect:
    - The cheapest stack that meets it: 23 x 261 kWh = 6003 kWh.
    """
    rec, alt = catalog.select_minimum_cost_options(6000)
    assert rec.label == "23x 261 kWh (modular)"
    assert rec.capacity_kwh >= 6000
    assert rec.total_price_eur == pytest.approx(1011907.08)
    assert alt is not None and alt.capacity_kwh >= 6000


@pytest.mark.parametrize(
    "required", [0, 1, 63.9, 64.1, 300, 1000, 2089, 2091, 4999, 5015, 5220, 5220.5, 10_000, 50_000]
)
def test_never_undersized(required):
    rec, alt = catalog.select_minimum_cost_options(required)
    assert rec.capacity_kwh >= required
    if alt is not None:
        assert alt.capacity_kwh >= required
        assert alt.total_price_eur >= rec.total_price_eur


@pytest.mark.parametrize("required", [float("inf"), float("nan")])
def test_infeasible_requirement_raises(required):
    with pytest.raises(exceptions.NoFeasibleBatteryError):
        catalog.select_minimum_cost_options(required)


def test_infeasible_is_a_catalog_error():
    assert issubclass(exceptions.NoFeasibleBatteryError, exceptions.CatalogError)


def test_stacked_product_scales_power():
    entry = catalog.modular_entries()[2]
    product = catalog.stack_product(entry, 3)
    assert product.capacity_kwh == 783
    assert product.max_discharge_kw == 375
    assert product.unit_count == 3
    assert product.unit_capacity_kwh == 261


def test_containers_cannot_be_stacked():
    with pytest.raises(exceptions.CatalogError):
        catalog.stack_product(catalog.fixed_entries()[0], 2)


@pytest.mark.parametrize(
    "capacity,charge,discharge,eff",
    [
        (64, 32, 30, 0.90),
        (64.3, 32, 30, 0.90),
        (128, 64, 60, 0.90),
        (192, 96, 90, 0.90),
        (522, 250, 250, 0.90),
        (2090, 1000, 1000, 0.90),
        (5015.88, 2580, 2580, 0.88),
        (5015, 2580, 2580, 0.88),
        (100, 50, 50, 0.90),
    ],
)
def test_spec_for_capacity(capacity, charge, discharge, eff):
    spec = catalog.spec_for_capacity(capacity)
    assert spec.max_charge_kw == pytest.approx(charge)
    assert spec.max_discharge_kw == pytest.approx(discharge)
    assert spec.round_trip_efficiency == pytest.approx(eff)


def test_spec_for_stacked_capacity_keeps_requested_capacity():
    assert catalog.spec_for_capacity(522).capacity_kwh == 522
    # single units report the brochure usable capacity
    assert catalog.spec_for_capacity(96).capacity_kwh == pytest.approx(96.46)


def test_spec_for_non_positive_capacity():
    spec = catalog.spec_for_capacity(0)
    assert spec.capacity_kwh == 0
    assert spec.max_discharge_kw == 0


def test_labels():
    assert catalog.label_for_capacity(2090) == "WattsNext All-in-one Container 2.09 MWh"
    assert catalog.label_for_capacity(128) == "128 kWh"


def test_spec_for_product_keeps_its_own_unit():
    product = catalog.stack_product(catalog.modular_entries()[1], 2)
    spec = catalog.spec_for_product(product)
    assert spec.capacity_kwh == 192
    assert spec.max_discharge_kw == 96
    # a bare 192 kWh capacity resolves to 3x64 instead
    assert catalog.spec_for_capacity(192).max_discharge_kw == 90


def test_spec_for_single_and_fixed_products():
    single = catalog.stack_product(catalog.modular_entries()[0], 1)
    assert catalog.spec_for_product(single).capacity_kwh == pytest.approx(64.3)
    container = catalog.fixed_product(catalog.fixed_entries()[1])
    assert catalog.spec_for_product(container).round_trip_efficiency == pytest.approx(0.88)
