"""Interpretation detection, cumulative deltas and outlier handling."""

import numpy as np
import pandas as pd
import pytest

from peakshave import normalize
from peakshave.config import NormalizeOptions


def test_cumulative_readings_become_deltas(make_rows):
    df, diag = normalize.normalize_consumption(
        make_rows([1000, 1002, 1005]), NormalizeOptions(interpretation_mode="CUMULATIVE_DELTA")
    )
    assert df["kwh"].tolist() == [0.0, 2.0, 3.0]
    assert diag.interpretation_used == "CUMULATIVE_DELTA"
    assert diag.rows_used == 3


def test_auto_detects_cumulative_from_large_values(make_rows):
    df, diag = normalize.normalize_consumption(make_rows([1000, 1002, 1005]))
    assert diag.interpretation_requested == "AUTO"
    assert diag.interpretation_used == "CUMULATIVE_DELTA"
    assert diag.fraction_huge_values == pytest.approx(1.0)
    assert df["kwh"].tolist() == [0.0, 2.0, 3.0]


def test_auto_detects_cumulative_from_monotone_series(make_rows):
    values = list(np.arange(100, 200, 1.0))
    _, diag = normalize.normalize_consumption(make_rows(values))
    assert diag.interpretation_used == "CUMULATIVE_DELTA"
    assert diag.fraction_non_decreasing == pytest.approx(1.0)
    assert diag.median_delta == pytest.approx(1.0)


def test_auto_keeps_fluctuating_series_as_interval(make_rows):
    values = [10, 12, 9, 14, 8, 11, 10, 13]
    df, diag = normalize.normalize_consumption(make_rows(values))
    assert diag.interpretation_used == "INTERVAL"
    assert df["kwh"].tolist() == [float(v) for v in values]
    assert diag.fraction_non_decreasing < 0.98


def test_explicit_interval_mode_is_respected_even_for_huge_values(make_rows):
    _, diag = normalize.normalize_consumption(
        make_rows([1000, 1002]),
        NormalizeOptions(interpretation_mode="INTERVAL", outlier_kw_threshold=1e9),
    )
    assert diag.interpretation_used == "INTERVAL"
    assert diag.fraction_huge_values == pytest.approx(1.0)


def test_negative_deltas_are_clamped_and_counted():
    energy, n = normalize.to_interval_energy(
        np.array([100.0, 105.0, 103.0, 110.0]), "CUMULATIVE_DELTA"
    )
    assert energy.tolist() == [0.0, 5.0, 0.0, 7.0]
    assert n == 1


def test_negative_deltas_kept_when_allowed_then_dropped(make_rows):
    opts = NormalizeOptions(interpretation_mode="CUMULATIVE_DELTA", allow_negative_deltas=True)
    df, diag = normalize.normalize_consumption(make_rows([100, 105, 103, 110]), opts)
    assert diag.negative_delta_count == 0
    assert diag.negative_values_dropped == 1
    assert df["kwh"].tolist() == [0.0, 5.0, 7.0]


def test_negative_interval_values_are_dropped(make_rows):
    df, diag = normalize.normalize_consumption(
        make_rows([5, -1, 6]), NormalizeOptions(interpretation_mode="INTERVAL")
    )
    assert df["kwh"].tolist() == [5.0, 6.0]
    assert diag.negative_values_dropped == 1
    assert (df["kwh"] >= 0).all()


def test_outliers_excluded_and_reported(make_rows):
    # 2000 kWh in a quarter hour is 8000 kW, above the 5000 kW default
    values = [10, 12, 2000, 11, 9, 13, 10]
    df, diag = normalize.normalize_consumption(
        make_rows(values), NormalizeOptions(interpretation_mode="INTERVAL")
    )
    assert diag.count_outliers == 1
    assert diag.max_outlier_kw == pytest.approx(8000.0)
    assert diag.first_outlier_timestamp == pd.Timestamp("2024-01-01 00:30", tz="Europe/Amsterdam")
    assert 2000.0 not in df["kwh"].tolist()
    assert diag.rows_used == 6
    assert any("outlier" in w for w in diag.warnings)


def test_single_value_and_empty_input(make_rows):
    df, diag = normalize.normalize_consumption(make_rows([5]))
    assert diag.interpretation_used == "INTERVAL"
    assert df["kwh"].tolist() == [5.0]

    df, diag = normalize.normalize_consumption([])
    assert len(df) == 0
    assert diag.rows_total == 0
    assert "No usable rows after normalization." in diag.warnings


def test_invalid_rows_counted_in_diagnostics(make_rows):
    rows = make_rows([5, 6]) + [{"timestamp": None, "consumption_kwh": 1}]
    df, diag = normalize.normalize_consumption(rows)
    assert diag.rows_total == 3
    assert diag.invalid_rows == 1
    assert diag.rows_used == 2
    assert diag.warnings[0].startswith("1 row(s)")


def test_resolve_interpretation_statistics_are_reported_for_explicit_mode():
    used, frac_nd, median, frac_huge = normalize.resolve_interpretation(
        np.array([1.0, 2.0, 1.5, 3.0]), "INTERVAL"
    )
    assert used == "INTERVAL"
    assert frac_nd == pytest.approx(2 / 3)
    assert median == pytest.approx(1.0)
    assert frac_huge == 0.0
