import pandas as pd
import pytest

from peakshave import ingest, transform
from peakshave.types import PeakEvent

TZ = "Europe/Amsterdam"

# Two runs above 500 kW: 3 x 800 kW, then 3 x 640 kW
TWO_EVENT_KWH = [100, 100, 200, 200, 200, 100, 100, 100, 160, 160, 160, 100]


@pytest.fixture
def make_rows():
    """Factory: interval kWh values → raw rows on a 15-min local grid."""

    def _make(values, start="2024-01-01 00:00", tz=TZ):
        rng = pd.date_range(start, periods=len(values), freq="15min", tz=tz)
        return [{"timestamp": ts, "consumption_kwh": v} for ts, v in zip(rng, values)]

    return _make


@pytest.fixture
def make_intervals(make_rows):
    """Factory: interval kWh values → processed frame against a contract."""

    def _make(values, contracted_power_kw=500.0, start="2024-01-01 00:00"):
        prepared, _ = ingest.prepare_rows(make_rows(values, start=start))
        return transform.process_intervals(prepared, contracted_power_kw)

    return _make


@pytest.fixture
def two_event_rows(make_rows):
    return make_rows(TWO_EVENT_KWH)


@pytest.fixture
def two_event_intervals(make_intervals):
    return make_intervals(TWO_EVENT_KWH)


@pytest.fixture
def make_event():
    """Factory for standalone events (sizing only looks at their totals)."""

    def _make(total_kwh, max_kw, i=0):
        ts = pd.Timestamp("2024-01-01 00:00", tz=TZ) + pd.Timedelta(minutes=15 * i)
        return PeakEvent(
            start=ts,
            end=ts,
            peak_timestamp=ts,
            duration_intervals=1,
            max_excess_kw=float(max_kw),
            total_excess_kwh=float(total_kwh),
            interval_indexes=(i,),
        )

    return _make
