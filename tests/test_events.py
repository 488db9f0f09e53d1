import pytest

from peakshave import events, exceptions, ingest


def test_two_separate_runs(two_event_intervals):
    found = events.group_peak_events(two_event_intervals)

    assert len(found) == 2
    first, second = found
    assert first.duration_intervals == 3
    assert first.max_excess_kw == pytest.approx(300.0)
    assert first.total_excess_kwh == pytest.approx(225.0)
    assert first.interval_indexes == (2, 3, 4)
    assert second.max_excess_kw == pytest.approx(140.0)
    assert second.total_excess_kwh == pytest.approx(105.0)
    assert second.interval_indexes == (8, 9, 10)
    assert first.start == two_event_intervals.index[2]
    assert first.end == two_event_intervals.index[4]


def test_peak_tie_resolves_to_earliest_interval(two_event_intervals):
    first = events.group_peak_events(two_event_intervals)[0]
    assert first.peak_timestamp == two_event_intervals.index[2]


def test_peak_moves_to_strictly_greater_excess(make_intervals):
    df = make_intervals([150, 200, 175])
    found = events.group_peak_events(df)
    assert len(found) == 1
    assert found[0].peak_timestamp == df.index[1]
    assert found[0].max_excess_kw == pytest.approx(300.0)


def test_run_open_at_end_of_stream_is_closed(make_intervals):
    found = events.group_peak_events(make_intervals([100, 150, 150]))
    assert len(found) == 1
    assert found[0].interval_indexes == (1, 2)


def test_single_quiet_interval_splits_events(make_intervals):
    found = events.group_peak_events(make_intervals([150, 125, 150]))
    # exactly at the contract (500 kW) is not an exceedance
    assert [e.interval_indexes for e in found] == [(0,), (2,)]


def test_events_are_exhaustive_and_disjoint(make_intervals):
    values = [150, 150, 10, 200, 10, 10, 130, 140, 150, 10, 160]
    df = make_intervals(values)
    found = events.group_peak_events(df)

    covered = [i for e in found for i in e.interval_indexes]
    assert len(covered) == len(set(covered))
    exceeding = [i for i, x in enumerate(df["excess_kw"]) if x > 0]
    assert sorted(covered) == exceeding
    assert sum(e.total_excess_kwh for e in found) == pytest.approx(df["excess_kwh"].sum())
    for e in found:
        assert e.duration_intervals == len(e.interval_indexes)
        assert e.max_excess_kw > 0
        assert e.total_excess_kwh > 0


def test_no_exceedance_means_no_events(make_intervals):
    assert events.group_peak_events(make_intervals([10, 20, 30])) == []
    assert events.group_peak_events(make_intervals([])) == []


def test_requires_processed_frame(make_rows):
    prepared, _ = ingest.prepare_rows(make_rows([100]))
    with pytest.raises(exceptions.IntervalError):
        events.group_peak_events(prepared)
