import json

from peakshave import analysis, formats


def test_payload_is_json_serialisable(two_event_rows):
    result = analysis.run(two_event_rows)
    payload = formats.to_payload(result)
    text = json.dumps(payload)

    assert json.loads(text)["sizing"]["recommended_product"]["label"] == "3x 96 kWh (modular)"
    assert len(payload["intervals"]) == 12
    first = payload["intervals"][0]
    assert first["t_start"] == "2024-01-01T00:00:00+01:00"
    assert first["export_kwh"] is None
    assert payload["events"][0]["interval_indexes"] == [2, 3, 4]
    assert payload["highest_peak_day"] == "2024-01-01"
    assert len(payload["scenarios"][0]["shaved_series"]) == 12


def test_payload_without_series(two_event_rows):
    result = analysis.run(two_event_rows)
    payload = formats.to_payload(result, include_series=False)

    assert payload["intervals"] == []
    assert all("shaved_series" not in s for s in payload["scenarios"])
    json.dumps(payload)


def test_empty_result_payload():
    payload = formats.to_payload(analysis.run([]))
    assert payload["intervals"] == []
    assert payload["max_observation"]["max_observed_at"] is None
    assert payload["quality"]["start_date"] is None
    json.dumps(payload)
