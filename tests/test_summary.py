import json

import pytest

import loadprofiler as lp
from loadprofiler.types import ProfileRecord


def test_summary_shape(iso_day_csv):
    s = lp.summary.summarise(lp.parse_text(iso_day_csv).record)
    assert set(s) == {"meta", "stats", "profile24", "days", "months"}

    assert s["meta"]["start"] == "2024-03-04"
    assert s["meta"]["end"] == "2024-03-04"
    assert s["meta"]["interval_min"] == 30
    assert s["meta"]["days"] == 1
    assert s["meta"]["samples"] == 48
    assert s["meta"]["unit"] == "energy"

    assert s["stats"]["total_energy_kwh"] == pytest.approx(100.0)
    assert s["stats"]["per_day_avg_kwh"] == pytest.approx(100.0)
    assert s["stats"]["peak_power"] == 2.5
    assert s["stats"]["peak_day"] == "2024-03-04"
    assert s["stats"]["peak_hour"] == 20

    assert s["profile24"]["weekday"][23] == 2.5
    assert s["profile24"]["weekend"] == [0.0] * 24
    assert len(s["days"]) == 1
    assert len(s["days"][0]["hourly_profile"]) == 24
    assert s["days"][0]["day_of_week"] == 1
    assert s["months"] == []


def test_summary_is_json_serialisable(iso_day_csv):
    s = lp.summary.summarise(lp.parse_text(iso_day_csv).record)
    assert json.loads(json.dumps(s))["meta"]["days"] == 1


def test_weekday_and_weekend_profiles(interval_csv):
    # 2024-01-01 is a Monday; two full weeks hourly
    text = interval_csv(
        periods=24 * 14, freq="1h", value=lambda t: 3.0 if t.dayofweek >= 5 else 1.0
    )
    s = lp.summary.summarise(lp.parse_text(text).record)
    assert s["profile24"]["weekday"] == [1.0] * 24
    assert s["profile24"]["weekend"] == [3.0] * 24
    assert [m["month"] for m in s["months"]] == ["2024-01"]
    assert s["months"][0]["distinct_day_count"] == 14
    assert s["stats"]["total_energy_kwh"] == pytest.approx(24 * (10 * 1.0 + 4 * 3.0))


def test_empty_record_summary():
    rec = ProfileRecord(
        daily_profiles=(),
        monthly_profiles=(),
        detected_interval_minutes=30.0,
        date_range_start=None,
        date_range_end=None,
        total_sample_count=0,
    )
    s = lp.summary.summarise(rec)
    assert s["meta"]["start"] is None
    assert s["stats"]["total_energy_kwh"] == 0.0
    assert s["stats"]["peak_day"] is None
    assert s["days"] == []
