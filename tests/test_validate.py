"""Quality checks on built profiles."""

from dataclasses import replace

import pytest

from loadprofiler import validate
from loadprofiler.exceptions import LoadProfileError
from loadprofiler.types import DailyProfile, ProfileRecord


def day(key, hourly, peak=None, samples=48):
    hourly = tuple(hourly)
    return DailyProfile(
        date_key=key,
        day_of_week=1,
        is_weekend=False,
        total_energy_kwh=sum(hourly),
        peak_power=max(hourly) if peak is None else peak,
        peak_hour=0,
        hourly_profile=hourly,
        sample_count=samples,
    )


def record(days, samples=None):
    return ProfileRecord(
        daily_profiles=tuple(days),
        monthly_profiles=(),
        detected_interval_minutes=30.0,
        date_range_start=None,
        date_range_end=None,
        total_sample_count=sum(d.sample_count for d in days) if samples is None else samples,
    )


VARIED = [float(h % 5 + 1) for h in range(24)]


def test_clean_profile_has_no_issues():
    assert validate.review_profile(record([day("2024-01-01", VARIED)])) == []


def test_dropped_fraction_above_threshold_is_flagged():
    issues = validate.review_profile(record([day("2024-01-01", VARIED)]), 0.25, 0.1)
    assert len(issues) == 1
    assert "could not be parsed" in issues[0]


def test_empty_profile_is_flagged():
    issues = validate.review_profile(record([]))
    assert any("empty" in i for i in issues)
    issues = validate.review_profile(record([day("2024-01-01", [0.0] * 24)]))
    assert any("empty" in i for i in issues)


def test_flat_line_is_flagged():
    issues = validate.review_profile(record([day("2024-01-01", [3.0] * 24)]))
    assert any("Flat line" in i for i in issues)


def test_outlier_suggests_unit_error():
    hourly = list(VARIED)
    hourly[12] = 2_000_000.0
    issues = validate.review_profile(record([day("2024-01-01", hourly)]))
    assert any("W exported as kW" in i for i in issues)


def test_few_points_is_flagged():
    issues = validate.review_profile(record([day("2024-01-01", VARIED, samples=10)]))
    assert any("fewer than 48" in i for i in issues)


def test_assert_profiles_accepts_built_days():
    validate.assert_profiles([day("2024-01-01", VARIED), day("2024-01-02", VARIED)])


@pytest.mark.parametrize(
    "days",
    [
        [day("2024-01-02", VARIED), day("2024-01-01", VARIED)],
        [day("2024-01-01", VARIED[:23])],
        [day("2024-01-01", [-1.0] + VARIED[1:])],
        [replace(day("2024-01-01", VARIED), peak_hour=24)],
    ],
)
def test_assert_profiles_rejects(days):
    with pytest.raises(LoadProfileError):
        validate.assert_profiles(days)
