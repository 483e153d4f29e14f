import math
from datetime import date

import pandas as pd
import pytest

import loadprofiler as lp
from loadprofiler.exceptions import (
    ColumnNotFoundError,
    ConfigError,
    FormatError,
    InsufficientDataError,
    RowParseWarning,
)


def test_iso_daily_file(iso_day_csv):
    res = lp.parse_text(iso_day_csv)
    rec = res.record
    assert len(rec.daily_profiles) == 1
    d = rec.daily_profiles[0]
    assert d.date_key == "2024-03-04"
    assert d.total_energy_kwh == pytest.approx(100.0)
    assert len(d.hourly_profile) == 24
    assert d.data_points == 48
    assert d.hourly_profile[0] == 2.0
    assert d.hourly_profile[23] == 2.5
    assert rec.detected_interval_minutes == 30
    assert rec.total_sample_count == 48
    assert rec.value_unit == "energy"
    assert rec.date_range_start == rec.date_range_end == date(2024, 3, 4)
    assert not rec.needs_review
    assert res.diagnostics.delimiter == ","
    assert res.diagnostics.header_row_index == 0
    assert res.diagnostics.dropped_rows == 0


def test_vendor_preamble(preamble_csv):
    res = lp.parse_text(preamble_csv)
    assert res.config.preamble_meta.meter_name == "METER-1"
    assert res.config.header_row_index == 1
    cfg = res.config
    assert (cfg.date_column, cfg.time_column, cfg.value_column) == (0, 1, 2)
    assert res.record.meter_name == "METER-1"
    assert res.diagnostics.preamble_detected
    assert res.record.daily_profiles[0].total_energy_kwh == pytest.approx(36.0)


@pytest.mark.parametrize("day_first", [True, False])
def test_day_above_twelve_resolves_regardless_of_locale(interval_csv, day_first):
    text = interval_csv(
        start="2024-03-15", periods=12, header="Date,kWh", fmt="%d/%m/%Y %H:%M"
    )
    cfg = lp.config.default_config()
    cfg.parsing.day_first = day_first
    res = lp.parse_text(text, config=cfg)
    assert [d.date_key for d in res.record.daily_profiles] == ["2024-03-15"]


def test_power_unit_column(make_csv, small_config):
    text = make_csv("Time,kW", [("2024-01-01 10:00", 10), ("2024-01-01 10:15", 12)])
    res = lp.parse_text(text, config=small_config)
    assert res.config.value_unit == "power"
    assert res.record.detected_interval_minutes == 15
    assert res.record.total_energy_kwh == pytest.approx(5.5)


def test_power_conservation(interval_csv):
    def kw(t):
        return (t.hour * 7 + t.minute) % 11 + 0.5

    text = interval_csv(periods=96 * 3, freq="15min", header="timestamp,kW", value=kw)
    res = lp.parse_text(text)
    rng = pd.date_range("2024-01-01", periods=96 * 3, freq="15min")
    expected = sum(kw(t) * 0.25 for t in rng)
    days = res.record.daily_profiles
    assert len(days) == 3
    assert sum(d.total_energy_kwh for d in days) == pytest.approx(expected)


def test_hourly_profiles_are_complete(interval_csv):
    res = lp.parse_text(interval_csv(periods=30, freq="1h"))
    for d in res.record.daily_profiles:
        assert len(d.hourly_profile) == 24
        assert all(math.isfinite(v) and v >= 0 for v in d.hourly_profile)


def test_monthly_floor(interval_csv):
    # Jan 27..31 (5 days) and Feb 1..3 (3 days)
    res = lp.parse_text(interval_csv(start="2024-01-27", periods=24 * 8, freq="1h"))
    months = res.record.monthly_profiles
    assert [m.month_key for m in months] == ["2024-01"]
    assert months[0].distinct_day_count == 5
    assert months[0].total_energy_kwh == pytest.approx(24 * 5)


def test_reparse_is_identical(interval_csv):
    text = interval_csv(periods=48 * 6, value=lambda t: t.hour / 3)
    a, b = lp.parse_text(text), lp.parse_text(text)
    assert a.record.daily_profiles == b.record.daily_profiles
    assert a.record.monthly_profiles == b.record.monthly_profiles


def test_malformed_second_timestamp_defaults_interval(make_csv, small_config):
    text = make_csv("timestamp,kwh", [("2024-01-01T00:00", 1), ("not a date", 2)])
    res = lp.parse_text(text, config=small_config)
    assert res.record.detected_interval_minutes == 30
    assert not res.diagnostics.interval_inferred
    assert res.diagnostics.dropped_rows == 1
    (w,) = res.diagnostics.warnings
    assert isinstance(w, RowParseWarning)
    assert w.line_number == 3


def test_no_header_is_a_format_error(make_csv):
    with pytest.raises(FormatError):
        lp.parse_text(make_csv("a,b", [(1, 2)] * 12))


def test_missing_value_column(make_csv):
    with pytest.raises(ColumnNotFoundError) as err:
        lp.parse_text(make_csv("Date,Notes", [("01/01/2024", "n/a")] * 12))
    assert err.value.headers == ["Date", "Notes"]


def test_too_few_rows(interval_csv):
    with pytest.raises(InsufficientDataError) as err:
        lp.parse_text(interval_csv(periods=9))
    assert (err.value.rows, err.value.required) == (9, 10)


def test_bad_rows_are_dropped_and_counted(make_csv):
    rows = [(f"2024-01-01T{h:02d}:00", 1.0) for h in range(20)]
    rows[3] = ("2024-01-01T03:00", -4)
    rows[5] = ("2024-01-01T05:00", "n/a")
    rows[7] = ("31/02/2024", 1.0)
    cfg = lp.config.default_config()
    cfg.parsing.max_row_warnings = 2
    res = lp.parse_text(make_csv("timestamp,kwh", rows), config=cfg)
    diag = res.diagnostics
    assert (diag.total_rows, diag.parsed_rows, diag.dropped_rows) == (20, 17, 3)
    assert diag.negative_values == 1
    assert [w.line_number for w in diag.warnings] == [5, 7]
    # 15% dropped is above the 10% review threshold
    assert res.record.needs_review
    assert any("could not be parsed" in i for i in diag.review_issues)
    assert res.record.total_energy_kwh == pytest.approx(17.0)


def test_blank_time_cell_drops_the_row(make_csv):
    rows = [("2024-03-04", f"{h:02d}:00", 1.0) for h in range(12)]
    rows.append(("2024-03-04 12:00", "", 1.0))  # date carries its own time
    rows.append(("2024-03-04", "", 50))
    res = lp.parse_text(make_csv("Date,Time,kWh", rows))
    diag = res.diagnostics
    assert diag.time_column == 1
    assert diag.dropped_rows == 1
    (w,) = diag.warnings
    assert (w.line_number, w.reason) == (15, "missing time")
    (day,) = res.record.daily_profiles
    assert day.hourly_profile[0] == 1.0
    assert day.hourly_profile[12] == 1.0
    assert res.record.total_energy_kwh == pytest.approx(13.0)


def test_semicolon_file_with_decimal_commas(make_csv):
    rows = [("01.02.2024", f"{h:02d}:00", f"{h},5") for h in range(12)]
    res = lp.parse_text(make_csv("Date;Time;kWh", rows, delimiter=";"))
    (d,) = res.record.daily_profiles
    assert d.date_key == "2024-02-01"
    assert d.total_energy_kwh == pytest.approx(sum(h + 0.5 for h in range(12)))
    assert res.record.detected_interval_minutes == 60


def test_watt_hours_are_scaled(interval_csv):
    text = interval_csv(periods=12, header="timestamp,Energy (Wh)", value=500)
    res = lp.parse_text(text)
    assert res.config.value_scale == 0.001
    assert res.record.total_energy_kwh == pytest.approx(6.0)


def test_cumulative_register_conversion(interval_csv):
    text = interval_csv(
        periods=12, value=lambda t: 100 + 1.5 * (t.hour * 2 + t.minute // 30)
    )
    raw = lp.parse_text(text)
    assert raw.diagnostics.is_cumulative
    expected = sum(100 + 1.5 * i for i in range(12))
    assert raw.record.total_energy_kwh == pytest.approx(expected)

    cfg = lp.config.default_config()
    cfg.parsing.handle_cumulative = True
    res = lp.parse_text(text, config=cfg)
    assert res.record.total_energy_kwh == pytest.approx(1.5 * 11)


def test_mode_interval_strategy(make_csv):
    times = ["00:00", "02:00"]
    times += [f"{h:02d}:{m:02d}" for h in range(3, 8) for m in (0, 30)]
    rows = [(f"2024-01-01T{t}", 1) for t in times]
    text = make_csv("timestamp,kW", rows)
    assert lp.parse_text(text).record.detected_interval_minutes == 120
    cfg = lp.config.default_config()
    cfg.parsing.interval_strategy = "mode"
    assert lp.parse_text(text, config=cfg).record.detected_interval_minutes == 30


def test_overrides_bypass_detection(make_csv):
    text = make_csv("X,Y", [(f"2024-01-01 {h:02d}:00", 2) for h in range(12)])
    with pytest.raises(FormatError):
        lp.parse_text(text)
    ov = lp.ParseOverrides(
        header_row_index=0, date_column=0, value_column=1, value_unit="power"
    )
    res = lp.parse_text(text, overrides=ov)
    assert res.config.value_unit == "power"
    assert res.record.total_energy_kwh == pytest.approx(24.0)


def test_column_overrides_still_find_the_time_column(make_csv):
    rows = [("04/03/2024", f"{h:02d}:00", 1.0) for h in range(12)]
    text = make_csv("Reading Day,Time,Energy", rows)
    ov = lp.ParseOverrides(date_column=0, value_column=2)
    res = lp.parse_text(text, overrides=ov)
    assert res.config.time_column == 1
    (day,) = res.record.daily_profiles
    assert list(day.hourly_profile[:12]) == [1.0] * 12


def test_invalid_overrides_raise_config_error(iso_day_csv):
    with pytest.raises(ConfigError):
        ov = lp.ParseOverrides(date_column=1, value_column=1)
        lp.parse_text(iso_day_csv, overrides=ov)
    with pytest.raises(ConfigError):
        lp.parse_text(iso_day_csv, overrides=lp.ParseOverrides(header_row_index=500))


def test_parse_bytes_handles_bom_and_non_utf8(small_config):
    utf8 = "\ufefftimestamp,kwh\n2024-01-01T00:00,1\n2024-01-01T00:30,1\n".encode()
    res = lp.parse_bytes(utf8, config=small_config)
    assert res.config.headers[0] == "timestamp"

    legacy = b"Date,kWh,Note\n01/01/2024 00:00,1,caf\xe9\n01/01/2024 00:30,2,ok\n"
    res = lp.parse_bytes(legacy, config=small_config)
    assert res.config.headers == ("Date", "kWh", "Note")
    assert res.record.total_energy_kwh == pytest.approx(3.0)


def test_parse_bytes_decodes_windows_1252(cp1252_export, small_config):
    data = cp1252_export
    assert "Plant–A" in lp.ingest.decode(data)

    res = lp.parse_bytes(data, config=small_config)
    assert res.record.meter_name == "Plant–A"
    assert res.config.headers == ("Date", "kWh", "Note")
    assert res.record.total_energy_kwh == pytest.approx(12.0)


def test_parse_file(tmp_path, iso_day_csv):
    path = tmp_path / "meter.csv"
    path.write_text(iso_day_csv)
    assert lp.parse_file(path).record.total_energy_kwh == pytest.approx(100.0)
    with open(path, "rb") as fh:
        assert lp.parse_file(fh).record.total_sample_count == 48


def test_one_bad_sample_does_not_block_value_column(make_csv):
    rows = [("01/01/2024 00:00", "x")] + [("01/01/2024 01:00", 1)] * 11
    text = make_csv("Date,Reading", rows)
    res = lp.parse_text(text)
    assert res.config.value_column == 1
    assert res.diagnostics.dropped_rows == 1
