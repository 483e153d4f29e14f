import pandas as pd
import pytest

import loadprofiler as lp


def csv_text(header, rows, delimiter=","):
    """Join a header and row tuples into export text."""
    lines = [header] + [delimiter.join(str(v) for v in r) for r in rows]
    return "\n".join(lines) + "\n"


@pytest.fixture
def make_csv():
    return csv_text


@pytest.fixture
def interval_csv():
    """
    Regular interval export: `periods` readings from `start` every `freq`.

    `value` may be a constant or a callable of the reading's Timestamp.
    """

    def build(
        start="2024-01-01",
        periods=48,
        freq="30min",
        header="timestamp,kwh",
        value=1.0,
        fmt="%Y-%m-%dT%H:%M:%S",
        delimiter=",",
    ):
        rng = pd.date_range(start, periods=periods, freq=freq)
        rows = [
            (t.strftime(fmt), value(t) if callable(value) else value) for t in rng
        ]
        return csv_text(header, rows, delimiter)

    return build


@pytest.fixture
def iso_day_csv(interval_csv):
    # 48 half-hourly kWh readings on Monday 2024-03-04 totalling 100 kWh
    return interval_csv(
        start="2024-03-04",
        value=lambda t: 2.0 if t.hour < 20 else 2.5,
    )


@pytest.fixture
def preamble_csv():
    rows = [
        ("01/01/2024", f"{h:02d}:{m:02d}", 1.5)
        for h in range(0, 12)
        for m in (0, 30)
    ]
    return '"METER-1",2024-01-01,2024-01-31\n' + csv_text("rdate,rtime,kwh", rows)


@pytest.fixture
def cp1252_export():
    # Windows-1252 export; the en dash is 0x96, a C1 control in latin-1
    rows = [
        (f"01/03/2024 {h:02d}:00", 1.0, "Zählerstand geprüft – Café")
        for h in range(12)
    ]
    text = '"Plant–A",2024-03-01,2024-03-31\n' + csv_text("Date,kWh,Note", rows)
    return text.encode("cp1252")


@pytest.fixture
def small_config():
    cfg = lp.config.default_config()
    cfg.parsing.min_data_rows = 2
    return cfg
