from __future__ import annotations
import pandas as pd
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List, Sequence

from . import canon, utils
from .types import DailyProfile, Instant, MonthlyProfile, NormalizedPoint, ValueUnit

HOURS = list(range(canon.HOURS_PER_DAY))


@dataclass
class AggregationState:
    """
    Accumulated readings for one file, in input order.

    Built fresh for every file; nothing here is shared between parses.
    """

    unit: ValueUnit
    interval_hours: float
    instants: List[Instant] = field(default_factory=list)
    values: List[float] = field(default_factory=list)

    def add(self, point: NormalizedPoint) -> None:
        self.instants.append(point.instant)
        self.values.append(float(point.value))

    def extend(self, points: Iterable[NormalizedPoint]) -> None:
        for p in points:
            self.add(p)

    def __len__(self) -> int:
        return len(self.values)

    def to_frame(self) -> pd.DataFrame:
        """One row per reading: day, hour, value and its kWh contribution."""
        df = pd.DataFrame(
            {
                "day": [i.date_key for i in self.instants],
                "hour": [i.hour for i in self.instants],
                "value": pd.Series(self.values, dtype=float),
            }
        )
        df["energy"] = [
            utils.energy_contribution(v, self.unit, self.interval_hours)
            for v in self.values
        ]
        return df


def daily_profiles(state: AggregationState) -> List[DailyProfile]:
    """
    Bucket readings per day and hour.

    The day's peak is the highest running hourly average seen while
    accumulating in input order; the first hour to reach it wins.
    """
    df = state.to_frame()
    if df.empty:
        return []

    g = df.groupby(["day", "hour"], sort=False)["value"]
    df["running_avg"] = g.cumsum() / (g.cumcount() + 1)

    by_day = df.groupby("day", sort=True)
    totals = by_day["energy"].sum()
    counts = by_day.size()
    peak_rows = by_day["running_avg"].idxmax()

    hourly = (
        df.groupby(["day", "hour"])["value"]
        .mean()
        .unstack("hour")
        .reindex(columns=HOURS)
        .fillna(0.0)
    )

    out: List[DailyProfile] = []
    for key in totals.index:
        row = peak_rows[key]
        peak = float(df.at[row, "running_avg"])
        peak_hour = int(df.at[row, "hour"])
        if peak <= 0:
            peak, peak_hour = 0.0, 0
        dow = date.fromisoformat(key).isoweekday() % 7
        out.append(
            DailyProfile(
                date_key=key,
                day_of_week=dow,
                is_weekend=utils.is_weekend(dow),
                total_energy_kwh=float(totals[key]),
                peak_power=peak,
                peak_hour=peak_hour,
                hourly_profile=tuple(float(v) for v in hourly.loc[key, HOURS]),
                sample_count=int(counts[key]),
            )
        )
    return out


def daily_frame(days: Sequence[DailyProfile]) -> pd.DataFrame:
    """Daily profiles as a frame indexed by day key (hourly profile excluded)."""
    cols = [
        "day",
        "month",
        "day_of_week",
        "is_weekend",
        "total_energy_kwh",
        "peak_power",
        "peak_hour",
        "sample_count",
    ]
    if not days:
        return pd.DataFrame(columns=cols).set_index("day")
    return pd.DataFrame(
        {
            "day": [d.date_key for d in days],
            "month": [utils.month_key(d.date_key) for d in days],
            "day_of_week": [d.day_of_week for d in days],
            "is_weekend": [d.is_weekend for d in days],
            "total_energy_kwh": [d.total_energy_kwh for d in days],
            "peak_power": [d.peak_power for d in days],
            "peak_hour": [d.peak_hour for d in days],
            "sample_count": [d.sample_count for d in days],
        }
    ).set_index("day")


def monthly_profiles(
    days: Sequence[DailyProfile], *, min_days: int = canon.MONTHLY_MIN_DAYS
) -> List[MonthlyProfile]:
    """
    Roll daily profiles up per calendar month.

    Months covering fewer than `min_days` distinct days are left out.
    """
    d = daily_frame(days)
    if d.empty:
        return []
    agg = (
        d.groupby("month", sort=True)
        .agg(
            total_energy_kwh=("total_energy_kwh", "sum"),
            distinct_day_count=("total_energy_kwh", "size"),
            peak_power=("peak_power", "max"),
            sample_count=("sample_count", "sum"),
        )
        .query("distinct_day_count >= @min_days")
    )
    return [
        MonthlyProfile(
            month_key=str(month),
            total_energy_kwh=float(r.total_energy_kwh),
            distinct_day_count=int(r.distinct_day_count),
            avg_daily_kwh=float(r.total_energy_kwh) / int(r.distinct_day_count),
            peak_power=float(r.peak_power),
            sample_count=int(r.sample_count),
        )
        for month, r in agg.iterrows()
    ]


def profile24(days: Sequence[DailyProfile]) -> Dict[str, List[float]]:
    """
    Average 24-hour shape for weekdays and weekends.

    Each day's hourly profile counts once; an empty group is all zeros.
    """
    if not days:
        return {"weekday": [0.0] * len(HOURS), "weekend": [0.0] * len(HOURS)}
    frame = pd.DataFrame(
        [list(d.hourly_profile) for d in days],
        columns=HOURS,
        index=pd.Index(
            ["weekend" if d.is_weekend else "weekday" for d in days], name="daytype"
        ),
    )
    means = frame.groupby(level="daytype").mean()
    out: Dict[str, List[float]] = {}
    for label in ("weekday", "weekend"):
        if label in means.index:
            out[label] = [float(v) for v in means.loc[label, HOURS]]
        else:
            out[label] = [0.0] * len(HOURS)
    return out
