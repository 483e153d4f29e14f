# loadprofiler/utils.py
from __future__ import annotations
import numpy as np
from dataclasses import dataclass
from typing import Iterable, List, Sequence

from . import canon
from .types import Instant, IntervalStrategy, ValueUnit


@dataclass(frozen=True)
class IntervalResolution:
    hours: float
    inferred: bool  # False when the default was used

    @property
    def minutes(self) -> float:
        return self.hours * 60.0


def _as_minutes(instants: Iterable[Instant]) -> np.ndarray:
    return np.array([i.to_datetime() for i in instants], dtype="datetime64[m]")


def clamp_interval_hours(hours: float) -> float:
    """Clamp into (0, 24]; callers handle non-positive values before this."""
    return float(min(hours, canon.MAX_INTERVAL_HOURS))


def adjacent_delta_minutes(instants: Sequence[Instant]) -> float | None:
    """Minutes between the two chronologically first timestamps."""
    if len(instants) < 2:
        return None
    first, second = sorted(instants)[:2]
    return (second.to_datetime() - first.to_datetime()).total_seconds() / 60.0


def infer_cadence_minutes(instants: Sequence[Instant]) -> float | None:
    """
    Most common positive delta in whole minutes, ignoring duplicate timestamps.
    """
    ts = np.unique(_as_minutes(instants))
    if len(ts) < 2:
        return None
    diffs_min = (ts[1:] - ts[:-1]).astype(float)
    diffs_min = diffs_min[diffs_min > 0]
    if len(diffs_min) == 0:
        return None
    rounded = np.rint(diffs_min).astype(int)
    vals, counts = np.unique(rounded, return_counts=True)
    return float(vals[np.argmax(counts)])


def resolve_interval(
    instants: Sequence[Instant],
    *,
    default_hours: float = canon.DEFAULT_INTERVAL_HOURS,
    strategy: IntervalStrategy = "adjacent",
) -> IntervalResolution:
    """
    Sampling interval for one file, in hours.

    Falls back to `default_hours` when fewer than two timestamps exist or
    the delta is not positive; never raises.
    """
    if strategy == "mode":
        delta = infer_cadence_minutes(instants)
    else:
        delta = adjacent_delta_minutes(instants)
    if delta is None or delta <= 0:
        return IntervalResolution(hours=default_hours, inferred=False)
    return IntervalResolution(hours=clamp_interval_hours(delta / 60.0), inferred=True)


def energy_contribution(value: float, unit: ValueUnit, interval_hours: float) -> float:
    """kWh contributed by one reading: power × interval, energy as-is."""
    if unit == canon.POWER_UNIT:
        return value * interval_hours
    return value


def cumulative_to_interval(values: Sequence[float]) -> List[float]:
    """
    Register readings → per-interval deltas.

    The first reading has no predecessor and contributes 0; a drop is a
    meter rollover and the new reading is taken as the delta.
    """
    out: List[float] = []
    prev: float | None = None
    for v in values:
        if prev is None:
            out.append(0.0)
        elif v < prev:
            out.append(v)
        else:
            out.append(v - prev)
        prev = v
    return out


def is_weekend(day_of_week: int) -> bool:
    # Sun=0..Sat=6
    return day_of_week in (0, 6)


def month_key(key: str) -> str:
    """YYYY-MM from a YYYY-MM-DD day key."""
    return key[:7]
