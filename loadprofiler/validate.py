from __future__ import annotations
import numpy as np
from typing import List, Sequence

from . import canon, exceptions
from .types import DailyProfile, ProfileRecord


def assert_profiles(days: Sequence[DailyProfile]) -> None:
    """Structural checks every emitted daily profile must pass."""
    keys = [d.date_key for d in days]
    if keys != sorted(keys) or len(set(keys)) != len(keys):
        raise exceptions.LoadProfileError("Daily profiles must be unique, ascending.")
    for d in days:
        hp = np.asarray(d.hourly_profile, dtype=float)
        if hp.shape != (canon.HOURS_PER_DAY,):
            raise exceptions.LoadProfileError(
                f"{d.date_key}: hourly profile has {hp.size} entries, expected 24."
            )
        if not np.isfinite(hp).all() or (hp < 0).any():
            raise exceptions.LoadProfileError(
                f"{d.date_key}: hourly profile must be finite and non-negative."
            )
        if not 0 <= d.peak_hour < canon.HOURS_PER_DAY:
            raise exceptions.LoadProfileError(f"{d.date_key}: peak hour out of range.")


def review_profile(
    record: ProfileRecord,
    drop_fraction: float = 0.0,
    threshold: float = 0.1,
) -> List[str]:
    """
    Reasons a human should look at this profile before it is billed.

    An empty list means nothing suspicious was found.
    """
    issues: List[str] = []
    if drop_fraction > threshold:
        issues.append(
            f"{drop_fraction:.0%} of rows could not be parsed (threshold {threshold:.0%})."
        )

    days = record.daily_profiles
    hourly = (
        np.array([d.hourly_profile for d in days], dtype=float)
        if days
        else np.zeros((0, canon.HOURS_PER_DAY))
    )
    if not days or not (hourly > 0).any():
        issues.append("Profile is empty: no non-zero readings.")
        return issues

    nonzero = hourly[hourly > 0]
    if nonzero.size > 1 and np.all(nonzero == nonzero[0]):
        issues.append("Flat line: every non-zero hourly value is identical.")

    peak = max(d.peak_power for d in days)
    if hourly.max() > canon.OUTLIER_KW or peak > canon.OUTLIER_KW:
        issues.append(
            f"Values above {canon.OUTLIER_KW:,.0f} suggest W exported as kW."
        )

    if record.total_sample_count < canon.FEW_POINTS:
        issues.append(
            f"Only {record.total_sample_count} readings (fewer than {canon.FEW_POINTS})."
        )
    return issues
