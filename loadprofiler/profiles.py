from __future__ import annotations
from typing import Callable, Generic, List, Optional, Sequence, TypeVar, Union

from . import canon
from .types import DailyProfile, MonthlyProfile, ProfileRecord

P = TypeVar("P", DailyProfile, MonthlyProfile)


def _day_key(p: DailyProfile) -> str:
    return p.date_key


def _month_key(p: MonthlyProfile) -> str:
    return p.month_key


class ProfileNavigator(Generic[P]):
    """
    Cursor over chronologically ordered profiles.

    Selection is by key or by relative step; stepping clamps at either
    end instead of wrapping. An empty navigator has no selection.
    """

    def __init__(
        self,
        profiles: Sequence[P],
        key: Callable[[P], str],
        default_index: Optional[int] = None,
    ) -> None:
        self._profiles: List[P] = list(profiles)
        self._key = key
        if not self._profiles:
            self._index = -1
        elif default_index is None:
            self._index = len(self._profiles) - 1
        else:
            self._index = max(0, min(default_index, len(self._profiles) - 1))

    def __len__(self) -> int:
        return len(self._profiles)

    @property
    def keys(self) -> List[str]:
        return [self._key(p) for p in self._profiles]

    @property
    def index(self) -> int:
        return self._index

    @property
    def selected(self) -> Optional[P]:
        return self._profiles[self._index] if self._index >= 0 else None

    def select(self, key: str) -> P:
        """Select the profile with this key; KeyError if there is none."""
        for i, p in enumerate(self._profiles):
            if self._key(p) == key:
                self._index = i
                return p
        raise KeyError(key)

    def advance(self, step: int = 1) -> Optional[P]:
        if not self._profiles:
            return None
        self._index = max(0, min(self._index + step, len(self._profiles) - 1))
        return self._profiles[self._index]

    def previous(self) -> Optional[P]:
        return self.advance(-1)

    def next(self) -> Optional[P]:
        return self.advance(1)


def preferred_month_index(
    months: Sequence[MonthlyProfile],
    min_days: int = canon.PREFERRED_MONTH_MIN_DAYS,
) -> Optional[int]:
    """Latest month with at least `min_days` covered days, else the latest month."""
    if not months:
        return None
    for i in range(len(months) - 1, -1, -1):
        if months[i].distinct_day_count >= min_days:
            return i
    return len(months) - 1


def day_navigator(
    source: Union[ProfileRecord, Sequence[DailyProfile]],
) -> ProfileNavigator[DailyProfile]:
    days = source.daily_profiles if isinstance(source, ProfileRecord) else source
    return ProfileNavigator(days, _day_key)


def month_navigator(
    source: Union[ProfileRecord, Sequence[MonthlyProfile]],
    min_days: int = canon.PREFERRED_MONTH_MIN_DAYS,
) -> ProfileNavigator[MonthlyProfile]:
    months = source.monthly_profiles if isinstance(source, ProfileRecord) else source
    return ProfileNavigator(months, _month_key, preferred_month_index(months, min_days))
