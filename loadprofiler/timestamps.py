"""
Date/time normalisation as an ordered grammar table.

Each grammar is a compiled pattern plus an extractor returning raw
calendar fields; the first grammar whose pattern matches decides the
result. Calendar validation happens once, after extraction.
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional, Sequence

from . import canon
from .types import Instant

# (year, month, day, hour, minute, has_time)
Fields = tuple[int, int, int, int, int, bool]
Extractor = Callable[["re.Match[str]", bool], Optional[Fields]]

_TIME = r"(?:[\sT]+(?P<hh>\d{1,2}):(?P<mm>\d{2})(?::(?P<ss>\d{2})(?:\.\d+)?)?)?"
_TIME_ONLY = re.compile(r"^(?P<hh>\d{1,2}):(?P<mm>\d{2})(?::(?P<ss>\d{2})(?:\.\d+)?)?$")


@dataclass(frozen=True)
class Grammar:
    name: str
    pattern: "re.Pattern[str]"
    extract: Extractor


def _expand_year(y: int, digits: int) -> int:
    if digits <= 2:
        return y + (1900 if y > canon.TWO_DIGIT_YEAR_PIVOT else 2000)
    return y


def _clock(m: "re.Match[str]") -> tuple[int, int, bool]:
    if m.group("hh") is None:
        return 0, 0, False
    return int(m.group("hh")), int(m.group("mm")), True


def _iso(m: "re.Match[str]", day_first: bool) -> Optional[Fields]:
    hh, mm, _ = _clock(m)
    return int(m.group("y")), int(m.group("mo")), int(m.group("d")), hh, mm, True


def month_number(name: str) -> Optional[int]:
    """English month name or 3-letter abbreviation → 1..12."""
    s = name.strip().lower()
    if len(s) < 3:
        return None
    num = canon.MONTH_ABBR.get(s[:3])
    if num is None:
        return None
    # "Sept" and full names are prefixes of the full English name
    if len(s) > 3 and not canon.MONTH_NAMES[num - 1].startswith(s):
        return None
    return num


def _named_month(m: "re.Match[str]", day_first: bool) -> Optional[Fields]:
    month = month_number(m.group("mon"))
    if month is None:
        return None
    y = m.group("y")
    hh, mm, has_time = _clock(m)
    return _expand_year(int(y), len(y)), month, int(m.group("d")), hh, mm, has_time


def _numeric(m: "re.Match[str]", day_first: bool) -> Optional[Fields]:
    p1, p2, p3 = int(m.group("p1")), int(m.group("p2")), int(m.group("p3"))
    if p1 > 31:
        year, month, day = p1, p2, p3
    else:
        year = _expand_year(p3, len(m.group("p3")))
        # Magnitude beats the locale default: a part above 12 can only be a day
        if p1 > 12 and p2 <= 12:
            day, month = p1, p2
        elif p2 > 12 and p1 <= 12:
            day, month = p2, p1
        elif day_first:
            day, month = p1, p2
        else:
            day, month = p2, p1
    hh, mm, has_time = _clock(m)
    return year, month, day, hh, mm, has_time


GRAMMARS: tuple[Grammar, ...] = (
    Grammar(
        "iso8601",
        re.compile(
            r"^(?P<y>\d{4})-(?P<mo>\d{1,2})-(?P<d>\d{1,2})T(?P<hh>\d{1,2}):(?P<mm>\d{2})"
            r"(?::(?P<ss>\d{2})(?:\.\d+)?)?(?:Z|[+-]\d{2}:?\d{2})?$"
        ),
        _iso,
    ),
    Grammar(
        "day-month-name-year",
        re.compile(
            r"^(?P<d>\d{1,2})[\s\-/](?P<mon>[A-Za-z]{3,9})\.?[\s\-/](?P<y>\d{4}|\d{2})"
            + _TIME
            + r"$"
        ),
        _named_month,
    ),
    Grammar(
        "numeric",
        re.compile(
            r"^(?P<p1>\d{1,4})[\-/.](?P<p2>\d{1,2})[\-/.](?P<p3>\d{4}|\d{1,2})"
            + _TIME
            + r"$"
        ),
        _numeric,
    ),
)


def parse_time_of_day(time_str: Optional[str]) -> Optional[tuple[int, int]]:
    """'HH:mm[:ss]' → (hour, minute). '24:00' is allowed and handled by the caller."""
    if not time_str:
        return None
    m = _TIME_ONLY.match(time_str.strip().strip("'\""))
    if not m:
        return None
    hh, mm = int(m.group("hh")), int(m.group("mm"))
    if mm > 59 or hh > 24 or (hh == 24 and mm != 0):
        return None
    return hh, mm


def match_grammar(
    date_str: str, *, day_first: bool = True, grammars: Sequence[Grammar] = GRAMMARS
) -> Optional[tuple[str, Fields]]:
    """Return (grammar name, raw fields) for the first matching grammar."""
    s = date_str.strip().strip("'\"")
    for g in grammars:
        m = g.pattern.match(s)
        if m is None:
            continue
        fields = g.extract(m, day_first)
        if fields is not None:
            return g.name, fields
        return None
    return None


def normalize_timestamp(
    date_str: Optional[str],
    time_str: Optional[str] = None,
    *,
    day_first: bool = True,
) -> Optional[Instant]:
    """
    Normalise a date (and optional separate time) string to an Instant.

    Returns None when no grammar matches or the calendar fields are out of
    range. A separate time string is used only when the date string has no
    time of its own; '24:00' there rolls over to midnight of the next day.
    """
    if not date_str or not date_str.strip():
        return None
    found = match_grammar(date_str, day_first=day_first)
    if found is None:
        return None
    _, (year, month, day, hour, minute, has_time) = found

    rollover = False
    if not has_time and time_str is not None and time_str.strip():
        clock = parse_time_of_day(time_str)
        if clock is None:
            return None
        hour, minute = clock
        if hour == 24:
            hour, rollover = 0, True

    try:
        dt = datetime(year, month, day, hour, minute)
    except ValueError:
        return None
    if rollover:
        dt += timedelta(days=1)
    return Instant(dt.year, dt.month, dt.day, dt.hour, dt.minute)


def carries_time(date_str: Optional[str], *, day_first: bool = True) -> bool:
    """True when the date string has its own time of day."""
    found = match_grammar(date_str, day_first=day_first) if date_str else None
    return found is not None and found[1][-1]


def looks_like_date(value: Optional[str], *, day_first: bool = True) -> bool:
    """True for strings carrying a full calendar date (not a bare time of day)."""
    return bool(value) and normalize_timestamp(value, day_first=day_first) is not None
