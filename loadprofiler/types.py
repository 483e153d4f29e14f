from __future__ import annotations
from typing import TypedDict, Literal, List, Dict, Optional, NamedTuple, Tuple
from dataclasses import dataclass, field
from datetime import date, datetime

from . import canon
from .exceptions import ConfigError, RowParseWarning, require

ValueUnit = Literal["energy", "power"]
IntervalStrategy = Literal["adjacent", "mode"]
MatchType = Literal["exact", "normalized", "partial", "fuzzy"]
FileStatus = Literal["success", "failed", "needs_review", "skipped"]


class Instant(NamedTuple):
    """Wall-clock minute a reading belongs to. Orders chronologically."""

    year: int
    month: int
    day: int
    hour: int
    minute: int

    def to_datetime(self) -> datetime:
        return datetime(self.year, self.month, self.day, self.hour, self.minute)

    @property
    def date_key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}-{self.day:02d}"

    @property
    def month_key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


@dataclass(frozen=True)
class RawReading:
    raw_date: str
    raw_value: str
    raw_time: Optional[str] = None
    line_number: int = 0


@dataclass(frozen=True)
class PreambleMeta:
    meter_name: str
    date_range_start: str  # YYYY-MM-DD as written in the preamble
    date_range_end: str


@dataclass(frozen=True)
class ParseConfig:
    """
    Everything needed to read the data rows of one file.

    Immutable once built; indices are zero-based into `headers`.
    """

    delimiter: str
    header_row_index: int
    date_column: int
    value_column: int
    headers: Tuple[str, ...]
    quote_char: str = canon.DEFAULT_QUOTE_CHAR
    time_column: Optional[int] = None
    value_unit: ValueUnit = "energy"
    value_scale: float = 1.0
    preamble_meta: Optional[PreambleMeta] = None

    def __post_init__(self) -> None:
        n = len(self.headers)
        require(len(self.delimiter) == 1, "delimiter must be one character", ConfigError)
        require(self.header_row_index >= 0, "header_row_index must be >= 0", ConfigError)
        require(
            self.date_column != self.value_column,
            "date_column and value_column must differ",
            ConfigError,
        )
        require(
            0 <= self.date_column < n,
            f"date_column {self.date_column} outside {n} headers",
            ConfigError,
        )
        require(
            0 <= self.value_column < n,
            f"value_column {self.value_column} outside {n} headers",
            ConfigError,
        )
        if self.time_column is not None:
            require(
                0 <= self.time_column < n,
                f"time_column {self.time_column} outside {n} headers",
                ConfigError,
            )
        require(
            self.value_unit in (canon.ENERGY_UNIT, canon.POWER_UNIT),
            f"Unknown value unit {self.value_unit!r}",
            ConfigError,
        )
        require(self.value_scale > 0, "value_scale must be positive", ConfigError)


@dataclass(frozen=True)
class NormalizedPoint:
    instant: Instant
    value: float


@dataclass
class HourlyBucket:
    hour: int
    sum_of_values: float = 0.0
    sample_count: int = 0

    @property
    def average(self) -> float:
        return self.sum_of_values / self.sample_count if self.sample_count else 0.0


@dataclass(frozen=True)
class DailyProfile:
    date_key: str  # YYYY-MM-DD
    day_of_week: int  # Sun=0..Sat=6
    is_weekend: bool
    total_energy_kwh: float
    peak_power: float
    peak_hour: int
    hourly_profile: Tuple[float, ...]  # always 24 hourly averages
    sample_count: int

    @property
    def data_points(self) -> int:
        return self.sample_count


@dataclass(frozen=True)
class MonthlyProfile:
    month_key: str  # YYYY-MM
    total_energy_kwh: float
    distinct_day_count: int
    avg_daily_kwh: float
    peak_power: float
    sample_count: int


@dataclass(frozen=True)
class MeterIdentity:
    id: str
    display_name: str
    normalized_name: str = ""
    aliases: Tuple[str, ...] = ()
    site: Optional[str] = None


@dataclass(frozen=True)
class MatchResult:
    meter_id: str
    meter_name: str  # the name/alias that matched
    confidence: float  # 0..100
    match_type: MatchType


@dataclass
class Diagnostics:
    """What the pipeline decided about one file, for callers to surface or ignore."""

    delimiter: str = canon.DEFAULT_DELIMITER
    header_row_index: int = 0
    declared_delimiter: bool = False
    preamble_detected: bool = False
    headers: List[str] = field(default_factory=list)
    date_column: Optional[int] = None
    time_column: Optional[int] = None
    value_column: Optional[int] = None
    value_unit: Optional[ValueUnit] = None
    total_rows: int = 0
    parsed_rows: int = 0
    dropped_rows: int = 0
    negative_values: int = 0
    interval_minutes: Optional[float] = None
    interval_inferred: bool = False
    is_cumulative: bool = False
    warnings: List[RowParseWarning] = field(default_factory=list)
    review_issues: List[str] = field(default_factory=list)

    @property
    def drop_fraction(self) -> float:
        return self.dropped_rows / self.total_rows if self.total_rows else 0.0


@dataclass(frozen=True)
class ProfileRecord:
    """Canonical output consumed by billing and sizing."""

    daily_profiles: Tuple[DailyProfile, ...]
    monthly_profiles: Tuple[MonthlyProfile, ...]
    detected_interval_minutes: float
    date_range_start: Optional[date]
    date_range_end: Optional[date]
    total_sample_count: int
    value_unit: ValueUnit = "energy"
    needs_review: bool = False
    meter_name: Optional[str] = None

    @property
    def total_energy_kwh(self) -> float:
        return float(sum(d.total_energy_kwh for d in self.daily_profiles))


@dataclass(frozen=True)
class ParseResult:
    config: ParseConfig
    record: ProfileRecord
    diagnostics: Diagnostics


# Summary payload
class SummaryMeta(TypedDict):
    start: Optional[str]
    end: Optional[str]
    interval_min: float
    days: int
    months: int
    samples: int
    unit: str
    needs_review: bool
    meter_name: Optional[str]


class SummaryStats(TypedDict):
    total_energy_kwh: float
    per_day_avg_kwh: float
    peak_power: float
    peak_day: Optional[str]
    peak_hour: Optional[int]


class SummaryPayload(TypedDict):
    meta: SummaryMeta
    stats: SummaryStats
    profile24: Dict[str, List[float]]  # weekday / weekend hourly means
    days: List[Dict[str, object]]
    months: List[Dict[str, object]]
