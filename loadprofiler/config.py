from __future__ import annotations

from dataclasses import dataclass, field
from typing import Tuple

from . import canon
from .types import IntervalStrategy


@dataclass
class DetectionConfig:
    # Header search window (non-blank lines)
    header_scan_lines: int = canon.HEADER_SCAN_LINES
    header_keywords: Tuple[str, ...] = canon.HEADER_KEYWORDS


@dataclass
class ColumnConfig:
    sample_rows: int = canon.SAMPLE_ROWS
    numeric_ratio: float = 0.8  # share of numeric samples that earns the bonus
    numeric_bonus: int = 25


@dataclass
class ParsingConfig:
    # Ambiguous numeric dates (both parts <= 12) read as DD/MM
    day_first: bool = True
    min_data_rows: int = canon.MIN_DATA_ROWS
    default_interval_hours: float = canon.DEFAULT_INTERVAL_HOURS
    interval_strategy: IntervalStrategy = "adjacent"
    review_drop_fraction: float = 0.1  # dropped/total above this flags needs_review
    max_row_warnings: int = 5
    handle_cumulative: bool = False


@dataclass
class ProfileConfig:
    monthly_min_days: int = canon.MONTHLY_MIN_DAYS
    preferred_month_min_days: int = canon.PREFERRED_MONTH_MIN_DAYS


@dataclass
class MatchConfig:
    confidence_floor: float = canon.MATCH_CONFIDENCE_FLOOR
    normalized_threshold: float = 85.0
    partial_threshold: float = 65.0
    fuzzy_threshold: float = 60.0


@dataclass
class BatchConfig:
    pause_poll_seconds: float = 0.2
    # Each meter identity receives at most one file per batch
    unique_meters: bool = True


@dataclass
class IngestConfig:
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    columns: ColumnConfig = field(default_factory=ColumnConfig)
    parsing: ParsingConfig = field(default_factory=ParsingConfig)
    profiles: ProfileConfig = field(default_factory=ProfileConfig)
    matching: MatchConfig = field(default_factory=MatchConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)


def default_config() -> IngestConfig:
    return IngestConfig()
