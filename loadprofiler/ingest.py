from __future__ import annotations
import logging
import os
from dataclasses import dataclass, replace
from datetime import date
from pathlib import Path
from typing import IO, List, Optional, Tuple, Union

import chardet

from . import canon, columns, formats, rows, timestamps, transform, utils, validate
from .config import IngestConfig, default_config
from .exceptions import ConfigError, InsufficientDataError, RowParseWarning, require
from .types import (
    Diagnostics,
    NormalizedPoint,
    ParseConfig,
    ParseResult,
    ProfileRecord,
    RawReading,
    ValueUnit,
)

logger = logging.getLogger(__name__)


@dataclass
class ParseOverrides:
    """
    Operator choices that replace detection for the fields they set.

    Column indices are zero-based into the header row.
    """

    delimiter: Optional[str] = None
    header_row_index: Optional[int] = None
    date_column: Optional[int] = None
    time_column: Optional[int] = None
    value_column: Optional[int] = None
    value_unit: Optional[ValueUnit] = None
    value_scale: Optional[float] = None


def _detect(
    text: str, cfg: IngestConfig, ov: ParseOverrides
) -> formats.FormatDetection:
    if ov.header_row_index is None:
        detection = formats.detect_format(text, cfg.detection)
        if ov.delimiter:
            detection = replace(detection, delimiter=ov.delimiter)
        return detection

    lines, declared = formats.strip_directives(rows.clean_lines(text))
    require(
        0 <= ov.header_row_index < len(lines),
        f"header_row_index {ov.header_row_index} outside {len(lines)} lines",
        ConfigError,
    )
    delimiter = (
        ov.delimiter or declared or formats.detect_delimiter(lines[ov.header_row_index])
    )
    return formats.FormatDetection(
        delimiter=delimiter,
        header_row_index=ov.header_row_index,
        lines=lines,
        declared_delimiter=declared is not None,
    )


def _select_columns(
    headers: List[str],
    samples: List[List[str]],
    delimiter: str,
    cfg: IngestConfig,
    ov: ParseOverrides,
) -> columns.ColumnSelection:
    if ov.date_column is not None and ov.value_column is not None:
        require(
            0 <= ov.value_column < len(headers),
            f"value_column {ov.value_column} outside {len(headers)} headers",
            ConfigError,
        )
        _, unit = columns.value_header_rule(headers[ov.value_column])
        selection = columns.ColumnSelection(
            date_column=ov.date_column,
            value_column=ov.value_column,
            time_column=columns.detect_time_column(
                headers,
                samples,
                exclude=(ov.date_column, ov.value_column),
                day_first=cfg.parsing.day_first,
                config=cfg.columns,
            ),
            value_unit=unit or canon.ENERGY_UNIT,  # type: ignore[arg-type]
            value_scale=columns.value_scale(headers[ov.value_column]),
        )
    else:
        selection = columns.classify_columns(
            headers,
            samples,
            delimiter=delimiter,
            day_first=cfg.parsing.day_first,
            config=cfg.columns,
        )
        if ov.date_column is not None:
            selection = replace(selection, date_column=ov.date_column)
        if ov.value_column is not None:
            selection = replace(selection, value_column=ov.value_column)

    if ov.time_column is not None:
        selection = replace(selection, time_column=ov.time_column)
    if ov.value_unit is not None:
        selection = replace(selection, value_unit=ov.value_unit)
    if ov.value_scale is not None:
        selection = replace(selection, value_scale=ov.value_scale)
    return selection


def build_parse_config(
    text: str,
    *,
    config: Optional[IngestConfig] = None,
    overrides: Optional[ParseOverrides] = None,
) -> Tuple[ParseConfig, formats.FormatDetection]:
    """
    Detect layout and columns for one file.

    Returns the validated ParseConfig and the layout it was built from.
    Raises FormatError, ColumnNotFoundError or InsufficientDataError when
    the file cannot be read at all.
    """
    cfg = config or default_config()
    ov = overrides or ParseOverrides()

    detection = _detect(text, cfg, ov)
    data_lines = detection.data_lines
    if len(data_lines) < cfg.parsing.min_data_rows:
        raise InsufficientDataError(len(data_lines), cfg.parsing.min_data_rows)

    delim, quote = detection.delimiter, detection.quote_char
    headers = rows.split_row(detection.header_line, delim, quote)
    samples = [
        rows.split_row(line, delim, quote)
        for line in data_lines[: cfg.columns.sample_rows]
    ]
    selection = _select_columns(headers, samples, delim, cfg, ov)

    parse_config = ParseConfig(
        delimiter=delim,
        header_row_index=detection.header_row_index,
        quote_char=quote,
        date_column=selection.date_column,
        time_column=selection.time_column,
        value_column=selection.value_column,
        value_unit=selection.value_unit,
        value_scale=selection.value_scale,
        headers=tuple(headers),
        preamble_meta=detection.preamble_meta,
    )
    logger.debug("Parse config: %s", parse_config)
    return parse_config, detection


def _field(fields: List[str], idx: Optional[int]) -> Optional[str]:
    if idx is None:
        return None
    return fields[idx] if idx < len(fields) else ""


def tokenize(data_lines: List[str], pc: ParseConfig) -> List[RawReading]:
    """Data lines → raw readings; line numbers count non-blank lines from 1."""
    first = pc.header_row_index + 2
    out: List[RawReading] = []
    for offset, line in enumerate(data_lines):
        fields = rows.split_row(line, pc.delimiter, pc.quote_char)
        out.append(
            RawReading(
                raw_date=_field(fields, pc.date_column) or "",
                raw_time=_field(fields, pc.time_column),
                raw_value=_field(fields, pc.value_column) or "",
                line_number=first + offset,
            )
        )
    return out


def normalize_readings(
    readings: List[RawReading],
    pc: ParseConfig,
    diag: Diagnostics,
    *,
    day_first: bool = True,
    max_warnings: int = 5,
) -> List[NormalizedPoint]:
    """
    Turn raw readings into points, dropping rows that cannot be used.

    Dropped rows are counted on `diag`; the first `max_warnings` of them
    are kept as RowParseWarning records.
    """
    points: List[NormalizedPoint] = []

    def drop(r: RawReading, reason: str) -> None:
        diag.dropped_rows += 1
        if len(diag.warnings) < max_warnings:
            diag.warnings.append(RowParseWarning(r.line_number, reason, r.raw_date))

    for r in readings:
        instant = timestamps.normalize_timestamp(
            r.raw_date, r.raw_time, day_first=day_first
        )
        if instant is None:
            drop(r, f"unparseable timestamp {r.raw_date!r}")
            continue
        if (
            pc.time_column is not None
            and not (r.raw_time or "").strip()
            and not timestamps.carries_time(r.raw_date, day_first=day_first)
        ):
            drop(r, "missing time")
            continue
        value = rows.parse_number(r.raw_value, pc.delimiter)
        if value is None:
            drop(r, f"non-numeric value {r.raw_value!r}")
            continue
        if value < 0:
            diag.negative_values += 1
            drop(r, f"negative value {r.raw_value!r}")
            continue
        points.append(NormalizedPoint(instant, value * pc.value_scale))

    diag.total_rows = len(readings)
    diag.parsed_rows = len(points)
    return points


def _apply_cumulative(points: List[NormalizedPoint]) -> List[NormalizedPoint]:
    deltas = utils.cumulative_to_interval([p.value for p in points])
    return [NormalizedPoint(p.instant, d) for p, d in zip(points, deltas)]


def parse_text(
    text: str,
    *,
    config: Optional[IngestConfig] = None,
    overrides: Optional[ParseOverrides] = None,
) -> ParseResult:
    """
    Parse one meter export into a profile record plus diagnostics.

    Per-row problems drop the row; per-file problems (no header, no
    usable columns, too few rows) raise a LoadProfileError subclass.
    Every call builds its own state, so the same text always yields the
    same record.
    """
    cfg = config or default_config()
    pc, detection = build_parse_config(text, config=cfg, overrides=overrides)

    diag = Diagnostics(
        delimiter=pc.delimiter,
        header_row_index=pc.header_row_index,
        declared_delimiter=detection.declared_delimiter,
        preamble_detected=pc.preamble_meta is not None,
        headers=list(pc.headers),
        date_column=pc.date_column,
        time_column=pc.time_column,
        value_column=pc.value_column,
        value_unit=pc.value_unit,
    )
    readings = tokenize(detection.data_lines, pc)
    points = normalize_readings(
        readings,
        pc,
        diag,
        day_first=cfg.parsing.day_first,
        max_warnings=cfg.parsing.max_row_warnings,
    )

    diag.is_cumulative = formats.detect_cumulative([p.value for p in points])
    if diag.is_cumulative and cfg.parsing.handle_cumulative:
        points = _apply_cumulative(points)

    interval = utils.resolve_interval(
        [p.instant for p in points],
        default_hours=cfg.parsing.default_interval_hours,
        strategy=cfg.parsing.interval_strategy,
    )
    diag.interval_minutes = interval.minutes
    diag.interval_inferred = interval.inferred

    state = transform.AggregationState(
        unit=pc.value_unit, interval_hours=interval.hours
    )
    state.extend(points)
    days = transform.daily_profiles(state)
    validate.assert_profiles(days)
    months = transform.monthly_profiles(days, min_days=cfg.profiles.monthly_min_days)

    record = ProfileRecord(
        daily_profiles=tuple(days),
        monthly_profiles=tuple(months),
        detected_interval_minutes=interval.minutes,
        date_range_start=date.fromisoformat(days[0].date_key) if days else None,
        date_range_end=date.fromisoformat(days[-1].date_key) if days else None,
        total_sample_count=len(points),
        value_unit=pc.value_unit,
        meter_name=pc.preamble_meta.meter_name if pc.preamble_meta else None,
    )
    diag.review_issues = validate.review_profile(
        record, diag.drop_fraction, cfg.parsing.review_drop_fraction
    )
    if diag.review_issues:
        record = replace(record, needs_review=True)

    logger.info(
        "Parsed %d/%d rows into %d days, %d months (interval %.0f min, %s)",
        diag.parsed_rows,
        diag.total_rows,
        len(days),
        len(months),
        interval.minutes,
        pc.value_unit,
    )
    if diag.dropped_rows:
        logger.info("Dropped %d rows; first: %s", diag.dropped_rows, diag.warnings[:1])
    return ParseResult(config=pc, record=record, diagnostics=diag)


def decode(data: bytes) -> str:
    """
    UTF-8 (BOM optional) when the bytes are valid UTF-8.

    Anything else (typically Windows-1252 SCADA exports) is decoded with
    the encoding chardet detects on the leading sample.
    """
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError:
        detected = chardet.detect(data[: canon.ENCODING_SAMPLE_BYTES])
    encoding = detected.get("encoding") or canon.FALLBACK_ENCODING
    logger.debug(
        "Input is not UTF-8; decoding as %s (confidence %.2f)",
        encoding,
        detected.get("confidence") or 0.0,
    )
    return data.decode(encoding, errors="replace")


def parse_bytes(
    data: bytes,
    *,
    config: Optional[IngestConfig] = None,
    overrides: Optional[ParseOverrides] = None,
) -> ParseResult:
    return parse_text(decode(data), config=config, overrides=overrides)


def parse_file(
    file_like: Union[IO[bytes], str, os.PathLike],
    *,
    config: Optional[IngestConfig] = None,
    overrides: Optional[ParseOverrides] = None,
) -> ParseResult:
    """Parse a path or an open binary file."""
    if isinstance(file_like, (str, os.PathLike)):
        data = Path(file_like).read_bytes()
    else:
        data = file_like.read()
    return parse_bytes(data, config=config, overrides=overrides)
