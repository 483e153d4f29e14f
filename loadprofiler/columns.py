from __future__ import annotations
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from . import canon, rows, timestamps
from .config import ColumnConfig
from .exceptions import ColumnNotFoundError
from .types import ValueUnit

logger = logging.getLogger(__name__)

_VALUE_RULES = tuple(
    (re.compile(pat), score, unit) for pat, score, unit in canon.VALUE_HEADER_RULES
)
_SCALE_RULES = tuple((re.compile(pat), scale) for pat, scale in canon.VALUE_SCALE_RULES)
_TIME_HEADER = re.compile(canon.TIME_HEADER_PATTERN)


@dataclass(frozen=True)
class ColumnSelection:
    date_column: int
    value_column: int
    value_unit: ValueUnit
    time_column: Optional[int] = None
    value_scale: float = 1.0


def _norm(header: str) -> str:
    return header.strip().strip("'\"").lower()


def is_date_header(header: str) -> bool:
    h = _norm(header)
    # interval-start column ("From") carries full timestamps
    return h == "from" or any(k in h for k in canon.DATE_KEYWORDS)


def is_time_header(header: str) -> bool:
    """Time-keyword headers that are not also date headers ('timestamp' is a date)."""
    h = _norm(header)
    return not is_date_header(header) and _TIME_HEADER.search(h) is not None


def value_header_rule(header: str) -> tuple[int, Optional[ValueUnit]]:
    """Keyword score and unit implied by a header; (0, None) when nothing matches."""
    h = _norm(header)
    for pattern, score, unit in _VALUE_RULES:
        if pattern.search(h):
            return score, unit  # type: ignore[return-value]
    return 0, None


def value_scale(header: str) -> float:
    """Multiplier taking W/Wh or MW/MWh headers to kW/kWh."""
    h = _norm(header)
    for pattern, scale in _SCALE_RULES:
        if pattern.search(h):
            return scale
    return 1.0


def column_samples(sample_rows: Sequence[Sequence[str]], idx: int) -> List[str]:
    return [r[idx] for r in sample_rows if idx < len(r)]


def score_value_column(
    header: str,
    samples: Sequence[str],
    *,
    delimiter: str = canon.DEFAULT_DELIMITER,
    config: Optional[ColumnConfig] = None,
) -> int:
    """
    Keyword specificity plus a bonus when most samples are numeric.

    A header with no value keyword scores 0 regardless of its samples.
    """
    cfg = config or ColumnConfig()
    score, _ = value_header_rule(header)
    if score <= 0:
        return 0
    if rows.numeric_share(list(samples), delimiter) >= cfg.numeric_ratio:
        score += cfg.numeric_bonus
    return score


def _all_numeric(samples: Sequence[str], delimiter: str) -> bool:
    return bool(samples) and all(
        rows.parse_number(s, delimiter) is not None for s in samples
    )


def _date_share(samples: Sequence[str], day_first: bool) -> float:
    present = [s for s in samples if s.strip()]
    if not present:
        return 0.0
    hits = sum(1 for s in present if timestamps.looks_like_date(s, day_first=day_first))
    return hits / len(present)


def detect_time_column(
    headers: Sequence[str],
    sample_rows: Sequence[Sequence[str]],
    *,
    exclude: Sequence[Optional[int]] = (),
    day_first: bool = True,
    config: Optional[ColumnConfig] = None,
) -> Optional[int]:
    """First time-keyword column outside `exclude` that holds times of day."""
    cfg = config or ColumnConfig()
    for i, h in enumerate(headers):
        if i in exclude or not is_time_header(h):
            continue
        if _date_share(column_samples(sample_rows, i), day_first) < cfg.numeric_ratio:
            return i
    return None


def classify_columns(
    headers: Sequence[str],
    sample_rows: Sequence[Sequence[str]],
    *,
    delimiter: str = canon.DEFAULT_DELIMITER,
    day_first: bool = True,
    config: Optional[ColumnConfig] = None,
) -> ColumnSelection:
    """
    Pick the date, optional time and value columns from a header row.

    A time-keyword column whose samples are full dates ("Time" holding
    timestamps) is promoted to the date column.
    """
    cfg = config or ColumnConfig()
    samples = list(sample_rows)[: cfg.sample_rows]

    date_col = next((i for i, h in enumerate(headers) if is_date_header(h)), None)
    time_col: Optional[int] = None
    for i, h in enumerate(headers):
        if i == date_col or not is_time_header(h):
            continue
        if _date_share(column_samples(samples, i), day_first) >= cfg.numeric_ratio:
            date_col = i
            break
        if time_col is None:
            time_col = i

    if date_col is None:
        raise ColumnNotFoundError("No date column found", headers)

    taken = {date_col, time_col}
    best_idx: Optional[int] = None
    best_score = 0
    for i, h in enumerate(headers):
        if i in taken:
            continue
        s = score_value_column(
            h, column_samples(samples, i), delimiter=delimiter, config=cfg
        )
        if s > best_score:
            best_idx, best_score = i, s

    if best_idx is None:
        best_idx = next(
            (
                i
                for i in range(len(headers))
                if i not in taken
                and _all_numeric(column_samples(samples, i), delimiter)
            ),
            None,
        )
    if best_idx is None:
        raise ColumnNotFoundError("No value column found", headers)

    _, unit = value_header_rule(headers[best_idx])
    selection = ColumnSelection(
        date_column=date_col,
        time_column=time_col,
        value_column=best_idx,
        value_unit=unit or canon.ENERGY_UNIT,  # type: ignore[arg-type]
        value_scale=value_scale(headers[best_idx]),
    )
    logger.debug("Columns for %r: %s", list(headers), selection)
    return selection
