from __future__ import annotations
import logging
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from . import canon, rows
from .config import DetectionConfig
from .exceptions import FormatError
from .types import PreambleMeta

logger = logging.getLogger(__name__)

_SEP_DIRECTIVE = re.compile(r'^\s*"?sep=(?P<sep>.)"?\s*$', re.IGNORECASE)
_PREAMBLE = re.compile(canon.PREAMBLE_PATTERN)


@dataclass(frozen=True)
class FormatDetection:
    """Layout facts about a file, before any column is chosen."""

    delimiter: str
    header_row_index: int  # index into `lines`
    lines: List[str] = field(repr=False)
    quote_char: str = canon.DEFAULT_QUOTE_CHAR
    declared_delimiter: bool = False
    preamble_meta: Optional[PreambleMeta] = None

    @property
    def header_line(self) -> str:
        return self.lines[self.header_row_index]

    @property
    def data_lines(self) -> List[str]:
        return self.lines[self.header_row_index + 1 :]


def _has_any(line: str, keywords: Sequence[str]) -> bool:
    low = line.lower()
    return any(k in low for k in keywords)


def detect_delimiter(line: str) -> str:
    """Most frequent of tab / semicolon / comma in the line; ties go to comma."""
    counts = {d: line.count(d) for d in canon.CANDIDATE_DELIMITERS}
    best = max(counts.values())
    if best == 0 or counts[","] == best:
        return ","
    # tab before semicolon on a tie
    return next(d for d in canon.CANDIDATE_DELIMITERS if counts[d] == best)


def match_preamble(line: str, next_line: Optional[str]) -> Optional[PreambleMeta]:
    """
    Vendor preamble: a `"<name>",<date>,<date>` line directly followed by a
    header carrying both a date-like and an energy-like keyword.
    """
    if next_line is None:
        return None
    m = _PREAMBLE.match(line)
    if m is None:
        return None
    if not (
        _has_any(next_line, canon.PREAMBLE_DATE_KEYWORDS)
        and _has_any(next_line, canon.PREAMBLE_ENERGY_KEYWORDS)
    ):
        return None
    return PreambleMeta(
        meter_name=m.group("name").strip(),
        date_range_start=m.group("start"),
        date_range_end=m.group("end"),
    )


def strip_directives(lines: List[str]) -> tuple[List[str], Optional[str]]:
    """Drop a leading `sep=X` directive, returning the declared delimiter."""
    if lines:
        m = _SEP_DIRECTIVE.match(lines[0])
        if m:
            return lines[1:], m.group("sep")
    return lines, None


def detect_format(
    text: str, config: Optional[DetectionConfig] = None
) -> FormatDetection:
    """
    Locate the header row, the delimiter and any vendor preamble.

    Raises FormatError when none of the first `header_scan_lines` lines
    looks like a header.
    """
    cfg = config or DetectionConfig()
    lines, declared = strip_directives(rows.clean_lines(text))

    preamble: Optional[PreambleMeta] = None
    header_idx: Optional[int] = None
    for i in range(min(len(lines), cfg.header_scan_lines)):
        nxt = lines[i + 1] if i + 1 < len(lines) else None
        preamble = match_preamble(lines[i], nxt)
        if preamble is not None:
            header_idx = i + 1
            break
        if _has_any(lines[i], cfg.header_keywords):
            header_idx = i
            break

    if header_idx is None:
        raise FormatError("no header found")

    delimiter = declared if declared else detect_delimiter(lines[header_idx])
    logger.debug(
        "Header at line %d, delimiter %r%s",
        header_idx,
        delimiter,
        f", preamble meter {preamble.meter_name!r}" if preamble else "",
    )
    return FormatDetection(
        delimiter=delimiter,
        header_row_index=header_idx,
        lines=lines,
        declared_delimiter=declared is not None,
        preamble_meta=preamble,
    )


def detect_cumulative(values: Sequence[float]) -> bool:
    """Register-style readings: rising on more than 90% of consecutive pairs."""
    if len(values) < 3:
        return False
    rising = sum(1 for a, b in zip(values, values[1:]) if b > a)
    return rising > 0.9 * (len(values) - 1)
