from __future__ import annotations
import math
import re
from typing import List, Optional

from . import canon

_BOM = "\ufeff"
_NUMBER = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?$")


def split_row(
    line: str,
    delimiter: str = canon.DEFAULT_DELIMITER,
    quote_char: str = canon.DEFAULT_QUOTE_CHAR,
    *,
    strip: bool = True,
) -> List[str]:
    """
    Split one line into fields.

    Inside quotes the delimiter is plain text and a doubled quote is one
    literal quote. An unterminated quote runs to the end of the line.
    """
    fields: List[str] = []
    buf: List[str] = []
    quoted = False
    i, n = 0, len(line)
    while i < n:
        ch = line[i]
        if quoted:
            if ch == quote_char:
                if i + 1 < n and line[i + 1] == quote_char:
                    buf.append(quote_char)
                    i += 1
                else:
                    quoted = False
            else:
                buf.append(ch)
        elif ch == quote_char:
            quoted = True
        elif ch == delimiter:
            fields.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
        i += 1
    fields.append("".join(buf))
    if strip:
        return [f.strip() for f in fields]
    return fields


def clean_lines(text: str) -> List[str]:
    """Split text into lines, dropping the BOM and whitespace-only lines."""
    if text.startswith(_BOM):
        text = text[len(_BOM) :]
    return [line.rstrip("\r") for line in text.splitlines() if line.strip()]


def parse_number(
    raw: Optional[str], delimiter: str = canon.DEFAULT_DELIMITER
) -> Optional[float]:
    """
    Parse a meter value; None when it is not a finite number.

    A lone comma is read as a decimal comma unless the file itself is
    comma-delimited; other commas are thousands separators.
    """
    if raw is None:
        return None
    s = raw.strip().strip("'\"").replace(" ", "").replace("\u00a0", "")
    if not s:
        return None
    if "," in s:
        if "." not in s and s.count(",") == 1 and delimiter != ",":
            s = s.replace(",", ".")
        else:
            s = s.replace(",", "")
    if not _NUMBER.match(s):
        return None
    value = float(s)
    return value if math.isfinite(value) else None


def numeric_share(values: List[str], delimiter: str = canon.DEFAULT_DELIMITER) -> float:
    """Fraction of non-empty samples that parse as finite numbers."""
    present = [v for v in values if v is not None and v.strip()]
    if not present:
        return 0.0
    hits = sum(1 for v in present if parse_number(v, delimiter) is not None)
    return hits / len(present)
