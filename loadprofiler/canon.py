from __future__ import annotations
from typing import Final, Dict

DEFAULT_DELIMITER: Final[str] = ","
DEFAULT_QUOTE_CHAR: Final[str] = '"'
CANDIDATE_DELIMITERS: Final[tuple[str, ...]] = ("\t", ";", ",")

DEFAULT_INTERVAL_HOURS: Final[float] = 0.5
MAX_INTERVAL_HOURS: Final[float] = 24.0
HEADER_SCAN_LINES: Final[int] = 10
SAMPLE_ROWS: Final[int] = 20
MIN_DATA_ROWS: Final[int] = 10
MONTHLY_MIN_DAYS: Final[int] = 5
PREFERRED_MONTH_MIN_DAYS: Final[int] = 20
MATCH_CONFIDENCE_FLOOR: Final[float] = 50.0
HOURS_PER_DAY: Final[int] = 24

# Non-UTF-8 input: bytes handed to chardet, and the codec used when it gives up
ENCODING_SAMPLE_BYTES: Final[int] = 65536
FALLBACK_ENCODING: Final[str] = "cp1252"

# Header row detection (lowercase substrings)
HEADER_KEYWORDS: Final[tuple[str, ...]] = (
    "date",
    "time",
    "rdate",
    "rtime",
    "kwh",
    "timestamp",
    "from",
)

# Vendor preamble: "<name>",<ISO-date>,<ISO-date>
PREAMBLE_PATTERN: Final[str] = (
    r'^\s*,?\s*"?(?P<name>[^",]+?)"?\s*,\s*(?P<start>\d{4}-\d{2}-\d{2})\s*,'
    r"\s*(?P<end>\d{4}-\d{2}-\d{2})\b"
)
PREAMBLE_DATE_KEYWORDS: Final[tuple[str, ...]] = ("date", "time", "timestamp")
PREAMBLE_ENERGY_KEYWORDS: Final[tuple[str, ...]] = ("kwh", "kw", "energy", "kvarh")

# Column classification (lowercase substrings)
DATE_KEYWORDS: Final[tuple[str, ...]] = (
    "date",
    "rdate",
    "datetime",
    "timestamp",
    "datum",
)
# "time" and "rtime" anywhere; "hour" only as a word that is not a rate ("kWh/hour")
TIME_HEADER_PATTERN: Final[str] = r"r?time|(?<![/\w])(?<!per )hour\b"

ENERGY_UNIT: Final[str] = "energy"
POWER_UNIT: Final[str] = "power"

# (regex, score, unit) ordered from most to least specific; first match wins.
VALUE_HEADER_RULES: Final[tuple[tuple[str, int, str | None], ...]] = (
    (r"^kwh$", 100, ENERGY_UNIT),
    (r"kwh", 90, ENERGY_UNIT),
    (r"mwh", 85, ENERGY_UNIT),
    (r"energy", 80, ENERGY_UNIT),
    (r"consumption", 75, ENERGY_UNIT),
    (r"^kw$", 72, POWER_UNIT),
    (r"kw(?!h)", 70, POWER_UNIT),
    (r"demand", 65, POWER_UNIT),
    (r"power", 60, POWER_UNIT),
    (r"active", 40, None),
    (r"load", 35, None),
    (r"usage", 30, ENERGY_UNIT),
    (r"value", 20, None),
    (r"reading", 20, None),
)

# Header → multiplier to kW / kWh
VALUE_SCALE_RULES: Final[tuple[tuple[str, float], ...]] = (
    (r"mwh", 1000.0),
    (r"\bmw\b|\(mw\)", 1000.0),
    (r"(?<![km])wh\b", 0.001),
    (r"\bw\b|\(w\)|\bwatts?\b", 0.001),
)

MONTH_ABBR: Final[Dict[str, int]] = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}
MONTH_NAMES: Final[tuple[str, ...]] = (
    "january",
    "february",
    "march",
    "april",
    "may",
    "june",
    "july",
    "august",
    "september",
    "october",
    "november",
    "december",
)
TWO_DIGIT_YEAR_PIVOT: Final[int] = 50

# Filename noise stripped before meter matching
FILE_EXTENSIONS: Final[str] = r"\.(csv|xlsx?|txt|dat)$"
NAME_SUFFIXES: Final[str] = (
    r"[_\-\s]?(data|export|meter|reading|profile|import|scada|raw|final|v\d+)$"
)

# Profile review thresholds
OUTLIER_KW: Final[float] = 1_000_000.0
FEW_POINTS: Final[int] = 48
