import logging

from . import (
    canon,
    exceptions,
    types,
    config,
    rows,
    formats,
    columns,
    timestamps,
    utils,
    transform,
    profiles,
    validate,
    matching,
    ingest,
    batch,
    summary,
)
from .ingest import ParseOverrides, parse_bytes, parse_file, parse_text

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "canon",
    "exceptions",
    "types",
    "config",
    "rows",
    "formats",
    "columns",
    "timestamps",
    "utils",
    "transform",
    "profiles",
    "validate",
    "matching",
    "ingest",
    "batch",
    "summary",
    "ParseOverrides",
    "parse_bytes",
    "parse_file",
    "parse_text",
]
