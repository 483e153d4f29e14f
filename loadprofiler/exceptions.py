from __future__ import annotations
from typing import Sequence


class LoadProfileError(Exception): ...


class FormatError(LoadProfileError): ...


class ColumnNotFoundError(LoadProfileError):
    def __init__(self, message: str, headers: Sequence[str] = ()):
        self.headers = list(headers)
        super().__init__(f"{message}; headers={self.headers!r}")


class InsufficientDataError(LoadProfileError):
    def __init__(self, rows: int, required: int):
        self.rows = rows
        self.required = required
        super().__init__(
            f"Only {rows} data rows after header; at least {required} required."
        )


class ConfigError(LoadProfileError): ...


class MatchError(LoadProfileError): ...


class StoreError(LoadProfileError): ...


class LoadProfileWarning(UserWarning): ...


class RowParseWarning(LoadProfileWarning):
    """A data row that was dropped from aggregation. Recorded, never raised."""

    def __init__(self, line_number: int, reason: str, text: str = ""):
        self.line_number = line_number
        self.reason = reason
        self.text = text
        super().__init__(f"Line {line_number}: {reason}")


def require(
    condition: bool, message: str, exc: type[LoadProfileError] = LoadProfileError
):
    """Raise the given exception if condition is False."""
    if not condition:
        raise exc(message)
