"""
Error taxonomy for the R9 -> Garmin conversion.

Row-level errors reject a single row, file-level errors skip a file,
and OutputDirectoryError aborts the run.
"""

from datetime import datetime
from pathlib import Path


class ConversionError(ValueError):
    """Base class for all conversion errors."""


class InvalidValueError(ConversionError):
    def __init__(self, field: str, value: str):
        self.field = field
        self.value = value
        super().__init__(f"Invalid value '{value}' for '{field}'")


class InvalidDateError(ConversionError):
    def __init__(self, date: str, time: str):
        self.date = date
        self.time = time
        super().__init__(f"Invalid datetime string '{date},{time}'")


class MissingFieldError(ConversionError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"Missing value for '{field}'")


class MissingHeaderFieldError(ConversionError):
    """None of the accepted header spellings for a column is present."""

    def __init__(self, variants: list[str]):
        self.variants = list(variants)
        super().__init__(f"Couldn't find one of the header fields {self.variants}")


class IncompleteRecordsError(ConversionError):
    def __init__(self, timestamp: datetime):
        self.timestamp = timestamp
        super().__init__(f"Incomplete R9 entries for time {timestamp.isoformat()}")


class OutputDirectoryError(ConversionError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Not a directory: {path}")


class InputDirectoryError(ConversionError):
    def __init__(self, path: Path):
        self.path = path
        super().__init__(f"Input directory not found: {path}")
