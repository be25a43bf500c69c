"""
Garmin flight-log writer.

Splits the time-ordered record stream into one CSV file per flight
boundary. Each file starts with the airframe metadata line and the two
column header rows.
"""

import csv
import logging
from collections import deque
from datetime import timezone
from pathlib import Path
from typing import Iterable, Optional, Sequence, TextIO

from r9convert.config import AirframeInfo
from r9convert.errors import OutputDirectoryError
from r9convert.models.garmin import FlightBoundary, GarminRecord, column_header_rows


logger = logging.getLogger(__name__)


FILENAME_FORMAT = "log_{:%Y%m%d_%H%M%S}_{}.csv"
PLACEHOLDER_AIRPORT_ID = "____"  # boundaries carry no location


def log_filename(boundary: FlightBoundary) -> str:
    return FILENAME_FORMAT.format(boundary.start_time.astimezone(timezone.utc), PLACEHOLDER_AIRPORT_ID)


class _FlightLog:
    """One open output file and its data row count."""

    def __init__(self, path: Path, header_rows: list[list[str]]):
        self.path = path
        self.rows_written = 0
        self.closed = False
        self._handle: TextIO = open(path, "w", newline="", encoding="utf-8")
        # Airframe metadata cells carry literal quotes
        self._writer = csv.writer(self._handle, quoting=csv.QUOTE_NONE, quotechar=None, lineterminator="\n")
        self._writer.writerows(header_rows)

    def write(self, record: GarminRecord) -> None:
        self._writer.writerow(record.to_row())
        self.rows_written += 1

    def close(self) -> bool:
        """Close the file, deleting it if no data rows were written. Returns True if kept."""
        if self.closed:
            return False
        self.closed = True
        self._handle.close()
        if self.rows_written == 0:
            self.path.unlink()
            logger.warning(f"No records for flight; removed {self.path.name}")
            return False
        logger.info(f"Wrote {self.rows_written} records to {self.path.name}")
        return True


class FlightLogWriter:
    """
    Writes Garmin records into per-flight CSV files.

    Records must arrive in ascending time order. Records before the first
    boundary belong to no flight and are dropped.
    """

    def __init__(self, output_dir: Path, airframe: Optional[AirframeInfo] = None):
        self.output_dir = output_dir
        self.airframe = airframe or AirframeInfo()
        self.dropped_records = 0

    def header_rows(self) -> list[list[str]]:
        """Metadata line plus column headers, padded to the widest row."""
        rows = [self.airframe.header_cells(), *column_header_rows()]
        width = max(len(row) for row in rows)
        return [row + [""] * (width - len(row)) for row in rows]

    def write(self, records: Iterable[GarminRecord], boundaries: Sequence[FlightBoundary]) -> list[Path]:
        """
        Write all records, opening a new file at each boundary.

        Args:
            records: Garmin records in ascending time order
            boundaries: Flight boundaries (any order)

        Returns:
            Paths of the files that were kept
        """
        if not self.output_dir.is_dir():
            raise OutputDirectoryError(self.output_dir)

        header_rows = self.header_rows()
        pending = deque(sorted(boundaries, key=lambda b: b.start_time))
        current: Optional[_FlightLog] = None
        kept: list[Path] = []

        def close_current() -> None:
            if current is not None and current.close():
                kept.append(current.path)

        try:
            for record in records:
                while pending and pending[0].start_time <= record.timestamp:
                    boundary = pending.popleft()
                    close_current()
                    current = _FlightLog(self.output_dir / log_filename(boundary), header_rows)

                if current is None:
                    self.dropped_records += 1
                    continue
                current.write(record)
        finally:
            close_current()

        if self.dropped_records:
            logger.info(f"Dropped {self.dropped_records} records recorded before the first power-on")
        for boundary in pending:
            logger.info(f"No records after power-on at {boundary.start_time.isoformat()}")
        return kept
