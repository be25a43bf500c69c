"""
Record repository - collects parsed R9 rows into one-second time buckets.

Files are parsed concurrently; the bucket map and the power-on events are
the only shared state and are guarded by a single lock.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterator, Optional

from r9convert.config import BOUNDARY_WINDOW_S, MAX_WORKERS
from r9convert.errors import InputDirectoryError
from r9convert.models.garmin import FlightBoundary
from r9convert.models.rows import IncrementalExtractMarker, PowerOnMarker, SubsystemRow, TimeBucket
from r9convert.services.boundaries import group_power_on_events
from r9convert.services.csv_parser import R9FileParser


logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, str], None]


def bucket_keys(row: SubsystemRow) -> range:
    """
    Epoch seconds a row is visible in.

    A row covers half its subsystem's sampling interval on either side, so
    a 4 s engine sample fills the gap until the next one.
    """
    spread = row.row_type.interval_s // 2
    return range(row.epoch - spread, row.epoch + spread + 1)


class RecordRepository:
    """
    Thread-safe store of time buckets and power-on events.

    Populated during the concurrent ingestion phase, then read sequentially.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._buckets: dict[int, TimeBucket] = {}
        self._power_ons: list[tuple[datetime, str]] = []
        self.total_files = 0
        self.processed_files = 0
        self.failed_files = 0

    @property
    def fraction_complete(self) -> float:
        if self.total_files == 0:
            return 0.0
        return (self.processed_files + self.failed_files) / self.total_files

    def add_row(self, row: SubsystemRow) -> None:
        with self._lock:
            self._add_row_locked(row)

    def add_power_on(self, marker: PowerOnMarker, filename: str) -> None:
        with self._lock:
            self._power_ons.append((marker.timestamp, filename))

    def _add_row_locked(self, row: SubsystemRow) -> None:
        for key in bucket_keys(row):
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = self._buckets[key] = TimeBucket(key)
            bucket.add(row)

    def process_file(self, filepath: Path) -> bool:
        """
        Parse one R9 CSV file into the repository.

        Unreadable files and files with missing engine columns are logged
        and skipped.

        Args:
            filepath: Path to an *_ENGINE.CSV, *_FLIGHT.CSV or *_SYSTEM.CSV file

        Returns:
            True when the file was parsed
        """
        parser = R9FileParser.for_path(filepath)
        if parser is None:
            with self._lock:
                self.failed_files += 1
            return False

        rows: list[SubsystemRow] = []
        power_ons: list[PowerOnMarker] = []
        try:
            for entry in parser.parse():
                if isinstance(entry, PowerOnMarker):
                    power_ons.append(entry)
                elif isinstance(entry, IncrementalExtractMarker):
                    continue
                else:
                    rows.append(entry)
        except (OSError, ValueError) as e:
            logger.warning(f"Skipping file {filepath}: {e}")
            with self._lock:
                self.failed_files += 1
            return False

        with self._lock:
            for row in rows:
                self._add_row_locked(row)
            self._power_ons.extend((marker.timestamp, filepath.name) for marker in power_ons)
            self.processed_files += 1

        if parser.schema is not None:
            logger.debug(f"{filepath.name}: {parser.schema} engine header")
        logger.debug(
            f"Parsed {filepath.name}: {len(rows)} rows, {len(power_ons)} power-on events, "
            f"{parser.failed_rows} rejected rows"
        )
        return True

    def load_directory(
        self,
        folder: Path,
        progress: Optional[ProgressCallback] = None,
        max_workers: int = MAX_WORKERS,
    ) -> int:
        """
        Parse every CSV file under a folder concurrently.

        Args:
            folder: Root of the R9 export (searched recursively)
            progress: Sink for (fraction complete, message) after each file
            max_workers: Size of the parser thread pool

        Returns:
            Number of files parsed successfully
        """
        if not folder.is_dir():
            raise InputDirectoryError(folder)

        files = sorted(p for p in folder.rglob("*") if p.is_file() and p.suffix.upper() == ".CSV")
        with self._lock:
            self.total_files += len(files)
        logger.info(f"Found {len(files)} CSV files in {folder}")

        parsed = 0
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {executor.submit(self.process_file, filepath): filepath for filepath in files}
            for future in as_completed(futures):
                if future.result():
                    parsed += 1
                if progress is not None:
                    progress(self.fraction_complete, f"Parsed {futures[future].name}")

        logger.info(f"Parsed {parsed} of {len(files)} files ({self.failed_files} skipped)")
        return parsed

    def buckets(self) -> Iterator[TimeBucket]:
        """Buckets in ascending time order."""
        for key in sorted(self._buckets):
            yield self._buckets[key]

    def power_on_events(self) -> list[tuple[datetime, str]]:
        return sorted(self._power_ons)

    def boundaries(self, window: float = BOUNDARY_WINDOW_S) -> list[FlightBoundary]:
        return group_power_on_events(self._power_ons, window)

    def __len__(self) -> int:
        return len(self._buckets)

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()
            self._power_ons.clear()
            self.total_files = 0
            self.processed_files = 0
            self.failed_files = 0
        logger.info("Record repository cleared")
