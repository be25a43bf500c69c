"""
R9 -> Garmin conversion pipeline.

parse_directory() ingests an R9 export concurrently; write() fuses each
time bucket, transforms it and writes per-flight Garmin logs.
"""

import logging
from pathlib import Path
from typing import Iterator, Optional

from r9convert.config import BOUNDARY_WINDOW_S, MAX_WORKERS, AirframeInfo
from r9convert.errors import IncompleteRecordsError
from r9convert.models.garmin import GarminRecord
from r9convert.services.fuser import fuse_bucket
from r9convert.services.repository import ProgressCallback, RecordRepository
from r9convert.services.transformer import transform
from r9convert.services.writer import FlightLogWriter


logger = logging.getLogger(__name__)


class R9ToGarminConverter:
    """Converts a directory of R9 CSV logs into Garmin flight logs."""

    def __init__(
        self,
        airframe: Optional[AirframeInfo] = None,
        window: float = BOUNDARY_WINDOW_S,
        max_workers: int = MAX_WORKERS,
    ):
        self.airframe = airframe or AirframeInfo()
        self.window = window
        self.max_workers = max_workers
        self.repository = RecordRepository()

    def parse_directory(self, input_dir: Path, progress: Optional[ProgressCallback] = None) -> int:
        """Parse every R9 CSV under input_dir. Returns the number of files parsed."""
        return self.repository.load_directory(input_dir, progress=progress, max_workers=self.max_workers)

    def garmin_records(self) -> Iterator[GarminRecord]:
        """Garmin records in ascending time order, one per populated second."""
        for bucket in self.repository.buckets():
            try:
                yield transform(fuse_bucket(bucket))
            except IncompleteRecordsError as e:
                logger.info(f"Couldn't generate Garmin record: {e}")

    def write(self, output_dir: Path) -> list[Path]:
        """
        Write the parsed data as Garmin logs, one file per flight.

        Raises OutputDirectoryError when output_dir is not a directory.
        """
        boundaries = self.repository.boundaries(self.window)
        logger.info(f"Found {len(boundaries)} flights")
        for boundary in boundaries:
            logger.debug(
                f"Flight starting {boundary.start_time.isoformat()} "
                f"(power-on from {', '.join(sorted(boundary.source_files))})"
            )

        if len(self.repository) == 0:
            logger.warning("No R9 data rows found; no flight logs written")

        writer = FlightLogWriter(output_dir, self.airframe)
        return writer.write(self.garmin_records(), boundaries)

    def convert(
        self,
        input_dir: Path,
        output_dir: Path,
        progress: Optional[ProgressCallback] = None,
    ) -> list[Path]:
        self.parse_directory(input_dir, progress)
        return self.write(output_dir)
