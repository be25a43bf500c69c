"""
Tests for the record repository.
"""

from datetime import datetime, timezone

from conftest import FLIGHT_HEADER, FLIGHT_VALUES, make_row, write_r9_csv
from r9convert.models.rows import EngineRow, FlightRow, PowerOnMarker, SystemRow
from r9convert.services.repository import RecordRepository, bucket_keys


T0 = datetime(2023, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
E0 = int(T0.timestamp())


class TestBucketKeys:
    """Rows are visible for half their sampling interval either side."""

    def test_engine_spans_five_seconds(self):
        assert list(bucket_keys(EngineRow(T0))) == [E0 - 2, E0 - 1, E0, E0 + 1, E0 + 2]

    def test_flight_single_second(self):
        assert list(bucket_keys(FlightRow(T0))) == [E0]

    def test_system_spans_three_seconds(self):
        assert list(bucket_keys(SystemRow(T0))) == [E0 - 1, E0, E0 + 1]


class TestRecordRepository:
    def test_add_row_fills_buckets(self):
        repo = RecordRepository()
        repo.add_row(EngineRow(T0, rpm=2400))
        repo.add_row(FlightRow(T0, pitch=1.0))

        buckets = list(repo.buckets())

        assert [b.epoch for b in buckets] == [E0 - 2, E0 - 1, E0, E0 + 1, E0 + 2]
        assert len(buckets[2].engine) == 1
        assert len(buckets[2].flight) == 1
        assert buckets[0].flight == []

    def test_boundaries_from_power_on(self):
        repo = RecordRepository()
        repo.add_power_on(PowerOnMarker(T0), "A_ENGINE.CSV")
        repo.add_power_on(PowerOnMarker(T0), "A_FLIGHT.CSV")

        boundaries = repo.boundaries()

        assert len(boundaries) == 1
        assert boundaries[0].source_files == {"A_ENGINE.CSV", "A_FLIGHT.CSV"}

    def test_process_file(self, tmp_path):
        path = write_r9_csv(tmp_path / "A_FLIGHT.CSV", FLIGHT_HEADER, [
            ["1000", "20230601", "12:00:00", "<<<< **** POWER ON **** >>>>"],
            make_row(FLIGHT_HEADER, "20230601", "12:00:01", FLIGHT_VALUES),
        ])
        repo = RecordRepository()

        assert repo.process_file(path) is True
        assert repo.processed_files == 1
        assert len(repo) == 1
        assert repo.power_on_events() == [(T0, "A_FLIGHT.CSV")]

    def test_missing_engine_columns_skips_file(self, tmp_path):
        path = write_r9_csv(tmp_path / "A_ENGINE.CSV", ["Systime", "Date", "Time", "Eng1 RPM"], [
            ["1000", "20230601", "12:00:00", "2400"],
        ])
        repo = RecordRepository()

        assert repo.process_file(path) is False
        assert repo.failed_files == 1
        assert len(repo) == 0

    def test_load_directory_reports_progress(self, r9_export):
        repo = RecordRepository()
        updates = []

        parsed = repo.load_directory(r9_export, progress=lambda f, m: updates.append((f, m)), max_workers=4)

        assert parsed == 6
        assert repo.failed_files == 0
        assert len(updates) == 6
        assert updates[-1][0] == 1.0
        assert repo.fraction_complete == 1.0
        assert len(repo.boundaries()) == 2

    def test_load_directory_skips_unknown_files(self, r9_export):
        (r9_export / "README.CSV").write_text("hello\n")
        repo = RecordRepository()

        assert repo.load_directory(r9_export) == 6
        assert repo.failed_files == 1

    def test_reset(self, r9_export):
        repo = RecordRepository()
        repo.load_directory(r9_export)

        repo.reset()

        assert len(repo) == 0
        assert repo.boundaries() == []
        assert repo.processed_files == 0
