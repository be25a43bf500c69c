"""
Avidyne R9 CSV adapter.

Parses the ENGINE, FLIGHT and SYSTEM CSV logs exported from an R9 data
logger into typed rows and power-on markers. Fusion of the rows happens in
r9convert.services.fuser.
"""

import io
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Iterator, Optional, Sequence

import pandas as pd

from r9convert.errors import (
    ConversionError,
    InvalidDateError,
    InvalidValueError,
    MissingFieldError,
    MissingHeaderFieldError,
)
from r9convert.models.rows import (
    CYLINDER_COUNT,
    IncrementalExtractMarker,
    LogEntry,
    PowerOnMarker,
    ROW_TYPES,
    RowType,
)


logger = logging.getLogger(__name__)


ENCODING = "cp1252"

POWER_ON_SENTINEL = "<<<< **** POWER ON **** >>>>"
INCREMENTAL_EXTRACT_SENTINEL = "<< Incremental extract >>"
MARKER_COLUMN_INDEX = 3  # first column after Systime, Date, Time

# The R9 clock reports years before this after a battery fault
MIN_VALID_YEAR = 2005

CYLINDER_PLACEHOLDER = "#"  # Eng1 CHT[#] (°F) -> Eng1 CHT[1] (°F)
LEGACY_ENGINE_MARKER = "Eng1OilTemperature(°F)"

FILE_SUFFIXES = {
    "_ENGINE.CSV": RowType.ENGINE,
    "_FLIGHT.CSV": RowType.FLIGHT,
    "_SYSTEM.CSV": RowType.SYSTEM,
}

_DECIMAL = re.compile(r"^[+-]?\d+$")
_HEX = re.compile(r"^[0-9A-Fa-f]+$")


class FieldKind(Enum):
    """How a source cell is decoded."""

    INT = "int"
    UINT = "uint"
    UINT8 = "uint8"
    UINT16 = "uint16"
    FLOAT = "float"
    NONZERO_FLOAT = "nonzero_float"  # 0 means "no data"
    HEX8 = "hex8"
    HEX = "hex"
    BOOL = "bool"
    STR = "str"


INTEGER_BOUNDS = {
    FieldKind.INT: (None, None),
    FieldKind.UINT: (0, None),
    FieldKind.UINT8: (0, 0xFF),
    FieldKind.UINT16: (0, 0xFFFF),
    FieldKind.HEX8: (0, 0xFF),
    FieldKind.HEX: (0, None),
}


@dataclass(frozen=True)
class ColumnSpec:
    """Accepted header spellings for one field (preferred first) and its kind."""

    headers: tuple[str, ...]
    kind: FieldKind

    @property
    def is_cylinder_array(self) -> bool:
        return CYLINDER_PLACEHOLDER in self.headers[0]


def _col(*headers: str, kind: FieldKind = FieldKind.FLOAT) -> ColumnSpec:
    return ColumnSpec(tuple(headers), kind)


# Engine logs come in two header styles: current ("Eng1 Oil Temperature")
# and legacy, compact ("Eng1OilTemperature(°F)"). Current spelling first.
ENGINE_COLUMNS = {
    "oil_temperature": _col("Eng1 Oil Temperature", "Eng1OilTemperature(°F)", kind=FieldKind.INT),
    "oil_pressure": _col("Eng1 Oil Pressure", "Eng1OilPressure", kind=FieldKind.UINT),
    "rpm": _col("Eng1 RPM", "Eng1RPM", kind=FieldKind.UINT),
    "manifold_pressure": _col("Eng1 Manifold Pressure (In.Hg)", "Eng1ManifoldPressure(In.Hg)"),
    "chts": _col("Eng1 CHT[#] (°F)", "Eng1CHT[#](°F)"),
    "egts": _col("Eng1 EGT[#] (°F)", "Eng1EGT[#](°F)"),
    "percent_power": _col("Eng1 Percent Pwr", "Eng1PercentPwr"),
    "fuel_flow": _col("FuelFlow", "FuelFlow(Gal/hr)"),
    "fuel_used": _col("FuelUsed", "FuelUsed(Gal)"),
    "fuel_remaining": _col("FuelRemaining", "FuelRemaining(Gal)"),
    "fuel_time_remaining": _col("FuelTimeRemaining (min)", "FuelTimeRemaining(min)", kind=FieldKind.INT),
    "fuel_economy": _col("FuelEconomy", "FuelEconomy(nm/gal)"),
    "main_bus1_potential": _col("Eng1 MBus1 Volts", "Eng1Bus1Volts"),
    "emergency_bus_potential": _col("Eng1 Bus2 Volts", "Eng1Bus3Volts"),
}

FLIGHT_COLUMNS = {
    "filtered_normal_acceleration": _col("Filtered NormAcc (G)"),
    "normal_acceleration": _col("NormAcc (G)"),
    "longitudinal_acceleration": _col("LongAcc (G)"),
    "lateral_acceleration": _col("LateralAcc (G)"),
    "active_adahrs": _col("ADAHRSUsed", kind=FieldKind.UINT8),
    "ahrs_status": _col("AHRSStatusbits", kind=FieldKind.HEX8),
    "heading": _col("Heading (°M)"),
    "pitch": _col("Pitch (°)"),
    "roll": _col("Roll (°)"),
    "fd_pitch": _col("FlightDirectorPitch (°)"),
    "fd_roll": _col("FlightDirectorRoll (°)"),
    "heading_rate": _col("HeadingRate (°/sec)"),
    "pressure_altitude": _col("PressureAltitude (ft)", kind=FieldKind.INT),
    "indicated_airspeed": _col("IndicatedAirspeed (kts)", kind=FieldKind.UINT),
    "true_airspeed": _col("TrueAirspeed (kts)", kind=FieldKind.UINT),
    "vertical_speed": _col("VerticalSpeed (ft/min)", kind=FieldKind.INT),
    "gps_latitude": _col("GPSLatitude", kind=FieldKind.NONZERO_FLOAT),
    "gps_longitude": _col("GPSLongitude", kind=FieldKind.NONZERO_FLOAT),
    "body_yaw_rate": _col("BodyYawRate (°/sec)"),
    "body_pitch_rate": _col("BodyPitchRate (°/sec)"),
    "body_roll_rate": _col("BodyRollRate (°/sec)"),
    "magnetometer_status": _col("MagStatus", kind=FieldKind.HEX8),
    "iru_status": _col("IRUStatus", kind=FieldKind.HEX8),
    "mpu_status": _col("MPUStatus", kind=FieldKind.HEX8),
    "adc_status": _col("ADCStatus", kind=FieldKind.STR),
    "ahrs_sequence": _col("AHRSSeq", kind=FieldKind.UINT),
    "adc_sequence": _col("ADCSeq", kind=FieldKind.UINT),
    "ahrs_startup_mode": _col("AHRSStartupMode", kind=FieldKind.UINT8),
    "active_lateral_mode": _col("DFC100 Lat Active", kind=FieldKind.UINT8),
    "armed_lateral_mode": _col("DFC100 Lat Armed", kind=FieldKind.UINT8),
    "active_vertical_mode": _col("DFC100 Vert Active", kind=FieldKind.UINT8),
    "armed_vertical_mode": _col("DFC100 Vert Armed", kind=FieldKind.UINT8),
    "autopilot_status_flags": _col("DFC100 Status Flags", kind=FieldKind.HEX),
    "autopilot_fail_flags": _col("DFC100 Fail Flags", kind=FieldKind.HEX),
    "altitude_target": _col("DFC100 Alt Target", kind=FieldKind.INT),
}

SYSTEM_COLUMNS = {
    "oat": _col("OutsideAirTemperature (°C)", kind=FieldKind.INT),
    "localizer_deviation": _col("LocalizerDeviation (-1..1)"),
    "glideslope_deviation": _col("GlideslopeDeviation (-1..1)"),
    "flight_director_on": _col("FlightDirectorOn_Off", kind=FieldKind.BOOL),
    "autopilot_mode": _col("AutopilotMode", kind=FieldKind.STR),
    "ground_speed": _col("GroundSpeed (kts)", kind=FieldKind.UINT),
    "ground_track": _col("GroundTrack (°M)", kind=FieldKind.INT),
    "cross_track_deviation": _col("CrossTrackDeviation (nm)"),
    "vertical_deviation": _col("VerticalDeviation (ft)", kind=FieldKind.INT),
    "altimeter_setting": _col("AltimeterSetting (in.hg)"),
    "altitude_bug": _col("AltBug (ft)", kind=FieldKind.INT),
    "vertical_speed_bug": _col("VSIBug (ft/min)", kind=FieldKind.INT),
    "heading_bug": _col("HdgBug (°)", kind=FieldKind.UINT16),
    "display_mode": _col("DisplayMode", kind=FieldKind.UINT8),
    "navigation_mode": _col("NavigationMode", kind=FieldKind.UINT8),
    "active_waypoint": _col("ActiveWptId", kind=FieldKind.STR),
    "active_gps": _col("GPSSelect", kind=FieldKind.UINT8),
    "navaid_bearing": _col("NavaidBrg (°M)", kind=FieldKind.UINT16),
    "obs": _col("OBS (°M)", kind=FieldKind.UINT16),
    "desired_track": _col("DesiredTrack (°M)", kind=FieldKind.UINT16),
    "nav_frequency": _col("NavFreq (kHz)", kind=FieldKind.UINT),
    "course_select": _col("CrsSelect", kind=FieldKind.UINT8),
    "nav_type": _col("NavType", kind=FieldKind.UINT8),
    "course_deviation": _col("CourseDeviation (°)", kind=FieldKind.INT),
    "gps_altitude": _col("GPSAltitude (m)", kind=FieldKind.INT),
    "distance_to_waypoint": _col("DistanceToActiveWpt (nm)"),
    "gps_state": _col("GPSState", kind=FieldKind.UINT8),
    "gps_horizontal_protection_limit": _col("GPSHorizProtLimit (m)"),
    "gps_vertical_protection_limit": _col("GPSVertProtLimit (m)"),
    "sbas_hpl": _col("HPL_SBAS (m)"),
    "sbas_vpl": _col("VPL_SBAS (m)"),
    "hfom": _col("HFOM (m)"),
    "vfom": _col("VFOM (m)"),
    "fms_course": _col("FmsCourse (°M)", kind=FieldKind.UINT16),
    "magnetic_variation": _col("MagVar (° -W/+E)", kind=FieldKind.NONZERO_FLOAT),
    "gps_altitude_msl": _col("GPS MSL Altitude (m)", kind=FieldKind.INT),
    "gps_height_agl": _col("GPS AGL Height (m)", kind=FieldKind.INT),
    "flta_rtc": _col("FLTA RTC (m)", kind=FieldKind.INT),
    "flta_atc": _col("FLTA ATC (m)", kind=FieldKind.INT),
    "flta_vertical_speed": _col("FLTA vspd (fpm)", kind=FieldKind.INT),
    "flta_rtc_distance": _col("FLTA RTC dist (m)", kind=FieldKind.INT),
    "flta_terrain_distance": _col("FLTA terr dist (m)", kind=FieldKind.INT),
    "flta_status": _col("FLTA Status", kind=FieldKind.HEX8),
}

COLUMN_TABLES = {
    RowType.ENGINE: ENGINE_COLUMNS,
    RowType.FLIGHT: FLIGHT_COLUMNS,
    RowType.SYSTEM: SYSTEM_COLUMNS,
}

# Columns (besides MARKER_COLUMN_INDEX) where the sentinels have been seen
MARKER_FIELDS = {
    RowType.ENGINE: ("chts", "oil_temperature"),
    RowType.FLIGHT: ("filtered_normal_acceleration",),
    RowType.SYSTEM: ("oat",),
}


def engine_schema(header: Sequence[str]) -> str:
    """'legacy' for compact engine headers, 'current' otherwise."""
    return "legacy" if LEGACY_ENGINE_MARKER in {h.strip() for h in header} else "current"


def row_type_for_path(filepath: Path) -> Optional[RowType]:
    name = filepath.name.upper()
    for suffix, row_type in FILE_SUFFIXES.items():
        if name.endswith(suffix):
            return row_type
    return None


def parse_timestamp(date_value: str, time_value: str) -> datetime:
    """
    Parse an R9 `YYYYMMDD` date and `HH:MM:SS` time (both UTC).

    Raises InvalidDateError for malformed values and for years before 2005,
    which the logger produces after a clock fault.
    """
    if not re.fullmatch(r"\d{8}", date_value):
        raise InvalidDateError(date_value, time_value)

    year, month, day = int(date_value[:4]), int(date_value[4:6]), int(date_value[6:])
    if year < MIN_VALID_YEAR:
        raise InvalidDateError(date_value, time_value)

    parts = time_value.split(":")
    if len(parts) != 3 or not all(p.isdigit() for p in parts):
        raise InvalidDateError(date_value, time_value)

    try:
        return datetime(year, month, day, int(parts[0]), int(parts[1]), int(parts[2]), tzinfo=timezone.utc)
    except ValueError:
        raise InvalidDateError(date_value, time_value) from None


class R9RowParser:
    """
    Parser for the data rows of one R9 CSV file.

    Built once per file from its header row; the engine column spellings
    (current or legacy) are resolved here.
    """

    def __init__(self, row_type: RowType, header: Sequence[str]):
        self.row_type = row_type
        self.header = [h.strip() for h in header]
        self._index: dict[str, int] = {}
        for i, name in enumerate(self.header):
            self._index.setdefault(name, i)
        self.columns = self._map_columns()

    def _map_columns(self) -> dict[str, str]:
        """Semantic field -> header name used by this file."""
        col_map: dict[str, str] = {}
        for std_name, spec in COLUMN_TABLES[self.row_type].items():
            if self.row_type is not RowType.ENGINE:
                col_map[std_name] = spec.headers[0]
                continue
            for variant in spec.headers:
                if variant.replace(CYLINDER_PLACEHOLDER, "1") in self._index:
                    col_map[std_name] = variant
                    break
            else:
                raise MissingHeaderFieldError(list(spec.headers))
        return col_map

    def parse(self, values: Sequence[str]) -> Optional[LogEntry]:
        """
        Parse one data row.

        Returns None for rows without a date, a marker for sentinel rows,
        and a typed row otherwise.
        """
        date_value = self._cell(values, "Date")
        if date_value is None:
            return None
        time_value = self._cell(values, "Time")
        if time_value is None:
            raise MissingFieldError("Time")

        systime = self._parse_value(values, "Systime", FieldKind.UINT)
        timestamp = parse_timestamp(date_value, time_value)

        marker = self._marker(values)
        if marker == POWER_ON_SENTINEL:
            return PowerOnMarker(timestamp)
        if marker == INCREMENTAL_EXTRACT_SENTINEL:
            return IncrementalExtractMarker(timestamp)

        fields = {}
        for std_name, spec in COLUMN_TABLES[self.row_type].items():
            header_name = self.columns[std_name]
            if spec.is_cylinder_array:
                fields[std_name] = tuple(
                    self._parse_value(values, header_name.replace(CYLINDER_PLACEHOLDER, str(n)), spec.kind)
                    for n in range(1, CYLINDER_COUNT + 1)
                )
            else:
                fields[std_name] = self._parse_value(values, header_name, spec.kind)

        return ROW_TYPES[self.row_type](timestamp=timestamp, systime=systime, **fields)

    def _marker(self, values: Sequence[str]) -> Optional[str]:
        sentinels = (POWER_ON_SENTINEL, INCREMENTAL_EXTRACT_SENTINEL)
        if len(values) > MARKER_COLUMN_INDEX and values[MARKER_COLUMN_INDEX].strip() in sentinels:
            return values[MARKER_COLUMN_INDEX].strip()
        for std_name in MARKER_FIELDS[self.row_type]:
            header_name = self.columns[std_name].replace(CYLINDER_PLACEHOLDER, "1")
            value = self._cell(values, header_name)
            if value in sentinels:
                return value
        return None

    def _cell(self, values: Sequence[str], header_name: str) -> Optional[str]:
        """Raw cell text, or None when the column is missing, empty or '-'."""
        index = self._index.get(header_name)
        if index is None or index >= len(values):
            return None
        value = values[index]
        if value is None:
            return None
        value = str(value).strip()
        if value == "" or value == "-":
            return None
        return value

    def _parse_value(self, values: Sequence[str], header_name: str, kind: FieldKind):
        value = self._cell(values, header_name)
        if value is None:
            return None

        if kind is FieldKind.STR:
            return value

        if kind in (FieldKind.FLOAT, FieldKind.NONZERO_FLOAT):
            try:
                number = float(value)
            except ValueError:
                raise InvalidValueError(header_name, value) from None
            if "_" in value or not math.isfinite(number):
                raise InvalidValueError(header_name, value)
            if kind is FieldKind.NONZERO_FLOAT and number == 0:
                return None
            return number

        if kind is FieldKind.BOOL:
            if value == "0":
                return False
            if value == "1":
                return True
            raise InvalidValueError(header_name, value)

        if kind in (FieldKind.HEX8, FieldKind.HEX):
            if not value.startswith("0x") or not _HEX.match(value[2:]):
                raise InvalidValueError(header_name, value)
            number = int(value[2:], 16)
        else:
            if not _DECIMAL.match(value):
                raise InvalidValueError(header_name, value)
            number = int(value)

        low, high = INTEGER_BOUNDS[kind]
        if (low is not None and number < low) or (high is not None and number > high):
            raise InvalidValueError(header_name, value)
        return number


class R9FileParser:
    """Parser for one R9 `*_ENGINE.CSV`, `*_FLIGHT.CSV` or `*_SYSTEM.CSV` file."""

    def __init__(self, filepath: Path, row_type: RowType):
        self.filepath = filepath
        self.row_type = row_type
        self.failed_rows = 0
        self.schema: Optional[str] = None

    @classmethod
    def for_path(cls, filepath: Path) -> Optional["R9FileParser"]:
        row_type = row_type_for_path(filepath)
        if row_type is None:
            logger.info(f"Bad file name; skipping (path={filepath})")
            return None
        return cls(filepath, row_type)

    def parse(self) -> Iterator[LogEntry]:
        """
        Yield parsed rows and markers in file order.

        Rows that fail to parse are logged and skipped. File-level problems
        (unreadable file, missing engine columns) raise.
        """
        df, line_numbers = self._read_csv()
        if self.row_type is RowType.ENGINE:
            self.schema = engine_schema(df.columns)
        parser = R9RowParser(self.row_type, list(df.columns))

        for line, values in zip(line_numbers, df.itertuples(index=False, name=None)):
            try:
                entry = parser.parse(values)
            except ConversionError as e:
                self.failed_rows += 1
                logger.info(f"Couldn't parse row: {self._error_context(e, line)}")
                continue
            if entry is not None:
                yield entry

    def _read_csv(self) -> tuple[pd.DataFrame, list[int]]:
        """
        Read the file into string cells.

        Returns the frame and the 1-based file line number of each of its rows.
        Rows with more cells than the header are logged and left out.
        """
        # Read the whole file once so rejected rows keep their line numbers
        with open(self.filepath, "r", encoding=ENCODING, errors="replace") as f:
            lines = f.read().splitlines()

        kept = lines[:1]
        line_numbers: list[int] = []
        width = lines[0].count(",") + 1 if lines else 0
        for line_number, line in enumerate(lines[1:], start=2):
            if not line.strip():
                continue
            cells = line.count(",") + 1
            if cells > width:
                self.failed_rows += 1
                logger.info(
                    f"Couldn't parse row: error=expected at most {width} fields, saw {cells}, "
                    f"path={self.filepath}, line={line_number}"
                )
                continue
            kept.append(line)
            line_numbers.append(line_number)

        # Marker rows are shorter than the header; pandas pads them with NaN
        df = pd.read_csv(
            io.StringIO("\n".join(kept)),
            dtype=str,
            keep_default_na=False,
            index_col=False,
        )
        df.columns = df.columns.str.strip()
        df = df.fillna("")
        if len(df) > 0:
            df = df.apply(lambda col: col.str.strip())
        return df, line_numbers

    def _error_context(self, error: ConversionError, line: int) -> str:
        context = [f"error={error}", f"path={self.filepath}", f"line={line}"]
        if isinstance(error, InvalidValueError):
            context += [f"field={error.field}", f"value={error.value}"]
        return ", ".join(context)
