"""
Garmin flight-log data model.

Fused R9 data is expressed in the column layout of a Garmin G1000-style
CSV log:
- one `#airframe_info` metadata line
- a full-title header row and a short-mnemonic header row
- one data row per second, with fixed decimal precision per column
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from r9convert.utils.units import round_half_away


UTC_OFFSET = "+00:00"


@dataclass(frozen=True)
class FlightBoundary:
    """A power-on event (possibly several merged ones) that starts a flight."""

    start_time: datetime
    end_time: datetime
    source_files: frozenset[str] = frozenset()


@dataclass
class FusedRecord:
    """One bucket reduced to one value per source field, keyed by subsystem."""

    timestamp: datetime
    engine: dict[str, Any] = field(default_factory=dict)
    flight: dict[str, Any] = field(default_factory=dict)
    system: dict[str, Any] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.engine or self.flight or self.system)


@dataclass
class GarminRecord:
    """One Garmin log row. None means the cell is written empty."""

    timestamp: datetime

    # GPS
    latitude: Optional[float] = None            # deg
    longitude: Optional[float] = None           # deg
    altitude_gps: Optional[int] = None          # ft
    gps_fix_status: Optional[str] = None        # NoSoln, 3D, 3D-, 3DDiff
    ground_speed: Optional[float] = None        # kt
    ground_track: Optional[int] = None          # °T

    # Flight dynamics
    heading: Optional[float] = None             # °M
    pressure_altitude: Optional[float] = None   # ft
    baro_altitude: Optional[float] = None       # ft
    vertical_speed: Optional[float] = None      # fpm
    indicated_airspeed: Optional[float] = None  # kt
    true_airspeed: Optional[float] = None       # kt
    pitch: Optional[float] = None
    roll: Optional[float] = None
    lateral_acceleration: Optional[float] = None  # G
    normal_acceleration: Optional[float] = None   # G

    # Selections
    heading_bug: Optional[int] = None           # °M
    altitude_bug: Optional[float] = None        # ft
    altimeter_setting: Optional[float] = None   # inHg

    # Navigation / CDI
    nav_source: Optional[str] = None            # GPS1, LOC1, LOC2
    nav_identifier: Optional[str] = None
    nav_frequency: Optional[float] = None       # MHz
    nav_distance: Optional[float] = None        # NM
    nav_bearing: Optional[int] = None           # °M
    nav_course: Optional[int] = None            # °M
    cross_track_distance: Optional[float] = None  # NM
    horizontal_cdi_deflection: Optional[float] = None  # -1..1
    horizontal_cdi_full_scale: Optional[float] = None  # ft
    horizontal_cdi_scale: Optional[str] = None  # OCN, ENR, TERM, ...
    vertical_cdi_deflection: Optional[float] = None    # -1..1
    vnav_target_altitude: Optional[float] = None  # ft

    # Autopilot / flight director
    autopilot_state: Optional[str] = None
    fd_lateral_mode: Optional[str] = None       # active (armed)
    fd_vertical_mode: Optional[str] = None      # active (armed)
    fd_roll_command: Optional[float] = None
    fd_pitch_command: Optional[float] = None
    ap_roll_command: Optional[float] = None
    ap_pitch_command: Optional[float] = None

    # Environment
    magnetic_variation: Optional[float] = None
    outside_air_temperature: Optional[float] = None  # °C
    density_altitude: Optional[float] = None    # never recorded by the R9
    height_agl: Optional[int] = None            # ft
    wind_speed: Optional[float] = None          # never recorded by the R9
    wind_direction: Optional[float] = None      # never recorded by the R9

    # Engine / electrical
    oil_temperature: Optional[float] = None     # °F
    oil_pressure: Optional[float] = None        # psi
    rpm: Optional[float] = None
    manifold_pressure: Optional[float] = None   # inHg
    potential1: Optional[float] = None          # V
    potential2: Optional[float] = None          # V
    fuel_flow: Optional[float] = None           # gph
    chts: tuple[Optional[int], ...] = (None,) * 6   # °F
    egts: tuple[Optional[int], ...] = (None,) * 6   # °F
    percent_power: Optional[int] = None

    @property
    def date(self) -> str:
        return self.timestamp.astimezone(timezone.utc).strftime("%Y-%m-%d")

    @property
    def time(self) -> str:
        return self.timestamp.astimezone(timezone.utc).strftime("%H:%M:%S")

    @property
    def utc_offset(self) -> str:
        return UTC_OFFSET

    def to_row(self) -> list[str]:
        return [column.render(self) for column in GARMIN_COLUMNS]


def format_cell(value: Any, precision: int = 0) -> str:
    """Render one cell: empty for None, fixed decimals for numbers."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if precision == 0:
        return str(round_half_away(value))
    return f"{float(value):.{precision}f}"


@dataclass(frozen=True)
class GarminColumn:
    title: str
    short: str = ""
    attribute: Optional[str] = None
    precision: int = 0
    index: Optional[int] = None

    def render(self, record: GarminRecord) -> str:
        if self.attribute is None:
            return ""
        value = getattr(record, self.attribute)
        if self.index is not None:
            value = value[self.index] if self.index < len(value) else None
        return format_cell(value, self.precision)


def _cylinders(kind: str, attribute: str) -> list[GarminColumn]:
    return [
        GarminColumn(f"{kind}{n} (deg F)", f"E1 {kind}{n}", attribute, index=n - 1)
        for n in range(1, 7)
    ]


GARMIN_COLUMNS: list[GarminColumn] = [
    GarminColumn("Date (yyyy-mm-dd)", "Lcl Date", "date"),
    GarminColumn("Time (hh:mm:ss)", "Lcl Time", "time"),
    GarminColumn("UTC Time (hh:mm:ss)", "UTC Time", "time"),
    GarminColumn("UTC Offset (hh:mm)", "UTCOfst", "utc_offset"),
    GarminColumn("Latitude (deg)", "Latitude", "latitude", 7),
    GarminColumn("Longitude (deg)", "Longitude", "longitude", 7),
    GarminColumn("GPS Altitude (ft)", "AltGPS", "altitude_gps"),
    GarminColumn("GPS Fix Status", "GPSfix", "gps_fix_status"),
    GarminColumn("GPS Time of Week (sec)"),
    GarminColumn("GPS Ground Speed (kt)", "GndSpd", "ground_speed", 1),
    GarminColumn("GPS Ground Track (deg)", "TRK", "ground_track"),
    GarminColumn("GPS Velocity E (m/sec)", "GPSVelE"),
    GarminColumn("GPS Velocity N (m/sec)", "GPSVelN"),
    GarminColumn("GPS Velocity U (m/sec)", "GPSVelU"),
    GarminColumn("Magnetic Heading (deg)", "HDG", "heading", 1),
    GarminColumn("GPS PDOP", "PDOP"),
    GarminColumn("GPS Sats"),
    GarminColumn("Pressure Altitude (ft)", "AltP", "pressure_altitude"),
    GarminColumn("Baro Altitude (ft)", "AltInd", "baro_altitude"),
    GarminColumn("Vertical Speed (ft/min)", "VSpd", "vertical_speed"),
    GarminColumn("Indicated Airspeed (kt)", "IAS", "indicated_airspeed", 1),
    GarminColumn("True Airspeed (kt)", "TAS", "true_airspeed"),
    GarminColumn("Pitch (deg)", "Pitch", "pitch", 2),
    GarminColumn("Roll (deg)", "Roll", "roll", 2),
    GarminColumn("Lateral Acceleration (G)", "LatAc", "lateral_acceleration", 3),
    GarminColumn("Normal Acceleration (G)", "NormAc", "normal_acceleration", 3),
    GarminColumn("Selected Heading (deg)", "SelHDG", "heading_bug"),
    GarminColumn("Selected Altitude (ft)", "SelALT", "altitude_bug"),
    GarminColumn("Selected Vertical Speed (ft/min)", "SelVSpd"),
    GarminColumn("Selected Airspeed (kt)", "SelIAS"),
    GarminColumn("Baro Setting (inch Hg)", "Baro", "altimeter_setting", 2),
    GarminColumn("COM Frequency 1 (MHz)", "COM1"),
    GarminColumn("COM Frequency 2 (MHz)", "COM2"),
    GarminColumn("NAV Frequency (MHz)", "NAV1", "nav_frequency", 3),
    GarminColumn("Active Nav Source", "NavSrc", "nav_source"),
    GarminColumn("Nav Annunciation"),
    GarminColumn("Nav Identifier", "NavIdent", "nav_identifier"),
    GarminColumn("Nav Distance (nm)", "NavDist", "nav_distance", 1),
    GarminColumn("Nav Bearing (deg)", "NavBrg", "nav_bearing"),
    GarminColumn("Nav Course (deg)", "NavCRS", "nav_course"),
    GarminColumn("Nav Cross Track Distance (nm)", "NavXTK", "cross_track_distance", 3),
    GarminColumn("Horizontal CDI Deflection", "HCDI", "horizontal_cdi_deflection", 2),
    GarminColumn("Horizontal CDI Full Scale (ft)", "", "horizontal_cdi_full_scale"),
    GarminColumn("Horizontal CDI Scale", "", "horizontal_cdi_scale"),
    GarminColumn("Vertical CDI Deflection", "VCDI", "vertical_cdi_deflection", 2),
    GarminColumn("Vertical CDI Full Scale (ft)"),
    GarminColumn("VNAV CDI Deflection", "VNAV CDI"),
    GarminColumn("VNAV Altitude (ft)", "VNAVAlt", "vnav_target_altitude"),
    GarminColumn("Autopilot State", "", "autopilot_state"),
    GarminColumn("FD Lateral Mode", "", "fd_lateral_mode"),
    GarminColumn("FD Vertical Mode", "", "fd_vertical_mode"),
    GarminColumn("FD Roll Command (deg)", "", "fd_roll_command", 1),
    GarminColumn("FD Pitch Command (deg)", "", "fd_pitch_command", 1),
    GarminColumn("FD Altitude (ft)", "", "altitude_bug"),
    GarminColumn("AP Roll Command (deg)", "", "ap_roll_command", 1),
    GarminColumn("AP Pitch Command (deg)", "", "ap_pitch_command", 1),
    GarminColumn("AP VS Command (ft/min)"),
    GarminColumn("AP Altitude Command (ft)"),
    GarminColumn("AP Roll Torque (%)"),
    GarminColumn("AP Pitch Torque (%)"),
    GarminColumn("AP Roll Trim Motor"),
    GarminColumn("AP Pitch Trim Motor"),
    GarminColumn("Magnetic Variation (deg)", "MagVar", "magnetic_variation", 1),
    GarminColumn("Outside Air Temp (deg C)", "OAT", "outside_air_temperature", 1),
    GarminColumn("Density Altitude (ft)", "AltD", "density_altitude"),
    GarminColumn("Height Above Ground (ft)", "AGL", "height_agl"),
    GarminColumn("Wind Speed (kt)", "WndSpd", "wind_speed", 1),
    GarminColumn("Wind Direction (deg)", "WndDr", "wind_direction"),
    GarminColumn("AHRS Status"),
    GarminColumn("AHRS Dev (%)"),
    GarminColumn("Magnetometer Status"),
    GarminColumn("Network Status"),
    GarminColumn("Transponder Code"),
    GarminColumn("Transponder Mode"),
    GarminColumn("Oil Temp (deg F)", "E1 OilT", "oil_temperature"),
    GarminColumn("Fuel L Qty (gal)", "FQty1"),
    GarminColumn("Fuel R Qty (gal)", "FQty2"),
    GarminColumn("Fuel Press (PSI)", "E1 FPres"),
    GarminColumn("Oil Press (PSI)", "E1 OilP", "oil_pressure"),
    GarminColumn("RPM", "E1 RPM", "rpm"),
    GarminColumn("Manifold Press (inch Hg)", "E1 MAP", "manifold_pressure", 1),
    GarminColumn("Volts", "Volts1", "potential1", 1),
    GarminColumn("Volts", "Volts2", "potential2", 1),
    GarminColumn("Amps", "Amps1"),
    GarminColumn("Amps", "Amps2"),
    GarminColumn("Fuel Flow (gal/hour)", "E1 FFlow", "fuel_flow", 1),
    GarminColumn("Elevator Trim", "PTrim"),
    GarminColumn("Aileron Trim", "RTrim"),
    *_cylinders("CHT", "chts"),
    *_cylinders("EGT", "egts"),
    GarminColumn("Engine Power (%)", "E1 %Pwr", "percent_power"),
    GarminColumn("CAS Alert"),
    GarminColumn("Terrain Alert"),
    GarminColumn("Engine 1 Cycle Count"),
]


def column_header_rows() -> list[list[str]]:
    """The full-title and short-mnemonic header rows."""
    titles = [column.title for column in GARMIN_COLUMNS]
    shorts = [column.short for column in GARMIN_COLUMNS]
    # The short row stops after the last named mnemonic
    while shorts and not shorts[-1]:
        shorts.pop()
    return [titles, shorts]
