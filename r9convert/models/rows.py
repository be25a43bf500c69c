"""
R9 source row models (one per subsystem log).

The R9 data logger writes three parallel CSV streams: ENGINE, FLIGHT and
SYSTEM. Each parsed data row becomes one of the dataclasses below. Absent
cells are None, never zero.

Every fused field declares its aggregation strategy in the dataclass field
metadata; fields without one (timestamp, systime) are not fused.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import ClassVar, Optional, Union

from r9convert.utils.aggregation import AverageStrategy


class RowType(Enum):
    """Source subsystem of a row."""

    ENGINE = "engine"
    FLIGHT = "flight"
    SYSTEM = "system"

    @property
    def interval_s(self) -> int:
        """Nominal sampling period of the subsystem, in seconds."""
        return RECORDING_INTERVALS[self]


RECORDING_INTERVALS = {
    RowType.ENGINE: 4,
    RowType.FLIGHT: 1,
    RowType.SYSTEM: 2,
}

CYLINDER_COUNT = 6


def _mean():
    return field(default=None, metadata={"aggregate": AverageStrategy.MEAN})


def _mode():
    return field(default=None, metadata={"aggregate": AverageStrategy.MODE})


def _bearing():
    return field(default=None, metadata={"aggregate": AverageStrategy.BEARING})


def _per_cylinder():
    return field(
        default=(None,) * CYLINDER_COUNT,
        metadata={"aggregate": AverageStrategy.ELEMENTWISE_MEAN},
    )


def epoch_seconds(timestamp: datetime) -> int:
    return int(timestamp.astimezone(timezone.utc).timestamp())


@dataclass(frozen=True)
class EngineRow:
    """Engine and electrical sample (every 4 s)."""

    row_type: ClassVar[RowType] = RowType.ENGINE

    timestamp: datetime
    systime: Optional[int] = None

    oil_temperature: Optional[int] = _mean()         # °F
    oil_pressure: Optional[int] = _mean()            # psi
    rpm: Optional[int] = _mean()
    manifold_pressure: Optional[float] = _mean()     # inHg
    chts: tuple[Optional[float], ...] = _per_cylinder()  # °F
    egts: tuple[Optional[float], ...] = _per_cylinder()  # °F
    percent_power: Optional[float] = _mean()         # 0..100
    fuel_flow: Optional[float] = _mean()             # gph
    fuel_used: Optional[float] = _mean()             # gal
    fuel_remaining: Optional[float] = _mean()        # gal
    fuel_time_remaining: Optional[int] = _mean()     # min
    fuel_economy: Optional[float] = _mean()          # NM/gal
    main_bus1_potential: Optional[float] = _mean()   # V
    emergency_bus_potential: Optional[float] = _mean()  # V

    @property
    def epoch(self) -> int:
        return epoch_seconds(self.timestamp)


@dataclass(frozen=True)
class FlightRow:
    """Air data, attitude and DFC100 autopilot sample (every 1 s)."""

    row_type: ClassVar[RowType] = RowType.FLIGHT

    timestamp: datetime
    systime: Optional[int] = None

    filtered_normal_acceleration: Optional[float] = _mean()  # G
    normal_acceleration: Optional[float] = _mean()           # G
    longitudinal_acceleration: Optional[float] = _mean()     # G
    lateral_acceleration: Optional[float] = _mean()          # G
    active_adahrs: Optional[int] = _mode()
    ahrs_status: Optional[int] = _mode()
    heading: Optional[float] = _bearing()                    # °M
    pitch: Optional[float] = _mean()
    roll: Optional[float] = _mean()
    fd_pitch: Optional[float] = _mean()
    fd_roll: Optional[float] = _mean()
    heading_rate: Optional[float] = _mean()                  # °/s
    pressure_altitude: Optional[int] = _mean()               # ft
    indicated_airspeed: Optional[int] = _mean()              # kt
    true_airspeed: Optional[int] = _mean()                   # kt
    vertical_speed: Optional[int] = _mean()                  # fpm
    gps_latitude: Optional[float] = _mean()
    gps_longitude: Optional[float] = _mean()
    body_yaw_rate: Optional[float] = _mean()
    body_pitch_rate: Optional[float] = _mean()
    body_roll_rate: Optional[float] = _mean()
    magnetometer_status: Optional[int] = _mode()
    iru_status: Optional[int] = _mode()
    mpu_status: Optional[int] = _mode()
    adc_status: Optional[str] = _mode()
    ahrs_sequence: Optional[int] = _mode()
    adc_sequence: Optional[int] = _mode()
    ahrs_startup_mode: Optional[int] = _mode()
    active_lateral_mode: Optional[int] = _mode()
    armed_lateral_mode: Optional[int] = _mode()
    active_vertical_mode: Optional[int] = _mode()
    armed_vertical_mode: Optional[int] = _mode()
    autopilot_status_flags: Optional[int] = _mode()
    autopilot_fail_flags: Optional[int] = _mode()
    altitude_target: Optional[int] = _mode()                 # ft

    @property
    def epoch(self) -> int:
        return epoch_seconds(self.timestamp)


@dataclass(frozen=True)
class SystemRow:
    """Navigation, GPS and terrain sample (every 2 s)."""

    row_type: ClassVar[RowType] = RowType.SYSTEM

    timestamp: datetime
    systime: Optional[int] = None

    oat: Optional[int] = _mean()                        # °C
    localizer_deviation: Optional[float] = _mean()      # -1..1
    glideslope_deviation: Optional[float] = _mean()     # -1..1
    flight_director_on: Optional[bool] = _mode()
    autopilot_mode: Optional[str] = _mode()
    ground_speed: Optional[int] = _mean()               # kt
    ground_track: Optional[int] = _bearing()            # °M
    cross_track_deviation: Optional[float] = _mean()    # NM
    vertical_deviation: Optional[int] = _mean()         # ft
    altimeter_setting: Optional[float] = _mode()        # inHg
    altitude_bug: Optional[int] = _mode()               # ft
    vertical_speed_bug: Optional[int] = _mode()         # fpm
    heading_bug: Optional[int] = _mode()                # °M
    display_mode: Optional[int] = _mode()
    navigation_mode: Optional[int] = _mode()            # index into FMS modes
    active_waypoint: Optional[str] = _mode()
    active_gps: Optional[int] = _mode()
    navaid_bearing: Optional[int] = _bearing()          # °M
    obs: Optional[int] = _bearing()                     # °M
    desired_track: Optional[int] = _bearing()           # °M
    nav_frequency: Optional[int] = _mode()              # kHz
    course_select: Optional[int] = _mode()              # index into CDI sources
    nav_type: Optional[int] = _mode()
    course_deviation: Optional[int] = _mean()
    gps_altitude: Optional[int] = _mean()               # m
    distance_to_waypoint: Optional[float] = _mean()     # NM
    gps_state: Optional[int] = _mode()
    gps_horizontal_protection_limit: Optional[float] = _mean()  # m
    gps_vertical_protection_limit: Optional[float] = _mean()    # m
    sbas_hpl: Optional[float] = _mean()
    sbas_vpl: Optional[float] = _mean()
    hfom: Optional[float] = _mean()
    vfom: Optional[float] = _mean()
    fms_course: Optional[int] = _bearing()
    magnetic_variation: Optional[float] = _mean()       # ° (-W/+E)
    gps_altitude_msl: Optional[int] = _mean()           # m
    gps_height_agl: Optional[int] = _mean()             # m
    flta_rtc: Optional[int] = _mean()
    flta_atc: Optional[int] = _mean()
    flta_vertical_speed: Optional[int] = _mean()
    flta_rtc_distance: Optional[int] = _mean()
    flta_terrain_distance: Optional[int] = _mean()
    flta_status: Optional[int] = _mode()

    @property
    def epoch(self) -> int:
        return epoch_seconds(self.timestamp)


SubsystemRow = Union[EngineRow, FlightRow, SystemRow]


@dataclass(frozen=True)
class PowerOnMarker:
    """Sentinel row written when the R9 display powers up."""

    timestamp: datetime

    @property
    def epoch(self) -> int:
        return epoch_seconds(self.timestamp)


@dataclass(frozen=True)
class IncrementalExtractMarker:
    """Sentinel row separating incremental extracts; carries no data."""

    timestamp: datetime


LogEntry = Union[EngineRow, FlightRow, SystemRow, PowerOnMarker, IncrementalExtractMarker]


@dataclass
class TimeBucket:
    """All rows covering one whole UTC second, grouped by subsystem."""

    epoch: int
    engine: list[EngineRow] = field(default_factory=list)
    flight: list[FlightRow] = field(default_factory=list)
    system: list[SystemRow] = field(default_factory=list)

    @property
    def timestamp(self) -> datetime:
        return datetime.fromtimestamp(self.epoch, tz=timezone.utc)

    def rows_for(self, row_type: RowType) -> list:
        if row_type is RowType.ENGINE:
            return self.engine
        if row_type is RowType.FLIGHT:
            return self.flight
        return self.system

    def add(self, row: SubsystemRow) -> None:
        self.rows_for(row.row_type).append(row)

    @property
    def is_empty(self) -> bool:
        return not (self.engine or self.flight or self.system)


ROW_TYPES = {
    RowType.ENGINE: EngineRow,
    RowType.FLIGHT: FlightRow,
    RowType.SYSTEM: SystemRow,
}
