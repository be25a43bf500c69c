"""
Fused R9 record -> Garmin record.

Unit conversions, magnetic-to-true bearings, barometric correction,
autopilot mode strings and selection of FMS or localizer guidance fields.
"""

from typing import Optional, Sequence

from r9convert.errors import IncompleteRecordsError
from r9convert.models.garmin import FusedRecord, GarminRecord
from r9convert.models.rows import CYLINDER_COUNT
from r9convert.utils.units import (
    baro_altitude,
    clamp,
    khz_to_mhz,
    magnetic_to_true,
    meters_to_feet,
    nm_to_feet,
    to_int,
    whole_bearing,
)


GPS_STATES = ["NoSoln", "NoSoln", "NoSoln", "NoSoln", "3D-", "3D", "3DDiff"]
FMS_MODES = ["OCN", "ENR", "TERM", "DEP", "GA", "APCH"]
FMS_CDI_FULL_SCALE_FT = [30380.6, 12152.2, 6076.12, 6076.12, 6076.12, 1822.83]  # per FMS mode
CDI_SOURCES = ["GPS1", "LOC1", "LOC2"]
FMS_SOURCE = "GPS1"

# Index = DFC100 mode code; code 0 is "off"
LATERAL_MODES = [None, "ROLL", "HDG", "LOC", "LOC-BC", "VOR", "VOR-APPR", "APPR", "NAV", "NAV-INTCPT"]
VERTICAL_MODES = [None] * 10 + ["PITCH", "IAS", "VS", "ALT", "GS", "ALT-GS", "VNAV-ALT", "VNAV-VS"]

PERCENT_POWER_RANGE = (0, 255)


def lookup(index: Optional[int], table: Sequence):
    """Table entry for a code; absent or out-of-range codes give None."""
    if index is None:
        return None
    index = int(index)
    if 0 <= index < len(table):
        return table[index]
    return None


def autopilot_mode_string(active: Optional[int], armed: Optional[int], table: Sequence) -> Optional[str]:
    """`ACTIVE (ARMED)`, or just `ACTIVE` when nothing is armed."""
    active_name = lookup(active, table)
    if not active_name:
        return None
    armed_name = lookup(armed, table)
    if armed_name:
        return f"{active_name} ({armed_name})"
    return active_name


def autopilot_engaged(active_lateral: Optional[int], active_vertical: Optional[int]) -> bool:
    if active_lateral is None or active_vertical is None:
        return False
    return active_lateral != 0 and active_vertical != 0


def fms_cdi_deflection(cross_track_nm: Optional[float], full_scale_ft: Optional[float]) -> Optional[float]:
    """Cross-track error as a fraction of the FMS mode's full-scale deflection."""
    if cross_track_nm is None or not full_scale_ft:
        return None
    return nm_to_feet(cross_track_nm) / full_scale_ft


def _cylinders(values: Sequence[Optional[float]]) -> tuple[Optional[int], ...]:
    padded = list(values)[:CYLINDER_COUNT]
    padded += [None] * (CYLINDER_COUNT - len(padded))
    return tuple(to_int(v) for v in padded)


def transform(fused: FusedRecord) -> GarminRecord:
    """
    Build the Garmin record for one fused bucket.

    Raises IncompleteRecordsError when the bucket had no rows at all.
    Subsystems missing from the bucket leave their columns empty.
    """
    if fused.is_empty:
        raise IncompleteRecordsError(fused.timestamp)

    engine = fused.engine
    flight = fused.flight
    system = fused.system

    nav_source = lookup(system.get("course_select"), CDI_SOURCES)
    fms = nav_source == FMS_SOURCE
    navigation_mode = system.get("navigation_mode")

    engaged = autopilot_engaged(flight.get("active_lateral_mode"), flight.get("active_vertical_mode"))

    normal_acceleration = flight.get("filtered_normal_acceleration")
    if normal_acceleration is None:
        normal_acceleration = flight.get("normal_acceleration")

    percent_power = clamp(engine.get("percent_power"), *PERCENT_POWER_RANGE)

    record = GarminRecord(
        timestamp=fused.timestamp,
        latitude=flight.get("gps_latitude"),
        longitude=flight.get("gps_longitude"),
        altitude_gps=meters_to_feet(system.get("gps_altitude_msl")),
        gps_fix_status=lookup(system.get("gps_state"), GPS_STATES),
        ground_speed=system.get("ground_speed"),
        ground_track=magnetic_to_true(system.get("ground_track"), system.get("magnetic_variation")),
        heading=flight.get("heading"),
        pressure_altitude=flight.get("pressure_altitude"),
        baro_altitude=baro_altitude(flight.get("pressure_altitude"), system.get("altimeter_setting")),
        vertical_speed=flight.get("vertical_speed"),
        indicated_airspeed=flight.get("indicated_airspeed"),
        true_airspeed=flight.get("true_airspeed"),
        pitch=flight.get("pitch"),
        roll=flight.get("roll"),
        lateral_acceleration=flight.get("lateral_acceleration"),
        normal_acceleration=normal_acceleration,
        heading_bug=system.get("heading_bug"),
        altitude_bug=system.get("altitude_bug"),
        altimeter_setting=system.get("altimeter_setting"),
        nav_source=nav_source,
        nav_identifier=system.get("active_waypoint"),
        nav_frequency=khz_to_mhz(system.get("nav_frequency")),
        nav_distance=system.get("distance_to_waypoint"),
        vnav_target_altitude=flight.get("altitude_target"),
        autopilot_state="AP" if engaged else None,
        fd_lateral_mode=autopilot_mode_string(
            flight.get("active_lateral_mode"), flight.get("armed_lateral_mode"), LATERAL_MODES
        ),
        fd_vertical_mode=autopilot_mode_string(
            flight.get("active_vertical_mode"), flight.get("armed_vertical_mode"), VERTICAL_MODES
        ),
        fd_roll_command=flight.get("fd_roll"),
        fd_pitch_command=flight.get("fd_pitch"),
        ap_roll_command=flight.get("fd_roll") if engaged else None,
        ap_pitch_command=flight.get("fd_pitch") if engaged else None,
        magnetic_variation=system.get("magnetic_variation"),
        outside_air_temperature=system.get("oat"),
        height_agl=meters_to_feet(system.get("gps_height_agl")),
        oil_temperature=engine.get("oil_temperature"),
        oil_pressure=engine.get("oil_pressure"),
        rpm=engine.get("rpm"),
        manifold_pressure=engine.get("manifold_pressure"),
        potential1=engine.get("main_bus1_potential"),
        potential2=engine.get("emergency_bus_potential"),
        fuel_flow=engine.get("fuel_flow"),
        chts=_cylinders(engine.get("chts") or ()),
        egts=_cylinders(engine.get("egts") or ()),
        percent_power=to_int(percent_power),
    )

    # Guidance fields come from either the FMS or the nav radio, never both
    if fms:
        full_scale = lookup(navigation_mode, FMS_CDI_FULL_SCALE_FT)
        record.nav_bearing = whole_bearing(system.get("navaid_bearing"))
        record.nav_course = whole_bearing(system.get("desired_track"))
        record.cross_track_distance = system.get("cross_track_deviation")
        record.horizontal_cdi_deflection = fms_cdi_deflection(system.get("cross_track_deviation"), full_scale)
        record.horizontal_cdi_full_scale = full_scale
        record.horizontal_cdi_scale = lookup(navigation_mode, FMS_MODES)
    else:
        record.nav_course = whole_bearing(system.get("obs"))
        record.horizontal_cdi_deflection = system.get("localizer_deviation")
        record.vertical_cdi_deflection = system.get("glideslope_deviation")

    return record
