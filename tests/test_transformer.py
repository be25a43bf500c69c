"""
Tests for the fused record -> Garmin record transformation.
"""

from datetime import datetime, timezone

import numpy as np
import pytest

from r9convert.errors import IncompleteRecordsError
from r9convert.models.garmin import FusedRecord
from r9convert.models.rows import EngineRow, FlightRow, SystemRow, TimeBucket
from r9convert.services.fuser import fuse_bucket
from r9convert.services.transformer import (
    LATERAL_MODES,
    VERTICAL_MODES,
    autopilot_engaged,
    autopilot_mode_string,
    lookup,
    transform,
)


T0 = datetime(2023, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def fused(engine=None, flight=None, system=None) -> FusedRecord:
    return FusedRecord(T0, engine or {}, flight or {}, system or {})


class TestLookups:
    def test_lookup(self):
        assert lookup(2, LATERAL_MODES) == "HDG"
        assert lookup(None, LATERAL_MODES) is None
        assert lookup(42, LATERAL_MODES) is None
        assert lookup(-1, LATERAL_MODES) is None

    def test_mode_string_with_armed(self):
        assert autopilot_mode_string(2, 8, LATERAL_MODES) == "HDG (NAV)"

    def test_mode_string_without_armed(self):
        assert autopilot_mode_string(13, 0, VERTICAL_MODES) == "ALT"
        assert autopilot_mode_string(13, None, VERTICAL_MODES) == "ALT"

    def test_mode_string_inactive(self):
        assert autopilot_mode_string(0, 8, LATERAL_MODES) is None
        assert autopilot_mode_string(None, None, LATERAL_MODES) is None

    def test_autopilot_engaged(self):
        assert autopilot_engaged(2, 13) is True
        assert autopilot_engaged(0, 13) is False
        assert autopilot_engaged(2, None) is False


class TestTransform:
    def test_empty_bucket_raises(self):
        with pytest.raises(IncompleteRecordsError):
            transform(fused())

    def test_baro_altitude(self):
        record = transform(fused(flight={"pressure_altitude": 5000.0}, system={"altimeter_setting": 30.42}))
        assert record.baro_altitude == 5500

    def test_unit_conversions(self):
        record = transform(fused(system={
            "gps_altitude_msl": 1524.0,
            "gps_height_agl": 1000.0,
            "nav_frequency": 110300,
        }))

        assert record.altitude_gps == 5000
        assert record.height_agl == 3281
        np.testing.assert_allclose(record.nav_frequency, 110.3)

    def test_ground_track_is_true(self):
        record = transform(fused(system={"ground_track": 85.0, "magnetic_variation": 13.5}))
        assert record.ground_track == 99

    def test_gps_fix_status(self):
        assert transform(fused(system={"gps_state": 5})).gps_fix_status == "3D"
        assert transform(fused(system={"gps_state": 0})).gps_fix_status == "NoSoln"
        assert transform(fused(system={"gps_state": 9})).gps_fix_status is None

    def test_normal_acceleration_fallback(self):
        assert transform(fused(flight={"filtered_normal_acceleration": 1.1, "normal_acceleration": 1.3})).normal_acceleration == 1.1
        assert transform(fused(flight={"normal_acceleration": 1.3})).normal_acceleration == 1.3

    def test_fms_guidance(self):
        record = transform(fused(system={
            "course_select": 0,
            "navigation_mode": 1,
            "cross_track_deviation": 0.5,
            "navaid_bearing": 100.0,
            "desired_track": 88.0,
            "obs": 45.0,
            "localizer_deviation": 0.25,
            "glideslope_deviation": -0.1,
        }))

        assert record.nav_source == "GPS1"
        assert record.nav_bearing == 100
        assert record.nav_course == 88
        assert record.cross_track_distance == 0.5
        np.testing.assert_allclose(record.horizontal_cdi_deflection, 0.5 * 6076.12 / 12152.2)
        assert record.horizontal_cdi_full_scale == 12152.2
        assert record.horizontal_cdi_scale == "ENR"
        assert record.vertical_cdi_deflection is None

    def test_localizer_guidance(self):
        record = transform(fused(system={
            "course_select": 1,
            "navigation_mode": 1,
            "cross_track_deviation": 0.5,
            "navaid_bearing": 100.0,
            "desired_track": 88.0,
            "obs": 45.0,
            "localizer_deviation": 0.25,
            "glideslope_deviation": -0.1,
        }))

        assert record.nav_source == "LOC1"
        assert record.nav_bearing is None
        assert record.nav_course == 45
        assert record.cross_track_distance is None
        assert record.horizontal_cdi_deflection == 0.25
        assert record.horizontal_cdi_full_scale is None
        assert record.horizontal_cdi_scale is None
        assert record.vertical_cdi_deflection == -0.1

    def test_autopilot_commands_only_when_engaged(self):
        engaged = transform(fused(flight={
            "active_lateral_mode": 2, "armed_lateral_mode": 8,
            "active_vertical_mode": 13, "armed_vertical_mode": 0,
            "fd_roll": -2.0, "fd_pitch": 3.0,
        }))
        assert engaged.autopilot_state == "AP"
        assert engaged.fd_lateral_mode == "HDG (NAV)"
        assert engaged.fd_vertical_mode == "ALT"
        assert engaged.ap_roll_command == -2.0
        assert engaged.ap_pitch_command == 3.0

        disengaged = transform(fused(flight={"active_lateral_mode": 0, "active_vertical_mode": 0, "fd_roll": -2.0}))
        assert disengaged.autopilot_state is None
        assert disengaged.fd_roll_command == -2.0
        assert disengaged.ap_roll_command is None

    def test_engine_fields(self):
        record = transform(fused(engine={
            "chts": (341.4, 342.5, None, None, None, None),
            "egts": (),
            "percent_power": 300.0,
            "main_bus1_potential": 28.1,
            "emergency_bus_potential": 27.9,
        }))

        assert record.chts == (341, 343, None, None, None, None)
        assert record.egts == (None,) * 6
        assert record.percent_power == 255
        assert record.potential1 == 28.1
        assert record.potential2 == 27.9

    def test_fields_never_recorded_stay_empty(self):
        record = transform(fused(system={"oat": 5.0}))
        assert record.density_altitude is None
        assert record.wind_speed is None
        assert record.wind_direction is None


class TestSingleRowRoundTrip:
    """One row per subsystem gives back its own values."""

    def test_direct_fields(self):
        epoch = int(T0.timestamp())
        bucket = TimeBucket(epoch)
        bucket.add(EngineRow(T0, oil_temperature=180, oil_pressure=60, rpm=2400, manifold_pressure=24.5, fuel_flow=12.5))
        bucket.add(FlightRow(
            T0, gps_latitude=37.6188056, gps_longitude=-122.3754167, heading=271.0, pitch=2.5, roll=-1.5,
            indicated_airspeed=120, true_airspeed=130, vertical_speed=-500, lateral_acceleration=0.01,
            altitude_target=6000,
        ))
        bucket.add(SystemRow(
            T0, ground_speed=125, heading_bug=90, altitude_bug=6000, altimeter_setting=29.92,
            active_waypoint="KSFO", distance_to_waypoint=12.3, oat=-5, magnetic_variation=13.5,
        ))

        record = transform(fuse_bucket(bucket))

        np.testing.assert_allclose(record.latitude, 37.6188056)
        np.testing.assert_allclose(record.longitude, -122.3754167)
        np.testing.assert_allclose(record.heading, 271.0)
        assert record.pitch == 2.5
        assert record.roll == -1.5
        assert record.indicated_airspeed == 120
        assert record.true_airspeed == 130
        assert record.vertical_speed == -500
        assert record.lateral_acceleration == 0.01
        assert record.vnav_target_altitude == 6000
        assert record.ground_speed == 125
        assert record.heading_bug == 90
        assert record.altitude_bug == 6000
        assert record.altimeter_setting == 29.92
        assert record.nav_identifier == "KSFO"
        assert record.nav_distance == 12.3
        assert record.outside_air_temperature == -5
        assert record.magnetic_variation == 13.5
        assert record.oil_temperature == 180
        assert record.oil_pressure == 60
        assert record.rpm == 2400
        assert record.manifold_pressure == 24.5
        assert record.fuel_flow == 12.5


class TestAltimeterSetting:
    def test_baro_uses_dialled_setting(self):
        epoch = int(T0.timestamp())
        bucket = TimeBucket(epoch)
        bucket.add(FlightRow(T0, pressure_altitude=5000))
        for setting in (29.92, 29.92, 30.42):
            bucket.add(SystemRow(T0, altimeter_setting=setting))

        record = transform(fuse_bucket(bucket))

        assert record.altimeter_setting == 29.92
        assert record.baro_altitude == 5000
