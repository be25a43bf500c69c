"""
Unit conversion and rounding helpers.

All helpers pass None through, so an absent source value stays absent.
"""

import math
from typing import Optional

FEET_PER_METER = 3.28084
FEET_PER_NAUTICAL_MILE = 6076.12
STANDARD_ALTIMETER_INHG = 29.92


def round_half_away(value: float) -> int:
    """Round to the nearest integer, with halves rounded away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def to_int(value: Optional[float]) -> Optional[int]:
    if value is None:
        return None
    return round_half_away(value)


def meters_to_feet(meters: Optional[float]) -> Optional[int]:
    """Meters to whole feet."""
    if meters is None:
        return None
    return round_half_away(meters * FEET_PER_METER)


def khz_to_mhz(khz: Optional[float]) -> Optional[float]:
    if khz is None:
        return None
    return khz / 1000


def nm_to_feet(nm: Optional[float]) -> Optional[float]:
    if nm is None:
        return None
    return nm * FEET_PER_NAUTICAL_MILE


def baro_altitude(pressure_altitude: Optional[float], altimeter_setting: Optional[float]) -> Optional[float]:
    """
    Indicated altitude from pressure altitude and the altimeter setting (inHg).

    Uses the 1000 ft per inHg approximation around the 29.92 standard setting.
    """
    if pressure_altitude is None or altimeter_setting is None:
        return None
    return pressure_altitude + round_half_away((altimeter_setting - STANDARD_ALTIMETER_INHG) * 1000)


def normalize_360(heading: Optional[float]) -> Optional[float]:
    """Wrap a heading into [0, 360)."""
    if heading is None:
        return None
    normalized = math.fmod(heading, 360)
    if normalized < 0:
        normalized += 360
    return normalized


def magnetic_to_true(magnetic: Optional[float], variation: Optional[float]) -> Optional[int]:
    """Magnetic bearing plus variation (east positive), as a whole-degree true bearing."""
    if magnetic is None or variation is None:
        return None
    return int(normalize_360(round_half_away(magnetic + variation)))


def whole_bearing(bearing: Optional[float]) -> Optional[int]:
    """Round a bearing to whole degrees, keeping it in [0, 360)."""
    if bearing is None:
        return None
    return int(normalize_360(round_half_away(bearing)))


def clamp(value: Optional[float], low: float, high: float) -> Optional[float]:
    if value is None:
        return None
    return max(low, min(high, value))
