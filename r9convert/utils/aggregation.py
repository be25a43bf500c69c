"""
Aggregation strategies for fusing several samples of one field.

Values are sorted before reduction so a fused value never depends on the
order in which concurrently parsed rows reached a bucket.
"""

from collections import Counter
from enum import Enum
from typing import Hashable, Optional, Sequence

import numpy as np


# Resultant vectors shorter than this (per sample) are treated as having no direction
MIN_RESULTANT_LENGTH = 1e-9


class AverageStrategy(Enum):
    """How the samples of one field are reduced to a single value."""

    MEAN = "mean"
    MODE = "mode"
    BEARING = "bearing"
    ELEMENTWISE_MEAN = "elementwise_mean"


def mean(values: Sequence[float]) -> Optional[float]:
    """Arithmetic mean, or None when there are no values."""
    if len(values) == 0:
        return None
    return float(np.mean(np.sort(np.asarray(values, dtype=np.float64))))


def mode(values: Sequence[Hashable]) -> Optional[Hashable]:
    """
    Most frequent value.

    Ties are broken by the smallest value so the result is deterministic.
    """
    if len(values) == 0:
        return None
    counts = Counter(values)
    highest = max(counts.values())
    return min(value for value, count in counts.items() if count == highest)


def circular_mean(bearings: Sequence[float]) -> Optional[float]:
    """
    Mean of bearings in degrees (0=North, clockwise), normalized to [0, 360).

    Each bearing is treated as a unit vector so that 350 and 10 average to 0
    rather than 180. Returns None when the vectors cancel out (for example
    0, 90, 180 and 270), since the mean direction is undefined.
    """
    if len(bearings) == 0:
        return None

    radians = np.radians(np.sort(np.asarray(bearings, dtype=np.float64)))
    east = float(np.mean(np.sin(radians)))
    north = float(np.mean(np.cos(radians)))

    if np.hypot(east, north) < MIN_RESULTANT_LENGTH:
        return None

    # atan2(east, north) measures clockwise from North
    angle = float(np.degrees(np.arctan2(east, north))) % 360.0
    # values within float error of 360 collapse to 0
    if np.isclose(angle, 360.0, rtol=0.0, atol=1e-9):
        return 0.0
    return angle


def elementwise_mean(arrays: Sequence[Sequence[Optional[float]]]) -> tuple[Optional[float], ...]:
    """
    Per-position mean of fixed-length sequences (e.g. six cylinder temperatures).

    Positions where every sample is absent stay absent.
    """
    if len(arrays) == 0:
        return ()
    width = max(len(a) for a in arrays)
    result = []
    for index in range(width):
        present = [a[index] for a in arrays if index < len(a) and a[index] is not None]
        result.append(mean(present))
    return tuple(result)


STRATEGIES = {
    AverageStrategy.MEAN: mean,
    AverageStrategy.MODE: mode,
    AverageStrategy.BEARING: circular_mean,
    AverageStrategy.ELEMENTWISE_MEAN: elementwise_mean,
}


def aggregate(values: Sequence, strategy: AverageStrategy):
    """Reduce the present (non-None) values with the given strategy."""
    if strategy is AverageStrategy.ELEMENTWISE_MEAN:
        return elementwise_mean([v for v in values if v is not None])
    present = [v for v in values if v is not None]
    if not present:
        return None
    return STRATEGIES[strategy](present)
