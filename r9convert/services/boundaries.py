"""
Flight boundary detection.

The R9 writes a POWER ON sentinel into each of its three logs when the
display boots. The three sentinels for one power cycle are a few seconds
apart, so nearby events are merged into a single flight boundary.
"""

import logging
from datetime import datetime
from typing import Iterable

from r9convert.config import BOUNDARY_WINDOW_S
from r9convert.models.garmin import FlightBoundary


logger = logging.getLogger(__name__)


def group_power_on_events(
    events: Iterable[tuple[datetime, str]],
    window: float = BOUNDARY_WINDOW_S,
) -> list[FlightBoundary]:
    """
    Merge power-on events into time-ordered flight boundaries.

    Args:
        events: (timestamp, source filename) pairs, in any order
        window: Maximum gap in seconds between consecutive events of one boundary

    Returns:
        Non-overlapping boundaries sorted by start time
    """
    boundaries: list[FlightBoundary] = []
    start = end = None
    files: set[str] = set()

    for timestamp, filename in sorted(events):
        if end is not None and (timestamp - end).total_seconds() <= window:
            end = timestamp
            files.add(filename)
            continue

        if start is not None:
            boundaries.append(FlightBoundary(start, end, frozenset(files)))
        start = end = timestamp
        files = {filename}

    if start is not None:
        boundaries.append(FlightBoundary(start, end, frozenset(files)))

    logger.debug(f"Grouped power-on events into {len(boundaries)} flight boundaries")
    return boundaries
