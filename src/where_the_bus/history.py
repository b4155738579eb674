"""Derive trip trails and average speeds from the history window."""

import logging
import math
import time
from collections import defaultdict
from datetime import timedelta

from where_the_bus.models import (
    LineFeature,
    LineProperties,
    LineStringGeometry,
    PointFeature,
    VehicleRecord,
)
from where_the_bus.projector import project

logger = logging.getLogger(__name__)

RECENCY_WINDOW = timedelta(minutes=8)


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def average_speeds(history: list[list[VehicleRecord]]) -> dict[str, int]:
    """Map trip id -> rounded mean of every speed sample in the window.

    Trips with no speed samples are absent rather than zero.
    """
    samples: dict[str, list[float]] = defaultdict(list)
    dropped = 0
    for cycle in history:
        for record in cycle:
            if not record.trip_id or record.speed is None:
                continue
            if not math.isfinite(record.speed):
                dropped += 1
                continue
            samples[record.trip_id].append(record.speed)

    if dropped:
        logger.warning("Ignored %d non-finite speed samples", dropped)

    return {
        trip_id: _round_half_up(sum(speeds) / len(speeds))
        for trip_id, speeds in samples.items()
    }


def recent_points(
    history: list[list[VehicleRecord]],
    now: float | None = None,
    window: timedelta = RECENCY_WINDOW,
) -> list[PointFeature]:
    """Flatten the window into point features newer than now - window.

    The cutoff is exclusive: a point exactly at the boundary is dropped.
    """
    if now is None:
        now = time.time()
    cutoff = now - window.total_seconds()

    points = []
    for cycle in history:
        for feature in project(cycle, quiet=True):
            ts = feature.properties.timestamp
            if ts is not None and ts > cutoff:
                points.append(feature)
    return points


def trip_lines(
    history: list[list[VehicleRecord]],
    current: list[VehicleRecord],
    now: float | None = None,
    window: timedelta = RECENCY_WINDOW,
) -> list[LineFeature]:
    """Build one LineString per trip with at least two recent points.

    Vertices are ordered by timestamp and the trip's current position, when
    it is in the latest snapshot, is appended as the final vertex.
    """
    by_trip: dict[str, list[PointFeature]] = defaultdict(list)
    for point in recent_points(history, now=now, window=window):
        by_trip[point.properties.trip_id].append(point)

    current_positions = {
        f.properties.trip_id: f.geometry.coordinates
        for f in project(current, quiet=True)
    }

    lines = []
    for trip_id, points in by_trip.items():
        if len(points) < 2:
            continue
        points.sort(key=lambda p: p.properties.timestamp)
        coordinates = [list(p.geometry.coordinates) for p in points]
        if trip_id in current_positions:
            coordinates.append(list(current_positions[trip_id]))
        lines.append(
            LineFeature(
                geometry=LineStringGeometry(coordinates=coordinates),
                properties=LineProperties(
                    trip_id=trip_id, route_id=points[-1].properties.route_id
                ),
            )
        )

    logger.debug("Built %d trip lines from %d trips", len(lines), len(by_trip))
    return lines
