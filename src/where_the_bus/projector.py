"""Turn vehicle records into GeoJSON point features."""

import logging
import math

from where_the_bus.models import (
    PointFeature,
    PointGeometry,
    PointProperties,
    VehicleRecord,
)

logger = logging.getLogger(__name__)


def is_valid_coordinate(longitude: float | None, latitude: float | None) -> bool:
    """Return True if (longitude, latitude) can be placed on the map.

    Zero is rejected on either axis: the feed reports 0 for unknown fixes.
    """
    if longitude is None or latitude is None:
        return False
    if math.isnan(longitude) or math.isnan(latitude):
        return False
    if longitude == 0 or latitude == 0:
        return False
    return -180 <= longitude <= 180 and -90 <= latitude <= 90


def describe_vehicle(record: VehicleRecord) -> str:
    """Short popup label for a vehicle."""
    if record.bearing is None or not math.isfinite(record.bearing):
        bearing = "?"
    else:
        bearing = f"{round(record.bearing)}°"
    return (
        f"Vehicle {record.vehicle_id or 'unknown'}, "
        f"Route {record.route_id or 'unknown'}, Bearing {bearing}"
    )


def to_point_feature(
    record: VehicleRecord, average_speed: int | None = None
) -> PointFeature:
    return PointFeature(
        geometry=PointGeometry(coordinates=[record.longitude, record.latitude]),
        properties=PointProperties(
            trip_id=record.trip_id,
            route_id=record.route_id,
            vehicle_id=record.vehicle_id,
            bearing=record.bearing,
            speed=record.speed,
            timestamp=record.timestamp,
            average_speed=average_speed,
            description=describe_vehicle(record),
        ),
    )


def project(
    records: list[VehicleRecord],
    average_speeds: dict[str, int] | None = None,
    quiet: bool = False,
) -> list[PointFeature]:
    """Project records to point features, dropping trip-less or unplaceable ones.

    quiet logs the drop summary at DEBUG; derived views re-project on every
    pointer event.
    """
    speeds = average_speeds or {}
    features = []
    dropped = 0
    for record in records:
        if not record.trip_id:
            dropped += 1
            continue
        if not is_valid_coordinate(record.longitude, record.latitude):
            logger.debug(
                "Filtered out invalid coordinates for vehicle %s: [%s, %s]",
                record.vehicle_id,
                record.longitude,
                record.latitude,
            )
            dropped += 1
            continue
        features.append(to_point_feature(record, speeds.get(record.trip_id)))

    if dropped:
        logger.log(
            logging.DEBUG if quiet else logging.WARNING,
            "Dropped %d of %d vehicle records",
            dropped,
            len(records),
        )
    return features
