"""Deduplicated stop index built from per-route prediction payloads."""

import logging
from dataclasses import dataclass, field

from where_the_bus.models import (
    PointGeometry,
    RouteStopPrediction,
    StopFeature,
    StopProperties,
)

logger = logging.getLogger(__name__)


@dataclass
class StopRecord:
    stop_id: str
    name: str | None
    geoid: str | None
    longitude: float
    latitude: float
    routes: set[str] = field(default_factory=set)

    def to_feature(self) -> StopFeature:
        return StopFeature(
            geometry=PointGeometry(coordinates=[self.longitude, self.latitude]),
            properties=StopProperties(
                stop_id=self.stop_id,
                name=self.name,
                geoid=self.geoid,
                routes=sorted(self.routes),
            ),
        )


def build_stop_index(predictions: list[RouteStopPrediction]) -> list[StopRecord]:
    """Merge every route's stop list into one record per stop id.

    The first entry seen for a stop supplies its name, geoid and
    coordinates; later entries only add their route.
    """
    index: dict[str, StopRecord] = {}
    skipped = 0
    for prediction in predictions:
        for stop in prediction.stops:
            if not stop.stop_id or stop.latitude is None or stop.longitude is None:
                skipped += 1
                continue
            record = index.get(stop.stop_id)
            if record is None:
                record = StopRecord(
                    stop_id=stop.stop_id,
                    name=stop.name,
                    geoid=stop.geoid,
                    longitude=stop.longitude,
                    latitude=stop.latitude,
                )
                index[stop.stop_id] = record
            if prediction.route_name:
                record.routes.add(prediction.route_name)

    if skipped:
        logger.warning("Skipped %d stop entries without id or coordinates", skipped)
    return list(index.values())
