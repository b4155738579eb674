import logging

import httpx
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from where_the_bus.models import RouteStopPrediction, VehicleRecord

logger = logging.getLogger(__name__)


class AcquisitionError(Exception):
    """An endpoint could not be fetched or returned an unusable payload."""

    def __init__(self, endpoint: str, reason: str):
        self.endpoint = endpoint
        self.reason = reason
        super().__init__(f"Failed to fetch {endpoint}: {reason}")


# ── Vehicle feed response models ────────────────────────────────────
# Records follow the GTFS-realtime JSON layout: a vehicle entity wrapping
# trip, position, vehicle descriptor and timestamp.


class _FeedModel(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)


class FeedPosition(_FeedModel):
    latitude: float | None = None
    longitude: float | None = None
    bearing: float | None = None
    speed: float | None = None


class FeedTrip(_FeedModel):
    trip_id: str | None = Field(
        None, validation_alias=AliasChoices("tripId", "trip_id")
    )
    route_id: str | None = Field(
        None, validation_alias=AliasChoices("routeId", "route_id")
    )


class FeedVehicleDescriptor(_FeedModel):
    id: str | None = None


class FeedVehicle(_FeedModel):
    trip: FeedTrip | None = None
    position: FeedPosition | None = None
    vehicle: FeedVehicleDescriptor | None = None
    timestamp: int | None = None


class FeedEntity(_FeedModel):
    id: str | None = None
    vehicle_id: str | None = None
    vehicle: FeedVehicle


def _to_record(entity: FeedEntity) -> VehicleRecord:
    v = entity.vehicle
    trip = v.trip or FeedTrip()
    position = v.position or FeedPosition()
    vehicle_id = entity.vehicle_id
    if vehicle_id is None and v.vehicle is not None:
        vehicle_id = v.vehicle.id
    if vehicle_id is None:
        vehicle_id = entity.id
    return VehicleRecord(
        vehicle_id=vehicle_id,
        trip_id=trip.trip_id or None,
        route_id=trip.route_id,
        latitude=position.latitude,
        longitude=position.longitude,
        bearing=position.bearing,
        speed=position.speed,
        timestamp=v.timestamp,
    )


# ── Parsers ──────────────────────────────────────────────────────────


def parse_vehicle_records(data: list) -> list[VehicleRecord]:
    """Parse one snapshot cycle.

    Records that fail validation or have no trip are skipped with a log
    line; a single bad record shouldn't break the whole cycle.
    """
    if not isinstance(data, list):
        raise ValueError(f"expected a list of vehicle records, got {type(data).__name__}")

    records = []
    for raw in data:
        try:
            entity = FeedEntity.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Skipping malformed vehicle record: %s", exc.errors()[0]["msg"])
            continue
        record = _to_record(entity)
        if record.trip_id is None:
            logger.debug("Skipping vehicle %s with no trip", record.vehicle_id)
            continue
        records.append(record)
    return records


def parse_history(data: list) -> list[list[VehicleRecord]]:
    """Parse the history window: an ordered list of snapshot cycles."""
    if not isinstance(data, list):
        raise ValueError(f"expected a list of snapshot cycles, got {type(data).__name__}")
    return [parse_vehicle_records(cycle) for cycle in data]


def parse_predictions(data: list) -> list[RouteStopPrediction]:
    if not isinstance(data, list):
        raise ValueError(f"expected a list of route predictions, got {type(data).__name__}")

    predictions = []
    for raw in data:
        try:
            predictions.append(RouteStopPrediction.model_validate(raw))
        except ValidationError as exc:
            logger.warning("Skipping malformed route prediction: %s", exc.errors()[0]["msg"])
    return predictions


# ── Fetchers ─────────────────────────────────────────────────────────


async def fetch_json(
    client: httpx.AsyncClient, url: str, endpoint: str, timeout: float = 10
):
    """GET a JSON document, wrapping every transport failure in AcquisitionError."""
    try:
        resp = await client.get(url, timeout=timeout)
        resp.raise_for_status()
        return resp.json()
    except httpx.HTTPStatusError as exc:
        raise AcquisitionError(
            endpoint, f"HTTP error! status: {exc.response.status_code}"
        ) from exc
    except httpx.HTTPError as exc:
        raise AcquisitionError(endpoint, str(exc) or type(exc).__name__) from exc
    except ValueError as exc:
        raise AcquisitionError(endpoint, "response was not valid JSON") from exc


async def _fetch_parsed(client, url, endpoint, parser, timeout):
    data = await fetch_json(client, url, endpoint, timeout=timeout)
    try:
        return parser(data)
    except ValueError as exc:
        raise AcquisitionError(endpoint, str(exc)) from exc


async def fetch_vehicles(
    client: httpx.AsyncClient, url: str, timeout: float = 10
) -> list[VehicleRecord]:
    return await _fetch_parsed(
        client, url, "bus locations", parse_vehicle_records, timeout
    )


async def fetch_history(
    client: httpx.AsyncClient, url: str, timeout: float = 10
) -> list[list[VehicleRecord]]:
    return await _fetch_parsed(client, url, "bus history", parse_history, timeout)


async def fetch_predictions(
    client: httpx.AsyncClient, url: str, timeout: float = 10
) -> list[RouteStopPrediction]:
    return await _fetch_parsed(
        client, url, "route predictions", parse_predictions, timeout
    )
