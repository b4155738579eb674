# src/where_the_bus/models.py
from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class VehicleRecord(BaseModel):
    """One vehicle position as reported by the upstream feed."""

    vehicle_id: str | None = None
    trip_id: str | None = None
    route_id: str | None = None
    latitude: float | None = None
    longitude: float | None = None
    bearing: float | None = None
    speed: float | None = None
    timestamp: int | None = Field(None, description="Epoch seconds")


class PredictionStop(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    stop_id: str | None = Field(
        None, validation_alias=AliasChoices("stopId", "stop_id", "StopId", "id")
    )
    name: str | None = Field(None, validation_alias=AliasChoices("name", "Name"))
    geoid: str | None = Field(
        None, validation_alias=AliasChoices("geoid", "geoId", "GeoId")
    )
    latitude: float | None = Field(
        None, validation_alias=AliasChoices("latitude", "lat", "Latitude")
    )
    longitude: float | None = Field(
        None, validation_alias=AliasChoices("longitude", "lon", "lng", "Longitude")
    )


class RouteStopPrediction(BaseModel):
    """Per-route prediction payload carrying the stops the route serves."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    route_name: str | None = Field(
        None,
        validation_alias=AliasChoices("route", "routeName", "route_name", "RouteName"),
    )
    stops: list[PredictionStop] = Field(
        default_factory=list, validation_alias=AliasChoices("stops", "Stops")
    )


# ── GeoJSON feature models ──────────────────────────────────────────


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PointGeometry(BaseModel):
    type: str = Field(default="Point", json_schema_extra={"example": "Point"})
    coordinates: list[float] = Field(
        ...,
        description="[longitude, latitude]",
        json_schema_extra={"example": [-122.2681, 37.8044]},
    )


class LineStringGeometry(BaseModel):
    type: str = Field(default="LineString")
    coordinates: list[list[float]] = Field(
        ..., description="Array of [longitude, latitude] coordinate pairs"
    )


class PointProperties(_CamelModel):
    trip_id: str = Field(..., description="Trip the vehicle is serving")
    route_id: str | None = Field(None, json_schema_extra={"example": "51A"})
    vehicle_id: str | None = Field(None, description="Vehicle identifier")
    bearing: float | None = Field(None, description="Heading in degrees (0-360)")
    speed: float | None = Field(None, description="Reported speed")
    timestamp: int | None = Field(None, description="Position timestamp (epoch s)")
    average_speed: int | None = Field(
        None, description="Rounded mean speed over the history window"
    )
    description: str | None = Field(
        None,
        description="Popup label",
        json_schema_extra={"example": "Vehicle 1201, Route 51A, Bearing 270°"},
    )
    show_history: bool = False


class PointFeature(BaseModel):
    type: str = Field(default="Feature")
    geometry: PointGeometry
    properties: PointProperties


class LineProperties(_CamelModel):
    trip_id: str
    route_id: str | None = None
    show_history: bool = False


class LineFeature(BaseModel):
    type: str = Field(default="Feature")
    geometry: LineStringGeometry
    properties: LineProperties


class StopProperties(_CamelModel):
    stop_id: str
    name: str | None = None
    geoid: str | None = None
    routes: list[str] = Field(
        default_factory=list, description="Route names serving the stop"
    )


class StopFeature(BaseModel):
    type: str = Field(default="Feature")
    geometry: PointGeometry
    properties: StopProperties


class FeatureCollection(BaseModel):
    type: str = Field(default="FeatureCollection")
    features: list[PointFeature | LineFeature | StopFeature] = Field(
        default_factory=list
    )


# ── HTTP adapter payloads ───────────────────────────────────────────


class PointerEvent(BaseModel):
    event: str = Field(..., pattern="^(enter|leave|click)$")
    layer: str | None = Field(
        None, description="Layer the feature belongs to (omit for the empty map)"
    )
    feature_id: str | None = Field(
        None, description="Trip id for vehicle/history layers, stop id for stops"
    )


class StatusResponse(BaseModel):
    loading: bool
    error: str | None = None
    vehicle_count: int = Field(..., description="Buses tracked in the latest cycle")
    updated_at: str | None = Field(None, description="Last successful refresh (ISO 8601)")
    applied_cycle: int
    poll_interval: float
    bounds: list[list[float]] | None = Field(
        None, description="[[min_lng, min_lat], [max_lng, max_lat]] of visible vehicles"
    )
    center: list[float]
    zoom: float
    route_filter: str | None = None
    highlighted_trip: str | None = None
    highlight_mode: str
    active_stop: str | None = None
