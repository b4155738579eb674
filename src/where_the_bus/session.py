"""Single in-memory session: snapshot store, filters, highlight and layers."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone

import httpx

from where_the_bus.client import (
    AcquisitionError,
    fetch_history,
    fetch_predictions,
    fetch_vehicles,
)
from where_the_bus.config import Settings, settings as default_settings
from where_the_bus.filters import FilterState, filter_stops, filter_vehicles
from where_the_bus.highlight import HighlightMachine, apply_highlight
from where_the_bus.history import average_speeds, recent_points, trip_lines
from where_the_bus.models import (
    FeatureCollection,
    LineFeature,
    PointFeature,
    StopFeature,
    VehicleRecord,
)
from where_the_bus.projector import is_valid_coordinate, project
from where_the_bus.rendering import LayerCache, Layer, Renderer
from where_the_bus.stops import StopRecord, build_stop_index

logger = logging.getLogger(__name__)


class SnapshotStore:
    """Latest snapshot, history window and the indexes derived per cycle.

    Only commit() mutates it; a cycle older than the last applied one is
    discarded.
    """

    def __init__(self):
        self.current: list[VehicleRecord] = []
        self.history: list[list[VehicleRecord]] = []
        self.average_speeds: dict[str, int] = {}
        self.stops: list[StopRecord] = []
        self.applied_cycle = 0

    def commit(
        self,
        cycle_id: int,
        current: list[VehicleRecord],
        history: list[list[VehicleRecord]],
        speeds: dict[str, int],
        stops: list[StopRecord],
    ) -> bool:
        if cycle_id <= self.applied_cycle:
            logger.info(
                "Discarding stale cycle %d (cycle %d already applied)",
                cycle_id,
                self.applied_cycle,
            )
            return False
        self.current = current
        self.history = history
        self.average_speeds = speeds
        self.stops = stops
        self.applied_cycle = cycle_id
        return True

    def find_stop(self, stop_id: str) -> StopRecord | None:
        for stop in self.stops:
            if stop.stop_id == stop_id:
                return stop
        return None


@dataclass
class SessionStatus:
    pending: int = 0
    error: str | None = None
    updated_at: datetime | None = None

    @property
    def loading(self) -> bool:
        return self.pending > 0


class Session:
    def __init__(
        self,
        client: httpx.AsyncClient,
        renderer: Renderer | None = None,
        settings: Settings = default_settings,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.renderer: Renderer = renderer if renderer is not None else LayerCache()
        self.settings = settings
        self.store = SnapshotStore()
        self.highlight = HighlightMachine()
        self.route_filter: str | None = None
        self.status = SessionStatus()
        self._clock = clock
        self._subscribers: list[Callable[["Session"], None]] = []

    @property
    def filter_state(self) -> FilterState:
        return FilterState(
            route_filter=self.route_filter, active_stop=self.highlight.active_stop
        )

    def subscribe(self, callback: Callable[["Session"], None]) -> Callable[[], None]:
        """Call callback after every recomputation; returns an unsubscribe function."""
        self._subscribers.append(callback)
        return lambda: self._subscribers.remove(callback)

    # ── Acquisition ─────────────────────────────────────────────────

    async def refresh(self, cycle_id: int) -> bool:
        """Run one acquisition cycle and apply it if it is still the newest."""
        timeout = self.settings.request_timeout
        self.status.pending += 1
        try:
            current = await fetch_vehicles(
                self.client, self.settings.vehicles_url, timeout=timeout
            )
            history = await fetch_history(
                self.client, self.settings.history_url, timeout=timeout
            )
            speeds = average_speeds(history)
            predictions = await fetch_predictions(
                self.client, self.settings.predictions_url, timeout=timeout
            )
        except AcquisitionError as exc:
            if cycle_id > self.store.applied_cycle:
                self.status.error = str(exc)
            logger.warning("Cycle %d aborted: %s", cycle_id, exc)
            return False
        finally:
            self.status.pending -= 1

        stops = build_stop_index(predictions)
        if not self.store.commit(cycle_id, current, history, speeds, stops):
            return False

        self.status.error = None
        self.status.updated_at = datetime.now(timezone.utc)
        logger.info(
            "Cycle %d: %d vehicles, %d history cycles, %d stops",
            cycle_id,
            len(current),
            len(history),
            len(stops),
        )
        unplaceable = sum(
            1 for r in current if not is_valid_coordinate(r.longitude, r.latitude)
        )
        if unplaceable:
            logger.warning(
                "Cycle %d: %d vehicles have invalid coordinates", cycle_id, unplaceable
            )
        self.recompute()
        return True

    # ── Derived views ───────────────────────────────────────────────

    def vehicle_features(self) -> list[PointFeature]:
        features = project(self.store.current, self.store.average_speeds, quiet=True)
        return filter_vehicles(features, self.filter_state)

    def views(self) -> dict[Layer, FeatureCollection]:
        """Derive every layer from scratch."""
        now = self._clock()
        window = self.settings.history_window
        trip = self.highlight.highlighted_trip
        stops = filter_stops(self.store.stops, self.filter_state)
        return {
            Layer.VEHICLES: FeatureCollection(
                features=apply_highlight(self.vehicle_features(), trip)
            ),
            Layer.HISTORY_POINTS: FeatureCollection(
                features=apply_highlight(
                    recent_points(self.store.history, now=now, window=window), trip
                )
            ),
            Layer.HISTORY_LINES: FeatureCollection(
                features=apply_highlight(
                    trip_lines(
                        self.store.history, self.store.current, now=now, window=window
                    ),
                    trip,
                )
            ),
            Layer.STOPS: FeatureCollection(features=[s.to_feature() for s in stops]),
        }

    def recompute(self) -> None:
        for layer, collection in self.views().items():
            self.renderer.set_features(layer, collection)
        for callback in list(self._subscribers):
            callback(self)

    # ── Interaction ─────────────────────────────────────────────────

    def set_route_filter(self, route_filter: str | None) -> None:
        if route_filter is not None and not route_filter.strip():
            route_filter = None
        self.route_filter = route_filter
        self.recompute()

    def find_feature(
        self, layer: Layer, feature_id: str
    ) -> PointFeature | LineFeature | StopFeature | None:
        """Look up a feature the renderer currently shows by trip or stop id."""
        for feature in self.renderer.get_features(layer).features:
            props = feature.properties
            key = props.stop_id if isinstance(feature, StopFeature) else props.trip_id
            if key == feature_id:
                return feature
        return None

    def pointer_enter(self, feature: PointFeature | LineFeature | StopFeature) -> None:
        if isinstance(feature, StopFeature):
            return
        self.highlight.enter_vehicle(feature.properties.trip_id)
        self.recompute()

    def pointer_leave(self) -> None:
        self.highlight.leave_vehicle()
        self.recompute()

    def click(self, feature: PointFeature | LineFeature | StopFeature | None) -> None:
        """Handle a click; None means the empty map was clicked."""
        if feature is None:
            self.highlight.click_empty()
        elif isinstance(feature, StopFeature):
            stop = self.store.find_stop(feature.properties.stop_id)
            if stop is None:
                raise LookupError(f"Unknown stop {feature.properties.stop_id}")
            self.highlight.click_stop(stop)
        else:
            self.highlight.click_vehicle(feature.properties.trip_id)
        self.recompute()
