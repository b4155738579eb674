"""Pointer-driven highlight state for trips and the active stop filter."""

import logging
from dataclasses import dataclass
from enum import StrEnum

from where_the_bus.filters import ActiveStopFilter
from where_the_bus.models import LineFeature, PointFeature
from where_the_bus.stops import StopRecord

logger = logging.getLogger(__name__)


class HighlightMode(StrEnum):
    NONE = "none"
    HOVER = "hover"
    CLICK = "click"


@dataclass
class HighlightMachine:
    """Tracks hovered and clicked trips plus the stop chosen as a filter.

    A clicked trip wins over a hovered one and survives hover changes until
    the empty map is clicked.
    """

    hovered_trip: str | None = None
    clicked_trip: str | None = None
    active_stop: ActiveStopFilter | None = None

    @property
    def mode(self) -> HighlightMode:
        if self.clicked_trip is not None:
            return HighlightMode.CLICK
        if self.hovered_trip is not None:
            return HighlightMode.HOVER
        return HighlightMode.NONE

    @property
    def highlighted_trip(self) -> str | None:
        if self.clicked_trip is not None:
            return self.clicked_trip
        return self.hovered_trip

    def enter_vehicle(self, trip_id: str) -> None:
        self.hovered_trip = trip_id

    def leave_vehicle(self) -> None:
        self.hovered_trip = None

    def click_vehicle(self, trip_id: str) -> None:
        self.clicked_trip = trip_id

    def click_stop(self, stop: StopRecord) -> None:
        self.active_stop = ActiveStopFilter(
            stop_id=stop.stop_id, routes=frozenset(stop.routes)
        )
        logger.debug("Filtering by stop %s (%d routes)", stop.stop_id, len(stop.routes))

    def click_empty(self) -> None:
        self.clicked_trip = None
        self.active_stop = None


def apply_highlight(
    features: list[PointFeature | LineFeature], trip_id: str | None
) -> list[PointFeature | LineFeature]:
    """Return copies of features with showHistory set for the highlighted trip."""
    return [
        f.model_copy(
            update={
                "properties": f.properties.model_copy(
                    update={
                        "show_history": trip_id is not None
                        and f.properties.trip_id == trip_id
                    }
                )
            }
        )
        for f in features
    ]
