"""Route-text and active-stop filtering over vehicles and stops.

Filters always return new lists; inputs are never mutated.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import parse_qs, urlencode

from where_the_bus.models import PointFeature
from where_the_bus.stops import StopRecord

ROUTE_QUERY_PARAM = "route"


@dataclass(frozen=True)
class ActiveStopFilter:
    stop_id: str
    routes: frozenset[str]


@dataclass(frozen=True)
class FilterState:
    route_filter: str | None = None
    active_stop: ActiveStopFilter | None = None

    @property
    def route_text(self) -> str | None:
        """The route filter, or None when it is blank."""
        if self.route_filter is None or not self.route_filter.strip():
            return None
        return self.route_filter


def _matches(routes: Iterable[str], state: FilterState) -> bool:
    routes = [r for r in routes if r]
    text = state.route_text
    if text is not None and not any(text in r for r in routes):
        return False
    if state.active_stop is not None:
        if not state.active_stop.routes.intersection(routes):
            return False
    return True


def filter_vehicles(
    features: list[PointFeature], state: FilterState
) -> list[PointFeature]:
    return [
        f
        for f in features
        if _matches([f.properties.route_id] if f.properties.route_id else [], state)
    ]


def filter_stops(stops: list[StopRecord], state: FilterState) -> list[StopRecord]:
    return [s for s in stops if _matches(s.routes, state)]


# ── URL query sync ──────────────────────────────────────────────────


def route_filter_from_query(query: str) -> str | None:
    """Read the route filter from a URL query string; absent or blank is None."""
    values = parse_qs(query.lstrip("?"), keep_blank_values=True).get(
        ROUTE_QUERY_PARAM
    )
    if not values or not values[0].strip():
        return None
    return values[0]


def route_filter_to_query(route_filter: str | None) -> str:
    if route_filter is None or not route_filter.strip():
        return ""
    return urlencode({ROUTE_QUERY_PARAM: route_filter})
