"""Seam between the derived layers and whatever draws them."""

from enum import StrEnum
from typing import Protocol

from where_the_bus.models import FeatureCollection, PointFeature


class Layer(StrEnum):
    VEHICLES = "vehicles"
    HISTORY_POINTS = "history_points"
    HISTORY_LINES = "history_lines"
    STOPS = "stops"


class Renderer(Protocol):
    def set_features(self, layer: Layer, collection: FeatureCollection) -> None:
        """Replace everything shown on a layer."""
        ...

    def get_features(self, layer: Layer) -> FeatureCollection:
        """Return what the layer currently shows."""
        ...


class LayerCache:
    """In-memory renderer; the HTTP adapter serves layers straight from it."""

    def __init__(self):
        self._layers: dict[Layer, FeatureCollection] = {
            layer: FeatureCollection() for layer in Layer
        }

    def set_features(self, layer: Layer, collection: FeatureCollection) -> None:
        self._layers[Layer(layer)] = collection

    def get_features(self, layer: Layer) -> FeatureCollection:
        return self._layers[Layer(layer)]


def feature_bounds(features: list[PointFeature]) -> list[list[float]] | None:
    """Bounding box [[min_lng, min_lat], [max_lng, max_lat]] of point features."""
    if not features:
        return None
    lngs = [f.geometry.coordinates[0] for f in features]
    lats = [f.geometry.coordinates[1] for f in features]
    return [[min(lngs), min(lats)], [max(lngs), max(lats)]]
