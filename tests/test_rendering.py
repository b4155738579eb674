from where_the_bus.models import (
    FeatureCollection,
    PointFeature,
    PointGeometry,
    PointProperties,
)
from where_the_bus.rendering import LayerCache, Layer, feature_bounds


def _point(lon, lat):
    return PointFeature(
        geometry=PointGeometry(coordinates=[lon, lat]),
        properties=PointProperties(
            trip_id="T1", route_id="51A", vehicle_id="1201"
        ),
    )


def test_layer_cache_starts_empty():
    cache = LayerCache()
    for layer in Layer:
        assert cache.get_features(layer).features == []


def test_layer_cache_replaces_layer():
    cache = LayerCache()
    cache.set_features(Layer.VEHICLES, FeatureCollection(features=[_point(-122.2, 37.8)]))
    cache.set_features(Layer.VEHICLES, FeatureCollection(features=[]))
    assert cache.get_features("vehicles").features == []


def test_feature_bounds():
    features = [_point(-122.3, 37.9), _point(-122.1, 37.7), _point(-122.2, 37.8)]
    assert feature_bounds(features) == [[-122.3, 37.7], [-122.1, 37.9]]
    assert feature_bounds([]) is None
