# tests/test_routes.py
import asyncio
import time
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from where_the_bus.models import PredictionStop, RouteStopPrediction, VehicleRecord


def _record(trip_id, route_id, ts, lon, lat=37.80):
    return VehicleRecord(
        vehicle_id=f"v-{trip_id}",
        trip_id=trip_id,
        route_id=route_id,
        latitude=lat,
        longitude=lon,
        bearing=90.0,
        speed=12.0,
        timestamp=ts,
    )


@pytest.fixture
def test_client():
    now = int(time.time())
    current = [
        _record("T1", "51A", now, -122.24, lat=37.81),
        _record("T2", "NL", now, -122.30, lat=37.79),
    ]
    history = [
        [_record("T1", "51A", now - 120, -122.21), _record("T2", "NL", now - 120, -122.33)],
        [_record("T1", "51A", now - 60, -122.22), _record("T2", "NL", now - 60, -122.32)],
    ]
    predictions = [
        RouteStopPrediction(
            route_name="51A",
            stops=[PredictionStop(stop_id="S1", name="Broadway", latitude=37.82, longitude=-122.26)],
        ),
        RouteStopPrediction(
            route_name="NL",
            stops=[PredictionStop(stop_id="S2", name="Grand", latitude=37.81, longitude=-122.25)],
        ),
    ]

    with (
        patch("where_the_bus.session.fetch_vehicles", AsyncMock(return_value=current)),
        patch("where_the_bus.session.fetch_history", AsyncMock(return_value=history)),
        patch("where_the_bus.session.fetch_predictions", AsyncMock(return_value=predictions)),
    ):
        from where_the_bus.main import app

        with TestClient(app) as client:
            # the poller runs its first cycle right after startup
            deadline = time.monotonic() + 5
            while app.state.session.store.applied_cycle < 1:
                if time.monotonic() > deadline:
                    raise AssertionError("first refresh cycle never completed")
                time.sleep(0.01)
            yield client


def _ids(data, key="tripId"):
    return sorted(f["properties"][key] for f in data["features"])


def test_health(test_client):
    resp = test_client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
    assert resp.json()["vehicles"] == 2


def test_get_vehicles_layer(test_client):
    resp = test_client.get("/layers/vehicles")
    assert resp.status_code == 200
    data = resp.json()
    assert data["type"] == "FeatureCollection"
    assert _ids(data) == ["T1", "T2"]
    f = data["features"][0]
    assert f["geometry"]["type"] == "Point"
    assert "showHistory" in f["properties"]
    assert "routeId" in f["properties"]


def test_get_history_lines_layer(test_client):
    data = test_client.get("/layers/history_lines").json()
    assert _ids(data) == ["T1", "T2"]
    for f in data["features"]:
        assert f["geometry"]["type"] == "LineString"
        assert len(f["geometry"]["coordinates"]) == 3


def test_get_stops_layer(test_client):
    data = test_client.get("/layers/stops").json()
    assert _ids(data, "stopId") == ["S1", "S2"]


def test_unknown_layer(test_client):
    assert test_client.get("/layers/nope").status_code == 422


def test_status(test_client):
    data = test_client.get("/status").json()
    assert data["vehicle_count"] == 2
    assert data["error"] is None
    assert data["loading"] is False
    assert data["applied_cycle"] >= 1
    assert data["bounds"] == [[-122.30, 37.79], [-122.24, 37.81]]
    assert data["center"] == [-122.2681, 37.8044]
    assert data["highlight_mode"] == "none"


def test_route_filter_round_trip(test_client):
    resp = test_client.put("/filter", params={"route": "51"})
    assert resp.status_code == 200
    assert resp.json() == {"route": "51", "query": "route=51"}

    assert _ids(test_client.get("/layers/vehicles").json()) == ["T1"]
    assert test_client.get("/filter").json()["route"] == "51"

    resp = test_client.put("/filter")
    assert resp.json() == {"route": None, "query": ""}
    assert _ids(test_client.get("/layers/vehicles").json()) == ["T1", "T2"]


def test_pointer_hover_and_click(test_client):
    resp = test_client.post(
        "/pointer", json={"event": "enter", "layer": "vehicles", "feature_id": "T1"}
    )
    assert resp.status_code == 204
    test_client.post(
        "/pointer", json={"event": "click", "layer": "vehicles", "feature_id": "T2"}
    )

    lines = test_client.get("/layers/history_lines").json()["features"]
    shown = [f["properties"]["tripId"] for f in lines if f["properties"]["showHistory"]]
    assert shown == ["T2"]
    status = test_client.get("/status").json()
    assert status["highlight_mode"] == "click"
    assert status["highlighted_trip"] == "T2"

    test_client.post("/pointer", json={"event": "click"})
    status = test_client.get("/status").json()
    assert status["highlight_mode"] == "hover"
    assert status["highlighted_trip"] == "T1"

    test_client.post("/pointer", json={"event": "leave"})
    assert test_client.get("/status").json()["highlight_mode"] == "none"


def test_pointer_click_on_stop_filters(test_client):
    resp = test_client.post(
        "/pointer", json={"event": "click", "layer": "stops", "feature_id": "S2"}
    )
    assert resp.status_code == 204
    assert test_client.get("/status").json()["active_stop"] == "S2"
    assert _ids(test_client.get("/layers/vehicles").json()) == ["T2"]

    test_client.post("/pointer", json={"event": "click"})
    assert test_client.get("/status").json()["active_stop"] is None


def test_pointer_unknown_feature(test_client):
    resp = test_client.post(
        "/pointer", json={"event": "click", "layer": "vehicles", "feature_id": "T9"}
    )
    assert resp.status_code == 404


def test_pointer_invalid_event(test_client):
    resp = test_client.post("/pointer", json={"event": "drag"})
    assert resp.status_code == 422


def test_refresh(test_client):
    from where_the_bus.main import app

    resp = test_client.post("/refresh")
    assert resp.status_code == 202
    cycle = resp.json()["cycle"]
    assert cycle >= 2

    deadline = time.monotonic() + 5
    while app.state.session.store.applied_cycle < cycle:
        assert time.monotonic() < deadline, "manual refresh never completed"
        time.sleep(0.01)


def test_vehicle_features_carry_popup_description(test_client):
    data = test_client.get("/layers/vehicles").json()
    labels = sorted(f["properties"]["description"] for f in data["features"])
    assert labels == [
        "Vehicle v-T1, Route 51A, Bearing 90°",
        "Vehicle v-T2, Route NL, Bearing 90°",
    ]


def test_put_filter_reads_encoded_query(test_client):
    resp = test_client.put("/filter?route=N%20L")
    assert resp.json() == {"route": "N L", "query": "route=N+L"}

    resp = test_client.put("/filter?route=%20%20")
    assert resp.json()["route"] is None


def test_state_changes_run_on_event_loop(test_client):
    from where_the_bus.main import app

    session = app.state.session
    loops = []
    # get_running_loop raises outside the event loop thread
    unsubscribe = session.subscribe(lambda s: loops.append(asyncio.get_running_loop()))
    try:
        assert test_client.put("/filter", params={"route": "51"}).status_code == 200
        resp = test_client.post(
            "/pointer", json={"event": "enter", "layer": "vehicles", "feature_id": "T1"}
        )
        assert resp.status_code == 204
        assert test_client.post("/pointer", json={"event": "click"}).status_code == 204
    finally:
        unsubscribe()

    assert len(loops) == 3
