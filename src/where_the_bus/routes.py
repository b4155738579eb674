# src/where_the_bus/routes.py
import logging

from fastapi import APIRouter, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse

from where_the_bus.filters import route_filter_from_query, route_filter_to_query
from where_the_bus.models import FeatureCollection, PointerEvent, StatusResponse
from where_the_bus.rendering import Layer, feature_bounds
from where_the_bus.session import Session

log = logging.getLogger(__name__)

router = APIRouter()


def _session(request: Request) -> Session:
    return request.app.state.session


@router.get(
    "/layers/{layer}",
    response_model=FeatureCollection,
    summary="Layer features",
    description="Returns the current contents of a map layer (vehicles, "
    "history_points, history_lines or stops) as a GeoJSON FeatureCollection.",
    tags=["layers"],
)
async def get_layer(request: Request, layer: Layer):
    collection = _session(request).renderer.get_features(layer)
    return JSONResponse(content=collection.model_dump(mode="json", by_alias=True))


@router.get(
    "/status",
    response_model=StatusResponse,
    summary="Session status",
    tags=["session"],
)
async def get_status(request: Request):
    session = _session(request)
    vehicles = session.renderer.get_features(Layer.VEHICLES).features
    active_stop = session.highlight.active_stop
    updated_at = session.status.updated_at
    return StatusResponse(
        loading=session.status.loading,
        error=session.status.error,
        vehicle_count=len(session.store.current),
        updated_at=updated_at.isoformat() if updated_at else None,
        applied_cycle=session.store.applied_cycle,
        poll_interval=session.settings.poll_interval,
        bounds=feature_bounds(vehicles),
        center=list(session.settings.map_center),
        zoom=session.settings.map_zoom,
        route_filter=session.route_filter,
        highlighted_trip=session.highlight.highlighted_trip,
        highlight_mode=session.highlight.mode.value,
        active_stop=active_stop.stop_id if active_stop else None,
    )


@router.get(
    "/filter",
    summary="Current route filter",
    description="Returns the route filter and its URL query-string form.",
    tags=["session"],
)
async def get_filter(request: Request):
    route = _session(request).route_filter
    return {"route": route, "query": route_filter_to_query(route)}


@router.put(
    "/filter",
    summary="Set route filter",
    description="Sets the case-sensitive route substring filter. "
    "Omit `route` or send a blank value to clear it.",
    tags=["session"],
)
async def put_filter(
    request: Request,
    route: str | None = Query(None, max_length=100, description="Route substring"),
):
    # `route` is declared for validation; the URL query is read as the map page sends it
    session = _session(request)
    session.set_route_filter(route_filter_from_query(request.url.query))
    return {
        "route": session.route_filter,
        "query": route_filter_to_query(session.route_filter),
    }


@router.post(
    "/pointer",
    status_code=204,
    summary="Pointer event",
    description="Feeds a pointer enter/leave/click from the map into the "
    "highlight state. A click without a feature is a click on the empty map.",
    tags=["session"],
)
async def post_pointer(request: Request, body: PointerEvent):
    session = _session(request)

    if body.event == "leave":
        session.pointer_leave()
        return Response(status_code=204)

    feature = None
    if body.feature_id is not None:
        try:
            layer = Layer(body.layer)
        except ValueError:
            raise HTTPException(status_code=422, detail=f"Unknown layer {body.layer!r}")
        feature = session.find_feature(layer, body.feature_id)
        if feature is None:
            raise HTTPException(
                status_code=404, detail=f"No feature {body.feature_id!r} on {layer}"
            )

    if body.event == "enter":
        if feature is None:
            raise HTTPException(status_code=422, detail="enter requires a feature")
        session.pointer_enter(feature)
    else:
        try:
            session.click(feature)
        except LookupError as exc:
            raise HTTPException(status_code=404, detail=str(exc))
    return Response(status_code=204)


@router.post(
    "/refresh",
    status_code=202,
    summary="Refresh now",
    description="Starts an acquisition cycle immediately, alongside the timer.",
    tags=["session"],
)
async def post_refresh(request: Request):
    cycle_id = request.app.state.poller.trigger()
    log.info("Manual refresh requested (cycle %d)", cycle_id)
    return {"cycle": cycle_id}
