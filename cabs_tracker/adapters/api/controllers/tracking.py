from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import AsyncIterator

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse

from cabs_tracker.adapters.api.dependencies import get_tracking_session
from cabs_tracker.adapters.api.schemas.tracking import (
    ArrivalPredictionSchema,
    GeoPointSchema,
    RouteDetailSchema,
    RoutePatternSchema,
    RouteSummarySchema,
    StopSchema,
    TrackingStateSchema,
    VehicleSchema,
    VehiclesResponseSchema,
    VisibleRoutesRequestSchema,
)
from cabs_tracker.app.services.tracking_session import TrackingSession
from cabs_tracker.domain.exceptions import CabsApiError
from cabs_tracker.domain.models import Route, Stop, VehicleSnapshot

router = APIRouter(prefix="/tracking", tags=["tracking"])

# Seconds between SSE comments when no frame arrives.
KEEPALIVE_S = 15.0


def _route_summary(route: Route) -> RouteSummarySchema:
    return RouteSummarySchema(route_id=route.id, name=route.name, color=route.color)


def _route_detail(route: Route) -> RouteDetailSchema:
    return RouteDetailSchema(
        route_id=route.id,
        name=route.name,
        color=route.color,
        stops=[
            StopSchema(
                stop_id=s.id,
                name=s.name,
                location=GeoPointSchema(lat=s.location.lat, lon=s.location.lon),
            )
            for s in route.stops
        ],
        patterns=[
            RoutePatternSchema(
                pattern_id=p.id,
                direction=p.direction,
                length=p.length,
                path=[GeoPointSchema(lat=pt.lat, lon=pt.lon) for pt in p.points],
            )
            for p in route.patterns
        ],
    )


def _vehicle(v: VehicleSnapshot) -> VehicleSchema:
    return VehicleSchema(
        vehicle_id=v.vehicle_id,
        route_code=v.route_code,
        lat=v.lat,
        lon=v.lon,
        heading=v.heading,
        speed=v.speed,
        destination=v.destination,
        delayed=v.delayed,
        pattern_id=v.pattern_id,
        next_stop_id=v.next_stop_id,
        distance=v.distance,
        last_updated=v.last_updated,
    )


def _vehicles_response(
    session: TrackingSession, vehicles: tuple[VehicleSnapshot, ...]
) -> VehiclesResponseSchema:
    return VehiclesResponseSchema(
        rendered_at=datetime.now(timezone.utc),
        frame=session.frame_count,
        is_animating=session.is_animating,
        vehicles=[_vehicle(v) for v in vehicles],
    )


def _state(session: TrackingSession) -> TrackingStateSchema:
    route = session.selected_route
    return TrackingStateSchema(
        is_tracking=session.is_tracking,
        is_polling=session.is_polling,
        is_loading=session.is_loading,
        is_animating=session.is_animating,
        error=session.error,
        selected_route=_route_summary(route) if route else None,
        selected_vehicle_id=session.selected_vehicle_id,
        selected_stop_id=session.selected_stop.id if session.selected_stop else None,
        vehicle_count=len(session.displayed_vehicles),
        visible_route_ids=sorted(session.preferences.visible_route_ids),
        has_seen_onboarding=session.preferences.has_seen_onboarding,
    )


def _find_route(session: TrackingSession, route_id: str) -> Route:
    route = next((r for r in session.all_routes if r.id == route_id), None)
    if route is None:
        raise HTTPException(status_code=404, detail=f"Unknown route: {route_id}")
    return route


def _find_stop(session: TrackingSession, stop_id: str) -> Stop:
    for route in session.all_routes:
        for stop in route.stops:
            if stop.id == stop_id:
                return stop
    raise HTTPException(status_code=404, detail=f"Unknown stop: {stop_id}")


@router.get("/state", response_model=TrackingStateSchema)
async def get_state(
    session: TrackingSession = Depends(get_tracking_session),
) -> TrackingStateSchema:
    return _state(session)


@router.post("/start", response_model=TrackingStateSchema)
async def start_tracking(
    session: TrackingSession = Depends(get_tracking_session),
) -> TrackingStateSchema:
    await session.start_tracking()
    return _state(session)


@router.post("/stop", response_model=TrackingStateSchema)
async def stop_tracking(
    session: TrackingSession = Depends(get_tracking_session),
) -> TrackingStateSchema:
    session.stop_tracking()
    return _state(session)


@router.get("/routes", response_model=list[RouteSummarySchema])
async def list_routes(
    session: TrackingSession = Depends(get_tracking_session),
) -> list[RouteSummarySchema]:
    if not session.all_routes:
        await session.load_routes()
    return [_route_summary(r) for r in session.routes]


@router.get("/routes/{route_id}", response_model=RouteDetailSchema)
async def get_route(
    route_id: str,
    session: TrackingSession = Depends(get_tracking_session),
) -> RouteDetailSchema:
    try:
        route = await session.ensure_route_details(_find_route(session, route_id))
    except CabsApiError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return _route_detail(route)


@router.post("/routes/{route_id}/select", response_model=TrackingStateSchema)
async def select_route(
    route_id: str,
    session: TrackingSession = Depends(get_tracking_session),
) -> TrackingStateSchema:
    await session.select_route(_find_route(session, route_id))
    return _state(session)


@router.delete("/routes/selected", response_model=TrackingStateSchema)
async def deselect_route(
    session: TrackingSession = Depends(get_tracking_session),
) -> TrackingStateSchema:
    session.deselect_route()
    return _state(session)


@router.get("/vehicles", response_model=VehiclesResponseSchema)
async def list_vehicles(
    session: TrackingSession = Depends(get_tracking_session),
) -> VehiclesResponseSchema:
    return _vehicles_response(session, session.displayed_vehicles)


@router.get("/vehicles/stream")
async def stream_vehicles(
    request: Request,
    session: TrackingSession = Depends(get_tracking_session),
) -> StreamingResponse:
    """Server-sent events, one per displayed frame (latest frame wins)."""

    frames: asyncio.Queue[tuple[VehicleSnapshot, ...]] = asyncio.Queue(maxsize=1)

    def on_frame(vehicles: tuple[VehicleSnapshot, ...]) -> None:
        if frames.full():
            frames.get_nowait()
        frames.put_nowait(vehicles)

    unsubscribe = session.subscribe(on_frame)

    async def events() -> AsyncIterator[str]:
        try:
            payload = _vehicles_response(session, session.displayed_vehicles)
            yield f"data: {payload.model_dump_json()}\n\n"
            while not await request.is_disconnected():
                try:
                    vehicles = await asyncio.wait_for(frames.get(), KEEPALIVE_S)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                payload = _vehicles_response(session, vehicles)
                yield f"data: {payload.model_dump_json()}\n\n"
        finally:
            unsubscribe()

    return StreamingResponse(events(), media_type="text/event-stream")


@router.post("/vehicles/{vehicle_id}/select", response_model=TrackingStateSchema)
async def select_vehicle(
    vehicle_id: str,
    session: TrackingSession = Depends(get_tracking_session),
) -> TrackingStateSchema:
    session.select_vehicle(vehicle_id)
    return _state(session)


@router.post("/stops/{stop_id}/select", response_model=TrackingStateSchema)
async def select_stop(
    stop_id: str,
    session: TrackingSession = Depends(get_tracking_session),
) -> TrackingStateSchema:
    session.select_stop(_find_stop(session, stop_id))
    return _state(session)


@router.delete("/selection", response_model=TrackingStateSchema)
async def clear_selection(
    session: TrackingSession = Depends(get_tracking_session),
) -> TrackingStateSchema:
    session.clear_selection()
    return _state(session)


@router.get(
    "/stops/{stop_id}/predictions", response_model=list[ArrivalPredictionSchema]
)
async def stop_predictions(
    stop_id: str,
    session: TrackingSession = Depends(get_tracking_session),
) -> list[ArrivalPredictionSchema]:
    stop = _find_stop(session, stop_id)
    return [
        ArrivalPredictionSchema(
            prediction_id=p.id,
            route_id=p.route.id,
            vehicle=_vehicle(p.vehicle),
            distance_m=p.distance_m,
        )
        for p in session.predictions_for_stop(stop)
    ]


@router.put("/preferences/visible-routes", response_model=TrackingStateSchema)
async def set_visible_routes(
    body: VisibleRoutesRequestSchema,
    session: TrackingSession = Depends(get_tracking_session),
) -> TrackingStateSchema:
    await session.set_visible_routes(body.route_ids)
    return _state(session)


@router.post("/preferences/onboarding-complete", response_model=TrackingStateSchema)
async def complete_onboarding(
    session: TrackingSession = Depends(get_tracking_session),
) -> TrackingStateSchema:
    session.complete_onboarding()
    return _state(session)


@router.post("/mock", response_model=VehiclesResponseSchema)
async def load_mock_data(
    session: TrackingSession = Depends(get_tracking_session),
) -> VehiclesResponseSchema:
    session.load_mock_data()
    return _vehicles_response(session, session.displayed_vehicles)
