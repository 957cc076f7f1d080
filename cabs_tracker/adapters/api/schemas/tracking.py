from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class GeoPointSchema(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)


class StopSchema(BaseModel):
    stop_id: str
    name: str
    location: GeoPointSchema


class RoutePatternSchema(BaseModel):
    pattern_id: str
    direction: str
    length: int
    path: list[GeoPointSchema] = []


class RouteSummarySchema(BaseModel):
    route_id: str
    name: str
    color: str


class RouteDetailSchema(RouteSummarySchema):
    stops: list[StopSchema] = []
    patterns: list[RoutePatternSchema] = []


class VehicleSchema(BaseModel):
    vehicle_id: str
    route_code: str | None = None
    lat: float
    lon: float
    heading: float
    speed: int
    destination: str | None = None
    delayed: bool = False
    pattern_id: str | None = None
    next_stop_id: str | None = None
    distance: int | None = None
    last_updated: datetime | None = None


class VehiclesResponseSchema(BaseModel):
    rendered_at: datetime
    frame: int
    is_animating: bool
    vehicles: list[VehicleSchema]


class TrackingStateSchema(BaseModel):
    is_tracking: bool
    is_polling: bool
    is_loading: bool
    is_animating: bool
    error: str | None = None
    selected_route: RouteSummarySchema | None = None
    selected_vehicle_id: str | None = None
    selected_stop_id: str | None = None
    vehicle_count: int
    visible_route_ids: list[str] = []
    has_seen_onboarding: bool = False


class ArrivalPredictionSchema(BaseModel):
    prediction_id: str
    route_id: str
    vehicle: VehicleSchema
    distance_m: float


class VisibleRoutesRequestSchema(BaseModel):
    route_ids: list[str] = []
