from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

import httpx

from cabs_tracker.app.ports.output import ICabsApi
from cabs_tracker.domain.exceptions import CabsApiError
from cabs_tracker.domain.models import (
    DEFAULT_ROUTE_COLOR,
    GeoPoint,
    Route,
    RoutePattern,
    Stop,
    VehicleSnapshot,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://content.osu.edu/v2/bus/routes"


@dataclass(slots=True)
class HttpCabsApiClient(ICabsApi):
    """Reads routes and live vehicles from the OSU CABS REST API.

    Env vars:
      - CABS_API_BASE_URL: routes endpoint (default: the public OSU feed)
      - CABS_API_TIMEOUT_S: request timeout (default 10)

    Notes:
      - Pass `client` to reuse a connection pool (or a mock transport in tests);
        otherwise a short-lived client is opened per request.
      - Route names/colors from the last route list are kept to decorate
        route details without a second request.
    """

    base_url: str | None = None
    timeout_s: float = 10.0
    client: httpx.AsyncClient | None = None

    _routes_by_id: dict[str, Route] = field(
        default_factory=dict, init=False, repr=False
    )

    def __post_init__(self) -> None:
        if self.base_url is None:
            self.base_url = os.getenv("CABS_API_BASE_URL") or DEFAULT_BASE_URL
        self.base_url = self.base_url.rstrip("/")
        if os.getenv("CABS_API_TIMEOUT_S"):
            self.timeout_s = float(os.environ["CABS_API_TIMEOUT_S"])

    async def fetch_all_routes(self) -> tuple[Route, ...]:
        payload = await self._get_json("")
        routes = _parse_routes(payload)
        self._routes_by_id = {r.id: r for r in routes}
        return routes

    async def fetch_route_details(self, route_id: str) -> Route:
        payload = await self._get_json(f"/{route_id}")

        if route_id not in self._routes_by_id:
            await self.fetch_all_routes()
        info = self._routes_by_id.get(route_id)

        stops, patterns = _parse_route_details(payload)
        return Route(
            id=route_id,
            name=info.name if info else route_id,
            color=info.color if info else DEFAULT_ROUTE_COLOR,
            stops=stops,
            patterns=patterns,
        )

    async def fetch_vehicles(self, route_id: str) -> tuple[VehicleSnapshot, ...]:
        payload = await self._get_json(f"/{route_id}/vehicles")
        return _parse_vehicles(payload, route_code=route_id)

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.aclose()

    async def _get_json(self, path: str) -> Mapping[str, Any]:
        url = f"{self.base_url}{path}"
        try:
            if self.client is not None:
                resp = await self.client.get(url, timeout=self.timeout_s)
                resp.raise_for_status()
            else:
                async with httpx.AsyncClient(timeout=self.timeout_s) as client:
                    resp = await client.get(url)
                    resp.raise_for_status()
        except httpx.HTTPError as exc:
            raise CabsApiError(f"Network error: {exc}") from exc

        try:
            payload = resp.json()
        except ValueError as exc:
            raise CabsApiError("Invalid response from CABS API") from exc
        if not isinstance(payload, dict):
            raise CabsApiError("Invalid response from CABS API")
        return payload


def _data(payload: Mapping[str, Any]) -> Mapping[str, Any]:
    data = payload.get("data")
    return data if isinstance(data, dict) else {}


def _records(data: Mapping[str, Any], key: str) -> list[Mapping[str, Any]]:
    items = data.get(key)
    if not isinstance(items, list):
        return []
    return [i for i in items if isinstance(i, dict)]


def _parse_routes(payload: Mapping[str, Any]) -> tuple[Route, ...]:
    out: list[Route] = []
    for raw in _records(_data(payload), "routes"):
        code = raw.get("code")
        if not code:
            continue
        out.append(
            Route(
                id=str(code),
                name=str(raw.get("name") or code),
                color=str(raw.get("color") or DEFAULT_ROUTE_COLOR),
            )
        )
    return tuple(out)


def _parse_route_details(
    payload: Mapping[str, Any],
) -> tuple[tuple[Stop, ...], tuple[RoutePattern, ...]]:
    data = _data(payload)

    stops: list[Stop] = []
    for raw in _records(data, "stops"):
        stop_id = raw.get("id")
        name = raw.get("name")
        lat = raw.get("latitude")
        lon = raw.get("longitude")
        if stop_id is None or name is None or lat is None or lon is None:
            continue
        try:
            location = GeoPoint(lat=float(lat), lon=float(lon))
        except (TypeError, ValueError):
            continue
        stops.append(Stop(id=str(stop_id), name=str(name), location=location))

    patterns: list[RoutePattern] = []
    for raw in _records(data, "patterns"):
        pattern_id = raw.get("id")
        direction = raw.get("direction")
        polyline = raw.get("encodedPolyline")
        length = raw.get("length")
        if pattern_id is None or direction is None or polyline is None:
            continue
        if length is None:
            continue
        try:
            pattern = RoutePattern(
                id=str(pattern_id),
                direction=str(direction),
                encoded_polyline=str(polyline),
                length=int(length),
            )
        except (TypeError, ValueError):
            logger.debug("Dropping pattern record %r", pattern_id)
            continue
        patterns.append(pattern)

    return tuple(stops), tuple(patterns)


def _parse_timestamp(raw: Any) -> datetime | None:
    if not isinstance(raw, str) or not raw:
        return None
    value = raw.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def _parse_vehicle(raw: Mapping[str, Any], route_code: str) -> VehicleSnapshot:
    vehicle_id = raw.get("id")
    lat = raw.get("latitude")
    lon = raw.get("longitude")
    if not vehicle_id or lat is None or lon is None:
        raise ValueError("Vehicle record is missing id or position")

    distance = raw.get("distance")
    next_stop = raw.get("nextStopID") or raw.get("nextStopId")
    pattern_id = raw.get("patternId")

    return VehicleSnapshot(
        vehicle_id=str(vehicle_id),
        lat=float(lat),
        lon=float(lon),
        heading=float(raw.get("heading") or 0),
        speed=int(raw.get("speed") or 0),
        destination=raw.get("destination"),
        delayed=bool(raw.get("delayed") or False),
        pattern_id=str(pattern_id) if pattern_id is not None else None,
        next_stop_id=str(next_stop) if next_stop is not None else None,
        distance=int(distance) if distance is not None else None,
        last_updated=_parse_timestamp(raw.get("updated")),
        route_code=route_code,
    )


def _parse_vehicles(
    payload: Mapping[str, Any], *, route_code: str
) -> tuple[VehicleSnapshot, ...]:
    out: list[VehicleSnapshot] = []
    for raw in _records(_data(payload), "vehicles"):
        try:
            out.append(_parse_vehicle(raw, route_code))
        except (TypeError, ValueError) as exc:
            logger.debug("Dropping vehicle record %r: %s", raw.get("id"), exc)
    return tuple(out)
