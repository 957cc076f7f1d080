from __future__ import annotations

from dataclasses import dataclass, field

from .geo import GeoPoint
from .stop import Stop

DEFAULT_ROUTE_COLOR = "#007AFF"


@dataclass(frozen=True, slots=True)
class RoutePattern:
    """One direction of travel along a route, as an encoded polyline."""

    id: str
    direction: str
    encoded_polyline: str
    length: int

    @property
    def points(self) -> tuple[GeoPoint, ...]:
        from cabs_tracker.domain.algorithms.polyline import decode_polyline

        return decode_polyline(self.encoded_polyline)


@dataclass(frozen=True, slots=True)
class Route:
    id: str  # short route code, e.g. "CLN"
    name: str
    color: str = DEFAULT_ROUTE_COLOR  # hex with leading '#', as served by CABS
    stops: tuple[Stop, ...] = field(default_factory=tuple)
    patterns: tuple[RoutePattern, ...] = field(default_factory=tuple)

    @property
    def has_details(self) -> bool:
        return bool(self.stops or self.patterns)

    def serves_stop(self, stop_id: str) -> bool:
        return any(s.id == stop_id for s in self.stops)
