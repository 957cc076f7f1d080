from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime

from .geo import GeoPoint


@dataclass(frozen=True, slots=True)
class VehicleSnapshot:
    """One vehicle's reported state at a single fetch instant.

    `vehicle_id` is stable across polls for the same physical bus and unique
    within a route at a given instant.
    """

    vehicle_id: str
    lat: float
    lon: float
    heading: float = 0.0  # degrees, circular
    speed: int = 0
    destination: str | None = None
    delayed: bool = False
    pattern_id: str | None = None
    next_stop_id: str | None = None
    distance: int | None = None
    last_updated: datetime | None = None
    route_code: str | None = None

    def __post_init__(self) -> None:
        if not self.vehicle_id:
            raise ValueError("Vehicle id must not be empty")
        if not (-90.0 <= self.lat <= 90.0):
            raise ValueError(f"Invalid latitude: {self.lat}")
        if not (-180.0 <= self.lon <= 180.0):
            raise ValueError(f"Invalid longitude: {self.lon}")
        if not math.isfinite(self.heading):
            raise ValueError(f"Invalid heading: {self.heading}")
        if self.speed < 0:
            raise ValueError(f"Invalid speed: {self.speed}")
        if self.distance is not None and self.distance < 0:
            raise ValueError(f"Invalid distance: {self.distance}")

    @property
    def location(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lon=self.lon)
