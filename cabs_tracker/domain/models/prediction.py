from __future__ import annotations

from dataclasses import dataclass

from .route import Route
from .vehicle import VehicleSnapshot


@dataclass(frozen=True, slots=True)
class ArrivalPrediction:
    """A nearby vehicle on a route serving some stop."""

    vehicle: VehicleSnapshot
    route: Route
    distance_m: float

    @property
    def id(self) -> str:
        return f"{self.vehicle.vehicle_id}-{self.route.id}"
