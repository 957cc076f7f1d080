from __future__ import annotations

from abc import ABC, abstractmethod

from cabs_tracker.domain.models import Route, VehicleSnapshot


class ICabsApi(ABC):
    """Port for the campus bus (CABS) route and vehicle feed."""

    @abstractmethod
    async def fetch_all_routes(self) -> tuple[Route, ...]:
        """Return every route, without stops or patterns."""

    @abstractmethod
    async def fetch_route_details(self, route_id: str) -> Route:
        """Return a route with its stops and patterns filled in."""

    @abstractmethod
    async def fetch_vehicles(self, route_id: str) -> tuple[VehicleSnapshot, ...]:
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release transport resources (no-op unless overridden)."""
