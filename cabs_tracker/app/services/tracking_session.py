from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable

from cabs_tracker.app.ports.output import ICabsApi, IPreferencesStore
from cabs_tracker.app.services.animation_loop import AnimationLoop
from cabs_tracker.app.services.polling_scheduler import PollingScheduler
from cabs_tracker.domain.algorithms.geo_utils import haversine_distance_m
from cabs_tracker.domain.models import (
    ArrivalPrediction,
    Route,
    RoutePreferences,
    Stop,
    VehicleSnapshot,
)

logger = logging.getLogger(__name__)

Vehicles = tuple[VehicleSnapshot, ...]
FrameListener = Callable[[Vehicles], None]

# Only vehicles within about a mile of a stop are worth listing.
PREDICTION_RADIUS_M = 1600.0


@dataclass(slots=True)
class TrackingSession:
    """Coordinates live tracking of the selected route.

    - Owns the confirmed set (last settled fetch), the displayed set (current
      animation frame) and the polling/animation tasks that update them.
    - Tracks one route at a time; selecting another route discards every
      result still in flight for the previous one.
    - Fetch failures land in `error` and never stop polling.
    """

    api: ICabsApi
    preferences_store: IPreferencesStore | None = None
    poll_interval_s: float = 3.0
    animation_duration_s: float = 0.8
    frame_rate: float = 60.0
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    all_routes: tuple[Route, ...] = field(default=(), init=False)
    routes: tuple[Route, ...] = field(default=(), init=False)
    selected_route: Route | None = field(default=None, init=False)
    selected_stop: Stop | None = field(default=None, init=False)
    selected_vehicle_id: str | None = field(default=None, init=False)
    preferences: RoutePreferences = field(
        default_factory=RoutePreferences, init=False
    )
    is_loading: bool = field(default=False, init=False)
    error: str | None = field(default=None, init=False)
    frame_count: int = field(default=0, init=False)

    _confirmed: Vehicles = field(default=(), init=False, repr=False)
    _displayed: Vehicles = field(default=(), init=False, repr=False)
    _tracking: bool = field(default=False, init=False, repr=False)
    _route_generation: int = field(default=0, init=False, repr=False)
    _listeners: list[FrameListener] = field(
        default_factory=list, init=False, repr=False
    )
    _animation: AnimationLoop = field(init=False, repr=False)
    _scheduler: PollingScheduler = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._animation = AnimationLoop(
            current=lambda: self._displayed,
            on_frame=self._set_displayed,
            on_complete=self._confirm,
            duration_s=self.animation_duration_s,
            frame_interval_s=1.0 / max(1.0, self.frame_rate),
            clock=self.clock,
            sleep=self.sleep,
        )
        self._scheduler = PollingScheduler(
            on_result=self._animation.begin,
            on_error=self._record_error,
            confirmed=lambda: self._confirmed,
            interval_s=self.poll_interval_s,
            sleep=self.sleep,
        )
        if self.preferences_store is not None:
            self.preferences = self.preferences_store.load()

    @property
    def is_tracking(self) -> bool:
        return self._tracking

    @property
    def is_animating(self) -> bool:
        return self._animation.is_running

    @property
    def is_polling(self) -> bool:
        return self._scheduler.is_running

    @property
    def displayed_vehicles(self) -> Vehicles:
        return self._displayed

    @property
    def confirmed_vehicles(self) -> Vehicles:
        return self._confirmed

    @property
    def animation_target(self) -> Vehicles:
        return self._animation.target

    @property
    def selected_vehicle(self) -> VehicleSnapshot | None:
        if self.selected_vehicle_id is None:
            return None
        return next(
            (v for v in self._displayed if v.vehicle_id == self.selected_vehicle_id),
            None,
        )

    def subscribe(self, listener: FrameListener) -> Callable[[], None]:
        """Call `listener` with every displayed frame; returns an unsubscriber."""

        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start_tracking(self) -> None:
        if self._tracking:
            return
        self._tracking = True
        self._scheduler.start(self._fetch_selected_vehicles)
        if not self.all_routes:
            await self.load_routes()

    def stop_tracking(self) -> None:
        self._tracking = False
        self._scheduler.stop()
        self._animation.cancel()

    async def select_route(self, route: Route) -> None:
        self._route_generation += 1
        generation = self._route_generation

        self._scheduler.stop()
        self._reset_route_state()
        self.selected_route = route

        await self._load_route_details(route.id, generation)
        if generation != self._route_generation:
            return

        if self._tracking:
            # The first cycle fetches immediately.
            self._scheduler.start(self._fetch_selected_vehicles)
        else:
            await self.refresh_vehicles()

    def deselect_route(self) -> None:
        """Clear the route and every vehicle from the map.

        Polling keeps running but has nothing to fetch until a route is chosen.
        """

        self._route_generation += 1
        self._reset_route_state()
        self.selected_route = None

    def select_vehicle(self, vehicle_id: str) -> None:
        self.selected_stop = None
        self.selected_vehicle_id = vehicle_id

    def select_stop(self, stop: Stop) -> None:
        self.selected_stop = stop
        self.selected_vehicle_id = None

    def clear_selection(self) -> None:
        self.selected_vehicle_id = None

    async def ensure_route_details(self, route: Route) -> Route:
        """Return `route` with stops and patterns, fetching them if missing.

        Does not change the selection. API errors propagate to the caller.
        """

        if route.has_details:
            return route
        detailed = await self.api.fetch_route_details(route.id)
        self._store_route(detailed)
        return detailed

    async def refresh_vehicles(self) -> None:
        """Fetch the selected route's vehicles once, outside the polling cycle."""

        try:
            vehicles = await self._fetch_selected_vehicles()
        except Exception as exc:
            logger.warning("Vehicle fetch failed: %s", exc)
            self._record_error(exc)
            return
        if vehicles is not None:
            self._scheduler.deliver(vehicles)

    async def load_routes(self) -> None:
        self.is_loading = True
        self.error = None
        try:
            self.all_routes = tuple(await self.api.fetch_all_routes())
        except Exception as exc:
            logger.warning("Route list fetch failed: %s", exc)
            self._record_error(exc)
            return
        finally:
            self.is_loading = False

        await self.apply_route_filter()
        if self.selected_route is None and self.routes:
            await self.select_route(self.routes[0])

    async def apply_route_filter(self) -> None:
        """Recompute visible routes and move off a route that became hidden."""

        self.routes = tuple(
            r for r in self.all_routes if self.preferences.is_route_visible(r.id)
        )

        selected = self.selected_route
        if selected is None or any(r.id == selected.id for r in self.routes):
            return
        if self.routes:
            await self.select_route(self.routes[0])
        else:
            self.deselect_route()

    async def set_visible_routes(self, route_ids: Iterable[str]) -> None:
        self._save_preferences(self.preferences.with_visible_routes(route_ids))
        await self.apply_route_filter()

    async def toggle_route_visibility(self, route_id: str) -> None:
        self._save_preferences(self.preferences.toggled(route_id))
        await self.apply_route_filter()

    def complete_onboarding(self) -> None:
        self._save_preferences(self.preferences.with_onboarding_complete())

    def load_mock_data(self) -> None:
        """Show three fake buses, for when the feed is empty (e.g. at night)."""

        route_code = self.selected_route.id if self.selected_route else "CLN"
        now = datetime.now(timezone.utc)
        mock = (
            VehicleSnapshot(
                vehicle_id="MOCK-001",
                lat=40.0020,
                lon=-83.0150,
                heading=45,
                speed=25,
                destination="NORTH CAMPUS",
                pattern_id="314",
                distance=1500,
                last_updated=now,
                route_code=route_code,
            ),
            VehicleSnapshot(
                vehicle_id="MOCK-002",
                lat=40.0055,
                lon=-83.0280,
                heading=180,
                speed=15,
                destination="SOUTH CAMPUS",
                pattern_id="429",
                distance=2800,
                last_updated=now,
                route_code=route_code,
            ),
            VehicleSnapshot(
                vehicle_id="MOCK-003",
                lat=39.9985,
                lon=-83.0380,
                heading=270,
                speed=30,
                destination="WEST CAMPUS",
                delayed=True,
                pattern_id="314",
                distance=4200,
                last_updated=now,
                route_code=route_code,
            ),
        )
        self._animation.cancel()
        self._confirmed = mock
        self._set_displayed(mock)

    def predictions_for_stop(self, stop: Stop) -> tuple[ArrivalPrediction, ...]:
        """Displayed vehicles near `stop` on routes that serve it, nearest first."""

        out: list[ArrivalPrediction] = []
        for route in self.all_routes:
            if not route.serves_stop(stop.id):
                continue
            for vehicle in self._displayed:
                if vehicle.route_code != route.id:
                    continue
                d = haversine_distance_m(vehicle.location, stop.location)
                if d < PREDICTION_RADIUS_M:
                    out.append(
                        ArrivalPrediction(vehicle=vehicle, route=route, distance_m=d)
                    )

        out.sort(key=lambda p: p.distance_m)
        return tuple(out)

    async def wait_until_settled(self) -> None:
        await self._animation.wait()

    async def aclose(self) -> None:
        """Stop everything; no callback runs after this returns."""

        self._tracking = False
        self._route_generation += 1
        await self._scheduler.aclose()
        await self._animation.aclose()
        self._listeners.clear()

    async def _fetch_selected_vehicles(self) -> Vehicles | None:
        route = self.selected_route
        if route is None:
            return None
        generation = self._route_generation

        vehicles = tuple(await self.api.fetch_vehicles(route.id))

        # The rider switched routes while this request was in flight.
        if generation != self._route_generation:
            return None
        return vehicles

    async def _load_route_details(self, route_id: str, generation: int) -> None:
        try:
            detailed = await self.api.fetch_route_details(route_id)
        except Exception as exc:
            if generation == self._route_generation:
                logger.warning("Route detail fetch failed for %s: %s", route_id, exc)
                self._record_error(exc)
            return

        if generation != self._route_generation:
            return

        self.selected_route = detailed
        self._store_route(detailed)

    def _store_route(self, detailed: Route) -> None:
        self.all_routes = tuple(
            detailed if r.id == detailed.id else r for r in self.all_routes
        )
        self.routes = tuple(
            r for r in self.all_routes if self.preferences.is_route_visible(r.id)
        )

    def _reset_route_state(self) -> None:
        self._animation.cancel()
        self.selected_stop = None
        self.selected_vehicle_id = None
        self._confirmed = ()
        self._set_displayed(())

    def _set_displayed(self, vehicles: Vehicles) -> None:
        self._displayed = vehicles
        self.frame_count += 1
        for listener in list(self._listeners):
            try:
                listener(vehicles)
            except Exception:
                logger.exception("Frame listener failed")

    def _confirm(self, vehicles: Vehicles) -> None:
        self._confirmed = vehicles

    def _record_error(self, exc: Exception) -> None:
        self.error = str(exc) or exc.__class__.__name__

    def _save_preferences(self, preferences: RoutePreferences) -> None:
        self.preferences = preferences
        if self.preferences_store is not None:
            self.preferences_store.save(preferences)
