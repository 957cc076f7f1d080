from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Iterable


@dataclass(frozen=True, slots=True)
class RoutePreferences:
    """Which routes the rider wants to see.

    An empty `visible_route_ids` means every route is visible.
    """

    visible_route_ids: frozenset[str] = field(default_factory=frozenset)
    has_seen_onboarding: bool = False

    def is_route_visible(self, route_id: str) -> bool:
        return not self.visible_route_ids or route_id in self.visible_route_ids

    def toggled(self, route_id: str) -> RoutePreferences:
        if route_id in self.visible_route_ids:
            ids = self.visible_route_ids - {route_id}
        else:
            ids = self.visible_route_ids | {route_id}
        return replace(self, visible_route_ids=ids)

    def with_visible_routes(self, route_ids: Iterable[str]) -> RoutePreferences:
        return replace(self, visible_route_ids=frozenset(route_ids))

    def with_onboarding_complete(self) -> RoutePreferences:
        return replace(self, has_seen_onboarding=True)
