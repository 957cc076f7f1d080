from __future__ import annotations

from abc import ABC, abstractmethod

from cabs_tracker.domain.models import RoutePreferences


class IPreferencesStore(ABC):
    """Port for persisting rider route preferences."""

    @abstractmethod
    def load(self) -> RoutePreferences:
        raise NotImplementedError

    @abstractmethod
    def save(self, preferences: RoutePreferences) -> None:
        raise NotImplementedError
