from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from cabs_tracker.app.ports.output import IPreferencesStore
from cabs_tracker.domain.models import RoutePreferences

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class JsonFilePreferencesStore(IPreferencesStore):
    """Keeps rider preferences in a small JSON file.

    Env vars:
      - CABS_PREFERENCES_PATH: file location (default data/preferences.json)
    """

    path: str | Path | None = None

    def _path(self) -> Path:
        value = self.path or os.getenv("CABS_PREFERENCES_PATH") or "data/preferences.json"
        return Path(value)

    def load(self) -> RoutePreferences:
        path = self._path()
        if not path.exists():
            return RoutePreferences()

        try:
            with path.open("r", encoding="utf-8") as fp:
                raw = json.load(fp)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable preferences at %s: %s", path, exc)
            return RoutePreferences()

        if not isinstance(raw, dict):
            return RoutePreferences()

        ids = raw.get("visible_route_ids") or []
        return RoutePreferences(
            visible_route_ids=frozenset(str(i) for i in ids if i),
            has_seen_onboarding=bool(raw.get("has_seen_onboarding", False)),
        )

    def save(self, preferences: RoutePreferences) -> None:
        path = self._path()
        path.parent.mkdir(parents=True, exist_ok=True)

        payload = {
            "visible_route_ids": sorted(preferences.visible_route_ids),
            "has_seen_onboarding": preferences.has_seen_onboarding,
        }

        tmp = path.with_suffix(path.suffix + ".tmp")
        with tmp.open("w", encoding="utf-8") as fp:
            json.dump(payload, fp, indent=2)
        tmp.replace(path)
