from __future__ import annotations

from cabs_tracker.adapters.persistence import JsonFilePreferencesStore
from cabs_tracker.domain.models import RoutePreferences


def test_missing_file_gives_defaults(tmp_path) -> None:
    store = JsonFilePreferencesStore(path=tmp_path / "prefs.json")
    assert store.load() == RoutePreferences()


def test_save_then_load(tmp_path) -> None:
    path = tmp_path / "nested" / "prefs.json"
    store = JsonFilePreferencesStore(path=path)

    store.save(
        RoutePreferences(
            visible_route_ids=frozenset({"CLN", "ER"}), has_seen_onboarding=True
        )
    )

    loaded = JsonFilePreferencesStore(path=path).load()
    assert loaded.visible_route_ids == {"CLN", "ER"}
    assert loaded.has_seen_onboarding is True


def test_corrupt_file_falls_back_to_defaults(tmp_path) -> None:
    path = tmp_path / "prefs.json"
    path.write_text("{not json", encoding="utf-8")

    assert JsonFilePreferencesStore(path=path).load() == RoutePreferences()


def test_path_from_env(tmp_path, monkeypatch) -> None:
    path = tmp_path / "env.json"
    monkeypatch.setenv("CABS_PREFERENCES_PATH", str(path))

    JsonFilePreferencesStore().save(RoutePreferences().toggled("BE"))

    assert path.exists()
    assert JsonFilePreferencesStore().load().visible_route_ids == {"BE"}
