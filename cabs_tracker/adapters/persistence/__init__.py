from .json_preferences_store import JsonFilePreferencesStore

__all__ = [
    "JsonFilePreferencesStore",
]
