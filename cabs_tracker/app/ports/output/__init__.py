from .cabs_api import ICabsApi
from .preferences_store import IPreferencesStore

__all__ = [
    "ICabsApi",
    "IPreferencesStore",
]
