from .tracking import CabsApiError, TrackingError

__all__ = ["CabsApiError", "TrackingError"]
