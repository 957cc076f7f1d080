class TrackingError(Exception):
    """Base exception for live tracking failures."""


class CabsApiError(TrackingError):
    """Raised when the CABS API cannot be reached or returns an unusable body."""
