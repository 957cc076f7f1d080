from .geo import GeoPoint
from .prediction import ArrivalPrediction
from .preferences import RoutePreferences
from .route import DEFAULT_ROUTE_COLOR, Route, RoutePattern
from .stop import Stop
from .vehicle import VehicleSnapshot

__all__ = [
    "ArrivalPrediction",
    "DEFAULT_ROUTE_COLOR",
    "GeoPoint",
    "Route",
    "RoutePattern",
    "RoutePreferences",
    "Stop",
    "VehicleSnapshot",
]
