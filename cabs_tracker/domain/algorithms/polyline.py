from __future__ import annotations

from cabs_tracker.domain.models.geo import GeoPoint


def _decode_value(encoded: str, index: int) -> tuple[int, int] | None:
    shift = 0
    result = 0
    while index < len(encoded):
        byte = ord(encoded[index]) - 63
        index += 1
        result |= (byte & 0x1F) << shift
        shift += 5
        if byte < 0x20:
            break
    else:
        if shift == 0:
            return None

    value = ~(result >> 1) if result & 1 else result >> 1
    return value, index


def decode_polyline(encoded: str) -> tuple[GeoPoint, ...]:
    """Decode a Google encoded polyline (1e-5 precision).

    A trailing latitude without its longitude is ignored. Decoding stops at
    the first point that falls outside valid coordinates.
    """

    points: list[GeoPoint] = []
    index = 0
    lat = 0
    lon = 0

    while index < len(encoded):
        decoded = _decode_value(encoded, index)
        if decoded is None:
            break
        d_lat, index = decoded
        lat += d_lat

        if index >= len(encoded):
            break
        decoded = _decode_value(encoded, index)
        if decoded is None:
            break
        d_lon, index = decoded
        lon += d_lon

        try:
            points.append(GeoPoint(lat=lat / 1e5, lon=lon / 1e5))
        except ValueError:
            break

    return tuple(points)
