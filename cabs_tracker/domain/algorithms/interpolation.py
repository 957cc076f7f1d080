from __future__ import annotations

from dataclasses import replace
from typing import Sequence

from cabs_tracker.domain.algorithms.geo_utils import (
    heading_delta_deg,
    normalize_heading_deg,
)
from cabs_tracker.domain.models import VehicleSnapshot


def ease_out_cubic(progress: float) -> float:
    """Fast start, slow finish."""

    return 1.0 - (1.0 - progress) ** 3


def interpolate_vehicle(
    source: VehicleSnapshot, target: VehicleSnapshot, progress: float
) -> VehicleSnapshot:
    """Intermediate state between two snapshots of the same vehicle.

    Position is linear, heading follows the shorter arc so a marker crossing
    north never spins the long way round. Speed, destination and the other
    display fields always come from `target`.
    """

    p = max(0.0, min(1.0, float(progress)))
    if p >= 1.0:
        return target
    if p <= 0.0:
        return replace(target, lat=source.lat, lon=source.lon, heading=source.heading)

    delta = heading_delta_deg(source.heading, target.heading)
    return replace(
        target,
        lat=source.lat + (target.lat - source.lat) * p,
        lon=source.lon + (target.lon - source.lon) * p,
        heading=normalize_heading_deg(source.heading + delta * p),
    )


def interpolate_vehicles(
    start: Sequence[VehicleSnapshot],
    target: Sequence[VehicleSnapshot],
    progress: float,
) -> tuple[VehicleSnapshot, ...]:
    """One animation frame for a whole vehicle set.

    Output follows `target` order. Vehicles with no counterpart in `start`
    appear at their target position; vehicles only in `start` are dropped.
    """

    start_by_id = {v.vehicle_id: v for v in start}
    out: list[VehicleSnapshot] = []
    for v in target:
        source = start_by_id.get(v.vehicle_id)
        if source is None:
            out.append(v)
            continue
        out.append(interpolate_vehicle(source, v, progress))
    return tuple(out)
