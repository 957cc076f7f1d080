from __future__ import annotations

from datetime import datetime, timezone

import pytest

from cabs_tracker.domain.algorithms.interpolation import (
    ease_out_cubic,
    interpolate_vehicle,
    interpolate_vehicles,
)
from cabs_tracker.domain.models import VehicleSnapshot


def _bus(vehicle_id: str = "1", **kwargs) -> VehicleSnapshot:
    defaults = {"lat": 40.0, "lon": -83.0, "heading": 0.0}
    defaults.update(kwargs)
    return VehicleSnapshot(vehicle_id=vehicle_id, **defaults)


def test_ease_out_cubic_endpoints_and_shape() -> None:
    assert ease_out_cubic(0.0) == 0.0
    assert ease_out_cubic(1.0) == 1.0
    # Front-loaded: more than half the motion happens in the first half.
    assert ease_out_cubic(0.5) == pytest.approx(0.875)


def test_heading_crosses_north_the_short_way() -> None:
    a = _bus(heading=350.0)
    b = _bus(heading=10.0)

    mid = interpolate_vehicle(a, b, 0.5)

    assert mid.heading == pytest.approx(0.0, abs=1e-9)


def test_heading_crosses_north_the_short_way_backwards() -> None:
    a = _bus(heading=10.0)
    b = _bus(heading=350.0)

    quarter = interpolate_vehicle(a, b, 0.25)

    assert quarter.heading == pytest.approx(5.0)


def test_position_is_linear() -> None:
    a = _bus(lat=40.00, lon=-83.00)
    b = _bus(lat=40.02, lon=-83.04)

    p = interpolate_vehicle(a, b, 0.25)

    assert p.lat == pytest.approx(40.005)
    assert p.lon == pytest.approx(-83.01)


def test_progress_zero_keeps_source_position_and_heading() -> None:
    a = _bus(lat=40.00, lon=-83.00, heading=350.0, speed=5)
    b = _bus(lat=40.01, lon=-83.01, heading=10.0, speed=20)

    p = interpolate_vehicle(a, b, 0.0)

    assert (p.lat, p.lon, p.heading) == (a.lat, a.lon, a.heading)
    assert p.speed == 20


def test_progress_one_is_exactly_target() -> None:
    a = _bus(lat=40.00, lon=-83.00, heading=350.0)
    b = _bus(lat=40.01, lon=-83.01, heading=10.0)

    assert interpolate_vehicle(a, b, 1.0) == b


def test_progress_is_clamped() -> None:
    a = _bus(lat=40.00)
    b = _bus(lat=40.01)

    assert interpolate_vehicle(a, b, 1.5) == b
    assert interpolate_vehicle(a, b, -0.5).lat == a.lat


def test_display_fields_come_from_target() -> None:
    updated = datetime(2026, 2, 7, 15, 0, tzinfo=timezone.utc)
    a = _bus(speed=10, destination="NORTH", delayed=False, pattern_id="1")
    b = _bus(
        lat=40.01,
        speed=25,
        destination="SOUTH",
        delayed=True,
        pattern_id="2",
        next_stop_id="S9",
        distance=300,
        last_updated=updated,
    )

    p = interpolate_vehicle(a, b, 0.3)

    assert p.speed == 25
    assert p.destination == "SOUTH"
    assert p.delayed is True
    assert p.pattern_id == "2"
    assert p.next_stop_id == "S9"
    assert p.distance == 300
    assert p.last_updated == updated


def test_set_interpolation_matches_by_identity_and_keeps_target_order() -> None:
    start = (_bus("2", lat=40.10), _bus("1", lat=40.00))
    target = (_bus("1", lat=40.02), _bus("3", lat=40.30))

    frame = interpolate_vehicles(start, target, 0.5)

    assert [v.vehicle_id for v in frame] == ["1", "3"]
    assert frame[0].lat == pytest.approx(40.01)
    # No previous position: shown at the target straight away.
    assert frame[1] == target[1]
