from __future__ import annotations

import pytest

from cabs_tracker.domain.algorithms.geo_utils import (
    haversine_distance_m,
    heading_delta_deg,
    normalize_heading_deg,
)
from cabs_tracker.domain.models.geo import GeoPoint


def test_haversine_zero_for_identical_points() -> None:
    p = GeoPoint(lat=40.0067, lon=-83.0305)
    assert haversine_distance_m(p, p) == 0.0


def test_haversine_is_symmetric_and_reasonable_scale() -> None:
    # Rough sanity check: 1 degree of latitude is about 111km.
    a = GeoPoint(lat=0.0, lon=0.0)
    b = GeoPoint(lat=1.0, lon=0.0)

    d1 = haversine_distance_m(a, b)
    d2 = haversine_distance_m(b, a)

    assert abs(d1 - d2) < 1e-6
    assert 100_000.0 < d1 < 120_000.0


@pytest.mark.parametrize(
    ("source", "target", "expected"),
    [
        (10.0, 20.0, 10.0),
        (20.0, 10.0, -10.0),
        (350.0, 10.0, 20.0),
        (10.0, 350.0, -20.0),
        (0.0, 180.0, 180.0),
        (90.0, 270.0, 180.0),
    ],
)
def test_heading_delta_takes_shorter_arc(
    source: float, target: float, expected: float
) -> None:
    assert heading_delta_deg(source, target) == pytest.approx(expected)


def test_normalize_heading_wraps_into_range() -> None:
    assert normalize_heading_deg(360.0) == 0.0
    assert normalize_heading_deg(-10.0) == 350.0
    assert normalize_heading_deg(370.0) == pytest.approx(10.0)
