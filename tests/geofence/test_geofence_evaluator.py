from __future__ import annotations

import math

import pytest

from src.qr_attendance.qr_attendance.geofence.evaluator import GeoFence, distance_meters, evaluate, within_radius

VENUE = (12.9716, 77.5946)


def test_distance_is_zero_for_same_point():
    assert distance_meters(*VENUE, *VENUE) == 0.0


def test_distance_is_symmetric():
    other = (12.9352, 77.6245)
    assert distance_meters(*VENUE, *other) == pytest.approx(distance_meters(*other, *VENUE))


def test_one_degree_of_latitude_on_the_meridian():
    expected = 6_371_000.0 * math.pi / 180.0
    assert distance_meters(0.0, 0.0, 1.0, 0.0) == pytest.approx(expected, rel=1e-9)


def test_antipodal_points_do_not_blow_up():
    half_circumference = 6_371_000.0 * math.pi
    assert distance_meters(0.0, 0.0, 0.0, 180.0) == pytest.approx(half_circumference, rel=1e-9)


def test_boundary_is_inclusive():
    point = (12.9730, 77.5946)
    d = distance_meters(*VENUE, *point)

    check = evaluate(GeoFence(VENUE[0], VENUE[1], d), *point)
    assert check.allowed is True
    assert check.distance_meters == d
    assert within_radius(d, d) is True
    assert within_radius(d + 1e-6, d) is False


def test_outside_radius_reports_distance():
    # ~1.1 km north of the venue
    check = evaluate(GeoFence(VENUE[0], VENUE[1], 200.0), VENUE[0] + 0.01, VENUE[1])
    assert check.allowed is False
    assert 1100 < check.distance_meters < 1115
