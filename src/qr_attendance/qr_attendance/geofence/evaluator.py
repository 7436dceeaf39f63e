"""Geofence checks for QR attendance.

Distances use the haversine great-circle formula on a spherical Earth.
Everything here is pure: no state and no I/O.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from ..core.constants import EARTH_RADIUS_METERS


@dataclass(frozen=True)
class GeoFence:
    latitude: float
    longitude: float
    radius_meters: float


@dataclass(frozen=True)
class GeoCheck:
    allowed: bool
    distance_meters: float


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two (lat, lon) points in degrees."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    # Float error can push `a` marginally above 1 for antipodal points.
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


def within_radius(distance: float, radius_meters: float) -> bool:
    # Inclusive: exactly on the boundary counts as inside.
    return distance <= radius_meters


def evaluate(fence: GeoFence, latitude: float, longitude: float) -> GeoCheck:
    distance = distance_meters(fence.latitude, fence.longitude, latitude, longitude)
    return GeoCheck(allowed=within_radius(distance, fence.radius_meters), distance_meters=distance)
