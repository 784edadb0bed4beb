"""
Spherical Geometry Helpers.

Pure functions on (lat, lng) points in degrees, assuming a spherical Earth:
- Great-circle distance (haversine)
- Unsigned spherical polygon area
- Initial bearing
- Vectorized distances for loop search

No state, no error cases.
"""

import math
from typing import Sequence, Tuple

import numpy as np

EARTH_RADIUS_M = 6371000.0

LatLng = Tuple[float, float]


def distance(a: LatLng, b: LatLng) -> float:
    """
    Great-circle distance between two points (m).

    Args:
        a: First point (lat, lng) in degrees
        b: Second point (lat, lng) in degrees

    Returns:
        Distance in meters
    """
    phi1 = math.radians(a[0])
    phi2 = math.radians(b[0])
    delta_phi = math.radians(b[0] - a[0])
    delta_lambda = math.radians(b[1] - a[1])

    h = math.sin(delta_phi / 2) ** 2 + \
        math.cos(phi1) * math.cos(phi2) * \
        math.sin(delta_lambda / 2) ** 2

    # Rounding can push h a hair above 1 for antipodal points
    h = min(1.0, h)
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))

    return EARTH_RADIUS_M * c


def distances_from(origin: LatLng, points) -> np.ndarray:
    """
    Great-circle distances from origin to every point (m).

    Args:
        origin: (lat, lng) in degrees
        points: Array-like of shape (N, 2), (lat, lng) in degrees

    Returns:
        Array of N distances in meters
    """
    pts = np.asarray(points, dtype=float).reshape(-1, 2)
    if pts.shape[0] == 0:
        return np.zeros(0)

    phi1 = np.radians(origin[0])
    phi2 = np.radians(pts[:, 0])
    delta_phi = phi2 - phi1
    delta_lambda = np.radians(pts[:, 1] - origin[1])

    h = np.sin(delta_phi / 2) ** 2 + np.cos(phi1) * np.cos(phi2) * np.sin(delta_lambda / 2) ** 2
    h = np.clip(h, 0.0, 1.0)

    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(h), np.sqrt(1 - h))


def path_length(points: Sequence[LatLng]) -> float:
    """Sum of consecutive great-circle distances along a polyline (m)."""
    total = 0.0
    for i in range(1, len(points)):
        total += distance(points[i - 1], points[i])
    return total


def polygon_area(ring: Sequence[LatLng]) -> float:
    """
    Unsigned area enclosed by a ring on the sphere (m²).

    Sums signed polar triangle areas between consecutive edges and the pole.
    The ring is treated as implicitly closed, so a repeated closing point
    contributes nothing and open or closed rings give the same result.

    Args:
        ring: Sequence of (lat, lng) in degrees

    Returns:
        Area in square meters, 0 for fewer than 3 points
    """
    if len(ring) < 3:
        return 0.0

    total = 0.0
    prev_lat, prev_lng = ring[-1]
    prev_tan_lat = math.tan((math.pi / 2 - math.radians(prev_lat)) / 2)
    prev_lng = math.radians(prev_lng)

    for lat, lng in ring:
        tan_lat = math.tan((math.pi / 2 - math.radians(lat)) / 2)
        lng = math.radians(lng)
        total += _polar_triangle_area(tan_lat, lng, prev_tan_lat, prev_lng)
        prev_tan_lat = tan_lat
        prev_lng = lng

    return abs(total * EARTH_RADIUS_M * EARTH_RADIUS_M)


def _polar_triangle_area(tan1: float, lng1: float, tan2: float, lng2: float) -> float:
    """Signed area of the triangle (pole, p1, p2) on the unit sphere."""
    delta_lng = lng1 - lng2
    t = tan1 * tan2
    return 2 * math.atan2(t * math.sin(delta_lng), 1 + t * math.cos(delta_lng))


def bearing(origin: LatLng, target: LatLng) -> float:
    """
    Initial great-circle bearing from origin to target.

    Returns:
        Degrees clockwise from north in [0, 360)
    """
    phi1 = math.radians(origin[0])
    phi2 = math.radians(target[0])
    delta_lambda = math.radians(target[1] - origin[1])

    y = math.sin(delta_lambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(delta_lambda)

    result = math.degrees(math.atan2(y, x)) % 360.0
    # -0.0 % 360 and tiny negatives can round to exactly 360
    return 0.0 if result >= 360.0 else result


def offset(origin: LatLng, north_m: float, east_m: float) -> LatLng:
    """
    Point displaced from origin by a local metric offset.

    Small-distance approximation; good to well under a meter at territory scale.
    """
    lat = origin[0] + math.degrees(north_m / EARTH_RADIUS_M)
    lng = origin[1] + math.degrees(east_m / (EARTH_RADIUS_M * math.cos(math.radians(origin[0]))))
    return (lat, lng)
