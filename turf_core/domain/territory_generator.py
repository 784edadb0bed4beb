"""
Synthetic Territory Generator.

Produces "city block" runs: a rectangle twice as wide as it is tall, walked
corner to corner with GPS-like jitter. Used to seed demo territories and to
drive the pipeline in tests and replay scripts.
"""

from typing import List, Optional

import numpy as np

from turf_core.proto.fix import Fix, LatLng
from turf_core.localization.spherical_geometry import distance, offset


def block_area(size_m: float) -> float:
    """Nominal area of a block of the given size (m²): width 2*size, height size."""
    return 2.0 * size_m * size_m


def block_perimeter(size_m: float) -> float:
    return 6.0 * size_m


def generate_block_path(
    center: LatLng,
    size_m: float,
    points_per_side: int = 5,
    jitter_m: float = 2.5,
    rng: Optional[np.random.Generator] = None
) -> List[LatLng]:
    """
    Generate a closed rectangular run around center.

    Args:
        center: Block center (lat, lng)
        size_m: Block height (m); width is twice this
        points_per_side: Points interpolated along each side, corner included
        jitter_m: Uniform noise applied per axis, +/- jitter_m (m)
        rng: Random generator (fresh unseeded generator if None)

    Returns:
        Closed ring (last point == first point), 4 * points_per_side + 1 points
    """
    if rng is None:
        rng = np.random.default_rng()

    half_width = size_m
    half_height = size_m / 2.0

    # Top-left, top-right, bottom-right, bottom-left as (north, east) offsets
    corners = [
        (half_height, -half_width),
        (half_height, half_width),
        (-half_height, half_width),
        (-half_height, -half_width),
    ]

    points: List[LatLng] = []
    for i, start in enumerate(corners):
        end = corners[(i + 1) % len(corners)]
        for step in range(points_per_side):
            fraction = step / points_per_side
            north = start[0] + (end[0] - start[0]) * fraction
            east = start[1] + (end[1] - start[1]) * fraction

            if jitter_m > 0:
                north += rng.uniform(-jitter_m, jitter_m)
                east += rng.uniform(-jitter_m, jitter_m)

            points.append(offset(center, north, east))

    points.append(points[0])
    return points


def densify(points: List[LatLng], spacing_m: float) -> List[LatLng]:
    """
    Insert intermediate points so consecutive points are at most spacing_m apart.

    Straight-line interpolation in local metres between each pair.
    """
    if len(points) < 2:
        return list(points)

    dense = [points[0]]
    for a, b in zip(points, points[1:]):
        steps = max(1, int(np.ceil(distance(a, b) / spacing_m)))
        for k in range(1, steps + 1):
            t = k / steps
            dense.append((a[0] + (b[0] - a[0]) * t, a[1] + (b[1] - a[1]) * t))
    return dense


def fixes_along(
    points: List[LatLng],
    start_millis: int = 0,
    interval_ms: int = 3000,
    accuracy_m: float = 5.0
) -> List[Fix]:
    """Raw fixes visiting each point in turn at a fixed interval."""
    return [
        Fix(
            latitude=lat,
            longitude=lng,
            accuracy_meters=accuracy_m,
            timestamp_millis=start_millis + i * interval_ms,
        )
        for i, (lat, lng) in enumerate(points)
    ]
