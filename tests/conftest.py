"""
Pytest configuration and shared fixtures for Turf Core tests.

Provides geometry helpers for building paths in local metres, fix factories,
and a fresh global metrics collector for every test.
"""

import sys
from pathlib import Path
from typing import List, Tuple

import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from turf_core.proto import Fix
from turf_core.localization import offset
from turf_core.metrics import get_metrics, reset_metrics


ORIGIN = (59.3293, 18.0686)

LatLng = Tuple[float, float]


# =============================================================================
# Metrics
# =============================================================================


@pytest.fixture(autouse=True)
def fresh_metrics():
    """Give every test its own global metrics collector."""
    reset_metrics()
    yield get_metrics()
    reset_metrics()


# =============================================================================
# Geometry Helpers
# =============================================================================


def at(north_m: float, east_m: float, origin: LatLng = ORIGIN) -> LatLng:
    """Point at a local (north, east) offset from origin, in metres."""
    return offset(origin, north_m, east_m)


def square_ring(side_m: float, origin: LatLng = ORIGIN, closed: bool = True) -> List[LatLng]:
    """
    Square with its south-west corner at origin.

    Args:
        side_m: Side length (m)
        origin: South-west corner
        closed: Repeat the first corner at the end
    """
    ring = [
        at(0, 0, origin),
        at(side_m, 0, origin),
        at(side_m, side_m, origin),
        at(0, side_m, origin),
    ]
    if closed:
        ring.append(ring[0])
    return ring


def square_walk(side_m: float, points_per_side: int, origin: LatLng = ORIGIN) -> List[LatLng]:
    """Walk around a square once, points_per_side points per side, not closed."""
    corners = [(0, 0), (side_m, 0), (side_m, side_m), (0, side_m)]
    points = []
    for i, start in enumerate(corners):
        end = corners[(i + 1) % 4]
        for step in range(points_per_side):
            t = step / points_per_side
            points.append(at(
                start[0] + (end[0] - start[0]) * t,
                start[1] + (end[1] - start[1]) * t,
                origin,
            ))
    return points


def straight_line(count: int, spacing_m: float, origin: LatLng = ORIGIN,
                  heading: str = 'north') -> List[LatLng]:
    """count points spaced spacing_m apart heading north or east."""
    if heading == 'north':
        return [at(i * spacing_m, 0, origin) for i in range(count)]
    return [at(0, i * spacing_m, origin) for i in range(count)]


def make_fix(point: LatLng, timestamp_millis: int, accuracy: float = 5.0) -> Fix:
    """Raw fix at point."""
    return Fix(
        latitude=point[0],
        longitude=point[1],
        accuracy_meters=accuracy,
        timestamp_millis=timestamp_millis,
    )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def origin() -> LatLng:
    """Reference point used by geometry helpers (Stockholm)."""
    return ORIGIN


@pytest.fixture
def square_100m() -> List[LatLng]:
    """Closed 100 m x 100 m square ring."""
    return square_ring(100.0)
