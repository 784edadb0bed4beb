"""
Territory Geometry Engine.

Closed-loop detection, captured-area computation, best-loop search over a
path, and planar union of territory polygons.

Distances and areas are spherical. The union treats rings as planar polygons
with longitude as x and latitude as y, which is accurate enough at the scale
of a single territory. Union output is converted back to closed (lat, lng)
rings; interior holes are dropped from display rings.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

import numpy as np
from shapely.geometry import MultiPolygon, Polygon
from shapely.ops import unary_union

from turf_core.proto.fix import LatLng
from turf_core.proto.territory import TerritoryPolygon, TerritorySet, close_ring
from turf_core.localization.spherical_geometry import (
    distance,
    distances_from,
    polygon_area,
)
from turf_core.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


@dataclass
class TerritoryGeometryConfig:
    """
    Configuration for loop detection and search.

    Attributes:
        loop_closure_m: Max start/end distance for a closed loop (m)
        loop_search_threshold_m: Closure distance used by the loop search (m)
        min_loop_search_points: Paths shorter than this are not searched
        min_loop_index_gap: Minimum index distance between loop endpoints
        min_loop_area_m2: Noise floor for loop candidates (m²)
    """

    loop_closure_m: float = 50.0
    loop_search_threshold_m: float = 30.0
    min_loop_search_points: int = 10
    min_loop_index_gap: int = 5
    min_loop_area_m2: float = 100.0

    def __post_init__(self):
        """Validate configuration."""
        assert self.loop_closure_m >= 0, "loop_closure_m must be non-negative"
        assert self.loop_search_threshold_m > 0, "loop_search_threshold_m must be positive"
        assert self.min_loop_index_gap >= 1, "min_loop_index_gap must be at least 1"
        assert self.min_loop_search_points >= self.min_loop_index_gap, \
            "min_loop_search_points must cover min_loop_index_gap"


class TerritoryGeometryEngine:
    """
    Geometry operations on paths and territory rings.

    All operations are pure over their inputs; callers pass a snapshot of the
    path, never the live track.

    Usage:
        engine = TerritoryGeometryEngine()
        if engine.is_closed_loop(points):
            area = engine.captured_area(points)
        loop = engine.find_largest_loop(points)
        merged = engine.unify_territories([ring_a, ring_b])
    """

    def __init__(
        self,
        config: Optional[TerritoryGeometryConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.config = config or TerritoryGeometryConfig()
        self.metrics = metrics or get_metrics()

    # ------------------------------------------------------------------
    # Loops and area
    # ------------------------------------------------------------------

    def is_closed_loop(self, points: Sequence[LatLng]) -> bool:
        """True if the path has >= 3 points and ends near where it started."""
        if len(points) < 3:
            return False
        return distance(points[0], points[-1]) <= self.config.loop_closure_m

    def captured_area(self, points: Sequence[LatLng]) -> float:
        """
        Area enclosed by a closed-loop path (m²).

        Returns:
            0 for fewer than 3 points or an open path
        """
        if len(points) < 3 or not self.is_closed_loop(points):
            return 0.0
        return polygon_area(close_ring(points))

    def find_largest_loop(
        self,
        points: Sequence[LatLng],
        threshold_m: Optional[float] = None
    ) -> Optional[List[LatLng]]:
        """
        Search a path for the sub-path enclosing the largest area.

        Every index pair (i, j) with j >= i + min_loop_index_gap whose points
        are closer than threshold_m is a candidate loop points[i..j], as long
        as j lies before the path leaves the neighbourhood of points[i] a
        second time. Later returns would wind the ring around again and count
        the enclosed area more than once. The first candidate reaching the
        maximum area wins.

        Args:
            points: Path points (lat, lng)
            threshold_m: Closure distance (default from config)

        Returns:
            Points of the best loop, or None if no candidate clears the area floor

        Notes:
            - O(n²) pair scan; each row of distances is computed at once
        """
        if threshold_m is None:
            threshold_m = self.config.loop_search_threshold_m

        n = len(points)
        if n < self.config.min_loop_search_points:
            return None

        gap = self.config.min_loop_index_gap
        pts = np.asarray(points, dtype=float)

        max_area = 0.0
        best: Optional[List[LatLng]] = None
        candidates = 0

        for i in range(n - gap):
            row = distances_from(pts[i], pts[i:])
            for offset_j in _closing_offsets(row < threshold_m, gap):
                j = i + int(offset_j)
                candidates += 1
                loop = [(float(lat), float(lng)) for lat, lng in points[i:j + 1]]
                area = polygon_area(loop)

                if area > self.config.min_loop_area_m2 and area > max_area:
                    max_area = area
                    best = loop

        self.metrics.record_histogram('loop_search_candidates', candidates)
        if best is not None:
            self.metrics.increment('loops_found')
            logger.debug(f"Largest loop: {len(best)} points, {max_area:.0f}m² of {candidates} candidates")
        return best

    # ------------------------------------------------------------------
    # Union
    # ------------------------------------------------------------------

    def unify_territories(self, raw_polygons: Sequence[Sequence[LatLng]]) -> List[List[LatLng]]:
        """
        Union territory rings into a non-overlapping set.

        Unclosed rings are closed. Rings with fewer than 3 distinct points,
        self-intersecting rings and zero-area rings are skipped.

        Args:
            raw_polygons: Rings of (lat, lng)

        Returns:
            Closed (lat, lng) exterior rings of the union, one per disjoint polygon
        """
        polygons = []
        for index, ring in enumerate(raw_polygons):
            polygon = self._to_polygon(ring)
            if polygon is None:
                logger.warning(f"Skipping territory ring {index} in union")
                continue
            polygons.append(polygon)

        if not polygons:
            return []

        self.metrics.increment('territory_unions')
        merged = unary_union(polygons)
        rings = [self._to_ring(polygon) for polygon in _polygons_of(merged)]
        logger.debug(f"Unified {len(polygons)} territories into {len(rings)}")
        return rings

    def merge_if_overlapping(
        self,
        existing: Sequence[LatLng],
        new: Sequence[LatLng]
    ) -> Optional[List[LatLng]]:
        """
        Union two territories if they overlap.

        Args:
            existing: Ring of an existing territory
            new: Ring of the new territory

        Returns:
            Closed ring of the union, or None if either ring is unusable, the
            rings do not intersect, or the union is not a single polygon
        """
        first = self._to_polygon(existing)
        second = self._to_polygon(new)
        if first is None or second is None:
            return None

        if not first.intersects(second):
            return None

        merged = unary_union([first, second])
        if not isinstance(merged, Polygon):
            logger.debug(f"Union of overlapping territories is {merged.geom_type}, not merged")
            return None

        return self._to_ring(merged)

    def unify_territory_set(
        self,
        rings_by_owner: Mapping[str, Sequence[Sequence[LatLng]]]
    ) -> TerritorySet:
        """
        Union each owner's rings separately.

        Args:
            rings_by_owner: Owner id -> that owner's stored rings

        Returns:
            TerritorySet with merged polygons per owner (owners with nothing
            usable are left out)
        """
        by_owner: Dict[str, List[TerritoryPolygon]] = {}
        for owner_id, rings in rings_by_owner.items():
            merged = self.unify_territories(rings)
            if merged:
                by_owner[owner_id] = [TerritoryPolygon(ring=ring, owner_id=owner_id) for ring in merged]
        return TerritorySet(by_owner=by_owner)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _to_polygon(self, ring: Sequence[LatLng]) -> Optional[Polygon]:
        closed = close_ring(ring)
        if len(set(closed)) < 3:
            self.metrics.increment_drop('degenerate_polygon')
            return None

        polygon = Polygon([(lng, lat) for lat, lng in closed])
        if not polygon.is_valid:
            self.metrics.increment_drop('invalid_polygon')
            return None
        if polygon.area == 0:
            self.metrics.increment_drop('degenerate_polygon')
            return None
        return polygon

    @staticmethod
    def _to_ring(polygon: Polygon) -> List[LatLng]:
        return close_ring([(lat, lng) for lng, lat in polygon.exterior.coords])


def _polygons_of(geometry) -> List[Polygon]:
    """Polygons contained in a union result."""
    if isinstance(geometry, Polygon):
        return [] if geometry.is_empty else [geometry]
    if isinstance(geometry, MultiPolygon):
        return list(geometry.geoms)
    # Collections from degenerate overlaps: keep only the areal parts
    return [g for g in getattr(geometry, 'geoms', []) if isinstance(g, Polygon) and not g.is_empty]


def _closing_offsets(near: np.ndarray, gap: int) -> np.ndarray:
    """
    Offsets at which a path can close a single loop back to its first point.

    near[k] says whether point k of the path is within closure distance of
    point 0. Valid offsets are the opening stretch near the start and the
    first stretch back near it after leaving; anything past that winds a
    second time. Offsets below gap are dropped.
    """
    outside = np.flatnonzero(~near)
    if outside.size == 0:
        offsets = np.arange(near.size)
    else:
        first_out = int(outside[0])
        back = np.flatnonzero(near[first_out:])
        if back.size == 0:
            offsets = np.arange(first_out)
        else:
            start = first_out + int(back[0])
            gone = np.flatnonzero(~near[start:])
            end = start + int(gone[0]) if gone.size else near.size
            offsets = np.concatenate([np.arange(first_out), np.arange(start, end)])
    return offsets[offsets >= gap]


def create_default_engine() -> TerritoryGeometryEngine:
    """Create a geometry engine with default configuration."""
    return TerritoryGeometryEngine(TerritoryGeometryConfig())
