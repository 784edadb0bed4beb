"""
Territory Polygon Schemas.

A territory is the area enclosed by a closed loop run. Rings are stored as
(lat, lng) pairs with the first point repeated at the end.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from turf_core.proto.fix import LatLng
from turf_core.localization.spherical_geometry import polygon_area


def close_ring(points: Sequence[LatLng]) -> List[LatLng]:
    """
    Return a copy of points with the first point repeated at the end.

    Already-closed rings and empty input are returned unchanged (as a list).
    """
    ring = [(float(lat), float(lng)) for lat, lng in points]
    if ring and ring[0] != ring[-1]:
        ring.append(ring[0])
    return ring


@dataclass
class TerritoryPolygon:
    """
    Closed ring of (lat, lng) points.

    Attributes:
        ring: Closed ring, first == last
        owner_id: Owner identity, if known

    Notes:
        - Construction closes an open ring
        - Area is computed on first access and cached
    """

    ring: Tuple[LatLng, ...]
    owner_id: Optional[str] = None
    _area_m2: Optional[float] = field(default=None, repr=False, compare=False)

    def __post_init__(self):
        self.ring = tuple(close_ring(self.ring))

    @property
    def vertex_count(self) -> int:
        """Number of distinct vertices (closing point excluded)."""
        return max(len(self.ring) - 1, 0)

    def area_m2(self) -> float:
        """Spherical area of the ring (m²), cached."""
        if self._area_m2 is None:
            self._area_m2 = polygon_area(self.ring)
        return self._area_m2

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'ring': [list(p) for p in self.ring],
            'owner_id': self.owner_id,
            'area_m2': self.area_m2(),
        }


@dataclass
class TerritorySet:
    """
    Territories grouped by owner.

    Produced on demand by the union operation; never persisted here.
    """

    by_owner: Dict[str, List[TerritoryPolygon]] = field(default_factory=dict)

    @property
    def owners(self) -> List[str]:
        return sorted(self.by_owner.keys())

    def territories_for(self, owner_id: str) -> List[TerritoryPolygon]:
        return list(self.by_owner.get(owner_id, []))

    def total_area_m2(self, owner_id: Optional[str] = None) -> float:
        """Total area for one owner, or for everyone if owner_id is None."""
        if owner_id is not None:
            return sum(t.area_m2() for t in self.by_owner.get(owner_id, []))
        return sum(t.area_m2() for polys in self.by_owner.values() for t in polys)

    def __len__(self) -> int:
        return sum(len(polys) for polys in self.by_owner.values())

    def to_dict(self) -> dict:
        return {owner: [t.to_dict() for t in polys] for owner, polys in self.by_owner.items()}
