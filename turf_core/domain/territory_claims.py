"""
Territory Claims.

Folds a newly captured territory into the territories an owner already holds:
the first owned territory it overlaps absorbs it; otherwise it is added as a
new territory.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from turf_core.proto.fix import LatLng
from turf_core.proto.territory import TerritoryPolygon
from turf_core.domain.territory_geometry import TerritoryGeometryEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaimResult:
    """
    Outcome of a claim.

    Attributes:
        territories: Owner's territories after the claim
        merged_index: Index of the territory that absorbed the claim, None if appended
        claimed: False when the new ring was unusable and nothing changed
    """

    territories: List[TerritoryPolygon]
    merged_index: Optional[int] = None
    claimed: bool = True

    @property
    def was_merged(self) -> bool:
        return self.merged_index is not None


def claim_territory(
    owned: Sequence[TerritoryPolygon],
    new_ring: Sequence[LatLng],
    engine: Optional[TerritoryGeometryEngine] = None,
    owner_id: Optional[str] = None
) -> ClaimResult:
    """
    Merge a new territory into an owner's territories.

    Args:
        owned: Existing territories, in claim order (not modified)
        new_ring: Ring captured by the new run
        engine: Geometry engine (default configuration if None)
        owner_id: Owner of the new territory

    Returns:
        ClaimResult with the updated list
    """
    engine = engine or TerritoryGeometryEngine()
    territories = list(owned)

    if len(new_ring) < 3 or engine.captured_area(new_ring) <= 0:
        logger.debug("Claim ignored: new ring has no area")
        return ClaimResult(territories=territories, claimed=False)

    for index, existing in enumerate(territories):
        if len(existing.ring) < 3:
            continue

        merged = engine.merge_if_overlapping(existing.ring, new_ring)
        if merged is None:
            continue

        absorbed = TerritoryPolygon(ring=merged, owner_id=existing.owner_id or owner_id)
        territories[index] = absorbed
        logger.info(f"Claim merged into territory {index}: {absorbed.area_m2():.0f}m²")
        return ClaimResult(territories=territories, merged_index=index)

    territories.append(TerritoryPolygon(ring=new_ring, owner_id=owner_id))
    logger.info(f"Claim added as territory {len(territories) - 1}")
    return ClaimResult(territories=territories)
