"""
Protocol Module: Data model shared by the pipeline stages.

- Fix: one reported (or conditioned) position with accuracy and timestamp
- TrackSnapshot: immutable copy of the path tracker state
- TerritoryPolygon / TerritorySet: closed rings and per-owner collections
"""

from .fix import (
    Fix,
    FixSource,
    LatLng,
)
from .track import (
    TrackSnapshot,
    RunSummary,
)
from .territory import (
    TerritoryPolygon,
    TerritorySet,
    close_ring,
)

__all__ = [
    'Fix',
    'FixSource',
    'LatLng',
    'TrackSnapshot',
    'RunSummary',
    'TerritoryPolygon',
    'TerritorySet',
    'close_ring',
]
