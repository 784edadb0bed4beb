"""
Domain Module: Run paths and territories.

Implements:
- Path building with pause/resume splicing
- Closed-loop detection, captured area, largest-loop search
- Territory union and claim merging
- Synthetic block runs
- Per-session pipeline wiring
"""

from .path_tracker import (
    PathTracker,
    PathTrackerConfig,
)
from .territory_geometry import (
    TerritoryGeometryEngine,
    TerritoryGeometryConfig,
    create_default_engine,
)
from .territory_claims import (
    ClaimResult,
    claim_territory,
)
from .territory_generator import (
    block_area,
    block_perimeter,
    generate_block_path,
    densify,
    fixes_along,
)
from .tracking_session import (
    TrackingSession,
    TrackingSessionConfig,
    SessionUpdate,
    create_default_session,
)

__all__ = [
    'PathTracker',
    'PathTrackerConfig',
    'TerritoryGeometryEngine',
    'TerritoryGeometryConfig',
    'create_default_engine',
    'ClaimResult',
    'claim_territory',
    'block_area',
    'block_perimeter',
    'generate_block_path',
    'densify',
    'fixes_along',
    'TrackingSession',
    'TrackingSessionConfig',
    'SessionUpdate',
    'create_default_session',
]
