"""
Localization Module: Turning raw receiver fixes into trustworthy positions.

Key pieces:
- spherical_geometry: haversine distance, spherical polygon area, bearing
- ScalarPositionFilter: per-axis scalar filter with derived velocity
- FixGate: null-island and teleport-jump rejection at the input
- SignalConditioner: layered rejection, deadband and stationary lock
"""

from . import spherical_geometry
from .spherical_geometry import (
    EARTH_RADIUS_M,
    distance,
    distances_from,
    path_length,
    polygon_area,
    bearing,
    offset,
)
from .scalar_position_filter import (
    ScalarPositionFilter,
    ScalarFilterConfig,
    FilterState,
    create_default_filter,
)
from .fix_gate import (
    FixGate,
    FixGateConfig,
    create_default_fix_gate,
)
from .signal_conditioner import (
    SignalConditioner,
    SignalConditionerConfig,
    ConditionedResult,
    create_default_conditioner,
)

__all__ = [
    # Geometry
    'spherical_geometry',
    'EARTH_RADIUS_M',
    'distance',
    'distances_from',
    'path_length',
    'polygon_area',
    'bearing',
    'offset',
    # Filter
    'ScalarPositionFilter',
    'ScalarFilterConfig',
    'FilterState',
    'create_default_filter',
    # Gate
    'FixGate',
    'FixGateConfig',
    'create_default_fix_gate',
    # Conditioner
    'SignalConditioner',
    'SignalConditionerConfig',
    'ConditionedResult',
    'create_default_conditioner',
]
