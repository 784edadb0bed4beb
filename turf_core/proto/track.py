"""
Track Snapshot and Run Summary Schemas.

PathTracker hands out immutable snapshots instead of its live state, so loop
search and territory union can run on a frozen copy while tracking continues.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from turf_core.proto.fix import LatLng
from turf_core.proto.territory import TerritoryPolygon


@dataclass(frozen=True)
class TrackSnapshot:
    """
    Point-in-time copy of a track.

    Attributes:
        segments: Path segments, each an ordered tuple of (lat, lng)
        total_distance_m: Cumulative distance over all segments plus spliced gaps
        is_tracking: Session is recording
        is_paused: Session is paused
        current_location: Latest conditioned position (for display)
        pause_anchor: Position recorded at pause time
        pause_timestamp_millis: Time of the pause
    """

    segments: Tuple[Tuple[LatLng, ...], ...]
    total_distance_m: float
    is_tracking: bool
    is_paused: bool
    current_location: Optional[LatLng] = None
    pause_anchor: Optional[LatLng] = None
    pause_timestamp_millis: Optional[int] = None

    @property
    def segment_count(self) -> int:
        return len(self.segments)

    @property
    def point_count(self) -> int:
        return sum(len(segment) for segment in self.segments)

    def all_points(self) -> Tuple[LatLng, ...]:
        """Flatten segments into one point sequence."""
        return tuple(point for segment in self.segments for point in segment)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'segments': [[list(p) for p in segment] for segment in self.segments],
            'total_distance_m': self.total_distance_m,
            'is_tracking': self.is_tracking,
            'is_paused': self.is_paused,
            'current_location': list(self.current_location) if self.current_location else None,
            'pause_anchor': list(self.pause_anchor) if self.pause_anchor else None,
            'pause_timestamp_millis': self.pause_timestamp_millis,
        }


@dataclass(frozen=True)
class RunSummary:
    """
    Finalized result of a tracking session.

    Attributes:
        segments: Final path segments
        total_distance_m: Total distance (m)
        is_closed_loop: Some segment closes on itself
        captured_area_m2: Area of the closing territory (0 if none)
        territory: Closing polygon, if any
        largest_loop: Best loop found by exhaustive search, if requested and found
    """

    segments: Tuple[Tuple[LatLng, ...], ...]
    total_distance_m: float
    is_closed_loop: bool
    captured_area_m2: float
    territory: Optional[TerritoryPolygon] = None
    largest_loop: Optional[TerritoryPolygon] = None

    @property
    def path(self) -> Tuple[LatLng, ...]:
        return tuple(point for segment in self.segments for point in segment)

    @property
    def has_territory(self) -> bool:
        return self.territory is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'segments': [[list(p) for p in segment] for segment in self.segments],
            'total_distance_m': self.total_distance_m,
            'is_closed_loop': self.is_closed_loop,
            'captured_area_m2': self.captured_area_m2,
            'territory': self.territory.to_dict() if self.territory else None,
            'largest_loop': self.largest_loop.to_dict() if self.largest_loop else None,
        }
