"""
Path Tracker.

Builds the run path from conditioned fixes:
- Points are appended to the active segment once far enough from its last point
- Pause/resume either splices the gap into the path or breaks the path into
  a new segment when the gap is too large
- Total distance is the sum of segment polyline lengths plus any spliced gaps
  not already covered by a segment, plus distance carried over from a
  continued run

Segments are never connected to each other for loop purposes.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from turf_core.proto.fix import Fix, LatLng
from turf_core.proto.track import TrackSnapshot
from turf_core.localization.spherical_geometry import distance, path_length
from turf_core.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


@dataclass
class PathTrackerConfig:
    """
    Configuration for path tracking.

    Attributes:
        min_point_spacing_m: Minimum distance from the segment's last point to append (m)
        max_splice_gap_m: Largest pause gap that is spliced into the segment (m)
    """

    min_point_spacing_m: float = 8.0
    max_splice_gap_m: float = 50.0

    def __post_init__(self):
        """Validate configuration."""
        assert self.min_point_spacing_m >= 0, "min_point_spacing_m must be non-negative"
        assert self.max_splice_gap_m >= 0, "max_splice_gap_m must be non-negative"


class PathTracker:
    """
    Owns the track of one session.

    Usage:
        tracker = PathTracker()
        tracker.start()
        tracker.on_conditioned_fix(fix)
        tracker.pause(fix.timestamp_millis)
        tracker.resume()
        snapshot = tracker.snapshot()
    """

    def __init__(
        self,
        config: Optional[PathTrackerConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.config = config or PathTrackerConfig()
        self.metrics = metrics or get_metrics()

        self._segments: List[List[LatLng]] = [[]]
        self._extra_distance_m = 0.0
        self._total_distance_m = 0.0
        self._is_tracking = False
        self._is_paused = False
        self._current_location: Optional[LatLng] = None
        self._pause_anchor: Optional[LatLng] = None
        self._pause_timestamp: Optional[int] = None

    def start(self) -> bool:
        """
        Begin tracking with one empty segment.

        Returns:
            False if already tracking (no-op)
        """
        if self._is_tracking:
            logger.warning("start() ignored: already tracking")
            return False

        self._segments = [[]]
        self._extra_distance_m = 0.0
        self._total_distance_m = 0.0
        self._is_tracking = True
        self._is_paused = False
        self._pause_anchor = None
        self._pause_timestamp = None
        logger.info("Tracking started")
        return True

    def on_conditioned_fix(self, fix: Fix, within_deadband: bool = False) -> bool:
        """
        Consume one conditioned fix.

        Args:
            fix: Conditioned fix
            within_deadband: Conditioner flagged the fix inside its anchor deadband

        Returns:
            True if the point was appended to the path
        """
        if not self._is_tracking:
            return False

        point = fix.position
        self._current_location = point

        if self._is_paused or within_deadband:
            return False

        segment = self._segments[-1]
        if segment and distance(segment[-1], point) < self.config.min_point_spacing_m:
            return False

        segment.append(point)
        self._recompute_distance()
        self.metrics.increment('path_points_appended')
        return True

    def pause(self, timestamp_millis: int) -> bool:
        """
        Pause tracking and remember where the path stopped.

        Args:
            timestamp_millis: Pause time (epoch ms)

        Returns:
            False if not tracking or already paused
        """
        if not self._is_tracking or self._is_paused:
            return False

        last_point = self._last_path_point()
        self._pause_anchor = last_point if last_point is not None else self._current_location
        self._pause_timestamp = timestamp_millis
        self._is_paused = True
        logger.info(f"Tracking paused at {timestamp_millis}")
        return True

    def resume(self) -> bool:
        """
        Resume tracking, splicing or breaking the path at the pause gap.

        Returns:
            False if not tracking or not paused
        """
        if not self._is_tracking or not self._is_paused:
            return False

        self._is_paused = False
        anchor = self._pause_anchor
        current = self._current_location
        self._pause_anchor = None
        self._pause_timestamp = None

        if anchor is None or current is None:
            logger.info("Tracking resumed (no pause anchor)")
            return True

        gap_m = distance(anchor, current)
        self.metrics.record_histogram('path_segment_gap_m', gap_m)

        if gap_m > self.config.max_splice_gap_m:
            # Gap is not counted and the segments stay disconnected
            self._segments.append([])
            self.metrics.increment('path_segment_breaks')
            logger.info(f"Tracking resumed with new segment (gap {gap_m:.1f}m)")
            return True

        segment = self._segments[-1]
        if not (segment and segment[-1] == anchor):
            # Anchor is not the tail of the active segment, so the
            # polyline will not cover the gap
            self._extra_distance_m += gap_m
        segment.append(current)
        self._recompute_distance()
        logger.info(f"Tracking resumed, spliced gap {gap_m:.1f}m")
        return True

    def stop(self):
        """Stop tracking; path and distance stay readable."""
        self._is_tracking = False
        self._is_paused = False
        logger.info(
            f"Tracking stopped: {self.point_count} points, "
            f"{self._total_distance_m:.1f}m"
        )

    def reset(self):
        """Clear to one empty segment and zero distance."""
        self._segments = [[]]
        self._extra_distance_m = 0.0
        self._total_distance_m = 0.0
        self._is_paused = False
        self._current_location = None
        self._pause_anchor = None
        self._pause_timestamp = None
        logger.info("Path tracker reset")

    def continue_from(self, existing_points: Sequence[LatLng], existing_distance_m: float):
        """
        Seed the track from a previously saved in-progress run.

        Args:
            existing_points: Saved path, becomes a single segment
            existing_distance_m: Saved total distance (m)
        """
        points = [(float(lat), float(lng)) for lat, lng in existing_points]
        self._segments = [points]
        # Keep the saved total even if it exceeds the seeded polyline
        self._extra_distance_m = max(0.0, existing_distance_m - path_length(points))
        self._recompute_distance()
        self._is_paused = False
        self._pause_anchor = None
        self._pause_timestamp = None
        self._current_location = points[-1] if points else None
        logger.info(f"Continuing run with {len(points)} points, {existing_distance_m:.1f}m")

    def _recompute_distance(self):
        self._total_distance_m = (
            sum(path_length(segment) for segment in self._segments)
            + self._extra_distance_m
        )

    def _last_path_point(self) -> Optional[LatLng]:
        for segment in reversed(self._segments):
            if segment:
                return segment[-1]
        return None

    @property
    def is_tracking(self) -> bool:
        return self._is_tracking

    @property
    def is_paused(self) -> bool:
        return self._is_paused

    @property
    def total_distance_m(self) -> float:
        return self._total_distance_m

    @property
    def current_location(self) -> Optional[LatLng]:
        return self._current_location

    @property
    def segment_count(self) -> int:
        return len(self._segments)

    @property
    def point_count(self) -> int:
        return sum(len(segment) for segment in self._segments)

    def all_points(self) -> List[LatLng]:
        """Flattened copy of every segment's points."""
        return [point for segment in self._segments for point in segment]

    def snapshot(self) -> TrackSnapshot:
        """Immutable copy of the track."""
        return TrackSnapshot(
            segments=tuple(tuple(segment) for segment in self._segments),
            total_distance_m=self._total_distance_m,
            is_tracking=self._is_tracking,
            is_paused=self._is_paused,
            current_location=self._current_location,
            pause_anchor=self._pause_anchor,
            pause_timestamp_millis=self._pause_timestamp,
        )
