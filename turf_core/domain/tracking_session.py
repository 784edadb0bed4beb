"""
Tracking Session.

Wires the per-session pipeline together:

    raw fix -> FixGate -> SignalConditioner -> PathTracker
    finish() -> TerritoryGeometryEngine -> RunSummary

One session owns one gate, one conditioner and one tracker. They are always
reset together so no state leaks from one run into the next.

Usage:
    session = TrackingSession()
    session.start()
    for raw in fixes:
        update = session.process_fix(raw)
        render(update.snapshot)
    summary = session.finish()
    if summary.has_territory:
        store(summary.territory)
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence

from turf_core.proto.fix import Fix, LatLng
from turf_core.proto.track import RunSummary, TrackSnapshot
from turf_core.proto.territory import TerritoryPolygon
from turf_core.localization.fix_gate import FixGate, FixGateConfig
from turf_core.localization.signal_conditioner import (
    ConditionedResult,
    SignalConditioner,
    SignalConditionerConfig,
)
from turf_core.domain.path_tracker import PathTracker, PathTrackerConfig
from turf_core.domain.territory_geometry import (
    TerritoryGeometryConfig,
    TerritoryGeometryEngine,
)
from turf_core.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


@dataclass
class TrackingSessionConfig:
    """
    Configuration for a tracking session.

    Attributes:
        gate_config: FixGate configuration
        conditioner_config: SignalConditioner configuration
        tracker_config: PathTracker configuration
        geometry_config: TerritoryGeometryEngine configuration
        search_largest_loop: Run the loop search on each segment at finish
        owner_id: Owner stamped on territories produced by this session
    """

    gate_config: Optional[FixGateConfig] = None
    conditioner_config: Optional[SignalConditionerConfig] = None
    tracker_config: Optional[PathTrackerConfig] = None
    geometry_config: Optional[TerritoryGeometryConfig] = None
    search_largest_loop: bool = True
    owner_id: Optional[str] = None


@dataclass(frozen=True)
class SessionUpdate:
    """
    Result of feeding one raw fix to the session.

    Attributes:
        result: Conditioner result, None if the gate discarded the fix
        gated_reason: Gate drop reason, if gated
        appended: Conditioned point was appended to the path
        snapshot: Track state after this fix
    """

    result: Optional[ConditionedResult]
    gated_reason: Optional[str]
    appended: bool
    snapshot: TrackSnapshot

    @property
    def current_fix(self) -> Optional[Fix]:
        """Live "you are here" estimate, if any."""
        return self.result.fix if self.result is not None else None


class TrackingSession:
    """Gate, conditioner, tracker and geometry for one run."""

    def __init__(
        self,
        config: Optional[TrackingSessionConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        """
        Initialize tracking session.

        Args:
            config: Session configuration (uses defaults if None)
            metrics: Metrics collector shared by all stages (global if None)
        """
        self.config = config or TrackingSessionConfig()
        self.metrics = metrics or get_metrics()

        self.gate = FixGate(self.config.gate_config, metrics=self.metrics)
        self.conditioner = SignalConditioner(self.config.conditioner_config, metrics=self.metrics)
        self.tracker = PathTracker(self.config.tracker_config, metrics=self.metrics)
        self.geometry = TerritoryGeometryEngine(self.config.geometry_config, metrics=self.metrics)

        self._last_fix: Optional[Fix] = None

    def start(self) -> bool:
        """Start tracking. False if already tracking."""
        return self.tracker.start()

    def process_fix(self, raw: Fix) -> SessionUpdate:
        """
        Run one raw fix through the pipeline.

        Args:
            raw: Raw fix from the location provider

        Returns:
            SessionUpdate with the conditioner result and track snapshot
        """
        if not self.gate.check_fix(raw):
            return SessionUpdate(
                result=None,
                gated_reason=self.gate.last_rejection_reason,
                appended=False,
                snapshot=self.tracker.snapshot(),
            )

        result = self.conditioner.add_fix(raw)
        appended = False
        if result.fix is not None:
            self._last_fix = result.fix
            # Rejections repeat the previous estimate; only accepted movement extends the path
            appended = self.tracker.on_conditioned_fix(
                result.fix,
                within_deadband=not result.accepted or result.within_deadband,
            )

        return SessionUpdate(
            result=result,
            gated_reason=None,
            appended=appended,
            snapshot=self.tracker.snapshot(),
        )

    def pause(self, timestamp_millis: Optional[int] = None) -> bool:
        """
        Pause tracking.

        Args:
            timestamp_millis: Pause time (defaults to the last conditioned fix time)
        """
        if timestamp_millis is None:
            timestamp_millis = self._last_fix.timestamp_millis if self._last_fix else 0
        return self.tracker.pause(timestamp_millis)

    def resume(self) -> bool:
        return self.tracker.resume()

    def stop(self):
        self.tracker.stop()

    def snapshot(self) -> TrackSnapshot:
        return self.tracker.snapshot()

    def continue_from(self, existing_points: Sequence[LatLng], existing_distance_m: float) -> bool:
        """
        Resume a saved in-progress run in a fresh session.

        Returns:
            False if this session is already tracking
        """
        if self.tracker.is_tracking:
            return False
        self.reset()
        self.tracker.start()
        self.tracker.continue_from(existing_points, existing_distance_m)
        return True

    def finish(self) -> RunSummary:
        """
        Stop tracking and evaluate the run.

        Each segment is evaluated on its own; the closed segment with the
        largest captured area becomes the run's territory.

        Returns:
            RunSummary for the run-history store
        """
        self.tracker.stop()
        snapshot = self.tracker.snapshot()

        territory: Optional[TerritoryPolygon] = None
        best_area = 0.0
        is_closed = False

        for segment in snapshot.segments:
            if not self.geometry.is_closed_loop(segment):
                continue
            is_closed = True
            area = self.geometry.captured_area(segment)
            if area > best_area:
                best_area = area
                territory = TerritoryPolygon(ring=segment, owner_id=self.config.owner_id)

        largest_loop = None
        if self.config.search_largest_loop:
            largest_loop = self._largest_loop(snapshot.segments)

        logger.info(
            f"Run finished: {snapshot.point_count} points in {snapshot.segment_count} segments, "
            f"{snapshot.total_distance_m:.1f}m, closed={is_closed}, area={best_area:.0f}m²"
        )

        return RunSummary(
            segments=snapshot.segments,
            total_distance_m=snapshot.total_distance_m,
            is_closed_loop=is_closed,
            captured_area_m2=best_area,
            territory=territory,
            largest_loop=largest_loop,
        )

    def _largest_loop(self, segments) -> Optional[TerritoryPolygon]:
        best: Optional[TerritoryPolygon] = None
        for segment in segments:
            loop = self.geometry.find_largest_loop(segment)
            if loop is None:
                continue
            candidate = TerritoryPolygon(ring=loop, owner_id=self.config.owner_id)
            if best is None or candidate.area_m2() > best.area_m2():
                best = candidate
        return best

    def reset(self):
        """Reset gate, conditioner and tracker together."""
        self.gate.reset()
        self.conditioner.reset()
        self.tracker.reset()
        self._last_fix = None
        logger.info("Tracking session reset")

    def get_statistics(self) -> dict:
        """Get session statistics."""
        stats = self.conditioner.get_statistics()
        stats.update({
            'fixes_gated': self.metrics.get_counter('fixes_gated'),
            'points': self.tracker.point_count,
            'segments': self.tracker.segment_count,
            'distance_m': self.tracker.total_distance_m,
            'is_tracking': self.tracker.is_tracking,
            'is_paused': self.tracker.is_paused,
        })
        return stats


def create_default_session(owner_id: Optional[str] = None) -> TrackingSession:
    """Create a tracking session with default configuration."""
    return TrackingSession(TrackingSessionConfig(owner_id=owner_id))
