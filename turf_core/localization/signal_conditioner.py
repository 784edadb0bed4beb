"""
Signal Conditioner.

Turns raw receiver fixes into conditioned fixes suitable for path building.
Drives a ScalarPositionFilter through a fixed, layered pipeline:

1. Signal-loss decay (confidence degrades while no fix is accepted)
2. Impossible-speed rejection vs the last accepted raw fix
3. Accuracy gate
4. Velocity plausibility vs the last conditioned output
5. Filter predict + update
6. Anchor deadband (flags sub-threshold movement for the path tracker)
7. Stationary lock (freezes the position while not moving)
8. Filtered output with bearing from the previous output

A rejected fix never touches the filter; the previous output is returned
again, re-stamped at the rejected fix's time.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from turf_core.proto.fix import Fix, FixSource, LatLng
from turf_core.localization.scalar_position_filter import (
    ScalarPositionFilter,
    ScalarFilterConfig,
)
from turf_core.localization.spherical_geometry import distance, bearing
from turf_core.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


@dataclass
class SignalConditionerConfig:
    """
    Configuration for the signal conditioner.

    Attributes:
        signal_loss_ms: Gap since last update that triggers confidence decay (ms)
        decay_rate: Variance added per whole elapsed second of signal loss
        impossible_speed_m_s: Implied speed vs last accepted raw fix that is rejected (m/s)
        max_rejection_streak_ms: Continuous impossible-speed rejections longer
            than this are accepted as a mode change (ms)
        max_accuracy_m: Worst acceptable receiver accuracy (m)
        max_velocity_m_s: Implied speed vs last conditioned output that is rejected (m/s)
        min_measurement_accuracy_m: Accuracy floor fed to the filter (m)
        anchor_deadband_m: Movement needed to move the anchor (m)
        stationary_threshold_m: Movement below this counts as stationary (m)
        stationary_time_ms: Stationary time before the position locks (ms)
        stationary_accuracy_m: Accuracy reported while locked (m)
        max_dt_s: Time deltas outside (0, max_dt_s) skip speed checks (s)
        filter_config: Scalar filter configuration
    """

    signal_loss_ms: int = 3000
    decay_rate: float = 1.5
    impossible_speed_m_s: float = 25.0
    max_rejection_streak_ms: int = 10000
    max_accuracy_m: float = 20.0
    max_velocity_m_s: float = 20.0
    min_measurement_accuracy_m: float = 5.0
    anchor_deadband_m: float = 10.0
    stationary_threshold_m: float = 2.0
    stationary_time_ms: int = 5000
    stationary_accuracy_m: float = 1.0
    max_dt_s: float = 60.0
    filter_config: Optional[ScalarFilterConfig] = None

    def __post_init__(self):
        """Validate configuration."""
        assert self.signal_loss_ms > 0, "signal_loss_ms must be positive"
        assert self.impossible_speed_m_s > 0, "impossible_speed_m_s must be positive"
        assert self.max_velocity_m_s > 0, "max_velocity_m_s must be positive"
        assert self.max_accuracy_m > 0, "max_accuracy_m must be positive"
        assert self.min_measurement_accuracy_m > 0, "min_measurement_accuracy_m must be positive"
        assert self.anchor_deadband_m >= 0, "anchor_deadband_m must be non-negative"
        assert self.stationary_threshold_m >= 0, "stationary_threshold_m must be non-negative"


@dataclass(frozen=True)
class ConditionedResult:
    """
    Outcome of conditioning one raw fix.

    Attributes:
        fix: Current conditioned estimate (None only before the first accepted fix)
        accepted: Raw fix passed every rejection stage and updated the filter
        within_deadband: Accepted, but the filtered point stayed inside the anchor deadband
        stationary_locked: Output is the frozen stationary position
        rejection_reason: Drop reason code when not accepted
    """

    fix: Optional[Fix]
    accepted: bool
    within_deadband: bool = False
    stationary_locked: bool = False
    rejection_reason: Optional[str] = None

    @property
    def has_estimate(self) -> bool:
        return self.fix is not None


class SignalConditioner:
    """
    Layered rejection pipeline plus scalar filtering for raw fixes.

    Usage:
        conditioner = SignalConditioner()
        for raw in fixes:
            result = conditioner.add_fix(raw)
            if result.accepted and not result.within_deadband:
                tracker.on_conditioned_fix(result.fix)

    Notes:
        - Timestamps come from the fixes; no clock is read
        - Fixes must be delivered in arrival order, one at a time
    """

    def __init__(
        self,
        config: Optional[SignalConditionerConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        """
        Initialize signal conditioner.

        Args:
            config: Conditioner configuration (uses defaults if None)
            metrics: Metrics collector (global collector if None)
        """
        self.config = config or SignalConditionerConfig()
        self.metrics = metrics or get_metrics()
        self.filter = ScalarPositionFilter(
            self.config.filter_config or ScalarFilterConfig(),
            metrics=self.metrics,
        )

        # Last unlocked output: bearing, velocity check, stationary detection
        self._previous_output: Optional[Fix] = None
        # Last output of any kind: returned again on rejection
        self._last_output: Optional[Fix] = None

        self._last_accepted_raw: Optional[Fix] = None
        self._last_update_time: Optional[int] = None
        self._rejection_start: Optional[int] = None

        self._anchor: Optional[LatLng] = None

        self._stationary_position: Optional[LatLng] = None
        self._stationary_start: Optional[int] = None

    def add_fix(self, raw: Fix) -> ConditionedResult:
        """
        Condition one raw fix.

        Args:
            raw: Raw fix from the location provider

        Returns:
            ConditionedResult carrying the current estimate
        """
        ts = raw.timestamp_millis
        self.metrics.increment('fixes_in')

        # Stage 1: Signal-loss decay
        if self._last_update_time is not None:
            since_update = ts - self._last_update_time
            if since_update > self.config.signal_loss_ms:
                for _ in range(since_update // 1000):
                    self.filter.decay_confidence(self.config.decay_rate)
                self.metrics.increment('conditioner_decays')
                logger.debug(f"Signal loss {since_update}ms, decayed confidence")

        # Stage 2: Impossible speed vs last accepted raw fix
        forced = False
        if self._last_accepted_raw is not None:
            dt = (ts - self._last_accepted_raw.timestamp_millis) / 1000.0
            if 0 < dt < self.config.max_dt_s:
                speed = distance(self._last_accepted_raw.position, raw.position) / dt
                self.metrics.record_histogram('conditioner_speed_m_s', speed)

                if speed > self.config.impossible_speed_m_s:
                    if self._rejection_start is None:
                        self._rejection_start = ts

                    if ts - self._rejection_start > self.config.max_rejection_streak_ms:
                        logger.info(
                            f"Impossible speed sustained for "
                            f"{ts - self._rejection_start}ms, accepting fix"
                        )
                        self._rejection_start = None
                        self.metrics.increment('conditioner_forced_accepts')
                        forced = True
                    else:
                        return self._reject(
                            'impossible_speed', ts,
                            f"{speed:.1f}m/s over {dt:.1f}s"
                        )
                else:
                    self._rejection_start = None

        # Stage 3: Accuracy gate
        if raw.accuracy_meters is None or raw.accuracy_meters > self.config.max_accuracy_m:
            return self._reject('poor_accuracy', ts, f"accuracy {raw.accuracy_meters}")

        # Stage 4: Velocity plausibility vs last conditioned output
        if not forced and self._previous_output is not None and self._last_update_time is not None:
            dt = (ts - self._last_update_time) / 1000.0
            if 0 < dt < self.config.max_dt_s:
                velocity = distance(self._previous_output.position, raw.position) / dt
                if velocity > self.config.max_velocity_m_s:
                    return self._reject('implausible_velocity', ts, f"{velocity:.1f}m/s")

        # Stage 5: Filter update
        self.filter.predict(ts)
        self.filter.update(
            raw.latitude,
            raw.longitude,
            max(raw.accuracy_meters, self.config.min_measurement_accuracy_m),
            ts,
        )
        self._last_update_time = ts
        self._last_accepted_raw = raw
        self.metrics.increment('fixes_accepted')

        filtered = (self.filter.latitude, self.filter.longitude)

        # Stage 6: Anchor deadband
        within_deadband = self._update_anchor(filtered)

        # Stage 7: Stationary lock
        if self._previous_output is not None:
            moved_m = distance(self._previous_output.position, filtered)
            if moved_m < self.config.stationary_threshold_m:
                if self._stationary_position is None:
                    self._stationary_position = filtered
                    self._stationary_start = ts
                elif ts - self._stationary_start >= self.config.stationary_time_ms:
                    locked = self._stationary_fix(ts)
                    self._last_output = locked
                    self.metrics.increment('stationary_locks')
                    return ConditionedResult(
                        fix=locked,
                        accepted=True,
                        within_deadband=within_deadband,
                        stationary_locked=True,
                    )
            else:
                if self._stationary_position is not None:
                    logger.debug(f"Movement {moved_m:.1f}m, stationary lock released")
                self._stationary_position = None
                self._stationary_start = None

        # Stage 8: Filtered output
        output = self._filtered_fix(filtered, ts)
        self.metrics.record_histogram('conditioner_accuracy_m', output.accuracy_meters)
        self._previous_output = output
        self._last_output = output

        return ConditionedResult(
            fix=output,
            accepted=True,
            within_deadband=within_deadband,
        )

    def _reject(self, reason: str, ts: int, detail: str) -> ConditionedResult:
        """Count a rejection and hand back the previous output."""
        self.metrics.increment_drop(reason)
        self.metrics.increment('fixes_rejected')
        logger.debug(f"Rejected fix at {ts}: {reason} ({detail})")

        previous = self._last_output
        return ConditionedResult(
            fix=previous.restamped(ts) if previous is not None else None,
            accepted=False,
            stationary_locked=previous is not None and previous.is_stationary,
            rejection_reason=reason,
        )

    def _update_anchor(self, filtered: LatLng) -> bool:
        """Move the anchor if far enough; return True when within the deadband."""
        if self._anchor is None:
            self._anchor = filtered
            logger.debug("Anchor initialized")
            return False

        from_anchor = distance(self._anchor, filtered)
        if from_anchor >= self.config.anchor_deadband_m:
            self._anchor = filtered
            logger.debug(f"Anchor moved {from_anchor:.1f}m")
            return False

        return True

    def _filtered_fix(self, filtered: LatLng, ts: int) -> Fix:
        heading = None
        if self._previous_output is not None:
            heading = bearing(self._previous_output.position, filtered)

        return Fix(
            latitude=filtered[0],
            longitude=filtered[1],
            accuracy_meters=self.filter.accuracy,
            timestamp_millis=ts,
            bearing=heading,
            source=FixSource.FILTERED,
        )

    def _stationary_fix(self, ts: int) -> Fix:
        lat, lng = self._stationary_position
        return Fix(
            latitude=lat,
            longitude=lng,
            accuracy_meters=self.config.stationary_accuracy_m,
            timestamp_millis=ts,
            bearing=self._previous_output.bearing if self._previous_output else None,
            source=FixSource.STATIONARY,
        )

    @property
    def current_estimate(self) -> Optional[Fix]:
        """Most recent conditioned output, if any."""
        return self._last_output

    @property
    def anchor_point(self) -> Optional[LatLng]:
        return self._anchor

    @property
    def is_stationary_locked(self) -> bool:
        return self._last_output is not None and self._last_output.is_stationary

    def reset(self):
        """Clear all state, including the filter."""
        self.filter.reset()
        self._previous_output = None
        self._last_output = None
        self._last_accepted_raw = None
        self._last_update_time = None
        self._rejection_start = None
        self._anchor = None
        self._stationary_position = None
        self._stationary_start = None
        self.metrics.increment('conditioner_resets')
        logger.debug("Signal conditioner reset")

    def get_statistics(self) -> dict:
        """Get conditioner statistics."""
        return {
            'fixes_in': self.metrics.get_counter('fixes_in'),
            'fixes_accepted': self.metrics.get_counter('fixes_accepted'),
            'fixes_rejected': self.metrics.get_counter('fixes_rejected'),
            'forced_accepts': self.metrics.get_counter('conditioner_forced_accepts'),
            'stationary_locks': self.metrics.get_counter('stationary_locks'),
            'filter_initialized': self.filter.is_initialized(),
            'stationary_locked': self.is_stationary_locked,
        }


def create_default_conditioner() -> SignalConditioner:
    """Create a signal conditioner with default configuration."""
    return SignalConditioner(SignalConditionerConfig())
