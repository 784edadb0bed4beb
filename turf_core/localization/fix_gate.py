"""
Input-side Fix Gate.

Discards gross receiver glitches before they reach the SignalConditioner:
1. Null island: fixes at (0, 0), an artifact of receiver initialization
2. Teleport jump: > 150 m from the last valid point within one reporting
   interval, fixes on the normal cadence included

The jump check compares against the last fix that passed this gate, which is
distinct from the conditioner's impossible-speed check on accepted history.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from turf_core.proto.fix import Fix
from turf_core.localization.spherical_geometry import distance
from turf_core.metrics import MetricsCollector, get_metrics

logger = logging.getLogger(__name__)


@dataclass
class FixGateConfig:
    """
    Configuration for the input fix gate.

    Attributes:
        null_island_epsilon_deg: |lat| and |lng| both below this mark a null fix
        max_jump_m: Largest plausible jump within one reporting interval (m)
        reporting_interval_ms: Location provider reporting interval (ms)
    """

    null_island_epsilon_deg: float = 0.0001
    max_jump_m: float = 150.0
    reporting_interval_ms: int = 3000

    def __post_init__(self):
        """Validate configuration."""
        assert self.null_island_epsilon_deg > 0, "null_island_epsilon_deg must be positive"
        assert self.max_jump_m > 0, "max_jump_m must be positive"
        assert self.reporting_interval_ms > 0, "reporting_interval_ms must be positive"


class FixGate:
    """
    Reject null-island and teleport-jump fixes.

    Usage:
        gate = FixGate()
        if gate.check_fix(raw):
            result = conditioner.add_fix(raw)
        else:
            print(f"Gated: {gate.last_rejection_reason}")
    """

    def __init__(
        self,
        config: Optional[FixGateConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.config = config or FixGateConfig()
        self.metrics = metrics or get_metrics()

        self._last_valid: Optional[Fix] = None
        self.last_rejection_reason: Optional[str] = None

    def check_fix(self, fix: Fix) -> bool:
        """
        Check one raw fix.

        Args:
            fix: Raw fix from the location provider

        Returns:
            True if the fix may enter the conditioner
        """
        eps = self.config.null_island_epsilon_deg
        if abs(fix.latitude) < eps and abs(fix.longitude) < eps:
            return self._reject('null_island', fix)

        if self._last_valid is not None:
            dt_ms = fix.timestamp_millis - self._last_valid.timestamp_millis
            # Duplicate or earlier timestamps are not jump checked
            if 0 < dt_ms <= self.config.reporting_interval_ms:
                jump_m = distance(self._last_valid.position, fix.position)
                if jump_m > self.config.max_jump_m:
                    logger.debug(f"Teleport jump {jump_m:.1f}m in {dt_ms}ms")
                    return self._reject('teleport_jump', fix)

        self._last_valid = fix
        self.last_rejection_reason = None
        return True

    def _reject(self, reason: str, fix: Fix) -> bool:
        self.last_rejection_reason = reason
        self.metrics.increment_drop(reason)
        self.metrics.increment('fixes_gated')
        logger.debug(f"Gate rejected fix at {fix.timestamp_millis}: {reason}")
        return False

    @property
    def last_valid_fix(self) -> Optional[Fix]:
        return self._last_valid

    def reset(self):
        """Forget the last valid fix."""
        self._last_valid = None
        self.last_rejection_reason = None


def create_default_fix_gate() -> FixGate:
    """Create a fix gate with default configuration."""
    return FixGate(FixGateConfig())
