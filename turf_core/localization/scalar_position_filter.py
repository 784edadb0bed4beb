"""
Scalar Position Filter (per-axis).

Simplified Kalman-style estimator with independent latitude and longitude
channels. Each axis carries a scalar variance; velocity is derived from the
innovation rather than estimated as a state. There is no cross-covariance.

State: lat, lng, vel_lat, vel_lng (deg/s), var_lat, var_lng, last_timestamp
A negative variance marks the filter as uninitialized.
"""

from dataclasses import dataclass
from typing import Optional

from turf_core.metrics import MetricsCollector, get_metrics


@dataclass
class ScalarFilterConfig:
    """
    Configuration for the scalar position filter.

    Attributes:
        process_noise: Variance added per second of prediction
        max_dt_s: Time deltas above this are clock anomalies (s)
        variance_floor_ratio: Variance floor as a fraction of measurement accuracy
        max_variance: Cap applied by confidence decay
        default_decay_rate: Variance added per decay step
    """

    process_noise: float = 0.5
    max_dt_s: float = 60.0
    variance_floor_ratio: float = 0.001
    max_variance: float = 100.0
    default_decay_rate: float = 1.5

    def __post_init__(self):
        """Validate configuration."""
        assert self.process_noise >= 0, "process_noise must be non-negative"
        assert self.max_dt_s > 0, "max_dt_s must be positive"
        assert self.variance_floor_ratio > 0, "variance_floor_ratio must be positive"
        assert self.max_variance > 0, "max_variance must be positive"


@dataclass(frozen=True)
class FilterState:
    """Read-only copy of the filter state."""

    lat: float
    lng: float
    vel_lat: float
    vel_lng: float
    var_lat: float
    var_lng: float
    last_timestamp: int


class ScalarPositionFilter:
    """
    Per-axis scalar filter for latitude/longitude smoothing.

    Usage:
        kf = ScalarPositionFilter()
        kf.predict(fix.timestamp_millis)
        kf.update(fix.latitude, fix.longitude, max(fix.accuracy_meters, 5), fix.timestamp_millis)
        lat, lng, acc = kf.latitude, kf.longitude, kf.accuracy

    Notes:
        - The first update initializes the state without correction
        - Time deltas <= 0 or > max_dt_s resync the clock and skip prediction
        - decay_confidence() is for signal loss; it never moves the estimate
    """

    def __init__(
        self,
        config: Optional[ScalarFilterConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.config = config or ScalarFilterConfig()
        self.metrics = metrics or get_metrics()

        self._lat = 0.0
        self._lng = 0.0
        self._vel_lat = 0.0
        self._vel_lng = 0.0
        self._var_lat = -1.0
        self._var_lng = -1.0
        self._last_timestamp = 0

    def is_initialized(self) -> bool:
        """Check if the filter has taken its first measurement."""
        return self._var_lat >= 0

    def predict(self, timestamp_millis: int):
        """
        Advance the estimate to timestamp_millis using the current velocity.

        Args:
            timestamp_millis: Prediction time (epoch ms)
        """
        if not self.is_initialized():
            self._last_timestamp = timestamp_millis
            return

        dt = (timestamp_millis - self._last_timestamp) / 1000.0
        if dt <= 0 or dt > self.config.max_dt_s:
            # Clock anomaly: resync, no extrapolation
            self._last_timestamp = timestamp_millis
            self.metrics.increment('filter_time_anomalies')
            return

        self._lat += self._vel_lat * dt
        self._lng += self._vel_lng * dt
        self._var_lat += self.config.process_noise * dt
        self._var_lng += self.config.process_noise * dt
        self._last_timestamp = timestamp_millis

    def update(
        self,
        measured_lat: float,
        measured_lng: float,
        accuracy: float,
        timestamp_millis: int
    ):
        """
        Correct the estimate with a measurement.

        Args:
            measured_lat: Measured latitude (deg)
            measured_lng: Measured longitude (deg)
            accuracy: Measurement variance proxy (receiver accuracy, m)
            timestamp_millis: Measurement time (epoch ms)
        """
        if not self.is_initialized():
            self._lat = measured_lat
            self._lng = measured_lng
            self._var_lat = accuracy
            self._var_lng = accuracy
            self._last_timestamp = timestamp_millis
            self.metrics.increment('filter_initialized')
            return

        gain_lat = self._var_lat / (self._var_lat + accuracy)
        gain_lng = self._var_lng / (self._var_lng + accuracy)

        innovation_lat = measured_lat - self._lat
        innovation_lng = measured_lng - self._lng

        self._lat += gain_lat * innovation_lat
        self._lng += gain_lng * innovation_lng

        # Velocity only refreshed on plausible time deltas
        dt = (timestamp_millis - self._last_timestamp) / 1000.0
        if 0 < dt < self.config.max_dt_s:
            self._vel_lat = innovation_lat / dt
            self._vel_lng = innovation_lng / dt

        self._var_lat *= (1 - gain_lat)
        self._var_lng *= (1 - gain_lng)

        floor = accuracy * self.config.variance_floor_ratio
        self._var_lat = max(self._var_lat, floor)
        self._var_lng = max(self._var_lng, floor)

    def decay_confidence(self, rate: Optional[float] = None):
        """
        Inflate both variances by rate, capped at max_variance.

        Args:
            rate: Variance added (default from config)

        Notes:
            - No-op before the first measurement
        """
        if not self.is_initialized():
            return
        if rate is None:
            rate = self.config.default_decay_rate

        self._var_lat = min(self._var_lat + rate, self.config.max_variance)
        self._var_lng = min(self._var_lng + rate, self.config.max_variance)

    def reset(self):
        """Return to the uninitialized state."""
        self._var_lat = -1.0
        self._var_lng = -1.0
        self._vel_lat = 0.0
        self._vel_lng = 0.0
        self._last_timestamp = 0

    @property
    def latitude(self) -> float:
        return self._lat

    @property
    def longitude(self) -> float:
        return self._lng

    @property
    def accuracy(self) -> float:
        """Scalar accuracy (m): mean of the axis variances, at least 1."""
        return max(1.0, (self._var_lat + self._var_lng) / 2)

    @property
    def state(self) -> FilterState:
        """Copy of the internal state."""
        return FilterState(
            lat=self._lat,
            lng=self._lng,
            vel_lat=self._vel_lat,
            vel_lng=self._vel_lng,
            var_lat=self._var_lat,
            var_lng=self._var_lng,
            last_timestamp=self._last_timestamp,
        )


def create_default_filter() -> ScalarPositionFilter:
    """Create a filter with default configuration."""
    return ScalarPositionFilter(ScalarFilterConfig())
