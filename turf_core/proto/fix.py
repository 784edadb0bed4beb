"""
Position Fix Schema.

Defines the single record type that flows through the conditioning pipeline:
raw fixes from the location provider and conditioned fixes produced by the
SignalConditioner share the same shape.
"""

from dataclasses import dataclass, replace
from typing import Optional, Tuple
from enum import Enum


LatLng = Tuple[float, float]


class FixSource(Enum):
    """Origin of a fix."""

    RAW = "raw"                # Straight from the receiver
    FILTERED = "filtered"      # Scalar filter estimate
    STATIONARY = "stationary"  # Frozen by stationary lock


@dataclass(frozen=True)
class Fix:
    """
    One geographic position report.

    Attributes:
        latitude: Latitude in degrees
        longitude: Longitude in degrees
        accuracy_meters: Horizontal accuracy radius (m), None if the receiver
            did not report one
        timestamp_millis: Fix time in epoch milliseconds
        bearing: Bearing in degrees [0, 360), if known
        source: Where this fix came from

    Notes:
        - Timestamps are expected non-decreasing; duplicates are tolerated
        - accuracy_meters must be >= 0 when present
    """

    latitude: float
    longitude: float
    accuracy_meters: Optional[float]
    timestamp_millis: int
    bearing: Optional[float] = None
    source: FixSource = FixSource.RAW

    def __post_init__(self):
        """Validate fix."""
        if self.accuracy_meters is not None and self.accuracy_meters < 0:
            raise ValueError(f"Accuracy cannot be negative: {self.accuracy_meters}")

    @property
    def position(self) -> LatLng:
        """Get (lat, lng) pair."""
        return (self.latitude, self.longitude)

    @property
    def has_accuracy(self) -> bool:
        """Check if the receiver reported an accuracy value."""
        return self.accuracy_meters is not None

    @property
    def is_stationary(self) -> bool:
        """Check if this fix was frozen by the stationary lock."""
        return self.source == FixSource.STATIONARY

    def restamped(self, timestamp_millis: int) -> 'Fix':
        """Copy of this fix carrying a new timestamp."""
        return replace(self, timestamp_millis=timestamp_millis)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            'latitude': self.latitude,
            'longitude': self.longitude,
            'accuracy': self.accuracy_meters,
            'timestamp': self.timestamp_millis,
            'bearing': self.bearing,
            'source': self.source.value,
        }
