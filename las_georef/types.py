"""Data structures shared by the georeferencing pipeline.

Timestamps are integer nanoseconds everywhere except ``TransformedPoint.gps_time``,
which is written to the LAS file in seconds.
"""
import numpy as np
from dataclasses import dataclass, field


@dataclass
class PoseSample:
    """Vehicle body pose in the world frame at one instant.

    Orientation is a unit quaternion in scipy order [qx, qy, qz, qw].
    """
    timestamp: int = 0
    position: np.ndarray = field(default_factory=lambda: np.zeros(3))
    orientation: np.ndarray = field(
        default_factory=lambda: np.array([0.0, 0.0, 0.0, 1.0]))


@dataclass
class RawPoint:
    """Sensor-frame point as read from the input LAS file."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    intensity: int = 0
    channel_id: int = 0
    timestamp: int = 0


@dataclass
class TransformedPoint:
    """World-frame point handed to the output sink."""
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    intensity: int = 0
    channel_id: int = 0
    gps_time: float = 0.0


@dataclass
class SinkMetadata:
    """Per-run metadata used to finalize the output header."""
    scales: np.ndarray = field(default_factory=lambda: np.full(3, 0.001))
    offsets: np.ndarray = field(default_factory=lambda: np.zeros(3))
    point_count: int = 0
    mins: np.ndarray = None
    maxs: np.ndarray = None


@dataclass
class ConversionStats:
    """Running counters of one conversion pass."""
    too_close: int = 0
    out_of_window: int = 0
    no_pose: int = 0
    accepted: int = 0
    skipped_channel: int = 0
    time_regressions: int = 0
    index: int = 0
    stopped_early: bool = False

    @property
    def bucketed(self) -> int:
        """Points that ended in a rejection bucket or were accepted."""
        return self.accepted + self.too_close + self.out_of_window + self.no_pose
