"""Pose trajectory: loading from the text pose file and interpolation.

Samples live in one owned list; a forward-only cursor marks the front of the
still-usable part. Queries must come with non-decreasing timestamps, which is
what lets a whole point file be georeferenced in a single pass.
"""
import numpy as np
from scipy.spatial.transform import Rotation, Slerp

from .errors import EmptyTrajectoryError
from .transform import quaternion_from_euler_columns
from .types import PoseSample

# Brackets wider than this are trajectory gaps: no pose, never extrapolate.
MAX_BRACKET_GAP_NS = 50_000_000


def parse_pose_line(line: str):
    """Parse one pose-file row into a PoseSample.

    Row layout: ``timestamp_s x y z yaw_deg pitch_deg roll_deg``.
    Returns None for comments, headers and malformed rows.
    """
    if not line or line[0] == '#' or not line[0].isdigit():
        return None
    fields = line.split()
    if len(fields) < 7:
        return None
    try:
        ts, x, y, z, yaw, pitch, roll = (float(v) for v in fields[:7])
    except ValueError:
        return None
    return PoseSample(
        timestamp=int(round(ts * 1e9)),
        position=np.array([x, y, z], dtype=np.float64),
        orientation=quaternion_from_euler_columns(yaw, pitch, roll),
    )


class PoseTrajectoryStore:
    """Ordered pose samples with a monotonic interpolation cursor."""

    def __init__(self):
        self.samples = []
        self.cursor = 0
        self.world_offset = np.zeros(3)
        self._slerp_cursor = -1
        self._slerp = None

    def __len__(self):
        return len(self.samples)

    @property
    def remaining(self) -> int:
        """Samples at or ahead of the cursor."""
        return len(self.samples) - self.cursor

    @property
    def start_time(self) -> int:
        return self.samples[0].timestamp

    def load(self, lines, source: str = "<pose records>"):
        """Load pose rows, replacing any previously loaded trajectory.

        The last parsed row is dropped since it may be truncated. The first
        remaining sample fixes the world offset for the whole run.

        Raises:
            EmptyTrajectoryError: no usable sample is left.
        """
        samples = []
        for line in lines:
            sample = parse_pose_line(line)
            if sample is not None:
                samples.append(sample)
        if samples:
            samples.pop()
        if not samples:
            raise EmptyTrajectoryError(source, "no usable pose samples")

        self.samples = samples
        self.cursor = 0
        self._slerp_cursor = -1
        self._slerp = None
        self.world_offset = samples[0].position.copy()
        print(f"[Trajectory] Found {len(samples)} poses in {source}")
        return self

    def load_file(self, pose_path: str):
        """Load a pose text file.

        Undecodable bytes are replaced, so such rows fall through as
        malformed instead of aborting the load.
        """
        try:
            with open(pose_path, 'r', errors='replace') as f:
                return self.load(f, source=pose_path)
        except OSError as e:
            raise EmptyTrajectoryError(pose_path, f"cannot read ({e})") from e

    def time_window(self, delay_s: float, period_s: float):
        """(time_min, time_max) in ns, counted from the first pose sample."""
        time_min = self.start_time + int(round(delay_s * 1e9))
        time_max = time_min + int(round(period_s * 1e9))
        return time_min, time_max

    def query_interpolated(self, timestamp: int):
        """Interpolated pose at ``timestamp`` (ns), or None.

        Advances the cursor past every sample whose successor is not later
        than the query, so the front sample and its successor bracket it.
        """
        samples = self.samples
        last = len(samples) - 1
        while self.cursor < last and samples[self.cursor + 1].timestamp <= timestamp:
            self.cursor += 1

        if self.cursor >= last:
            return None
        front = samples[self.cursor]
        nxt = samples[self.cursor + 1]
        if front.timestamp > timestamp:
            return None
        gap = nxt.timestamp - front.timestamp
        if gap >= MAX_BRACKET_GAP_NS:
            return None

        t = (timestamp - front.timestamp) / gap
        position = front.position + t * (nxt.position - front.position)
        return PoseSample(
            timestamp=timestamp,
            position=position,
            orientation=self._bracket_slerp()([t]).as_quat()[0],
        )

    def _bracket_slerp(self) -> Slerp:
        # Many points share one bracket; rebuild only when the cursor moved.
        if self._slerp_cursor != self.cursor:
            pair = self.samples[self.cursor:self.cursor + 2]
            self._slerp = Slerp(
                [0.0, 1.0],
                Rotation.from_quat(np.vstack([s.orientation for s in pair])))
            self._slerp_cursor = self.cursor
        return self._slerp
