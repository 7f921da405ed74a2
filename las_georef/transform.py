"""Rigid transforms between the sensor, body and world frames.

The Euler conventions below match the existing pose feed and mounting data; they
are not the textbook yaw-pitch-roll order and must not be reordered.
"""
import numpy as np
from dataclasses import dataclass, field
from scipy.spatial.transform import Rotation

from .types import PoseSample


@dataclass
class RigidTransform:
    """Rotation plus translation: p' = rotation @ p + translation."""
    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    @classmethod
    def from_pose(cls, pose: PoseSample) -> 'RigidTransform':
        """Body-to-world transform of an (interpolated) pose sample."""
        return cls(
            rotation=Rotation.from_quat(pose.orientation).as_matrix(),
            translation=np.asarray(pose.position, dtype=np.float64),
        )

    def compose(self, other: 'RigidTransform') -> 'RigidTransform':
        """self ∘ other: apply ``other`` first, then ``self``."""
        return RigidTransform(
            rotation=self.rotation @ other.rotation,
            translation=self.rotation @ other.translation + self.translation,
        )

    def apply(self, point: np.ndarray) -> np.ndarray:
        return self.rotation @ np.asarray(point, dtype=np.float64) + self.translation


def build_sensor_to_body(yaw_deg: float, pitch_deg: float, roll_deg: float,
                         translation) -> RigidTransform:
    """Fixed LiDAR-to-IMU transform from configured angles (degrees).

    R = AngleAxis(roll, X) * AngleAxis(pitch, Y) * AngleAxis(yaw, Z)
    """
    rot = Rotation.from_euler(
        'XYZ', [roll_deg, pitch_deg, yaw_deg], degrees=True)
    return RigidTransform(
        rotation=rot.as_matrix(),
        translation=np.asarray(translation, dtype=np.float64).flatten(),
    )


def quaternion_from_euler_columns(yaw_deg: float, pitch_deg: float,
                                  roll_deg: float) -> np.ndarray:
    """Orientation of a pose-file row as quaternion [qx, qy, qz, qw].

    The feed's pitch column rotates about X, its roll column about Y, and
    yaw is negated: q = Rz(-yaw) * Ry(roll) * Rx(pitch).
    """
    rot = Rotation.from_euler(
        'ZYX', [-yaw_deg, roll_deg, pitch_deg], degrees=True)
    return rot.as_quat()


def apply_transform(point: np.ndarray, body_pose: PoseSample,
                    sensor_to_body: RigidTransform) -> np.ndarray:
    """Map a sensor-frame point into the world frame.

    p_world = R_wb @ (R_bs @ p + t_bs) + t_wb
    """
    body_to_world = RigidTransform.from_pose(body_pose)
    return body_to_world.compose(sensor_to_body).apply(point)
