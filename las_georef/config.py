"""Configuration loader for the georeferencing conversion.

Reads a YAML file with ``files``, ``lidar`` and ``time`` sections. Keys keep
the names of the older flat converter config (``lidar_yaw`` became
``lidar.yaw``, ``line_id`` stays ``line_id``) and so do the defaults.
"""
import os
import yaml
import numpy as np
from dataclasses import dataclass, field


@dataclass
class ConversionConfig:
    """Full conversion configuration."""
    # Files, relative to data_dir
    data_dir: str = "."
    pose_file: str = "pose.txt"
    points_file: str = "points.las"
    cloud_out: str = "outcloud.las"
    split_channels: bool = False

    # LiDAR-to-IMU extrinsics (degrees, meters)
    lidar_yaw: float = 180.0
    lidar_pitch: float = 0.0
    lidar_roll: float = 90.0
    lidar_translation: np.ndarray = field(
        default_factory=lambda: np.array([0.047, 0.1209, 0.02571]))

    # Point filters
    min_distance: float = 1.5
    line_ids: list = field(default_factory=list)

    # Time window (seconds)
    time_delay: float = 30.0
    time_period: float = 80.0
    time_offset: float = 0.0

    @property
    def pose_path(self) -> str:
        return os.path.join(self.data_dir, self.pose_file)

    @property
    def points_path(self) -> str:
        return os.path.join(self.data_dir, self.points_file)

    @property
    def output_path(self) -> str:
        return os.path.join(self.data_dir, self.cloud_out)

    @property
    def time_offset_ns(self) -> int:
        return int(round(self.time_offset * 1e9))

    def channel_output_path(self, channel_id: int) -> str:
        """Output path of one channel when ``split_channels`` is set."""
        stem, ext = os.path.splitext(self.output_path)
        return f"{stem}_{channel_id}{ext or '.las'}"


def load_config(yaml_path: str) -> ConversionConfig:
    """Load configuration from a YAML file.

    Missing sections and keys fall back to the dataclass defaults.
    """
    with open(yaml_path, 'r') as f:
        cfg = yaml.safe_load(f) or {}

    cc = ConversionConfig()

    # Files
    files = cfg.get('files', {})
    cc.data_dir = files.get('data_dir', cc.data_dir)
    cc.pose_file = files.get('pose_file', cc.pose_file)
    cc.points_file = files.get('points_file', cc.points_file)
    cc.cloud_out = files.get('cloud_out', cc.cloud_out)
    cc.split_channels = files.get('split_channels', cc.split_channels)

    # LiDAR extrinsics and point filters
    lidar = cfg.get('lidar', {})
    cc.lidar_yaw = float(lidar.get('yaw', cc.lidar_yaw))
    cc.lidar_pitch = float(lidar.get('pitch', cc.lidar_pitch))
    cc.lidar_roll = float(lidar.get('roll', cc.lidar_roll))
    cc.lidar_translation = np.array([
        lidar.get('x', cc.lidar_translation[0]),
        lidar.get('y', cc.lidar_translation[1]),
        lidar.get('z', cc.lidar_translation[2]),
    ], dtype=np.float64)
    cc.min_distance = float(lidar.get('min_distance', cc.min_distance))
    line_id = lidar.get('line_id', None)
    if line_id is not None:
        cc.line_ids = [int(i) for i in line_id]

    # Time window
    time_cfg = cfg.get('time', {})
    cc.time_delay = float(time_cfg.get('lidar_delay', cc.time_delay))
    cc.time_period = float(time_cfg.get('lidar_period', cc.time_period))
    cc.time_offset = float(time_cfg.get('lidar_time_offset', cc.time_offset))

    return cc
