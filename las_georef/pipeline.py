"""Single-pass georeferencing: filter, interpolate, transform, write.

``PointStreamProcessor`` is the per-point state machine; ``convert`` wires it
to a pose file, a LAS input and a LAS output.
"""
import time
import numpy as np
from dataclasses import dataclass, field

from .config import ConversionConfig
from .errors import ConversionError
from .las_io import LasPointSink, LasPointSource, PointSink, PointSource
from .trajectory import PoseTrajectoryStore
from .transform import RigidTransform, apply_transform, build_sensor_to_body
from .types import ConversionStats, SinkMetadata, TransformedPoint

PROGRESS_EVERY = 10000


def no_progress(percent: int):
    pass


class PointStreamProcessor:
    """Georeferences an ordered point stream in one forward pass.

    Per point, in order: proximity filter, channel filter, time window
    (which may stop the stream), pose lookup, then transform and write.
    """

    def __init__(self, source: PointSource, sink: PointSink,
                 trajectory: PoseTrajectoryStore,
                 sensor_to_body: RigidTransform,
                 min_distance: float, line_ids,
                 time_min: int, time_max: int, time_offset_ns: int = 0,
                 progress=None):
        self.source = source
        self.sink = sink
        self.trajectory = trajectory
        self.sensor_to_body = sensor_to_body
        self.min_distance = min_distance
        self.line_ids = frozenset(line_ids)
        self.time_min = time_min
        self.time_max = time_max
        self.time_offset_ns = time_offset_ns
        self.progress = progress or no_progress
        self.stats = ConversionStats()

    def run(self) -> ConversionStats:
        stats = self.stats
        total = self.source.total_points or 0
        last_time = None

        for point in self.source:
            if abs(point.x) + abs(point.y) + abs(point.z) < self.min_distance:
                stats.too_close += 1
                continue

            if point.channel_id in self.line_ids:
                timestamp = point.timestamp + self.time_offset_ns
                if timestamp >= self.time_max:
                    # Timestamps are ordered: nothing later can be in the window
                    stats.stopped_early = True
                    break
                if timestamp <= self.time_min:
                    stats.out_of_window += 1
                    continue

                pose = self.trajectory.query_interpolated(timestamp)
                if pose is None:
                    stats.no_pose += 1
                    continue

                if last_time is not None and timestamp < last_time:
                    if stats.time_regressions == 0:
                        print(f"[Convert] WARNING: point time went backwards "
                              f"at {timestamp} ns")
                    stats.time_regressions += 1

                world = apply_transform(
                    np.array([point.x, point.y, point.z]), pose,
                    self.sensor_to_body)
                self.sink.write_point(TransformedPoint(
                    x=float(world[0]), y=float(world[1]), z=float(world[2]),
                    intensity=point.intensity,
                    channel_id=point.channel_id,
                    gps_time=timestamp * 1e-9,
                ))
                stats.accepted += 1
                last_time = timestamp
            else:
                stats.skipped_channel += 1

            # Channel-skipped and accepted points both advance the index
            stats.index += 1
            if total and stats.index % PROGRESS_EVERY == 0:
                self.progress(int(stats.index / total * 100))

        print(f"[Convert] point too close num: {stats.too_close}")
        print(f"[Convert] point not in period: {stats.out_of_window}")
        print(f"[Convert] point without pose : {stats.no_pose}")
        print(f"[Convert] valid points num   : {stats.accepted}")
        if stats.stopped_early:
            print("[Convert] Reached end of time window, stopped reading")
        if stats.time_regressions:
            print(f"[Convert] point time errors  : {stats.time_regressions}")
        return stats


@dataclass
class ConversionResult:
    """Outcome of one output file of a conversion run."""
    ok: bool
    output_path: str = ""
    stats: ConversionStats = field(default_factory=ConversionStats)
    metadata: SinkMetadata = None
    error: ConversionError = None


def convert_one(config: ConversionConfig, output_path: str, line_ids,
                progress=None) -> ConversionResult:
    """Run one conversion pass into ``output_path``.

    Fatal collaborator errors are returned in the result, not raised.
    """
    sensor_to_body = build_sensor_to_body(
        config.lidar_yaw, config.lidar_pitch, config.lidar_roll,
        config.lidar_translation)

    try:
        trajectory = PoseTrajectoryStore().load_file(config.pose_path)
        time_min, time_max = trajectory.time_window(
            config.time_delay, config.time_period)

        print(f"[Convert] pose_file:   {config.pose_path}")
        print(f"[Convert] points_file: {config.points_path}")
        print(f"[Convert] out_file:    {output_path}")

        source = LasPointSource(config.points_path)
        try:
            print(f"[Convert] las header points num: {source.total_points}")
            sink = LasPointSink(output_path, offsets=trajectory.world_offset)
        except ConversionError:
            source.close()
            raise
    except ConversionError as e:
        print(f"[Convert] ERROR: {e}")
        return ConversionResult(ok=False, output_path=output_path, error=e)

    processor = PointStreamProcessor(
        source, sink, trajectory, sensor_to_body,
        min_distance=config.min_distance,
        line_ids=line_ids,
        time_min=time_min,
        time_max=time_max,
        time_offset_ns=config.time_offset_ns,
        progress=progress,
    )
    error = None
    try:
        with source:
            processor.run()
    except ConversionError as e:
        print(f"[Convert] ERROR: {e}")
        error = e
    finally:
        # Always leave a valid file behind, holding whatever was written
        metadata = sink.finalize(SinkMetadata(offsets=trajectory.world_offset))
    return ConversionResult(ok=error is None, output_path=output_path,
                            stats=processor.stats, metadata=metadata,
                            error=error)


def convert(config: ConversionConfig, progress=None):
    """Convert the configured point file; returns a list of ConversionResult.

    With ``split_channels`` every configured channel goes to its own file and
    the trajectory is reloaded per file, since its cursor only moves forward.
    A fatal error stops the run after the failing result.
    """
    if config.split_channels:
        jobs = [(config.channel_output_path(i), [i]) for i in config.line_ids]
    else:
        jobs = [(config.output_path, config.line_ids)]

    results = []
    t_start = time.time()
    for output_path, line_ids in jobs:
        result = convert_one(config, output_path, line_ids, progress=progress)
        results.append(result)
        if not result.ok:
            break
    print(f"[Convert] Done in {time.time() - t_start:.1f}s")
    return results
