"""Point record source and sink, with LAS implementations built on laspy.

The pipeline only sees ``PointSource`` (an iterable of RawPoint with a known
total) and ``PointSink`` (``write_point`` + ``finalize``), so the pose and
transform logic never touches the file format.
"""
import os

import laspy
import numpy as np
from laspy.errors import LaspyException

from .errors import InputUnavailableError, OutputUnavailableError
from .types import RawPoint, SinkMetadata, TransformedPoint

# Fixed record layout: x, y, z, intensity, point_source_id, gps_time (28 bytes)
POINT_FORMAT = 1
LAS_VERSION = "1.2"
LAS_SCALES = (0.001, 0.001, 0.001)


class PointSource:
    """Ordered stream of sensor-frame points."""
    total_points = 0

    def __iter__(self):
        raise NotImplementedError

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


class PointSink:
    """Receiver of world-frame points."""

    def write_point(self, point: TransformedPoint):
        raise NotImplementedError

    def finalize(self, metadata: SinkMetadata) -> SinkMetadata:
        """Flush pending points, record count/bounds in ``metadata`` and close."""
        raise NotImplementedError


class LasPointSource(PointSource):
    """Reads point format 1 LAS files chunk by chunk.

    Channel ids come from ``point_source_id`` and capture times from
    ``gps_time``, which the recorder stores as raw nanosecond counts.
    """

    def __init__(self, path: str, chunk_size: int = 100_000):
        self.path = path
        self.chunk_size = chunk_size
        try:
            self._reader = laspy.open(path)
        except (OSError, LaspyException) as e:
            raise InputUnavailableError(path, f"could not open ({e})") from e

        fmt = self._reader.header.point_format.id
        if fmt != POINT_FORMAT:
            self._reader.close()
            raise InputUnavailableError(
                path, f"point format {fmt} not supported, expected {POINT_FORMAT}")
        self.total_points = self._reader.header.point_count

    def __iter__(self):
        chunks = self._reader.chunk_iterator(self.chunk_size)
        while True:
            try:
                chunk = next(chunks, None)
            except (OSError, ValueError, LaspyException) as e:
                # Truncated or corrupt point records
                raise InputUnavailableError(self.path, f"read failed ({e})") from e
            if chunk is None:
                return
            xs = np.asarray(chunk.x, dtype=np.float64)
            ys = np.asarray(chunk.y, dtype=np.float64)
            zs = np.asarray(chunk.z, dtype=np.float64)
            intensity = np.asarray(chunk.intensity).astype(np.uint8)
            channel = np.asarray(chunk.point_source_id).astype(np.uint8)
            gps_time = np.asarray(chunk.gps_time, dtype=np.float64)
            for i in range(len(xs)):
                yield RawPoint(
                    x=float(xs[i]), y=float(ys[i]), z=float(zs[i]),
                    intensity=int(intensity[i]),
                    channel_id=int(channel[i]),
                    timestamp=int(gps_time[i]),
                )

    def close(self):
        self._reader.close()


class LasPointSink(PointSink):
    """Writes world-frame points to a LAS 1.2 / format 1 file.

    Coordinates are stored with millimetre scales around ``offsets``, which
    the conversion sets to the trajectory's world offset.
    """

    def __init__(self, path: str, offsets, scales=LAS_SCALES,
                 chunk_size: int = 50_000):
        self.path = path
        self.chunk_size = chunk_size
        self.header = laspy.LasHeader(point_format=POINT_FORMAT, version=LAS_VERSION)
        self.header.scales = np.asarray(scales, dtype=np.float64)
        self.header.offsets = np.asarray(offsets, dtype=np.float64)
        try:
            out_dir = os.path.dirname(path)
            if out_dir:
                os.makedirs(out_dir, exist_ok=True)
            self._writer = laspy.open(path, mode="w", header=self.header)
        except (OSError, LaspyException) as e:
            raise OutputUnavailableError(path, f"could not open ({e})") from e

        self._buffer = []
        self.point_count = 0
        self.mins = None
        self.maxs = None

    def write_point(self, point: TransformedPoint):
        self._buffer.append((point.x, point.y, point.z, point.intensity,
                             point.channel_id, point.gps_time))
        if len(self._buffer) >= self.chunk_size:
            self._flush()

    def _flush(self):
        if not self._buffer:
            return
        data = np.array(self._buffer, dtype=np.float64)
        self._buffer = []

        record = laspy.ScaleAwarePointRecord.zeros(len(data), header=self.header)
        record.x = data[:, 0]
        record.y = data[:, 1]
        record.z = data[:, 2]
        record.intensity = data[:, 3].astype(np.uint16)
        record.point_source_id = data[:, 4].astype(np.uint16)
        record.gps_time = data[:, 5]
        self._writer.write_points(record)

        xyz = data[:, :3]
        chunk_min, chunk_max = xyz.min(axis=0), xyz.max(axis=0)
        self.mins = chunk_min if self.mins is None else np.minimum(self.mins, chunk_min)
        self.maxs = chunk_max if self.maxs is None else np.maximum(self.maxs, chunk_max)
        self.point_count += len(data)

    def finalize(self, metadata: SinkMetadata) -> SinkMetadata:
        self._flush()
        # laspy rewrites the header (point count, bounds) on close
        self._writer.close()
        metadata.scales = np.asarray(self.header.scales)
        metadata.offsets = np.asarray(self.header.offsets)
        metadata.point_count = self.point_count
        metadata.mins = self.mins
        metadata.maxs = self.maxs
        return metadata
