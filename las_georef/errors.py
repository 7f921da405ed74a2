"""Fatal conversion errors.

Each one names the collaborator that failed. They are raised while a
conversion is being set up, or when the point file turns out unreadable
part way through, and are turned into a ``ConversionResult`` by
``pipeline.convert``; per-point problems never surface here.
"""


class ConversionError(Exception):
    """Base class for errors that abort a conversion."""
    collaborator = "conversion"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"{self.collaborator} {path}: {reason}")


class EmptyTrajectoryError(ConversionError):
    """The pose file yielded no usable sample."""
    collaborator = "pose file"


class InputUnavailableError(ConversionError):
    """The point file could not be opened, has an unsupported point format,
    or its records could not be read."""
    collaborator = "input"


class OutputUnavailableError(ConversionError):
    """The output file could not be opened for writing."""
    collaborator = "output"
