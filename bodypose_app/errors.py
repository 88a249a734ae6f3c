"""
Error taxonomy for the detection pipeline.

Only capture and inference-adjacent steps raise these; the extractor and the
coordinate mapper never fail. The pipeline converts every raised error into a
single `Failure` value on the publish channel.
"""

from typing import Optional

from bodypose_app.types import ErrorKind, Failure


class PoseStreamError(Exception):
    """Base class for pipeline errors."""

    kind: ErrorKind = ErrorKind.ACQUISITION

    def to_failure(self) -> Failure:
        """Wrap this error as a publishable failure."""
        return Failure(kind=self.kind, message=str(self), error=self)


class AcquisitionError(PoseStreamError):
    """Frame source or capture device could not be configured."""

    kind = ErrorKind.ACQUISITION


class EngineSetupError(PoseStreamError):
    """Inference engine rejected the configured frame dimensions."""

    kind = ErrorKind.ENGINE_SETUP


class EngineInferenceError(PoseStreamError):
    """A single inference call failed."""

    kind = ErrorKind.ENGINE_INFERENCE


class BufferUnavailableError(PoseStreamError):
    """A delivered frame had no accessible pixel data."""

    kind = ErrorKind.BUFFER_UNAVAILABLE

    def __init__(self, message: str = "Frame pixel buffer unavailable", frame_index: Optional[int] = None):
        super().__init__(message)
        self.frame_index = frame_index
