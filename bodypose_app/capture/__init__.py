"""Frame sources."""

from bodypose_app.capture.source import CameraFrameSource, FrameSource

__all__ = ["FrameSource", "CameraFrameSource"]
