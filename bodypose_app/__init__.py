"""
Body Pose Overlay

Real-time body pose detection that turns a live camera stream into a
deduplicated stream of 2D joint positions in view coordinates.

Features:
- 19-joint body landmark extraction with confidence filtering
- Aspect-fill mapping from sensor space to portrait view space
- Latest-frame-only inference scheduling (no frame queueing)
- Change-suppressed publishing to any number of subscribers
- Pluggable frame sources and pose engines (OpenCV, MediaPipe)

License: MIT
"""

__version__ = "1.0.0"
__author__ = "Body Pose Overlay Contributors"

__all__ = ["__version__"]
