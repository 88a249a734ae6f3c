"""
Core data types for the body pose detection pipeline.
"""

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, NamedTuple, Optional, Tuple

import numpy as np
from numpy.typing import NDArray


class Joint(Enum):
    """Body joints tracked by the pose model, in extraction order."""

    NOSE = "nose"
    LEFT_EYE = "left_eye"
    RIGHT_EYE = "right_eye"
    LEFT_EAR = "left_ear"
    RIGHT_EAR = "right_ear"
    LEFT_SHOULDER = "left_shoulder"
    RIGHT_SHOULDER = "right_shoulder"
    NECK = "neck"
    LEFT_ELBOW = "left_elbow"
    RIGHT_ELBOW = "right_elbow"
    LEFT_WRIST = "left_wrist"
    RIGHT_WRIST = "right_wrist"
    LEFT_HIP = "left_hip"
    RIGHT_HIP = "right_hip"
    ROOT = "root"
    LEFT_KNEE = "left_knee"
    RIGHT_KNEE = "right_knee"
    LEFT_ANKLE = "left_ankle"
    RIGHT_ANKLE = "right_ankle"


BODY_JOINTS: Tuple[Joint, ...] = tuple(Joint)


class Orientation(IntEnum):
    """EXIF image orientation (values match the TIFF/EXIF tag)."""

    UP = 1
    UP_MIRRORED = 2
    DOWN = 3
    DOWN_MIRRORED = 4
    LEFT_MIRRORED = 5
    RIGHT = 6
    RIGHT_MIRRORED = 7
    LEFT = 8


class DeviceOrientation(Enum):
    """Physical orientation of the capturing device."""

    UNKNOWN = "unknown"
    PORTRAIT = "portrait"
    PORTRAIT_UPSIDE_DOWN = "portrait_upside_down"
    LANDSCAPE_LEFT = "landscape_left"
    LANDSCAPE_RIGHT = "landscape_right"
    FACE_UP = "face_up"
    FACE_DOWN = "face_down"


@dataclass
class Frame:
    """
    A single captured frame.

    `buffer` is None when the source handed back a frame without accessible
    pixel data.
    """

    buffer: Optional[NDArray[np.uint8]]
    width: int
    height: int
    orientation: Orientation = Orientation.UP
    pixel_format: str = "bgr"
    index: int = 0
    timestamp: float = 0.0

    @property
    def has_buffer(self) -> bool:
        return self.buffer is not None and self.buffer.size > 0


class NormalizedPoint(NamedTuple):
    """Location as a fraction of frame size, origin bottom-left."""

    x: float
    y: float


class RecognizedPoint(NamedTuple):
    """A joint location reported by the inference engine."""

    location: NormalizedPoint
    confidence: float


@dataclass(frozen=True)
class JointObservation:
    """Named-joint output of one detected body."""

    points: Dict[Joint, RecognizedPoint] = field(default_factory=dict)

    def get(self, joint: Joint) -> Optional[RecognizedPoint]:
        return self.points.get(joint)

    def __len__(self) -> int:
        return len(self.points)


class ImagePoint(NamedTuple):
    """Point in frame pixel space, origin top-left."""

    x: float
    y: float


class DisplayPoint(NamedTuple):
    """Point in destination view space."""

    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (float(self.x), float(self.y))


class ErrorKind(Enum):
    """Failure categories reported through the detection stream."""

    ACQUISITION = "acquisition"
    ENGINE_SETUP = "engine_setup"
    ENGINE_INFERENCE = "engine_inference"
    BUFFER_UNAVAILABLE = "buffer_unavailable"


class DetectionResult:
    """Base class for values published by the detection pipeline."""

    __slots__ = ()

    @property
    def is_failure(self) -> bool:
        return isinstance(self, Failure)


@dataclass(frozen=True)
class Points(DetectionResult):
    """Ordered display points detected in one frame."""

    points: Tuple[DisplayPoint, ...] = ()

    def __post_init__(self):
        # Normalise any sequence to a tuple so equality is element-wise
        object.__setattr__(self, "points", tuple(DisplayPoint(*p) for p in self.points))

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    def to_list(self) -> list:
        """Convert to a list of (x, y) tuples for renderers."""
        return [p.as_tuple() for p in self.points]


@dataclass(frozen=True)
class Failure(DetectionResult):
    """A failure reported through the detection stream."""

    kind: ErrorKind
    message: str = ""
    error: Optional[BaseException] = field(default=None, compare=False, repr=False)

    def __str__(self) -> str:
        if self.message:
            return f"{self.kind.value}: {self.message}"
        return self.kind.value
