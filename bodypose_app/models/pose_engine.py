"""
Pose inference engines.

The pipeline only depends on the `PoseInferenceEngine` contract. The MediaPipe
adapter is the default backend; its import is deferred so the rest of the
package works without MediaPipe installed.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

import cv2

from bodypose_app.errors import EngineInferenceError, EngineSetupError
from bodypose_app.types import Frame, Joint, JointObservation, NormalizedPoint, RecognizedPoint
from bodypose_app.vision.orientation import apply_orientation

logger = logging.getLogger(__name__)


class PoseInferenceEngine(ABC):
    """
    Model adapter interface.

    `setup` is called once with the frame dimensions before any `infer` call.
    `infer` runs on the pipeline's inference worker, one call at a time.
    """

    @abstractmethod
    def name(self) -> str: ...

    @abstractmethod
    def setup(self, frame_width: int, frame_height: int) -> None:
        """Prepare for frames of the given size. Raises EngineSetupError."""

    @abstractmethod
    def infer(self, frame: Frame) -> List[JointObservation]:
        """Detect bodies in a frame. Raises EngineInferenceError."""

    def close(self) -> None:
        """Release model resources."""


# BlazePose landmark indices
_BLAZEPOSE_INDEX: Dict[Joint, int] = {
    Joint.NOSE: 0,
    Joint.LEFT_EYE: 2,
    Joint.RIGHT_EYE: 5,
    Joint.LEFT_EAR: 7,
    Joint.RIGHT_EAR: 8,
    Joint.LEFT_SHOULDER: 11,
    Joint.RIGHT_SHOULDER: 12,
    Joint.LEFT_ELBOW: 13,
    Joint.RIGHT_ELBOW: 14,
    Joint.LEFT_WRIST: 15,
    Joint.RIGHT_WRIST: 16,
    Joint.LEFT_HIP: 23,
    Joint.RIGHT_HIP: 24,
    Joint.LEFT_KNEE: 25,
    Joint.RIGHT_KNEE: 26,
    Joint.LEFT_ANKLE: 27,
    Joint.RIGHT_ANKLE: 28,
}

# Joints BlazePose does not report, synthesized as midpoints
_MIDPOINT_JOINTS = {
    Joint.NECK: (Joint.LEFT_SHOULDER, Joint.RIGHT_SHOULDER),
    Joint.ROOT: (Joint.LEFT_HIP, Joint.RIGHT_HIP),
}


def _clamp(value: float) -> float:
    return min(1.0, max(0.0, value))


def observation_from_landmarks(landmarks: Sequence) -> JointObservation:
    """
    Convert BlazePose landmarks to a joint observation.

    MediaPipe reports normalized coordinates with a top-left origin and a
    per-landmark `visibility`; the y axis is flipped to a bottom-left origin
    and visibility is used as confidence.
    """
    points: Dict[Joint, RecognizedPoint] = {}
    for joint, idx in _BLAZEPOSE_INDEX.items():
        if idx >= len(landmarks):
            continue
        lm = landmarks[idx]
        points[joint] = RecognizedPoint(
            location=NormalizedPoint(_clamp(float(lm.x)), _clamp(1.0 - float(lm.y))),
            confidence=float(getattr(lm, "visibility", 0.0) or 0.0),
        )

    for joint, (a, b) in _MIDPOINT_JOINTS.items():
        pa, pb = points.get(a), points.get(b)
        if pa is None or pb is None:
            continue
        points[joint] = RecognizedPoint(
            location=NormalizedPoint(
                (pa.location.x + pb.location.x) / 2.0,
                (pa.location.y + pb.location.y) / 2.0,
            ),
            confidence=min(pa.confidence, pb.confidence),
        )

    # Keep the canonical joint order
    return JointObservation({j: points[j] for j in Joint if j in points})


class MediaPipePoseEngine(PoseInferenceEngine):
    """
    MediaPipe Pose backend (single subject).

    Frames are converted to RGB and rotated upright according to their
    orientation before inference.
    """

    def __init__(
        self,
        model_complexity: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        self.model_complexity = model_complexity
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence

        self._pose = None
        self.frame_size: Optional[tuple] = None

    def name(self) -> str:
        return "mediapipe_pose"

    def setup(self, frame_width: int, frame_height: int) -> None:
        if frame_width <= 0 or frame_height <= 0:
            raise EngineSetupError(f"Invalid frame size: {frame_width}x{frame_height}")

        try:
            import mediapipe as mp
        except ImportError as e:
            raise EngineSetupError(
                "MediaPipe is not installed. Please install it with: pip install mediapipe"
            ) from e

        logger.info(f"Loading MediaPipe Pose (complexity={self.model_complexity})")
        try:
            self._pose = mp.solutions.pose.Pose(
                static_image_mode=False,
                model_complexity=int(self.model_complexity),
                enable_segmentation=False,
                smooth_landmarks=False,
                min_detection_confidence=float(self.min_detection_confidence),
                min_tracking_confidence=float(self.min_tracking_confidence),
            )
        except Exception as e:
            raise EngineSetupError(f"Failed to create MediaPipe Pose: {e}") from e

        self.frame_size = (frame_width, frame_height)
        logger.info(f"✓ Pose engine ready for {frame_width}x{frame_height} frames")

    def infer(self, frame: Frame) -> List[JointObservation]:
        if self._pose is None:
            raise EngineInferenceError("Engine used before setup")

        try:
            image = frame.buffer
            if frame.pixel_format == "bgr":
                image = cv2.cvtColor(image, cv2.COLOR_BGR2RGB)
            image = apply_orientation(image, frame.orientation)
            results = self._pose.process(image)
        except Exception as e:
            raise EngineInferenceError(f"Pose inference failed: {e}") from e

        if not results or not getattr(results, "pose_landmarks", None):
            return []
        return [observation_from_landmarks(results.pose_landmarks.landmark)]

    def close(self) -> None:
        if self._pose is not None:
            self._pose.close()
            self._pose = None


def create_engine(backend: str = "mediapipe", **kwargs) -> PoseInferenceEngine:
    """Create a pose engine by backend name."""
    if backend == "mediapipe":
        return MediaPipePoseEngine(**kwargs)
    raise ValueError(f"Unknown pose backend: {backend}")
