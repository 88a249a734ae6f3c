"""
Confidence-filtered landmark extraction.

Converts engine observations (normalized, origin bottom-left) into frame pixel
coordinates (origin top-left).
"""

from typing import Iterable, List, Sequence

from bodypose_app.types import BODY_JOINTS, ImagePoint, Joint, JointObservation, NormalizedPoint

DEFAULT_CONFIDENCE_THRESHOLD = 0.5


def image_point_for_normalized_point(
    location: NormalizedPoint, frame_width: float, frame_height: float
) -> ImagePoint:
    """Map a bottom-left normalized point to top-left pixel coordinates."""
    return ImagePoint(
        float(location.x) * float(frame_width),
        (1.0 - float(location.y)) * float(frame_height),
    )


class LandmarkExtractor:
    """
    Filters observations to the fixed body joint list.

    Joints at or below the confidence threshold, or missing from an
    observation, are omitted. Points are accumulated observation by
    observation, each in `joints` order.
    """

    def __init__(
        self,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        joints: Sequence[Joint] = BODY_JOINTS,
    ):
        self.confidence_threshold = float(confidence_threshold)
        self.joints = tuple(joints)

    def extract(
        self,
        observations: Iterable[JointObservation],
        frame_width: float,
        frame_height: float,
    ) -> List[ImagePoint]:
        points: List[ImagePoint] = []
        for observation in observations:
            if observation is None:
                continue
            for joint in self.joints:
                recognized = observation.get(joint)
                if recognized is None:
                    continue
                try:
                    confidence = float(recognized.confidence)
                    location = NormalizedPoint(*recognized.location)
                except (TypeError, ValueError):
                    continue
                # NaN confidence fails this comparison too
                if not confidence > self.confidence_threshold:
                    continue
                points.append(image_point_for_normalized_point(location, frame_width, frame_height))
        return points

    __call__ = extract
