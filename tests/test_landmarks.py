import math

import pytest

from bodypose_app.types import BODY_JOINTS, ImagePoint, Joint, JointObservation, NormalizedPoint, RecognizedPoint
from bodypose_app.vision.landmarks import LandmarkExtractor, image_point_for_normalized_point

from conftest import observation


@pytest.fixture
def extractor():
    return LandmarkExtractor()


def test_body_joint_list_is_fixed():
    assert len(BODY_JOINTS) == 19
    assert BODY_JOINTS[0] is Joint.NOSE
    assert BODY_JOINTS[7] is Joint.NECK
    assert BODY_JOINTS[14] is Joint.ROOT
    assert BODY_JOINTS[-1] is Joint.RIGHT_ANKLE


def test_confidence_at_threshold_is_excluded(extractor):
    obs = observation(nose=(0.5, 0.5, 0.5), left_eye=(0.5, 0.5, 0.51))
    points = extractor.extract([obs], 640, 480)
    assert points == [ImagePoint(320.0, 240.0)]


@pytest.mark.parametrize("confidence", [0.0, 0.1, 0.49, 0.5])
def test_low_confidence_never_appears(extractor, confidence):
    obs = observation(nose=(0.1, 0.9, confidence), right_ankle=(0.0, 0.0, confidence))
    assert extractor.extract([obs], 640, 480) == []


def test_output_follows_joint_order_not_input_order(extractor):
    # Inserted in reverse of the canonical order
    obs = observation(
        right_ankle=(0.75, 0.25, 0.9),
        neck=(0.5, 0.5, 0.9),
        nose=(0.25, 0.75, 0.9),
    )
    points = extractor.extract([obs], 100, 100)
    assert points == [
        ImagePoint(25.0, 25.0),  # nose
        ImagePoint(50.0, 50.0),  # neck
        ImagePoint(75.0, 75.0),  # right ankle
    ]


def test_normalized_corners_map_to_pixel_corners(extractor):
    origin = extractor.extract([observation(nose=(0.0, 0.0, 1.0))], 640, 480)
    far = extractor.extract([observation(nose=(1.0, 1.0, 1.0))], 640, 480)
    assert origin == [ImagePoint(0.0, 480.0)]
    assert far == [ImagePoint(640.0, 0.0)]


def test_image_point_for_normalized_point():
    assert image_point_for_normalized_point(NormalizedPoint(0.25, 0.75), 200, 100) == (50.0, 25.0)


def test_points_accumulate_across_observations(extractor):
    first = observation(nose=(0.0, 1.0, 0.9), left_wrist=(0.5, 0.5, 0.2))
    second = observation(nose=(1.0, 0.0, 0.9))
    points = extractor.extract([first, second], 10, 10)
    assert points == [ImagePoint(0.0, 0.0), ImagePoint(10.0, 10.0)]


def test_absent_joints_are_omitted(extractor):
    obs = observation(left_knee=(0.5, 0.5, 0.8))
    assert len(extractor.extract([obs], 640, 480)) == 1


def test_no_observations(extractor):
    assert extractor.extract([], 640, 480) == []
    assert extractor.extract([JointObservation()], 640, 480) == []


def test_full_observation_yields_all_joints(extractor):
    obs = JointObservation(
        {joint: RecognizedPoint(NormalizedPoint(0.5, 0.5), 0.9) for joint in BODY_JOINTS}
    )
    assert len(extractor.extract([obs], 640, 480)) == 19


def test_malformed_entries_are_omitted(extractor):
    obs = JointObservation(
        {
            Joint.NOSE: RecognizedPoint(NormalizedPoint(0.5, 0.5), None),
            Joint.NECK: RecognizedPoint(NormalizedPoint(0.5, 0.5), math.nan),
            Joint.ROOT: RecognizedPoint(NormalizedPoint(0.5, 0.5), 0.9),
        }
    )
    assert extractor.extract([obs, None], 100, 100) == [ImagePoint(50.0, 50.0)]


def test_custom_threshold():
    extractor = LandmarkExtractor(confidence_threshold=0.8)
    obs = observation(nose=(0.5, 0.5, 0.7), neck=(0.5, 0.5, 0.81))
    assert len(extractor.extract([obs], 10, 10)) == 1
