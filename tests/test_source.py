import threading

import cv2
import numpy as np
import pytest

from bodypose_app.capture.source import CameraFrameSource
from bodypose_app.config import CaptureConfig
from bodypose_app.errors import AcquisitionError
from bodypose_app.types import Orientation


class FakeCapture:
    """Stands in for cv2.VideoCapture."""

    def __init__(self, frames=(), opened=True, width=640, height=480, fps=1000.0):
        self.frames = list(frames)
        self.opened = opened
        self.props = {
            cv2.CAP_PROP_FRAME_WIDTH: width,
            cv2.CAP_PROP_FRAME_HEIGHT: height,
            cv2.CAP_PROP_FPS: fps,
        }
        self.released = False

    def isOpened(self):
        return self.opened

    def set(self, prop, value):
        # Devices keep their own format; ignore requests
        return True

    def get(self, prop):
        return self.props.get(prop, 0)

    def read(self):
        if self.frames:
            return True, self.frames.pop(0)
        return False, None

    def release(self):
        self.released = True


def image():
    return np.zeros((480, 640, 3), dtype=np.uint8)


def collect(source, count, timeout=5.0):
    frames = []
    done = threading.Event()

    def on_frame(frame):
        frames.append(frame)
        if len(frames) >= count:
            done.set()

    source.start(on_frame)
    done.wait(timeout)
    return frames


def test_open_reports_device_size():
    capture = FakeCapture(width=1280, height=720)
    source = CameraFrameSource(CaptureConfig(), capture_factory=lambda src: capture)

    assert source.open() == (1280, 720)
    source.stop()
    assert capture.released


def test_unopened_device_is_acquisition_error():
    source = CameraFrameSource(capture_factory=lambda src: FakeCapture(opened=False))
    with pytest.raises(AcquisitionError):
        source.open()


def test_invalid_device_size_is_acquisition_error():
    source = CameraFrameSource(capture_factory=lambda src: FakeCapture(width=0, height=0))
    with pytest.raises(AcquisitionError):
        source.open()


def test_capture_factory_errors_are_wrapped():
    def factory(src):
        raise OSError("device busy")

    source = CameraFrameSource(capture_factory=factory)
    with pytest.raises(AcquisitionError) as info:
        source.open()
    assert isinstance(info.value.__cause__, OSError)


def test_missing_video_file(tmp_path):
    config = CaptureConfig(video_path=tmp_path / "missing.mp4")
    source = CameraFrameSource(config, capture_factory=lambda src: FakeCapture())
    with pytest.raises(AcquisitionError):
        source.open()


def test_camera_frames_carry_size_and_orientation():
    capture = FakeCapture(frames=[image(), image()])
    config = CaptureConfig(device_orientation="landscape_right")
    source = CameraFrameSource(config, capture_factory=lambda src: capture)

    frames = collect(source, 2)
    source.stop()

    assert [f.index for f in frames[:2]] == [0, 1]
    assert all(f.has_buffer for f in frames[:2])
    assert frames[0].width == 640 and frames[0].height == 480
    assert frames[0].orientation is Orientation.DOWN


def test_failed_camera_read_yields_unusable_frame():
    capture = FakeCapture(frames=[image()])
    source = CameraFrameSource(capture_factory=lambda src: capture)

    frames = collect(source, 2)
    source.stop()

    assert frames[0].has_buffer
    assert not frames[1].has_buffer


def test_video_file_stops_at_end(tmp_path):
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"")
    capture = FakeCapture(frames=[image(), image(), image()])
    source = CameraFrameSource(CaptureConfig(video_path=path), capture_factory=lambda src: capture)

    frames = []
    source.start(frames.append)
    source._thread.join(5.0)

    assert len(frames) == 3
    assert not source.is_running
    source.stop()
