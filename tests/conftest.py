"""Shared fakes for pipeline tests."""

import threading
from typing import Callable, List, Optional, Sequence, Tuple, Union

import numpy as np
import pytest

from bodypose_app.capture.source import FrameSource
from bodypose_app.errors import AcquisitionError, EngineSetupError
from bodypose_app.models.pose_engine import PoseInferenceEngine
from bodypose_app.types import Frame, Joint, JointObservation, NormalizedPoint, RecognizedPoint


def observation(**joints: Tuple[float, float, float]) -> JointObservation:
    """Build an observation from joint_name=(x, y, confidence)."""
    return JointObservation(
        {
            Joint(name): RecognizedPoint(NormalizedPoint(x, y), confidence)
            for name, (x, y, confidence) in joints.items()
        }
    )


def make_frame(index: int = 0, width: int = 640, height: int = 480, with_buffer: bool = True) -> Frame:
    buffer = np.zeros((height, width, 3), dtype=np.uint8) if with_buffer else None
    return Frame(buffer=buffer, width=width, height=height, index=index)


class FakeEngine(PoseInferenceEngine):
    """
    Scripted engine.

    Each `infer` call pops the next scripted response: a list of observations
    or an exception to raise. When `gate` is set, calls block until it opens.
    """

    def __init__(self, responses: Optional[Sequence[Union[list, Exception]]] = None, setup_error=None):
        self.responses = list(responses or [])
        self.setup_error = setup_error
        self.setup_calls: List[Tuple[int, int]] = []
        self.infer_calls = 0
        self.active = 0
        self.max_active = 0
        self.gate: Optional[threading.Event] = None
        self.entered = threading.Event()
        self.closed = threading.Event()
        self._lock = threading.Lock()

    def name(self) -> str:
        return "fake"

    def setup(self, frame_width: int, frame_height: int) -> None:
        self.setup_calls.append((frame_width, frame_height))
        if self.setup_error is not None:
            raise self.setup_error

    def infer(self, frame: Frame):
        with self._lock:
            self.infer_calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.entered.set()
        try:
            if self.gate is not None:
                self.gate.wait(5.0)
            response = self.responses.pop(0) if self.responses else []
            if isinstance(response, Exception):
                raise response
            return response
        finally:
            with self._lock:
                self.active -= 1

    def close(self) -> None:
        self.closed.set()


class FakeSource(FrameSource):
    """Frame source driven manually through `deliver`."""

    def __init__(self, size: Tuple[int, int] = (640, 480), open_error: Optional[Exception] = None):
        self.size = size
        self.open_error = open_error
        self.on_frame: Optional[Callable[[Frame], None]] = None
        self.opened = False
        self.stopped = False

    def open(self) -> Tuple[int, int]:
        if self.open_error is not None:
            raise self.open_error
        self.opened = True
        return self.size

    def start(self, on_frame) -> None:
        self.on_frame = on_frame

    def stop(self) -> None:
        self.stopped = True
        self.on_frame = None

    @property
    def is_running(self) -> bool:
        return self.on_frame is not None

    def deliver(self, frame: Frame) -> None:
        if self.on_frame is not None:
            self.on_frame(frame)


class Recorder:
    """Subscriber that records every delivered result."""

    def __init__(self):
        self.results = []
        self.event = threading.Event()

    def __call__(self, result):
        self.results.append(result)
        self.event.set()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def fake_source():
    return FakeSource()


@pytest.fixture
def acquisition_error():
    return AcquisitionError("camera unavailable")


@pytest.fixture
def engine_setup_error():
    return EngineSetupError("unsupported frame size")
