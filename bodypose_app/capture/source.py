"""
Frame sources.

A frame source opens a capture device, reports its frame dimensions and then
pushes frames to a callback from its own delivery thread.
"""

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from threading import Event, Thread, current_thread
from typing import Callable, Optional, Tuple, Union

import cv2

from bodypose_app.config import CaptureConfig
from bodypose_app.errors import AcquisitionError
from bodypose_app.types import Frame, Orientation
from bodypose_app.vision.orientation import exif_orientation_from_device, parse_device_orientation

logger = logging.getLogger(__name__)

FrameCallback = Callable[[Frame], None]


class FrameSource(ABC):
    """Producer of raw frames with known dimensions."""

    @abstractmethod
    def open(self) -> Tuple[int, int]:
        """Acquire the device and return (width, height). Raises AcquisitionError."""

    @abstractmethod
    def start(self, on_frame: FrameCallback) -> None:
        """Begin delivering frames to `on_frame`."""

    @abstractmethod
    def stop(self) -> None:
        """Stop delivery and release the device."""

    @property
    @abstractmethod
    def is_running(self) -> bool: ...


class CameraFrameSource(FrameSource):
    """
    OpenCV capture source for webcams and video files.

    A failed read on a live camera is delivered as a frame without a buffer;
    the end of a video file stops delivery (or rewinds when looping).
    """

    def __init__(
        self,
        config: Optional[CaptureConfig] = None,
        capture_factory: Callable[[Union[int, str]], "cv2.VideoCapture"] = cv2.VideoCapture,
    ):
        self.config = config or CaptureConfig()
        self._capture_factory = capture_factory

        self._cap = None
        self._thread: Optional[Thread] = None
        self._stop_event = Event()
        self._frame_index = 0
        self._fps = float(self.config.fps)
        self._width = 0
        self._height = 0
        self._orientation = exif_orientation_from_device(
            parse_device_orientation(self.config.device_orientation)
        )

    @property
    def is_file(self) -> bool:
        return self.config.video_path is not None

    @property
    def source(self) -> Union[int, str]:
        if self.is_file:
            return str(self.config.video_path)
        return self.config.device_index

    @property
    def orientation(self) -> Orientation:
        return self._orientation

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def frame_size(self) -> Tuple[int, int]:
        return (self._width, self._height)

    def open(self) -> Tuple[int, int]:
        if self._cap is not None:
            return self.frame_size

        if self.is_file and not Path(self.config.video_path).exists():
            raise AcquisitionError(f"Video file not found: {self.config.video_path}")

        try:
            cap = self._capture_factory(self.source)
        except Exception as e:
            raise AcquisitionError(f"Could not create capture for {self.source}: {e}") from e

        if cap is None or not cap.isOpened():
            raise AcquisitionError(f"Could not open capture source: {self.source}")

        if not self.is_file:
            cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.config.width)
            cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.config.height)
            cap.set(cv2.CAP_PROP_FPS, self.config.fps)

        width = int(cap.get(cv2.CAP_PROP_FRAME_WIDTH) or 0)
        height = int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT) or 0)
        if width <= 0 or height <= 0:
            cap.release()
            raise AcquisitionError(f"Capture source reported invalid frame size {width}x{height}")

        self._cap = cap
        self._width, self._height = width, height
        self._fps = float(cap.get(cv2.CAP_PROP_FPS) or self.config.fps or 30.0)

        logger.info(f"✓ Opened capture source {self.source}")
        logger.info(f"  Resolution: {width}x{height} @ {self._fps:.1f} fps")
        return self.frame_size

    def start(self, on_frame: FrameCallback) -> None:
        if self._cap is None:
            self.open()
        if self.is_running:
            return

        self._stop_event.clear()
        self._thread = Thread(
            target=self._run, args=(on_frame,), name="FrameSource", daemon=True
        )
        self._thread.start()

    def _run(self, on_frame: FrameCallback) -> None:
        # Pace video files at their native rate; cameras block in read()
        interval = 1.0 / self._fps if self.is_file and self._fps > 0 else 0.0
        next_tick = time.monotonic()

        while not self._stop_event.is_set():
            ok, image = self._cap.read()

            if not ok or image is None:
                if self.is_file:
                    if self.config.loop_video:
                        self._cap.set(cv2.CAP_PROP_POS_FRAMES, 0)
                        continue
                    logger.info("End of video reached")
                    break
                logger.debug(f"Camera read failed at frame {self._frame_index}")
                image = None

            frame = Frame(
                buffer=image,
                width=self._width,
                height=self._height,
                orientation=self._orientation,
                index=self._frame_index,
                timestamp=time.monotonic(),
            )
            self._frame_index += 1
            on_frame(frame)

            if image is None:
                # Do not spin on a camera that keeps failing
                self._stop_event.wait(1.0 / max(self._fps, 1.0))
            elif interval:
                next_tick += interval
                delay = next_tick - time.monotonic()
                if delay > 0:
                    self._stop_event.wait(delay)
                else:
                    next_tick = time.monotonic()

    def stop(self) -> None:
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread.is_alive() and thread is not current_thread():
            thread.join(timeout=2.0)
        self._thread = None

        if self._cap is not None:
            self._cap.release()
            self._cap = None
