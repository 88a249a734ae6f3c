"""
Detection pipeline integrating frame capture, pose inference, landmark
extraction, coordinate mapping and publishing.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from dataclasses import dataclass, replace
from enum import Enum
from threading import Lock, Thread, current_thread
from typing import Optional, Tuple

from bodypose_app.config import PipelineConfig
from bodypose_app.capture.source import FrameSource
from bodypose_app.errors import (
    AcquisitionError,
    BufferUnavailableError,
    EngineInferenceError,
    EngineSetupError,
    PoseStreamError,
)
from bodypose_app.models.pose_engine import PoseInferenceEngine
from bodypose_app.pipeline.publisher import DetectionPublisher
from bodypose_app.types import DetectionResult, Failure, Frame, Points
from bodypose_app.vision.landmarks import LandmarkExtractor
from bodypose_app.vision.mapping import CoordinateMapper

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    """Lifecycle state of a detection pipeline."""

    UNINITIALIZED = "uninitialized"
    CONFIGURED = "configured"
    RUNNING = "running"
    FAILED = "failed"
    STOPPED = "stopped"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.FAILED, PipelineState.STOPPED)


@dataclass(frozen=True)
class PipelineStats:
    """Frame counters for diagnostics."""

    received: int = 0
    dropped: int = 0
    dispatched: int = 0
    published: int = 0
    failures: int = 0


class DetectionPipeline:
    """
    Frame-to-points detection pipeline.

    Pipeline stages per frame:
    1. Drop the frame if an inference call is still in flight
    2. Pose inference on a dedicated worker thread
    3. Confidence-filtered landmark extraction
    4. Aspect-fill mapping into view coordinates
    5. Publishing (with change suppression)

    At most one inference call is in flight; frames arriving meanwhile are
    dropped, never queued.
    """

    def __init__(
        self,
        source: FrameSource,
        engine: PoseInferenceEngine,
        view_size: Tuple[int, int],
        publisher: Optional[DetectionPublisher] = None,
        extractor: Optional[LandmarkExtractor] = None,
        mapper: Optional[CoordinateMapper] = None,
        halt_on_inference_error: bool = True,
    ):
        """
        Initialize detection pipeline.

        Args:
            source: Frame source to drive the pipeline
            engine: Pose inference engine
            view_size: Destination view (width, height) in pixels
            publisher: Publisher for results (a new one is created if None)
            extractor: Landmark extractor (default confidence threshold 0.5)
            mapper: Coordinate mapper
            halt_on_inference_error: Stop processing after the first failed
                inference call instead of retrying on later frames
        """
        self.source = source
        self.engine = engine
        self.view_size = (int(view_size[0]), int(view_size[1]))
        self.publisher = publisher or DetectionPublisher()
        self.extractor = extractor or LandmarkExtractor()
        self.mapper = mapper or CoordinateMapper()
        self.halt_on_inference_error = halt_on_inference_error

        self._state = PipelineState.UNINITIALIZED
        self._config: Optional[PipelineConfig] = None
        self._state_lock = Lock()

        # Held while an inference call is in flight
        self._in_flight = Lock()
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: Optional[Future] = None
        self._worker_thread: Optional[Thread] = None

        self._stats = PipelineStats()
        self._stats_lock = Lock()

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def config(self) -> Optional[PipelineConfig]:
        return self._config

    @property
    def stats(self) -> PipelineStats:
        with self._stats_lock:
            return self._stats

    @property
    def is_busy(self) -> bool:
        return self._in_flight.locked()

    def _count(self, **deltas: int) -> None:
        with self._stats_lock:
            self._stats = replace(
                self._stats,
                **{name: getattr(self._stats, name) + value for name, value in deltas.items()},
            )

    def configure(self) -> bool:
        """
        Acquire frame dimensions and set up the inference engine.

        Returns:
            True when the pipeline reached the configured state. On failure
            the pipeline is failed and a Failure has been published.
        """
        if self._state is not PipelineState.UNINITIALIZED:
            logger.warning(f"configure() called in state {self._state.value}")
            return self._state is PipelineState.CONFIGURED

        try:
            try:
                frame_width, frame_height = self.source.open()
            except AcquisitionError:
                raise
            except Exception as e:
                raise AcquisitionError(f"Frame source failed to open: {e}") from e

            config = PipelineConfig(
                view_width=self.view_size[0],
                view_height=self.view_size[1],
                frame_width=int(frame_width),
                frame_height=int(frame_height),
            )
            for issue in config.validate():
                logger.warning(issue)

            try:
                self.engine.setup(config.frame_width, config.frame_height)
            except EngineSetupError:
                raise
            except Exception as e:
                raise EngineSetupError(f"{self.engine.name()} setup failed: {e}") from e
        except PoseStreamError as e:
            logger.error(f"✗ Pipeline configuration failed: {e}")
            self._state = PipelineState.FAILED
            self.source.stop()
            self.engine.close()
            self._publish(e.to_failure())
            return False

        self._config = config
        self._executor = ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="PoseInference", initializer=self._bind_worker
        )
        self._state = PipelineState.CONFIGURED
        logger.info(
            f"✓ Pipeline configured: frame {config.frame_width}x{config.frame_height}"
            f" -> view {config.view_width}x{config.view_height}"
        )
        return True

    def start(self) -> bool:
        """Start frame delivery."""
        with self._state_lock:
            if self._state is not PipelineState.CONFIGURED:
                logger.warning(f"start() called in state {self._state.value}")
                return False
            self._state = PipelineState.RUNNING

        self.source.start(self.on_frame)
        logger.info("✓ Pipeline running")
        return True

    def prepare(self) -> bool:
        """Configure and start the pipeline."""
        return self.configure() and self.start()

    def on_frame(self, frame: Frame) -> None:
        """
        Frame delivery callback. Never blocks.
        """
        if self._state is not PipelineState.RUNNING:
            return
        self._count(received=1)

        if not frame.has_buffer:
            self._count(failures=1)
            self._publish(BufferUnavailableError(frame_index=frame.index).to_failure())
            self._open_new_stream()
            return

        if not self._in_flight.acquire(blocking=False):
            self._count(dropped=1)
            logger.debug(f"Dropped frame {frame.index}: inference busy")
            return

        executor = self._executor
        try:
            if executor is None:
                raise RuntimeError("inference worker is gone")
            self._pending = executor.submit(self._process, frame)
        except RuntimeError:
            # Concurrent teardown
            self._in_flight.release()
            return
        self._count(dispatched=1)

    def _process(self, frame: Frame) -> None:
        try:
            result = self.process_frame(frame)

            halt = False
            with self._state_lock:
                if self._state is not PipelineState.RUNNING:
                    logger.debug(f"Discarding result for frame {frame.index}")
                    return
                if isinstance(result, Failure) and self.halt_on_inference_error:
                    self._state = PipelineState.FAILED
                    halt = True

            if isinstance(result, Failure):
                self._count(failures=1)
            self._publish(result)

            if halt:
                logger.error("Pipeline halted after inference failure")
                self.source.stop()
            elif isinstance(result, Failure):
                self._open_new_stream()
        finally:
            self._in_flight.release()

    def process_frame(self, frame: Frame) -> DetectionResult:
        """
        Run inference, extraction and mapping for a single frame.

        Args:
            frame: Frame with an accessible buffer

        Returns:
            Points for the frame, or a Failure wrapping the engine error
        """
        config = self._config
        try:
            observations = self.engine.infer(frame)
        except EngineInferenceError as e:
            logger.error(f"✗ Inference failed on frame {frame.index}: {e}")
            return e.to_failure()
        except Exception as e:
            logger.exception(f"✗ Inference failed on frame {frame.index}")
            return Failure(kind=EngineInferenceError.kind, message=str(e), error=e)

        if not observations:
            return Points(())

        image_points = self.extractor.extract(observations, config.frame_width, config.frame_height)
        display_points = self.mapper.map(
            image_points,
            config.view_width,
            config.view_height,
            config.frame_width,
            config.frame_height,
        )
        return Points(tuple(display_points))

    def _bind_worker(self) -> None:
        self._worker_thread = current_thread()

    def _open_new_stream(self) -> None:
        # The pipeline keeps running after a soft failure, so subscribers get
        # a fresh stream for the points that follow it
        logger.debug("Opening a new detection stream after soft failure")
        self.publisher.rearm()

    def _publish(self, result: DetectionResult) -> None:
        if self.publisher.publish(result):
            self._count(published=1)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the in-flight inference call (if any) to finish.

        Returns:
            True if no call is in flight on return
        """
        pending = self._pending
        if pending is not None:
            wait_futures([pending], timeout=timeout)
            return pending.done()
        return True

    def teardown(self, wait: bool = True) -> None:
        """
        Stop the pipeline and release the source and engine.

        Results of an in-flight call are discarded. When called from a result
        handler running on the inference worker, the worker is not joined.
        """
        with self._state_lock:
            if self._state is PipelineState.STOPPED:
                return
            self._state = PipelineState.STOPPED

        self.source.stop()

        pending = self._pending
        if pending is not None and pending.cancel():
            self._in_flight.release()

        if current_thread() is self._worker_thread:
            wait = False

        if self._executor is not None:
            # Queued behind any in-flight call
            self._executor.submit(self.engine.close)
            self._executor.shutdown(wait=wait)
            self._executor = None
        else:
            self.engine.close()

        logger.info(f"Pipeline stopped ({self.stats})")

    def __enter__(self):
        self.prepare()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.teardown()
        return False
