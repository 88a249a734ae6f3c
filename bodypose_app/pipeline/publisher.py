"""
Detection result publishing with change suppression.
"""

import logging
from concurrent.futures import Executor
from threading import Lock, RLock
from typing import Callable, List, Optional

from bodypose_app.types import DetectionResult, Failure, Points

logger = logging.getLogger(__name__)

Handler = Callable[[DetectionResult], None]
Dispatcher = Callable[[Callable[[], None]], None]


def inline_dispatcher(fn: Callable[[], None]) -> None:
    """Run handlers on the publishing thread."""
    fn()


def executor_dispatcher(executor: Executor) -> Dispatcher:
    """Run handlers on a `concurrent.futures` executor."""

    def dispatch(fn: Callable[[], None]) -> None:
        executor.submit(fn)

    return dispatch


class Subscription:
    """
    Handle returned by `DetectionPublisher.subscribe`.

    A failure finishes the subscription's current stream: it receives no more
    points until the publisher opens a new stream with `rearm()`. Failures are
    never withheld, including further failures on a finished stream.
    """

    def __init__(self, publisher: "DetectionPublisher", handler: Handler, dispatcher: Dispatcher):
        self._publisher = publisher
        self.handler = handler
        self.dispatcher = dispatcher
        self.finished = False
        self.cancelled = False

        # Bumped by every failure; points targeted at an older stream are stale
        self._stream = 0
        # Serializes the stream check with the handler call
        self._delivery_lock = RLock()

    def cancel(self) -> None:
        self.cancelled = True
        self._publisher._remove(self)

    def _deliver(self, result: DetectionResult, stream: int) -> None:
        handler = self.handler

        def call():
            with self._delivery_lock:
                if self.cancelled:
                    return
                if isinstance(result, Points) and (self.finished or stream != self._stream):
                    logger.debug("Dropping points queued before a failure")
                    return
                try:
                    handler(result)
                except Exception:
                    logger.exception("Detection subscriber raised")

        self.dispatcher(call)


class DetectionPublisher:
    """
    Publishes detection results to subscribers.

    `Points` equal to the last published `Points` are suppressed. Failures are
    always delivered, even to subscriptions already finished by an earlier
    failure; they reset the last published value and finish every
    subscription's points stream until `rearm()` is called.
    """

    def __init__(self, dispatcher: Optional[Dispatcher] = None):
        self.dispatcher = dispatcher or inline_dispatcher
        self._lock = Lock()
        self._subscriptions: List[Subscription] = []
        self._last_points: Optional[Points] = None

        self.published = 0
        self.suppressed = 0

    @property
    def last_points(self) -> Optional[Points]:
        return self._last_points

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def subscribe(self, handler: Handler, dispatcher: Optional[Dispatcher] = None) -> Subscription:
        """
        Register a handler for detection results.

        Args:
            handler: Called with each emitted DetectionResult
            dispatcher: Execution context for this handler (defaults to the
                publisher's dispatcher)

        Returns:
            Subscription that can be cancelled
        """
        subscription = Subscription(self, handler, dispatcher or self.dispatcher)
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)

    def rearm(self) -> None:
        """
        Open a new stream for every subscription finished by a failure.

        Points published afterwards are delivered again; points published
        before the failure stay dropped.
        """
        with self._lock:
            for subscription in self._subscriptions:
                subscription.finished = False

    def publish(self, result: DetectionResult) -> bool:
        """
        Publish a result.

        Returns:
            True if the result was handed to at least one subscriber, False if
            it was suppressed or nobody is listening
        """
        with self._lock:
            if isinstance(result, Failure):
                self._last_points = None
                targets = list(self._subscriptions)
                for subscription in targets:
                    subscription.finished = True
                    subscription._stream += 1
            elif isinstance(result, Points):
                if self._last_points is not None and result == self._last_points:
                    self.suppressed += 1
                    return False
                self._last_points = result
                targets = [s for s in self._subscriptions if not s.finished]
            else:
                raise TypeError(f"Cannot publish {type(result).__name__}")
            streams = [s._stream for s in targets]
            if targets:
                self.published += 1

        if isinstance(result, Failure):
            logger.warning(f"Publishing failure: {result}")
        else:
            logger.debug(f"Publishing {len(result)} points to {len(targets)} subscribers")

        for subscription, stream in zip(targets, streams):
            subscription._deliver(result, stream)
        return bool(targets)
