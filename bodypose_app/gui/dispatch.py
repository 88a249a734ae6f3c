"""
Qt delivery context for detection results.
"""

from typing import Callable, Optional

from PySide6.QtCore import QObject, Qt, Signal, Slot


class QtDispatcher(QObject):
    """
    Delivers detection handlers on the Qt thread that owns this object.

    Create it on the GUI thread and pass it as the `dispatcher` of a
    DetectionPublisher or subscription; results published from the inference
    worker are then handled on the GUI thread.
    """

    _invoke = Signal(object)

    def __init__(self, parent: Optional[QObject] = None) -> None:
        super().__init__(parent)
        self._invoke.connect(self._run, Qt.ConnectionType.QueuedConnection)

    @Slot(object)
    def _run(self, fn: Callable[[], None]) -> None:
        fn()

    def __call__(self, fn: Callable[[], None]) -> None:
        self._invoke.emit(fn)
