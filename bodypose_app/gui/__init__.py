"""Qt integration for delivering detection results on the GUI thread."""

from bodypose_app.gui.dispatch import QtDispatcher

__all__ = ["QtDispatcher"]
