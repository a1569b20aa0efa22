"""QWebChannel object through which the renderer reaches the handlers."""

import json
import logging

from PyQt6.QtCore import QObject, pyqtSignal, pyqtSlot

from .registry import HandlerRegistry

logger = logging.getLogger(__name__)


class IpcBridge(QObject):
    """Exposed to page scripts as ``bridge``; the preload wraps it as ``window.api``.

    ``invoke`` takes the channel and a JSON array of arguments and answers
    with ``{"ok": true, "result": ...}`` or ``{"ok": false, "error": ...}``.
    """

    event = pyqtSignal(str, str)  # (channel, JSON payload) pushed to the page

    def __init__(self, registry: HandlerRegistry, parent=None):
        super().__init__(parent)
        self._registry = registry

    @pyqtSlot(str, str, result=str)
    def invoke(self, channel: str, payload: str) -> str:
        try:
            args = json.loads(payload) if payload else []
            if not isinstance(args, list):
                args = [args]
            result = self._registry.invoke(channel, *args)
            return json.dumps({"ok": True, "result": result}, default=str)
        except Exception as e:
            # Errors cross the bridge as values; the page rejects its promise
            logger.exception("IPC handler for %s failed", channel)
            return json.dumps({"ok": False, "error": str(e)})

    def send(self, channel: str, data=None):
        self.event.emit(channel, json.dumps(data, default=str))
