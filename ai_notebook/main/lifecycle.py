"""Window bookkeeping and desktop lifecycle rules for the main process."""

import logging
import sys
from typing import Callable

from PyQt6.QtCore import QObject, Qt

logger = logging.getLogger(__name__)


class WindowRegistry:
    """Explicit set of the open top-level windows.

    Listeners added with ``on_all_closed`` run each time the last window is
    removed.
    """

    def __init__(self):
        self._windows = []
        self._all_closed_listeners: list[Callable[[], None]] = []

    def add(self, window):
        if window not in self._windows:
            self._windows.append(window)

    def remove(self, window):
        if window not in self._windows:
            return
        self._windows.remove(window)
        if not self._windows:
            for listener in list(self._all_closed_listeners):
                listener()

    def windows(self) -> list:
        return list(self._windows)

    def count(self) -> int:
        return len(self._windows)

    def on_all_closed(self, listener: Callable[[], None]):
        self._all_closed_listeners.append(listener)


class LifecycleController(QObject):
    """Quit and re-open behaviour of a desktop app.

    Closing every window quits the app except on macOS, where the app stays
    resident. The app becoming active (dock click) with no windows opens one.
    """

    def __init__(
        self,
        registry: WindowRegistry,
        create_window: Callable[[], object],
        quit_app: Callable[[], None],
        platform: str = sys.platform,
        parent=None,
    ):
        super().__init__(parent)
        self._registry = registry
        self._create_window = create_window
        self._quit_app = quit_app
        self._platform = platform
        self._registry.on_all_closed(self.on_window_all_closed)

    @property
    def keeps_resident(self) -> bool:
        return self._platform == "darwin"

    def on_window_all_closed(self):
        if self.keeps_resident:
            logger.debug("All windows closed; staying resident")
            return
        logger.info("All windows closed; quitting")
        self._quit_app()

    def on_activate(self):
        if self._registry.count() == 0:
            logger.info("Activated with no open windows; creating one")
            self._create_window()

    def watch_activate(self, app):
        """Start reacting to application state changes of ``app``."""
        app.applicationStateChanged.connect(self.on_application_state_changed)

    def on_application_state_changed(self, state):
        if state == Qt.ApplicationState.ApplicationActive:
            self.on_activate()


def run_startup(
    init_database: Callable[[], object],
    register_handlers: Callable[[object], None],
    create_window: Callable[[], object],
):
    """Run the ordered startup steps and return the created window.

    Handlers are registered only once the database is open, and the window is
    created only after every handler exists. An exception from any step stops
    the sequence.
    """
    db = init_database()
    register_handlers(db)
    return create_window()
