"""Main-process entry point."""

import logging
import sys

from PyQt6.QtCore import Qt, QTimer
from PyQt6.QtGui import QGuiApplication, QIcon
from PyQt6.QtWidgets import QApplication

from .config import APP_NAME, APP_ORGANIZATION, APP_USER_MODEL_ID, AppConfig, configure_logging
from .ipc import HandlerContext, HandlerRegistry, register_handlers
from .lifecycle import LifecycleController, WindowRegistry, run_startup
from .main_window import MainWindow
from .services.database import init_database
from .window_manager import WindowManager

logger = logging.getLogger(__name__)


def set_app_user_model_id(app_id: str = APP_USER_MODEL_ID):
    """Group taskbar entries under one id on Windows."""
    if sys.platform != "win32":
        return
    import ctypes

    ctypes.windll.shell32.SetCurrentProcessExplicitAppUserModelID(app_id)


class NotebookApplication:
    """Owns the database, handler registry and windows of one process."""

    def __init__(self, app: QApplication, config: AppConfig):
        self.app = app
        self.config = config
        self.db = None
        self.handlers = HandlerRegistry()
        self.windows = WindowRegistry()
        self.window_manager = None
        self.lifecycle = None

    def _init_database(self):
        self.db = init_database(self.config)
        return self.db

    def _register_handlers(self, db):
        register_handlers(self.handlers, HandlerContext(db=db, config=self.config))

    def _make_window(self, options):
        return MainWindow(options, self.handlers, is_dev=self.config.is_dev)

    def _set_dock_icon(self, pixmap):
        self.app.setWindowIcon(QIcon(pixmap))

    def start(self):
        """Run once the event loop is up."""
        set_app_user_model_id()

        self.window_manager = WindowManager(
            self.config,
            self.windows,
            self._make_window,
            set_dock_icon=self._set_dock_icon,
        )
        self.lifecycle = LifecycleController(
            self.windows,
            self.window_manager.create_window,
            self.app.quit,
            parent=self.app,
        )
        try:
            run_startup(self._init_database, self._register_handlers,
                        self.window_manager.create_window)
        except Exception:
            logger.exception("Startup failed")
            self.app.exit(1)
            return
        self.lifecycle.watch_activate(self.app)

    def shutdown(self):
        if self.db is not None:
            self.db.close()
            self.db = None


def main():
    """Main entry point."""
    QGuiApplication.setHighDpiScaleFactorRoundingPolicy(
        Qt.HighDpiScaleFactorRoundingPolicy.PassThrough
    )

    app = QApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setOrganizationName(APP_ORGANIZATION)
    # Window closing is handled by the lifecycle controller
    app.setQuitOnLastWindowClosed(False)

    config = AppConfig.from_env()
    configure_logging(config.log_level)
    logger.info("Starting %s (dev=%s, data=%s)", APP_NAME, config.is_dev, config.data_dir)

    notebook = NotebookApplication(app, config)
    app.aboutToQuit.connect(notebook.shutdown)
    QTimer.singleShot(0, notebook.start)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
