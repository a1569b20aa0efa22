"""Main window: library sidebar beside the sandboxed web renderer."""

import logging
import sys
from pathlib import Path
from typing import Callable

from PyQt6.QtCore import QFile, QIODevice, Qt, pyqtSignal
from PyQt6.QtGui import QAction, QCloseEvent, QDragEnterEvent, QDropEvent, QIcon, QKeySequence
from PyQt6.QtWebChannel import QWebChannel
from PyQt6.QtWebEngineCore import QWebEnginePage, QWebEngineScript, QWebEngineSettings
from PyQt6.QtWebEngineWidgets import QWebEngineView
from PyQt6.QtWidgets import QMainWindow, QMessageBox, QSplitter, QStatusBar

from .config import APP_NAME
from .ipc.bridge import IpcBridge
from .ipc.registry import HandlerRegistry
from .widgets.sidebar import Sidebar
from .window_manager import LoadTarget, WebPreferences, WindowOptions

logger = logging.getLogger(__name__)

QWEBCHANNEL_JS = ":/qtwebchannel/qwebchannel.js"


def read_preload_source(preload_path: str) -> str:
    """QWebChannel client library followed by the preload script."""
    qrc = QFile(QWEBCHANNEL_JS)
    if not qrc.open(QIODevice.OpenModeFlag.ReadOnly):
        raise RuntimeError(f"Cannot read {QWEBCHANNEL_JS}")
    try:
        channel_js = bytes(qrc.readAll()).decode("utf-8")
    finally:
        qrc.close()
    return channel_js + "\n" + Path(preload_path).read_text(encoding="utf-8")


class NotebookPage(QWebEnginePage):
    """Web page that never opens windows of its own.

    New-window requests (``window.open``, ``target="_blank"``) are passed to
    the window-open handler and otherwise dropped.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._window_open_handler: Callable[[str], str] | None = None
        self.newWindowRequested.connect(self._on_new_window_requested)

    def set_window_open_handler(self, handler: Callable[[str], str]):
        self._window_open_handler = handler

    def _on_new_window_requested(self, request):
        url = request.requestedUrl().toString()
        if self._window_open_handler is not None:
            self._window_open_handler(url)
        else:
            logger.warning("Blocked window for %s", url)

    def createWindow(self, type):
        return None


def apply_web_preferences(page: QWebEnginePage, prefs: WebPreferences):
    """Lock the page down and inject the preload bridge."""
    settings = page.settings()
    settings.setAttribute(QWebEngineSettings.WebAttribute.JavascriptEnabled, True)
    # Requests must reach newWindowRequested to be redirected
    settings.setAttribute(QWebEngineSettings.WebAttribute.JavascriptCanOpenWindows, True)
    settings.setAttribute(QWebEngineSettings.WebAttribute.JavascriptCanAccessClipboard, False)
    settings.setAttribute(QWebEngineSettings.WebAttribute.PluginsEnabled, False)
    settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessRemoteUrls, False)
    if not prefs.node_integration:
        settings.setAttribute(QWebEngineSettings.WebAttribute.LocalContentCanAccessFileUrls, False)

    script = QWebEngineScript()
    script.setName("preload")
    script.setSourceCode(read_preload_source(prefs.preload))
    script.setInjectionPoint(QWebEngineScript.InjectionPoint.DocumentCreation)
    script.setWorldId(QWebEngineScript.ScriptWorldId.MainWorld)
    script.setRunsOnSubFrames(False)
    page.scripts().insert(script)


class MainWindow(QMainWindow):
    """Top-level notebook window.

    Created hidden; ``ready_to_show`` fires once the renderer has finished its
    first load.
    """

    ready_to_show = pyqtSignal()
    closed = pyqtSignal()

    def __init__(self, options: WindowOptions, registry: HandlerRegistry, is_dev: bool = False):
        super().__init__()
        self._options = options
        self._registry = registry
        self._is_dev = is_dev
        self._has_loaded = False
        self._devtools_view = None
        self.loaded_target: LoadTarget | None = None

        self.setAttribute(Qt.WidgetAttribute.WA_DeleteOnClose)

        self._setup_ui()
        self._setup_web_view()
        self._setup_menu()
        self._connect_signals()

        # Enable drag and drop
        self.setAcceptDrops(True)

    def _setup_ui(self):
        """Set up the main window UI."""
        options = self._options
        self.setWindowTitle(APP_NAME)
        self.resize(options.width, options.height)
        self.setMinimumSize(options.min_width, options.min_height)
        if options.icon:
            self.setWindowIcon(QIcon(options.icon))

        self.splitter = QSplitter(Qt.Orientation.Horizontal)

        # Left panel: library
        self.sidebar = Sidebar(self._registry.invoke)
        self.splitter.addWidget(self.sidebar)

        # Right panel: renderer
        self.view = QWebEngineView()
        self.splitter.addWidget(self.view)

        self.splitter.setSizes([260, options.width - 260])
        self.splitter.setStretchFactor(1, 1)
        self.setCentralWidget(self.splitter)

        if sys.platform == "darwin" and options.title_bar_style == "hiddenInset":
            self.setUnifiedTitleAndToolBarOnMac(True)
            x, y = options.traffic_light_position
            self.sidebar.layout().setContentsMargins(x, y + 12, 12, 12)

        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)

    def _setup_web_view(self):
        self.page = NotebookPage(self.view)
        apply_web_preferences(self.page, self._options.web_preferences)

        self.bridge = IpcBridge(self._registry, self)
        self.channel = QWebChannel(self.page)
        # Only the bridge is published to page scripts
        self.channel.registerObject("bridge", self.bridge)
        self.page.setWebChannel(self.channel)

        self.view.setPage(self.page)
        self.view.loadFinished.connect(self._on_load_finished)

    def _setup_menu(self):
        """Set up the menu bar."""
        menubar = self.menuBar()

        file_menu = menubar.addMenu("&File")
        upload_action = QAction("&Upload PDF...", self)
        upload_action.setShortcut(QKeySequence.StandardKey.Open)
        upload_action.triggered.connect(self.sidebar.upload_pdf)
        file_menu.addAction(upload_action)

        file_menu.addSeparator()

        close_action = QAction("&Close Window", self)
        close_action.setShortcut(QKeySequence.StandardKey.Close)
        close_action.triggered.connect(self.close)
        file_menu.addAction(close_action)

        view_menu = menubar.addMenu("&View")
        if self._is_dev:
            reload_action = QAction("&Reload", self)
            reload_action.setShortcut(QKeySequence.StandardKey.Refresh)
            reload_action.triggered.connect(self.view.reload)
            view_menu.addAction(reload_action)

            devtools_action = QAction("Toggle &Developer Tools", self)
            devtools_action.setShortcut("F12")
            devtools_action.triggered.connect(self._toggle_devtools)
            view_menu.addAction(devtools_action)

        help_menu = menubar.addMenu("&Help")
        about_action = QAction("&About", self)
        about_action.triggered.connect(self._show_about)
        help_menu.addAction(about_action)

        if self._options.auto_hide_menu_bar and sys.platform != "darwin":
            menubar.setVisible(False)
            # Shortcuts must keep working while the menu bar is hidden
            for menu in (file_menu, view_menu):
                self.addActions(menu.actions())

    def _connect_signals(self):
        """Connect signals between components."""
        self.sidebar.pdf_selected.connect(self._on_pdf_selected)
        self.sidebar.pdfs_changed.connect(lambda: self.send("pdf:list-changed", {}))
        self.sidebar.status_message.connect(self._show_status)

    def set_window_open_handler(self, handler: Callable[[str], str]):
        self.page.set_window_open_handler(handler)

    def load(self, target: LoadTarget):
        self.loaded_target = target
        self.sidebar.refresh()
        self.view.load(target.to_qurl())

    def send(self, channel: str, data=None):
        """Push an event to the renderer."""
        self.bridge.send(channel, data)

    def _on_load_finished(self, ok: bool):
        if not ok:
            logger.warning("Renderer failed to load %s", self.view.url().toString())
        if not self._has_loaded:
            self._has_loaded = True
            self.ready_to_show.emit()
        pdf_id = self.sidebar.current_pdf_id()
        if pdf_id is not None:
            self.send("pdf:selected", {"pdfId": pdf_id})

    def _on_pdf_selected(self, pdf_id: int):
        self.send("pdf:selected", {"pdfId": pdf_id})
        pdf = self._registry.invoke("pdf:get", pdf_id)
        if pdf:
            self.setWindowTitle(f"{pdf['filename']} - {APP_NAME}")

    def _toggle_devtools(self):
        if self._devtools_view is None:
            self._devtools_view = QWebEngineView()
            self._devtools_view.setWindowTitle(f"{APP_NAME} - Developer Tools")
            self.page.setDevToolsPage(self._devtools_view.page())
        self._devtools_view.setVisible(not self._devtools_view.isVisible())

    def _show_status(self, message: str):
        """Show a status bar message."""
        self.status_bar.showMessage(message, 5000)

    def _show_about(self):
        """Show about dialog."""
        about_text = f"""
<h3>{APP_NAME}</h3>
<p>Import PDFs, browse their chapters and keep notes alongside them.</p>
<p>Drop a PDF onto the library or use <b>Upload</b> to add one.</p>
"""
        QMessageBox.about(self, f"About {APP_NAME}", about_text)

    def keyPressEvent(self, a0):
        """Alt shows the auto-hidden menu bar."""
        if (a0 is not None and a0.key() == Qt.Key.Key_Alt
                and self._options.auto_hide_menu_bar and sys.platform != "darwin"):
            menubar = self.menuBar()
            menubar.setVisible(not menubar.isVisible())
            return
        super().keyPressEvent(a0)

    def dragEnterEvent(self, a0: QDragEnterEvent | None):
        """Handle drag enter event for file drop."""
        if a0 is not None:
            mime_data = a0.mimeData()
            if mime_data is not None and mime_data.hasUrls():
                for url in mime_data.urls():
                    if url.toLocalFile().lower().endswith('.pdf'):
                        a0.acceptProposedAction()
                        return

    def dropEvent(self, a0: QDropEvent | None):
        """Handle file drop event."""
        if a0 is None:
            return
        mime_data = a0.mimeData()
        if mime_data is None:
            return
        paths = [
            url.toLocalFile() for url in mime_data.urls()
            if url.toLocalFile().lower().endswith('.pdf')
        ]
        if paths:
            self.sidebar.import_files(paths)

    def closeEvent(self, a0: QCloseEvent | None):
        """Handle window close event."""
        if a0 is None:
            return
        if self._devtools_view is not None:
            self._devtools_view.close()
        a0.accept()
        self.closed.emit()
