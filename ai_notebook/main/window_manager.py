"""Creation of the application's top-level windows."""

import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from PyQt6.QtCore import QUrl
from PyQt6.QtGui import QDesktopServices

from .config import MAIN_DIR, AppConfig
from .icons import get_icon_path, load_icon_image
from .lifecycle import WindowRegistry

logger = logging.getLogger(__name__)

PRELOAD_PATH = MAIN_DIR.parent / "preload" / "index.js"
RENDERER_INDEX_PATH = MAIN_DIR.parent / "renderer" / "index.html"


@dataclass(frozen=True)
class WebPreferences:
    preload: str
    context_isolation: bool = True
    node_integration: bool = False
    sandbox: bool = True


@dataclass(frozen=True)
class WindowOptions:
    web_preferences: WebPreferences
    width: int = 1200
    height: int = 800
    min_width: int = 800
    min_height: int = 600
    show: bool = False
    auto_hide_menu_bar: bool = True
    title_bar_style: str = "hiddenInset"
    traffic_light_position: tuple[int, int] = (16, 18)
    icon: str = ""


@dataclass(frozen=True)
class LoadTarget:
    kind: str  # "url" or "file"
    location: str

    def to_qurl(self) -> QUrl:
        if self.kind == "url":
            return QUrl(self.location)
        return QUrl.fromLocalFile(self.location)


def build_window_options(icon_path: str, preload_path: Path = PRELOAD_PATH) -> WindowOptions:
    return WindowOptions(
        icon=icon_path,
        web_preferences=WebPreferences(preload=str(preload_path)),
    )


def resolve_load_target(config: AppConfig, index_path: Path = RENDERER_INDEX_PATH) -> LoadTarget:
    """Dev server URL in development when one is configured, else the packaged page."""
    if config.is_dev and config.renderer_url:
        return LoadTarget("url", config.renderer_url)
    return LoadTarget("file", str(index_path))


def open_external(url: str) -> bool:
    """Hand a URL to the operating system's default handler."""
    return QDesktopServices.openUrl(QUrl(url))


class WindowManager:
    """Builds windows and keeps the registry current.

    ``window_factory`` receives the ``WindowOptions`` and returns an object
    with ``ready_to_show`` and ``closed`` signals plus ``show``,
    ``set_window_open_handler`` and ``load``.
    """

    def __init__(
        self,
        config: AppConfig,
        registry: WindowRegistry,
        window_factory: Callable[[WindowOptions], object],
        set_dock_icon: Callable[[object], None] | None = None,
        external_opener: Callable[[str], object] = open_external,
        load_image: Callable[[str], object] = load_icon_image,
        platform: str = sys.platform,
    ):
        self._config = config
        self._registry = registry
        self._window_factory = window_factory
        self._set_dock_icon = set_dock_icon
        self._open_external = external_opener
        self._load_image = load_image
        self._platform = platform

    def create_window(self):
        """Create, register and start loading one window."""
        icon_path = get_icon_path(self._config.is_dev)
        icon = self._load_image(icon_path)

        if self._platform == "darwin" and self._set_dock_icon is not None and not icon.isNull():
            self._set_dock_icon(icon)

        options = build_window_options(icon_path)
        window = self._window_factory(options)

        window.ready_to_show.connect(window.show)
        window.set_window_open_handler(self._handle_window_open)
        window.closed.connect(lambda: self._registry.remove(window))
        self._registry.add(window)

        target = resolve_load_target(self._config)
        logger.info("Loading renderer from %s", target.location)
        window.load(target)
        return window

    def _handle_window_open(self, url: str) -> str:
        """Send the URL to the OS instead of opening an in-app window."""
        logger.info("Opening %s externally", url)
        self._open_external(url)
        return "deny"
