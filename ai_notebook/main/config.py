"""Runtime configuration for the main process."""

import logging
import os
import sys
from dataclasses import dataclass
from pathlib import Path

APP_NAME = "AI Notebook"
APP_ORGANIZATION = "ai-notebook"
APP_USER_MODEL_ID = "com.ai-notebook"

# Directory holding the main-process code; renderer and preload assets sit beside it
MAIN_DIR = Path(__file__).resolve().parent

RENDERER_URL_ENV = "AI_NOTEBOOK_RENDERER_URL"
LEGACY_RENDERER_URL_ENV = "ELECTRON_RENDERER_URL"
DATA_DIR_ENV = "AI_NOTEBOOK_TEST_DB_DIR"
APP_ENV = "AI_NOTEBOOK_ENV"
LOG_LEVEL_ENV = "AI_NOTEBOOK_LOG_LEVEL"

DB_FILENAME = "ai-notebook.db"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def is_packaged() -> bool:
    """True when running from a frozen bundle rather than a source checkout."""
    return bool(getattr(sys, "frozen", False))


def default_data_dir() -> Path:
    """Per-user data directory reported by Qt.

    Must be called after the QApplication has its name and organization set.
    """
    from PyQt6.QtCore import QStandardPaths

    location = QStandardPaths.writableLocation(
        QStandardPaths.StandardLocation.AppDataLocation
    )
    if not location:
        return Path.home() / f".{APP_ORGANIZATION}"
    return Path(location)


@dataclass(frozen=True)
class AppConfig:
    is_dev: bool
    data_dir: Path
    renderer_url: str | None = None
    environment: str = "production"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env=None, packaged: bool | None = None, data_dir: Path | None = None):
        """Build the configuration from environment variables."""
        env = os.environ if env is None else env
        if packaged is None:
            packaged = is_packaged()

        renderer_url = env.get(RENDERER_URL_ENV) or env.get(LEGACY_RENDERER_URL_ENV) or None

        if data_dir is None:
            override = env.get(DATA_DIR_ENV)
            data_dir = Path(override) if override else default_data_dir()

        return cls(
            is_dev=not packaged,
            data_dir=Path(data_dir),
            renderer_url=renderer_url,
            environment=env.get(APP_ENV, "production"),
            log_level=env.get(LOG_LEVEL_ENV, "INFO").upper(),
        )

    @property
    def is_test(self) -> bool:
        return self.environment == "test"

    @property
    def db_path(self) -> Path:
        return self.data_dir / DB_FILENAME

    @property
    def pdfs_dir(self) -> Path:
        return self.data_dir / "pdfs"


def configure_logging(level: str = "INFO"):
    """Set up console logging for the whole process."""
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=LOG_FORMAT,
    )
