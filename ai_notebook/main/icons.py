"""Application icon lookup."""

from pathlib import Path

from PyQt6.QtGui import QPixmap

from .config import MAIN_DIR

ICON_RELATIVE_PATH = Path("resources") / "icons" / "png" / "512x512.png"


def get_icon_path(is_dev: bool, base_dir: Path = MAIN_DIR) -> str:
    """Return the PNG icon path for the current context.

    A source checkout keeps ``resources/`` at the repository root, two levels
    above the main-process package. A packaged bundle ships it next to the
    package, one level up.
    """
    if is_dev:
        return str(Path(base_dir).parent.parent / ICON_RELATIVE_PATH)
    return str(Path(base_dir).parent / ICON_RELATIVE_PATH)


def load_icon_image(icon_path: str) -> QPixmap:
    """Load the icon; a missing or unreadable file gives a null pixmap."""
    return QPixmap(icon_path)
