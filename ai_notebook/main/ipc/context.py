"""Dependencies handed to every handler group at registration time."""

from dataclasses import dataclass, field
from typing import Callable

from PyQt6.QtCore import QUrl
from PyQt6.QtGui import QDesktopServices
from PyQt6.QtWidgets import QApplication, QFileDialog

from ..config import AppConfig
from ..services.database import NotebookDatabase


def choose_pdf_file() -> str | None:
    """Ask the user for a PDF with the native open-file dialog."""
    file_path, _ = QFileDialog.getOpenFileName(
        QApplication.activeWindow(),
        "Upload PDF",
        "",
        "PDF (*.pdf)"
    )
    return file_path or None


def open_path(path: str) -> bool:
    """Open a local file with the system's default application."""
    return QDesktopServices.openUrl(QUrl.fromLocalFile(path))


@dataclass
class HandlerContext:
    db: NotebookDatabase
    config: AppConfig
    choose_pdf_file: Callable[[], str | None] = field(default=choose_pdf_file)
    open_path: Callable[[str], bool] = field(default=open_path)
