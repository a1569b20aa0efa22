"""Sidebar with the upload control and the list of imported PDFs."""

import logging
from typing import Callable

from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtWidgets import (
    QApplication, QInputDialog, QLabel, QLineEdit, QListWidget, QListWidgetItem,
    QMenu, QMessageBox, QVBoxLayout, QWidget
)

from .pdf_upload import PdfUpload

logger = logging.getLogger(__name__)

STATUS_LABELS = {
    "pending": "Queued",
    "processing": "Processing…",
    "done": "",
    "error": "Failed",
}

ERROR_MESSAGES = {
    "SCANNED_PDF": "This PDF appears to be scanned. Only text-based PDFs are supported.",
}


class Sidebar(QWidget):
    """Left-hand panel of the main window.

    ``invoke`` is the IPC entry point (``HandlerRegistry.invoke``); every
    action goes through it so the sidebar and the web renderer share the same
    handlers.
    """

    pdf_selected = pyqtSignal(int)
    pdfs_changed = pyqtSignal()
    status_message = pyqtSignal(str)

    def __init__(self, invoke: Callable, parent=None):
        super().__init__(parent)
        self._invoke = invoke
        self._setup_ui()

    def _setup_ui(self):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 12, 12, 12)

        title = QLabel("Library")
        title.setStyleSheet("font-weight: bold; font-size: 14px;")
        layout.addWidget(title)

        self.upload = PdfUpload(self.upload_pdf)
        layout.addWidget(self.upload)

        self.pdf_list = QListWidget()
        self.pdf_list.setObjectName("pdf-list")
        self.pdf_list.currentItemChanged.connect(self._on_current_item_changed)
        self.pdf_list.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self.pdf_list.customContextMenuRequested.connect(self._show_context_menu)
        layout.addWidget(self.pdf_list)

        self.setMinimumWidth(220)

    def refresh(self, select_id: int | None = None):
        """Reload the PDF list, keeping or changing the selection."""
        if select_id is None:
            select_id = self.current_pdf_id()

        self.pdf_list.blockSignals(True)
        self.pdf_list.clear()
        for pdf in self._invoke("pdf:list"):
            text = pdf["title"] or pdf["filename"]
            status = STATUS_LABELS.get(pdf["status"], pdf["status"])
            if status:
                text = f"{text}  ({status})"
            item = QListWidgetItem(text)
            item.setData(Qt.ItemDataRole.UserRole, pdf["id"])
            item.setToolTip(pdf["filename"])
            self.pdf_list.addItem(item)
            if pdf["id"] == select_id:
                self.pdf_list.setCurrentItem(item)
        self.pdf_list.blockSignals(False)

    def current_pdf_id(self) -> int | None:
        item = self.pdf_list.currentItem()
        if item is None:
            return None
        return item.data(Qt.ItemDataRole.UserRole)

    def upload_pdf(self):
        """Ask the main process to pick and import a PDF."""
        QApplication.setOverrideCursor(Qt.CursorShape.WaitCursor)
        try:
            result = self._invoke("pdf:upload")
        finally:
            QApplication.restoreOverrideCursor()
        self._handle_upload_result(result)

    def import_files(self, paths: list[str]):
        """Import PDFs dropped onto the window."""
        for path in paths:
            QApplication.setOverrideCursor(Qt.CursorShape.WaitCursor)
            try:
                result = self._invoke("pdf:import", path)
            finally:
                QApplication.restoreOverrideCursor()
            self._handle_upload_result(result)

    def _handle_upload_result(self, result):
        if result is None:
            return

        error = result.get("error")
        if error == "PASSWORD_REQUIRED":
            self._retry_with_password(result["filePath"])
            return
        if error:
            logger.warning("Upload failed: %s", error)
            QMessageBox.warning(self, "Upload failed", ERROR_MESSAGES.get(error, error))
            self.refresh()
            self.pdfs_changed.emit()
            return

        pdf_id = result["pdfId"]
        if result.get("duplicate"):
            self.status_message.emit("This PDF is already in your library")
        else:
            self.status_message.emit("PDF imported")
        self.refresh(select_id=pdf_id)
        self.pdfs_changed.emit()
        self.pdf_selected.emit(pdf_id)

    def _retry_with_password(self, file_path: str):
        password, ok = QInputDialog.getText(
            self, "Password required", "This PDF is password protected:",
            QLineEdit.EchoMode.Password
        )
        if not ok or not password:
            self.refresh()
            return
        result = self._invoke("pdf:upload-with-password", file_path, password)
        self._handle_upload_result(result)

    def _on_current_item_changed(self, current, previous):
        if current is not None:
            self.pdf_selected.emit(current.data(Qt.ItemDataRole.UserRole))

    def _show_context_menu(self, pos):
        item = self.pdf_list.itemAt(pos)
        if item is None:
            return
        pdf_id = item.data(Qt.ItemDataRole.UserRole)

        menu = QMenu(self)
        open_action = menu.addAction("Open in Viewer")
        delete_action = menu.addAction("Delete")
        chosen = menu.exec(self.pdf_list.mapToGlobal(pos))

        if chosen == open_action:
            result = self._invoke("pdf:open", pdf_id)
            if result.get("error"):
                self.status_message.emit(result["error"])
        elif chosen == delete_action:
            self._confirm_delete(pdf_id, item.text())

    def _confirm_delete(self, pdf_id: int, label: str):
        reply = QMessageBox.question(
            self,
            "Delete PDF",
            f"Delete “{label}” and its notes?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No
        )
        if reply == QMessageBox.StandardButton.Yes:
            self._invoke("pdf:delete", pdf_id)
            self.refresh()
            self.pdfs_changed.emit()
            self.status_message.emit("PDF deleted")
