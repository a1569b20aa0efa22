"""Upload button for adding PDFs to the notebook."""

from typing import Callable

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import QLabel, QPushButton, QStyle, QVBoxLayout, QWidget


class PdfUpload(QWidget):
    """Button that asks the owner to start an upload.

    The widget does no file access of its own; clicking it calls
    ``on_upload`` with no arguments.
    """

    def __init__(self, on_upload: Callable[[], None], show_caption: bool = True, parent=None):
        super().__init__(parent)
        self._on_upload = on_upload
        self._setup_ui(show_caption)

    def _setup_ui(self, show_caption: bool):
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)

        self.button = QPushButton("Upload")
        self.button.setObjectName("upload-pdf-btn")
        self.button.setIcon(self.style().standardIcon(QStyle.StandardPixmap.SP_ArrowUp))
        self.button.clicked.connect(self._clicked)
        layout.addWidget(self.button)

        self.caption = None
        if show_caption:
            self.caption = QLabel("Supported: PDF")
            self.caption.setAlignment(Qt.AlignmentFlag.AlignCenter)
            self.caption.setStyleSheet("color: gray; font-size: 10px;")
            layout.addWidget(self.caption)

    def _clicked(self):
        self._on_upload()
