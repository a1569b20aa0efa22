import os

# Widgets are created without a display
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest

from ai_notebook.main.config import AppConfig
from ai_notebook.main.services.database import NotebookDatabase

from .helpers import page_text, write_pdf


@pytest.fixture
def config(tmp_path):
    return AppConfig(is_dev=True, data_dir=tmp_path / "data", environment="test")


@pytest.fixture
def db(tmp_path):
    database = NotebookDatabase(tmp_path / "notebook.db").open()
    yield database
    database.close()


@pytest.fixture
def text_pdf(tmp_path):
    return write_pdf(
        tmp_path / "plain.pdf",
        [page_text("Introduction"), page_text("Background")],
        metadata={"title": "Plain Book", "author": "A. Writer"},
    )


@pytest.fixture
def outlined_pdf(tmp_path):
    return write_pdf(
        tmp_path / "outlined.pdf",
        [
            page_text("Contents"),
            page_text("Chapter One", lines=12),
            page_text("Chapter Two", lines=12),
        ],
        toc=[[1, "Contents", 1], [1, "Chapter One", 2], [1, "Chapter Two", 3]],
    )


@pytest.fixture
def scanned_pdf(tmp_path):
    return write_pdf(tmp_path / "scanned.pdf", ["", "p2"])


@pytest.fixture
def locked_pdf(tmp_path):
    return write_pdf(tmp_path / "locked.pdf", [page_text("Secret")], password="hunter2")
