import pytest
from PyQt6.QtWidgets import QInputDialog, QMessageBox

from ai_notebook.main.widgets.sidebar import Sidebar


class FakeIpc:
    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []
        self.pdfs = []

    def __call__(self, channel, *args):
        self.calls.append((channel, *args))
        if channel == "pdf:list":
            return list(self.pdfs)
        response = self.responses.get(channel)
        if isinstance(response, list):
            return response.pop(0)
        return response


def _pdf(pdf_id, filename, status="done", title=None):
    return {"id": pdf_id, "filename": filename, "status": status, "title": title,
            "created_at": "2024-01-01 00:00:00"}


@pytest.fixture
def warnings(monkeypatch):
    shown = []
    monkeypatch.setattr(QMessageBox, "warning", lambda *args: shown.append(args[2]))
    return shown


def _sidebar(qtbot, ipc):
    sidebar = Sidebar(ipc)
    qtbot.addWidget(sidebar)
    return sidebar


def test_refresh_lists_pdfs_with_status(qtbot):
    ipc = FakeIpc()
    ipc.pdfs = [_pdf(2, "b.pdf", "error"), _pdf(1, "a.pdf", title="Book A")]
    sidebar = _sidebar(qtbot, ipc)

    sidebar.refresh()

    texts = [sidebar.pdf_list.item(i).text() for i in range(sidebar.pdf_list.count())]
    assert texts == ["b.pdf  (Failed)", "Book A"]
    assert sidebar.current_pdf_id() is None


def test_cancelled_upload_does_nothing(qtbot, warnings):
    ipc = FakeIpc({"pdf:upload": None})
    sidebar = _sidebar(qtbot, ipc)

    sidebar.upload_pdf()

    assert ipc.calls == [("pdf:upload",)]
    assert warnings == []


def test_successful_upload_selects_new_pdf(qtbot):
    ipc = FakeIpc({"pdf:upload": {"pdfId": 7, "duplicate": False}})
    ipc.pdfs = [_pdf(7, "new.pdf")]
    sidebar = _sidebar(qtbot, ipc)

    with qtbot.waitSignal(sidebar.pdf_selected) as selected:
        sidebar.upload.button.click()

    assert selected.args == [7]
    assert sidebar.current_pdf_id() == 7


def test_scanned_upload_shows_warning(qtbot, warnings):
    ipc = FakeIpc({"pdf:upload": {"error": "SCANNED_PDF"}})
    sidebar = _sidebar(qtbot, ipc)

    sidebar.upload_pdf()

    assert len(warnings) == 1
    assert "scanned" in warnings[0]


def test_password_prompt_retries_upload(qtbot, monkeypatch):
    ipc = FakeIpc({
        "pdf:upload": {"error": "PASSWORD_REQUIRED", "filePath": "/tmp/locked.pdf"},
        "pdf:upload-with-password": {"pdfId": 3, "duplicate": False},
    })
    ipc.pdfs = [_pdf(3, "locked.pdf")]
    monkeypatch.setattr(QInputDialog, "getText", lambda *args, **kwargs: ("secret", True))
    sidebar = _sidebar(qtbot, ipc)

    sidebar.upload_pdf()

    assert ("pdf:upload-with-password", "/tmp/locked.pdf", "secret") in ipc.calls
    assert sidebar.current_pdf_id() == 3


def test_password_prompt_cancelled(qtbot, monkeypatch):
    ipc = FakeIpc({"pdf:upload": {"error": "PASSWORD_REQUIRED", "filePath": "/tmp/locked.pdf"}})
    monkeypatch.setattr(QInputDialog, "getText", lambda *args, **kwargs: ("", False))
    sidebar = _sidebar(qtbot, ipc)

    sidebar.upload_pdf()

    assert all(call[0] != "pdf:upload-with-password" for call in ipc.calls)


def test_dropped_files_are_imported(qtbot):
    ipc = FakeIpc({"pdf:import": [{"pdfId": 1, "duplicate": False},
                                  {"pdfId": 1, "duplicate": True, "existingPdfId": 1}]})
    ipc.pdfs = [_pdf(1, "a.pdf")]
    sidebar = _sidebar(qtbot, ipc)
    messages = []
    sidebar.status_message.connect(messages.append)

    sidebar.import_files(["/tmp/a.pdf", "/tmp/a-copy.pdf"])

    imports = [call for call in ipc.calls if call[0] == "pdf:import"]
    assert imports == [("pdf:import", "/tmp/a.pdf"), ("pdf:import", "/tmp/a-copy.pdf")]
    assert messages == ["PDF imported", "This PDF is already in your library"]


def test_confirmed_delete(qtbot, monkeypatch):
    ipc = FakeIpc({"pdf:delete": True})
    ipc.pdfs = [_pdf(4, "gone.pdf")]
    monkeypatch.setattr(
        QMessageBox, "question", lambda *args: QMessageBox.StandardButton.Yes
    )
    sidebar = _sidebar(qtbot, ipc)
    sidebar.refresh()
    ipc.pdfs = []

    with qtbot.waitSignal(sidebar.pdfs_changed):
        sidebar._confirm_delete(4, "gone.pdf")

    assert ("pdf:delete", 4) in ipc.calls
    assert sidebar.pdf_list.count() == 0
