import json
import shutil
from pathlib import Path

import pytest

from ai_notebook.main.services import pdf_processor
from ai_notebook.main.services.database import init_database
from ai_notebook.main.services.pdf_processor import (
    FULL_DOCUMENT_TITLE,
    InvalidPasswordError,
    NotAPdfError,
    PasswordRequiredError,
    ScannedPdfError,
    compute_page_boundaries,
    delete_pdf_file,
    estimate_tokens,
    file_sha256,
    is_auxiliary_title,
    load_pdf_pages,
    process_pdf,
    split_text,
)


def test_text_pdf_is_imported_as_full_document(db, tmp_path, text_pdf):
    pdfs_dir = tmp_path / "store"

    result = process_pdf(db, pdfs_dir, text_pdf)

    assert result.duplicate is False
    pdf = db.get_pdf(result.pdf_id)
    assert pdf["status"] == "done"
    assert pdf["page_count"] == 2
    assert pdf["filename"] == "plain.pdf"
    assert json.loads(pdf["metadata"])["title"] == "Plain Book"

    stored = pdfs_dir / f"{file_sha256(text_pdf)}_plain.pdf"
    assert pdf["filepath"] == str(stored)
    assert stored.exists()

    chapters = db.list_chapters(result.pdf_id)
    assert [c["title"] for c in chapters] == [FULL_DOCUMENT_TITLE]
    assert chapters[0]["status"] == "done"

    chunks = db.list_chunks_by_pdf(result.pdf_id)
    assert chunks
    assert all(c["heading"] == FULL_DOCUMENT_TITLE for c in chunks)
    assert all(c["token_count"] == estimate_tokens(c["content"]) for c in chunks)
    assert all(1 <= c["page_start"] <= c["page_end"] <= 2 for c in chunks)


def test_same_file_twice_is_a_duplicate(db, tmp_path, text_pdf):
    first = process_pdf(db, tmp_path / "store", text_pdf)
    second = process_pdf(db, tmp_path / "store", text_pdf)

    assert second.duplicate is True
    assert second.pdf_id == first.pdf_id
    assert second.to_dict() == {
        "pdfId": first.pdf_id, "duplicate": True, "existingPdfId": first.pdf_id,
    }
    assert len(db.list_pdfs()) == 1


def test_outline_becomes_chapters(db, tmp_path, outlined_pdf):
    result = process_pdf(db, tmp_path / "store", outlined_pdf)

    chapters = db.list_chapters(result.pdf_id)
    assert [c["title"] for c in chapters] == ["Contents", "Chapter One", "Chapter Two"]
    assert [c["is_auxiliary"] for c in chapters] == [True, False, False]
    assert [c["start_page"] for c in chapters] == [1, 2, 3]

    visible = db.list_chapters(result.pdf_id, exclude_auxiliary=True)
    assert [c["title"] for c in visible] == ["Chapter One", "Chapter Two"]

    one, two = (db.get_chapter(c["id"]) for c in visible)
    assert one["end_idx"] == two["start_idx"]
    assert db.list_chunks_by_chapter(one["id"])[0]["content"].startswith("Chapter One")


def test_scanned_pdf_is_rejected(db, tmp_path, scanned_pdf):
    with pytest.raises(ScannedPdfError):
        process_pdf(db, tmp_path / "store", scanned_pdf)

    pdf = db.list_pdfs()[0]
    assert pdf["status"] == "error"
    assert db.get_pdf(pdf["id"])["page_count"] == 2


def test_locked_pdf_needs_password(db, tmp_path, locked_pdf):
    with pytest.raises(PasswordRequiredError):
        process_pdf(db, tmp_path / "store", locked_pdf)

    pdf = db.list_pdfs()[0]
    assert pdf["status"] == "error"
    assert db.get_pdf(pdf["id"])["error_message"] == "Password required"


def test_password_retry_replaces_failed_import(db, tmp_path, locked_pdf):
    with pytest.raises(PasswordRequiredError):
        process_pdf(db, tmp_path / "store", locked_pdf)

    result = process_pdf(db, tmp_path / "store", locked_pdf, password="hunter2")

    assert result.duplicate is False
    pdfs = db.list_pdfs()
    assert [p["id"] for p in pdfs] == [result.pdf_id]
    assert pdfs[0]["status"] == "done"


def test_retry_under_new_name_removes_old_stored_copy(db, tmp_path, locked_pdf):
    with pytest.raises(PasswordRequiredError):
        process_pdf(db, tmp_path / "store", locked_pdf)
    old_copy = Path(db.get_pdf(db.list_pdfs()[0]["id"])["filepath"])
    renamed = tmp_path / "renamed.pdf"
    shutil.copyfile(locked_pdf, renamed)

    result = process_pdf(db, tmp_path / "store", renamed, password="hunter2")

    assert not old_copy.exists()
    assert Path(db.get_pdf(result.pdf_id)["filepath"]).exists()
    assert sorted(p.name for p in (tmp_path / "store").iterdir()) == [
        Path(db.get_pdf(result.pdf_id)["filepath"]).name
    ]


def test_text_file_is_not_imported(db, tmp_path):
    secrets = tmp_path / "secrets.txt"
    secrets.write_text("api_key = abc123\n" * 20, encoding="utf-8")

    with pytest.raises(NotAPdfError):
        process_pdf(db, tmp_path / "store", secrets)

    assert db.list_pdfs() == []
    assert db.fts_search("api_key") == []


def test_text_file_with_pdf_suffix_is_not_imported(db, tmp_path):
    fake = tmp_path / "notes.pdf"
    fake.write_text("api_key = abc123\n" * 20, encoding="utf-8")

    with pytest.raises(NotAPdfError) as excinfo:
        process_pdf(db, tmp_path / "store", fake)

    assert excinfo.value.code == "NOT_A_PDF"
    assert db.list_pdfs() == []
    assert not (tmp_path / "store").exists()


def test_wrong_password_is_reported(db, tmp_path, locked_pdf):
    with pytest.raises(InvalidPasswordError):
        process_pdf(db, tmp_path / "store", locked_pdf, password="wrong")
    assert db.list_pdfs()[0]["status"] == "error"


def test_oversized_file_is_rejected_before_import(db, tmp_path, text_pdf, monkeypatch):
    monkeypatch.setattr(pdf_processor, "MAX_FILE_SIZE", 10)
    with pytest.raises(pdf_processor.FileTooLargeError):
        process_pdf(db, tmp_path / "store", text_pdf)
    assert db.list_pdfs() == []


def test_delete_pdf_file_removes_stored_copy(db, tmp_path, text_pdf):
    result = process_pdf(db, tmp_path / "store", text_pdf)
    stored = db.get_pdf(result.pdf_id)["filepath"]

    delete_pdf_file(db, result.pdf_id)

    assert not Path(stored).exists()
    assert text_pdf.exists()


def test_load_pdf_pages(text_pdf):
    pages = load_pdf_pages(text_pdf)
    assert len(pages) == 2
    assert pages[0].startswith("Introduction")


@pytest.mark.parametrize("title", ["Contents", "Table of Contents", "  INDEX ", "Acknowledgements"])
def test_auxiliary_titles(title):
    assert is_auxiliary_title(title)


@pytest.mark.parametrize("title", ["Chapter 1", "Indexing Strategies", "Introduction"])
def test_regular_titles(title):
    assert not is_auxiliary_title(title)


def test_page_boundaries_account_for_separator():
    boundaries = compute_page_boundaries(["abc", "de"])
    assert [(b.page_number, b.start_idx, b.end_idx) for b in boundaries] == [(1, 0, 3), (2, 5, 7)]


def test_split_text_short_text_is_one_chunk():
    assert split_text("short paragraph") == ["short paragraph"]


def test_split_text_respects_size_and_overlaps():
    paragraphs = [f"Paragraph {i} " + " ".join(["word"] * 8) for i in range(30)]
    text = "\n\n".join(paragraphs)

    chunks = split_text(text, chunk_size=500, chunk_overlap=100)

    assert len(chunks) > 1
    assert all(len(c) <= 500 for c in chunks)
    assert chunks[0].startswith("Paragraph 0")
    assert "Paragraph 29" in chunks[-1]
    # Consecutive chunks share at least one paragraph
    for previous, current in zip(chunks, chunks[1:]):
        assert current.split("\n\n")[0] in previous


def test_split_text_breaks_long_lines_on_spaces():
    text = " ".join(["token"] * 1000)
    chunks = split_text(text, chunk_size=200, chunk_overlap=20)
    assert all(len(c) <= 200 for c in chunks)
    assert all(set(c.split()) == {"token"} for c in chunks)


def test_split_text_chunks_are_trimmed_and_cut_at_paragraphs():
    paragraphs = [f"Section {i}. " + "Some sentence here. " * 12 for i in range(12)]
    text = "\n\n".join(paragraphs)

    chunks = split_text(text, chunk_size=600, chunk_overlap=0)

    assert all(c == c.strip() for c in chunks)
    assert all(c.startswith("Section ") for c in chunks)
    assert all(len(c) <= 600 for c in chunks)
    assert sum(c.count("Section ") for c in chunks) == 12


def test_import_interrupted_by_crash_can_be_retried(config, text_pdf):
    database = init_database(config)
    first = process_pdf(database, config.pdfs_dir, text_pdf)
    database.update_pdf_status(first.pdf_id, "processing")
    database.close()

    database = init_database(config)
    try:
        result = process_pdf(database, config.pdfs_dir, text_pdf)

        assert result.duplicate is False
        assert [p["status"] for p in database.list_pdfs()] == ["done"]
        assert database.list_chapters(result.pdf_id)
        assert Path(database.get_pdf(result.pdf_id)["filepath"]).exists()
    finally:
        database.close()
