"""PDF ingestion: dedupe, copy, text extraction, chapters and chunks."""

import hashlib
import logging
import math
import re
import shutil
from dataclasses import dataclass
from pathlib import Path

import fitz  # PyMuPDF
from langchain_text_splitters import RecursiveCharacterTextSplitter

from .database import NotebookDatabase

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 50 * 1024 * 1024  # 50MB
MIN_CHARS_PER_PAGE = 50
PDF_MAGIC = b"%PDF-"
PDF_HEADER_WINDOW = 1024
CHUNK_SIZE = 1500
CHUNK_OVERLAP = 200
PAGE_SEPARATOR = "\n\n"
CHUNK_SEPARATORS = ("\n\n", "\n", " ", "")
FULL_DOCUMENT_TITLE = "Full Document"

AUXILIARY_TITLE_PATTERN = re.compile(
    r"^\s*(cover|title page|half title|copyright|contents|table of contents|"
    r"dedication|acknowledg(e)?ments?|about the authors?|index|colophon|"
    r"also by .*|praise for .*)\s*$",
    re.IGNORECASE,
)


class PdfProcessingError(Exception):
    """Base class for ingestion failures reported back to the UI."""

    code = "PROCESSING_FAILED"


class FileTooLargeError(PdfProcessingError):
    code = "FILE_TOO_LARGE"


class PasswordRequiredError(PdfProcessingError):
    code = "PASSWORD_REQUIRED"


class InvalidPasswordError(PdfProcessingError):
    code = "INVALID_PASSWORD"


class ScannedPdfError(PdfProcessingError):
    code = "SCANNED_PDF"


class NotAPdfError(PdfProcessingError):
    code = "NOT_A_PDF"


@dataclass(frozen=True)
class ProcessResult:
    pdf_id: int
    duplicate: bool
    existing_pdf_id: int | None = None

    def to_dict(self) -> dict:
        data = {"pdfId": self.pdf_id, "duplicate": self.duplicate}
        if self.existing_pdf_id is not None:
            data["existingPdfId"] = self.existing_pdf_id
        return data


@dataclass(frozen=True)
class PageBoundary:
    page_number: int
    start_idx: int
    end_idx: int


@dataclass(frozen=True)
class OutlineEntry:
    title: str
    page_number: int


def file_sha256(path: str | Path) -> str:
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for block in iter(lambda: f.read(1024 * 1024), b""):
            digest.update(block)
    return digest.hexdigest()


def estimate_tokens(text: str) -> int:
    """Rough token count: four characters per token."""
    return math.ceil(len(text) / 4)


def check_pdf_header(path: str | Path):
    """Raise NotAPdfError unless the file starts like a PDF."""
    with open(path, "rb") as f:
        header = f.read(PDF_HEADER_WINDOW)
    if PDF_MAGIC not in header:
        raise NotAPdfError("Not a PDF file")


def open_document(path: str | Path, password: str | None = None) -> fitz.Document:
    """Open a PDF, authenticating when it is encrypted."""
    check_pdf_header(path)
    try:
        doc = fitz.open(str(path), filetype="pdf")
    except RuntimeError as e:
        raise NotAPdfError(f"Cannot open PDF: {e}") from e
    if not doc.is_pdf:
        doc.close()
        raise NotAPdfError("Not a PDF file")

    if doc.needs_pass:
        if not password:
            doc.close()
            raise PasswordRequiredError("Password required")
        if not doc.authenticate(password):
            doc.close()
            raise InvalidPasswordError("Incorrect password")
    return doc


def extract_pages(doc: fitz.Document) -> list[str]:
    return [page.get_text() for page in doc]


def load_pdf_pages(path: str | Path, password: str | None = None) -> list[str]:
    """Return the text of every page of the PDF at ``path``."""
    doc = open_document(path, password)
    try:
        return extract_pages(doc)
    finally:
        doc.close()


def compute_page_boundaries(pages: list[str]) -> list[PageBoundary]:
    """Character ranges of each page inside ``PAGE_SEPARATOR.join(pages)``."""
    boundaries = []
    current = 0
    for i, content in enumerate(pages):
        boundaries.append(PageBoundary(i + 1, current, current + len(content)))
        current += len(content) + len(PAGE_SEPARATOR)
    return boundaries


def read_outline(doc: fitz.Document) -> list[OutlineEntry]:
    """Top-level bookmarks with a target page."""
    entries = []
    for level, title, page in doc.get_toc(simple=True):
        title = title.strip()
        if level == 1 and title and page >= 1:
            entries.append(OutlineEntry(title, page))
    return entries


def is_auxiliary_title(title: str) -> bool:
    return bool(AUXILIARY_TITLE_PATTERN.match(title))


def read_metadata(doc: fitz.Document) -> dict:
    meta = doc.metadata or {}
    return {
        "title": meta.get("title") or None,
        "author": meta.get("author") or None,
        "subject": meta.get("subject") or None,
        "keywords": meta.get("keywords") or None,
        "creator": meta.get("creator") or None,
    }


def locate_chapter_start(title: str, page_number: int, full_text: str,
                         boundaries: list[PageBoundary]) -> int:
    """Offset of the chapter title in the text, or of its page when not found."""
    match = re.search(re.escape(title), full_text, re.IGNORECASE)
    if match:
        return match.start()
    page_idx = min(max(page_number - 1, 0), len(boundaries) - 1)
    return boundaries[page_idx].start_idx if boundaries else 0


def split_text(text: str, chunk_size: int = CHUNK_SIZE,
               chunk_overlap: int = CHUNK_OVERLAP) -> list[str]:
    """Split text into overlapping chunks, preferring paragraph then line breaks."""
    splitter = RecursiveCharacterTextSplitter(
        chunk_size=chunk_size,
        chunk_overlap=chunk_overlap,
        separators=list(CHUNK_SEPARATORS),
    )
    return splitter.split_text(text)


def _chunk_chapter(db: NotebookDatabase, pdf_id: int, chapter: dict, full_text: str,
                   page_count: int) -> int:
    chapter_text = full_text[chapter["start_idx"]:chapter["end_idx"]]
    chunks = split_text(chapter_text)
    rows = []
    search_from = 0
    for i, content in enumerate(chunks):
        offset = chapter_text.find(content, search_from)
        if offset < 0:
            offset = search_from
        search_from = offset + 1
        start_in_full = chapter["start_idx"] + offset
        page_start = int(start_in_full / max(len(full_text), 1) * page_count) + 1
        page_end = min(
            int((start_in_full + len(content)) / max(len(full_text), 1) * page_count) + 1,
            page_count,
        )
        rows.append((pdf_id, chapter["id"], i, content, chapter["title"],
                     min(page_start, page_count), page_end, estimate_tokens(content)))
    db.insert_chunks(rows)
    return len(chunks)



def _create_chapters(db: NotebookDatabase, pdf_id: int, outline: list[OutlineEntry],
                     full_text: str, boundaries: list[PageBoundary]) -> list[int]:
    if not outline:
        return [db.insert_chapter(pdf_id, FULL_DOCUMENT_TITLE, 0, 0, len(full_text))]

    placed = []
    for index, entry in enumerate(outline):
        start_idx = locate_chapter_start(entry.title, entry.page_number, full_text, boundaries)
        chapter_id = db.insert_chapter(
            pdf_id, entry.title, index, start_idx, len(full_text),
            is_auxiliary=is_auxiliary_title(entry.title), start_page=entry.page_number,
        )
        placed.append((start_idx, chapter_id))

    # End of each chapter is the start of the next one in document order
    placed.sort()
    for (_, chapter_id), (next_start, _) in zip(placed, placed[1:]):
        db.update_chapter_end_idx(chapter_id, next_start)
    return [chapter_id for _, chapter_id in placed]


def process_pdf(db: NotebookDatabase, pdfs_dir: str | Path, source_path: str | Path,
                password: str | None = None) -> ProcessResult:
    """
    Ingest a PDF into the notebook.

    Args:
        db: Open notebook database
        pdfs_dir: Directory holding the stored copies
        source_path: PDF chosen by the user
        password: Password for encrypted PDFs

    Returns:
        ProcessResult; ``duplicate`` is True when identical content was
        already imported

    Raises:
        PdfProcessingError subclasses for the failures the UI reports
    """
    source = Path(source_path)
    size = source.stat().st_size
    if size > MAX_FILE_SIZE:
        raise FileTooLargeError("File exceeds 50MB limit")
    check_pdf_header(source)

    file_hash = file_sha256(source)
    existing = db.get_pdf_by_hash(file_hash)
    if existing and existing["status"] == "error":
        # A failed import (e.g. missing password) is replaced by this attempt
        delete_pdf_file(db, existing["id"])
        db.delete_pdf(existing["id"])
    elif existing:
        logger.info("Duplicate upload of %s (pdf %s)", source.name, existing["id"])
        return ProcessResult(existing["id"], True, existing["id"])

    pdfs_dir = Path(pdfs_dir)
    pdfs_dir.mkdir(parents=True, exist_ok=True)
    dest = pdfs_dir / f"{file_hash}_{source.name}"
    shutil.copyfile(source, dest)

    pdf_id = db.insert_pdf(source.name, str(dest), file_hash, size)
    try:
        db.update_pdf_status(pdf_id, "processing")

        try:
            doc = open_document(dest, password)
        except PasswordRequiredError:
            db.update_pdf_status(pdf_id, "error", error_message="Password required")
            raise

        try:
            pages = extract_pages(doc)
            outline = read_outline(doc)
            metadata = read_metadata(doc)
        finally:
            doc.close()

        page_count = len(pages)
        total_chars = sum(len(p) for p in pages)
        if page_count == 0 or total_chars / page_count < MIN_CHARS_PER_PAGE:
            db.update_pdf_status(
                pdf_id, "error", page_count,
                "This PDF appears to be scanned. Only text-based PDFs are supported.",
            )
            raise ScannedPdfError("SCANNED_PDF")

        full_text = PAGE_SEPARATOR.join(pages)
        boundaries = compute_page_boundaries(pages)
        db.update_pdf_metadata(pdf_id, metadata)

        for chapter_id in _create_chapters(db, pdf_id, outline, full_text, boundaries):
            chapter = db.get_chapter(chapter_id)
            db.update_chapter_status(chapter_id, "processing")
            count = _chunk_chapter(db, pdf_id, chapter, full_text, page_count)
            db.update_chapter_status(chapter_id, "done")
            logger.debug("Chapter %r: %d chunks", chapter["title"], count)

        db.update_pdf_status(pdf_id, "done", page_count)
        logger.info("Imported %s (%d pages)", source.name, page_count)
        return ProcessResult(pdf_id, False)
    except (PasswordRequiredError, ScannedPdfError):
        raise
    except Exception as e:
        db.update_pdf_status(pdf_id, "error", error_message=str(e))
        raise


def delete_pdf_file(db: NotebookDatabase, pdf_id: int):
    """Remove the stored copy of a PDF, if any."""
    pdf = db.get_pdf(pdf_id)
    if pdf:
        path = Path(pdf["filepath"])
        if path.exists():
            path.unlink()
