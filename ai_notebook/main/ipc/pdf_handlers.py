"""PDF and chapter channels."""

import logging
from pathlib import Path

from ..services.pdf_processor import PdfProcessingError, delete_pdf_file, process_pdf
from .context import HandlerContext
from .registry import HandlerRegistry

logger = logging.getLogger(__name__)

TEST_ONLY_ERROR = "Not allowed outside test environment"
NOT_A_PDF_ERROR = "Only PDF files are supported"


def _upload(context: HandlerContext, file_path: str, password: str | None = None) -> dict:
    """Run the import and turn failures into ``{"error": ...}`` results."""
    if Path(file_path).suffix.lower() != ".pdf":
        logger.warning("Refusing to import non-PDF file %s", file_path)
        return {"error": NOT_A_PDF_ERROR}
    try:
        result = process_pdf(context.db, context.config.pdfs_dir, file_path, password)
        return result.to_dict()
    except PdfProcessingError as e:
        if e.code == "PASSWORD_REQUIRED":
            return {"error": e.code, "filePath": str(file_path)}
        if e.code == "SCANNED_PDF":
            return {"error": e.code}
        return {"error": str(e)}
    except OSError as e:
        logger.error("Could not read %s: %s", file_path, e)
        return {"error": str(e)}


def register_pdf_handlers(registry: HandlerRegistry, context: HandlerContext):
    db = context.db

    def upload():
        file_path = context.choose_pdf_file()
        if not file_path:
            return None
        return _upload(context, file_path)

    def upload_with_password(file_path: str, password: str):
        return _upload(context, file_path, password)

    def import_path(file_path: str):
        return _upload(context, file_path)

    def upload_file(file_path: str):
        # Direct import without the dialog, for automated tests
        if not context.config.is_test:
            return {"error": TEST_ONLY_ERROR}
        return _upload(context, file_path)

    def delete(pdf_id: int):
        delete_pdf_file(db, pdf_id)
        db.delete_pdf(pdf_id)
        return True

    def set_status_test(pdf_id: int, status: str):
        if not context.config.is_test:
            return {"error": TEST_ONLY_ERROR}
        db.update_pdf_status(pdf_id, status)
        for chapter in db.list_chapters(pdf_id):
            db.update_chapter_status(chapter["id"], status)
        return {"success": True}

    def open_pdf(pdf_id: int):
        pdf = db.get_pdf(pdf_id)
        if not pdf:
            return {"error": "PDF not found"}
        if not context.open_path(pdf["filepath"]):
            return {"error": "Failed to open PDF"}
        return {"success": True}

    def open_chapter(chapter_id: int):
        # System viewers cannot be told a start page, so the whole PDF is opened
        chapter = db.get_chapter(chapter_id)
        if not chapter:
            return {"error": "Chapter not found"}
        pdf = db.get_pdf(chapter["pdf_id"])
        if not pdf:
            return {"error": "PDF not found"}
        if not context.open_path(pdf["filepath"]):
            return {"error": "Failed to open PDF"}
        return {"success": True, "page": chapter.get("start_page")}

    def list_chapters(pdf_id: int, exclude_auxiliary: bool = True):
        return db.list_chapters(pdf_id, exclude_auxiliary)

    registry.handle("pdf:upload", upload)
    registry.handle("pdf:upload-with-password", upload_with_password)
    registry.handle("pdf:upload-file", upload_file)
    registry.handle("pdf:import", import_path)
    registry.handle("pdf:list", db.list_pdfs)
    registry.handle("pdf:get", db.get_pdf)
    registry.handle("pdf:delete", delete)
    registry.handle("pdf:set-status-test", set_status_test)
    registry.handle("pdf:open", open_pdf)
    registry.handle("pdf:open-chapter", open_chapter)
    registry.handle("chapter:list", list_chapters)
