"""Notes, search and settings channels."""

from ..services import settings
from .context import HandlerContext
from .registry import HandlerRegistry

SNIPPET_LENGTH = 240


def register_notes_handlers(registry: HandlerRegistry, context: HandlerContext):
    db = context.db

    def get_notes(pdf_id: int):
        notes = db.load_notes(pdf_id)
        if notes is None:
            return {"content": "", "last_modified": None}
        return {"content": notes["content"], "last_modified": notes["last_modified"]}

    def save_notes(pdf_id: int, content: str):
        if not db.get_pdf(pdf_id):
            return {"error": "PDF not found"}
        return {"last_modified": db.save_notes(pdf_id, content)}

    registry.handle("notes:get", get_notes)
    registry.handle("notes:save", save_notes)


def register_search_handlers(registry: HandlerRegistry, context: HandlerContext):
    db = context.db

    def search_chunks(query: str, limit: int = 20, pdf_id: int | None = None):
        # Over-fetch so filtering by PDF still fills the page
        ids = db.fts_search(query, limit * 5 if pdf_id is not None else limit)
        results = []
        for chunk in db.get_chunks_by_ids(ids):
            if pdf_id is not None and chunk["pdf_id"] != pdf_id:
                continue
            results.append({
                "id": chunk["id"],
                "pdfId": chunk["pdf_id"],
                "chapterId": chunk["chapter_id"],
                "heading": chunk["heading"],
                "pageStart": chunk["page_start"],
                "pageEnd": chunk["page_end"],
                "snippet": chunk["content"][:SNIPPET_LENGTH],
            })
            if len(results) >= limit:
                break
        return results

    registry.handle("search:chunks", search_chunks)


def register_settings_handlers(registry: HandlerRegistry, context: HandlerContext):
    db = context.db

    def set_theme(theme: str):
        settings.set_theme(db, theme)
        return True

    registry.handle("settings:get-theme", lambda: settings.get_theme(db))
    registry.handle("settings:set-theme", set_theme)
