"""SQLite storage for PDFs, chapters, chunks, notes and settings."""

import json
import logging
import os
import sqlite3
from datetime import datetime
from pathlib import Path

import sqlite_vec

from ..config import AppConfig

logger = logging.getLogger(__name__)

EMBEDDING_DIMENSIONS = 768
PDF_STATUSES = ("pending", "processing", "done", "error")
INTERRUPTED_MESSAGE = "Import interrupted"

SCHEMA = """
CREATE TABLE IF NOT EXISTS settings (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS pdfs (
    id INTEGER PRIMARY KEY,
    filename TEXT NOT NULL,
    filepath TEXT NOT NULL,
    file_hash TEXT UNIQUE,
    file_size INTEGER,
    page_count INTEGER,
    metadata JSON,
    status TEXT CHECK(status IN ('pending', 'processing', 'done', 'error')) DEFAULT 'pending',
    error_message TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS chapters (
    id INTEGER PRIMARY KEY,
    pdf_id INTEGER REFERENCES pdfs(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    chapter_index INTEGER,
    start_idx INTEGER,
    end_idx INTEGER,
    start_page INTEGER,
    is_auxiliary BOOLEAN DEFAULT FALSE,
    status TEXT CHECK(status IN ('pending', 'processing', 'done', 'error')) DEFAULT 'pending',
    error_message TEXT,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS chunks (
    id INTEGER PRIMARY KEY,
    pdf_id INTEGER REFERENCES pdfs(id) ON DELETE CASCADE,
    chapter_id INTEGER REFERENCES chapters(id) ON DELETE CASCADE,
    chunk_index INTEGER,
    content TEXT,
    heading TEXT,
    page_start INTEGER,
    page_end INTEGER,
    token_count INTEGER
);

CREATE TABLE IF NOT EXISTS notes (
    pdf_id INTEGER PRIMARY KEY REFERENCES pdfs(id) ON DELETE CASCADE,
    content TEXT NOT NULL DEFAULT '',
    last_modified TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_chunks_chapter ON chunks(chapter_id);
CREATE INDEX IF NOT EXISTS idx_chapters_pdf ON chapters(pdf_id);

CREATE VIRTUAL TABLE IF NOT EXISTS chunks_fts USING fts5(
    content,
    tokenize='porter unicode61'
);

CREATE TRIGGER IF NOT EXISTS chunks_ai AFTER INSERT ON chunks BEGIN
    INSERT INTO chunks_fts(rowid, content) VALUES (new.id, new.content);
END;

CREATE TRIGGER IF NOT EXISTS chunks_au AFTER UPDATE ON chunks BEGIN
    DELETE FROM chunks_fts WHERE rowid = old.id;
    INSERT INTO chunks_fts(rowid, content) VALUES (new.id, new.content);
END;

CREATE TRIGGER IF NOT EXISTS chunks_ad AFTER DELETE ON chunks BEGIN
    DELETE FROM chunks_fts WHERE rowid = old.id;
END;
"""

# Additive column migrations for databases created by older versions
MIGRATIONS = (
    "ALTER TABLE pdfs ADD COLUMN metadata JSON",
    "ALTER TABLE chapters ADD COLUMN start_page INTEGER",
    "ALTER TABLE chapters ADD COLUMN is_auxiliary BOOLEAN DEFAULT FALSE",
)

VECTOR_SCHEMA = f"""
CREATE VIRTUAL TABLE IF NOT EXISTS vec_chunks USING vec0(
    chunk_id INTEGER PRIMARY KEY,
    embedding FLOAT[{EMBEDDING_DIMENSIONS}]
);

CREATE TRIGGER IF NOT EXISTS chunks_vec_ad AFTER DELETE ON chunks BEGIN
    DELETE FROM vec_chunks WHERE chunk_id = old.id;
END;
"""


class DatabaseNotInitializedError(RuntimeError):
    """Raised when the database is used before ``open`` or after ``close``."""


def escape_fts_query(query: str) -> str:
    """Quote every whitespace-separated token so FTS5 treats it literally."""
    tokens = [t for t in query.replace('"', '""').split() if t]
    return " ".join(f'"{t}"' for t in tokens)


class NotebookDatabase:
    """Handles the notebook's SQLite store."""

    def __init__(self, db_path: str | Path):
        """Initialize with the database file path; call ``open`` before use."""
        self.db_path = Path(db_path)
        self._conn: sqlite3.Connection | None = None
        self.vector_enabled = False

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise DatabaseNotInitializedError("Database not initialized")
        return self._conn

    def open(self):
        """Open the connection and create or migrate the schema."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        if str(self.db_path) != ":memory:":
            conn.execute("PRAGMA journal_mode = WAL")
        conn.execute("PRAGMA foreign_keys = ON")
        self._conn = conn

        self._load_vector_extension()

        conn.executescript(SCHEMA)
        for migration in MIGRATIONS:
            try:
                conn.execute(migration)
            except sqlite3.OperationalError:
                # Column already exists
                pass

        if self.vector_enabled:
            try:
                conn.executescript(VECTOR_SCHEMA)
            except sqlite3.OperationalError as e:
                logger.warning("vec_chunks table creation skipped: %s", e)
                self.vector_enabled = False
        conn.commit()
        return self

    def _load_vector_extension(self):
        conn = self.conn
        try:
            conn.enable_load_extension(True)
            sqlite_vec.load(conn)
            conn.enable_load_extension(False)
            self.vector_enabled = True
        except (AttributeError, sqlite3.OperationalError) as e:
            # AttributeError: interpreter built without extension loading
            logger.warning("sqlite-vec not loaded: %s", e)
            self.vector_enabled = False

    def close(self):
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @property
    def is_open(self) -> bool:
        return self._conn is not None

    # Settings

    def get_setting(self, key: str) -> str | None:
        row = self.conn.execute("SELECT value FROM settings WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def set_setting(self, key: str, value: str):
        with self.conn:
            self.conn.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)", (key, value)
            )

    # PDFs

    def insert_pdf(self, filename: str, filepath: str, file_hash: str, file_size: int) -> int:
        with self.conn:
            cur = self.conn.execute(
                "INSERT INTO pdfs (filename, filepath, file_hash, file_size, status) "
                "VALUES (?, ?, ?, ?, 'pending')",
                (filename, filepath, file_hash, file_size),
            )
        return cur.lastrowid

    def get_pdf_by_hash(self, file_hash: str) -> dict | None:
        row = self.conn.execute(
            "SELECT id, filename, status FROM pdfs WHERE file_hash = ?", (file_hash,)
        ).fetchone()
        return dict(row) if row else None

    def get_pdf(self, pdf_id: int) -> dict | None:
        row = self.conn.execute("SELECT * FROM pdfs WHERE id = ?", (pdf_id,)).fetchone()
        return dict(row) if row else None

    def list_pdfs(self) -> list[dict]:
        """List PDFs newest first, with the title pulled from stored metadata."""
        rows = self.conn.execute(
            "SELECT id, filename, status, created_at, metadata FROM pdfs "
            "ORDER BY created_at DESC, id DESC"
        ).fetchall()
        result = []
        for row in rows:
            title = None
            if row["metadata"]:
                try:
                    title = json.loads(row["metadata"]).get("title") or None
                except (ValueError, AttributeError):
                    title = None
            result.append({
                "id": row["id"],
                "filename": row["filename"],
                "status": row["status"],
                "created_at": row["created_at"],
                "title": title,
            })
        return result

    def update_pdf_status(
        self,
        pdf_id: int,
        status: str,
        page_count: int | None = None,
        error_message: str | None = None,
    ):
        """Set the status; ``page_count`` is kept when not given."""
        if status not in PDF_STATUSES:
            raise ValueError(f"Unknown PDF status: {status}")
        with self.conn:
            self.conn.execute(
                "UPDATE pdfs SET status = ?, page_count = COALESCE(?, page_count), "
                "error_message = ? WHERE id = ?",
                (status, page_count, error_message, pdf_id),
            )

    def reset_interrupted_imports(self) -> int:
        """Mark imports left pending or processing by a previous run as failed.

        Returns the number of PDFs reset.
        """
        with self.conn:
            cur = self.conn.execute(
                "UPDATE pdfs SET status = 'error', error_message = ? "
                "WHERE status IN ('pending', 'processing')",
                (INTERRUPTED_MESSAGE,),
            )
            self.conn.execute(
                "UPDATE chapters SET status = 'error', error_message = ? "
                "WHERE status IN ('pending', 'processing')",
                (INTERRUPTED_MESSAGE,),
            )
        return cur.rowcount

    def update_pdf_metadata(self, pdf_id: int, metadata: dict):
        with self.conn:
            self.conn.execute(
                "UPDATE pdfs SET metadata = ? WHERE id = ?",
                (json.dumps(metadata, ensure_ascii=False), pdf_id),
            )

    def delete_pdf(self, pdf_id: int):
        with self.conn:
            self.conn.execute("DELETE FROM pdfs WHERE id = ?", (pdf_id,))

    # Chapters

    def insert_chapter(
        self,
        pdf_id: int,
        title: str,
        chapter_index: int,
        start_idx: int,
        end_idx: int,
        is_auxiliary: bool = False,
        start_page: int = 1,
    ) -> int:
        with self.conn:
            cur = self.conn.execute(
                "INSERT INTO chapters (pdf_id, title, chapter_index, start_idx, end_idx, "
                "start_page, is_auxiliary, status) VALUES (?, ?, ?, ?, ?, ?, ?, 'pending')",
                (pdf_id, title, chapter_index, start_idx, end_idx, start_page, int(is_auxiliary)),
            )
        return cur.lastrowid

    def get_chapter(self, chapter_id: int) -> dict | None:
        row = self.conn.execute("SELECT * FROM chapters WHERE id = ?", (chapter_id,)).fetchone()
        return self._chapter_dict(row) if row else None

    def list_chapters(self, pdf_id: int, exclude_auxiliary: bool = False) -> list[dict]:
        query = (
            "SELECT id, pdf_id, title, chapter_index, start_page, is_auxiliary, status, "
            "error_message FROM chapters WHERE pdf_id = ?"
        )
        if exclude_auxiliary:
            query += " AND is_auxiliary = 0"
        query += " ORDER BY chapter_index"
        return [self._chapter_dict(row) for row in self.conn.execute(query, (pdf_id,))]

    @staticmethod
    def _chapter_dict(row) -> dict:
        chapter = dict(row)
        chapter["is_auxiliary"] = bool(chapter.get("is_auxiliary"))
        return chapter

    def update_chapter_status(self, chapter_id: int, status: str, error_message: str | None = None):
        if status not in PDF_STATUSES:
            raise ValueError(f"Unknown chapter status: {status}")
        with self.conn:
            self.conn.execute(
                "UPDATE chapters SET status = ?, error_message = ? WHERE id = ?",
                (status, error_message, chapter_id),
            )

    def update_chapter_end_idx(self, chapter_id: int, end_idx: int):
        with self.conn:
            self.conn.execute(
                "UPDATE chapters SET end_idx = ? WHERE id = ?", (end_idx, chapter_id)
            )

    # Chunks

    def insert_chunks(self, rows: list[tuple]):
        """Insert a chapter's chunks in one transaction.

        Each row is ``(pdf_id, chapter_id, chunk_index, content, heading,
        page_start, page_end, token_count)``.
        """
        with self.conn:
            self.conn.executemany(
                "INSERT INTO chunks (pdf_id, chapter_id, chunk_index, content, heading, "
                "page_start, page_end, token_count) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                rows,
            )


    def list_chunks_by_pdf(self, pdf_id: int) -> list[dict]:
        rows = self.conn.execute(
            "SELECT * FROM chunks WHERE pdf_id = ? ORDER BY chapter_id, chunk_index", (pdf_id,)
        )
        return [dict(row) for row in rows]

    def list_chunks_by_chapter(self, chapter_id: int) -> list[dict]:
        rows = self.conn.execute(
            "SELECT * FROM chunks WHERE chapter_id = ? ORDER BY chunk_index", (chapter_id,)
        )
        return [dict(row) for row in rows]

    def get_chunks_by_ids(self, ids: list[int]) -> list[dict]:
        if not ids:
            return []
        placeholders = ",".join("?" for _ in ids)
        rows = self.conn.execute(
            "SELECT id, pdf_id, chapter_id, content, heading, page_start, page_end, token_count "
            f"FROM chunks WHERE id IN ({placeholders})",
            list(ids),
        )
        by_id = {row["id"]: dict(row) for row in rows}
        return [by_id[i] for i in ids if i in by_id]

    def fts_search(self, query: str, limit: int = 20, chapter_id: int | None = None) -> list[int]:
        """Return ids of chunks matching every token of ``query``."""
        escaped = escape_fts_query(query)
        if not escaped:
            return []
        if chapter_id is not None:
            rows = self.conn.execute(
                "SELECT f.rowid FROM chunks_fts f JOIN chunks c ON c.id = f.rowid "
                "WHERE f.content MATCH ? AND c.chapter_id = ? ORDER BY f.rank LIMIT ?",
                (escaped, chapter_id, limit),
            )
        else:
            rows = self.conn.execute(
                "SELECT rowid FROM chunks_fts WHERE content MATCH ? ORDER BY rank LIMIT ?",
                (escaped, limit),
            )
        return [row[0] for row in rows]

    # Notes

    def save_notes(self, pdf_id: int, content: str) -> str:
        """
        Save the notes for a PDF, replacing any previous content.

        Args:
            pdf_id: Id of the PDF the notes belong to
            content: Rich text content as HTML

        Returns:
            The ISO timestamp stored as ``last_modified``
        """
        last_modified = datetime.now().isoformat()
        with self.conn:
            self.conn.execute(
                "INSERT INTO notes (pdf_id, content, last_modified) VALUES (?, ?, ?) "
                "ON CONFLICT(pdf_id) DO UPDATE SET content = excluded.content, "
                "last_modified = excluded.last_modified",
                (pdf_id, content, last_modified),
            )
        return last_modified

    def load_notes(self, pdf_id: int) -> dict | None:
        """Load the notes for a PDF, or None when nothing was saved yet."""
        row = self.conn.execute(
            "SELECT pdf_id, content, last_modified FROM notes WHERE pdf_id = ?", (pdf_id,)
        ).fetchone()
        return dict(row) if row else None


def init_database(config: AppConfig) -> NotebookDatabase:
    """Create the data directories and open the notebook database."""
    config.pdfs_dir.mkdir(parents=True, exist_ok=True)
    # Owner-only access to the user's library
    os.chmod(config.data_dir, 0o700)
    db = NotebookDatabase(config.db_path).open()
    reset = db.reset_interrupted_imports()
    if reset:
        logger.warning("Marked %d interrupted import(s) as failed", reset)
    logger.info("Database ready at %s", config.db_path)
    return db
