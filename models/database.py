"""SQLite database initialization and CRUD operations."""

import json
import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from config.exceptions import DatabaseError
from models.book import Book, BookMetadata
from models.bibliography import BibliographyConfig, BibliographyReference
from models.chapter import Chapter
from models.enums import BookStatus, ReferenceType

logger = logging.getLogger(__name__)

# SQL for creating all tables
_CREATE_TABLES_SQL = """
CREATE TABLE IF NOT EXISTS books (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    author TEXT DEFAULT '',
    genre TEXT DEFAULT '',
    summary TEXT DEFAULT '',
    outline TEXT NOT NULL,
    config TEXT NOT NULL,
    metadata TEXT NOT NULL DEFAULT '{}',
    status TEXT DEFAULT 'generating',
    cover_url TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS chapters (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    book_id INTEGER NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    chapter_number INTEGER NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    content TEXT NOT NULL DEFAULT '',
    word_count INTEGER DEFAULT 0,
    is_edited BOOLEAN DEFAULT FALSE,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS bibliography_configs (
    book_id INTEGER PRIMARY KEY REFERENCES books(id) ON DELETE CASCADE,
    enabled BOOLEAN DEFAULT TRUE,
    citation_style TEXT DEFAULT 'APA',
    location TEXT DEFAULT '["bibliography"]',
    sort_by TEXT DEFAULT 'author',
    sort_direction TEXT DEFAULT 'asc',
    hanging_indent BOOLEAN DEFAULT TRUE,
    show_doi BOOLEAN DEFAULT TRUE,
    show_url BOOLEAN DEFAULT TRUE,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS bibliography_references (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    book_id INTEGER NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    type TEXT DEFAULT 'book',
    title TEXT NOT NULL,
    authors TEXT DEFAULT '[]',
    year INTEGER,
    publisher TEXT,
    url TEXT,
    doi TEXT,
    journal_title TEXT,
    volume TEXT,
    issue TEXT,
    pages TEXT,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);
"""

# Indexes added via migration (idempotent)
_MIGRATION_SQL = [
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_chapters_book_chapter ON chapters(book_id, chapter_number)",
    "CREATE INDEX IF NOT EXISTS idx_books_user ON books(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_references_book ON bibliography_references(book_id)",
]


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    """SQLite persistence for books, chapters and bibliographies.

    Chapters are append-only: a (book, chapter number) pair is written at most
    once and later inserts for the same pair are ignored.
    """

    def __init__(self, db_path: str | Path):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA journal_mode = WAL")
        return conn

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection that commits on success and is always closed."""
        try:
            conn = self._get_conn()
        except sqlite3.Error as e:
            raise DatabaseError(f"Cannot open database: {e}", {"path": str(self.db_path)}) from e
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise DatabaseError(f"Database operation failed: {e}") from e
        finally:
            conn.close()

    def _init_db(self):
        with self._connect() as conn:
            conn.executescript(_CREATE_TABLES_SQL)
        self._migrate()

    def _migrate(self):
        """Apply idempotent schema migrations (indexes)."""
        with self._connect() as conn:
            for sql in _MIGRATION_SQL:
                conn.execute(sql)

    # ---- Book CRUD ----

    def create_book(self, book: Book) -> Book:
        """Insert a book and return it with its id populated."""
        now = _utcnow_iso()
        if book.metadata.generated_at is None:
            book.metadata.generated_at = now
        book.metadata.last_modified = now
        with self._connect() as conn:
            cursor = conn.execute(
                "INSERT INTO books (user_id, title, author, genre, summary, outline, config, "
                "metadata, status, cover_url) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (book.user_id, book.title, book.author, book.genre, book.summary,
                 json.dumps(book.outline), json.dumps(book.config),
                 json.dumps(book.metadata.to_dict()), book.status.value, book.cover_url),
            )
            book.id = cursor.lastrowid
        logger.info("Book %d created: '%s'", book.id, book.title)
        return book

    def get_book(self, book_id: int) -> Optional[Book]:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM books WHERE id = ?", (book_id,)).fetchone()
            if not row:
                return None
            return self._row_to_book(row)

    def list_books(self, user_id: Optional[str] = None) -> list[Book]:
        with self._connect() as conn:
            if user_id:
                rows = conn.execute(
                    "SELECT * FROM books WHERE user_id = ? ORDER BY id", (user_id,),
                ).fetchall()
            else:
                rows = conn.execute("SELECT * FROM books ORDER BY id").fetchall()
            return [self._row_to_book(r) for r in rows]

    def update_book(
        self,
        book_id: int,
        *,
        status: Optional[BookStatus] = None,
        cover_url: Optional[str] = None,
        metadata: Optional[BookMetadata] = None,
    ) -> None:
        """Patch the given fields; fields left as None are not touched."""
        assignments = []
        params: list = []
        if status is not None:
            assignments.append("status=?")
            params.append(status.value)
        if cover_url is not None:
            assignments.append("cover_url=?")
            params.append(cover_url)
        if metadata is not None:
            metadata.last_modified = _utcnow_iso()
            assignments.append("metadata=?")
            params.append(json.dumps(metadata.to_dict()))
        if not assignments:
            return
        assignments.append("updated_at=CURRENT_TIMESTAMP")
        params.append(book_id)
        with self._connect() as conn:
            conn.execute(f"UPDATE books SET {', '.join(assignments)} WHERE id=?", params)

    def _row_to_book(self, row) -> Book:
        return Book(
            id=row["id"], user_id=row["user_id"], title=row["title"],
            author=row["author"], genre=row["genre"], summary=row["summary"],
            outline=json.loads(row["outline"]), config=json.loads(row["config"]),
            metadata=BookMetadata.from_dict(json.loads(row["metadata"] or "{}")),
            status=BookStatus(row["status"]), cover_url=row["cover_url"],
            created_at=row["created_at"], updated_at=row["updated_at"],
        )

    # ---- Chapter CRUD ----

    def create_multiple_chapters(self, chapters: list[Chapter]) -> int:
        """Bulk-insert chapters in one transaction; returns how many were new."""
        if not chapters:
            return 0
        with self._connect() as conn:
            before = conn.total_changes
            conn.executemany(
                "INSERT OR IGNORE INTO chapters (book_id, chapter_number, title, content, "
                "word_count, is_edited) VALUES (?, ?, ?, ?, ?, ?)",
                [
                    (ch.book_id, ch.chapter_number, ch.title, ch.content,
                     ch.word_count, ch.is_edited)
                    for ch in chapters
                ],
            )
            inserted = conn.total_changes - before
        if inserted < len(chapters):
            logger.warning(
                "%d of %d chapters already existed and were left untouched",
                len(chapters) - inserted, len(chapters),
            )
        return inserted

    def get_book_chapters(self, book_id: int) -> list[Chapter]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM chapters WHERE book_id = ? ORDER BY chapter_number",
                (book_id,),
            ).fetchall()
            return [self._row_to_chapter(r) for r in rows]

    def _row_to_chapter(self, row) -> Chapter:
        return Chapter(
            id=row["id"], book_id=row["book_id"],
            chapter_number=row["chapter_number"], title=row["title"],
            content=row["content"], word_count=row["word_count"],
            is_edited=bool(row["is_edited"]),
            created_at=row["created_at"], updated_at=row["updated_at"],
        )

    # ---- Bibliography ----

    def upsert_bibliography_config(self, config: BibliographyConfig) -> None:
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO bibliography_configs (book_id, enabled, citation_style, location, "
                "sort_by, sort_direction, hanging_indent, show_doi, show_url) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(book_id) DO UPDATE SET enabled=excluded.enabled, "
                "citation_style=excluded.citation_style, location=excluded.location, "
                "sort_by=excluded.sort_by, sort_direction=excluded.sort_direction, "
                "hanging_indent=excluded.hanging_indent, show_doi=excluded.show_doi, "
                "show_url=excluded.show_url, updated_at=CURRENT_TIMESTAMP",
                (config.book_id, config.enabled, config.citation_style,
                 json.dumps(config.location), config.sort_by, config.sort_direction,
                 config.hanging_indent, config.show_doi, config.show_url),
            )

    def get_bibliography_config(self, book_id: int) -> Optional[BibliographyConfig]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM bibliography_configs WHERE book_id = ?", (book_id,),
            ).fetchone()
            if not row:
                return None
            return BibliographyConfig(
                book_id=row["book_id"], enabled=bool(row["enabled"]),
                citation_style=row["citation_style"], location=json.loads(row["location"]),
                sort_by=row["sort_by"], sort_direction=row["sort_direction"],
                hanging_indent=bool(row["hanging_indent"]),
                show_doi=bool(row["show_doi"]), show_url=bool(row["show_url"]),
                updated_at=row["updated_at"],
            )

    def create_bibliography_references(self, refs: list[BibliographyReference]) -> int:
        """Insert a book's references in one transaction: all of them or none."""
        if not refs:
            return 0
        with self._connect() as conn:
            conn.executemany(
                "INSERT INTO bibliography_references (book_id, type, title, authors, year, "
                "publisher, url, doi, journal_title, volume, issue, pages) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (ref.book_id, ref.type.value, ref.title, json.dumps(ref.authors), ref.year,
                     ref.publisher, ref.url, ref.doi, ref.journal_title, ref.volume,
                     ref.issue, ref.pages)
                    for ref in refs
                ],
            )
        return len(refs)

    def get_bibliography_references(self, book_id: int) -> list[BibliographyReference]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM bibliography_references WHERE book_id = ? ORDER BY id",
                (book_id,),
            ).fetchall()
            return [
                BibliographyReference(
                    id=r["id"], book_id=r["book_id"], type=ReferenceType(r["type"]),
                    title=r["title"], authors=json.loads(r["authors"] or "[]"),
                    year=r["year"], publisher=r["publisher"], url=r["url"], doi=r["doi"],
                    journal_title=r["journal_title"], volume=r["volume"],
                    issue=r["issue"], pages=r["pages"], created_at=r["created_at"],
                )
                for r in rows
            ]
