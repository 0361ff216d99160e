"""Shared pytest fixtures for the bookgen test suite."""

import pytest
from typing import Optional


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite database path."""
    return tmp_path / "test_books.db"


@pytest.fixture
def db(tmp_db_path):
    """Return an initialized Database instance backed by a temp file."""
    from models.database import Database
    return Database(tmp_db_path)


# ---------------------------------------------------------------------------
# Settings fixture
# ---------------------------------------------------------------------------

@pytest.fixture
def settings(tmp_path):
    """Return a Settings instance with all paths pointing to tmp_path."""
    from config.settings import Settings
    return Settings(
        _env_file=None,
        sqlite_db_path=tmp_path / "books.db",
        log_dir=tmp_path / "logs",
        cover_output_dir=tmp_path / "covers",
        chapters_per_batch=4,
        heartbeat_interval_seconds=30.0,
        anthropic_api_key=None,
        image_api_key="test-image-key",
    )


# ---------------------------------------------------------------------------
# Provider fake
# ---------------------------------------------------------------------------

CHAPTER_WORDS = 100


class FakeProvider:
    """In-memory GenerationProvider that records every call.

    Knobs:
        fail_chapters: chapter number -> exception raised for that chapter.
        batch_error: raised by generate_chapter_batch before any chapter runs.
        cover_error / back_cover_error: raised by the cover calls.
        ready_error: raised by ensure_ready.
        on_chapter: hook called with the chapter number before each chapter.
    """

    def __init__(self):
        self.fail_chapters: dict[int, Exception] = {}
        self.batch_error: Optional[Exception] = None
        self.cover_error: Optional[Exception] = None
        self.back_cover_error: Optional[Exception] = None
        self.bibliography_error: Optional[Exception] = None
        self.ready_error: Optional[Exception] = None
        self.on_chapter = None
        self.references = None

        self.chapter_calls: list[int] = []
        self.batch_calls: list[list[int]] = []
        self.contexts: dict[int, str] = {}
        self.cover_calls: list[tuple] = []
        self.back_cover_calls: list[tuple] = []
        self.bibliography_calls: list[tuple] = []

    def ensure_ready(self) -> None:
        if self.ready_error is not None:
            raise self.ready_error

    def _chapter(self, outline, number: int):
        from models.chapter import GeneratedChapter
        if self.on_chapter is not None:
            self.on_chapter(number)
        if number in self.fail_chapters:
            raise self.fail_chapters[number]
        body = " ".join(["word"] * CHAPTER_WORDS)
        return GeneratedChapter(
            chapter_number=number,
            title=outline.chapter(number).title,
            content=f"{body}\n[END CHAPTER]",
        )

    async def generate_chapter(self, outline, chapter_number, context, model, bibliography=None, config=None):
        self.chapter_calls.append(chapter_number)
        self.contexts[chapter_number] = context
        return self._chapter(outline, chapter_number)

    async def generate_chapter_batch(
        self, outline, chapter_numbers, context, model, bibliography=None, on_chapter_done=None, config=None,
    ):
        from config.exceptions import BatchGenerationError
        self.batch_calls.append(list(chapter_numbers))
        if self.batch_error is not None:
            raise self.batch_error
        results, failures = [], []
        for number in chapter_numbers:
            self.contexts[number] = context
            try:
                chapter = self._chapter(outline, number)
            except Exception as e:
                failures.append((number, e))
                continue
            if on_chapter_done is not None:
                on_chapter_done(number, chapter)
            results.append(chapter)
        if failures:
            raise BatchGenerationError([n for n, _ in failures], failures[0][1])
        return results

    def build_chapter_context(self, chapters) -> str:
        numbers = sorted({ch.chapter_number for ch in chapters})
        return "ctx:" + ",".join(str(n) for n in numbers)

    async def generate_cover_image(self, title, author, genre, description, style):
        self.cover_calls.append((title, style))
        if self.cover_error is not None:
            raise self.cover_error
        return "https://img.example/front.png"

    async def generate_back_cover_image(
        self, title, author, genre, description, style, model=None, branding=None,
    ):
        self.back_cover_calls.append((title, style, branding))
        if self.back_cover_error is not None:
            raise self.back_cover_error
        return "https://img.example/back.png"

    async def generate_bibliography_references(self, book_id, outline, chapter_contents, config, model=None):
        from models.bibliography import BibliographyReference
        self.bibliography_calls.append((book_id, len(chapter_contents), config))
        if self.bibliography_error is not None:
            raise self.bibliography_error
        if self.references is not None:
            return self.references
        return [
            BibliographyReference(book_id=book_id, title="Sources of the Field", authors=["A. Author"], year=2020),
            BibliographyReference(book_id=book_id, title="Second Source", authors=["B. Writer"], year=2021),
        ]


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def orchestrator(db, fake_provider, settings):
    from workflow.graph import GenerationOrchestrator
    return GenerationOrchestrator(db, fake_provider, settings)


# ---------------------------------------------------------------------------
# Sample data fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def make_outline():
    """Return a factory building an outline with `n` chapters."""
    from models.outline import BookOutline

    def _make(n: int = 12, characters: bool = True) -> BookOutline:
        data = {
            "title": "The Lighthouse Keeper",
            "author": "Jane Doe",
            "genre": "literary fiction",
            "description": "A keeper tends a light no ship has needed in decades.",
            "chapters": [
                {"number": i, "title": f"Chapter Title {i}", "summary": f"Events of chapter {i}.", "wordCount": 1500}
                for i in range(1, n + 1)
            ],
            "themes": ["solitude", "duty"],
        }
        if characters:
            data["characters"] = [{"name": "Maren", "role": "protagonist", "description": "the keeper"}]
        return BookOutline.model_validate(data)

    return _make


@pytest.fixture
def make_request(make_outline):
    """Return a factory for GenerationRequest objects."""
    from models.configuration import BookConfiguration
    from workflow.graph import GenerationRequest

    def _make(n: int = 12, book_id=None, config=None, **kwargs) -> "GenerationRequest":
        return GenerationRequest(
            user_id=kwargs.pop("user_id", "user-1"),
            outline=make_outline(n),
            config=config or BookConfiguration(),
            book_id=book_id,
            **kwargs,
        )

    return _make


class RecordingCallback:
    """Collects (event name, payload) pairs."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    def on_event(self, event, payload: dict) -> None:
        self.events.append((event.value, payload))

    def names(self) -> list[str]:
        return [name for name, _ in self.events]

    def payloads(self, name: str) -> list[dict]:
        return [p for n, p in self.events if n == name]


@pytest.fixture
def recorder():
    return RecordingCallback()
