"""Chapter data models."""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass
class Chapter:
    """A persisted chapter. Its presence proves the chapter is complete."""
    id: Optional[int] = None
    book_id: int = 0
    chapter_number: int = 0
    title: str = ""
    content: str = ""
    word_count: int = 0
    is_edited: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class GeneratedChapter:
    """Raw provider output for one chapter."""
    chapter_number: int
    title: str
    content: str


@dataclass(frozen=True)
class ChapterResult:
    """A sanitized chapter produced by the scheduler, ready to persist."""
    chapter_number: int
    title: str
    content: str
    word_count: int

    def to_chapter(self, book_id: int) -> Chapter:
        return Chapter(
            book_id=book_id,
            chapter_number=self.chapter_number,
            title=self.title,
            content=self.content,
            word_count=self.word_count,
        )
