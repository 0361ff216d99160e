"""Enumerations for book generation status tracking."""

from enum import Enum


class BookStatus(str, Enum):
    GENERATING = "generating"
    COMPLETED = "completed"


class Phase(str, Enum):
    """Derived generation phase; never stored."""
    CREATING = "creating"
    GENERATING = "generating"
    COVER = "cover"
    COMPLETED = "completed"


class GenerationSpeed(str, Enum):
    QUALITY = "quality"
    BALANCED = "balanced"
    FAST = "fast"


class CitationStyle(str, Enum):
    APA = "APA"
    MLA = "MLA"
    CHICAGO = "Chicago"
    HARVARD = "Harvard"
    IEEE = "IEEE"


class ReferenceFormat(str, Enum):
    FOOTNOTES = "footnotes"
    ENDNOTES = "endnotes"
    IN_TEXT = "in-text"
    BIBLIOGRAPHY = "bibliography"


class SourceVerification(str, Enum):
    STRICT = "strict"
    MODERATE = "moderate"
    RELAXED = "relaxed"


class ReferenceType(str, Enum):
    BOOK = "book"
    JOURNAL = "journal"
    WEBSITE = "website"
    REPORT = "report"
    OTHER = "other"


class CoverSide(str, Enum):
    FRONT = "front"
    BACK = "back"


class GenerationEvent(str, Enum):
    """Named events emitted by a full run (also the SSE event names)."""
    START = "start"
    BOOK_CREATED = "book_created"
    BATCH_START = "batch_start"
    CHAPTER_PROGRESS = "chapter_progress"
    CHAPTER_ERROR = "chapter_error"
    BATCH_ERROR = "batch_error"
    BATCH_COMPLETE = "batch_complete"
    COVERS_START = "covers_start"
    COVER_COMPLETE = "cover_complete"
    COVER_ERROR = "cover_error"
    COMPLETE = "complete"
    ERROR = "error"
