"""Models package: database, records, input models, and enums."""

from models.database import Database
from models.book import Book, BookMetadata
from models.chapter import Chapter, ChapterResult, GeneratedChapter
from models.bibliography import BibliographyConfig, BibliographyReference
from models.outline import BookOutline, ChapterOutline, CharacterOutline
from models.configuration import BookConfiguration, BibliographyGenerationConfig
from models.enums import (
    BookStatus,
    Phase,
    GenerationSpeed,
    CitationStyle,
    ReferenceFormat,
    SourceVerification,
    ReferenceType,
    CoverSide,
    GenerationEvent,
)

__all__ = [
    "Database",
    "Book",
    "BookMetadata",
    "Chapter",
    "ChapterResult",
    "GeneratedChapter",
    "BibliographyConfig",
    "BibliographyReference",
    "BookOutline",
    "ChapterOutline",
    "CharacterOutline",
    "BookConfiguration",
    "BibliographyGenerationConfig",
    "BookStatus",
    "Phase",
    "GenerationSpeed",
    "CitationStyle",
    "ReferenceFormat",
    "SourceVerification",
    "ReferenceType",
    "CoverSide",
    "GenerationEvent",
]
