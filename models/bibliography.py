"""Bibliography configuration and reference records."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models.enums import ReferenceType


@dataclass
class BibliographyConfig:
    """Per-book bibliography display settings."""
    book_id: int = 0
    enabled: bool = True
    citation_style: str = "APA"
    location: list[str] = field(default_factory=lambda: ["bibliography"])
    sort_by: str = "author"
    sort_direction: str = "asc"
    hanging_indent: bool = True
    show_doi: bool = True
    show_url: bool = True
    updated_at: Optional[datetime] = None


@dataclass
class BibliographyReference:
    """One generated source cited by the book."""
    id: Optional[int] = None
    book_id: int = 0
    type: ReferenceType = ReferenceType.BOOK
    title: str = ""
    authors: list[str] = field(default_factory=list)
    year: Optional[int] = None
    publisher: Optional[str] = None
    url: Optional[str] = None
    doi: Optional[str] = None
    journal_title: Optional[str] = None
    volume: Optional[str] = None
    issue: Optional[str] = None
    pages: Optional[str] = None
    created_at: Optional[datetime] = None
