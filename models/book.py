"""Book record and aggregate metadata."""

from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional

from models.enums import BookStatus


@dataclass
class BookMetadata:
    """Aggregate figures kept alongside a book; recomputed once per batch."""
    word_count: int = 0
    page_count: int = 0
    reading_time: int = 0  # minutes
    chapters: int = 0
    model_used: str = ""
    back_cover_url: Optional[str] = None
    cover_attempts: int = 0
    generated_at: Optional[str] = None  # ISO-8601
    last_modified: Optional[str] = None  # ISO-8601

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "BookMetadata":
        data = data or {}
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)


@dataclass
class Book:
    """Represents a generated (or generating) book."""
    id: Optional[int] = None
    user_id: str = ""
    title: str = ""
    author: str = ""
    genre: str = ""
    summary: str = ""
    outline: dict = field(default_factory=dict)  # BookOutline snapshot (JSON)
    config: dict = field(default_factory=dict)  # BookConfiguration snapshot (JSON)
    metadata: BookMetadata = field(default_factory=BookMetadata)
    status: BookStatus = BookStatus.GENERATING
    cover_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def total_chapters(self) -> int:
        return len(self.outline.get("chapters", []))
