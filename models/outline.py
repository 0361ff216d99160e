"""Book outline input model."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ChapterOutline(BaseModel):
    """One chapter stub of the outline."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    number: int = Field(ge=1)
    title: str
    summary: str = ""
    word_count: int = Field(default=2500, ge=0)


class CharacterOutline(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    name: str
    role: str = ""
    description: str = ""


class BookOutline(BaseModel):
    """The immutable chapter-by-chapter plan for one book.

    Chapter numbers must form the contiguous range 1..N; the outline is kept
    sorted by number.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    title: str
    author: str = ""
    genre: str = ""
    description: str = ""
    chapters: list[ChapterOutline]
    themes: list[str] = Field(default_factory=list)
    characters: list[CharacterOutline] = Field(default_factory=list)
    total_word_count: Optional[int] = None

    @field_validator("chapters")
    @classmethod
    def validate_chapter_numbers(cls, v: list[ChapterOutline]) -> list[ChapterOutline]:
        if not v:
            raise ValueError("Outline must contain at least one chapter")
        ordered = sorted(v, key=lambda ch: ch.number)
        numbers = [ch.number for ch in ordered]
        if numbers != list(range(1, len(ordered) + 1)):
            raise ValueError(f"Chapter numbers must be contiguous from 1, got {numbers}")
        return ordered

    @property
    def total_chapters(self) -> int:
        return len(self.chapters)

    @property
    def is_non_fiction(self) -> bool:
        return not self.characters

    def chapter(self, number: int) -> ChapterOutline:
        """Return the stub for a chapter number (KeyError if absent)."""
        if 1 <= number <= len(self.chapters):
            return self.chapters[number - 1]
        raise KeyError(f"Chapter {number} not found in outline")
