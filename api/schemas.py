"""Request and response bodies for the generation endpoints."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from models.enums import GenerationSpeed


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerateBookBody(_CamelModel):
    """Generation request; required fields are checked by the routes so that
    their absence is reported as 400 in the response shape below."""
    user_id: Optional[str] = None
    outline: Optional[dict[str, Any]] = None
    config: Optional[dict[str, Any]] = None
    model_id: Optional[str] = None
    generation_speed: Optional[GenerationSpeed] = None
    use_parallel: Optional[bool] = None
    book_id: Optional[int] = None
    start_chapter: Optional[int] = None


class BookSummary(_CamelModel):
    id: int
    title: str
    author: str
    chapters: int
    word_count: int
    model_used: str
    has_bibliography: bool


class GenerationResponse(_CamelModel):
    success: bool
    phase: str
    book_id: int = 0
    chapters_completed: int = 0
    total_chapters: int = 0
    progress: int = 0
    message: str = ""
    book: Optional[BookSummary] = None
    error: Optional[str] = None
    details: Optional[str] = None
    hint: Optional[str] = None

    def dump(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
