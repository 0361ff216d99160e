"""LangGraph run state definition."""

from typing import Optional, TypedDict

from models.enums import Phase


class BookRunState(TypedDict, total=False):
    """State carried between nodes of one full generation run.

    Fields are grouped logically:
    - Identity: book_id, user_id, model
    - Derived each loop: phase, missing, chapters_completed, cover_attempts_left
    - Run bookkeeping: attempted, batch_index, covers_done
    - Control: cancelled, error, finished
    """

    # Identity
    book_id: Optional[int]
    user_id: str
    model: str

    # Derived from persisted data on every pass through "derive"
    phase: Phase
    missing: list[int]
    chapters_completed: int
    total_chapters: int
    cover_attempts_left: bool

    # Chapters this run already tried; never retried by the same run
    attempted: list[int]
    batch_index: int
    covers_done: bool

    # Control flow
    cancelled: bool
    error: str
    finished: bool
