"""Phase derivation and conditional routing for the generation graph.

The phase of a book is never stored. It is recomputed from the persisted book
record and its chapter records every time it is needed, which is what makes
an interrupted run resumable from nothing but the database.
"""

from typing import Iterable, Optional, Protocol

from models.book import Book
from models.enums import Phase
from workflow.state import BookRunState

# Cover attempts after which the cover step is skipped and the book finalized
COVER_ATTEMPT_LIMIT = 2


class _Numbered(Protocol):
    chapter_number: int


def completed_chapter_numbers(total: int, chapters: Iterable[_Numbered]) -> set[int]:
    """Distinct chapter numbers within 1..total that have a record."""
    return {ch.chapter_number for ch in chapters if 1 <= ch.chapter_number <= total}


def missing_chapter_numbers(total: int, chapters: Iterable[_Numbered]) -> list[int]:
    """Chapter numbers in 1..total without a record, ascending."""
    done = completed_chapter_numbers(total, chapters)
    return [n for n in range(1, total + 1) if n not in done]


def derive_phase(book: Optional[Book], chapters: Iterable[_Numbered]) -> Phase:
    """Map persisted state to the phase that applies next.

    1. no book                                   -> CREATING
    2. fewer distinct chapters than the outline  -> GENERATING
    3. no cover                                  -> COVER
    4. otherwise                                 -> COMPLETED

    Whether a COVER book actually gets another cover attempt is decided by
    `can_retry_cover`, not here.
    """
    if book is None:
        return Phase.CREATING
    total = book.total_chapters
    if len(completed_chapter_numbers(total, chapters)) < total:
        return Phase.GENERATING
    if not book.cover_url:
        return Phase.COVER
    return Phase.COMPLETED


def can_retry_cover(book: Optional[Book]) -> bool:
    """True while the book has cover attempts left."""
    return book is None or book.metadata.cover_attempts < COVER_ATTEMPT_LIMIT


# ---------------------------------------------------------------------------
# Graph routing
# ---------------------------------------------------------------------------

def route_after_derive(state: BookRunState) -> str:
    """Pick the node for the derived phase, or stop."""
    if state.get("cancelled") or state.get("error"):
        return "__end__"

    phase = state.get("phase")
    if phase == Phase.CREATING:
        return "create_book"
    if phase == Phase.GENERATING:
        attempted = set(state.get("attempted", []))
        pending = [n for n in state.get("missing", []) if n not in attempted]
        if not pending:
            return "fail_incomplete"
        return "generate_batch"
    if phase == Phase.COVER and not state.get("covers_done") and state.get("cover_attempts_left", True):
        return "generate_covers"
    # A run tries covers once; a failed cover does not hold back finalization
    return "finalize"


def route_after_step(state: BookRunState) -> str:
    """After a unit of work: re-derive unless the run was cancelled or failed."""
    if state.get("cancelled") or state.get("error"):
        return "__end__"
    return "derive"
