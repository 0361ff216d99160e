"""Generation orchestrator: one step machine, two ways to drive it.

`GenerationOrchestrator.advance` performs exactly one unit of work per call
(create the book, run one batch, generate covers, or finalize) and reports
progress. `GenerationOrchestrator.run_to_completion` drives the same units
through a LangGraph StateGraph until the book is complete, emitting named
events through a callback. Both derive the phase from persisted data on every
pass, so either can pick up a book the other left half-done.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from langgraph.graph import StateGraph, END

from agents.provider import GenerationProvider
from config.exceptions import BookNotFoundError, DatabaseError, IncompleteRunError
from config.settings import Settings, get_settings
from models.bibliography import BibliographyConfig
from models.book import Book, BookMetadata
from models.chapter import Chapter, ChapterResult
from models.configuration import BibliographyGenerationConfig, BookConfiguration
from models.database import Database
from models.enums import BookStatus, CoverSide, GenerationEvent, GenerationSpeed, Phase
from models.outline import BookOutline
from tools.text_utils import estimate_page_count, estimate_reading_time

from workflow.callbacks import GenerationCallback
from workflow.cancellation import CancellationToken
from workflow.conditions import (
    can_retry_cover,
    completed_chapter_numbers,
    derive_phase,
    missing_chapter_numbers,
    route_after_derive,
    route_after_step,
)
from workflow.failures import classify
from workflow.progress import ProgressSnapshot, ProgressTracker, compute_progress
from workflow.scheduler import BatchScheduler, plan_batches
from workflow.state import BookRunState

logger = logging.getLogger(__name__)

# Hook fired per cover side: (side, url or None, error or None)
OnCover = Callable[[CoverSide, Optional[str], Optional[BaseException]], None]


@dataclass
class GenerationRequest:
    """Inputs shared by both transports."""
    user_id: str
    outline: BookOutline
    config: BookConfiguration = field(default_factory=BookConfiguration)
    model_id: Optional[str] = None
    generation_speed: Optional[GenerationSpeed] = None
    use_parallel: Optional[bool] = None
    book_id: Optional[int] = None
    # Accepted for compatibility; gaps are always derived from persisted chapters
    start_chapter: Optional[int] = None


@dataclass
class StepOutcome:
    snapshot: ProgressSnapshot
    book_id: int
    book: Optional[dict] = None


@dataclass
class CoverOutcome:
    cover_url: Optional[str] = None
    back_cover_url: Optional[str] = None
    errors: dict = field(default_factory=dict)


def total_words(chapters: list[Chapter]) -> int:
    return sum(ch.word_count or 0 for ch in chapters)


class GenerationOrchestrator:
    """Owns the units of work and the rules that sequence them."""

    def __init__(
        self,
        db: Database,
        provider: GenerationProvider,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.db = db
        self.provider = provider
        self.scheduler = BatchScheduler(provider, self.settings.chapters_per_batch)

    # ------------------------------------------------------------------
    # Request resolution
    # ------------------------------------------------------------------

    def resolve_model(self, request: GenerationRequest, config: BookConfiguration) -> str:
        """Explicit model id, then the configured chapter model, then the
        configured model, then the speed preset (or the default)."""
        ai = config.ai_settings
        explicit = request.model_id or ai.chapter_model or ai.model
        if explicit:
            return explicit
        speed = request.generation_speed or config.generation_speed
        return self.settings.model_for_speed(speed.value if speed else None)

    def resolve_parallel(self, request: GenerationRequest, config: BookConfiguration) -> bool:
        if request.use_parallel is not None:
            return request.use_parallel
        return config.use_parallel

    def load_book(self, book_id: int, user_id: Optional[str] = None) -> Book:
        """Fetch a book owned by `user_id`; anything else is reported as missing."""
        book = self.db.get_book(book_id)
        if book is None or (user_id and book.user_id != user_id):
            raise BookNotFoundError(book_id)
        return book

    @staticmethod
    def book_inputs(book: Book) -> tuple[BookOutline, BookConfiguration]:
        """The outline and configuration snapshots stored with a book."""
        return BookOutline.model_validate(book.outline), BookConfiguration.model_validate(book.config)

    @staticmethod
    def requires_provider(phase: Phase, book: Optional[Book], config: BookConfiguration) -> bool:
        """Whether the work from `phase` onwards calls the provider.

        Re-reporting a completed book does not, so it needs no credentials.
        """
        if phase in (Phase.CREATING, Phase.GENERATING):
            return True
        if phase == Phase.COVER and can_retry_cover(book):
            return True
        return book.status != BookStatus.COMPLETED and config.bibliography.include

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------

    def create_book(
        self,
        user_id: str,
        outline: BookOutline,
        config: BookConfiguration,
        model: str,
    ) -> Book:
        book = Book(
            user_id=user_id,
            title=outline.title,
            author=outline.author,
            genre=outline.genre,
            summary=outline.description,
            outline=outline.model_dump(mode="json", by_alias=True),
            config=config.model_dump(mode="json", by_alias=True),
            metadata=BookMetadata(model_used=model),
            status=BookStatus.GENERATING,
        )
        book = self.db.create_book(book)
        logger.info("Created book %d: '%s' (%d chapters)", book.id, book.title, outline.total_chapters)
        return book

    def _metadata_for(self, book: Book, chapters: list[Chapter], model: str) -> BookMetadata:
        words = total_words(chapters)
        meta = BookMetadata.from_dict(book.metadata.to_dict())
        meta.word_count = words
        meta.page_count = estimate_page_count(words, self.settings.words_per_page)
        meta.reading_time = estimate_reading_time(words)
        meta.chapters = len(chapters)
        meta.model_used = model
        return meta

    async def generate_batch(
        self,
        book: Book,
        outline: BookOutline,
        config: BookConfiguration,
        chapter_numbers: list[int],
        chapters: list[Chapter],
        model: str,
        parallel: bool,
        on_chapter_done=None,
        on_chapter_error=None,
        on_batch_error=None,
    ) -> tuple[list[ChapterResult], list[Chapter]]:
        """Run one batch, persist what succeeded, refresh the book metadata.

        Returns the new results and the full persisted chapter list.
        """
        prior = sorted(chapters, key=lambda ch: ch.chapter_number)
        context = self.provider.build_chapter_context(prior)
        results = await self.scheduler.run_batch(
            outline,
            chapter_numbers,
            context,
            model,
            BibliographyGenerationConfig.from_configuration(config),
            parallel,
            on_chapter_done,
            prior_chapters=prior,
            config=config,
            on_chapter_error=on_chapter_error,
            on_batch_error=on_batch_error,
        )
        if not results:
            return results, chapters

        self.db.create_multiple_chapters([r.to_chapter(book.id) for r in results])
        all_chapters = self.db.get_book_chapters(book.id)
        # Book metadata is written once per batch, never per chapter
        book.metadata = self._metadata_for(book, all_chapters, model)
        self.db.update_book(book.id, metadata=book.metadata)
        logger.info(
            "Book %d: saved chapters %s (%d/%d persisted)",
            book.id, [r.chapter_number for r in results], len(all_chapters), book.total_chapters,
        )
        return results, all_chapters

    async def generate_covers(
        self,
        book: Book,
        outline: BookOutline,
        on_cover: Optional[OnCover] = None,
    ) -> CoverOutcome:
        """Generate front and back covers; each side is best-effort.

        Every call counts as one cover attempt, so a provider that keeps
        failing cannot hold the book in the cover phase forever.
        """
        outcome = CoverOutcome(cover_url=book.cover_url, back_cover_url=book.metadata.back_cover_url)
        description = outline.description or book.summary

        if not outcome.cover_url:
            try:
                outcome.cover_url = await self.provider.generate_cover_image(
                    outline.title, outline.author, outline.genre, description,
                    self.settings.front_cover_style,
                )
                if on_cover:
                    on_cover(CoverSide.FRONT, outcome.cover_url, None)
            except Exception as e:
                logger.error("Front cover failed for book %d: %s", book.id, e)
                outcome.errors[CoverSide.FRONT] = e
                if on_cover:
                    on_cover(CoverSide.FRONT, None, e)

        if not outcome.back_cover_url:
            try:
                outcome.back_cover_url = await self.provider.generate_back_cover_image(
                    outline.title, outline.author, outline.genre, description,
                    self.settings.back_cover_style,
                    None,
                    {"show_branding": False, "show_tagline": False},
                )
                if on_cover:
                    on_cover(CoverSide.BACK, outcome.back_cover_url, None)
            except Exception as e:
                logger.error("Back cover failed for book %d: %s", book.id, e)
                outcome.errors[CoverSide.BACK] = e
                if on_cover:
                    on_cover(CoverSide.BACK, None, e)

        book.metadata.back_cover_url = outcome.back_cover_url
        book.metadata.cover_attempts += 1
        book.cover_url = outcome.cover_url
        self.db.update_book(book.id, cover_url=outcome.cover_url, metadata=book.metadata)
        return outcome

    async def finalize(
        self,
        book: Book,
        outline: BookOutline,
        config: BookConfiguration,
        chapters: list[Chapter],
        model: str,
    ) -> Book:
        """Create the bibliography (if enabled) and mark the book completed.

        A book that is already completed is left untouched.
        """
        if book.status == BookStatus.COMPLETED:
            return book

        bib = config.bibliography
        if bib.include:
            await self._build_bibliography(book, outline, config, chapters, model)

        book.metadata = self._metadata_for(book, chapters, model)
        book.status = BookStatus.COMPLETED
        self.db.update_book(book.id, status=BookStatus.COMPLETED, metadata=book.metadata)
        logger.info("Book %d finalized: %d words", book.id, book.metadata.word_count)
        return book

    async def _build_bibliography(
        self,
        book: Book,
        outline: BookOutline,
        config: BookConfiguration,
        chapters: list[Chapter],
        model: str,
    ) -> None:
        bib = config.bibliography
        try:
            self.db.upsert_bibliography_config(BibliographyConfig(
                book_id=book.id,
                enabled=True,
                citation_style=bib.citation_style.value,
                location=[bib.reference_format.value],
            ))
            if self.db.get_bibliography_references(book.id):
                logger.info("Book %d already has references; keeping them", book.id)
                return
            references = await self.provider.generate_bibliography_references(
                book.id,
                outline,
                [ch.content or "" for ch in sorted(chapters, key=lambda c: c.chapter_number)],
                BibliographyGenerationConfig.from_configuration(config),
                model,
            )
        except Exception as e:
            logger.error("Bibliography failed for book %d: %s", book.id, e)
            return

        try:
            saved = self.db.create_bibliography_references(references)
        except DatabaseError as e:
            logger.error("Failed to save %d references for book %d: %s", len(references), book.id, e)
            return
        logger.info("Book %d: %d bibliography references saved", book.id, saved)

    # ------------------------------------------------------------------
    # Incremental transport
    # ------------------------------------------------------------------

    async def advance(self, request: GenerationRequest) -> StepOutcome:
        """Perform exactly one unit of work and report progress.

        Raises:
            ProviderAuthError: No provider credentials, when the step needs them.
            BookNotFoundError: Unknown book id, or another user's book.
        """
        if request.start_chapter:
            logger.debug("start_chapter=%s ignored; gaps are derived", request.start_chapter)

        book: Optional[Book] = None
        chapters: list[Chapter] = []
        outline, config = request.outline, request.config
        if request.book_id:
            book = self.load_book(request.book_id, request.user_id)
            outline, config = self.book_inputs(book)
            chapters = self.db.get_book_chapters(book.id)

        model = self.resolve_model(request, config)
        total = outline.total_chapters
        phase = derive_phase(book, chapters)
        logger.info("Advance: book=%s phase=%s model=%s", request.book_id, phase.value, model)
        if self.requires_provider(phase, book, config):
            self.provider.ensure_ready()

        if phase == Phase.CREATING:
            book = self.create_book(request.user_id, outline, config, model)
            return StepOutcome(compute_progress(Phase.CREATING, 0, total), book.id)

        if phase == Phase.GENERATING:
            batch = plan_batches(missing_chapter_numbers(total, chapters), self.settings.chapters_per_batch)[0]
            results, chapters = await self.generate_batch(
                book, outline, config, batch, chapters, model, self.resolve_parallel(request, config),
            )
            done = len(completed_chapter_numbers(total, chapters))
            remaining = total - done
            if remaining > 0:
                message = f"Generated {len(results)} chapters. {remaining} remaining..."
            else:
                message = "All chapters generated. Finalizing book..."
            return StepOutcome(compute_progress(Phase.GENERATING, done, total, message), book.id)

        if phase == Phase.COVER and can_retry_cover(book):
            outcome = await self.generate_covers(book, outline)
            message = "Covers generated. Finalizing book..."
            if outcome.errors:
                message = "Cover generation incomplete. Finalizing book..."
            return StepOutcome(compute_progress(Phase.COVER, total, total, message), book.id)

        was_completed = book.status == BookStatus.COMPLETED
        book = await self.finalize(book, outline, config, chapters, model)
        summary = {
            "id": book.id,
            "title": book.title,
            "author": book.author,
            "chapters": len(chapters),
            "wordCount": total_words(chapters),
            "modelUsed": book.metadata.model_used or model,
            "hasBibliography": config.bibliography.include,
        }
        message = "Book generation complete!"
        if was_completed:
            message = "Book already complete."
        return StepOutcome(
            compute_progress(Phase.COMPLETED, len(chapters), total, message), book.id, summary,
        )

    # ------------------------------------------------------------------
    # Streaming transport
    # ------------------------------------------------------------------

    async def run_to_completion(
        self,
        request: GenerationRequest,
        callback: GenerationCallback,
        token: Optional[CancellationToken] = None,
    ) -> BookRunState:
        """Drive the whole run, emitting events; never raises for run errors.

        Failures end the run with an `error` event. Once the token is
        cancelled nothing more is emitted and the run stops at the next
        phase boundary.
        """
        token = token or CancellationToken()
        run = _GraphRun(self, request, callback, token)
        try:
            return await run.execute()
        except Exception as e:
            report = classify(e)
            logger.error("Run failed (%s): %s", report.kind.value, e)
            run.emit(GenerationEvent.ERROR, {
                **report.to_dict(),
                "bookId": run.book_id,
                "progress": run.tracker.percent,
                "message": "Generation failed",
            })
            return {"book_id": run.book_id, "error": report.user_message, "cancelled": token.cancelled}


class _GraphRun:
    """Node functions and bookkeeping for one streaming run."""

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        request: GenerationRequest,
        callback: GenerationCallback,
        token: CancellationToken,
    ):
        self.o = orchestrator
        self.request = request
        self.callback = callback
        self.token = token
        self.tracker = ProgressTracker()
        self.book_id: Optional[int] = request.book_id
        self.book: Optional[Book] = None
        self.chapters: list[Chapter] = []
        self.outline = request.outline
        self.config = request.config
        self.model = ""
        self.parallel = True

    def emit(self, event: GenerationEvent, payload: dict) -> None:
        if self.token.cancelled:
            return
        self.callback.on_event(event, payload)

    async def execute(self) -> BookRunState:
        book: Optional[Book] = None
        chapters: list[Chapter] = []
        if self.book_id:
            book = self.o.load_book(self.book_id, self.request.user_id)
            self.outline, self.config = self.o.book_inputs(book)
            chapters = self.o.db.get_book_chapters(book.id)
        if self.o.requires_provider(derive_phase(book, chapters), book, self.config):
            self.o.provider.ensure_ready()
        self.model = self.o.resolve_model(self.request, self.config)
        self.parallel = self.o.resolve_parallel(self.request, self.config)
        total = self.outline.total_chapters

        self.emit(GenerationEvent.START, {
            "phase": "starting",
            "totalChapters": total,
            "model": self.model,
            "parallel": self.parallel,
            "bookId": self.book_id,
            "message": "Starting book generation...",
        })

        batches = -(-total // self.o.settings.chapters_per_batch)
        app = self.build_graph()
        initial: BookRunState = {
            "book_id": self.book_id,
            "user_id": self.request.user_id,
            "model": self.model,
            "attempted": [],
            "batch_index": 0,
            "covers_done": False,
        }
        return await app.ainvoke(initial, config={"recursion_limit": 2 * (batches + 4) + 10})

    def build_graph(self):
        graph = StateGraph(BookRunState)

        graph.add_node("derive", self.derive)
        graph.add_node("create_book", self.create_book)
        graph.add_node("generate_batch", self.generate_batch)
        graph.add_node("generate_covers", self.generate_covers)
        graph.add_node("finalize", self.finalize)
        graph.add_node("fail_incomplete", self.fail_incomplete)

        graph.set_entry_point("derive")

        graph.add_conditional_edges(
            "derive",
            route_after_derive,
            {
                "create_book": "create_book",
                "generate_batch": "generate_batch",
                "generate_covers": "generate_covers",
                "finalize": "finalize",
                "fail_incomplete": "fail_incomplete",
                "__end__": END,
            },
        )
        for node in ("create_book", "generate_batch", "generate_covers"):
            graph.add_conditional_edges(
                node,
                route_after_step,
                {"derive": "derive", "__end__": END},
            )
        graph.add_edge("finalize", END)
        graph.add_edge("fail_incomplete", END)

        return graph.compile()

    # ---- nodes ----

    async def derive(self, state: BookRunState) -> dict:
        if self.token.cancelled:
            return {"cancelled": True}
        total = self.outline.total_chapters
        if self.book_id:
            self.book = self.o.load_book(self.book_id, self.request.user_id)
            self.chapters = self.o.db.get_book_chapters(self.book_id)
        phase = derive_phase(self.book, self.chapters)
        missing = missing_chapter_numbers(total, self.chapters)
        logger.debug("Derived phase %s (%d missing)", phase.value, len(missing))
        return {
            "phase": phase,
            "missing": missing,
            "chapters_completed": total - len(missing),
            "total_chapters": total,
            "cover_attempts_left": can_retry_cover(self.book),
        }

    async def create_book(self, state: BookRunState) -> dict:
        book = self.o.create_book(self.request.user_id, self.outline, self.config, self.model)
        self.book_id = book.id
        snap = self.tracker.snapshot(Phase.CREATING, 0, self.outline.total_chapters)
        self.emit(GenerationEvent.BOOK_CREATED, {
            "bookId": book.id,
            "title": book.title,
            "progress": snap.percent,
            "message": "Book record created",
        })
        return {"book_id": book.id, "cancelled": self.token.cancelled}

    async def generate_batch(self, state: BookRunState) -> dict:
        attempted = list(state.get("attempted", []))
        pending = [n for n in state.get("missing", []) if n not in set(attempted)]
        numbers = plan_batches(pending, self.o.settings.chapters_per_batch)[0]
        batch_no = state.get("batch_index", 0) + 1
        total = self.outline.total_chapters

        self.emit(GenerationEvent.BATCH_START, {
            "batch": batch_no,
            "chapters": numbers,
            "message": f"Starting batch: chapters {', '.join(str(n) for n in numbers)}",
        })

        def on_done(result: ChapterResult) -> None:
            self.emit(GenerationEvent.CHAPTER_PROGRESS, {
                "chapterNumber": result.chapter_number,
                "title": result.title,
                "wordCount": result.word_count,
                "message": f"Chapter {result.chapter_number} generated ({result.word_count} words)",
            })

        def on_error(number: int, exc: BaseException) -> None:
            self.emit(GenerationEvent.CHAPTER_ERROR, {"chapterNumber": number, "error": str(exc)})

        def on_batch_error(exc: BaseException) -> None:
            self.emit(GenerationEvent.BATCH_ERROR, {
                "batch": batch_no,
                "error": str(exc),
                "message": "Batch failed, attempting sequential fallback...",
            })

        started = time.monotonic()
        results, self.chapters = await self.o.generate_batch(
            self.book, self.outline, self.config, numbers, self.chapters, self.model, self.parallel,
            on_done, on_error, on_batch_error,
        )
        duration = round(time.monotonic() - started, 1)

        if results:
            done = len(completed_chapter_numbers(total, self.chapters))
            snap = self.tracker.snapshot(Phase.GENERATING, done, total)
            self.emit(GenerationEvent.BATCH_COMPLETE, {
                "batch": batch_no,
                "chaptersCompleted": done,
                "totalChapters": total,
                "batchDuration": duration,
                "totalWords": total_words(self.chapters),
                "progress": snap.percent,
                "message": f"Batch complete in {duration}s",
            })

        return {
            "attempted": attempted + numbers,
            "batch_index": batch_no,
            "cancelled": self.token.cancelled,
        }

    async def generate_covers(self, state: BookRunState) -> dict:
        self.emit(GenerationEvent.COVERS_START, {"message": "Generating book covers..."})

        def on_cover(side: CoverSide, url: Optional[str], error: Optional[BaseException]) -> None:
            if error is None:
                self.emit(GenerationEvent.COVER_COMPLETE, {
                    "type": side.value,
                    "url": url,
                    "message": f"{side.value.capitalize()} cover generated",
                })
            else:
                self.emit(GenerationEvent.COVER_ERROR, {"type": side.value, "error": str(error)})

        await self.o.generate_covers(self.book, self.outline, on_cover)
        total = self.outline.total_chapters
        self.tracker.snapshot(Phase.COVER, total, total)
        return {"covers_done": True, "cancelled": self.token.cancelled}

    async def finalize(self, state: BookRunState) -> dict:
        book = await self.o.finalize(self.book, self.outline, self.config, self.chapters, self.model)
        total = self.outline.total_chapters
        snap = self.tracker.snapshot(Phase.COMPLETED, len(self.chapters), total)
        self.emit(GenerationEvent.COMPLETE, {
            "bookId": book.id,
            "title": book.title,
            "author": book.author,
            "chaptersCompleted": len(self.chapters),
            "totalWords": total_words(self.chapters),
            "hasCover": bool(book.cover_url),
            "hasBackCover": bool(book.metadata.back_cover_url),
            "progress": snap.percent,
            "message": "Book generation complete!",
        })
        return {"finished": True}

    async def fail_incomplete(self, state: BookRunState) -> dict:
        raise IncompleteRunError(state.get("missing", []))
