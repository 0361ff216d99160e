"""Batch scheduling: parallel fan-out with a single sequential fallback."""

import logging
import time
from typing import Callable, Iterable, Optional

from agents.provider import GenerationProvider
from config.exceptions import BatchSizeError
from models.chapter import ChapterResult, GeneratedChapter
from models.configuration import BibliographyGenerationConfig, BookConfiguration
from models.outline import BookOutline
from tools.context_builder import ChapterLike
from tools.text_utils import count_words, sanitize_chapter

logger = logging.getLogger(__name__)

OnChapterDone = Callable[[ChapterResult], None]
OnChapterError = Callable[[int, BaseException], None]
OnBatchError = Callable[[BaseException], None]


def plan_batches(missing: Iterable[int], size: int) -> list[list[int]]:
    """Split ascending missing chapter numbers into consecutive batches."""
    if size < 1:
        raise ValueError("Batch size must be >= 1")
    ordered = sorted(set(missing))
    return [ordered[i:i + size] for i in range(0, len(ordered), size)]


def to_result(chapter: GeneratedChapter) -> ChapterResult:
    """Sanitize provider output and count its words."""
    content = sanitize_chapter(chapter.content)
    return ChapterResult(
        chapter_number=chapter.chapter_number,
        title=chapter.title,
        content=content,
        word_count=count_words(content),
    )


class BatchScheduler:
    """Runs one batch of chapters through the provider.

    Parallel mode shares one context snapshot across all siblings. If any
    sibling fails, the whole batch is retried once in sequential mode, where
    each chapter sees the chapters generated before it. In sequential mode a
    failed chapter is logged and skipped, leaving a gap for a later run.
    """

    def __init__(self, provider: GenerationProvider, batch_size: int):
        if batch_size < 1:
            raise ValueError("Batch size must be >= 1")
        self.provider = provider
        self.batch_size = batch_size

    async def run_batch(
        self,
        outline: BookOutline,
        chapter_numbers: list[int],
        context: str,
        model: str,
        bibliography: Optional[BibliographyGenerationConfig] = None,
        parallel: bool = True,
        on_chapter_done: Optional[OnChapterDone] = None,
        *,
        prior_chapters: Iterable[ChapterLike] = (),
        config: Optional[BookConfiguration] = None,
        on_chapter_error: Optional[OnChapterError] = None,
        on_batch_error: Optional[OnBatchError] = None,
    ) -> list[ChapterResult]:
        """Generate the given chapters and return sanitized results, ascending.

        Raises:
            BatchSizeError: More chapter numbers than the batch size.
        """
        if len(chapter_numbers) > self.batch_size:
            raise BatchSizeError(len(chapter_numbers), self.batch_size)
        if not chapter_numbers:
            return []

        numbers = sorted(chapter_numbers)
        started = time.monotonic()
        if parallel:
            results = await self._run_parallel(
                outline, numbers, context, model, bibliography, config,
                on_chapter_done, list(prior_chapters), on_chapter_error, on_batch_error,
            )
        else:
            results = await self._run_sequential(
                outline, numbers, context, model, bibliography, config,
                on_chapter_done, list(prior_chapters), on_chapter_error,
            )
        logger.info(
            "Batch %s finished in %.1fs: %d/%d chapters (parallel=%s)",
            numbers, time.monotonic() - started, len(results), len(numbers), parallel,
        )
        return results

    async def _run_parallel(
        self, outline, numbers, context, model, bibliography, config,
        on_chapter_done, prior_chapters, on_chapter_error, on_batch_error,
    ) -> list[ChapterResult]:
        def _done(number: int, chapter: GeneratedChapter) -> None:
            if on_chapter_done is not None:
                on_chapter_done(to_result(chapter))

        try:
            generated = await self.provider.generate_chapter_batch(
                outline, numbers, context, model, bibliography, _done, config,
            )
        except Exception as e:
            logger.warning("Parallel batch %s failed, falling back to sequential: %s", numbers, e)
            if on_batch_error is not None:
                on_batch_error(e)
            return await self._run_sequential(
                outline, numbers, context, model, bibliography, config,
                on_chapter_done, prior_chapters, on_chapter_error,
            )
        return sorted((to_result(ch) for ch in generated), key=lambda r: r.chapter_number)

    async def _run_sequential(
        self, outline, numbers, context, model, bibliography, config,
        on_chapter_done, prior_chapters, on_chapter_error,
    ) -> list[ChapterResult]:
        results: list[ChapterResult] = []
        for number in numbers:
            try:
                generated = await self.provider.generate_chapter(
                    outline, number, context, model, bibliography, config,
                )
            except Exception as e:
                logger.error("Chapter %d failed, skipping: %s", number, e)
                if on_chapter_error is not None:
                    on_chapter_error(number, e)
                continue

            result = to_result(generated)
            results.append(result)
            if on_chapter_done is not None:
                on_chapter_done(result)
            # Later chapters in this batch see everything generated so far
            context = self.provider.build_chapter_context([*prior_chapters, *results])
        return results
