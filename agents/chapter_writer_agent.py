"""Chapter Writer Agent: generates chapter prose from the outline."""

import asyncio
import logging
import re
from typing import Callable, Iterable, Optional

from agents.base_agent import BaseAgent
from config.exceptions import BatchGenerationError, LLMResponseParseError
from models.chapter import GeneratedChapter
from models.configuration import BibliographyGenerationConfig, BookConfiguration
from models.outline import BookOutline
from tools.context_builder import ChapterLike, ContextLimits, build_context

logger = logging.getLogger(__name__)

_END_MARKER_RE = re.compile(r"\n?\[END CHAPTER\]\s*$", re.IGNORECASE)

ChapterDoneHook = Callable[[int, GeneratedChapter], None]


class ChapterWriterAgent(BaseAgent):
    """Writes one chapter per call; a batch is a fan-out of single calls."""

    template_name = "chapter_writer"

    def _system_prompt(self, outline: BookOutline) -> str:
        header = "Non-Fiction System Prompt" if outline.is_non_fiction else "Novelist System Prompt"
        return self._render(header, genre=outline.genre or "general")

    def _user_prompt(
        self,
        outline: BookOutline,
        chapter_number: int,
        context: str,
        bibliography: Optional[BibliographyGenerationConfig],
        config: Optional[BookConfiguration],
    ) -> str:
        stub = outline.chapter(chapter_number)

        context_block = ""
        if context:
            context_block = self._render("Context Block", context=context)

        citation_block = ""
        if bibliography is not None:
            citation_block = self._render("Citation Block",
                citation_style=bibliography.citation_style.value,
                reference_format=bibliography.reference_format.value,
                source_verification=bibliography.source_verification.value,
            )

        style_notes = ""
        if config is not None:
            ws = config.writing_style
            style_notes = (
                f"Style: {ws.style}, tone: {ws.tone}, point of view: {ws.pov}, tense: {ws.tense}. "
                f"Audience: {config.audience.target_audience} ({config.audience.reading_level} reading level)."
            )

        characters = "\n".join(
            f"- {c.name} ({c.role}): {c.description}" for c in outline.characters
        ) or "None specified"

        header = (
            "Non-Fiction Chapter Instructions" if outline.is_non_fiction
            else "Novelist Chapter Instructions"
        )
        return self._render(header,
            number=stub.number,
            book_title=outline.title,
            author=outline.author or "Anonymous",
            title=stub.title,
            summary=stub.summary,
            word_count=stub.word_count,
            genre=outline.genre or "general",
            characters=characters,
            themes=", ".join(outline.themes) or "General themes",
            style_notes=style_notes,
            context_block=context_block,
            citation_block=citation_block,
        )

    async def generate_chapter(
        self,
        outline: BookOutline,
        chapter_number: int,
        context: str,
        model: str,
        bibliography: Optional[BibliographyGenerationConfig] = None,
        config: Optional[BookConfiguration] = None,
    ) -> GeneratedChapter:
        """Generate one chapter.

        Raises:
            KeyError: The chapter number is not in the outline.
            LLMError: The provider call failed, or returned no prose.
        """
        stub = outline.chapter(chapter_number)
        logger.info("Generating chapter %d with model %s", chapter_number, model)

        raw = await self.llm.chat(
            system_prompt=self._system_prompt(outline),
            user_prompt=self._user_prompt(outline, chapter_number, context, bibliography, config),
            model=model,
        )
        content = _END_MARKER_RE.sub("", raw).strip()
        if not content:
            raise LLMResponseParseError(f"Empty content for chapter {chapter_number}", raw_response=raw)

        logger.info("Chapter %d generated: %d chars", chapter_number, len(content))
        return GeneratedChapter(chapter_number=chapter_number, title=stub.title, content=content)

    async def generate_chapter_batch(
        self,
        outline: BookOutline,
        chapter_numbers: list[int],
        context: str,
        model: str,
        bibliography: Optional[BibliographyGenerationConfig] = None,
        on_chapter_done: Optional[ChapterDoneHook] = None,
        config: Optional[BookConfiguration] = None,
    ) -> list[GeneratedChapter]:
        """Generate chapters concurrently, all from the same context.

        Every sibling is awaited. If any of them failed, the successes are
        discarded and BatchGenerationError is raised.
        """

        async def _one(number: int) -> GeneratedChapter:
            chapter = await self.generate_chapter(outline, number, context, model, bibliography, config)
            if on_chapter_done is not None:
                on_chapter_done(number, chapter)
            return chapter

        results = await asyncio.gather(
            *(_one(n) for n in chapter_numbers), return_exceptions=True
        )
        failures = [(n, r) for n, r in zip(chapter_numbers, results) if isinstance(r, BaseException)]
        if failures:
            for number, exc in failures:
                logger.warning("Chapter %d failed in parallel batch: %s", number, exc)
            raise BatchGenerationError([n for n, _ in failures], failures[0][1])
        return sorted(results, key=lambda ch: ch.chapter_number)

    def build_chapter_context(self, chapters: Iterable[ChapterLike]) -> str:
        return build_context(chapters, ContextLimits.from_settings(self.settings))
