"""Bibliography Agent: compiles reference lists for finished books."""

import logging
from typing import Optional

from agents.base_agent import BaseAgent
from config.exceptions import LLMResponseParseError
from models.bibliography import BibliographyReference
from models.configuration import BibliographyGenerationConfig
from models.enums import ReferenceType
from models.outline import BookOutline
from tools.json_utils import parse_json_list
from tools.text_utils import split_into_paragraphs, truncate

logger = logging.getLogger(__name__)

_EXCERPT_CHARS = 600
_MAX_REFERENCES = 20


def _to_reference(book_id: int, item: dict) -> Optional[BibliographyReference]:
    title = str(item.get("title") or "").strip()
    if not title:
        return None
    try:
        ref_type = ReferenceType(str(item.get("type", "book")).lower())
    except ValueError:
        ref_type = ReferenceType.OTHER
    authors = item.get("authors") or []
    if isinstance(authors, str):
        authors = [authors]
    year = item.get("year")
    try:
        year = int(year) if year is not None else None
    except (TypeError, ValueError):
        year = None
    return BibliographyReference(
        book_id=book_id,
        type=ref_type,
        title=title,
        authors=[str(a) for a in authors],
        year=year,
        publisher=item.get("publisher"),
        url=item.get("url"),
        doi=item.get("doi"),
        journal_title=item.get("journalTitle") or item.get("journal_title"),
        volume=_opt_str(item.get("volume")),
        issue=_opt_str(item.get("issue")),
        pages=_opt_str(item.get("pages")),
    )


def _opt_str(value) -> Optional[str]:
    return None if value is None else str(value)


def _excerpt(content: str) -> str:
    """Opening paragraphs of a chapter, cut to the excerpt budget."""
    return truncate(" ".join(split_into_paragraphs(content)[:3]), _EXCERPT_CHARS)


class BibliographyAgent(BaseAgent):
    """Asks the model for a JSON reference list and parses it."""

    template_name = "bibliography"

    async def generate_references(
        self,
        book_id: int,
        outline: BookOutline,
        chapter_contents: list[str],
        config: BibliographyGenerationConfig,
        model: Optional[str] = None,
    ) -> list[BibliographyReference]:
        excerpts = "\n\n".join(
            f"[{i}] {_excerpt(content)}"
            for i, content in enumerate(chapter_contents, start=1)
            if content
        )
        user_prompt = self._render("Reference Request",
            title=outline.title,
            author=outline.author or "Anonymous",
            genre=outline.genre or "general",
            citation_style=config.citation_style.value,
            source_verification=config.source_verification.value,
            excerpts=excerpts or "(no chapter text)",
            max_references=_MAX_REFERENCES,
        )
        raw = await self.llm.chat(
            system_prompt=self._section("System Prompt"),
            user_prompt=user_prompt,
            model=model or self.settings.bibliography_model,
        )
        try:
            items = parse_json_list(raw, key="references")
        except ValueError as e:
            raise LLMResponseParseError(str(e), raw_response=raw) from e

        references = []
        for item in items[:_MAX_REFERENCES]:
            if not isinstance(item, dict):
                continue
            ref = _to_reference(book_id, item)
            if ref is not None:
                references.append(ref)
        logger.info("Bibliography: %d references parsed for book %d", len(references), book_id)
        return references
