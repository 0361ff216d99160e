"""Build the bounded continuity context handed to the chapter writer.

The context lists every completed chapter in ascending order. Recent chapters
carry the tail of their text so the next chapter can pick up where the story
left off; older chapters carry their opening lines. When the result would
exceed the character budget, excerpts are dropped oldest first and, as a last
resort, the earliest chapter headers are collapsed into a single marker line.
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

from tools.text_utils import get_chapter_ending, get_chapter_opening

logger = logging.getLogger(__name__)


class ChapterLike(Protocol):
    chapter_number: int
    title: str
    content: str


@dataclass
class ContextLimits:
    max_chars: int = 12000
    recent_chapters: int = 2
    excerpt_chars: int = 1500
    summary_chars: int = 300

    @classmethod
    def from_settings(cls, settings) -> "ContextLimits":
        return cls(
            max_chars=settings.context_max_chars,
            recent_chapters=settings.context_recent_chapters,
            excerpt_chars=settings.context_excerpt_chars,
            summary_chars=settings.context_summary_chars,
        )


@dataclass
class _Entry:
    number: int
    header: str
    excerpt: str

    def render(self) -> str:
        if not self.excerpt:
            return self.header
        return f"{self.header}\n{self.excerpt}"


def _render(entries: list[_Entry], omitted: Optional[tuple[int, int]] = None) -> str:
    blocks = []
    if omitted:
        first, last = omitted
        if first == last:
            blocks.append(f"[Chapter {first} omitted]")
        else:
            blocks.append(f"[Chapters {first}-{last} omitted]")
    blocks.extend(e.render() for e in entries)
    return "\n\n".join(blocks)


def build_context(
    chapters: Iterable[ChapterLike],
    limits: Optional[ContextLimits] = None,
) -> str:
    """Render completed chapters into one context string.

    Duplicate chapter numbers keep their first occurrence. An empty input
    yields an empty string.
    """
    limits = limits or ContextLimits()

    seen: dict[int, ChapterLike] = {}
    for ch in chapters:
        seen.setdefault(ch.chapter_number, ch)
    ordered = [seen[n] for n in sorted(seen)]
    if not ordered:
        return ""

    recent_from = len(ordered) - limits.recent_chapters
    entries = []
    for idx, ch in enumerate(ordered):
        content = (ch.content or "").strip()
        if idx >= recent_from:
            excerpt = get_chapter_ending(content, limits.excerpt_chars)
            if excerpt and len(excerpt) < len(content):
                excerpt = "..." + excerpt
        else:
            excerpt = get_chapter_opening(content, limits.summary_chars)
            if excerpt and len(excerpt) < len(content):
                excerpt = excerpt + "..."
        entries.append(_Entry(ch.chapter_number, f"Chapter {ch.chapter_number}: {ch.title}", excerpt))

    text = _render(entries)
    if len(text) <= limits.max_chars:
        return text

    # Drop excerpts, oldest first
    for entry in entries:
        if not entry.excerpt:
            continue
        entry.excerpt = ""
        text = _render(entries)
        if len(text) <= limits.max_chars:
            logger.debug("Context trimmed to %d chars (excerpts dropped)", len(text))
            return text

    # Headers alone are still too long: elide the earliest ones
    kept = list(entries)
    first_number = entries[0].number
    while len(kept) > 1:
        dropped = kept.pop(0)
        text = _render(kept, (first_number, dropped.number))
        if len(text) <= limits.max_chars:
            break
    logger.debug("Context trimmed to %d chars (%d headers elided)", len(text), len(entries) - len(kept))
    return text
