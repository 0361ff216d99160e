"""Chapter text utilities: sanitizing model output, word counts, excerpts."""

import math
import re
from typing import Optional

# Markers models leave in chapter prose
_META_PATTERNS = [
    re.compile(r"\[END CHAPTER\]", re.IGNORECASE),
    re.compile(r"\[CHAPTER END\]", re.IGNORECASE),
    re.compile(r"\[CONTINUE\]", re.IGNORECASE),
    re.compile(r"\[CONTINUED\]", re.IGNORECASE),
    re.compile(r"\[TO BE CONTINUED\]", re.IGNORECASE),
    re.compile(r"\[END\]", re.IGNORECASE),
    re.compile(r"\[START\]", re.IGNORECASE),
    re.compile(r"\[BEGIN\]", re.IGNORECASE),
    re.compile(r"Chapter \d+ - .+?\n", re.IGNORECASE),
    re.compile(r"---+\n"),
    re.compile(r"\*\*\*+\n"),
]
_INSTRUCTION_LINE_RE = re.compile(r"^\[.*?\]$", re.MULTILINE)
_NOTE_LINE_RE = re.compile(r"^(?:Note|Author's Note):.*$", re.MULTILINE)

# (pattern, replacement) pairs applied in order
_MARKDOWN_RULES = [
    (re.compile(r"```.*?```", re.DOTALL), ""),
    (re.compile(r"`([^`]+)`"), r"\1"),
    (re.compile(r"^#{1,6}\s+", re.MULTILINE), ""),
    (re.compile(r"\*\*\*(.+?)\*\*\*"), r"\1"),
    (re.compile(r"\*\*(.+?)\*\*"), r"\1"),
    (re.compile(r"\*(.+?)\*"), r"\1"),
    (re.compile(r"___(.+?)___"), r"\1"),
    (re.compile(r"__(.+?)__"), r"\1"),
    (re.compile(r"_(.+?)_"), r"\1"),
    (re.compile(r"\[([^\]]+)\]\([^)]+\)"), r"\1"),
    (re.compile(r"^[-*_]{3,}$", re.MULTILINE), ""),
]

_QUOTE_RULES = [
    (re.compile(r'"([^"]*)"'), "\u201c\\1\u201d"),
    (re.compile(r"(\w)'(\w)"), "\\1\u2019\\2"),
    (re.compile(r"'([^']*)'"), "\u2018\\1\u2019"),
    (re.compile(r'^"', re.MULTILINE), "\u201c"),
    (re.compile(r'"$', re.MULTILINE), "\u201d"),
    (re.compile(r"^'", re.MULTILINE), "\u2018"),
    (re.compile(r"'$", re.MULTILINE), "\u2019"),
]

_DASH_RULES = [
    (re.compile(r"---"), "\u2014"),
    (re.compile(r"--"), "\u2014"),
    (re.compile(r"\s+-\s+"), "\u2014"),
    (re.compile(r"(\d+)-(\d+)"), "\\1\u2013\\2"),
]

_NUMBERING_RULES = [
    (re.compile(r"^Chapter\s+\d+:?\s*", re.IGNORECASE | re.MULTILINE), ""),
    (re.compile(r"^\d+\.\s+Chapter", re.IGNORECASE | re.MULTILINE), "Chapter"),
    (re.compile(r"^\d+\.\s+", re.MULTILINE), ""),
    (re.compile(r"^[a-z]\)\s+", re.IGNORECASE | re.MULTILINE), ""),
    (re.compile(r"^[\u2022*-]\s+", re.MULTILINE), ""),
]

_SPACING_RULES = [
    (re.compile(r"[^\S\n]+"), " "),
    (re.compile(r"\n{3,}"), "\n\n"),
    (re.compile(r"[ \t]+$", re.MULTILINE), ""),
    (re.compile(r"^[ \t]+", re.MULTILINE), ""),
    (re.compile(r"\s+([.,!?;:])"), r"\1"),
    (re.compile(r"([.,!?;:])([A-Za-z])"), r"\1 \2"),
]


def _apply(rules, text: str) -> str:
    for pattern, replacement in rules:
        text = pattern.sub(replacement, text)
    return text


def remove_meta_text(text: str) -> str:
    """Strip model meta markers such as [END CHAPTER] and note lines."""
    for pattern in _META_PATTERNS:
        text = pattern.sub("", text)
    text = _INSTRUCTION_LINE_RE.sub("", text)
    return _NOTE_LINE_RE.sub("", text)


def remove_markdown(text: str) -> str:
    return _apply(_MARKDOWN_RULES, text)


def fix_quotes(text: str) -> str:
    """Convert straight quotes to typographic ones."""
    return _apply(_QUOTE_RULES, text)


def fix_dashes(text: str) -> str:
    return _apply(_DASH_RULES, text)


def remove_numbering(text: str) -> str:
    return _apply(_NUMBERING_RULES, text)


def fix_spacing(text: str) -> str:
    return _apply(_SPACING_RULES, text)


def sanitize_text(
    text: str,
    *,
    markdown: bool = True,
    quotes: bool = True,
    dashes: bool = True,
    numbering: bool = True,
    spacing: bool = True,
    meta_text: bool = True,
) -> str:
    """Clean generated text; each pass can be switched off."""
    if meta_text:
        text = remove_meta_text(text)
    if markdown:
        text = remove_markdown(text)
    if quotes:
        text = fix_quotes(text)
    if dashes:
        text = fix_dashes(text)
    if numbering:
        text = remove_numbering(text)
    if spacing:
        text = fix_spacing(text)
    return text.strip()


def sanitize_chapter(raw: str) -> str:
    """Clean a generated chapter body.

    Numbering removal is skipped so that chapter structure inside the prose
    survives.
    """
    return sanitize_text(raw, numbering=False)


def count_words(text: str) -> int:
    """Count whitespace-separated words."""
    if not text:
        return 0
    return len(text.split())


def estimate_reading_time(word_count: int, words_per_minute: int = 250) -> int:
    """Reading time in whole minutes, rounded up."""
    if word_count <= 0:
        return 0
    return math.ceil(word_count / words_per_minute)


def estimate_page_count(word_count: int, words_per_page: int = 250) -> int:
    if word_count <= 0:
        return 0
    return math.ceil(word_count / words_per_page)


def get_chapter_ending(content: str, char_limit: int = 500) -> str:
    """Extract the ending portion of a chapter for continuity.

    Returns the last `char_limit` characters of the chapter content.
    """
    if not content:
        return ""
    if len(content) <= char_limit:
        return content
    return content[-char_limit:]


def get_chapter_opening(content: str, char_limit: int = 300) -> str:
    """Return the first `char_limit` characters of a chapter."""
    if not content:
        return ""
    return content[:char_limit]


def split_into_paragraphs(text: str) -> list[str]:
    """Split text into paragraphs on blank lines."""
    paragraphs = re.split(r"\n\s*\n", text)
    return [p.strip() for p in paragraphs if p.strip()]


def truncate(text: str, limit: int, suffix: Optional[str] = "...") -> str:
    if len(text) <= limit:
        return text
    suffix = suffix or ""
    return text[: max(limit - len(suffix), 0)] + suffix
