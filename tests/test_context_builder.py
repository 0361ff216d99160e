"""Tests for the continuity context builder."""

from models.chapter import Chapter
from tools.context_builder import ContextLimits, build_context


def _ch(n, content=None):
    return Chapter(book_id=1, chapter_number=n, title=f"T{n}", content=f"Body of chapter {n}." if content is None else content)


class TestBuildContext:
    def test_empty_input(self):
        assert build_context([]) == ""

    def test_ascending_order_regardless_of_input_order(self):
        text = build_context([_ch(3), _ch(1), _ch(2)])
        positions = [text.index(f"Chapter {n}: T{n}") for n in (1, 2, 3)]
        assert positions == sorted(positions)

    def test_duplicates_keep_first(self):
        text = build_context([_ch(1, "first version"), _ch(1, "second version")])
        assert "first version" in text
        assert "second version" not in text

    def test_recent_chapters_carry_ending(self):
        long_body = "A" * 50 + "ENDING"
        limits = ContextLimits(max_chars=10000, recent_chapters=1, excerpt_chars=10, summary_chars=5)
        text = build_context([_ch(1, "B" * 50), _ch(2, long_body)], limits)
        assert "...AAAAENDING" in text
        # Older chapters carry their opening
        assert "BBBBB..." in text

    def test_short_content_not_marked_as_excerpt(self):
        limits = ContextLimits(max_chars=10000, recent_chapters=1, excerpt_chars=100, summary_chars=100)
        text = build_context([_ch(1, "tiny")], limits)
        assert text == "Chapter 1: T1\ntiny"

    def test_grows_as_chapters_complete(self):
        one = build_context([_ch(1)])
        two = build_context([_ch(1), _ch(2)])
        assert two.startswith("Chapter 1: T1")
        assert len(two) > len(one)

    def test_over_budget_drops_excerpts_oldest_first(self):
        chapters = [_ch(n, "x" * 200) for n in (1, 2, 3)]
        limits = ContextLimits(max_chars=300, recent_chapters=3, excerpt_chars=200, summary_chars=200)
        text = build_context(chapters, limits)
        assert len(text) <= 300
        # The newest chapter keeps its excerpt longest
        assert text.endswith("x" * 200)
        assert "Chapter 1: T1\n\nChapter 2: T2" in text

    def test_headers_elided_when_still_too_long(self):
        chapters = [_ch(n, "") for n in range(1, 21)]
        limits = ContextLimits(max_chars=60, recent_chapters=0, excerpt_chars=10, summary_chars=10)
        text = build_context(chapters, limits)
        assert text.startswith("[Chapters 1-")
        assert text.endswith("Chapter 20: T20")
        assert len(text) <= 60

    def test_single_elided_header(self):
        chapters = [_ch(1, ""), _ch(2, "")]
        limits = ContextLimits(max_chars=27, recent_chapters=0, excerpt_chars=10, summary_chars=10)
        text = build_context(chapters, limits)
        assert text == "[Chapter 1 omitted]\n\nChapter 2: T2"
