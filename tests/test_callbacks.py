"""Tests for the logging and Rich progress callbacks."""

import io
import logging

from models.enums import GenerationEvent


class TestLoggingCallback:
    def test_errors_logged_as_warnings(self, caplog):
        from workflow.callbacks import GenerationCallback, LoggingCallback
        cb = LoggingCallback()
        assert isinstance(cb, GenerationCallback)
        with caplog.at_level(logging.INFO, logger="workflow.callbacks"):
            cb.on_event(GenerationEvent.BATCH_START, {"message": "Starting batch: chapters 1, 2"})
            cb.on_event(GenerationEvent.CHAPTER_ERROR, {"chapterNumber": 2, "error": "refused"})
        levels = [r.levelno for r in caplog.records]
        assert levels == [logging.INFO, logging.WARNING]
        assert "refused" in caplog.records[1].getMessage()


class TestCallbackGroup:
    def test_forwards_to_each_in_order(self):
        from workflow.callbacks import CallbackGroup, GenerationCallback
        seen = []

        class _Tag:
            def __init__(self, tag):
                self.tag = tag

            def on_event(self, event, payload):
                seen.append((self.tag, event, payload["bookId"]))

        group = CallbackGroup(_Tag("a"), _Tag("b"))
        assert isinstance(group, GenerationCallback)
        group.on_event(GenerationEvent.BOOK_CREATED, {"bookId": 7})
        assert seen == [("a", GenerationEvent.BOOK_CREATED, 7), ("b", GenerationEvent.BOOK_CREATED, 7)]


class TestRichProgressCallback:
    def test_renders_run(self):
        from rich.console import Console
        from workflow.callbacks import RichProgressCallback
        out = io.StringIO()
        cb = RichProgressCallback(console=Console(file=out, width=100), total_chapters=2)
        cb.on_event(GenerationEvent.START, {"totalChapters": 2})
        cb.start()
        cb.on_event(GenerationEvent.START, {"totalChapters": 2, "model": "m"})
        cb.on_event(GenerationEvent.BATCH_COMPLETE, {"chaptersCompleted": 2, "totalChapters": 2, "progress": 95})
        cb.on_event(GenerationEvent.COMPLETE, {"title": "The Lighthouse Keeper"})
        cb.stop()
        assert "The Lighthouse Keeper" in out.getvalue()
