"""Run callbacks for monitoring and real-time reporting."""

import logging
from typing import Protocol, runtime_checkable

from models.enums import GenerationEvent

logger = logging.getLogger(__name__)


@runtime_checkable
class GenerationCallback(Protocol):
    """Receives the named events of a full generation run.

    Payloads are JSON-ready dicts with camelCase keys, exactly as written to
    the event stream.
    """

    def on_event(self, event: GenerationEvent, payload: dict) -> None:
        ...


class LoggingCallback:
    """Lightweight callback that logs progress to the standard logger."""

    def on_event(self, event: GenerationEvent, payload: dict) -> None:
        if event in (GenerationEvent.ERROR, GenerationEvent.CHAPTER_ERROR, GenerationEvent.COVER_ERROR):
            logger.warning("%s: %s", event.value, payload.get("error", ""))
        elif event == GenerationEvent.BATCH_ERROR:
            logger.warning("batch %s failed: %s", payload.get("batch"), payload.get("error", ""))
        else:
            logger.info("%s: %s", event.value, payload.get("message", ""))


class CallbackGroup:
    """Forwards every event to each wrapped callback in order."""

    def __init__(self, *callbacks: GenerationCallback):
        self.callbacks = list(callbacks)

    def on_event(self, event: GenerationEvent, payload: dict) -> None:
        for cb in self.callbacks:
            cb.on_event(event, payload)


class RichProgressCallback:
    """Renders a Rich live progress display in the terminal."""

    def __init__(self, console=None, total_chapters: int = 0):
        """
        Args:
            console: Rich Console instance. Creates one if not provided.
            total_chapters: Chapters in the outline (for the bar maximum).
        """
        self._console = console
        self._total = total_chapters
        self._progress = None
        self._overall_task_id = None
        self._step_task_id = None

    def start(self):
        """Start the progress display. Call before running the workflow."""
        from rich.console import Console
        from rich.progress import (
            Progress, SpinnerColumn, TextColumn, BarColumn, TaskProgressColumn,
        )

        console = self._console or Console()
        self._progress = Progress(
            SpinnerColumn("dots"),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TaskProgressColumn(),
            console=console,
        )
        self._progress.start()
        self._overall_task_id = self._progress.add_task("Waiting to start...", total=100)
        self._step_task_id = self._progress.add_task("[dim]initializing...[/]", total=None)

    def stop(self):
        """Stop the progress display."""
        if self._progress:
            self._progress.stop()
            self._progress = None

    def _step(self, text: str) -> None:
        self._progress.update(self._step_task_id, description=text)

    def on_event(self, event: GenerationEvent, payload: dict) -> None:
        if not self._progress:
            return

        if event == GenerationEvent.START:
            self._total = payload.get("totalChapters", self._total)
            self._progress.update(
                self._overall_task_id,
                description=f"Generating {self._total} chapters with {payload.get('model', '?')}",
            )
        elif event == GenerationEvent.BOOK_CREATED:
            self._step(f"[dim]book #{payload.get('bookId')} created[/]")
            self._progress.update(self._overall_task_id, completed=payload.get("progress", 5))
        elif event == GenerationEvent.BATCH_START:
            chapters = ", ".join(str(n) for n in payload.get("chapters", []))
            self._step(f"[dim]batch {payload.get('batch')}: chapters {chapters}[/]")
        elif event == GenerationEvent.CHAPTER_PROGRESS:
            self._step(
                f"[green]chapter {payload.get('chapterNumber')}[/] "
                f"([cyan]{payload.get('wordCount', 0):,}[/] words)"
            )
        elif event in (GenerationEvent.CHAPTER_ERROR, GenerationEvent.BATCH_ERROR, GenerationEvent.COVER_ERROR):
            self._step(f"[red]{event.value}: {str(payload.get('error', ''))[:80]}[/]")
        elif event == GenerationEvent.BATCH_COMPLETE:
            self._progress.update(
                self._overall_task_id,
                completed=payload.get("progress", 0),
                description=(
                    f"[green]{payload.get('chaptersCompleted', 0)}/{payload.get('totalChapters', self._total)}"
                    f" chapters[/] ([cyan]{payload.get('totalWords', 0):,}[/] words)"
                ),
            )
        elif event == GenerationEvent.COVERS_START:
            self._step("[dim]generating covers...[/]")
        elif event == GenerationEvent.COVER_COMPLETE:
            self._step(f"[green]{payload.get('type')} cover ready[/]")
        elif event == GenerationEvent.COMPLETE:
            self._progress.update(
                self._overall_task_id,
                completed=100,
                description=f"[bold green]Complete: {payload.get('title', '')}[/]",
            )
            self._step("")
        elif event == GenerationEvent.ERROR:
            self._step(f"[red]{payload.get('error', '')}: {payload.get('details', '')}[/]")
