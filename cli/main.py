"""CLI entry point for bookgen, long-form book generation.

Usage:
  bookgen serve                                  Run the HTTP API
  bookgen generate -o outline.json -c config.json   Generate a whole book
  bookgen generate -b 3                          Resume book 3 to completion
  bookgen step -b 3                              Advance book 3 by one step
  bookgen status -b 3                            Derived phase and progress
  bookgen books                                  List books
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from cli.theme import (
    get_console,
    app_header,
    command_panel,
    success_panel,
    book_summary_panel,
    chapters_table,
    books_table,
    phase_label,
)
from config.exceptions import BookGenError
from config.settings import Settings
from config.logging_config import setup_logging
from models.configuration import BookConfiguration
from models.database import Database
from models.enums import GenerationSpeed
from models.outline import BookOutline
from workflow.callbacks import RichProgressCallback
from workflow.conditions import completed_chapter_numbers, derive_phase
from workflow.failures import classify
from workflow.graph import GenerationOrchestrator, GenerationRequest
from workflow.progress import compute_progress

console = get_console()
logger = logging.getLogger(__name__)

DEFAULT_USER = "local"


def _init_logging(verbose: bool):
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.INFO
    settings = Settings()
    setup_logging(level=level, log_dir=settings.log_dir, console_enabled=verbose)


def build_orchestrator(settings: Settings) -> GenerationOrchestrator:
    from api.app import build_orchestrator as _build
    return _build(settings)


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose):
    """bookgen: resumable long-form book generation.

    \b
    Books are generated chapter by chapter in small batches and persisted as
    they go; any command can pick up a book where a previous run stopped.
    """
    _init_logging(verbose)


# ---------------------------------------------------------------------------
# serve command
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", default=None, type=int, help="Port (default from settings)")
def serve(host, port):
    """Run the generation API (incremental and streaming endpoints)."""
    import uvicorn
    from api.app import create_app

    settings = Settings()
    host = host or settings.api_host
    port = port or settings.api_port
    console.print(app_header())
    console.print(command_panel("Serving", {"Address": f"http://{host}:{port}", "Database": str(settings.sqlite_db_path)}))
    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


# ---------------------------------------------------------------------------
# generate / step commands
# ---------------------------------------------------------------------------

def _load_json(path: Optional[str]) -> Optional[dict]:
    if not path:
        return None
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        console.print(f"[error]Cannot read {path}: {e}[/]")
        sys.exit(1)


def _build_request(
    orchestrator: GenerationOrchestrator,
    outline_path: Optional[str],
    config_path: Optional[str],
    book_id: Optional[int],
    user: str,
    model: Optional[str],
    speed: Optional[str],
    sequential: bool,
) -> GenerationRequest:
    """Assemble a request from files, or from the book's stored snapshots."""
    if book_id:
        book = orchestrator.load_book(book_id, user)
        outline, config = orchestrator.book_inputs(book)
    else:
        raw_outline = _load_json(outline_path)
        if raw_outline is None:
            console.print("[error]Either --outline or --book-id is required[/]")
            sys.exit(1)
        outline = BookOutline.model_validate(raw_outline)
        config = BookConfiguration.model_validate(_load_json(config_path) or {})
    return GenerationRequest(
        user_id=user,
        outline=outline,
        config=config,
        model_id=model,
        generation_speed=GenerationSpeed(speed) if speed else None,
        use_parallel=False if sequential else None,
        book_id=book_id,
    )


def _generation_options(fn):
    options = [
        click.option("--outline", "-o", "outline_path", type=click.Path(exists=True, dir_okay=False),
                     help="Outline JSON file (new books)"),
        click.option("--config", "-c", "config_path", type=click.Path(exists=True, dir_okay=False),
                     help="Configuration JSON file (new books)"),
        click.option("--book-id", "-b", default=None, type=int, help="Resume an existing book"),
        click.option("--user", "-u", default=DEFAULT_USER, show_default=True, help="Owner user id"),
        click.option("--model", "-m", default=None, help="Model id for chapter generation"),
        click.option("--speed", type=click.Choice([s.value for s in GenerationSpeed]), default=None,
                     help="Speed preset, used when no model is named"),
        click.option("--sequential", is_flag=True, help="Generate chapters one at a time"),
    ]
    for option in reversed(options):
        fn = option(fn)
    return fn


@cli.command()
@_generation_options
def generate(outline_path, config_path, book_id, user, model, speed, sequential):
    """Generate a book to completion with live progress.

    \b
    Examples:
      bookgen generate -o outline.json -c config.json
      bookgen generate -b 3            # resume from the first missing chapter
    """
    settings = Settings()
    orchestrator = build_orchestrator(settings)
    try:
        request = _build_request(orchestrator, outline_path, config_path, book_id, user, model, speed, sequential)
    except BookGenError as e:
        console.print(f"[error]{e.message}[/]")
        sys.exit(1)
    except ValueError as e:
        console.print(f"[error]Invalid input: {e}[/]")
        sys.exit(1)

    console.print(app_header())
    console.print()
    console.print(command_panel("Generate book", {
        "Title": request.outline.title,
        "Chapters": str(request.outline.total_chapters),
        "Book": str(book_id) if book_id else "new",
    }))
    console.print()

    try:
        cb = RichProgressCallback(console=console, total_chapters=request.outline.total_chapters)
        cb.start()
        try:
            final_state = asyncio.run(orchestrator.run_to_completion(request, cb))
        finally:
            cb.stop()
    except KeyboardInterrupt:
        console.print("\n[warning]Interrupted. Progress has been saved.[/]")
        sys.exit(130)

    error = final_state.get("error")
    result_id = final_state.get("book_id")
    if error:
        console.print(f"\n[error]Error: {error}[/]")
        if result_id:
            console.print(f"Resume with: [info]bookgen generate -b {result_id}[/]")
        sys.exit(1)

    book = orchestrator.db.get_book(result_id)
    console.print()
    console.print(success_panel("Book complete", (
        f"  Book: [stat.value]{book.title}[/] (ID {book.id})\n"
        f"  Chapters: [stat.value]{book.metadata.chapters}[/]\n"
        f"  Words: [stat.value]{book.metadata.word_count:,}[/]\n"
        f"  Cover: [stat.value]{book.cover_url or '-'}[/]"
    )))


@cli.command()
@_generation_options
def step(outline_path, config_path, book_id, user, model, speed, sequential):
    """Advance a book by exactly one unit of work.

    \b
    Examples:
      bookgen step -o outline.json -c config.json   # creates the book
      bookgen step -b 3                              # next batch, covers or finalize
    """
    settings = Settings()
    orchestrator = build_orchestrator(settings)
    try:
        request = _build_request(orchestrator, outline_path, config_path, book_id, user, model, speed, sequential)
        outcome = asyncio.run(orchestrator.advance(request))
    except ValueError as e:
        console.print(f"[error]Invalid input: {e}[/]")
        sys.exit(1)
    except Exception as e:
        report = classify(e)
        console.print(f"[error]{report.user_message}: {report.user_details}[/]")
        logger.exception("Step failed")
        sys.exit(1)

    snap = outcome.snapshot
    console.print(
        f"Book [chapter.num]{outcome.book_id}[/] {phase_label(snap.phase)} "
        f"[stat.value]{snap.percent}%[/] "
        f"({snap.chapters_completed}/{snap.total_chapters}) {snap.message}"
    )


# ---------------------------------------------------------------------------
# status / books commands
# ---------------------------------------------------------------------------

@cli.command()
@click.option("--book-id", "-b", required=True, type=int, help="Book to inspect")
def status(book_id):
    """Show a book's derived phase, progress and chapters."""
    settings = Settings()
    db = Database(settings.sqlite_db_path)
    book = db.get_book(book_id)
    if not book:
        console.print(f"[error]Book {book_id} not found[/]")
        sys.exit(1)

    chapters = db.get_book_chapters(book_id)
    total = book.total_chapters
    phase = derive_phase(book, chapters)
    snap = compute_progress(phase, len(completed_chapter_numbers(total, chapters)), total)

    console.print(app_header())
    console.print()
    console.print(book_summary_panel(book, snap))
    console.print()
    console.print(chapters_table(book.outline.get("chapters", []), chapters))


@cli.command()
@click.option("--user", "-u", default=None, help="Only books owned by this user")
def books(user):
    """List stored books."""
    settings = Settings()
    db = Database(settings.sqlite_db_path)
    rows = db.list_books(user)
    if not rows:
        console.print("[warning]No books yet. Use [info]bookgen generate[/] to create one.[/]")
        return
    console.print(books_table(rows))


if __name__ == "__main__":
    cli()
