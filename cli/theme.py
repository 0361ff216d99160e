"""Unified Rich theme and reusable UI helper functions for the CLI."""

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.theme import Theme

from models.enums import BookStatus, Phase

BOOK_THEME = Theme({
    "app.title": "bold",
    "success": "green",
    "warning": "yellow",
    "error": "red",
    "info": "blue",
    "muted": "dim",
    "accent": "cyan",
    "genre": "bold",
    "stat.label": "dim",
    "stat.value": "bold",
    "chapter.num": "blue",
})

PHASE_COLORS = {
    Phase.CREATING: "yellow",
    Phase.GENERATING: "green",
    Phase.COVER: "magenta",
    Phase.COMPLETED: "cyan",
}


def get_console() -> Console:
    """Return a Console instance with the book theme applied."""
    return Console(theme=BOOK_THEME)


def app_header(title: str = "bookgen") -> Rule:
    """Return a Rule element for the application header banner."""
    return Rule(title=f"[bold]{title}[/]", style="dim")


def command_panel(title: str, fields: dict[str, str]) -> Panel:
    """Return a Panel displaying command parameters.

    Args:
        title: Panel title (e.g. "Generate book").
        fields: Ordered dict of label -> value pairs.
    """
    lines = []
    for label, value in fields.items():
        lines.append(f"  [stat.label]{label}:[/] [stat.value]{value}[/]")
    body = "\n".join(lines)
    return Panel(body, title=f"[bold]{title}[/]", box=box.ROUNDED, border_style="dim", padding=(0, 2))


def success_panel(title: str, body: str) -> Panel:
    """Return a green-bordered Panel for success results."""
    return Panel(body, title=f"[success]{title}[/]", box=box.ROUNDED, border_style="green", padding=(0, 2))


def phase_label(phase: Phase) -> str:
    return f"[{PHASE_COLORS.get(phase, 'white')}]{phase.value}[/]"


def book_summary_panel(book, snapshot) -> Panel:
    """Return a Panel with a book's derived phase and progress.

    Args:
        book: Book record.
        snapshot: ProgressSnapshot derived from the persisted chapters.
    """
    summary = book.summary or ""
    if len(summary) > 200:
        summary = summary[:200] + "..."
    meta = book.metadata
    body = (
        f"  [stat.label]Genre:[/] [genre]{book.genre or '-'}[/]  "
        f"[muted]|[/]  [stat.label]Phase:[/] {phase_label(snapshot.phase)}  "
        f"[muted]|[/]  [stat.label]Progress:[/] [stat.value]{snapshot.percent}%[/]\n"
        f"  [stat.label]Chapters:[/] [stat.value]{snapshot.chapters_completed}/{snapshot.total_chapters}[/]  "
        f"[muted]|[/]  [stat.label]Words:[/] [stat.value]{meta.word_count:,}[/]  "
        f"[muted]|[/]  [stat.label]Pages:[/] [stat.value]{meta.page_count}[/]  "
        f"[muted]|[/]  [stat.label]Model:[/] {meta.model_used or '-'}\n"
        f"  [stat.label]Cover:[/] {'yes' if book.cover_url else 'no'}  "
        f"[muted]|[/]  [stat.label]Back cover:[/] {'yes' if meta.back_cover_url else 'no'}\n"
        f"  [stat.label]Summary:[/] {summary}"
    )
    return Panel(
        body,
        title=f"[bold]{book.title}[/] [muted](ID: {book.id})[/]",
        box=box.ROUNDED,
        border_style="dim",
        padding=(0, 2),
    )


def chapters_table(outline_chapters: list[dict], chapters: list) -> Table:
    """Build a table of outline chapters marking which are persisted.

    Args:
        outline_chapters: Chapter stubs from the stored outline snapshot.
        chapters: Persisted Chapter records.
    """
    done = {ch.chapter_number: ch for ch in chapters}
    table = Table(title="Chapters", border_style="dim")
    table.add_column("#", style="chapter.num", justify="right")
    table.add_column("Title")
    table.add_column("Words", justify="right")
    table.add_column("Status")

    for stub in outline_chapters:
        number = stub.get("number")
        ch = done.get(number)
        if ch:
            table.add_row(str(number), ch.title or stub.get("title", "-"), f"{ch.word_count:,}", "[success]done[/]")
        else:
            table.add_row(str(number), stub.get("title", "-"), "-", "[muted]missing[/]")
    return table


def books_table(books: list) -> Table:
    """Build a table listing books."""
    table = Table(title="Books", show_lines=True, border_style="dim")
    table.add_column("ID", style="chapter.num")
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Status")
    table.add_column("Chapters", justify="right")
    table.add_column("Words", justify="right")

    for b in books:
        status_color = "cyan" if b.status == BookStatus.COMPLETED else "green"
        table.add_row(
            str(b.id),
            b.title,
            b.author or "-",
            f"[{status_color}]{b.status.value}[/]",
            f"{b.metadata.chapters}/{b.total_chapters}",
            f"{b.metadata.word_count:,}",
        )
    return table
