"""
Flashcards CLI.

A Rich terminal interface over the flashcard engine.

Commands:
- flashcards add       - Create a card
- flashcards due       - Show the next card due for review
- flashcards review    - Submit a rating for a card
- flashcards list      - List cards (any of the given tags)
- flashcards stats     - Show review statistics
- flashcards deadlines - Manage due dates and their progress
- flashcards serve     - Run the tool API
"""
from __future__ import annotations

import sys
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm
from rich.table import Table

from config import get_settings

from .errors import FlashcardError, SelectionError
from .models import Card, Rating
from .oracle import FSRSOracle
from .service import FlashcardService
from .state_store import StateStore
from .stats import CardStats


# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="flashcards",
    help="Flashcards: spaced-repetition review from the terminal",
    no_args_is_help=True,
)
deadlines_app = typer.Typer(help="Manage due dates (tests, deadlines) linked to tags")
app.add_typer(deadlines_app, name="deadlines")

console = Console()

STATE_STYLES = {
    "NEW": "blue",
    "LEARNING": "yellow",
    "REVIEW": "green",
    "RELEARNING": "red",
}


def configure_logging(level: str) -> None:
    """Send loguru output to stderr at the given level."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<level>{message}</level>",
    )


def _service(ctx: typer.Context) -> FlashcardService:
    return ctx.obj


def _fail(exc: FlashcardError) -> NoReturn:
    console.print(f"[bold red]Error:[/bold red] {exc}")
    raise typer.Exit(1)


# =============================================================================
# Display Helpers
# =============================================================================


def style_state(card: Card) -> str:
    name = card.fsrs.state.name
    color = STATE_STYLES.get(name, "white")
    return f"[{color}]{name.lower()}[/{color}]"


def display_card(card: Card, show_back: bool = True) -> None:
    tags = ", ".join(card.tags) if card.tags else "-"
    content = f"[bold]{card.front}[/bold]"
    if show_back:
        content += f"\n\n{card.back}"
    content += (
        f"\n\n[dim]Tags: {tags}  |  State: [/dim]{style_state(card)}"
        f"[dim]  |  Due: {card.fsrs.due:%Y-%m-%d %H:%M}[/dim]"
    )
    console.print(Panel(content, title=card.id, title_align="left", border_style="cyan", padding=(1, 2)))


def display_stats(stats: CardStats) -> None:
    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Total cards", str(stats.total_cards))
    table.add_row("Due now", str(stats.due_cards))
    table.add_row("Reviews today", str(stats.reviews_today))
    table.add_row("Retention today", f"{stats.retention_rate:.1f}%")

    console.print(table)


# =============================================================================
# Commands
# =============================================================================


@app.callback()
def main_callback(
    ctx: typer.Context,
    file: Optional[Path] = typer.Option(
        None,
        "--file", "-f",
        help="Path to flashcard data file",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Load the data file and prepare the service for the command."""
    settings = get_settings()
    configure_logging("DEBUG" if verbose else settings.log_level)

    store = StateStore(file or settings.resolved_data_file())
    try:
        store.load()
    except FlashcardError as e:
        _fail(e)

    oracle = FSRSOracle(
        request_retention=settings.request_retention,
        maximum_interval=settings.maximum_interval,
    )
    ctx.obj = FlashcardService(store, oracle)


@app.command()
def add(
    ctx: typer.Context,
    front: str = typer.Argument(..., help="Question side"),
    back: str = typer.Argument(..., help="Answer side"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Tag (repeatable)"),
) -> None:
    """Create a new card."""
    try:
        card = _service(ctx).create_card(front, back, tags or [])
    except FlashcardError as e:
        _fail(e)
    console.print(f"[green]Created card[/green] {card.id}")


@app.command()
def due(
    ctx: typer.Context,
    tags: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Require tag (repeatable)"),
    reveal: bool = typer.Option(False, "--reveal", "-r", help="Show the answer too"),
) -> None:
    """Show the highest-priority card that is due now."""
    try:
        selection = _service(ctx).get_due_card(tags or [])
    except SelectionError as e:
        console.print(f"\n[green]{str(e).capitalize()}.[/green]")
        display_stats(e.stats)
        raise typer.Exit(0)

    display_card(selection.card, show_back=reveal)
    console.print(f"[dim]Priority {selection.priority:.2f}[/dim]\n")
    display_stats(selection.stats)


@app.command()
def review(
    ctx: typer.Context,
    card_id: str = typer.Argument(..., help="Card being reviewed"),
    rating: int = typer.Argument(..., help="1=Again, 2=Hard, 3=Good, 4=Easy"),
    answer: str = typer.Option("", "--answer", "-a", help="Answer you gave"),
) -> None:
    """Submit a review rating for a card."""
    try:
        card = _service(ctx).submit_review(card_id, rating, answer)
    except FlashcardError as e:
        _fail(e)

    console.print(
        f"[green]Recorded {Rating(rating).name.lower()}[/green] - "
        f"next review {card.fsrs.due:%Y-%m-%d %H:%M} ({style_state(card)})"
    )


@app.command("list")
def list_cards(
    ctx: typer.Context,
    tags: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Any of these tags (repeatable)"),
    show_stats: bool = typer.Option(False, "--stats", "-s", help="Include statistics"),
) -> None:
    """List cards."""
    cards, stats = _service(ctx).list_cards(tags or [], include_stats=show_stats)

    table = Table()
    table.add_column("ID", style="dim")
    table.add_column("Front")
    table.add_column("Tags")
    table.add_column("State")
    table.add_column("Due")

    for card in sorted(cards, key=lambda c: c.created_at):
        table.add_row(
            card.id,
            card.front,
            ", ".join(card.tags),
            style_state(card),
            f"{card.fsrs.due:%Y-%m-%d %H:%M}",
        )
    console.print(table)

    if stats is not None:
        console.print()
        display_stats(stats)


@app.command()
def show(
    ctx: typer.Context,
    card_id: str = typer.Argument(..., help="Card to show"),
) -> None:
    """Show one card and its review history."""
    service = _service(ctx)
    try:
        card = service.get_card(card_id)
        reviews = service.get_card_reviews(card_id)
    except FlashcardError as e:
        _fail(e)

    display_card(card)
    if reviews:
        table = Table(title="Reviews")
        table.add_column("When")
        table.add_column("Rating")
        table.add_column("Answer")
        for r in reviews:
            table.add_row(f"{r.timestamp:%Y-%m-%d %H:%M}", r.rating.name.lower(), r.answer)
        console.print(table)


@app.command()
def edit(
    ctx: typer.Context,
    card_id: str = typer.Argument(..., help="Card to edit"),
    front: Optional[str] = typer.Option(None, "--front", help="New front text"),
    back: Optional[str] = typer.Option(None, "--back", help="New back text"),
    tags: Optional[List[str]] = typer.Option(None, "--tag", "-t", help="Replace tags (repeatable)"),
) -> None:
    """Update a card's text or tags."""
    try:
        card = _service(ctx).update_card(card_id, front=front, back=back, tags=tags)
    except FlashcardError as e:
        _fail(e)
    display_card(card)


@app.command()
def delete(
    ctx: typer.Context,
    card_id: str = typer.Argument(..., help="Card to delete"),
    confirm: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a card (its review history is kept)."""
    if not confirm and not Confirm.ask(f"Delete card {card_id}?", default=False):
        raise typer.Exit(0)
    try:
        _service(ctx).delete_card(card_id)
    except FlashcardError as e:
        _fail(e)
    console.print(f"[green]Deleted card[/green] {card_id}")


@app.command()
def stats(ctx: typer.Context) -> None:
    """Show review statistics."""
    console.print("\n[bold cyan]Review Statistics[/bold cyan]")
    console.print("=" * 40)
    display_stats(_service(ctx).get_stats())


@app.command()
def tags(ctx: typer.Context) -> None:
    """Show tags with card and due counts."""
    table = Table()
    table.add_column("Tag")
    table.add_column("Cards", justify="right")
    table.add_column("Due", justify="right")
    for info in _service(ctx).get_tags():
        table.add_row(info.tag, str(info.card_count), str(info.due_count))
    console.print(table)


@app.command()
def analyze(ctx: typer.Context) -> None:
    """Show the cards you struggle with most."""
    analysis = _service(ctx).analyze_learning()

    if not analysis.low_scoring_cards:
        console.print("[green]All recent reviews look good. Keep it up![/green]")
        return

    table = Table(title="Difficult cards")
    table.add_column("ID", style="dim")
    table.add_column("Front")
    table.add_column("Avg rating", justify="right")
    table.add_column("Reviews", justify="right")
    for a in analysis.low_scoring_cards:
        table.add_row(a.card.id, a.card.front, f"{a.avg_rating:.2f}", str(a.review_count))
    console.print(table)

    if analysis.common_tags:
        console.print(f"\nCommon tags: {', '.join(analysis.common_tags)}")


@app.command()
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Bind host"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Bind port"),
) -> None:
    """Run the tool API over HTTP."""
    import uvicorn

    from .api import create_app

    settings = get_settings()
    uvicorn.run(
        create_app(_service(ctx)),
        host=host or settings.api_host,
        port=port or settings.api_port,
        log_level=settings.log_level.lower(),
    )


# =============================================================================
# Due Date Commands
# =============================================================================


@deadlines_app.command("add")
def deadline_add(
    ctx: typer.Context,
    topic: str = typer.Argument(..., help="What the deadline is for"),
    date: str = typer.Argument(..., help="YYYY-MM-DD"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t", help="Cohort tag (generated if omitted)"),
) -> None:
    """Create a due date."""
    try:
        entry = _service(ctx).add_due_date(topic, date, tag)
    except FlashcardError as e:
        _fail(e)
    console.print(f"[green]Created due date[/green] {entry.id} (tag: {entry.tag})")


@deadlines_app.command("list")
def deadline_list(ctx: typer.Context) -> None:
    """List due dates."""
    table = Table()
    table.add_column("ID", style="dim")
    table.add_column("Topic")
    table.add_column("Date")
    table.add_column("Tag")
    for d in _service(ctx).list_due_dates():
        table.add_row(d.id, d.topic, f"{d.due_date:%Y-%m-%d}", d.tag)
    console.print(table)


@deadlines_app.command("update")
def deadline_update(
    ctx: typer.Context,
    due_date_id: str = typer.Argument(..., help="Due date to change"),
    topic: Optional[str] = typer.Option(None, "--topic"),
    date: Optional[str] = typer.Option(None, "--date", help="YYYY-MM-DD"),
    tag: Optional[str] = typer.Option(None, "--tag", "-t"),
) -> None:
    """Update a due date."""
    try:
        entry = _service(ctx).update_due_date(due_date_id, topic=topic, due_date=date, tag=tag)
    except FlashcardError as e:
        _fail(e)
    console.print(f"[green]Updated[/green] {entry.topic} ({entry.due_date:%Y-%m-%d}, tag: {entry.tag})")


@deadlines_app.command("delete")
def deadline_delete(
    ctx: typer.Context,
    due_date_id: str = typer.Argument(..., help="Due date to delete"),
) -> None:
    """Delete a due date (cards are untouched)."""
    try:
        _service(ctx).delete_due_date(due_date_id)
    except FlashcardError as e:
        _fail(e)
    console.print(f"[green]Deleted due date[/green] {due_date_id}")


@deadlines_app.command("progress")
def deadline_progress(ctx: typer.Context) -> None:
    """Show mastery progress towards upcoming due dates."""
    report = _service(ctx).due_date_progress_report()
    if not report:
        console.print("[dim]No upcoming due dates.[/dim]")
        return

    table = Table()
    table.add_column("Topic")
    table.add_column("Date")
    table.add_column("Mastered", justify="right")
    table.add_column("Progress", justify="right")
    table.add_column("Days left", justify="right")
    table.add_column("Cards/day", justify="right")
    for info in report:
        table.add_row(
            info.topic,
            info.due_date,
            f"{info.mastered_cards}/{info.total_cards}",
            f"{info.progress_percent:.1f}%",
            f"{info.days_remaining:.0f}",
            f"{info.required_pace:.1f}",
        )
    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
