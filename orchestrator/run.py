# -*- coding: utf-8 -*-
import asyncio
import logging
import typing as t
from datetime import date

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

from orchestrator.config import get_settings
from orchestrator.notifications import ConsoleNotifier
from orchestrator.pipeline import IngestionPipeline, IngestionResult
from orchestrator.utils import expand_pdf_paths
from planner_server.errors import PlannerError, RecordNotFound
from planner_server.export_ics import export_events_to_ics
from planner_server.export_pdf import export_events_to_pdf
from planner_server.models import EventCategory, SyllabusStatus
from planner_server.server import get_store, save_event
from planner_server.store import DomainStore
from planner_server.views import calendar_grid, shift_month, upcoming_events
from syllabus_server.models import SyllabusDocument


console = Console()

CATEGORY_STYLES = {
    EventCategory.EXAM: "red",
    EventCategory.ASSIGNMENT: "blue",
    EventCategory.READING: "green",
    EventCategory.PROJECT: "yellow",
    EventCategory.OTHER: "white",
}

STATUS_ICONS = {
    SyllabusStatus.PENDING: "[dim]…[/dim]",
    SyllabusStatus.PROCESSING: "[cyan]⟳[/cyan]",
    SyllabusStatus.COMPLETED: "[green]✓[/green]",
    SyllabusStatus.ERROR: "[red]✗[/red]",
}

WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


def _fail(message: str) -> t.NoReturn:
    console.print(f"[red]Error:[/red] {escape(message)}", highlight=False)
    raise SystemExit(1)


def truncate_title(title: str, max_length: int = 45) -> str:
    """Truncate title to max_length characters, adding ellipsis if needed."""
    if len(title) <= max_length:
        return title
    return title[:max_length-3] + "..."


def parse_month(value: t.Optional[str]) -> date:
    """Parse a YYYY-MM option into the first day of that month (default: this month)."""
    if not value:
        return date.today().replace(day=1)
    try:
        return date.fromisoformat(f"{value}-01")
    except ValueError:
        raise click.BadParameter(f"'{value}' is not a month in YYYY-MM format.", param_hint="--month")


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
def main(verbose: bool) -> None:
    """Track exams, assignments and readings extracted from your course syllabi."""
    settings = get_settings()
    logging.basicConfig(
        level=logging.INFO if verbose else settings.log_level.upper(),
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


# -----------------------------
# Subjects
# -----------------------------

@main.group()
def subjects() -> None:
    """Manage subjects (courses)."""


@subjects.command("add")
@click.argument("name")
def add_subject(name: str) -> None:
    """Create a subject called NAME."""
    if not name.strip():
        _fail("Subject name must not be empty.")
    subject = get_store().add_subject(name)
    console.print(f"[green]✓[/green] Added [bold]{escape(subject.name)}[/bold] ({subject.id})")


@subjects.command("rename")
@click.argument("subject_id")
@click.argument("new_name")
def rename_subject(subject_id: str, new_name: str) -> None:
    """Rename a subject; its events follow the new name."""
    if not new_name.strip():
        _fail("Subject name must not be empty.")
    try:
        subject = get_store().rename_subject(subject_id, new_name)
    except RecordNotFound as e:
        console.print(f"[yellow]Nothing to rename:[/yellow] {escape(e.message)}")
        return
    console.print(f"[green]✓[/green] Renamed to [bold]{escape(subject.name)}[/bold]")


@subjects.command("delete")
@click.argument("subject_id")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
def delete_subject(subject_id: str, yes: bool) -> None:
    """Delete a subject together with all of its events."""
    store = get_store()
    subject = store.get_subject(subject_id)
    if subject is None:
        console.print(f"[yellow]Nothing to delete:[/yellow] subject {subject_id} does not exist.")
        return
    if not yes:
        click.confirm(
            f'Are you sure you want to delete "{subject.name}"? This removes all of its events.',
            abort=True,
        )
    try:
        removed = store.delete_subject(subject_id)
    except RecordNotFound as e:
        console.print(f"[yellow]Nothing to delete:[/yellow] {escape(e.message)}")
        return
    console.print(f"[green]✓[/green] Deleted [bold]{escape(subject.name)}[/bold] and {removed} event(s)")


@subjects.command("list")
def list_subjects() -> None:
    """List subjects with their uploaded syllabi."""
    all_subjects = get_store().list_subjects()
    if not all_subjects:
        console.print("No subjects yet. Add one with [bold]subjects add NAME[/bold].")
        return
    table = Table(title="📚 Subjects", show_header=True, header_style="bold magenta")
    table.add_column("Id", style="dim")
    table.add_column("Name", style="white")
    table.add_column("Color", style="cyan")
    table.add_column("Syllabi")
    for subject in all_subjects:
        syllabi = "\n".join(
            f"{STATUS_ICONS[s.status]} {escape(s.name)}" + (f" [dim]({escape(s.error)})[/dim]" if s.error else "")
            for s in subject.syllabi
        ) or "—"
        table.add_row(subject.id, escape(subject.name), subject.color, syllabi)
    console.print(table)


# -----------------------------
# Ingestion
# -----------------------------

def _ingest_files(store: DomainStore, subject_id: str, pdf_paths: list[str]) -> list[IngestionResult]:
    pipeline = IngestionPipeline(store, ConsoleNotifier(console))
    documents = [SyllabusDocument.from_path(p) for p in pdf_paths]
    outcomes = asyncio.run(pipeline.ingest_many((subject_id, doc) for doc in documents))
    results: list[IngestionResult] = []
    for outcome in outcomes:
        if isinstance(outcome, PlannerError):
            _fail(outcome.message)
        results.append(outcome)
    return results


@main.command()
@click.argument("subject_id")
@click.argument("paths", nargs=-1, required=True, type=click.Path(exists=True))
def upload(subject_id: str, paths: tuple[str, ...]) -> None:
    """Extract events from syllabus PDFs into SUBJECT_ID.

    PATHS: PDF files or directories containing PDF files.
    """
    store = get_store()
    subject = store.get_subject(subject_id)
    if subject is None:
        _fail(f"Subject not found: {subject_id}")
    pdf_paths = expand_pdf_paths(paths)

    console.print(
        Panel.fit(
            f"[bold blue]📚 Syllabus Planner[/bold blue]\n"
            f"Processing [bold]{len(pdf_paths)}[/bold] syllabus PDF(s) for [bold]{escape(subject.name)}[/bold]",
            border_style="blue",
        )
    )
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task("Extracting events...", total=None)
        results = _ingest_files(store, subject_id, pdf_paths)

    stats = Text()
    stats.append("Events added: ", style="white")
    stats.append(f"{sum(len(r.events) for r in results)}", style="bold green")
    stats.append("\nFailed files: ", style="white")
    stats.append(f"{sum(1 for r in results if not r.ok)}", style="bold red")
    console.print(Panel(stats, title="📊 Statistics", border_style="green"))


# -----------------------------
# Events
# -----------------------------

CATEGORY_CHOICE = click.Choice([c.value for c in EventCategory], case_sensitive=False)


@main.group()
def events() -> None:
    """Add, edit or delete events by hand."""


@events.command("add")
@click.argument("subject_id")
@click.argument("title")
@click.argument("due")
@click.option("--category", "-c", type=CATEGORY_CHOICE, default=EventCategory.ASSIGNMENT.value, show_default=True)
def add_event(subject_id: str, title: str, due: str, category: str) -> None:
    """Add an event TITLE due on DUE (YYYY-MM-DD) to SUBJECT_ID."""
    try:
        event = save_event(get_store(), subject_id, title, due, category)
    except (PlannerError, ValueError) as e:
        _fail(getattr(e, "message", str(e)))
    console.print(f"[green]✓[/green] Added {event.category.value} [bold]{escape(event.title)}[/bold] on {event.date} ({event.id})")


@events.command("edit")
@click.argument("event_id")
@click.option("--title", "-t", default=None)
@click.option("--date", "due", default=None, help="New date (YYYY-MM-DD).")
@click.option("--category", "-c", type=CATEGORY_CHOICE, default=None)
@click.option("--subject", "subject_id", default=None, help="Move the event to another subject.")
def edit_event(
        event_id: str,
        title: t.Optional[str],
        due: t.Optional[str],
        category: t.Optional[str],
        subject_id: t.Optional[str],
) -> None:
    """Change fields of an existing event."""
    store = get_store()
    existing = store.get_event(event_id)
    if existing is None:
        _fail(f"Event not found: {event_id}")
    try:
        event = save_event(
            store,
            subject_id or existing.subject_id,
            title if title is not None else existing.title,
            due or existing.date,
            category or existing.category,
            event_id=existing.id,
        )
    except (PlannerError, ValueError) as e:
        _fail(getattr(e, "message", str(e)))
    console.print(f"[green]✓[/green] Saved [bold]{escape(event.title)}[/bold] on {event.date}")


@events.command("delete")
@click.argument("event_id")
def delete_event(event_id: str) -> None:
    """Delete an event."""
    if get_store().delete_event(event_id):
        console.print(f"[green]✓[/green] Deleted event {event_id}")
    else:
        console.print(f"[yellow]Nothing to delete:[/yellow] event {event_id} does not exist.")


# -----------------------------
# Views
# -----------------------------

@main.command()
@click.option("--month", "-m", default=None, help="Month to show (YYYY-MM). Defaults to the current month.")
@click.option("--offset", default=0, help="Shift the month by this many months.")
def calendar(month: t.Optional[str], offset: int) -> None:
    """Show a month calendar with the events of each day."""
    anchor = shift_month(parse_month(month), offset)
    days = calendar_grid(get_store().list_events(), anchor)

    table = Table(title=f"🗓  {anchor.strftime('%B %Y')}", show_header=True, header_style="bold magenta",
                  show_lines=True)
    for name in WEEKDAYS:
        table.add_column(name, vertical="top", min_width=12)

    for week_start in range(0, len(days), 7):
        cells = []
        for day in days[week_start:week_start + 7]:
            number = f"{day.date.day}"
            if day.is_today:
                number = f"[reverse bold]{number}[/reverse bold]"
            elif not day.in_month:
                number = f"[dim]{number}[/dim]"
            lines = [number]
            for event in day.events:
                style = CATEGORY_STYLES[event.category]
                lines.append(f"[{style}]{event.category.value}:[/{style}] {escape(truncate_title(event.title, 20))}")
            cells.append("\n".join(lines))
        table.add_row(*cells)
    console.print(table)


@main.command()
def upcoming() -> None:
    """List events due today or later, earliest first."""
    items = upcoming_events(get_store().list_events())
    if not items:
        console.print("No upcoming events. Time to relax!")
        return
    table = Table(title="📅 Upcoming Deadlines", show_header=True, header_style="bold magenta")
    table.add_column("Date", style="yellow")
    table.add_column("Subject", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("Category")
    for event in items:
        style = CATEGORY_STYLES[event.category]
        table.add_row(
            date.fromisoformat(event.date).strftime("%a %b %d, %Y"),
            escape(event.subject_name),
            escape(truncate_title(event.title)),
            f"[{style}]{event.category.value}[/{style}]",
        )
    console.print(table)


@main.command()
@click.argument("out_path", type=click.Path(dir_okay=False), default="syllabus_planner_export.ics")
def export(out_path: str) -> None:
    """Export all events to an iCalendar (.ics) file."""
    count = export_events_to_ics(get_store().list_events(), out_path)
    console.print(f"[green]✓[/green] Exported {count} event(s) to {out_path}")


@main.command("export-pdf")
@click.argument("out_path", type=click.Path(dir_okay=False), default="syllabus_planner_upcoming.pdf")
def export_pdf(out_path: str) -> None:
    """Export upcoming deadlines to a PDF report."""
    count = export_events_to_pdf(get_store().list_events(), out_path)
    console.print(f"[green]✓[/green] Exported {count} upcoming event(s) to {out_path}")


if __name__ == "__main__":
    main()
