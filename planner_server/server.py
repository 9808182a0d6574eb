# -*- coding: utf-8 -*-
import typing as t
from datetime import date
from functools import lru_cache
from pathlib import Path

from fastmcp import FastMCP

from orchestrator.config import get_settings
from planner_server.errors import SubjectNotFound
from planner_server.models import AcademicEvent, EventCategory, Subject, make_event
from planner_server.store import DomainStore
from planner_server.views import CalendarDay, calendar_grid, upcoming_events

mcp = FastMCP("PlannerServer")


@lru_cache(maxsize=None)
def _store_for(data_dir: Path) -> DomainStore:
    return DomainStore(data_dir)


def get_store() -> DomainStore:
    """Return the process-wide store for the configured data directory."""
    return _store_for(get_settings().data_dir.expanduser().resolve())


def save_event(
        store: DomainStore,
        subject_id: str,
        title: str,
        date_value: t.Any,
        category: t.Any = EventCategory.ASSIGNMENT,
        event_id: t.Optional[str] = None,
) -> AcademicEvent:
    """Validates a manually entered event and upserts it.

    :param store: The store to write to.
    :param subject_id: Owning subject; must exist.
    :param title: Event title; must not be blank.
    :param date_value: Date in YYYY-MM-DD format.
    :param category: One of Exam, Assignment, Reading, Project, Other.
    :param event_id: Id of the event to replace; a new id is generated if omitted.
    :return: The stored event.
    """
    if not title or not title.strip():
        raise ValueError("Event title must not be empty")
    subject = store.get_subject(subject_id)
    if subject is None:
        raise SubjectNotFound(f"Subject not found: {subject_id}")
    return store.upsert_event(make_event(subject, title, date_value, category, event_id=event_id))


@mcp.tool()
def create_subject(name: str) -> Subject:
    """Creates a subject (course).

    :param name: Name of the subject.
    :return: The created Subject.
    """
    return get_store().add_subject(name)


@mcp.tool()
def list_subjects() -> list[Subject]:
    """Lists all subjects with their syllabus records."""
    return get_store().list_subjects()


@mcp.tool()
def create_academic_event(
        subject_id: str,
        title: str,
        date: str,
        category: str = "Assignment",
) -> AcademicEvent:
    """Creates an academic event for a subject.

    :param subject_id: Id of the owning subject.
    :param title: Title of the event.
    :param date: Due date in YYYY-MM-DD format.
    :param category: One of Exam, Assignment, Reading, Project, Other.
    :return: The created AcademicEvent.
    """
    return save_event(get_store(), subject_id, title, date, category)


@mcp.tool()
def list_academic_events() -> list[AcademicEvent]:
    """Lists all academic events."""
    return get_store().list_events()


def _truncate(text: str, width: int) -> str:
    return text[:width - 1] if len(text) > width - 1 else text


def format_upcoming_events(events: list[AcademicEvent], today: t.Optional[date] = None) -> str:
    """Formats the upcoming events as a clean table.

    :return: Formatted table string of the upcoming events.
    """
    upcoming = upcoming_events(events, today=today)
    if not upcoming:
        return "📅 No upcoming events. Time to relax!"

    lines = []
    lines.append("📅 UPCOMING DEADLINES")
    lines.append("=" * 90)
    lines.append(f"{'#':<4} {'Date':<12} {'Subject':<25} {'Title':<35} {'Category':<10}")
    lines.append("-" * 90)

    for idx, event in enumerate(upcoming, 1):
        lines.append(
            f"{idx:<4} {event.date:<12} {_truncate(event.subject_name, 25):<25} "
            f"{_truncate(event.title, 35):<35} {event.category.value:<10}"
        )

    lines.append("=" * 90)
    lines.append(f"Total: {len(upcoming)} event(s)")
    return "\n".join(lines)


def format_calendar(days: list[CalendarDay]) -> str:
    """Formats a month grid as one line per day that has events."""
    if not days:
        return ""
    in_month = [d for d in days if d.in_month]
    header = in_month[0].date.strftime("%B %Y") if in_month else days[0].date.strftime("%B %Y")

    lines = [f"🗓  {header}", "=" * 60]
    busy = [d for d in days if d.events]
    if not busy:
        lines.append("No events this month.")
    for day in busy:
        marker = "" if day.in_month else " (overflow)"
        lines.append(f"{day.date.strftime('%a %d %b')}{marker}")
        for event in day.events:
            lines.append(f"    {event.category.value}: {event.title} [{event.subject_name}]")
    return "\n".join(lines)


@mcp.tool()
def show_upcoming_events() -> str:
    """Displays all events due today or later, earliest first."""
    return format_upcoming_events(get_store().list_events())


@mcp.tool()
def show_calendar(month: str = "") -> str:
    """Displays the events of one month.

    :param month: Month in YYYY-MM format; defaults to the current month.
    """
    anchor = date.fromisoformat(f"{month}-01") if month else date.today()
    return format_calendar(calendar_grid(get_store().list_events(), anchor))


if __name__ == "__main__":
    mcp.run()
