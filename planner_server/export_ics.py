"""
iCalendar (.ics) export of academic events.

Each event becomes one all-day VEVENT so the file can be imported into
Google Calendar, Outlook or Apple Calendar.
"""
from __future__ import annotations

import typing as t
from datetime import datetime, timezone
from pathlib import Path

from .models import AcademicEvent

PRODID = "-//Syllabus Planner//Academic Calendar//EN"
UID_DOMAIN = "syllabus-planner"


def _ics_escape(text: str) -> str:
    """Escape text for ICS property values."""
    return (
        text.replace("\\", "\\\\")
        .replace("\r\n", "\\n")
        .replace("\n", "\\n")
        .replace(";", "\\;")
        .replace(",", "\\,")
    )


def render_ics(events: t.Iterable[AcademicEvent], now: t.Optional[datetime] = None) -> str:
    """Render events as an iCalendar document (CRLF line endings)."""
    stamp = (now or datetime.now(timezone.utc)).astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
    ]
    for event in events:
        lines.append("BEGIN:VEVENT")
        lines.append(f"UID:{_ics_escape(event.id)}@{UID_DOMAIN}")
        lines.append(f"DTSTAMP:{stamp}")
        lines.append(f"DTSTART;VALUE=DATE:{event.date.replace('-', '')}")
        lines.append(f"SUMMARY:{_ics_escape(f'{event.title} ({event.subject_name})')}")
        lines.append(f"DESCRIPTION:{_ics_escape(f'Category: {event.category.value}')}")
        lines.append("END:VEVENT")
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines) + "\r\n"


def export_events_to_ics(events: t.Iterable[AcademicEvent], out_path: t.Union[str, Path]) -> int:
    """Write events to an .ics file. Returns the number of exported events."""
    events = list(events)
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    # newline="" keeps the CRLF endings intact on every platform
    with open(out, "w", encoding="utf-8", newline="") as f:
        f.write(render_ics(events))
    return len(events)
