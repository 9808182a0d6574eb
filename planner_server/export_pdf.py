"""
PDF report of upcoming deadlines.

One table (Date, Subject, Title, Category) of the events due today or later,
earliest first, under a title and the generation date.
"""
from __future__ import annotations

import io
import typing as t
from datetime import date
from pathlib import Path

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from .models import AcademicEvent
from .views import upcoming_events

REPORT_TITLE = "Syllabus Planner - Upcoming Deadlines"
COLUMNS = ["Date", "Subject", "Title", "Category"]
HEADER_COLOR = colors.Color(74 / 255, 85 / 255, 104 / 255)


def _long_date(day: date) -> str:
    return f"{day:%B} {day.day}, {day.year}"


def _escape(text: str) -> str:
    return text.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;")


def report_rows(events: t.Iterable[AcademicEvent], today: t.Optional[date] = None) -> list[list[str]]:
    """Table rows of the upcoming events, in date order, without the header."""
    return [
        [_long_date(e.day), e.subject_name, e.title, e.category.value]
        for e in upcoming_events(events, today)
    ]


def render_pdf(events: t.Iterable[AcademicEvent], today: t.Optional[date] = None) -> bytes:
    """Render the upcoming-deadlines report as PDF bytes."""
    today = today or date.today()
    styles = getSampleStyleSheet()
    cell = styles["BodyText"]

    rows = report_rows(events, today)
    # Paragraph cells wrap long titles; their text is markup, so escape it.
    body = [[Paragraph(_escape(value), cell) for value in row] for row in rows]
    table = Table(
        [COLUMNS] + body,
        colWidths=[1.5 * inch, 1.6 * inch, 2.6 * inch, 1.2 * inch],
        repeatRows=1,
    )
    table.setStyle(TableStyle([
        ("BACKGROUND", (0, 0), (-1, 0), HEADER_COLOR),
        ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]))

    story = [
        Paragraph(REPORT_TITLE, styles["Title"]),
        Paragraph(f"Generated on {_long_date(today)}", styles["Normal"]),
        Spacer(1, 0.25 * inch),
    ]
    if rows:
        story.append(table)
    else:
        story.append(Paragraph("No upcoming deadlines.", styles["Normal"]))

    buf = io.BytesIO()
    doc = SimpleDocTemplate(buf, pagesize=letter, title=REPORT_TITLE)
    doc.build(story)
    return buf.getvalue()


def export_events_to_pdf(
        events: t.Iterable[AcademicEvent],
        out_path: t.Union[str, Path],
        today: t.Optional[date] = None,
) -> int:
    """Write the upcoming-deadlines report. Returns the number of rows written."""
    events = list(events)
    out = Path(out_path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_bytes(render_pdf(events, today))
    return len(upcoming_events(events, today))
