"""
Data models for subjects, syllabus records and academic events.

This module contains all the dataclasses held by the planner store, together
with the helpers that convert them to and from the JSON persisted on disk.
"""
from __future__ import annotations

import typing as t
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class EventCategory(str, Enum):
    """Kind of academic event."""
    EXAM = "Exam"
    ASSIGNMENT = "Assignment"
    READING = "Reading"
    PROJECT = "Project"
    OTHER = "Other"

    @classmethod
    def parse(cls, value: t.Any) -> "EventCategory":
        """Coerce a raw value into a category, falling back to ``OTHER``."""
        if isinstance(value, cls):
            return value
        text = str(value or "").strip().lower()
        for category in cls:
            if category.value.lower() == text:
                return category
        return cls.OTHER


class SyllabusStatus(str, Enum):
    """Processing state of one uploaded syllabus."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


# A record never goes back to processing: a re-upload creates a new record.
STATUS_TRANSITIONS: dict[SyllabusStatus, frozenset[SyllabusStatus]] = {
    SyllabusStatus.PENDING: frozenset({SyllabusStatus.PROCESSING, SyllabusStatus.ERROR}),
    SyllabusStatus.PROCESSING: frozenset({SyllabusStatus.COMPLETED, SyllabusStatus.ERROR}),
    SyllabusStatus.COMPLETED: frozenset(),
    SyllabusStatus.ERROR: frozenset(),
}

SUBJECT_COLORS: tuple[str, ...] = (
    "bg-red-200", "bg-yellow-200", "bg-green-200", "bg-blue-200",
    "bg-indigo-200", "bg-purple-200", "bg-pink-200",
    "border-red-500", "border-yellow-500", "border-green-500", "border-blue-500",
    "border-indigo-500", "border-purple-500", "border-pink-500",
)


@dataclass
class SyllabusFile:
    """One ingestion attempt for a subject. The document itself is never kept."""
    id: str
    name: str
    status: SyllabusStatus = SyllabusStatus.PENDING
    error: t.Optional[str] = None


@dataclass
class Subject:
    """A course owning syllabus records and, indirectly, events."""
    id: str
    name: str
    color: str
    syllabi: list[SyllabusFile] = field(default_factory=list)


@dataclass
class AcademicEvent:
    """A dated deadline belonging to one subject.

    ``subject_name`` and ``subject_color`` are snapshots of the subject kept
    in sync by the store.
    """
    id: str
    subject_id: str
    subject_name: str
    subject_color: str
    title: str
    date: str  # "YYYY-MM-DD"
    category: EventCategory = EventCategory.OTHER

    @property
    def day(self) -> date:
        return date.fromisoformat(self.date)


def new_id() -> str:
    return uuid.uuid4().hex


def parse_event_date(value: t.Any) -> str:
    """Validate a calendar date and return it as ``YYYY-MM-DD``.

    :param value: A ``date`` or a string in ``YYYY-MM-DD`` form.
    :raises ValueError: If the value is not a valid calendar date.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    text = str(value or "").strip()
    try:
        return datetime.strptime(text, "%Y-%m-%d").date().isoformat()
    except ValueError:
        raise ValueError(f"Invalid date {text!r}, expected YYYY-MM-DD") from None


def make_event(
        subject: Subject,
        title: str,
        date_value: t.Any,
        category: t.Any,
        event_id: t.Optional[str] = None,
) -> AcademicEvent:
    """Build an event owned by ``subject``, stamped with its current name and color."""
    return AcademicEvent(
        id=event_id or new_id(),
        subject_id=subject.id,
        subject_name=subject.name,
        subject_color=subject.color,
        title=title.strip(),
        date=parse_event_date(date_value),
        category=EventCategory.parse(category),
    )


# -----------------------------
# JSON conversion
# -----------------------------

def syllabus_to_dict(syllabus: SyllabusFile) -> dict[str, t.Any]:
    return {
        "id": syllabus.id,
        "name": syllabus.name,
        "status": syllabus.status.value,
        "error": syllabus.error,
    }


def subject_to_dict(subject: Subject) -> dict[str, t.Any]:
    return {
        "id": subject.id,
        "name": subject.name,
        "color": subject.color,
        "syllabi": [syllabus_to_dict(s) for s in subject.syllabi],
    }


def event_to_dict(event: AcademicEvent) -> dict[str, t.Any]:
    return {
        "id": event.id,
        "subject_id": event.subject_id,
        "subject_name": event.subject_name,
        "subject_color": event.subject_color,
        "title": event.title,
        "date": event.date,
        "category": event.category.value,
    }


def syllabus_from_dict(data: dict[str, t.Any]) -> SyllabusFile:
    try:
        status = SyllabusStatus(data.get("status") or "pending")
    except ValueError:
        status = SyllabusStatus.ERROR
    return SyllabusFile(
        id=str(data["id"]),
        name=data.get("name", "") or "",
        status=status,
        error=data.get("error") or None,
    )


def subject_from_dict(data: dict[str, t.Any]) -> Subject:
    return Subject(
        id=str(data["id"]),
        name=data.get("name", "") or "",
        color=data.get("color", "") or SUBJECT_COLORS[0],
        syllabi=[syllabus_from_dict(s) for s in data.get("syllabi", []) or []],
    )


def event_from_dict(data: dict[str, t.Any]) -> AcademicEvent:
    return AcademicEvent(
        id=str(data["id"]),
        subject_id=str(data["subject_id"]),
        subject_name=data.get("subject_name", "") or "",
        subject_color=data.get("subject_color", "") or "",
        title=data.get("title", "") or "",
        date=parse_event_date(data.get("date")),
        category=EventCategory.parse(data.get("category")),
    )
