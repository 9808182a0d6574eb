"""
Shared Pydantic models for REST API serialization.

This module contains Pydantic equivalents of the planner dataclasses, plus the
request/response bodies of the planner service, so every endpoint serializes
subjects and events the same way.
"""
from __future__ import annotations

import datetime as dt
import typing as t

from pydantic import BaseModel, Field, field_validator

from planner_server import models as domain
from planner_server.views import CalendarDay as DomainCalendarDay


# Type literals for commonly used values
EventCategory = t.Literal["Exam", "Assignment", "Reading", "Project", "Other"]
SyllabusStatus = t.Literal["pending", "processing", "completed", "error"]
NotificationKind = t.Literal["success", "error", "info"]


class SyllabusFile(BaseModel):
    """One upload attempt and its processing status."""
    id: str
    name: str
    status: SyllabusStatus
    error: t.Optional[str] = None

    @classmethod
    def from_domain(cls, syllabus: domain.SyllabusFile) -> "SyllabusFile":
        return cls(id=syllabus.id, name=syllabus.name, status=syllabus.status.value, error=syllabus.error)


class Subject(BaseModel):
    """A course and its syllabus history."""
    id: str
    name: str
    color: str
    syllabi: list[SyllabusFile] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, subject: domain.Subject) -> "Subject":
        return cls(
            id=subject.id,
            name=subject.name,
            color=subject.color,
            syllabi=[SyllabusFile.from_domain(s) for s in subject.syllabi],
        )


class AcademicEvent(BaseModel):
    """A dated deadline belonging to one subject."""
    id: str
    subject_id: str
    subject_name: str
    subject_color: str
    title: str
    date: str                       # "YYYY-MM-DD"
    category: EventCategory

    @classmethod
    def from_domain(cls, event: domain.AcademicEvent) -> "AcademicEvent":
        return cls(
            id=event.id,
            subject_id=event.subject_id,
            subject_name=event.subject_name,
            subject_color=event.subject_color,
            title=event.title,
            date=event.date,
            category=event.category.value,
        )


class Notification(BaseModel):
    kind: NotificationKind
    message: str


class CalendarDay(BaseModel):
    """One cell of the month grid."""
    date: dt.date
    in_month: bool
    is_today: bool
    events: list[AcademicEvent] = Field(default_factory=list)

    @classmethod
    def from_domain(cls, day: DomainCalendarDay) -> "CalendarDay":
        return cls(
            date=day.date,
            in_month=day.in_month,
            is_today=day.is_today,
            events=[AcademicEvent.from_domain(e) for e in day.events],
        )


# Request/Response Models for API endpoints
class CreateSubjectRequest(BaseModel):
    """Request model for creating a subject."""
    name: str

    @field_validator("name")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("name must not be empty")
        return value.strip()


class RenameSubjectRequest(CreateSubjectRequest):
    """Request model for renaming a subject."""


class SaveEventRequest(BaseModel):
    """Request model for creating or replacing an event."""
    subject_id: str
    title: str = Field(min_length=1)
    date: dt.date
    category: EventCategory = "Assignment"


class DeleteSubjectResponse(BaseModel):
    deleted_events: int


class IngestionResponse(BaseModel):
    """Response model for a syllabus upload."""
    syllabus: SyllabusFile
    events: list[AcademicEvent] = Field(default_factory=list)
    discarded: bool = False
    notifications: list[Notification] = Field(default_factory=list)


class CalendarResponse(BaseModel):
    """Response model for the month grid."""
    month: str                      # "YYYY-MM"
    days: list[CalendarDay]
