"""
Data models for syllabus documents and the events inferred from them.

A ``CandidateEvent`` is what the inference backend returns: it has no id and
no owner yet. The ingestion pipeline stamps it into an ``AcademicEvent``.
"""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from planner_server.models import EventCategory


@dataclass
class SyllabusDocument:
    """An uploaded syllabus. Lives only for the duration of one ingestion."""
    name: str
    content: bytes

    @classmethod
    def from_path(cls, path: str | Path) -> "SyllabusDocument":
        path = Path(path)
        return cls(name=path.name, content=path.read_bytes())


@dataclass
class CandidateEvent:
    """An event found in a syllabus, before it is assigned to a subject."""
    title: str
    date: str  # "YYYY-MM-DD"
    category: EventCategory = EventCategory.OTHER
