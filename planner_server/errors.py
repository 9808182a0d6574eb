"""
Error taxonomy for the planner.

Every error carries a ``message`` that can be shown to the student as-is.
All of them are recoverable: the caller reports the message and carries on.
"""
from __future__ import annotations


class PlannerError(Exception):
    """Base class for all planner errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RecordNotFound(PlannerError):
    """A subject, syllabus record or event id does not exist (stale reference)."""


class SubjectNotFound(RecordNotFound):
    """The subject no longer exists."""


class InvalidStatusTransition(PlannerError):
    """A syllabus record was asked to move to a status it cannot reach."""


class IngestionError(PlannerError):
    """Base class for failures while turning a syllabus into events."""


class ExtractionFailed(IngestionError):
    """The text extractor could not read the document."""


class UnreadableDocument(IngestionError):
    """The document produced too little text, most likely a scanned image."""


class InferenceFailed(IngestionError):
    """The event inference backend failed; wraps any backend error."""
