# -*- coding: utf-8 -*-
"""
Persistent store for subjects and academic events.

Subjects and events are kept as two independent named records:

    <data_dir>/subjects.json
    <data_dir>/events.json

Both are loaded when the store is created (missing or unreadable files load as
empty lists) and written back after every mutation. All mutations go through
``DomainStore`` and are serialized by one lock, so cascades and batch appends
are never observed half-done. Events referring to a subject that is not on
disk are dropped when loading.
"""
from __future__ import annotations

import copy
import json
import logging
import os
import tempfile
import threading
import typing as t
from dataclasses import replace
from pathlib import Path

from .errors import InvalidStatusTransition, RecordNotFound, SubjectNotFound
from .models import (
    STATUS_TRANSITIONS,
    SUBJECT_COLORS,
    AcademicEvent,
    Subject,
    SyllabusFile,
    SyllabusStatus,
    event_from_dict,
    event_to_dict,
    new_id,
    subject_from_dict,
    subject_to_dict,
)

logger = logging.getLogger(__name__)

SUBJECTS_RECORD = "subjects"
EVENTS_RECORD = "events"

INTERRUPTED_MESSAGE = "Processing was interrupted. Please upload the syllabus again."


class JsonStateStorage:
    """Reads and writes named JSON list records inside one directory."""

    def __init__(self, data_dir: t.Union[str, Path]) -> None:
        self.data_dir = Path(data_dir).expanduser()

    def path_for(self, name: str) -> Path:
        return self.data_dir / f"{name}.json"

    def load(self, name: str) -> list[dict[str, t.Any]]:
        """Load a record, returning an empty list if it is missing or invalid."""
        path = self.path_for(name)
        if not path.exists():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Ignoring unreadable state file %s", path)
            return []
        if not isinstance(data, list):
            return []
        return [item for item in data if isinstance(item, dict)]

    def save(self, name: str, records: list[dict[str, t.Any]]) -> None:
        """Write a record atomically (temp file + rename)."""
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(name)
        fd, tmp_name = tempfile.mkstemp(dir=self.data_dir, prefix=f".{name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


class DomainStore:
    """Authoritative holder of subjects and events.

    Every mutation builds the new collections aside and only makes them
    current once they are persisted, so a failed write leaves the store as it
    was.

    :param data_dir: Directory for the persisted records. ``None`` keeps all
        state in memory, which is what the tests use.
    """

    def __init__(self, data_dir: t.Optional[t.Union[str, Path]] = None) -> None:
        self._lock = threading.RLock()
        self._storage = JsonStateStorage(data_dir) if data_dir is not None else None
        self._subjects: list[Subject] = []
        self._events: list[AcademicEvent] = []
        self._load()

    # -----------------------------
    # Persistence
    # -----------------------------

    def _load(self) -> None:
        if self._storage is None:
            return
        for raw in self._storage.load(SUBJECTS_RECORD):
            try:
                self._subjects.append(subject_from_dict(raw))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping malformed subject record %r: %s", raw, e)
        events: list[AcademicEvent] = []
        for raw in self._storage.load(EVENTS_RECORD):
            try:
                events.append(event_from_dict(raw))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping malformed event record %r: %s", raw, e)

        repaired = False
        # Orphans and stale subject stamps come from writes cut short between the two records.
        owners = {s.id: s for s in self._subjects}
        for event in events:
            owner = owners.get(event.subject_id)
            if owner is None:
                logger.warning("Dropping event %s of missing subject %s", event.id, event.subject_id)
                repaired = True
                continue
            if (event.subject_name, event.subject_color) != (owner.name, owner.color):
                event = replace(event, subject_name=owner.name, subject_color=owner.color)
                repaired = True
            self._events.append(event)

        # The documents behind in-flight records died with the previous process.
        for subject in self._subjects:
            for syllabus in subject.syllabi:
                if syllabus.status in (SyllabusStatus.PENDING, SyllabusStatus.PROCESSING):
                    syllabus.status = SyllabusStatus.ERROR
                    syllabus.error = INTERRUPTED_MESSAGE
                    repaired = True
        if repaired:
            self._commit(self._subjects, self._events)

    def _commit(self, subjects: list[Subject], events: list[AcademicEvent]) -> None:
        """Persist the new state, then make it current.

        Events are written before subjects, so a failure in between never
        leaves an event without its subject on disk. Nothing in memory changes
        unless both writes succeed.
        """
        if self._storage is not None:
            self._storage.save(EVENTS_RECORD, [event_to_dict(e) for e in events])
            self._storage.save(SUBJECTS_RECORD, [subject_to_dict(s) for s in subjects])
        self._subjects = subjects
        self._events = events

    # -----------------------------
    # Readers
    # -----------------------------

    def list_subjects(self) -> list[Subject]:
        with self._lock:
            return copy.deepcopy(self._subjects)

    def get_subject(self, subject_id: str) -> t.Optional[Subject]:
        with self._lock:
            subject = _find_subject(self._subjects, subject_id)
            return copy.deepcopy(subject) if subject is not None else None

    def list_events(self) -> list[AcademicEvent]:
        with self._lock:
            return [replace(e) for e in self._events]

    def get_event(self, event_id: str) -> t.Optional[AcademicEvent]:
        with self._lock:
            for event in self._events:
                if event.id == event_id:
                    return replace(event)
            return None

    # -----------------------------
    # Subjects
    # -----------------------------

    def add_subject(self, name: str) -> Subject:
        """Create a subject with the next palette color."""
        name = name.strip()
        if not name:
            raise ValueError("Subject name must not be empty")
        with self._lock:
            subject = Subject(
                id=new_id(),
                name=name,
                color=SUBJECT_COLORS[len(self._subjects) % len(SUBJECT_COLORS)],
            )
            self._commit(self._subjects + [subject], self._events)
            logger.info("Added subject %s (%s)", subject.name, subject.id)
            return copy.deepcopy(subject)

    def rename_subject(self, subject_id: str, new_name: str) -> Subject:
        """Rename a subject and refresh ``subject_name`` on all its events."""
        new_name = new_name.strip()
        if not new_name:
            raise ValueError("Subject name must not be empty")
        with self._lock:
            subjects = copy.deepcopy(self._subjects)
            subject = _require_subject(subjects, subject_id)
            subject.name = new_name
            events = [
                replace(e, subject_name=new_name) if e.subject_id == subject_id else e
                for e in self._events
            ]
            self._commit(subjects, events)
            return copy.deepcopy(subject)

    def delete_subject(self, subject_id: str) -> int:
        """Delete a subject and every event it owns. Returns the number of events removed."""
        with self._lock:
            _require_subject(self._subjects, subject_id)
            kept = [e for e in self._events if e.subject_id != subject_id]
            removed = len(self._events) - len(kept)
            self._commit([s for s in self._subjects if s.id != subject_id], kept)
            logger.info("Deleted subject %s and %d event(s)", subject_id, removed)
            return removed

    # -----------------------------
    # Syllabus records
    # -----------------------------

    def add_syllabus_record(
            self,
            subject_id: str,
            name: str,
            status: SyllabusStatus = SyllabusStatus.PROCESSING,
    ) -> SyllabusFile:
        with self._lock:
            subjects = copy.deepcopy(self._subjects)
            subject = _require_subject(subjects, subject_id)
            syllabus = SyllabusFile(id=new_id(), name=name, status=status)
            subject.syllabi.append(syllabus)
            self._commit(subjects, self._events)
            return replace(syllabus)

    def update_syllabus_status(
            self,
            subject_id: str,
            syllabus_id: str,
            status: SyllabusStatus,
            error: t.Optional[str] = None,
    ) -> SyllabusFile:
        """Move a syllabus record to ``status``.

        :raises RecordNotFound: If the subject or the record is gone.
        :raises InvalidStatusTransition: If ``status`` is not reachable from the current one.
        """
        with self._lock:
            subjects = copy.deepcopy(self._subjects)
            subject = _require_subject(subjects, subject_id)
            for syllabus in subject.syllabi:
                if syllabus.id == syllabus_id:
                    break
            else:
                raise RecordNotFound(f"Syllabus record not found: {syllabus_id}")

            if status not in STATUS_TRANSITIONS[syllabus.status]:
                raise InvalidStatusTransition(
                    f"Cannot move syllabus {syllabus_id} from {syllabus.status.value} to {status.value}"
                )
            syllabus.status = status
            syllabus.error = error if status is SyllabusStatus.ERROR else None
            self._commit(subjects, self._events)
            return replace(syllabus)

    # -----------------------------
    # Events
    # -----------------------------

    def append_events(self, subject_id: str, events: t.Iterable[AcademicEvent]) -> bool:
        """Append a batch of events for a subject in one step.

        Returns ``False`` and appends nothing if the subject has been deleted
        in the meantime.
        """
        batch = [replace(e) for e in events]
        with self._lock:
            if _find_subject(self._subjects, subject_id) is None:
                logger.info("Dropping %d event(s) for deleted subject %s", len(batch), subject_id)
                return False
            self._commit(self._subjects, self._events + batch)
            return True

    def upsert_event(self, event: AcademicEvent) -> AcademicEvent:
        """Insert the event, or replace the one with the same id in place."""
        stored = replace(event)
        with self._lock:
            events = list(self._events)
            for idx, existing in enumerate(events):
                if existing.id == stored.id:
                    events[idx] = stored
                    break
            else:
                events.append(stored)
            self._commit(self._subjects, events)
            return replace(stored)

    def delete_event(self, event_id: str) -> bool:
        """Delete an event. Deleting an unknown id is a no-op returning ``False``."""
        with self._lock:
            kept = [e for e in self._events if e.id != event_id]
            if len(kept) == len(self._events):
                return False
            self._commit(self._subjects, kept)
            return True


def _find_subject(subjects: list[Subject], subject_id: str) -> t.Optional[Subject]:
    for subject in subjects:
        if subject.id == subject_id:
            return subject
    return None


def _require_subject(subjects: list[Subject], subject_id: str) -> Subject:
    subject = _find_subject(subjects, subject_id)
    if subject is None:
        raise SubjectNotFound(f"Subject not found: {subject_id}")
    return subject
