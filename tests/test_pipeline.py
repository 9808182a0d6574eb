"""Tests for the ingestion pipeline.

Extraction and inference are replaced with in-process fakes so no PDF
parsing or LLM calls happen.
"""
import asyncio
import threading
import typing as t

import pytest

from orchestrator.notifications import NotificationKind, RecordingNotifier
from orchestrator.pipeline import UNREADABLE_MESSAGE, IngestionPipeline
from planner_server.errors import ExtractionFailed, InferenceFailed, SubjectNotFound
from planner_server.models import EventCategory, SyllabusStatus
from planner_server.store import DomainStore
from syllabus_server.models import CandidateEvent, SyllabusDocument


def _doc(name: str = "syllabus.pdf", text: str = "x" * 500) -> SyllabusDocument:
    # The fake extractor below simply decodes the content.
    return SyllabusDocument(name=name, content=text.encode("utf-8"))


def _decode(document: SyllabusDocument) -> str:
    return document.content.decode("utf-8")


def _returning(*candidates: CandidateEvent) -> t.Callable[[str], list[CandidateEvent]]:
    return lambda text: list(candidates)


MIDTERM = CandidateEvent(title="Midterm", date="2024-10-15", category=EventCategory.EXAM)


def _pipeline(store: DomainStore, inferrer, extractor=_decode) -> tuple[IngestionPipeline, RecordingNotifier]:
    notifier = RecordingNotifier()
    return IngestionPipeline(store, notifier, extractor=extractor, inferrer=inferrer, min_text_length=100), notifier


@pytest.mark.asyncio
async def test_ingest_creates_stamped_events(store: DomainStore) -> None:
    """500 characters of text and one inferred exam yield one owned event."""
    subject = store.add_subject("Calc I")
    pipeline, notifier = _pipeline(store, _returning(MIDTERM))

    result = await pipeline.ingest(subject.id, _doc())

    events = store.list_events()
    assert len(events) == 1
    event = events[0]
    assert event.subject_id == subject.id
    assert event.subject_name == "Calc I"
    assert event.subject_color == subject.color
    assert (event.title, event.date, event.category) == ("Midterm", "2024-10-15", EventCategory.EXAM)
    assert result.events == events

    record = store.get_subject(subject.id).syllabi[0]
    assert record.status is SyllabusStatus.COMPLETED
    assert [n.kind for n in notifier.notifications] == [NotificationKind.SUCCESS]


@pytest.mark.asyncio
async def test_short_text_is_unreadable(store: DomainStore) -> None:
    """40 characters of text is rejected before inference is called."""
    subject = store.add_subject("Calc I")
    calls: list[str] = []

    def _inferrer(text: str) -> list[CandidateEvent]:
        calls.append(text)
        return [MIDTERM]

    pipeline, notifier = _pipeline(store, _inferrer)

    result = await pipeline.ingest(subject.id, _doc(text="x" * 40))

    assert calls == []
    assert store.list_events() == []
    assert result.syllabus.status is SyllabusStatus.ERROR
    assert store.get_subject(subject.id).syllabi[0].status is SyllabusStatus.ERROR
    assert len(notifier.notifications) == 1
    assert notifier.notifications[0].kind is NotificationKind.ERROR
    assert "image-based" in notifier.notifications[0].message
    assert notifier.notifications[0].message == UNREADABLE_MESSAGE


@pytest.mark.asyncio
async def test_zero_events_is_a_completed_info_outcome(store: DomainStore) -> None:
    subject = store.add_subject("Calc I")
    pipeline, notifier = _pipeline(store, _returning())

    result = await pipeline.ingest(subject.id, _doc())

    assert result.ok
    assert store.list_events() == []
    assert store.get_subject(subject.id).syllabi[0].status is SyllabusStatus.COMPLETED
    assert [n.kind for n in notifier.notifications] == [NotificationKind.INFO]


@pytest.mark.asyncio
async def test_missing_subject_fails_before_registering(store: DomainStore) -> None:
    pipeline, notifier = _pipeline(store, _returning(MIDTERM))

    with pytest.raises(SubjectNotFound):
        await pipeline.ingest("missing", _doc())

    assert notifier.of_kind(NotificationKind.ERROR)
    assert store.list_events() == []


@pytest.mark.asyncio
async def test_extraction_failure_marks_error(store: DomainStore) -> None:
    subject = store.add_subject("Calc I")

    def _broken(document: SyllabusDocument) -> str:
        raise ExtractionFailed("Could not read the file.")

    pipeline, notifier = _pipeline(store, _returning(MIDTERM), extractor=_broken)

    result = await pipeline.ingest(subject.id, _doc())

    assert result.syllabus.status is SyllabusStatus.ERROR
    assert result.syllabus.error == "Could not read the file."
    assert notifier.notifications[0].message == "Could not read the file."


@pytest.mark.asyncio
async def test_inference_failure_marks_error(store: DomainStore) -> None:
    subject = store.add_subject("Calc I")

    def _failing(text: str) -> list[CandidateEvent]:
        raise InferenceFailed("The syllabus could not be processed. Please try again.")

    pipeline, notifier = _pipeline(store, _failing)

    result = await pipeline.ingest(subject.id, _doc())

    assert not result.ok
    assert store.list_events() == []
    assert store.get_subject(subject.id).syllabi[0].error == "The syllabus could not be processed. Please try again."
    assert notifier.of_kind(NotificationKind.ERROR)


@pytest.mark.asyncio
async def test_unexpected_exception_still_settles_as_error(store: DomainStore) -> None:
    subject = store.add_subject("Calc I")

    def _crash(text: str) -> list[CandidateEvent]:
        raise KeyError("boom")

    pipeline, _ = _pipeline(store, _crash)

    result = await pipeline.ingest(subject.id, _doc())

    assert result.syllabus.status is SyllabusStatus.ERROR
    assert result.syllabus.error


@pytest.mark.asyncio
async def test_record_is_processing_while_inference_runs(store: DomainStore) -> None:
    subject = store.add_subject("Calc I")
    started = threading.Event()
    release = threading.Event()

    def _slow(text: str) -> list[CandidateEvent]:
        started.set()
        release.wait(5)
        return [MIDTERM]

    pipeline, _ = _pipeline(store, _slow)
    task = asyncio.create_task(pipeline.ingest(subject.id, _doc()))

    await asyncio.to_thread(started.wait, 5)
    assert store.get_subject(subject.id).syllabi[0].status is SyllabusStatus.PROCESSING
    # The store stays usable while the upload is in flight.
    store.add_subject("History")

    release.set()
    result = await task
    assert result.ok


@pytest.mark.asyncio
async def test_subject_deleted_mid_flight_discards_events(store: DomainStore) -> None:
    subject = store.add_subject("Calc I")
    other = store.add_subject("History")
    started = threading.Event()
    release = threading.Event()

    def _slow(text: str) -> list[CandidateEvent]:
        started.set()
        release.wait(5)
        return [MIDTERM]

    pipeline, notifier = _pipeline(store, _slow)
    task = asyncio.create_task(pipeline.ingest(subject.id, _doc()))

    await asyncio.to_thread(started.wait, 5)
    store.delete_subject(subject.id)
    release.set()
    result = await task

    assert result.discarded
    assert result.events == []
    assert store.list_events() == []
    assert [s.id for s in store.list_subjects()] == [other.id]
    assert notifier.notifications == []


@pytest.mark.asyncio
async def test_rename_mid_flight_stamps_current_name(store: DomainStore) -> None:
    subject = store.add_subject("Calc I")
    started = threading.Event()
    release = threading.Event()

    def _slow(text: str) -> list[CandidateEvent]:
        started.set()
        release.wait(5)
        return [MIDTERM]

    pipeline, _ = _pipeline(store, _slow)
    task = asyncio.create_task(pipeline.ingest(subject.id, _doc()))

    await asyncio.to_thread(started.wait, 5)
    store.rename_subject(subject.id, "Calculus I")
    release.set()
    await task

    assert [e.subject_name for e in store.list_events()] == ["Calculus I"]


@pytest.mark.asyncio
async def test_ingest_many_isolates_failures(store: DomainStore) -> None:
    calc = store.add_subject("Calc I")
    hist = store.add_subject("History")

    def _extract(document: SyllabusDocument) -> str:
        if document.name == "broken.pdf":
            raise ExtractionFailed("Could not read broken.pdf")
        return _decode(document)

    def _infer(text: str) -> list[CandidateEvent]:
        return [CandidateEvent(title=f"Task {len(text)}", date="2024-11-01", category=EventCategory.ASSIGNMENT)]

    pipeline, notifier = _pipeline(store, _infer, extractor=_extract)

    results = await pipeline.ingest_many(
        [
            (calc.id, _doc("a.pdf", "a" * 200)),
            (calc.id, _doc("broken.pdf")),
            (hist.id, _doc("b.pdf", "b" * 300)),
            ("missing", _doc("c.pdf")),
        ],
        max_concurrent=2,
    )

    assert [getattr(r, "ok", None) for r in results[:3]] == [True, False, True]
    assert isinstance(results[3], SubjectNotFound)
    assert sorted(e.title for e in store.list_events()) == ["Task 200", "Task 300"]
    statuses = [s.status for s in store.get_subject(calc.id).syllabi]
    assert sorted(statuses) == sorted([SyllabusStatus.COMPLETED, SyllabusStatus.ERROR])
    assert len(notifier.of_kind(NotificationKind.SUCCESS)) == 2
    assert len(notifier.of_kind(NotificationKind.ERROR)) == 2


@pytest.mark.asyncio
async def test_reupload_creates_a_new_record(store: DomainStore) -> None:
    subject = store.add_subject("Calc I")
    pipeline, _ = _pipeline(store, _returning(MIDTERM))

    await pipeline.ingest(subject.id, _doc(text="short"))
    await pipeline.ingest(subject.id, _doc())

    syllabi = store.get_subject(subject.id).syllabi
    assert [s.status for s in syllabi] == [SyllabusStatus.ERROR, SyllabusStatus.COMPLETED]
    assert syllabi[0].id != syllabi[1].id
