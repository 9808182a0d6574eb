"""Ingestion pipeline: one uploaded syllabus in, zero or more academic events out.

For each document the pipeline registers a syllabus record as ``processing``,
extracts the text, asks the inference backend for events, stamps them with
the subject and appends them to the store in one batch. Every run ends with
exactly one terminal status on its record (``completed`` or ``error``) and one
notification. Extraction and inference run in worker threads so several
uploads can be processed at once while the store stays usable.
"""
import asyncio
import logging
import typing as t
from dataclasses import dataclass, field

from orchestrator.config import get_settings
from orchestrator.notifications import NotificationKind, Notifier
from planner_server.errors import IngestionError, RecordNotFound, SubjectNotFound, UnreadableDocument
from planner_server.models import AcademicEvent, SyllabusFile, SyllabusStatus, make_event
from planner_server.store import DomainStore
from syllabus_server.models import CandidateEvent, SyllabusDocument
from syllabus_server.pdf_utils import extract_pdf_text
from syllabus_server.server import infer_events

logger = logging.getLogger(__name__)

Extractor = t.Callable[[SyllabusDocument], str]
Inferrer = t.Callable[[str], list[CandidateEvent]]

UNREADABLE_MESSAGE = (
    "This PDF appears to be image-based and cannot be read. "
    "Please upload the original PDF."
)
UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."


@dataclass
class IngestionResult:
    """Outcome of one ingestion.

    ``discarded`` is true when the subject was deleted while the document was
    being processed, in which case nothing was written.
    """
    syllabus: SyllabusFile
    events: list[AcademicEvent] = field(default_factory=list)
    discarded: bool = False

    @property
    def ok(self) -> bool:
        return self.syllabus.status is SyllabusStatus.COMPLETED


class IngestionPipeline:
    """Runs syllabus ingestions against a store.

    :param store: The domain store receiving records and events.
    :param notifier: Sink for the user-facing outcome messages.
    :param extractor: Document -> plain text. Defaults to the pdfplumber extractor.
    :param inferrer: Text -> candidate events. Defaults to the OpenAI backend.
    :param min_text_length: Texts shorter than this are treated as unreadable.
    """

    def __init__(
        self,
        store: DomainStore,
        notifier: Notifier,
        extractor: Extractor = extract_pdf_text,
        inferrer: Inferrer = infer_events,
        min_text_length: t.Optional[int] = None,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.extractor = extractor
        self.inferrer = inferrer
        self.min_text_length = (
            min_text_length if min_text_length is not None else get_settings().min_text_length
        )

    async def ingest(self, subject_id: str, document: SyllabusDocument) -> IngestionResult:
        """Process one document for one subject.

        :raises SubjectNotFound: If the subject does not exist when called.
            Failures after that point are recorded on the syllabus record
            and notified, never raised.
        """
        subject = self.store.get_subject(subject_id)
        if subject is None:
            error = SubjectNotFound(f"Subject not found: {subject_id}")
            self.notifier.notify(NotificationKind.ERROR, error.message)
            raise error

        syllabus = self.store.add_syllabus_record(subject_id, document.name, SyllabusStatus.PROCESSING)
        logger.info("Processing %s for %s (record %s)", document.name, subject.name, syllabus.id)

        try:
            text = await asyncio.to_thread(self.extractor, document)
            if len(text) < self.min_text_length:
                raise UnreadableDocument(UNREADABLE_MESSAGE)

            candidates = await asyncio.to_thread(self.inferrer, text)

            # Stamp with the subject as it is now, not as it was at upload time.
            current = self.store.get_subject(subject_id)
            if current is None:
                return self._discard(subject_id, syllabus, document, len(candidates))
            events = [make_event(current, c.title, c.date, c.category) for c in candidates]

            if not self.store.append_events(subject_id, events):
                return self._discard(subject_id, syllabus, document, len(events))
        except Exception as e:
            message = e.message if isinstance(e, IngestionError) else (str(e) or UNKNOWN_ERROR_MESSAGE)
            if isinstance(e, IngestionError):
                logger.warning("Ingestion of %s failed: %s", document.name, message)
            else:
                logger.exception("Ingestion of %s failed", document.name)
            return self._fail(subject_id, syllabus, message)

        syllabus = self._settle(subject_id, syllabus, SyllabusStatus.COMPLETED)
        if events:
            self.notifier.notify(
                NotificationKind.SUCCESS,
                f'Extracted {len(events)} events from "{document.name}" successfully.',
            )
        else:
            self.notifier.notify(
                NotificationKind.INFO,
                f'Done! No clear academic events were found in "{document.name}".',
            )
        return IngestionResult(syllabus=syllabus, events=events)

    async def ingest_many(
        self,
        items: t.Iterable[tuple[str, SyllabusDocument]],
        max_concurrent: t.Optional[int] = None,
    ) -> list[t.Union[IngestionResult, SubjectNotFound]]:
        """Ingest several documents concurrently.

        Results come back in input order. A missing subject yields its
        ``SubjectNotFound`` in place of a result instead of aborting the batch.
        """
        if max_concurrent is None:
            max_concurrent = get_settings().max_concurrent_uploads
        semaphore = asyncio.Semaphore(max_concurrent) if max_concurrent else None

        async def _run(subject_id: str, document: SyllabusDocument) -> t.Union[IngestionResult, SubjectNotFound]:
            if semaphore:
                await semaphore.acquire()
            try:
                return await self.ingest(subject_id, document)
            except SubjectNotFound as e:
                return e
            finally:
                if semaphore:
                    semaphore.release()

        return list(await asyncio.gather(*(_run(sid, doc) for sid, doc in items)))

    # -----------------------------
    # Terminal states
    # -----------------------------

    def _settle(
        self,
        subject_id: str,
        syllabus: SyllabusFile,
        status: SyllabusStatus,
        error: t.Optional[str] = None,
    ) -> SyllabusFile:
        try:
            return self.store.update_syllabus_status(subject_id, syllabus.id, status, error)
        except RecordNotFound:
            # Subject deleted mid-flight; there is no record left to update.
            syllabus.status = status
            syllabus.error = error
            return syllabus

    def _fail(self, subject_id: str, syllabus: SyllabusFile, message: str) -> IngestionResult:
        syllabus = self._settle(subject_id, syllabus, SyllabusStatus.ERROR, message)
        self.notifier.notify(NotificationKind.ERROR, message)
        return IngestionResult(syllabus=syllabus)

    def _discard(
        self,
        subject_id: str,
        syllabus: SyllabusFile,
        document: SyllabusDocument,
        found: int,
    ) -> IngestionResult:
        logger.info("Subject %s was deleted; discarding %d event(s) from %s", subject_id, found, document.name)
        syllabus = self._settle(subject_id, syllabus, SyllabusStatus.COMPLETED)
        return IngestionResult(syllabus=syllabus, discarded=True)
