"""
FastAPI service for the syllabus planner.

Exposes the subject/event store, syllabus uploads and the calendar and
upcoming-list views as REST endpoints. Uploads are processed by the ingestion
pipeline within the request; extraction and inference run in worker threads
so other requests keep being served meanwhile.
"""
from __future__ import annotations

import typing as t
from contextlib import asynccontextmanager
from datetime import date

from fastapi import Depends, FastAPI, File, HTTPException, Query, Request, UploadFile
from fastapi.responses import JSONResponse, Response

from orchestrator.notifications import RecordingNotifier
from orchestrator.pipeline import IngestionPipeline
from planner_server.errors import PlannerError, RecordNotFound
from planner_server.export_ics import render_ics
from planner_server.export_pdf import render_pdf
from planner_server.server import get_store, save_event
from planner_server.store import DomainStore
from planner_server.views import calendar_grid, upcoming_events
from services.shared.models import (
    AcademicEvent,
    CalendarDay,
    CalendarResponse,
    CreateSubjectRequest,
    DeleteSubjectResponse,
    IngestionResponse,
    Notification,
    RenameSubjectRequest,
    SaveEventRequest,
    Subject,
    SyllabusFile,
)
from syllabus_server.models import SyllabusDocument


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load persisted state on startup."""
    get_store()
    yield


app = FastAPI(
    title="Syllabus Planner Service",
    description="REST API for subjects, syllabus uploads and academic deadlines",
    version="1.0.0",
    lifespan=lifespan,
)


def get_pipeline(store: DomainStore = Depends(get_store)) -> IngestionPipeline:
    """One pipeline per request, recording the notifications it emits."""
    return IngestionPipeline(store, RecordingNotifier())


@app.exception_handler(RecordNotFound)
async def _not_found(request: Request, exc: RecordNotFound) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": exc.message})


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "service": "planner-service"}


# -----------------------------
# Subjects
# -----------------------------

@app.get("/subjects", response_model=list[Subject])
async def list_subjects(store: DomainStore = Depends(get_store)) -> list[Subject]:
    return [Subject.from_domain(s) for s in store.list_subjects()]


@app.post("/subjects", response_model=Subject, status_code=201)
async def create_subject(request: CreateSubjectRequest, store: DomainStore = Depends(get_store)) -> Subject:
    return Subject.from_domain(store.add_subject(request.name))


@app.patch("/subjects/{subject_id}", response_model=Subject)
async def rename_subject(
    subject_id: str,
    request: RenameSubjectRequest,
    store: DomainStore = Depends(get_store),
) -> Subject:
    """Rename a subject. Its events pick up the new name."""
    return Subject.from_domain(store.rename_subject(subject_id, request.name))


@app.delete("/subjects/{subject_id}", response_model=DeleteSubjectResponse)
async def delete_subject(subject_id: str, store: DomainStore = Depends(get_store)) -> DeleteSubjectResponse:
    """Delete a subject and all of its events."""
    return DeleteSubjectResponse(deleted_events=store.delete_subject(subject_id))


@app.post("/subjects/{subject_id}/syllabi", response_model=IngestionResponse)
async def upload_syllabus(
    subject_id: str,
    file: UploadFile = File(...),
    pipeline: IngestionPipeline = Depends(get_pipeline),
) -> IngestionResponse:
    """
    Upload a syllabus PDF and extract its events into the subject.

    Processing failures are reported in the returned syllabus record and
    notifications; only a missing subject is an HTTP error.
    """
    document = SyllabusDocument(name=file.filename or "syllabus.pdf", content=await file.read())
    result = await pipeline.ingest(subject_id, document)
    notifier = t.cast(RecordingNotifier, pipeline.notifier)
    return IngestionResponse(
        syllabus=SyllabusFile.from_domain(result.syllabus),
        events=[AcademicEvent.from_domain(e) for e in result.events],
        discarded=result.discarded,
        notifications=[Notification(kind=n.kind.value, message=n.message) for n in notifier.notifications],
    )


# -----------------------------
# Events
# -----------------------------

@app.get("/events", response_model=list[AcademicEvent])
async def list_events(store: DomainStore = Depends(get_store)) -> list[AcademicEvent]:
    return [AcademicEvent.from_domain(e) for e in store.list_events()]


def _save(store: DomainStore, request: SaveEventRequest, event_id: t.Optional[str] = None) -> AcademicEvent:
    try:
        event = save_event(store, request.subject_id, request.title, request.date, request.category, event_id)
    except RecordNotFound as e:
        # The subject is part of the body, not the path.
        raise HTTPException(status_code=422, detail=e.message)
    except (PlannerError, ValueError) as e:
        raise HTTPException(status_code=422, detail=str(e))
    return AcademicEvent.from_domain(event)


@app.post("/events", response_model=AcademicEvent, status_code=201)
async def create_event(request: SaveEventRequest, store: DomainStore = Depends(get_store)) -> AcademicEvent:
    return _save(store, request)


@app.put("/events/{event_id}", response_model=AcademicEvent)
async def put_event(
    event_id: str,
    request: SaveEventRequest,
    store: DomainStore = Depends(get_store),
) -> AcademicEvent:
    """Create or replace the event with this id."""
    return _save(store, request, event_id)


@app.delete("/events/{event_id}", status_code=204)
async def delete_event(event_id: str, store: DomainStore = Depends(get_store)) -> Response:
    """Delete an event. Unknown ids are ignored."""
    store.delete_event(event_id)
    return Response(status_code=204)


# -----------------------------
# Views
# -----------------------------

@app.get("/calendar", response_model=CalendarResponse)
async def get_calendar(
    month: t.Optional[str] = Query(None, pattern=r"^\d{4}-\d{2}$", description="Month as YYYY-MM"),
    store: DomainStore = Depends(get_store),
) -> CalendarResponse:
    """Month grid of full Sunday-to-Saturday weeks with the events of each day."""
    try:
        anchor = date.fromisoformat(f"{month}-01") if month else date.today().replace(day=1)
    except ValueError:
        raise HTTPException(status_code=422, detail=f"Invalid month: {month}")
    days = calendar_grid(store.list_events(), anchor)
    return CalendarResponse(
        month=anchor.strftime("%Y-%m"),
        days=[CalendarDay.from_domain(d) for d in days],
    )


@app.get("/upcoming", response_model=list[AcademicEvent])
async def get_upcoming(store: DomainStore = Depends(get_store)) -> list[AcademicEvent]:
    """Events due today or later, earliest first."""
    return [AcademicEvent.from_domain(e) for e in upcoming_events(store.list_events())]


@app.get("/export.ics")
async def export_ics(store: DomainStore = Depends(get_store)) -> Response:
    return Response(
        content=render_ics(store.list_events()),
        media_type="text/calendar; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="syllabus_planner_export.ics"'},
    )


@app.get("/export.pdf")
async def export_pdf(store: DomainStore = Depends(get_store)) -> Response:
    """Upcoming deadlines as a PDF report."""
    today = date.today()
    return Response(
        content=render_pdf(store.list_events(), today),
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="syllabus_planner_upcoming_{today.isoformat()}.pdf"'},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
