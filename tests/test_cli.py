"""Tests for the command line interface."""
import functools

import pytest
from click.testing import CliRunner

import orchestrator.run as run
from orchestrator.pipeline import IngestionPipeline
from planner_server.models import EventCategory, SyllabusStatus
from planner_server.server import get_store
from syllabus_server.models import CandidateEvent


@pytest.fixture
def runner(monkeypatch, tmp_path) -> CliRunner:
    monkeypatch.setenv("PLANNER_DATA_DIR", str(tmp_path / "data"))
    return CliRunner()


def _invoke(runner: CliRunner, *args: str, **kwargs):
    result = runner.invoke(run.main, list(args), **kwargs)
    return result


def _add_subject(runner: CliRunner, name: str = "Calc I") -> str:
    result = _invoke(runner, "subjects", "add", name)
    assert result.exit_code == 0, result.output
    return next(s.id for s in get_store().list_subjects() if s.name == name)


def test_help_lists_commands(runner: CliRunner) -> None:
    result = _invoke(runner, "--help")

    assert result.exit_code == 0
    for command in ("subjects", "upload", "events", "calendar", "upcoming", "export"):
        assert command in result.output


def test_subject_rename_and_delete(runner: CliRunner) -> None:
    subject_id = _add_subject(runner)
    _invoke(runner, "events", "add", subject_id, "Midterm", "2030-10-15", "--category", "Exam")

    renamed = _invoke(runner, "subjects", "rename", subject_id, "Calculus")
    assert renamed.exit_code == 0
    assert [e.subject_name for e in get_store().list_events()] == ["Calculus"]

    deleted = _invoke(runner, "subjects", "delete", subject_id, "--yes")
    assert deleted.exit_code == 0
    assert "1 event(s)" in deleted.output
    assert get_store().list_subjects() == []
    assert get_store().list_events() == []


def test_stale_subject_reference_is_not_fatal(runner: CliRunner) -> None:
    assert _invoke(runner, "subjects", "rename", "nope", "X").exit_code == 0
    assert _invoke(runner, "subjects", "delete", "nope", "--yes").exit_code == 0


def test_delete_asks_for_confirmation(runner: CliRunner) -> None:
    subject_id = _add_subject(runner)

    result = _invoke(runner, "subjects", "delete", subject_id, input="n\n")

    assert result.exit_code != 0
    assert get_store().get_subject(subject_id) is not None


def test_event_add_validates_input(runner: CliRunner) -> None:
    subject_id = _add_subject(runner)

    bad_date = _invoke(runner, "events", "add", subject_id, "Essay", "2030-02-30")
    bad_subject = _invoke(runner, "events", "add", "nope", "Essay", "2030-02-01")

    assert bad_date.exit_code == 1
    assert bad_subject.exit_code == 1
    assert get_store().list_events() == []


def test_event_edit_and_delete(runner: CliRunner) -> None:
    subject_id = _add_subject(runner)
    _invoke(runner, "events", "add", subject_id, "Essay", "2030-11-02")
    event_id = get_store().list_events()[0].id

    edited = _invoke(runner, "events", "edit", event_id, "--title", "Essay final", "--category", "Project")
    assert edited.exit_code == 0
    event = get_store().get_event(event_id)
    assert (event.title, event.date, event.category) == ("Essay final", "2030-11-02", EventCategory.PROJECT)

    assert _invoke(runner, "events", "delete", event_id).exit_code == 0
    assert get_store().list_events() == []


def test_upcoming_and_calendar(runner: CliRunner) -> None:
    subject_id = _add_subject(runner)
    _invoke(runner, "events", "add", subject_id, "Quiz", "2030-10-15", "-c", "Exam")
    _invoke(runner, "events", "add", subject_id, "Old", "2000-01-01")

    upcoming = _invoke(runner, "upcoming")
    calendar = _invoke(runner, "calendar", "--month", "2030-10")
    bad_month = _invoke(runner, "calendar", "--month", "October")

    assert upcoming.exit_code == 0
    assert "Quiz" in upcoming.output and "Old" not in upcoming.output
    assert calendar.exit_code == 0
    assert "Quiz" in calendar.output
    assert bad_month.exit_code == 2


def test_export_writes_ics(runner: CliRunner, tmp_path) -> None:
    subject_id = _add_subject(runner)
    _invoke(runner, "events", "add", subject_id, "Quiz", "2030-10-15")
    out = tmp_path / "out.ics"

    result = _invoke(runner, "export", str(out))

    assert result.exit_code == 0
    assert "SUMMARY:Quiz (Calc I)" in out.read_text(encoding="utf-8")


def test_upload_ingests_each_pdf(runner: CliRunner, monkeypatch, tmp_path) -> None:
    subject_id = _add_subject(runner)
    docs = tmp_path / "syllabi"
    docs.mkdir()
    (docs / "a.pdf").write_text("midterm " * 50, encoding="utf-8")
    (docs / "b.pdf").write_text("scan", encoding="utf-8")
    (docs / "notes.txt").write_text("ignored", encoding="utf-8")

    monkeypatch.setattr(run, "IngestionPipeline", functools.partial(
        IngestionPipeline,
        extractor=lambda document: document.content.decode("utf-8"),
        inferrer=lambda text: [CandidateEvent(title="Midterm", date="2030-10-15", category=EventCategory.EXAM)],
        min_text_length=100,
    ))

    result = _invoke(runner, "upload", subject_id, str(docs))

    assert result.exit_code == 0, result.output
    syllabi = get_store().get_subject(subject_id).syllabi
    assert sorted((s.name, s.status) for s in syllabi) == [
        ("a.pdf", SyllabusStatus.COMPLETED),
        ("b.pdf", SyllabusStatus.ERROR),
    ]
    assert [e.title for e in get_store().list_events()] == ["Midterm"]


def test_upload_to_missing_subject_fails(runner: CliRunner, tmp_path) -> None:
    pdf = tmp_path / "a.pdf"
    pdf.write_bytes(b"%PDF")

    result = _invoke(runner, "upload", "nope", str(pdf))

    assert result.exit_code == 1
    assert "Subject not found" in result.output


def test_export_pdf_writes_report(runner: CliRunner, tmp_path) -> None:
    subject_id = _add_subject(runner)
    _invoke(runner, "events", "add", subject_id, "Quiz", "2030-10-15")
    _invoke(runner, "events", "add", subject_id, "Old", "2000-01-01")
    out = tmp_path / "upcoming.pdf"

    result = _invoke(runner, "export-pdf", str(out))

    assert result.exit_code == 0, result.output
    assert "1 upcoming event(s)" in result.output
    assert out.read_bytes().startswith(b"%PDF")
