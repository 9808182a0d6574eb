from __future__ import annotations

import json
import logging
import os
import typing as t
from datetime import date
from functools import lru_cache

from fastmcp import FastMCP
from openai import OpenAI

from orchestrator.config import get_settings
from planner_server.errors import InferenceFailed
from planner_server.models import EventCategory, parse_event_date
from prompts import load_prompt
from .models import CandidateEvent
from .pdf_utils import extract_pdf_pages


logger = logging.getLogger(__name__)

mcp = FastMCP("SyllabusServer")

INFERENCE_FAILED_MESSAGE = "The syllabus could not be processed. Please try again."


@lru_cache(maxsize=1)
def get_openai_client() -> OpenAI:
    """Get OpenAI client with API key."""
    api_key = os.getenv("OPENAI_API_KEY")
    if not api_key:
        raise RuntimeError("OPENAI_API_KEY environment variable is not set.")
    return OpenAI(api_key=api_key)


# -----------------------------
# SYSTEM PROMPT
# -----------------------------

SYSTEM_PROMPT = load_prompt("event_extraction_system_prompt")


def _parse_candidates(data: t.Any) -> list[CandidateEvent]:
    """Convert the model's JSON into candidates, skipping rows without a usable date."""
    if isinstance(data, dict):
        rows = data.get("events", []) or []
    elif isinstance(data, list):
        rows = data
    else:
        raise ValueError(f"Unexpected response shape: {type(data).__name__}")

    candidates: list[CandidateEvent] = []
    for row in rows:
        if not isinstance(row, dict):
            continue
        title = str(row.get("title", "") or "").strip()
        if not title:
            continue
        try:
            day = parse_event_date(row.get("date"))
        except ValueError:
            logger.warning("Skipping event %r with invalid date %r", title, row.get("date"))
            continue
        candidates.append(
            CandidateEvent(
                title=title,
                date=day,
                # older prompts used "type" for the category
                category=EventCategory.parse(row.get("category", row.get("type"))),
            )
        )
    return candidates


def infer_events(
        text: str,
        client: t.Optional[OpenAI] = None,
        model: t.Optional[str] = None,
) -> list[CandidateEvent]:
    """
    Ask the LLM for the academic events contained in a syllabus text.

    :param text: Plain syllabus text.
    :param client: OpenAI client; defaults to one built from ``OPENAI_API_KEY``.
    :param model: Model name; defaults to the configured one.
    :return: Candidate events, possibly empty.
    :raises InferenceFailed: On any backend or response-format error.
    """
    settings = get_settings()
    model_input = {
        "current_year": date.today().year,
        "syllabus_text": text[:settings.max_text_chars],
    }
    try:
        client = client or get_openai_client()
        completion = client.chat.completions.create(
            model=model or settings.openai_model,
            response_format={"type": "json_object"},
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": json.dumps(model_input)},
            ],
        )
        raw = completion.choices[0].message.content or "{}"
        return _parse_candidates(json.loads(raw))
    except Exception as e:
        logger.exception("Event inference failed")
        raise InferenceFailed(INFERENCE_FAILED_MESSAGE) from e


# -----------------------------
# MCP Tool Implementation
# -----------------------------

@mcp.tool()
def extract_events_from_syllabus(pdf_path_or_url: str) -> list[CandidateEvent]:
    """
    Extract the dated academic events (exams, assignments, readings, projects)
    from a syllabus PDF/URL.
    """
    pages = extract_pdf_pages(pdf_path_or_url)
    return infer_events("\n\n".join(pages))


if __name__ == "__main__":
    # Run as an MCP server over stdio
    mcp.run()
