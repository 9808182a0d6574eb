# -*- coding: utf-8 -*-
import io
import typing as t
from pathlib import Path

import pdfplumber
import requests

from planner_server.errors import ExtractionFailed
from .models import SyllabusDocument


def _load_pdf_source(path_or_url: str) -> t.Union[str, t.BinaryIO]:
    """
    Resolves a local path or a URL to something pdfplumber can open.
    Remote PDFs are kept in memory, never written to disk.
    :param path_or_url: A local file path or a URL to a PDF file.
    :return: The local file path, or the downloaded bytes as a stream.
    """
    if path_or_url.startswith('http://') or path_or_url.startswith('https://'):
        response = requests.get(path_or_url, timeout=60)
        response.raise_for_status()
        return io.BytesIO(response.content)
    else:
        path = Path(path_or_url)
        if not path.is_file():
            raise FileNotFoundError(f"File not found: {path}")
        return str(path)


def _read_pages(source: t.Union[str, t.BinaryIO]) -> list[str]:
    pages: list[str] = []
    with pdfplumber.open(source) as pdf:
        for page in pdf.pages:
            text = page.extract_text()
            if text:
                pages.append(text.strip())
    return pages


def extract_pdf_pages(path_or_url: str) -> list[str]:
    """
    Extracts text from a local or remote PDF.
    Simple, blocking, good enough for a single upload.
    :param path_or_url: A local file path or a URL to a PDF file.
    :return: The text of each page that has any.
    """
    return _read_pages(_load_pdf_source(path_or_url))


def extract_pdf_pages_from_content(content: bytes) -> list[str]:
    """
    Extracts text from PDF bytes already in memory (e.g. an HTTP upload).
    :param content: Raw PDF bytes.
    :return: The text of each page that has any.
    """
    return _read_pages(io.BytesIO(content))


def extract_pdf_text(document: SyllabusDocument) -> str:
    """
    Extracts the plain text of an uploaded syllabus.
    :param document: The uploaded syllabus.
    :return: All page texts joined by blank lines ("" for an image-only PDF).
    :raises ExtractionFailed: If the bytes cannot be read as a PDF.
    """
    try:
        pages = extract_pdf_pages_from_content(document.content)
    except Exception as e:
        raise ExtractionFailed(
            f'Could not read "{document.name}". Make sure it is a valid PDF file.'
        ) from e
    return "\n\n".join(pages)
