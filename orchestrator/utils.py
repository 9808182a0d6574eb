"""Utility functions for the command line interface."""
import typing as t
from pathlib import Path

import click


def expand_pdf_paths(paths: t.Iterable[str]) -> list[str]:
    """Expand directories into the PDF files they contain.

    Files are kept as given; directories contribute their ``*.pdf`` files in
    name order. A file named twice is only returned once.

    Raises:
        click.UsageError: If a path does not exist or a directory holds no PDF.
    """
    pdf_files: list[str] = []
    seen: set[Path] = set()

    def _add(path: Path) -> None:
        key = path.resolve()
        if key not in seen:
            seen.add(key)
            pdf_files.append(str(path))

    for path_str in paths:
        path = Path(path_str)

        if path.is_file():
            _add(path)
        elif path.is_dir():
            pdfs_in_dir = sorted(p for p in path.iterdir() if p.suffix.lower() == ".pdf")
            if not pdfs_in_dir:
                raise click.UsageError(f"Directory '{path_str}' contains no PDF files.")
            for pdf in pdfs_in_dir:
                _add(pdf)
        else:
            raise click.UsageError(f"Path '{path_str}' does not exist.")

    return pdf_files
