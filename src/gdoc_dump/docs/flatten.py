"""Flatten a structured document into markdown-like text.

Paragraph runs are written in order with no separator between blocks.
Heading paragraphs get ``#`` prefixes derived from their named style.
Lists and tables are not extracted.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import TextIO

from gdoc_dump.docs.exceptions import DocumentSaveError
from gdoc_dump.docs.models import Document

logger = logging.getLogger(__name__)


def flatten_document(document: Document, stream: TextIO) -> None:
    """Write the document's paragraphs to ``stream``, flushing after each block.

    Raises:
        OSError: If a write or flush fails. Remaining blocks are not written.
    """
    for block in document.content:
        if not block.is_paragraph or not block.paragraph.runs:
            continue
        paragraph = block.paragraph

        level = paragraph.heading_level
        if level:
            stream.write("#" * level + " ")

        for run in paragraph.runs:
            stream.write(run.content)

        stream.flush()


def render_document(document: Document) -> str:
    """Return the flattened document as a string."""
    buffer = io.StringIO()
    flatten_document(document, buffer)
    return buffer.getvalue()


def output_path(output_dir: str | Path, document_id: str) -> Path:
    """Path of the flattened file for a document."""
    return Path(output_dir) / document_id


def save_document(document: Document, output_dir: str | Path) -> Path:
    """Flatten ``document`` into ``<output_dir>/<document.id>``.

    The directory is created if needed and an existing file is overwritten.

    Returns:
        Path of the written file.

    Raises:
        DocumentSaveError: If the directory or file cannot be created or written.
    """
    path = output_path(output_dir, document.id)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8", newline="") as f:
            flatten_document(document, f)
    except OSError as e:
        raise DocumentSaveError(document.id, document.title, str(e)) from e

    logger.info(f"Finished processing doc {document.title} {document.id[:10]}...")
    return path
