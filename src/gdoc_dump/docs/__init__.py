"""Google Docs fetching and flattening.

Usage:
    from gdoc_dump.docs import DocsClient, save_document

    client = DocsClient()
    doc = client.get_document("1AbC...")
    save_document(doc, "doc")  # writes doc/1AbC...
"""

from __future__ import annotations

from gdoc_dump.docs.client import DocsClient
from gdoc_dump.docs.exceptions import DocsError, DocumentFetchError, DocumentSaveError
from gdoc_dump.docs.flatten import flatten_document, render_document, save_document
from gdoc_dump.docs.models import (
    Document,
    Paragraph,
    StructuralElement,
    TextRun,
    heading_level,
    parse_document,
)

__all__ = [
    "DocsClient",
    "DocsError",
    "Document",
    "DocumentFetchError",
    "DocumentSaveError",
    "Paragraph",
    "StructuralElement",
    "TextRun",
    "flatten_document",
    "heading_level",
    "parse_document",
    "render_document",
    "save_document",
]
