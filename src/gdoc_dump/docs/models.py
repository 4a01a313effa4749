"""Structured document content as returned by the Docs v1 API."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

HEADING_MARKER = "HEADING_"


def heading_level(named_style_type: str | None) -> int | None:
    """Parse the heading level out of a named style such as ``HEADING_2``.

    Returns None for ``NORMAL_TEXT``, ``TITLE``, a missing style, or a
    marker without a positive decimal suffix.
    """
    if not named_style_type:
        return None

    idx = named_style_type.find(HEADING_MARKER)
    if idx < 0:
        return None

    suffix = named_style_type[idx + len(HEADING_MARKER) :]
    if not (suffix.isascii() and suffix.isdigit()):
        return None

    level = int(suffix)
    return level if level > 0 else None


@dataclass
class TextRun:
    """A literal run of text inside a paragraph."""

    content: str


@dataclass
class Paragraph:
    """A paragraph with its named style and text runs."""

    runs: list[TextRun] = field(default_factory=list)
    named_style_type: str | None = None

    @property
    def heading_level(self) -> int | None:
        return heading_level(self.named_style_type)

    @property
    def text(self) -> str:
        return "".join(run.content for run in self.runs)


@dataclass
class StructuralElement:
    """One block of the document body.

    ``kind`` is the API field that was present (``paragraph``, ``table``,
    ``sectionBreak``, ``tableOfContents``). Only paragraphs carry content here.
    """

    kind: str
    paragraph: Paragraph | None = None

    @property
    def is_paragraph(self) -> bool:
        return self.paragraph is not None


@dataclass
class Document:
    """Represents a Google Doc."""

    id: str
    title: str
    content: list[StructuralElement] = field(default_factory=list)
    revision_id: str | None = None

    @property
    def paragraphs(self) -> list[Paragraph]:
        return [block.paragraph for block in self.content if block.paragraph is not None]


_BLOCK_KINDS = ("paragraph", "table", "sectionBreak", "tableOfContents")


def _parse_paragraph(data: dict[str, Any]) -> Paragraph:
    runs = [
        TextRun(content=element["textRun"].get("content", ""))
        for element in data.get("elements") or []
        if "textRun" in element
    ]
    style = data.get("paragraphStyle") or {}
    return Paragraph(runs=runs, named_style_type=style.get("namedStyleType"))


def _parse_block(data: dict[str, Any]) -> StructuralElement:
    kind = next((key for key in _BLOCK_KINDS if key in data), "unknown")
    if kind == "paragraph":
        return StructuralElement(kind=kind, paragraph=_parse_paragraph(data["paragraph"]))
    return StructuralElement(kind=kind)


def parse_document(data: dict[str, Any], document_id: str | None = None) -> Document:
    """Parse a ``documents.get`` response into a Document.

    Args:
        data: Raw API response.
        document_id: Fallback id when the response omits ``documentId``.
    """
    content = (data.get("body") or {}).get("content") or []
    return Document(
        id=data.get("documentId") or document_id or "",
        title=data.get("title", ""),
        content=[_parse_block(block) for block in content],
        revision_id=data.get("revisionId"),
    )
