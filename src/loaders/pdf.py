from __future__ import annotations

"""PDF page text extraction."""

import logging
import re
from pathlib import Path

from src.rag.types import Document

logger = logging.getLogger(__name__)


class PDFLoaderError(RuntimeError):
    """Raised when PDF loading fails."""
    pass


_HYPHEN_BREAK_RE = re.compile(r"(\w)-\n(\w)")


def _clean_page_text(text: str) -> str:
    """Normalize line endings and rejoin words hyphenated across lines."""
    cleaned = text.replace("\r\n", "\n")
    return _HYPHEN_BREAK_RE.sub(r"\1\2", cleaned)


def _extract_pages(reader) -> str:
    """Join the text of every page that has any, one page per line block."""
    parts: list[str] = []
    page_count = 0
    for index, page in enumerate(reader, start=1):
        page_count += 1
        text = page.get_text() or ""
        if not text.strip():
            logger.info("pdf_page_without_text", extra={"page": index})
            continue
        parts.append(_clean_page_text(text))
    logger.info(
        "pdf_extracted",
        extra={"pages": page_count, "pages_with_text": len(parts)},
    )
    content = "\n".join(parts)
    if not content.strip():
        raise PDFLoaderError(
            "PDF appears to be image-based or has no extractable text. "
            "Please use a PDF with selectable text."
        )
    return content


def load_pdf_file(path: Path, doc_id: str | None = None) -> Document:
    """Load a PDF from disk and return a Document."""
    try:
        import fitz
    except ImportError as exc:
        raise PDFLoaderError("PyMuPDF is required to load PDF files") from exc

    try:
        reader = fitz.open(str(path))
    except Exception as exc:
        raise PDFLoaderError("Failed to open PDF document") from exc
    with reader:
        content = _extract_pages(reader)
    return Document(
        doc_id=doc_id or path.stem,
        name=path.name,
        content=content,
        metadata={"source": str(path), "source_type": "pdf"},
    )


def load_pdf_bytes(data: bytes, doc_id: str, name: str) -> Document:
    """Load a PDF from bytes and return a Document."""
    try:
        import fitz
    except ImportError as exc:
        raise PDFLoaderError("PyMuPDF is required to load PDF files") from exc

    try:
        reader = fitz.open(stream=data, filetype="pdf")
    except Exception as exc:
        raise PDFLoaderError("Failed to open PDF document") from exc
    with reader:
        content = _extract_pages(reader)
    return Document(
        doc_id=doc_id,
        name=name,
        content=content,
        metadata={"source": name, "source_type": "pdf"},
    )
