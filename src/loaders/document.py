from __future__ import annotations

"""Document source: pick a loader by file extension."""

import logging
import uuid
from pathlib import Path

from src.loaders.pdf import PDFLoaderError, load_pdf_bytes, load_pdf_file
from src.loaders.text import load_text_bytes, load_text_file
from src.rag.types import Document

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".txt", ".text", ".md", ".markdown"}
PDF_SUFFIXES = {".pdf"}


class DocumentLoadError(RuntimeError):
    """Raised when a document cannot be read or yields no text."""
    pass


def _doc_id(name: str) -> str:
    return f"{Path(name).stem or 'document'}-{uuid.uuid4().hex[:8]}"


def read_document(name: str, data: bytes) -> Document:
    """Load uploaded bytes into a Document based on the file name."""
    suffix = Path(name).suffix.lower()
    try:
        if suffix in PDF_SUFFIXES:
            document = load_pdf_bytes(data, doc_id=_doc_id(name), name=name)
        elif suffix in TEXT_SUFFIXES or not suffix:
            document = load_text_bytes(data, doc_id=_doc_id(name), name=name)
        else:
            raise DocumentLoadError(f"Unsupported file type: {suffix}")
    except PDFLoaderError as exc:
        raise DocumentLoadError(str(exc)) from exc
    logger.info(
        "document_read",
        extra={"document_name": name, "content_length": len(document.content)},
    )
    return document


def read_document_file(path: Path) -> Document:
    """Load a document from disk based on its extension."""
    suffix = path.suffix.lower()
    try:
        if suffix in PDF_SUFFIXES:
            return load_pdf_file(path)
        if suffix in TEXT_SUFFIXES or not suffix:
            return load_text_file(path)
    except PDFLoaderError as exc:
        raise DocumentLoadError(str(exc)) from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise DocumentLoadError(f"Failed to read {path.name}: {exc}") from exc
    raise DocumentLoadError(f"Unsupported file type: {suffix}")
