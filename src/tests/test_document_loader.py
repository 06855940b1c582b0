from __future__ import annotations

"""Document loading for text and PDF sources."""

from pathlib import Path

import fitz
import pytest

from src.loaders.document import DocumentLoadError, read_document, read_document_file
from src.loaders.pdf import _clean_page_text


def _pdf_bytes(*pages: str) -> bytes:
    pdf = fitz.open()
    for text in pages:
        page = pdf.new_page()
        if text:
            page.insert_text((72, 72), text)
    data = pdf.tobytes()
    pdf.close()
    return data


def test_read_text_bytes() -> None:
    """Ensure UTF-8 text uploads load verbatim."""
    document = read_document("notes.txt", "Café opens at nine.".encode("utf-8"))

    assert document.name == "notes.txt"
    assert document.content == "Café opens at nine."
    assert document.metadata["source_type"] == "text"


def test_read_pdf_bytes_joins_pages_with_text() -> None:
    """Ensure blank pages are skipped and text pages are kept in order."""
    document = read_document("report.pdf", _pdf_bytes("The sky is blue.", "", "The grass is green."))

    assert "The sky is blue." in document.content
    assert "The grass is green." in document.content
    assert document.content.index("sky") < document.content.index("grass")
    assert document.metadata["source_type"] == "pdf"


def test_pdf_without_text_is_rejected() -> None:
    with pytest.raises(DocumentLoadError, match="no extractable text"):
        read_document("scan.pdf", _pdf_bytes("", ""))


def test_corrupt_pdf_is_rejected() -> None:
    with pytest.raises(DocumentLoadError):
        read_document("broken.pdf", b"not a pdf at all")


def test_unsupported_extension_is_rejected() -> None:
    with pytest.raises(DocumentLoadError, match="Unsupported file type"):
        read_document("slides.pptx", b"data")


def test_read_document_file(tmp_path: Path) -> None:
    path = tmp_path / "guide.md"
    path.write_text("# Guide\n\nPress the red button.", encoding="utf-8")

    document = read_document_file(path)

    assert document.name == "guide.md"
    assert "red button" in document.content


def test_missing_file_raises_load_error(tmp_path: Path) -> None:
    with pytest.raises(DocumentLoadError):
        read_document_file(tmp_path / "absent.txt")


def test_clean_page_text_rejoins_hyphenated_words() -> None:
    assert _clean_page_text("infor-\nmation\r\nnext") == "information\nnext"
