from __future__ import annotations

"""Character-based chunking with a fixed overlap window."""

from src.rag.types import Chunk


def chunk_text(text: str, chunk_size: int = 2000, overlap: int = 200) -> list[str]:
    """Split text into overlapping character windows, trimming each window."""
    if chunk_size <= 0:
        raise ValueError("chunk_size must be a positive integer")
    if overlap < 0:
        raise ValueError("overlap must be a non-negative integer")
    if overlap >= chunk_size:
        raise ValueError("overlap must be smaller than chunk_size")
    if not text:
        return []

    chunks: list[str] = []
    start = 0
    length = len(text)
    while start < length:
        end = min(length, start + chunk_size)
        chunk = text[start:end].strip()
        if chunk:
            chunks.append(chunk)
        if end >= length:
            break
        next_start = end - overlap
        if next_start <= start:
            next_start = start + 1
        start = next_start
    return chunks


def build_chunks(text: str, chunk_size: int = 2000, overlap: int = 200) -> list[Chunk]:
    """Chunk text into Chunk records with fresh identifiers."""
    return [Chunk(text=value) for value in chunk_text(text, chunk_size=chunk_size, overlap=overlap)]
