from __future__ import annotations

"""Chunking behavior tests."""

import pytest

from src.loaders.chunking import build_chunks, chunk_text


def test_empty_text_yields_no_chunks() -> None:
    assert chunk_text("", chunk_size=10, overlap=2) == []


def test_short_text_is_single_trimmed_chunk() -> None:
    assert chunk_text("  hello world  ", chunk_size=100, overlap=10) == ["hello world"]


def test_windows_overlap_by_configured_amount() -> None:
    text = "abcdefghijklmnopqrstuvwxyz"

    chunks = chunk_text(text, chunk_size=10, overlap=3)

    assert chunks == ["abcdefghij", "hijklmnopq", "opqrstuvwx", "vwxyz"]
    for previous, current in zip(chunks, chunks[1:]):
        assert previous[-3:] == current[:3]


def test_every_character_is_covered() -> None:
    text = "".join(f"{index:04d}" for index in range(260))

    chunks = chunk_text(text, chunk_size=100, overlap=17)

    covered: set[int] = set()
    for index, chunk in enumerate(chunks):
        start = index * 83
        assert chunk == text[start : start + 100]
        covered.update(range(start, start + len(chunk)))
    assert covered == set(range(len(text)))


def test_whitespace_only_windows_are_dropped() -> None:
    text = "alpha" + " " * 30 + "omega"

    chunks = chunk_text(text, chunk_size=10, overlap=0)

    assert chunks == ["alpha", "omega"]
    assert all(chunk == chunk.strip() and chunk for chunk in chunks)


def test_zero_overlap_tiles_text() -> None:
    assert chunk_text("aaaabbbbcc", chunk_size=4, overlap=0) == ["aaaa", "bbbb", "cc"]


@pytest.mark.parametrize(
    ("chunk_size", "overlap"),
    [(0, 0), (10, -1), (10, 10), (5, 8)],
)
def test_invalid_arguments_raise(chunk_size: int, overlap: int) -> None:
    with pytest.raises(ValueError):
        chunk_text("some text", chunk_size=chunk_size, overlap=overlap)


def test_chunking_terminates_with_large_overlap() -> None:
    text = "x" * 500

    chunks = chunk_text(text, chunk_size=10, overlap=9)

    assert len(chunks) == 491
    assert all(len(chunk) == 10 for chunk in chunks)


def test_build_chunks_assigns_unique_ids_and_empty_embeddings() -> None:
    chunks = build_chunks("word " * 100, chunk_size=50, overlap=5)

    assert len(chunks) > 1
    assert len({chunk.chunk_id for chunk in chunks}) == len(chunks)
    assert all(chunk.embedding == () for chunk in chunks)
