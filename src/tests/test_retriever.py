from __future__ import annotations

"""Keyword retrieval and context assembly tests."""

from src.rag.retriever import (
    CHUNK_SEPARATOR,
    NO_CONTENT,
    has_content,
    rank_chunks,
    select_context,
    tokenize_question,
)
from src.rag.types import Chunk


def _chunks(*texts: str) -> list[Chunk]:
    return [Chunk(text=text) for text in texts]


def test_tokenize_keeps_alphanumeric_runs_longer_than_two() -> None:
    assert tokenize_question("What is the Q4 revenue, in 2023?") == ["what", "the", "revenue", "2023"]


def test_rank_counts_distinct_tokens_case_insensitively() -> None:
    chunks = _chunks("Revenue grew.", "REVENUE and profit rose; revenue again.", "Nothing here.")

    ranked = rank_chunks("revenue profit revenue", chunks)

    assert [item.score for item in ranked] == [2, 1, 0]
    assert ranked[0].chunk is chunks[1]


def test_rank_is_stable_for_ties() -> None:
    chunks = _chunks("apple one", "apple two", "apple three")

    ranked = rank_chunks("apple", chunks)

    assert [item.position for item in ranked] == [0, 1, 2]


def test_select_context_joins_top_k_best_first() -> None:
    chunks = _chunks("cats purr", "dogs bark loudly", "birds sing", "dogs dig")

    context = select_context("why do dogs bark", chunks, "full text", top_k=2)

    assert context == "dogs bark loudly" + CHUNK_SEPARATOR + "dogs dig"


def test_select_context_caps_length() -> None:
    chunks = _chunks("alpha " * 50, "alpha beta " * 50)

    context = select_context("alpha", chunks, "text", top_k=2, max_context_chars=40)

    assert len(context) == 40


def test_no_keyword_match_falls_back_to_leading_chunks() -> None:
    chunks = _chunks(*[f"section {index}" for index in range(12)])

    context = select_context("zebra", chunks, "text", top_k=2)

    assert context == CHUNK_SEPARATOR.join(f"section {index}" for index in range(4))


def test_no_chunks_uses_document_prefix() -> None:
    context = select_context("anything", [], "abcdefghij", max_context_chars=4)

    assert context == "abcd"
    assert has_content(context)


def test_nothing_to_read_returns_sentinel() -> None:
    context = select_context("anything", [], "")

    assert context == NO_CONTENT
    assert not has_content(context)


def test_missing_document_text_uses_first_ten_chunks() -> None:
    chunks = _chunks(*[f"c{index}" for index in range(15)])

    context = select_context("c3", chunks, "")

    assert context == CHUNK_SEPARATOR.join(f"c{index}" for index in range(10))


def test_blank_question_still_returns_context() -> None:
    chunks = _chunks("first", "second")

    assert select_context("", chunks, "first second") == "first" + CHUNK_SEPARATOR + "second"
