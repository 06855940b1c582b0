from __future__ import annotations

"""Keyword-overlap retrieval over the chunks of the loaded document."""

import logging
import re
from typing import Sequence

from src.rag.types import Chunk, ScoredChunk

logger = logging.getLogger(__name__)

NO_CONTENT = "No document content available. Please select and index a document first."
CHUNK_SEPARATOR = "\n\n---\n\n"
INCONSISTENT_FALLBACK_CHUNKS = 10
MIN_TOKEN_LENGTH = 3

_TOKEN_RE = re.compile(r"[^\W_]+")


def has_content(context: str) -> bool:
    """Return False for blank context or the no-content sentinel."""
    return bool(context.strip()) and context != NO_CONTENT


def tokenize_question(question: str) -> list[str]:
    """Lowercase alphanumeric runs longer than two characters, in order."""
    return [token for token in _TOKEN_RE.findall(question.lower()) if len(token) >= MIN_TOKEN_LENGTH]


def rank_chunks(question: str, chunks: Sequence[Chunk]) -> list[ScoredChunk]:
    """Score chunks by distinct question tokens they contain, best first.

    Ties keep the original chunk order.
    """
    tokens = set(tokenize_question(question))
    scored: list[ScoredChunk] = []
    for position, chunk in enumerate(chunks):
        text = chunk.text.lower()
        score = sum(1 for token in tokens if token in text)
        scored.append(ScoredChunk(chunk=chunk, score=score, position=position))
    scored.sort(key=lambda item: item.score, reverse=True)
    return scored


def _join(texts: Sequence[str], max_chars: int) -> str:
    return CHUNK_SEPARATOR.join(texts)[:max_chars]


def select_context(
    question: str,
    chunks: Sequence[Chunk],
    document_text: str,
    top_k: int = 5,
    max_context_chars: int = 12000,
) -> str:
    """Build the bounded context string sent along with a question.

    Returns NO_CONTENT when neither chunks nor document text exist.
    """
    if not chunks:
        if not document_text:
            logger.warning("retrieval_no_content")
            return NO_CONTENT
        logger.info("retrieval_fallback", extra={"reason": "no_chunks"})
        return document_text[:max_context_chars]

    if not document_text:
        logger.warning("retrieval_fallback", extra={"reason": "empty_document_text"})
        head = chunks[:INCONSISTENT_FALLBACK_CHUNKS]
        return _join([chunk.text for chunk in head], max_context_chars)

    ranked = rank_chunks(question, chunks)
    selected = ranked[:top_k]
    best_score = selected[0].score if selected else 0
    logger.debug(
        "retrieval_scores",
        extra={"top_scores": [item.score for item in selected]},
    )
    if best_score == 0:
        logger.info(
            "retrieval_fallback",
            extra={"reason": "no_keyword_match", "chunks": min(len(chunks), top_k * 2)},
        )
        return _join([chunk.text for chunk in chunks[: top_k * 2]], max_context_chars)

    context = _join([item.chunk.text for item in selected], max_context_chars)
    logger.info(
        "retrieval_complete",
        extra={
            "results": len(selected),
            "best_score": best_score,
            "context_length": len(context),
        },
    )
    return context
