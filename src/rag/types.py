from __future__ import annotations

"""Core data types for documents, chunks and the conversation log."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _new_id() -> str:
    return uuid.uuid4().hex


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Document:
    """Loaded document text with a display name."""
    doc_id: str
    name: str
    content: str
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Chunk:
    """Overlapping window of document text used as a retrieval unit."""
    text: str
    chunk_id: str = field(default_factory=_new_id)
    embedding: tuple[float, ...] = ()


@dataclass(frozen=True)
class ScoredChunk:
    """Chunk paired with its keyword overlap score and original position."""
    chunk: Chunk
    score: int
    position: int


@dataclass(frozen=True)
class ChatMessage:
    """Single entry in the conversation log."""
    content: str
    is_user: bool
    message_id: str = field(default_factory=_new_id)
    created_at: datetime = field(default_factory=_utcnow)

    def as_dict(self) -> dict[str, Any]:
        return {
            "message_id": self.message_id,
            "content": self.content,
            "is_user": self.is_user,
            "created_at": self.created_at.isoformat(),
        }
