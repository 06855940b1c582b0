from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class AskRequest(BaseModel):
    question: str


class TextDocumentRequest(BaseModel):
    name: str = Field(default="pasted-text.txt", min_length=1)
    content: str


class DocumentResponse(BaseModel):
    name: str
    content_length: int
    chunk_count: int
    request_id: str


class TranscriptRequest(BaseModel):
    text: str


class TranscriptResponse(BaseModel):
    accepted: bool


class VoiceStartResponse(BaseModel):
    listening: bool
    detail: str | None = None


class VoiceStopResponse(BaseModel):
    submitted: bool
    question_id: str | None = None


class CancelResponse(BaseModel):
    cancelled: bool


class MessageItem(BaseModel):
    message_id: str
    content: str
    is_user: bool
    created_at: str


class MessagesResponse(BaseModel):
    messages: list[MessageItem]


class SessionResponse(BaseModel):
    state: str
    question_id: str | None = None
    answer_so_far: str
    spoken_length: int
    speech_started: bool
    document_name: str | None = None
    chunk_count: int
    message_count: int
    listening: bool
    transcript: str

    @classmethod
    def from_snapshot(cls, data: dict[str, Any]) -> SessionResponse:
        return cls(**data)
