from __future__ import annotations

"""FastAPI application entrypoint for the voice document Q&A service."""

import json
import logging
import uuid
from typing import AsyncIterator

from fastapi import Depends, FastAPI, File, HTTPException, Request, UploadFile
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from src.app.dependencies import get_session, get_transcriber
from src.app.metrics import metrics_middleware, metrics_response
from src.app.schemas import (
    AskRequest,
    CancelResponse,
    DocumentResponse,
    MessageItem,
    MessagesResponse,
    SessionResponse,
    TextDocumentRequest,
    TranscriptRequest,
    TranscriptResponse,
    VoiceStartResponse,
    VoiceStopResponse,
)
from src.app.security import require_api_key
from src.app.settings import settings
from src.loaders.document import DocumentLoadError, read_document
from src.rag.session import SessionOrchestrator, Subscription
from src.speech.stt import PushTranscriber

logger = logging.getLogger(__name__)

app = FastAPI(title="Voice Document Q&A", version="0.1.0")

NDJSON_MEDIA_TYPE = "application/x-ndjson"


def _configure_logging() -> None:
    """Configure root logging using environment settings."""
    level_name = settings.log_level.strip().upper()
    level = getattr(logging, level_name, logging.INFO)
    root_logger = logging.getLogger()
    if not root_logger.handlers:
        logging.basicConfig(
            level=level,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
    logger.setLevel(level)


_configure_logging()


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", str(uuid.uuid4()))


async def _read_upload_bytes(upload: UploadFile, max_bytes: int | None) -> bytes:
    """Stream upload bytes with a hard size limit."""
    if not max_bytes or max_bytes <= 0:
        return await upload.read()
    buffer = bytearray()
    while True:
        chunk = await upload.read(65536)
        if not chunk:
            break
        buffer.extend(chunk)
        if len(buffer) > max_bytes:
            raise HTTPException(
                status_code=400,
                detail=f"File exceeds maximum size of {max_bytes} bytes",
            )
    return bytes(buffer)


def _document_response(session: SessionOrchestrator, chunk_count: int, request: Request) -> DocumentResponse:
    document = session.document
    assert document is not None
    return DocumentResponse(
        name=document.name,
        content_length=len(document.content),
        chunk_count=chunk_count,
        request_id=_request_id(request),
    )


async def _question_events(subscription: Subscription, question_id: str) -> AsyncIterator[str]:
    """Serialize one question's events as NDJSON until a terminal event."""
    with subscription:
        async for event in subscription:
            if event.question_id != question_id:
                continue
            yield json.dumps(event.as_dict()) + "\n"
            if event.terminal:
                break


def _question_response(subscription: Subscription, question_id: str) -> StreamingResponse:
    """Stream one question's events; the subscription is closed even if streaming never starts."""
    return StreamingResponse(
        _question_events(subscription, question_id),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"X-Question-ID": question_id},
        background=BackgroundTask(subscription.close),
    )


@app.middleware("http")
async def add_request_id(request: Request, call_next):
    """Attach or create a request ID for traceability."""
    request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    """Capture request metrics before returning the response."""
    return await metrics_middleware(request, call_next)


@app.get("/metrics")
async def metrics():
    """Expose Prometheus-style metrics."""
    return metrics_response()


@app.get("/health")
async def health() -> dict[str, str]:
    """Simple health probe for uptime checks."""
    return {"status": "ok"}


@app.post("/documents", response_model=DocumentResponse)
async def upload_document(
    http_request: Request,
    file: UploadFile = File(...),
    _: str | None = Depends(require_api_key),
) -> DocumentResponse:
    """Replace the current document with an uploaded text or PDF file."""
    filename = file.filename or "upload.txt"
    data = await _read_upload_bytes(file, settings.file_max_bytes)
    try:
        document = read_document(filename, data)
    except DocumentLoadError as exc:
        logger.warning("document_rejected", extra={"document_name": filename, "detail": str(exc)})
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    session = get_session()
    await session.cancel()
    chunk_count = session.load_document(document)
    return _document_response(session, chunk_count, http_request)


@app.post("/documents/text", response_model=DocumentResponse)
async def upload_text(
    request: TextDocumentRequest,
    http_request: Request,
    _: str | None = Depends(require_api_key),
) -> DocumentResponse:
    """Replace the current document with raw text."""
    session = get_session()
    await session.cancel()
    chunk_count = session.load_text(request.name, request.content)
    return _document_response(session, chunk_count, http_request)


@app.delete("/documents", response_model=SessionResponse)
async def reset_document(_: str | None = Depends(require_api_key)) -> SessionResponse:
    """Drop the document and the conversation log."""
    session = get_session()
    await session.reset_document()
    return SessionResponse.from_snapshot(session.snapshot().as_dict())


@app.post("/ask")
async def ask(
    request: AskRequest,
    http_request: Request,
    _: str | None = Depends(require_api_key),
) -> StreamingResponse:
    """Ask a question and stream its session events as NDJSON."""
    session = get_session()
    pending = await session.submit(request.question)
    # The task has not run yet, so no event for it can be missed.
    subscription = session.subscribe()
    logger.info(
        "ask_submitted",
        extra={"question_id": pending.question_id, "request_id": _request_id(http_request)},
    )
    return _question_response(subscription, pending.question_id)


@app.post("/ask/cancel", response_model=CancelResponse)
async def cancel_question(_: str | None = Depends(require_api_key)) -> CancelResponse:
    """Cancel the in-flight question and silence its speech."""
    cancelled = await get_session().cancel()
    return CancelResponse(cancelled=cancelled)


@app.get("/session", response_model=SessionResponse)
async def session_state(_: str | None = Depends(require_api_key)) -> SessionResponse:
    """Return the current session snapshot."""
    return SessionResponse.from_snapshot(get_session().snapshot().as_dict())


@app.get("/messages", response_model=MessagesResponse)
async def list_messages(_: str | None = Depends(require_api_key)) -> MessagesResponse:
    """Return the conversation log in order."""
    items = [MessageItem(**message.as_dict()) for message in get_session().messages]
    return MessagesResponse(messages=items)


@app.delete("/messages", response_model=MessagesResponse)
async def clear_messages(_: str | None = Depends(require_api_key)) -> MessagesResponse:
    """Clear the conversation log, keeping the document."""
    get_session().clear_messages()
    return MessagesResponse(messages=[])


@app.post("/voice/start", response_model=VoiceStartResponse)
async def voice_start(_: str | None = Depends(require_api_key)) -> VoiceStartResponse:
    """Start collecting a spoken question."""
    listening = await get_session().start_listening()
    if not listening:
        return VoiceStartResponse(listening=False, detail="Speech recognition is not available")
    return VoiceStartResponse(listening=True)


@app.post("/voice/transcript", response_model=TranscriptResponse)
async def voice_transcript(
    request: TranscriptRequest,
    _: str | None = Depends(require_api_key),
) -> TranscriptResponse:
    """Push the latest transcript of the spoken question."""
    transcriber = get_transcriber()
    if not isinstance(transcriber, PushTranscriber):
        return TranscriptResponse(accepted=False)
    return TranscriptResponse(accepted=transcriber.push(request.text))


@app.post("/voice/stop", response_model=VoiceStopResponse)
async def voice_stop(_: str | None = Depends(require_api_key)) -> VoiceStopResponse:
    """Stop listening and ask the transcript, if any, as a question."""
    pending = await get_session().stop_listening()
    if pending is None:
        return VoiceStopResponse(submitted=False)
    return VoiceStopResponse(submitted=True, question_id=pending.question_id)
