from __future__ import annotations

"""Question lifecycle: retrieval, prompting, answer streaming and speech."""

import asyncio
import logging
import time
import uuid
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from src.app.metrics import QUESTION_LATENCY, QUESTIONS, SPEECH_SEGMENTS, STREAM_FRAGMENTS
from src.loaders.chunking import build_chunks
from src.rag.assembler import AnswerAssembler
from src.rag.llm import AnswerStreamer, LLMError
from src.rag.prompt import build_prompt, prompt_limit
from src.rag.retriever import has_content, select_context
from src.rag.types import Chunk, ChatMessage, Document
from src.speech.dispatcher import SpeechDispatcher
from src.speech.stt import DisabledTranscriber, SpeechToText
from src.speech.tts import TextToSpeech

logger = logging.getLogger(__name__)

NO_DOCUMENT_MESSAGE = "No document has been indexed yet. Please select a document first."
EMPTY_QUESTION_MESSAGE = "Please enter a question."
EMPTY_DOCUMENT_MESSAGE = (
    "Warning: The document appears to be empty or could not be read. "
    "Please try a different document."
)

TERMINAL_EVENTS = frozenset({"completed", "failed", "cancelled", "rejected"})


class SessionState(str, Enum):
    IDLE = "idle"
    RETRIEVING = "retrieving"
    PROMPTING = "prompting"
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    ERROR = "error"


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of the session handed to observers."""
    state: SessionState
    question_id: str | None
    answer_so_far: str
    spoken_length: int
    speech_started: bool
    document_name: str | None
    chunk_count: int
    message_count: int
    listening: bool
    transcript: str

    def as_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data


@dataclass(frozen=True)
class SessionEvent:
    """Notification published to subscribers after every session mutation."""
    kind: str
    question_id: str | None
    snapshot: SessionSnapshot
    message: ChatMessage | None = None

    @property
    def terminal(self) -> bool:
        return self.kind in TERMINAL_EVENTS

    def as_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "question_id": self.question_id,
            "snapshot": self.snapshot.as_dict(),
            "message": self.message.as_dict() if self.message else None,
        }


@dataclass(frozen=True)
class PendingQuestion:
    """Handle on a question submitted for background answering."""
    question_id: str
    task: asyncio.Task


class Subscription:
    """Async iterator over session events; close it when done."""

    def __init__(self, owner: SessionOrchestrator) -> None:
        self._owner = owner
        self._queue: asyncio.Queue[SessionEvent] = asyncio.Queue()

    def put(self, event: SessionEvent) -> None:
        self._queue.put_nowait(event)

    async def get(self) -> SessionEvent:
        return await self._queue.get()

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> SessionEvent:
        return await self._queue.get()

    @property
    def closed(self) -> bool:
        return self not in self._owner._subscribers

    def close(self) -> None:
        self._owner._subscribers.discard(self)

    def __enter__(self) -> Subscription:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class SessionOrchestrator:
    """Single owner of the document, conversation log and streaming session.

    All mutation happens on the event loop that runs the orchestrator, so
    fragment handling, speech dispatch and observers never interleave.
    """

    def __init__(
        self,
        streamer: AnswerStreamer,
        speaker: TextToSpeech,
        transcriber: SpeechToText | None = None,
        *,
        chunk_size: int = 2000,
        chunk_overlap: int = 200,
        top_k: int = 5,
        max_context_chars: int = 12000,
        min_first_chars: int = 30,
        min_continuation_chars: int = 20,
    ) -> None:
        self._streamer = streamer
        self._speaker = speaker
        self._transcriber = transcriber or DisabledTranscriber()
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self.top_k = top_k
        self.max_context_chars = max_context_chars
        self._dispatcher = SpeechDispatcher(
            speaker,
            min_first_chars=min_first_chars,
            min_continuation_chars=min_continuation_chars,
        )
        self._assembler = AnswerAssembler()
        self._document: Document | None = None
        self._chunks: tuple[Chunk, ...] = ()
        self._messages: list[ChatMessage] = []
        self._state = SessionState.IDLE
        self._question_id: str | None = None
        self._task: asyncio.Task | None = None
        self._submit_lock = asyncio.Lock()
        self._subscribers: set[Subscription] = set()
        self._listening = False
        self._transcript = ""

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def document(self) -> Document | None:
        return self._document

    @property
    def chunks(self) -> tuple[Chunk, ...]:
        return self._chunks

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def dispatcher(self) -> SpeechDispatcher:
        return self._dispatcher

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            question_id=self._question_id,
            answer_so_far=self._assembler.text,
            spoken_length=self._dispatcher.spoken_length,
            speech_started=self._dispatcher.speech_started,
            document_name=self._document.name if self._document else None,
            chunk_count=len(self._chunks),
            message_count=len(self._messages),
            listening=self._listening,
            transcript=self._transcript,
        )

    def subscribe(self) -> Subscription:
        subscription = Subscription(self)
        self._subscribers.add(subscription)
        return subscription

    def load_document(self, document: Document) -> int:
        """Replace the current document and rebuild its chunks."""
        self._document = document
        if not document.content.strip():
            self._chunks = ()
            logger.warning("document_empty", extra={"document_name": document.name})
            self._notice(EMPTY_DOCUMENT_MESSAGE)
            return 0
        self._chunks = tuple(
            build_chunks(document.content, chunk_size=self.chunk_size, overlap=self.chunk_overlap)
        )
        logger.info(
            "document_indexed",
            extra={
                "document_name": document.name,
                "content_length": len(document.content),
                "chunk_count": len(self._chunks),
            },
        )
        self._publish("document")
        return len(self._chunks)

    def load_text(self, name: str, text: str) -> int:
        """Index raw text as the current document."""
        document = Document(doc_id=uuid.uuid4().hex, name=name, content=text)
        return self.load_document(document)

    async def reset_document(self) -> None:
        """Drop the document, its chunks and the conversation log."""
        await self.cancel()
        self._document = None
        self._chunks = ()
        self._messages.clear()
        self._publish("reset")

    def clear_messages(self) -> None:
        self._messages.clear()
        self._publish("cleared")

    async def submit(self, question: str) -> PendingQuestion:
        """Cancel any in-flight question and answer this one in the background."""
        async with self._submit_lock:
            await self.cancel()
            question_id = uuid.uuid4().hex
            task = asyncio.get_running_loop().create_task(
                self.ask_question(question, question_id=question_id)
            )
            self._task = task
            return PendingQuestion(question_id=question_id, task=task)

    async def cancel(self) -> bool:
        """Cancel the in-flight question, if any, and wait for its cleanup."""
        task = self._task
        if task is None or task.done() or task is asyncio.current_task():
            return False
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)
        return True

    async def ask_question(self, question: str, question_id: str | None = None) -> ChatMessage:
        """Answer one question: retrieve, prompt, stream, speak and record."""
        current = asyncio.current_task()
        while self._task is not None and self._task is not current:
            # Another caller may claim the session while this one awaits.
            if not await self.cancel():
                break
        self._task = current
        question_id = question_id or uuid.uuid4().hex
        text = question.strip()
        if not text:
            if self._task is current:
                self._task = None
            return self._reject(question_id, EMPTY_QUESTION_MESSAGE)

        started = time.monotonic()
        outcome = "completed"
        self._question_id = question_id
        self._append(ChatMessage(content=question, is_user=True))
        logger.info("question_started", extra={"question_id": question_id, "question_length": len(text)})
        try:
            self._set_state(SessionState.RETRIEVING)
            document_text = self._document.content if self._document else ""
            context = select_context(
                question,
                self._chunks,
                document_text,
                top_k=self.top_k,
                max_context_chars=self.max_context_chars,
            )
            if not has_content(context):
                outcome = "rejected"
                return self._reject(question_id, NO_DOCUMENT_MESSAGE)

            self._set_state(SessionState.PROMPTING)
            prompt = build_prompt(context, question, prompt_limit(self.max_context_chars))

            self._assembler.reset()
            self._dispatcher.reset(stop_speech=True)
            self._set_state(SessionState.STREAMING)
            self._publish("started")
            try:
                await self._consume(prompt)
            except Exception as exc:
                outcome = "failed"
                return self._fail(question_id, exc)

            self._set_state(SessionState.FINALIZING)
            answer = self._assembler.text
            if self._dispatcher.finish(answer) is not None:
                SPEECH_SEGMENTS.labels("final").inc()
            message = ChatMessage(content=answer, is_user=False)
            self._append(message)
            logger.info(
                "question_completed",
                extra={"question_id": question_id, "answer_length": len(answer)},
            )
            self._publish("completed", message)
            return message
        except asyncio.CancelledError:
            outcome = "cancelled"
            self._keep_partial()
            self._dispatcher.reset(stop_speech=True)
            logger.info("question_cancelled", extra={"question_id": question_id})
            self._publish("cancelled")
            raise
        finally:
            self._assembler.reset()
            self._dispatcher.reset(stop_speech=False)
            self._state = SessionState.IDLE
            self._question_id = None
            if self._task is current:
                self._task = None
            QUESTIONS.labels(outcome).inc()
            QUESTION_LATENCY.observe(time.monotonic() - started)
            self._publish("idle")

    async def start_listening(self) -> bool:
        """Begin voice capture; returns False when speech input is unavailable."""
        try:
            authorized = await self._transcriber.authorize()
        except Exception as exc:
            logger.warning("speech_authorization_failed", extra={"detail": type(exc).__name__})
            authorized = False
        if not authorized:
            logger.warning("speech_authorization_denied")
            return False
        self._transcript = ""
        self._listening = True
        try:
            await self._transcriber.start(self._on_transcript)
        except Exception as exc:
            self._listening = False
            logger.warning("speech_capture_failed", extra={"detail": type(exc).__name__})
            return False
        self._publish("listening")
        return True

    async def stop_listening(self) -> PendingQuestion | None:
        """Stop voice capture and submit a non-blank transcript as a question."""
        try:
            await self._transcriber.stop()
        except Exception as exc:
            logger.warning("speech_stop_failed", extra={"detail": type(exc).__name__})
        was_listening = self._listening
        self._listening = False
        transcript, self._transcript = self._transcript, ""
        if was_listening:
            self._publish("listening")
        if not transcript.strip():
            return None
        return await self.submit(transcript)

    def _on_transcript(self, text: str) -> None:
        if not self._listening:
            return
        self._transcript = text
        self._publish("transcript")

    async def _consume(self, prompt: str) -> None:
        fragments = self._streamer.stream(prompt)
        try:
            async for fragment in fragments:
                answer = self._assembler.feed(fragment)
                STREAM_FRAGMENTS.inc()
                first = not self._dispatcher.speech_started
                if self._dispatcher.observe(answer) is not None:
                    SPEECH_SEGMENTS.labels("first" if first else "continuation").inc()
                self._publish("fragment")
        finally:
            # Plain async iterators have nothing to close.
            aclose = getattr(fragments, "aclose", None)
            if aclose is not None:
                await aclose()

    def _fail(self, question_id: str, exc: Exception) -> ChatMessage:
        self._set_state(SessionState.ERROR)
        if isinstance(exc, LLMError):
            logger.error("question_failed", extra={"question_id": question_id, "detail": str(exc)})
        else:
            logger.exception("question_failed", extra={"question_id": question_id})
        self._keep_partial()
        message = ChatMessage(content=f"Agent error: {exc}", is_user=False)
        self._append(message)
        self._publish("failed", message)
        return message

    def _reject(self, question_id: str, notice: str) -> ChatMessage:
        logger.info("question_rejected", extra={"question_id": question_id, "detail": notice})
        message = ChatMessage(content=notice, is_user=False)
        self._append(message)
        self._publish("rejected", message, question_id=question_id)
        return message

    def _keep_partial(self) -> None:
        partial = self._assembler.text
        if partial.strip():
            self._append(ChatMessage(content=partial, is_user=False))

    def _notice(self, text: str) -> None:
        message = ChatMessage(content=text, is_user=False)
        self._append(message)
        self._publish("notice", message)

    def _append(self, message: ChatMessage) -> None:
        self._messages.append(message)

    def _set_state(self, state: SessionState) -> None:
        self._state = state
        logger.debug("session_state", extra={"state": state.value, "question_id": self._question_id})

    def _publish(
        self,
        kind: str,
        message: ChatMessage | None = None,
        question_id: str | None = None,
    ) -> None:
        event = SessionEvent(
            kind=kind,
            question_id=question_id or self._question_id,
            snapshot=self.snapshot(),
            message=message,
        )
        for subscription in list(self._subscribers):
            subscription.put(event)
