from __future__ import annotations

from functools import lru_cache

from src.app.settings import settings
from src.rag.llm import AnswerStreamer, build_llm_streamer
from src.rag.session import SessionOrchestrator
from src.speech.stt import DisabledTranscriber, PushTranscriber
from src.speech.tts import CommandSynthesizer, LoggingSynthesizer, SpeechQueue, TTSError


@lru_cache
def get_session() -> SessionOrchestrator:
    return SessionOrchestrator(
        streamer=build_streamer(),
        speaker=build_speaker(),
        transcriber=get_transcriber(),
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
        top_k=settings.top_k,
        max_context_chars=settings.max_context_chars,
        min_first_chars=settings.speech_min_first_chars,
        min_continuation_chars=settings.speech_min_continuation_chars,
    )


@lru_cache
def get_transcriber() -> PushTranscriber | DisabledTranscriber:
    if not settings.stt_enabled:
        return DisabledTranscriber()
    return PushTranscriber()


def reset_session_cache() -> None:
    get_session.cache_clear()
    get_transcriber.cache_clear()


def build_streamer() -> AnswerStreamer:
    return build_llm_streamer(
        settings.llm_provider,
        api_key_openai=settings.openai_api_key,
        api_key_gemini=settings.gemini_api_key,
        openai_base_url=settings.openai_base_url,
        openai_model=settings.openai_chat_model,
        gemini_model=settings.gemini_chat_model,
        ollama_base_url=settings.ollama_base_url,
        ollama_model=settings.ollama_model,
        temperature=settings.ollama_temperature,
        max_tokens=settings.ollama_max_tokens,
        timeout=settings.ollama_timeout,
        extractive_max_sentences=settings.extractive_max_sentences,
    )


def build_speaker() -> SpeechQueue:
    backend = settings.tts_backend.lower().strip()
    if backend in {"log", "none", "text"}:
        return SpeechQueue(LoggingSynthesizer(seconds_per_word=settings.tts_seconds_per_word))
    if backend == "command":
        return SpeechQueue(CommandSynthesizer(command=settings.tts_command))
    raise TTSError(f"Unsupported TTS backend: {backend}")
