from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    chunk_size: int = int(os.getenv("RAG_CHUNK_SIZE", "2000"))
    chunk_overlap: int = int(os.getenv("RAG_CHUNK_OVERLAP", "200"))
    top_k: int = int(os.getenv("RAG_TOP_K", "5"))
    max_context_chars: int = int(os.getenv("RAG_MAX_CONTEXT_CHARS", "12000"))
    speech_min_first_chars: int = int(os.getenv("SPEECH_MIN_FIRST_CHARS", "30"))
    speech_min_continuation_chars: int = int(os.getenv("SPEECH_MIN_CONTINUATION_CHARS", "20"))
    file_max_bytes: int = int(os.getenv("RAG_FILE_MAX_BYTES", "26214400"))
    llm_provider_raw: str = os.getenv("RAG_LLM_PROVIDER", "extractive")
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    ollama_model: str = os.getenv("OLLAMA_MODEL", "llama3.1:8b")
    ollama_temperature: float = float(os.getenv("OLLAMA_TEMPERATURE", "0.1"))
    ollama_max_tokens: int = int(os.getenv("OLLAMA_MAX_TOKENS", "512"))
    ollama_timeout: float = float(os.getenv("OLLAMA_TIMEOUT", "60"))
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    openai_base_url: str = os.getenv("OPENAI_BASE_URL", "https://api.openai.com/v1")
    openai_chat_model: str | None = os.getenv("OPENAI_CHAT_MODEL")
    gemini_api_key: str | None = os.getenv("GEMINI_API_KEY")
    gemini_chat_model: str | None = os.getenv("GEMINI_CHAT_MODEL")
    extractive_max_sentences: int = int(os.getenv("RAG_EXTRACTIVE_MAX_SENTENCES", "2"))
    tts_backend_raw: str = os.getenv("TTS_BACKEND", "log")
    tts_command: str = os.getenv("TTS_COMMAND", "espeak")
    tts_seconds_per_word: float = float(os.getenv("TTS_SECONDS_PER_WORD", "0"))
    stt_enabled: bool = os.getenv("STT_ENABLED", "true").lower() in {"1", "true", "yes"}
    metrics_enabled: bool = os.getenv("RAG_METRICS_ENABLED", "true").lower() in {"1", "true", "yes"}
    log_level: str = os.getenv("RAG_LOG_LEVEL", "INFO")
    api_keys_raw: str = os.getenv("RAG_API_KEYS", "")

    @property
    def api_keys(self) -> set[str]:
        raw = os.getenv("RAG_API_KEYS", self.api_keys_raw)
        return {value.strip() for value in raw.split(",") if value.strip()}

    @property
    def llm_provider(self) -> str:
        return os.getenv("RAG_LLM_PROVIDER", self.llm_provider_raw)

    @property
    def tts_backend(self) -> str:
        return os.getenv("TTS_BACKEND", self.tts_backend_raw)


settings = Settings()
