from __future__ import annotations

"""Streaming model backends that turn a prompt into answer fragments."""

from dataclasses import dataclass, field
import asyncio
import json
import logging
import re
from typing import AsyncIterator, Protocol

import httpx

from src.rag.prompt import PROMPT_PREAMBLE
from src.rag.retriever import CHUNK_SEPARATOR, tokenize_question


class LLMError(RuntimeError):
    """Raised when LLM requests fail or responses are invalid."""
    pass


logger = logging.getLogger(__name__)

NOT_FOUND_ANSWER = "I could not find information about that in the document."

_CONTEXT_MARKER = PROMPT_PREAMBLE.rsplit("\n\n", 1)[-1]
_QUESTION_MARKER = "\n\nQuestion: "
_ANSWER_MARKER = "\n\nAnswer:"
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")
_WORD_RE = re.compile(r"\S+\s*")
_SSE_DONE = "[DONE]"


class AnswerStreamer(Protocol):
    """Backend that streams a textual answer for a prompt."""

    def stream(self, prompt: str) -> AsyncIterator[str]:
        ...


def _parse_json_line(line: str) -> dict[str, object]:
    """Parse one JSON object from a streamed line."""
    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        raise LLMError("Streamed line is not valid JSON") from exc
    if not isinstance(data, dict):
        raise LLMError("Streamed line is not a JSON object")
    return data


@dataclass(frozen=True)
class OllamaStreamer:
    """Streamer backed by the Ollama chat API (newline-delimited JSON)."""
    base_url: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float
    transport: httpx.AsyncBaseTransport | None = field(default=None, compare=False, repr=False)

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        """Yield incremental message content as Ollama produces it."""
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "stream": True,
            "options": {
                "temperature": self.temperature,
                "num_predict": self.max_tokens,
            },
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                async with client.stream("POST", f"{self.base_url}/api/chat", json=payload) as response:
                    response.raise_for_status()
                    async for line in response.aiter_lines():
                        if not line.strip():
                            continue
                        data = _parse_json_line(line)
                        error = data.get("error")
                        if error:
                            raise LLMError(str(error))
                        message = data.get("message") or {}
                        content = message.get("content") if isinstance(message, dict) else None
                        if isinstance(content, str) and content:
                            yield content
                        if data.get("done"):
                            break
        except httpx.HTTPError as exc:
            raise LLMError(str(exc)) from exc


@dataclass(frozen=True)
class OpenAIStreamer:
    """Streamer backed by OpenAI-compatible chat completions (server-sent events)."""
    api_key: str
    base_url: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float
    transport: httpx.AsyncBaseTransport | None = field(default=None, compare=False, repr=False)

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        """Yield delta content from each streamed completion chunk."""
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": True,
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Accept": "text/event-stream"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                async with client.stream(
                    "POST",
                    f"{self.base_url}/chat/completions",
                    json=payload,
                    headers=headers,
                ) as response:
                    response.raise_for_status()
                    async for line in response.aiter_lines():
                        line = line.strip()
                        if not line.startswith("data:"):
                            continue
                        body = line[5:].strip()
                        if body == _SSE_DONE:
                            break
                        data = _parse_json_line(body)
                        choices = data.get("choices") or []
                        if not isinstance(choices, list) or not choices:
                            continue
                        delta = choices[0].get("delta") or {}
                        content = delta.get("content")
                        if isinstance(content, str) and content:
                            yield content
        except httpx.HTTPError as exc:
            raise LLMError(str(exc)) from exc


@dataclass(frozen=True)
class GeminiStreamer:
    """Streamer backed by Gemini generative models."""
    api_key: str
    model: str
    temperature: float
    max_tokens: int
    timeout: float

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        """Yield text parts of a streamed Gemini response."""
        try:
            import google.generativeai as genai
        except ImportError as exc:
            raise LLMError("google-generativeai is required for GeminiStreamer") from exc

        def _start():
            genai.configure(api_key=self.api_key)
            model = genai.GenerativeModel(self.model)
            response = model.generate_content(
                prompt,
                generation_config={
                    "temperature": self.temperature,
                    "max_output_tokens": self.max_tokens,
                },
                stream=True,
            )
            return iter(response)

        finished = object()
        try:
            parts = await asyncio.wait_for(asyncio.to_thread(_start), timeout=self.timeout)
            while True:
                part = await asyncio.wait_for(
                    asyncio.to_thread(next, parts, finished), timeout=self.timeout
                )
                if part is finished:
                    break
                text = getattr(part, "text", "") or ""
                if text:
                    yield text
        except LLMError:
            raise
        except Exception as exc:
            raise LLMError(str(exc)) from exc


def split_prompt(prompt: str) -> tuple[str, str]:
    """Recover the context and question from a prompt built by build_prompt."""
    question_at = prompt.rfind(_QUESTION_MARKER)
    if question_at == -1:
        return prompt, ""
    head = prompt[:question_at]
    question = prompt[question_at + len(_QUESTION_MARKER) :]
    if question.endswith(_ANSWER_MARKER):
        question = question[: -len(_ANSWER_MARKER)]
    marker_at = head.find(_CONTEXT_MARKER)
    if marker_at != -1:
        head = head[marker_at + len(_CONTEXT_MARKER) :]
    return head, question.strip()


@dataclass(frozen=True)
class ExtractiveStreamer:
    """Offline streamer that answers with the context sentences closest to the question."""
    max_sentences: int = 2
    fragment_delay: float = 0.0
    cumulative: bool = False

    def compose(self, prompt: str) -> str:
        """Build the full extractive answer for a prompt."""
        context, question = split_prompt(prompt)
        tokens = set(tokenize_question(question))
        sentences: list[str] = []
        seen: set[str] = set()
        for piece in _SENTENCE_SPLIT_RE.split(context.replace(CHUNK_SEPARATOR, "\n")):
            sentence = " ".join(piece.split())
            if sentence and sentence not in seen:
                seen.add(sentence)
                sentences.append(sentence)
        scored = [
            (sum(1 for token in tokens if token in sentence.lower()), sentence)
            for sentence in sentences
        ]
        best = max((score for score, _ in scored), default=0)
        if best == 0:
            return NOT_FOUND_ANSWER
        picked = [sentence for score, sentence in scored if score == best][: self.max_sentences]
        return "Based on the document: " + " ".join(picked)

    async def stream(self, prompt: str) -> AsyncIterator[str]:
        """Yield the answer word by word, incrementally or cumulatively."""
        answer = self.compose(prompt)
        emitted = ""
        for match in _WORD_RE.finditer(answer):
            await asyncio.sleep(self.fragment_delay)
            emitted += match.group(0)
            yield emitted if self.cumulative else match.group(0)


def build_llm_streamer(
    provider: str,
    *,
    api_key_openai: str | None,
    api_key_gemini: str | None,
    openai_base_url: str,
    openai_model: str | None,
    gemini_model: str | None,
    ollama_base_url: str,
    ollama_model: str,
    temperature: float,
    max_tokens: int,
    timeout: float,
    extractive_max_sentences: int = 2,
) -> OllamaStreamer | OpenAIStreamer | GeminiStreamer | ExtractiveStreamer:
    """Factory for answer streamers based on provider."""
    normalized = provider.strip().lower()
    if normalized in {"openai"}:
        if not api_key_openai:
            raise LLMError("OPENAI_API_KEY is required for OpenAI provider")
        if not openai_model:
            raise LLMError("OPENAI_CHAT_MODEL is required for OpenAI provider")
        return OpenAIStreamer(
            api_key=api_key_openai,
            base_url=openai_base_url.rstrip("/"),
            model=openai_model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    if normalized in {"gemini", "google"}:
        if not api_key_gemini:
            raise LLMError("GEMINI_API_KEY is required for Gemini provider")
        if not gemini_model:
            raise LLMError("GEMINI_CHAT_MODEL is required for Gemini provider")
        return GeminiStreamer(
            api_key=api_key_gemini,
            model=gemini_model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    if normalized in {"ollama"}:
        return OllamaStreamer(
            base_url=ollama_base_url.rstrip("/"),
            model=ollama_model,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=timeout,
        )
    if normalized in {"extractive", "offline"}:
        return ExtractiveStreamer(max_sentences=extractive_max_sentences)
    raise LLMError(f"Unsupported LLM provider: {provider}")
