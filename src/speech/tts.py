from __future__ import annotations

"""Text-to-speech collaborators: an ordered speech queue over a synthesizer."""

import asyncio
import logging
import shlex
from collections import deque
from dataclasses import dataclass
from typing import Protocol

logger = logging.getLogger(__name__)

SPOKEN_HISTORY = 200


class TTSError(RuntimeError):
    """Raised when speech synthesis fails."""
    pass


class TextToSpeech(Protocol):
    """Speaks text aloud, either interrupting or queued behind current speech."""

    def speak(self, text: str, is_continuation: bool = False) -> None:
        ...

    def stop_and_clear_queue(self) -> None:
        ...


class Synthesizer(Protocol):
    """Plays a single utterance; returns when playback is over."""

    async def say(self, text: str) -> None:
        ...


@dataclass
class LoggingSynthesizer:
    """Text-only synthesizer that logs utterances and simulates their duration."""
    seconds_per_word: float = 0.0

    async def say(self, text: str) -> None:
        logger.info("tts_utterance", extra={"preview": text[:50], "chars": len(text)})
        duration = self.seconds_per_word * len(text.split())
        if duration > 0:
            await asyncio.sleep(duration)


@dataclass
class CommandSynthesizer:
    """Synthesizer that runs an external TTS command such as espeak or say."""
    command: str = "espeak"
    timeout: float = 120.0

    async def say(self, text: str) -> None:
        argv = shlex.split(self.command) + [text]
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise TTSError(f"TTS command not found: {argv[0]}") from exc
        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except (asyncio.CancelledError, asyncio.TimeoutError):
            if process.returncode is None:
                process.kill()
                await process.wait()
            raise
        if process.returncode != 0:
            detail = (stderr or b"").decode("utf-8", errors="ignore").strip()
            raise TTSError(f"TTS command failed ({process.returncode}): {detail}")


class SpeechQueue:
    """Ordered speech playback.

    Continuation requests queue in arrival order behind current speech; a
    non-continuation request drops the queue and interrupts playback. Must be
    used from a running event loop.
    """

    def __init__(self, synthesizer: Synthesizer) -> None:
        self._synthesizer = synthesizer
        self._pending: deque[str] = deque()
        self._wakeup = asyncio.Event()
        self._idle = asyncio.Event()
        self._idle.set()
        self._worker: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._current: asyncio.Task[None] | None = None
        self.spoken: deque[str] = deque(maxlen=SPOKEN_HISTORY)

    @property
    def is_speaking(self) -> bool:
        return self._current is not None and not self._current.done()

    @property
    def pending(self) -> list[str]:
        return list(self._pending)

    def speak(self, text: str, is_continuation: bool = False) -> None:
        if not text:
            logger.debug("tts_skip_empty")
            return
        if not is_continuation:
            self._pending.clear()
            self._interrupt()
        self._pending.append(text)
        self._idle.clear()
        self._ensure_worker()
        self._wakeup.set()

    def stop_and_clear_queue(self) -> None:
        self._pending.clear()
        self._interrupt()
        if self._worker is None or self._worker.done():
            self._idle.set()

    async def wait_idle(self) -> None:
        """Wait until the queue is drained and nothing is playing."""
        await self._idle.wait()

    async def aclose(self) -> None:
        self.stop_and_clear_queue()
        worker = self._worker
        self._worker = None
        if worker is not None and not worker.done():
            worker.cancel()
            await asyncio.gather(worker, return_exceptions=True)
        self._idle.set()

    def _interrupt(self) -> None:
        if self.is_speaking:
            assert self._current is not None
            self._current.cancel()
            logger.debug("tts_interrupted")

    def _ensure_worker(self) -> None:
        loop = asyncio.get_running_loop()
        if self._loop is not loop:
            # Events and the worker are bound to the loop that first used them.
            self._loop = loop
            self._worker = None
            self._current = None
            self._wakeup = asyncio.Event()
            self._idle = asyncio.Event()
        if self._worker is None or self._worker.done():
            self._worker = loop.create_task(self._run())

    async def _run(self) -> None:
        while True:
            if not self._pending:
                self._idle.set()
                self._wakeup.clear()
                await self._wakeup.wait()
                continue
            text = self._pending.popleft()
            current = asyncio.ensure_future(self._synthesizer.say(text))
            self._current = current
            try:
                await asyncio.wait({current})
            except asyncio.CancelledError:
                current.cancel()
                raise
            finally:
                self._current = None
            if current.cancelled():
                continue
            error = current.exception()
            if error is not None:
                logger.warning("tts_failed", extra={"detail": str(error)})
                continue
            self.spoken.append(text)
