from __future__ import annotations

"""Speech-to-text collaborators producing an evolving transcript."""

import logging
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

TranscriptCallback = Callable[[str], None]


class SpeechToText(Protocol):
    """Turns microphone audio into an evolving transcript."""

    async def authorize(self) -> bool:
        ...

    async def start(self, on_update: TranscriptCallback) -> None:
        ...

    async def stop(self) -> None:
        ...


class DisabledTranscriber:
    """Transcriber used when voice input is turned off; never authorizes."""

    async def authorize(self) -> bool:
        return False

    async def start(self, on_update: TranscriptCallback) -> None:
        logger.warning("stt_disabled")

    async def stop(self) -> None:
        return None


class PushTranscriber:
    """Transcriber whose updates are pushed by a client that records audio itself.

    Each pushed transcript replaces the previous one; it need not extend it.
    """

    def __init__(self) -> None:
        self._on_update: TranscriptCallback | None = None

    @property
    def active(self) -> bool:
        return self._on_update is not None

    async def authorize(self) -> bool:
        return True

    async def start(self, on_update: TranscriptCallback) -> None:
        self._on_update = on_update

    def push(self, text: str) -> bool:
        """Deliver a transcript update; returns False when not transcribing."""
        if self._on_update is None:
            logger.debug("stt_update_ignored")
            return False
        self._on_update(text)
        return True

    async def stop(self) -> None:
        self._on_update = None
