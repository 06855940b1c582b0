from __future__ import annotations

"""Incremental speech of a growing answer at natural break points."""

import logging
import re

from src.speech.tts import TextToSpeech

logger = logging.getLogger(__name__)

SEARCH_WINDOW = 500
HARD_CUTOFF = 200

_SENTENCE_END_RE = re.compile(r"[.!?](?=\s)")
_CLAUSE_END_RE = re.compile(r"[,;:](?=\s)")


def _first_boundary(pattern: re.Pattern[str], text: str, window: int) -> int | None:
    match = pattern.search(text)
    if match is None or match.start() >= window:
        return None
    return match.end()


def find_break_point(
    text: str,
    min_length: int,
    search_window: int = SEARCH_WINDOW,
    hard_cutoff: int = HARD_CUTOFF,
) -> str:
    """Return the leading part of text that should be spoken next.

    Sentence ends win over clause separators, which win over the first space
    at or after min_length. Without any of those the text is cut hard.
    """
    if len(text) < min_length:
        return ""
    window = min(len(text), search_window)
    for pattern in (_SENTENCE_END_RE, _CLAUSE_END_RE):
        end = _first_boundary(pattern, text, window)
        if end is not None:
            return text[:end]
    space = text.find(" ", min_length)
    if space != -1:
        return text[: space + 1]
    return text[: min(len(text), hard_cutoff)]


class SpeechDispatcher:
    """Feeds new answer text to the speaker without overlap or omission."""

    def __init__(
        self,
        speaker: TextToSpeech,
        min_first_chars: int = 30,
        min_continuation_chars: int = 20,
        search_window: int = SEARCH_WINDOW,
        hard_cutoff: int = HARD_CUTOFF,
    ) -> None:
        self._speaker = speaker
        self.min_first_chars = min_first_chars
        self.min_continuation_chars = min_continuation_chars
        self.search_window = search_window
        self.hard_cutoff = hard_cutoff
        self.speech_started = False
        self.spoken_length = 0

    def observe(self, answer_so_far: str) -> str | None:
        """Dispatch the next segment of the answer if enough text has arrived."""
        if not self.speech_started:
            if len(answer_so_far) < self.min_first_chars:
                return None
            segment = self._break(answer_so_far, self.min_first_chars)
            if not segment:
                return None
            self.speech_started = True
            self.spoken_length = len(segment)
            self._dispatch(segment, is_continuation=False)
            return segment

        remaining = answer_so_far[self.spoken_length :]
        if len(remaining) < self.min_continuation_chars:
            return None
        segment = self._break(remaining, self.min_continuation_chars)
        if not segment:
            return None
        self.spoken_length += len(segment)
        self._dispatch(segment, is_continuation=True)
        return segment

    def finish(self, answer: str) -> str | None:
        """Dispatch whatever has not been spoken once the answer is complete."""
        leftover = answer[self.spoken_length :]
        if not leftover.strip():
            return None
        self.spoken_length = len(answer)
        self.speech_started = True
        self._dispatch(leftover, is_continuation=True)
        return leftover

    def reset(self, stop_speech: bool = True) -> None:
        """Return to the initial state; optionally silence the speaker."""
        self.speech_started = False
        self.spoken_length = 0
        if stop_speech:
            try:
                self._speaker.stop_and_clear_queue()
            except Exception as exc:
                logger.warning("speech_stop_failed", extra={"detail": type(exc).__name__})

    def _break(self, text: str, min_length: int) -> str:
        return find_break_point(
            text,
            min_length,
            search_window=self.search_window,
            hard_cutoff=self.hard_cutoff,
        )

    def _dispatch(self, segment: str, is_continuation: bool) -> None:
        logger.debug(
            "speech_dispatched",
            extra={
                "segment_length": len(segment),
                "continuation": is_continuation,
                "spoken_length": self.spoken_length,
            },
        )
        try:
            self._speaker.speak(segment, is_continuation=is_continuation)
        except Exception as exc:
            logger.warning("speech_dispatch_failed", extra={"detail": type(exc).__name__})
