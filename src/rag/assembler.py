from __future__ import annotations

"""Reconstruction of the growing answer from streamed model fragments."""

from dataclasses import dataclass


def merge_fragment(current: str, fragment: str) -> str:
    """Merge one streamed fragment into the answer so far.

    A fragment that starts with the whole non-empty answer so far is treated
    as cumulative and replaces it; anything else is an incremental suffix.
    """
    if current and len(fragment) >= len(current) and fragment.startswith(current):
        return fragment
    return current + fragment


@dataclass
class AnswerAssembler:
    """Holds the authoritative answer text for one streaming session."""
    text: str = ""
    fragments: int = 0

    def feed(self, fragment: str) -> str:
        self.text = merge_fragment(self.text, fragment)
        self.fragments += 1
        return self.text

    def finish(self) -> str:
        """Return the final text and clear the accumulator."""
        final = self.text
        self.reset()
        return final

    def reset(self) -> None:
        self.text = ""
        self.fragments = 0
