from __future__ import annotations

import pytest

from src.speech.stt import DisabledTranscriber, PushTranscriber

pytestmark = pytest.mark.anyio


async def test_push_transcriber_delivers_updates_only_while_started() -> None:
    transcriber = PushTranscriber()
    received: list[str] = []

    assert transcriber.push("ignored") is False
    assert await transcriber.authorize()
    await transcriber.start(received.append)
    assert transcriber.active
    assert transcriber.push("what color")
    assert transcriber.push("what color is the sky")
    await transcriber.stop()

    assert transcriber.push("late") is False
    assert received == ["what color", "what color is the sky"]


async def test_disabled_transcriber_never_authorizes() -> None:
    assert await DisabledTranscriber().authorize() is False
