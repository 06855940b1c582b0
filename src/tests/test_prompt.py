from __future__ import annotations

from src.rag.prompt import PROMPT_PREAMBLE, PROMPT_SLACK_CHARS, build_prompt, prompt_limit


def test_prompt_layout() -> None:
    prompt = build_prompt("The sky is blue.", "What color is the sky?", 10_000)

    assert prompt.startswith(PROMPT_PREAMBLE)
    assert prompt.endswith("The sky is blue.\n\nQuestion: What color is the sky?\n\nAnswer:")


def test_long_prompt_keeps_question_tail() -> None:
    prompt = build_prompt("x" * 5000, "Where is it?", 300)

    assert len(prompt) == 300
    assert prompt.endswith("\n\nQuestion: Where is it?\n\nAnswer:")
    assert not prompt.startswith(PROMPT_PREAMBLE)


def test_prompt_limit_adds_slack() -> None:
    assert prompt_limit(12000) == 12000 + PROMPT_SLACK_CHARS
