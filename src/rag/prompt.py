from __future__ import annotations

"""Prompt assembly for document questions."""

PROMPT_SLACK_CHARS = 2000

PROMPT_PREAMBLE = (
    "You are a helpful assistant. Answer the question based on the context provided below. "
    "Use the context to provide a comprehensive answer. If the specific answer is not directly "
    "in the context, try to infer from the available information or indicate what information "
    "is missing. Be helpful and concise.\n\n"
    "Context from document:\n"
)


def prompt_limit(max_context_chars: int) -> int:
    """Return the prompt cap: the context cap plus room for instructions and question."""
    return max_context_chars + PROMPT_SLACK_CHARS


def build_prompt(context: str, question: str, max_total_chars: int) -> str:
    """Combine preamble, context and question, keeping the tail when too long."""
    prompt = f"{PROMPT_PREAMBLE}{context}\n\nQuestion: {question}\n\nAnswer:"
    if max_total_chars > 0 and len(prompt) > max_total_chars:
        prompt = prompt[-max_total_chars:]
    return prompt
