from __future__ import annotations

"""CLI utility to load a document and ask it questions from the terminal."""

import argparse
import asyncio
import sys
from pathlib import Path

from src.app.dependencies import build_speaker, build_streamer
from src.app.settings import settings
from src.loaders.document import DocumentLoadError, read_document_file
from src.rag.session import SessionOrchestrator


async def _run(path: Path, questions: list[str]) -> int:
    try:
        document = read_document_file(path)
    except DocumentLoadError as exc:
        print(f"Could not load {path}: {exc}", file=sys.stderr)
        return 1
    speaker = build_speaker()
    session = SessionOrchestrator(
        streamer=build_streamer(),
        speaker=speaker,
        chunk_size=settings.chunk_size,
        chunk_overlap=settings.chunk_overlap,
        top_k=settings.top_k,
        max_context_chars=settings.max_context_chars,
        min_first_chars=settings.speech_min_first_chars,
        min_continuation_chars=settings.speech_min_continuation_chars,
    )
    chunk_count = session.load_document(document)
    print(f"Loaded {document.name} ({len(document.content)} chars, {chunk_count} chunks)")

    for question in questions:
        print(f"> {question}")
        with session.subscribe() as events:
            pending = await session.submit(question)
            printed = 0
            while True:
                event = await events.get()
                if event.question_id != pending.question_id:
                    continue
                answer = event.snapshot.answer_so_far
                if event.kind == "fragment" and len(answer) > printed:
                    print(answer[printed:], end="", flush=True)
                    printed = len(answer)
                if event.terminal:
                    if event.kind != "completed" and event.message is not None:
                        print(("\n" if printed else "") + event.message.content, end="")
                    break
        await pending.task
        print()
        await speaker.wait_idle()
    await speaker.aclose()
    return 0


def main() -> None:
    """Answer each question about the given document, speaking as it streams."""
    parser = argparse.ArgumentParser(description="Ask questions about a text or PDF document.")
    parser.add_argument("path", type=Path, help="Document to load (.txt, .md or .pdf).")
    parser.add_argument("questions", nargs="+", help="Questions to ask, in order.")
    args = parser.parse_args()
    raise SystemExit(asyncio.run(_run(args.path, args.questions)))


if __name__ == "__main__":
    main()
