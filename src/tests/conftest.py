from __future__ import annotations

"""Shared pytest fixtures and test environment defaults."""

import os
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ["RAG_LLM_PROVIDER"] = "extractive"
os.environ["TTS_BACKEND"] = "log"
os.environ["TTS_SECONDS_PER_WORD"] = "0"
os.environ["STT_ENABLED"] = "true"
os.environ.pop("RAG_API_KEYS", None)
os.environ.pop("OPENAI_API_KEY", None)
os.environ.pop("GEMINI_API_KEY", None)
os.environ.setdefault("RAG_METRICS_ENABLED", "true")

import pytest


@pytest.fixture
def anyio_backend():
    return "asyncio"
