from __future__ import annotations

import time

from fastapi import Request
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.responses import Response

from src.app.settings import settings

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
QUESTIONS = Counter(
    "questions_total",
    "Questions handled by the session, by outcome",
    ["outcome"],
)
QUESTION_LATENCY = Histogram(
    "question_duration_seconds",
    "Time from question submission to the end of its answer stream",
)
STREAM_FRAGMENTS = Counter(
    "answer_fragments_total",
    "Fragments received from the model backend",
)
SPEECH_SEGMENTS = Counter(
    "speech_segments_total",
    "Answer segments dispatched to text-to-speech",
    ["kind"],
)


def _route_path(request: Request) -> str:
    """Label requests by route template so unmatched paths share one series."""
    route = request.scope.get("route")
    return getattr(route, "path", "unmatched")


async def metrics_middleware(request: Request, call_next):
    if not settings.metrics_enabled or request.url.path == "/metrics":
        return await call_next(request)
    start = time.monotonic()
    status = 500
    try:
        response = await call_next(request)
        status = response.status_code
        return response
    finally:
        duration = time.monotonic() - start
        path = _route_path(request)
        REQUEST_COUNT.labels(request.method, path, str(status)).inc()
        REQUEST_LATENCY.labels(request.method, path).observe(duration)


def metrics_response() -> Response:
    if not settings.metrics_enabled:
        return Response(status_code=404)
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
