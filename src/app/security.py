from __future__ import annotations

"""API key authentication helpers."""

from fastapi import HTTPException, Request, status

from src.app.settings import settings


async def require_api_key(request: Request) -> str | None:
    """Validate the API key, or allow anonymous access when no keys are configured."""
    allowed = settings.api_keys
    if not allowed:
        return None
    api_key = _extract_api_key(request)
    if api_key is None or api_key not in allowed:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return api_key


def _extract_api_key(request: Request) -> str | None:
    """Extract API key from headers."""
    header_key = request.headers.get("x-api-key")
    if header_key:
        return header_key.strip()
    auth = request.headers.get("authorization")
    if not auth:
        return None
    parts = auth.split()
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1].strip()
    return None
