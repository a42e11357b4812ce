"""
rate_limit.py — Fixed-Window Request Limiter

Purpose:
- Protect public, unauthenticated endpoints (the map coordinates feed) from
  being hammered by a single client.
- Provide a FastAPI dependency factory: Depends(rate_limiter("coordinates", 100)).

Behavior:
- One counter per (scope, client IP) per 60-second window.
- Requests over the limit get HTTP 429.
- Requests without a User-Agent header are rejected with 429 as well.

Like core/cache.py, counters are per-process.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, Request, status

from wasteintel.core.logging import get_logger

logger = get_logger(__name__)

WINDOW_SECONDS = 60.0


@dataclass
class _Window:
    count: int
    reset_at: float


_windows: Dict[Tuple[str, str], _Window] = {}


def hit(scope: str, client_id: str, limit: int, now: float = None) -> bool:
    """
    Count one request; return False once the client is over `limit`.
    """
    now = time.monotonic() if now is None else now
    key = (scope, client_id)
    window = _windows.get(key)

    if window is None or now >= window.reset_at:
        _windows[key] = _Window(count=1, reset_at=now + WINDOW_SECONDS)
        _prune(now)
        return True

    if window.count >= limit:
        return False

    window.count += 1
    return True


def _prune(now: float) -> None:
    for key in [k for k, w in _windows.items() if now >= w.reset_at]:
        del _windows[key]


def reset() -> None:
    _windows.clear()


def rate_limiter(scope: str, limit_per_minute: int) -> Callable[[Request], None]:
    def dependency(request: Request) -> None:
        if not request.headers.get("user-agent"):
            raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Invalid user agent")

        client_id = request.client.host if request.client else "unknown"
        if not hit(scope, client_id, limit_per_minute):
            logger.warning(f"Rate limit exceeded for {client_id} on {scope}")
            raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail="Rate limit exceeded")

    return dependency
