"""
Rate limiting middleware.

Caps the number of requests a client address may send to the API within a
fixed window (100 requests per 15 minutes by default). Counters are kept in
process memory.
"""

import time
from dataclasses import dataclass
from threading import Lock
from typing import Dict

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

from planify.api.errors import error_response
from planify.core.errors import RateLimitError
from planify.core.logging import get_logger

logger = get_logger(__name__)


@dataclass
class Window:
    """Request count for one client within the current window."""

    started_at: float
    count: int


class RateLimiter:
    """Thread-safe fixed-window counters keyed by client."""

    def __init__(self, max_requests: int, window_seconds: int):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._windows: Dict[str, Window] = {}
        self._lock = Lock()

    def hit(self, key: str, now: float | None = None) -> tuple[bool, int, int]:
        """
        Count one request for ``key``.

        Returns:
            A tuple of (is_allowed, remaining, seconds_until_reset)
        """
        now = time.monotonic() if now is None else now
        with self._lock:
            window = self._windows.get(key)
            if window is None or now - window.started_at >= self.window_seconds:
                self._drop_expired(now)
                window = Window(started_at=now, count=0)
                self._windows[key] = window

            reset = max(1, int(window.started_at + self.window_seconds - now))
            if window.count >= self.max_requests:
                return False, 0, reset

            window.count += 1
            return True, self.max_requests - window.count, reset

    def _drop_expired(self, now: float) -> None:
        expired = [k for k, w in self._windows.items() if now - w.started_at >= self.window_seconds]
        for key in expired:
            del self._windows[key]


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce rate limits on requests under ``path_prefix``."""

    def __init__(self, app: ASGIApp, limiter: RateLimiter, path_prefix: str = "/api") -> None:
        super().__init__(app)
        self.limiter = limiter
        self.path_prefix = path_prefix

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not request.url.path.startswith(self.path_prefix):
            return await call_next(request)

        key = f"ip:{request.client.host}" if request.client else "ip:unknown"
        is_allowed, remaining, reset = self.limiter.hit(key)
        limit_headers = {
            "X-RateLimit-Limit": str(self.limiter.max_requests),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(reset),
        }

        if not is_allowed:
            logger.warning(f"Rate limit exceeded for {key} on {request.url.path}")
            return error_response(RateLimitError(headers={**limit_headers, "Retry-After": str(reset)}))

        response = await call_next(request)
        response.headers.update(limit_headers)
        return response
