"""
TextStation Backend — Rate Limiting Middleware
===============================================

What:  Per-IP sliding window rate limit on the API.
Why:   The editor client polls several endpoints on timers; a misbehaving
       client (or a loop in one) should not monopolize the database or the
       Drive quota.
How:   SlidingWindowLimiter keeps the recent request times per client IP;
       RateLimitMiddleware consults it before every request.

Algorithm:
    1. Drop the client's timestamps older than `window` seconds
    2. At `limit` remaining → reject; Retry-After is the time until the
       oldest timestamp leaves the window
    3. Otherwise record the request and let it through

Scope:
    State lives in process memory, so each uvicorn worker enforces its own
    limit. Deploy with a single worker, or accept a per-worker limit.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from textstation.config import settings
from textstation.exceptions import RateLimitExceededError
from textstation.middleware.request_id import request_id_var

logger = logging.getLogger(__name__)

# Prune idle clients once this many clients are tracked
CLEANUP_THRESHOLD = 1000


class SlidingWindowLimiter:
    """Per-key sliding window counter."""

    def __init__(self, limit: int, window: float):
        self.limit = limit
        self.window = window
        self._hits: Dict[str, List[float]] = defaultdict(list)

    def check(self, key: str, now: Optional[float] = None) -> None:
        """
        Record a hit for key.

        Raises:
            RateLimitExceededError: The key already has `limit` hits in the
                window; the rejected hit is not recorded.
        """
        now = time.time() if now is None else now
        window_start = now - self.window

        hits = [ts for ts in self._hits[key] if ts > window_start]
        self._hits[key] = hits

        if len(hits) >= self.limit:
            retry_after = int(hits[0] + self.window - now) + 1
            raise RateLimitExceededError(
                retry_after=retry_after,
                context={"limit": self.limit, "window_seconds": self.window},
            )

        hits.append(now)
        if len(self._hits) > CLEANUP_THRESHOLD:
            self._prune(window_start)

    def _prune(self, window_start: float) -> None:
        idle = [key for key, hits in self._hits.items() if not hits or hits[-1] <= window_start]
        for key in idle:
            del self._hits[key]
        if idle:
            logger.debug("Rate limiter pruned %d idle clients", len(idle))


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Applies SlidingWindowLimiter per client IP.

    Health checks and API docs are never limited. Rejections are answered
    here, with the same JSON error shape the exception handlers produce,
    because middleware runs outside FastAPI's exception handling. Mounted
    inside RequestIDMiddleware so the request ID is already set.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, limit: Optional[int] = None, window: Optional[int] = None, **kwargs):
        super().__init__(app, **kwargs)
        self.limiter = SlidingWindowLimiter(
            limit=limit or settings.rate_limit_requests,
            window=window or settings.rate_limit_window,
        )

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        # Behind a proxy this is the proxy's address
        client_ip = request.client.host if request.client else "unknown"

        try:
            self.limiter.check(client_ip)
        except RateLimitExceededError as exc:
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ss window",
                client_ip,
                self.limiter.limit,
                self.limiter.window,
            )
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": request_id_var.get(""),
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        return await call_next(request)
