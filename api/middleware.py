"""Request logging, rate limiting and request validation for the API."""

import logging
import math
import re
import time

from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

logger = logging.getLogger("api.requests")

URL_PATTERN = re.compile(r"^https?://.+", re.IGNORECASE)

RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


class RequestLoggerMiddleware(BaseHTTPMiddleware):
    """Log ``METHOD path - status - Nms`` for every request."""

    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "%s %s - %s - %dms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response


class FixedWindowRateLimiter:
    """Counts hits per key in fixed windows of ``window_seconds``."""

    def __init__(self, max_requests: int, window_seconds: float, clock=time.monotonic):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.clock = clock
        self._windows: dict[str, tuple[float, int]] = {}
        self._last_prune = clock()

    def hit(self, key: str) -> tuple[bool, int, float]:
        """Record a hit for ``key``.

        Returns:
            (allowed, remaining, seconds until the window resets)
        """
        now = self.clock()
        started, count = self._windows.get(key, (now, 0))
        if now - started >= self.window_seconds:
            started, count = now, 0

        count += 1
        self._windows[key] = (started, count)

        # Drop expired windows once per window so idle clients don't accumulate
        if now - self._last_prune >= self.window_seconds:
            self._prune(now)

        reset = max(0.0, started + self.window_seconds - now)
        remaining = max(0, self.max_requests - count)
        return count <= self.max_requests, remaining, reset

    def _prune(self, now: float):
        self._windows = {
            k: v for k, v in self._windows.items()
            if now - v[0] < self.window_seconds
        }
        self._last_prune = now


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-client-IP rate limit on paths under ``path_prefix``."""

    def __init__(self, app, limiter: FixedWindowRateLimiter, path_prefix: str = "/api"):
        super().__init__(app)
        self.limiter = limiter
        self.path_prefix = path_prefix

    async def dispatch(self, request, call_next):
        if not request.url.path.startswith(self.path_prefix) or request.method == "OPTIONS":
            return await call_next(request)

        client_ip = request.client.host if request.client else "unknown"
        allowed, remaining, reset = self.limiter.hit(client_ip)
        headers = {
            "RateLimit-Limit": str(self.limiter.max_requests),
            "RateLimit-Remaining": str(remaining),
            "RateLimit-Reset": str(math.ceil(reset)),
        }

        if not allowed:
            logger.warning("Rate limit exceeded for %s", client_ip)
            headers["Retry-After"] = str(math.ceil(reset))
            return JSONResponse(
                status_code=429,
                content={"success": False, "error": RATE_LIMIT_MESSAGE},
                headers=headers,
            )

        response = await call_next(request)
        response.headers.update(headers)
        return response


def validate_try_on_payload(payload: object) -> str | None:
    """Check the image URLs of a try-on body.

    Returns:
        The first error message, or None when the payload is acceptable
    """
    if not isinstance(payload, dict):
        return "Request body must be a JSON object"

    for field in ("personImageUrl", "garmentImageUrl"):
        value = payload.get(field)
        if not value or not isinstance(value, str):
            return f"{field} is required and must be a string"

    for field in ("personImageUrl", "garmentImageUrl"):
        if not URL_PATTERN.match(payload[field]):
            return f"{field} must be a valid HTTP/HTTPS URL"

    return None
