"""In-memory rate limiter middleware."""

import time
from typing import Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

IDLE_TTL_SECONDS = 600
PRUNE_EVERY_SECONDS = 300


class RateLimiter:
    """Token bucket per key: `requests` tokens refilled over `window` seconds."""

    def __init__(self, requests: int = 100, window: float = 60.0):
        if requests <= 0 or window <= 0:
            raise ValueError("requests and window must be positive")
        self.rate = requests / window  # tokens per second
        self.burst = requests
        self._buckets: dict[str, dict] = {}
        self._last_prune = time.monotonic()

    def _bucket(self, key: str) -> dict:
        now = time.monotonic()
        bucket = self._buckets.get(key)
        if bucket is None:
            bucket = self._buckets[key] = {"tokens": float(self.burst), "last": now, "seen": now}
            return bucket
        elapsed = now - bucket["last"]
        bucket["tokens"] = min(self.burst, bucket["tokens"] + elapsed * self.rate)
        bucket["last"] = now
        return bucket

    def allow(self, key: str) -> bool:
        """Check if request is allowed."""
        self._maybe_prune()
        bucket = self._bucket(key)
        bucket["seen"] = bucket["last"]
        if bucket["tokens"] >= 1:
            bucket["tokens"] -= 1
            return True
        return False

    def remaining(self, key: str) -> int:
        """Get remaining tokens for a key."""
        return max(0, int(self._bucket(key)["tokens"]))

    def prune(self, max_idle: float = IDLE_TTL_SECONDS) -> int:
        """Drop buckets not seen for `max_idle` seconds. Returns how many."""
        cutoff = time.monotonic() - max_idle
        stale = [key for key, bucket in self._buckets.items() if bucket["seen"] < cutoff]
        for key in stale:
            del self._buckets[key]
        self._last_prune = time.monotonic()
        return len(stale)

    def _maybe_prune(self) -> None:
        if time.monotonic() - self._last_prune >= PRUNE_EVERY_SECONDS:
            self.prune()

    def reset(self, key: Optional[str] = None) -> None:
        """Reset rate limit for a key or all keys."""
        if key:
            self._buckets.pop(key, None)
        else:
            self._buckets.clear()


class RateLimitMiddleware(BaseHTTPMiddleware):
    """FastAPI middleware for rate limiting."""

    def __init__(
        self,
        app,
        requests: int = 100,
        window: float = 60.0,
        key_func=None,
        exempt_paths: tuple[str, ...] = ("/health",),
    ):
        super().__init__(app)
        self.limiter = RateLimiter(requests, window)
        self.key_func = key_func or self._default_key
        self.exempt_paths = exempt_paths

    @staticmethod
    def _default_key(request: Request) -> str:
        """Default: use client IP as rate limit key."""
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
        return request.client.host if request.client else "unknown"

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        key = self.key_func(request)
        if not self.limiter.allow(key):
            return JSONResponse(
                status_code=429,
                content={"detail": {"code": "rate_limited", "message": "too many requests"}},
                headers={"Retry-After": str(max(1, int(1 / self.limiter.rate)))},
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(self.limiter.remaining(key))
        return response
