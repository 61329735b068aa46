"""
API Gateway Rate Limiting - per user and per IP.

Scopes:
- auth: GitHub connect/callback, per IP
- publish: POST publish, per user
- api: everything else under the API prefix, per user (or IP)

The store is an injected interface. The default keeps a sliding window of
hit timestamps in process memory; deployments with several instances plug a
shared store in with set_store().
"""

import time
from abc import ABC, abstractmethod
from collections import deque
from typing import Callable, Deque, Dict, Optional

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from src.config import get_settings
from src.kernel.identity.jwt import verify_access_token
from src.logging_config import get_logger

logger = get_logger(__name__)

WINDOW_SECONDS = 60
SWEEP_INTERVAL_SECONDS = 300


def _get_client_ip(request: Request) -> str:
    """Get client IP from request (X-Forwarded-For or direct)."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _get_user_id_from_jwt(request: Request) -> Optional[str]:
    """User id from a valid Bearer token, if any."""
    auth = request.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        return None
    token = auth[7:].strip()
    if not token:
        return None
    payload = verify_access_token(token)
    return payload.sub if payload else None


class RateLimitStore(ABC):
    """Counts hits per key within a time window."""

    @abstractmethod
    def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        """Record a hit. Returns False (without recording) when over the limit."""

    @abstractmethod
    def sweep(self) -> None:
        """Drop state that can no longer affect a decision."""


class SlidingWindowRateLimitStore(RateLimitStore):
    """In-process sliding window. Key -> timestamps of accepted hits."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._hits: Dict[str, Deque[float]] = {}
        self._windows: Dict[str, int] = {}
        self._last_sweep = clock()

    def hit(self, key: str, limit: int, window_seconds: int) -> bool:
        now = self._clock()
        hits = self._hits.setdefault(key, deque())
        self._windows[key] = window_seconds
        while hits and now - hits[0] >= window_seconds:
            hits.popleft()
        if len(hits) >= limit:
            return False
        hits.append(now)
        return True

    def sweep(self) -> None:
        now = self._clock()
        if now - self._last_sweep < SWEEP_INTERVAL_SECONDS:
            return
        self._last_sweep = now
        stale = [
            key for key, hits in self._hits.items()
            if not hits or now - hits[-1] >= self._windows.get(key, WINDOW_SECONDS)
        ]
        for key in stale:
            self._hits.pop(key, None)
            self._windows.pop(key, None)

    def __len__(self) -> int:
        return len(self._hits)


# Module-level store (single process unless replaced)
_store: Optional[RateLimitStore] = None


def get_store() -> RateLimitStore:
    global _store
    if _store is None:
        _store = SlidingWindowRateLimitStore()
    return _store


def set_store(store: Optional[RateLimitStore]) -> None:
    """Install a different store (None resets to the in-memory default)."""
    global _store
    _store = store


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Apply the auth / publish / api limits to requests under the API prefix."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()
        if not settings.rate_limit_enabled:
            return await call_next(request)

        path = request.url.path or ""
        prefix = settings.api_v1_prefix
        if not path.startswith(prefix):
            return await call_next(request)

        store = get_store()
        store.sweep()

        if path.startswith(f"{prefix}/auth/github"):
            scope = "auth"
            limit = settings.rate_limit_auth_per_minute
            identifier = _get_client_ip(request)
        elif path.rstrip("/") == f"{prefix}/publish" and request.method == "POST":
            scope = "publish"
            limit = settings.rate_limit_publish_per_minute
            identifier = _get_user_id_from_jwt(request) or _get_client_ip(request)
        else:
            scope = "api"
            limit = settings.rate_limit_api_per_minute
            identifier = _get_user_id_from_jwt(request) or _get_client_ip(request)

        if not store.hit(f"{scope}:{identifier}", limit, WINDOW_SECONDS):
            logger.warning("Rate limit exceeded", extra={"scope": scope, "path": path})
            return Response(
                content='{"detail":"Too many requests. Please try again later.","code":"RATE_LIMITED"}',
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                media_type="application/json",
                headers={"Retry-After": str(WINDOW_SECONDS)},
            )
        return await call_next(request)
