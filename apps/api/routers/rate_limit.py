"""Simple rate limiting dependency (Redis when configured, in-process otherwise)."""

from __future__ import annotations

import asyncio
import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import HTTPException, Request
import redis.asyncio as redis


_local_counters: Dict[str, Tuple[int, float]] = {}
_local_lock = asyncio.Lock()


def _client_identifier(request: Request) -> str:
    if request.client and request.client.host:
        return request.client.host
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return "unknown"


async def _consume_local_quota(key: str, limit: int, window_seconds: int) -> bool:
    now = time.time()
    async with _local_lock:
        count, reset_at = _local_counters.get(key, (0, now + window_seconds))
        if now >= reset_at:
            count = 0
            reset_at = now + window_seconds
        count += 1
        _local_counters[key] = (count, reset_at)
        return count <= limit


async def _consume_redis_quota(redis_url: str, key: str, window_seconds: int) -> int:
    redis_client = redis.from_url(redis_url, decode_responses=True)
    try:
        current = await redis_client.incr(key)
        if current == 1:
            await redis_client.expire(key, window_seconds)
    finally:
        await redis_client.aclose()
    return int(current)


def rate_limit(prefix: str, limit: Optional[int] = None, window_seconds: int = 60) -> Callable[[Request], None]:
    """Return a FastAPI dependency that enforces per-client request quotas.

    ``limit`` defaults to ``AUTH_RATE_LIMIT_PER_MINUTE`` from the app settings.
    """

    async def _dependency(request: Request):
        if getattr(request.app.state, "disable_rate_limits", False):
            return

        app_settings = request.app.state.settings
        max_requests = int(limit if limit is not None else app_settings.AUTH_RATE_LIMIT_PER_MINUTE)
        key = f"boda:rate:{prefix}:{_client_identifier(request)}"

        allowed: Optional[bool] = None
        if app_settings.REDIS_URL:
            try:
                allowed = await _consume_redis_quota(app_settings.REDIS_URL, key, window_seconds) <= max_requests
            except Exception:
                allowed = None
        if allowed is None:
            allowed = await _consume_local_quota(key, max_requests, window_seconds)

        if not allowed:
            raise HTTPException(
                status_code=429,
                detail="Demasiados intentos. Inténtalo de nuevo más tarde.",
            )

    return _dependency
