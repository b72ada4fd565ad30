"""Wire a limiter and its store from runtime settings."""

from __future__ import annotations

import logging
from urllib.parse import urlsplit, urlunsplit

import redis

from .config import Settings, get_settings
from .limiter import SlidingWindowLimiter
from .memory_store import MemorySortedSetStore
from .redis_store import RedisSortedSetStore
from .store import SortedSetStore

logger = logging.getLogger(__name__)


def _redacted(url: str) -> str:
    parts = urlsplit(url)
    if parts.password is None:
        return url
    host = parts.hostname or ""
    if parts.port:
        host = f"{host}:{parts.port}"
    return urlunsplit(parts._replace(netloc=f"{parts.username or ''}:***@{host}"))


def build_store(settings: Settings) -> SortedSetStore:
    """Instantiate the configured store backend.

    A Redis backend is pinged once so a misconfigured deployment fails at
    startup with :class:`~ratelimit.errors.StoreUnavailable` instead of quietly
    enforcing per-process limits.
    """
    if settings.backend == "redis":
        if not settings.redis_url:
            raise ValueError("REDIS_URL is required when RATE_LIMIT_BACKEND=redis")
        client = redis.from_url(
            settings.redis_url,
            socket_timeout=settings.redis_socket_timeout,
            socket_connect_timeout=settings.redis_socket_timeout,
        )
        store = RedisSortedSetStore(client)
        store.ping()
        logger.info("rate limiter configured for redis backend at %s", _redacted(settings.redis_url))
        return store
    if settings.backend == "memory":
        logger.info("rate limiter using in-memory backend")
        return MemorySortedSetStore()
    raise ValueError(f"unknown rate limit backend: {settings.backend!r}")


def build_limiter(settings: Settings | None = None) -> SlidingWindowLimiter:
    """Build a :class:`SlidingWindowLimiter` from ``settings`` (process settings by default)."""
    settings = settings or get_settings()
    return SlidingWindowLimiter(
        build_store(settings),
        window_seconds=settings.window_seconds,
        key_prefix=settings.key_prefix,
        unique_members=settings.unique_members,
    )
