from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
import os


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Runtime configuration for the sliding window limiter and its store."""

    window_seconds: int = field(
        default_factory=lambda: int(os.getenv("RATE_LIMIT_WINDOW_SECONDS", "60"))
    )
    backend: str = field(default_factory=lambda: os.getenv("RATE_LIMIT_BACKEND", "memory").lower())
    redis_url: str = field(default_factory=lambda: os.getenv("REDIS_URL", ""))
    key_prefix: str = field(default_factory=lambda: os.getenv("RATE_LIMIT_KEY_PREFIX", "rate"))
    unique_members: bool = field(
        default_factory=lambda: _env_bool("RATE_LIMIT_UNIQUE_MEMBERS", "true")
    )
    redis_socket_timeout: float = field(
        default_factory=lambda: float(os.getenv("REDIS_SOCKET_TIMEOUT", "1.0"))
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached Settings instance for the running process."""
    return Settings()
