"""Errors surfaced by the rate limiter core."""

from __future__ import annotations


class StoreUnavailable(RuntimeError):
    """Raised when an atomic batch cannot be submitted to or committed by the store.

    The batch is all-or-nothing, so callers may assume no partial mutation is
    visible when this is raised. Retry and fallback policy belong to the caller.
    """

    def __init__(self, message: str, *, key: str | None = None) -> None:
        super().__init__(message)
        self.key = key
