"""In-process sorted-set store with key expiry."""

from __future__ import annotations

import heapq
import time
from threading import Lock
from typing import Any, Callable

from .store import Batch, BatchResult, BatchStep, StoreOp


class MemorySortedSetStore:
    """Thread-safe sorted-set store for a single process.

    Mirrors the subset of Redis sorted-set semantics the limiter relies on:
    empty sets disappear, and a key whose TTL has elapsed is dropped the next
    time anything touches the store. State is per process, so several service
    instances each see their own limits.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        """Initialise empty per-key storage using ``clock`` for TTL deadlines."""
        self._clock = clock
        self._sets: dict[str, dict[str, float]] = {}
        self._expires_at: dict[str, float] = {}
        self._deadlines: list[tuple[float, str]] = []
        self._lock = Lock()

    def execute(self, batch: Batch) -> BatchResult:
        """Apply ``batch`` under the store lock and return labelled outcomes."""
        steps = batch.steps
        for step in steps:
            self._validate(step)
        with self._lock:
            self._evict_expired(self._clock())
            outcomes = [self._apply(step) for step in steps]
        return BatchResult.from_outcomes(batch, outcomes)

    def zcard(self, key: str) -> int:
        """Return the number of members stored under ``key``."""
        with self._lock:
            self._evict_expired(self._clock())
            return len(self._sets.get(key, {}))

    def ttl(self, key: str) -> float | None:
        """Return seconds until ``key`` expires, or ``None`` when it has no TTL."""
        with self._lock:
            now = self._clock()
            self._evict_expired(now)
            deadline = self._expires_at.get(key)
            return None if deadline is None else deadline - now

    def flushall(self) -> None:
        with self._lock:
            self._sets.clear()
            self._expires_at.clear()
            self._deadlines.clear()

    def _validate(self, step: BatchStep) -> None:
        expected = {
            StoreOp.REMOVE_RANGE_BY_SCORE: 2,
            StoreOp.ADD: 2,
            StoreOp.EXPIRE: 1,
            StoreOp.RANGE_WITH_SCORES: 0,
        }[step.op]
        if len(step.args) != expected:
            raise ValueError(f"{step.op.value} expects {expected} arguments, got {len(step.args)}")

    def _evict_expired(self, now: float) -> None:
        # heap entries go stale when a TTL is refreshed; only the current deadline evicts
        while self._deadlines and self._deadlines[0][0] <= now:
            deadline, key = heapq.heappop(self._deadlines)
            if self._expires_at.get(key) == deadline:
                self._delete(key)

    def _delete(self, key: str) -> None:
        self._sets.pop(key, None)
        self._expires_at.pop(key, None)

    def _apply(self, step: BatchStep) -> Any:
        members = self._sets.get(step.key)

        if step.op is StoreOp.REMOVE_RANGE_BY_SCORE:
            if not members:
                return 0
            low, high = step.args
            doomed = [member for member, score in members.items() if low <= score <= high]
            for member in doomed:
                del members[member]
            if not members:
                self._delete(step.key)
            return len(doomed)

        if step.op is StoreOp.ADD:
            member, score = step.args
            if members is None:
                members = self._sets[step.key] = {}
            added = 0 if member in members else 1
            members[member] = float(score)
            return added

        if step.op is StoreOp.EXPIRE:
            (seconds,) = step.args
            if members is None:
                return False
            if seconds <= 0:
                self._delete(step.key)
            else:
                deadline = self._clock() + seconds
                self._expires_at[step.key] = deadline
                heapq.heappush(self._deadlines, (deadline, step.key))
            return True

        # RANGE_WITH_SCORES
        if not members:
            return []
        return sorted(members.items(), key=lambda item: (item[1], item[0]))
