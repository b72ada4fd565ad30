"""Distributed sliding window rate limiter built on atomic sorted-set batches."""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable

from . import metrics
from .errors import StoreUnavailable
from .store import Batch, BatchResult, SortedSetStore

logger = logging.getLogger(__name__)

_PRUNE = "prune"
_RECORD = "record"
_REFRESH_TTL = "refresh_ttl"
_READ_WINDOW = "read_window"


@dataclass(frozen=True, slots=True)
class WindowDecision:
    """Outcome of one record-and-check against a key's trailing window."""

    key: str
    quota: int
    count: int
    admitted: bool
    timestamp_ms: int


class SlidingWindowLimiter:
    """Sliding window limiter whose state lives entirely in a shared sorted-set store.

    Every call prunes records at or before ``now - window``, records the call,
    refreshes the key TTL and reads the surviving records, all in one atomic
    batch. Denied calls are recorded too, so the limiter counts attempts.
    """

    def __init__(
        self,
        store: SortedSetStore,
        *,
        window_seconds: int = 60,
        key_prefix: str = "rate",
        unique_members: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """Initialise the limiter.

        Parameters
        ----------
        store:
            Store capable of applying a :class:`~ratelimit.store.Batch` atomically.
        window_seconds:
            Length of the trailing window; also used as the key TTL.
        key_prefix:
            Namespace prepended to every caller key in the store.
        unique_members:
            When ``True`` each record gets a random suffix so calls sharing a
            millisecond are counted separately. ``False`` stores the timestamp
            itself as the member, collapsing such calls into one record.
        clock:
            Time source returning UNIX time in seconds.
        """
        if window_seconds < 1:
            raise ValueError("window_seconds must be >= 1")
        self._store = store
        self._window_seconds = window_seconds
        self._window_ms = window_seconds * 1000
        self._key_prefix = key_prefix
        self._unique_members = unique_members
        self._clock = clock

    @property
    def window_seconds(self) -> int:
        return self._window_seconds

    def check_and_record(self, key: str, quota: int) -> bool:
        """Record a call for ``key`` and return ``True`` when it is within ``quota``."""
        return self.evaluate(key, quota).admitted

    def evaluate(self, key: str, quota: int) -> WindowDecision:
        """Record a call for ``key`` and return the full decision.

        A ``quota`` of zero or less is valid input and denies every call.

        Raises
        ------
        StoreUnavailable
            When the atomic batch cannot be executed; nothing was recorded.
        """
        store_key = self._store_key(key)
        now_ms = self._now_ms()

        batch = Batch()
        batch.remove_range_by_score(_PRUNE, store_key, 0, now_ms - self._window_ms)
        batch.add(_RECORD, store_key, self._member(now_ms), now_ms)
        batch.expire(_REFRESH_TTL, store_key, self._window_seconds)
        batch.range_with_scores(_READ_WINDOW, store_key)

        result = self._execute(batch, key)
        count = self._read_count(result, key)
        admitted = count <= quota

        metrics.DECISIONS.labels(outcome="admitted" if admitted else "denied").inc()
        if admitted:
            logger.debug("rate limit admitted key=%s count=%d quota=%d", key, count, quota)
        else:
            logger.info("rate limit denied key=%s count=%d quota=%d", key, count, quota)
        return WindowDecision(
            key=key, quota=quota, count=count, admitted=admitted, timestamp_ms=now_ms
        )

    def window_count(self, key: str) -> int:
        """Prune ``key`` and return its live record count without recording a call."""
        store_key = self._store_key(key)
        batch = Batch()
        batch.remove_range_by_score(_PRUNE, store_key, 0, self._now_ms() - self._window_ms)
        batch.range_with_scores(_READ_WINDOW, store_key)
        return self._read_count(self._execute(batch, key), key)

    def _store_key(self, key: str) -> str:
        if not key:
            raise ValueError("key must be a non-empty string")
        return f"{self._key_prefix}:{key}" if self._key_prefix else key

    def _now_ms(self) -> int:
        return round(self._clock() * 1000)

    def _member(self, now_ms: int) -> str:
        if self._unique_members:
            return f"{now_ms}:{uuid.uuid4().hex[:12]}"
        return str(now_ms)

    def _execute(self, batch: Batch, key: str) -> BatchResult:
        try:
            with metrics.BATCH_SECONDS.time():
                return self._store.execute(batch)
        except StoreUnavailable as exc:
            self._report_failure(exc, key)
            raise

    def _read_count(self, result: BatchResult, key: str) -> int:
        window = result.get(_READ_WINDOW)
        if not isinstance(window, (list, tuple)):
            exc = StoreUnavailable("store returned no window contents", key=key)
            self._report_failure(exc, key)
            raise exc
        return len(window)

    @staticmethod
    def _report_failure(exc: StoreUnavailable, key: str) -> None:
        metrics.STORE_ERRORS.inc()
        logger.warning("rate limit store unavailable for key=%s: %s", key, exc)
        if exc.key is None:
            exc.key = key
