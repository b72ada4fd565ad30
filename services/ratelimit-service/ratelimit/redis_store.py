"""Redis-backed sorted-set store using MULTI/EXEC transactions."""

from __future__ import annotations

import logging
from typing import Any

from redis import Redis
from redis.client import Pipeline
from redis.exceptions import RedisError, WatchError

from .errors import StoreUnavailable
from .store import Batch, BatchResult, BatchStep, StoreOp

logger = logging.getLogger(__name__)

_SORTED_SET_TYPES = frozenset({"none", "zset"})


class RedisSortedSetStore:
    """Distributed store applying each batch inside a single Redis transaction.

    Keys touched by a batch are WATCHed and type-checked before MULTI. Redis
    does not roll back commands that fail inside EXEC, so a key holding
    anything other than a sorted set is rejected before a command is queued.
    """

    def __init__(self, client: Redis, *, max_watch_retries: int = 3) -> None:
        """Keep the Redis client and the number of attempts allowed on WATCH conflicts."""
        if max_watch_retries < 1:
            raise ValueError("max_watch_retries must be >= 1")
        self._client = client
        self._max_watch_retries = max_watch_retries

    def execute(self, batch: Batch) -> BatchResult:
        """Commit every step of ``batch`` in one optimistic MULTI/EXEC transaction."""
        keys = sorted({step.key for step in batch.steps})
        for attempt in range(1, self._max_watch_retries + 1):
            try:
                raw = self._execute_once(batch, keys)
            except WatchError:
                logger.debug("redis watch conflict on %s, attempt %d", keys, attempt)
                continue
            except RedisError as exc:
                logger.warning("redis transaction of %d steps failed: %s", len(batch), exc, exc_info=True)
                raise StoreUnavailable(f"redis transaction failed: {exc}") from exc
            return BatchResult.from_outcomes(
                batch, [self._decode(step, outcome) for step, outcome in zip(batch.steps, raw)]
            )
        logger.warning("redis transaction on %s aborted after %d watch conflicts", keys, attempt)
        raise StoreUnavailable(f"redis transaction aborted after {attempt} watch conflicts")

    def _execute_once(self, batch: Batch, keys: list[str]) -> list[Any]:
        with self._client.pipeline(transaction=True) as pipe:
            if keys:
                pipe.watch(*keys)
            for key in keys:
                kind = pipe.type(key)
                if isinstance(kind, bytes):
                    kind = kind.decode("utf-8")
                if kind not in _SORTED_SET_TYPES:
                    logger.warning("redis key %s holds a %s, not a sorted set", key, kind)
                    raise StoreUnavailable(f"redis key {key} holds a {kind}, not a sorted set")
            pipe.multi()
            for step in batch.steps:
                self._queue(pipe, step)
            return pipe.execute()

    def ping(self) -> None:
        """Round-trip to Redis, raising :class:`StoreUnavailable` when it cannot be reached."""
        try:
            self._client.ping()
        except RedisError as exc:
            raise StoreUnavailable(f"redis ping failed: {exc}") from exc

    def _queue(self, pipe: Pipeline, step: BatchStep) -> None:
        if step.op is StoreOp.REMOVE_RANGE_BY_SCORE:
            low, high = step.args
            pipe.zremrangebyscore(step.key, low, high)
        elif step.op is StoreOp.ADD:
            member, score = step.args
            pipe.zadd(step.key, {member: score})
        elif step.op is StoreOp.EXPIRE:
            (seconds,) = step.args
            pipe.expire(step.key, seconds)
        elif step.op is StoreOp.RANGE_WITH_SCORES:
            pipe.zrange(step.key, 0, -1, withscores=True)
        else:  # pragma: no cover - StoreOp is closed
            raise ValueError(f"unsupported store operation: {step.op}")

    @staticmethod
    def _decode(step: BatchStep, outcome: Any) -> Any:
        if step.op is StoreOp.RANGE_WITH_SCORES:
            return [
                (member.decode("utf-8") if isinstance(member, bytes) else member, score)
                for member, score in outcome
            ]
        return outcome
