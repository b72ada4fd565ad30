"""Distributed sliding window rate limiting."""

from .config import Settings, get_settings
from .errors import StoreUnavailable
from .factory import build_limiter, build_store
from .limiter import SlidingWindowLimiter, WindowDecision
from .memory_store import MemorySortedSetStore
from .redis_store import RedisSortedSetStore
from .store import Batch, BatchResult, BatchStep, SortedSetStore, StoreOp

__all__ = [
    "Batch",
    "BatchResult",
    "BatchStep",
    "MemorySortedSetStore",
    "RedisSortedSetStore",
    "Settings",
    "SlidingWindowLimiter",
    "SortedSetStore",
    "StoreOp",
    "StoreUnavailable",
    "WindowDecision",
    "build_limiter",
    "build_store",
    "get_settings",
]
