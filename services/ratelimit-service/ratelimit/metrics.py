"""Prometheus instruments for limiter decisions and store round-trips."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

DECISIONS = Counter(
    "ratelimit_decisions_total",
    "Sliding window decisions by outcome.",
    ["outcome"],
)

STORE_ERRORS = Counter(
    "ratelimit_store_errors_total",
    "Atomic batches that could not be executed against the store.",
)

BATCH_SECONDS = Histogram(
    "ratelimit_batch_seconds",
    "Latency of atomic batch round-trips to the store.",
)
