"""Store capability required by the limiter: labelled atomic batches over sorted sets."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from .errors import StoreUnavailable


class StoreOp(str, Enum):
    REMOVE_RANGE_BY_SCORE = "remove_range_by_score"
    ADD = "add"
    EXPIRE = "expire"
    RANGE_WITH_SCORES = "range_with_scores"


@dataclass(frozen=True, slots=True)
class BatchStep:
    """A single queued store operation, addressed by its label."""

    label: str
    op: StoreOp
    key: str
    args: tuple[Any, ...] = ()


class Batch:
    """Ordered list of labelled sorted-set operations submitted as one atomic unit.

    Outcomes are looked up by label rather than position, so reordering steps
    cannot change which outcome a caller reads.
    """

    def __init__(self) -> None:
        self._steps: list[BatchStep] = []
        self._labels: set[str] = set()

    def _queue(self, step: BatchStep) -> None:
        if step.label in self._labels:
            raise ValueError(f"duplicate batch label: {step.label}")
        self._labels.add(step.label)
        self._steps.append(step)

    def remove_range_by_score(self, label: str, key: str, min_score: int, max_score: int) -> None:
        """Queue removal of members whose score lies in ``[min_score, max_score]``."""
        self._queue(BatchStep(label, StoreOp.REMOVE_RANGE_BY_SCORE, key, (min_score, max_score)))

    def add(self, label: str, key: str, member: str, score: int) -> None:
        """Queue insertion (or overwrite) of ``member`` with ``score``."""
        self._queue(BatchStep(label, StoreOp.ADD, key, (member, score)))

    def expire(self, label: str, key: str, seconds: int) -> None:
        """Queue a TTL assignment on the whole key."""
        self._queue(BatchStep(label, StoreOp.EXPIRE, key, (seconds,)))

    def range_with_scores(self, label: str, key: str) -> None:
        """Queue a read of every member of the key as ``(member, score)`` pairs."""
        self._queue(BatchStep(label, StoreOp.RANGE_WITH_SCORES, key))

    @property
    def steps(self) -> tuple[BatchStep, ...]:
        return tuple(self._steps)

    def __len__(self) -> int:
        return len(self._steps)


class BatchResult(Mapping[str, Any]):
    """Outcomes of an executed batch keyed by step label."""

    def __init__(self, outcomes: Mapping[str, Any]) -> None:
        self._outcomes = dict(outcomes)

    @classmethod
    def from_outcomes(cls, batch: Batch, outcomes: Sequence[Any]) -> "BatchResult":
        """Pair the store's ordered outcomes with the batch labels.

        Raises
        ------
        StoreUnavailable
            When the store returned a different number of outcomes than steps
            were queued, which means the result cannot be trusted.
        """
        if len(outcomes) != len(batch):
            raise StoreUnavailable(
                f"store returned {len(outcomes)} outcomes for a batch of {len(batch)} steps"
            )
        return cls({step.label: outcome for step, outcome in zip(batch.steps, outcomes)})

    def __getitem__(self, label: str) -> Any:
        return self._outcomes[label]

    def __iter__(self) -> Iterator[str]:
        return iter(self._outcomes)

    def __len__(self) -> int:
        return len(self._outcomes)


class SortedSetStore(Protocol):
    """Shared sorted-set store able to apply a batch atomically."""

    def execute(self, batch: Batch) -> BatchResult:
        """Apply every step of ``batch`` or none of them.

        Implementations raise :class:`StoreUnavailable` when the batch cannot be
        submitted, committed, or its outcomes read back.
        """
        ...
