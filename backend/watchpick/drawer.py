"""Weighted random selection over a user's unwatched entries.

Each candidate carries a priority; its chance of being drawn is
``weight(priority) / sum(weights)``. Two interchangeable strategies are
provided:

- ``pool``: expand every candidate into ``weight`` slots and pick one slot
  uniformly. O(N * max_weight), fine for personal lists.
- ``cumulative``: pick a uniform integer below the total weight and locate
  its band with ``bisect``. O(N) memory.

For the same random integer both strategies return the same candidate.
"""

from __future__ import annotations

import bisect
import logging
import random
from dataclasses import dataclass
from itertools import accumulate
from typing import Any, Callable, Iterable, Literal, Mapping, Optional, Protocol, Sequence, TypeVar

from watchpick.priority import DEFAULT_WEIGHT_TABLE, WeightTable

logger = logging.getLogger(__name__)

T = TypeVar("T")

DrawStrategy = Literal["pool", "cumulative"]
UnknownPriorityHook = Callable[[Any, Any], None]

STRATEGIES: tuple[str, ...] = ("pool", "cumulative")


class EmptyCandidateSet(LookupError):
    """Raised when asked to draw from zero candidates."""

    def __init__(self, message: str = "cannot draw from an empty candidate set") -> None:
        super().__init__(message)


class RandomSource(Protocol):
    def randrange(self, stop: int) -> int:
        ...


def priority_of(candidate: Any) -> Any:
    if isinstance(candidate, Mapping):
        return candidate.get("priority")
    return getattr(candidate, "priority", None)


def candidate_weights(
    candidates: Sequence[Any],
    *,
    weights: WeightTable = DEFAULT_WEIGHT_TABLE,
    on_unknown_priority: Optional[UnknownPriorityHook] = None,
) -> list[int]:
    out: list[int] = []
    for candidate in candidates:
        priority = priority_of(candidate)
        if on_unknown_priority is not None and not weights.is_known(priority):
            on_unknown_priority(candidate, priority)
        out.append(weights.weight_for(priority))
    return out


def _materialize(candidates: Iterable[T]) -> Sequence[T]:
    seq = candidates if isinstance(candidates, Sequence) else list(candidates)
    if len(seq) == 0:
        raise EmptyCandidateSet()
    return seq


def draw(
    candidates: Iterable[T],
    *,
    weights: WeightTable = DEFAULT_WEIGHT_TABLE,
    rng: Optional[RandomSource] = None,
    on_unknown_priority: Optional[UnknownPriorityHook] = None,
) -> T:
    """Draw one candidate by expanding each into ``weight`` pool slots."""
    seq = _materialize(candidates)
    ws = candidate_weights(seq, weights=weights, on_unknown_priority=on_unknown_priority)
    pool = [idx for idx, w in enumerate(ws) for _ in range(w)]
    slot = (rng if rng is not None else random).randrange(len(pool))
    return seq[pool[slot]]


def draw_cumulative(
    candidates: Iterable[T],
    *,
    weights: WeightTable = DEFAULT_WEIGHT_TABLE,
    rng: Optional[RandomSource] = None,
    on_unknown_priority: Optional[UnknownPriorityHook] = None,
) -> T:
    """Draw one candidate by binary search over running weight sums."""
    seq = _materialize(candidates)
    ws = candidate_weights(seq, weights=weights, on_unknown_priority=on_unknown_priority)
    bounds = list(accumulate(ws))
    r = (rng if rng is not None else random).randrange(bounds[-1])
    return seq[bisect.bisect_right(bounds, r)]


_DRAWERS: dict[str, Callable[..., Any]] = {
    "pool": draw,
    "cumulative": draw_cumulative,
}


def warn_unknown_priority(candidate: Any, priority: Any) -> None:
    logger.warning(
        "unknown priority %r on candidate %r; drawing with fallback weight",
        priority,
        getattr(candidate, "id", None) or candidate,
    )


@dataclass(frozen=True)
class WeightedDrawer:
    """Bundles a weight table, random source and strategy for repeated draws."""

    weights: WeightTable = DEFAULT_WEIGHT_TABLE
    rng: Optional[RandomSource] = None
    strategy: DrawStrategy = "pool"
    on_unknown_priority: Optional[UnknownPriorityHook] = warn_unknown_priority

    def __post_init__(self) -> None:
        if self.strategy not in _DRAWERS:
            raise ValueError(f"unknown draw strategy {self.strategy!r}; expected one of {STRATEGIES}")

    def weights_of(self, candidates: Sequence[Any]) -> list[int]:
        return candidate_weights(candidates, weights=self.weights)

    def draw(self, candidates: Iterable[T]) -> T:
        return _DRAWERS[self.strategy](
            candidates,
            weights=self.weights,
            rng=self.rng,
            on_unknown_priority=self.on_unknown_priority,
        )
