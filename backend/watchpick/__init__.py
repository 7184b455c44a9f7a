"""
watchpick - weighted "pick something to watch" core.

The public import path is `watchpick.*`; sources live under `backend/` like
the rest of the service, but this package must not import service layers.
"""

from __future__ import annotations

from watchpick.drawer import (
    EmptyCandidateSet,
    RandomSource,
    WeightedDrawer,
    candidate_weights,
    draw,
    draw_cumulative,
    warn_unknown_priority,
)
from watchpick.priority import (
    DEFAULT_WEIGHT_TABLE,
    DEFAULT_WEIGHTS,
    InvalidWeightTable,
    Priority,
    WeightTable,
    coerce_priority,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "DEFAULT_WEIGHT_TABLE",
    "DEFAULT_WEIGHTS",
    "EmptyCandidateSet",
    "InvalidWeightTable",
    "Priority",
    "RandomSource",
    "WeightTable",
    "WeightedDrawer",
    "candidate_weights",
    "coerce_priority",
    "draw",
    "draw_cumulative",
    "warn_unknown_priority",
]
