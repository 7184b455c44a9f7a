from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Optional


class InvalidWeightTable(ValueError):
    """Raised when a weight scheme cannot be used for drawing."""


class Priority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    # Order by urgency, not alphabetically as the str mixin would.
    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Priority):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Priority):
            return NotImplemented
        return self.rank <= other.rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Priority):
            return NotImplemented
        return self.rank > other.rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Priority):
            return NotImplemented
        return self.rank >= other.rank


_RANKS = {p: idx for idx, p in enumerate(Priority)}

DEFAULT_FALLBACK_WEIGHT = 1

DEFAULT_WEIGHTS: Mapping[str, int] = MappingProxyType(
    {
        Priority.LOW.value: 1,
        Priority.MEDIUM.value: 2,
        Priority.HIGH.value: 5,
        Priority.URGENT.value: 10,
    }
)


def _key(priority: Any) -> Optional[str]:
    if priority is None:
        return None
    if isinstance(priority, Priority):
        return priority.value
    return str(priority).strip()


def coerce_priority(value: Any) -> Optional[Priority]:
    """Lenient parser for request payloads: case-insensitive, None if unknown."""
    if isinstance(value, Priority):
        return value
    raw = (str(value) if value is not None else "").strip().upper()
    if not raw:
        return None
    try:
        return Priority(raw)
    except ValueError:
        return None


def _validate_weight(key: str, weight: Any) -> int:
    # bool is an int subclass; True=1 is almost always a config typo.
    if isinstance(weight, bool) or not isinstance(weight, int):
        raise InvalidWeightTable(f"weight for {key!r} must be an integer, got {weight!r}")
    if weight <= 0:
        raise InvalidWeightTable(f"weight for {key!r} must be positive, got {weight}")
    return weight


_PAIR_SPLIT_RE = re.compile(r"[,\s;]+")
_PAIR_RE = re.compile(r"^([^=:]+)[=:](-?\d+)$")


@dataclass(frozen=True)
class WeightTable:
    """Priority -> positive integer weight, with a fallback for unknown levels."""

    weights: Mapping[str, int] = field(default_factory=lambda: dict(DEFAULT_WEIGHTS))
    fallback: int = DEFAULT_FALLBACK_WEIGHT

    def __post_init__(self) -> None:
        if not self.weights:
            raise InvalidWeightTable("weight table is empty")
        cleaned: dict[str, int] = {}
        for key, weight in self.weights.items():
            k = _key(key)
            if not k:
                raise InvalidWeightTable(f"invalid priority key: {key!r}")
            cleaned[k] = _validate_weight(k, weight)
        _validate_weight("<fallback>", self.fallback)
        object.__setattr__(self, "weights", MappingProxyType(cleaned))

    @classmethod
    def from_mapping(cls, mapping: Mapping[Any, Any], *, fallback: int = DEFAULT_FALLBACK_WEIGHT) -> "WeightTable":
        return cls(weights=dict(mapping or {}), fallback=fallback)

    @classmethod
    def parse(cls, text: str, *, fallback: int = DEFAULT_FALLBACK_WEIGHT) -> "WeightTable":
        """Parse ``"LOW=1,MEDIUM=2,HIGH=5,URGENT=10"`` (``:`` also accepted)."""
        pairs: dict[str, int] = {}
        for chunk in _PAIR_SPLIT_RE.split((text or "").strip()):
            if not chunk:
                continue
            m = _PAIR_RE.match(chunk)
            if not m:
                raise InvalidWeightTable(f"malformed weight entry: {chunk!r}")
            pairs[m.group(1).strip()] = int(m.group(2))
        return cls.from_mapping(pairs, fallback=fallback)

    def with_overrides(self, overrides: Mapping[Any, Any]) -> "WeightTable":
        merged = dict(self.weights)
        for key, weight in (overrides or {}).items():
            merged[_key(key) or ""] = weight
        return WeightTable(weights=merged, fallback=self.fallback)

    def is_known(self, priority: Any) -> bool:
        k = _key(priority)
        return k is not None and k in self.weights

    def weight_for(self, priority: Any) -> int:
        k = _key(priority)
        if k is None:
            return self.fallback
        return self.weights.get(k, self.fallback)

    def as_dict(self) -> dict[str, int]:
        return dict(self.weights)


DEFAULT_WEIGHT_TABLE = WeightTable(weights=dict(DEFAULT_WEIGHTS))
