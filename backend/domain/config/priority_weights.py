from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict

import yaml

from watchpick.priority import (
    DEFAULT_FALLBACK_WEIGHT,
    DEFAULT_WEIGHT_TABLE,
    InvalidWeightTable,
    WeightTable,
)

_DEFAULT_WEIGHTS_PATH = Path(__file__).resolve().parent / "priority_weights.yaml"
_WEIGHTS_CACHE: WeightTable | None = None
PRIORITY_WEIGHTS_PATH_ENV = "PRIORITY_WEIGHTS_PATH"
PRIORITY_WEIGHTS_RELOAD_ENV = "PRIORITY_WEIGHTS_RELOAD"


def _load_scheme(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise InvalidWeightTable(f"invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise InvalidWeightTable(f"{path}: expected a mapping at top level")
    return data


def _build_table(data: Dict[str, Any]) -> WeightTable:
    if not data:
        return DEFAULT_WEIGHT_TABLE
    weights = data.get("weights")
    if not isinstance(weights, dict):
        raise InvalidWeightTable("`weights` must be a mapping of priority -> weight")
    fallback = data.get("fallback", DEFAULT_FALLBACK_WEIGHT)
    return WeightTable.from_mapping(weights, fallback=fallback)


def _resolve_weights_path(path: Path | None) -> Path:
    if path is not None:
        return path
    env_path = os.getenv(PRIORITY_WEIGHTS_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return _DEFAULT_WEIGHTS_PATH


def _should_reload(reload: bool | None) -> bool:
    if reload is not None:
        return reload
    env_value = os.getenv(PRIORITY_WEIGHTS_RELOAD_ENV, "").strip().lower()
    return env_value in {"1", "true", "yes", "on"}


def load_priority_weights(path: Path | None = None) -> WeightTable:
    """Load a weight scheme from YAML; a missing file means the built-in defaults."""
    return _build_table(_load_scheme(_resolve_weights_path(path)))


def get_priority_weights(
    reload: bool | None = None,
    path: Path | None = None,
) -> WeightTable:
    global _WEIGHTS_CACHE
    if _WEIGHTS_CACHE is None or _should_reload(reload):
        _WEIGHTS_CACHE = load_priority_weights(path)
    return _WEIGHTS_CACHE


__all__ = [
    "load_priority_weights",
    "get_priority_weights",
    "PRIORITY_WEIGHTS_PATH_ENV",
    "PRIORITY_WEIGHTS_RELOAD_ENV",
]
