from __future__ import annotations

import json
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Enum):
        value = value.value
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (UUID, datetime)):
        value = str(value) if isinstance(value, UUID) else value.isoformat()
    if isinstance(value, (str, list, tuple, dict)):
        # Quote strings so titles with spaces stay unambiguous on one line.
        return json.dumps(value, ensure_ascii=False, default=str)
    return json.dumps(str(value), ensure_ascii=False)


def format_kv(event: str | None = None, **fields: Any) -> str:
    """
    Render a single-line key=value log payload; None values are dropped.

    Example:
      event="draw" profile_id="p1" candidates=3 weight=10 total_weight=13
    """
    parts: list[str] = []
    if event:
        parts.append(f"event={_format_value(event)}")
    for key, value in fields.items():
        if value is None:
            continue
        parts.append(f"{key}={_format_value(value)}")
    return " ".join(parts)
