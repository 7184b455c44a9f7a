from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID


class MediaType(str, Enum):
    MOVIE = "MOVIE"
    SERIES = "SERIES"
    ANIME = "ANIME"


def coerce_media_type(value: Any) -> Optional[MediaType]:
    raw = (str(value) if value is not None else "").strip().upper()
    if not raw:
        return None
    try:
        return MediaType(raw)
    except ValueError:
        return None


@dataclass(frozen=True)
class WatchlistItem:
    """A profile-scoped watchlist entry; drawable through its `priority`."""

    id: UUID
    profile_id: str
    title: str
    media_type: str = MediaType.MOVIE.value
    # LOW | MEDIUM | HIGH | URGENT (legacy rows may hold anything else)
    priority: str = "MEDIUM"
    watched: bool = False
    year: Optional[int] = None
    description: Optional[str] = None
    poster: Optional[str] = None
    rating: Optional[float] = None
    genres: tuple[str, ...] = ()
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    deleted_at: Optional[datetime] = None
