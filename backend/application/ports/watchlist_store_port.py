from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence
from uuid import UUID

from domain.watchlist import WatchlistItem


class WatchlistStorePort(Protocol):
    async def list_items(
        self,
        *,
        profile_id: str,
        watched: Optional[bool] = None,
        media_type: Optional[str] = None,
        query: Optional[str] = None,
        include_deleted: bool = False,
        deleted_only: bool = False,
        limit: int = 50,
        offset: int = 0,
    ) -> List[WatchlistItem]:
        ...

    async def count_items(
        self,
        *,
        profile_id: str,
        watched: Optional[bool] = None,
        media_type: Optional[str] = None,
        query: Optional[str] = None,
        include_deleted: bool = False,
        deleted_only: bool = False,
    ) -> int:
        ...

    async def get_item(self, *, profile_id: str, item_id: UUID) -> Optional[WatchlistItem]:
        ...

    async def add_item(
        self,
        *,
        profile_id: str,
        title: str,
        media_type: str = "MOVIE",
        priority: str = "MEDIUM",
        year: Optional[int] = None,
        description: Optional[str] = None,
        poster: Optional[str] = None,
        rating: Optional[float] = None,
        genres: Optional[Sequence[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> WatchlistItem:
        ...

    async def update_item(
        self,
        *,
        profile_id: str,
        item_id: UUID,
        title: Optional[str] = None,
        priority: Optional[str] = None,
        watched: Optional[bool] = None,
        year: Optional[int] = None,
        description: Optional[str] = None,
        poster: Optional[str] = None,
        rating: Optional[float] = None,
        genres: Optional[Sequence[str]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[WatchlistItem]:
        ...

    async def delete_item(self, *, profile_id: str, item_id: UUID) -> bool:
        ...

    async def restore_item(self, *, profile_id: str, item_id: UUID) -> Optional[WatchlistItem]:
        ...

    async def close(self) -> None:
        ...
