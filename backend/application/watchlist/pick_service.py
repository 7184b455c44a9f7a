from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from application.ports.watchlist_store_port import WatchlistStorePort
from domain.watchlist import WatchlistItem
from infrastructure.utils.log_format import format_kv
from watchpick import WeightedDrawer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PickResult:
    item: WatchlistItem
    weight: int
    total_weight: int
    candidates: int

    @property
    def probability(self) -> float:
        return self.weight / self.total_weight if self.total_weight else 0.0


class WatchlistPickService:
    """"Pick something to watch": one weighted draw over a profile's unwatched entries.

    An empty list is reported as `None` and the drawer is never invoked for it;
    callers turn that into a user-facing "no unwatched items" message.
    """

    def __init__(
        self,
        *,
        store: WatchlistStorePort,
        drawer: WeightedDrawer,
        page_size: int = 500,
    ) -> None:
        self._store = store
        self._drawer = drawer
        self._page_size = max(1, int(page_size or 1))

    async def _unwatched(self, profile_id: str, media_type: Optional[str]) -> list[WatchlistItem]:
        """All unwatched, live entries of the profile, fetched page by page."""
        total = await self._store.count_items(profile_id=str(profile_id), watched=False, media_type=media_type)
        items: list[WatchlistItem] = []
        seen: set = set()
        offset = 0
        while offset < total:
            page = await self._store.list_items(
                profile_id=str(profile_id),
                watched=False,
                media_type=media_type,
                limit=self._page_size,
                offset=offset,
            )
            if not page:
                break
            for item in page:
                # Rows touched between pages can shift position.
                if item.id not in seen:
                    seen.add(item.id)
                    items.append(item)
            offset += len(page)
        return items

    async def pick(self, *, profile_id: str, media_type: Optional[str] = None) -> Optional[PickResult]:
        candidates = await self._unwatched(profile_id, media_type)
        if not candidates:
            logger.info(format_kv("draw_skipped", profile_id=profile_id, media_type=media_type, reason="empty"))
            return None

        item = self._drawer.draw(candidates)
        weights = self._drawer.weights_of(candidates)
        result = PickResult(
            item=item,
            weight=self._drawer.weights.weight_for(item.priority),
            total_weight=sum(weights),
            candidates=len(candidates),
        )
        logger.info(
            format_kv(
                "draw",
                profile_id=profile_id,
                media_type=media_type,
                strategy=self._drawer.strategy,
                candidates=result.candidates,
                item_id=item.id,
                priority=item.priority,
                weight=result.weight,
                total_weight=result.total_weight,
            )
        )
        return result

    async def odds(
        self, *, profile_id: str, media_type: Optional[str] = None
    ) -> list[tuple[WatchlistItem, float]]:
        candidates = await self._unwatched(profile_id, media_type)
        if not candidates:
            return []
        weights = self._drawer.weights_of(candidates)
        total = sum(weights)
        out = [(item, w / total) for item, w in zip(candidates, weights)]
        out.sort(key=lambda pair: pair[1], reverse=True)
        return out
