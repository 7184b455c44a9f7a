from __future__ import annotations

import random
from functools import lru_cache

from fastapi import Depends

from application.ports.watchlist_store_port import WatchlistStorePort
from application.watchlist import WatchlistPickService
from config.settings import (
    DRAW_PAGE_SIZE,
    DRAW_SEED,
    DRAW_STRATEGY,
    DRAW_WARN_UNKNOWN_PRIORITY,
    PRIORITY_WEIGHTS,
)
from domain.config import get_priority_weights
from watchpick import WeightedDrawer, WeightTable, warn_unknown_priority


@lru_cache(maxsize=1)
def _build_watchlist_store() -> WatchlistStorePort:
    from config.database import get_postgres_dsn
    from infrastructure.persistence.postgres.watchlist_store import (
        InMemoryWatchlistStore,
        PostgresWatchlistStore,
    )

    dsn = get_postgres_dsn()
    if dsn:
        return PostgresWatchlistStore(dsn=dsn)
    return InMemoryWatchlistStore()


def _build_weight_table() -> WeightTable:
    table = get_priority_weights()
    if PRIORITY_WEIGHTS:
        table = table.with_overrides(WeightTable.parse(PRIORITY_WEIGHTS).as_dict())
    return table


@lru_cache(maxsize=1)
def _build_drawer() -> WeightedDrawer:
    rng = random.Random(DRAW_SEED) if DRAW_SEED is not None else random.SystemRandom()
    return WeightedDrawer(
        weights=_build_weight_table(),
        rng=rng,
        strategy=DRAW_STRATEGY,  # type: ignore[arg-type]
        on_unknown_priority=warn_unknown_priority if DRAW_WARN_UNKNOWN_PRIORITY else None,
    )


def get_watchlist_store() -> WatchlistStorePort:
    return _build_watchlist_store()


def get_drawer() -> WeightedDrawer:
    return _build_drawer()


def get_pick_service(
    store: WatchlistStorePort = Depends(get_watchlist_store),
    drawer: WeightedDrawer = Depends(get_drawer),
) -> WatchlistPickService:
    # Built per request so store/drawer overrides apply independently.
    return WatchlistPickService(
        store=store,
        drawer=drawer,
        page_size=DRAW_PAGE_SIZE,
    )


async def shutdown_dependencies() -> None:
    """Best-effort shutdown hooks for long-lived adapters (connection pools)."""
    store = _build_watchlist_store()
    close = getattr(store, "close", None)
    if callable(close):
        await close()
