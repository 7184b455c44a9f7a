from infrastructure.persistence.postgres.watchlist_store import (
    InMemoryWatchlistStore,
    PostgresWatchlistStore,
)

__all__ = ["InMemoryWatchlistStore", "PostgresWatchlistStore"]
