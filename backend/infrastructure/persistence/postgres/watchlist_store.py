from __future__ import annotations

import asyncio
import json
import logging
import re
import unicodedata
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID, uuid4

from application.ports.watchlist_store_port import WatchlistStorePort
from domain.watchlist import WatchlistItem, coerce_media_type
from watchpick import coerce_priority

logger = logging.getLogger(__name__)

_YEAR_RE = re.compile(r"\(\s*(\d{4})\s*\)")

_COLUMNS = (
    "id, profile_id, title, media_type, priority, watched, year, description, poster, rating, "
    "genres, metadata, created_at, updated_at, deleted_at"
)


def _normalize_title(title: str) -> str:
    """Normalize title for dedupe: case, accents, punctuation and spacing."""
    t = unicodedata.normalize("NFKD", (title or "").strip().lower())
    t = "".join(ch for ch in t if not unicodedata.combining(ch))
    t = t.strip("'\"“”‘’")
    t = re.sub(r"[\s\-_:/\\|]+", " ", t).strip()
    t = re.sub(r"[^\w ]+", "", t)
    return re.sub(r"\s+", " ", t).strip()


def _canonicalize_title_and_year(title: str, year: Optional[int]) -> tuple[str, Optional[int]]:
    """Strip a trailing "(2014)" from the title, using it as year when none is given."""
    raw = (title or "").strip()
    if not raw:
        return "", year
    parsed_year = None
    m = _YEAR_RE.search(raw)
    if m:
        parsed_year = int(m.group(1))
    canonical = re.sub(r"\s+", " ", _YEAR_RE.sub("", raw)).strip()
    return canonical, int(year) if year is not None else parsed_year


def _require_title(title: str, year: Optional[int]) -> tuple[str, Optional[int], str]:
    canonical, merged_year = _canonicalize_title_and_year(title, year)
    if not canonical:
        raise ValueError("title is required")
    norm = _normalize_title(canonical)
    if not norm:
        raise ValueError("title is invalid")
    return canonical, merged_year, norm


def _require_priority(priority: Any) -> str:
    p = coerce_priority(priority)
    if p is None:
        raise ValueError(f"invalid priority: {priority!r}")
    return p.value


def _require_media_type(media_type: Any) -> str:
    m = coerce_media_type(media_type)
    if m is None:
        raise ValueError(f"invalid media_type: {media_type!r}")
    return m.value


def _clean_genres(genres: Optional[Sequence[str]]) -> tuple[str, ...]:
    return tuple(str(g).strip() for g in (genres or ()) if str(g).strip())


class InMemoryWatchlistStore(WatchlistStorePort):
    def __init__(self) -> None:
        self._items: list[WatchlistItem] = []

    def _filter(
        self,
        *,
        profile_id: str,
        watched: Optional[bool],
        media_type: Optional[str],
        query: Optional[str],
        include_deleted: bool,
        deleted_only: bool = False,
    ) -> list[WatchlistItem]:
        items = [i for i in self._items if i.profile_id == str(profile_id)]
        if deleted_only:
            items = [i for i in items if i.deleted_at is not None]
        elif not include_deleted:
            items = [i for i in items if i.deleted_at is None]
        if watched is not None:
            items = [i for i in items if bool(i.watched) == bool(watched)]
        if media_type:
            mt = _require_media_type(media_type)
            items = [i for i in items if i.media_type == mt]
        q = (query or "").strip().lower()
        if q:
            items = [i for i in items if q in (i.title or "").lower()]
        return items

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
        items = self._filter(
            profile_id=profile_id,
            watched=watched,
            media_type=media_type,
            query=query,
            include_deleted=include_deleted,
            deleted_only=deleted_only,
        )
        items.sort(
            key=lambda x: (x.updated_at or x.created_at or datetime.min.replace(tzinfo=timezone.utc), str(x.id)),
            reverse=True,
        )
        return items[int(offset) : int(offset) + int(limit)]

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
        return len(
            self._filter(
                profile_id=profile_id,
                watched=watched,
                media_type=media_type,
                query=query,
                include_deleted=include_deleted,
                deleted_only=deleted_only,
            )
        )

    def _index_of(self, profile_id: str, item_id: UUID, *, deleted: Optional[bool] = False) -> Optional[int]:
        for idx, it in enumerate(self._items):
            if it.profile_id != str(profile_id) or it.id != item_id:
                continue
            if deleted is not None and (it.deleted_at is not None) != deleted:
                continue
            return idx
        return None

    def _has_live_title(self, item: WatchlistItem, norm: str) -> bool:
        """Another live entry of the same profile and media type already uses `norm`."""
        return any(
            other.id != item.id
            and other.profile_id == item.profile_id
            and other.media_type == item.media_type
            and other.deleted_at is None
            and _normalize_title(other.title) == norm
            for other in self._items
        )

    async def get_item(self, *, profile_id: str, item_id: UUID) -> Optional[WatchlistItem]:
        idx = self._index_of(profile_id, item_id)
        return self._items[idx] if idx is not None else None

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
        canonical, merged_year, norm = _require_title(title, year)
        mt = _require_media_type(media_type)
        prio = _require_priority(priority)
        now = datetime.now(timezone.utc)

        # Dedupe: same profile + media type + normalized title returns the existing entry.
        matches = [
            idx
            for idx, it in enumerate(self._items)
            if it.profile_id == str(profile_id) and it.media_type == mt and _normalize_title(it.title) == norm
        ]
        # Live entries win over soft-deleted ones.
        matches.sort(key=lambda i: self._items[i].deleted_at is not None)
        for idx in matches[:1]:
            it = self._items[idx]
            if it.deleted_at is not None:
                self._items[idx] = replace(
                    it,
                    priority=prio,
                    watched=False,
                    year=it.year if it.year is not None else merged_year,
                    metadata={**dict(it.metadata or {}), **dict(metadata or {})},
                    updated_at=now,
                    deleted_at=None,
                )
                return self._items[idx]
            if metadata or (it.year is None and merged_year is not None):
                self._items[idx] = replace(
                    it,
                    year=it.year if it.year is not None else merged_year,
                    metadata={**dict(it.metadata or {}), **dict(metadata or {})},
                    updated_at=now,
                )
            return self._items[idx]

        item = WatchlistItem(
            id=uuid4(),
            profile_id=str(profile_id),
            title=canonical,
            media_type=mt,
            priority=prio,
            watched=False,
            year=merged_year,
            description=description,
            poster=poster,
            rating=float(rating) if rating is not None else None,
            genres=_clean_genres(genres),
            metadata=dict(metadata or {}),
            created_at=now,
            updated_at=now,
            deleted_at=None,
        )
        self._items.append(item)
        return item

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
        idx = self._index_of(profile_id, item_id)
        if idx is None:
            return None
        it = self._items[idx]
        changes: Dict[str, Any] = {}
        if title is not None:
            canonical, merged_year, norm = _require_title(title, year)
            if self._has_live_title(it, norm):
                raise ValueError("conflict: another item already has this title")
            changes["title"] = canonical
            if merged_year is not None:
                changes["year"] = merged_year
        elif year is not None:
            changes["year"] = int(year)
        if priority is not None:
            changes["priority"] = _require_priority(priority)
        if watched is not None:
            changes["watched"] = bool(watched)
        if description is not None:
            changes["description"] = description
        if poster is not None:
            changes["poster"] = poster
        if rating is not None:
            changes["rating"] = float(rating)
        if genres is not None:
            changes["genres"] = _clean_genres(genres)
        if metadata:
            changes["metadata"] = {**dict(it.metadata or {}), **dict(metadata)}

        self._items[idx] = replace(it, updated_at=datetime.now(timezone.utc), **changes)
        return self._items[idx]

    async def delete_item(self, *, profile_id: str, item_id: UUID) -> bool:
        idx = self._index_of(profile_id, item_id)
        if idx is None:
            return False
        now = datetime.now(timezone.utc)
        self._items[idx] = replace(self._items[idx], updated_at=now, deleted_at=now)
        return True

    async def restore_item(self, *, profile_id: str, item_id: UUID) -> Optional[WatchlistItem]:
        idx = self._index_of(profile_id, item_id, deleted=True)
        if idx is None:
            return None
        it = self._items[idx]
        if self._has_live_title(it, _normalize_title(it.title)):
            raise ValueError("conflict: another item already has this title")
        self._items[idx] = replace(
            self._items[idx],
            watched=False,
            updated_at=datetime.now(timezone.utc),
            deleted_at=None,
        )
        return self._items[idx]

    async def close(self) -> None:
        return None


class PostgresWatchlistStore(WatchlistStorePort):
    """Postgres-backed watchlist storage (asyncpg)."""

    def __init__(
        self,
        *,
        dsn: str,
        min_size: int = 1,
        max_size: int = 5,
    ) -> None:
        self._dsn = dsn
        self._min_size = min_size
        self._max_size = max_size
        self._pool = None
        self._pool_lock = asyncio.Lock()

    async def _get_pool(self):
        if self._pool is not None:
            return self._pool
        async with self._pool_lock:
            if self._pool is not None:
                return self._pool
            import asyncpg  # type: ignore

            self._pool = await asyncpg.create_pool(
                self._dsn,
                min_size=self._min_size,
                max_size=self._max_size,
            )
            await self._ensure_schema()
            logger.info("PostgreSQL watchlist store pool initialized")
            return self._pool

    async def _ensure_schema(self) -> None:
        pool = self._pool
        if pool is None:
            return
        async with pool.acquire() as conn:
            try:
                await conn.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto";')
            except Exception as e:
                logger.warning("Failed to ensure pgcrypto extension: %s", e)
            await conn.execute(
                """
                CREATE TABLE IF NOT EXISTS watchlist_items (
                    id uuid PRIMARY KEY DEFAULT gen_random_uuid(),
                    profile_id text NOT NULL,
                    title text NOT NULL,
                    normalized_title text NOT NULL,
                    media_type text NOT NULL DEFAULT 'MOVIE',
                    priority text NOT NULL DEFAULT 'MEDIUM',
                    watched boolean NOT NULL DEFAULT false,
                    year int,
                    description text,
                    poster text,
                    rating double precision,
                    genres jsonb NOT NULL DEFAULT '[]'::jsonb,
                    metadata jsonb NOT NULL DEFAULT '{}'::jsonb,
                    created_at timestamptz NOT NULL DEFAULT NOW(),
                    updated_at timestamptz NOT NULL DEFAULT NOW(),
                    deleted_at timestamptz
                );
                """
            )
            await conn.execute(
                "CREATE INDEX IF NOT EXISTS watchlist_items_profile_norm_idx "
                "ON watchlist_items(profile_id, media_type, normalized_title);"
            )
            await conn.execute(
                "CREATE INDEX IF NOT EXISTS watchlist_items_profile_watched_idx "
                "ON watchlist_items(profile_id, watched) WHERE deleted_at IS NULL;"
            )

    @staticmethod
    def _json_field(value: Any, default: Any) -> Any:
        if isinstance(value, str):
            try:
                return json.loads(value)
            except ValueError:
                return default
        return value if value is not None else default

    @classmethod
    def _row_to_item(cls, row: dict) -> WatchlistItem:
        meta = cls._json_field(row.get("metadata"), {})
        genres = cls._json_field(row.get("genres"), [])
        return WatchlistItem(
            id=row["id"],
            profile_id=str(row.get("profile_id") or ""),
            title=str(row.get("title") or ""),
            media_type=str(row.get("media_type") or "MOVIE"),
            # Stored as-is; unknown legacy values are drawn with the fallback weight.
            priority=str(row.get("priority") or "MEDIUM"),
            watched=bool(row.get("watched")),
            year=row.get("year"),
            description=row.get("description"),
            poster=row.get("poster"),
            rating=row.get("rating"),
            genres=tuple(str(g) for g in genres) if isinstance(genres, list) else (),
            metadata=dict(meta) if isinstance(meta, dict) else {},
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
            deleted_at=row.get("deleted_at"),
        )

    @staticmethod
    def _where(
        *,
        profile_id: str,
        watched: Optional[bool],
        media_type: Optional[str],
        query: Optional[str],
        include_deleted: bool,
        deleted_only: bool = False,
    ) -> tuple[str, list[Any]]:
        params: list[Any] = [str(profile_id)]
        sql = " WHERE profile_id = $1"
        if deleted_only:
            sql += " AND deleted_at IS NOT NULL"
        elif not include_deleted:
            sql += " AND deleted_at IS NULL"
        if watched is not None:
            params.append(bool(watched))
            sql += f" AND watched = ${len(params)}"
        if media_type:
            params.append(_require_media_type(media_type))
            sql += f" AND media_type = ${len(params)}"
        q = (query or "").strip()
        if q:
            params.append(f"%{q}%")
            sql += f" AND title ILIKE ${len(params)}"
        return sql, params

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
        pool = await self._get_pool()
        where, params = self._where(
            profile_id=profile_id,
            watched=watched,
            media_type=media_type,
            query=query,
            include_deleted=include_deleted,
            deleted_only=deleted_only,
        )
        sql = f"SELECT {_COLUMNS} FROM watchlist_items{where} ORDER BY updated_at DESC, id DESC"
        params.append(max(1, int(limit)))
        sql += f" LIMIT ${len(params)}"
        params.append(max(0, int(offset)))
        sql += f" OFFSET ${len(params)}"
        async with pool.acquire() as conn:
            rows = await conn.fetch(sql, *params)
        return [self._row_to_item(dict(r)) for r in rows]

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
        pool = await self._get_pool()
        where, params = self._where(
            profile_id=profile_id,
            watched=watched,
            media_type=media_type,
            query=query,
            include_deleted=include_deleted,
            deleted_only=deleted_only,
        )
        async with pool.acquire() as conn:
            row = await conn.fetchrow(f"SELECT COUNT(1) AS n FROM watchlist_items{where}", *params)
        return int(row["n"] if row else 0)

    async def get_item(self, *, profile_id: str, item_id: UUID) -> Optional[WatchlistItem]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM watchlist_items WHERE profile_id = $1 AND id = $2 AND deleted_at IS NULL",
                str(profile_id),
                item_id,
            )
        return self._row_to_item(dict(row)) if row else None

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
        canonical, merged_year, norm = _require_title(title, year)
        mt = _require_media_type(media_type)
        prio = _require_priority(priority)
        meta_json = json.dumps(dict(metadata or {}))

        pool = await self._get_pool()
        async with pool.acquire() as conn:
            existing = await conn.fetchrow(
                """
                SELECT id, deleted_at
                FROM watchlist_items
                WHERE profile_id = $1
                  AND media_type = $2
                  AND normalized_title = $3
                ORDER BY deleted_at NULLS FIRST, created_at DESC
                LIMIT 1;
                """,
                str(profile_id),
                mt,
                norm,
            )
            if existing is not None and existing["deleted_at"] is None:
                row = await conn.fetchrow(
                    f"""
                    UPDATE watchlist_items
                    SET year = COALESCE(year, $3),
                        metadata = (metadata || $4::jsonb),
                        updated_at = NOW()
                    WHERE id = $1 AND profile_id = $2
                    RETURNING {_COLUMNS};
                    """,
                    existing["id"],
                    str(profile_id),
                    merged_year,
                    meta_json,
                )
            elif existing is not None:
                # Re-adding a deleted entry restores it as unwatched.
                row = await conn.fetchrow(
                    f"""
                    UPDATE watchlist_items
                    SET deleted_at = NULL,
                        watched = false,
                        priority = $3,
                        year = COALESCE(year, $4),
                        metadata = (metadata || $5::jsonb),
                        updated_at = NOW()
                    WHERE id = $1 AND profile_id = $2
                    RETURNING {_COLUMNS};
                    """,
                    existing["id"],
                    str(profile_id),
                    prio,
                    merged_year,
                    meta_json,
                )
            else:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO watchlist_items
                        (profile_id, title, normalized_title, media_type, priority, year,
                         description, poster, rating, genres, metadata)
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10::jsonb, $11::jsonb)
                    RETURNING {_COLUMNS};
                    """,
                    str(profile_id),
                    canonical,
                    norm,
                    mt,
                    prio,
                    merged_year,
                    description,
                    poster,
                    float(rating) if rating is not None else None,
                    json.dumps(list(_clean_genres(genres))),
                    meta_json,
                )
        assert row is not None
        return self._row_to_item(dict(row))

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
        next_title = next_norm = None
        next_year = int(year) if year is not None else None
        if title is not None:
            next_title, next_year, next_norm = _require_title(title, year)
        next_priority = _require_priority(priority) if priority is not None else None
        genres_json = json.dumps(list(_clean_genres(genres))) if genres is not None else None
        meta_json = json.dumps(dict(metadata)) if metadata else None

        pool = await self._get_pool()
        async with pool.acquire() as conn:
            if next_norm is not None:
                conflict = await conn.fetchrow(
                    """
                    SELECT other.id
                    FROM watchlist_items other
                    JOIN watchlist_items cur ON cur.id = $3 AND cur.profile_id = $1
                    WHERE other.profile_id = $1
                      AND other.media_type = cur.media_type
                      AND other.normalized_title = $2
                      AND other.deleted_at IS NULL
                      AND other.id <> $3
                    LIMIT 1;
                    """,
                    str(profile_id),
                    next_norm,
                    item_id,
                )
                if conflict is not None:
                    raise ValueError("conflict: another item already has this title")

            row = await conn.fetchrow(
                f"""
                UPDATE watchlist_items
                SET title = COALESCE($3, title),
                    normalized_title = COALESCE($4, normalized_title),
                    year = COALESCE($5, year),
                    priority = COALESCE($6, priority),
                    watched = COALESCE($7, watched),
                    description = COALESCE($8, description),
                    poster = COALESCE($9, poster),
                    rating = COALESCE($10, rating),
                    genres = COALESCE($11::jsonb, genres),
                    metadata = CASE
                        WHEN $12::jsonb IS NULL THEN metadata
                        ELSE (metadata || $12::jsonb)
                    END,
                    updated_at = NOW()
                WHERE profile_id = $1
                  AND id = $2
                  AND deleted_at IS NULL
                RETURNING {_COLUMNS};
                """,
                str(profile_id),
                item_id,
                next_title,
                next_norm,
                next_year,
                next_priority,
                watched,
                description,
                poster,
                float(rating) if rating is not None else None,
                genres_json,
                meta_json,
            )
        return self._row_to_item(dict(row)) if row else None

    async def delete_item(self, *, profile_id: str, item_id: UUID) -> bool:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            row = await conn.fetchrow(
                """
                UPDATE watchlist_items
                SET deleted_at = NOW(),
                    updated_at = NOW()
                WHERE profile_id = $1
                  AND id = $2
                  AND deleted_at IS NULL
                RETURNING id;
                """,
                str(profile_id),
                item_id,
            )
        return bool(row)

    async def restore_item(self, *, profile_id: str, item_id: UUID) -> Optional[WatchlistItem]:
        pool = await self._get_pool()
        async with pool.acquire() as conn:
            conflict = await conn.fetchrow(
                """
                SELECT other.id
                FROM watchlist_items other
                JOIN watchlist_items cur ON cur.id = $2 AND cur.profile_id = $1
                WHERE other.profile_id = $1
                  AND other.media_type = cur.media_type
                  AND other.normalized_title = cur.normalized_title
                  AND other.deleted_at IS NULL
                  AND other.id <> $2
                LIMIT 1;
                """,
                str(profile_id),
                item_id,
            )
            if conflict is not None:
                raise ValueError("conflict: another item already has this title")
            row = await conn.fetchrow(
                f"""
                UPDATE watchlist_items
                SET deleted_at = NULL,
                    watched = false,
                    updated_at = NOW()
                WHERE profile_id = $1
                  AND id = $2
                  AND deleted_at IS NOT NULL
                RETURNING {_COLUMNS};
                """,
                str(profile_id),
                item_id,
            )
        return self._row_to_item(dict(row)) if row else None

    async def close(self) -> None:
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL watchlist store pool closed")
