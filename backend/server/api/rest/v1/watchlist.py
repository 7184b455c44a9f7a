from __future__ import annotations

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, Field

from application.ports.watchlist_store_port import WatchlistStorePort
from application.watchlist import WatchlistPickService
from domain.watchlist import WatchlistItem, coerce_media_type
from server.api.rest.dependencies import get_pick_service, get_watchlist_store
from watchpick import coerce_priority

router = APIRouter(prefix="/api/v1", tags=["watchlist-v1"])

NO_UNWATCHED_ITEMS = "no unwatched items"


class WatchlistAddRequest(BaseModel):
    profile_id: str = Field(..., description="Active profile ID")
    title: str = Field(..., description="Title as shown in the catalog")
    media_type: str = Field(default="MOVIE", description="MOVIE / SERIES / ANIME")
    priority: str = Field(default="MEDIUM", description="LOW / MEDIUM / HIGH / URGENT")
    year: Optional[int] = Field(default=None, description="Release year (optional)")
    description: Optional[str] = Field(default=None, description="Synopsis (optional)")
    poster: Optional[str] = Field(default=None, description="Poster URL (optional)")
    rating: Optional[float] = Field(default=None, description="Catalog rating (optional)")
    genres: Optional[List[str]] = Field(default=None, description="Genre names (optional)")
    metadata: Optional[Dict[str, Any]] = Field(default=None, description="Extra info, e.g. catalog ids (optional)")


class WatchlistUpdateRequest(BaseModel):
    profile_id: str = Field(..., description="Active profile ID")
    title: Optional[str] = Field(default=None)
    priority: Optional[str] = Field(default=None, description="LOW / MEDIUM / HIGH / URGENT")
    watched: Optional[bool] = Field(default=None)
    year: Optional[int] = Field(default=None)
    description: Optional[str] = Field(default=None)
    poster: Optional[str] = Field(default=None)
    rating: Optional[float] = Field(default=None)
    genres: Optional[List[str]] = Field(default=None)
    metadata: Optional[Dict[str, Any]] = Field(default=None, description="Merged into existing metadata")


def _item_out(item: WatchlistItem) -> Dict[str, Any]:
    return {
        "id": str(item.id),
        "profile_id": item.profile_id,
        "title": item.title,
        "media_type": item.media_type,
        "priority": item.priority,
        "watched": bool(item.watched),
        "year": item.year,
        "description": item.description,
        "poster": item.poster,
        "rating": item.rating,
        "genres": list(item.genres or ()),
        "created_at": item.created_at,
        "updated_at": item.updated_at,
        "deleted_at": item.deleted_at,
        "source": (item.metadata or {}).get("source") if isinstance(item.metadata, dict) else None,
        "metadata": item.metadata or {},
    }


def _parse_item_id(item_id: str) -> UUID:
    try:
        return UUID(item_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid item_id (expected UUID)")


def _parse_media_type(media_type: Optional[str]) -> Optional[str]:
    if media_type is None or not media_type.strip():
        return None
    parsed = coerce_media_type(media_type)
    if parsed is None:
        raise HTTPException(status_code=400, detail=f"invalid media_type: {media_type}")
    return parsed.value


def _parse_priority(priority: Optional[str]) -> Optional[str]:
    if priority is None:
        return None
    parsed = coerce_priority(priority)
    if parsed is None:
        raise HTTPException(status_code=400, detail=f"invalid priority: {priority}")
    return parsed.value


@router.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@router.get("/watchlist")
async def list_watchlist(
    profile_id: str = Query(..., description="Active profile ID"),
    watched: Optional[bool] = Query(default=None, description="Filter by watched state (optional)"),
    media_type: Optional[str] = Query(default=None, description="MOVIE / SERIES / ANIME (optional)"),
    query: Optional[str] = Query(default=None, description="Title search (optional)"),
    include_deleted: bool = Query(False, description="Include soft-deleted entries"),
    only_deleted: bool = Query(False, description="Only soft-deleted entries (implies include_deleted)"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    store: WatchlistStorePort = Depends(get_watchlist_store),
) -> List[Dict[str, Any]]:
    items = await store.list_items(
        profile_id=profile_id,
        watched=watched,
        media_type=_parse_media_type(media_type),
        query=query,
        include_deleted=include_deleted,
        deleted_only=only_deleted,
        limit=limit,
        offset=offset,
    )
    return [_item_out(i) for i in (items or [])]


@router.post("/watchlist")
async def add_watchlist_item(
    req: WatchlistAddRequest,
    store: WatchlistStorePort = Depends(get_watchlist_store),
) -> Dict[str, Any]:
    metadata = dict(req.metadata or {})
    metadata.setdefault("source", "manual")
    try:
        item = await store.add_item(
            profile_id=req.profile_id,
            title=req.title,
            media_type=_parse_media_type(req.media_type) or "MOVIE",
            priority=_parse_priority(req.priority) or "MEDIUM",
            year=req.year,
            description=req.description,
            poster=req.poster,
            rating=req.rating,
            genres=req.genres,
            metadata=metadata,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _item_out(item)


@router.post("/watchlist/draw")
async def draw_watchlist_item(
    profile_id: str = Query(..., description="Active profile ID"),
    media_type: Optional[str] = Query(default=None, description="Restrict the draw to one media type (optional)"),
    service: WatchlistPickService = Depends(get_pick_service),
) -> Dict[str, Any]:
    """Pick something to watch: weighted random draw over unwatched entries."""
    result = await service.pick(profile_id=profile_id, media_type=_parse_media_type(media_type))
    if result is None:
        raise HTTPException(status_code=404, detail=NO_UNWATCHED_ITEMS)
    return {
        "item": _item_out(result.item),
        "weight": result.weight,
        "total_weight": result.total_weight,
        "candidates": result.candidates,
        "probability": result.probability,
    }


@router.get("/watchlist/odds")
async def watchlist_odds(
    profile_id: str = Query(..., description="Active profile ID"),
    media_type: Optional[str] = Query(default=None),
    service: WatchlistPickService = Depends(get_pick_service),
) -> List[Dict[str, Any]]:
    odds = await service.odds(profile_id=profile_id, media_type=_parse_media_type(media_type))
    return [{"item": _item_out(item), "probability": p} for item, p in odds]


@router.get("/watchlist/{item_id}")
async def get_watchlist_item(
    item_id: str,
    profile_id: str = Query(..., description="Active profile ID"),
    store: WatchlistStorePort = Depends(get_watchlist_store),
) -> Dict[str, Any]:
    item = await store.get_item(profile_id=profile_id, item_id=_parse_item_id(item_id))
    if item is None:
        raise HTTPException(status_code=404, detail="watchlist item not found")
    return _item_out(item)


@router.patch("/watchlist/{item_id}")
async def update_watchlist_item(
    item_id: str,
    req: WatchlistUpdateRequest,
    store: WatchlistStorePort = Depends(get_watchlist_store),
) -> Dict[str, Any]:
    uuid = _parse_item_id(item_id)
    try:
        updated = await store.update_item(
            profile_id=req.profile_id,
            item_id=uuid,
            title=req.title,
            priority=_parse_priority(req.priority),
            watched=req.watched,
            year=req.year,
            description=req.description,
            poster=req.poster,
            rating=req.rating,
            genres=req.genres,
            metadata=req.metadata,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if updated is None:
        raise HTTPException(status_code=404, detail="watchlist item not found")
    return _item_out(updated)


@router.post("/watchlist/{item_id}/toggle_watched")
async def toggle_watched(
    item_id: str,
    profile_id: str = Query(..., description="Active profile ID"),
    store: WatchlistStorePort = Depends(get_watchlist_store),
) -> Dict[str, Any]:
    uuid = _parse_item_id(item_id)
    current = await store.get_item(profile_id=profile_id, item_id=uuid)
    if current is None:
        raise HTTPException(status_code=404, detail="watchlist item not found")
    updated = await store.update_item(profile_id=profile_id, item_id=uuid, watched=not current.watched)
    if updated is None:
        raise HTTPException(status_code=404, detail="watchlist item not found")
    return _item_out(updated)


@router.delete("/watchlist/{item_id}", status_code=204, response_class=Response)
async def delete_watchlist_item(
    item_id: str,
    profile_id: str = Query(..., description="Active profile ID"),
    store: WatchlistStorePort = Depends(get_watchlist_store),
) -> Response:
    ok = await store.delete_item(profile_id=profile_id, item_id=_parse_item_id(item_id))
    if not ok:
        raise HTTPException(status_code=404, detail="watchlist item not found")
    return Response(status_code=204)


@router.post("/watchlist/{item_id}/restore")
async def restore_watchlist_item(
    item_id: str,
    profile_id: str = Query(..., description="Active profile ID"),
    store: WatchlistStorePort = Depends(get_watchlist_store),
) -> Dict[str, Any]:
    try:
        restored = await store.restore_item(profile_id=profile_id, item_id=_parse_item_id(item_id))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if restored is None:
        raise HTTPException(status_code=404, detail="watchlist item not found")
    return _item_out(restored)
