from domain.watchlist.watchlist_item import MediaType, WatchlistItem, coerce_media_type

__all__ = ["MediaType", "WatchlistItem", "coerce_media_type"]
