from application.watchlist.pick_service import PickResult, WatchlistPickService

__all__ = ["PickResult", "WatchlistPickService"]
