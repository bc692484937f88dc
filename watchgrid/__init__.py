from __future__ import annotations

from watchgrid.api import ApiError, StockApi
from watchgrid.controller import (
    POPULAR_TICKERS,
    SearchSuggester,
    TapeRefresher,
    WatchlistController,
)
from watchgrid.models import Notice, Quote, SearchResult, TapeQuote, WatchlistEntry
from watchgrid.session import WatchSession

__all__ = [
    "ApiError",
    "Notice",
    "POPULAR_TICKERS",
    "Quote",
    "SearchResult",
    "SearchSuggester",
    "StockApi",
    "TapeQuote",
    "TapeRefresher",
    "WatchlistController",
    "WatchlistEntry",
    "WatchSession",
]
