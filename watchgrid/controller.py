"""Client-side watchlist state and the transitions that mutate it.

Everything here runs on one asyncio event loop. Suspension happens only
while awaiting the proxy, so two adds for different tickers can finish in
either order and the list reflects completion order.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import re
import time
from typing import Callable, Dict, Iterator, List, Optional, Tuple

from watchgrid.api import ApiError
from watchgrid.models import NoticeQueue, SearchResult, TapeQuote, WatchlistEntry

logger = logging.getLogger(__name__)


def _env_float(name: str, default: float, floor: float = 0.0) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    return max(floor, float(raw))


POPULAR_TICKERS = (
    "AAPL", "MSFT", "GOOGL", "AMZN", "NVDA", "TSLA", "META",
    "NFLX", "AMD", "JPM", "V", "SPY", "QQQ",
)
ADD_PERIOD = "1y"
TAPE_PERIOD = "1d"
MIN_TAPE_INTERVAL = 1.0
TAPE_INTERVAL = _env_float("WG_TAPE_INTERVAL", 30.0, floor=MIN_TAPE_INTERVAL)
SEARCH_DEBOUNCE = _env_float("WG_SEARCH_DEBOUNCE", 0.3)


def normalize_ticker(raw: Optional[str]) -> str:
    if raw is None:
        return ""
    return re.sub(r"[^A-Z0-9=\-.\^/]", "", str(raw).strip().upper())


class WatchlistController:
    """Ordered watchlist, expanded-card focus and the in-flight add marker."""

    def __init__(self, api, clock: Callable[[], float] = time.time):
        self._api = api
        self._clock = clock
        self._entries: List[WatchlistEntry] = []
        self.expanded_id: Optional[str] = None
        self.loading: Optional[str] = None
        self.notices = NoticeQueue()

    @property
    def entries(self) -> Tuple[WatchlistEntry, ...]:
        return tuple(self._entries)

    @property
    def expanded(self) -> Optional[WatchlistEntry]:
        if self.expanded_id is None:
            return None
        return self.get(self.expanded_id)

    def get(self, entry_id: str) -> Optional[WatchlistEntry]:
        return next((e for e in self._entries if e.id == entry_id), None)

    def index_of(self, entry_id: str) -> Optional[int]:
        for i, entry in enumerate(self._entries):
            if entry.id == entry_id:
                return i
        return None

    def has_ticker(self, ticker: str) -> bool:
        return any(e.ticker == ticker for e in self._entries)

    def drain_notices(self):
        return self.notices.drain()

    async def add(self, ticker: str) -> Optional[WatchlistEntry]:
        """Fetch a 1y quote for *ticker* and append a card for it.

        Returns the new entry, or None when the ticker was rejected as a
        duplicate or the quote fetch failed. Either way a notice is queued.
        """
        ticker = normalize_ticker(ticker)
        if not ticker:
            return None
        if self.has_ticker(ticker):
            self.notices.push("error", f"{ticker} is already in your watchlist")
            return None

        self.loading = ticker
        try:
            try:
                quote = await self._api.get_quote(ticker, period=ADD_PERIOD)
            except ApiError as exc:
                logger.info("Failed to add %s: %s", ticker, exc)
                self.notices.push("error", f"Failed to add {ticker}")
                return None

            display_name = await self._resolve_name(ticker)

            # Another add for the same ticker may have landed while we waited.
            if self.has_ticker(ticker):
                self.notices.push("error", f"{ticker} is already in your watchlist")
                return None

            entry = WatchlistEntry(
                id=f"{ticker}-{int(self._clock() * 1000)}",
                ticker=ticker,
                display_name=display_name,
                quote=quote,
            )
            self._entries.append(entry)
            self.notices.push("success", f"Added {ticker} to watchlist")
            return entry
        finally:
            if self.loading == ticker:
                self.loading = None

    async def _resolve_name(self, ticker: str) -> str:
        try:
            results = await self._api.search(ticker)
        except ApiError as exc:
            logger.debug("Name lookup for %s failed: %s", ticker, exc)
            return ticker
        for result in results:
            if result.ticker.upper() == ticker:
                return result.name or ticker
        return ticker

    def remove(self, entry_id: str) -> bool:
        index = self.index_of(entry_id)
        if index is None:
            return False
        del self._entries[index]
        if self.expanded_id == entry_id:
            self.expanded_id = None
        self.notices.push("success", "Removed from watchlist")
        return True

    def reorder(self, entry_id: str, target_index: int) -> bool:
        """Move one entry to *target_index*, keeping everyone else's order."""
        index = self.index_of(entry_id)
        if index is None:
            return False
        target_index = max(0, min(int(target_index), len(self._entries) - 1))
        if target_index == index:
            return False
        entry = self._entries.pop(index)
        self._entries.insert(target_index, entry)
        return True

    def move_before(self, active_id: str, over_id: str) -> bool:
        # Drag-end form: drop *active* onto the slot currently held by *over*.
        if active_id == over_id:
            return False
        over_index = self.index_of(over_id)
        if over_index is None:
            return False
        return self.reorder(active_id, over_index)

    def expand(self, entry_id: str) -> bool:
        if self.get(entry_id) is None:
            return False
        self.expanded_id = entry_id
        return True

    def collapse(self) -> None:
        self.expanded_id = None


class TapeRefresher:
    """Periodically refreshes 1d quotes for a fixed set of popular tickers.

    Independent of the watchlist. A failed ticker is logged and left out
    of the next map; it never blocks the others.
    """

    def __init__(self, api, tickers=POPULAR_TICKERS, interval: float = TAPE_INTERVAL):
        self._api = api
        self.tickers = tuple(tickers)
        self.interval = interval
        self.prices: Dict[str, TapeQuote] = {}
        self._task: Optional[asyncio.Task] = None

    async def refresh(self) -> Dict[str, TapeQuote]:
        prices: Dict[str, TapeQuote] = {}
        for ticker in self.tickers:
            try:
                quote = await self._api.get_quote(ticker, period=TAPE_PERIOD)
            except ApiError as exc:
                logger.warning("Failed to fetch %s for tape: %s", ticker, exc)
                continue
            prices[ticker] = TapeQuote(ticker, quote.last_price, quote.change)
        self.prices = prices
        return prices

    def items(self) -> Iterator[Tuple[str, Optional[TapeQuote]]]:
        for ticker in self.tickers:
            yield ticker, self.prices.get(ticker)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if not self.running:
            self._task = asyncio.create_task(self._run())
        return self._task

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            try:
                await self.refresh()
            except Exception:
                logger.exception("Tape refresh failed; retrying in %.1fs", self.interval)
            await asyncio.sleep(self.interval)


class SearchSuggester:
    """Debounced search-as-you-type.

    Each ``suggest`` call supersedes the previous ones. Superseded calls
    return None; the latest returns the proxy's matches.
    """

    def __init__(self, api, delay: float = SEARCH_DEBOUNCE):
        self._api = api
        self.delay = delay
        self._generation = 0

    async def suggest(self, query: str) -> Optional[List[SearchResult]]:
        self._generation += 1
        generation = self._generation
        query = (query or "").strip()
        if not query:
            return []

        await asyncio.sleep(self.delay)
        if generation != self._generation:
            return None
        try:
            results = await self._api.search(query)
        except ApiError as exc:
            logger.warning("Search for %r failed: %s", query, exc)
            return []
        if generation != self._generation:
            return None
        return results
