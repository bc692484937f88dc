"""Per-browser-session wiring between the Streamlit script and the controller.

Streamlit reruns the page script on its own thread. Every controller
transition is handed to one background asyncio loop, so the watchlist is
only ever mutated there.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import List, Optional

from watchgrid.api import StockApi
from watchgrid.controller import (
    POPULAR_TICKERS,
    SearchSuggester,
    TapeRefresher,
    WatchlistController,
)
from watchgrid.models import SearchResult

logger = logging.getLogger(__name__)

QUICK_PICKS = POPULAR_TICKERS[:6]


async def _invoke(fn, *args):
    return fn(*args)


class LoopThread:
    """An asyncio loop running forever on a daemon thread."""

    def __init__(self):
        self.loop = asyncio.new_event_loop()
        self.thread = threading.Thread(target=self._run, name="watchgrid-loop", daemon=True)
        self.thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_forever()
        finally:
            self.loop.close()

    @property
    def alive(self) -> bool:
        return self.thread.is_alive()

    def submit(self, coro):
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def call(self, coro):
        return self.submit(coro).result()

    def call_soon(self, fn, *args) -> None:
        self.loop.call_soon_threadsafe(fn, *args)

    def run(self, fn, *args):
        """Run a plain callable on the loop and wait for its result."""
        return self.call(_invoke(fn, *args))

    def stop(self) -> None:
        if not self.loop.is_closed():
            self.loop.call_soon_threadsafe(self.loop.stop)

    def join(self, timeout: Optional[float] = None) -> None:
        self.thread.join(timeout)


class WatchSession:
    """Everything one browser tab owns: loop, client, watchlist, tape, search.

    ``close()`` (also run when the session is garbage collected) stops the
    tape task, closes the HTTP client and then stops the loop.
    """

    def __init__(self, api=None):
        self.runner = LoopThread()
        self.api = api if api is not None else StockApi()
        self.controller = WatchlistController(self.api)
        self.tape = TapeRefresher(self.api)
        self.suggester = SearchSuggester(self.api)
        self.pending: list = []
        self.quick_picks = QUICK_PICKS
        self._query = ""
        self._results: List[SearchResult] = []
        self._closed = False
        self.runner.call_soon(self.tape.start)

    # transitions, all executed on the loop thread

    def add(self, ticker: str) -> None:
        self.pending.append(self.runner.submit(self.controller.add(ticker)))

    def remove(self, entry_id: str) -> bool:
        return self.runner.run(self.controller.remove, entry_id)

    def reorder(self, entry_id: str, target_index: int) -> bool:
        return self.runner.run(self.controller.reorder, entry_id, target_index)

    def expand(self, entry_id: str) -> bool:
        return self.runner.run(self.controller.expand, entry_id)

    def collapse(self) -> None:
        self.runner.run(self.controller.collapse)

    def drain_notices(self):
        return self.runner.run(self.controller.drain_notices)

    def finished_adds(self) -> list:
        done, waiting = [], []
        for fut in self.pending:
            (done if fut.done() else waiting).append(fut)
        self.pending = waiting
        return done

    def suggestions(self, query: str) -> List[SearchResult]:
        """Matches for *query*; blank text returns [] (show ``quick_picks``).

        The proxy is only asked again when the text changes, so reruns
        caused by other widgets reuse the last matches.
        """
        query = (query or "").strip()
        if not query:
            self._query, self._results = "", []
            return []
        if query != self._query:
            results = self.runner.call(self.suggester.suggest(query))
            if results is None:
                return self._results
            self._query, self._results = query, results
        return self._results

    def close(self) -> None:
        if getattr(self, "_closed", True):
            return
        self._closed = True
        if not self.runner.alive:
            return
        runner = self.runner
        future = runner.submit(self._shutdown())
        future.add_done_callback(lambda _: runner.stop())

    async def _shutdown(self) -> None:
        await self.tape.stop()
        await self.api.aclose()
        logger.debug("session closed")

    def __del__(self):
        self.close()
