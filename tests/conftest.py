"""Shared fixtures: canned Yahoo payloads, a fake requests response and a fake proxy API."""

from __future__ import annotations

import asyncio
from typing import Dict, List, Optional

import pytest

from watchgrid.api import ApiError
from watchgrid.models import Quote, SearchResult


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, text: Optional[str] = None):
        self.status_code = status_code
        self._payload = payload
        self._text = text

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self):
        if self._text is not None:
            raise ValueError("not json")
        return self._payload


def chart_payload(symbol: str = "AAPL", closes=(187.0, None, 190.5), price: float = 190.5,
                  previous_close: float = 185.0, currency: str = "USD") -> dict:
    timestamps = [1700000000 + i * 86400 for i in range(len(closes))]
    return {
        "chart": {
            "result": [
                {
                    "meta": {
                        "symbol": symbol,
                        "currency": currency,
                        "regularMarketPrice": price,
                        "chartPreviousClose": previous_close,
                    },
                    "timestamp": timestamps,
                    "indicators": {
                        "quote": [
                            {
                                "close": list(closes),
                                "volume": [1000 + i for i in range(len(closes))],
                            }
                        ]
                    },
                }
            ],
            "error": None,
        }
    }


def search_payload(quotes: List[dict]) -> dict:
    return {"count": len(quotes), "quotes": quotes, "news": []}


def make_quote(ticker: str, price: float = 100.0, previous_close: float = 95.0) -> Quote:
    return Quote(
        ticker=ticker,
        currency="USD",
        last_price=price,
        previous_close=previous_close,
        timestamps=(1700000000, 1700086400),
        prices=(previous_close, price),
    )


class FakeStockApi:
    """In-memory stand-in for StockApi.

    ``gates[ticker]`` holds an asyncio.Event the quote call waits on, so tests
    can choose the order in which in-flight adds complete.
    """

    def __init__(self, quotes: Optional[Dict[str, Quote]] = None,
                 names: Optional[Dict[str, str]] = None):
        self.quotes = dict(quotes or {})
        self.names = dict(names or {})
        self.gates: Dict[str, asyncio.Event] = {}
        self.search_fails = False
        self.quote_calls: List[tuple] = []
        self.search_calls: List[str] = []
        self.closed = False

    async def aclose(self) -> None:
        self.closed = True

    async def get_quote(self, ticker: str, period: str = "1y") -> Quote:
        self.quote_calls.append((ticker, period))
        gate = self.gates.get(ticker)
        if gate is not None:
            await gate.wait()
        quote = self.quotes.get(ticker)
        if quote is None:
            raise ApiError("Failed to fetch stock data", status_code=500)
        return quote

    async def search(self, query: str) -> List[SearchResult]:
        self.search_calls.append(query)
        if self.search_fails:
            raise ApiError("/api/search unavailable")
        name = self.names.get(query)
        if name is None:
            return []
        return [SearchResult(ticker=query, name=name, exchange="NMS", type="EQUITY")]


@pytest.fixture
def fake_api():
    return FakeStockApi(
        quotes={t: make_quote(t) for t in ("AAPL", "TSLA", "NVDA", "MSFT")},
        names={"AAPL": "Apple Inc.", "TSLA": "Tesla, Inc.", "NVDA": "NVIDIA Corporation"},
    )


@pytest.fixture
def client():
    from fastapi.testclient import TestClient
    from backend.main import app

    return TestClient(app)
