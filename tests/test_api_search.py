"""GET /api/search: type filtering, truncation and swallowed upstream failures."""

from __future__ import annotations

from unittest.mock import patch

import requests

from conftest import FakeResponse, search_payload


def _quote(symbol, quote_type="EQUITY", **extra):
    item = {"symbol": symbol, "quoteType": quote_type, "exchange": "NMS"}
    item.update(extra)
    return item


def test_empty_query_returns_empty_list(client):
    with patch("backend.yahoo.requests.get") as get:
        for params in ({}, {"q": ""}, {"q": "   "}):
            r = client.get("/api/search", params=params)
            assert r.status_code == 200
            assert r.json() == []
    get.assert_not_called()


def test_filters_to_equity_and_etf(client):
    quotes = [
        _quote("AAPL", longname="Apple Inc.", shortname="Apple"),
        _quote("AAPL240119C00150000", "OPTION"),
        _quote("SPY", "ETF", shortname="SPDR S&P 500"),
        _quote("BTC-USD", "CRYPTOCURRENCY"),
        _quote("^GSPC", "INDEX"),
    ]
    with patch("backend.yahoo.requests.get", return_value=FakeResponse(200, search_payload(quotes))) as get:
        r = client.get("/api/search", params={"q": "apple"})
    assert r.status_code == 200
    assert r.json() == [
        {"ticker": "AAPL", "name": "Apple Inc.", "exchange": "NMS", "type": "EQUITY"},
        {"ticker": "SPY", "name": "SPDR S&P 500", "exchange": "NMS", "type": "ETF"},
    ]
    assert get.call_args.kwargs["params"] == {"q": "apple", "quotesCount": 10, "newsCount": 0}


def test_name_falls_back_to_symbol(client):
    with patch("backend.yahoo.requests.get", return_value=FakeResponse(200, search_payload([_quote("XYZ")]))):
        r = client.get("/api/search", params={"q": "xyz"})
    assert r.json()[0]["name"] == "XYZ"


def test_truncates_to_ten_in_upstream_order(client):
    quotes = [_quote(f"T{i}") for i in range(15)]
    with patch("backend.yahoo.requests.get", return_value=FakeResponse(200, search_payload(quotes))):
        r = client.get("/api/search", params={"q": "t"})
    tickers = [item["ticker"] for item in r.json()]
    assert tickers == [f"T{i}" for i in range(10)]


def test_upstream_failures_return_empty_list(client):
    cases = [
        {"side_effect": requests.Timeout("slow")},
        {"return_value": FakeResponse(503, {})},
        {"return_value": FakeResponse(200, text="oops")},
    ]
    for case in cases:
        with patch("backend.yahoo.requests.get", **case):
            r = client.get("/api/search", params={"q": "aapl"})
        assert r.status_code == 200
        assert r.json() == []


def test_malformed_search_payload_returns_empty_list(client):
    cases = [
        ({"quotes": "AAPL"}, []),
        ({"quotes": 7}, []),
        ({"quotes": [None, "x", _quote("AAPL")]}, ["AAPL"]),
    ]
    for payload, tickers in cases:
        with patch("backend.yahoo.requests.get", return_value=FakeResponse(200, payload)):
            r = client.get("/api/search", params={"q": "aapl"})
        assert r.status_code == 200, payload
        assert [item["ticker"] for item in r.json()] == tickers, payload
