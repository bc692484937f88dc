from __future__ import annotations

import os
from typing import Dict, List, Optional
from urllib.parse import quote

import requests

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{ticker}"
SEARCH_URL = "https://query1.finance.yahoo.com/v1/finance/search"

PERIODS = ("1d", "5d", "1mo", "6mo", "1y", "5y", "max")
DEFAULT_PERIOD = "1y"
SEARCH_TYPES = {"EQUITY", "ETF"}
SEARCH_LIMIT = 10


def _env_timeout(name: str) -> Optional[float]:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return None
    return max(0.1, float(raw))


_USER_AGENT = os.getenv("WG_USER_AGENT", "Mozilla/5.0").strip() or "Mozilla/5.0"
_UPSTREAM_TIMEOUT = _env_timeout("WG_UPSTREAM_TIMEOUT")


class UpstreamError(Exception):
    """Raised when the quote provider fails or returns an unusable payload."""


def _headers() -> Dict[str, str]:
    return {"User-Agent": _USER_AGENT}


def _get_json(url: str, *, params: Dict[str, object]) -> dict:
    try:
        resp = requests.get(url, params=params, headers=_headers(), timeout=_UPSTREAM_TIMEOUT)
    except requests.RequestException as exc:
        raise UpstreamError(f"request to {url} failed: {exc}") from exc
    if not resp.ok:
        raise UpstreamError(f"{url} returned HTTP {resp.status_code}")
    try:
        data = resp.json()
    except ValueError as exc:
        raise UpstreamError(f"{url} returned non-JSON") from exc
    if not isinstance(data, dict):
        raise UpstreamError(f"{url} returned {type(data).__name__}, expected object")
    return data


def fetch_chart(ticker: str, period: str = DEFAULT_PERIOD) -> Dict[str, object]:
    """Fetch a daily series for *ticker* and reshape it for ``/api/stock``.

    Raises UpstreamError on transport failures, non-2xx statuses and
    payloads that do not carry ``chart.result[0]``.
    """
    data = _get_json(
        CHART_URL.format(ticker=quote(ticker, safe="")),
        params={"range": period, "interval": "1d"},
    )
    return normalize_chart(data)


def normalize_chart(data: dict) -> Dict[str, object]:
    try:
        result = data["chart"]["result"][0]
        meta = result["meta"]
    except (KeyError, IndexError, TypeError) as exc:
        raise UpstreamError("chart payload has no result") from exc
    if not isinstance(result, dict) or not isinstance(meta, dict):
        raise UpstreamError("chart payload has no result")

    try:
        return _reshape_chart(result, meta)
    except (AttributeError, TypeError, ValueError) as exc:
        raise UpstreamError(f"malformed chart payload: {exc}") from exc


def _reshape_chart(result: dict, meta: dict) -> Dict[str, object]:
    timestamps = result.get("timestamp") or []
    series: dict = {}
    indicators = (result.get("indicators") or {}).get("quote") or []
    if indicators:
        series = indicators[0] or {}
    prices = series.get("close") or []
    volumes = series.get("volume") or []

    # No trades in range: Yahoo omits the timestamp array entirely.
    if not timestamps:
        prices, volumes = [], []
    if len(prices) != len(timestamps):
        raise UpstreamError(
            f"chart payload has {len(timestamps)} timestamps but {len(prices)} prices"
        )

    return {
        "ticker": meta.get("symbol"),
        "currency": meta.get("currency"),
        "regularMarketPrice": meta.get("regularMarketPrice"),
        "chartPreviousClose": meta.get("chartPreviousClose"),
        "timestamps": [int(ts) for ts in timestamps],
        "prices": list(prices),
        "volumes": list(volumes),
    }


def search_symbols(query: str) -> List[Dict[str, str]]:
    """Search symbols upstream, keeping equities and ETFs only."""
    data = _get_json(
        SEARCH_URL,
        params={"q": query, "quotesCount": SEARCH_LIMIT, "newsCount": 0},
    )
    quotes = data.get("quotes") or []
    if not isinstance(quotes, list):
        raise UpstreamError("search payload has no quote list")
    return filter_search(quotes)


def filter_search(quotes: List[dict]) -> List[Dict[str, str]]:
    results: List[Dict[str, str]] = []
    for item in quotes:
        if not isinstance(item, dict) or item.get("quoteType") not in SEARCH_TYPES:
            continue
        symbol = item.get("symbol", "")
        results.append(
            {
                "ticker": symbol,
                "name": item.get("longname") or item.get("shortname") or symbol,
                "exchange": item.get("exchange", ""),
                "type": item["quoteType"],
            }
        )
        if len(results) >= SEARCH_LIMIT:
            break
    return results
