"""Async client for the two proxy endpoints served by ``backend.main``."""

from __future__ import annotations

import os
from typing import List, Optional

import httpx

from watchgrid.models import Quote, SearchResult

API_BASE = os.getenv("WG_API_BASE", "http://127.0.0.1:8000").strip().rstrip("/")


class ApiError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class StockApi:
    """Thin wrapper over ``/api/stock`` and ``/api/search``.

    No timeout is applied to requests; a hung proxy call hangs the caller.
    Pass *client* to reuse an existing ``httpx.AsyncClient`` (e.g. one
    bound to an ASGI transport).
    """

    def __init__(self, base_url: str = API_BASE, client: Optional[httpx.AsyncClient] = None):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=None)

    async def __aenter__(self) -> "StockApi":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _get(self, path: str, params: dict):
        try:
            resp = await self._client.get(path, params=params)
        except httpx.HTTPError as exc:
            raise ApiError(f"{path} unavailable: {exc}") from exc
        if resp.status_code >= 400:
            try:
                message = resp.json().get("error") or resp.reason_phrase
            except (ValueError, AttributeError):
                message = resp.reason_phrase
            raise ApiError(message, status_code=resp.status_code)
        try:
            return resp.json()
        except ValueError as exc:
            raise ApiError(f"{path} returned non-JSON", status_code=resp.status_code) from exc

    async def get_quote(self, ticker: str, period: str = "1y") -> Quote:
        payload = await self._get("/api/stock", {"ticker": ticker, "period": period})
        try:
            return Quote.from_payload(payload)
        except (AttributeError, TypeError, ValueError) as exc:
            raise ApiError(f"malformed quote for {ticker}: {exc}") from exc

    async def search(self, query: str) -> List[SearchResult]:
        payload = await self._get("/api/search", {"q": query})
        if payload is None:
            return []
        if not isinstance(payload, list) or not all(isinstance(item, dict) for item in payload):
            raise ApiError(f"malformed search results for {query!r}")
        return [SearchResult.from_payload(item) for item in payload]
