from __future__ import annotations

from datetime import datetime, timezone
import logging
import os
from typing import Optional

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backend import yahoo

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    level = os.getenv("WG_LOG_LEVEL", "INFO").strip().upper() or "INFO"
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


configure_logging()

app = FastAPI(title="watchgrid API")

_DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:8501",
    "http://127.0.0.1:8501",
]
_ALLOWED_ORIGINS = [
    item.strip()
    for item in os.getenv("ALLOWED_ORIGINS", ",".join(_DEFAULT_ALLOWED_ORIGINS)).split(",")
    if item.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


@app.get("/api/health")
def health():
    return {"status": "ok", "ts": datetime.now(timezone.utc).isoformat()}


@app.get("/api/stock")
def get_stock(
    ticker: Optional[str] = Query(None, description="Ticker symbol, e.g. AAPL"),
    period: str = Query(yahoo.DEFAULT_PERIOD, description="One of 1d,5d,1mo,6mo,1y,5y,max"),
):
    ticker = (ticker or "").strip()
    if not ticker:
        return _error(400, "Ticker is required")
    period = period.strip().lower() or yahoo.DEFAULT_PERIOD
    if period not in yahoo.PERIODS:
        return _error(400, "Invalid period")

    try:
        return yahoo.fetch_chart(ticker, period)
    except yahoo.UpstreamError as exc:
        logger.warning("Error fetching stock data for %s (%s): %s", ticker, period, exc)
        return _error(500, "Failed to fetch stock data")


@app.get("/api/search")
def search(q: Optional[str] = Query(None, description="Free-text symbol query")):
    # Failures here degrade to an empty list, unlike /api/stock.
    query = (q or "").strip()
    if not query:
        return []
    try:
        return yahoo.search_symbols(query)
    except yahoo.UpstreamError as exc:
        logger.warning("Search error for %r: %s", query, exc)
        return []
