from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Tuple


@dataclass(frozen=True)
class Quote:
    """One ``/api/stock`` snapshot: headline prices plus the daily series."""

    ticker: str
    currency: str
    last_price: float
    previous_close: float
    timestamps: Tuple[int, ...] = ()
    prices: Tuple[Optional[float], ...] = ()
    volumes: Tuple[Optional[int], ...] = ()

    def __post_init__(self):
        if len(self.timestamps) != len(self.prices):
            raise ValueError(
                f"{self.ticker}: {len(self.timestamps)} timestamps but {len(self.prices)} prices"
            )

    @classmethod
    def from_payload(cls, payload: dict) -> "Quote":
        return cls(
            ticker=payload.get("ticker") or "",
            currency=payload.get("currency") or "",
            last_price=float(payload.get("regularMarketPrice") or 0.0),
            previous_close=float(payload.get("chartPreviousClose") or 0.0),
            timestamps=tuple(int(ts) for ts in payload.get("timestamps") or ()),
            prices=tuple(payload.get("prices") or ()),
            volumes=tuple(payload.get("volumes") or ()),
        )

    @property
    def change(self) -> float:
        return self.last_price - self.previous_close

    @property
    def change_pct(self) -> float:
        if not self.previous_close:
            return 0.0
        return self.change / self.previous_close * 100

    @property
    def is_positive(self) -> bool:
        return self.change >= 0


@dataclass(frozen=True)
class SearchResult:
    ticker: str
    name: str
    exchange: str
    type: str

    @classmethod
    def from_payload(cls, payload: dict) -> "SearchResult":
        ticker = payload.get("ticker") or ""
        return cls(
            ticker=ticker,
            name=payload.get("name") or ticker,
            exchange=payload.get("exchange") or "",
            type=payload.get("type") or "",
        )


@dataclass(frozen=True)
class WatchlistEntry:
    id: str
    ticker: str
    display_name: str
    quote: Quote


@dataclass(frozen=True)
class TapeQuote:
    ticker: str
    price: float
    change: float

    @property
    def is_positive(self) -> bool:
        return self.change >= 0


@dataclass(frozen=True)
class Notice:
    level: str  # success | error | info
    message: str


@dataclass
class NoticeQueue:
    items: List[Notice] = field(default_factory=list)

    def push(self, level: str, message: str) -> Notice:
        notice = Notice(level, message)
        self.items.append(notice)
        return notice

    def drain(self) -> List[Notice]:
        out, self.items = self.items, []
        return out
