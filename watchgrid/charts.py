from __future__ import annotations

from typing import Optional, Sequence

import pandas as pd

from watchgrid.models import Quote

UP = "#10b981"
DOWN = "#ef4444"

PERIOD_LABELS = {
    "1d": "1D",
    "5d": "5D",
    "1mo": "1M",
    "6mo": "6M",
    "1y": "1Y",
    "5y": "5Y",
    "max": "MAX",
}


def trend_color(quote: Quote) -> str:
    return UP if quote.is_positive else DOWN


def sparkline_svg(prices: Sequence[Optional[float]], color: str, width: int = 120, height: int = 32) -> str:
    """Render *prices* as an inline SVG polyline; gaps (None) are skipped."""
    points = [(i, float(p)) for i, p in enumerate(prices) if p is not None]
    if len(points) < 2:
        return ""
    first, last = points[0][0], points[-1][0]
    span = last - first or 1
    mn = min(p for _, p in points)
    mx = max(p for _, p in points)
    rng = mx - mn if mx != mn else 1
    pts = []
    for i, p in points:
        x = round((i - first) / span * width, 1)
        y = round(height - ((p - mn) / rng) * (height - 2) - 1, 1)
        pts.append(f"{x},{y}")
    return (f'<svg viewBox="0 0 {width} {height}" width="100%" height="{height}" preserveAspectRatio="none">'
            f'<polyline points="{" ".join(pts)}" fill="none" stroke="{color}" stroke-width="2"/></svg>')


def price_frame(quote: Quote) -> pd.DataFrame:
    """Daily closes indexed by UTC timestamp, ready for ``st.line_chart``."""
    index = pd.to_datetime(list(quote.timestamps), unit="s", utc=True)
    closes = pd.Series(list(quote.prices), dtype="float64").to_numpy()
    frame = pd.DataFrame({"Close": closes}, index=index)
    frame.index.name = "Date"
    return frame


def format_change(quote: Quote) -> str:
    sign = "+" if quote.is_positive else ""
    return f"{sign}{quote.change:.2f} ({quote.change_pct:.2f}%)"
