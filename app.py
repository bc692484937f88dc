import html
import logging
import os

import streamlit as st

from watchgrid.charts import PERIOD_LABELS, format_change, price_frame, sparkline_svg, trend_color
from watchgrid.controller import ADD_PERIOD, TAPE_INTERVAL
from watchgrid.session import WatchSession

st.set_page_config(layout="wide", page_title="watchgrid", initial_sidebar_state="collapsed")

# ── Palette ──────────────────────────────────────────────────────────────────
UP      = "#10b981"
DOWN    = "#ef4444"
DIM     = "#6a7a73"
FONT_MONO = "'IBM Plex Mono','SF Mono','Fira Code',monospace"
GRID_COLUMNS = 3
NOTICE_ICONS = {"success": "✅", "error": "⚠️", "info": "ℹ️"}

logging.basicConfig(
    level=os.getenv("WG_LOG_LEVEL", "INFO").strip().upper() or "INFO",
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)


# ── State ────────────────────────────────────────────────────────────────────
# The session is torn down (tape stopped, client closed, loop stopped) when
# Streamlit drops this tab's session state.
if "session" not in st.session_state:
    st.session_state.session = WatchSession()

session = st.session_state.session
controller = session.controller
tape = session.tape


def show_notices():
    for notice in session.drain_notices():
        st.toast(notice.message, icon=NOTICE_ICONS.get(notice.level))

# ── Ticker tape ──────────────────────────────────────────────────────────────
@st.fragment(run_every=TAPE_INTERVAL)
def ticker_tape():
    cells = []
    for ticker, cell in tape.items():
        if cell is None:
            cells.append(f"<b>{html.escape(ticker)}</b>")
            continue
        color = UP if cell.is_positive else DOWN
        sign = "+" if cell.is_positive else ""
        cells.append(
            f"<b>{html.escape(ticker)}</b> ${cell.price:.2f} "
            f"<span style='color:{color}'>{sign}{cell.change:.2f}</span>"
        )
    st.markdown(
        f"<div style='font-family:{FONT_MONO};white-space:nowrap;overflow-x:auto'>"
        + " &nbsp;·&nbsp; ".join(cells)
        + "</div>",
        unsafe_allow_html=True,
    )


# ── Search ───────────────────────────────────────────────────────────────────
def search_box():
    query = st.text_input("Search stocks", placeholder="Search stocks... (e.g., AAPL, Tesla)",
                          label_visibility="collapsed")
    if not query.strip():
        st.caption("Popular stocks")
        columns = st.columns(len(session.quick_picks))
        for column, ticker in zip(columns, session.quick_picks):
            if column.button(f"+ {ticker}", key=f"pick_{ticker}"):
                session.add(ticker)
        return
    results = session.suggestions(query)
    if not results:
        st.caption("No stocks found.")
        return
    for result in results:
        left, right = st.columns([6, 1])
        left.markdown(f"**{html.escape(result.ticker)}** &nbsp; {html.escape(result.name)} "
                      f"<span style='color:{DIM}'>{html.escape(result.exchange)} · {result.type}</span>",
                      unsafe_allow_html=True)
        if right.button("Add", key=f"add_{result.ticker}"):
            session.add(result.ticker)


# ── In-flight adds ───────────────────────────────────────────────────────────
@st.fragment(run_every=1.0)
def pending_adds():
    if not session.pending:
        return
    if controller.loading:
        with st.container(border=True):
            st.caption(f"Loading {controller.loading}…")
    finished = session.finished_adds()
    if finished:
        for fut in finished:
            fut.result()
        st.rerun()


# ── Expanded dialog ──────────────────────────────────────────────────────────
@st.dialog("Details", width="large")
def expanded_dialog(entry):
    quote = entry.quote
    head, badge = st.columns([5, 1])
    head.subheader(entry.ticker)
    head.caption(entry.display_name)
    badge.markdown(f"`{quote.currency}`")
    st.metric("Last", f"${quote.last_price:.2f}", format_change(quote))
    st.caption(f"Period: {PERIOD_LABELS[ADD_PERIOD]}")
    frame = price_frame(quote)
    if frame.empty:
        st.caption("No price history.")
    else:
        st.line_chart(frame, y="Close", color=UP)
    if st.button("Close"):
        st.rerun()


# ── Cards ────────────────────────────────────────────────────────────────────
def stock_card(entry, index, count):
    quote = entry.quote
    with st.container(border=True):
        st.markdown(f"### {html.escape(entry.ticker)}")
        st.caption(entry.display_name)
        st.metric("Price", f"${quote.last_price:.2f}", format_change(quote), label_visibility="collapsed")
        svg = sparkline_svg(quote.prices, trend_color(quote))
        if svg:
            st.markdown(svg, unsafe_allow_html=True)
        prev_col, next_col, expand_col, remove_col = st.columns(4)
        if prev_col.button("◀", key=f"prev_{entry.id}", disabled=index == 0):
            session.reorder(entry.id, index - 1)
            st.rerun()
        if next_col.button("▶", key=f"next_{entry.id}", disabled=index == count - 1):
            session.reorder(entry.id, index + 1)
            st.rerun()
        if expand_col.button("⤢", key=f"expand_{entry.id}"):
            session.expand(entry.id)
            st.rerun()
        if remove_col.button("✕", key=f"remove_{entry.id}"):
            session.remove(entry.id)
            st.rerun()


def card_grid():
    entries = controller.entries
    for row_start in range(0, len(entries), GRID_COLUMNS):
        columns = st.columns(GRID_COLUMNS)
        for offset, entry in enumerate(entries[row_start:row_start + GRID_COLUMNS]):
            with columns[offset]:
                stock_card(entry, row_start + offset, len(entries))


ticker_tape()
search_box()
pending_adds()
card_grid()
show_notices()
expanded = controller.expanded
if expanded is not None:
    # st.dialog is one-shot: it stays open until the next full rerun.
    session.collapse()
    expanded_dialog(expanded)
