"""
Price history provider.

Uses Yahoo Finance (yfinance) for daily OHLCV bars. Failures are never
swallowed: an unknown ticker or an empty series raises InvalidInstrument,
anything else raises UpstreamUnavailable. This module does not retry.
"""

from __future__ import annotations

import logging
import math
from typing import Dict, List, Optional, Sequence

import yfinance as yf

from signal_timing.errors import InvalidInstrument, UpstreamUnavailable
from signal_timing.state import PriceHistory, PricePoint

logger = logging.getLogger(__name__)

TRADING_DAYS_PER_YEAR = 252


def _valid_number(value) -> bool:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return False
    return not math.isnan(number) and number > 0


def _rows_to_points(df) -> List[PricePoint]:
    """Convert a yfinance history frame into PricePoints.

    Prices are rounded to cents first; bars with a missing or non-positive
    rounded price, or without volume, are dropped.
    """
    by_date: Dict = {}
    for date, row in df.iterrows():
        values = [row["Open"], row["High"], row["Low"], row["Close"], row["Volume"]]
        if not all(_valid_number(v) for v in values):
            continue
        prices = [round(float(row[col]), 2) for col in ("Open", "High", "Low", "Close")]
        if not all(p > 0 for p in prices):
            continue
        day = date.date()
        by_date[day] = PricePoint(
            date=day,
            open=prices[0],
            high=prices[1],
            low=prices[2],
            close=prices[3],
            volume=int(row["Volume"]),
        )
    # One bar per date, ascending.
    return [by_date[day] for day in sorted(by_date)]


def get_price_history(ticker: str, days: int = TRADING_DAYS_PER_YEAR) -> PriceHistory:
    """Fetch up to ``days`` most recent daily bars for a ticker, oldest first.

    Raises:
        InvalidInstrument: the ticker is unknown or has no usable bars.
        UpstreamUnavailable: the request to Yahoo Finance failed.
    """
    ticker = ticker.strip().upper()
    if not ticker:
        raise InvalidInstrument("티커가 비어 있습니다.")

    try:
        stock = yf.Ticker(ticker)
        df = stock.history(period="1y", interval="1d", auto_adjust=False)
    except Exception as e:
        logger.error("Error fetching price data for %s: %s", ticker, e)
        raise UpstreamUnavailable(
            f"'{ticker}'의 주가 데이터 조회 중 오류가 발생했습니다: {e}"
        ) from e

    if df is None or df.empty:
        logger.warning("No price data available for %s", ticker)
        raise InvalidInstrument(f"'{ticker}'는 존재하지 않는 티커입니다. 다시 확인해주세요.")

    points = _rows_to_points(df)
    if not points:
        logger.warning("Price data for %s contained no usable bars", ticker)
        raise InvalidInstrument(
            f"'{ticker}'에 대한 주가 데이터를 찾을 수 없습니다. 티커를 확인해주세요."
        )

    logger.info("Fetched %d daily bars for %s", min(len(points), days), ticker)
    return tuple(points[-days:])


def recent_closes(prices: PriceHistory, count: int = 30) -> List[dict]:
    """The last ``count`` bars as compact dicts, for prompting."""
    return [
        {"date": p.date.isoformat(), "close": p.close, "volume": p.volume}
        for p in prices[-count:]
    ]


def last_close(prices: Sequence[PricePoint]) -> Optional[float]:
    return prices[-1].close if prices else None
