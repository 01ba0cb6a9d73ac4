"""
Technical indicator series computed from plain price lists.

Every function returns series aligned to its input: element ``i`` belongs
to input bar ``i`` and is None while the indicator is still warming up.
Callers can therefore read the date of a value straight from the price
history at the same index, whatever the indicator's warm-up length.

Formulas follow the common charting conventions: SMA-seeded EMA, Wilder
RSI rounded to two decimals, population standard deviation for Bollinger
Bands and SMA-smoothed %D for the Stochastic Oscillator.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from signal_timing.errors import ComputationError

Series = List[Optional[float]]


def _check_window(name: str, length: int, period: int, available: int) -> None:
    if period < 1:
        raise ComputationError(f"{name}: period must be positive, got {period}")
    if available < length:
        raise ComputationError(
            f"{name}: need at least {length} data points, got {available}"
        )


# ---------------------------------------------------------------------------
# Moving averages
# ---------------------------------------------------------------------------

def sma_series(values: Sequence[float], period: int) -> Series:
    """Simple moving average; first value at index ``period - 1``."""
    _check_window("SMA", period, period, len(values))
    result: Series = [None] * len(values)
    window_sum = sum(values[:period])
    result[period - 1] = window_sum / period
    for i in range(period, len(values)):
        window_sum += values[i] - values[i - period]
        result[i] = window_sum / period
    return result


def ema_series(values: Sequence[Optional[float]], period: int) -> Series:
    """Exponential moving average seeded with the SMA of the first ``period`` values.

    Leading None values are skipped, so this can smooth another series.
    """
    start = next((i for i, v in enumerate(values) if v is not None), len(values))
    _check_window("EMA", period, period, len(values) - start)

    multiplier = 2.0 / (period + 1)
    result: Series = [None] * len(values)
    seed_end = start + period - 1
    prev = sum(values[start:seed_end + 1]) / period
    result[seed_end] = prev
    for i in range(seed_end + 1, len(values)):
        prev = (values[i] - prev) * multiplier + prev
        result[i] = prev
    return result


# ---------------------------------------------------------------------------
# RSI: Wilder's smoothing
# ---------------------------------------------------------------------------

def rsi_series(closes: Sequence[float], period: int = 14) -> Series:
    """Relative Strength Index; first value at index ``period``."""
    _check_window("RSI", period + 1, period, len(closes))

    deltas = [closes[i] - closes[i - 1] for i in range(1, len(closes))]
    result: Series = [None] * len(closes)

    avg_gain = sum(max(d, 0.0) for d in deltas[:period]) / period
    avg_loss = sum(max(-d, 0.0) for d in deltas[:period]) / period
    result[period] = _rsi_value(avg_gain, avg_loss)

    for i in range(period, len(deltas)):
        d = deltas[i]
        avg_gain = (avg_gain * (period - 1) + max(d, 0.0)) / period
        avg_loss = (avg_loss * (period - 1) + max(-d, 0.0)) / period
        result[i + 1] = _rsi_value(avg_gain, avg_loss)

    return result


def _rsi_value(avg_gain: float, avg_loss: float) -> float:
    if avg_loss == 0:
        return 100.0
    if avg_gain == 0:
        return 0.0
    rs = avg_gain / avg_loss
    return round(100.0 - (100.0 / (1.0 + rs)), 2)


# ---------------------------------------------------------------------------
# MACD
# ---------------------------------------------------------------------------

def macd_series(
    closes: Sequence[float],
    fast_period: int = 12,
    slow_period: int = 26,
    signal_period: int = 9,
) -> Tuple[Series, Series]:
    """MACD line and signal line.

    The MACD line starts at index ``slow_period - 1``; the signal line is
    the EMA of the MACD line and starts ``signal_period - 1`` bars later.
    """
    for label, period in (("fast", fast_period), ("slow", slow_period), ("signal", signal_period)):
        if period < 1:
            raise ComputationError(f"MACD: {label} period must be positive, got {period}")
    _check_window("MACD", max(fast_period, slow_period), slow_period, len(closes))

    fast = ema_series(closes, fast_period)
    slow = ema_series(closes, slow_period)
    first = max(fast_period, slow_period) - 1

    macd_line: Series = [None] * len(closes)
    for i in range(first, len(closes)):
        macd_line[i] = fast[i] - slow[i]

    defined = len(closes) - first
    if defined >= signal_period:
        signal_line = ema_series(macd_line, signal_period)
    else:
        signal_line = [None] * len(closes)

    return macd_line, signal_line


# ---------------------------------------------------------------------------
# Bollinger Bands
# ---------------------------------------------------------------------------

def bollinger_series(
    closes: Sequence[float], period: int = 20, num_std: float = 2.0
) -> Tuple[Series, Series, Series]:
    """Middle (SMA), upper and lower bands; first values at ``period - 1``."""
    _check_window("BollingerBands", period, period, len(closes))

    middle = sma_series(closes, period)
    upper: Series = [None] * len(closes)
    lower: Series = [None] * len(closes)

    for i in range(period - 1, len(closes)):
        window = closes[i - period + 1:i + 1]
        mean = middle[i]
        std_dev = (sum((x - mean) ** 2 for x in window) / period) ** 0.5
        upper[i] = mean + num_std * std_dev
        lower[i] = mean - num_std * std_dev

    return middle, upper, lower


# ---------------------------------------------------------------------------
# Stochastic Oscillator (%K, %D)
# ---------------------------------------------------------------------------

def stochastic_series(
    highs: Sequence[float],
    lows: Sequence[float],
    closes: Sequence[float],
    period: int = 14,
    signal_period: int = 3,
) -> Tuple[Series, Series]:
    """%K over ``period`` bars and %D = SMA(%K, ``signal_period``)."""
    if signal_period < 1:
        raise ComputationError(f"Stochastic: signal period must be positive, got {signal_period}")
    _check_window("Stochastic", period, period, len(closes))

    k_values: Series = [None] * len(closes)
    for i in range(period - 1, len(closes)):
        high = max(highs[i - period + 1:i + 1])
        low = min(lows[i - period + 1:i + 1])
        if high - low == 0:
            k_values[i] = 0.0
        else:
            k_values[i] = (closes[i] - low) / (high - low) * 100

    d_values: Series = [None] * len(closes)
    first_k = period - 1
    for i in range(first_k + signal_period - 1, len(closes)):
        window = k_values[i - signal_period + 1:i + 1]
        d_values[i] = sum(window) / signal_period

    return k_values, d_values
