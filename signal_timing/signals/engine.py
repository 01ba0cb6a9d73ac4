"""
Signal engine: replays the model's indicator choices over the full
price history and emits every historical buy/sell event.

Each indicator has its own rule. Events from all indicators are
concatenated unsorted; de-duplication is the consolidator's job.
An indicator that cannot be computed (too little history, bad params)
is logged and skipped rather than failing the request.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Mapping, Sequence

from signal_timing.errors import ComputationError
from signal_timing.state import (
    Direction,
    IndicatorName,
    IndicatorSpec,
    PricePoint,
    SignalEvent,
)
from signal_timing.tools.indicators import (
    Series,
    bollinger_series,
    macd_series,
    rsi_series,
    stochastic_series,
)

logger = logging.getLogger(__name__)

DEFAULT_PARAMS: Dict[IndicatorName, Dict[str, float]] = {
    IndicatorName.RSI: {"period": 14, "overbought": 70, "oversold": 30},
    IndicatorName.MACD: {"fastPeriod": 12, "slowPeriod": 26, "signalPeriod": 9},
    IndicatorName.BOLLINGER_BANDS: {"period": 20, "stdDev": 2},
    IndicatorName.STOCHASTIC: {"period": 14, "signalPeriod": 3},
}

STOCH_OVERSOLD = 20
STOCH_OVERBOUGHT = 80


def resolve_params(name: IndicatorName, params: Mapping[str, float]) -> Dict[str, float]:
    """Model-chosen params with defaults filled in for absent fields."""
    resolved = dict(DEFAULT_PARAMS[name])
    for key, value in params.items():
        if key in resolved and value is not None:
            resolved[key] = value
    return resolved


def _period(params: Mapping[str, float], key: str) -> int:
    value = params[key]
    try:
        return int(round(value))
    except (TypeError, ValueError, OverflowError) as exc:
        raise ComputationError(f"invalid {key}: {value}") from exc


def _fmt(value: float) -> str:
    return f"{value:g}"


def _event(point: PricePoint, direction: Direction, rationale: str, indicator: IndicatorName) -> SignalEvent:
    return SignalEvent(
        date=point.date,
        direction=direction,
        rationale=rationale,
        close=point.close,
        indicator=indicator,
    )


# ---------------------------------------------------------------------------
# RSI: level thresholds
# ---------------------------------------------------------------------------

def rsi_signals(history: Sequence[PricePoint], params: Mapping[str, float]) -> List[SignalEvent]:
    period = _period(params, "period")
    overbought = float(params["overbought"])
    oversold = float(params["oversold"])

    rsi = rsi_series([p.close for p in history], period)
    events = []
    for point, value in zip(history, rsi):
        if value is None:
            continue
        if value < oversold:
            events.append(_event(
                point, Direction.BUY,
                f"RSI ({value:.2f})가 과매도 구간({_fmt(oversold)})에 진입했습니다.",
                IndicatorName.RSI,
            ))
        elif value > overbought:
            events.append(_event(
                point, Direction.SELL,
                f"RSI ({value:.2f})가 과매수 구간({_fmt(overbought)})에 진입했습니다.",
                IndicatorName.RSI,
            ))
    return events


# ---------------------------------------------------------------------------
# MACD: line/signal crossovers
# ---------------------------------------------------------------------------

def macd_crossover_signals(
    history: Sequence[PricePoint], macd_line: Series, signal_line: Series
) -> List[SignalEvent]:
    """Golden/dead crosses between two aligned series.

    Only pairs of consecutive bars where both lines are defined count.
    """
    events = []
    for i in range(1, len(history)):
        prev_macd, prev_signal = macd_line[i - 1], signal_line[i - 1]
        curr_macd, curr_signal = macd_line[i], signal_line[i]
        if None in (prev_macd, prev_signal, curr_macd, curr_signal):
            continue
        if prev_macd < prev_signal and curr_macd > curr_signal:
            events.append(_event(
                history[i], Direction.BUY,
                "MACD선이 시그널선을 상향 돌파했습니다 (골든 크로스).",
                IndicatorName.MACD,
            ))
        elif prev_macd > prev_signal and curr_macd < curr_signal:
            events.append(_event(
                history[i], Direction.SELL,
                "MACD선이 시그널선을 하향 돌파했습니다 (데드 크로스).",
                IndicatorName.MACD,
            ))
    return events


def macd_signals(history: Sequence[PricePoint], params: Mapping[str, float]) -> List[SignalEvent]:
    macd_line, signal_line = macd_series(
        [p.close for p in history],
        fast_period=_period(params, "fastPeriod"),
        slow_period=_period(params, "slowPeriod"),
        signal_period=_period(params, "signalPeriod"),
    )
    return macd_crossover_signals(history, macd_line, signal_line)


# ---------------------------------------------------------------------------
# Bollinger Bands: close outside the envelope
# ---------------------------------------------------------------------------

def bollinger_signals(history: Sequence[PricePoint], params: Mapping[str, float]) -> List[SignalEvent]:
    _, upper, lower = bollinger_series(
        [p.close for p in history],
        period=_period(params, "period"),
        num_std=float(params["stdDev"]),
    )
    events = []
    for point, up, low in zip(history, upper, lower):
        if up is None or low is None:
            continue
        if point.close < low:
            events.append(_event(
                point, Direction.BUY,
                f"주가가 볼린저 밴드 하단({low:.2f}) 아래로 떨어졌습니다.",
                IndicatorName.BOLLINGER_BANDS,
            ))
        elif point.close > up:
            events.append(_event(
                point, Direction.SELL,
                f"주가가 볼린저 밴드 상단({up:.2f}) 위로 치솟았습니다.",
                IndicatorName.BOLLINGER_BANDS,
            ))
    return events


# ---------------------------------------------------------------------------
# Stochastic: %K/%D crosses out of the extreme zones
# ---------------------------------------------------------------------------

def stochastic_crossover_signals(
    history: Sequence[PricePoint], k_line: Series, d_line: Series
) -> List[SignalEvent]:
    events = []
    for i in range(1, len(history)):
        prev_k, prev_d = k_line[i - 1], d_line[i - 1]
        curr_k, curr_d = k_line[i], d_line[i]
        if None in (prev_k, prev_d, curr_k, curr_d):
            continue
        if prev_k < STOCH_OVERSOLD and prev_d < STOCH_OVERSOLD and curr_k > curr_d:
            events.append(_event(
                history[i], Direction.BUY,
                "스토캐스틱 %K선이 과매도 구간에서 %D선을 상향 돌파했습니다.",
                IndicatorName.STOCHASTIC,
            ))
        elif prev_k > STOCH_OVERBOUGHT and prev_d > STOCH_OVERBOUGHT and curr_k < curr_d:
            events.append(_event(
                history[i], Direction.SELL,
                "스토캐스틱 %K선이 과매수 구간에서 %D선을 하향 돌파했습니다.",
                IndicatorName.STOCHASTIC,
            ))
    return events


def stochastic_signals(history: Sequence[PricePoint], params: Mapping[str, float]) -> List[SignalEvent]:
    k_line, d_line = stochastic_series(
        [p.high for p in history],
        [p.low for p in history],
        [p.close for p in history],
        period=_period(params, "period"),
        signal_period=_period(params, "signalPeriod"),
    )
    return stochastic_crossover_signals(history, k_line, d_line)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

SIGNAL_RULES: Dict[IndicatorName, Callable[[Sequence[PricePoint], Mapping[str, float]], List[SignalEvent]]] = {
    IndicatorName.RSI: rsi_signals,
    IndicatorName.MACD: macd_signals,
    IndicatorName.BOLLINGER_BANDS: bollinger_signals,
    IndicatorName.STOCHASTIC: stochastic_signals,
}


def compute_signals(
    history: Sequence[PricePoint], indicators: Sequence[IndicatorSpec]
) -> List[SignalEvent]:
    """All buy/sell events fired by the given indicators, unsorted."""
    events: List[SignalEvent] = []
    for spec in indicators:
        params = resolve_params(spec.name, spec.params)
        try:
            fired = SIGNAL_RULES[spec.name](history, params)
        except ComputationError as exc:
            logger.warning("Skipping %s: %s", spec.name.value, exc.message)
            continue
        logger.debug("%s fired %d events", spec.name.value, len(fired))
        events.extend(fired)
    return events
