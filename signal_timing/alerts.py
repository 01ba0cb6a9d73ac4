"""
Alert payloads for the daily signal email.

This is the interface the external email job imports: it runs a timing
analysis per subscribed ticker once a day and calls build_signal_alert,
and calls build_welcome_alert on subscription. Nothing in this package or
its entry points calls these functions. Delivery (scheduling, SMTP,
subscriber storage) lives in that job; this module only decides whether
a ticker's result is worth sending and what the message carries.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from pydantic import BaseModel

from signal_timing.state import FinalSignal, IndicatorSpec, TimingAnalysis

DISCLAIMER = "본 정보는 투자 참고용이며, 최종 투자 결정은 본인의 책임하에 이루어져야 합니다."


class SignalAlert(BaseModel):
    ticker: str
    subject: str
    final_signal: FinalSignal
    indicators: List[str]
    rationale: str
    disclaimer: str = DISCLAIMER


class WelcomeAlert(BaseModel):
    ticker: str
    subject: str
    indicators: List[str]


def _indicator_labels(indicators: Sequence[IndicatorSpec]) -> List[str]:
    return [f"{spec.full_name} ({spec.name.value})" for spec in indicators]


def build_signal_alert(analysis: TimingAnalysis) -> Optional[SignalAlert]:
    """Daily alert for a subscribed ticker, or None when the signal is Hold."""
    if analysis.final_signal == FinalSignal.HOLD:
        return None

    return SignalAlert(
        ticker=analysis.ticker,
        subject=f"오늘의 {analysis.ticker} 매매 신호: {analysis.final_signal.value}",
        final_signal=analysis.final_signal,
        indicators=_indicator_labels(analysis.recommended_indicators),
        rationale=analysis.rationale,
    )


def build_welcome_alert(ticker: str, indicators: Sequence[IndicatorSpec]) -> WelcomeAlert:
    """Confirmation sent when someone subscribes to a ticker."""
    return WelcomeAlert(
        ticker=ticker,
        subject=f"{ticker} 주식 신호 알림 구독 완료",
        indicators=_indicator_labels(indicators),
    )
