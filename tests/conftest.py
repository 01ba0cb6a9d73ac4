import datetime as dt
import logging

import pytest

from signal_timing.llm.gateway import LLMGateway
from signal_timing.state import PricePoint

# Keep log output out of test results
logging.basicConfig(level=logging.CRITICAL)


class FakeChatClient:
    """Chat client that replays scripted replies; an Exception entry is raised."""

    def __init__(self, replies):
        self.replies = list(replies)
        self.calls = []

    def complete(self, system_prompt, messages):
        self.calls.append((system_prompt, list(messages)))
        reply = self.replies.pop(0) if len(self.replies) > 1 else self.replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply


def build_history(closes, start=dt.date(2024, 1, 1), spread=1.0):
    """Daily bars with the given closes; high/low sit ``spread`` around the close."""
    points = []
    for i, close in enumerate(closes):
        points.append(PricePoint(
            date=start + dt.timedelta(days=i),
            open=close,
            high=close + spread,
            low=close - spread,
            close=close,
            volume=1_000 + i,
        ))
    return tuple(points)


@pytest.fixture
def make_history():
    return build_history


@pytest.fixture
def fake_client():
    return FakeChatClient


@pytest.fixture
def make_gateway():
    """Gateway over a FakeChatClient with sleeps recorded instead of slept."""

    def _make(replies, max_attempts=3, retry_delay=1.0):
        client = FakeChatClient(replies)
        sleeps = []
        gateway = LLMGateway(
            client, max_attempts=max_attempts, retry_delay=retry_delay, sleep=sleeps.append
        )
        gateway.sleeps = sleeps
        return gateway, client

    return _make


@pytest.fixture
def v_shape_closes():
    """60 closes: a flat ±1 zig-zag, a three-day drop of 4, then a steady rise.

    RSI(14) stays near 50 during the zig-zag and only dips below 30 on the
    last day of the drop (index 42).
    """
    closes = [100.0 if i % 2 == 0 else 101.0 for i in range(40)]
    closes += [97.0, 93.0, 89.0]
    closes += [89.0 + 4 * (i + 1) for i in range(17)]
    return closes


@pytest.fixture
def selection_payload():
    return {
        "recommendedIndicators": [
            {"name": "RSI", "fullName": "상대 강도 지수 (RSI)",
             "params": {"period": 14, "overbought": 70, "oversold": 30}},
            {"name": "MACD", "fullName": "이동 평균 수렴 발산 (MACD)",
             "params": {"fastPeriod": 12, "slowPeriod": 26, "signalPeriod": 9}},
            {"name": "BollingerBands", "fullName": "볼린저 밴드",
             "params": {"period": 20, "stdDev": 2}},
        ],
        "finalSignal": "매수",
        "rationale": "RSI가 과매도 구간에서 반등하고 MACD 골든 크로스가 발생했습니다.",
    }
