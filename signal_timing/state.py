"""
Shared data model for the trading-timing pipeline.

Everything the LLM produces is parsed into these models at the boundary;
raw dicts never travel past the indicator selector. TimingState is the
dict that flows through the LangGraph workflow.
"""

from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Dict, List, Literal, Optional, Tuple, TypedDict

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class IndicatorName(str, Enum):
    RSI = "RSI"
    MACD = "MACD"
    BOLLINGER_BANDS = "BollingerBands"
    STOCHASTIC = "Stochastic"


class FinalSignal(str, Enum):
    """Five-point judgment for the most recent data point."""

    STRONG_SELL = "강한 매도"
    SELL = "매도"
    HOLD = "보류"
    BUY = "매수"
    STRONG_BUY = "강한 매수"


class Direction(str, Enum):
    BUY = "매수"
    SELL = "매도"


class PricePoint(BaseModel):
    """One daily OHLCV bar."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    open: float = Field(gt=0)
    high: float = Field(gt=0)
    low: float = Field(gt=0)
    close: float = Field(gt=0)
    volume: int = Field(ge=0)


# Ordered by date, unique dates, at most ~252 points.
PriceHistory = Tuple[PricePoint, ...]


class IndicatorSpec(BaseModel):
    """An indicator chosen by the model with its concrete parameters."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: IndicatorName
    full_name: str = Field(default="", alias="fullName")
    params: Dict[str, float]

    @model_validator(mode="before")
    @classmethod
    def _default_full_name(cls, data):
        # The label is cosmetic; fall back to the indicator name.
        if isinstance(data, dict):
            label = data.get("fullName", data.get("full_name"))
            if not isinstance(label, str) or not label.strip():
                name = data.get("name", "")
                data = {**data, "fullName": name.value if isinstance(name, Enum) else str(name)}
                data.pop("full_name", None)
        return data


class RecommendedIndicatorSet(BaseModel):
    """Validated indicator selection plus the model's overall judgment."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    recommended_indicators: List[IndicatorSpec] = Field(
        alias="recommendedIndicators", min_length=3, max_length=3
    )
    final_signal: FinalSignal = Field(alias="finalSignal")
    rationale: str = Field(min_length=1)

    @field_validator("rationale")
    @classmethod
    def _rationale_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("rationale must not be empty")
        return value

    @field_validator("recommended_indicators")
    @classmethod
    def _unique_names(cls, value: List[IndicatorSpec]) -> List[IndicatorSpec]:
        names = [spec.name for spec in value]
        duplicates = sorted({n.value for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"duplicate indicators: {', '.join(duplicates)}")
        return value


class SignalEvent(BaseModel):
    """A buy/sell event on a specific historical date."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    direction: Direction
    rationale: str
    close: float
    indicator: Optional[IndicatorName] = None


class TimingAnalysis(BaseModel):
    """Everything the rendering layer and the alert job read."""

    model_config = ConfigDict(populate_by_name=True)

    ticker: str
    trading_style: Optional[str] = Field(default=None, alias="tradingStyle")
    recommended_indicators: List[IndicatorSpec] = Field(alias="recommendedIndicators")
    final_signal: FinalSignal = Field(alias="finalSignal")
    rationale: str
    price_history: List[PricePoint] = Field(alias="priceHistory")
    consolidated_timeline: List[SignalEvent] = Field(alias="consolidatedTimeline")


class ChatMessage(BaseModel):
    """A role-tagged conversation message sent to the LLM."""

    role: Literal["system", "user", "assistant"]
    content: str


class TimingState(TypedDict, total=False):
    """The state that flows through the LangGraph pipeline."""

    # Input
    ticker: str
    trading_style: Optional[str]
    resolve_ticker: bool

    # Populated by fetch_data
    prices: PriceHistory

    # Populated by select_indicators
    selection: RecommendedIndicatorSet

    # Populated by compute_signals (unconsolidated, unsorted)
    raw_signals: List[SignalEvent]

    # Populated by consolidate
    timeline: List[SignalEvent]
