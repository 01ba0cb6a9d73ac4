"""
Indicator Selector: asks the model to pick three indicators with concrete
parameters for a ticker and trading style, plus an overall judgment for
the latest bar.

The model's JSON is validated into a RecommendedIndicatorSet before it is
returned. Nothing is repaired here: any mismatch is MalformedModelOutput.
"""

from __future__ import annotations

import json
import logging
from typing import List, Optional, Sequence

from pydantic import ValidationError

from signal_timing.errors import MalformedModelOutput
from signal_timing.llm.gateway import LLMGateway
from signal_timing.state import ChatMessage, PricePoint, RecommendedIndicatorSet
from signal_timing.tools.market_data import recent_closes

logger = logging.getLogger(__name__)

RECENT_BARS_IN_PROMPT = 30


SYSTEM_PROMPT = """당신은 한국인을 상대하는 주식 기술 분석 전문 AI 어시스턴트입니다.
제공된 주식 티커, 거래 전략, 최근 주가를 바탕으로 아래 목록에서 가장 적합한 기술 지표 3개를 선택하고,
각 지표에 사용할 구체적인 숫자 파라미터를 정하십시오. 그런 다음 선택된 지표들을 종합하여
가장 최근 거래일 기준의 최종 매매 신호와 그 근거를 제시하십시오.

**사용 가능한 기술 지표와 파라미터 (이 4가지 외에는 절대 사용하지 마십시오):**
1. "RSI" (상대 강도 지수): period, overbought, oversold (기본값 14, 70, 30)
2. "MACD" (이동 평균 수렴 발산): fastPeriod, slowPeriod, signalPeriod (기본값 12, 26, 9)
3. "BollingerBands" (볼린저 밴드): period, stdDev (기본값 20, 2)
4. "Stochastic" (스토캐스틱 오실레이터): period, signalPeriod (기본값 14, 3)

**출력 JSON 스키마:**
```json
{
  "recommendedIndicators": [
    {"name": "RSI", "fullName": "상대 강도 지수 (RSI)", "params": {"period": 14, "overbought": 70, "oversold": 30}},
    {"name": "MACD", "fullName": "이동 평균 수렴 발산 (MACD)", "params": {"fastPeriod": 12, "slowPeriod": 26, "signalPeriod": 9}},
    {"name": "BollingerBands", "fullName": "볼린저 밴드", "params": {"period": 20, "stdDev": 2}}
  ],
  "finalSignal": "매수",
  "rationale": "세 지표를 종합한 판단 근거"
}
```

**매우 중요한 규칙:**
- 'recommendedIndicators'에는 서로 다른 지표가 정확히 3개 있어야 합니다.
- 'name'은 반드시 "RSI", "MACD", "BollingerBands", "Stochastic" 중 하나여야 합니다.
- 'params'의 값은 모두 숫자여야 합니다.
- 'finalSignal'은 반드시 "강한 매수", "매수", "보류", "매도", "강한 매도" 5가지 중 하나여야 합니다.
- 'rationale'은 비어 있지 않은 한글 문자열이어야 합니다.
- JSON 객체 외에 다른 텍스트는 절대 포함하지 마십시오."""


def build_user_prompt(
    ticker: str,
    trading_style: Optional[str],
    recent_prices: Optional[Sequence[PricePoint]],
) -> str:
    lines = [
        f"주식 티커: {ticker}",
        f"거래 전략: {trading_style or '지정되지 않음'}",
    ]
    if recent_prices:
        bars = recent_closes(tuple(recent_prices), RECENT_BARS_IN_PROMPT)
        lines.append(
            f"최근 {len(bars)}거래일 종가:\n{json.dumps(bars, ensure_ascii=False)}"
        )
    return "\n".join(lines)


def _field_path(loc) -> str:
    return ".".join(str(part) for part in loc) or "<root>"


def validate_selection(candidate: dict) -> RecommendedIndicatorSet:
    """Validate the model's answer against the closed selection contract.

    Raises:
        MalformedModelOutput: naming every offending field.
    """
    try:
        return RecommendedIndicatorSet.model_validate(candidate)
    except ValidationError as exc:
        errors = exc.errors()
        fields: List[str] = []
        details = []
        for err in errors:
            path = _field_path(err["loc"])
            if path not in fields:
                fields.append(path)
            details.append(f"{path}: {err['msg']}")
        logger.error("Indicator selection failed validation: %s", "; ".join(details))
        raise MalformedModelOutput(
            "AI로부터 유효하지 않은 데이터 구조를 받았습니다. " + "; ".join(details),
            fields=fields,
        ) from exc


def select_indicators(
    ticker: str,
    trading_style: Optional[str] = None,
    recent_prices: Optional[Sequence[PricePoint]] = None,
    gateway: Optional[LLMGateway] = None,
) -> RecommendedIndicatorSet:
    """Ask the model for three indicators and a final signal for ``ticker``."""
    gateway = gateway or LLMGateway.from_settings()
    messages = [
        ChatMessage(role="user", content=build_user_prompt(ticker, trading_style, recent_prices))
    ]

    candidate = gateway.invoke(messages, SYSTEM_PROMPT)
    selection = validate_selection(candidate)

    logger.info(
        "Selected %s for %s (final signal: %s)",
        ", ".join(spec.name.value for spec in selection.recommended_indicators),
        ticker,
        selection.final_signal.value,
    )
    return selection
