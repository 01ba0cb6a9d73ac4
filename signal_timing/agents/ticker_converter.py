"""
Ticker Converter: maps a free-form query (company name in Korean or
English, or a ticker) to a Yahoo Finance symbol.

Never raises for model problems: the caller gets ``success=False`` with a
reason and decides what to do.
"""

from __future__ import annotations

import logging
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from signal_timing.errors import TimingError
from signal_timing.llm.gateway import LLMGateway
from signal_timing.state import ChatMessage

logger = logging.getLogger(__name__)


class TickerConversion(BaseModel):
    success: bool = Field(description="Whether the conversion was successful")
    ticker: Optional[str] = Field(default=None, description="Converted symbol, e.g. AAPL or 005930.KS")
    reason: str = Field(description="Short explanation in Korean")


SYSTEM_PROMPT = """당신은 사용자의 입력을 주식 티커 심볼로 변환하는 AI 전문가입니다.
사용자가 회사 이름(한글 또는 영문), 티커, 또는 관련 텍스트를 입력하면, 가장 가능성이 높은
야후 파이낸스(Yahoo Finance) 기준의 공식 티커 심볼로 변환해야 합니다.

**변환 규칙:**
- 한국 주식은 코스피(.KS) 또는 코스닥(.KQ) 접미사를 포함해야 합니다. (예: 삼성전자 -> 005930.KS)
- 미국 주식은 접미사가 없습니다. (예: Apple -> AAPL)
- 입력이 이미 유효한 티커 형식(예: MSFT)이면 그대로 반환합니다.
- 변환할 수 없는 경우 success를 false, ticker를 null로 하고 reason에 이유를 한글로 간결하게 설명합니다.

**출력은 다음 JSON 형식의 객체 하나여야 하며, 다른 텍스트는 절대 포함하지 마십시오:**
{"success": true, "ticker": "005930.KS", "reason": "'삼성전자'는 코스피의 '005930.KS'로 변환되었습니다."}"""


def convert_to_ticker(query: str, gateway: Optional[LLMGateway] = None) -> TickerConversion:
    """Convert ``query`` into a ticker symbol."""
    gateway = gateway or LLMGateway.from_settings()
    messages = [
        ChatMessage(role="user", content=f'다음 사용자 입력을 주식 티커로 변환해주세요: "{query}"')
    ]

    try:
        response = gateway.invoke(messages, SYSTEM_PROMPT)
    except TimingError as exc:
        logger.error("Ticker conversion failed for %r: %s", query, exc.message)
        return TickerConversion(success=False, reason="티커 변환 중 오류가 발생했습니다.")

    try:
        result = TickerConversion.model_validate(response)
    except ValidationError as exc:
        logger.error("Ticker conversion response validation failed: %s", exc)
        return TickerConversion(success=False, reason="AI로부터 유효하지 않은 응답을 받았습니다.")

    if result.success and not (result.ticker and result.ticker.strip()):
        return TickerConversion(success=False, reason=result.reason)
    if result.ticker:
        result = result.model_copy(update={"ticker": result.ticker.strip().upper()})
    return result
