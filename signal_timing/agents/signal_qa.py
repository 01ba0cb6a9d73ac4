"""
Signal Q&A: answers follow-up questions about a finished timing analysis.

The model is asked for prose; the gateway wraps a prose reply under the
``answer`` key, so both JSON and plain-text replies are accepted.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from signal_timing.errors import MalformedModelOutput
from signal_timing.llm.gateway import LLMGateway
from signal_timing.state import ChatMessage, TimingAnalysis
from signal_timing.tools.market_data import last_close

logger = logging.getLogger(__name__)

ANSWER_KEY = "answer"
TIMELINE_EVENTS_IN_PROMPT = 10


class SignalAnswer(BaseModel):
    answer: str = Field(min_length=1)


def _build_system_prompt(analysis: TimingAnalysis) -> str:
    """Format the analysis result into a system prompt for the Q&A model."""
    indicators_text = "\n".join(
        f"- {spec.full_name} ({spec.name.value}): "
        + ", ".join(f"{k}={v:g}" for k, v in spec.params.items())
        for spec in analysis.recommended_indicators
    )
    recent = analysis.consolidated_timeline[-TIMELINE_EVENTS_IN_PROMPT:]
    timeline_text = "\n".join(
        f"- {e.date.isoformat()} {e.direction.value} (종가 {e.close:,.2f}): {e.rationale}"
        for e in recent
    )
    close = last_close(analysis.price_history)

    return (
        "당신은 기술적 분석 결과를 설명하는 친절한 AI 어시스턴트입니다. "
        f"방금 {analysis.ticker}에 대한 매매 타이밍 분석을 마쳤습니다.\n\n"
        f"거래 전략: {analysis.trading_style or '지정되지 않음'}\n"
        f"최근 종가: {f'{close:,.2f}' if close is not None else 'N/A'}\n"
        f"최종 신호: {analysis.final_signal.value}\n"
        f"근거: {analysis.rationale}\n\n"
        "=== 사용된 지표 ===\n"
        f"{indicators_text}\n\n"
        "=== 최근 매매 신호 ===\n"
        f"{timeline_text or '기간 내 신호가 없습니다.'}\n\n"
        "답변 원칙:\n"
        "- 위 분석 데이터에 근거해 구체적인 수치를 인용하세요.\n"
        "- 특정 종목의 매수/매도를 직접 권유하지 말고, 분석 결과의 의미를 설명하세요.\n"
        "- 모든 답변은 한글로 작성하고, 답변 내용 외의 다른 텍스트는 출력하지 마세요."
    )


def answer_question(
    question: str,
    analysis: TimingAnalysis,
    history: Optional[Sequence[ChatMessage]] = None,
    gateway: Optional[LLMGateway] = None,
) -> SignalAnswer:
    """Answer ``question`` in the context of ``analysis``."""
    gateway = gateway or LLMGateway.from_settings()

    messages: List[ChatMessage] = list(history or [])
    messages.append(ChatMessage(role="user", content=question))

    response = gateway.invoke(messages, _build_system_prompt(analysis), plain_text_key=ANSWER_KEY)

    try:
        return SignalAnswer.model_validate(response)
    except ValidationError as exc:
        logger.error("Q&A response validation failed: %s", exc)
        raise MalformedModelOutput(
            "AI로부터 유효하지 않은 데이터 구조를 받았습니다.", fields=[ANSWER_KEY]
        ) from exc
