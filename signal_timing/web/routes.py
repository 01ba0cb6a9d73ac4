"""
FastAPI route handlers for the trading-timing API.
"""

from __future__ import annotations

import asyncio
import json
import logging
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from typing import List, Optional

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field
from sse_starlette.sse import EventSourceResponse

from signal_timing.agents.signal_qa import answer_question
from signal_timing.agents.ticker_converter import convert_to_ticker
from signal_timing.config import ConfigurationError
from signal_timing.errors import (
    InvalidInstrument,
    MalformedModelOutput,
    TimingError,
    UpstreamUnavailable,
)
from signal_timing.graph import build_graph, initial_state, run_timing_analysis
from signal_timing.state import ChatMessage, TimingAnalysis
from signal_timing.web.serializers import serialize_state_update

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class TimingRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ticker: str = Field(min_length=1)
    trading_style: Optional[str] = Field(default=None, alias="tradingStyle")
    resolve_ticker: bool = Field(default=True, alias="resolveTicker")


class TickerRequest(BaseModel):
    query: str = Field(min_length=1)


class QuestionRequest(BaseModel):
    question: str = Field(min_length=1)
    analysis: TimingAnalysis
    history: List[ChatMessage] = []


# ---------------------------------------------------------------------------
# Setup
# ---------------------------------------------------------------------------

router = APIRouter()

# Thread pool for running the synchronous pipeline and LLM calls.
_executor = ThreadPoolExecutor(max_workers=4)

# Display metadata for each pipeline node.
NODE_META = {
    "fetch_data":        {"label": "주가 데이터 조회",  "stage": 1, "total": 4},
    "select_indicators": {"label": "AI 지표 선택",      "stage": 2, "total": 4},
    "compute_signals":   {"label": "과거 신호 계산",    "stage": 3, "total": 4},
    "consolidate":       {"label": "신호 정리",         "stage": 4, "total": 4},
}

ERROR_STATUS = {
    InvalidInstrument: 404,
    MalformedModelOutput: 502,
    UpstreamUnavailable: 503,
}


def _status_for(exc: TimingError) -> int:
    for error_type, status in ERROR_STATUS.items():
        if isinstance(exc, error_type):
            return status
    return 500


async def timing_error_handler(request: Request, exc: TimingError) -> JSONResponse:
    """Map the error taxonomy onto HTTP responses."""
    status = _status_for(exc)
    logger.warning("%s %s failed with %s: %s", request.method, request.url.path, exc.kind, exc.message)
    return JSONResponse(status_code=status, content={"error": exc.to_dict()})


def _configuration_error_body(exc: ConfigurationError) -> dict:
    return {"kind": "configuration_error", "message": str(exc)}


async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    logger.error("Configuration error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"error": _configuration_error_body(exc)},
    )


async def _run_blocking(func, *args, **kwargs):
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(_executor, partial(func, *args, **kwargs))


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.get("/healthz")
async def healthz():
    return {"status": "ok"}


@router.post("/api/timing")
async def analyze_timing(body: TimingRequest):
    """Run one timing analysis and return the full result."""
    analysis = await _run_blocking(
        run_timing_analysis,
        body.ticker,
        trading_style=body.trading_style,
        resolve_ticker=body.resolve_ticker,
    )
    return analysis.model_dump(mode="json", by_alias=True)


@router.get("/api/timing/stream")
async def stream_timing(
    ticker: str = Query(..., min_length=1),
    trading_style: str = Query("", alias="tradingStyle"),
):
    """SSE endpoint that streams pipeline progress as each node completes."""

    async def event_generator():
        state = initial_state(ticker, trading_style or None)

        queue: asyncio.Queue = asyncio.Queue()
        loop = asyncio.get_running_loop()

        def run_pipeline():
            """Execute the pipeline in a worker thread, pushing each
            streamed chunk onto the async queue."""
            try:
                graph = build_graph()
                for chunk in graph.stream(state):
                    asyncio.run_coroutine_threadsafe(queue.put(chunk), loop)
                asyncio.run_coroutine_threadsafe(queue.put(None), loop)
            except Exception as exc:
                asyncio.run_coroutine_threadsafe(queue.put(exc), loop)

        loop.run_in_executor(_executor, run_pipeline)

        yield {
            "event": "start",
            "data": json.dumps({"ticker": ticker, "tradingStyle": trading_style or None}),
        }

        while True:
            chunk = await queue.get()

            if chunk is None:
                break

            if isinstance(chunk, Exception):
                if isinstance(chunk, TimingError):
                    error = chunk.to_dict()
                elif isinstance(chunk, ConfigurationError):
                    logger.error("Configuration error: %s", chunk)
                    error = _configuration_error_body(chunk)
                else:
                    logger.exception("Pipeline failed", exc_info=chunk)
                    error = {"kind": "internal_error", "message": str(chunk)}
                yield {
                    "event": "error",
                    "data": json.dumps({"error": error}, ensure_ascii=False),
                }
                return

            for node_name, state_delta in chunk.items():
                meta = NODE_META.get(node_name, {})
                payload = serialize_state_update(node_name, state_delta, meta)
                yield {
                    "event": "node_complete",
                    "data": json.dumps(payload, ensure_ascii=False),
                }

        yield {
            "event": "complete",
            "data": json.dumps({"status": "done"}),
        }

    return EventSourceResponse(event_generator(), ping=15)


@router.post("/api/ticker")
async def convert_ticker(body: TickerRequest):
    """Convert a company name or query into a ticker symbol."""
    result = await _run_blocking(convert_to_ticker, body.query)
    return result.model_dump()


@router.post("/api/qa")
async def ask_question(body: QuestionRequest):
    """Answer a follow-up question about a finished analysis."""
    result = await _run_blocking(
        answer_question, body.question, body.analysis, history=body.history
    )
    return result.model_dump()
