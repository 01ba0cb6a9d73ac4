"""
LangGraph workflow: orchestrates one trading-timing analysis.

Pipeline:
  1. Fetch the price history (with LLM ticker conversion as a fallback)
  2. Ask the model for three indicators, params and a final signal
  3. Replay the indicators over the whole history
  4. Consolidate the events into a timeline and annotate the latest one
"""

from __future__ import annotations

import logging
from typing import Optional

from langgraph.graph import END, StateGraph

from signal_timing.agents.indicator_selector import select_indicators
from signal_timing.agents.ticker_converter import convert_to_ticker
from signal_timing.config import get_settings
from signal_timing.errors import InvalidInstrument
from signal_timing.llm.gateway import LLMGateway
from signal_timing.signals.consolidator import annotate_latest, consolidate
from signal_timing.signals.engine import compute_signals
from signal_timing.state import TimingAnalysis, TimingState
from signal_timing.tools.market_data import get_price_history

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------

def build_graph(gateway: Optional[LLMGateway] = None):
    """Build and compile the LangGraph workflow.

    The graph structure:

        fetch_data
            |
      select_indicators
            |
       compute_signals
            |
         consolidate
            |
           END

    The gateway is created lazily on first use so a graph can be built
    without credentials (e.g. to inspect it).
    """
    settings = get_settings()
    gateway_holder = {"gateway": gateway}

    def _gateway() -> LLMGateway:
        if gateway_holder["gateway"] is None:
            gateway_holder["gateway"] = LLMGateway.from_settings(settings)
        return gateway_holder["gateway"]

    def fetch_data(state: TimingState) -> TimingState:
        """Node: fetch the price history, converting the query if needed."""
        ticker = state["ticker"].strip().upper()
        try:
            prices = get_price_history(ticker, days=settings.price_history_days)
        except InvalidInstrument:
            if not state.get("resolve_ticker"):
                raise
            logger.info("'%s' is not a known ticker; trying AI conversion", ticker)
            conversion = convert_to_ticker(state["ticker"], gateway=_gateway())
            if not conversion.success or not conversion.ticker:
                raise
            ticker = conversion.ticker
            logger.info("Converted '%s' -> '%s'", state["ticker"], ticker)
            prices = get_price_history(ticker, days=settings.price_history_days)
        return {"ticker": ticker, "prices": prices}

    def run_selector(state: TimingState) -> TimingState:
        """Node: let the model choose indicators and a final signal."""
        selection = select_indicators(
            state["ticker"],
            trading_style=state.get("trading_style"),
            recent_prices=state["prices"],
            gateway=_gateway(),
        )
        return {"selection": selection}

    def run_engine(state: TimingState) -> TimingState:
        """Node: replay the chosen indicators over the full history."""
        raw = compute_signals(state["prices"], state["selection"].recommended_indicators)
        return {"raw_signals": raw}

    def run_consolidator(state: TimingState) -> TimingState:
        """Node: collapse repeated directions and explain the latest event."""
        timeline = consolidate(state["raw_signals"])
        timeline = annotate_latest(timeline, state["selection"].rationale)
        return {"timeline": timeline}

    workflow = StateGraph(TimingState)

    workflow.add_node("fetch_data", fetch_data)
    workflow.add_node("select_indicators", run_selector)
    workflow.add_node("compute_signals", run_engine)
    workflow.add_node("consolidate", run_consolidator)

    workflow.set_entry_point("fetch_data")
    workflow.add_edge("fetch_data", "select_indicators")
    workflow.add_edge("select_indicators", "compute_signals")
    workflow.add_edge("compute_signals", "consolidate")
    workflow.add_edge("consolidate", END)

    return workflow.compile()


def initial_state(
    ticker: str, trading_style: Optional[str] = None, resolve_ticker: bool = True
) -> TimingState:
    return {
        "ticker": ticker,
        "trading_style": trading_style or None,
        "resolve_ticker": resolve_ticker,
    }


def to_analysis(state: TimingState) -> TimingAnalysis:
    """Assemble the caller-facing result from a finished pipeline state."""
    selection = state["selection"]
    return TimingAnalysis(
        ticker=state["ticker"],
        trading_style=state.get("trading_style"),
        recommended_indicators=list(selection.recommended_indicators),
        final_signal=selection.final_signal,
        rationale=selection.rationale,
        price_history=list(state["prices"]),
        consolidated_timeline=list(state["timeline"]),
    )


def run_timing_analysis(
    ticker: str,
    trading_style: Optional[str] = None,
    gateway: Optional[LLMGateway] = None,
    resolve_ticker: bool = True,
) -> TimingAnalysis:
    """Run the full timing analysis pipeline for one ticker.

    Args:
        ticker: Ticker symbol, or a company name when ``resolve_ticker`` is set.
        trading_style: Free-text trading strategy, e.g. "단기 변동성 매매".
        gateway: LLM gateway to use; built from settings when omitted.
        resolve_ticker: Fall back to AI ticker conversion on unknown tickers.

    Returns:
        The TimingAnalysis with indicators, final signal and timeline.
    """
    graph = build_graph(gateway)
    final_state = graph.invoke(initial_state(ticker, trading_style, resolve_ticker))
    return to_analysis(final_state)
