from signal_timing.agents.indicator_selector import select_indicators
from signal_timing.agents.signal_qa import answer_question
from signal_timing.agents.ticker_converter import convert_to_ticker

__all__ = [
    "select_indicators",
    "answer_question",
    "convert_to_ticker",
]
