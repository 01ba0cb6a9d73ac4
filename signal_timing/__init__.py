"""AI-assisted trading-timing analysis: LLM-chosen indicators replayed over price history."""

__version__ = "0.1.0"
