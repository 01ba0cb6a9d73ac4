"""
Error taxonomy for the timing-analysis pipeline.

Every error that leaves the core carries a stable ``kind`` string so the
web layer and the CLI can tell failures apart without parsing messages.
"""

from __future__ import annotations

from typing import List, Optional


class TimingError(Exception):
    """Base class for all errors surfaced to callers of the pipeline."""

    kind = "timing_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class UpstreamUnavailable(TimingError):
    """The LLM (after retries) or the price provider could not be reached."""

    kind = "upstream_unavailable"


class MalformedModelOutput(TimingError):
    """The LLM answer could not be parsed or failed schema validation."""

    kind = "malformed_model_output"

    def __init__(self, message: str, fields: Optional[List[str]] = None):
        super().__init__(message)
        self.fields = fields or []

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["fields"] = self.fields
        return data


class InvalidInstrument(TimingError):
    """The ticker does not exist or the provider returned no prices."""

    kind = "invalid_instrument"


class ComputationError(TimingError):
    """An indicator cannot be computed over the given series."""

    kind = "computation_error"


class LLMTransportError(Exception):
    """Raised by chat clients when a call fails at the transport level.

    Internal to the gateway, which retries it and reports the last one as
    ``UpstreamUnavailable``.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body=None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body
