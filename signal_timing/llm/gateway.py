"""
LLM gateway: send a conversation upstream and get a JSON object back.

The upstream model is asked for JSON but answers in whatever shape it
likes (fenced blocks, prose around an object, plain prose). Extraction
is an ordered chain of small parsers; the first one that yields a dict
wins. Transport failures and unusable answers are retried a fixed number
of times with a fixed delay between attempts.
"""

from __future__ import annotations

import json
import logging
import re
import time
from typing import Callable, List, Optional, Sequence

from signal_timing.config import Settings, get_settings
from signal_timing.errors import LLMTransportError, MalformedModelOutput, UpstreamUnavailable
from signal_timing.llm.models import ChatClient, build_chat_client
from signal_timing.state import ChatMessage

logger = logging.getLogger(__name__)

MAX_ATTEMPTS = 3
RETRY_DELAY = 1.0

_FENCE_RE = re.compile(r"```json\s*([\s\S]*?)\s*```", re.IGNORECASE)


# ---------------------------------------------------------------------------
# JSON extraction chain
# ---------------------------------------------------------------------------

def _loads_object(text: str) -> Optional[dict]:
    # strict=False allows raw newlines/tabs inside string values.
    try:
        value = json.loads(text, strict=False)
    except (json.JSONDecodeError, TypeError) as exc:
        logger.debug("JSON parse failed: %s", exc)
        return None
    return value if isinstance(value, dict) else None


def from_fenced_block(text: str, plain_text_key: Optional[str] = None) -> Optional[dict]:
    """Parse the contents of a ```json fenced block."""
    match = _FENCE_RE.search(text)
    if not match:
        return None
    return _loads_object(match.group(1))


def from_brace_span(text: str, plain_text_key: Optional[str] = None) -> Optional[dict]:
    """Parse everything from the first '{' to the last '}' inclusive."""
    first = text.find("{")
    last = text.rfind("}")
    if first == -1 or last <= first:
        return None
    return _loads_object(text[first:last + 1])


def from_plain_text(text: str, plain_text_key: Optional[str] = None) -> Optional[dict]:
    """Wrap a prose answer under ``plain_text_key`` when one is given."""
    stripped = text.strip()
    if plain_text_key and not stripped.startswith("{"):
        return {plain_text_key: stripped}
    return None


def from_whole_text(text: str, plain_text_key: Optional[str] = None) -> Optional[dict]:
    return _loads_object(text.strip())


Extractor = Callable[[str, Optional[str]], Optional[dict]]

EXTRACTORS: Sequence[Extractor] = (
    from_fenced_block,
    from_brace_span,
    from_plain_text,
    from_whole_text,
)


def extract_json(text: str, plain_text_key: Optional[str] = None) -> Optional[dict]:
    """Run the extraction chain over a raw model answer.

    Returns the first dict produced, or None when nothing usable was found.
    """
    for extractor in EXTRACTORS:
        result = extractor(text, plain_text_key)
        if result is not None:
            logger.debug("Extracted JSON via %s", extractor.__name__)
            return result
    return None


# ---------------------------------------------------------------------------
# Gateway
# ---------------------------------------------------------------------------

class LLMGateway:
    """Retrying, JSON-coercing front for a chat client."""

    def __init__(
        self,
        client: ChatClient,
        max_attempts: int = MAX_ATTEMPTS,
        retry_delay: float = RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.client = client
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "LLMGateway":
        settings = settings or get_settings()
        return cls(
            build_chat_client(settings),
            max_attempts=settings.llm_max_attempts,
            retry_delay=settings.llm_retry_delay,
        )

    def invoke(
        self,
        messages: List[ChatMessage],
        system_prompt: str,
        plain_text_key: Optional[str] = None,
    ) -> dict:
        """Send the conversation and return the model's answer as a dict.

        Args:
            messages: Non-empty, ordered conversation.
            system_prompt: System instruction sent ahead of the conversation.
            plain_text_key: If the model answers in prose, wrap the answer
                under this key instead of failing.

        Raises:
            UpstreamUnavailable: the last attempt failed at the transport level.
            MalformedModelOutput: the last attempt returned no usable JSON.
        """
        if not messages:
            raise ValueError("messages must not be empty")

        last_error: Optional[Exception] = None
        raw = ""

        for attempt in range(1, self.max_attempts + 1):
            logger.debug("LLM call attempt %d/%d", attempt, self.max_attempts)
            try:
                raw = self.client.complete(system_prompt, messages)
                parsed = extract_json(raw, plain_text_key)
                if parsed is not None:
                    return parsed
                last_error = MalformedModelOutput(
                    "AI returned a non-JSON response, and no output format was "
                    f"specified. Raw content: {raw[:500]}"
                )
                logger.warning(
                    "Attempt %d/%d returned no usable JSON", attempt, self.max_attempts
                )
            except LLMTransportError as exc:
                last_error = exc
                logger.warning(
                    "Attempt %d/%d failed. Status: %s. %s",
                    attempt, self.max_attempts, exc.status_code, exc,
                )

            if attempt < self.max_attempts:
                logger.debug("Retrying in %.1fs...", self.retry_delay)
                self._sleep(self.retry_delay)

        logger.error(
            "All %d attempts failed. Raw response: %s", self.max_attempts, raw[:500]
        )
        raise _final_error(last_error)


def _final_error(last_error: Optional[Exception]) -> Exception:
    if isinstance(last_error, LLMTransportError):
        if last_error.status_code is not None and last_error.body is not None:
            body = last_error.body
            if not isinstance(body, str):
                body = json.dumps(body, ensure_ascii=False)
            return UpstreamUnavailable(
                f"API Error. Status: {last_error.status_code}. Response: {body}"
            )
        return UpstreamUnavailable(str(last_error))
    if isinstance(last_error, MalformedModelOutput):
        return last_error
    return UpstreamUnavailable(
        "Failed to get a valid response from the LLM API after multiple retries."
    )
