"""
Chat clients for the upstream model.

HyperCLOVA X is the primary model and is called over plain HTTP so the
gateway can report HTTP status and body on failure. MiniMax (through
LangChain) is available as an alternative provider.

A client only sends one request and returns the raw assistant text; all
retrying and JSON extraction happens in ``signal_timing.llm.gateway``.
"""

from __future__ import annotations

import logging
from typing import List, Optional, Protocol

import requests
from langchain_community.chat_models import MiniMaxChat
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from signal_timing.config import Settings, get_settings
from signal_timing.errors import LLMTransportError
from signal_timing.state import ChatMessage

logger = logging.getLogger(__name__)

# Sampling parameters are a tuning detail of the upstream model.
CLOVA_SAMPLING = {
    "topK": 0,
    "topP": 0.8,
    "temperature": 0.6,
    "repeatPenalty": 5.0,
}


class ChatClient(Protocol):
    def complete(self, system_prompt: str, messages: List[ChatMessage]) -> str:
        ...


class ClovaStudioClient:
    """HyperCLOVA X chat-completions over HTTP."""

    def __init__(
        self,
        api_key: str,
        request_id: str,
        model: str = "HCX-003",
        base_url: str = "https://clovastudio.stream.ntruss.com/testapp/v1/chat-completions",
        max_tokens: int = 2048,
        session: Optional[requests.Session] = None,
    ):
        self.url = f"{base_url.rstrip('/')}/{model}"
        self.max_tokens = max_tokens
        self.session = session or requests.Session()
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "X-NCP-CLOVASTUDIO-REQUEST-ID": request_id,
            "Content-Type": "application/json",
        }

    def build_payload(self, system_prompt: str, messages: List[ChatMessage]) -> dict:
        return {
            "stream": False,
            "includeAiFilters": True,
            "maxTokens": self.max_tokens,
            "stopBefore": [],
            **CLOVA_SAMPLING,
            "messages": [{"role": "system", "content": system_prompt}]
            + [m.model_dump() for m in messages],
        }

    def complete(self, system_prompt: str, messages: List[ChatMessage]) -> str:
        payload = self.build_payload(system_prompt, messages)
        try:
            resp = self.session.post(self.url, json=payload, headers=self.headers)
        except requests.RequestException as exc:
            raise LLMTransportError(f"HyperCLOVA X request failed: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            try:
                body = resp.json()
            except ValueError:
                body = resp.text
            raise LLMTransportError(
                f"HyperCLOVA X returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                body=body,
            )

        try:
            data = resp.json()
            content = data["result"]["message"]["content"]
        except (ValueError, KeyError, TypeError) as exc:
            raise LLMTransportError(
                "Invalid API response structure from HyperCLOVA X.",
                status_code=resp.status_code,
                body=resp.text,
            ) from exc

        if not isinstance(content, str) or not content:
            raise LLMTransportError(
                "Invalid API response structure from HyperCLOVA X.",
                status_code=resp.status_code,
                body=resp.text,
            )
        return content


def get_llm(
    temperature: float = 0.0,
    model: str = "MiniMax-Text-01",
    settings: Optional[Settings] = None,
) -> MiniMaxChat:
    """Get a configured MiniMax LLM instance.

    Raises ConfigurationError if MINIMAX_API_KEY is not configured.
    """
    settings = settings or get_settings()
    api_key = settings.require("minimax_api_key", "MINIMAX_API_KEY")

    return MiniMaxChat(
        model=model,
        temperature=temperature,
        minimax_api_key=api_key,
        max_tokens=settings.llm_max_tokens,
    )


def _to_langchain(system_prompt: str, messages: List[ChatMessage]) -> List[BaseMessage]:
    converted: List[BaseMessage] = [SystemMessage(content=system_prompt)]
    for msg in messages:
        if msg.role == "user":
            converted.append(HumanMessage(content=msg.content))
        elif msg.role == "assistant":
            converted.append(AIMessage(content=msg.content))
        else:
            converted.append(SystemMessage(content=msg.content))
    return converted


class MiniMaxClient:
    """MiniMax through LangChain's chat model interface."""

    def __init__(self, llm: MiniMaxChat):
        self.llm = llm

    def complete(self, system_prompt: str, messages: List[ChatMessage]) -> str:
        try:
            response = self.llm.invoke(_to_langchain(system_prompt, messages))
        except Exception as exc:
            # LangChain wraps provider errors in many types; keep the status if present.
            status = getattr(getattr(exc, "response", None), "status_code", None)
            raise LLMTransportError(f"MiniMax request failed: {exc}", status_code=status) from exc

        content = response.content if hasattr(response, "content") else None
        if not isinstance(content, str) or not content:
            raise LLMTransportError("Invalid response structure from MiniMax.")
        return content


def build_chat_client(settings: Optional[Settings] = None) -> ChatClient:
    """Build the chat client for the configured provider."""
    settings = settings or get_settings()

    if settings.llm_provider == "minimax":
        llm = get_llm(temperature=0.6, model=settings.minimax_model, settings=settings)
        return MiniMaxClient(llm)

    return ClovaStudioClient(
        api_key=settings.require("hyperclova_api_key", "HYPERCLOVA_API_KEY"),
        request_id=settings.require("hyperclova_request_id", "HYPERCLOVA_REQUEST_ID"),
        model=settings.hyperclova_model,
        base_url=settings.hyperclova_base_url,
        max_tokens=settings.llm_max_tokens,
    )
