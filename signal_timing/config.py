"""
Process-wide settings, resolved once from the environment (.env supported).
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_CLOVA_BASE_URL = "https://clovastudio.stream.ntruss.com/testapp/v1/chat-completions"

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")

ENV_NAMES = {
    "llm_provider": "LLM_PROVIDER",
    "hyperclova_api_key": "HYPERCLOVA_API_KEY",
    "hyperclova_request_id": "HYPERCLOVA_REQUEST_ID",
    "hyperclova_model": "HYPERCLOVA_MODEL",
    "hyperclova_base_url": "HYPERCLOVA_BASE_URL",
    "minimax_api_key": "MINIMAX_API_KEY",
    "minimax_model": "MINIMAX_MODEL",
    "llm_max_attempts": "LLM_MAX_ATTEMPTS",
    "llm_retry_delay": "LLM_RETRY_DELAY",
    "llm_max_tokens": "LLM_MAX_TOKENS",
    "price_history_days": "PRICE_HISTORY_DAYS",
    "log_level": "LOG_LEVEL",
}


class ConfigurationError(ValueError):
    """A required setting is missing or invalid."""


def check_log_level(level: str) -> str:
    """Normalize a logging level name, rejecting unknown ones."""
    normalized = str(level).strip().upper()
    if normalized not in LOG_LEVELS:
        raise ConfigurationError(
            f"LOG_LEVEL: unknown logging level {level!r} (expected one of {', '.join(LOG_LEVELS)})"
        )
    return normalized


class Settings(BaseModel):
    llm_provider: Literal["clova", "minimax"] = "clova"

    hyperclova_api_key: Optional[str] = None
    hyperclova_request_id: Optional[str] = None
    hyperclova_model: str = "HCX-003"
    hyperclova_base_url: str = DEFAULT_CLOVA_BASE_URL

    minimax_api_key: Optional[str] = None
    minimax_model: str = "MiniMax-Text-01"

    llm_max_attempts: int = Field(default=3, ge=1)
    llm_retry_delay: float = Field(default=1.0, ge=0.0)
    llm_max_tokens: int = Field(default=2048, ge=1)

    price_history_days: int = Field(default=252, ge=1)
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        return check_log_level(value)

    def require(self, attr: str, env_name: str) -> str:
        """Return a credential or fail loudly naming the variable."""
        value = getattr(self, attr)
        if not value:
            raise ConfigurationError(
                f"{env_name} not found. "
                "Set it in your .env file or environment variables."
            )
        return value


def _env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def load_settings() -> Settings:
    """Build settings from the current environment (no caching).

    Raises:
        ConfigurationError: a variable is set to an invalid value; the
            message names every offending variable.
    """
    load_dotenv()

    values = {"llm_provider": (_env("LLM_PROVIDER") or "clova").lower()}
    for field_name, env_name in ENV_NAMES.items():
        if field_name == "llm_provider":
            continue
        value = _env(env_name)
        if value is not None:
            values[field_name] = value

    try:
        return Settings(**values)
    except ValidationError as exc:
        problems = "; ".join(
            f"{ENV_NAMES.get(str(err['loc'][0]), err['loc'][0])}: {err['msg']}"
            for err in exc.errors()
        )
        logging.getLogger(__name__).error("Invalid settings: %s", problems)
        raise ConfigurationError(f"Invalid settings: {problems}") from exc


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings for this process; resolved on first use."""
    return load_settings()
