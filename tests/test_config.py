import pytest

from signal_timing.config import ConfigurationError, check_log_level, load_settings

ENV_VARS = [
    "LLM_PROVIDER",
    "HYPERCLOVA_API_KEY",
    "HYPERCLOVA_REQUEST_ID",
    "HYPERCLOVA_MODEL",
    "HYPERCLOVA_BASE_URL",
    "MINIMAX_API_KEY",
    "MINIMAX_MODEL",
    "LLM_MAX_ATTEMPTS",
    "LLM_RETRY_DELAY",
    "LLM_MAX_TOKENS",
    "PRICE_HISTORY_DAYS",
    "LOG_LEVEL",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("signal_timing.config.load_dotenv", lambda *args, **kwargs: False)
    return monkeypatch


def test_defaults(clean_env):
    settings = load_settings()
    assert settings.llm_provider == "clova"
    assert settings.hyperclova_model == "HCX-003"
    assert settings.llm_max_attempts == 3
    assert settings.llm_retry_delay == 1.0
    assert settings.price_history_days == 252
    assert settings.hyperclova_api_key is None


def test_environment_overrides(clean_env):
    clean_env.setenv("LLM_PROVIDER", "MiniMax")
    clean_env.setenv("MINIMAX_API_KEY", " secret ")
    clean_env.setenv("LLM_MAX_ATTEMPTS", "5")
    clean_env.setenv("LLM_RETRY_DELAY", "0.25")
    settings = load_settings()
    assert settings.llm_provider == "minimax"
    assert settings.minimax_api_key == "secret"
    assert settings.llm_max_attempts == 5
    assert settings.llm_retry_delay == 0.25


def test_blank_values_are_unset(clean_env):
    clean_env.setenv("HYPERCLOVA_API_KEY", "   ")
    assert load_settings().hyperclova_api_key is None


def test_invalid_values_name_the_variable(clean_env):
    clean_env.setenv("LLM_MAX_ATTEMPTS", "0")
    with pytest.raises(ConfigurationError, match="LLM_MAX_ATTEMPTS"):
        load_settings()


def test_unknown_provider_names_the_variable(clean_env):
    clean_env.setenv("LLM_PROVIDER", "openai")
    with pytest.raises(ConfigurationError, match="LLM_PROVIDER"):
        load_settings()


def test_unknown_log_level_names_the_variable(clean_env):
    clean_env.setenv("LOG_LEVEL", "LOUD")
    with pytest.raises(ConfigurationError, match="LOG_LEVEL"):
        load_settings()


def test_log_level_is_normalized(clean_env):
    clean_env.setenv("LOG_LEVEL", "debug")
    assert load_settings().log_level == "DEBUG"
    assert check_log_level(" warning ") == "WARNING"
    with pytest.raises(ConfigurationError, match="LOG_LEVEL"):
        check_log_level("verbose")
