from unittest.mock import MagicMock

import pytest
import requests

from signal_timing.config import ConfigurationError, Settings
from signal_timing.errors import LLMTransportError
from signal_timing.llm.models import (
    ClovaStudioClient,
    MiniMaxClient,
    _to_langchain,
    build_chat_client,
)
from signal_timing.state import ChatMessage

MESSAGES = [ChatMessage(role="user", content="안녕")]


def _response(status_code=200, json_body=None, text=""):
    resp = MagicMock()
    resp.status_code = status_code
    resp.text = text
    if isinstance(json_body, Exception):
        resp.json.side_effect = json_body
    else:
        resp.json.return_value = json_body
    return resp


def _client(resp=None, error=None):
    session = MagicMock()
    if error is not None:
        session.post.side_effect = error
    else:
        session.post.return_value = resp
    client = ClovaStudioClient("key", "req-1", model="HCX-003", base_url="https://clova.test/v1/", session=session)
    return client, session


def test_clova_request_shape():
    client, session = _client(_response(json_body={"result": {"message": {"content": "{}"}}}))
    assert client.complete("system", MESSAGES) == "{}"

    url = session.post.call_args[0][0]
    kwargs = session.post.call_args[1]
    assert url == "https://clova.test/v1/HCX-003"
    assert kwargs["headers"]["Authorization"] == "Bearer key"
    assert kwargs["headers"]["X-NCP-CLOVASTUDIO-REQUEST-ID"] == "req-1"
    assert kwargs["json"]["messages"] == [
        {"role": "system", "content": "system"},
        {"role": "user", "content": "안녕"},
    ]
    assert kwargs["json"]["maxTokens"] == 2048


def test_clova_http_error_keeps_status_and_body():
    client, _ = _client(_response(status_code=429, json_body={"status": {"code": "42901"}}))
    with pytest.raises(LLMTransportError) as exc_info:
        client.complete("system", MESSAGES)
    assert exc_info.value.status_code == 429
    assert exc_info.value.body == {"status": {"code": "42901"}}


def test_clova_http_error_with_text_body():
    client, _ = _client(_response(status_code=500, json_body=ValueError("no json"), text="oops"))
    with pytest.raises(LLMTransportError) as exc_info:
        client.complete("system", MESSAGES)
    assert exc_info.value.body == "oops"


def test_clova_malformed_envelope():
    client, _ = _client(_response(json_body={"result": {}}, text='{"result": {}}'))
    with pytest.raises(LLMTransportError, match="Invalid API response structure"):
        client.complete("system", MESSAGES)


def test_clova_empty_content():
    client, _ = _client(_response(json_body={"result": {"message": {"content": ""}}}))
    with pytest.raises(LLMTransportError):
        client.complete("system", MESSAGES)


def test_clova_network_failure():
    client, _ = _client(error=requests.ConnectionError("refused"))
    with pytest.raises(LLMTransportError, match="refused") as exc_info:
        client.complete("system", MESSAGES)
    assert exc_info.value.status_code is None


def test_to_langchain_roles():
    converted = _to_langchain("sys", [
        ChatMessage(role="user", content="q"),
        ChatMessage(role="assistant", content="a"),
    ])
    assert [m.type for m in converted] == ["system", "human", "ai"]
    assert converted[0].content == "sys"


def test_minimax_client_wraps_errors():
    llm = MagicMock()
    llm.invoke.side_effect = RuntimeError("quota exceeded")
    with pytest.raises(LLMTransportError, match="quota exceeded"):
        MiniMaxClient(llm).complete("sys", MESSAGES)


def test_minimax_client_returns_content():
    llm = MagicMock()
    llm.invoke.return_value = MagicMock(content='{"a": 1}')
    assert MiniMaxClient(llm).complete("sys", MESSAGES) == '{"a": 1}'


def test_build_chat_client_requires_clova_credentials():
    with pytest.raises(ConfigurationError, match="HYPERCLOVA_API_KEY"):
        build_chat_client(Settings())


def test_build_chat_client_for_clova():
    settings = Settings(hyperclova_api_key="k", hyperclova_request_id="r", llm_max_tokens=512)
    client = build_chat_client(settings)
    assert isinstance(client, ClovaStudioClient)
    assert client.max_tokens == 512


def test_build_chat_client_requires_minimax_key():
    with pytest.raises(ConfigurationError, match="MINIMAX_API_KEY"):
        build_chat_client(Settings(llm_provider="minimax"))
