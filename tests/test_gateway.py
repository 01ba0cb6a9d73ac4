import pytest

from signal_timing.errors import LLMTransportError, MalformedModelOutput, UpstreamUnavailable
from signal_timing.llm.gateway import (
    extract_json,
    from_brace_span,
    from_fenced_block,
    from_plain_text,
)
from signal_timing.state import ChatMessage

MESSAGES = [ChatMessage(role="user", content="AAPL")]


# --- extraction chain ---

def test_extract_from_fenced_block_with_trailing_prose():
    text = '여기 결과입니다.\n```json\n{"a": 1}\n```\n참고하세요 {not json}'
    assert extract_json(text) == {"a": 1}


def test_extract_inline_object_without_fences():
    text = 'The answer is {"a": 1} as requested.'
    assert extract_json(text) == {"a": 1}


def test_extract_plain_prose_with_fallback_key():
    text = "  삼성전자는 반도체 기업입니다.  \n"
    assert extract_json(text, plain_text_key="answer") == {"answer": "삼성전자는 반도체 기업입니다."}


def test_extract_plain_prose_without_fallback_key_returns_none():
    assert extract_json("no json here") is None


def test_broken_fence_falls_through_to_brace_span():
    text = '```json\n{"a": 1,,}\n```\nactually: {"b": 2}'
    # The fence fails; the first-to-last brace span is also invalid here,
    # and the text does not start with "{", so nothing is recovered.
    assert from_fenced_block(text) is None
    assert extract_json(text) is None
    assert extract_json(text, plain_text_key="answer") == {"answer": text.strip()}


def test_brace_span_allows_raw_newlines_in_strings():
    text = 'prefix {"rationale": "line one\nline two"} suffix'
    assert from_brace_span(text) == {"rationale": "line one\nline two"}


def test_plain_text_layer_skips_text_that_starts_an_object():
    assert from_plain_text('{"a": ', plain_text_key="answer") is None


def test_non_object_json_is_not_accepted():
    assert extract_json("[1, 2, 3]") is None


# --- retry protocol ---

def test_invoke_returns_parsed_object(make_gateway):
    gateway, client = make_gateway(['```json\n{"finalSignal": "보류"}\n```'])
    assert gateway.invoke(MESSAGES, "system") == {"finalSignal": "보류"}
    assert len(client.calls) == 1
    assert gateway.sleeps == []


def test_invoke_sends_system_prompt_and_conversation(make_gateway):
    gateway, client = make_gateway(['{"ok": true}'])
    gateway.invoke(MESSAGES, "be precise")
    system_prompt, messages = client.calls[0]
    assert system_prompt == "be precise"
    assert messages == MESSAGES


def test_invoke_retries_after_transport_error(make_gateway):
    gateway, client = make_gateway([LLMTransportError("boom", status_code=500), '{"a": 1}'])
    assert gateway.invoke(MESSAGES, "system") == {"a": 1}
    assert len(client.calls) == 2
    assert gateway.sleeps == [1.0]


def test_invoke_retries_when_no_json_and_no_fallback_key(make_gateway):
    gateway, client = make_gateway(["just prose", '{"a": 1}'])
    assert gateway.invoke(MESSAGES, "system") == {"a": 1}
    assert len(client.calls) == 2


def test_invoke_wraps_prose_when_fallback_key_given(make_gateway):
    gateway, client = make_gateway(["그냥 텍스트 답변"])
    assert gateway.invoke(MESSAGES, "system", plain_text_key="answer") == {"answer": "그냥 텍스트 답변"}
    assert len(client.calls) == 1


def test_persistent_failure_makes_exactly_max_attempts(make_gateway):
    error = LLMTransportError("HTTP 503", status_code=503, body={"status": {"code": "503"}})
    gateway, client = make_gateway([error], max_attempts=3, retry_delay=0.5)

    with pytest.raises(UpstreamUnavailable) as exc_info:
        gateway.invoke(MESSAGES, "system")

    assert len(client.calls) == 3
    assert gateway.sleeps == [0.5, 0.5]
    assert "503" in exc_info.value.message
    assert '"code": "503"' in exc_info.value.message


def test_transport_error_without_status_reports_its_message(make_gateway):
    gateway, _ = make_gateway([LLMTransportError("connection reset")])
    with pytest.raises(UpstreamUnavailable, match="connection reset"):
        gateway.invoke(MESSAGES, "system")


def test_persistent_prose_raises_malformed_output(make_gateway):
    gateway, client = make_gateway(["no json at all"], max_attempts=2)
    with pytest.raises(MalformedModelOutput, match="no json at all"):
        gateway.invoke(MESSAGES, "system")
    assert len(client.calls) == 2
    assert gateway.sleeps == [1.0]


def test_empty_conversation_is_rejected(make_gateway):
    gateway, client = make_gateway(['{"a": 1}'])
    with pytest.raises(ValueError):
        gateway.invoke([], "system")
    assert client.calls == []
