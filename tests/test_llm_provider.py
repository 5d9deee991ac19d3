import json

import pytest
import requests

from ai_chat.core.message import Message
from ai_chat.providers.llm import create_client, supported_providers
from ai_chat.providers.llm.base import (
    LLMConnectionError,
    LLMRateLimitError,
    LLMResponseError,
    LLMRetryExhaustedError,
    Model,
    RetryConfig,
)
from ai_chat.providers.llm.deepseek import DeepSeekClient
from ai_chat.providers.llm.openrouter import OpenRouterClient
from ai_chat.repl.abort import AbortSignal


class FakeResponse:
    def __init__(self, status_code=200, payload=None, lines=None, text=""):
        self.status_code = status_code
        self._payload = payload
        self._lines = lines or []
        self.text = text

    def json(self):
        if self._payload is None:
            raise json.JSONDecodeError("no json", "", 0)
        return self._payload

    def iter_lines(self, decode_unicode=False):
        yield from self._lines

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _sse(content: str) -> str:
    return "data: " + json.dumps({"choices": [{"delta": {"content": content}}]})


def test_model_from_id() -> None:
    model = Model.from_id("deepseek:deepseek-chat")

    assert model.id() == "deepseek:deepseek-chat"
    assert model.max_input_tokens == 64_000
    assert Model.from_id("custom:thing").max_input_tokens is None
    assert Model.from_id("custom:thing", 4096).max_input_tokens == 4096
    with pytest.raises(ValueError):
        Model.from_id("no-provider")


def test_backoff_jitter_range(monkeypatch):
    config = RetryConfig(initial_delay=1.0, max_delay=10.0, backoff_multiplier=2.0, jitter_ratio=0.25)
    client = DeepSeekClient(api_key="test", model="demo", retry_config=config)

    captured = {}

    def fake_uniform(low: float, high: float) -> float:
        captured["low"] = low
        captured["high"] = high
        return high

    monkeypatch.setattr("ai_chat.providers.llm.base.random.uniform", fake_uniform)

    delay = client._calculate_delay(3)

    assert delay == pytest.approx(5.0)
    assert captured["low"] == pytest.approx(3.0)
    assert captured["high"] == pytest.approx(5.0)


def test_error_mapping():
    client = DeepSeekClient(api_key="test", model="demo")

    assert isinstance(client._error_from_status(429, "Too Many Requests"), LLMRateLimitError)
    assert isinstance(client._error_from_status(500, "Server error"), LLMResponseError)


def test_complete_posts_payload(monkeypatch):
    captured = {}

    def fake_post(url, headers=None, data=None, timeout=None):
        captured["url"] = url
        captured["headers"] = headers
        captured["payload"] = json.loads(data)
        return FakeResponse(payload={"choices": [{"message": {"content": " hi there "}}]})

    monkeypatch.setattr("ai_chat.providers.llm.base.requests.post", fake_post)
    client = DeepSeekClient(api_key="secret", model="deepseek-chat", default_headers={"X-Test": "1"})

    reply = client.complete([Message.user("hello")], temperature=0.3)

    assert reply == "hi there"
    assert captured["url"] == "https://api.deepseek.com/v1/chat/completions"
    assert captured["headers"]["Authorization"] == "Bearer secret"
    assert captured["headers"]["X-Test"] == "1"
    assert captured["payload"] == {
        "model": "deepseek-chat",
        "messages": [{"role": "user", "content": "hello"}],
        "temperature": 0.3,
    }


def test_complete_retries_then_gives_up(monkeypatch):
    calls = []

    def fake_post(url, headers=None, data=None, timeout=None):
        calls.append(url)
        return FakeResponse(status_code=503, text="busy")

    monkeypatch.setattr("ai_chat.providers.llm.base.requests.post", fake_post)
    monkeypatch.setattr("ai_chat.providers.llm.base.time.sleep", lambda _: None)
    client = DeepSeekClient(api_key="k", model="m", retry_config=RetryConfig(max_retries=2))

    with pytest.raises(LLMRetryExhaustedError):
        client.complete([Message.user("hello")])
    assert len(calls) == 2


def test_stream_yields_deltas_until_done(monkeypatch):
    lines = [_sse("Hel"), "", ": keep-alive", _sse("lo"), "data: [DONE]", _sse("ignored")]

    def fake_post(url, headers=None, data=None, timeout=None, stream=False):
        assert stream is True
        assert json.loads(data)["stream"] is True
        return FakeResponse(lines=lines)

    monkeypatch.setattr("ai_chat.providers.llm.base.requests.post", fake_post)
    client = DeepSeekClient(api_key="k", model="m")

    chunks = list(client.stream([Message.user("hello")]))

    assert chunks == ["Hel", "lo"]


def test_stream_stops_when_aborted(monkeypatch):
    abort = AbortSignal()
    lines = [_sse("one"), _sse("two"), _sse("three")]
    monkeypatch.setattr(
        "ai_chat.providers.llm.base.requests.post",
        lambda *args, **kwargs: FakeResponse(lines=lines),
    )
    client = DeepSeekClient(api_key="k", model="m")

    received = []
    for chunk in client.stream([Message.user("hello")], abort=abort):
        received.append(chunk)
        abort.set_ctrlc()

    assert received == ["one"]


def test_stream_wraps_transport_errors(monkeypatch):
    def fake_post(*args, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr("ai_chat.providers.llm.base.requests.post", fake_post)
    client = DeepSeekClient(api_key="k", model="m")

    with pytest.raises(LLMConnectionError):
        list(client.stream([Message.user("hello")]))


def test_openrouter_provider_routing():
    client = OpenRouterClient(api_key="k", model="m", provider_only=["Cerebras"])

    payload = client._prepare_payload([Message.user("hi")], None, 100)

    assert payload["provider"] == {"only": ["Cerebras"]}
    assert payload["max_tokens"] == 100


def test_create_client():
    client = create_client("openrouter", api_key="k", model="m", provider_only=["Cerebras"])

    assert isinstance(client, OpenRouterClient)
    assert client._provider_only == ["Cerebras"]
    assert isinstance(create_client("DeepSeek", api_key="k", model="m", base_url="http://local"), DeepSeekClient)
    assert supported_providers() == ["deepseek", "openrouter"]
    with pytest.raises(ValueError):
        create_client("unknown", api_key="k", model="m")
