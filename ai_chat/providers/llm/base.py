"""Model binding and the HTTP chat-completions client shared by providers."""
from __future__ import annotations

import json
import random
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, Optional, Protocol, Sequence

import requests

from ai_chat.core.message import Message
from ai_chat.core.utils.constants import MODEL_MAX_INPUT_TOKENS
from ai_chat.core.utils.logger import get_logger
from ai_chat.core.utils.tokens import estimate_tokens

LOGGER = get_logger(__name__)

_SSE_PREFIX = "data: "
_SSE_DONE = "[DONE]"


@dataclass
class Model:
    """Binding between a session and a provider model, with its token budget."""

    provider: str
    name: str
    max_input_tokens: Optional[int] = None

    @classmethod
    def from_id(cls, model_id: str, max_input_tokens: Optional[int] = None) -> "Model":
        provider, sep, name = model_id.partition(":")
        if not sep or not provider or not name:
            raise ValueError(f"Invalid model id '{model_id}', expected '<provider>:<model>'")
        if max_input_tokens is None:
            max_input_tokens = MODEL_MAX_INPUT_TOKENS.get(name)
        return cls(provider=provider, name=name, max_input_tokens=max_input_tokens)

    def id(self) -> str:
        return f"{self.provider}:{self.name}"

    def total_tokens(self, messages: Sequence[Message]) -> int:
        return estimate_tokens(messages)


class CancellationToken(Protocol):
    """Anything the streaming loop can poll to learn the user gave up on a reply."""

    def aborted(self) -> bool:
        ...


@dataclass
class RetryConfig:
    """Backoff policy for non-streaming requests."""
    max_retries: int = 3
    initial_delay: float = 0.5
    max_delay: float = 5.0
    backoff_multiplier: float = 2.0
    jitter_ratio: float = 0.1
    retryable_status_codes: set[int] = field(default_factory=lambda: {429, 500, 502, 503, 504})


class LLMError(RuntimeError):
    """Raised when an LLM provider encounters an error."""


class LLMRateLimitError(LLMError):
    """Raised when the provider reports a rate limit condition."""


class LLMTimeoutError(LLMError):
    """Raised when a request times out before the provider responds."""


class LLMConnectionError(LLMError):
    """Raised when the client is unable to reach the provider."""


class LLMResponseError(LLMError):
    """Raised when the provider returns a malformed or error response."""


class LLMRetryExhaustedError(LLMError):
    """Raised when retry attempts are exhausted without success."""


_STATUS_ERRORS = {
    429: LLMRateLimitError,
    408: LLMTimeoutError,
    504: LLMTimeoutError,
    502: LLMConnectionError,
    503: LLMConnectionError,
}


class LLMClient(Protocol):
    """What the REPL needs from a chat backend."""

    def complete(
        self,
        messages: Sequence[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Return the full assistant reply."""
        ...

    def stream(
        self,
        messages: Sequence[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        abort: CancellationToken | None = None,
    ) -> Iterable[str]:
        """Yield reply fragments, stopping early once ``abort`` fires."""
        ...


class HTTPChatLLMClient(LLMClient, ABC):
    """OpenAI-compatible ``/chat/completions`` client over ``requests``.

    Subclasses only name the provider and add their own payload fields through
    :meth:`_extend_payload`.
    """

    _COMPLETIONS_PATH = "/chat/completions"

    def __init__(
        self,
        provider_name: str,
        api_key: str,
        model: str,
        *,
        base_url: str,
        timeout: float = 120.0,
        retry_config: RetryConfig | None = None,
        default_headers: Dict[str, str] | None = None,
    ) -> None:
        self._provider_name = provider_name
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.retry_config = retry_config or RetryConfig()
        self._default_headers = dict(default_headers or {})

    @property
    def url(self) -> str:
        return self.base_url + self._COMPLETIONS_PATH

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            **self._default_headers,
        }

    def _error_from_status(self, status_code: int, response_text: str) -> LLMError:
        error_cls = _STATUS_ERRORS.get(status_code, LLMResponseError)
        return error_cls(f"{self._provider_name} API error {status_code}: {response_text}")

    def _transport_error(self, exc: requests.RequestException) -> LLMError:
        if isinstance(exc, requests.Timeout):
            return LLMTimeoutError(f"{self._provider_name} request timed out: {exc}")
        return LLMConnectionError(f"{self._provider_name} connection failed: {exc}")

    def _calculate_delay(self, attempt: int) -> float:
        policy = self.retry_config
        delay = min(policy.max_delay, policy.initial_delay * policy.backoff_multiplier ** (attempt - 1))
        spread = delay * max(0.0, policy.jitter_ratio)
        if delay <= 0 or spread == 0:
            return max(0.0, delay)
        return random.uniform(max(0.0, delay - spread), delay + spread)

    # ------------------------------------------------------------------
    # Payloads
    # ------------------------------------------------------------------

    def _prepare_payload(
        self,
        messages: Sequence[Message],
        temperature: float | None,
        max_tokens: int | None,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [message.to_payload() for message in messages],
        }
        if temperature is not None:
            payload["temperature"] = temperature
        if max_tokens is not None:
            payload["max_tokens"] = max_tokens
        return self._extend_payload(payload)

    @abstractmethod
    def _extend_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Return the payload with any provider-specific fields added."""

    # ------------------------------------------------------------------
    # Blocking completion
    # ------------------------------------------------------------------

    def _post_with_retries(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        body = json.dumps(payload)
        attempts = self.retry_config.max_retries
        last_error: LLMError | None = None

        for attempt in range(1, attempts + 1):
            try:
                response = requests.post(self.url, headers=self._headers(), data=body, timeout=self.timeout)
            except (requests.Timeout, requests.ConnectionError) as exc:
                last_error = self._transport_error(exc)
                if attempt == attempts:
                    raise last_error from exc
            except requests.RequestException as exc:
                raise LLMResponseError(f"{self._provider_name} request failed: {exc}") from exc
            else:
                if response.status_code not in self.retry_config.retryable_status_codes:
                    return self._decode(response)
                last_error = self._error_from_status(response.status_code, response.text)
                if attempt == attempts:
                    raise LLMRetryExhaustedError(
                        f"{self._provider_name} request exhausted retries: {last_error}"
                    ) from last_error
                LOGGER.info("Retrying %s request after status %s", self._provider_name, response.status_code)
            time.sleep(self._calculate_delay(attempt))

        raise LLMRetryExhaustedError(
            f"{self._provider_name} request failed after {attempts} attempts: {last_error}"
        )

    def _decode(self, response: requests.Response) -> Dict[str, Any]:
        if response.status_code >= 400:
            raise self._error_from_status(response.status_code, response.text)
        try:
            return response.json()
        except json.JSONDecodeError as exc:
            raise LLMResponseError(f"Invalid JSON response from {self._provider_name} API") from exc

    def complete(
        self,
        messages: Sequence[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        data = self._post_with_retries(self._prepare_payload(messages, temperature, max_tokens))
        try:
            content = data["choices"][0]["message"].get("content")
        except (KeyError, IndexError, AttributeError) as exc:
            raise LLMResponseError(f"Unexpected {self._provider_name} response structure") from exc
        return str(content).strip() if content else ""

    # ------------------------------------------------------------------
    # Streaming
    # ------------------------------------------------------------------

    def stream(
        self,
        messages: Sequence[Message],
        temperature: float | None = None,
        max_tokens: int | None = None,
        abort: CancellationToken | None = None,
    ) -> Iterable[str]:
        """Yield reply deltas as they arrive.

        ``abort`` is polled before every server-sent line; once it fires the
        generator returns early.
        """
        payload = self._prepare_payload(messages, temperature, max_tokens)
        payload["stream"] = True
        received = 0

        try:
            with requests.post(
                self.url,
                headers=self._headers(),
                data=json.dumps(payload),
                timeout=self.timeout,
                stream=True,
            ) as response:
                if response.status_code >= 400:
                    raise self._error_from_status(response.status_code, response.text)
                for delta in self._iter_deltas(response, abort):
                    received += len(delta)
                    yield delta
        except requests.RequestException as exc:
            raise self._transport_error(exc) from exc

        if abort is not None and abort.aborted():
            LOGGER.debug("%s stream aborted by user after %d chars", self._provider_name, received)
        else:
            LOGGER.debug("%s stream finished with %d chars", self._provider_name, received)

    def _iter_deltas(self, response: requests.Response, abort: CancellationToken | None) -> Iterator[str]:
        for line in response.iter_lines(decode_unicode=True):
            if abort is not None and abort.aborted():
                return
            if not line or not line.startswith(_SSE_PREFIX):
                continue
            data = line[len(_SSE_PREFIX):]
            if data == _SSE_DONE:
                return
            try:
                event = json.loads(data)
            except json.JSONDecodeError:
                continue
            delta = self._parse_stream_delta(event)
            if delta:
                yield delta

    def _parse_stream_delta(self, event: Dict[str, Any]) -> str | None:
        try:
            delta = event["choices"][0]["delta"].get("content")
        except (KeyError, IndexError, AttributeError):
            return None
        if not delta:
            return None
        return delta if isinstance(delta, str) else str(delta)


__all__ = [
    "CancellationToken",
    "HTTPChatLLMClient",
    "LLMClient",
    "LLMConnectionError",
    "LLMError",
    "LLMRateLimitError",
    "LLMResponseError",
    "LLMRetryExhaustedError",
    "LLMTimeoutError",
    "Model",
    "RetryConfig",
]
