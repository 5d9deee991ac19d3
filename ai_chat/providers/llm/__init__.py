"""Factory helpers for LLM providers."""
from __future__ import annotations

from .base import (
    CancellationToken,
    HTTPChatLLMClient,
    LLMClient,
    LLMConnectionError,
    LLMError,
    LLMRateLimitError,
    LLMResponseError,
    LLMRetryExhaustedError,
    LLMTimeoutError,
    Model,
    RetryConfig,
)
from .deepseek import DeepSeekClient, DEFAULT_BASE_URL as DEEPSEEK_DEFAULT_BASE_URL
from .openrouter import OpenRouterClient, DEFAULT_BASE_URL as OPENROUTER_DEFAULT_BASE_URL

_PROVIDER_MAP = {
    "deepseek": {
        "client": DeepSeekClient,
        "default_base_url": DEEPSEEK_DEFAULT_BASE_URL,
    },
    "openrouter": {
        "client": OpenRouterClient,
        "default_base_url": OPENROUTER_DEFAULT_BASE_URL,
    },
}


def create_client(
    provider: str,
    api_key: str,
    model: str,
    base_url: str | None = None,
    **provider_kwargs,
) -> LLMClient:
    key = provider.lower()
    try:
        provider_entry = _PROVIDER_MAP[key]
    except KeyError as exc:
        raise ValueError(f"Unsupported LLM provider: {provider}") from exc

    client_cls = provider_entry["client"]
    provider_kwargs.setdefault("base_url", base_url or provider_entry["default_base_url"])
    return client_cls(api_key=api_key, model=model, **provider_kwargs)


def supported_providers() -> list[str]:
    return sorted(_PROVIDER_MAP)


__all__ = [
    "create_client",
    "supported_providers",
    "CancellationToken",
    "DeepSeekClient",
    "HTTPChatLLMClient",
    "LLMClient",
    "LLMError",
    "LLMRateLimitError",
    "LLMTimeoutError",
    "LLMConnectionError",
    "LLMResponseError",
    "LLMRetryExhaustedError",
    "Model",
    "OpenRouterClient",
    "RetryConfig",
    "DEEPSEEK_DEFAULT_BASE_URL",
    "OPENROUTER_DEFAULT_BASE_URL",
]
