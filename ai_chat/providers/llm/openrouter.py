"""OpenRouter API client implementation."""
from __future__ import annotations

from typing import Any, Dict, Sequence

from .base import HTTPChatLLMClient, RetryConfig

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterClient(HTTPChatLLMClient):
    """Chat-completions client for OpenRouter with upstream provider routing."""

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 120.0,
        retry_config: RetryConfig | None = None,
        provider_only: Sequence[str] | None = None,
        default_headers: Dict[str, str] | None = None,
    ) -> None:
        super().__init__(
            "OpenRouter",
            api_key,
            model,
            base_url=base_url,
            timeout=timeout,
            retry_config=retry_config,
            default_headers=default_headers,
        )
        self._provider_only = list(provider_only or ())

    def _extend_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        if self._provider_only:
            payload["provider"] = {"only": list(self._provider_only)}
        return payload


__all__ = ["OpenRouterClient", "DEFAULT_BASE_URL"]
