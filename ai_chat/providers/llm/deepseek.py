"""DeepSeek API client implementation."""
from __future__ import annotations

from typing import Any, Dict

from .base import HTTPChatLLMClient, RetryConfig

DEFAULT_BASE_URL = "https://api.deepseek.com/v1"


class DeepSeekClient(HTTPChatLLMClient):
    """Chat-completions client for the DeepSeek API."""

    def __init__(
        self,
        api_key: str,
        model: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 120.0,
        retry_config: RetryConfig | None = None,
        default_headers: Dict[str, str] | None = None,
    ) -> None:
        super().__init__(
            "DeepSeek",
            api_key,
            model,
            base_url=base_url,
            timeout=timeout,
            retry_config=retry_config,
            default_headers=default_headers,
        )

    def _extend_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return payload


__all__ = ["DeepSeekClient", "DEFAULT_BASE_URL"]
