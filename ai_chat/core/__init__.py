"""Core utilities shared across the chat client."""
from __future__ import annotations

from .utils import (
    ConfigError,
    Settings,
    configure_logging,
    estimate_tokens,
    get_logger,
    load_settings,
)

__all__ = [
    "ConfigError",
    "Settings",
    "configure_logging",
    "estimate_tokens",
    "get_logger",
    "load_settings",
]
