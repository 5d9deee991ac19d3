"""Convenience exports for common utility helpers."""
from __future__ import annotations

from .config import ConfigError, Settings, find_config_in_parents, load_settings
from .logger import (
    configure_logging,
    get_correlation_id,
    get_logger,
    new_correlation_id,
    set_correlation_id,
)
from .tokens import estimate_tokens, summarize_text

__all__ = [
    "ConfigError",
    "Settings",
    "configure_logging",
    "estimate_tokens",
    "find_config_in_parents",
    "get_correlation_id",
    "get_logger",
    "load_settings",
    "new_correlation_id",
    "set_correlation_id",
    "summarize_text",
]
