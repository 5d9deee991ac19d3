"""CLI package exposing the aichat command entry points."""
from __future__ import annotations

from .commands import NaturalLanguageGroup, chat, cli, main, repl
from .utils import build_handler, get_llm_client
from ai_chat.core.utils.config import Settings, load_settings

__all__ = [
    "NaturalLanguageGroup",
    "Settings",
    "build_handler",
    "chat",
    "cli",
    "get_llm_client",
    "load_settings",
    "main",
    "repl",
]
