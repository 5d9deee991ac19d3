"""Public package interface for the aichat client."""
from __future__ import annotations

from importlib import metadata as _metadata

try:
    __version__ = _metadata.version("ai-chat")
except _metadata.PackageNotFoundError:  # pragma: no cover - fallback when not installed
    __version__ = "0.1.0"

from . import core, providers, repl, session
from .core import ConfigError, Settings, configure_logging, get_logger, load_settings
from .core.message import ContentKind, ContentPart, Message, MessageContent, MessageRole
from .providers.llm import (
    LLMClient,
    LLMError,
    Model,
    RetryConfig,
    create_client,
)
from .repl import AbortSignal, Repl, ReplCmd, ReplCmdHandler
from .session import (
    GuardViolation,
    Input,
    Role,
    RoleRegistry,
    Session,
    SessionLoadError,
    SessionSaveError,
    SessionStore,
)

__all__ = [
    "__version__",
    "AbortSignal",
    "ConfigError",
    "ContentKind",
    "ContentPart",
    "GuardViolation",
    "Input",
    "LLMClient",
    "LLMError",
    "Message",
    "MessageContent",
    "MessageRole",
    "Model",
    "Repl",
    "ReplCmd",
    "ReplCmdHandler",
    "RetryConfig",
    "Role",
    "RoleRegistry",
    "Session",
    "SessionLoadError",
    "SessionSaveError",
    "SessionStore",
    "Settings",
    "configure_logging",
    "core",
    "create_client",
    "get_logger",
    "load_settings",
    "providers",
    "repl",
    "session",
]
