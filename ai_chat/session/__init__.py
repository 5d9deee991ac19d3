"""Session management utilities exposed for package consumers."""
from .input import Input, InputError, resolve_data_url
from .role import Role, RoleNotFoundError, RoleRegistry, SerializationError
from .session import (
    GuardViolation,
    PersistenceError,
    Session,
    SessionLoadError,
    SessionSaveError,
)
from .store import SessionStore
from .summarizer import HeuristicConversationSummarizer, LLMConversationSummarizer, compress_session

__all__ = [
    "GuardViolation",
    "HeuristicConversationSummarizer",
    "Input",
    "InputError",
    "LLMConversationSummarizer",
    "PersistenceError",
    "Role",
    "RoleNotFoundError",
    "RoleRegistry",
    "SerializationError",
    "Session",
    "SessionLoadError",
    "SessionSaveError",
    "SessionStore",
    "compress_session",
    "resolve_data_url",
]
