"""Conversational session state: live history, compression ledger and persistence."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError

from ai_chat.core.message import ContentKind, Message, MessageRole
from ai_chat.core.utils.constants import (
    COMPRESSION_CONTINUITY_WINDOW,
    MIN_COMPRESS_THRESHOLD,
    TEMP_SESSION_NAME,
)
from ai_chat.core.utils.logger import get_logger
from ai_chat.providers.llm.base import Model

from .input import Input, resolve_data_url
from .role import Role, SerializationError

LOGGER = get_logger(__name__)


class GuardViolation(RuntimeError):
    """Raised when an operation's precondition on the session does not hold."""


class PersistenceError(RuntimeError):
    """Base class for failures reading or writing a session record."""


class SessionLoadError(PersistenceError):
    """Raised when a stored session cannot be read or is structurally invalid."""


class SessionSaveError(PersistenceError):
    """Raised when a session cannot be serialized or written."""


class SessionRecord(BaseModel):
    """On-disk shape of a session."""

    model: str
    temperature: Optional[float] = None
    messages: List[Dict[str, Any]] = Field(default_factory=list)
    data_urls: Dict[str, str] = Field(default_factory=dict)
    compressed_messages: List[Dict[str, Any]] = Field(default_factory=list)
    compress_threshold: Optional[int] = None


class Session:
    """Authoritative message history for one conversation.

    ``messages`` is the live history sent to the model and only changes through
    :meth:`add_message`, :meth:`compress` and :meth:`clear_messages`.
    ``compressed_messages`` keeps everything evicted by compression for display
    and export. ``name``, ``path``, ``dirty``, ``compressing``, ``role`` and
    ``model`` are never persisted.
    """

    def __init__(self, name: str, model: Model, role: Optional[Role] = None) -> None:
        self.model_id = model.id()
        self.temperature = role.temperature if role is not None else None
        self.messages: List[Message] = []
        self.compressed_messages: List[Message] = []
        self.data_urls: Dict[str, str] = {}
        self.compress_threshold: Optional[int] = None
        self.name = name
        self.path: Optional[str] = None
        self.dirty = False
        self.compressing = False
        self.role = role
        self.model = model

    @classmethod
    def load(cls, name: str, path: Path, model: Optional[Model] = None) -> "Session":
        """Read a persisted session; only ``name`` and ``path`` are set afterwards.

        ``model`` rebinds the transient model; by default it is derived from the
        stored model id.
        """
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise SessionLoadError(f"Failed to load session {name} at {path}") from exc
        try:
            data = yaml.safe_load(content)
            if not isinstance(data, dict):
                raise ValueError("session record must be a mapping")
            record = SessionRecord(**data)
            messages = [Message.from_payload(item) for item in record.messages]
            compressed = [Message.from_payload(item) for item in record.compressed_messages]
            bound_model = model or Model.from_id(record.model)
        except (yaml.YAMLError, ValidationError, ValueError, KeyError, TypeError) as exc:
            raise SessionLoadError(f"Invalid session {name}: {exc}") from exc

        session = cls(name, bound_model)
        session.model_id = record.model
        session.temperature = record.temperature
        session.messages = messages
        session.compressed_messages = compressed
        session.data_urls = dict(record.data_urls)
        session.compress_threshold = record.compress_threshold
        session.path = str(path)
        LOGGER.debug("Loaded session %s from %s (%d messages)", name, path, len(messages))
        return session

    def is_temp(self) -> bool:
        return self.name == TEMP_SESSION_NAME

    def is_empty(self) -> bool:
        return not self.messages

    def user_messages_len(self) -> int:
        return sum(1 for message in self.messages if message.role.is_user())

    # ------------------------------------------------------------------
    # Token budget
    # ------------------------------------------------------------------

    def tokens(self) -> int:
        return self.model.total_tokens(self.messages)

    def tokens_and_percent(self) -> Tuple[int, float]:
        tokens = self.tokens()
        max_input_tokens = self.model.max_input_tokens or 0
        if max_input_tokens == 0:
            return tokens, 0.0
        return tokens, round(tokens / max_input_tokens * 100, 2)

    def need_compress(self, current_compress_threshold: int) -> bool:
        """Whether the live history exceeds the effective compression threshold.

        Thresholds below ``MIN_COMPRESS_THRESHOLD`` disable compression.
        """
        threshold = self.compress_threshold
        if threshold is None:
            threshold = current_compress_threshold
        return threshold >= MIN_COMPRESS_THRESHOLD and self.tokens() > threshold

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def update_role(self, role: Optional[Role]) -> None:
        self.guard_empty()
        self.temperature = role.temperature if role is not None else None
        self.role = role

    def set_temperature(self, value: Optional[float]) -> None:
        self.temperature = value
        self.dirty = True

    def set_compress_threshold(self, value: Optional[int]) -> None:
        self.compress_threshold = value
        self.dirty = True

    def set_model(self, model: Model) -> None:
        self.model_id = model.id()
        self.model = model
        self.dirty = True

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def compress(self, prompt: str) -> None:
        """Evict the live history into the ledger and replace it with a summary."""
        self.compressed_messages.extend(self.messages)
        self.messages = [Message.system(prompt)]
        self.role = None
        self.dirty = True
        LOGGER.info("Compressed session %s (%d messages archived)", self.name, len(self.compressed_messages))

    def add_message(self, input: Input, output: str) -> None:
        if not self.messages and self.role is not None:
            self.messages.extend(self.role.build_messages(input))
        else:
            self.messages.append(Message.user(input.to_message_content()))
        self.data_urls.update(input.data_urls())
        self.messages.append(Message.assistant(output))
        self.role = None
        self.dirty = True

    def clear_messages(self) -> None:
        self.messages.clear()
        self.compressed_messages.clear()
        self.data_urls.clear()
        self.dirty = True

    def build_emssages(self, input: Input) -> List[Message]:
        """Return the messages the next request would carry, without mutating state."""
        messages = list(self.messages)
        if not messages and self.role is not None:
            return self.role.build_messages(input)
        if len(messages) == 1 and len(self.compressed_messages) >= COMPRESSION_CONTINUITY_WINDOW:
            messages.extend(self.compressed_messages[-COMPRESSION_CONTINUITY_WINDOW:])
        messages.append(Message.user(input.to_message_content()))
        return messages

    build_messages = build_emssages

    def echo_messages(self, input: Input) -> str:
        payload = [message.to_payload() for message in self.build_emssages(input)]
        try:
            return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)
        except yaml.YAMLError:
            return "Unable to echo message"

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {"model": self.model_id}
        if self.temperature is not None:
            record["temperature"] = self.temperature
        record["messages"] = [message.to_payload() for message in self.messages]
        record["data_urls"] = dict(self.data_urls)
        record["compressed_messages"] = [message.to_payload() for message in self.compressed_messages]
        if self.compress_threshold is not None:
            record["compress_threshold"] = self.compress_threshold
        return record

    def save(self, session_path: Path) -> None:
        """Write the session when it has unsaved changes; ``dirty`` survives failures."""
        if not self.dirty:
            return
        try:
            content = yaml.safe_dump(self.to_record(), sort_keys=False, allow_unicode=True)
        except yaml.YAMLError as exc:
            raise SessionSaveError(f"Failed to serialize session {self.name}") from exc
        try:
            session_path.write_text(content, encoding="utf-8")
        except OSError as exc:
            raise SessionSaveError(f"Failed to write session {self.name} to {session_path}") from exc
        self.path = str(session_path)
        self.dirty = False
        LOGGER.debug("Saved session %s to %s", self.name, session_path)

    # ------------------------------------------------------------------
    # Guards
    # ------------------------------------------------------------------

    def guard_save(self) -> None:
        if self.path is None:
            raise GuardViolation(f"Not found session '{self.name}'")

    def guard_empty(self) -> None:
        if not self.is_empty():
            raise GuardViolation("Cannot perform this action in a session with messages")

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def export(self) -> str:
        self.guard_save()
        tokens, percent = self.tokens_and_percent()
        data: Dict[str, Any] = {"path": self.path, "model": self.model_id}
        if self.temperature is not None:
            data["temperature"] = self.temperature
        data["total_tokens"] = tokens
        if self.model.max_input_tokens:
            data["max_input_tokens"] = self.model.max_input_tokens
        if percent != 0.0:
            data["total/max"] = f"{percent}%"
        data["messages"] = [message.to_payload() for message in self.messages]
        try:
            return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)
        except yaml.YAMLError as exc:
            raise SerializationError(f"Unable to show info about session {self.name}") from exc

    def info(self) -> str:
        items: List[Tuple[str, str]] = []
        if self.path:
            items.append(("path", self.path))
        items.append(("model", self.model.id()))
        if self.temperature is not None:
            items.append(("temperature", str(self.temperature)))
        if self.compress_threshold is not None:
            items.append(("compress_threshold", str(self.compress_threshold)))
        if self.model.max_input_tokens:
            items.append(("max_input_tokens", str(self.model.max_input_tokens)))
        lines = [f"{key:<20}{value}" for key, value in items]

        if not self.is_empty():
            lines.append("")
            resolve = lambda url: resolve_data_url(self.data_urls, url)  # noqa: E731
            for message in self.messages:
                if message.role is MessageRole.SYSTEM:
                    lines.append(message.content.render_input(resolve))
                elif message.role is MessageRole.ASSISTANT:
                    if message.content.kind is ContentKind.TEXT:
                        lines.append(message.content.text)
                    lines.append("")
                else:
                    lines.append(f"{self.name}) {message.content.render_input(resolve)}")
        return "\n".join(lines)


__all__ = [
    "GuardViolation",
    "PersistenceError",
    "Session",
    "SessionLoadError",
    "SessionRecord",
    "SessionSaveError",
]
