"""Command handler: turns REPL commands into session, role and client calls."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

import click

from ai_chat.core.message import Message
from ai_chat.core.utils.config import ConfigError, Settings, parse_assignment
from ai_chat.core.utils.constants import TEMP_SESSION_NAME
from ai_chat.core.utils.logger import get_logger, new_correlation_id
from ai_chat.providers.llm.base import LLMClient, Model
from ai_chat.session.input import Input
from ai_chat.session.role import Role, RoleRegistry
from ai_chat.session.session import Session
from ai_chat.session.store import SessionStore
from ai_chat.session.summarizer import (
    ConversationSummarizer,
    LLMConversationSummarizer,
    compress_session,
)

from .abort import AbortSignal

LOGGER = get_logger(__name__)


class ReplCmdKind(str, Enum):
    SUBMIT = "submit"
    SET_ROLE = "set_role"
    CLEAR_ROLE = "clear_role"
    PROMPT = "prompt"
    INFO = "info"
    UPDATE_CONFIG = "update_config"
    SET_SESSION = "set_session"
    SAVE_SESSION = "save_session"


@dataclass(frozen=True)
class ReplCmd:
    kind: ReplCmdKind
    arg: Optional[str] = None
    files: Tuple[str, ...] = ()

    @classmethod
    def submit(cls, text: str, files: Sequence[str] = ()) -> "ReplCmd":
        return cls(ReplCmdKind.SUBMIT, text, tuple(files))

    @classmethod
    def set_role(cls, name: str) -> "ReplCmd":
        return cls(ReplCmdKind.SET_ROLE, name)

    @classmethod
    def clear_role(cls) -> "ReplCmd":
        return cls(ReplCmdKind.CLEAR_ROLE)

    @classmethod
    def prompt(cls, text: str) -> "ReplCmd":
        return cls(ReplCmdKind.PROMPT, text)

    @classmethod
    def info(cls, target: Optional[str] = None) -> "ReplCmd":
        return cls(ReplCmdKind.INFO, target)

    @classmethod
    def update_config(cls, text: str) -> "ReplCmd":
        return cls(ReplCmdKind.UPDATE_CONFIG, text)

    @classmethod
    def set_session(cls, name: Optional[str]) -> "ReplCmd":
        return cls(ReplCmdKind.SET_SESSION, name)

    @classmethod
    def save_session(cls, name: Optional[str]) -> "ReplCmd":
        return cls(ReplCmdKind.SAVE_SESSION, name)


class ReplCmdHandler:
    """Owns the active session and performs exchanges under the shared abort signal.

    Session and role state is only touched from the REPL thread; the client only
    reads the abort signal.
    """

    def __init__(
        self,
        settings: Settings,
        client: LLMClient,
        abort: AbortSignal,
        *,
        store: SessionStore,
        roles: RoleRegistry,
        session: Optional[Session] = None,
        summarizer: Optional[ConversationSummarizer] = None,
        echo: Callable[..., None] = click.echo,
    ) -> None:
        self.settings = settings
        self.client = client
        self.abort = abort
        self.store = store
        self.roles = roles
        self.model = Model.from_id(settings.model_id, settings.max_input_tokens)
        self.session = session or Session(TEMP_SESSION_NAME, self.model)
        self.summarizer = summarizer or LLMConversationSummarizer(
            client, summarize_prompt=settings.summarize_prompt
        )
        self._echo = echo
        self._reply = ""

    def get_reply(self) -> str:
        return self._reply

    def handle(self, cmd: ReplCmd) -> None:
        if cmd.kind is ReplCmdKind.SUBMIT:
            self._submit(cmd.arg or "", cmd.files)
        elif cmd.kind is ReplCmdKind.SET_ROLE:
            role = self.roles.find(cmd.arg or "")
            self.session.update_role(role)
            self._echo(f"Role '{role.name}' selected")
        elif cmd.kind is ReplCmdKind.CLEAR_ROLE:
            self._clear_role()
        elif cmd.kind is ReplCmdKind.PROMPT:
            self.session.update_role(Role.temporary(cmd.arg or ""))
        elif cmd.kind is ReplCmdKind.INFO:
            self._echo(self._info(cmd.arg))
        elif cmd.kind is ReplCmdKind.UPDATE_CONFIG:
            self._update_config(cmd.arg or "")
        elif cmd.kind is ReplCmdKind.SET_SESSION:
            self._set_session(cmd.arg)
        elif cmd.kind is ReplCmdKind.SAVE_SESSION:
            path = self.store.save(self.session, cmd.arg)
            self._echo(f"Saved session to {path}")
        else:  # pragma: no cover - closed enum
            raise ValueError(f"Unhandled command {cmd.kind!r}")

    def on_exit(self) -> None:
        self._autosave()

    # ------------------------------------------------------------------
    # Submit
    # ------------------------------------------------------------------

    def _submit(self, text: str, files: Sequence[str] = ()) -> None:
        if not text.strip() and not files:
            return
        correlation_id = new_correlation_id()
        input = Input.from_files(text, files) if files else Input.from_str(text)
        if self.settings.dry_run:
            self._echo(self.session.echo_messages(input))
            return

        messages = self.session.build_emssages(input)
        temperature = self._temperature()
        LOGGER.info(
            "Submitting %d messages to %s (cid=%s)", len(messages), self.session.model_id, correlation_id
        )
        output = self._exchange(messages, temperature)
        if output is None:
            LOGGER.info("Exchange cancelled, session left untouched")
            return

        self.session.add_message(input, output)
        self._reply = output
        self._autosave()
        if self.session.need_compress(self.settings.compress_threshold):
            self._compress()

    def _exchange(self, messages: List[Message], temperature: Optional[float]) -> Optional[str]:
        """Stream a reply, returning ``None`` when the user aborted it."""
        chunks: List[str] = []
        try:
            for chunk in self.client.stream(messages, temperature=temperature, abort=self.abort):
                if self.abort.aborted():
                    break
                chunks.append(chunk)
                self._echo(chunk, nl=False)
        except KeyboardInterrupt:
            self.abort.set_ctrlc()
        self._echo("")
        if self.abort.aborted():
            return None
        return "".join(chunks)

    def _temperature(self) -> Optional[float]:
        if self.session.temperature is not None:
            return self.session.temperature
        return self.settings.temperature

    def _compress(self) -> None:
        self._echo("Compressing the session.")
        try:
            compress_session(self.session, self.summarizer, self.settings.summary_prompt)
        except KeyboardInterrupt:
            # The turn is already recorded; compression is retried after the next one.
            self.abort.set_ctrlc()
            self._echo("Compression cancelled.")
            return
        self._autosave()

    def _autosave(self) -> None:
        if self.settings.save_session and not self.session.is_temp():
            self.store.save(self.session)

    # ------------------------------------------------------------------
    # Other commands
    # ------------------------------------------------------------------

    def _clear_role(self) -> None:
        if self.session.is_empty():
            self.session.update_role(None)
        else:
            self.session.role = None

    def _info(self, target: Optional[str]) -> str:
        if target == "role":
            if self.session.role is None:
                return "No role"
            return self.session.role.export()
        if target == "session":
            if self.session.path is None:
                return self.session.info()
            return self.session.export()
        if target:
            raise ConfigError(f"Unknown info target '{target}'")
        lines = [f"{key:<20}{value}" for key, value in self.settings.info().items()]
        lines.append(f"{'session':<20}{self.session.name}")
        lines.append(f"{'role':<20}{self.session.role.name if self.session.role else ''}")
        tokens, percent = self.session.tokens_and_percent()
        lines.append(f"{'tokens':<20}{tokens} ({percent}%)")
        return "\n".join(lines)

    def _update_config(self, text: str) -> None:
        key, value = parse_assignment(text)
        if key == "compress_threshold":
            self.session.set_compress_threshold(value)
        elif key == "temperature":
            self.settings.temperature = value
            self.session.set_temperature(value)
        else:
            setattr(self.settings, key, value)
        LOGGER.debug("Updated %s to %r", key, value)

    def _set_session(self, name: Optional[str]) -> None:
        if not name:
            names = self.store.list_names()
            self._echo(f"Current session: {self.session.name}")
            if names:
                self._echo("Saved sessions: " + ", ".join(names))
            return
        self._autosave()
        self.session = self.store.open(name, self.model)
        self._echo(f"Switched to session '{self.session.name}'")


__all__ = ["ReplCmd", "ReplCmdHandler", "ReplCmdKind"]
