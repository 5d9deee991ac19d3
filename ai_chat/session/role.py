"""Roles: named prompt templates merged into the start of a conversation."""
from __future__ import annotations

import os
import platform
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from ai_chat.core.message import Message, MessageContent
from ai_chat.core.utils.config import ConfigError
from ai_chat.core.utils.constants import ARG_PLACEHOLDER, INPUT_PLACEHOLDER, TEMP_ROLE_NAME
from ai_chat.core.utils.logger import get_logger

from .input import Input

LOGGER = get_logger(__name__)


class SerializationError(RuntimeError):
    """Raised when a structured dump for display fails."""


class RoleNotFoundError(LookupError):
    """Raised when no configured role matches the requested name."""


def detect_os() -> str:
    system = platform.system().lower()
    return {"darwin": "macos"}.get(system, system or "unknown")


def detect_shell() -> str:
    """Best-effort name of the interactive shell the user runs commands in."""
    if os.name == "nt":
        if os.environ.get("PSModulePath") and not os.environ.get("PROMPT"):
            return "powershell"
        return "cmd"
    shell = os.environ.get("SHELL") or "/bin/sh"
    name = Path(shell).name
    return "nushell" if name == "nu" else name


def complete_prompt_args(prompt: str, name: str) -> str:
    """Substitute ``__ARG<n>__`` placeholders with the colon-separated args of ``name``."""
    prompt = prompt.strip()
    for index, arg in enumerate(name.split(":")[1:], start=1):
        prompt = prompt.replace(ARG_PLACEHOLDER.format(index=index), arg)
    return prompt


@dataclass
class Role:
    name: str
    prompt: str
    temperature: Optional[float] = None

    EXECUTE = "__execute__"
    DESCRIBE_COMMAND = "__describe_command__"
    CODE = "__code__"

    @classmethod
    def for_execute(cls) -> "Role":
        os_name = detect_os()
        shell = detect_shell()
        combine = ";" if shell in {"nushell", "powershell"} else "&&"
        prompt = (
            f"Provide only {shell} commands for {os_name} without any description.\n"
            "If there is a lack of details, provide most logical solution.\n"
            f"Ensure the output is a valid {shell} command.\n"
            f"If multiple steps required try to combine them together using {combine}.\n"
            "Provide only plain text without Markdown formatting.\n"
            "Do not provide markdown formatting such as ```"
        )
        return cls(name=cls.EXECUTE, prompt=prompt)

    @classmethod
    def for_describe_command(cls) -> "Role":
        prompt = (
            "Provide a terse, single sentence description of the given shell command.\n"
            "Describe each argument and option of the command.\n"
            "Provide short responses in about 80 words.\n"
            "APPLY MARKDOWN formatting when possible."
        )
        return cls(name=cls.DESCRIBE_COMMAND, prompt=prompt)

    @classmethod
    def for_code(cls) -> "Role":
        prompt = (
            "Provide only code as output without any description.\n"
            "Provide only code in plain text format without Markdown formatting.\n"
            "Do not include symbols such as ``` or ```python.\n"
            "If there is a lack of details, provide most logical solution.\n"
            "You are not allowed to ask for more details.\n"
            "For example if the prompt is \"Hello world Python\", you should return \"print('Hello world')\"."
        )
        return cls(name=cls.CODE, prompt=prompt)

    @classmethod
    def temporary(cls, prompt: str) -> "Role":
        return cls(name=TEMP_ROLE_NAME, prompt=prompt)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Role":
        name = data.get("name")
        prompt = data.get("prompt")
        if not isinstance(name, str) or not isinstance(prompt, str):
            raise ValueError("role entries need a string 'name' and 'prompt'")
        temperature = data.get("temperature")
        return cls(
            name=name,
            prompt=prompt,
            temperature=float(temperature) if temperature is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "prompt": self.prompt, "temperature": self.temperature}

    def export(self) -> str:
        try:
            output = yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)
        except yaml.YAMLError as exc:
            raise SerializationError(f"Unable to show info about role {self.name}") from exc
        return output.rstrip()

    def embedded(self) -> bool:
        return INPUT_PLACEHOLDER in self.prompt

    def complete_prompt_args(self, name: str) -> None:
        self.name = name
        self.prompt = complete_prompt_args(self.prompt, name)

    def match_name(self, name: str) -> bool:
        """Match ``name`` exactly, or by base name and arity for ``base:arg`` roles."""
        if ":" in self.name:
            role_parts = self.name.split(":")
            name_parts = name.split(":")
            return role_parts[0] == name_parts[0] and len(role_parts) == len(name_parts)
        return self.name == name

    def echo_messages(self, input: Input) -> str:
        if self.embedded():
            return self.prompt.replace(INPUT_PLACEHOLDER, input.render())
        return f"{self.prompt}\n\n{input.render()}"

    def build_messages(self, input: Input) -> List[Message]:
        content = input.to_message_content()
        if self.embedded():
            merged = content.merge_prompt(lambda value: self.prompt.replace(INPUT_PLACEHOLDER, value))
            return [Message.user(merged)]
        return [
            Message.system(self.prompt),
            Message.user(content),
        ]


class RoleRegistry:
    """Roles available for ``.role <name>``: user roles first, then the built-in presets."""

    def __init__(self, roles: Iterable[Role] = ()) -> None:
        self._roles: List[Role] = list(roles)
        self._presets: List[Role] = [Role.for_execute(), Role.for_describe_command(), Role.for_code()]

    @classmethod
    def load(cls, path: Path) -> "RoleRegistry":
        """Read roles from a YAML list; a missing file yields only the presets."""
        if not path.is_file():
            LOGGER.debug("No roles file at %s", path)
            return cls()
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or []
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Failed to load roles at {path}: {exc}") from exc
        if not isinstance(data, list):
            raise ConfigError(f"Invalid roles file {path}: expected a list of roles")
        roles: List[Role] = []
        for index, entry in enumerate(data):
            if not isinstance(entry, dict):
                raise ConfigError(f"Invalid role #{index + 1} in {path}")
            try:
                roles.append(Role.from_dict(entry))
            except (TypeError, ValueError) as exc:
                raise ConfigError(f"Invalid role #{index + 1} in {path}: {exc}") from exc
        LOGGER.debug("Loaded %d roles from %s", len(roles), path)
        return cls(roles)

    def names(self) -> List[str]:
        """User roles first, then the built-in presets."""
        return [role.name for role in [*self._roles, *self._presets]]

    def find(self, name: str) -> Role:
        """Return a fresh copy of the matching role with its arguments filled in."""
        for role in [*self._roles, *self._presets]:
            if role.match_name(name):
                found = replace(role)
                if ":" in found.name:
                    found.complete_prompt_args(name)
                return found
        raise RoleNotFoundError(f"Unknown role '{name}'")


__all__ = [
    "Role",
    "RoleNotFoundError",
    "RoleRegistry",
    "SerializationError",
    "complete_prompt_args",
    "detect_os",
    "detect_shell",
]
