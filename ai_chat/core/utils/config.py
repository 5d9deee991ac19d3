"""Configuration loading utilities for the chat client."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for <3.11
    import tomli as tomllib  # type: ignore

from .constants import (
    DEFAULT_COMPRESS_THRESHOLD,
    DEFAULT_SUMMARIZE_PROMPT,
    DEFAULT_SUMMARY_PROMPT,
)


CONFIG_FILENAMES: tuple[str, ...] = (".aichat.toml", "aichat.toml")
DEFAULT_CONFIG_DIR = Path.home() / ".config" / "aichat"
DEFAULT_CONFIG_PATHS = (
    DEFAULT_CONFIG_DIR / "config.toml",
    Path.home() / ".aichat.toml",
)

_BOOL_FIELDS = {"save_session", "dry_run", "structured_logging"}
_INT_FIELDS = {"max_input_tokens", "compress_threshold"}
_FLOAT_FIELDS = {"temperature", "timeout"}
_PATH_FIELDS = {"config_dir", "sessions_dir", "roles_file"}
_JSON_FIELDS = {"request_headers"}
_LIST_FIELDS = {"provider_only"}
# Keys accepted by ``.set`` inside the REPL.
RUNTIME_KEYS = ("temperature", "compress_threshold", "save_session", "dry_run")


class ConfigError(ValueError):
    """Raised when configuration input cannot be parsed or applied."""


def find_config_in_parents(
    start_path: Path, config_name: str | Sequence[str] = ".aichat.toml"
) -> Optional[Path]:
    """Search parent directories starting from ``start_path`` for configuration files."""

    if isinstance(config_name, str):
        candidate_names: tuple[str, ...] = (config_name,)
    else:
        candidate_names = tuple(config_name)

    current = start_path.resolve()
    if current.is_file():
        current = current.parent

    while True:
        for name in candidate_names:
            candidate = current / name
            if candidate.is_file():
                return candidate.resolve()
        if current.parent == current:
            break
        current = current.parent
    return None


@dataclass
class Settings:
    """Runtime configuration for the chat client."""

    provider: str = "deepseek"
    model: str = "deepseek-chat"
    api_key: Optional[str] = None
    base_url: Optional[str] = None
    request_headers: Dict[str, str] = field(default_factory=dict)
    provider_only: Tuple[str, ...] = ()
    timeout: float = 120.0
    temperature: Optional[float] = None
    max_input_tokens: Optional[int] = None
    compress_threshold: int = DEFAULT_COMPRESS_THRESHOLD
    summarize_prompt: str = DEFAULT_SUMMARIZE_PROMPT
    summary_prompt: str = DEFAULT_SUMMARY_PROMPT
    save_session: bool = True
    dry_run: bool = False
    config_dir: Path = DEFAULT_CONFIG_DIR
    sessions_dir: Optional[Path] = None
    roles_file: Optional[Path] = None
    log_level: str = "WARNING"
    structured_logging: bool = False

    @property
    def model_id(self) -> str:
        return f"{self.provider}:{self.model}"

    def resolved_sessions_dir(self) -> Path:
        return self.sessions_dir or self.config_dir / "sessions"

    def resolved_roles_file(self) -> Path:
        return self.roles_file or self.config_dir / "roles.yaml"

    def info(self) -> Dict[str, Any]:
        return {
            "model": self.model_id,
            "temperature": self.temperature,
            "compress_threshold": self.compress_threshold,
            "save_session": self.save_session,
            "dry_run": self.dry_run,
            "config_dir": str(self.config_dir),
            "sessions_dir": str(self.resolved_sessions_dir()),
            "roles_file": str(self.resolved_roles_file()),
        }


def parse_assignment(text: str) -> Tuple[str, Any]:
    """Split ``<key> <value>`` and convert the value for a runtime key."""
    parts = text.strip().split(None, 1)
    if len(parts) != 2:
        raise ConfigError("Usage: .set <key> <value>")
    key, raw = parts[0], parts[1].strip()
    if key not in RUNTIME_KEYS:
        raise ConfigError(f"Unknown key '{key}'")
    return key, parse_runtime_value(key, raw)


def parse_runtime_value(key: str, raw: str) -> Any:
    """Convert a textual ``.set`` value to the type expected by ``key``.

    ``null``/``none`` unset optional values.
    """
    if raw.lower() in {"null", "none"}:
        return None
    try:
        if key in _BOOL_FIELDS:
            if raw.lower() not in {"1", "0", "true", "false", "on", "off", "yes", "no", "y", "n"}:
                raise ValueError(raw)
            return _cast_bool(raw)
        if key in _INT_FIELDS:
            return int(raw)
        if key in _FLOAT_FIELDS:
            return float(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid value '{raw}' for '{key}'") from exc
    return raw


def _cast_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in {"1", "true", "on", "yes", "y"}
    return bool(value)


def _load_from_file(path: Path) -> Dict[str, Any]:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as handle:
            data = tomllib.load(handle)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid config file {path}: {exc}") from exc
    return {k.replace("-", "_"): v for k, v in data.items()}


def _load_from_env(prefix: str = "AICHAT_") -> Dict[str, Any]:
    env: Dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        field_name = key[len(prefix) :].lower()
        if field_name in _BOOL_FIELDS:
            env[field_name] = _cast_bool(value)
        elif field_name in _INT_FIELDS:
            env[field_name] = int(value)
        elif field_name in _FLOAT_FIELDS:
            env[field_name] = float(value)
        elif field_name in _PATH_FIELDS:
            env[field_name] = Path(value).expanduser()
        elif field_name in _JSON_FIELDS:
            try:
                env[field_name] = json.loads(value)
            except json.JSONDecodeError:
                env[field_name] = {}
        else:
            env[field_name] = value
    return env


def load_settings(explicit_path: Optional[Path] = None) -> Settings:
    """Load configuration, merging file and environment sources."""

    file_data: Dict[str, Any] = {}
    if explicit_path:
        file_data.update(_load_from_file(explicit_path))
    else:
        search_paths = []
        project_config = find_config_in_parents(Path.cwd(), CONFIG_FILENAMES)
        if project_config:
            search_paths.append(project_config)
        search_paths.extend(DEFAULT_CONFIG_PATHS)
        for candidate in search_paths:
            file_data = _load_from_file(candidate)
            if file_data:
                break

    env_data = _load_from_env()
    merged: Dict[str, Any] = {**file_data, **env_data}

    for key in _PATH_FIELDS:
        if isinstance(merged.get(key), str):
            merged[key] = Path(merged[key]).expanduser()

    for key in _LIST_FIELDS:
        if isinstance(merged.get(key), (list, str)):
            items = merged[key].split(",") if isinstance(merged[key], str) else merged[key]
            merged[key] = tuple(str(item).strip() for item in items if str(item).strip())

    value = merged.get("request_headers")
    if isinstance(value, str):
        try:
            merged["request_headers"] = json.loads(value)
        except json.JSONDecodeError:
            merged["request_headers"] = {}

    # Unknown keys stay reachable as attributes for forward compatibility.
    known_fields = set(Settings.__dataclass_fields__)
    init_kwargs = {key: value for key, value in merged.items() if key in known_fields}
    settings = Settings(**init_kwargs)
    for key, value in merged.items():
        if key not in known_fields:
            setattr(settings, key, value)
    return settings


__all__ = [
    "ConfigError",
    "RUNTIME_KEYS",
    "Settings",
    "find_config_in_parents",
    "load_settings",
    "parse_assignment",
    "parse_runtime_value",
]
