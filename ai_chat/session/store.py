"""Named sessions persisted as YAML files in a sessions directory."""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ai_chat.core.utils.constants import SESSION_FILE_SUFFIX, TEMP_SESSION_NAME
from ai_chat.core.utils.logger import get_logger
from ai_chat.providers.llm.base import Model

from .role import Role
from .session import GuardViolation, Session, SessionSaveError

LOGGER = get_logger(__name__)

_VALID_NAME = re.compile(r"^[\w.-]+$")


@dataclass
class SessionStore:
    """Maps session names to ``<sessions_dir>/<name>.yaml``."""

    sessions_dir: Path

    def path_for(self, name: str) -> Path:
        if not _VALID_NAME.match(name) or name in {".", ".."}:
            raise GuardViolation(f"Invalid session name '{name}'")
        return self.sessions_dir / f"{name}{SESSION_FILE_SUFFIX}"

    def exists(self, name: str) -> bool:
        return self.path_for(name).is_file()

    def list_names(self) -> List[str]:
        if not self.sessions_dir.is_dir():
            return []
        return sorted(path.stem for path in self.sessions_dir.glob(f"*{SESSION_FILE_SUFFIX}") if path.is_file())

    def open(self, name: Optional[str], model: Model, role: Optional[Role] = None) -> Session:
        """Load ``name`` when it was saved before, otherwise start a fresh session.

        A role is bound only to fresh sessions. Loaded sessions keep their history
        and the model they were recorded with.
        """
        name = name or TEMP_SESSION_NAME
        if name != TEMP_SESSION_NAME and self.exists(name):
            return Session.load(name, self.path_for(name))
        return Session(name, model, role)

    def save(self, session: Session, name: Optional[str] = None) -> Path:
        """Persist ``session``, optionally under a new ``name``.

        The name is validated before the session is touched, and a failed write
        leaves the session under its previous name.
        """
        target = name or session.name
        if target == TEMP_SESSION_NAME:
            raise GuardViolation("Provide a name to save the temporary session")
        path = self.path_for(target)
        try:
            self.sessions_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise SessionSaveError(f"Failed to create sessions directory {self.sessions_dir}") from exc
        previous = (session.name, session.dirty)
        if target != session.name:
            session.name = target
            session.dirty = True
        try:
            session.save(path)
        except SessionSaveError:
            session.name, session.dirty = previous
            raise
        LOGGER.info("Session %s saved to %s", session.name, path)
        return path


__all__ = ["SessionStore"]
