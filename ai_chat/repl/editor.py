"""Line editor used by the REPL to read user input."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Protocol

from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory


class SignalKind(str, Enum):
    SUCCESS = "success"
    CTRLC = "ctrlc"
    CTRLD = "ctrld"


@dataclass(frozen=True)
class Signal:
    """Outcome of reading one line."""

    kind: SignalKind
    line: str = ""

    @classmethod
    def success(cls, line: str) -> "Signal":
        return cls(SignalKind.SUCCESS, line)

    @classmethod
    def ctrlc(cls) -> "Signal":
        return cls(SignalKind.CTRLC)

    @classmethod
    def ctrld(cls) -> "Signal":
        return cls(SignalKind.CTRLD)


class LineEditor(Protocol):
    def read_line(self, prompt: str) -> Signal:
        ...

    def history(self) -> List[str]:
        ...

    def clear_history(self) -> None:
        ...


class PromptToolkitEditor:
    """:class:`LineEditor` backed by a ``prompt_toolkit`` prompt session."""

    def __init__(self) -> None:
        self._session: Optional[PromptSession] = None
        self._lines: List[str] = []

    def _prompt_session(self) -> PromptSession:
        if self._session is None:
            self._session = PromptSession(history=InMemoryHistory())
        return self._session

    def read_line(self, prompt: str) -> Signal:
        try:
            line = self._prompt_session().prompt(prompt)
        except KeyboardInterrupt:
            return Signal.ctrlc()
        except EOFError:
            return Signal.ctrld()
        if line.strip():
            self._lines.append(line)
        return Signal.success(line)

    def history(self) -> List[str]:
        return list(self._lines)

    def clear_history(self) -> None:
        self._lines.clear()
        # Buffers keep a reference to their history, so start a new session.
        self._session = None


__all__ = ["LineEditor", "PromptToolkitEditor", "Signal", "SignalKind"]
