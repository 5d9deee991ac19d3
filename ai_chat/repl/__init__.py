"""Interactive REPL: line reading, dot-command dispatch and cancellation."""
from .abort import AbortSignal, AbortState
from .editor import LineEditor, PromptToolkitEditor, Signal, SignalKind
from .handler import ReplCmd, ReplCmdHandler, ReplCmdKind
from .loop import REPL_COMMANDS, Repl

__all__ = [
    "AbortSignal",
    "AbortState",
    "LineEditor",
    "PromptToolkitEditor",
    "REPL_COMMANDS",
    "Repl",
    "ReplCmd",
    "ReplCmdHandler",
    "ReplCmdKind",
    "Signal",
    "SignalKind",
]
