"""Interactive read/dispatch loop."""
from __future__ import annotations

from typing import Callable, List, Optional, Tuple

import click

from ai_chat import __version__
from ai_chat.core.utils.constants import REPL_COMMAND_PREFIX, REPL_PROMPT
from ai_chat.core.utils.logger import get_logger

from .abort import AbortSignal
from .clipboard import copy_to_clipboard
from .editor import LineEditor, SignalKind
from .handler import ReplCmd, ReplCmdHandler

LOGGER = get_logger(__name__)

# (command, description, takes multiline content)
REPL_COMMANDS: Tuple[Tuple[str, str, bool], ...] = (
    (".info", "Print the information", False),
    (".set", "Modify the configuration temporarily", False),
    (".role", "Select a role", False),
    (".clear role", "Clear the currently selected role", False),
    (".prompt", "Add prompt, aka create a temporary role", True),
    (".file", "Include files with the message", False),
    (".session", "Start or switch to a named session", False),
    (".save", "Save the current session", False),
    (".history", "Print the history", False),
    (".clear history", "Clear the history", False),
    (".clear screen", "Clear the screen", False),
    (".multiline", "Enter multiline editor mode", True),
    (".copy", "Copy last reply message", False),
    (".help", "Print this help message", False),
    (".exit", "Exit the REPL", False),
)

CTRLC_WARNING = "(To exit, press Ctrl+C again or Ctrl+D or type .exit)"
UNKNOWN_COMMAND = 'Unknown command. Type ".help" for more information.'


def split_command(line: str) -> Tuple[str, Optional[str]]:
    """Split ``.cmd rest`` into the command and its trimmed arguments."""
    head, sep, tail = line.partition(" ")
    if not sep:
        return head, None
    return head, tail.strip()


def split_file_args(args: str) -> Tuple[List[str], str]:
    """Split `<file>... -- <text>` into the attachments and the message text."""
    head, sep, tail = args.partition(" -- ")
    if not sep and head.endswith(" --"):
        head = head[: -len(" --")]
    return head.split(), tail.strip()


def strip_braces(text: str) -> str:
    if text.startswith("{") and text.endswith("}"):
        return text[1:-1]
    return text


def repl_help() -> str:
    head = "\n".join(f"{name:<15} {desc}" for name, desc, _ in REPL_COMMANDS)
    return f"{head}\n\nPress Ctrl+C to abort session, Ctrl+D to exit the REPL"


class Repl:
    """Reads lines and dispatches them to dot-commands or to a submission.

    A first Ctrl-C only warns; a second one in a row, Ctrl-D or ``.exit`` ends the
    loop. Errors raised while handling a line are reported and the loop goes on.
    """

    def __init__(
        self,
        handler: ReplCmdHandler,
        editor: LineEditor,
        abort: AbortSignal,
        *,
        echo: Callable[..., None] = click.echo,
        clear_screen: Callable[[], None] = click.clear,
        copy_fn: Callable[[str], None] = copy_to_clipboard,
        prompt: str = REPL_PROMPT,
    ) -> None:
        self.handler = handler
        self.editor = editor
        self.abort = abort
        self._echo = echo
        self._clear_screen = clear_screen
        self._copy = copy_fn
        self._prompt = prompt

    def run(self) -> None:
        self._echo(f"Welcome to aichat {__version__}")
        self._echo('Type ".help" for more information.')
        already_ctrlc = False
        while True:
            if self.abort.aborted_ctrld():
                break
            if self.abort.aborted_ctrlc() and not already_ctrlc:
                already_ctrlc = True
            signal = self.editor.read_line(self._prompt)
            if signal.kind is SignalKind.SUCCESS:
                already_ctrlc = False
                self.abort.reset()
                try:
                    if self.handle_line(signal.line):
                        break
                except KeyboardInterrupt:
                    self.abort.set_ctrlc()
                    already_ctrlc = True
                    self._echo(CTRLC_WARNING)
                except Exception as exc:
                    self._report(exc)
            elif signal.kind is SignalKind.CTRLC:
                self.abort.set_ctrlc()
                if already_ctrlc:
                    break
                already_ctrlc = True
                self._echo(CTRLC_WARNING)
            elif signal.kind is SignalKind.CTRLD:
                self.abort.set_ctrld()
                break
        try:
            self.handler.on_exit()
        except Exception as exc:
            self._report(exc)

    def handle_line(self, line: str) -> bool:
        """Handle one line; return ``True`` when the REPL should exit."""
        stripped = line.strip()
        if not stripped:
            return False
        if not stripped.startswith(REPL_COMMAND_PREFIX):
            self.handler.handle(ReplCmd.submit(line))
            return False

        cmd, args = split_command(stripped)
        if cmd == ".exit":
            return True
        if cmd == ".help":
            self._echo(repl_help())
        elif cmd == ".clear":
            self._clear(args)
        elif cmd == ".history":
            for entry in self.editor.history():
                self._echo(entry)
        elif cmd == ".role":
            if args:
                self.handler.handle(ReplCmd.set_role(args))
            else:
                self._echo("Usage: .role <name>")
        elif cmd == ".info":
            self.handler.handle(ReplCmd.info(args))
        elif cmd == ".multiline":
            if args:
                self.handler.handle(ReplCmd.submit(strip_braces(args)))
            else:
                self._echo("Usage: .multiline { <your multiline content> }")
        elif cmd == ".copy":
            reply = self.handler.get_reply()
            if not reply:
                self._echo("No reply messages that can be copied")
            else:
                self._copy(reply)
                self._echo("Copied")
        elif cmd == ".file":
            if args:
                files, text = split_file_args(args)
                self.handler.handle(ReplCmd.submit(text, files))
            else:
                self._echo("Usage: .file <file>... [-- text...]")
        elif cmd == ".set":
            self.handler.handle(ReplCmd.update_config(args or ""))
        elif cmd == ".prompt":
            if args:
                self.handler.handle(ReplCmd.prompt(strip_braces(args)))
            else:
                self._echo("Usage: .prompt { <your multiline content> }.")
        elif cmd == ".session":
            self.handler.handle(ReplCmd.set_session(args))
        elif cmd == ".save":
            self.handler.handle(ReplCmd.save_session(args))
        else:
            self._echo(UNKNOWN_COMMAND)
        return False

    def _clear(self, target: Optional[str]) -> None:
        if target == "screen":
            self._clear_screen()
        elif target == "history":
            self.editor.clear_history()
            self._echo("")
        elif target == "role":
            self.handler.handle(ReplCmd.clear_role())
        else:
            self._echo(UNKNOWN_COMMAND)

    def _report(self, exc: Exception) -> None:
        LOGGER.debug("Command failed", exc_info=exc)
        message = str(exc).strip() or exc.__class__.__name__
        click.secho(message, fg="red", err=True)


__all__ = ["REPL_COMMANDS", "Repl", "repl_help", "split_command", "split_file_args", "strip_braces"]
