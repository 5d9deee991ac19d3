from pathlib import Path
from typing import Iterable, List

import pytest

from ai_chat.core.message import ContentKind, Message
from ai_chat.core.utils.config import Settings
from ai_chat.repl.abort import AbortSignal
from ai_chat.repl.editor import Signal
from ai_chat.repl.handler import ReplCmdHandler
from ai_chat.repl.loop import (
    CTRLC_WARNING,
    UNKNOWN_COMMAND,
    Repl,
    repl_help,
    split_command,
    split_file_args,
    strip_braces,
)
from ai_chat.session.role import Role, RoleRegistry
from ai_chat.session.store import SessionStore


class ScriptedEditor:
    """Replays signals, then behaves as if the user pressed Ctrl-D."""

    def __init__(self, signals: Iterable[Signal]) -> None:
        self._signals = list(signals)
        self.lines: List[str] = []
        self.reads = 0

    def read_line(self, prompt: str) -> Signal:
        self.reads += 1
        if not self._signals:
            return Signal.ctrld()
        signal = self._signals.pop(0)
        if signal.line.strip():
            self.lines.append(signal.line)
        return signal

    def history(self) -> List[str]:
        return list(self.lines)

    def clear_history(self) -> None:
        self.lines.clear()


class EchoClient:
    def __init__(self, abort_on_stream: bool = False) -> None:
        self.abort_on_stream = abort_on_stream

    def complete(self, messages, temperature=None, max_tokens=None):
        return "summary"

    def stream(self, messages, temperature=None, max_tokens=None, abort=None):
        if self.abort_on_stream:
            abort.set_ctrlc()
        yield "echo: "
        yield messages[-1].content.text


class InterruptedSummaryClient(EchoClient):
    """Streams a long reply, then gets interrupted while summarizing it."""

    def complete(self, messages, temperature=None, max_tokens=None):
        raise KeyboardInterrupt

    def stream(self, messages, temperature=None, max_tokens=None, abort=None):
        yield "y" * 20_000


def _repl(tmp_path: Path, lines, *, client=None, **kwargs):
    abort = AbortSignal()
    output: List[str] = []
    echo = lambda message="", **_: output.append(message)  # noqa: E731
    handler = ReplCmdHandler(
        Settings(config_dir=tmp_path),
        client or EchoClient(),
        abort,
        store=SessionStore(tmp_path / "sessions"),
        roles=RoleRegistry([Role(name="poet", prompt="You are a poet.")]),
        echo=echo,
    )
    signals = [line if isinstance(line, Signal) else Signal.success(line) for line in lines]
    editor = ScriptedEditor(signals)
    repl = Repl(handler, editor, abort, echo=echo, **kwargs)
    return repl, editor, output


def test_split_command_and_strip_braces() -> None:
    assert split_command(".role  poet ") == (".role", "poet")
    assert split_command(".help") == (".help", None)
    assert strip_braces("{ multi\nline }") == " multi\nline "
    assert strip_braces("plain") == "plain"


def test_split_file_args() -> None:
    assert split_file_args("a.png b.png -- describe these") == (["a.png", "b.png"], "describe these")
    assert split_file_args("a.png") == (["a.png"], "")
    assert split_file_args("a.png --") == (["a.png"], "")


def test_help_lists_commands() -> None:
    text = repl_help()

    assert text.splitlines()[0].startswith(".info")
    assert ".clear history" in text
    assert text.endswith("Press Ctrl+C to abort session, Ctrl+D to exit the REPL")


def test_double_ctrlc_exits(tmp_path: Path) -> None:
    repl, editor, output = _repl(tmp_path, [Signal.ctrlc(), Signal.ctrlc(), "never read"])

    repl.run()

    assert output.count(CTRLC_WARNING) == 1
    assert editor.reads == 2
    assert repl.abort.aborted_ctrlc()


def test_ctrlc_counter_resets_after_input(tmp_path: Path) -> None:
    repl, editor, output = _repl(tmp_path, [Signal.ctrlc(), "", Signal.ctrlc(), Signal.ctrld()])

    repl.run()

    assert output.count(CTRLC_WARNING) == 2
    assert editor.reads == 4
    assert repl.abort.aborted_ctrld()


def test_exit_command_stops_loop(tmp_path: Path) -> None:
    repl, editor, output = _repl(tmp_path, [".exit", "hello"])

    repl.run()

    assert editor.reads == 1
    assert output[0].startswith("Welcome to aichat ")


def test_submit_line(tmp_path: Path) -> None:
    repl, _, output = _repl(tmp_path, ["hello there"])

    repl.run()

    assert "hello there" in output
    assert repl.handler.session.messages[-1] == Message.assistant("echo: hello there")


def test_unknown_command_is_reported(tmp_path: Path) -> None:
    repl, _, output = _repl(tmp_path, [".nope", ".clear nothing"])

    repl.run()

    assert output.count(UNKNOWN_COMMAND) == 2


def test_errors_do_not_end_loop(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    repl, editor, output = _repl(tmp_path, [".role missing", ".set bogus 1", ".help"])

    repl.run()

    err = capsys.readouterr().err
    assert "Unknown role 'missing'" in err
    assert "Unknown key 'bogus'" in err
    assert repl_help() in output
    assert editor.reads == 4


def test_cancelled_submit_keeps_history(tmp_path: Path) -> None:
    repl, _, _ = _repl(tmp_path, ["first"])
    repl.run()
    session = repl.handler.session
    before = list(session.messages)
    dirty = session.dirty

    cancelled, _, _ = _repl(tmp_path, ["second"], client=EchoClient(abort_on_stream=True))
    cancelled.handler.session = session
    cancelled.run()

    assert session.messages == before
    assert session.dirty == dirty


def test_copy_last_reply(tmp_path: Path) -> None:
    copied: List[str] = []
    repl, _, output = _repl(tmp_path, [".copy", "hi", ".copy"], copy_fn=copied.append)

    repl.run()

    assert "No reply messages that can be copied" in output
    assert copied == ["echo: hi"]
    assert "Copied" in output


def test_clear_commands(tmp_path: Path) -> None:
    cleared: List[bool] = []
    repl, editor, output = _repl(
        tmp_path,
        ["one", ".history", ".clear history", ".history", ".clear screen"],
        clear_screen=lambda: cleared.append(True),
    )

    repl.run()

    # once from the streamed reply, once from the first .history
    assert output.count("one") == 2
    assert editor.lines == [".history", ".clear screen"]
    assert cleared == [True]


def test_multiline_and_prompt(tmp_path: Path) -> None:
    repl, _, _ = _repl(tmp_path, [".prompt {Answer tersely}", ".multiline {line one\nline two}"])

    repl.run()

    session = repl.handler.session
    assert session.messages[0] == Message.system("Answer tersely")
    assert session.messages[1] == Message.user("line one\nline two")


def test_usage_messages(tmp_path: Path) -> None:
    repl, _, output = _repl(tmp_path, [".role", ".multiline", ".prompt"])

    repl.run()

    assert "Usage: .role <name>" in output
    assert "Usage: .multiline { <your multiline content> }" in output
    assert "Usage: .prompt { <your multiline content> }." in output


def test_named_session_saved_on_exit(tmp_path: Path) -> None:
    repl, _, _ = _repl(tmp_path, [".session notes", ".set save_session false", "hi", ".set save_session true"])

    repl.run()

    assert (tmp_path / "sessions" / "notes.yaml").is_file()


def test_submitted_line_is_kept_verbatim(tmp_path: Path) -> None:
    repl, _, _ = _repl(tmp_path, ["  indented reply  "])

    repl.run()

    assert repl.handler.session.messages[0] == Message.user("  indented reply  ")


def test_interrupted_compression_keeps_loop_running(tmp_path: Path) -> None:
    repl, editor, output = _repl(tmp_path, ["hello", ".info"], client=InterruptedSummaryClient())

    repl.run()

    session = repl.handler.session
    assert "Compression cancelled." in output
    assert len(session.messages) == 2
    assert session.compressed_messages == []
    assert session.compressing is False
    assert any(line.startswith("tokens") for message in output for line in str(message).splitlines())
    assert editor.reads == 3


def test_interrupt_while_handling_line_counts_as_ctrlc(tmp_path: Path) -> None:
    def interrupted_copy(text: str) -> None:
        raise KeyboardInterrupt

    repl, editor, output = _repl(
        tmp_path, ["hi", ".copy", Signal.ctrlc(), "never read"], copy_fn=interrupted_copy
    )

    repl.run()

    assert output.count(CTRLC_WARNING) == 1
    assert editor.reads == 3
    assert repl.abort.aborted_ctrlc()


def test_file_command_attaches_images(tmp_path: Path) -> None:
    image = tmp_path / "cat.png"
    image.write_bytes(b"\x89PNG\r\n\x1a\nfake")
    repl, _, output = _repl(tmp_path, [f".file {image} -- what is this", ".file"])

    repl.run()

    session = repl.handler.session
    content = session.messages[0].content
    assert content.kind is ContentKind.MIXED
    assert content.parts[0].text == "what is this"
    assert content.parts[1].url.startswith("data:image/png;base64,")
    assert str(image) in session.data_urls.values()
    assert "Usage: .file <file>... [-- text...]" in output
