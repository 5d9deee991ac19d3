"""Copy text to the system clipboard through the platform's command line tool."""
from __future__ import annotations

import shutil
import subprocess
from typing import List, Optional

_CANDIDATES = (
    ["pbcopy"],
    ["wl-copy"],
    ["xclip", "-selection", "clipboard"],
    ["clip"],
)


class ClipboardError(RuntimeError):
    """Raised when no clipboard tool is available or it fails."""


def _clipboard_command() -> Optional[List[str]]:
    for command in _CANDIDATES:
        if shutil.which(command[0]):
            return list(command)
    return None


def copy_to_clipboard(text: str) -> None:
    command = _clipboard_command()
    if command is None:
        raise ClipboardError("No clipboard tool found (tried pbcopy, wl-copy, xclip, clip)")
    try:
        subprocess.run(command, input=text, text=True, check=True, timeout=5)
    except (OSError, subprocess.SubprocessError) as exc:
        raise ClipboardError(f"Failed to copy to clipboard: {exc}") from exc


__all__ = ["ClipboardError", "copy_to_clipboard"]
