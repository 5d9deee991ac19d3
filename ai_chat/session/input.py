"""User turn payloads: typed text plus optional attachments."""
from __future__ import annotations

import base64
import hashlib
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Mapping, Sequence

from ai_chat.core.message import ContentPart, MessageContent

_REMOTE_PREFIXES = ("http://", "https://")


class InputError(ValueError):
    """Raised when an attachment cannot be turned into message content."""


def data_url_id(url: str) -> str:
    """Opaque, stable key under which a data URL's original location is stored."""
    return hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]


def resolve_data_url(data_urls: Mapping[str, str], url: str) -> str:
    """Map an inlined ``data:`` URL back to the file it was read from."""
    if url.startswith("data:"):
        return data_urls.get(data_url_id(url), url)
    return url


def _to_data_url(path: Path) -> str:
    mime_type, _ = mimetypes.guess_type(path.name)
    if not mime_type or not mime_type.startswith("image/"):
        raise InputError(f"Unsupported attachment type for {path}")
    try:
        payload = base64.b64encode(path.read_bytes()).decode("ascii")
    except OSError as exc:
        raise InputError(f"Failed to read attachment {path}: {exc}") from exc
    return f"data:{mime_type};base64,{payload}"


@dataclass(frozen=True)
class Input:
    """What the user typed for one turn, already resolved into message parts."""

    text: str
    files: Sequence[str] = field(default_factory=tuple)
    urls: Sequence[str] = field(default_factory=tuple)
    _data_urls: Dict[str, str] = field(default_factory=dict, repr=False)

    @classmethod
    def from_str(cls, text: str) -> "Input":
        return cls(text=text)

    @classmethod
    def from_files(cls, text: str, files: Sequence[str]) -> "Input":
        """Build an input whose attachments are inlined as data URLs.

        Remote ``http(s)`` URLs are passed through untouched.
        """
        urls: List[str] = []
        data_urls: Dict[str, str] = {}
        for item in files:
            if item.startswith(_REMOTE_PREFIXES):
                urls.append(item)
                continue
            path = Path(item).expanduser()
            url = _to_data_url(path)
            data_urls[data_url_id(url)] = str(path)
            urls.append(url)
        return cls(text=text, files=tuple(files), urls=tuple(urls), _data_urls=data_urls)

    def render(self) -> str:
        if not self.files:
            return self.text
        rendered = ".file " + " ".join(self.files)
        if self.text:
            rendered += f" -- {self.text}"
        return rendered

    def to_message_content(self) -> MessageContent:
        if not self.urls:
            return MessageContent.from_text(self.text)
        parts = [ContentPart.text_block(self.text)] if self.text else []
        parts.extend(ContentPart.attachment(url) for url in self.urls)
        return MessageContent.from_parts(parts)

    def data_urls(self) -> Dict[str, str]:
        return dict(self._data_urls)


__all__ = ["Input", "InputError", "data_url_id", "resolve_data_url"]
