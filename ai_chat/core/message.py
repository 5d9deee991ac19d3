"""Chat message data structures shared by roles, sessions and providers."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Sequence, Tuple


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"

    def is_user(self) -> bool:
        return self is MessageRole.USER


class ContentKind(str, Enum):
    """Tag of a :class:`MessageContent` value."""

    TEXT = "text"
    MIXED = "mixed"


@dataclass(frozen=True)
class ContentPart:
    """One block of a mixed payload: either text or an attachment reference."""

    type: str
    text: str | None = None
    url: str | None = None

    @classmethod
    def text_block(cls, text: str) -> "ContentPart":
        return cls(type="text", text=text)

    @classmethod
    def attachment(cls, url: str) -> "ContentPart":
        return cls(type="image_url", url=url)

    @property
    def is_text(self) -> bool:
        return self.type == "text"

    def to_payload(self) -> Dict[str, Any]:
        if self.is_text:
            return {"type": "text", "text": self.text or ""}
        return {"type": "image_url", "image_url": {"url": self.url or ""}}

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "ContentPart":
        kind = data.get("type")
        if kind == "text":
            return cls.text_block(str(data.get("text") or ""))
        if kind == "image_url":
            image_url = data.get("image_url") or {}
            url = image_url.get("url") if isinstance(image_url, Mapping) else image_url
            return cls.attachment(str(url or ""))
        raise ValueError(f"Unsupported content part type: {kind!r}")


@dataclass(frozen=True)
class MessageContent:
    """Closed tagged value: plain text, or an ordered mix of text and attachments.

    Build values through :meth:`from_text` and :meth:`from_parts`; every consumer
    branches on :attr:`kind` and must handle both tags.
    """

    kind: ContentKind
    text: str = ""
    parts: Tuple[ContentPart, ...] = field(default_factory=tuple)

    @classmethod
    def from_text(cls, text: str) -> "MessageContent":
        return cls(kind=ContentKind.TEXT, text=text)

    @classmethod
    def from_parts(cls, parts: Sequence[ContentPart]) -> "MessageContent":
        return cls(kind=ContentKind.MIXED, parts=tuple(parts))

    def merge_prompt(self, replace_fn: Callable[[str], str]) -> "MessageContent":
        """Return a copy whose leading text has been passed through ``replace_fn``.

        A mixed payload without any leading text block gains one.
        """
        if self.kind is ContentKind.TEXT:
            return MessageContent.from_text(replace_fn(self.text))
        if self.kind is ContentKind.MIXED:
            parts = list(self.parts)
            if parts and parts[0].is_text:
                parts[0] = ContentPart.text_block(replace_fn(parts[0].text or ""))
            else:
                parts.insert(0, ContentPart.text_block(replace_fn("")))
            return MessageContent.from_parts(parts)
        raise ValueError(f"Unknown message content kind: {self.kind!r}")

    def render_input(self, resolve_url_fn: Callable[[str], str] = lambda url: url) -> str:
        """Render the content the way a user would have typed it."""
        if self.kind is ContentKind.TEXT:
            return self.text
        if self.kind is ContentKind.MIXED:
            texts: List[str] = []
            files: List[str] = []
            for part in self.parts:
                if part.is_text:
                    texts.append(part.text or "")
                else:
                    files.append(resolve_url_fn(part.url or ""))
            text = " ".join(item for item in texts if item)
            if not files:
                return text
            rendered = ".file " + " ".join(files)
            if text:
                rendered += f" -- {text}"
            return rendered
        raise ValueError(f"Unknown message content kind: {self.kind!r}")

    def text_length(self) -> int:
        if self.kind is ContentKind.TEXT:
            return len(self.text)
        return sum(len(part.text or "") for part in self.parts if part.is_text)

    def attachment_count(self) -> int:
        if self.kind is ContentKind.TEXT:
            return 0
        return sum(1 for part in self.parts if not part.is_text)

    def to_payload(self) -> Any:
        if self.kind is ContentKind.TEXT:
            return self.text
        if self.kind is ContentKind.MIXED:
            return [part.to_payload() for part in self.parts]
        raise ValueError(f"Unknown message content kind: {self.kind!r}")

    @classmethod
    def from_payload(cls, data: Any) -> "MessageContent":
        if isinstance(data, str):
            return cls.from_text(data)
        if isinstance(data, list):
            return cls.from_parts([ContentPart.from_payload(item) for item in data])
        raise ValueError(f"Unsupported message content: {type(data).__name__}")


@dataclass(frozen=True)
class Message:
    role: MessageRole
    content: MessageContent

    @classmethod
    def system(cls, text: str) -> "Message":
        return cls(role=MessageRole.SYSTEM, content=MessageContent.from_text(text))

    @classmethod
    def user(cls, content: MessageContent | str) -> "Message":
        if isinstance(content, str):
            content = MessageContent.from_text(content)
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, text: str) -> "Message":
        return cls(role=MessageRole.ASSISTANT, content=MessageContent.from_text(text))

    def to_payload(self) -> Dict[str, Any]:
        return {"role": self.role.value, "content": self.content.to_payload()}

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "Message":
        return cls(
            role=MessageRole(data["role"]),
            content=MessageContent.from_payload(data.get("content", "")),
        )


__all__ = ["ContentKind", "ContentPart", "Message", "MessageContent", "MessageRole"]
