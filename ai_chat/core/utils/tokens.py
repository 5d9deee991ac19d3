"""Token estimation helpers used for context budget decisions."""
from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

from .constants import CHARS_PER_TOKEN, TOKENS_PER_ATTACHMENT, TOKENS_PER_MESSAGE

if TYPE_CHECKING:  # pragma: no cover
    from ai_chat.core.message import Message


def estimate_tokens(messages: Sequence["Message"]) -> int:
    """Estimate token usage for a list of messages.

    Character-based heuristic (4 chars ≈ 1 token) plus a fixed allowance per
    message and per attachment.
    """
    total = 0
    for message in messages:
        total += message.content.text_length() // CHARS_PER_TOKEN
        total += TOKENS_PER_ATTACHMENT * message.content.attachment_count()
        total += TOKENS_PER_MESSAGE
    return total


def summarize_text(text: str, max_chars: int) -> str:
    """Return a truncated text summary that notes omitted content."""

    if len(text) <= max_chars:
        return text
    truncated = text[:max_chars].rstrip()
    omitted = len(text) - len(truncated)
    return f"{truncated}\n[... {omitted} characters omitted ...]"


__all__ = ["estimate_tokens", "summarize_text"]
