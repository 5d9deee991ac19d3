"""Conversation summarization used when a session is compressed."""
from __future__ import annotations

import logging
from typing import Protocol, Sequence

from ai_chat.core.message import Message
from ai_chat.core.utils.constants import DEFAULT_SUMMARIZE_PROMPT, DEFAULT_SUMMARY_MAX_CHARS
from ai_chat.core.utils.tokens import summarize_text
from ai_chat.providers.llm.base import LLMClient, LLMError

from .session import Session

LOGGER = logging.getLogger(__name__)


class ConversationSummarizer(Protocol):
    """Protocol implemented by conversation summarizers."""

    def summarize(self, messages: Sequence[Message], *, max_chars: int) -> str:
        """Return a concise summary of ``messages`` within ``max_chars`` characters."""


def _format_messages(messages: Sequence[Message]) -> str:
    """Return a deterministic plain-text representation of chat messages."""

    lines: list[str] = []
    for message in messages:
        content = message.content.render_input().strip()
        if not content:
            continue
        lines.append(f"{message.role.value.capitalize()}: {content}")
    return "\n".join(lines)


class HeuristicConversationSummarizer:
    """Fallback summarizer that keeps a truncated transcript."""

    def summarize(self, messages: Sequence[Message], *, max_chars: int) -> str:
        formatted = _format_messages(messages)
        if not formatted:
            return "(no additional context retained)"
        return summarize_text(formatted, max_chars)


class LLMConversationSummarizer:
    """Ask the model itself to summarize the conversation, with heuristic fallback."""

    def __init__(
        self,
        client: LLMClient,
        *,
        summarize_prompt: str | None = None,
        max_tokens: int | None = None,
        fallback: ConversationSummarizer | None = None,
    ) -> None:
        self._client = client
        self._summarize_prompt = summarize_prompt or DEFAULT_SUMMARIZE_PROMPT
        self._max_tokens = max_tokens
        self._fallback = fallback or HeuristicConversationSummarizer()

    def summarize(self, messages: Sequence[Message], *, max_chars: int) -> str:
        if not messages:
            return self._fallback.summarize(messages, max_chars=max_chars)

        prompt = [*messages, Message.user(self._summarize_prompt)]
        try:
            summary = self._client.complete(prompt, temperature=None, max_tokens=self._max_tokens)
        except LLMError as exc:
            LOGGER.warning("LLM summarizer failed, falling back to heuristic: %s", exc)
            return self._fallback.summarize(messages, max_chars=max_chars)

        summary = (summary or "").strip()
        if not summary:
            return self._fallback.summarize(messages, max_chars=max_chars)
        return summarize_text(summary, max_chars)


def compress_session(
    session: Session,
    summarizer: ConversationSummarizer,
    summary_prompt: str,
    *,
    max_chars: int = DEFAULT_SUMMARY_MAX_CHARS,
) -> str:
    """Summarize the live history and compress ``session`` around the result."""
    session.compressing = True
    try:
        summary = summarizer.summarize(session.messages, max_chars=max_chars)
        session.compress(f"{summary_prompt}{summary}")
    finally:
        session.compressing = False
    return summary


__all__ = [
    "ConversationSummarizer",
    "HeuristicConversationSummarizer",
    "LLMConversationSummarizer",
    "compress_session",
]
