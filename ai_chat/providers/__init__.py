"""Provider integrations (LLM chat clients)."""
from __future__ import annotations

from . import llm

__all__ = ["llm"]
