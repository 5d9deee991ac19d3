"""Helpers shared by the click commands."""
from __future__ import annotations

from typing import Any, Dict, Optional

import click

from ai_chat.core.utils.config import Settings
from ai_chat.core.utils.logger import get_logger
from ai_chat.providers.llm import RetryConfig, create_client
from ai_chat.providers.llm.base import LLMClient, Model
from ai_chat.repl.abort import AbortSignal
from ai_chat.repl.handler import ReplCmdHandler
from ai_chat.session.role import RoleRegistry
from ai_chat.session.session import GuardViolation, PersistenceError
from ai_chat.session.store import SessionStore

LOGGER = get_logger(__name__)


def _build_context(settings: Settings) -> Dict[str, Any]:
    return {
        "settings": settings,
        "store": SessionStore(settings.resolved_sessions_dir()),
        "roles": RoleRegistry.load(settings.resolved_roles_file()),
        "llm_client": None,
    }


def get_llm_client(ctx: click.Context) -> LLMClient:
    client = ctx.obj.get("llm_client")
    if client:
        return client
    settings: Settings = ctx.obj["settings"]
    if not settings.api_key and not settings.dry_run:
        raise click.ClickException("No API key configured. Set AICHAT_API_KEY or update config file.")

    retry_config = RetryConfig(
        max_retries=3,
        initial_delay=0.5,
        max_delay=5.0,
        backoff_multiplier=2.0,
        jitter_ratio=0.3,
    )
    provider_kwargs: Dict[str, Any] = {"timeout": settings.timeout, "retry_config": retry_config}
    if settings.request_headers:
        provider_kwargs["default_headers"] = dict(settings.request_headers)
    if settings.provider_only and settings.provider.lower() == "openrouter":
        provider_kwargs["provider_only"] = list(settings.provider_only)

    try:
        client = create_client(
            provider=settings.provider,
            api_key=settings.api_key or "",
            model=settings.model,
            base_url=settings.base_url,
            **provider_kwargs,
        )
    except ValueError as exc:
        raise click.ClickException(str(exc)) from exc
    ctx.obj["llm_client"] = client
    return client


def build_handler(
    ctx: click.Context,
    abort: AbortSignal,
    *,
    session_name: Optional[str] = None,
    role_name: Optional[str] = None,
) -> ReplCmdHandler:
    """Open the requested session, bind the requested role and wrap both in a handler."""
    settings: Settings = ctx.obj["settings"]
    store: SessionStore = ctx.obj["store"]
    roles: RoleRegistry = ctx.obj["roles"]
    try:
        model = Model.from_id(settings.model_id, settings.max_input_tokens)
        session = store.open(session_name, model)
        if role_name:
            session.update_role(roles.find(role_name))
    except (GuardViolation, PersistenceError, LookupError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    LOGGER.debug("Using session %s with model %s", session.name, session.model_id)
    return ReplCmdHandler(
        settings,
        get_llm_client(ctx),
        abort,
        store=store,
        roles=roles,
        session=session,
    )


__all__ = ["build_handler", "get_llm_client"]
