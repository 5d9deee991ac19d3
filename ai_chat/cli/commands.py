"""Command line interface for the chat client."""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Tuple

import click

from ai_chat.core.utils.config import ConfigError, Settings, load_settings
from ai_chat.core.utils.logger import configure_logging, get_logger
from ai_chat.repl.abort import AbortSignal
from ai_chat.repl.editor import PromptToolkitEditor
from ai_chat.repl.handler import ReplCmd
from ai_chat.repl.loop import Repl
from ai_chat.session.role import RoleRegistry
from ai_chat.session.store import SessionStore

from .utils import _build_context, build_handler

LOGGER = get_logger(__name__)


class NaturalLanguageGroup(click.Group):
    """Group that treats unknown leading words as a one-shot chat message."""

    def resolve_command(self, ctx: click.Context, args: List[str]):  # type: ignore[override]
        try:
            return super().resolve_command(ctx, args)
        except click.UsageError:
            if not args or any(arg.startswith("-") for arg in args):
                raise
            text = " ".join(args).strip()
            if not text:
                raise
            ctx.meta["_pending_text"] = text
            return super().resolve_command(ctx, ["chat"])


@click.group(cls=NaturalLanguageGroup, invoke_without_command=True)
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Path to config file.")
@click.option("--model", "-m", "model_id", help="Model to use as <provider>:<model>.")
@click.option("--role", "-r", "role_name", help="Role to start the conversation with.")
@click.option("--session", "-s", "session_name", help="Named session to open or create.")
@click.option("--dry-run", is_flag=True, help="Print the request messages instead of sending them.")
@click.option("--verbose", is_flag=True, help="Enable verbose logging output.")
@click.pass_context
def cli(
    ctx: click.Context,
    config_path: Optional[Path],
    model_id: Optional[str],
    role_name: Optional[str],
    session_name: Optional[str],
    dry_run: bool,
    verbose: bool,
) -> None:
    """Chat with a remote language model from the terminal."""
    try:
        settings = load_settings(config_path)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    if verbose:
        settings.log_level = "DEBUG"
    if dry_run:
        settings.dry_run = True
    if model_id:
        provider, sep, name = model_id.partition(":")
        if not sep or not provider or not name:
            raise click.BadParameter("expected <provider>:<model>", param_hint="--model")
        settings.provider, settings.model = provider, name
    configure_logging(settings.log_level, structured=settings.structured_logging)
    try:
        ctx.obj = _build_context(settings)
    except ConfigError as exc:
        raise click.ClickException(str(exc)) from exc
    ctx.obj["role_name"] = role_name
    ctx.obj["session_name"] = session_name

    if ctx.invoked_subcommand is None:
        ctx.invoke(repl)


@cli.command()
@click.pass_context
def repl(ctx: click.Context) -> None:
    """Start the interactive REPL."""
    abort = AbortSignal()
    handler = build_handler(
        ctx,
        abort,
        session_name=ctx.obj.get("session_name"),
        role_name=ctx.obj.get("role_name"),
    )
    Repl(handler, PromptToolkitEditor(), abort).run()


@cli.command()
@click.argument("text", nargs=-1)
@click.option("--file", "-f", "files", multiple=True, help="Attach a file or URL to the message.")
@click.pass_context
def chat(ctx: click.Context, text: Tuple[str, ...], files: Tuple[str, ...]) -> None:
    """Send a single message and print the reply."""
    pending = " ".join(text).strip() or str(ctx.meta.pop("_pending_text", "")).strip()
    if not pending and not files:
        raise click.UsageError("Provide a message for the assistant.")

    abort = AbortSignal()
    handler = build_handler(
        ctx,
        abort,
        session_name=ctx.obj.get("session_name"),
        role_name=ctx.obj.get("role_name"),
    )
    try:
        handler.handle(ReplCmd.submit(pending, files))
        handler.on_exit()
    except Exception as exc:
        LOGGER.debug("Chat failed", exc_info=exc)
        raise click.ClickException(str(exc)) from exc
    if abort.aborted():
        ctx.exit(130)


@cli.command()
@click.argument("name", required=False)
@click.pass_context
def roles(ctx: click.Context, name: Optional[str]) -> None:
    """List configured roles, or show one role."""
    registry: RoleRegistry = ctx.obj["roles"]
    if name:
        try:
            click.echo(registry.find(name).export())
        except LookupError as exc:
            raise click.ClickException(str(exc)) from exc
        return
    for role_name in registry.names():
        click.echo(role_name)


@cli.command()
@click.pass_context
def sessions(ctx: click.Context) -> None:
    """List saved sessions."""
    store: SessionStore = ctx.obj["store"]
    for name in store.list_names():
        click.echo(name)


@cli.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """Print the effective configuration."""
    settings: Settings = ctx.obj["settings"]
    for key, value in settings.info().items():
        click.echo(f"{key:<20}{'' if value is None else value}")


def main() -> None:
    cli(obj={})


__all__ = ["NaturalLanguageGroup", "chat", "cli", "info", "main", "repl", "roles", "sessions"]
