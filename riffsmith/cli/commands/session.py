"""riffsmith history / recall / new / reset / play / stop — session commands."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

import typer

from riffsmith.cli._runtime import get_options, open_studio, render_chat
from riffsmith.cli.errors import ExitCode
from riffsmith.core.studio import Studio

logger = logging.getLogger(__name__)


def _run_with_studio(
    ctx: typer.Context,
    name: str,
    body: Callable[[Studio], Awaitable[None]],
) -> None:
    options = get_options(ctx)

    async def _run() -> None:
        async with open_studio(options) as studio:
            await body(studio)

    try:
        asyncio.run(_run())
    except typer.Exit:
        raise
    except Exception as exc:
        typer.echo(f"❌ riffsmith {name} failed: {exc}")
        logger.error(f"❌ riffsmith {name} error: {exc}", exc_info=True)
        raise typer.Exit(code=ExitCode.INTERNAL_ERROR)


def history(
    ctx: typer.Context,
    show_code: bool = typer.Option(False, "--code", help="Print each recallable snapshot."),
) -> None:
    """Show the chat log of the current session."""

    async def _body(studio: Studio) -> None:
        session = studio.store.get_state()
        typer.echo(f"session {session.session_id}")
        for line in render_chat(session):
            typer.echo(line)
        if show_code:
            for index, message in enumerate(session.chat, start=1):
                if message.code:
                    typer.echo(f"\n--- {index} ---\n{message.code}")

    _run_with_studio(ctx, "history", _body)


def recall(
    ctx: typer.Context,
    index: int = typer.Argument(..., help="Message number from `riffsmith history`.", min=1),
) -> None:
    """Load the code snapshot of a message back into the engine."""

    async def _body(studio: Studio) -> None:
        chat = studio.store.get_state().chat
        if index > len(chat) or not chat[index - 1].code:
            typer.echo(f"❌ Message {index} has no code to recall.")
            raise typer.Exit(code=ExitCode.USER_ERROR)
        code = chat[index - 1].code or ""
        await studio.recall(code)
        typer.echo(f"↺ {studio.feedback.status or 'recalled'} (message {index})")

    _run_with_studio(ctx, "recall", _body)


def new(ctx: typer.Context) -> None:
    """Start a fresh session: new id, empty chat, default code."""

    async def _body(studio: Studio) -> None:
        await studio.start_fresh()
        typer.echo(f"🆕 {studio.feedback.status} [{studio.store.get_state().session_id}]")

    _run_with_studio(ctx, "new", _body)


def reset(ctx: typer.Context) -> None:
    """Clear the chat and reset the code, keeping the session id."""

    async def _body(studio: Studio) -> None:
        await studio.reset_history()
        typer.echo(f"🧹 {studio.feedback.status}")

    _run_with_studio(ctx, "reset", _body)


def play(ctx: typer.Context) -> None:
    """Run the code currently loaded in the engine."""

    async def _body(studio: Studio) -> None:
        if not await studio.play():
            typer.echo(f"⚠ error: {studio.feedback.error}")
            raise typer.Exit(code=ExitCode.ENGINE_ERROR)
        typer.echo("▶ playing")

    _run_with_studio(ctx, "play", _body)


def stop(ctx: typer.Context) -> None:
    """Stop playback."""

    async def _body(studio: Studio) -> None:
        await studio.stop()
        typer.echo("⏹ stopped")

    _run_with_studio(ctx, "stop", _body)
