"""riffsmith generate — run one generation turn.

Examples::

    riffsmith generate "a slow dub techno groove"
    riffsmith generate --quick darker
    riffsmith generate "add hats" --model claude-sonnet-4-5

The chat line for the turn is printed when it resolves.  A failed turn
exits 2; code that was saved but rejected by the engine exits 4.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

import typer

from riffsmith.cli._runtime import get_options, open_studio
from riffsmith.cli.errors import ExitCode
from riffsmith.config import QUICK_ACTIONS
from riffsmith.core.orchestrator import TurnOutcome
from riffsmith.core.studio import UnknownQuickActionError

logger = logging.getLogger(__name__)


def _report(outcome: TurnOutcome, chat_tail: str, raw_preview: Optional[str]) -> None:
    typer.echo(chat_tail)
    if outcome.error is not None:
        typer.echo(f"⚠ error: {outcome.error.message}")
        if raw_preview:
            typer.echo("--- raw response ---")
            typer.echo(raw_preview)
        raise typer.Exit(code=ExitCode.GENERATION_FAILED)
    if outcome.execution_error is not None:
        typer.echo(f"⚠ error: {outcome.execution_error.message}")
        typer.echo("The code was saved; recall it from history after fixing the engine.")
        raise typer.Exit(code=ExitCode.ENGINE_ERROR)


def generate(
    ctx: typer.Context,
    prompt: Optional[str] = typer.Argument(None, help="Describe the music you want."),
    quick: Optional[str] = typer.Option(
        None,
        "--quick",
        "-q",
        help=f"Use a quick action instead of a prompt ({', '.join(QUICK_ACTIONS)}).",
    ),
    model: Optional[str] = typer.Option(None, "--model", help="Model to request."),
    api_key: Optional[str] = typer.Option(
        None, "--api-key", help="API key forwarded to the generation endpoint."
    ),
) -> None:
    """Describe the music you want and apply the generated code."""
    options = get_options(ctx)

    async def _run() -> None:
        async with open_studio(options) as studio:
            if quick and prompt:
                typer.echo("❌ Pass either a prompt or --quick, not both.")
                raise typer.Exit(code=ExitCode.USER_ERROR)
            if quick:
                try:
                    studio.quick_action(quick)
                except UnknownQuickActionError:
                    typer.echo(f"❌ Unknown quick action {quick!r}. Try: {', '.join(QUICK_ACTIONS)}")
                    raise typer.Exit(code=ExitCode.USER_ERROR)
            else:
                studio.prompt = prompt or ""

            if not studio.prompt.strip():
                typer.echo("❌ Nothing to generate: pass a prompt or --quick.")
                raise typer.Exit(code=ExitCode.USER_ERROR)

            outcome = await studio.submit(model=model, api_key=api_key)
            if outcome is None:
                typer.echo("⏳ A generation is already running.")
                raise typer.Exit(code=ExitCode.USER_ERROR)

            tail = studio.store.get_state().chat[-1].content
            _report(outcome, tail, studio.feedback.raw_response_preview())

    try:
        asyncio.run(_run())
    except typer.Exit:
        raise
    except Exception as exc:
        typer.echo(f"❌ riffsmith generate failed: {exc}")
        logger.error(f"❌ riffsmith generate error: {exc}", exc_info=True)
        raise typer.Exit(code=ExitCode.INTERNAL_ERROR)


def actions() -> None:
    """List the quick actions."""
    width = max(len(label) for label in QUICK_ACTIONS)
    for label, text in QUICK_ACTIONS.items():
        typer.echo(f"{label:<{width}}  {text}")
