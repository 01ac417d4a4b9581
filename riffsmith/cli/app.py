"""Riffsmith CLI — Typer application root.

Entry point for the ``riffsmith`` console script.  Global options choose
where sessions are persisted and which file the live-coding engine
watches; subcommands drive the session.
"""
from __future__ import annotations

import pathlib
from typing import Optional

import typer

from riffsmith.cli._runtime import DEFAULT_SESSIONS_DIR, CliOptions, configure_logging
from riffsmith.cli.commands import generate, session
from riffsmith.config import settings

cli = typer.Typer(
    name="riffsmith",
    help="Riffsmith — describe music, get live-coded patterns, refine them turn by turn.",
    no_args_is_help=True,
)


@cli.callback()
def main(
    ctx: typer.Context,
    sessions_dir: Optional[pathlib.Path] = typer.Option(
        None,
        "--sessions-dir",
        help="Directory holding persisted sessions (default: .riffsmith/sessions).",
    ),
    engine_file: Optional[pathlib.Path] = typer.Option(
        None,
        "--engine-file",
        help="File watched by the live-coding engine.",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging."),
) -> None:
    configure_logging(verbose)
    ctx.obj = CliOptions(
        sessions_dir=sessions_dir or settings.sessions_dir or DEFAULT_SESSIONS_DIR,
        engine_file=engine_file or settings.engine_file,
    )


cli.command("generate", help="Describe the music you want and apply the result.")(generate.generate)
cli.command("actions", help="List quick actions.")(generate.actions)
cli.command("history", help="Show the chat log of the current session.")(session.history)
cli.command("recall", help="Load a code snapshot from history.")(session.recall)
cli.command("new", help="Start a fresh session.")(session.new)
cli.command("reset", help="Clear chat history and reset the code.")(session.reset)
cli.command("play", help="Run the loaded code.")(session.play)
cli.command("stop", help="Stop playback.")(session.stop)


if __name__ == "__main__":
    cli()
