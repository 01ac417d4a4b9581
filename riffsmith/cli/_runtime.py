"""Shared runtime wiring for CLI commands.

Every command opens a ``Studio`` backed by the on-disk session repository
and the file engine adapter, runs its coroutine, then tears the studio
down (timers cancelled, HTTP client closed).
"""
from __future__ import annotations

import logging
import pathlib
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
import typer

from riffsmith.adapters.file_engine import FileEngineAdapter
from riffsmith.config import settings
from riffsmith.core.orchestrator import GenerationOrchestrator
from riffsmith.core.session_repository import SessionRepository
from riffsmith.core.session_store import SessionStore, set_session_store
from riffsmith.core.studio import Studio
from riffsmith.models.session import Session

logger = logging.getLogger(__name__)

DEFAULT_SESSIONS_DIR = pathlib.Path(".riffsmith") / "sessions"


@dataclass(frozen=True)
class CliOptions:
    sessions_dir: pathlib.Path
    engine_file: pathlib.Path


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if (verbose or settings.debug) else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Request lines from httpx are noise at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def make_client() -> httpx.AsyncClient:
    """HTTP client for the generation endpoint (replaced in tests)."""
    return httpx.AsyncClient(timeout=settings.request_timeout)


def get_options(ctx: typer.Context) -> CliOptions:
    options = ctx.obj
    if not isinstance(options, CliOptions):
        options = CliOptions(
            sessions_dir=settings.sessions_dir or DEFAULT_SESSIONS_DIR,
            engine_file=settings.engine_file,
        )
    return options


@asynccontextmanager
async def open_studio(options: CliOptions) -> AsyncIterator[Studio]:
    """Build a studio over the persisted session and the file engine."""
    store = SessionStore(repository=SessionRepository(options.sessions_dir))
    set_session_store(store)
    client = make_client()
    orchestrator = GenerationOrchestrator(store=store, client=client)
    studio = Studio(orchestrator)
    studio.attach_adapter(FileEngineAdapter(options.engine_file))
    try:
        yield studio
    finally:
        studio.feedback.close()
        await client.aclose()


def render_chat(session: Session) -> list[str]:
    """One line per message; recallable messages are marked with ↺."""
    if not session.chat:
        return ["(no messages yet — describe the music you want)"]
    lines = []
    for index, message in enumerate(session.chat, start=1):
        who = "you" if message.role.value == "user" else "ai "
        marker = "  ↺" if message.code else ""
        lines.append(f"{index:>3}. {who}  {message.content}{marker}")
    return lines
