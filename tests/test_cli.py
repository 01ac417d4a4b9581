"""Tests for the ``riffsmith`` CLI.

All tests use ``typer.testing.CliRunner`` against the full app, with the
generation endpoint replaced by an ``httpx.MockTransport`` and sessions and
the engine file kept under ``tmp_path``.

Covered:
- ``generate`` applies code, publishes it to the engine file, exits 0
- HTTP failures exit 2 with the classified message
- engine failures exit 4 and the code stays recallable
- ``history`` / ``recall`` / ``new`` / ``reset`` / ``play`` / ``stop``
"""
from __future__ import annotations

import pathlib
from collections.abc import Callable

import httpx
import pytest
from typer.testing import CliRunner

from doubles import DONE, delta, stream_response
from riffsmith.cli import _runtime
from riffsmith.cli.app import cli
from riffsmith.cli.errors import ExitCode
from riffsmith.config import QUICK_ACTIONS

runner = CliRunner()


# ---------------------------------------------------------------------------
# Helpers / fixtures
# ---------------------------------------------------------------------------


class _Workspace:
    def __init__(self, root: pathlib.Path) -> None:
        self.sessions = root / "sessions"
        self.engine_file = root / "live.js"
        self.requests: list[httpx.Request] = []
        self.respond: Callable[[], httpx.Response] = lambda: stream_response(
            [delta("```js\ns('bd*4')\n```"), DONE]
        )

    def invoke(self, *args: str):
        return runner.invoke(
            cli,
            ["--sessions-dir", str(self.sessions), "--engine-file", str(self.engine_file), *args],
        )


@pytest.fixture
def workspace(tmp_path: pathlib.Path, monkeypatch: pytest.MonkeyPatch) -> _Workspace:
    ws = _Workspace(tmp_path)

    async def handler(request: httpx.Request) -> httpx.Response:
        ws.requests.append(request)
        return ws.respond()

    monkeypatch.setattr(
        _runtime,
        "make_client",
        lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return ws


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------


class TestGenerate:

    def test_generate_applies_and_plays(self, workspace: _Workspace) -> None:

        result = workspace.invoke("generate", "four on the floor")

        assert result.exit_code == ExitCode.SUCCESS, result.output
        assert "✓ done" in result.output
        assert workspace.engine_file.read_text(encoding="utf-8") == "s('bd*4')"
        assert len(workspace.requests) == 1

    def test_quick_action(self, workspace: _Workspace) -> None:

        result = workspace.invoke("generate", "--quick", "darker")
        assert result.exit_code == ExitCode.SUCCESS, result.output
        history = workspace.invoke("history")
        assert QUICK_ACTIONS["darker"] in history.output

    def test_unknown_quick_action(self, workspace: _Workspace) -> None:

        result = workspace.invoke("generate", "--quick", "louder")
        assert result.exit_code == ExitCode.USER_ERROR
        assert "Unknown quick action" in result.output
        assert workspace.requests == []

    def test_prompt_and_quick_action_together(self, workspace: _Workspace) -> None:

        result = workspace.invoke("generate", "four on the floor", "--quick", "darker")
        assert result.exit_code == ExitCode.USER_ERROR
        assert "not both" in result.output
        assert workspace.requests == []

    def test_missing_prompt(self, workspace: _Workspace) -> None:

        result = workspace.invoke("generate")
        assert result.exit_code == ExitCode.USER_ERROR
        assert workspace.requests == []

    def test_http_error_exits_generation_failed(self, workspace: _Workspace) -> None:

        workspace.respond = lambda: httpx.Response(429)
        result = workspace.invoke("generate", "x")
        assert result.exit_code == ExitCode.GENERATION_FAILED
        assert "Rate limited. Please wait a moment and try again." in result.output

    def test_no_code_prints_raw_response(self, workspace: _Workspace) -> None:

        workspace.respond = lambda: stream_response([delta("I only write poems."), DONE])
        result = workspace.invoke("generate", "x")
        assert result.exit_code == ExitCode.GENERATION_FAILED
        assert "--- raw response ---" in result.output
        assert "I only write poems." in result.output

    def test_engine_failure_exits_engine_error(self, workspace: _Workspace) -> None:

        """The engine file is a directory, so publishing fails after the code was saved."""
        workspace.engine_file.mkdir()
        result = workspace.invoke("generate", "x")
        assert result.exit_code == ExitCode.ENGINE_ERROR
        assert "The code was saved" in result.output

        history = workspace.invoke("history", "--code")
        assert "s('bd*4')" in history.output


# ---------------------------------------------------------------------------
# session commands
# ---------------------------------------------------------------------------


class TestSessionCommands:

    def test_history_of_empty_session(self, workspace: _Workspace) -> None:

        result = workspace.invoke("history")
        assert result.exit_code == ExitCode.SUCCESS
        assert "no messages yet" in result.output

    def test_history_persists_across_invocations(self, workspace: _Workspace) -> None:

        workspace.invoke("generate", "four on the floor")
        result = workspace.invoke("history")
        assert "  1. you  four on the floor" in result.output
        assert "  2. ai   ✓ done  ↺" in result.output

    def test_recall(self, workspace: _Workspace) -> None:

        workspace.invoke("generate", "four on the floor")
        result = workspace.invoke("recall", "2")
        assert result.exit_code == ExitCode.SUCCESS, result.output
        assert "recalled from history (message 2)" in result.output
        editor = workspace.engine_file.with_name(workspace.engine_file.name + ".editor")
        assert editor.read_text(encoding="utf-8") == "s('bd*4')"

    def test_recall_message_without_code(self, workspace: _Workspace) -> None:

        workspace.invoke("generate", "four on the floor")
        result = workspace.invoke("recall", "1")
        assert result.exit_code == ExitCode.USER_ERROR
        assert workspace.invoke("recall", "9").exit_code == ExitCode.USER_ERROR

    def test_new_session(self, workspace: _Workspace) -> None:

        workspace.invoke("generate", "four on the floor")
        result = workspace.invoke("new")
        assert result.exit_code == ExitCode.SUCCESS
        assert "started fresh session" in result.output
        assert "no messages yet" in workspace.invoke("history").output

    def test_reset(self, workspace: _Workspace) -> None:

        workspace.invoke("generate", "four on the floor")
        before = workspace.invoke("history").output.splitlines()[0]
        result = workspace.invoke("reset")
        assert result.exit_code == ExitCode.SUCCESS
        assert "chat and editor reset" in result.output
        after = workspace.invoke("history").output.splitlines()[0]
        assert before == after

    def test_play_and_stop(self, workspace: _Workspace) -> None:

        assert workspace.invoke("play").exit_code == ExitCode.SUCCESS
        assert "setcps(0.5)" in workspace.engine_file.read_text(encoding="utf-8")
        result = workspace.invoke("stop")
        assert result.exit_code == ExitCode.SUCCESS
        assert workspace.engine_file.read_text(encoding="utf-8") == "hush()\n"

    def test_actions_lists_presets(self, workspace: _Workspace) -> None:

        result = workspace.invoke("actions")
        assert result.exit_code == ExitCode.SUCCESS
        for label in QUICK_ACTIONS:
            assert label in result.output
