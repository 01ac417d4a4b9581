"""Tests for the file-backed execution adapter."""
from __future__ import annotations

import pathlib

import pytest

from riffsmith.adapters.file_engine import SILENCE_COMMAND, FileEngineAdapter
from riffsmith.config import DEFAULT_CODE
from riffsmith.contracts.adapter import EngineError, ExecutionAdapter


class TestFileEngineAdapter:

    def test_is_an_execution_adapter(self, tmp_path: pathlib.Path) -> None:

        assert isinstance(FileEngineAdapter(tmp_path / "live.js"), ExecutionAdapter)

    def test_fresh_editor_holds_default_code(self, tmp_path: pathlib.Path) -> None:

        assert FileEngineAdapter(tmp_path / "live.js").get_code() == DEFAULT_CODE

    def test_set_code_does_not_publish(self, tmp_path: pathlib.Path) -> None:

        """Loading code never starts playback on its own."""
        engine = FileEngineAdapter(tmp_path / "live.js")
        engine.set_code("s('bd')")
        assert engine.get_code() == "s('bd')"
        assert not (tmp_path / "live.js").exists()

    @pytest.mark.asyncio
    async def test_run_publishes_editor_buffer(self, tmp_path: pathlib.Path) -> None:

        engine = FileEngineAdapter(tmp_path / "out" / "live.js")
        engine.set_code("s('bd sd')")
        await engine.run()
        assert (tmp_path / "out" / "live.js").read_text(encoding="utf-8") == "s('bd sd')"

    @pytest.mark.asyncio
    async def test_run_blank_buffer_fails(self, tmp_path: pathlib.Path) -> None:

        engine = FileEngineAdapter(tmp_path / "live.js")
        engine.set_code("  \n")
        with pytest.raises(EngineError) as exc:
            await engine.run()
        assert exc.value.line == 1

    @pytest.mark.asyncio
    async def test_stop_publishes_silence(self, tmp_path: pathlib.Path) -> None:

        engine = FileEngineAdapter(tmp_path / "live.js")
        engine.set_code("s('bd')")
        await engine.run()
        await engine.stop()
        assert (tmp_path / "live.js").read_text(encoding="utf-8") == SILENCE_COMMAND
        assert engine.get_code() == "s('bd')"

    @pytest.mark.asyncio
    async def test_unwritable_target_raises_engine_error(self, tmp_path: pathlib.Path) -> None:

        target = tmp_path / "live.js"
        target.mkdir()
        engine = FileEngineAdapter(target)
        engine.set_code("s('bd')")
        with pytest.raises(EngineError):
            await engine.run()
