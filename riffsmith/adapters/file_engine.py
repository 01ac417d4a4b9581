"""File-backed execution adapter.

Hands code to a live-coding engine that watches a file and re-evaluates it
on change (the usual setup for editor-driven live coding).

Two files are involved::

    <engine_file>              ← what the engine evaluates
    <engine_file>.editor       ← the editor buffer (``set_code`` target)

``set_code`` only updates the buffer; ``run`` publishes the buffer to the
engine file; ``stop`` publishes the silence command.  Keeping the buffer
separate means loading code never starts playback on its own.
"""
from __future__ import annotations

import asyncio
import logging
import pathlib

from riffsmith.config import DEFAULT_CODE
from riffsmith.contracts.adapter import EngineError

logger = logging.getLogger(__name__)

SILENCE_COMMAND = "hush()\n"


class FileEngineAdapter:
    """``ExecutionAdapter`` writing to a file watched by the engine."""

    def __init__(self, engine_file: pathlib.Path, default_code: str = DEFAULT_CODE) -> None:
        self.engine_file = pathlib.Path(engine_file)
        self.editor_file = self.engine_file.with_name(self.engine_file.name + ".editor")
        self.default_code = default_code

    def get_code(self) -> str:
        if not self.editor_file.is_file():
            return self.default_code
        return self.editor_file.read_text(encoding="utf-8")

    def set_code(self, code: str) -> None:
        self.editor_file.parent.mkdir(parents=True, exist_ok=True)
        self.editor_file.write_text(code, encoding="utf-8")

    async def run(self) -> None:
        code = self.get_code()
        if not code.strip():
            raise EngineError("strudel error: nothing to evaluate", line=1)
        await asyncio.to_thread(self._publish, code)
        logger.info(f"▶️ Published {len(code)} chars to {self.engine_file}")

    async def stop(self) -> None:
        await asyncio.to_thread(self._publish, SILENCE_COMMAND)
        logger.info(f"⏹️ Silenced {self.engine_file}")

    def _publish(self, text: str) -> None:
        self.engine_file.parent.mkdir(parents=True, exist_ok=True)
        try:
            self.engine_file.write_text(text, encoding="utf-8")
        except OSError as exc:
            raise EngineError(f"cannot write {self.engine_file}: {exc}") from exc
