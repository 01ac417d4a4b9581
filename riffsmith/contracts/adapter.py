"""Execution adapter contract.

The live-coding engine is an external collaborator.  Riffsmith only needs
four capabilities from it; anything that provides them (a browser bridge,
a file-watching engine, a test double) can drive a session.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable


class EngineError(Exception):
    """Raised by an adapter when the engine rejects code.

    ``line`` is the 1-based source line the engine blamed, when known.
    """

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.line = line


@runtime_checkable
class ExecutionAdapter(Protocol):
    """Capabilities consumed from the live-coding engine."""

    def get_code(self) -> str:
        """Return the code currently loaded in the engine's editor."""
        ...

    def set_code(self, code: str) -> None:
        """Replace the editor contents without evaluating them."""
        ...

    async def run(self) -> None:
        """Evaluate the loaded code and start playback."""
        ...

    async def stop(self) -> None:
        """Stop playback."""
        ...
