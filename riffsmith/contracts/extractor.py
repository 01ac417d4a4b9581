"""Output extractor contract.

Pulling a code block out of raw model text is a black box to the
orchestrator: it hands over the accumulated stream text and gets back a
``ParseResult``.  On failure the raw text is kept for diagnostics.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@dataclass(frozen=True)
class ParseResult:
    """Outcome of extracting code from model output."""

    success: bool
    code: Optional[str] = None
    error: Optional[str] = None
    raw_response: Optional[str] = None
    # A code block was found but could not be used (cut off, empty).
    parse_failure: bool = False

    @classmethod
    def ok(cls, code: str) -> ParseResult:
        return cls(success=True, code=code)

    @classmethod
    def failed(cls, error: str, raw_response: str, parse_failure: bool = False) -> ParseResult:
        return cls(
            success=False,
            error=error,
            raw_response=raw_response,
            parse_failure=parse_failure,
        )


@runtime_checkable
class OutputExtractor(Protocol):
    def parse(self, text: str) -> ParseResult:
        """Extract a validated code artifact from raw model output."""
        ...

    def is_unchanged(self, old_code: str, new_code: str) -> bool:
        """True when ``new_code`` is equivalent to ``old_code``."""
        ...
