"""
Transient feedback shown around a session: status line, error banner, and
the raw model response kept for diagnostics.

Two advisory timers live here, both ``loop.call_later`` handles owned by
the value they annotate:

- the status line clears itself ``status_clear_seconds`` after a
  self-clearing status was set;
- a raw response expires ``raw_response_ttl_seconds`` after it was
  attached, unless the active error is execution- or parse-class (those
  stay until the user dismisses them).

Setting a new value cancels the old value's timer.  ``close()`` cancels
everything.  Neither timer gates correctness; outside a running event
loop values simply persist until superseded.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Optional

from riffsmith.config import settings
from riffsmith.core.errors import ErrorKind

logger = logging.getLogger(__name__)

# Errors whose diagnostics must persist until dismissed.
PERSISTENT_ERROR_KINDS: frozenset[ErrorKind] = frozenset({ErrorKind.EXECUTION, ErrorKind.PARSE})


def _schedule(delay: float, callback: Callable[[], None]) -> Optional[asyncio.TimerHandle]:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        return None
    return loop.call_later(delay, callback)


class TurnFeedback:
    """Status / error / raw-response state with self-cancelling timers."""

    def __init__(
        self,
        status_clear_seconds: Optional[float] = None,
        raw_response_ttl_seconds: Optional[float] = None,
    ) -> None:
        self.status_clear_seconds = (
            settings.status_clear_seconds if status_clear_seconds is None else status_clear_seconds
        )
        self.raw_response_ttl_seconds = (
            settings.raw_response_ttl_seconds
            if raw_response_ttl_seconds is None
            else raw_response_ttl_seconds
        )
        self.status: Optional[str] = None
        self.error: Optional[str] = None
        self.error_kind: Optional[ErrorKind] = None
        self.raw_response: Optional[str] = None
        self._status_timer: Optional[asyncio.TimerHandle] = None
        self._raw_timer: Optional[asyncio.TimerHandle] = None

    # -- status ---------------------------------------------------------------

    def set_status(self, text: Optional[str], auto_clear: bool = False) -> None:
        """Show ``text``; with ``auto_clear`` it disappears after a short delay."""
        self._cancel_status_timer()
        self.status = text
        if text is not None and auto_clear:
            self._status_timer = _schedule(self.status_clear_seconds, self._expire_status)

    def clear_status(self) -> None:
        self.set_status(None)

    def _expire_status(self) -> None:
        self._status_timer = None
        self.status = None

    def _cancel_status_timer(self) -> None:
        if self._status_timer is not None:
            self._status_timer.cancel()
            self._status_timer = None

    # -- error banner ---------------------------------------------------------

    def show_error(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        raw_response: Optional[str] = None,
    ) -> None:
        """Replace the banner. A new error always supersedes the previous raw response."""
        self._cancel_raw_timer()
        self.error = message
        self.error_kind = kind
        self.raw_response = raw_response
        if raw_response is not None and kind not in PERSISTENT_ERROR_KINDS:
            self._raw_timer = _schedule(self.raw_response_ttl_seconds, self._expire_raw_response)
        logger.info(f"⚠️ error: {message}")

    def dismiss_error(self) -> None:
        """User closed the banner: drop the error and any diagnostics."""
        self._cancel_raw_timer()
        self.error = None
        self.error_kind = None
        self.raw_response = None

    def _expire_raw_response(self) -> None:
        self._raw_timer = None
        self.raw_response = None

    def _cancel_raw_timer(self) -> None:
        if self._raw_timer is not None:
            self._raw_timer.cancel()
            self._raw_timer = None

    def raw_response_preview(self, limit: int = 500) -> Optional[str]:
        """First ``limit`` characters of the raw response, with an ellipsis if cut."""
        if self.raw_response is None:
            return None
        if len(self.raw_response) <= limit:
            return self.raw_response
        return self.raw_response[:limit] + "..."

    # -- lifetime -------------------------------------------------------------

    def close(self) -> None:
        """Cancel pending timers (the owner is going away)."""
        self._cancel_status_timer()
        self._cancel_raw_timer()
