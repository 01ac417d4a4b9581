"""
Studio: the session-level operations around generation turns.

Where the orchestrator owns a single turn, the studio owns everything a
user can do between turns:

- quick actions (prompt text substitution only)
- recall a historical code snapshot
- start fresh (new session, default code)
- reset history (same session, empty chat, default code)
- play / stop / toggle

Recall, start fresh and reset always stop playback first.  A failing
``stop`` is logged and otherwise ignored; a failing ``run`` is shown as a
formatted error and never marks the studio as playing.
"""
from __future__ import annotations

import logging
from typing import Optional

from riffsmith.config import DEFAULT_CODE, QUICK_ACTIONS
from riffsmith.contracts.adapter import ExecutionAdapter
from riffsmith.core.errors import ErrorKind, format_engine_error
from riffsmith.core.feedback import TurnFeedback
from riffsmith.core.orchestrator import GenerationOrchestrator, TurnOutcome
from riffsmith.core.session_store import SessionStore

logger = logging.getLogger(__name__)


class UnknownQuickActionError(KeyError):
    """Raised for a quick action label that is not in ``QUICK_ACTIONS``."""


class Studio:
    """Binds a session store, an engine adapter and an orchestrator."""

    def __init__(
        self,
        orchestrator: GenerationOrchestrator,
        default_code: str = DEFAULT_CODE,
    ):
        self.orchestrator = orchestrator
        self.default_code = default_code
        self.prompt: str = ""
        self.is_playing = False

    @property
    def store(self) -> SessionStore:
        return self.orchestrator.store

    @property
    def feedback(self) -> TurnFeedback:
        return self.orchestrator.feedback

    @property
    def adapter(self) -> Optional[ExecutionAdapter]:
        return self.orchestrator.adapter

    @property
    def is_generating(self) -> bool:
        return self.orchestrator.in_flight

    def attach_adapter(self, adapter: ExecutionAdapter) -> None:
        """
        Connect the engine once it is ready.

        An engine that boots with the default code while the session holds
        something else is brought up to date with the session's code.
        """
        self.orchestrator.attach_adapter(adapter)
        session = self.store.get_state()
        if adapter.get_code() == self.default_code and session.current_code != self.default_code:
            adapter.set_code(session.current_code)
            logger.info(f"🔁 Engine synced to session {session.session_id[:8]}")

    # =========================================================================
    # Prompting
    # =========================================================================

    def quick_action(self, label: str) -> str:
        """Replace the pending prompt with a preset. Never touches any other state."""
        try:
            self.prompt = QUICK_ACTIONS[label]
        except KeyError:
            raise UnknownQuickActionError(label) from None
        return self.prompt

    async def submit(
        self,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> Optional[TurnOutcome]:
        """Generate from the pending prompt. Dropped turns leave the prompt in place."""
        if not self.prompt.strip() or self.is_generating:
            return None
        prompt, self.prompt = self.prompt, ""
        outcome = await self.orchestrator.generate(prompt, model=model, api_key=api_key)
        if outcome is not None and outcome.succeeded and outcome.execution_error is None:
            self.is_playing = True
        return outcome

    # =========================================================================
    # History
    # =========================================================================

    async def recall(self, code: str) -> bool:
        """Load a historical snapshot into the engine and the session. Chat is untouched."""
        adapter = self.adapter
        if adapter is None or not code:
            return False
        await self._stop_quietly(adapter)
        adapter.set_code(code)
        self.store.set_current_code(code)
        self.feedback.dismiss_error()
        self.feedback.set_status("recalled from history", auto_clear=True)
        return True

    async def start_fresh(self) -> bool:
        """Replace the whole session (chat and code) with a new one."""
        adapter = self.adapter
        if adapter is None:
            return False
        await self._stop_quietly(adapter)
        adapter.set_code(self.default_code)
        self.store.start_new_session(self.default_code)
        self.feedback.dismiss_error()
        self.feedback.set_status("started fresh session", auto_clear=True)
        return True

    async def reset_history(self) -> bool:
        """Empty the chat and reset the code; the session id is kept."""
        adapter = self.adapter
        if adapter is None:
            return False
        await self._stop_quietly(adapter)
        adapter.set_code(self.default_code)
        self.store.set_current_code(self.default_code)
        self.store.clear_chat()
        self.feedback.dismiss_error()
        self.feedback.set_status("chat and editor reset", auto_clear=True)
        return True

    # =========================================================================
    # Playback
    # =========================================================================

    async def play(self) -> bool:
        adapter = self.adapter
        if adapter is None:
            return False
        try:
            await adapter.run()
        except Exception as exc:
            self.feedback.show_error(format_engine_error(exc), ErrorKind.EXECUTION)
            return False
        self.is_playing = True
        self.feedback.dismiss_error()
        return True

    async def stop(self) -> bool:
        adapter = self.adapter
        if adapter is None:
            return False
        try:
            await adapter.stop()
        except Exception as exc:
            logger.debug(f"Stop failed (ignored): {exc!r}")
            return False
        self.is_playing = False
        self.feedback.dismiss_error()
        return True

    async def toggle_playback(self) -> bool:
        if self.is_playing:
            return await self.stop()
        return await self.play()

    async def _stop_quietly(self, adapter: ExecutionAdapter) -> None:
        try:
            await adapter.stop()
        except Exception as exc:
            logger.debug(f"Stop failed (ignored): {exc!r}")
        self.is_playing = False
