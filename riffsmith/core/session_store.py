"""
Observable session store.

This is the **authoritative source of truth** for the active session: the
chat log, the code that is (or should be) loaded in the engine, and the
revision history.  The orchestrator and explicit user actions mutate it
through the command methods below; everything else reads snapshots.

Key principles:
1. Exactly one current session, created lazily on first access
2. Every command notifies every subscriber exactly once
3. Listeners run in subscription order; a command issued from inside a
   listener is applied at once but its notification waits until the
   running cycle has finished (no overlapping cycles)
4. Mutation is confined to the event-loop thread; no locking

Usage:
    store = get_session_store()
    unsubscribe = store.subscribe(lambda: render(store.get_state()))

    store.append_user_message("make it darker")
    store.append_assistant_message("generating...")
    ...
    store.update_last_assistant_message("✓ done", code)
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Optional

from riffsmith.config import DEFAULT_CODE
from riffsmith.core.session_repository import SessionRepository
from riffsmith.models.session import ChatMessage, ChatRole, CodeRevision, Session

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


class SessionStore:
    """
    Process-wide container for the one active session.

    Provides:
    1. Snapshot reads (``get_state``)
    2. Subscription with ordered, non-overlapping notification
    3. Synchronous mutation commands
    4. Optional persistence through a ``SessionRepository``
    """

    def __init__(
        self,
        repository: Optional[SessionRepository] = None,
        default_code: str = DEFAULT_CODE,
    ):
        self._repository = repository
        self._default_code = default_code
        self._session: Optional[Session] = None
        self._listeners: list[Listener] = []
        self._notifying = False
        self._pending_notifications = 0

        if repository is not None:
            self._session = repository.load_current()
            if self._session is not None:
                logger.info(
                    f"📂 Restored session {self._session.session_id[:8]} "
                    f"({len(self._session.chat)} messages)"
                )

    # =========================================================================
    # Reads & subscription
    # =========================================================================

    @property
    def has_session(self) -> bool:
        return self._session is not None

    def get_state(self) -> Session:
        """Return a deep copy of the current session, creating it if needed."""
        if self._session is None:
            self.ensure_session()
        assert self._session is not None
        return self._session.model_copy(deep=True)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            try:
                self._listeners.remove(listener)
            except ValueError:
                pass

        return unsubscribe

    # =========================================================================
    # Commands
    # =========================================================================

    def ensure_session(self) -> None:
        """Create the session if none exists. Notifies even when it is a no-op."""
        self._require_session()
        self._commit()

    def append_user_message(self, text: str) -> None:
        self._append(ChatRole.USER, text)

    def append_assistant_message(self, text: str) -> None:
        self._append(ChatRole.ASSISTANT, text)

    def update_last_assistant_message(self, content: str, code: Optional[str] = None) -> None:
        """
        Rewrite the most recent message in place.

        No-op (logged) when the tail is not an assistant message; callers
        always append the placeholder first, so this only guards ordering bugs.
        """
        session = self._require_session()
        last = session.last_message
        if last is None or last.role != ChatRole.ASSISTANT:
            logger.warning("⚠️ update_last_assistant_message: chat tail is not an assistant message")
        else:
            last.content = content
            if code is not None:
                last.code = code
            session.touch()
        self._commit()

    def set_current_code(self, code: str) -> None:
        session = self._require_session()
        session.current_code = code
        session.touch()
        self._commit()

    def apply_new_code(self, code: str, prompt: str) -> None:
        """Record that ``prompt`` changed the session's code to ``code``."""
        session = self._require_session()
        session.current_code = code
        session.revisions.append(CodeRevision(code=code, prompt=prompt))
        session.touch()
        logger.info(
            f"🎛️ Code revision {len(session.revisions)} recorded for session {session.session_id[:8]}"
        )
        self._commit()

    def start_new_session(self, default_code: str) -> None:
        """Discard the current session entirely and start a new one."""
        old = self._session
        self._session = Session(current_code=default_code)
        if old is not None and self._repository is not None:
            self._repository.delete(old.session_id)
        logger.info(f"🆕 New session {self._session.session_id[:8]}")
        self._commit()

    def clear_chat(self) -> None:
        """Empty the chat log. ``current_code`` and the session id are kept."""
        session = self._require_session()
        session.chat.clear()
        session.touch()
        self._commit()

    # =========================================================================
    # Internals
    # =========================================================================

    def _require_session(self) -> Session:
        """Lazily create the session without notifying (the command notifies)."""
        if self._session is None:
            self._session = Session(current_code=self._default_code)
            logger.debug(f"🏗️ Session created: {self._session.session_id[:8]}")
        return self._session

    def _append(self, role: ChatRole, text: str) -> None:
        session = self._require_session()
        session.chat.append(ChatMessage(role=role, content=text))
        session.touch()
        self._commit()

    def _commit(self) -> None:
        if self._repository is not None and self._session is not None:
            self._repository.save(self._session)
        self._notify()

    def _notify(self) -> None:
        self._pending_notifications += 1
        if self._notifying:
            return
        self._notifying = True
        try:
            while self._pending_notifications:
                self._pending_notifications -= 1
                for listener in list(self._listeners):
                    try:
                        listener()
                    except Exception:
                        logger.exception("❌ Session store listener failed")
        finally:
            self._notifying = False


# =============================================================================
# Process-wide store
# =============================================================================

_store: Optional[SessionStore] = None


def get_session_store() -> SessionStore:
    """Return the process-wide ``SessionStore``, creating it if needed."""
    global _store
    if _store is None:
        _store = SessionStore()
    return _store


def set_session_store(store: SessionStore) -> None:
    """Install ``store`` as the process-wide instance (e.g. a persistent one)."""
    global _store
    _store = store


def reset_session_store() -> None:
    """Drop the process-wide store (for testing)."""
    global _store
    _store = None
