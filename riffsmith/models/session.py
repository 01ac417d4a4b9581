"""Session and chat history models.

A ``Session`` is the unit of persisted state: the code currently loaded in
the engine, the chat log that produced it, and one ``CodeRevision`` per
turn that actually changed the code.  Records round-trip through JSON in
camelCase (``sessionId``, ``currentCode``, ``createdAt`` ...).
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import Field

from riffsmith.models.base import CamelModel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_session_id() -> str:
    return str(uuid.uuid4())


class ChatRole(str, Enum):
    """Author of a chat message."""
    USER = "user"
    ASSISTANT = "assistant"


class ChatMessage(CamelModel):
    """One entry in a session's chat log.

    ``code`` is the snapshot recallable from this message; only assistant
    messages of successful turns carry one.
    """

    role: ChatRole
    content: str
    code: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)


class CodeRevision(CamelModel):
    """A change of the session's code caused by a prompt."""

    code: str
    prompt: str
    created_at: datetime = Field(default_factory=utc_now)


class Session(CamelModel):
    """The active generation session."""

    session_id: str = Field(default_factory=new_session_id)
    current_code: str
    chat: list[ChatMessage] = Field(default_factory=list)
    revisions: list[CodeRevision] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def last_message(self) -> Optional[ChatMessage]:
        return self.chat[-1] if self.chat else None

    def touch(self) -> None:
        self.updated_at = utc_now()
