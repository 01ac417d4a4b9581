"""Pydantic models for Riffsmith sessions."""
from __future__ import annotations

from riffsmith.models.session import ChatMessage, ChatRole, CodeRevision, Session

__all__ = [
    "ChatMessage",
    "ChatRole",
    "CodeRevision",
    "Session",
]
