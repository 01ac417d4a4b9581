"""Typed structures for the generation endpoint's request and stream frames.

Organisation:
  Request payload   → ``ChatContextEntry``, ``GenerationRequestBody``
  Stream frames     → ``ContentBlockDelta``, ``ContentDeltaFrame``,
                      ``StatusFrame``, ``ClearFrame``, ``ErrorDetail``,
                      ``ErrorFrame``, ``RawFrame``
  Error responses   → ``ErrorResponseBody``

Raw frames are what ``json.loads`` yields for one ``data:`` line; the
decoder converts them into ``StreamFrame`` values and never lets these
dicts travel further.
"""
from __future__ import annotations

from typing import Literal, Union

from typing_extensions import NotRequired, TypedDict


# ── Request payload ────────────────────────────────────────────────────────────


class ChatContextEntry(TypedDict):
    """One prior chat message sent as conversational context."""

    role: Literal["user", "assistant"]
    content: str


class GenerationRequestBody(TypedDict):
    """JSON body POSTed to the generation endpoint.

    ``currentCode`` is present only when ``mode`` is ``"edit"``.
    ``model`` and ``apiKey`` are omitted when the caller has none.
    """

    prompt: str
    mode: Literal["new", "edit"]
    currentCode: NotRequired[str]
    chatHistory: list[ChatContextEntry]
    sessionId: str
    model: NotRequired[str]
    apiKey: NotRequired[str]


# ── Stream frames ──────────────────────────────────────────────────────────────


class ContentBlockDelta(TypedDict, total=False):
    """Incremental text carried by a content delta frame."""

    text: str


class ContentDeltaFrame(TypedDict):
    type: Literal["content_block_delta"]
    delta: ContentBlockDelta


class StatusFrame(TypedDict):
    type: Literal["status"]
    status: str


class ClearFrame(TypedDict):
    """Backend restarted generation; discard everything accumulated so far."""

    type: Literal["clear"]


class ErrorDetail(TypedDict, total=False):
    message: str


class ErrorFrame(TypedDict):
    type: Literal["error"]
    error: NotRequired[ErrorDetail]


RawFrame = Union[ContentDeltaFrame, StatusFrame, ClearFrame, ErrorFrame]


# ── Error responses ────────────────────────────────────────────────────────────


class ErrorResponseBody(TypedDict, total=False):
    """JSON body of a non-200 response; some proxies nest the message."""

    error: Union[str, ErrorDetail]
