"""
Stream frame decoding for the generation endpoint.

The endpoint streams newline-delimited ``data: <json>`` lines ending with
``data: [DONE]``.  Chunk boundaries fall anywhere: inside a multi-byte
UTF-8 sequence, inside a JSON payload, between ``\\r`` and ``\\n``.  The
decoder therefore keeps two carry-overs (the incremental UTF-8 decoder
state and the trailing partial line) and only parses complete lines.

Every ``data:`` line yields a typed ``DecodedLine`` instead of raising:

    FRAME       well-formed frame of a known type (error frames included)
    INCOMPLETE  payload is not valid JSON; dropped, never fatal
    IGNORED     ``[DONE]``, unknown type, or a delta without text

Error frames are ordinary ``FRAME`` results of kind ``ERROR``; it is the
``StreamAccumulator`` that turns them into ``StreamProtocolError``.  A
malformed payload can never be mistaken for an error frame or vice versa.
"""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Optional, cast

from riffsmith.config import GENERATING_PLACEHOLDER
from riffsmith.contracts.wire_types import ContentDeltaFrame, ErrorFrame, RawFrame, StatusFrame
from riffsmith.core.errors import StreamProtocolError

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
# Longest line kept while waiting for its newline; longer lines are dropped.
MAX_LINE_CHARS = 1 << 20


class FrameKind(str, Enum):
    """``type`` tags understood on the wire."""
    CONTENT_DELTA = "content_block_delta"
    STATUS = "status"
    CLEAR = "clear"
    ERROR = "error"


class LineOutcome(str, Enum):
    FRAME = "frame"
    INCOMPLETE = "incomplete"
    IGNORED = "ignored"


@dataclass(frozen=True)
class StreamFrame:
    """One decoded event. ``text`` is the delta, status, or error message."""

    kind: FrameKind
    text: Optional[str] = None


@dataclass(frozen=True)
class DecodedLine:
    outcome: LineOutcome
    payload: str
    frame: Optional[StreamFrame] = None


def _to_frame(parsed: object) -> Optional[StreamFrame]:
    """Map a parsed payload onto a ``StreamFrame``; None for unusable payloads."""
    if not isinstance(parsed, dict):
        return None
    raw = cast(RawFrame, parsed)
    frame_type = raw.get("type")

    if frame_type == FrameKind.CONTENT_DELTA.value:
        delta = cast(ContentDeltaFrame, raw).get("delta")
        text = delta.get("text") if isinstance(delta, dict) else None
        if isinstance(text, str) and text:
            return StreamFrame(FrameKind.CONTENT_DELTA, text)
        return None

    if frame_type == FrameKind.STATUS.value:
        status = cast(StatusFrame, raw).get("status")
        return StreamFrame(FrameKind.STATUS, status if isinstance(status, str) else None)

    if frame_type == FrameKind.CLEAR.value:
        return StreamFrame(FrameKind.CLEAR)

    if frame_type == FrameKind.ERROR.value:
        error = cast(ErrorFrame, raw).get("error")
        message = error.get("message") if isinstance(error, dict) else None
        return StreamFrame(FrameKind.ERROR, message if isinstance(message, str) else None)

    return None


def decode_line(line: str) -> Optional[DecodedLine]:
    """Classify one complete line. Returns None for non-``data:`` lines."""
    if not line.startswith(DATA_PREFIX):
        return None
    payload = line[len(DATA_PREFIX):]
    if payload == DONE_SENTINEL:
        return DecodedLine(LineOutcome.IGNORED, payload)

    try:
        parsed = json.loads(payload)
    except json.JSONDecodeError:
        return DecodedLine(LineOutcome.INCOMPLETE, payload)

    frame = _to_frame(parsed)
    if frame is None:
        return DecodedLine(LineOutcome.IGNORED, payload)
    return DecodedLine(LineOutcome.FRAME, payload, frame)


class StreamFrameDecoder:
    """Incremental bytes → ``DecodedLine`` decoder.

    One instance per response body; not reusable across streams.  A line
    longer than ``max_line_chars`` is dropped whole with a warning; decoding
    resumes at the next newline.
    """

    def __init__(self, max_line_chars: int = MAX_LINE_CHARS) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._partial: str = ""
        self._discarding = False
        self.max_line_chars = max_line_chars

    def feed(self, chunk: bytes) -> list[DecodedLine]:
        """Decode one chunk and return the lines it completed."""
        text = self._partial + self._utf8.decode(chunk)
        lines = text.split("\n")
        self._partial = lines.pop()
        if self._discarding and lines:
            # Tail of the oversized line.
            lines.pop(0)
            self._discarding = False
        if len(self._partial) > self.max_line_chars:
            if not self._discarding:
                logger.warning(
                    f"⚠️ Stream line exceeds {self.max_line_chars} chars without a newline; dropping it"
                )
            self._partial = ""
            self._discarding = True
        return self._decode_lines(lines)

    def finish(self) -> list[DecodedLine]:
        """Flush whatever the last chunk left behind (a final line without newline)."""
        tail = self._partial + self._utf8.decode(b"", final=True)
        self._partial = ""
        if not tail or self._discarding:
            return []
        return self._decode_lines([tail])

    def _decode_lines(self, lines: list[str]) -> list[DecodedLine]:
        decoded: list[DecodedLine] = []
        for line in lines:
            result = decode_line(line.removesuffix("\r"))
            if result is None:
                continue
            if result.outcome == LineOutcome.INCOMPLETE:
                logger.debug(f"Dropping unparseable frame: {result.payload[:80]!r}")
            decoded.append(result)
        return decoded


class StreamAccumulator:
    """Applies decoded frames to the turn's text buffer.

    - content delta → append text
    - status        → ``on_status`` (the placeholder "generating..." is suppressed)
    - clear         → empty the buffer (backend restarted generation)
    - error         → raise ``StreamProtocolError``
    """

    def __init__(self, on_status: Optional[Callable[[str], None]] = None) -> None:
        self._parts: list[str] = []
        self._on_status = on_status
        self.frame_count = 0

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def apply(self, frame: StreamFrame) -> None:
        self.frame_count += 1
        if frame.kind == FrameKind.CONTENT_DELTA:
            self._parts.append(frame.text or "")
        elif frame.kind == FrameKind.STATUS:
            if frame.text and frame.text != GENERATING_PLACEHOLDER and self._on_status:
                self._on_status(frame.text)
        elif frame.kind == FrameKind.CLEAR:
            logger.info("🔄 Stream cleared; backend restarted generation")
            self._parts.clear()
        elif frame.kind == FrameKind.ERROR:
            raise StreamProtocolError(frame.text or "stream error")

    def apply_all(self, lines: list[DecodedLine]) -> None:
        for line in lines:
            if line.outcome == LineOutcome.FRAME and line.frame is not None:
                self.apply(line.frame)
