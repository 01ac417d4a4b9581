"""
Error taxonomy for generation turns.

Every failure a turn can hit is a ``GenerationError`` subclass carrying an
``ErrorKind``.  The orchestrator catches them at its boundary and turns
each into exactly one user-facing message:

    ConnectivityError    request never reached the server
    HttpStatusError      non-2xx response, sub-classified by status
    StreamProtocolError  explicit error frame, or the stream broke mid-way
    EmptyResponseError   stream ended with no text
    ExtractionError      no valid code in the model output (raw text kept;
                         kind PARSE when a code block was cut off or empty)
    ExecutionError       engine rejected the applied code (line kept)

``ExecutionError`` is the only kind raised *after* the code was committed
to history, so the artifact stays recallable even though it failed to run.
"""
from __future__ import annotations

import json
import logging
import re
from enum import Enum
from typing import Optional, cast

from riffsmith.contracts.wire_types import ErrorResponseBody

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    CONNECTIVITY = "connectivity"
    HTTP_STATUS = "http_status"
    STREAM_PROTOCOL = "stream_protocol"
    EMPTY_RESPONSE = "empty_response"
    EXTRACTION = "extraction"
    PARSE = "parse"
    EXECUTION = "execution"
    ENGINE_NOT_READY = "engine_not_ready"


CONNECTIVITY_MESSAGE = (
    "Network error: Could not connect to the server. "
    "Please check your internet connection."
)
EMPTY_RESPONSE_MESSAGE = (
    "Empty response from AI. The model may be overloaded - please try again."
)
NO_VALID_CODE_MESSAGE = "The AI response didn't contain valid code"

_STATUS_MESSAGES: dict[int, str] = {
    401: "Invalid API key. Please check your API key in Settings.",
    400: "Bad request. Please check your settings.",
    429: "Rate limited. Please wait a moment and try again.",
}
_SERVER_ERROR_MESSAGE = "Server error. Please try again later."


class GenerationError(Exception):
    """Base class for every failure surfaced by a generation turn."""

    kind: ErrorKind = ErrorKind.STREAM_PROTOCOL

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConnectivityError(GenerationError):
    kind = ErrorKind.CONNECTIVITY

    def __init__(self, message: str = CONNECTIVITY_MESSAGE) -> None:
        super().__init__(message)


class HttpStatusError(GenerationError):
    """Raised for a non-success response; ``message`` is already user-facing."""

    kind = ErrorKind.HTTP_STATUS

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code

    @classmethod
    def from_response(cls, status_code: int, body: bytes) -> HttpStatusError:
        return cls(status_code, classify_http_error(status_code, body))


class StreamProtocolError(GenerationError):
    kind = ErrorKind.STREAM_PROTOCOL


class EmptyResponseError(GenerationError):
    kind = ErrorKind.EMPTY_RESPONSE

    def __init__(self, message: str = EMPTY_RESPONSE_MESSAGE) -> None:
        super().__init__(message)


class ExtractionError(GenerationError):
    """No valid code in the model output.  ``raw_response`` is kept for display.

    A response whose code block was found but unusable is parse-class
    (``ErrorKind.PARSE``); its raw text stays until the user dismisses it.
    """

    kind = ErrorKind.EXTRACTION

    def __init__(self, message: str, raw_response: str, parse_failure: bool = False) -> None:
        super().__init__(message)
        self.raw_response = raw_response
        if parse_failure:
            self.kind = ErrorKind.PARSE


class ExecutionError(GenerationError):
    kind = ErrorKind.EXECUTION

    def __init__(self, message: str, line: Optional[int] = None) -> None:
        super().__init__(message)
        self.line = line

    @classmethod
    def from_engine(cls, err: BaseException) -> ExecutionError:
        return cls(format_engine_error(err), line=getattr(err, "line", None))


class EngineNotReadyError(GenerationError):
    kind = ErrorKind.ENGINE_NOT_READY

    def __init__(self, message: str = "editor not ready") -> None:
        super().__init__(message)


def status_message(status_code: int) -> str:
    """Status-based message used when the error body carries none."""
    if status_code in _STATUS_MESSAGES:
        return _STATUS_MESSAGES[status_code]
    if status_code >= 500:
        return _SERVER_ERROR_MESSAGE
    return f"Server error: {status_code}"


def _explicit_error_message(body: bytes) -> Optional[str]:
    """Return the ``error`` message of a JSON error body, if it has one."""
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(data, dict):
        return None
    error = cast(ErrorResponseBody, data).get("error")
    if isinstance(error, str) and error:
        return error
    # Some proxies nest it: {"error": {"message": "..."}}
    if isinstance(error, dict):
        nested = error.get("message")
        if isinstance(nested, str) and nested:
            return nested
    return None


def classify_http_error(status_code: int, body: bytes) -> str:
    """
    Turn a non-success response into a user-facing message.

    An explicit ``{"error": "..."}`` in the body wins; otherwise the status
    code decides (401, 400, 429, 5xx, then a generic status-coded message).
    """
    explicit = _explicit_error_message(body)
    if explicit:
        return explicit
    return status_message(status_code)


_MINI_PARSE_ERROR = re.compile(r"\[mini\] parse error at line (\d+): (.+)")
_ENGINE_PREFIX = re.compile(r"^strudel error: ", re.IGNORECASE)


def format_engine_error(err: object) -> str:
    """
    Format an engine failure for display.

    Mini-notation parse errors are shortened to ``parse error at line N: ...``
    and a redundant ``strudel error:`` prefix is dropped.
    """
    if not err:
        return "unknown error"

    if hasattr(err, "line"):
        message = getattr(err, "message", None) or str(err) or "strudel error"
    else:
        message = str(err)

    if "[mini] parse error" in message:
        match = _MINI_PARSE_ERROR.search(message)
        if match:
            return f"parse error at line {match.group(1)}: {match.group(2)}"

    return _ENGINE_PREFIX.sub("", message)
