"""
Generation orchestrator: one prompt through to a terminal turn state.

Pipeline (see ``turn_state`` for the state machine):

    SUBMITTING  build the request, POST it, classify connectivity/HTTP failures
    STREAMING   decode ``data:`` frames chunk by chunk into the text buffer
    EXTRACTING  hand the text to the output extractor
    APPLYING    load the code into the engine, record history if it changed
    EXECUTING   run the engine; a failure here is reported, history is kept

At most one turn is in flight system-wide.  A prompt submitted while a turn
is running is dropped, not queued, and the running turn is never cancelled.
The guard is released in ``finally`` whatever happens inside the turn.

The placeholder assistant message is appended before the request is sent
and rewritten in place when the turn resolves: ``✓ done``,
``✓ no changes needed`` or ``✗ <error>``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import httpx

from riffsmith.config import DEFAULT_CODE, GENERATING_PLACEHOLDER, settings
from riffsmith.contracts.adapter import ExecutionAdapter
from riffsmith.contracts.extractor import OutputExtractor
from riffsmith.contracts.wire_types import ChatContextEntry, GenerationRequestBody
from riffsmith.core.errors import (
    NO_VALID_CODE_MESSAGE,
    ConnectivityError,
    EmptyResponseError,
    EngineNotReadyError,
    ErrorKind,
    ExecutionError,
    ExtractionError,
    GenerationError,
    HttpStatusError,
    StreamProtocolError,
)
from riffsmith.core.extraction import FencedCodeExtractor, normalise_code
from riffsmith.core.feedback import TurnFeedback
from riffsmith.core.frame_decoder import StreamAccumulator, StreamFrameDecoder
from riffsmith.core.session_store import SessionStore, get_session_store
from riffsmith.core.turn_state import TurnState, assert_transition, is_in_flight
from riffsmith.models.session import ChatMessage

logger = logging.getLogger(__name__)

DONE_ACK = "✓ done"
UNCHANGED_ACK = "✓ no changes needed"
FAILED_PREFIX = "✗ "
STREAM_INTERRUPTED_MESSAGE = "Connection lost while streaming the response."


class GenerationMode(str, Enum):
    """Whether the engine's current code is sent as edit context."""
    NEW = "new"
    EDIT = "edit"


def derive_mode(engine_code: Optional[str], default_code: str = DEFAULT_CODE) -> GenerationMode:
    """``edit`` iff the engine holds real code: non-blank and not the default.

    The default is matched after normalisation, so a default that went
    through the extractor (trailing newline stripped) still counts as new.
    """
    if not engine_code or not engine_code.strip():
        return GenerationMode.NEW
    if normalise_code(engine_code) != normalise_code(default_code):
        return GenerationMode.EDIT
    return GenerationMode.NEW


@dataclass
class GenerationTurn:
    """Ephemeral state of one turn, captured once when the turn starts."""

    prompt: str
    mode: GenerationMode
    engine_code: Optional[str]
    accumulated_text: str = ""

    @classmethod
    def capture(
        cls,
        prompt: str,
        engine_code: Optional[str],
        default_code: str = DEFAULT_CODE,
    ) -> GenerationTurn:
        return cls(
            prompt=prompt,
            mode=derive_mode(engine_code, default_code),
            engine_code=engine_code,
        )

    @property
    def prior_code(self) -> Optional[str]:
        """Code sent as edit context; only in edit mode."""
        return self.engine_code if self.mode == GenerationMode.EDIT else None


@dataclass
class TurnOutcome:
    """Terminal result of a turn that was not dropped at the guard."""

    succeeded: bool
    code: Optional[str] = None
    unchanged: bool = False
    error: Optional[GenerationError] = None
    execution_error: Optional[ExecutionError] = None
    raw_response: Optional[str] = None


def build_chat_context(chat: list[ChatMessage], limit: int) -> list[ChatContextEntry]:
    """Last ``limit`` messages as ``{role, content}`` pairs."""
    if limit <= 0:
        return []
    return [{"role": m.role.value, "content": m.content} for m in chat[-limit:]]


def build_request_body(
    turn: GenerationTurn,
    chat: list[ChatMessage],
    session_id: str,
    model: Optional[str] = None,
    api_key: Optional[str] = None,
    context_messages: int = 10,
) -> GenerationRequestBody:
    """JSON body for the generation endpoint; absent optionals are omitted."""
    body: GenerationRequestBody = {
        "prompt": turn.prompt,
        "mode": turn.mode.value,
        "chatHistory": build_chat_context(chat, context_messages),
        "sessionId": session_id,
    }
    if turn.prior_code is not None:
        body["currentCode"] = turn.prior_code
    if model:
        body["model"] = model
    if api_key:
        body["apiKey"] = api_key
    return body


class GenerationOrchestrator:
    """
    Drives generation turns against one session store and one engine.

    Usage:
        orchestrator = GenerationOrchestrator(store, adapter)
        outcome = await orchestrator.generate("make it darker")
        if outcome and not outcome.succeeded:
            print(outcome.error)
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        adapter: Optional[ExecutionAdapter] = None,
        extractor: Optional[OutputExtractor] = None,
        feedback: Optional[TurnFeedback] = None,
        client: Optional[httpx.AsyncClient] = None,
        generation_url: Optional[str] = None,
        timeout: Optional[float] = None,
        default_code: str = DEFAULT_CODE,
        context_messages: Optional[int] = None,
    ):
        self.store = store or get_session_store()
        self.adapter = adapter
        self.extractor: OutputExtractor = extractor or FencedCodeExtractor()
        self.feedback = feedback or TurnFeedback()
        self.generation_url = generation_url or settings.generation_url
        self.timeout = timeout or settings.request_timeout
        self.default_code = default_code
        self.context_messages = (
            settings.chat_context_messages if context_messages is None else context_messages
        )
        self._client = client
        self._owns_client = client is None
        self._state = TurnState.IDLE

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def in_flight(self) -> bool:
        return is_in_flight(self._state)

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        """Close the HTTP client if this orchestrator created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    def attach_adapter(self, adapter: Optional[ExecutionAdapter]) -> None:
        self.adapter = adapter

    def _transition(self, to_state: TurnState) -> None:
        assert_transition(self._state, to_state)
        logger.debug(f"Turn state: {self._state.value} → {to_state.value}")
        self._state = to_state

    def _release(self) -> None:
        """Return to IDLE from wherever the turn stopped."""
        if self._state == TurnState.IDLE:
            return
        if self._state != TurnState.ERRORED:
            self._transition(TurnState.ERRORED)
        self._transition(TurnState.IDLE)

    # =========================================================================
    # Turn
    # =========================================================================

    async def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        api_key: Optional[str] = None,
    ) -> Optional[TurnOutcome]:
        """
        Run one turn for ``prompt``.

        Returns None when the prompt is blank or another turn is in flight
        (nothing is recorded); otherwise the turn's outcome.
        """
        text = prompt.strip()
        if not text:
            return None
        if self.in_flight:
            logger.info("⏳ Generation already in flight; dropping prompt")
            return None

        self._transition(TurnState.SUBMITTING)
        try:
            return await self._run_turn(text, model, api_key)
        finally:
            self._release()

    async def _run_turn(
        self,
        text: str,
        model: Optional[str],
        api_key: Optional[str],
    ) -> TurnOutcome:
        self.feedback.dismiss_error()
        adapter = self.adapter
        turn = GenerationTurn.capture(
            text,
            adapter.get_code() if adapter is not None else None,
            self.default_code,
        )

        session = self.store.get_state()
        self.store.append_user_message(text)
        self.store.append_assistant_message(GENERATING_PLACEHOLDER)

        try:
            if adapter is None:
                raise EngineNotReadyError()
            if turn.engine_code:
                self.store.set_current_code(turn.engine_code)

            body = build_request_body(
                turn,
                session.chat,
                session.session_id,
                model=model or settings.llm_model,
                api_key=api_key or settings.api_key,
                context_messages=self.context_messages,
            )
            logger.info(
                f"🚀 Turn started: mode={turn.mode.value}, session={session.session_id[:8]}, "
                f"context={len(body['chatHistory'])} messages"
            )

            turn.accumulated_text = await self._stream_text(body)
            if not turn.accumulated_text.strip():
                raise EmptyResponseError()

            self._transition(TurnState.EXTRACTING)
            result = self.extractor.parse(turn.accumulated_text)
            if not result.success or not result.code:
                raise ExtractionError(
                    result.error or NO_VALID_CODE_MESSAGE,
                    result.raw_response or turn.accumulated_text,
                    parse_failure=result.parse_failure,
                )
            new_code = result.code

            self._transition(TurnState.APPLYING)
            unchanged = bool(turn.engine_code) and self.extractor.is_unchanged(
                turn.engine_code or "", new_code
            )
            adapter.set_code(new_code)
            if unchanged:
                # Engine now holds the normalised text; no revision is recorded.
                self.store.set_current_code(new_code)
            else:
                self.store.apply_new_code(new_code, text)
            self.store.update_last_assistant_message(
                UNCHANGED_ACK if unchanged else DONE_ACK, new_code
            )
        except GenerationError as exc:
            return self._fail(exc)
        except Exception:
            logger.exception("❌ Generation turn failed unexpectedly")
            self.store.update_last_assistant_message(f"{FAILED_PREFIX}failed")
            self.feedback.show_error("failed")
            self.feedback.clear_status()
            raise

        self._transition(TurnState.EXECUTING)
        self.feedback.set_status("starting...")
        execution_error: Optional[ExecutionError] = None
        try:
            await adapter.run()
        except Exception as exc:
            execution_error = ExecutionError.from_engine(exc)
            logger.warning(f"🔇 Engine rejected applied code: {execution_error.message}")
            self.feedback.show_error(execution_error.message, ErrorKind.EXECUTION)
        self.feedback.clear_status()
        self._transition(TurnState.IDLE)

        logger.info(f"✅ Turn complete: {'unchanged' if unchanged else 'new code applied'}")
        return TurnOutcome(
            succeeded=True,
            code=new_code,
            unchanged=unchanged,
            execution_error=execution_error,
        )

    def _fail(self, exc: GenerationError) -> TurnOutcome:
        self._transition(TurnState.ERRORED)
        raw_response = exc.raw_response if isinstance(exc, ExtractionError) else None
        logger.warning(f"❌ Turn failed ({exc.kind.value}): {exc.message}")
        self.feedback.show_error(exc.message, exc.kind, raw_response)
        self.store.update_last_assistant_message(f"{FAILED_PREFIX}{exc.message}")
        self.feedback.clear_status()
        self._transition(TurnState.IDLE)
        return TurnOutcome(succeeded=False, error=exc, raw_response=raw_response)

    async def _stream_text(self, body: GenerationRequestBody) -> str:
        """POST ``body`` and return the accumulated text of the streamed response."""
        response_started = False
        try:
            async with self.client.stream("POST", self.generation_url, json=body) as response:
                response_started = True
                if not response.is_success:
                    error_body = await response.aread()
                    logger.error(
                        f"Generation request failed {response.status_code}: "
                        f"{error_body[:500].decode('utf-8', errors='replace')}"
                    )
                    raise HttpStatusError.from_response(response.status_code, error_body)

                self._transition(TurnState.STREAMING)
                decoder = StreamFrameDecoder()
                accumulator = StreamAccumulator(on_status=self.feedback.set_status)
                async for chunk in response.aiter_bytes():
                    accumulator.apply_all(decoder.feed(chunk))
                accumulator.apply_all(decoder.finish())
                logger.debug(
                    f"Stream finished: {accumulator.frame_count} frames, "
                    f"{len(accumulator.text)} chars"
                )
                return accumulator.text
        except httpx.RequestError as exc:
            if not response_started:
                logger.warning(f"🌐 Could not reach {self.generation_url}: {exc!r}")
                raise ConnectivityError() from exc
            logger.warning(f"🌐 Stream interrupted: {exc!r}")
            raise StreamProtocolError(STREAM_INTERRUPTED_MESSAGE) from exc
