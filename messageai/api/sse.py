"""Server-sent event emitter for agent turns.

Owns the response of one turn: an opening comment frame, one frame per
runtime event, and a closing comment. Frames are ``ServerSentEvent``
objects rendered by sse-starlette with ``\\n`` separators:

    : connected

    event: content
    data: {"type": "content", "delta": "Hello"}

Heartbeat comments come from ``EventSourceResponse(ping=...)`` and carry
no payload. A client disconnect closes the runtime iterator, which abandons
generation if the backend is still streaming. Tool results and the
assistant entry of a finished turn are already committed by then.
"""

import json
import logging
from collections.abc import AsyncIterator
from enum import Enum
from typing import Any

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sse_starlette.sse import EventSourceResponse, ServerSentEvent

from messageai.config import DEFAULT_HEARTBEAT_SECONDS
from messageai.errors import MessageAIError
from messageai.orchestrator.agent.runtime import (
    CompleteEvent,
    ContentEvent,
    ErrorEvent,
    RuntimeEvent,
    ToolResultEvent,
)

logger = logging.getLogger(__name__)

SEP = "\n"
OPEN_COMMENT = "connected"
CLOSE_COMMENT = "end of stream"
TERMINAL_EVENTS = frozenset({"complete", "error"})
DATABASE_ERROR_CODE = "E-4001"
TURN_FAILED_CODE = "E-4002"

RESPONSE_HEADERS = {
    "Cache-Control": "no-cache",
    "X-Accel-Buffering": "no",
}


class EmitterState(str, Enum):
    """Lifecycle of one SSE response."""

    pending = "pending"
    headers_sent = "headers_sent"
    streaming = "streaming"
    closed = "closed"


def _frame(payload: dict[str, Any], event: str | None = None) -> ServerSentEvent:
    return ServerSentEvent(data=json.dumps(payload), event=event, sep=SEP)


def _comment(text: str) -> ServerSentEvent:
    return ServerSentEvent(comment=text, sep=SEP)


def format_frame(payload: dict[str, Any], event: str | None = None) -> str:
    """Render a frame as wire text.

    Args:
        payload: JSON-serializable frame body.
        event: Event name, or None for an unnamed message event.

    Returns:
        ``event: <name>\\ndata: <json>\\n\\n`` or ``data: <json>\\n\\n``.
    """
    return _frame(payload, event).encode().decode("utf-8")


def format_comment(text: str) -> str:
    """Render a comment frame (``: <text>\\n\\n``)."""
    return _comment(text).encode().decode("utf-8")


def event_to_frame(event: RuntimeEvent) -> tuple[str, dict[str, Any]]:
    """Map a runtime event to its SSE event name and payload.

    Only ``*_id`` identifiers are flattened into a tool_result payload, so a
    handler cannot shadow ``type``, ``tool`` or ``success``.
    """
    if isinstance(event, ContentEvent):
        return "content", {"type": "content", "delta": event.delta}
    if isinstance(event, ToolResultEvent):
        outcome = event.outcome
        payload: dict[str, Any] = {
            "type": "tool_result",
            "tool": outcome.name,
            "success": outcome.success,
        }
        if outcome.success:
            payload.update(
                (key, value)
                for key, value in outcome.identifiers.items()
                if key.endswith("_id")
            )
            if outcome.skipped:
                payload["skipped"] = True
        else:
            payload["error"] = outcome.error or f"Error running {outcome.name}"
            if outcome.code:
                payload["code"] = outcome.code
        return "tool_result", payload
    if isinstance(event, ErrorEvent):
        return "error", {"type": "error", "error": event.message, "code": event.code}
    if isinstance(event, CompleteEvent):
        return "complete", {"type": "complete"}
    raise TypeError(f"Unsupported runtime event: {type(event).__name__}")


class SSEEmitter:
    """Frames runtime events for one turn's response.

    Args:
        request: Incoming request, polled for client disconnects.
        heartbeat_seconds: Interval between heartbeat comments.
    """

    def __init__(
        self,
        request: Request,
        heartbeat_seconds: float = DEFAULT_HEARTBEAT_SECONDS,
    ) -> None:
        self._request = request
        self._heartbeat_seconds = heartbeat_seconds
        self._state = EmitterState.pending
        self._frames_sent = 0

    @property
    def state(self) -> EmitterState:
        return self._state

    @property
    def closed(self) -> bool:
        return self._state == EmitterState.closed

    @property
    def frames_sent(self) -> int:
        """Event frames emitted, excluding comments."""
        return self._frames_sent

    def open(self) -> ServerSentEvent:
        """Mark headers sent and return the opening comment frame.

        Raises:
            RuntimeError: If the emitter was already opened.
        """
        if self._state != EmitterState.pending:
            raise RuntimeError(f"Cannot open emitter in state {self._state.value}")
        self._state = EmitterState.headers_sent
        return _comment(OPEN_COMMENT)

    def emit(self, event: str, payload: dict[str, Any]) -> ServerSentEvent | None:
        """Return one event frame, or None once the response has ended."""
        if self._state == EmitterState.closed:
            logger.debug("Dropping %s frame after close", event)
            return None
        if self._state == EmitterState.pending:
            raise RuntimeError("Emitter must be opened before emitting")
        self._state = EmitterState.streaming
        self._frames_sent += 1
        return _frame(payload, event)

    def close(self) -> ServerSentEvent | None:
        """End the response. Returns the closing comment, or None if already closed."""
        if self._state == EmitterState.closed:
            return None
        self._state = EmitterState.closed
        return _comment(CLOSE_COMMENT)

    async def stream(
        self, events: AsyncIterator[RuntimeEvent]
    ) -> AsyncIterator[ServerSentEvent]:
        """Drive a runtime event iterator, yielding frames until a terminal event.

        The request is polled for a disconnect before every emit. On
        disconnect the runtime iterator is closed and no further frames are
        written.
        """
        yield self.open()
        disconnected = False
        try:
            async for event in events:
                if await self._request.is_disconnected():
                    logger.info(
                        "Client disconnected after %d frames; stopping turn",
                        self._frames_sent,
                    )
                    disconnected = True
                    break
                name, payload = event_to_frame(event)
                frame = self.emit(name, payload)
                if frame is not None:
                    yield frame
                if name in TERMINAL_EVENTS:
                    break
        except Exception as exc:
            logger.exception("Agent turn failed while streaming")
            frame = self.emit("error", _failure_payload(exc))
            if frame is not None:
                yield frame
        finally:
            aclose = getattr(events, "aclose", None)
            if aclose is not None:
                await aclose()

        if disconnected:
            self._state = EmitterState.closed
            return
        closing = self.close()
        if closing is not None:
            yield closing

    def response(self, events: AsyncIterator[RuntimeEvent]) -> EventSourceResponse:
        """Build the streaming response for a runtime event iterator."""
        return EventSourceResponse(
            self.stream(events),
            headers=RESPONSE_HEADERS,
            ping=self._heartbeat_seconds,
            sep=SEP,
        )


def _failure_payload(exc: Exception) -> dict[str, str]:
    """Client-facing error frame for an unexpected failure; details stay in the log."""
    code = DATABASE_ERROR_CODE if isinstance(exc, SQLAlchemyError) else TURN_FAILED_CODE
    error = MessageAIError.from_code(code)
    return {"type": "error", "error": error.message, "code": error.code}
