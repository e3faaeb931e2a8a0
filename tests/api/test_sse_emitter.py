"""Tests for SSE frame rendering and the per-turn emitter state machine."""

import pytest
from sqlalchemy.exc import OperationalError

from messageai.api.sse import (
    EmitterState,
    SSEEmitter,
    event_to_frame,
    format_comment,
    format_frame,
)
from messageai.db.models import AgentType
from messageai.orchestrator.agent.definitions import AGENTS
from messageai.orchestrator.agent.dispatcher import ToolOutcome
from messageai.orchestrator.agent.runtime import (
    AgentRuntime,
    CompleteEvent,
    ContentEvent,
    ErrorEvent,
    ToolResultEvent,
)
from messageai.orchestrator.agent.stream_events import TextDelta, TurnFinished
from tests.helpers import ScriptedBackend, tool_call
from tests.helpers.ids import TEAM_ID, USER_ID


class FakeRequest:
    """Request stand-in whose disconnect answers are scripted."""

    def __init__(self, disconnect_after: int | None = None) -> None:
        self._disconnect_after = disconnect_after
        self.polls = 0

    async def is_disconnected(self) -> bool:
        self.polls += 1
        return self._disconnect_after is not None and self.polls > self._disconnect_after


class EventSource:
    """Async iterator over runtime events that records whether it was closed."""

    def __init__(
        self,
        events,
        fail_after: int | None = None,
        failure: Exception | None = None,
    ) -> None:
        self._events = list(events)
        self._fail_after = fail_after
        self._failure = failure or RuntimeError("disk I/O error")
        self.closed = False

    def __aiter__(self):
        return self._generate()

    async def _generate(self):
        try:
            for position, event in enumerate(self._events):
                if self._fail_after is not None and position >= self._fail_after:
                    raise self._failure
                yield event
        finally:
            self.closed = True


async def _drain(emitter: SSEEmitter, source) -> list[str]:
    iterator = source.__aiter__()
    return [frame.encode().decode() async for frame in emitter.stream(iterator)]


class TestFormatting:
    def test_named_frame(self):
        text = format_frame({"type": "content", "delta": "Hi"}, "content")
        assert text == 'event: content\ndata: {"type": "content", "delta": "Hi"}\n\n'

    def test_unnamed_frame(self):
        assert format_frame({"ok": True}) == 'data: {"ok": true}\n\n'

    def test_comment(self):
        assert format_comment("connected") == ": connected\n\n"


class TestEventToFrame:
    def test_content(self):
        assert event_to_frame(ContentEvent("abc")) == (
            "content",
            {"type": "content", "delta": "abc"},
        )

    def test_successful_tool_result_flattens_identifiers(self):
        outcome = ToolOutcome(
            name="save_product", success=True, identifiers={"product_id": "p-1"}
        )
        name, payload = event_to_frame(ToolResultEvent(outcome))
        assert name == "tool_result"
        assert payload == {
            "type": "tool_result",
            "tool": "save_product",
            "success": True,
            "product_id": "p-1",
        }

    def test_only_id_keys_are_flattened(self):
        outcome = ToolOutcome(
            name="save_product",
            success=True,
            identifiers={
                "type": "x",
                "tool": "other",
                "success": "no",
                "product_id": "p-1",
            },
        )
        _, payload = event_to_frame(ToolResultEvent(outcome))
        assert payload == {
            "type": "tool_result",
            "tool": "save_product",
            "success": True,
            "product_id": "p-1",
        }

    def test_skipped_tool_result_is_marked(self):
        outcome = ToolOutcome(
            name="save_product",
            success=True,
            identifiers={"product_id": "p-1"},
            skipped=True,
        )
        _, payload = event_to_frame(ToolResultEvent(outcome))
        assert payload["skipped"] is True

    def test_failed_tool_result_carries_error(self):
        outcome = ToolOutcome(name="save_icp", success=False, error="Product 'x' not found")
        _, payload = event_to_frame(ToolResultEvent(outcome))
        assert payload == {
            "type": "tool_result",
            "tool": "save_icp",
            "success": False,
            "error": "Product 'x' not found",
        }

    def test_failed_tool_result_carries_code(self):
        outcome = ToolOutcome(
            name="save_product",
            success=False,
            error="Error running save_product. Please try again.",
            code="E-1001",
        )
        _, payload = event_to_frame(ToolResultEvent(outcome))
        assert payload["code"] == "E-1001"

    def test_error_and_complete(self):
        assert event_to_frame(ErrorEvent(message="boom", code="E-3001")) == (
            "error",
            {"type": "error", "error": "boom", "code": "E-3001"},
        )
        assert event_to_frame(CompleteEvent()) == ("complete", {"type": "complete"})


class TestEmitterState:
    def test_lifecycle(self):
        emitter = SSEEmitter(FakeRequest())
        assert emitter.state == EmitterState.pending

        assert emitter.open().comment == "connected"
        assert emitter.state == EmitterState.headers_sent

        emitter.emit("content", {"type": "content", "delta": "x"})
        assert emitter.state == EmitterState.streaming
        assert emitter.frames_sent == 1

        assert emitter.close().comment == "end of stream"
        assert emitter.closed

    def test_emit_before_open_raises(self):
        with pytest.raises(RuntimeError):
            SSEEmitter(FakeRequest()).emit("content", {})

    def test_open_twice_raises(self):
        emitter = SSEEmitter(FakeRequest())
        emitter.open()
        with pytest.raises(RuntimeError):
            emitter.open()

    def test_emit_after_close_is_dropped(self):
        emitter = SSEEmitter(FakeRequest())
        emitter.open()
        emitter.close()
        assert emitter.emit("content", {"type": "content", "delta": "late"}) is None
        assert emitter.close() is None
        assert emitter.frames_sent == 0


class TestStream:
    @pytest.mark.asyncio
    async def test_frames_in_order_then_closing_comment(self):
        source = EventSource([ContentEvent("a"), ContentEvent("b"), CompleteEvent()])
        emitter = SSEEmitter(FakeRequest())

        frames = await _drain(emitter, source)

        assert frames[0] == ": connected\n\n"
        assert frames[1].startswith("event: content\n")
        assert frames[2].startswith("event: content\n")
        assert frames[3] == 'event: complete\ndata: {"type": "complete"}\n\n'
        assert frames[4] == ": end of stream\n\n"
        assert emitter.closed
        assert source.closed

    @pytest.mark.asyncio
    async def test_stops_after_terminal_event(self):
        source = EventSource(
            [ErrorEvent(message="boom", code="E-3001"), ContentEvent("never")]
        )
        frames = await _drain(SSEEmitter(FakeRequest()), source)

        assert len(frames) == 3
        assert frames[1].startswith("event: error\n")
        assert source.closed

    @pytest.mark.asyncio
    async def test_disconnect_stops_without_close_frame(self):
        source = EventSource([ContentEvent("a"), ContentEvent("b"), CompleteEvent()])
        emitter = SSEEmitter(FakeRequest(disconnect_after=1))

        frames = await _drain(emitter, source)

        assert frames == [": connected\n\n", frames[1]]
        assert '"delta": "a"' in frames[1]
        assert emitter.closed
        assert source.closed

    @pytest.mark.asyncio
    async def test_iterator_failure_becomes_error_frame(self):
        failure = RuntimeError("secret sqlite path /var/db/x.db locked")
        source = EventSource(
            [ContentEvent("a"), CompleteEvent()], fail_after=1, failure=failure
        )

        frames = await _drain(SSEEmitter(FakeRequest()), source)

        assert frames[1].startswith("event: content\n")
        assert frames[2] == format_frame(
            {
                "type": "error",
                "error": "The turn failed unexpectedly. Please try again.",
                "code": "E-4002",
            },
            "error",
        )
        assert "/var/db" not in "".join(frames)
        assert frames[3] == ": end of stream\n\n"

    @pytest.mark.asyncio
    async def test_database_failure_is_reported_without_details(self):
        failure = OperationalError(
            "INSERT INTO messages", {}, Exception("database is locked")
        )
        source = EventSource([CompleteEvent()], fail_after=0, failure=failure)

        frames = await _drain(SSEEmitter(FakeRequest()), source)

        assert '"code": "E-4001"' in frames[1]
        assert "locked" not in frames[1]
        assert "INSERT" not in frames[1]

    @pytest.mark.asyncio
    async def test_disconnect_after_finish_keeps_committed_turn(self, store):
        conversation = store.create_conversation(
            USER_ID,
            TEAM_ID,
            AgentType.product_definer.value,
            metadata={"mode": "new_product"},
        )
        script = (
            [TextDelta("Saving")]
            + tool_call(0, "save_product", {"name": "Acme"})
            + tool_call(1, "save_icp", {"name": "Founders"})
            + [TurnFinished()]
        )
        runtime = AgentRuntime(
            ScriptedBackend(script), AGENTS[AgentType.product_definer]
        )
        turn = runtime.begin_turn(store, conversation.id, USER_ID, TEAM_ID, "go")
        emitter = SSEEmitter(FakeRequest(disconnect_after=1))

        frames = await _drain(emitter, runtime.stream_turn(turn))

        assert len(frames) == 2
        assert emitter.closed
        messages = store.list_messages(conversation.id, USER_ID, TEAM_ID)
        assert [m["role"] for m in messages] == ["user", "system", "system", "assistant"]
        assert messages[-1]["content"] == "Saving"
