"""Turn runtime: reconstruct, finalize, dispatch.

One HTTP request drives one turn through three sequential stages:

1. Reconstruct: consume the backend stream through a DeltaReconstructor,
   yielding each text fragment as a ``ContentEvent`` as it arrives.
2. Finalize: once ``TurnFinished`` arrives, parse and validate the
   accumulated tool calls.
3. Dispatch: run the valid invocations in order and append the assistant
   entry, then yield a ``ToolResultEvent`` per outcome and ``CompleteEvent``.

Only stage 1 can be abandoned by a client disconnect. Once the backend
signals ``TurnFinished`` the turn commits whether or not anyone is still
listening.

Nothing but the user message is persisted before the turn finishes. A
backend failure, or a stream that ends without ``TurnFinished``, yields a
single ``ErrorEvent`` and leaves the transcript at the user message.

Turns on one conversation must be serialized by the caller; turns on
different conversations run fully in parallel.
"""

import logging
import time
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from messageai.db.models import Conversation, ConversationStatus, MessageRole
from messageai.errors import (
    ConversationClosedError,
    GenerationBackendError,
    MessageAIError,
    ValidationError,
)
from messageai.orchestrator.agent.backend import GenerationBackend
from messageai.orchestrator.agent.definitions.base import AgentDefinition
from messageai.orchestrator.agent.dispatcher import ToolDispatcher, ToolOutcome
from messageai.orchestrator.agent.reconstructor import DeltaReconstructor
from messageai.orchestrator.agent.tools import ToolContext
from messageai.services.context_builder import DEFAULT_MAX_MESSAGES, build_context
from messageai.services.transcript_store import TranscriptStore

logger = logging.getLogger(__name__)

GENERATION_FAILED_CODE = "E-3001"
STREAM_INCOMPLETE_CODE = "E-3002"


# ---------------------------------------------------------------------------
# Runtime events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ContentEvent:
    """Live assistant text fragment (uncommitted until the turn finishes)."""

    delta: str


@dataclass(frozen=True)
class ToolResultEvent:
    """Outcome of one dispatched tool invocation."""

    outcome: ToolOutcome


@dataclass(frozen=True)
class ErrorEvent:
    """Terminal failure of the turn."""

    message: str
    code: str


@dataclass(frozen=True)
class CompleteEvent:
    """Terminal success of the turn."""

    finish_reason: str = "stop"


RuntimeEvent = ContentEvent | ToolResultEvent | ErrorEvent | CompleteEvent


@dataclass
class TurnContext:
    """A validated turn whose user message is already persisted."""

    conversation_id: str
    user_id: str
    team_id: str
    store: TranscriptStore
    conversation: Conversation
    user_message: dict[str, Any]


class AgentRuntime:
    """Drives turns for one agent definition.

    Args:
        backend: Generation backend (injected, shared across requests).
        agent: Agent definition providing prompt and tools.
        max_context_messages: Transcript window sent with each turn.
    """

    def __init__(
        self,
        backend: GenerationBackend,
        agent: AgentDefinition,
        max_context_messages: int = DEFAULT_MAX_MESSAGES,
    ) -> None:
        self._backend = backend
        self._agent = agent
        self._max_context_messages = max_context_messages
        self._dispatcher = ToolDispatcher(agent.registry)

    @property
    def agent(self) -> AgentDefinition:
        return self._agent

    def begin_turn(
        self,
        store: TranscriptStore,
        conversation_id: str,
        user_id: str,
        team_id: str,
        message: str,
    ) -> TurnContext:
        """Validate a turn synchronously and persist the user message.

        Runs before any SSE headers are sent so failures map to plain HTTP
        error statuses.

        Raises:
            ValidationError: Empty message, or conversation of another agent.
            ConversationNotFoundError: Missing or not owned by the caller.
            ConversationClosedError: Conversation is archived.
        """
        if not message or not message.strip():
            raise ValidationError("Message must not be empty")

        conversation = store.require_conversation(conversation_id, user_id, team_id)
        if conversation.agent_type != self._agent.agent_type:
            raise ValidationError(
                f"Conversation '{conversation_id}' belongs to agent "
                f"'{conversation.agent_type}', not '{self._agent.agent_type}'"
            )
        if conversation.status == ConversationStatus.archived.value:
            raise ConversationClosedError(conversation_id, conversation.status)

        user_message = store.append_message(
            conversation_id, user_id, team_id, MessageRole.user.value, message
        )
        return TurnContext(
            conversation_id=conversation_id,
            user_id=user_id,
            team_id=team_id,
            store=store,
            conversation=conversation,
            user_message=user_message,
        )

    async def stream_turn(self, turn: TurnContext) -> AsyncIterator[RuntimeEvent]:
        """Run the three stages for a begun turn.

        Args:
            turn: Context returned by ``begin_turn``.

        Yields:
            RuntimeEvents, ending with exactly one CompleteEvent or ErrorEvent.
        """
        started = time.monotonic()
        first_delta_at: float | None = None

        # Reload so the row is bound to the session the stream runs on
        conversation = turn.store.require_conversation(
            turn.conversation_id, turn.user_id, turn.team_id
        )
        messages = build_context(
            turn.store,
            turn.conversation_id,
            turn.user_id,
            turn.team_id,
            self._agent.build_system_prompt(conversation),
            self._max_context_messages,
        )

        # Stage 1: reconstruct
        recon = DeltaReconstructor()
        try:
            async for event in self._backend.stream_turn(
                messages, self._agent.tool_definitions()
            ):
                text = recon.feed(event)
                if text:
                    if first_delta_at is None:
                        first_delta_at = time.monotonic()
                    yield ContentEvent(text)
                if recon.finished:
                    break
        except Exception as exc:
            logger.exception(
                "Generation failed for conversation %s", turn.conversation_id
            )
            yield _error_event(exc)
            return

        if not recon.finished:
            logger.warning(
                "Stream for conversation %s ended without a finish event",
                turn.conversation_id,
            )
            error = MessageAIError.from_code(STREAM_INCOMPLETE_CODE)
            yield ErrorEvent(message=error.message, code=error.code)
            return

        # Stage 2: finalize
        result = recon.finalize(self._agent.tool_models)

        # Stage 3: dispatch. Commit everything before the first yield.
        ctx = ToolContext(
            conversation_id=turn.conversation_id,
            user_id=turn.user_id,
            team_id=turn.team_id,
            store=turn.store,
            conversation=conversation,
            backend=self._backend,
        )
        outcomes = await self._dispatcher.dispatch(result.invocations, ctx)

        if result.text:
            turn.store.append_message(
                turn.conversation_id,
                turn.user_id,
                turn.team_id,
                MessageRole.assistant.value,
                result.text,
                metadata={
                    "tool_calls": [
                        {"name": inv.name, "args": inv.args_dict()}
                        for inv in result.invocations
                    ]
                },
            )

        elapsed = time.monotonic() - started
        ttfb = (first_delta_at - started) if first_delta_at is not None else -1.0
        logger.info(
            "agent_timing marker=turn_done agent=%s conversation=%s "
            "ttfb=%.3f elapsed=%.3f tools=%d dropped=%d finish=%s",
            self._agent.agent_type,
            turn.conversation_id,
            ttfb,
            elapsed,
            len(outcomes),
            len(result.errors),
            result.finish_reason,
        )
        for outcome in outcomes:
            yield ToolResultEvent(outcome)
        yield CompleteEvent(result.finish_reason)


def _error_event(exc: Exception) -> ErrorEvent:
    """Map a backend exception to the client-facing error event.

    Only messages built by the backend adapter reach the client; anything
    else gets the registry text and stays in the log.
    """
    if isinstance(exc, GenerationBackendError):
        return ErrorEvent(message=str(exc), code=exc.code)
    error = MessageAIError.from_code(GENERATION_FAILED_CODE)
    return ErrorEvent(message=error.message, code=error.code)
