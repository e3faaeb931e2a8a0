"""FastAPI routes for the conversational agents.

Every agent is served under its slug with the same four endpoints:

    POST /ai/{slug}/start                    — Create a conversation
    POST /ai/{slug}/message                  — Run one turn (SSE stream)
    POST /ai/{slug}/complete                 — Mark completed, return summary
    GET  /ai/{slug}/status/{conversation_id} — Summary from sentinel entries

Validation and ownership failures on ``/message`` are raised before the
stream starts, so they reach the client as plain HTTP errors.
"""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Request
from pydantic import ValidationError as PydanticValidationError
from sse_starlette.sse import EventSourceResponse

from messageai.api.dependencies import (
    Identity,
    get_agent,
    get_backend,
    get_config,
    get_identity,
    get_store,
)
from messageai.api.schemas import (
    CompleteConversationRequest,
    SendMessageRequest,
    StartConversationResponse,
)
from messageai.api.sse import SSEEmitter
from messageai.config import RuntimeConfig
from messageai.db.models import Conversation, ConversationStatus
from messageai.errors import (
    ConversationClosedError,
    ConversationNotFoundError,
    ValidationError,
)
from messageai.orchestrator.agent.backend import GenerationBackend
from messageai.orchestrator.agent.definitions import AgentDefinition
from messageai.orchestrator.agent.runtime import AgentRuntime
from messageai.services.transcript_store import TranscriptStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["agents"])


def _require_agent_conversation(
    agent: AgentDefinition,
    store: TranscriptStore,
    conversation_id: str,
    identity: Identity,
) -> Conversation:
    """Load an owned conversation that belongs to this agent."""
    conversation = store.require_conversation(
        conversation_id, identity.user_id, identity.team_id
    )
    if conversation.agent_type != agent.agent_type:
        raise ConversationNotFoundError(conversation_id)
    return conversation


@router.post(
    "/{agent_slug}/start",
    response_model=StartConversationResponse,
    status_code=201,
)
def start_conversation(
    payload: dict[str, Any] | None = Body(default=None),
    agent: AgentDefinition = Depends(get_agent),
    identity: Identity = Depends(get_identity),
    store: TranscriptStore = Depends(get_store),
) -> StartConversationResponse:
    """Create a conversation for an agent.

    The body is validated against the agent's own start model.

    Raises:
        ValidationError: Body does not match the start model (400).
        NotFoundError: Referenced record missing or owned by another team (404).
    """
    try:
        start_args = agent.start_model.model_validate(payload or {})
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid start request: {exc}") from None

    result = agent.start(store, identity.user_id, identity.team_id, start_args)
    logger.info(
        "Started %s conversation %s for user %s",
        agent.slug,
        result.conversation.id,
        identity.user_id,
    )
    return StartConversationResponse(
        conversation_id=result.conversation.id,
        message=result.message,
    )


@router.post("/{agent_slug}/message")
async def send_message(
    body: SendMessageRequest,
    request: Request,
    agent: AgentDefinition = Depends(get_agent),
    identity: Identity = Depends(get_identity),
    store: TranscriptStore = Depends(get_store),
    backend: GenerationBackend = Depends(get_backend),
    config: RuntimeConfig = Depends(get_config),
) -> EventSourceResponse:
    """Run one agent turn and stream it as server-sent events.

    Frames: ``content`` per text delta, ``tool_result`` per dispatched tool,
    then ``complete`` or ``error``.

    Raises:
        ValidationError: Empty message or wrong agent (400).
        ConversationNotFoundError: Missing or not owned (404).
        ConversationClosedError: Archived conversation (409).
    """
    runtime = AgentRuntime(backend, agent, config.context_messages)
    turn = runtime.begin_turn(
        store,
        body.conversation_id,
        identity.user_id,
        identity.team_id,
        body.message,
    )
    emitter = SSEEmitter(request, config.heartbeat_seconds)
    return emitter.response(runtime.stream_turn(turn))


@router.post("/{agent_slug}/complete")
def complete_conversation(
    body: CompleteConversationRequest,
    agent: AgentDefinition = Depends(get_agent),
    identity: Identity = Depends(get_identity),
    store: TranscriptStore = Depends(get_store),
) -> dict[str, Any]:
    """Mark a conversation completed and return its summary.

    Raises:
        ConversationClosedError: Conversation is archived (409).
    """
    conversation = _require_agent_conversation(
        agent, store, body.conversation_id, identity
    )
    if conversation.status == ConversationStatus.archived.value:
        raise ConversationClosedError(conversation.id, conversation.status)
    conversation = store.set_status(
        conversation.id,
        identity.user_id,
        identity.team_id,
        ConversationStatus.completed.value,
    )
    return agent.summarize(store, conversation)


@router.get("/{agent_slug}/status/{conversation_id}")
def conversation_status(
    conversation_id: str,
    agent: AgentDefinition = Depends(get_agent),
    identity: Identity = Depends(get_identity),
    store: TranscriptStore = Depends(get_store),
) -> dict[str, Any]:
    """Return the agent's summary for a conversation."""
    conversation = _require_agent_conversation(agent, store, conversation_id, identity)
    return agent.summarize(store, conversation)
