"""FastAPI routes for browsing and managing stored conversations.

Endpoints:
    GET    /conversations            — List owned conversations
    GET    /conversations/{id}       — Conversation with transcript
    GET    /conversations/{id}/stats — Entry counts and duration
    DELETE /conversations/{id}       — Archive (``?hard=true`` deletes)
"""

import logging

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from messageai.api.dependencies import Identity, get_identity, get_store
from messageai.api.schemas import (
    ConversationDetailResponse,
    ConversationListResponse,
    ConversationResponse,
    ConversationStatsResponse,
    MessageResponse,
)
from messageai.services.transcript_store import TranscriptStore, conversation_to_dict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("", response_model=ConversationListResponse)
def list_conversations(
    agent_type: str | None = Query(default=None),
    context_id: str | None = Query(default=None),
    status: str | None = Query(default=None),
    identity: Identity = Depends(get_identity),
    store: TranscriptStore = Depends(get_store),
) -> ConversationListResponse:
    """List the caller's conversations, most recently updated first."""
    rows = store.list_conversations(
        identity.user_id,
        identity.team_id,
        agent_type=agent_type,
        context_id=context_id,
        status=status,
    )
    return ConversationListResponse(
        conversations=[ConversationResponse(**row) for row in rows],
        total=len(rows),
    )


@router.get("/{conversation_id}", response_model=ConversationDetailResponse)
def get_conversation(
    conversation_id: str,
    identity: Identity = Depends(get_identity),
    store: TranscriptStore = Depends(get_store),
) -> ConversationDetailResponse:
    """Return a conversation with its full ordered transcript."""
    conversation = store.require_conversation(
        conversation_id, identity.user_id, identity.team_id
    )
    messages = store.list_messages(conversation_id, identity.user_id, identity.team_id)
    return ConversationDetailResponse(
        **conversation_to_dict(conversation),
        messages=[MessageResponse(**m) for m in messages],
    )


@router.get("/{conversation_id}/stats", response_model=ConversationStatsResponse)
def get_conversation_stats(
    conversation_id: str,
    identity: Identity = Depends(get_identity),
    store: TranscriptStore = Depends(get_store),
) -> ConversationStatsResponse:
    stats = store.conversation_stats(conversation_id, identity.user_id, identity.team_id)
    return ConversationStatsResponse(conversation_id=conversation_id, **stats)


@router.delete("/{conversation_id}", status_code=204)
def delete_conversation(
    conversation_id: str,
    hard: bool = Query(default=False, description="Physically delete instead of archiving"),
    identity: Identity = Depends(get_identity),
    store: TranscriptStore = Depends(get_store),
) -> Response:
    """Archive a conversation, or remove it entirely with ``hard=true``."""
    if hard:
        store.hard_delete(conversation_id, identity.user_id, identity.team_id)
    else:
        store.archive(conversation_id, identity.user_id, identity.team_id)
    return Response(status_code=204)
