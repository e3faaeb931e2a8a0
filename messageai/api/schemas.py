"""Pydantic schemas for the agent and conversation API endpoints.

Agent start bodies are not declared here: each agent definition carries its
own start model and the start route validates against it.
"""

from typing import Any

from pydantic import AliasChoices, BaseModel, Field


class StartConversationResponse(BaseModel):
    """Response for starting an agent conversation."""

    conversation_id: str
    message: str


class SendMessageRequest(BaseModel):
    """Request for one agent turn. Accepts camelCase ``conversationId``."""

    conversation_id: str = Field(
        validation_alias=AliasChoices("conversation_id", "conversationId"),
        description="Conversation to continue",
    )
    message: str = Field(description="User message text")


class CompleteConversationRequest(BaseModel):
    """Request for explicitly completing a conversation."""

    conversation_id: str = Field(
        validation_alias=AliasChoices("conversation_id", "conversationId"),
    )


class MessageResponse(BaseModel):
    """One transcript entry."""

    id: str
    role: str
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    sequence: int
    created_at: str


class ConversationResponse(BaseModel):
    """Conversation without its transcript."""

    id: str
    user_id: str
    team_id: str
    agent_type: str
    context_id: str | None = None
    context_type: str | None = None
    status: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: str
    updated_at: str


class ConversationDetailResponse(ConversationResponse):
    """Conversation with its ordered transcript."""

    messages: list[MessageResponse] = Field(default_factory=list)


class ConversationListResponse(BaseModel):
    """Owned conversations, most recently updated first."""

    conversations: list[ConversationResponse]
    total: int


class ConversationStatsResponse(BaseModel):
    """Entry counts and duration for a conversation."""

    conversation_id: str
    total_messages: int
    user_messages: int
    assistant_messages: int
    system_messages: int
    duration_minutes: int
