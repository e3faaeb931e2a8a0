"""Tool declarations shared by every agent.

A ``ToolSpec`` binds a tool name to its pydantic argument model (the JSON
schema sent to the model is derived from it), its async handler, and the
idempotence sentinel the dispatcher checks before re-running it.
"""

from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel

from messageai.db.models import Conversation
from messageai.errors import MessageAIError
from messageai.services.transcript_store import (
    TranscriptStore,
    conversation_metadata,
)

if TYPE_CHECKING:
    from messageai.orchestrator.agent.backend import GenerationBackend

TOOL_FAILED_CODE = "E-1001"


@dataclass
class ToolContext:
    """Conversation and session identifiers passed to every handler.

    Attributes:
        conversation_id: Conversation the turn belongs to.
        user_id: Caller's user id.
        team_id: Caller's team id.
        store: Transcript store bound to the request's DB session.
        conversation: Loaded conversation row.
        backend: Generation backend, for handlers that write with the model.
    """

    conversation_id: str
    user_id: str
    team_id: str
    store: TranscriptStore
    conversation: Conversation
    backend: "GenerationBackend | None" = None

    @property
    def metadata(self) -> dict[str, Any]:
        """Decoded conversation metadata."""
        return conversation_metadata(self.conversation)

    def messages(self) -> list[dict[str, Any]]:
        """Current transcript, re-read so earlier tools in the turn are visible."""
        return self.store.list_messages(
            self.conversation_id, self.user_id, self.team_id
        )


@dataclass
class ToolResult:
    """Successful handler outcome.

    Attributes:
        content: Text of the system transcript entry.
        metadata: Structured side-channel data for the entry.
        identifiers: Ids of created entities, surfaced in the tool_result frame.
        complete_conversation: Mark the conversation completed afterwards.
    """

    content: str
    metadata: dict[str, Any] = field(default_factory=dict)
    identifiers: dict[str, str] = field(default_factory=dict)
    complete_conversation: bool = False


ToolHandler = Callable[[Any, ToolContext], Awaitable[ToolResult]]


@dataclass(frozen=True)
class ToolSpec:
    """Declaration of a single agent tool.

    Attributes:
        name: Tool name the model calls.
        description: Model-facing description.
        args_model: Pydantic model validating the reconstructed arguments.
        handler: ``async handler(args, ctx) -> ToolResult``.
        sentinel: Content marker written on success, used for idempotence
            checks and status summaries.
        once: Skip the handler when the sentinel is already in the transcript.
        failure_message: Override for the failure entry text.
    """

    name: str
    description: str
    args_model: type[BaseModel]
    handler: ToolHandler
    sentinel: str | None = None
    once: bool = False
    failure_message: str | None = None

    @property
    def input_schema(self) -> dict[str, Any]:
        """JSON schema derived from the argument model."""
        schema = self.args_model.model_json_schema()
        schema.pop("title", None)
        schema.setdefault("type", "object")
        schema.setdefault("properties", {})
        return schema

    def to_definition(self) -> dict[str, Any]:
        """Provider tool declaration (name, description, input_schema)."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema,
        }

    def failure_text(self) -> str:
        """Text of the system entry recorded when the handler fails."""
        if self.failure_message:
            return self.failure_message
        return MessageAIError.from_code(TOOL_FAILED_CODE, tool=self.name).message


def build_registry(specs: Iterable[ToolSpec]) -> dict[str, ToolSpec]:
    """Index tool specs by name.

    Raises:
        ValueError: On duplicate tool names.
    """
    registry: dict[str, ToolSpec] = {}
    for spec in specs:
        if spec.name in registry:
            raise ValueError(f"Duplicate tool name: {spec.name}")
        registry[spec.name] = spec
    return registry
