"""Agent definition shape shared by every conversational agent.

An agent is configuration over the common runtime: a system prompt, a tool
set with handler bindings, a start routine that creates the conversation,
and a status summary derived from sentinel transcript entries.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel

from messageai.db.models import Conversation
from messageai.orchestrator.agent.tools import ToolSpec, build_registry
from messageai.services.transcript_store import TranscriptStore


@dataclass(frozen=True)
class StartResult:
    """Outcome of starting a conversation.

    Attributes:
        conversation: The created conversation.
        message: Greeting returned to the client.
    """

    conversation: Conversation
    message: str


StartHandler = Callable[[TranscriptStore, str, str, Any], StartResult]
PromptBuilder = Callable[[Conversation], str]
Summarizer = Callable[[TranscriptStore, Conversation], dict[str, Any]]


@dataclass(frozen=True)
class AgentDefinition:
    """Per-agent configuration consumed by the runtime and the API.

    Attributes:
        agent_type: AgentType value stored on conversations.
        slug: URL segment under ``/ai/``.
        title: Human-readable name.
        tools: Tool specs, in declaration order.
        build_system_prompt: Builds the prompt for a conversation.
        summarize: Builds the status summary by scanning sentinels.
        start_model: Pydantic model for the start request body.
        start: Creates the conversation and any opening entries.
    """

    agent_type: str
    slug: str
    title: str
    tools: tuple[ToolSpec, ...]
    build_system_prompt: PromptBuilder
    summarize: Summarizer
    start_model: type[BaseModel]
    start: StartHandler
    registry: dict[str, ToolSpec] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "registry", build_registry(self.tools))

    @property
    def tool_models(self) -> dict[str, type[BaseModel]]:
        """Argument model per tool name, for reconstruction."""
        return {name: spec.args_model for name, spec in self.registry.items()}

    def tool_definitions(self) -> list[dict[str, Any]]:
        """Provider tool declarations."""
        return [spec.to_definition() for spec in self.tools]
