"""Generation backend capability and its Anthropic adapter.

The runtime never touches a provider client directly. It receives a
``GenerationBackend`` constructed once at process start and passed in, so
tests can substitute a scripted stream.

The Anthropic adapter maps raw Messages API streaming events onto
``StreamEvent``s:

    content_block_start (tool_use) -> ToolCallDelta(index, id, name)
    content_block_delta (text_delta) -> TextDelta
    content_block_delta (input_json_delta) -> ToolCallDelta(index, arguments)
    message_delta -> records stop_reason
    message_stop -> TurnFinished(stop_reason)
"""

import logging
from collections.abc import AsyncIterator
from typing import Any, Protocol

import anthropic
from anthropic import AsyncAnthropic

from messageai.config import RuntimeConfig
from messageai.errors import GenerationBackendError, MessageAIError
from messageai.orchestrator.agent.stream_events import (
    StreamEvent,
    TextDelta,
    ToolCallDelta,
    TurnFinished,
)

logger = logging.getLogger(__name__)

SYSTEM_NOTE_PREFIX = "[System note] "
CONTINUATION_PLACEHOLDER = "(continuing our conversation)"


class GenerationBackend(Protocol):
    """Opaque capability that streams one turn."""

    def stream_turn(
        self, messages: list[dict[str, str]], tools: list[dict[str, Any]]
    ) -> AsyncIterator[StreamEvent]:
        """Stream events for one turn.

        Args:
            messages: Context window (system prompt first).
            tools: Provider tool declarations.
        """
        ...


def to_anthropic_messages(
    messages: list[dict[str, str]],
) -> tuple[str, list[dict[str, str]]]:
    """Split a context window into Anthropic's system param and messages.

    The first system message becomes the ``system`` parameter. Later system
    entries (tool bookkeeping) are carried as user-role notes. Consecutive
    same-role messages are merged because the API requires alternation, and
    a leading assistant message gets a placeholder user turn in front.

    Args:
        messages: Role/content dicts from the context builder.

    Returns:
        Tuple of (system prompt, provider messages).
    """
    system = ""
    converted: list[dict[str, str]] = []
    for index, message in enumerate(messages):
        role = message["role"]
        content = message["content"]
        if role == "system":
            if index == 0:
                system = content
                continue
            role = "user"
            content = f"{SYSTEM_NOTE_PREFIX}{content}"
        if not content:
            continue
        if converted and converted[-1]["role"] == role:
            converted[-1] = {
                "role": role,
                "content": f"{converted[-1]['content']}\n\n{content}",
            }
        else:
            converted.append({"role": role, "content": content})

    if converted and converted[0]["role"] == "assistant":
        converted.insert(0, {"role": "user", "content": CONTINUATION_PLACEHOLDER})
    return system, converted


class AnthropicBackend:
    """Streams turns from the Anthropic Messages API.

    Args:
        client: Async Anthropic client.
        model: Model identifier.
        max_tokens: Completion token cap.
        temperature: Sampling temperature.
    """

    def __init__(
        self,
        client: AsyncAnthropic,
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> None:
        self._client = client
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    @property
    def model(self) -> str:
        return self._model

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.close()

    async def stream_turn(
        self, messages: list[dict[str, str]], tools: list[dict[str, Any]]
    ) -> AsyncIterator[StreamEvent]:
        """Stream one turn as StreamEvents.

        Raises:
            GenerationBackendError: On any provider or transport failure.
        """
        system, provider_messages = to_anthropic_messages(messages)
        params: dict[str, Any] = {
            "model": self._model,
            "max_tokens": self._max_tokens,
            "temperature": self._temperature,
            "messages": provider_messages,
            "stream": True,
        }
        if system:
            params["system"] = system
        if tools:
            params["tools"] = tools

        stop_reason = "stop"
        try:
            stream = await self._client.messages.create(**params)
            async for event in stream:
                if event.type == "content_block_start":
                    block = event.content_block
                    if block.type == "tool_use":
                        yield ToolCallDelta(
                            index=event.index, call_id=block.id, name=block.name
                        )
                    elif block.type == "text" and block.text:
                        yield TextDelta(block.text)
                elif event.type == "content_block_delta":
                    delta = event.delta
                    if delta.type == "text_delta":
                        yield TextDelta(delta.text)
                    elif delta.type == "input_json_delta":
                        yield ToolCallDelta(
                            index=event.index, arguments=delta.partial_json
                        )
                elif event.type == "message_delta":
                    if event.delta.stop_reason:
                        stop_reason = event.delta.stop_reason
                elif event.type == "message_stop":
                    yield TurnFinished(stop_reason)
                    return
        except anthropic.AuthenticationError as exc:
            error = MessageAIError.from_code("E-5002")
            raise GenerationBackendError(error.message, code=error.code) from exc
        except anthropic.APIError as exc:
            logger.warning("Anthropic stream failed: %s", exc)
            raise GenerationBackendError(
                MessageAIError.from_code("E-3001").message
            ) from exc


def create_backend(config: RuntimeConfig) -> AnthropicBackend:
    """Construct the process-wide backend from configuration.

    Args:
        config: Runtime settings.

    Returns:
        AnthropicBackend bound to a single AsyncAnthropic client.
    """
    client = AsyncAnthropic(api_key=config.api_key) if config.api_key else AsyncAnthropic()
    logger.info("Generation backend: anthropic model=%s", config.model)
    return AnthropicBackend(
        client=client,
        model=config.model,
        max_tokens=config.max_tokens,
        temperature=config.temperature,
    )
