"""Sequential, failure-isolated execution of reconstructed tool invocations.

Invocations run strictly in array order, never concurrently, because
handlers may depend on each other (save an entity, then mark the
conversation completed). Every handled invocation produces exactly one
system transcript entry:

- success: the handler's content, with its metadata and identifiers;
- failure: ``"Error running <tool>. Please try again."`` (or the tool's
  override) with ``metadata.error``, after which dispatch continues.

Identifier keys end in ``_id`` by convention so a skipped re-run can read
them back from the earlier sentinel entry.
"""

import logging
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass, field

from messageai.db.models import ConversationStatus, MessageRole
from messageai.errors import DomainError
from messageai.orchestrator.agent.reconstructor import ToolInvocation
from messageai.orchestrator.agent.tools import TOOL_FAILED_CODE, ToolContext, ToolSpec
from messageai.services.transcript_store import find_system_entry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolOutcome:
    """Result of one dispatched invocation, as reported to the client.

    Attributes:
        name: Tool name.
        success: Whether the handler succeeded (or was already satisfied).
        identifiers: Ids of created or referenced entities.
        error: Client-safe failure message.
        code: Registry code of the failure.
        skipped: True when the sentinel showed the tool already ran.
    """

    name: str
    success: bool
    identifiers: dict[str, str] = field(default_factory=dict)
    error: str | None = None
    code: str | None = None
    skipped: bool = False


def _identifiers_from_metadata(metadata: dict) -> dict[str, str]:
    """Read back identifier fields recorded on a sentinel entry."""
    return {
        key: value
        for key, value in metadata.items()
        if key.endswith("_id") and isinstance(value, str)
    }


class ToolDispatcher:
    """Runs each invocation's registered handler and records the outcome.

    Args:
        registry: Tool specs keyed by name.
    """

    def __init__(self, registry: Mapping[str, ToolSpec]) -> None:
        self._registry = registry

    async def iter_dispatch(
        self, invocations: list[ToolInvocation], ctx: ToolContext
    ) -> AsyncIterator[ToolOutcome]:
        """Dispatch invocations in order, yielding each outcome as it lands.

        Unknown tool names are skipped without an outcome.

        Args:
            invocations: Finalized invocations in slot order.
            ctx: Conversation context for handlers.

        Yields:
            ToolOutcome per handled invocation.
        """
        for invocation in invocations:
            spec = self._registry.get(invocation.name)
            if spec is None:
                logger.debug(
                    "Ignoring unknown tool %s in conversation %s",
                    invocation.name,
                    ctx.conversation_id,
                )
                continue
            yield await self._run_one(spec, invocation, ctx)

    async def dispatch(
        self, invocations: list[ToolInvocation], ctx: ToolContext
    ) -> list[ToolOutcome]:
        """Dispatch all invocations and collect their outcomes."""
        return [outcome async for outcome in self.iter_dispatch(invocations, ctx)]

    async def _run_one(
        self, spec: ToolSpec, invocation: ToolInvocation, ctx: ToolContext
    ) -> ToolOutcome:
        if spec.once and spec.sentinel:
            existing = find_system_entry(ctx.messages(), spec.sentinel)
            if existing is not None:
                logger.info(
                    "Skipping %s for conversation %s: sentinel already recorded",
                    spec.name,
                    ctx.conversation_id,
                )
                return ToolOutcome(
                    name=spec.name,
                    success=True,
                    identifiers=_identifiers_from_metadata(existing["metadata"]),
                    skipped=True,
                )

        try:
            result = await spec.handler(invocation.args, ctx)
        except Exception as exc:
            logger.exception(
                "Tool %s failed in conversation %s", spec.name, ctx.conversation_id
            )
            # The handler may have left the session mid-transaction.
            ctx.store.db.rollback()
            if isinstance(exc, DomainError):
                error, code = str(exc), exc.code
            else:
                error, code = spec.failure_text(), TOOL_FAILED_CODE
            ctx.store.append_message(
                ctx.conversation_id,
                ctx.user_id,
                ctx.team_id,
                MessageRole.system.value,
                spec.failure_text(),
                metadata={"tool": spec.name, "error": str(exc) or type(exc).__name__},
            )
            return ToolOutcome(name=spec.name, success=False, error=error, code=code)

        metadata = {**result.metadata, **result.identifiers, "tool": spec.name}
        ctx.store.append_message(
            ctx.conversation_id,
            ctx.user_id,
            ctx.team_id,
            MessageRole.system.value,
            result.content,
            metadata=metadata,
        )
        if result.complete_conversation:
            ctx.store.set_status(
                ctx.conversation_id,
                ctx.user_id,
                ctx.team_id,
                ConversationStatus.completed.value,
            )

        logger.info(
            "Tool %s succeeded in conversation %s ids=%s",
            spec.name,
            ctx.conversation_id,
            result.identifiers,
        )
        return ToolOutcome(
            name=spec.name, success=True, identifiers=dict(result.identifiers)
        )
