"""Delta reconstruction for streamed assistant turns.

The generation backend streams text fragments and tool-call fragments
interleaved across network chunks. ``DeltaReconstructor`` consumes them in
arrival order and:

- forwards text fragments immediately (the only data surfaced before the
  turn finishes, and still uncommitted until ``TurnFinished`` arrives);
- accumulates tool-call fragments per slot index, appending argument
  characters verbatim and never replacing a known name with an empty one;
- on finalization, parses each invocation's argument string as JSON and
  validates it against the tool's pydantic model, so handlers receive typed
  arguments.

A parse or validation failure drops only that invocation and is reported
as a ``ToolArgumentError`` in the result; it never fails the turn.

Example:
    recon = DeltaReconstructor()
    for event in events:
        text = recon.feed(event)
        if text:
            forward(text)
    turn = recon.finalize({"save_product": SaveProductArgs})
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from messageai.errors import ToolArgumentError
from messageai.orchestrator.agent.stream_events import (
    StreamEvent,
    TextDelta,
    ToolCallDelta,
    TurnFinished,
)

logger = logging.getLogger(__name__)


@dataclass
class _Slot:
    """Mutable accumulator for one in-progress invocation."""

    index: int
    call_id: str = ""
    name: str = ""
    arguments: str = ""


@dataclass(frozen=True)
class ToolInvocation:
    """A fully reconstructed tool invocation.

    Attributes:
        index: Slot index the invocation was streamed under.
        call_id: Provider invocation id, if one was sent.
        name: Tool name.
        args: Validated pydantic model for registered tools, plain dict otherwise.
        raw_arguments: The concatenated argument string as received.
    """

    index: int
    call_id: str
    name: str
    args: Any
    raw_arguments: str = ""

    def args_dict(self) -> dict[str, Any]:
        """Return the arguments as a JSON-serializable dict."""
        if isinstance(self.args, BaseModel):
            return self.args.model_dump(mode="json", exclude_none=True)
        return dict(self.args)


@dataclass(frozen=True)
class ReconstructedTurn:
    """Outcome of a finished turn.

    Attributes:
        text: Full assistant text in arrival order.
        invocations: Dispatchable invocations in slot first-seen order.
        errors: Per-invocation argument errors (those invocations were dropped).
        finish_reason: Reason reported by the backend.
    """

    text: str
    invocations: list[ToolInvocation] = field(default_factory=list)
    errors: list[ToolArgumentError] = field(default_factory=list)
    finish_reason: str = "stop"


class DeltaReconstructor:
    """Accumulates one turn's stream events.

    Not reusable: create one per turn.
    """

    def __init__(self) -> None:
        self._text_parts: list[str] = []
        # dicts preserve insertion order, which is slot first-seen order
        self._slots: dict[int, _Slot] = {}
        self._finish_reason: str | None = None

    @property
    def finished(self) -> bool:
        """True once a TurnFinished event was fed."""
        return self._finish_reason is not None

    @property
    def finish_reason(self) -> str | None:
        return self._finish_reason

    @property
    def text(self) -> str:
        """Assistant text accumulated so far."""
        return "".join(self._text_parts)

    def feed(self, event: StreamEvent) -> str | None:
        """Consume one stream event.

        Args:
            event: Next event in arrival order.

        Returns:
            The text to forward live for text deltas, otherwise None.

        Raises:
            RuntimeError: If the turn already finished.
            TypeError: For an unknown event type.
        """
        if self.finished:
            raise RuntimeError("Cannot feed events after the turn finished")

        if isinstance(event, TextDelta):
            if not event.content:
                return None
            self._text_parts.append(event.content)
            return event.content

        if isinstance(event, ToolCallDelta):
            slot = self._slots.get(event.index)
            if slot is None:
                slot = _Slot(index=event.index)
                self._slots[event.index] = slot
                logger.debug("Opened tool slot %d", event.index)
            if event.call_id and not slot.call_id:
                slot.call_id = event.call_id
            if event.name:
                slot.name = event.name
            if event.arguments:
                slot.arguments += event.arguments
            return None

        if isinstance(event, TurnFinished):
            self._finish_reason = event.reason or "stop"
            return None

        raise TypeError(f"Unknown stream event: {event!r}")

    def finalize(
        self, tool_models: Mapping[str, type[BaseModel]] | None = None
    ) -> ReconstructedTurn:
        """Parse and validate every accumulated invocation.

        Args:
            tool_models: Argument model per registered tool name. Names not
                in the mapping keep their parsed dict arguments.

        Returns:
            ReconstructedTurn with text, invocations and argument errors.

        Raises:
            RuntimeError: If called before the turn finished.
        """
        if not self.finished:
            raise RuntimeError("Cannot finalize a turn that has not finished")

        models = tool_models or {}
        invocations: list[ToolInvocation] = []
        errors: list[ToolArgumentError] = []

        for slot in self._slots.values():
            try:
                invocations.append(self._finalize_slot(slot, models))
            except ToolArgumentError as exc:
                logger.warning(
                    "Dropping tool call slot=%d name=%s code=%s: %s",
                    slot.index,
                    slot.name or "<unnamed>",
                    exc.code,
                    exc.reason,
                )
                errors.append(exc)

        return ReconstructedTurn(
            text=self.text,
            invocations=invocations,
            errors=errors,
            finish_reason=self._finish_reason or "stop",
        )

    @staticmethod
    def _finalize_slot(
        slot: _Slot, models: Mapping[str, type[BaseModel]]
    ) -> ToolInvocation:
        """Turn one accumulator into an invocation or raise ToolArgumentError."""
        if not slot.name:
            raise ToolArgumentError("", slot.call_id, "tool call has no name")

        raw = slot.arguments
        if raw.strip():
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as exc:
                raise ToolArgumentError(
                    slot.name, slot.call_id, f"malformed JSON ({exc.msg})"
                ) from exc
        else:
            parsed = {}

        if not isinstance(parsed, dict):
            raise ToolArgumentError(
                slot.name, slot.call_id, "arguments must be a JSON object"
            )

        model = models.get(slot.name)
        args: Any = parsed
        if model is not None:
            try:
                args = model.model_validate(parsed)
            except PydanticValidationError as exc:
                raise ToolArgumentError(
                    slot.name,
                    slot.call_id,
                    f"{exc.error_count()} validation error(s)",
                ) from exc

        return ToolInvocation(
            index=slot.index,
            call_id=slot.call_id,
            name=slot.name,
            args=args,
            raw_arguments=raw,
        )
