"""Stream events produced by a generation backend for one turn.

A backend yields these in arrival order. They are consumed exclusively by
the DeltaReconstructor within a single request and never persisted.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class TextDelta:
    """A fragment of assistant text."""

    content: str


@dataclass(frozen=True)
class ToolCallDelta:
    """A fragment of a tool invocation.

    Attributes:
        index: Slot index of the invocation in the model's tool-call array.
        call_id: Provider invocation id (may only arrive on the first fragment).
        name: Tool name fragment (empty on continuation fragments).
        arguments: Raw JSON argument fragment, appended verbatim.
    """

    index: int
    call_id: str = ""
    name: str = ""
    arguments: str = ""


@dataclass(frozen=True)
class TurnFinished:
    """Terminal event: the backend finished the turn."""

    reason: str = "stop"


StreamEvent = TextDelta | ToolCallDelta | TurnFinished
