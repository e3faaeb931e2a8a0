"""Error code registry with E-XXXX format codes.

Errors surfaced to SSE clients and API callers are organized by category:
- E-1xxx: Tool execution errors
- E-2xxx: Validation errors
- E-3xxx: Generation backend errors
- E-4xxx: System/internal errors
- E-5xxx: Authentication errors

Each error includes a code, title, message template, and remediation steps.
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Categories for error codes."""

    TOOL = "tool"  # E-1xxx: Tool execution errors
    VALIDATION = "validation"  # E-2xxx: Validation errors
    GENERATION = "generation"  # E-3xxx: Generation backend errors
    SYSTEM = "system"  # E-4xxx: System/internal errors
    AUTH = "auth"  # E-5xxx: Authentication errors


@dataclass
class ErrorCode:
    """Definition of an error code with metadata.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action user should take to resolve.
        is_retryable: Whether the operation can be retried without user action.
    """

    code: str
    category: ErrorCategory
    title: str
    message_template: str
    remediation: str
    is_retryable: bool = False


ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Tool errors (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.TOOL,
        title="Tool Handler Failed",
        message_template="Error running {tool}. Please try again.",
        remediation="Send the request again. The conversation is unchanged.",
        is_retryable=True,
    ),
    "E-1002": ErrorCode(
        code="E-1002",
        category=ErrorCategory.TOOL,
        title="Malformed Tool Arguments",
        message_template="Tool '{tool}' received arguments that could not be parsed.",
        remediation="Rephrase the request so the assistant can retry the action.",
        is_retryable=True,
    ),
    "E-1003": ErrorCode(
        code="E-1003",
        category=ErrorCategory.TOOL,
        title="Insufficient Budget",
        message_template="Insufficient budget. Minimum ${minimum} required for at least one platform.",
        remediation="Increase the total budget or pick cheaper platforms.",
    ),
    # Validation errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.VALIDATION,
        title="Invalid Request",
        message_template="The request was rejected: {reason}",
        remediation="Correct the request and send it again.",
    ),
    "E-2002": ErrorCode(
        code="E-2002",
        category=ErrorCategory.VALIDATION,
        title="Conversation Closed",
        message_template="Conversation {conversation_id} is {status}.",
        remediation="Start a new conversation.",
    ),
    "E-2003": ErrorCode(
        code="E-2003",
        category=ErrorCategory.VALIDATION,
        title="Not Found",
        message_template="{resource} {identifier} not found or access denied.",
        remediation="Check the id or start a new conversation.",
    ),
    # Generation backend errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.GENERATION,
        title="Generation Failed",
        message_template="Failed to generate a response. Please try again.",
        remediation="Retry the message. Check the conversation status if the reply was cut short.",
        is_retryable=True,
    ),
    "E-3002": ErrorCode(
        code="E-3002",
        category=ErrorCategory.GENERATION,
        title="Stream Ended Early",
        message_template="The response stream ended before the turn finished.",
        remediation="Retry the message.",
        is_retryable=True,
    ),
    # System errors (E-4xxx)
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.SYSTEM,
        title="Database Error",
        message_template="A database operation failed. Please try again.",
        remediation="This is a system error. Retry the operation. Contact support if issue persists.",
        is_retryable=True,
    ),
    "E-4002": ErrorCode(
        code="E-4002",
        category=ErrorCategory.SYSTEM,
        title="Turn Failed",
        message_template="The turn failed unexpectedly. Please try again.",
        remediation="Retry the message. Contact support if issue persists.",
        is_retryable=True,
    ),
    # Auth errors (E-5xxx)
    "E-5001": ErrorCode(
        code="E-5001",
        category=ErrorCategory.AUTH,
        title="Missing Identity",
        message_template="Request is missing user or team identity.",
        remediation="Sign in again.",
    ),
    "E-5002": ErrorCode(
        code="E-5002",
        category=ErrorCategory.AUTH,
        title="Provider Authentication Failed",
        message_template="The generation provider rejected the configured API key.",
        remediation="Set ANTHROPIC_API_KEY to a valid key and restart the server.",
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Get error definition by code.

    Args:
        code: Error code in E-XXXX format.

    Returns:
        ErrorCode if found, None otherwise.
    """
    return ERROR_REGISTRY.get(code)
