"""Typed domain exceptions for API error mapping.

Routes never match on error message strings. Services raise one of these
types and the exception handlers registered in ``messageai.api.main``
translate them to HTTP status codes before any SSE headers are sent.

Usage:
    # In service layer
    raise ConversationNotFoundError(conversation_id)

    # In the app
    @app.exception_handler(NotFoundError)
    async def not_found_handler(request, exc): ...
"""


class DomainError(Exception):
    """Base exception for all domain errors.

    Attributes:
        code: Registry code reported alongside the message.
    """

    code = "E-4002"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class NotFoundError(DomainError):
    """Resource was not found. Maps to HTTP 404."""

    code = "E-2003"

    def __init__(self, resource_type: str, identifier: str) -> None:
        super().__init__(f"{resource_type} '{identifier}' not found")
        self.resource_type = resource_type
        self.identifier = identifier


class ConflictError(DomainError):
    """Resource state conflict. Maps to HTTP 409."""

    code = "E-2002"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class ValidationError(DomainError):
    """Validation failure. Maps to HTTP 400."""

    code = "E-2001"

    def __init__(self, message: str) -> None:
        super().__init__(message)


class UnauthorizedError(DomainError):
    """Caller identity missing. Maps to HTTP 401."""

    code = "E-5001"

    def __init__(self, message: str = "Authentication required") -> None:
        super().__init__(message)


class ConversationNotFoundError(NotFoundError):
    """Conversation missing, or owned by another user or team.

    Both cases produce the same error so callers cannot probe for
    conversations they do not own.
    """

    def __init__(self, conversation_id: str) -> None:
        DomainError.__init__(
            self, f"Conversation '{conversation_id}' not found or access denied"
        )
        self.resource_type = "Conversation"
        self.identifier = conversation_id


class ConversationClosedError(ConflictError):
    """Conversation no longer accepts turns. Maps to HTTP 409."""

    def __init__(self, conversation_id: str, status: str) -> None:
        super().__init__(
            f"Conversation '{conversation_id}' is {status} and cannot accept messages"
        )
        self.conversation_id = conversation_id
        self.status = status


class InsufficientBudgetError(DomainError):
    """Total budget cannot cover any candidate platform's minimum spend."""

    code = "E-1003"

    def __init__(self, minimum: float) -> None:
        super().__init__(
            f"Insufficient budget. Minimum ${minimum:,.2f} required for at "
            f"least one platform."
        )
        self.minimum = minimum


class ToolArgumentError(DomainError):
    """Reconstructed tool-call arguments failed to parse or validate.

    Recoverable: the invocation is dropped and the turn continues.
    """

    code = "E-1002"

    def __init__(self, tool_name: str, call_id: str, reason: str) -> None:
        super().__init__(f"Invalid arguments for tool '{tool_name}': {reason}")
        self.tool_name = tool_name
        self.call_id = call_id
        self.reason = reason


class GenerationBackendError(DomainError):
    """Generation backend failed mid-stream.

    Attributes:
        code: Registry code surfaced in the SSE error frame.
    """

    def __init__(self, message: str, code: str = "E-3001") -> None:
        super().__init__(message)
        self.code = code
