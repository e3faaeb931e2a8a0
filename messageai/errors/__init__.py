"""Error handling framework for MessageAI.

This package provides:
- Typed domain exceptions mapped to HTTP status codes
- Error code registry with E-XXXX format codes
- Registry-backed error values for SSE frames

Error categories:
- E-1xxx: Tool execution errors
- E-2xxx: Validation errors
- E-3xxx: Generation backend errors
- E-4xxx: System/internal errors
- E-5xxx: Authentication errors
"""

from messageai.errors.domain import (
    ConflictError,
    ConversationClosedError,
    ConversationNotFoundError,
    DomainError,
    GenerationBackendError,
    InsufficientBudgetError,
    NotFoundError,
    ToolArgumentError,
    UnauthorizedError,
    ValidationError,
)
from messageai.errors.formatter import MessageAIError
from messageai.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
)

__all__ = [
    # Domain
    "DomainError",
    "NotFoundError",
    "ConflictError",
    "ValidationError",
    "UnauthorizedError",
    "ConversationNotFoundError",
    "ConversationClosedError",
    "InsufficientBudgetError",
    "ToolArgumentError",
    "GenerationBackendError",
    # Registry
    "ErrorCode",
    "ErrorCategory",
    "ERROR_REGISTRY",
    "get_error",
    # Formatter
    "MessageAIError",
]
