"""Unit tests for messageai/errors/registry.py and formatter.py.

Tests verify:
- Codes raised or emitted by the runtime are registered with correct categories
- MessageAIError.from_code substitutes context and never echoes details
"""

import pytest

from messageai.errors import (
    ERROR_REGISTRY,
    ConflictError,
    ConversationClosedError,
    ConversationNotFoundError,
    DomainError,
    ErrorCategory,
    GenerationBackendError,
    InsufficientBudgetError,
    MessageAIError,
    NotFoundError,
    ToolArgumentError,
    UnauthorizedError,
    ValidationError,
    get_error,
)


@pytest.mark.parametrize(
    "code,category,title",
    [
        ("E-1001", ErrorCategory.TOOL, "Tool Handler Failed"),
        ("E-1002", ErrorCategory.TOOL, "Malformed Tool Arguments"),
        ("E-1003", ErrorCategory.TOOL, "Insufficient Budget"),
        ("E-2001", ErrorCategory.VALIDATION, "Invalid Request"),
        ("E-2002", ErrorCategory.VALIDATION, "Conversation Closed"),
        ("E-2003", ErrorCategory.VALIDATION, "Not Found"),
        ("E-3001", ErrorCategory.GENERATION, "Generation Failed"),
        ("E-3002", ErrorCategory.GENERATION, "Stream Ended Early"),
        ("E-4001", ErrorCategory.SYSTEM, "Database Error"),
        ("E-4002", ErrorCategory.SYSTEM, "Turn Failed"),
        ("E-5001", ErrorCategory.AUTH, "Missing Identity"),
        ("E-5002", ErrorCategory.AUTH, "Provider Authentication Failed"),
    ],
)
def test_error_codes_registered(code, category, title):
    """Codes surfaced in SSE frames and error responses must be registered."""
    error = get_error(code)
    assert error is not None, f"{code} not found in registry"
    assert error.category == category
    assert error.title == title


def test_codes_match_their_keys():
    for key, error in ERROR_REGISTRY.items():
        assert error.code == key


@pytest.mark.parametrize(
    "error,code",
    [
        (DomainError("x"), "E-4002"),
        (ValidationError("x"), "E-2001"),
        (ConflictError("x"), "E-2002"),
        (ConversationClosedError("c-1", "archived"), "E-2002"),
        (NotFoundError("Product", "p-1"), "E-2003"),
        (ConversationNotFoundError("c-1"), "E-2003"),
        (UnauthorizedError(), "E-5001"),
        (InsufficientBudgetError(100.0), "E-1003"),
        (ToolArgumentError("t", "c", "r"), "E-1002"),
        (GenerationBackendError("x"), "E-3001"),
    ],
)
def test_domain_errors_carry_registered_codes(error, code):
    assert error.code == code
    assert get_error(error.code) is not None


def test_unknown_code_returns_none():
    assert get_error("E-9999") is None


class TestMessageAIError:
    def test_details_are_kept_out_of_the_message(self):
        error = MessageAIError.from_code("E-3001", details="socket closed")
        assert error.message == "Failed to generate a response. Please try again."
        assert error.details == {"details": "socket closed"}
        assert error.is_retryable is True

    def test_missing_placeholder_keeps_template(self):
        error = MessageAIError.from_code("E-1001")
        assert error.message == "Error running {tool}. Please try again."

    def test_unknown_code(self):
        error = MessageAIError.from_code("E-9999")
        assert error.code == "E-9999"
        assert error.message == "Unknown error: E-9999"

    def test_str_includes_code(self):
        error = MessageAIError.from_code("E-1001", tool="save_product")
        assert str(error) == "E-1001: Error running save_product. Please try again."
