"""Tests for typed domain exceptions and their HTTP-facing hierarchy."""

from messageai.errors import (
    ConflictError,
    ConversationClosedError,
    ConversationNotFoundError,
    DomainError,
    GenerationBackendError,
    InsufficientBudgetError,
    NotFoundError,
    ToolArgumentError,
    UnauthorizedError,
)


def test_conversation_not_found_hides_ownership():
    error = ConversationNotFoundError("c-1")
    assert isinstance(error, NotFoundError)
    assert str(error) == "Conversation 'c-1' not found or access denied"
    assert error.resource_type == "Conversation"
    assert error.identifier == "c-1"


def test_not_found_message():
    assert str(NotFoundError("Product", "p-1")) == "Product 'p-1' not found"


def test_closed_conversation_is_a_conflict():
    error = ConversationClosedError("c-1", "archived")
    assert isinstance(error, ConflictError)
    assert error.status == "archived"
    assert "archived" in str(error)


def test_insufficient_budget_message():
    error = InsufficientBudgetError(100.0)
    assert str(error) == (
        "Insufficient budget. Minimum $100.00 required for at least one platform."
    )
    assert error.minimum == 100.0


def test_tool_argument_error_fields():
    error = ToolArgumentError("save_product", "call_0", "bad json")
    assert error.tool_name == "save_product"
    assert error.call_id == "call_0"
    assert "bad json" in str(error)


def test_generation_error_defaults_to_e3001():
    assert GenerationBackendError("down").code == "E-3001"
    assert GenerationBackendError("key", code="E-5002").code == "E-5002"


def test_all_are_domain_errors():
    for error in (
        UnauthorizedError(),
        GenerationBackendError("x"),
        ToolArgumentError("t", "c", "r"),
    ):
        assert isinstance(error, DomainError)
