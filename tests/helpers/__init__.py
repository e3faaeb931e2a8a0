"""Test helper utilities."""

from tests.helpers.fake_backend import ScriptedBackend, text_turn, tool_call

__all__ = [
    "ScriptedBackend",
    "text_turn",
    "tool_call",
]
