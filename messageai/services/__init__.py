"""Service layer for MessageAI.

Provides transcript persistence and the per-turn context window.
"""

from messageai.services.context_builder import build_context
from messageai.services.transcript_store import (
    TranscriptStore,
    find_system_entry,
)

__all__ = [
    "TranscriptStore",
    "find_system_entry",
    "build_context",
]
