"""Bounded message window sent to the generation backend each turn."""

import logging

from messageai.db.models import MessageRole
from messageai.services.transcript_store import TranscriptStore

logger = logging.getLogger(__name__)

DEFAULT_MAX_MESSAGES = 20


def build_context(
    store: TranscriptStore,
    conversation_id: str,
    user_id: str,
    team_id: str,
    system_prompt: str,
    max_messages: int = DEFAULT_MAX_MESSAGES,
) -> list[dict[str, str]]:
    """Assemble the system prompt plus the most recent transcript entries.

    System entries are included verbatim since they carry tool bookkeeping
    the model needs to see. Older entries beyond the window are dropped, not
    summarized.

    Args:
        store: Transcript store scoped to the request's session.
        conversation_id: Conversation to load.
        user_id: Caller's user id.
        team_id: Caller's team id.
        system_prompt: Agent system prompt, always first.
        max_messages: Window size N.

    Returns:
        Ordered list of ``{"role", "content"}`` dicts.
    """
    recent = store.recent_messages(conversation_id, user_id, team_id, max_messages)
    messages: list[dict[str, str]] = [
        {"role": MessageRole.system.value, "content": system_prompt}
    ]
    for entry in recent:
        if not entry["content"]:
            continue
        messages.append({"role": entry["role"], "content": entry["content"]})

    logger.debug(
        "Built context for %s: %d of max %d entries",
        conversation_id,
        len(messages) - 1,
        max_messages,
    )
    return messages

