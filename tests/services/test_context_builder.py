"""Tests for the bounded context window."""

from messageai.db.models import AgentType
from messageai.services.context_builder import build_context
from tests.helpers.ids import TEAM_ID, USER_ID


def _conversation(store):
    return store.create_conversation(USER_ID, TEAM_ID, AgentType.product_definer.value)


def test_prompt_first_then_recent_entries(store):
    conversation = _conversation(store)
    for index in range(4):
        store.append_message(conversation.id, USER_ID, TEAM_ID, "user", f"m{index}")

    context = build_context(
        store, conversation.id, USER_ID, TEAM_ID, "PROMPT", max_messages=2
    )

    assert context == [
        {"role": "system", "content": "PROMPT"},
        {"role": "user", "content": "m2"},
        {"role": "user", "content": "m3"},
    ]


def test_system_entries_are_kept(store):
    conversation = _conversation(store)
    store.append_message(conversation.id, USER_ID, TEAM_ID, "user", "save")
    store.append_message(
        conversation.id, USER_ID, TEAM_ID, "system", "Product saved with ID: p-1"
    )

    context = build_context(store, conversation.id, USER_ID, TEAM_ID, "PROMPT")

    assert [m["role"] for m in context] == ["system", "user", "system"]


def test_empty_transcript_is_prompt_only(store):
    conversation = _conversation(store)
    assert build_context(store, conversation.id, USER_ID, TEAM_ID, "P") == [
        {"role": "system", "content": "P"}
    ]
