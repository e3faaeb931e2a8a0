"""Persistence service for agent conversations and their transcripts.

Thin layer between the runtime, the API routes and the SQLAlchemy models.
Every read and write is scoped to the owning user and team; a conversation
owned by someone else is indistinguishable from a missing one.

Transcript entries are append-only: this service never updates or deletes a
single message. The only way to remove entries is ``hard_delete``, which
removes the whole conversation.
"""

import json
import logging
from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from messageai.db.models import (
    Conversation,
    ConversationMessage,
    ConversationStatus,
    MessageRole,
    generate_uuid,
    utc_now_iso,
)
from messageai.errors import ConversationNotFoundError, ValidationError

logger = logging.getLogger(__name__)


def _load_json(raw: str | None, owner_id: str) -> dict[str, Any]:
    """Decode a metadata column, tolerating corrupted rows."""
    if not raw:
        return {}
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        logger.warning("Corrupted metadata_json for %s", owner_id)
        return {}
    return value if isinstance(value, dict) else {}


def message_to_dict(message: ConversationMessage) -> dict[str, Any]:
    """Project a transcript row to its public dict shape."""
    return {
        "id": message.id,
        "role": message.role,
        "content": message.content,
        "metadata": _load_json(message.metadata_json, message.id),
        "sequence": message.sequence,
        "created_at": message.created_at,
    }


def conversation_to_dict(conversation: Conversation) -> dict[str, Any]:
    """Project a conversation row (without messages) to a dict."""
    return {
        "id": conversation.id,
        "user_id": conversation.user_id,
        "team_id": conversation.team_id,
        "agent_type": conversation.agent_type,
        "context_id": conversation.context_id,
        "context_type": conversation.context_type,
        "status": conversation.status,
        "metadata": conversation_metadata(conversation),
        "created_at": conversation.created_at,
        "updated_at": conversation.updated_at,
    }


def conversation_metadata(conversation: Conversation) -> dict[str, Any]:
    """Return the decoded metadata map of a conversation."""
    return _load_json(conversation.metadata_json, conversation.id)


def find_system_entry(
    messages: list[dict[str, Any]], marker: str
) -> dict[str, Any] | None:
    """Return the first system entry whose content contains ``marker``.

    This is the sentinel lookup used for side-effect idempotence and for
    status summaries.

    Args:
        messages: Transcript entries as returned by ``list_messages``.
        marker: Substring identifying the sentinel.

    Returns:
        The matching entry dict, or None.
    """
    for message in messages:
        if message["role"] == MessageRole.system.value and marker in message["content"]:
            return message
    return None


class TranscriptStore:
    """CRUD operations for agent conversations and transcript entries.

    Args:
        db: SQLAlchemy session (sync).
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    @property
    def db(self) -> Session:
        """Underlying session, shared with tool handlers."""
        return self._db

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    def create_conversation(
        self,
        user_id: str,
        team_id: str,
        agent_type: str,
        context_id: str | None = None,
        context_type: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> Conversation:
        """Create a new active conversation.

        Args:
            user_id: Owning user.
            team_id: Owning team.
            agent_type: AgentType value.
            context_id: Optional anchoring entity id.
            context_type: Optional anchoring entity kind.
            metadata: Optional JSON-serializable map.

        Returns:
            The created Conversation.
        """
        conversation = Conversation(
            id=generate_uuid(),
            user_id=user_id,
            team_id=team_id,
            agent_type=agent_type,
            context_id=context_id,
            context_type=context_type,
            status=ConversationStatus.active.value,
            metadata_json=json.dumps(metadata) if metadata else None,
        )
        self._db.add(conversation)
        self._db.commit()
        logger.info(
            "Created conversation %s agent_type=%s team=%s",
            conversation.id,
            agent_type,
            team_id,
        )
        return conversation

    def get_conversation(
        self, conversation_id: str, user_id: str, team_id: str
    ) -> Conversation | None:
        """Load a conversation if it is owned by this user and team."""
        return (
            self._db.query(Conversation)
            .filter_by(id=conversation_id, user_id=user_id, team_id=team_id)
            .first()
        )

    def require_conversation(
        self, conversation_id: str, user_id: str, team_id: str
    ) -> Conversation:
        """Load an owned conversation or raise.

        Raises:
            ConversationNotFoundError: Missing or owned by someone else.
        """
        conversation = self.get_conversation(conversation_id, user_id, team_id)
        if conversation is None:
            raise ConversationNotFoundError(conversation_id)
        return conversation

    def set_status(
        self, conversation_id: str, user_id: str, team_id: str, status: str
    ) -> Conversation:
        """Transition a conversation to a new lifecycle status.

        Raises:
            ValidationError: Unknown status value.
            ConversationNotFoundError: Missing or owned by someone else.
        """
        try:
            status = ConversationStatus(status).value
        except ValueError:
            raise ValidationError(f"Unknown conversation status '{status}'") from None
        conversation = self.require_conversation(conversation_id, user_id, team_id)
        if conversation.status != status:
            logger.info(
                "Conversation %s status %s -> %s",
                conversation_id,
                conversation.status,
                status,
            )
        conversation.status = status
        conversation.updated_at = utc_now_iso()
        self._db.commit()
        return conversation

    def archive(self, conversation_id: str, user_id: str, team_id: str) -> Conversation:
        """Archive a conversation. Archival is a status change, not deletion."""
        return self.set_status(
            conversation_id, user_id, team_id, ConversationStatus.archived.value
        )

    def hard_delete(self, conversation_id: str, user_id: str, team_id: str) -> None:
        """Physically remove a conversation and all of its entries."""
        conversation = self.require_conversation(conversation_id, user_id, team_id)
        self._db.delete(conversation)
        self._db.commit()
        logger.info("Hard-deleted conversation %s", conversation_id)

    def list_conversations(
        self,
        user_id: str,
        team_id: str,
        agent_type: str | None = None,
        context_id: str | None = None,
        status: str | None = None,
    ) -> list[dict[str, Any]]:
        """List owned conversations, most recently updated first."""
        query = self._db.query(Conversation).filter_by(
            user_id=user_id, team_id=team_id
        )
        if agent_type:
            query = query.filter(Conversation.agent_type == agent_type)
        if context_id:
            query = query.filter(Conversation.context_id == context_id)
        if status:
            query = query.filter(Conversation.status == status)

        query = query.order_by(
            Conversation.updated_at.desc(),
            Conversation.created_at.desc(),
        )
        return [conversation_to_dict(c) for c in query.all()]

    # ------------------------------------------------------------------
    # Transcript entries
    # ------------------------------------------------------------------

    def append_message(
        self,
        conversation_id: str,
        user_id: str,
        team_id: str,
        role: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Append an entry to the transcript with the next sequence number.

        Args:
            conversation_id: Parent conversation.
            user_id: Caller's user id (access check).
            team_id: Caller's team id (access check).
            role: 'user', 'assistant', or 'system'.
            content: Entry text.
            metadata: Optional side-channel map.

        Returns:
            The created entry as a dict.

        Raises:
            ConversationNotFoundError: Missing or owned by someone else.
        """
        conversation = self.require_conversation(conversation_id, user_id, team_id)

        # SELECT+INSERT is safe under SQLite's single writer. Turns on the
        # same conversation must be serialized by the caller.
        max_seq = (
            self._db.query(ConversationMessage.sequence)
            .filter_by(conversation_id=conversation_id)
            .order_by(ConversationMessage.sequence.desc())
            .first()
        )
        next_seq = (max_seq[0] + 1) if max_seq else 1

        message = ConversationMessage(
            id=generate_uuid(),
            conversation_id=conversation_id,
            role=MessageRole(role).value,
            content=content,
            metadata_json=json.dumps(metadata, default=str) if metadata else None,
            sequence=next_seq,
        )
        self._db.add(message)
        conversation.updated_at = utc_now_iso()
        self._db.commit()
        return message_to_dict(message)

    def list_messages(
        self, conversation_id: str, user_id: str, team_id: str
    ) -> list[dict[str, Any]]:
        """Return the full transcript in insertion order."""
        self.require_conversation(conversation_id, user_id, team_id)
        rows = (
            self._db.query(ConversationMessage)
            .filter_by(conversation_id=conversation_id)
            .order_by(ConversationMessage.sequence)
            .all()
        )
        return [message_to_dict(m) for m in rows]

    def recent_messages(
        self, conversation_id: str, user_id: str, team_id: str, count: int
    ) -> list[dict[str, Any]]:
        """Return the ``count`` most recent entries, oldest first."""
        self.require_conversation(conversation_id, user_id, team_id)
        if count <= 0:
            return []
        rows = (
            self._db.query(ConversationMessage)
            .filter_by(conversation_id=conversation_id)
            .order_by(ConversationMessage.sequence.desc())
            .limit(count)
            .all()
        )
        return [message_to_dict(m) for m in reversed(rows)]

    def conversation_stats(
        self, conversation_id: str, user_id: str, team_id: str
    ) -> dict[str, Any]:
        """Count entries by role and measure the conversation's duration."""
        messages = self.list_messages(conversation_id, user_id, team_id)
        counts = {role.value: 0 for role in MessageRole}
        for message in messages:
            counts[message["role"]] = counts.get(message["role"], 0) + 1

        duration_minutes = 0
        if len(messages) > 1:
            first = datetime.fromisoformat(messages[0]["created_at"])
            last = datetime.fromisoformat(messages[-1]["created_at"])
            duration_minutes = int((last - first).total_seconds() // 60)

        return {
            "total_messages": len(messages),
            "user_messages": counts[MessageRole.user.value],
            "assistant_messages": counts[MessageRole.assistant.value],
            "system_messages": counts[MessageRole.system.value],
            "duration_minutes": duration_minutes,
        }
