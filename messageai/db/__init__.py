"""Database module for conversation transcripts and agent-written records."""

from messageai.db.connection import (
    SessionLocal,
    engine,
    get_db,
    init_db,
)
from messageai.db.models import (
    AgentType,
    Campaign,
    ContextType,
    Conversation,
    ConversationMessage,
    ConversationStatus,
    IdealCustomerProfile,
    Lead,
    MessageRole,
    Product,
)

__all__ = [
    # Models
    "Conversation",
    "ConversationMessage",
    "Product",
    "IdealCustomerProfile",
    "Campaign",
    "Lead",
    # Enums
    "AgentType",
    "ConversationStatus",
    "MessageRole",
    "ContextType",
    # Connection
    "engine",
    "SessionLocal",
    "get_db",
    "init_db",
]
