"""SQLAlchemy ORM models for the MessageAI agent runtime.

Defines the conversation transcript tables the runtime writes to, plus the
small set of business records (products, ICPs, campaigns, leads) that agent
tool handlers persist. Uses SQLAlchemy 2.0 style with Mapped and
mapped_column.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import (
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import (
    DeclarativeBase,
    Mapped,
    mapped_column,
    relationship,
)


def generate_uuid() -> str:
    """Generate a UUID4 string for primary keys."""
    return str(uuid4())


def utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format."""
    return datetime.now(UTC).isoformat()


# Enums matching the database schema constraints


class AgentType(str, Enum):
    """Conversational agents served by the runtime."""

    product_definer = "product_definer"
    campaign_advisor = "campaign_advisor"
    discovery_bot = "discovery_bot"
    performance_analyzer = "performance_analyzer"


class ConversationStatus(str, Enum):
    """Lifecycle status values for agent conversations.

    Lifecycle: active -> completed -> archived
               active -> archived
    """

    active = "active"
    completed = "completed"
    archived = "archived"


class MessageRole(str, Enum):
    """Roles a transcript entry can carry."""

    user = "user"
    assistant = "assistant"
    system = "system"


class ContextType(str, Enum):
    """Kind of entity a conversation is anchored to."""

    product = "product"
    campaign = "campaign"
    lead = "lead"
    general = "general"


class LeadStatus(str, Enum):
    """Status values for leads created by the discovery bot."""

    new = "new"
    qualified = "qualified"


# SQLAlchemy Base


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# Conversation transcript


class Conversation(Base):
    """Agent conversation owned by a user within a team.

    Attributes:
        id: UUID primary key.
        user_id: Owning user.
        team_id: Owning team (tenant).
        agent_type: Which agent runs this conversation.
        context_id: Optional id of the anchoring entity (product, campaign, lead).
        context_type: Kind of the anchoring entity.
        status: active, completed or archived. Archival is a status change.
        metadata_json: Free-form JSON map (mode, product name, ...).
        created_at: ISO8601 creation timestamp.
        updated_at: ISO8601 last-update timestamp.
    """

    __tablename__ = "agent_conversations"
    __table_args__ = (
        Index("ix_agentconv_owner_updated", "team_id", "user_id", "updated_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    team_id: Mapped[str] = mapped_column(String(64), nullable=False)
    agent_type: Mapped[str] = mapped_column(String(40), nullable=False)
    context_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    context_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ConversationStatus.active.value
    )
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )
    updated_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    messages: Mapped[list["ConversationMessage"]] = relationship(
        "ConversationMessage",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="ConversationMessage.sequence",
    )

    def __repr__(self) -> str:
        return (
            f"<Conversation(id={self.id!r}, agent_type={self.agent_type!r}, "
            f"status={self.status!r})>"
        )


class ConversationMessage(Base):
    """Append-only transcript entry.

    Attributes:
        id: UUID primary key.
        conversation_id: FK to Conversation.
        role: 'user', 'assistant', or 'system'.
        content: Message text. Never updated after insert.
        metadata_json: Optional JSON side channel (created ids, tool calls).
        sequence: Ordering within the conversation (monotonically increasing).
        created_at: ISO8601 creation timestamp.
    """

    __tablename__ = "agent_conversation_messages"
    __table_args__ = (
        UniqueConstraint(
            "conversation_id", "sequence", name="uq_agentmsg_conversation_seq"
        ),
        Index("ix_agentmsg_conversation_seq", "conversation_id", "sequence"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    conversation_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("agent_conversations.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    conversation: Mapped["Conversation"] = relationship(
        "Conversation", back_populates="messages"
    )

    def __repr__(self) -> str:
        return (
            f"<ConversationMessage(id={self.id!r}, role={self.role!r}, "
            f"seq={self.sequence})>"
        )


# Business records written by tool handlers


class Product(Base):
    """Team-owned product definition saved by the product definer."""

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    team_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # JSON-encoded list[str]
    features_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    # JSON-encoded {model, details}
    pricing_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    # JSON-encoded list[str]
    usps_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    icps: Mapped[list["IdealCustomerProfile"]] = relationship(
        "IdealCustomerProfile",
        back_populates="product",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id!r}, name={self.name!r})>"


class IdealCustomerProfile(Base):
    """Ideal customer profile attached to a product."""

    __tablename__ = "icps"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )
    team_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    demographics_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    firmographics_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    psychographics_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    behaviors_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    product: Mapped["Product"] = relationship("Product", back_populates="icps")

    def __repr__(self) -> str:
        return f"<IdealCustomerProfile(id={self.id!r}, name={self.name!r})>"


class Campaign(Base):
    """Campaign strategy saved by the campaign advisor."""

    __tablename__ = "campaigns"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    team_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    product_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    icp_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    # JSON-encoded list[str]
    platforms_json: Mapped[str] = mapped_column(Text, nullable=False, default="[]")
    objective: Mapped[str | None] = mapped_column(Text, nullable=True)
    budget: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    start_date: Mapped[str | None] = mapped_column(String(50), nullable=True)
    end_date: Mapped[str | None] = mapped_column(String(50), nullable=True)
    targeting_strategy: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="draft")
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    def __repr__(self) -> str:
        return f"<Campaign(id={self.id!r}, name={self.name!r})>"


class Lead(Base):
    """Prospect captured by the discovery bot.

    Attributes:
        qualification_score: 0-100 score from the qualification scorer.
        classification: hot, warm or cold once scored.
        raw_data_json: Contact payload as submitted at session start.
    """

    __tablename__ = "leads"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    team_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    product_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    company: Mapped[str | None] = mapped_column(String(255), nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source: Mapped[str] = mapped_column(String(50), nullable=False, default="website")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LeadStatus.new.value
    )
    qualification_score: Mapped[int | None] = mapped_column(Integer, nullable=True)
    classification: Mapped[str | None] = mapped_column(String(10), nullable=True)
    raw_data_json: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    def __repr__(self) -> str:
        return f"<Lead(id={self.id!r}, status={self.status!r})>"
