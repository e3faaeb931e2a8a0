"""Product definer agent.

Guides the user through defining a product and its ideal customer profile.
Two modes:

- ``new_product``: define a product, then an ICP for it.
- ``new_icp``: add an ICP to an existing team-owned product.

Saving the ICP completes the conversation.
"""

import logging
from typing import Any, Literal

from pydantic import BaseModel, Field

from messageai.db.models import (
    AgentType,
    ContextType,
    Conversation,
    IdealCustomerProfile,
    Product,
)
from messageai.errors import ValidationError
from messageai.orchestrator.agent.definitions.base import AgentDefinition, StartResult
from messageai.orchestrator.agent.definitions.prompts import (
    ICP_ONLY_PROMPT_TEMPLATE,
    PRODUCT_DEFINER_PROMPT,
)
from messageai.orchestrator.agent.definitions.records import (
    dumps_or_none,
    get_team_product,
)
from messageai.orchestrator.agent.tools import ToolContext, ToolResult, ToolSpec
from messageai.services.transcript_store import (
    TranscriptStore,
    conversation_metadata,
    find_system_entry,
)

logger = logging.getLogger(__name__)

PRODUCT_SENTINEL = "Product saved with ID"
ICP_SENTINEL = "ICP saved with ID"

NEW_PRODUCT_GREETING = (
    "Hi! I'm here to help you define your product and ideal customer. "
    "Let's start with the basics: what is your product called, and what does it do?"
)
NEW_ICP_GREETING = (
    "Let's define a new ideal customer profile for {product_name}. "
    "Who is the typical buyer: what role do they have, and what kind of "
    "company do they work for?"
)


# ---------------------------------------------------------------------------
# Argument models
# ---------------------------------------------------------------------------


class Pricing(BaseModel):
    model: str = Field(description="Pricing model (e.g., subscription, one-time, usage-based)")
    details: str = Field(description="Pricing details and structure")


class SaveProductArgs(BaseModel):
    name: str = Field(min_length=1, description="Product name")
    description: str | None = Field(default=None, description="Detailed product description")
    features: list[str] = Field(default_factory=list, description="Key product features")
    pricing: Pricing | None = Field(default=None, description="Pricing structure")
    usps: list[str] = Field(
        default_factory=list,
        description="Unique selling propositions that differentiate this product",
    )


class Demographics(BaseModel):
    age_range: str | None = Field(default=None, description="Age range of target customers")
    location: str | None = None
    job_titles: list[str] = Field(default_factory=list)
    education: str | None = None
    income: str | None = None


class Firmographics(BaseModel):
    company_size: str | None = None
    industry: list[str] = Field(default_factory=list)
    revenue: str | None = None
    geography: str | None = None


class Psychographics(BaseModel):
    pain_points: list[str] = Field(default_factory=list)
    goals: list[str] = Field(default_factory=list)
    motivations: list[str] = Field(default_factory=list)
    challenges: list[str] = Field(default_factory=list)
    values: list[str] = Field(default_factory=list)


class Behaviors(BaseModel):
    buying_triggers: list[str] = Field(default_factory=list)
    decision_process: str | None = None
    preferred_channels: list[str] = Field(default_factory=list)
    influencers: list[str] = Field(default_factory=list)


class SaveIcpArgs(BaseModel):
    name: str = Field(min_length=1, description="Name/title for this ICP")
    product_id: str | None = Field(
        default=None,
        description="ID of the product this ICP is for. Defaults to the conversation's product.",
    )
    demographics: Demographics | None = None
    firmographics: Firmographics | None = Field(
        default=None, description="Firmographic characteristics (for B2B)"
    )
    psychographics: Psychographics | None = None
    behaviors: Behaviors | None = None


class ProductDefinerStart(BaseModel):
    mode: Literal["new_product", "new_icp"] = "new_product"
    product_id: str | None = None


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _section(model: BaseModel | None) -> dict[str, Any] | None:
    if model is None:
        return None
    return model.model_dump(exclude_none=True)


async def save_product(args: SaveProductArgs, ctx: ToolContext) -> ToolResult:
    """Persist a product for the caller's team."""
    db = ctx.store.db
    product = Product(
        team_id=ctx.team_id,
        name=args.name,
        description=args.description,
        features_json=dumps_or_none(args.features),
        pricing_json=dumps_or_none(_section(args.pricing)),
        usps_json=dumps_or_none(args.usps),
    )
    db.add(product)
    db.commit()
    logger.info("Product saved: %s", product.id)
    return ToolResult(
        content=f"{PRODUCT_SENTINEL}: {product.id}",
        identifiers={"product_id": product.id},
    )


def _resolve_product_id(args: SaveIcpArgs, ctx: ToolContext) -> str:
    """Explicit argument first, then conversation metadata, then the sentinel."""
    if args.product_id:
        return args.product_id
    metadata_product = ctx.metadata.get("product_id")
    if metadata_product:
        return metadata_product
    entry = find_system_entry(ctx.messages(), PRODUCT_SENTINEL)
    if entry and entry["metadata"].get("product_id"):
        return entry["metadata"]["product_id"]
    raise ValidationError("save_icp needs a product_id and no product was saved yet")


async def save_icp(args: SaveIcpArgs, ctx: ToolContext) -> ToolResult:
    """Persist an ICP against a team-owned product and complete the conversation."""
    db = ctx.store.db
    product_id = _resolve_product_id(args, ctx)
    get_team_product(db, ctx.team_id, product_id)

    icp = IdealCustomerProfile(
        product_id=product_id,
        team_id=ctx.team_id,
        name=args.name,
        demographics_json=dumps_or_none(_section(args.demographics)),
        firmographics_json=dumps_or_none(_section(args.firmographics)),
        psychographics_json=dumps_or_none(_section(args.psychographics)),
        behaviors_json=dumps_or_none(_section(args.behaviors)),
    )
    db.add(icp)
    db.commit()
    logger.info("ICP saved: %s (product %s)", icp.id, product_id)
    return ToolResult(
        content=f"{ICP_SENTINEL}: {icp.id}",
        identifiers={"icp_id": icp.id, "product_id": product_id},
        complete_conversation=True,
    )


TOOLS = (
    ToolSpec(
        name="save_product",
        description=(
            "Save a product definition. Call this when you have gathered the name, "
            "description, features, pricing and unique selling propositions."
        ),
        args_model=SaveProductArgs,
        handler=save_product,
        sentinel=PRODUCT_SENTINEL,
        once=True,
        failure_message="Error saving product. Please try again.",
    ),
    ToolSpec(
        name="save_icp",
        description=(
            "Save an Ideal Customer Profile (ICP). Call this when you have gathered "
            "demographics, firmographics, psychographics and behaviors."
        ),
        args_model=SaveIcpArgs,
        handler=save_icp,
        sentinel=ICP_SENTINEL,
        once=True,
        failure_message="Error saving ICP. Please try again.",
    ),
)


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------


def start(
    store: TranscriptStore, user_id: str, team_id: str, payload: ProductDefinerStart
) -> StartResult:
    """Create a product definer conversation.

    Raises:
        ValidationError: ``new_icp`` without a product id.
        NotFoundError: Product missing or owned by another team.
    """
    metadata: dict[str, Any] = {"mode": payload.mode}
    greeting = NEW_PRODUCT_GREETING
    context_id = None

    if payload.mode == "new_icp":
        if not payload.product_id:
            raise ValidationError("product_id is required when mode is new_icp")
        product = get_team_product(store.db, team_id, payload.product_id)
        metadata.update(
            product_id=product.id,
            product_name=product.name,
            product_description=product.description,
        )
        context_id = product.id
        greeting = NEW_ICP_GREETING.format(product_name=product.name)

    conversation = store.create_conversation(
        user_id=user_id,
        team_id=team_id,
        agent_type=AgentType.product_definer.value,
        context_id=context_id,
        context_type=ContextType.product.value if context_id else ContextType.general.value,
        metadata=metadata,
    )
    return StartResult(conversation=conversation, message=greeting)


def build_system_prompt(conversation: Conversation) -> str:
    metadata = conversation_metadata(conversation)
    if metadata.get("mode") == "new_icp" and metadata.get("product_id"):
        description = metadata.get("product_description")
        return ICP_ONLY_PROMPT_TEMPLATE.format(
            product_name=metadata.get("product_name", ""),
            product_description=f"\nProduct description: {description}\n" if description else "",
            product_id=metadata["product_id"],
        )
    return PRODUCT_DEFINER_PROMPT


def summarize(store: TranscriptStore, conversation: Conversation) -> dict[str, Any]:
    """Status plus which entities were saved, read from sentinel entries."""
    messages = store.list_messages(
        conversation.id, conversation.user_id, conversation.team_id
    )
    product_entry = find_system_entry(messages, PRODUCT_SENTINEL)
    icp_entry = find_system_entry(messages, ICP_SENTINEL)
    metadata = conversation_metadata(conversation)
    new_icp_mode = metadata.get("mode") == "new_icp"

    product_id = product_entry["metadata"].get("product_id") if product_entry else None
    if new_icp_mode and metadata.get("product_id"):
        product_id = metadata["product_id"]

    return {
        "status": conversation.status,
        "product_saved": bool(product_entry) and not new_icp_mode,
        "icp_saved": icp_entry is not None,
        "product_id": product_id,
        "icp_id": icp_entry["metadata"].get("icp_id") if icp_entry else None,
    }


PRODUCT_DEFINER = AgentDefinition(
    agent_type=AgentType.product_definer.value,
    slug="product-definer",
    title="Product Definer",
    tools=TOOLS,
    build_system_prompt=build_system_prompt,
    summarize=summarize,
    start_model=ProductDefinerStart,
    start=start,
)
