"""Campaign advisor agent.

Plans a multi-platform campaign for a team-owned product and ICP. The
conversation opens with a product-context system entry and a greeting;
saving the campaign strategy completes it.
"""

import json
import logging
from typing import Any

from pydantic import BaseModel, Field

from messageai.db.models import AgentType, Campaign, ContextType, Conversation, MessageRole
from messageai.orchestrator.agent.definitions.base import AgentDefinition, StartResult
from messageai.orchestrator.agent.definitions.prompts import CAMPAIGN_ADVISOR_PROMPT
from messageai.orchestrator.agent.definitions.records import (
    get_team_icp,
    get_team_product,
    icp_to_dict,
    product_to_dict,
)
from messageai.orchestrator.agent.tools import ToolContext, ToolResult, ToolSpec
from messageai.orchestrator.scoring.budget_allocator import allocate_budget
from messageai.services.transcript_store import (
    TranscriptStore,
    conversation_metadata,
    find_system_entry,
)

logger = logging.getLogger(__name__)

CAMPAIGN_SENTINEL = "Campaign strategy saved with ID"

GREETING_TEMPLATE = """Hello! I'm here to help you plan an effective campaign for "{product_name}".

I can see you're targeting {icp_name}. Let's create a data-driven campaign strategy together.

To get started, could you tell me:
1. What are your main campaign objectives? (e.g., lead generation, brand awareness, conversions)
2. What's your total budget for this campaign?
3. What's your campaign timeline?"""


class GetProductAndIcpArgs(BaseModel):
    product_id: str | None = Field(
        default=None, description="Product ID. Defaults to the conversation's product."
    )
    icp_id: str | None = Field(
        default=None, description="ICP ID. Defaults to the conversation's ICP."
    )


class BudgetAllocationArgs(BaseModel):
    total_budget: float = Field(gt=0, description="Total campaign budget in USD")
    platforms: list[str] = Field(
        min_length=1,
        description="Candidate platforms: facebook, instagram, linkedin, tiktok, x",
    )
    icp: dict[str, Any] | None = Field(
        default=None,
        description="ICP data used for scoring. Defaults to the conversation's ICP.",
    )


class SaveCampaignStrategyArgs(BaseModel):
    name: str = Field(min_length=1, description="Campaign name")
    platforms: list[str] = Field(min_length=1, description="Platforms to run on")
    objective: str | None = Field(default=None, description="Campaign objective")
    budget: float = Field(ge=0, description="Total budget in USD")
    start_date: str = Field(description="Start date (YYYY-MM-DD)")
    end_date: str | None = Field(default=None, description="End date (YYYY-MM-DD)")
    target_audience: str | None = Field(
        default=None, description="Targeting strategy summary"
    )
    product_id: str | None = None
    icp_id: str | None = None


class CampaignAdvisorStart(BaseModel):
    product_id: str
    icp_id: str


async def get_product_and_icp(args: GetProductAndIcpArgs, ctx: ToolContext) -> ToolResult:
    """Load the product and ICP records into the transcript."""
    metadata = ctx.metadata
    db = ctx.store.db
    product = get_team_product(
        db, ctx.team_id, args.product_id or metadata.get("product_id", "")
    )
    icp = get_team_icp(db, ctx.team_id, args.icp_id or metadata.get("icp_id", ""))
    data = {"product": product_to_dict(product), "icp": icp_to_dict(icp)}
    return ToolResult(
        content=f"Product and ICP data: {json.dumps(data, default=str)}",
        metadata=data,
    )


async def calculate_budget_allocation(
    args: BudgetAllocationArgs, ctx: ToolContext
) -> ToolResult:
    """Run the budget allocator. Insufficient budget fails the tool call."""
    icp = args.icp
    if icp is None:
        icp_id = ctx.metadata.get("icp_id")
        icp = icp_to_dict(get_team_icp(ctx.store.db, ctx.team_id, icp_id)) if icp_id else {}

    allocation = allocate_budget(args.total_budget, args.platforms, icp)
    payload = {platform: entry.to_dict() for platform, entry in allocation.items()}
    return ToolResult(
        content=f"Budget allocation: {json.dumps(payload)}",
        metadata={"budget_allocation": payload},
    )


async def save_campaign_strategy(
    args: SaveCampaignStrategyArgs, ctx: ToolContext
) -> ToolResult:
    """Persist the agreed campaign and complete the conversation."""
    metadata = ctx.metadata
    campaign = Campaign(
        team_id=ctx.team_id,
        name=args.name,
        product_id=args.product_id or metadata.get("product_id"),
        icp_id=args.icp_id or metadata.get("icp_id"),
        platforms_json=json.dumps([p.strip().lower() for p in args.platforms]),
        objective=args.objective,
        budget=args.budget,
        start_date=args.start_date,
        end_date=args.end_date,
        targeting_strategy=args.target_audience,
    )
    db = ctx.store.db
    db.add(campaign)
    db.commit()
    logger.info("Campaign strategy saved: %s", campaign.id)
    return ToolResult(
        content=f"{CAMPAIGN_SENTINEL}: {campaign.id}",
        identifiers={"campaign_id": campaign.id},
        complete_conversation=True,
    )


TOOLS = (
    ToolSpec(
        name="get_product_and_icp",
        description="Retrieve the full product and ICP records for this campaign.",
        args_model=GetProductAndIcpArgs,
        handler=get_product_and_icp,
    ),
    ToolSpec(
        name="calculate_budget_allocation",
        description=(
            "Split a total budget across platforms by ICP fit and cost-per-lead "
            "benchmarks. Platforms that cannot reach their minimum spend are dropped."
        ),
        args_model=BudgetAllocationArgs,
        handler=calculate_budget_allocation,
    ),
    ToolSpec(
        name="save_campaign_strategy",
        description="Save the final campaign strategy once the user has agreed to it.",
        args_model=SaveCampaignStrategyArgs,
        handler=save_campaign_strategy,
        sentinel=CAMPAIGN_SENTINEL,
        once=True,
        failure_message="Error saving campaign strategy. Please try again.",
    ),
)


def start(
    store: TranscriptStore, user_id: str, team_id: str, payload: CampaignAdvisorStart
) -> StartResult:
    """Create a campaign planning conversation with product context.

    Raises:
        NotFoundError: Product or ICP missing or owned by another team.
    """
    product = get_team_product(store.db, team_id, payload.product_id)
    icp = get_team_icp(store.db, team_id, payload.icp_id)

    conversation = store.create_conversation(
        user_id=user_id,
        team_id=team_id,
        agent_type=AgentType.campaign_advisor.value,
        context_id=product.id,
        context_type=ContextType.product.value,
        metadata={"product_id": product.id, "icp_id": icp.id},
    )
    context = {
        "product_id": product.id,
        "name": product.name,
        "description": product.description,
    }
    store.append_message(
        conversation.id,
        user_id,
        team_id,
        MessageRole.system.value,
        f"Product context: {json.dumps(context)}",
        metadata={"product_id": product.id, "icp_id": icp.id},
    )
    greeting = GREETING_TEMPLATE.format(product_name=product.name, icp_name=icp.name)
    store.append_message(
        conversation.id, user_id, team_id, MessageRole.assistant.value, greeting
    )
    return StartResult(conversation=conversation, message=greeting)


def build_system_prompt(conversation: Conversation) -> str:
    metadata = conversation_metadata(conversation)
    ids = (
        f"\n\nProduct ID: {metadata.get('product_id')}\nICP ID: {metadata.get('icp_id')}"
        if metadata.get("product_id")
        else ""
    )
    return CAMPAIGN_ADVISOR_PROMPT + ids


def summarize(store: TranscriptStore, conversation: Conversation) -> dict[str, Any]:
    messages = store.list_messages(
        conversation.id, conversation.user_id, conversation.team_id
    )
    entry = find_system_entry(messages, CAMPAIGN_SENTINEL)
    return {
        "status": conversation.status,
        "campaign_saved": entry is not None,
        "campaign_id": entry["metadata"].get("campaign_id") if entry else None,
    }


CAMPAIGN_ADVISOR = AgentDefinition(
    agent_type=AgentType.campaign_advisor.value,
    slug="campaign-advisor",
    title="Campaign Advisor",
    tools=TOOLS,
    build_system_prompt=build_system_prompt,
    summarize=summarize,
    start_model=CampaignAdvisorStart,
    start=start,
)
