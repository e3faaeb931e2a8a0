"""Performance analyzer agent.

Reviews a team-owned campaign's metrics with the user, rates them against
platform benchmarks, and saves the final report into the transcript.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field, model_validator

from messageai.db.models import AgentType, ContextType, Conversation
from messageai.orchestrator.agent.definitions.base import AgentDefinition, StartResult
from messageai.orchestrator.agent.definitions.prompts import PERFORMANCE_ANALYZER_PROMPT
from messageai.orchestrator.agent.definitions.records import (
    campaign_platforms,
    get_team_campaign,
)
from messageai.orchestrator.agent.tools import ToolContext, ToolResult, ToolSpec
from messageai.services.transcript_store import (
    TranscriptStore,
    conversation_metadata,
    find_system_entry,
)

logger = logging.getLogger(__name__)

REPORT_SENTINEL = "Performance report saved"
DEFAULT_PLATFORM = "facebook"

# Percentages for ctr and conversion_rate, USD for cpc
PLATFORM_BENCHMARKS: dict[str, dict[str, dict[str, float]]] = {
    "facebook": {
        "ctr": {"min": 0.5, "avg": 0.9, "good": 2.0},
        "cpc": {"min": 0.50, "avg": 1.25, "max": 2.00},
        "conversion_rate": {"min": 2, "avg": 4, "good": 6},
    },
    "linkedin": {
        "ctr": {"min": 0.3, "avg": 0.4, "good": 1.0},
        "cpc": {"min": 2.00, "avg": 4.50, "max": 7.00},
        "conversion_rate": {"min": 2, "avg": 3, "good": 5},
    },
    "instagram": {
        "ctr": {"min": 0.5, "avg": 0.9, "good": 2.0},
        "cpc": {"min": 0.50, "avg": 1.25, "max": 2.00},
        "conversion_rate": {"min": 2, "avg": 4, "good": 6},
    },
    "x": {
        "ctr": {"min": 1.0, "avg": 1.5, "good": 3.0},
        "cpc": {"min": 0.50, "avg": 1.25, "max": 2.00},
        "conversion_rate": {"min": 1, "avg": 2, "good": 4},
    },
    "tiktok": {
        "ctr": {"min": 1.0, "avg": 1.5, "good": 3.0},
        "cpc": {"min": 0.50, "avg": 1.00, "max": 1.50},
        "conversion_rate": {"min": 2, "avg": 3, "good": 5},
    },
}

GREETING_TEMPLATE = (
    "Let's review how \"{campaign_name}\" is performing. Share the latest numbers "
    "you have (impressions, clicks, conversions and spend, or CTR/CPC directly) "
    "and I'll compare them with {platforms} benchmarks."
)


class BenchmarkArgs(BaseModel):
    platform: str = Field(description="Platform the metrics come from")
    impressions: int | None = Field(default=None, ge=0)
    clicks: int | None = Field(default=None, ge=0)
    conversions: int | None = Field(default=None, ge=0)
    spend: float | None = Field(default=None, ge=0, description="Spend in USD")
    ctr: float | None = Field(default=None, ge=0, description="Click-through rate in percent")
    cpc: float | None = Field(default=None, ge=0, description="Cost per click in USD")
    conversion_rate: float | None = Field(
        default=None, ge=0, description="Conversion rate in percent"
    )

    @model_validator(mode="after")
    def _derive_rates(self) -> "BenchmarkArgs":
        if self.ctr is None and self.impressions and self.clicks is not None:
            self.ctr = round(self.clicks / self.impressions * 100, 2)
        if self.cpc is None and self.clicks and self.spend is not None:
            self.cpc = round(self.spend / self.clicks, 2)
        if self.conversion_rate is None and self.clicks and self.conversions is not None:
            self.conversion_rate = round(self.conversions / self.clicks * 100, 2)
        return self


class SaveReportArgs(BaseModel):
    summary: str = Field(min_length=1, description="Executive summary")
    recommendations: list[str] = Field(
        default_factory=list, description="Prioritized recommendations"
    )
    metrics: dict[str, Any] | None = Field(
        default=None, description="Key metrics the report is based on"
    )


class PerformanceAnalyzerStart(BaseModel):
    campaign_id: str


def rate_higher_is_better(value: float, bench: dict[str, float]) -> str:
    if value >= bench["good"]:
        return "good"
    if value >= bench["avg"]:
        return "average"
    if value >= bench["min"]:
        return "below_average"
    return "poor"


def rate_lower_is_better(value: float, bench: dict[str, float]) -> str:
    if value <= bench["min"]:
        return "good"
    if value <= bench["avg"]:
        return "average"
    if value <= bench["max"]:
        return "below_average"
    return "poor"


def compare_metrics(platform: str, args: BenchmarkArgs) -> dict[str, Any]:
    """Rate each supplied metric against the platform's benchmarks."""
    key = platform.strip().lower()
    if key == "twitter":
        key = "x"
    benchmarks = PLATFORM_BENCHMARKS.get(key, PLATFORM_BENCHMARKS[DEFAULT_PLATFORM])

    ratings: dict[str, Any] = {}
    red_flags: list[str] = []
    if args.ctr is not None:
        ratings["ctr"] = {
            "value": args.ctr,
            "benchmark": benchmarks["ctr"]["avg"],
            "rating": rate_higher_is_better(args.ctr, benchmarks["ctr"]),
        }
        if args.ctr < benchmarks["ctr"]["avg"]:
            red_flags.append(
                f"Low CTR ({args.ctr}% vs {benchmarks['ctr']['avg']}% avg): "
                "creative or targeting issue"
            )
    if args.cpc is not None:
        ratings["cpc"] = {
            "value": args.cpc,
            "benchmark": benchmarks["cpc"]["avg"],
            "rating": rate_lower_is_better(args.cpc, benchmarks["cpc"]),
        }
        if args.cpc > benchmarks["cpc"]["avg"]:
            red_flags.append(
                f"High CPC (${args.cpc} vs ${benchmarks['cpc']['avg']} avg): "
                "consider audience optimization"
            )
    if args.conversion_rate is not None:
        ratings["conversion_rate"] = {
            "value": args.conversion_rate,
            "benchmark": benchmarks["conversion_rate"]["avg"],
            "rating": rate_higher_is_better(
                args.conversion_rate, benchmarks["conversion_rate"]
            ),
        }
        if args.clicks and args.conversion_rate < benchmarks["conversion_rate"]["min"]:
            red_flags.append("High clicks, low conversions: check the landing page")

    return {"platform": key, "ratings": ratings, "red_flags": red_flags}


async def compare_to_benchmarks(args: BenchmarkArgs, ctx: ToolContext) -> ToolResult:
    comparison = compare_metrics(args.platform, args)
    if not comparison["ratings"]:
        summary = "no comparable metrics supplied"
    else:
        summary = ", ".join(
            f"{name} {rating['value']} ({rating['rating']})"
            for name, rating in comparison["ratings"].items()
        )
    return ToolResult(
        content=f"Benchmark comparison for {comparison['platform']}: {summary}",
        metadata=comparison,
    )


async def save_performance_report(args: SaveReportArgs, ctx: ToolContext) -> ToolResult:
    """Record the final report and complete the conversation."""
    campaign_id = ctx.metadata.get("campaign_id") or ctx.conversation.context_id
    logger.info("Performance report saved for campaign %s", campaign_id)
    return ToolResult(
        content=f"{REPORT_SENTINEL}: {args.summary}",
        metadata=args.model_dump(exclude_none=True),
        identifiers={"campaign_id": campaign_id} if campaign_id else {},
        complete_conversation=True,
    )


TOOLS = (
    ToolSpec(
        name="compare_to_benchmarks",
        description=(
            "Rate CTR, CPC and conversion rate against platform benchmarks. Pass "
            "rates directly or raw impressions, clicks, conversions and spend."
        ),
        args_model=BenchmarkArgs,
        handler=compare_to_benchmarks,
    ),
    ToolSpec(
        name="save_performance_report",
        description="Save the final performance report with summary and recommendations.",
        args_model=SaveReportArgs,
        handler=save_performance_report,
        sentinel=REPORT_SENTINEL,
        once=True,
    ),
)


def start(
    store: TranscriptStore,
    user_id: str,
    team_id: str,
    payload: PerformanceAnalyzerStart,
) -> StartResult:
    """Create an analysis conversation for a campaign.

    Raises:
        NotFoundError: Campaign missing or owned by another team.
    """
    campaign = get_team_campaign(store.db, team_id, payload.campaign_id)
    platforms = campaign_platforms(campaign)
    conversation = store.create_conversation(
        user_id=user_id,
        team_id=team_id,
        agent_type=AgentType.performance_analyzer.value,
        context_id=campaign.id,
        context_type=ContextType.campaign.value,
        metadata={
            "campaign_id": campaign.id,
            "campaign_name": campaign.name,
            "platforms": platforms,
            "budget": campaign.budget,
        },
    )
    greeting = GREETING_TEMPLATE.format(
        campaign_name=campaign.name,
        platforms=", ".join(platforms) or DEFAULT_PLATFORM,
    )
    return StartResult(conversation=conversation, message=greeting)


def build_system_prompt(conversation: Conversation) -> str:
    metadata = conversation_metadata(conversation)
    return PERFORMANCE_ANALYZER_PROMPT.format(
        campaign_name=metadata.get("campaign_name", "this campaign"),
        platforms=", ".join(metadata.get("platforms") or []) or "unknown",
        budget=metadata.get("budget", 0),
    )


def summarize(store: TranscriptStore, conversation: Conversation) -> dict[str, Any]:
    messages = store.list_messages(
        conversation.id, conversation.user_id, conversation.team_id
    )
    return {
        "status": conversation.status,
        "report_saved": find_system_entry(messages, REPORT_SENTINEL) is not None,
    }


PERFORMANCE_ANALYZER = AgentDefinition(
    agent_type=AgentType.performance_analyzer.value,
    slug="performance-analyzer",
    title="Performance Analyzer",
    tools=TOOLS,
    build_system_prompt=build_system_prompt,
    summarize=summarize,
    start_model=PerformanceAnalyzerStart,
    start=start,
)
