"""Agent definitions registry.

Each agent is configuration over the shared runtime. Look agents up by
their AgentType value or by the URL slug used under ``/ai/``.
"""

from messageai.db.models import AgentType
from messageai.orchestrator.agent.definitions.base import AgentDefinition, StartResult
from messageai.orchestrator.agent.definitions.campaign_advisor import CAMPAIGN_ADVISOR
from messageai.orchestrator.agent.definitions.discovery_bot import DISCOVERY_BOT
from messageai.orchestrator.agent.definitions.performance_analyzer import (
    PERFORMANCE_ANALYZER,
)
from messageai.orchestrator.agent.definitions.product_definer import PRODUCT_DEFINER

AGENTS: dict[AgentType, AgentDefinition] = {
    AgentType.product_definer: PRODUCT_DEFINER,
    AgentType.campaign_advisor: CAMPAIGN_ADVISOR,
    AgentType.discovery_bot: DISCOVERY_BOT,
    AgentType.performance_analyzer: PERFORMANCE_ANALYZER,
}

_BY_SLUG: dict[str, AgentDefinition] = {agent.slug: agent for agent in AGENTS.values()}


def get_agent_by_slug(slug: str) -> AgentDefinition | None:
    """Return the agent served under a URL slug, or None."""
    return _BY_SLUG.get(slug)


__all__ = [
    "AGENTS",
    "AgentDefinition",
    "StartResult",
    "get_agent_by_slug",
]
