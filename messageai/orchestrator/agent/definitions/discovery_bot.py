"""Discovery bot agent.

Runs a discovery conversation with a prospect for a team-owned product.
Starting a session creates the Lead. The model records each discovery
answer as it hears it, then asks for a qualification score, which updates
the lead, writes a summary for the sales team and completes the
conversation.
"""

import json
import logging
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field

from messageai.db.models import (
    AgentType,
    ContextType,
    Conversation,
    Lead,
    LeadStatus,
    MessageRole,
)
from messageai.errors import ValidationError
from messageai.orchestrator.agent.definitions.base import AgentDefinition, StartResult
from messageai.orchestrator.agent.definitions.prompts import (
    DISCOVERY_BOT_PROMPT,
    DISCOVERY_SUMMARY_PROMPT,
)
from messageai.orchestrator.agent.definitions.records import get_team_lead, get_team_product
from messageai.orchestrator.agent.stream_events import TextDelta, TurnFinished
from messageai.orchestrator.agent.tools import ToolContext, ToolResult, ToolSpec
from messageai.orchestrator.scoring.lead_qualification import (
    SIGNALS,
    WARM_THRESHOLD,
    score_lead,
)
from messageai.services.transcript_store import (
    TranscriptStore,
    conversation_metadata,
    find_system_entry,
)

if TYPE_CHECKING:
    from messageai.orchestrator.agent.backend import GenerationBackend

logger = logging.getLogger(__name__)

ANSWER_MARKER = "Discovery answer recorded"
SCORE_SENTINEL = "Lead qualification score"
SUMMARY_FALLBACK = "Lead qualified with score {score}/100. Manual review recommended."
SUMMARY_RECENT_MESSAGES = 5

GREETING_TEMPLATE = (
    "Hi{name}! Thanks for your interest in {product_name}. I'd love to learn a "
    "bit about what you're working on. What prompted you to look for a solution "
    "like this?"
)

Signal = Literal["challenge", "timeline", "decision_makers", "budget", "previous_solutions"]


class RecordAnswerArgs(BaseModel):
    signal: Signal = Field(description="Which discovery question the answer belongs to")
    answer: str = Field(min_length=1, description="The prospect's answer in their words")


class QualificationArgs(BaseModel):
    challenge: str | None = None
    timeline: str | None = None
    decision_makers: str | None = None
    budget: str | None = None
    previous_solutions: str | None = None


class DiscoveryStart(BaseModel):
    product_id: str
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    job_title: str | None = None
    source: str = "website"


def split_name(name: str | None) -> tuple[str | None, str | None]:
    """Split a full name into first and last name."""
    if not name or not name.strip():
        return None, None
    parts = name.split()
    first = parts[0]
    last = " ".join(parts[1:]) or None
    return first, last


def recorded_answers(messages: list[dict[str, Any]]) -> dict[str, str]:
    """Collect recorded answers from the transcript; later entries win."""
    answers: dict[str, str] = {}
    for message in messages:
        if message["role"] != MessageRole.system.value:
            continue
        if ANSWER_MARKER not in message["content"]:
            continue
        signal = message["metadata"].get("signal")
        answer = message["metadata"].get("answer")
        if signal in SIGNALS and answer:
            answers[signal] = answer
    return answers


async def record_discovery_answer(args: RecordAnswerArgs, ctx: ToolContext) -> ToolResult:
    """Store one discovery signal in the transcript."""
    return ToolResult(
        content=f"{ANSWER_MARKER}: {args.signal}",
        metadata={"signal": args.signal, "answer": args.answer},
    )


async def generate_discovery_summary(
    backend: "GenerationBackend | None",
    responses: dict[str, str],
    score: int,
    messages: list[dict[str, Any]],
) -> str:
    """Write a short sales-team summary of a scored discovery conversation.

    Falls back to a fixed note when there is no backend, the backend fails,
    or it returns no text.
    """
    fallback = SUMMARY_FALLBACK.format(score=score)
    if backend is None:
        return fallback

    recent = [
        {"role": m["role"], "content": m["content"]}
        for m in messages
        if m["role"] in (MessageRole.user.value, MessageRole.assistant.value)
    ][-SUMMARY_RECENT_MESSAGES:]
    prompt = DISCOVERY_SUMMARY_PROMPT.format(
        score=score,
        recent=json.dumps(recent, indent=2),
        **{signal: responses.get(signal) or "Not discussed" for signal in SIGNALS},
    )

    chunks: list[str] = []
    try:
        async for event in backend.stream_turn(
            [{"role": "user", "content": prompt}], []
        ):
            if isinstance(event, TextDelta):
                chunks.append(event.content)
            elif isinstance(event, TurnFinished):
                break
    except Exception:
        logger.exception("Discovery summary generation failed (score %d)", score)
        return fallback

    return "".join(chunks).strip() or fallback


async def calculate_qualification_score(
    args: QualificationArgs, ctx: ToolContext
) -> ToolResult:
    """Score the lead from recorded and passed answers and update it."""
    lead_id = ctx.metadata.get("lead_id")
    if not lead_id:
        raise ValidationError("Conversation has no lead attached")
    lead = get_team_lead(ctx.store.db, ctx.team_id, lead_id)

    messages = ctx.messages()
    responses = recorded_answers(messages)
    responses.update(args.model_dump(exclude_none=True))
    result = score_lead(responses)

    lead.qualification_score = result.score
    lead.classification = result.classification
    if result.score >= WARM_THRESHOLD:
        lead.status = LeadStatus.qualified.value
    ctx.store.db.commit()
    logger.info(
        "Lead %s scored %d (%s)", lead.id, result.score, result.classification
    )

    summary = await generate_discovery_summary(
        ctx.backend, responses, result.score, messages
    )

    return ToolResult(
        content=(
            f"{SCORE_SENTINEL}: {result.score}/100 ({result.classification}). "
            f"{result.reasoning}"
        ),
        metadata={**result.to_dict(), "responses": responses, "summary": summary},
        identifiers={"lead_id": lead.id},
        complete_conversation=True,
    )


TOOLS = (
    ToolSpec(
        name="record_discovery_answer",
        description="Record the prospect's answer to one of the five discovery questions.",
        args_model=RecordAnswerArgs,
        handler=record_discovery_answer,
    ),
    ToolSpec(
        name="calculate_qualification_score",
        description=(
            "Score the lead (0-100) from the discovery answers. Pass any answers "
            "not yet recorded."
        ),
        args_model=QualificationArgs,
        handler=calculate_qualification_score,
        sentinel=SCORE_SENTINEL,
        once=True,
        failure_message="Error calculating qualification score. Please try again.",
    ),
)


def start(
    store: TranscriptStore, user_id: str, team_id: str, payload: DiscoveryStart
) -> StartResult:
    """Create the lead and its discovery conversation.

    Raises:
        NotFoundError: Product missing or owned by another team.
    """
    product = get_team_product(store.db, team_id, payload.product_id)
    first_name, last_name = split_name(payload.name)

    lead = Lead(
        team_id=team_id,
        product_id=product.id,
        email=payload.email,
        phone=payload.phone,
        first_name=first_name,
        last_name=last_name,
        company=payload.company,
        job_title=payload.job_title,
        source=payload.source,
        raw_data_json=json.dumps(payload.model_dump(exclude_none=True)),
    )
    store.db.add(lead)
    store.db.commit()

    conversation = store.create_conversation(
        user_id=user_id,
        team_id=team_id,
        agent_type=AgentType.discovery_bot.value,
        context_id=lead.id,
        context_type=ContextType.lead.value,
        metadata={
            "lead_id": lead.id,
            "product_id": product.id,
            "product_name": product.name,
            "product_description": product.description,
        },
    )
    greeting = GREETING_TEMPLATE.format(
        name=f" {first_name}" if first_name else "", product_name=product.name
    )
    store.append_message(
        conversation.id, user_id, team_id, MessageRole.assistant.value, greeting
    )
    logger.info("Discovery session %s started for lead %s", conversation.id, lead.id)
    return StartResult(conversation=conversation, message=greeting)


def build_system_prompt(conversation: Conversation) -> str:
    metadata = conversation_metadata(conversation)
    return DISCOVERY_BOT_PROMPT.format(
        product_name=metadata.get("product_name") or "our product",
        product_description=metadata.get("product_description") or "(no description)",
    )


def summarize(store: TranscriptStore, conversation: Conversation) -> dict[str, Any]:
    messages = store.list_messages(
        conversation.id, conversation.user_id, conversation.team_id
    )
    entry = find_system_entry(messages, SCORE_SENTINEL)
    metadata = entry["metadata"] if entry else {}
    return {
        "status": conversation.status,
        "score_calculated": entry is not None,
        "lead_id": conversation_metadata(conversation).get("lead_id"),
        "score": metadata.get("score"),
        "classification": metadata.get("classification"),
        "summary": metadata.get("summary"),
    }


DISCOVERY_BOT = AgentDefinition(
    agent_type=AgentType.discovery_bot.value,
    slug="discovery-bot",
    title="Discovery Bot",
    tools=TOOLS,
    build_system_prompt=build_system_prompt,
    summarize=summarize,
    start_model=DiscoveryStart,
    start=start,
)
