"""FastAPI dependencies shared by the agent and conversation routes.

Identity comes from ``X-User-Id`` and ``X-Team-Id`` headers set by the
upstream auth layer. The generation backend is created once per process
and cached on ``app.state``; tests override ``get_backend``.
"""

import logging
from dataclasses import dataclass

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from messageai.config import RuntimeConfig
from messageai.db.connection import get_db
from messageai.errors import NotFoundError, UnauthorizedError
from messageai.orchestrator.agent.backend import GenerationBackend, create_backend
from messageai.orchestrator.agent.definitions import AgentDefinition, get_agent_by_slug
from messageai.services.transcript_store import TranscriptStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Authenticated caller."""

    user_id: str
    team_id: str


def get_identity(
    x_user_id: str | None = Header(default=None),
    x_team_id: str | None = Header(default=None),
) -> Identity:
    """Resolve the caller from identity headers.

    Raises:
        UnauthorizedError: Either header missing or blank.
    """
    user_id = (x_user_id or "").strip()
    team_id = (x_team_id or "").strip()
    if not user_id or not team_id:
        raise UnauthorizedError("Missing user or team identity")
    return Identity(user_id=user_id, team_id=team_id)


def get_config(request: Request) -> RuntimeConfig:
    """Return the config snapshot taken at startup."""
    config = getattr(request.app.state, "config", None)
    if config is None:
        config = RuntimeConfig.from_env()
        request.app.state.config = config
    return config


def get_backend(
    request: Request, config: RuntimeConfig = Depends(get_config)
) -> GenerationBackend:
    """Return the process-wide generation backend, creating it on first use."""
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        backend = create_backend(config)
        request.app.state.backend = backend
    return backend


def get_store(db: Session = Depends(get_db)) -> TranscriptStore:
    return TranscriptStore(db)


def get_agent(agent_slug: str) -> AgentDefinition:
    """Resolve the agent served under a URL slug.

    Raises:
        NotFoundError: Unknown slug.
    """
    agent = get_agent_by_slug(agent_slug)
    if agent is None:
        raise NotFoundError("Agent", agent_slug)
    return agent
