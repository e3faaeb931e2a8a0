"""Runtime configuration resolved from environment variables.

Every setting has a small accessor so tests can monkeypatch the environment
and rebuild a RuntimeConfig without reloading modules. The database URL is
resolved separately in ``messageai.db.connection`` because the engine is
created at import time.
"""

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Default model resolution:
# 1) AGENT_MODEL (preferred)
# 2) ANTHROPIC_MODEL (backward compatibility)
# 3) Claude Haiku 4.5 (cost-optimized default)
DEFAULT_MODEL = "claude-haiku-4-5-20251001"
DEFAULT_MAX_TOKENS = 2048
DEFAULT_TEMPERATURE = 0.7
DEFAULT_CONTEXT_MESSAGES = 20
DEFAULT_HEARTBEAT_SECONDS = 15.0
DEFAULT_ALLOWED_ORIGINS = ("http://localhost:3000", "http://localhost:5173")


def _env_int(name: str, default: int) -> int:
    """Read a positive integer env var, falling back on bad input."""
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r, using %s", name, raw, default)
        return default
    if value <= 0:
        logger.warning("Ignoring non-positive %s=%r, using %s", name, raw, default)
        return default
    return value


def _env_float(name: str, default: float) -> float:
    """Read a non-negative float env var, falling back on bad input."""
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r, using %s", name, raw, default)
        return default
    if value < 0:
        logger.warning("Ignoring negative %s=%r, using %s", name, raw, default)
        return default
    return value


def get_agent_model() -> str:
    """Return the model identifier used for every agent turn."""
    return (
        os.environ.get("AGENT_MODEL", "").strip()
        or os.environ.get("ANTHROPIC_MODEL", "").strip()
        or DEFAULT_MODEL
    )


def get_anthropic_api_key() -> str | None:
    """Return the provider API key, or None when unset."""
    return os.environ.get("ANTHROPIC_API_KEY", "").strip() or None


def get_max_tokens() -> int:
    """Return the per-turn completion token cap."""
    return _env_int("AGENT_MAX_TOKENS", DEFAULT_MAX_TOKENS)


def get_temperature() -> float:
    """Return the sampling temperature."""
    return _env_float("AGENT_TEMPERATURE", DEFAULT_TEMPERATURE)


def get_context_messages() -> int:
    """Return the transcript window size sent with each turn."""
    return _env_int("AGENT_CONTEXT_MESSAGES", DEFAULT_CONTEXT_MESSAGES)


def get_heartbeat_seconds() -> float:
    """Return the SSE heartbeat interval in seconds."""
    value = _env_float("SSE_HEARTBEAT_SECONDS", DEFAULT_HEARTBEAT_SECONDS)
    return value if value > 0 else DEFAULT_HEARTBEAT_SECONDS


def get_allowed_origins() -> list[str]:
    """Return CORS origins from ALLOWED_ORIGINS (comma separated)."""
    raw = os.environ.get("ALLOWED_ORIGINS", "").strip()
    if not raw:
        return list(DEFAULT_ALLOWED_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass(frozen=True)
class RuntimeConfig:
    """Immutable snapshot of runtime settings taken at process start.

    Attributes:
        model: Model identifier passed to the generation backend.
        api_key: Provider API key (None lets the SDK read its own env).
        max_tokens: Completion token cap per turn.
        temperature: Sampling temperature.
        context_messages: Transcript entries included in each turn's context.
        heartbeat_seconds: Interval between SSE heartbeat comments.
        allowed_origins: CORS origins for the HTTP app.
    """

    model: str = DEFAULT_MODEL
    api_key: str | None = None
    max_tokens: int = DEFAULT_MAX_TOKENS
    temperature: float = DEFAULT_TEMPERATURE
    context_messages: int = DEFAULT_CONTEXT_MESSAGES
    heartbeat_seconds: float = DEFAULT_HEARTBEAT_SECONDS
    allowed_origins: tuple[str, ...] = field(default=DEFAULT_ALLOWED_ORIGINS)

    @classmethod
    def from_env(cls) -> "RuntimeConfig":
        """Build a config from the current environment."""
        return cls(
            model=get_agent_model(),
            api_key=get_anthropic_api_key(),
            max_tokens=get_max_tokens(),
            temperature=get_temperature(),
            context_messages=get_context_messages(),
            heartbeat_seconds=get_heartbeat_seconds(),
            allowed_origins=tuple(get_allowed_origins()),
        )
