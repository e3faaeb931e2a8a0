"""Tests for RuntimeConfig environment resolution."""

from messageai.config import (
    DEFAULT_ALLOWED_ORIGINS,
    DEFAULT_CONTEXT_MESSAGES,
    DEFAULT_HEARTBEAT_SECONDS,
    DEFAULT_MODEL,
    RuntimeConfig,
    get_agent_model,
)

ENV_VARS = (
    "AGENT_MODEL",
    "ANTHROPIC_MODEL",
    "ANTHROPIC_API_KEY",
    "AGENT_MAX_TOKENS",
    "AGENT_TEMPERATURE",
    "AGENT_CONTEXT_MESSAGES",
    "SSE_HEARTBEAT_SECONDS",
    "ALLOWED_ORIGINS",
)


def _clear(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults(monkeypatch):
    _clear(monkeypatch)
    config = RuntimeConfig.from_env()
    assert config.model == DEFAULT_MODEL
    assert config.api_key is None
    assert config.context_messages == DEFAULT_CONTEXT_MESSAGES
    assert config.heartbeat_seconds == DEFAULT_HEARTBEAT_SECONDS
    assert config.allowed_origins == DEFAULT_ALLOWED_ORIGINS


def test_agent_model_precedence(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("ANTHROPIC_MODEL", "legacy-model")
    assert get_agent_model() == "legacy-model"
    monkeypatch.setenv("AGENT_MODEL", "preferred-model")
    assert get_agent_model() == "preferred-model"


def test_numeric_overrides(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("AGENT_CONTEXT_MESSAGES", "8")
    monkeypatch.setenv("AGENT_MAX_TOKENS", "512")
    monkeypatch.setenv("AGENT_TEMPERATURE", "0.2")
    monkeypatch.setenv("SSE_HEARTBEAT_SECONDS", "5")

    config = RuntimeConfig.from_env()

    assert config.context_messages == 8
    assert config.max_tokens == 512
    assert config.temperature == 0.2
    assert config.heartbeat_seconds == 5.0


def test_bad_values_fall_back(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv("AGENT_CONTEXT_MESSAGES", "lots")
    monkeypatch.setenv("AGENT_MAX_TOKENS", "-1")
    monkeypatch.setenv("SSE_HEARTBEAT_SECONDS", "0")

    config = RuntimeConfig.from_env()

    assert config.context_messages == DEFAULT_CONTEXT_MESSAGES
    assert config.max_tokens == 2048
    assert config.heartbeat_seconds == DEFAULT_HEARTBEAT_SECONDS


def test_allowed_origins_csv(monkeypatch):
    _clear(monkeypatch)
    monkeypatch.setenv(
        "ALLOWED_ORIGINS", "http://localhost:5173, https://example.com ,"
    )
    assert RuntimeConfig.from_env().allowed_origins == (
        "http://localhost:5173",
        "https://example.com",
    )
