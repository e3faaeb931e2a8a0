"""API route modules."""

from messageai.api.routes import agents, conversations

__all__ = ["agents", "conversations"]
