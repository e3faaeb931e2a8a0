"""Agent runtime core.

Submodules are imported directly (``messageai.orchestrator.agent.runtime``)
so that importing the definitions package does not pull in the backend.
"""
