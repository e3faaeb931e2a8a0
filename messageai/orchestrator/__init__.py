"""Agent orchestration: runtime core, agent definitions and scoring."""
