"""MessageAI conversational agent runtime."""
