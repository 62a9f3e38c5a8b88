"""Agent-facing memory: the engine and the tools that expose it."""
