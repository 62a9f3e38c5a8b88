"""Tool registry for dynamic tool management."""

from typing import Any

from loguru import logger

from ctxgit.agent.memory.errors import MemoryStoreError
from ctxgit.agent.tools.base import Tool

FAILURE = "✗"
SUCCESS = "✓"


class ToolRegistry:
    """
    Registry for agent tools.

    Allows dynamic registration and execution of tools. Execution never
    raises: every failure comes back as text starting with ``✗``.
    """

    def __init__(self):
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> None:
        """Unregister a tool by name."""
        self._tools.pop(name, None)

    def get(self, name: str) -> Tool | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def has(self, name: str) -> bool:
        """Check if a tool is registered."""
        return name in self._tools

    def get_definitions(self) -> list[dict[str, Any]]:
        """Get all tool definitions in OpenAI format."""
        return [tool.to_schema() for tool in self._tools.values()]

    async def execute(self, name: str, params: dict[str, Any]) -> str:
        """
        Execute a tool by name with given parameters.

        Args:
            name: Tool name.
            params: Tool parameters.

        Returns:
            Tool execution result as string.
        """
        tool = self._tools.get(name)
        if not tool:
            return f"{FAILURE} Tool '{name}' not found"

        params = {k: v for k, v in params.items() if v is not None}
        errors = tool.validate_params(params)
        if errors:
            return f"{FAILURE} Invalid parameters for tool '{name}': " + "; ".join(errors)

        try:
            return await tool.execute(**params)
        except MemoryStoreError as e:
            return f"{FAILURE} {e}"
        except Exception as e:
            logger.error(f"Tool '{name}' failed: {e}")
            return f"{FAILURE} Error executing {name}: {str(e)}"

    @property
    def tool_names(self) -> list[str]:
        """Get list of registered tool names."""
        return list(self._tools.keys())

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools
