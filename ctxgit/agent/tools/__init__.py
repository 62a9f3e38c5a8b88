"""Agent tools module."""

from ctxgit.agent.tools.base import Tool
from ctxgit.agent.tools.registry import ToolRegistry
from ctxgit.agent.tools.memory import (
    MemoryTool,
    MemoryCommitTool,
    MemoryBranchTool,
    MemoryMergeTool,
    MemoryContextTool,
    MemoryLogTool,
    MemorySwitchTool,
    MemoryStatusTool,
    MemoryRememberTool,
    MemoryRecallTool,
    MemoryUpdateTool,
    MemoryForgetTool,
    MemoryListTool,
    create_memory_tools,
    register_memory_tools,
)

__all__ = [
    "Tool",
    "ToolRegistry",
    "MemoryTool",
    "MemoryCommitTool",
    "MemoryBranchTool",
    "MemoryMergeTool",
    "MemoryContextTool",
    "MemoryLogTool",
    "MemorySwitchTool",
    "MemoryStatusTool",
    "MemoryRememberTool",
    "MemoryRecallTool",
    "MemoryUpdateTool",
    "MemoryForgetTool",
    "MemoryListTool",
    "create_memory_tools",
    "register_memory_tools",
]
