"""Memory tools for the agent.

Each tool reads the active branch once, runs one memory operation and returns
a single text block: ``✓ ...`` on success, ``✗ ...`` on failure.
"""

from abc import abstractmethod
from typing import Any

from ctxgit.agent.memory.controller import MemoryController, MemorySession
from ctxgit.agent.memory.errors import AmbiguousMatch, MemoryStoreError
from ctxgit.agent.memory.legacy import MEMORY_TYPES, LegacyRecord
from ctxgit.agent.memory.view import LEVELS
from ctxgit.agent.tools.base import Tool
from ctxgit.agent.tools.registry import FAILURE, SUCCESS, ToolRegistry

_TYPE_PROPERTY = {
    "type": "string",
    "enum": list(MEMORY_TYPES),
    "description": "Type of memory",
}


class MemoryTool(Tool):
    """Base for memory tools: session handling and error-to-text conversion."""

    def __init__(self, memory: MemoryController):
        self._memory = memory

    async def execute(self, **kwargs: Any) -> str:
        session = self._memory.session()
        try:
            return self.run(session, **kwargs)
        except MemoryStoreError as e:
            return f"{FAILURE} {e}"

    @abstractmethod
    def run(self, session: MemorySession, **kwargs: Any) -> str:
        """Run the operation against ``session``'s branch."""
        pass


# =============================================================================
# Branch hierarchy
# =============================================================================

class MemoryCommitTool(MemoryTool):
    """Checkpoint meaningful progress as a milestone."""

    @property
    def name(self) -> str:
        return "memory_commit"

    @property
    def description(self) -> str:
        return (
            "COMMIT: checkpoint meaningful progress as a coherent milestone (like git commit). "
            "Folds the previous progress into a running summary and clears the trace log."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "message": {"type": "string", "description": "Commit message summarizing the milestone"},
                "contribution": {"type": "string", "description": "Detailed description of what was achieved"},
                "update_roadmap": {"type": "boolean", "description": "Also add a milestone line to the roadmap (default: false)"},
            },
            "required": ["message", "contribution"],
        }

    def run(
        self,
        session: MemorySession,
        message: str,
        contribution: str,
        update_roadmap: bool = False,
        **kwargs: Any,
    ) -> str:
        record = self._memory.commit(message, contribution, update_roadmap=update_roadmap, session=session)
        return f"{SUCCESS} Committed [{record.hash}] on branch '{session.branch}': {record.message}"


class MemoryBranchTool(MemoryTool):
    """Create a branch to explore an alternative."""

    @property
    def name(self) -> str:
        return "memory_branch"

    @property
    def description(self) -> str:
        return "BRANCH: create a new branch to explore an alternative approach without affecting the current one, and switch to it."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "name": {"type": "string", "description": "Branch name (e.g., 'oauth-experiment')"},
                "purpose": {"type": "string", "description": "Why this branch? What are you exploring?"},
            },
            "required": ["name", "purpose"],
        }

    def run(self, session: MemorySession, name: str, purpose: str, **kwargs: Any) -> str:
        history = self._memory.create_branch(name, purpose, session=session)
        return f"{SUCCESS} Created and switched to branch '{history.branch}'\nPurpose: {history.purpose}"


class MemorySwitchTool(MemoryTool):
    """Switch the active branch."""

    @property
    def name(self) -> str:
        return "memory_switch"

    @property
    def description(self) -> str:
        return "SWITCH: make another existing branch the active one."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "branch": {"type": "string", "description": "Branch name to switch to"},
            },
            "required": ["branch"],
        }

    def run(self, session: MemorySession, branch: str, **kwargs: Any) -> str:
        self._memory.switch(branch, session=session)
        return f"{SUCCESS} Switched to branch '{session.branch}'"


class MemoryMergeTool(MemoryTool):
    """Merge a finished branch into the active branch."""

    PROGRESS_PREVIEW = 200

    @property
    def name(self) -> str:
        return "memory_merge"

    @property
    def description(self) -> str:
        return (
            "MERGE: fold a completed branch back into the current branch. Retrieves the "
            "merged branch's purpose and progress automatically; the merged branch is left unchanged."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "branch": {"type": "string", "description": "Branch to merge"},
                "summary": {"type": "string", "description": "Summary of branch outcome and integration"},
            },
            "required": ["branch", "summary"],
        }

    def run(self, session: MemorySession, branch: str, summary: str, **kwargs: Any) -> str:
        block = self._memory.merge(branch, summary, session=session)
        progress = block.source_progress
        if len(progress) > self.PROGRESS_PREVIEW:
            progress = progress[: self.PROGRESS_PREVIEW] + "..."
        return (
            f"{SUCCESS} Merged '{block.source}' into '{block.destination}'\n\n"
            f"## Merged Branch Context (Auto-Retrieved)\n"
            f"Purpose: {block.source_purpose}\n"
            f"Progress: {progress}\n\n"
            f"{block.summary}"
        )


class MemoryContextTool(MemoryTool):
    """Retrieve memory at several levels of detail."""

    @property
    def name(self) -> str:
        return "memory_context"

    @property
    def description(self) -> str:
        return (
            "CONTEXT: retrieve memory at multiple levels. roadmap: project overview and branches; "
            "branch: purpose and last commits; commits: full history; commit: one commit by hash; "
            "log: scrollable trace log; metadata: branch metadata."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "level": {"type": "string", "enum": list(LEVELS), "description": "Level of detail (default: roadmap)"},
                "branch_name": {"type": "string", "description": "Branch to inspect (default: current branch)"},
                "commit_hash": {"type": "string", "description": "Commit hash for level='commit'"},
                "lines": {"type": "integer", "minimum": 1, "description": "Number of log lines to show (default: 20)"},
                "offset": {"type": "integer", "minimum": 0, "description": "Lines to skip from the end of the log (default: 0)"},
            },
            "required": [],
        }

    def run(
        self,
        session: MemorySession,
        level: str = "roadmap",
        branch_name: str | None = None,
        commit_hash: str | None = None,
        lines: int | None = None,
        offset: int | None = None,
        **kwargs: Any,
    ) -> str:
        return self._memory.context(
            level,
            branch_name=branch_name,
            commit_hash=commit_hash,
            lines=lines,
            offset=offset,
            session=session,
        )


class MemoryLogTool(MemoryTool):
    """Append an Observation-Thought-Action step to the trace log."""

    @property
    def name(self) -> str:
        return "memory_log"

    @property
    def description(self) -> str:
        return "LOG: append an Observation-Thought-Action step, or a freeform entry, to the current branch's trace log."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "observation": {"type": "string", "description": "What was observed"},
                "thought": {"type": "string", "description": "What the agent thought"},
                "action": {"type": "string", "description": "What action was taken"},
                "entry": {"type": "string", "description": "Or just a freeform log entry"},
            },
            "required": [],
        }

    def run(
        self,
        session: MemorySession,
        observation: str | None = None,
        thought: str | None = None,
        action: str | None = None,
        entry: str | None = None,
        **kwargs: Any,
    ) -> str:
        self._memory.log(observation, thought, action, entry, session=session)
        return f"{SUCCESS} Logged to branch '{session.branch}'"


class MemoryStatusTool(MemoryTool):
    """Short status of the active branch."""

    @property
    def name(self) -> str:
        return "memory_status"

    @property
    def description(self) -> str:
        return "Show the current branch, its purpose, commit count and pending trace-log lines."

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}, "required": []}

    def run(self, session: MemorySession, **kwargs: Any) -> str:
        status = self._memory.status(session=session)
        return (
            f"Current branch: {status['branch']}\n"
            f"Purpose: {status['purpose']}\n"
            f"Commits: {status['commits']} (merges: {status['merges']})\n"
            f"Uncommitted log lines: {status['log_lines']}\n"
            f"Branches: {', '.join(status['branches'])}\n"
            f"Records: {status['records']}"
        )


# =============================================================================
# Legacy index
# =============================================================================

def _format_record(record: LegacyRecord, score: int | None = None) -> str:
    line = f"- [{record.ts[:10]}] {record}"
    if score is not None:
        line += f" (score: {score})"
    return line


class MemoryRememberTool(MemoryTool):
    """Store a typed, scoped memory record."""

    @property
    def name(self) -> str:
        return "memory_remember"

    @property
    def description(self) -> str:
        return (
            "Store a memory (decision, learning, preference, blocker, context, pattern). "
            "Also noted in the current branch's trace log."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "type": _TYPE_PROPERTY,
                "scope": {"type": "string", "description": "Scope/area (e.g., auth, api, mobile)"},
                "content": {"type": "string", "description": "The memory content"},
                "issue": {"type": "string", "description": "Related issue (e.g., #51)"},
                "tags": {"type": "array", "items": {"type": "string"}, "description": "Additional tags"},
            },
            "required": ["type", "scope", "content"],
        }

    def run(
        self,
        session: MemorySession,
        type: str,
        scope: str,
        content: str,
        issue: str | None = None,
        tags: list[str] | None = None,
        **kwargs: Any,
    ) -> str:
        record = self._memory.remember(type, scope, content, issue=issue, tags=tags, session=session)
        return f"{SUCCESS} Remembered: {record.type} in {record.scope} (logged to branch '{session.branch}')"


class MemoryRecallTool(MemoryTool):
    """Search memory records."""

    @property
    def name(self) -> str:
        return "memory_recall"

    @property
    def description(self) -> str:
        return "Retrieve memory records filtered by scope and type, ranked by relevance to an optional query."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search terms"},
                "scope": {"type": "string", "description": "Filter by scope (substring match)"},
                "type": {**_TYPE_PROPERTY, "description": "Filter by type"},
                "limit": {"type": "integer", "minimum": 1, "description": "Maximum results (default: 20)"},
            },
            "required": [],
        }

    def run(
        self,
        session: MemorySession,
        query: str | None = None,
        scope: str | None = None,
        type: str | None = None,
        limit: int | None = None,
        **kwargs: Any,
    ) -> str:
        result = self._memory.recall(scope=scope, type=type, query=query, limit=limit)
        if not result.records:
            return f"No matching memories found (searched {result.total})"

        lines = [f"Found {result.filtered} memories (total: {result.total}, filtered: {result.filtered}, shown: {result.shown})"]
        lines.extend(_format_record(r, result.score_of(r)) for r in result.records)
        return "\n".join(lines)


class MemoryUpdateTool(MemoryTool):
    """Replace the content of one memory record."""

    @property
    def name(self) -> str:
        return "memory_update"

    @property
    def description(self) -> str:
        return (
            "Update an existing memory identified by scope and type. When several match, "
            "pass a query to pick the most relevant one. The old version is kept in the audit log."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "scope": {"type": "string", "description": "Scope of the memory to update (substring match, as in recall)"},
                "type": _TYPE_PROPERTY,
                "content": {"type": "string", "description": "New content"},
                "query": {"type": "string", "description": "Disambiguates between several matches"},
                "issue": {"type": "string", "description": "New issue reference"},
                "tags": {"type": "array", "items": {"type": "string"}, "description": "New tags"},
            },
            "required": ["scope", "type", "content"],
        }

    def run(
        self,
        session: MemorySession,
        scope: str,
        type: str,
        content: str,
        query: str | None = None,
        issue: str | None = None,
        tags: list[str] | None = None,
        **kwargs: Any,
    ) -> str:
        try:
            before, after = self._memory.update(
                scope, type, content, query=query, issue=issue, tags=tags, session=session
            )
        except AmbiguousMatch as e:
            candidates = "\n".join(_format_record(r) for r in e.candidates)
            return f"{FAILURE} {e}\n{candidates}"
        return f"{SUCCESS} Updated {type} in {scope}\nBefore: {before.content}\nAfter: {after.content}"


class MemoryForgetTool(MemoryTool):
    """Remove memory records, keeping an audit copy."""

    @property
    def name(self) -> str:
        return "memory_forget"

    @property
    def description(self) -> str:
        return "Forget every memory with the given scope and type. Removed memories are kept in the audit log with the reason."

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "scope": {"type": "string", "description": "Scope of the memories to forget (substring match, as in recall)"},
                "type": _TYPE_PROPERTY,
                "reason": {"type": "string", "description": "Why these memories are removed"},
            },
            "required": ["scope", "type", "reason"],
        }

    def run(self, session: MemorySession, scope: str, type: str, reason: str, **kwargs: Any) -> str:
        removed = self._memory.forget(scope, type, reason, session=session)
        if not removed:
            return f"No {type} memories found in scope '{scope}' (0 removed)"
        return f"{SUCCESS} Forgot {len(removed)} {type} memories in scope '{scope}'\nReason: {reason}"


class MemoryListTool(MemoryTool):
    """Overview of scopes and types."""

    @property
    def name(self) -> str:
        return "memory_list"

    @property
    def description(self) -> str:
        return "List the scopes and types of stored memories with their counts."

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}, "required": []}

    def run(self, session: MemorySession, **kwargs: Any) -> str:
        overview = self._memory.overview()
        if not overview.total:
            return "No memories stored yet"

        lines = [f"{overview.total} memories", "", "## Scopes"]
        for summary in overview.scopes:
            types = ", ".join(f"{t}×{c}" for t, c in summary.types.items())
            lines.append(f"- {summary.scope} ({summary.count}): {types}")
        lines.extend(["", "## Types"])
        lines.extend(f"- {t}: {c}" for t, c in overview.types)
        return "\n".join(lines)


# =============================================================================
# Registration
# =============================================================================

def create_memory_tools(memory: MemoryController) -> list[Tool]:
    """Create every memory tool bound to ``memory``."""
    return [
        MemoryCommitTool(memory),
        MemoryBranchTool(memory),
        MemoryMergeTool(memory),
        MemoryContextTool(memory),
        MemoryLogTool(memory),
        MemorySwitchTool(memory),
        MemoryStatusTool(memory),
        MemoryRememberTool(memory),
        MemoryRecallTool(memory),
        MemoryUpdateTool(memory),
        MemoryForgetTool(memory),
        MemoryListTool(memory),
    ]


def register_memory_tools(registry: ToolRegistry, memory: MemoryController) -> ToolRegistry:
    """Register every memory tool in ``registry``."""
    for tool in create_memory_tools(memory):
        registry.register(tool)
    return registry
