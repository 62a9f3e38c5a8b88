"""
Memory controller - one entry point over the branch hierarchy and the legacy index.

The active branch is read from its pointer file once per operation into a
``MemorySession`` and passed explicitly to the engines from there on.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from loguru import logger

from ctxgit.agent.memory.branches import BranchEngine
from ctxgit.agent.memory.commit import CommitRecord, MergeBlock
from ctxgit.agent.memory.committer import CommitEngine
from ctxgit.agent.memory.history import BranchHistory
from ctxgit.agent.memory.legacy import IndexOverview, LegacyMemoryIndex, LegacyRecord, RecallResult
from ctxgit.agent.memory.merge import MergeEngine
from ctxgit.agent.memory.store import ActiveBranch, BranchStore, RoadmapStore
from ctxgit.agent.memory.trace import LogEntry, TraceLogger
from ctxgit.agent.memory.view import ContextRetriever
from ctxgit.config.schema import Config, MemoryConfig
from ctxgit.utils.helpers import ensure_dir


@dataclass
class MemorySession:
    """The branch an operation works on, fixed when the operation starts."""

    branch: str


class MemoryController:
    """
    Versioned memory for an agent.

    Directory layout under ``root``::

        .ctx/                branch hierarchy (see ``store.BranchStore``)
        YYYY-MM-DD.logfmt    legacy records (unless ``legacy_dir`` is set)
        deletions.logfmt     legacy deletion audit

    Attributes:
        root: Memory root directory.
        store: Branch document store.
        roadmap: Roadmap document.
        active: Active-branch pointer.
        index: Legacy flat record index.
    """

    CONTEXT_DIR = ".ctx"

    def __init__(
        self,
        root: Path,
        legacy_dir: Path | None = None,
        config: MemoryConfig | None = None,
    ):
        self.config = config or MemoryConfig()
        self.root = ensure_dir(root)
        context_dir = ensure_dir(root / self.CONTEXT_DIR)

        self.store = BranchStore(context_dir)
        self.roadmap = RoadmapStore(context_dir / "main.md")
        self.active = ActiveBranch(context_dir / "current_branch")

        self.committer = CommitEngine(self.store, self.roadmap)
        self.branches = BranchEngine(self.store, self.active)
        self.merger = MergeEngine(self.store, self.roadmap, inline_history=self.config.merge_inline_history)
        self.retriever = ContextRetriever(
            self.store,
            self.roadmap,
            branch_commits=self.config.branch_commits,
            log_lines=self.config.log_lines,
        )
        self.tracer = TraceLogger(self.store)
        self.index = LegacyMemoryIndex(legacy_dir or root)

        self._ensure_initialized()

    @classmethod
    def from_config(cls, config: Config) -> "MemoryController":
        """Build a controller from the root configuration."""
        return cls(config.memory_path, legacy_dir=config.legacy_path, config=config.memory)

    def _ensure_initialized(self) -> None:
        """Create main, the roadmap and the pointer on first use."""
        if self.branches.ensure_main():
            logger.info(f"Initialized memory at {self.root}")
        self.roadmap.ensure_initialized()
        if not self.active.pointer_file.exists():
            self.active.set("main")

    # =========================================================================
    # Session
    # =========================================================================

    def session(self) -> MemorySession:
        """Read the active-branch pointer once."""
        return MemorySession(branch=self.active.get())

    def _session(self, session: MemorySession | None) -> MemorySession:
        return session if session is not None else self.session()

    # =========================================================================
    # Branch hierarchy
    # =========================================================================

    def commit(
        self,
        message: str,
        contribution: str,
        update_roadmap: bool = False,
        session: MemorySession | None = None,
    ) -> CommitRecord:
        """Checkpoint the session's branch."""
        session = self._session(session)
        return self.committer.commit(session.branch, message, contribution, update_roadmap)

    def create_branch(self, name: str, purpose: str, session: MemorySession | None = None) -> BranchHistory:
        """Create a branch and make it the active one."""
        session = self._session(session)
        history = self.branches.create(name, purpose)
        session.branch = history.branch
        return history

    def switch(self, name: str, session: MemorySession | None = None) -> str:
        """Switch the active branch. Returns the previous branch."""
        session = self._session(session)
        previous = self.branches.switch(name)
        session.branch = name.strip()
        return previous

    def merge(self, source: str, summary: str, session: MemorySession | None = None) -> MergeBlock:
        """Merge ``source`` into the session's branch."""
        session = self._session(session)
        return self.merger.merge(source, session.branch, summary)

    def context(
        self,
        level: str = "roadmap",
        branch_name: str | None = None,
        commit_hash: str | None = None,
        lines: int | None = None,
        offset: int | None = None,
        session: MemorySession | None = None,
    ) -> str:
        """Render a context view; ``branch_name`` defaults to the session's branch."""
        session = self._session(session)
        return self.retriever.context(
            level,
            branch_name or session.branch,
            current=session.branch,
            commit_hash=commit_hash,
            lines=lines,
            offset=offset,
        )

    def log(
        self,
        observation: str | None = None,
        thought: str | None = None,
        action: str | None = None,
        entry: str | None = None,
        session: MemorySession | None = None,
    ) -> LogEntry:
        """Append to the session branch's trace log."""
        session = self._session(session)
        return self.tracer.log(session.branch, observation, thought, action, entry)

    def list_branches(self) -> list[str]:
        return self.store.list_branches()

    def status(self, session: MemorySession | None = None) -> dict[str, Any]:
        """Summary of the active branch and the hierarchy."""
        session = self._session(session)
        history = self.store.load_history(session.branch)
        return {
            "branch": session.branch,
            "exists": self.store.exists(session.branch),
            "purpose": history.resolve_purpose(),
            "commits": len(history.commits),
            "merges": len(history.merges),
            "log_lines": len(self.store.read_log(session.branch).splitlines()),
            "branches": self.store.list_branches(),
            "records": sum(1 for _ in self.index.iter_records()),
        }

    # =========================================================================
    # Legacy index (writes are mirrored into the trace log)
    # =========================================================================

    def remember(
        self,
        type: str,
        scope: str,
        content: str,
        issue: str | None = None,
        tags: list[str] | None = None,
        session: MemorySession | None = None,
    ) -> LegacyRecord:
        session = self._session(session)
        record = self.index.remember(type, scope, content, issue=issue, tags=tags)

        lines = [f"**Memory Added**: {record.type} / {record.scope}", f"Content: {record.content}"]
        if record.issue:
            lines.append(f"Issue: {record.issue}")
        if record.tags:
            lines.append(f"Tags: {', '.join(record.tags)}")
        self.tracer.log(session.branch, entry="\n".join(lines))
        return record

    def recall(
        self,
        scope: str | None = None,
        type: str | None = None,
        query: str | None = None,
        limit: int | None = None,
    ) -> RecallResult:
        return self.index.recall(scope=scope, type=type, query=query, limit=limit or self.config.recall_limit)

    def update(
        self,
        scope: str,
        type: str,
        content: str,
        query: str | None = None,
        issue: str | None = None,
        tags: list[str] | None = None,
        session: MemorySession | None = None,
    ) -> tuple[LegacyRecord, LegacyRecord]:
        session = self._session(session)
        before, after = self.index.update(scope, type, content, query=query, issue=issue, tags=tags)
        self.tracer.log(
            session.branch,
            entry=f"**Memory Updated**: {type} / {scope}\nBefore: {before.content}\nAfter: {after.content}",
        )
        return before, after

    def forget(
        self,
        scope: str,
        type: str,
        reason: str,
        session: MemorySession | None = None,
    ) -> list[LegacyRecord]:
        session = self._session(session)
        removed = self.index.forget(scope, type, reason)
        if removed:
            self.tracer.log(
                session.branch,
                entry=f"**Memory Forgotten**: {type} / {scope} ({len(removed)} removed)\nReason: {reason}",
            )
        return removed

    def overview(self) -> IndexOverview:
        return self.index.overview()
