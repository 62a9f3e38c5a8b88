"""
Context retriever - read-only views of memory at several granularities.

Levels:
- roadmap: the roadmap document plus the branch directory
- branch: a branch's purpose and its last commits
- commits: a branch's full commit history document
- commit: one commit block, addressed by hash
- log: a scrollable window over a branch's trace log
- metadata: a branch's metadata document

Nothing here writes.
"""

from dataclasses import dataclass

from loguru import logger

from ctxgit.agent.memory.errors import InvalidArgument, NotFound
from ctxgit.agent.memory.store import BranchStore, RoadmapStore

LEVELS = ("roadmap", "branch", "commits", "commit", "log", "metadata")


@dataclass
class LogWindow:
    """
    A slice of a trace log.

    ``lines`` covers ``[start, end)`` of ``total`` lines, where the window is
    measured back from the end of the log.
    """

    branch: str
    lines: list[str]
    start: int
    end: int
    total: int
    line_count: int
    offset: int

    @property
    def has_earlier(self) -> bool:
        return self.start > 0

    @property
    def has_later(self) -> bool:
        return self.end < self.total

    def render(self) -> str:
        header = f"# Log for branch: {self.branch}"
        if self.total == 0:
            return f"{header}\n(Log is empty)"
        if self.start == self.end:
            parts = [header, f"(Offset {self.offset} is past the end of the log ({self.total} lines))"]
        else:
            parts = [header, f"(Showing lines {self.start + 1}-{self.end} of {self.total})"]
        if self.has_earlier:
            parts.append(f"[scroll up: use offset={self.offset + self.line_count}]")
        if self.has_later:
            # clamp to the oldest full window
            down = max(0, min(self.offset - self.line_count, self.total - self.line_count))
            parts.append(f"[scroll down: use offset={down}]")
        return "\n".join(parts) + "\n\n" + "\n".join(self.lines)


class ContextRetriever:
    """Composes textual views of the branch hierarchy."""

    def __init__(
        self,
        store: BranchStore,
        roadmap: RoadmapStore,
        branch_commits: int = 10,
        log_lines: int = 20,
    ):
        self.store = store
        self.roadmap_store = roadmap
        self.branch_commits = branch_commits
        self.log_lines = log_lines

    def context(
        self,
        level: str,
        branch: str,
        current: str | None = None,
        commit_hash: str | None = None,
        lines: int | None = None,
        offset: int | None = None,
    ) -> str:
        """
        Render one view.

        Args:
            level: One of ``LEVELS``.
            branch: Branch to inspect (ignored for ``roadmap``).
            current: Active branch name, shown by the roadmap view.
            commit_hash: Commit to show for ``level="commit"``.
            lines: Window size for ``level="log"``.
            offset: Lines skipped from the end for ``level="log"``.

        Raises:
            InvalidArgument: Unknown level or missing/invalid parameter.
            NotFound: Branch, commit or document absent.
        """
        logger.debug(f"Context level={level} branch={branch}")
        if level == "roadmap":
            return self.roadmap(current or branch)
        if level == "branch":
            return self.branch(branch)
        if level == "commits":
            return self.commits(branch)
        if level == "commit":
            return self.commit(branch, commit_hash)
        if level == "log":
            return self.log_window(branch, lines, offset).render()
        if level == "metadata":
            return self.metadata(branch)
        raise InvalidArgument(f"Invalid level '{level}'. Use: {', '.join(LEVELS)}")

    def roadmap(self, current: str) -> str:
        """Roadmap verbatim plus an enumerated branch listing."""
        roadmap = self.roadmap_store.read() or "# Project Roadmap\n\nNo roadmap yet."
        branches = self.store.list_branches()
        listing = "\n".join(
            f"{i}. {name}{' (active)' if name == current else ''}"
            for i, name in enumerate(branches, 1)
        )
        return (
            f"{roadmap.rstrip()}\n\n## Available Branches\n"
            f"Current: {current}\n{listing or 'No branches yet'}"
        )

    def branch(self, branch: str) -> str:
        """Purpose and the most recent commits, oldest first."""
        self._require(branch)
        history = self.store.load_history(branch)

        recent = history.commits[-self.branch_commits:]
        commit_lines = "\n".join(f"- {c.hash}: {c.message}" for c in recent)
        text = (
            f"# Branch: {branch}\n\n## Purpose\n{history.resolve_purpose('No purpose defined')}\n\n"
            f"## Last {self.branch_commits} Commits\n{commit_lines or 'No commits yet'}"
        )

        merges = history.merges
        if merges:
            merge_lines = "\n".join(f"- {m.source} ({m.timestamp}): {m.summary}" for m in merges)
            text += f"\n\n## Merged Branches\n{merge_lines}"
        return text

    def commits(self, branch: str) -> str:
        """The full commit history document."""
        self._require(branch)
        return self.store.read_commits(branch)

    def commit(self, branch: str, commit_hash: str | None) -> str:
        """A single commit block."""
        self._require(branch)
        if not commit_hash or not commit_hash.strip():
            raise InvalidArgument("commit_hash required for level='commit'")
        record = self.store.load_history(branch).find_commit(commit_hash)
        if record is None:
            raise NotFound(f"Commit '{commit_hash}' not found in branch '{branch}'")
        return record.render().strip()

    def log_window(self, branch: str, lines: int | None = None, offset: int | None = None) -> LogWindow:
        """
        Window over the trace log: ``[total - lines - offset, total - offset)``
        clamped to ``[0, total]``.
        """
        line_count = self.log_lines if lines is None else lines
        offset = 0 if offset is None else offset
        if line_count <= 0:
            raise InvalidArgument("lines must be positive")
        if offset < 0:
            raise InvalidArgument("offset must not be negative")
        if not self.store.exists(branch) and not self.store.log_path(branch).exists():
            raise NotFound(f"No logs for branch '{branch}'")

        all_lines = self.store.read_log(branch).splitlines()
        total = len(all_lines)
        end = max(0, total - offset)
        start = max(0, end - line_count)

        return LogWindow(
            branch=branch,
            lines=all_lines[start:end],
            start=start,
            end=end,
            total=total,
            line_count=line_count,
            offset=offset,
        )

    def metadata(self, branch: str) -> str:
        """The metadata document verbatim."""
        text = self.store.read_metadata_text(branch) if self.store.metadata_path(branch).exists() else None
        if text is None:
            raise NotFound(f"No metadata for branch '{branch}'")
        return text

    def _require(self, branch: str) -> None:
        if not self.store.exists(branch):
            raise NotFound(f"Branch '{branch}' not found")
