"""
Document storage for the branch hierarchy.

Layout under the context root::

    main.md                  roadmap
    current_branch           active-branch pointer
    branches/<name>/commit.md      rendered commit history (existence witness)
    branches/<name>/history.jsonl  structured commit history
    branches/<name>/log.md         trace log
    branches/<name>/metadata.yaml  branch metadata

Every write replaces a whole document. Reads of missing documents return
empty content; callers check ``exists`` when absence matters.
"""

import re
from pathlib import Path

from loguru import logger

from ctxgit.agent.memory.branch import BranchMetadata
from ctxgit.agent.memory.commit import HistoryEntry
from ctxgit.agent.memory.errors import InvalidArgument
from ctxgit.agent.memory.history import MAIN_BRANCH, BranchHistory, parse_history
from ctxgit.agent.memory.ledger import HistoryLedger
from ctxgit.utils.helpers import ensure_dir, today_date, timestamp

_BRANCH_NAME_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._\-]*$")

ROADMAP_TITLE = "# Project Roadmap"


def validate_branch_name(name: str) -> str:
    """
    Check a branch name is usable as a single directory name.

    Raises:
        InvalidArgument: For empty names, path separators or dot-only names.
    """
    name = (name or "").strip()
    if not name or not _BRANCH_NAME_RE.match(name) or set(name) <= {"."}:
        raise InvalidArgument(f"Invalid branch name: '{name}'")
    return name


class BranchStore:
    """
    Maps a branch name to its commit history, trace log and metadata documents.

    Attributes:
        root: Context root directory.
        branches_dir: Directory holding one subdirectory per branch.
    """

    COMMIT_FILE = "commit.md"
    LEDGER_FILE = "history.jsonl"
    LOG_FILE = "log.md"
    METADATA_FILE = "metadata.yaml"

    def __init__(self, root: Path):
        self.root = ensure_dir(root)
        self.branches_dir = ensure_dir(root / "branches")

    # =========================================================================
    # Paths
    # =========================================================================

    def branch_dir(self, branch: str) -> Path:
        return self.branches_dir / validate_branch_name(branch)

    def commit_path(self, branch: str) -> Path:
        return self.branch_dir(branch) / self.COMMIT_FILE

    def log_path(self, branch: str) -> Path:
        return self.branch_dir(branch) / self.LOG_FILE

    def metadata_path(self, branch: str) -> Path:
        return self.branch_dir(branch) / self.METADATA_FILE

    def ledger(self, branch: str) -> HistoryLedger:
        return HistoryLedger(self.branch_dir(branch) / self.LEDGER_FILE)

    # =========================================================================
    # Existence
    # =========================================================================

    def ensure(self, branch: str) -> Path:
        """Create the branch directory if needed. Idempotent."""
        return ensure_dir(self.branch_dir(branch))

    def exists(self, branch: str) -> bool:
        """A branch exists when its commit history document exists."""
        try:
            return self.commit_path(branch).exists()
        except InvalidArgument:
            return False

    def list_branches(self) -> list[str]:
        """List branch directory names, sorted."""
        return sorted(p.name for p in self.branches_dir.iterdir() if p.is_dir())

    # =========================================================================
    # Raw documents
    # =========================================================================

    def read_commits(self, branch: str) -> str:
        return _read(self.commit_path(branch))

    def read_log(self, branch: str) -> str:
        return _read(self.log_path(branch))

    def write_log(self, branch: str, content: str) -> None:
        self.ensure(branch)
        self.log_path(branch).write_text(content, encoding="utf-8")

    def read_metadata_text(self, branch: str) -> str:
        return _read(self.metadata_path(branch))

    # =========================================================================
    # Structured documents
    # =========================================================================

    def load_history(self, branch: str) -> BranchHistory:
        """
        Load a branch's structured history.

        The ledger is used while commit.md still matches its rendering. When
        there is no ledger, or commit.md was edited outside the engine, the
        history is parsed from commit.md; the next write rebuilds the ledger.
        """
        ledger = self.ledger(branch)
        text = self.read_commits(branch)
        if ledger.exists():
            history = ledger.load(branch)
            if not text or history.render() == text:
                return history
            logger.warning(f"{self.COMMIT_FILE} of branch '{branch}' was edited outside ctxgit, re-reading it")
        elif text:
            logger.debug(f"No ledger for branch '{branch}', recovering history from {self.COMMIT_FILE}")
        return parse_history(branch, text)

    def _ledger_in_sync(self, branch: str) -> bool:
        ledger = self.ledger(branch)
        return ledger.exists() and ledger.load(branch).render() == self.read_commits(branch)

    def save_history(self, history: BranchHistory) -> None:
        """Replace the ledger and re-render commit.md."""
        self.ensure(history.branch)
        self.ledger(history.branch).write(history)
        self.commit_path(history.branch).write_text(history.render(), encoding="utf-8")

    def append_entry(self, history: BranchHistory, entry: HistoryEntry) -> None:
        """
        Append one commit or merge block to a branch's history.

        ``history`` must be the branch's current history (see ``load_history``);
        it is updated in place. A missing or stale ledger is rewritten whole.
        """
        in_sync = self._ledger_in_sync(history.branch)
        history.append(entry)
        if in_sync:
            self.ledger(history.branch).append(entry)
            self.commit_path(history.branch).write_text(history.render(), encoding="utf-8")
        else:
            self.save_history(history)

    def load_metadata(self, branch: str) -> BranchMetadata:
        return BranchMetadata.from_yaml(branch, self.read_metadata_text(branch))

    def save_metadata(self, metadata: BranchMetadata) -> None:
        self.ensure(metadata.name)
        self.metadata_path(metadata.name).write_text(metadata.to_yaml(), encoding="utf-8")


class ActiveBranch:
    """Persisted pointer naming the branch unqualified operations target."""

    def __init__(self, pointer_file: Path):
        self.pointer_file = pointer_file

    def get(self) -> str:
        """Read the pointer; ``main`` when absent or empty."""
        if self.pointer_file.exists():
            name = self.pointer_file.read_text(encoding="utf-8").strip()
            if name:
                return name
        return MAIN_BRANCH

    def set(self, branch: str) -> None:
        self.pointer_file.write_text(validate_branch_name(branch), encoding="utf-8")


class RoadmapStore:
    """The single cross-branch roadmap document."""

    def __init__(self, path: Path):
        self.path = path

    def ensure_initialized(self) -> None:
        """Create the roadmap with its default sections if missing."""
        if not self.path.exists():
            self.path.write_text(
                f"{ROADMAP_TITLE}\n\nInitialized at {timestamp()}\n\n## Goals\n\n## Milestones\n\n",
                encoding="utf-8",
            )

    def read(self) -> str:
        return _read(self.path)

    def append_line(self, line: str) -> None:
        """Append one line to the roadmap."""
        content = self.read() or f"{ROADMAP_TITLE}\n\n"
        self.path.write_text(content + f"\n{line}\n", encoding="utf-8")

    def append_milestone(self, message: str) -> None:
        self.append_line(f"- [{today_date()}] {message}")

    def append_merge(self, source: str, destination: str, summary: str) -> None:
        self.append_line(f"- [MERGE] {source} → {destination}: {summary}")

    def summary(self, limit: int = 500) -> str:
        """First ``limit`` characters, with ``...`` when truncated."""
        content = self.read()
        if len(content) > limit:
            return content[:limit] + "..."
        return content


def _read(path: Path) -> str:
    if path.exists():
        return path.read_text(encoding="utf-8")
    return ""
