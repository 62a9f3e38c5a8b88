"""Commit history entries: regular commits and merge blocks."""

from dataclasses import dataclass, field, asdict
from typing import Any, Literal, Union

# Field labels of the commit.md text layout. External tools read these.
COMMIT_LABEL = "**Commit**:"
MERGE_LABEL = "**MERGE**:"
TIME_LABEL = "**Time**:"
MESSAGE_LABEL = "**Message**:"
PURPOSE_HEADING = "## Branch Purpose"
SUMMARY_HEADING = "## Previous Progress Summary"
CONTRIBUTION_HEADING = "## This Commit's Contribution"
MERGE_SUMMARY_HEADING = "## Merge Summary"
MERGE_CONTEXT_HEADING = "## Merged Branch Context (Auto-Retrieved)"
MERGE_HISTORY_HEADING = "## Merged Commits from"
BLOCK_DELIMITER = "---"

INITIAL_SUMMARY = "Initial commit"


@dataclass
class CommitRecord:
    """
    An immutable checkpoint on a branch.

    Attributes:
        hash: Sortable identifier (see ``hash.new_commit_id``).
        timestamp: ISO-8601 creation time.
        message: Short milestone summary.
        purpose: Snapshot of the branch purpose at commit time.
        previous_summary: Cumulative narrative of everything before this commit.
        contribution: What this commit adds.
    """

    hash: str
    timestamp: str
    message: str
    purpose: str = ""
    previous_summary: str = ""
    contribution: str = ""
    kind: Literal["commit"] = field(default="commit", init=False)

    def folded_summary(self) -> str:
        """Summary the next commit inherits: this summary plus this contribution."""
        return fold_summary(self.previous_summary, self.contribution)

    def render(self) -> str:
        """Render as a commit.md block."""
        return (
            f"\n{BLOCK_DELIMITER}\n"
            f"{COMMIT_LABEL} {self.hash}\n"
            f"{TIME_LABEL} {self.timestamp}\n"
            f"{MESSAGE_LABEL} {self.message}\n"
            f"\n{PURPOSE_HEADING}\n{self.purpose}\n"
            f"\n{SUMMARY_HEADING}\n{self.previous_summary or INITIAL_SUMMARY}\n"
            f"\n{CONTRIBUTION_HEADING}\n{self.contribution}\n"
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CommitRecord":
        """Create from dictionary."""
        return cls(
            hash=data.get("hash", ""),
            timestamp=data.get("timestamp", ""),
            message=data.get("message", ""),
            purpose=data.get("purpose", ""),
            previous_summary=data.get("previous_summary", ""),
            contribution=data.get("contribution", ""),
        )

    def __str__(self) -> str:
        return f"{self.hash}: {self.message}"


@dataclass
class MergeBlock:
    """
    A record of another branch being merged into this one.

    Merge blocks sit in the same ordered history as commits but are skipped
    when folding progress summaries.

    Attributes:
        source: Branch that was merged.
        destination: Branch that received the merge.
        timestamp: ISO-8601 merge time.
        summary: Human summary of the outcome.
        source_purpose: Purpose extracted from the source branch.
        source_progress: Folded progress narrative of the source branch.
        source_history: Verbatim source commit.md, empty when not inlined.
    """

    source: str
    destination: str
    timestamp: str
    summary: str
    source_purpose: str = ""
    source_progress: str = ""
    source_history: str = ""
    kind: Literal["merge"] = field(default="merge", init=False)

    def render(self) -> str:
        """Render as a commit.md block. Inlined history is quoted."""
        text = (
            f"\n{BLOCK_DELIMITER}\n"
            f"{MERGE_LABEL} {self.source} → {self.destination}\n"
            f"{TIME_LABEL} {self.timestamp}\n"
            f"\n{MERGE_SUMMARY_HEADING}\n{self.summary}\n"
            f"\n{MERGE_CONTEXT_HEADING}\n"
            f"**Purpose**: {self.source_purpose}\n"
            f"**Progress**: {self.source_progress}\n"
        )
        if self.source_history.strip():
            text += f"\n{MERGE_HISTORY_HEADING} '{self.source}'\n{quote(self.source_history)}\n"
        return text

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MergeBlock":
        """Create from dictionary."""
        return cls(
            source=data.get("source", ""),
            destination=data.get("destination", ""),
            timestamp=data.get("timestamp", ""),
            summary=data.get("summary", ""),
            source_purpose=data.get("source_purpose", ""),
            source_progress=data.get("source_progress", ""),
            source_history=data.get("source_history", ""),
        )

    def __str__(self) -> str:
        return f"[MERGE] {self.source} → {self.destination}: {self.summary}"


HistoryEntry = Union[CommitRecord, MergeBlock]


def entry_from_dict(data: dict[str, Any]) -> HistoryEntry:
    """Rebuild a history entry from its serialized form."""
    if data.get("kind") == "merge":
        return MergeBlock.from_dict(data)
    return CommitRecord.from_dict(data)


def fold_summary(previous: str, contribution: str) -> str:
    """
    Fold a contribution into a cumulative progress summary.

    ``previous + "\\n- " + contribution``, degrading to ``"- " + contribution``
    or the bare previous text when either side is empty.
    """
    previous = previous.strip()
    contribution = contribution.strip()
    if previous and contribution:
        return f"{previous}\n- {contribution}"
    if contribution:
        return f"- {contribution}"
    return previous


def quote(text: str) -> str:
    """Prefix every line with '> '."""
    return "\n".join(f"> {line}" if line else ">" for line in text.strip("\n").split("\n"))


def unquote(text: str) -> str:
    """Reverse ``quote``; lines without the prefix are kept as-is."""
    lines = []
    for line in text.split("\n"):
        if line.startswith("> "):
            lines.append(line[2:])
        elif line == ">":
            lines.append("")
        else:
            lines.append(line)
    return "\n".join(lines)
