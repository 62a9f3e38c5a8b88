"""
Branch history - the ordered sequence of commits and merge blocks of one branch.

The structured ``BranchHistory`` is what the engines work with. Text is only
produced (``render``) or consumed (``parse_history``) at the storage boundary,
where commit.md is kept for humans and external tooling.
"""

import re
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from ctxgit.agent.memory.commit import (
    BLOCK_DELIMITER,
    COMMIT_LABEL,
    CONTRIBUTION_HEADING,
    MERGE_CONTEXT_HEADING,
    MERGE_HISTORY_HEADING,
    MERGE_LABEL,
    MERGE_SUMMARY_HEADING,
    MESSAGE_LABEL,
    PURPOSE_HEADING,
    SUMMARY_HEADING,
    TIME_LABEL,
    CommitRecord,
    HistoryEntry,
    MergeBlock,
    entry_from_dict,
    unquote,
)

MAIN_BRANCH = "main"
MAIN_PURPOSE = "Main development branch"


def default_purpose(branch: str) -> str:
    """Fallback purpose for a branch that never recorded one."""
    if branch == MAIN_BRANCH:
        return MAIN_PURPOSE
    return f"Branch: {branch}"


@dataclass
class BranchHistory:
    """
    Everything ever written to a branch's commit history.

    Attributes:
        branch: Branch name.
        purpose: Purpose written when the branch was created (None if never set).
        created_note: Synthetic "created at" note from branch creation.
        entries: Commits and merge blocks in the order they were appended.
    """

    branch: str
    purpose: str | None = None
    created_note: str = ""
    entries: list[HistoryEntry] = field(default_factory=list)

    @property
    def commits(self) -> list[CommitRecord]:
        """Regular commits only, oldest first."""
        return [e for e in self.entries if isinstance(e, CommitRecord)]

    @property
    def merges(self) -> list[MergeBlock]:
        """Merge blocks only, oldest first."""
        return [e for e in self.entries if isinstance(e, MergeBlock)]

    def last_commit(self) -> CommitRecord | None:
        """Most recent regular commit, skipping merge blocks."""
        commits = self.commits
        return commits[-1] if commits else None

    def resolve_purpose(self, fallback: str | None = None) -> str:
        """
        Branch purpose, first-wins.

        The purpose written at creation takes precedence; otherwise the
        snapshot stored in the first commit; otherwise a default.
        """
        if self.purpose and self.purpose.strip():
            return self.purpose.strip()
        for commit in self.commits:
            if commit.purpose.strip():
                return commit.purpose.strip()
        return fallback if fallback is not None else default_purpose(self.branch)

    def progress(self) -> str:
        """Folded progress narrative up to and including the last commit."""
        last = self.last_commit()
        if last is None:
            return ""
        return last.folded_summary()

    def find_commit(self, commit_hash: str) -> CommitRecord | None:
        """Find a commit by exact hash or unique prefix."""
        commit_hash = commit_hash.strip()
        if not commit_hash:
            return None
        matches = []
        for commit in self.commits:
            if commit.hash == commit_hash:
                return commit
            if commit.hash.startswith(commit_hash):
                matches.append(commit)
        if len(matches) == 1:
            return matches[0]
        return None

    def append(self, entry: HistoryEntry) -> None:
        """Append an entry. Entries are never modified or removed."""
        self.entries.append(entry)

    def render(self) -> str:
        """Render the full commit.md document."""
        parts = [f"# Branch: {self.branch}\n"]
        if self.purpose is not None:
            parts.append(f"\n{PURPOSE_HEADING}\n{self.purpose}\n")
        if self.created_note:
            parts.append(f"\n{SUMMARY_HEADING}\n{self.created_note}\n")
        parts.append(f"\n{BLOCK_DELIMITER}\n")
        parts.extend(entry.render() for entry in self.entries)
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Header fields only; entries are stored as separate ledger lines."""
        return {
            "kind": "header",
            "branch": self.branch,
            "purpose": self.purpose,
            "created_note": self.created_note,
        }

    @classmethod
    def from_records(cls, branch: str, records: list[dict[str, Any]]) -> "BranchHistory":
        """Rebuild from ledger records (one header plus any number of entries)."""
        history = cls(branch=branch)
        for record in records:
            if record.get("kind") == "header":
                history.purpose = record.get("purpose")
                history.created_note = record.get("created_note", "")
            else:
                history.entries.append(entry_from_dict(record))
        return history


# =============================================================================
# Text parsing (storage boundary)
# =============================================================================

_BLOCK_START_RE = re.compile(
    rf"^{BLOCK_DELIMITER}[ \t]*\n(?=\*\*(?:Commit|MERGE)\*\*:)",
    re.MULTILINE,
)
_BRANCH_TITLE_RE = re.compile(r"^# Branch:[ \t]*(.*)$", re.MULTILINE)
_MERGE_HEADER_RE = re.compile(r"^\*\*MERGE\*\*:[ \t]*(.*?)[ \t]*(?:→|->)[ \t]*(.*)$", re.MULTILINE)
_CONTEXT_FIELD_RE = re.compile(r"^\*\*(Purpose|Progress)\*\*:[ \t]?", re.MULTILINE)

_COMMIT_HEADINGS = (PURPOSE_HEADING, SUMMARY_HEADING, CONTRIBUTION_HEADING)
_MERGE_HEADINGS = (MERGE_SUMMARY_HEADING, MERGE_CONTEXT_HEADING, MERGE_HISTORY_HEADING)


def parse_history(branch: str, text: str) -> BranchHistory:
    """
    Recover a ``BranchHistory`` from a commit.md document.

    Tolerates zero, one or many blocks, hand edits and truncated trailing
    blocks: missing fields come back empty rather than raising.

    Args:
        branch: Branch the document belongs to.
        text: Raw commit.md content.

    Returns:
        The recovered history.
    """
    history = BranchHistory(branch=branch)
    if not text.strip():
        return history

    starts = [m.start() for m in _BLOCK_START_RE.finditer(text)]
    header = text[: starts[0]] if starts else text
    _parse_header(history, header)

    bounds = starts + [len(text)]
    for begin, end in zip(bounds, bounds[1:]):
        block = text[begin:end]
        body = block.split("\n", 1)[1] if "\n" in block else ""
        if body.startswith(MERGE_LABEL):
            history.entries.append(_parse_merge(body))
        else:
            history.entries.append(_parse_commit(body))

    logger.debug(f"Parsed {len(history.entries)} history entries for branch '{branch}' from text")
    return history


def _parse_header(history: BranchHistory, header: str) -> None:
    sections = _split_sections(header, (PURPOSE_HEADING, SUMMARY_HEADING))
    if PURPOSE_HEADING in sections:
        history.purpose = sections[PURPOSE_HEADING]
    history.created_note = sections.get(SUMMARY_HEADING, "")


def _parse_commit(body: str) -> CommitRecord:
    sections = _split_sections(body, _COMMIT_HEADINGS)
    return CommitRecord(
        hash=_label_value(body, COMMIT_LABEL),
        timestamp=_label_value(body, TIME_LABEL),
        message=_label_value(body, MESSAGE_LABEL),
        purpose=sections.get(PURPOSE_HEADING, ""),
        previous_summary=sections.get(SUMMARY_HEADING, ""),
        contribution=sections.get(CONTRIBUTION_HEADING, ""),
    )


def _parse_merge(body: str) -> MergeBlock:
    source = destination = ""
    match = _MERGE_HEADER_RE.search(body)
    if match:
        source, destination = match.group(1).strip(), match.group(2).strip()
    else:
        logger.warning("Merge block without a readable source/destination line")

    sections = _split_sections(body, _MERGE_HEADINGS)
    context = sections.get(MERGE_CONTEXT_HEADING, "")
    fields = _context_fields(context)

    return MergeBlock(
        source=source,
        destination=destination,
        timestamp=_label_value(body, TIME_LABEL),
        summary=sections.get(MERGE_SUMMARY_HEADING, ""),
        source_purpose=fields.get("Purpose", ""),
        source_progress=fields.get("Progress", ""),
        source_history=unquote(sections.get(MERGE_HISTORY_HEADING, "")),
    )


def _label_value(body: str, label: str) -> str:
    """Value of the first ``**Label**: value`` line, or empty."""
    match = re.search(rf"^{re.escape(label)}[ \t]*(.*)$", body, re.MULTILINE)
    return match.group(1).strip() if match else ""


def _split_sections(text: str, headings: tuple[str, ...]) -> dict[str, str]:
    """
    Split text on known ``## `` headings.

    Only the listed headings delimit sections, so headings inside free text
    stay part of the body. A heading counts when it starts a line; for the
    merged-history heading anything may follow on the same line.
    """
    positions: list[tuple[int, int, str]] = []
    for heading in headings:
        pattern = rf"^{re.escape(heading)}.*$" if heading == MERGE_HISTORY_HEADING else rf"^{re.escape(heading)}[ \t]*$"
        match = re.search(pattern, text, re.MULTILINE)
        if match:
            positions.append((match.start(), match.end(), heading))
    positions.sort()

    sections: dict[str, str] = {}
    for i, (_, body_start, heading) in enumerate(positions):
        body_end = positions[i + 1][0] if i + 1 < len(positions) else len(text)
        sections[heading] = _strip_trailing_delimiter(text[body_start:body_end])
    return sections


def _strip_trailing_delimiter(text: str) -> str:
    text = text.strip("\n")
    lines = text.split("\n")
    while lines and lines[-1].strip() in (BLOCK_DELIMITER, ""):
        lines.pop()
    return "\n".join(lines).strip()


def _context_fields(context: str) -> dict[str, str]:
    """Read ``**Purpose**:`` and ``**Progress**:`` (which may span lines)."""
    fields: dict[str, str] = {}
    matches = list(_CONTEXT_FIELD_RE.finditer(context))
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(context)
        fields[match.group(1)] = context[match.end():end].strip()
    return fields
