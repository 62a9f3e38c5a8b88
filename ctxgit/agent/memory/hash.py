"""Commit identifier allocation."""

import re
import secrets

# <sequence>-<suffix>, e.g. "0007-3fa9c1"
COMMIT_ID_RE = re.compile(r"^(\d+)-([0-9a-f]+)$")


def new_commit_id(sequence: int) -> str:
    """
    Allocate a commit identifier.

    The zero-padded per-branch sequence keeps identifiers sortable; the random
    suffix keeps them distinct even when two branches share a sequence number.

    Args:
        sequence: 1-based position of the commit among the branch's regular commits.

    Returns:
        Identifier string such as ``"0003-a1b2c3"``.
    """
    if sequence < 1:
        raise ValueError("Commit sequence starts at 1")
    return f"{sequence:04d}-{secrets.token_hex(3)}"


def commit_sequence(commit_id: str) -> int | None:
    """Extract the sequence number from a commit id, or None for foreign ids."""
    match = COMMIT_ID_RE.match(commit_id)
    if not match:
        return None
    return int(match.group(1))
