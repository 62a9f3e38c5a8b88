"""
History ledger - structured, append-only record of a branch's history.

One JSON object per line: a header line followed by one line per commit or
merge block, in append order. The ledger is the source of truth for the
engines; commit.md is rendered from it.
"""

import json
from pathlib import Path
from typing import Any, Iterator

from loguru import logger

from ctxgit.agent.memory.commit import HistoryEntry
from ctxgit.agent.memory.history import BranchHistory


class HistoryLedger:
    """
    JSON-lines ledger for one branch.

    Attributes:
        path: Ledger file (``history.jsonl``).
    """

    def __init__(self, path: Path):
        self.path = path

    def exists(self) -> bool:
        """Check if the ledger file exists."""
        return self.path.exists()

    def iter_records(self) -> Iterator[dict[str, Any]]:
        """
        Iterate over ledger records.

        Lines that are not valid JSON objects are skipped with a warning so a
        torn final write does not hide the rest of the history.
        """
        if not self.path.exists():
            return
        for lineno, line in enumerate(self.path.read_text(encoding="utf-8").splitlines(), 1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                logger.warning(f"Skipping unreadable ledger line {self.path}:{lineno}: {e}")
                continue
            if isinstance(record, dict):
                yield record

    def load(self, branch: str) -> BranchHistory:
        """Load the structured history of ``branch``."""
        return BranchHistory.from_records(branch, list(self.iter_records()))

    def write(self, history: BranchHistory) -> None:
        """Replace the ledger with the given history (header plus entries)."""
        lines = [self._dump(history.to_dict())]
        lines.extend(self._dump(entry.to_dict()) for entry in history.entries)
        self.path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    def append(self, entry: HistoryEntry) -> None:
        """Append one entry to the ledger."""
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(self._dump(entry.to_dict()) + "\n")

    @staticmethod
    def _dump(record: dict[str, Any]) -> str:
        return json.dumps(record, ensure_ascii=False)
