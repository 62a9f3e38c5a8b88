"""Trace log - fine-grained notes between commits."""

from dataclasses import dataclass

from loguru import logger

from ctxgit.agent.memory.errors import InvalidArgument
from ctxgit.agent.memory.store import BranchStore
from ctxgit.utils.helpers import timestamp


@dataclass
class LogEntry:
    """
    One trace-log entry.

    Either a freeform ``entry`` or an observation/thought/action triple. When
    both are given the freeform text wins.
    """

    timestamp: str
    observation: str | None = None
    thought: str | None = None
    action: str | None = None
    entry: str | None = None

    @property
    def is_freeform(self) -> bool:
        return bool(self.entry)

    def render(self) -> str:
        """Render as log.md text: timestamp on its own line, then the body."""
        text = f"\n[{self.timestamp}]\n"
        if self.entry:
            return text + self.entry.rstrip("\n") + "\n"
        if self.observation:
            text += f"Observation: {self.observation}\n"
        if self.thought:
            text += f"Thought: {self.thought}\n"
        if self.action:
            text += f"Action: {self.action}\n"
        return text

    def __str__(self) -> str:
        if self.entry:
            return self.entry
        parts = [
            f"{label}: {value}"
            for label, value in (("O", self.observation), ("T", self.thought), ("A", self.action))
            if value
        ]
        return " | ".join(parts)


class TraceLogger:
    """Appends entries to a branch's trace log."""

    def __init__(self, store: BranchStore):
        self.store = store

    def log(
        self,
        branch: str,
        observation: str | None = None,
        thought: str | None = None,
        action: str | None = None,
        entry: str | None = None,
    ) -> LogEntry:
        """
        Append an entry to ``branch``'s trace log.

        The branch directory is created on demand, so logging never fails
        because of a missing branch.

        Raises:
            InvalidArgument: If no field has content.
        """
        if not any(v and v.strip() for v in (observation, thought, action, entry)):
            raise InvalidArgument("Provide observation, thought, action, or entry")

        log_entry = LogEntry(
            timestamp=timestamp(),
            observation=observation or None,
            thought=thought or None,
            action=action or None,
            entry=entry or None,
        )

        self.store.ensure(branch)
        existing = self.store.read_log(branch)
        self.store.write_log(branch, existing + log_entry.render())

        logger.debug(f"Logged to '{branch}': {str(log_entry)[:80]}")
        return log_entry
