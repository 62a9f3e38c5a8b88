"""Branch metadata document."""

from dataclasses import dataclass, field
from typing import Any

import yaml
from loguru import logger

_KNOWN_KEYS = ("branch", "created", "purpose", "commits", "last_commit", "last_commit_at", "merged_from")


@dataclass
class BranchMetadata:
    """
    Key-value metadata of a branch (``metadata.yaml``).

    Attributes:
        name: Branch name.
        created: ISO-8601 creation time.
        purpose: Purpose given at creation.
        commits: Number of regular commits.
        last_commit: Hash of the latest commit.
        last_commit_at: Time of the latest commit.
        merged_from: Branches merged into this one, in merge order.
        extra: Any other keys found in the document (kept on rewrite).
    """

    name: str
    created: str = ""
    purpose: str | None = None
    commits: int = 0
    last_commit: str | None = None
    last_commit_at: str | None = None
    merged_from: list[str] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to an ordered mapping, omitting unset optional keys."""
        data: dict[str, Any] = {"branch": self.name, "created": self.created}
        if self.purpose is not None:
            data["purpose"] = self.purpose
        if self.commits:
            data["commits"] = self.commits
        if self.last_commit:
            data["last_commit"] = self.last_commit
            data["last_commit_at"] = self.last_commit_at
        if self.merged_from:
            data["merged_from"] = list(self.merged_from)
        data.update(self.extra)
        return data

    def to_yaml(self) -> str:
        """Serialize to YAML text."""
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True, default_flow_style=False)

    @classmethod
    def from_yaml(cls, name: str, text: str) -> "BranchMetadata":
        """
        Parse YAML text.

        Hand-edited or broken documents degrade to defaults instead of raising.
        """
        try:
            data = yaml.safe_load(text) if text.strip() else {}
        except yaml.YAMLError as e:
            logger.warning(f"Unreadable metadata for branch '{name}': {e}")
            data = {}
        if not isinstance(data, dict):
            data = {}

        merged = data.get("merged_from") or []
        if not isinstance(merged, list):
            merged = [str(merged)]

        try:
            commits = int(data.get("commits") or 0)
        except (TypeError, ValueError):
            commits = 0

        return cls(
            name=str(data.get("branch") or name),
            created=str(data.get("created") or ""),
            purpose=data.get("purpose"),
            commits=commits,
            last_commit=data.get("last_commit"),
            last_commit_at=data.get("last_commit_at"),
            merged_from=[str(m) for m in merged],
            extra={k: v for k, v in data.items() if k not in _KNOWN_KEYS},
        )

    def __str__(self) -> str:
        purpose_str = f" ({self.purpose})" if self.purpose else ""
        return f"{self.name}{purpose_str} commits={self.commits}"
