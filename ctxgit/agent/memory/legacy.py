"""
Legacy memory index - flat, date-partitioned records with lexical search.

Each calendar day gets one ``YYYY-MM-DD.logfmt`` document holding one record
per line::

    ts=2026-01-05T10:00:00.000Z type=decision scope=auth content="Use JWT" issue=#51 tags=api,security

Removed or superseded records are copied to ``deletions.logfmt`` together with
the reason and the deletion time, so nothing is lost silently.
"""

import re
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterator, Literal

from loguru import logger

from ctxgit.agent.memory.errors import AmbiguousMatch, InvalidArgument, NotFound
from ctxgit.agent.memory.search import rank
from ctxgit.utils.helpers import ensure_dir, timestamp

MemoryType = Literal["decision", "learning", "preference", "blocker", "context", "pattern"]

MEMORY_TYPES: tuple[str, ...] = ("decision", "learning", "preference", "blocker", "context", "pattern")

AUDIT_FILE = "deletions.logfmt"
RECORD_GLOB = "????-??-??.logfmt"

_FIELD_RE = re.compile(r'(\w+)=("(?:[^"\\]|\\.)*"?|[^\s"]*)')
_RECORD_KEYS = ("ts", "type", "scope", "content", "issue", "tags", "updated")
_AUDIT_KEYS = ("deleted_at", "reason")


# =============================================================================
# Line codec
# =============================================================================

def escape(value: str) -> str:
    """Escape backslashes, quotes and line breaks for a quoted value."""
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )


def unescape(value: str) -> str:
    """Reverse ``escape``. Unknown escapes keep the escaped character."""
    out = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        out.append({"n": "\n", "r": "\r"}.get(nxt, nxt))
    return "".join(out)


def format_value(value: str, quote: bool = False) -> str:
    """Render a value, quoting it when required (or asked for)."""
    if quote or not value or re.search(r'[\s"=\\]', value):
        return f'"{escape(value)}"'
    return value


def parse_fields(line: str) -> dict[str, str]:
    """Parse ``key=value`` pairs; quoted values are unescaped."""
    fields: dict[str, str] = {}
    for match in _FIELD_RE.finditer(line):
        key, raw = match.group(1), match.group(2)
        if raw.startswith('"'):
            raw = raw[1:-1] if len(raw) > 1 and raw.endswith('"') else raw[1:]
            raw = unescape(raw)
        fields[key] = raw
    return fields


def format_fields(fields: list[tuple[str, str, bool]]) -> str:
    """Render ``(key, value, always_quote)`` triples as one line."""
    return " ".join(f"{key}={format_value(value, quote)}" for key, value, quote in fields)


# =============================================================================
# Records
# =============================================================================

@dataclass
class LegacyRecord:
    """
    A flat memory record.

    ``source`` and ``line_no`` locate the record in its document and are not
    part of its content.
    """

    ts: str
    type: str
    scope: str
    content: str
    issue: str | None = None
    tags: list[str] = field(default_factory=list)
    updated: str | None = None
    extra: dict[str, str] = field(default_factory=dict)
    source: Path | None = field(default=None, compare=False, repr=False)
    line_no: int | None = field(default=None, compare=False, repr=False)

    def fields(self) -> list[tuple[str, str, bool]]:
        items = [
            ("ts", self.ts, False),
            ("type", self.type, False),
            ("scope", self.scope, False),
            ("content", self.content, True),
        ]
        if self.issue:
            items.append(("issue", self.issue, False))
        if self.tags:
            items.append(("tags", ",".join(self.tags), False))
        if self.updated:
            items.append(("updated", self.updated, False))
        items.extend((k, v, False) for k, v in self.extra.items())
        return items

    def to_line(self) -> str:
        return format_fields(self.fields())

    @classmethod
    def from_fields(cls, data: dict[str, str]) -> "LegacyRecord | None":
        """Build from parsed fields; None when type, scope or content is missing."""
        if not data.get("type") or not data.get("scope") or "content" not in data:
            return None
        tags = [t.strip() for t in data.get("tags", "").split(",") if t.strip()]
        return cls(
            ts=data.get("ts", ""),
            type=data["type"],
            scope=data["scope"],
            content=data["content"],
            issue=data.get("issue") or None,
            tags=tags,
            updated=data.get("updated") or None,
            extra={k: v for k, v in data.items() if k not in _RECORD_KEYS and k not in _AUDIT_KEYS},
        )

    @classmethod
    def from_line(cls, line: str, source: Path | None = None, line_no: int | None = None) -> "LegacyRecord | None":
        record = cls.from_fields(parse_fields(line))
        if record is not None:
            record.source = source
            record.line_no = line_no
        return record

    def __str__(self) -> str:
        text = f"[{self.type}] {self.scope}: {self.content}"
        if self.issue:
            text += f" ({self.issue})"
        if self.tags:
            text += f" #{' #'.join(self.tags)}"
        return text


@dataclass
class DeletionAuditEntry:
    """A removed or superseded record, with why and when."""

    record: LegacyRecord
    reason: str
    deleted_at: str

    def to_line(self) -> str:
        head = [("deleted_at", self.deleted_at, False), ("reason", self.reason, True)]
        return format_fields(head + self.record.fields())

    @classmethod
    def from_line(cls, line: str) -> "DeletionAuditEntry | None":
        data = parse_fields(line)
        record = LegacyRecord.from_fields(data)
        if record is None:
            return None
        return cls(record=record, reason=data.get("reason", ""), deleted_at=data.get("deleted_at", ""))


# =============================================================================
# Results
# =============================================================================

@dataclass
class RecallResult:
    """Records returned by ``recall`` with the counts behind them."""

    records: list[LegacyRecord]
    total: int
    filtered: int
    scores: dict[int, int] = field(default_factory=dict)  # id(record) -> score

    @property
    def shown(self) -> int:
        return len(self.records)

    def score_of(self, record: LegacyRecord) -> int | None:
        return self.scores.get(id(record))


@dataclass
class ScopeSummary:
    scope: str
    count: int
    types: dict[str, int]


@dataclass
class IndexOverview:
    """Distinct scopes and types with their frequencies."""

    total: int
    scopes: list[ScopeSummary]
    types: list[tuple[str, int]]


# =============================================================================
# Index
# =============================================================================

class LegacyMemoryIndex:
    """
    Flat record store partitioned by calendar date.

    Attributes:
        directory: Folder holding the date documents and the audit document.
    """

    def __init__(self, directory: Path):
        self.directory = ensure_dir(directory)
        self.audit_file = directory / AUDIT_FILE

    def document_for(self, date_str: str) -> Path:
        return self.directory / f"{date_str}.logfmt"

    def list_documents(self) -> list[Path]:
        """Date documents, oldest first. The audit document is never included."""
        return sorted(p for p in self.directory.glob(RECORD_GLOB) if p.name != AUDIT_FILE)

    def iter_records(self) -> Iterator[LegacyRecord]:
        """Every parseable record, oldest document first, in line order."""
        for path in self.list_documents():
            for line_no, line in enumerate(path.read_text(encoding="utf-8").splitlines()):
                if not line.strip():
                    continue
                record = LegacyRecord.from_line(line, source=path, line_no=line_no)
                if record is None:
                    logger.warning(f"Skipping unreadable record {path.name}:{line_no + 1}")
                    continue
                yield record

    def audit_entries(self) -> list[DeletionAuditEntry]:
        """All entries of the deletion audit document."""
        if not self.audit_file.exists():
            return []
        entries = []
        for line in self.audit_file.read_text(encoding="utf-8").splitlines():
            if line.strip():
                entry = DeletionAuditEntry.from_line(line)
                if entry is not None:
                    entries.append(entry)
        return entries

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    def remember(
        self,
        type: str,
        scope: str,
        content: str,
        issue: str | None = None,
        tags: list[str] | None = None,
    ) -> LegacyRecord:
        """
        Append a record to today's document.

        Raises:
            InvalidArgument: Unknown type or empty scope/content.
        """
        _check_type(type)
        if not scope or not scope.strip():
            raise InvalidArgument("scope is required")
        if not content or not content.strip():
            raise InvalidArgument("content is required")

        ts = timestamp()
        record = LegacyRecord(
            ts=ts,
            type=type,
            scope=scope.strip(),
            content=content,
            issue=issue or None,
            tags=_clean_tags(tags),
        )
        path = self.document_for(ts[:10])
        existing = path.read_text(encoding="utf-8") if path.exists() else ""
        if existing and not existing.endswith("\n"):
            existing += "\n"
        path.write_text(existing + record.to_line() + "\n", encoding="utf-8")
        record.source = path

        logger.info(f"Remembered {type}/{record.scope}")
        return record

    def recall(
        self,
        scope: str | None = None,
        type: str | None = None,
        query: str | None = None,
        limit: int = 20,
    ) -> RecallResult:
        """
        Filter and rank records.

        Scope matches exactly or as a case-insensitive substring; type matches
        exactly. With a query, records are scored lexically and zero scores
        are dropped. Results are most recent first within equal scores.
        """
        if type:
            _check_type(type)
        if limit <= 0:
            raise InvalidArgument("limit must be positive")

        records = list(self.iter_records())
        total = len(records)
        records.reverse()  # most recent first

        records = _select(records, scope, type)

        scores: dict[int, int] = {}
        if query and query.strip():
            ranked = rank(records, query)
            records = [r for _, r in ranked]
            scores = {id(r): s for s, r in ranked}

        return RecallResult(records=records[:limit], total=total, filtered=len(records), scores=scores)

    def update(
        self,
        scope: str,
        type: str,
        content: str,
        query: str | None = None,
        issue: str | None = None,
        tags: list[str] | None = None,
    ) -> tuple[LegacyRecord, LegacyRecord]:
        """
        Replace the content of one record, in place.

        Scope and type select records the same way as ``recall``.

        Returns:
            ``(before, after)``.

        Raises:
            NotFound: No record has this scope and type.
            AmbiguousMatch: Several records match and ``query`` does not single
                one out. Nothing is written.
        """
        _check_type(type)
        if not scope or not scope.strip():
            raise InvalidArgument("scope is required")
        if not content or not content.strip():
            raise InvalidArgument("content is required")

        candidates = _select(self.iter_records(), scope, type)
        if not candidates:
            raise NotFound(f"No {type} memory found in scope '{scope}'")

        if len(candidates) == 1:
            target = candidates[0]
        elif not query or not query.strip():
            raise AmbiguousMatch(
                f"{len(candidates)} {type} memories match scope '{scope}'. Provide a query to pick one.",
                candidates,
            )
        else:
            ranked = rank(list(reversed(candidates)), query)
            if not ranked:
                raise AmbiguousMatch(
                    f"{len(candidates)} {type} memories match scope '{scope}' and none match query '{query}'.",
                    candidates,
                )
            target = ranked[0][1]

        after = LegacyRecord(
            ts=target.ts,
            type=target.type,
            scope=target.scope,
            content=content,
            issue=issue if issue else target.issue,
            tags=_clean_tags(tags) if tags else list(target.tags),
            updated=timestamp(),
            extra=dict(target.extra),
            source=target.source,
            line_no=target.line_no,
        )

        self._audit([target], f"Updated to: {content}")
        self._rewrite(target.source, {target.line_no: after.to_line()})

        logger.info(f"Updated {type}/{scope} in {target.source.name}")
        return target, after

    def forget(self, scope: str, type: str, reason: str) -> list[LegacyRecord]:
        """
        Remove every record ``recall(scope=scope, type=type)`` would return.

        Each removed record is copied to the audit document first.

        Returns:
            The removed records (empty when nothing matched).
        """
        _check_type(type)
        if not scope or not scope.strip():
            raise InvalidArgument("scope is required")
        if not reason or not reason.strip():
            raise InvalidArgument("reason is required")

        removed = _select(self.iter_records(), scope, type)
        if not removed:
            return []

        self._audit(removed, reason)

        by_document: dict[Path, dict[int, None]] = defaultdict(dict)
        for record in removed:
            by_document[record.source][record.line_no] = None
        for path, changes in by_document.items():
            self._rewrite(path, changes)

        logger.info(f"Forgot {len(removed)} {type}/{scope} memories: {reason}")
        return removed

    def overview(self) -> IndexOverview:
        """Distinct scopes and types, most frequent first."""
        scope_counts: Counter[str] = Counter()
        type_counts: Counter[str] = Counter()
        scope_types: dict[str, Counter[str]] = defaultdict(Counter)

        for record in self.iter_records():
            scope_counts[record.scope] += 1
            type_counts[record.type] += 1
            scope_types[record.scope][record.type] += 1

        scopes = [
            ScopeSummary(scope=s, count=c, types=dict(scope_types[s].most_common()))
            for s, c in sorted(scope_counts.items(), key=lambda kv: (-kv[1], kv[0]))
        ]
        types = sorted(type_counts.items(), key=lambda kv: (-kv[1], kv[0]))
        return IndexOverview(total=sum(scope_counts.values()), scopes=scopes, types=types)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _audit(self, records: list[LegacyRecord], reason: str) -> None:
        deleted_at = timestamp()
        lines = [DeletionAuditEntry(record=r, reason=reason, deleted_at=deleted_at).to_line() for r in records]
        existing = self.audit_file.read_text(encoding="utf-8") if self.audit_file.exists() else ""
        if existing and not existing.endswith("\n"):
            existing += "\n"
        self.audit_file.write_text(existing + "\n".join(lines) + "\n", encoding="utf-8")

    @staticmethod
    def _rewrite(path: Path, changes: dict[int, Any]) -> None:
        """Replace (str) or drop (None) lines by index, keeping everything else."""
        lines = path.read_text(encoding="utf-8").splitlines()
        kept = []
        for i, line in enumerate(lines):
            if i not in changes:
                kept.append(line)
            elif changes[i] is not None:
                kept.append(changes[i])
        path.write_text("\n".join(kept) + "\n" if kept else "", encoding="utf-8")


def _check_type(type: str) -> None:
    if type not in MEMORY_TYPES:
        raise InvalidArgument(f"Invalid type '{type}'. Use: {', '.join(MEMORY_TYPES)}")


def _scope_matches(scope: str, wanted: str) -> bool:
    return scope == wanted or wanted.lower() in scope.lower()


def _select(records, scope: str | None, type: str | None) -> list[LegacyRecord]:
    """Records whose scope matches ``scope`` and whose type is ``type``; ``None`` skips a filter."""
    return [
        r for r in records
        if (not scope or _scope_matches(r.scope, scope)) and (not type or r.type == type)
    ]


def _clean_tags(tags: list[str] | None) -> list[str]:
    cleaned = [t.strip() for t in (tags or []) if t and t.strip()]
    for tag in cleaned:
        if "," in tag:
            raise InvalidArgument(f"Tags cannot contain commas: '{tag}'")
    return cleaned
