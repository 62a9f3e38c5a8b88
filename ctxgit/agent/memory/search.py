"""Lexical relevance scoring for legacy records."""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ctxgit.agent.memory.legacy import LegacyRecord

# Bonus per token that equals the record's scope or type exactly
EXACT_FIELD_WEIGHT = 2


def tokenize(query: str | None) -> list[str]:
    """Lowercased whitespace tokens of a query."""
    if not query:
        return []
    return query.lower().split()


def record_text(record: "LegacyRecord") -> str:
    """Concatenation of a record's searchable fields, lowercased."""
    parts = [record.type, record.scope, record.content, record.issue or "", " ".join(record.tags)]
    return " ".join(parts).lower()


def score_record(record: "LegacyRecord", tokens: list[str]) -> int:
    """
    Score a record against query tokens.

    Each token contributes its number of occurrences in the record's text,
    plus ``EXACT_FIELD_WEIGHT`` when it equals the scope and again when it
    equals the type.
    """
    haystack = record_text(record)
    scope = record.scope.lower()
    type_ = record.type.lower()

    score = 0
    for token in tokens:
        score += haystack.count(token)
        if token == scope:
            score += EXACT_FIELD_WEIGHT
        if token == type_:
            score += EXACT_FIELD_WEIGHT
    return score


def rank(records: list["LegacyRecord"], query: str | None) -> list[tuple[int, "LegacyRecord"]]:
    """
    Score and sort records, best first.

    Records scoring zero are dropped. The sort is stable, so equal scores keep
    the incoming order.
    """
    tokens = tokenize(query)
    scored = [(score_record(r, tokens), r) for r in records]
    scored = [(s, r) for s, r in scored if s > 0]
    scored.sort(key=lambda item: item[0], reverse=True)
    return scored
