"""Tests for the legacy memory index (remember, recall, update, forget)."""

import pytest

from ctxgit.agent.memory import AmbiguousMatch, InvalidArgument, NotFound
from ctxgit.agent.memory.legacy import (
    AUDIT_FILE,
    DeletionAuditEntry,
    LegacyMemoryIndex,
    LegacyRecord,
    parse_fields,
)
from ctxgit.agent.memory.search import rank, score_record, tokenize


@pytest.fixture
def index(tmp_path):
    """Create an empty index."""
    return LegacyMemoryIndex(tmp_path)


@pytest.fixture
def seeded(tmp_path):
    """An index with records spread over two days."""
    (tmp_path / "2026-01-05.logfmt").write_text(
        'ts=2026-01-05T09:00:00.000Z type=decision scope=auth content="Use JWT for auth" issue=#51 tags=api,security\n'
        'ts=2026-01-05T10:00:00.000Z type=preference scope=style content="Prefer tabs"\n',
        encoding="utf-8",
    )
    (tmp_path / "2026-01-06.logfmt").write_text(
        'ts=2026-01-06T09:00:00.000Z type=decision scope=auth-service content="Rotate keys weekly"\n'
        'ts=2026-01-06T10:00:00.000Z type=learning scope=api content="Rate limit is 100/min"\n',
        encoding="utf-8",
    )
    return LegacyMemoryIndex(tmp_path)


class TestLineCodec:
    """Test record lines."""

    def test_line_format(self):
        record = LegacyRecord(
            ts="2026-01-05T10:00:00.000Z",
            type="decision",
            scope="auth",
            content="Use JWT",
            issue="#51",
            tags=["api", "security"],
        )
        assert record.to_line() == (
            'ts=2026-01-05T10:00:00.000Z type=decision scope=auth content="Use JWT" issue=#51 tags=api,security'
        )

    def test_special_characters(self):
        content = 'He said "use\\escape"\nsecond line'
        record = LegacyRecord(ts="t", type="learning", scope="misc", content=content)
        line = record.to_line()

        assert "\n" not in line
        assert LegacyRecord.from_line(line).content == content

    def test_unknown_keys_kept(self):
        record = LegacyRecord.from_line('ts=t type=context scope=ops content="x" origin=import')
        assert record.extra == {"origin": "import"}
        assert "origin=import" in record.to_line()

    def test_incomplete_line(self):
        assert LegacyRecord.from_line("ts=t type=context") is None
        assert parse_fields('content="unterminated') == {"content": "unterminated"}


class TestRemember:
    """Test storing records."""

    def test_remember(self, index, tmp_path):
        record = index.remember("decision", "auth", "Use JWT", issue="#51", tags=["api", " "])

        document = tmp_path / f"{record.ts[:10]}.logfmt"
        assert document.exists()
        assert record.tags == ["api"]
        assert document.read_text(encoding="utf-8") == record.to_line() + "\n"

    def test_remember_appends(self, index):
        index.remember("decision", "auth", "First")
        index.remember("decision", "auth", "Second")
        assert [r.content for r in index.iter_records()] == ["First", "Second"]

    def test_invalid_type(self, index):
        with pytest.raises(InvalidArgument):
            index.remember("opinion", "auth", "x")

    def test_comma_in_tag_rejected(self, index):
        with pytest.raises(InvalidArgument):
            index.remember("decision", "auth", "Use JWT", tags=["api", "a,b"])
        assert list(index.iter_records()) == []

    def test_missing_fields(self, index):
        with pytest.raises(InvalidArgument):
            index.remember("decision", " ", "x")
        with pytest.raises(InvalidArgument):
            index.remember("decision", "auth", "")


class TestRecall:
    """Test filtering and ranking."""

    def test_most_recent_first(self, seeded):
        result = seeded.recall()
        assert [r.content for r in result.records] == [
            "Rate limit is 100/min",
            "Rotate keys weekly",
            "Prefer tabs",
            "Use JWT for auth",
        ]
        assert result.total == result.filtered == result.shown == 4

    def test_scope_filter(self, seeded):
        result = seeded.recall(scope="AUTH")
        assert [r.scope for r in result.records] == ["auth-service", "auth"]
        assert result.filtered == 2

    def test_type_filter(self, seeded):
        result = seeded.recall(type="decision")
        assert {r.content for r in result.records} == {"Use JWT for auth", "Rotate keys weekly"}

    def test_query_ranking(self, seeded):
        result = seeded.recall(query="auth")

        assert result.records[0].content == "Use JWT for auth"
        assert result.score_of(result.records[0]) == 4
        assert "Prefer tabs" not in [r.content for r in result.records]

    def test_query_without_matches(self, seeded):
        result = seeded.recall(query="kubernetes")
        assert result.records == []
        assert result.total == 4
        assert result.filtered == 0

    def test_limit(self, seeded):
        result = seeded.recall(limit=1)
        assert result.shown == 1
        assert result.filtered == 4
        assert result.records[0].content == "Rate limit is 100/min"

    def test_invalid_arguments(self, seeded):
        with pytest.raises(InvalidArgument):
            seeded.recall(type="opinion")
        with pytest.raises(InvalidArgument):
            seeded.recall(limit=0)

    def test_unreadable_lines_skipped(self, tmp_path):
        (tmp_path / "2026-02-01.logfmt").write_text(
            'garbage without fields\nts=t type=context scope=ops content="ok"\n',
            encoding="utf-8",
        )
        index = LegacyMemoryIndex(tmp_path)
        assert [r.content for r in index.recall().records] == ["ok"]


class TestScoring:
    """Test lexical scoring."""

    def test_tokenize(self):
        assert tokenize("  JWT Auth ") == ["jwt", "auth"]
        assert tokenize(None) == []

    def test_exact_scope_and_type_bonus(self):
        record = LegacyRecord(ts="t", type="decision", scope="auth", content="Use JWT")
        # one occurrence each, plus the exact-field bonus
        assert score_record(record, ["auth"]) == 3
        assert score_record(record, ["decision"]) == 3
        assert score_record(record, ["jwt"]) == 1
        assert score_record(record, ["oauth"]) == 0

    def test_rank_is_stable(self):
        a = LegacyRecord(ts="t", type="context", scope="x", content="alpha")
        b = LegacyRecord(ts="t", type="context", scope="y", content="alpha")
        assert [r for _, r in rank([a, b], "alpha")] == [a, b]


class TestUpdate:
    """Test updating records in place."""

    def test_update_single(self, seeded, tmp_path):
        before, after = seeded.update("style", "preference", "Prefer spaces")

        assert before.content == "Prefer tabs"
        assert after.content == "Prefer spaces"
        assert after.ts == before.ts
        assert after.updated

        lines = (tmp_path / "2026-01-05.logfmt").read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert 'content="Prefer spaces"' in lines[1]

        audit = seeded.audit_entries()
        assert len(audit) == 1
        assert audit[0].reason == "Updated to: Prefer spaces"
        assert audit[0].record.content == "Prefer tabs"

    def test_update_keeps_issue_and_tags(self, seeded):
        _, after = seeded.update("auth", "decision", "Use short-lived JWT", query="JWT")
        assert after.issue == "#51"
        assert after.tags == ["api", "security"]

        _, after = seeded.update("auth", "decision", "Use PASETO", query="JWT", tags=["crypto"])
        assert after.tags == ["crypto"]

    def test_ambiguous_writes_nothing(self, index, tmp_path):
        index.remember("decision", "auth", "Use JWT")
        index.remember("decision", "auth", "Use sessions")
        documents = {p: p.read_text(encoding="utf-8") for p in tmp_path.glob("*.logfmt")}

        with pytest.raises(AmbiguousMatch) as exc:
            index.update("auth", "decision", "Use OAuth")

        assert len(exc.value.candidates) == 2
        assert {p: p.read_text(encoding="utf-8") for p in tmp_path.glob("*.logfmt")} == documents
        assert not (tmp_path / AUDIT_FILE).exists()

    def test_query_disambiguates(self, index):
        index.remember("decision", "auth", "Use JWT")
        index.remember("decision", "auth", "Use sessions")

        before, _ = index.update("auth", "decision", "Use signed sessions", query="sessions")

        assert before.content == "Use sessions"
        assert [r.content for r in index.iter_records()] == ["Use JWT", "Use signed sessions"]

    def test_query_matching_nothing(self, index):
        index.remember("decision", "auth", "Use JWT")
        index.remember("decision", "auth", "Use sessions")
        with pytest.raises(AmbiguousMatch):
            index.update("auth", "decision", "x", query="kubernetes")

    def test_scope_selects_like_recall(self, seeded):
        with pytest.raises(AmbiguousMatch) as exc:
            seeded.update("AUTH", "decision", "x")
        assert {r.scope for r in exc.value.candidates} == {"auth", "auth-service"}

        before, _ = seeded.update("service", "decision", "Rotate keys daily")
        assert before.content == "Rotate keys weekly"

        with pytest.raises(NotFound):
            seeded.update("auth", "blocker", "x")
        with pytest.raises(InvalidArgument):
            seeded.update("", "decision", "x")

    def test_update_comma_in_tag_rejected(self, seeded, tmp_path):
        documents = {p: p.read_text(encoding="utf-8") for p in tmp_path.glob("*.logfmt")}
        with pytest.raises(InvalidArgument):
            seeded.update("style", "preference", "Prefer spaces", tags=["a,b"])
        assert {p: p.read_text(encoding="utf-8") for p in tmp_path.glob("*.logfmt")} == documents


class TestForget:
    """Test removal with audit."""

    def test_forget(self, seeded, tmp_path):
        removed = seeded.forget("style", "preference", "Superseded by OAuth")

        assert [r.content for r in removed] == ["Prefer tabs"]
        remaining = [r.content for r in seeded.iter_records()]
        assert "Prefer tabs" not in remaining
        assert "Use JWT for auth" in remaining

        audit = seeded.audit_entries()
        assert audit[0].reason == "Superseded by OAuth"
        assert audit[0].record.content == "Prefer tabs"
        assert audit[0].deleted_at

        line = (tmp_path / AUDIT_FILE).read_text(encoding="utf-8").splitlines()[0]
        assert line.startswith("deleted_at=")
        assert 'reason="Superseded by OAuth"' in line

    def test_forget_across_documents(self, index, tmp_path):
        (tmp_path / "2026-01-01.logfmt").write_text('ts=t type=blocker scope=ci content="Flaky runner"\n', encoding="utf-8")
        index.remember("blocker", "ci", "Cache misses")

        removed = index.forget("ci", "blocker", "Fixed")
        assert len(removed) == 2
        assert list(index.iter_records()) == []
        assert (tmp_path / "2026-01-01.logfmt").read_text(encoding="utf-8") == ""

    def test_forget_then_recall_finds_nothing(self, index):
        index.remember("decision", "auth", "Use JWT")
        index.remember("decision", "auth-api", "Version the auth API")
        index.remember("learning", "auth", "Tokens expire hourly")

        removed = index.forget("auth", "decision", "gone")

        assert len(removed) == 2
        assert index.recall(scope="auth", type="decision").records == []
        assert [r.content for r in index.recall(scope="auth").records] == ["Tokens expire hourly"]
        audit = index.audit_entries()
        assert len(audit) == 2
        assert {e.reason for e in audit} == {"gone"}

    def test_forget_nothing(self, seeded, tmp_path):
        assert seeded.forget("nope", "decision", "reason") == []
        assert not (tmp_path / AUDIT_FILE).exists()

    def test_reason_required(self, seeded):
        with pytest.raises(InvalidArgument):
            seeded.forget("auth", "decision", "")

    def test_audit_not_recalled(self, seeded):
        seeded.forget("auth", "decision", "gone")
        assert seeded.recall(query="JWT").records == []

    def test_audit_entry_line(self):
        record = LegacyRecord(ts="t", type="context", scope="ops", content="x")
        entry = DeletionAuditEntry(record=record, reason="old", deleted_at="2026-01-07T00:00:00.000Z")
        parsed = DeletionAuditEntry.from_line(entry.to_line())
        assert parsed.reason == "old"
        assert parsed.record == record


class TestOverview:
    """Test the scope/type listing."""

    def test_overview(self, seeded):
        overview = seeded.overview()

        assert overview.total == 4
        assert overview.types[0] == ("decision", 2)
        scopes = {s.scope: s for s in overview.scopes}
        assert scopes["auth"].types == {"decision": 1}
        assert scopes["api"].count == 1

    def test_empty(self, index):
        overview = index.overview()
        assert overview.total == 0
        assert overview.scopes == []
