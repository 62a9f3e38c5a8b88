"""Tests for the merge engine."""

import pytest

from ctxgit.agent.memory import InvalidArgument, MemoryController, NotFound
from ctxgit.agent.memory.merge import MergeEngine, merge_marker


@pytest.fixture
def memory(tmp_path):
    """Memory with a committed 'exp' branch and the active branch back on main."""
    m = MemoryController(tmp_path)
    m.commit("Base", "Project skeleton")
    m.create_branch("exp", "Try OAuth")
    m.log(observation="Login page 404s", thought="Route missing", action="Add route")
    m.commit("Login route", "Wired /login")
    m.log(entry="Refresh still flaky")
    m.switch("main")
    return m


def _snapshot(memory, branch):
    branch_dir = memory.store.branch_dir(branch)
    return {p.name: p.read_bytes() for p in branch_dir.iterdir()}


class TestMerge:
    """Test merging a branch into the active branch."""

    def test_merge_block(self, memory):
        block = memory.merge("exp", "OAuth login works")

        assert block.source == "exp"
        assert block.destination == "main"
        assert block.source_purpose == "Try OAuth"
        assert block.source_progress == "Initial commit\n- Wired /login"

        text = memory.store.read_commits("main")
        assert "**MERGE**: exp → main" in text
        assert "## Merge Summary\nOAuth login works" in text
        assert "**Purpose**: Try OAuth" in text
        assert "## Merged Commits from 'exp'" in text

    def test_source_untouched(self, memory):
        before = _snapshot(memory, "exp")
        memory.merge("exp", "OAuth login works")
        assert _snapshot(memory, "exp") == before

    def test_destination_log(self, memory):
        memory.log(entry="Main-side note")
        memory.merge("exp", "OAuth login works")

        log = memory.store.read_log("main")
        assert "Main-side note" in log
        assert merge_marker("exp") in log
        assert "Refresh still flaky" in log
        assert log.index("Main-side note") < log.index(merge_marker("exp"))

    def test_roadmap_and_metadata(self, memory):
        memory.merge("exp", "OAuth login works")

        assert "- [MERGE] exp → main: OAuth login works" in memory.roadmap.read()
        assert memory.store.load_metadata("main").merged_from == ["exp"]

    def test_merge_does_not_change_progress(self, memory):
        memory.merge("exp", "OAuth login works")
        record = memory.commit("After merge", "Integrated OAuth")

        assert record.previous_summary == "Initial commit\n- Project skeleton"
        assert record.hash.startswith("0002-")
        history = memory.store.load_history("main")
        assert [e.kind for e in history.entries] == ["commit", "merge", "commit"]

    def test_merge_branch_without_commits(self, memory):
        memory.create_branch("empty", "Nothing yet")
        memory.switch("main")

        block = memory.merge("empty", "Abandoned")
        assert block.source_purpose == "Nothing yet"
        assert block.source_progress == "No commits yet"

    def test_merge_twice(self, memory):
        memory.merge("exp", "First pass")
        memory.merge("exp", "Second pass")

        assert len(memory.store.load_history("main").merges) == 2
        assert memory.store.load_metadata("main").merged_from == ["exp", "exp"]

    def test_missing_source(self, memory):
        with pytest.raises(NotFound):
            memory.merge("nope", "summary")

    def test_merge_into_itself(self, memory):
        before = memory.store.read_commits("main")
        with pytest.raises(InvalidArgument):
            memory.merge("main", "summary")
        assert memory.store.read_commits("main") == before

    def test_empty_summary(self, memory):
        with pytest.raises(InvalidArgument):
            memory.merge("exp", " ")

    def test_without_inlined_history(self, memory):
        engine = MergeEngine(memory.store, memory.roadmap, inline_history=False)
        block = engine.merge("exp", "main", "OAuth login works")

        assert block.source_history == ""
        assert "## Merged Commits from" not in memory.store.read_commits("main")

    def test_branch_view_lists_merge(self, memory):
        memory.merge("exp", "OAuth login works")
        view = memory.context("branch")

        assert "## Merged Branches" in view
        assert "OAuth login works" in view
