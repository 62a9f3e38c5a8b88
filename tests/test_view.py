"""Tests for context retrieval and the trace log."""

import pytest

from ctxgit.agent.memory import InvalidArgument, MemoryController, NotFound
from ctxgit.agent.memory.trace import LogEntry


@pytest.fixture
def memory(tmp_path):
    """Create a memory controller in a temporary root."""
    return MemoryController(tmp_path)


@pytest.fixture
def long_log(memory):
    """Main's trace log with 30 numbered lines."""
    memory.store.write_log("main", "".join(f"line {i}\n" for i in range(1, 31)))
    return memory


class TestTraceLogger:
    """Test appending to the trace log."""

    def test_structured_entry(self, memory):
        entry = memory.log(observation="Tests fail", thought="Fixture stale", action="Regenerate")
        log = memory.store.read_log("main")

        assert f"[{entry.timestamp}]" in log
        assert "Observation: Tests fail\nThought: Fixture stale\nAction: Regenerate\n" in log

    def test_freeform_entry(self, memory):
        memory.log(entry="Just a note")
        assert "Just a note" in memory.store.read_log("main")

    def test_partial_triple(self, memory):
        memory.log(thought="Only a thought")
        log = memory.store.read_log("main")
        assert "Thought: Only a thought" in log
        assert "Observation:" not in log

    def test_entries_accumulate(self, memory):
        memory.log(entry="first")
        memory.log(entry="second")
        log = memory.store.read_log("main")
        assert log.index("first") < log.index("second")

    def test_empty_rejected(self, memory):
        with pytest.raises(InvalidArgument):
            memory.log()
        with pytest.raises(InvalidArgument):
            memory.log(entry="   ")

    def test_render(self):
        entry = LogEntry(timestamp="2026-01-05T10:00:00.000Z", observation="o", action="a")
        assert entry.render() == "\n[2026-01-05T10:00:00.000Z]\nObservation: o\nAction: a\n"
        assert str(entry) == "O: o | A: a"


class TestLogWindow:
    """Test the scrollable log view."""

    def test_last_lines(self, long_log):
        window = long_log.retriever.log_window("main", lines=20)

        assert window.lines == [f"line {i}" for i in range(11, 31)]
        assert window.has_earlier
        assert not window.has_later

        text = window.render()
        assert text.startswith("# Log for branch: main")
        assert "(Showing lines 11-30 of 30)" in text
        assert "[scroll up: use offset=20]" in text

    def test_offset(self, long_log):
        window = long_log.retriever.log_window("main", lines=5, offset=10)

        assert window.lines == [f"line {i}" for i in range(16, 21)]
        assert window.has_earlier and window.has_later
        assert "[scroll down: use offset=5]" in window.render()

    def test_window_clamped(self, long_log):
        window = long_log.retriever.log_window("main", lines=50)
        assert len(window.lines) == 30
        assert not window.has_earlier

        beyond = long_log.retriever.log_window("main", lines=5, offset=100)
        assert beyond.lines == []
        assert "(Offset 100 is past the end of the log (30 lines))" in beyond.render()
        assert "[scroll down: use offset=25]" in beyond.render()

    def test_offset_past_short_log(self, memory):
        memory.store.write_log("main", "a\nb\nc\n")

        view = memory.context("log", offset=50)

        assert "(Offset 50 is past the end of the log (3 lines))" in view
        assert "Showing lines" not in view
        assert "[scroll down: use offset=0]" in view
        assert "offset=30" not in view

    def test_default_size(self, long_log):
        view = long_log.context("log")
        assert "(Showing lines 11-30 of 30)" in view
        assert "line 10\n" not in view

    def test_empty_log(self, memory):
        assert "(Log is empty)" in memory.context("log")

    def test_invalid_sizes(self, memory):
        with pytest.raises(InvalidArgument):
            memory.context("log", lines=0)
        with pytest.raises(InvalidArgument):
            memory.context("log", offset=-1)

    def test_missing_branch(self, memory):
        with pytest.raises(NotFound):
            memory.context("log", branch_name="nope")


class TestContextLevels:
    """Test the other context views."""

    def test_roadmap(self, memory):
        memory.create_branch("exp", "Try OAuth")
        view = memory.context()

        assert view.startswith("# Project Roadmap")
        assert "## Available Branches\nCurrent: exp" in view
        assert "1. exp (active)" in view
        assert "2. main" in view

    def test_branch(self, memory):
        view = memory.context("branch")

        assert view.startswith("# Branch: main")
        assert "## Purpose\nMain development branch" in view
        assert "## Last 10 Commits\nNo commits yet" in view

    def test_branch_shows_recent_commits(self, memory):
        records = [memory.commit(f"step-{i:02d}", f"work {i}") for i in range(1, 13)]
        view = memory.context("branch")

        assert "step-01" not in view
        assert "step-02" not in view
        assert f"- {records[2].hash}: step-03" in view
        assert view.index("step-03") < view.index("step-12")

    def test_branch_missing(self, memory):
        with pytest.raises(NotFound):
            memory.context("branch", branch_name="nope")

    def test_commits(self, memory):
        memory.commit("First", "x")
        assert memory.context("commits") == memory.store.read_commits("main")

    def test_commit(self, memory):
        record = memory.commit("First", "x")
        memory.commit("Second", "y")

        view = memory.context("commit", commit_hash=record.hash)
        assert view.startswith("---\n**Commit**: " + record.hash)
        assert "**Message**: First" in view
        assert "Second" not in view

        assert memory.context("commit", commit_hash="0001") == view

    def test_commit_missing(self, memory):
        with pytest.raises(InvalidArgument):
            memory.context("commit")
        with pytest.raises(NotFound):
            memory.context("commit", commit_hash="9999-ffffff")

    def test_metadata(self, memory):
        view = memory.context("metadata")
        assert "branch: main" in view
        assert "purpose: Main development branch" in view

    def test_metadata_missing(self, memory):
        with pytest.raises(NotFound):
            memory.context("metadata", branch_name="nope")

    def test_invalid_level(self, memory):
        with pytest.raises(InvalidArgument):
            memory.context("everything")

    def test_other_branch(self, memory):
        memory.create_branch("exp", "Try OAuth")
        view = memory.context("branch", branch_name="main")
        assert view.startswith("# Branch: main")
