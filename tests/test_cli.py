"""Tests for the command-line interface."""

import pytest
from typer.testing import CliRunner

from ctxgit import __version__
from ctxgit.cli.commands import app

runner = CliRunner()


@pytest.fixture
def invoke(tmp_path):
    """Run the CLI against a temporary memory root and no config file."""
    base = ["--root", str(tmp_path / "mem"), "--config", str(tmp_path / "config.json")]

    def _invoke(*args: str):
        return runner.invoke(app, base + list(args))

    return _invoke


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_init(invoke, tmp_path):
    result = invoke("init")
    assert result.exit_code == 0
    assert "Memory ready" in result.output
    assert (tmp_path / "mem" / ".ctx" / "branches" / "main" / "commit.md").exists()


def test_commit_and_context(invoke):
    result = invoke("commit", "Set up project", "-c", "Created the skeleton")
    assert result.exit_code == 0
    assert "Committed [0001-" in result.output

    result = invoke("context", "branch")
    assert result.exit_code == 0
    assert "Set up project" in result.output


def test_branch_merge_flow(invoke):
    assert invoke("branch", "exp", "-p", "Try OAuth").exit_code == 0
    assert invoke("log", "-o", "Login 404s", "-a", "Add route").exit_code == 0
    assert invoke("commit", "Login", "-c", "Added login").exit_code == 0
    assert invoke("switch", "main").exit_code == 0

    result = invoke("merge", "exp", "-s", "OAuth works")
    assert result.exit_code == 0
    assert "Merged 'exp' into 'main'" in result.output

    result = invoke("context", "commits")
    assert "**MERGE**: exp → main" in result.output


def test_failure_exit_code(invoke):
    result = invoke("switch", "nope")
    assert result.exit_code == 1
    assert "✗" in result.output


def test_records(invoke):
    result = invoke("remember", "decision", "auth", "Use JWT", "--tag", "api", "--tag", "security")
    assert result.exit_code == 0

    result = invoke("recall", "jwt")
    assert result.exit_code == 0
    assert "[decision] auth: Use JWT #api #security" in result.output

    result = invoke("list")
    assert "- auth (1)" in result.output

    result = invoke("update", "auth", "decision", "Use OAuth")
    assert result.exit_code == 0
    assert "After: Use OAuth" in result.output

    result = invoke("forget", "auth", "decision", "--reason", "Replaced")
    assert result.exit_code == 0
    assert "Forgot 1 decision" in result.output


def test_status_and_tools(invoke):
    result = invoke("status")
    assert result.exit_code == 0
    assert "main" in result.output

    result = invoke("tools")
    assert result.exit_code == 0
    assert "memory_commit" in result.output


def test_prompt(invoke):
    result = invoke("prompt")
    assert result.exit_code == 0
    assert "Current Branch: main" in result.output
