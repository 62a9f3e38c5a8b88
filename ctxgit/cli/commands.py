"""CLI commands for ctxgit."""

import asyncio
import sys
from pathlib import Path
from typing import Any

import typer
from loguru import logger
from rich.console import Console
from rich.table import Table

from ctxgit import __version__, __logo__

app = typer.Typer(
    name="ctxgit",
    help=f"{__logo__} ctxgit - Versioned memory for agents",
    no_args_is_help=True,
)

console = Console()

_state: dict[str, Any] = {"root": None, "config": None, "verbose": False}


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} ctxgit v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
    root: Path = typer.Option(None, "--root", "-r", help="Memory root directory (overrides config)"),
    config_path: Path = typer.Option(None, "--config", help="Path to config.json"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging"),
):
    """ctxgit - Versioned memory for agents."""
    _state["root"] = root
    _state["config"] = config_path
    _state["verbose"] = verbose


# ============================================================================
# Helpers
# ============================================================================


def _load_config():
    from ctxgit.config.loader import load_config

    config = load_config(_state["config"])
    if _state["root"] is not None:
        config.memory.root = str(_state["root"])

    logger.remove()
    level = "DEBUG" if _state["verbose"] else config.log_level
    logger.add(lambda msg: sys.stderr.write(msg), level=level)
    return config


def _memory():
    from ctxgit.agent.memory.controller import MemoryController

    return MemoryController.from_config(_load_config())


def _registry(memory):
    from ctxgit.agent.tools.memory import register_memory_tools
    from ctxgit.agent.tools.registry import ToolRegistry

    return register_memory_tools(ToolRegistry(), memory)


def _run_tool(name: str, /, **params: Any) -> None:
    """Run one memory tool, print its text and exit 1 on failure."""
    from ctxgit.agent.tools.registry import FAILURE

    registry = _registry(_memory())
    result = asyncio.run(registry.execute(name, params))
    console.print(result, markup=False, highlight=False, soft_wrap=True)
    if result.startswith(FAILURE):
        raise typer.Exit(1)


# ============================================================================
# Setup
# ============================================================================


@app.command()
def init():
    """Initialize the memory directory (main branch, roadmap, pointer)."""
    memory = _memory()
    console.print(f"[green]✓[/green] Memory ready at {memory.root}")
    console.print(f"Current branch: [cyan]{memory.session().branch}[/cyan]")


@app.command()
def status():
    """Show the active branch and the memory hierarchy."""
    memory = _memory()
    info = memory.status()

    console.print(f"{__logo__} ctxgit Status\n")
    console.print(f"Memory root: {memory.root}")

    table = Table(title=f"Branch: {info['branch']}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Purpose", info["purpose"])
    table.add_row("Commits", str(info["commits"]))
    table.add_row("Merges", str(info["merges"]))
    table.add_row("Uncommitted log lines", str(info["log_lines"]))
    table.add_row("Branches", ", ".join(info["branches"]))
    table.add_row("Records", str(info["records"]))
    console.print(table)


@app.command()
def tools():
    """List the memory tools exposed to an agent."""
    registry = _registry(_memory())

    table = Table(title="Memory Tools")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Description")
    for definition in registry.get_definitions():
        fn = definition["function"]
        table.add_row(fn["name"], fn["description"])
    console.print(table)


@app.command()
def prompt():
    """Print the memory section of the agent system prompt."""
    from ctxgit.agent.memory.prompt import build_system_prompt

    console.print(build_system_prompt(_memory()), markup=False, highlight=False, soft_wrap=True)


# ============================================================================
# Branch hierarchy
# ============================================================================


@app.command()
def commit(
    message: str = typer.Argument(..., help="Commit message"),
    contribution: str = typer.Option(..., "--contribution", "-c", help="What this milestone achieved"),
    roadmap: bool = typer.Option(False, "--roadmap", help="Also add a milestone line to the roadmap"),
):
    """Checkpoint progress on the current branch."""
    _run_tool("memory_commit", message=message, contribution=contribution, update_roadmap=roadmap)


@app.command()
def branch(
    name: str = typer.Argument(..., help="New branch name"),
    purpose: str = typer.Option(..., "--purpose", "-p", help="What this branch explores"),
):
    """Create a branch and switch to it."""
    _run_tool("memory_branch", name=name, purpose=purpose)


@app.command()
def switch(
    name: str = typer.Argument(..., help="Branch to switch to"),
):
    """Switch the active branch."""
    _run_tool("memory_switch", branch=name)


@app.command()
def merge(
    source: str = typer.Argument(..., help="Branch to merge into the current branch"),
    summary: str = typer.Option(..., "--summary", "-s", help="Outcome and integration summary"),
):
    """Merge a branch into the current branch."""
    _run_tool("memory_merge", branch=source, summary=summary)


@app.command()
def context(
    level: str = typer.Argument("roadmap", help="roadmap, branch, commits, commit, log or metadata"),
    branch_name: str = typer.Option(None, "--branch", "-b", help="Branch to inspect"),
    commit_hash: str = typer.Option(None, "--commit", "-c", help="Commit hash (level=commit)"),
    lines: int = typer.Option(None, "--lines", "-n", help="Log lines to show (level=log)"),
    offset: int = typer.Option(None, "--offset", "-o", help="Lines to skip from the end (level=log)"),
):
    """Retrieve memory at a level of detail."""
    _run_tool(
        "memory_context",
        level=level,
        branch_name=branch_name,
        commit_hash=commit_hash,
        lines=lines,
        offset=offset,
    )


@app.command()
def log(
    observation: str = typer.Option(None, "--observation", "-o", help="What was observed"),
    thought: str = typer.Option(None, "--thought", "-t", help="What was thought"),
    action: str = typer.Option(None, "--action", "-a", help="What was done"),
    entry: str = typer.Option(None, "--entry", "-e", help="Freeform entry"),
):
    """Append a step to the current branch's trace log."""
    _run_tool("memory_log", observation=observation, thought=thought, action=action, entry=entry)


# ============================================================================
# Records
# ============================================================================


@app.command()
def remember(
    type: str = typer.Argument(..., help="decision, learning, preference, blocker, context or pattern"),
    scope: str = typer.Argument(..., help="Scope/area (e.g. auth)"),
    content: str = typer.Argument(..., help="Memory content"),
    issue: str = typer.Option(None, "--issue", "-i", help="Related issue"),
    tags: list[str] = typer.Option(None, "--tag", "-t", help="Tag (repeatable)"),
):
    """Store a memory record."""
    _run_tool("memory_remember", type=type, scope=scope, content=content, issue=issue, tags=tags or None)


@app.command()
def recall(
    query: str = typer.Argument(None, help="Search terms"),
    scope: str = typer.Option(None, "--scope", "-s", help="Filter by scope"),
    type: str = typer.Option(None, "--type", "-t", help="Filter by type"),
    limit: int = typer.Option(None, "--limit", "-l", help="Maximum results"),
):
    """Search memory records."""
    _run_tool("memory_recall", query=query, scope=scope, type=type, limit=limit)


@app.command()
def update(
    scope: str = typer.Argument(..., help="Scope of the record"),
    type: str = typer.Argument(..., help="Type of the record"),
    content: str = typer.Argument(..., help="New content"),
    query: str = typer.Option(None, "--query", "-q", help="Pick among several matches"),
    issue: str = typer.Option(None, "--issue", "-i", help="New issue reference"),
    tags: list[str] = typer.Option(None, "--tag", "-t", help="New tag (repeatable)"),
):
    """Update a memory record."""
    _run_tool(
        "memory_update",
        scope=scope,
        type=type,
        content=content,
        query=query,
        issue=issue,
        tags=tags or None,
    )


@app.command()
def forget(
    scope: str = typer.Argument(..., help="Scope of the records"),
    type: str = typer.Argument(..., help="Type of the records"),
    reason: str = typer.Option(..., "--reason", help="Why they are removed"),
):
    """Forget memory records (kept in the audit log)."""
    _run_tool("memory_forget", scope=scope, type=type, reason=reason)


@app.command("list")
def list_memories():
    """List memory scopes and types."""
    _run_tool("memory_list")


if __name__ == "__main__":
    app()
