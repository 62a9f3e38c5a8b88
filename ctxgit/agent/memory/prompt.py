"""System prompt section describing the memory and its current state."""

from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from ctxgit.agent.memory.controller import MemoryController


MEMORY_PROMPT = """<memory_context>
You have a versioned memory organised like git: branches, commits and a trace log.

## Available Commands

### COMMIT (memory_commit)
Call when you reach a meaningful milestone (a function implemented, a test passing, a subgoal resolved).
Args: message (summary), contribution (detailed description), update_roadmap (optional boolean)

### BRANCH (memory_branch)
Call to explore an alternative approach without affecting the current line of work.
Args: name (branch name), purpose (why this branch)

### MERGE (memory_merge)
Call when a finished branch should be folded back into the current branch.
Args: branch (branch to merge), summary (outcome and integration summary)

### CONTEXT (memory_context)
Call to retrieve history at the level of detail you need.
Levels: roadmap, branch, commits, commit (needs commit_hash), log (lines, offset), metadata

### LOG (memory_log)
Call to record Observation-Thought-Action steps between commits.
Args: observation, thought, action (structured) OR entry (freeform)

### SWITCH (memory_switch)
Args: branch (branch name to switch to)

## Current State
Current Branch: {branch}
{roadmap}</memory_context>
"""


def build_system_prompt(memory: "MemoryController", roadmap_chars: int | None = None) -> str:
    """
    Render the memory prompt section for the host's system prompt.

    Failures are logged and produce an empty string; a broken memory
    directory must not stop the host from building its prompt.
    """
    try:
        limit = roadmap_chars or memory.config.roadmap_summary_chars
        session = memory.session()
        summary = memory.roadmap.summary(limit)
        roadmap = f"Project Roadmap Summary:\n{summary.rstrip()}\n" if summary.strip() else ""
        return MEMORY_PROMPT.format(branch=session.branch, roadmap=roadmap)
    except Exception as e:
        logger.error(f"Memory prompt injection failed: {e}")
        return ""
