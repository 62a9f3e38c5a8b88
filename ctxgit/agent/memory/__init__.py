"""
Git-like memory system for ctxgit.

This module provides a versioned, traceable memory architecture inspired by git,
supporting:
- Per-branch commit histories with cumulative progress summaries
- Isolated branches for exploring alternatives, merged back one-way
- Fine-grained trace logs between commits
- Multi-level context retrieval
- A flat, date-partitioned record index with lexical search
"""

from ctxgit.agent.memory.errors import MemoryStoreError, NotFound, AmbiguousMatch, InvalidArgument
from ctxgit.agent.memory.commit import CommitRecord, MergeBlock
from ctxgit.agent.memory.history import BranchHistory, parse_history
from ctxgit.agent.memory.branch import BranchMetadata
from ctxgit.agent.memory.store import BranchStore, RoadmapStore, ActiveBranch
from ctxgit.agent.memory.trace import LogEntry, TraceLogger
from ctxgit.agent.memory.legacy import LegacyMemoryIndex, LegacyRecord, DeletionAuditEntry
from ctxgit.agent.memory.controller import MemoryController, MemorySession

__all__ = [
    "MemoryStoreError",
    "NotFound",
    "AmbiguousMatch",
    "InvalidArgument",
    "CommitRecord",
    "MergeBlock",
    "BranchHistory",
    "parse_history",
    "BranchMetadata",
    "BranchStore",
    "RoadmapStore",
    "ActiveBranch",
    "LogEntry",
    "TraceLogger",
    "LegacyMemoryIndex",
    "LegacyRecord",
    "DeletionAuditEntry",
    "MemoryController",
    "MemorySession",
]
