"""
Merge engine - copy a branch's outcome into another branch.

A merge is one-directional: the destination gains a merge block in its commit
history and the source's trace log in its own trace log. The source branch's
documents are only ever read.
"""

from loguru import logger

from ctxgit.agent.memory.commit import MergeBlock
from ctxgit.agent.memory.errors import InvalidArgument, NotFound
from ctxgit.agent.memory.store import BranchStore, RoadmapStore, validate_branch_name
from ctxgit.utils.helpers import timestamp

NO_PROGRESS = "No commits yet"


def merge_marker(source: str) -> str:
    """Line that introduces a merged trace log in the destination log."""
    return f"== Merged from Branch: {source} =="


class MergeEngine:
    """Merges a source branch into a destination branch."""

    def __init__(self, store: BranchStore, roadmap: RoadmapStore, inline_history: bool = True):
        self.store = store
        self.roadmap = roadmap
        self.inline_history = inline_history

    def merge(self, source: str, destination: str, summary: str) -> MergeBlock:
        """
        Merge ``source`` into ``destination``.

        Args:
            source: Branch to merge from; must have a commit history.
            destination: Branch receiving the merge (normally the active branch).
            summary: Outcome of the source branch and how it is integrated.

        Returns:
            The merge block appended to the destination history.

        Raises:
            NotFound: If the source branch does not exist.
            InvalidArgument: If source and destination are the same branch or
                the summary is empty.
        """
        source = validate_branch_name(source)
        destination = validate_branch_name(destination)
        if not self.store.exists(source):
            raise NotFound(f"Branch '{source}' not found")
        if source == destination:
            raise InvalidArgument(f"Cannot merge branch '{source}' into itself")
        if not summary or not summary.strip():
            raise InvalidArgument("Merge summary is required")

        # Read everything from the source up front; it is never written.
        source_history = self.store.load_history(source)
        source_text = self.store.read_commits(source)
        source_log = self.store.read_log(source)

        block = MergeBlock(
            source=source,
            destination=destination,
            timestamp=timestamp(),
            summary=summary.strip(),
            source_purpose=source_history.resolve_purpose(),
            source_progress=source_history.progress() or NO_PROGRESS,
            source_history=source_text if self.inline_history else "",
        )

        self.store.ensure(destination)
        destination_history = self.store.load_history(destination)
        self.store.append_entry(destination_history, block)

        existing_log = self.store.read_log(destination)
        self.store.write_log(
            destination,
            f"{existing_log}\n\n{merge_marker(source)}\n{source_log}\n",
        )

        metadata = self.store.load_metadata(destination)
        metadata.merged_from.append(source)
        self.store.save_metadata(metadata)

        self.roadmap.append_merge(source, destination, block.summary)

        logger.info(f"Merged '{source}' into '{destination}'")
        return block
