"""Commit engine - checkpoint progress on a branch."""

from loguru import logger

from ctxgit.agent.memory.commit import INITIAL_SUMMARY, CommitRecord
from ctxgit.agent.memory.errors import InvalidArgument
from ctxgit.agent.memory.hash import new_commit_id
from ctxgit.agent.memory.store import BranchStore, RoadmapStore
from ctxgit.utils.helpers import timestamp


class CommitEngine:
    """
    Appends immutable checkpoints to a branch's commit history.

    Each commit carries the branch purpose (first-wins), a cumulative summary
    folded from the previous commit, and its own contribution. Committing
    always empties the branch's trace log.
    """

    def __init__(self, store: BranchStore, roadmap: RoadmapStore):
        self.store = store
        self.roadmap = roadmap

    def commit(
        self,
        branch: str,
        message: str,
        contribution: str,
        update_roadmap: bool = False,
    ) -> CommitRecord:
        """
        Record a commit on ``branch``.

        Args:
            branch: Branch to commit to.
            message: Milestone summary.
            contribution: What was achieved since the previous commit.
            update_roadmap: Also append a dated milestone line to the roadmap.

        Returns:
            The appended commit.

        Raises:
            InvalidArgument: If the message is empty.
        """
        if not message or not message.strip():
            raise InvalidArgument("Commit message is required")

        self.store.ensure(branch)
        history = self.store.load_history(branch)

        last = history.last_commit()
        previous_summary = last.folded_summary() if last else INITIAL_SUMMARY

        record = CommitRecord(
            hash=new_commit_id(len(history.commits) + 1),
            timestamp=timestamp(),
            message=message.strip(),
            purpose=history.resolve_purpose(),
            previous_summary=previous_summary,
            contribution=(contribution or "").strip(),
        )
        self.store.append_entry(history, record)

        # The trace log has been summarised into the commit.
        self.store.write_log(branch, "")

        metadata = self.store.load_metadata(branch)
        if not metadata.created:
            metadata.created = record.timestamp
        metadata.commits = len(history.commits)
        metadata.last_commit = record.hash
        metadata.last_commit_at = record.timestamp
        self.store.save_metadata(metadata)

        if update_roadmap:
            self.roadmap.append_milestone(record.message)

        logger.info(f"Committed [{record.hash}] on '{branch}': {record.message}")
        return record
