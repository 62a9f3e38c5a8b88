"""
Branch engine - create branches and move the active-branch pointer.
"""

from loguru import logger

from ctxgit.agent.memory.branch import BranchMetadata
from ctxgit.agent.memory.errors import InvalidArgument, NotFound
from ctxgit.agent.memory.history import MAIN_BRANCH, MAIN_PURPOSE, BranchHistory
from ctxgit.agent.memory.store import ActiveBranch, BranchStore, validate_branch_name
from ctxgit.utils.helpers import timestamp


class BranchEngine:
    """
    Creates branches and switches between them.

    There is no locking: two concurrent switches race and the last write wins.
    """

    def __init__(self, store: BranchStore, active: ActiveBranch):
        self.store = store
        self.active = active

    def create(self, name: str, purpose: str) -> BranchHistory:
        """
        Create a branch and make it active.

        Writes a commit history holding only the purpose and a "created at"
        note, an empty trace log and the metadata document.

        Args:
            name: New branch name.
            purpose: Why the branch exists.

        Returns:
            The new branch's (empty) history.

        Raises:
            InvalidArgument: If the name is invalid, the purpose is empty, or
                the branch already exists.
        """
        name = validate_branch_name(name)
        if not purpose or not purpose.strip():
            raise InvalidArgument("Branch purpose is required")
        if self.store.exists(name):
            raise InvalidArgument(f"Branch '{name}' already exists. Use switch to change to it.")

        created = timestamp()
        history = self._initialize(name, purpose.strip(), f"Branch created at {created}", created)
        self.active.set(name)

        logger.info(f"Created branch '{name}' and switched to it")
        return history

    def switch(self, name: str) -> str:
        """
        Point the active branch at ``name``.

        Raises:
            NotFound: If the branch has no commit history.
        """
        name = validate_branch_name(name)
        if not self.store.exists(name):
            raise NotFound(f"Branch '{name}' does not exist. Use branch to create it.")
        previous = self.active.get()
        self.active.set(name)
        logger.info(f"Switched branch '{previous}' -> '{name}'")
        return previous

    def ensure_main(self) -> bool:
        """
        Make sure ``main`` exists.

        Returns:
            True if main was created by this call.
        """
        if self.store.exists(MAIN_BRANCH):
            return False
        created = timestamp()
        self._initialize(MAIN_BRANCH, MAIN_PURPOSE, f"Initialized at {created}", created)
        logger.debug("Initialized main branch")
        return True

    def _initialize(self, name: str, purpose: str, note: str, created: str) -> BranchHistory:
        history = BranchHistory(branch=name, purpose=purpose, created_note=note)
        self.store.save_history(history)
        self.store.write_log(name, "")
        self.store.save_metadata(BranchMetadata(name=name, created=created, purpose=purpose))
        return history
