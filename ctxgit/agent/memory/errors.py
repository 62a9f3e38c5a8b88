"""Error taxonomy for the memory engine.

Engines raise these; the tool layer turns them into failure text.
"""


class MemoryStoreError(Exception):
    """Base class for all memory engine errors."""


class NotFound(MemoryStoreError):
    """A branch, commit, record or document does not exist."""


class AmbiguousMatch(MemoryStoreError):
    """More than one record matches and nothing breaks the tie."""

    def __init__(self, message: str, candidates: list | None = None):
        super().__init__(message)
        self.candidates = candidates or []


class InvalidArgument(MemoryStoreError):
    """A required parameter is missing or a value is not recognised."""
