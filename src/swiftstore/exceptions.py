"""Custom exception hierarchy for swiftstore."""

from __future__ import annotations


class SwiftStoreError(Exception):
    """Base exception for all swiftstore errors."""


class StoreConfigError(SwiftStoreError):
    """Invalid store configuration."""


class MergeError(SwiftStoreError):
    """A partial update could not be merged onto a snapshot.

    Raised for partials of an unsupported type and for fields that do not
    exist on a record-typed (pydantic model or dataclass) snapshot.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class CommitConflictError(SwiftStoreError):
    """The snapshot kept changing underneath a compare-and-swap commit.

    Only raised in ``CommitMode.COMPARE_AND_SWAP`` once the configured number
    of re-runs is exhausted.
    """

    def __init__(self, message: str, *, attempts: int = 0) -> None:
        self.attempts = attempts
        super().__init__(message)
