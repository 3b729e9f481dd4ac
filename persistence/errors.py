from __future__ import annotations


class StoreError(Exception):
    """Base class for key-value store failures."""


class StoreConnectionError(StoreError, ConnectionError):
    """Establishing the MongoDB link failed."""


class StoreNotConnectedError(StoreError):
    """An operation ran before a successful start()."""


class StoreOperationError(StoreError):
    """A read, write or delete failed against MongoDB."""

    def __init__(self, action: str, cause: BaseException):
        super().__init__(f"{action} failed: {cause}")
        self.action = action


class ClearNotAllowedError(StoreError, PermissionError):
    """clear() called on a store built without allow_destructive_clear."""


class DuplicateStoreError(StoreError):
    """Another live store in this process already owns the collection."""
