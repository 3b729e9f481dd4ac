from __future__ import annotations

import threading
import weakref

from .errors import DuplicateStoreError


class CollectionClaimRegistry:
    """
    Tracks which live store instance owns each collection id within this process.

    Owners are held weakly: a store that is garbage-collected without close()
    gives up its claim.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._owners: weakref.WeakValueDictionary[str, object] = weakref.WeakValueDictionary()

    def claim(self, collection_id: str, owner: object) -> None:
        with self._guard:
            current = self._owners.get(collection_id)
            if current is not None and current is not owner:
                raise DuplicateStoreError(
                    f"collection {collection_id!r} is already in use by another store"
                )
            self._owners[collection_id] = owner

    def release(self, collection_id: str, owner: object) -> None:
        with self._guard:
            if self._owners.get(collection_id) is owner:
                del self._owners[collection_id]

    def is_claimed(self, collection_id: str) -> bool:
        with self._guard:
            return self._owners.get(collection_id) is not None


GLOBAL_COLLECTION_CLAIMS = CollectionClaimRegistry()
