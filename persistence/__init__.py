from __future__ import annotations

from .connection import MongoConnection, local_host_uri
from .errors import (
    ClearNotAllowedError,
    DuplicateStoreError,
    StoreConnectionError,
    StoreError,
    StoreNotConnectedError,
    StoreOperationError,
)
from .interfaces import AsyncKeyValueStore
from .mongo_store import MongoKeyValueStore
from .records import KeyValueRecord
from .registry import CollectionClaimRegistry

__all__ = [
    "AsyncKeyValueStore",
    "MongoKeyValueStore",
    "MongoConnection",
    "local_host_uri",
    "KeyValueRecord",
    "CollectionClaimRegistry",
    "StoreError",
    "StoreConnectionError",
    "StoreNotConnectedError",
    "StoreOperationError",
    "ClearNotAllowedError",
    "DuplicateStoreError",
]
