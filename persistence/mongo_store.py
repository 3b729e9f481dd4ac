from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Union

from .connection import MongoConnection
from .error_policy import guarded
from .errors import ClearNotAllowedError
from .interfaces import AsyncKeyValueStore
from .records import KEY_FIELD, VALUE_FIELD, KeyValueRecord, normalize_key
from .registry import GLOBAL_COLLECTION_CLAIMS, CollectionClaimRegistry

if TYPE_CHECKING:
    from settings import Settings

Transform = Callable[[dict[str, Any]], Union[Any, Awaitable[Any]]]


def _identity(data: dict[str, Any]) -> dict[str, Any]:
    return data


class MongoKeyValueStore(AsyncKeyValueStore):
    """
    Key-value facade over one MongoDB collection.

    Documents are { key, value } with a unique index on key. Every read/write
    goes through the error policy (see error_policy.guarded); clear() is gated
    by allow_destructive_clear before MongoDB is touched.
    """

    def __init__(
        self,
        uri: str,
        collection_id: str,
        *,
        use_local_host: bool = False,
        ignore_connection_error: bool = False,
        ignore_operation_error: bool = False,
        allow_destructive_clear: bool = False,
        transform: Transform | None = None,
        server_selection_timeout_ms: int | None = None,
        client_factory: Callable[..., Any] | None = None,
        registry: CollectionClaimRegistry | None = None,
    ) -> None:
        self._registry = registry or GLOBAL_COLLECTION_CLAIMS

        self._connection = MongoConnection(
            uri,
            collection_id,
            use_local_host=use_local_host,
            ignore_connection_error=ignore_connection_error,
            server_selection_timeout_ms=server_selection_timeout_ms,
            client_factory=client_factory,
        )
        self.ignore_operation_error = ignore_operation_error
        self.allow_destructive_clear = allow_destructive_clear
        self._transform = transform or _identity

    @classmethod
    def from_settings(cls, settings: "Settings", **overrides: Any) -> "MongoKeyValueStore":
        options: dict[str, Any] = {
            "use_local_host": settings.use_local_host,
            "ignore_connection_error": settings.ignore_connection_error,
            "ignore_operation_error": settings.ignore_operation_error,
            "allow_destructive_clear": settings.allow_destructive_clear,
            "server_selection_timeout_ms": settings.server_selection_timeout_ms,
        }
        options.update(overrides)
        return cls(settings.store_uri, settings.store_collection, **options)

    @property
    def uri(self) -> str:
        return self._connection.uri

    @property
    def collection_id(self) -> str:
        return self._connection.collection_id

    @property
    def connected(self) -> bool:
        return self._connection.connected

    async def start(self) -> None:
        # The collection is claimed on start, not at construction; a no-op
        # while this store already owns it.
        self._registry.claim(self.collection_id, self)
        await self._connection.start()

    async def close(self) -> None:
        try:
            await self._connection.close()
        finally:
            self._registry.release(self.collection_id, self)

    async def __aenter__(self) -> "MongoKeyValueStore":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ---- single-key operations ----------------------------------------------------

    @guarded("get")
    async def get(self, key: Any) -> Any | None:
        doc = await self._connection.collection.find_one(
            {KEY_FIELD: normalize_key(key)}, {VALUE_FIELD: 1, "_id": 0}
        )
        return doc.get(VALUE_FIELD) if doc is not None else None

    @guarded("put")
    async def put(self, key: Any, value: Any) -> None:
        record = KeyValueRecord(key=key, value=value)
        await self._connection.collection.update_one(
            {KEY_FIELD: record.key},
            {"$set": {VALUE_FIELD: record.value}},
            upsert=True,
        )

    @guarded("remove")
    async def remove(self, key: Any) -> None:
        await self._connection.collection.delete_one({KEY_FIELD: normalize_key(key)})

    @guarded("contains_key", default=False)
    async def contains_key(self, key: Any) -> bool:
        count = await self._connection.collection.count_documents(
            {KEY_FIELD: normalize_key(key)}, limit=1
        )
        return count > 0

    @guarded("size", default=0)
    async def size(self) -> int:
        return await self._connection.collection.count_documents({})

    # ---- destructive ------------------------------------------------------------

    async def clear(self) -> None:
        if not self.allow_destructive_clear:
            raise ClearNotAllowedError(
                f"clearing collection {self.collection_id!r} is not allowed"
            )
        await self._erase_all()

    @guarded("clear")
    async def _erase_all(self) -> None:
        await self._connection.collection.delete_many({})

    # ---- bulk ---------------------------------------------------------------------

    @guarded("keys", default_factory=list)
    async def keys(self) -> list[str]:
        cursor = self._connection.collection.find({}, {KEY_FIELD: 1, "_id": 0})
        return [doc[KEY_FIELD] async for doc in cursor]

    @guarded("values", default_factory=list)
    async def values(self) -> list[Any]:
        cursor = self._connection.collection.find({}, {VALUE_FIELD: 1, "_id": 0})
        return [doc.get(VALUE_FIELD) async for doc in cursor]

    @guarded("entries", default_factory=list)
    async def entries(self) -> list[KeyValueRecord]:
        cursor = self._connection.collection.find({}, {KEY_FIELD: 1, VALUE_FIELD: 1, "_id": 0})
        return [KeyValueRecord.from_document(doc) async for doc in cursor]

    async def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {}
        for entry in await self.entries():
            result[entry.key] = entry.value
        return result

    async def load(self, transform: Transform | None = None) -> Any:
        """
        Snapshot the store as a dict and pass it through `transform`
        (falls back to the transform given at construction, then identity).
        """
        snapshot = await self.to_dict()
        out = (transform or self._transform)(snapshot)
        if inspect.isawaitable(out):
            out = await out
        return out
