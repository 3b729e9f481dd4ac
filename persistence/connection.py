from __future__ import annotations

import logging
import re
import socket
from typing import Any, Callable

from pymongo import AsyncMongoClient
from pymongo.errors import PyMongoError

from .errors import StoreConnectionError, StoreNotConnectedError
from .records import KEY_INDEX_KEYS, KEY_INDEX_NAME

logger = logging.getLogger(__name__)

DEFAULT_PORT = 27017
# Database used by the driver when the URI names none.
DEFAULT_DATABASE = "test"

_SCHEME_AND_HOST_RE = re.compile(r"^mongodb(\+srv)?://[^/?]*/?")


def local_host_uri(uri: str, hostname: str | None = None) -> str:
    """
    Point `uri` at this machine on the default port, keeping its database/path part.

    "mongodb://db.example:27017/app?authSource=admin" -> "mongodb://<host>:27017/app?authSource=admin"
    """
    host = hostname or socket.gethostname()
    path = _SCHEME_AND_HOST_RE.sub("", uri.strip()).rstrip("/")
    return f"mongodb://{host}:{DEFAULT_PORT}/{path}"


class MongoConnection:
    """
    Owns the single MongoDB client of one store instance.

    disconnected -> connected via start(); close() goes back to disconnected.
    """

    def __init__(
        self,
        uri: str,
        collection_id: str,
        *,
        use_local_host: bool = False,
        ignore_connection_error: bool = False,
        server_selection_timeout_ms: int | None = None,
        client_factory: Callable[..., Any] | None = None,
    ) -> None:
        self._uri = local_host_uri(uri) if use_local_host else uri
        self._collection_id = collection_id
        self._ignore_connection_error = ignore_connection_error
        self._server_selection_timeout_ms = server_selection_timeout_ms
        self._client_factory = client_factory or AsyncMongoClient
        self._client: Any = None
        self._collection: Any = None

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def collection_id(self) -> str:
        return self._collection_id

    @property
    def connected(self) -> bool:
        return self._collection is not None

    @property
    def collection(self) -> Any:
        if self._collection is None:
            raise StoreNotConnectedError(f"collection {self._collection_id!r} is not connected")
        return self._collection

    async def start(self) -> None:
        if self.connected:
            logger.debug("MongoDB connection for %r already established", self._collection_id)
            return

        kwargs: dict[str, Any] = {}
        if self._server_selection_timeout_ms is not None:
            kwargs["serverSelectionTimeoutMS"] = self._server_selection_timeout_ms

        client = None
        try:
            client = self._client_factory(self._uri, **kwargs)
            await client.admin.command("ping")
            collection = client.get_default_database(default=DEFAULT_DATABASE)[self._collection_id]
            await collection.create_index(KEY_INDEX_KEYS, unique=True, name=KEY_INDEX_NAME)
        except PyMongoError as e:
            if client is not None:
                try:
                    await client.close()
                except PyMongoError as close_error:
                    logger.warning("Closing MongoDB client for %r failed: %s", self._collection_id, close_error)
            if self._ignore_connection_error:
                logger.error("MongoDB connection error for %r: %s", self._collection_id, e)
                return
            raise StoreConnectionError(f"could not connect to MongoDB for {self._collection_id!r}: {e}") from e

        self._client = client
        self._collection = collection
        logger.info("MongoDB connection established for %r", self._collection_id)

    async def close(self) -> None:
        client = self._client
        self._client = None
        self._collection = None
        if client is not None:
            await client.close()
