from __future__ import annotations

import asyncio
import copy
from pathlib import Path
import sys
from typing import Any
from urllib.parse import urlparse


import pytest
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError


# Ensure the repository root (parent of ./tests) is importable during pytest collection.
# This avoids ModuleNotFoundError for imports like `import persistence...` under pytest import modes
# that don't automatically prepend the cwd/rootdir to sys.path.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


class FakeMongoServer:
    """
    In-memory stand-in for a MongoDB deployment, shared by every client it hands out.

    Flip `reachable` to False to make pings and collection calls fail the way an
    unreachable server does.
    """

    def __init__(self) -> None:
        self.reachable = True
        self.databases: dict[str, dict[str, FakeCollection]] = {}
        self.clients: list[FakeMongoClient] = []

    def client_factory(self, uri: str, **kwargs: Any) -> "FakeMongoClient":
        client = FakeMongoClient(self, uri, **kwargs)
        self.clients.append(client)
        return client

    def check(self) -> None:
        if not self.reachable:
            raise ServerSelectionTimeoutError("fake server unreachable")

    def collection(self, db_name: str, name: str) -> "FakeCollection":
        db = self.databases.setdefault(db_name, {})
        if name not in db:
            db[name] = FakeCollection(self)
        return db[name]


class _FakeAdmin:
    def __init__(self, server: FakeMongoServer) -> None:
        self._server = server

    async def command(self, name: str) -> dict[str, Any]:
        self._server.check()
        return {"ok": 1.0}


class _FakeDatabase:
    def __init__(self, server: FakeMongoServer, name: str) -> None:
        self._server = server
        self.name = name

    def __getitem__(self, name: str) -> "FakeCollection":
        return self._server.collection(self.name, name)


class FakeMongoClient:
    def __init__(self, server: FakeMongoServer, uri: str, **kwargs: Any) -> None:
        self.server = server
        self.uri = uri
        self.kwargs = kwargs
        self.admin = _FakeAdmin(server)
        self.closed = False

    def get_default_database(self, default: str | None = None) -> _FakeDatabase:
        name = urlparse(self.uri).path.lstrip("/").split("?")[0] or default
        return _FakeDatabase(self.server, name or "test")

    async def close(self) -> None:
        self.closed = True


class _FakeCursor:
    def __init__(self, docs: list[dict[str, Any]]) -> None:
        self._docs = docs

    def __aiter__(self):
        return self._iter()

    async def _iter(self):
        for doc in self._docs:
            yield doc


def _matches(doc: dict[str, Any], flt: dict[str, Any]) -> bool:
    return all(doc.get(k) == v for k, v in flt.items())


def _project(doc: dict[str, Any], projection: dict[str, Any] | None) -> dict[str, Any]:
    if not projection:
        return copy.deepcopy(doc)
    return {k: copy.deepcopy(doc[k]) for k, on in projection.items() if on and k in doc}


class FakeCollection:
    def __init__(self, server: FakeMongoServer) -> None:
        self._server = server
        self.docs: list[dict[str, Any]] = []
        self.indexes: dict[str, dict[str, Any]] = {}
        self._next_id = 1

    def _unique_fields(self) -> list[str]:
        return [index["keys"][0][0] for index in self.indexes.values() if index["unique"]]

    async def create_index(self, keys, unique: bool = False, name: str | None = None):
        self._server.check()
        index_name = name or "_".join(f"{k}_{d}" for k, d in keys)
        self.indexes[index_name] = {"keys": list(keys), "unique": unique}
        return index_name

    async def find_one(self, flt: dict[str, Any], projection: dict[str, Any] | None = None):
        self._server.check()
        for doc in self.docs:
            if _matches(doc, flt):
                return _project(doc, projection)
        return None

    def find(self, flt: dict[str, Any], projection: dict[str, Any] | None = None) -> _FakeCursor:
        self._server.check()
        return _FakeCursor([_project(d, projection) for d in self.docs if _matches(d, flt)])

    async def update_one(self, flt: dict[str, Any], update: dict[str, Any], upsert: bool = False):
        self._server.check()
        changes = copy.deepcopy(update.get("$set", {}))
        for doc in self.docs:
            if _matches(doc, flt):
                doc.update(changes)
                return
        if upsert:
            new_doc = {"_id": self._next_id, **copy.deepcopy(flt), **changes}
            for field in self._unique_fields():
                if any(d.get(field) == new_doc.get(field) for d in self.docs):
                    raise DuplicateKeyError(f"duplicate {field}")
            self._next_id += 1
            self.docs.append(new_doc)

    async def delete_one(self, flt: dict[str, Any]):
        self._server.check()
        for i, doc in enumerate(self.docs):
            if _matches(doc, flt):
                del self.docs[i]
                return

    async def delete_many(self, flt: dict[str, Any]):
        self._server.check()
        self.docs = [d for d in self.docs if not _matches(d, flt)]

    async def count_documents(self, flt: dict[str, Any], limit: int | None = None) -> int:
        self._server.check()
        n = sum(1 for d in self.docs if _matches(d, flt))
        return min(n, limit) if limit else n


@pytest.fixture
def mongo_server() -> FakeMongoServer:
    return FakeMongoServer()


@pytest.fixture
def make_store(mongo_server: FakeMongoServer):
    """
    Build MongoKeyValueStore instances wired to the fake server and an isolated
    claim registry; every store is closed on teardown.
    """
    from persistence import CollectionClaimRegistry, MongoKeyValueStore

    registry = CollectionClaimRegistry()
    created: list[MongoKeyValueStore] = []

    def _make(collection_id: str = "kv", uri: str = "mongodb://db.internal:27017/kvtest", **kwargs: Any):
        kwargs.setdefault("client_factory", mongo_server.client_factory)
        kwargs.setdefault("registry", registry)
        store = MongoKeyValueStore(uri, collection_id, **kwargs)
        created.append(store)
        return store

    _make.registry = registry  # type: ignore[attr-defined]
    yield _make

    for store in created:
        asyncio.run(store.close())
