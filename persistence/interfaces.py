from __future__ import annotations

from typing import Any, Protocol

from .records import KeyValueRecord


class AsyncKeyValueStore(Protocol):
    """
    Persistent string-keyed store of arbitrary structured values.
    """

    async def start(self) -> None: ...
    async def close(self) -> None: ...

    async def get(self, key: Any) -> Any | None: ...
    async def put(self, key: Any, value: Any) -> None: ...
    async def remove(self, key: Any) -> None: ...
    async def contains_key(self, key: Any) -> bool: ...
    async def size(self) -> int: ...

    async def clear(self) -> None:
        """Erase every record. Only permitted when the store allows it."""
        ...

    async def keys(self) -> list[str]: ...
    async def values(self) -> list[Any]: ...
    async def entries(self) -> list[KeyValueRecord]: ...

    async def to_dict(self) -> dict[str, Any]: ...
    async def load(self, transform: Any = None) -> Any: ...
