from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import ValidationError
from pymongo.errors import PyMongoError

from .errors import StoreNotConnectedError, StoreOperationError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Failures that count as "the backing store could not do it".
BACKING_STORE_ERRORS = (PyMongoError, StoreNotConnectedError, ValidationError)


def guarded(
    action: str,
    *,
    default: Any = None,
    default_factory: Callable[[], Any] | None = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """
    Wrap an async store method with the store's error policy.

    If the instance has `ignore_operation_error` set, a backing-store failure is
    logged and the safe default is returned. Otherwise it is re-raised as
    StoreOperationError. Anything else (e.g. ClearNotAllowedError) passes through.
    """

    def decorator(method: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(method)
        async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
            try:
                return await method(self, *args, **kwargs)
            except BACKING_STORE_ERRORS as e:
                if not getattr(self, "ignore_operation_error", False):
                    raise StoreOperationError(action, e) from e
                logger.warning("Error during %s: %s", action, e)
                return default_factory() if default_factory is not None else default

        return wrapper

    return decorator
