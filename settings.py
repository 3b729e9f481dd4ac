from __future__ import annotations

import os
from dataclasses import dataclass


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


@dataclass(frozen=True)
class Settings:
    # MongoDB
    store_uri: str
    store_collection: str
    use_local_host: bool
    server_selection_timeout_ms: int

    # Error policy
    ignore_connection_error: bool
    ignore_operation_error: bool
    allow_destructive_clear: bool

    # Debug
    debug_log_requests: bool


def get_settings() -> Settings:
    store_uri = os.getenv("KV_STORE_URI", "mongodb://127.0.0.1:27017/kvstore").strip()
    store_collection = os.getenv("KV_STORE_COLLECTION", "key_values").strip()
    use_local_host = _env_bool("KV_STORE_USE_LOCAL_HOST", False)
    server_selection_timeout_ms = _env_int("KV_STORE_SERVER_SELECTION_TIMEOUT_MS", 30000)

    ignore_connection_error = _env_bool("KV_STORE_IGNORE_CONNECTION_ERROR", False)
    ignore_operation_error = _env_bool("KV_STORE_IGNORE_OPERATION_ERROR", False)
    # Off unless explicitly enabled; clear() wipes the whole collection.
    allow_destructive_clear = _env_bool("KV_STORE_ALLOW_CLEAR", False)

    debug_log_requests = _env_bool("DEBUG_LOG_REQUESTS", True)

    return Settings(
        store_uri=store_uri,
        store_collection=store_collection,
        use_local_host=use_local_host,
        server_selection_timeout_ms=server_selection_timeout_ms,
        ignore_connection_error=ignore_connection_error,
        ignore_operation_error=ignore_operation_error,
        allow_destructive_clear=allow_destructive_clear,
        debug_log_requests=debug_log_requests,
    )
