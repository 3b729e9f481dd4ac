from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel, field_validator

from persistence import MongoKeyValueStore
from settings import get_settings

router = APIRouter(prefix="/store", tags=["store"])
logger = logging.getLogger(__name__)

SETTINGS = get_settings()
DEBUG_LOG_REQUESTS = SETTINGS.debug_log_requests


class PutValueBody(BaseModel):
    value: Any

    @field_validator("value")
    @classmethod
    def _value_required(cls, v: Any) -> Any:
        # null is a client error (422), not a store failure
        if v is None:
            raise ValueError("value must not be null")
        return v


def _store(request: Request) -> MongoKeyValueStore:
    if DEBUG_LOG_REQUESTS:
        logger.info("%s %s", request.method, request.url.path)
    return request.app.state.store


@router.get("")
async def store_snapshot(request: Request) -> dict[str, Any]:
    return await _store(request).to_dict()


@router.get("/snapshot")
async def store_load(request: Request) -> Any:
    return await _store(request).load()


@router.delete("", status_code=204)
async def store_clear(request: Request) -> Response:
    await _store(request).clear()
    return Response(status_code=204)


@router.get("/size")
async def store_size(request: Request) -> dict[str, int]:
    return {"size": await _store(request).size()}


@router.get("/keys")
async def store_keys(request: Request) -> list[str]:
    return await _store(request).keys()


@router.get("/values")
async def store_values(request: Request) -> list[Any]:
    return await _store(request).values()


@router.get("/entries")
async def store_entries(request: Request) -> list[dict[str, Any]]:
    return [e.to_document() for e in await _store(request).entries()]


@router.get("/items/{key}")
async def item_get(key: str, request: Request) -> dict[str, Any]:
    value = await _store(request).get(key)
    if value is None:
        raise HTTPException(status_code=404, detail=f"Unknown key: {key}")
    return {"key": key, "value": value}


@router.put("/items/{key}")
async def item_put(key: str, body: PutValueBody, request: Request) -> dict[str, Any]:
    await _store(request).put(key, body.value)
    return {"key": key, "value": body.value}


@router.delete("/items/{key}", status_code=204)
async def item_remove(key: str, request: Request) -> Response:
    await _store(request).remove(key)
    return Response(status_code=204)


@router.get("/items/{key}/exists")
async def item_exists(key: str, request: Request) -> dict[str, bool]:
    return {"exists": await _store(request).contains_key(key)}
