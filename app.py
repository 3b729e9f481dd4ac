from __future__ import annotations

import contextlib
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from dotenv import load_dotenv

from persistence import ClearNotAllowedError, MongoKeyValueStore, StoreOperationError

logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    store: MongoKeyValueStore = app.state.store
    await store.start()
    try:
        yield
    finally:
        await store.close()


def create_app(store: MongoKeyValueStore | None = None) -> FastAPI:
    load_dotenv("local.env")

    from endpoints.store_endpoints import router as store_router
    from settings import get_settings

    if store is None:
        store = MongoKeyValueStore.from_settings(get_settings())

    app = FastAPI(lifespan=lifespan)
    app.state.store = store

    @app.exception_handler(ClearNotAllowedError)
    async def clear_not_allowed(request: Request, exc: ClearNotAllowedError):
        return JSONResponse({"detail": str(exc)}, status_code=403)

    @app.exception_handler(StoreOperationError)
    async def store_unavailable(request: Request, exc: StoreOperationError):
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc)
        return JSONResponse({"detail": str(exc)}, status_code=503)

    @app.get("/healthz")
    async def healthz():
        return {"ok": True, "connected": store.connected}

    app.include_router(store_router)

    return app


app = create_app()
