from __future__ import annotations

import json
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException
from starlette.middleware.cors import CORSMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route

from ..ai import SummaryService
from ..config import Settings, load_settings
from ..errors import InventoryError, ValidationError
from ..logging import get_logger
from ..store import ItemStore, clean_name, clean_qty


LOG = get_logger("api")

API_TITLE = "AI Inventory Manager API"


async def _read_json_object(request: Request) -> Dict[str, Any]:
    try:
        payload = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    return payload


def _item_fields(payload: Dict[str, Any]) -> tuple:
    return clean_name(payload.get("name")), clean_qty(payload.get("qty"))


async def _inventory_error(_: Request, exc: InventoryError) -> JSONResponse:
    if exc.status_code >= 500:
        LOG.error("%s: %s", type(exc).__name__, exc.message)
    else:
        LOG.debug("%s: %s", type(exc).__name__, exc.message)
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def _http_error(_: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=exc.headers)


async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    LOG.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


def create_app(
    store: Optional[ItemStore] = None,
    summarizer: Optional[SummaryService] = None,
    *,
    settings: Optional[Settings] = None,
    allow_origins: Optional[List[str]] = None,
) -> Starlette:
    """Create the Starlette app exposing the inventory and AI summary API.

    Collaborators that are not passed in are built from `settings` (or
    `load_settings()`); a store built here is bootstrapped immediately and
    closed on shutdown.
    """

    owns_store = store is None
    if store is None or summarizer is None:
        settings = settings or load_settings()
    if store is None:
        store = ItemStore(settings.db_path)
        store.bootstrap()
    if summarizer is None:
        summarizer = SummaryService(settings.openai_api_key, model=settings.openai_model)

    async def list_products(_: Request) -> JSONResponse:
        return JSONResponse([item.to_dict() for item in store.list()])

    async def get_product(request: Request) -> JSONResponse:
        item = store.get(request.path_params["item_id"])
        return JSONResponse(item.to_dict())

    async def create_product(request: Request) -> JSONResponse:
        name, qty = _item_fields(await _read_json_object(request))
        item = store.create(name, qty)
        LOG.info("Created product id=%s name=%r qty=%s", item.id, item.name, item.qty)
        return JSONResponse(item.to_dict(), status_code=201)

    async def update_product(request: Request) -> JSONResponse:
        item_id = request.path_params["item_id"]
        name, qty = _item_fields(await _read_json_object(request))
        item = store.update(item_id, name, qty)
        LOG.info("Updated product id=%s name=%r qty=%s", item.id, item.name, item.qty)
        return JSONResponse(item.to_dict())

    async def delete_product(request: Request) -> JSONResponse:
        item_id = request.path_params["item_id"]
        store.delete(item_id)
        LOG.info("Deleted product id=%s", item_id)
        return JSONResponse({"success": True, "message": "Product deleted"})

    async def ai_summary(request: Request) -> JSONResponse:
        payload = await _read_json_object(request)
        analysis = await run_in_threadpool(summarizer.summarize, payload.get("notes"))
        return JSONResponse({"analysis": analysis})

    async def health(_: Request) -> JSONResponse:
        return JSONResponse(
            {
                "status": "ok",
                "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
                "database": "connected" if store.ping() else "error",
                "aiEnabled": summarizer.enabled,
            }
        )

    async def root(_: Request) -> JSONResponse:
        return JSONResponse(
            {
                "message": API_TITLE,
                "endpoints": {
                    "products": "/api/products",
                    "ai": "/api/ai",
                    "health": "/api/health",
                },
            }
        )

    routes = [
        Route("/", root, methods=["GET"]),
        Route("/api/health", health, methods=["GET"]),
        Route("/api/products", list_products, methods=["GET"]),
        Route("/api/products", create_product, methods=["POST"]),
        Route("/api/products/{item_id:int}", get_product, methods=["GET"]),
        Route("/api/products/{item_id:int}", update_product, methods=["PUT"]),
        Route("/api/products/{item_id:int}", delete_product, methods=["DELETE"]),
        Route("/api/ai", ai_summary, methods=["POST"]),
    ]

    @asynccontextmanager
    async def lifespan(_: Starlette) -> AsyncIterator[None]:
        LOG.info("Inventory API ready (db=%s, aiEnabled=%s)", store.db_path, summarizer.enabled)
        try:
            yield
        finally:
            if owns_store:
                store.close()

    app = Starlette(
        debug=False,
        routes=routes,
        lifespan=lifespan,
        exception_handlers={
            InventoryError: _inventory_error,
            HTTPException: _http_error,
            Exception: _unexpected_error,
        },
    )

    if allow_origins is None:
        allow_origins = settings.allow_origins if settings is not None else ["*"]
    cors_allow_origins = ["*"] if "*" in allow_origins else allow_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_allow_origins,
        allow_credentials="*" not in cors_allow_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.store = store
    app.state.summarizer = summarizer
    return app


__all__ = ["create_app"]
