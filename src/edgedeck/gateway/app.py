"""FastAPI application for the binding gateway.

Two flavours share the same routers:

- ``create_app``: the bare inspection API, routes at the root. Used by tests
  and by anything embedding the gateway.
- ``create_gateway_app``: what the gateway process serves. The API is under
  ``/__edgedeck``; every other path is proxied to the user's application
  through the EDGEDECK_USER_APP service binding.

Errors always come back as ``{"error": <message>}``:
404 unknown binding, 400 missing/invalid input, 500 backing failure.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from edgedeck.errors import BindingNotFound, EdgeDeckError, OperationFailed
from edgedeck.gateway.pagination import DEFAULT_PAGE_SIZE
from edgedeck.gateway.resolver import BindingResolver
from edgedeck.gateway.routes import (
    actors_router,
    bindings_router,
    d1_router,
    kv_router,
    queues_router,
    r2_router,
)
from edgedeck.manifest import BindingManifest
from edgedeck.runtime.protocol import Runtime
from edgedeck.shadow import USER_APP_BINDING

logger = logging.getLogger(__name__)

API_PREFIX = "/__edgedeck"

# Hop-by-hop and re-computed headers are not forwarded in either direction
_SKIP_HEADERS = frozenset({
    "host",
    "connection",
    "keep-alive",
    "transfer-encoding",
    "content-length",
    "content-encoding",
    "upgrade",
})


def create_app(
    runtime: Runtime,
    manifest: BindingManifest,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> FastAPI:
    """Create the inspection API with routes at the root.

    Args:
        runtime: Runtime handing out binding handles; started on app startup
            and disposed on shutdown
        manifest: Declared bindings; the only bindings the API will resolve
        page_size: Default page size for listing routes

    Returns:
        Configured FastAPI application.
    """
    app = _base_app(runtime, manifest, page_size=page_size)
    _include_api(app, prefix="")
    return app


def create_gateway_app(
    runtime: Runtime,
    manifest: BindingManifest,
    *,
    page_size: int = DEFAULT_PAGE_SIZE,
    cors_origins: tuple[str, ...] = (),
) -> FastAPI:
    """Create the app the gateway process serves: API plus upstream proxy."""
    app = _base_app(runtime, manifest, page_size=page_size)
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(cors_origins),
            allow_methods=["*"],
            allow_headers=["*"],
        )
    _include_api(app, prefix=API_PREFIX)

    @app.api_route(
        "/{path:path}",
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
        include_in_schema=False,
    )
    async def proxy(request: Request, path: str) -> Response:
        return await _forward(runtime, request)

    return app


def _base_app(runtime: Runtime, manifest: BindingManifest, *, page_size: int) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await runtime.start()
        try:
            yield
        finally:
            await runtime.dispose()

    app = FastAPI(
        title="edgedeck gateway",
        description="Inspection API over local bindings",
        lifespan=lifespan,
    )
    app.state.resolver = BindingResolver(runtime, manifest)
    app.state.page_size = page_size
    _install_error_handlers(app)
    return app


def _include_api(app: FastAPI, *, prefix: str) -> None:
    # Registration order matters: the proxy catch-all is added after these
    app.include_router(bindings_router, prefix=prefix)
    app.include_router(d1_router, prefix=prefix)
    app.include_router(kv_router, prefix=prefix)
    app.include_router(r2_router, prefix=prefix)
    app.include_router(queues_router, prefix=prefix)
    app.include_router(actors_router, prefix=prefix)


def _install_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(BindingNotFound)
    async def binding_not_found(request: Request, exc: BindingNotFound) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": exc.message})

    @app.exception_handler(OperationFailed)
    async def operation_failed(request: Request, exc: OperationFailed) -> JSONResponse:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=500, content={"error": exc.message})

    @app.exception_handler(EdgeDeckError)
    async def edgedeck_error(request: Request, exc: EdgeDeckError) -> JSONResponse:
        return JSONResponse(status_code=500, content={"error": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        if errors:
            first = errors[0]
            where = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            detail = f"{where}: {first.get('msg')}" if where else str(first.get("msg"))
        else:
            detail = "Invalid request"
        return JSONResponse(status_code=400, content={"error": detail})


async def _forward(runtime: Runtime, request: Request) -> Response:
    try:
        service = runtime.get_service(USER_APP_BINDING)
    except BindingNotFound:
        return JSONResponse(status_code=502, content={"error": "User application is not bound"})

    headers = {k: v for k, v in request.headers.items() if k.lower() not in _SKIP_HEADERS}
    try:
        upstream = await service.fetch(
            request.method,
            request.url.path,
            headers=headers,
            params=request.query_params,
            content=await request.body(),
        )
    except httpx.HTTPError as e:
        logger.debug("Proxy to user application failed: %s", e)
        return JSONResponse(
            status_code=502,
            content={"error": f"User application is not reachable: {e}"},
        )

    return Response(
        content=upstream.content,
        status_code=upstream.status_code,
        headers={k: v for k, v in upstream.headers.items() if k.lower() not in _SKIP_HEADERS},
    )
