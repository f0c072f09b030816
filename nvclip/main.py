"""FastAPI application entry point for the NvClip URL shortener.

Application Lifecycle Diagram
===========================
::
    ┌─────────────┐
    │  uvicorn    │
    │  startup    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ get_settings│──► REDIS_URL missing: ValidationError, process exits
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Create app, │
    │ CORS, rate  │
    │ limit,      │
    │ handlers    │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ startup:    │
    │ manager +   │
    │ uptime init │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ Serve HTTP  │
    └──────┬──────┘
           ▼
    ┌─────────────┐
    │ lifespan()  │
    │ shutdown:   │
    │ close Redis │
    └─────────────┘

How to Use
===========
**Step 1 — Run with uvicorn**::
    uvicorn nvclip.main:app --host 0.0.0.0 --port 3000

**Step 2 — Make API calls**::
    curl "http://localhost:3000/new?url=https://example.com"
    curl -X POST http://localhost:3000/new \
         -H "Content-Type: application/json" \
         -d '{"url": "https://example.com", "slug": "ex"}'
    curl -i http://localhost:3000/ex

Key Behaviours
===============
- CORS is enabled for all origins.
- Every ``ClipError`` is rendered as ``{"success": false, "error": ...}``.
- Unknown routes return 404 ``Route not found``.
- Prometheus metrics are exposed at ``/metrics``.
"""

__all__ = ["app", "create_app"]

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from nvclip.config import Settings, get_settings
from nvclip.dependencies import _service_manager
from nvclip.errors import ClipError
from nvclip.ratelimit import install_rate_limiting
from nvclip.routes import router
from nvclip.schemas import ErrorResponse


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup
    await _service_manager.initialize()
    settings = _service_manager.settings
    domain = settings.APP_DOMAIN.rstrip("/")
    _service_manager.logger.info(f"Server running on {domain}")
    _service_manager.logger.info(f"Health check: {domain}/health")
    _service_manager.logger.info(f"Create short URL: {domain}/new?url=https://example.com")
    yield
    # Shutdown
    await _service_manager.cleanup()


def _error_body(message: str) -> dict:
    return ErrorResponse(error=message).model_dump()


async def handle_clip_error(request: Request, exc: ClipError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))


async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code in (404, 405):
        return JSONResponse(status_code=404, content=_error_body("Route not found"))
    return JSONResponse(status_code=exc.status_code, content=_error_body(str(exc.detail)))


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content=_error_body("Invalid request"))


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version="1.0.0",
        description="Redis-backed URL shortener",
        lifespan=lifespan,
    )

    # Middleware added last runs first; CORS must wrap the limiter's 429s.
    if settings.RATE_LIMIT_ENABLED:
        install_rate_limiting(app, settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ClipError, handle_clip_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)

    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=False,
        should_respect_env_var=False,
    ).instrument(app).expose(app)

    app.include_router(router)
    return app


app = create_app()
