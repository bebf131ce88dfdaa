"""
Inkpress Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
Why:   Centralizes app configuration, middleware registration, route mounting,
       and lifecycle management in one place.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn to start the server (uvicorn inkpress.main:app).

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain:                                       │
    │  ┌──────────┐ ┌──────────────┐ ┌──────────┐             │
    │  │ Req ID   │→│  Rate Limit  │→│ Logging  │→ GZip → CORS │
    │  └──────────┘ └──────────────┘ └──────────┘             │
    │                                                          │
    │  Routes:                                                 │
    │  /api/auth  /api/posts  /api/categories  /uploads  /health│
    │                                                          │
    │  Exception Handlers:                                     │
    │  InkpressError → its status_code                         │
    │  request/form validation → 400 with per-field errors     │
    │  anything else → 500 "Server error"                      │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config check → upload dir → optional create_all
    Shutdown: dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, List, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from inkpress import __version__
from inkpress.config import settings
from inkpress.database import create_all_tables, dispose_engine
from inkpress.exceptions import (
    InkpressError,
    RateLimitExceededError,
    ValidationError,
)
from inkpress.middleware.logging import RequestLoggingMiddleware
from inkpress.middleware.rate_limit import RateLimitMiddleware
from inkpress.middleware.request_id import RequestIDMiddleware, request_id_var
from inkpress.routes import auth, categories, health, posts, uploads
from inkpress.schemas.common import error_body

logger = logging.getLogger(__name__)

# Location prefixes FastAPI puts in front of the field name
_LOCATION_PREFIXES = {"body", "query", "path", "header", "cookie", "form"}


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the entire application.

    Format: %(asctime)s [%(levelname)s] %(name)s: %(message)s
    Called once during app startup, before any other initialization.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party libraries that log every operation at INFO/DEBUG
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)
    logging.getLogger("PIL").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Inkpress Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Still start: local development runs with the defaults
        logger.warning("%s", str(e))

    uploads_dir = Path(settings.upload_path)
    uploads_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Upload directory: %s", uploads_dir.resolve())

    if settings.db_create_all:
        await create_all_tables()
        logger.info("Database tables created from ORM metadata")

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Inkpress Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    return request_id_var.get("") or getattr(request.state, "request_id", "")


def _is_primitive(value: Any) -> bool:
    return value is None or isinstance(value, (str, int, float, bool))


def _field_errors(errors: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Flattens pydantic error dicts into `{field, message, value?}` entries.

    ("body", "title") → "title"; ("query", "limit") → "limit".
    """
    result = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ())]
        if len(loc) > 1 and loc[0] in _LOCATION_PREFIXES:
            loc = loc[1:]
        field = ".".join(loc) or "request"

        message = err.get("msg", "Invalid value")
        if err.get("type") == "missing":
            message = f"{field} is required"

        entry: Dict[str, Any] = {"field": field, "message": message}
        value = err.get("input")
        if err.get("type") != "missing" and _is_primitive(value):
            entry["value"] = value
        result.append(entry)
    return result


def _validation_response(request: Request, errors: List[Dict[str, Any]]) -> JSONResponse:
    rid = _request_id(request)
    summary = errors[0]["message"] if errors else "Validation failed"
    logger.warning("[%s] Validation failed: %s", rid, summary)
    return JSONResponse(status_code=400, content=error_body(summary, rid, errors))


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the `{success: false, ...}` envelope.

    Handler hierarchy:
        InkpressError (and subclasses) → exc.status_code
        RequestValidationError         → 400 (query/path/body schema)
        pydantic ValidationError       → 400 (form models built in routes)
        HTTPException                  → its status (unknown route, 405, ...)
        Exception (fallback)           → 500

    5xx responses never carry internal details; those are logged.
    """

    @app.exception_handler(InkpressError)
    async def handle_inkpress_error(request: Request, exc: InkpressError):
        rid = _request_id(request)
        status_code = exc.status_code

        if isinstance(exc, ValidationError):
            return JSONResponse(
                status_code=status_code,
                content=error_body(exc.message, rid, exc.errors or None),
            )

        headers = {}
        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)

        if status_code >= 500:
            logger.error(
                "[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context
            )
            message = "Server error"
        else:
            logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)
            message = exc.message

        return JSONResponse(
            status_code=status_code,
            content=error_body(message, rid),
            headers=headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        return _validation_response(request, _field_errors(exc.errors()))

    @app.exception_handler(PydanticValidationError)
    async def handle_model_validation(request: Request, exc: PydanticValidationError):
        return _validation_response(request, _field_errors(exc.errors()))

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        if exc.status_code == 404:
            message = "Route not found"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(message, _request_id(request)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.error("[%s] Unexpected error: %s", rid, str(exc), exc_info=True)
        return JSONResponse(status_code=500, content=error_body("Server error", rid))


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Tests call this to get a fresh app (and fresh rate-limit state) per test.
    """
    app = FastAPI(
        title="Inkpress API",
        description=(
            "Blog publishing API: accounts, posts with categories, tags and images, "
            "comments, and search."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RequestID → RateLimit → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(auth.router)
    app.include_router(posts.router)
    app.include_router(categories.router)
    app.include_router(uploads.router)
    app.include_router(health.router)

    return app


app = create_app()
