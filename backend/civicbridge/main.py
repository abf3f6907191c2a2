"""
CivicBridge Backend: FastAPI Application Factory
================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() wires middleware, exception handlers and routers around
       a lifespan that prepares storage and releases connections.
Who:   uvicorn (civicbridge.main:app) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────┐
    │                    FastAPI App                       │
    │                                                      │
    │  Middleware: Rate Limit → Request ID → Access Log    │
    │              → GZip → CORS                           │
    │                                                      │
    │  Routes:     /projects/...          GET /health      │
    │                                                      │
    │  Errors:     CivicBridgeError → its status_code      │
    │              RequestValidationError → 400            │
    │              anything else → 500                     │
    └──────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging, storage directory, tables (SQLite only; PostgreSQL
              is migrated with Alembic)
    Shutdown: notifier client closed, database engine disposed
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from civicbridge import __version__
from civicbridge.config import settings
from civicbridge.database import create_schema, dispose_engine
from civicbridge.exceptions import (
    CivicBridgeError,
    DatabaseError,
    FileStorageError,
    RateLimitExceededError,
)
from civicbridge.middleware.logging import RequestLoggingMiddleware
from civicbridge.middleware.rate_limit import RateLimitMiddleware
from civicbridge.middleware.request_id import (
    REQUEST_ID_HEADER,
    RequestIDMiddleware,
    request_id_var,
)
from civicbridge.routes import health, projects
from civicbridge.services.notification_service import notification_dispatcher

logger = logging.getLogger(__name__)

GENERIC_SERVER_ERROR = "An internal error occurred. Please try again later."


# ══════════════════════════════════════════════════════════════════════════
# Logging
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once at startup.

    Format: <timestamp> [<level>] <logger>: <message>; stdout only so the
    container runtime collects it.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request noise
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("multipart").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("CivicBridge Backend %s starting up...", __version__)

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())

    if settings.is_sqlite:
        await create_schema()
        logger.info("SQLite database: tables created from model metadata")

    logger.info("Notification channel: %s", notification_dispatcher.notifier.name)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)

    yield

    logger.info("CivicBridge Backend shutting down...")
    await notification_dispatcher.notifier.aclose()
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _request_id(request: Request) -> str:
    # Outermost handlers run after RequestIDMiddleware has reset the variable
    return (
        request_id_var.get("")
        or getattr(request.state, "request_id", "")
        or request.headers.get(REQUEST_ID_HEADER, "")
    )


def _error_body(request: Request, error: str, message: str, details=None) -> dict:
    body = {"error": error, "message": message, "request_id": _request_id(request)}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map exceptions to the shared error body
    {"error", "message", "details", "request_id"}.

    Server-side failures (DatabaseError, FileStorageError, unexpected
    exceptions) answer with a generic message; their context only goes to
    the log.
    """

    @app.exception_handler(CivicBridgeError)
    async def handle_app_error(request: Request, exc: CivicBridgeError):
        rid = _request_id(request)
        headers = {}

        if isinstance(exc, (DatabaseError, FileStorageError)):
            logger.error("[%s] %s: %s | Context: %s", rid, type(exc).__name__, exc.message, exc.context)
            content = _error_body(request, exc.error_code, GENERIC_SERVER_ERROR)
        else:
            if exc.status_code >= 500:
                logger.error("[%s] %s: %s", rid, type(exc).__name__, exc.message)
            else:
                logger.info("[%s] %s: %s", rid, type(exc).__name__, exc.message)
            content = _error_body(request, exc.error_code, exc.message, exc.context)

        if isinstance(exc, RateLimitExceededError):
            headers["Retry-After"] = str(exc.retry_after)

        return JSONResponse(status_code=exc.status_code, content=content, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        first = errors[0] if errors else {"loc": (), "msg": "Invalid request"}
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first['msg']}" if field else first["msg"]
        logger.info("[%s] Request validation failed: %s", _request_id(request), message)
        details = [
            {"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")}
            for e in errors
        ]
        return JSONResponse(
            status_code=400,
            content=_error_body(request, "validation_error", message, {"errors": details}),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", _request_id(request), str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content=_error_body(
                request,
                "internal_server_error",
                "An unexpected error occurred. Please try again or contact support.",
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="CivicBridge API",
        description=(
            "Politicians publish projects; students search, bookmark and apply "
            "to them. Status changes are pushed to every applicant."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
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
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    register_exception_handlers(app)

    app.include_router(projects.router)
    app.include_router(health.router)

    return app


app = create_app()
