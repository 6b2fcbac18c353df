"""
Notebox Backend — FastAPI Application Factory
===============================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() builds the database, object store and
       services once, stores them on `app.state`, and wires middleware,
       exception handlers and routers around them.
Who:   uvicorn (`notebox.main:app`) or the `notebox` console script (run()).

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware Chain:                                           │
    │  ┌──────┐ ┌────────┐ ┌────────┐ ┌─────────┐                  │
    │  │ CORS │→│ Req ID │→│Logging │→│ Timeout │                  │
    │  └──────┘ └────────┘ └────────┘ └─────────┘                  │
    │                                                              │
    │  Routes:                                                     │
    │  ┌──────────┐ ┌──────────────┐ ┌──────────┐ ┌─────────────┐  │
    │  │ /notes   │ │ /notes/{id}/ │ │ /files   │ │ /health     │  │
    │  │          │ │ upload/delete│ │          │ │             │  │
    │  └──────────┘ └──────────────┘ └──────────┘ └─────────────┘  │
    │                                                              │
    │  app.state: settings, database, object_store,                │
    │             attachment_service, note_service                 │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:   logging, configuration check, bucket provisioning (best-effort)
    Shutdown:  dispose the database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncGenerator, Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from notebox import __version__
from notebox.auth import INIT_DATA_HEADER
from notebox.config import Settings, settings as default_settings
from notebox.database import Database
from notebox.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    ForbiddenError,
    NoteboxError,
    NotFoundError,
    ObjectStoreError,
    PayloadTooLargeError,
    ValidationError,
)
from notebox.middleware.logging import RequestLoggingMiddleware
from notebox.middleware.request_id import RequestIDLogFilter, RequestIDMiddleware, request_id_var
from notebox.middleware.timeout import TimeoutMiddleware
from notebox.routes import attachments, files, health, notes
from notebox.services.attachment_service import AttachmentService
from notebox.services.note_service import NoteService
from notebox.storage.object_store import ObjectStore, build_object_store

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the whole process.

    Format: 2024-01-15T12:00:00 [INFO] notebox.services.note_service [1f0c2a9e4b7d]: Created note 7

    The bracketed field is the request ID (`-` outside a request), filled
    in by RequestIDLogFilter on the handler.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Third-party loggers that are chatty at INFO/DEBUG
    for name in ("uvicorn.access", "sqlalchemy.engine", "botocore", "boto3", "urllib3"):
        logging.getLogger(name).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Startup and shutdown around the serving period.

    Dependencies are already built by create_app(); startup only logs,
    validates configuration and tries to provision the bucket. A bucket that
    cannot be created now is retried on the first upload.
    """
    app_settings: Settings = app.state.settings

    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging(app_settings.log_level)
    logger.info("=" * 60)
    logger.info("Notebox Backend %s starting up...", __version__)

    try:
        app_settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))

    store_kind = "S3" if app_settings.s3_enabled else "local filesystem"
    logger.info("Object store: %s, bucket '%s'", store_kind, app_settings.object_store_bucket)
    try:
        await app.state.object_store.ensure_bucket(app_settings.object_store_bucket)
    except ObjectStoreError as e:
        logger.warning("Bucket not provisioned at startup: %s", e.message)

    logger.info("Server ready at http://%s:%d", app_settings.backend_host, app_settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Notebox Backend shutting down...")
    await app.state.database.dispose()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> JSONResponse:
    content: Dict[str, Any] = {"error": error, "message": message}
    if details:
        content["details"] = details
    content["request_id"] = request_id_var.get("")
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

    Handler hierarchy:
        ValidationError / RequestValidationError → 400
        AuthenticationError                      → 401
        ForbiddenError                           → 403
        NotFoundError                            → 404
        ConflictError                            → 409
        PayloadTooLargeError                     → 413
        DatabaseError                            → 500 server_error
        ObjectStoreError                         → 500 storage_error
        NoteboxError / Exception (fallback)      → 500 internal_server_error

    DatabaseError and ObjectStoreError messages are written by the services
    and returned as-is; driver and SDK text stays in `context`, which is
    only logged.
    """

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError):
        """Malformed JSON, missing fields and non-integer path ids."""
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
            for err in exc.errors()
        ]
        logger.warning("Request validation failed: %s", errors)
        return _error_response(400, "validation_error", "Request is invalid", {"errors": errors})

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s", exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return _error_response(401, "unauthorized", exc.message)

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        return _error_response(403, "forbidden", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        return _error_response(409, "conflict", exc.message, exc.context)

    @app.exception_handler(PayloadTooLargeError)
    async def handle_payload_too_large(request: Request, exc: PayloadTooLargeError):
        return _error_response(413, "payload_too_large", exc.message, {"max_bytes": exc.max_bytes})

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("Database error: %s | Context: %s", exc.message, exc.context)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(ObjectStoreError)
    async def handle_object_store_error(request: Request, exc: ObjectStoreError):
        logger.error("Object store error: %s | Context: %s", exc.message, exc.context)
        return _error_response(500, "storage_error", exc.message)

    @app.exception_handler(NoteboxError)
    async def handle_notebox_error(request: Request, exc: NoteboxError):
        logger.error("Unhandled application error: %s | Context: %s", exc.message, exc.context)
        return _error_response(500, "internal_server_error", "An unexpected error occurred.")

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        """Anything else: generic 500, full traceback in the log only."""
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    object_store: Optional[ObjectStore] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings:      Configuration; defaults to the module-level settings.
        object_store:  Pre-built store (tests); defaults to build_object_store().

    The process-wide objects are built here rather than in the lifespan so
    that an app driven without lifespan events (httpx ASGITransport) is fully
    usable.
    """
    app_settings = settings or default_settings

    app = FastAPI(
        title="Notebox API",
        description="Notes with pinning and file attachments for a Telegram Mini App.",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Process-wide dependencies ─────────────────────────────────────────
    store = object_store or build_object_store(app_settings)
    attachment_service = AttachmentService(store, app_settings.object_store_bucket)

    app.state.settings = app_settings
    app.state.database = Database(app_settings)
    app.state.object_store = store
    app.state.attachment_service = attachment_service
    app.state.note_service = NoteService(attachment_service, app_settings.note_update_missing)

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: CORS → RequestID → Logging → GZip → Timeout
    app.add_middleware(TimeoutMiddleware, timeout_seconds=app_settings.request_timeout_seconds)
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=app_settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", INIT_DATA_HEADER, "X-Request-ID"],
        expose_headers=["X-Request-ID"],
    )

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(notes.router)
    app.include_router(attachments.router)
    app.include_router(files.router)
    app.include_router(health.router)

    # Frontend build, if configured; mounted last so API routes win
    if app_settings.static_dir:
        static_path = Path(app_settings.static_dir)
        if static_path.is_dir():
            app.mount("/", StaticFiles(directory=static_path, html=True), name="static")
        else:
            logger.warning("STATIC_DIR %s does not exist; not serving a frontend", static_path)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()


def run() -> None:
    """Console-script entry point: serve `app` with the configured host/port."""
    uvicorn.run(
        "notebox.main:app",
        host=default_settings.backend_host,
        port=default_settings.backend_port,
        timeout_keep_alive=60,
        log_level=default_settings.log_level.lower(),
    )
