"""
TextStation Backend — FastAPI Application Factory
==================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() registers middleware, exception handlers and routers;
       lifespan() configures logging and storage on startup and disposes the
       database engine on shutdown.
Who:   uvicorn textstation.main:app

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware: RequestID → RateLimit → Logging → GZip → CORS   │
    │                                                              │
    │  Routes (/api, all POST unless noted):                       │
    │    analysis   test-connection, analyze                       │
    │    drive      search, export-pdf                             │
    │    snippets   get-snippets, get-snippet, save-, update-,     │
    │               delete-snippet                                 │
    │    history    aggregate-logs, create-backup, get-backups,    │
    │               restore-backup                                 │
    │    files      GET files/{path}                               │
    │    health     GET /health                                    │
    │                                                              │
    │  Exception handlers: TextStationError subclasses → JSON      │
    └──────────────────────────────────────────────────────────────┘
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from textstation import __version__
from textstation.config import settings
from textstation.database import dispose_engine
from textstation.exceptions import (
    AnalysisError,
    DatabaseError,
    DriveServiceError,
    ExportError,
    FileStorageError,
    NotFoundError,
    PermissionDeniedError,
    TextStationError,
    ValidationError,
)
from textstation.middleware.logging import RequestLoggingMiddleware
from textstation.middleware.rate_limit import RateLimitMiddleware
from textstation.middleware.request_id import RequestIDMiddleware, request_id_var
from textstation.routes import analysis, drive, files, health, history, snippets
from textstation.services.file_service import file_service

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure the root logger once, at startup.

    Format: 2024-05-01T12:00:00 [INFO] textstation.services.analysis_service: ...
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Third-party loggers that are chatty at INFO
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient.discovery").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient.discovery_cache").setLevel(logging.ERROR)
    logging.getLogger("fontTools").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    setup_logging()
    logger.info("=" * 60)
    logger.info("TextStation Backend %s starting up...", __version__)

    # Missing Google credentials only disable Drive features; keep serving
    try:
        settings.validate_required_for_production()
    except ValueError as e:
        logger.error("Configuration error: %s", str(e))
        logger.error("Drive search and Drive backup of exports are unavailable.")

    file_service.ensure_directories()
    logger.info("Storage directory: %s", file_service.storage_root)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    logger.info("TextStation Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_response(
    status_code: int,
    error: str,
    message: str,
    details: Optional[dict] = None,
) -> JSONResponse:
    content = {"error": error, "message": message, "request_id": request_id_var.get("")}
    if details:
        content["details"] = details
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map application exceptions to HTTP responses.

        ValidationError         → 400 validation_error
        PermissionDeniedError   → 403 permission_denied
        NotFoundError           → 404 not_found
        AnalysisError           → 500 analysis_error
        ExportError             → 500 export_error
        FileStorageError        → 500 server_error
        DatabaseError           → 500 server_error (generic message)
        DriveServiceError       → 502 drive_service_error
        TextStationError (base) → 500 server_error
        Exception (fallback)    → 500 internal_server_error

    Context dicts are logged; only the client-safe ones are returned.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return _error_response(400, "validation_error", exc.message, exc.context)

    @app.exception_handler(PermissionDeniedError)
    async def handle_permission_denied(request: Request, exc: PermissionDeniedError):
        logger.warning("[%s] Permission denied: %s", request_id_var.get(""), exc.message)
        return _error_response(403, "permission_denied", exc.message)

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return _error_response(404, "not_found", exc.message)

    @app.exception_handler(AnalysisError)
    async def handle_analysis_error(request: Request, exc: AnalysisError):
        """The message names the failing rule; it is meant for the user."""
        logger.error("[%s] Analysis error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "analysis_error", exc.message)

    @app.exception_handler(ExportError)
    async def handle_export_error(request: Request, exc: ExportError):
        logger.error("[%s] Export error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "export_error", exc.message)

    @app.exception_handler(FileStorageError)
    async def handle_file_storage_error(request: Request, exc: FileStorageError):
        logger.error("[%s] File storage error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("[%s] Database error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(
            500,
            "server_error",
            "An internal error occurred. Please try again later.",
        )

    @app.exception_handler(DriveServiceError)
    async def handle_drive_error(request: Request, exc: DriveServiceError):
        logger.error("[%s] Drive error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(502, "drive_service_error", exc.message)

    @app.exception_handler(TextStationError)
    async def handle_application_error(request: Request, exc: TextStationError):
        logger.error("[%s] Application error: %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return _error_response(500, "server_error", exc.message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True)
        return _error_response(
            500,
            "internal_server_error",
            "An unexpected error occurred. Please try again or contact support.",
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="TextStation API",
        description=(
            "Backend for the TextStation editor: rule-based style analysis, "
            "snippets, backups, Google Drive search and PDF export."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Added in reverse execution order: the last one added runs first
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(RequestIDMiddleware)

    register_exception_handlers(app)

    app.include_router(analysis.router)
    app.include_router(drive.router)
    app.include_router(snippets.router)
    app.include_router(history.router)
    app.include_router(files.router)
    app.include_router(health.router)

    return app


app = create_app()
