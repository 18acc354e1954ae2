"""
Bookman Web: FastAPI Application Factory
========================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() builds the process-wide resources (settings, engine,
       store), binds them into one AppContext, and wires middleware, exception
       handlers, routers, and the static file mount around it.
Who:   main() (the `bookman` console script) or
       `uvicorn --factory bookman.main:create_app`.

Application Architecture:
    ┌──────────────────────────────────────────────────────────────┐
    │                        FastAPI App                           │
    │                                                              │
    │  Middleware Chain (outermost first):                         │
    │  Request ID → Logging → Security Headers → Recovery → Gzip   │
    │                                                              │
    │  Routes:                                                     │
    │  GET /api/search   POST /api/upload   POST /api/edit         │
    │  GET /api/panic    GET /book/{id}     GET /health            │
    │  /*  static files                                            │
    │                                                              │
    │  Exception Handlers:                                         │
    │  Validation→400 │ NotFound→404 │ Unavailable→503 │ DB→500    │
    └──────────────────────────────────────────────────────────────┘

Lifecycle:
    create_app():  check listen address, read password file, parse DSN,
                   create engine (fatal on error)
    Startup:       configure logging, open one connection (fatal on error)
    Shutdown:      dispose the engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import ValidationError as PydanticValidationError

from bookman import __version__
from bookman.config import Settings, load_settings
from bookman.context import AppContext
from bookman.database import check_connection, create_engine_from_settings, dispose_engine
from bookman.exceptions import (
    ConfigurationError,
    DatabaseError,
    DatabaseUnavailableError,
    NotFoundError,
    ValidationError,
)
from bookman.middleware.compress import CompressMiddleware
from bookman.middleware.logging import RequestLoggingMiddleware
from bookman.middleware.recovery import RecoveryMiddleware
from bookman.middleware.request_id import RequestIDMiddleware, request_id_var
from bookman.middleware.security_headers import SecurityHeadersMiddleware
from bookman.routes.books import build_api_router, build_book_router
from bookman.routes.health import build_health_router
from bookman.services.book_store import PostgresBookStore
from bookman.services.store_base import BookStore

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging(level: str = "INFO") -> None:
    """
    Configure logging for the entire application.

    Format: 2024-01-01T12:00:00 [INFO] bookman.access: GET /api/search 200 ...

    Called before anything else logs: once from main(), again from the
    lifespan so that `uvicorn --factory` deployments get the same format.
    """
    log_format = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[
            logging.StreamHandler(sys.stdout),  # Docker captures stdout
        ],
        force=True,
    )

    # bookman.access already logs every request
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(error: str, message: str) -> dict:
    return {"error": error, "message": message, "request_id": request_id_var.get("")}


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map BookmanError subclasses to HTTP responses.

    Handler hierarchy:
        ValidationError           → 400 Bad Request
        NotFoundError             → 404 Not Found
        DatabaseUnavailableError  → 503 Service Unavailable
        DatabaseError             → 500 Internal Server Error

    Anything else propagates to RecoveryMiddleware. Response bodies never
    carry exception context; that goes to the log only.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        rid = request_id_var.get("")
        logger.warning("[%s] Validation error: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(status_code=400, content=_error_body("validation_error", exc.message))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        rid = request_id_var.get("")
        logger.info("[%s] Not found: %s", rid, exc.message)
        return JSONResponse(status_code=404, content=_error_body("not_found", exc.message))

    @app.exception_handler(DatabaseUnavailableError)
    async def handle_database_unavailable(request: Request, exc: DatabaseUnavailableError):
        rid = request_id_var.get("")
        logger.error("[%s] Database unavailable: %s | Context: %s", rid, exc.message, exc.context)
        return JSONResponse(
            status_code=503,
            content=_error_body("service_unavailable", exc.message),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        """Generic message to the client, details logged server-side."""
        rid = request_id_var.get("")
        logger.error(
            "[%s] Database error (%s): %s | Context: %s",
            rid,
            type(exc).__name__,
            exc.message,
            exc.context,
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "server_error", "An internal error occurred. Please try again later."
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app(
    settings: Optional[Settings] = None,
    store: Optional[BookStore] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Defaults to load_settings().
        store:    Defaults to a PostgresBookStore over a fresh engine. When a
                  store is passed in no engine is created and the startup
                  connectivity check is skipped.

    Raises:
        ConfigurationError: password file unreadable, DSN malformed, or
                            listen address invalid.
    """
    settings = settings or load_settings()

    # Checked before the engine exists so a bad address leaks nothing
    host, port = settings.listen_address()

    engine = None
    if store is None:
        engine = create_engine_from_settings(settings)
        store = PostgresBookStore(engine)

    ctx = AppContext(settings=settings, store=store, engine=engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # ── Startup ───────────────────────────────────────────────────────
        setup_logging(settings.log_level)
        logger.info("Bookman Web %s starting up...", __version__)

        if ctx.engine is not None:
            try:
                await check_connection(ctx.engine)
            except ConfigurationError as e:
                logger.critical("Startup failed: %s | Context: %s", e.message, e.context)
                await dispose_engine(ctx.engine)
                raise
            logger.info("Database connection established")

        logger.info("Server ready at http://%s:%d", host, port)

        yield

        # ── Shutdown ──────────────────────────────────────────────────────
        logger.info("Bookman Web shutting down...")
        if ctx.engine is not None:
            await dispose_engine(ctx.engine)
        logger.info("Shutdown complete.")

    app = FastAPI(
        title="Bookman",
        description="Searchable catalog of plain-text books.",
        version=__version__,
        docs_url="/docs",
        redoc_url=None,
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first. Execution order:
    # RequestID → Logging → SecurityHeaders → Recovery → Compress
    app.add_middleware(CompressMiddleware, minimum_size=500, compresslevel=5)
    app.add_middleware(RecoveryMiddleware)
    app.add_middleware(SecurityHeadersMiddleware, csp=settings.content_security_policy)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(build_api_router(ctx))
    app.include_router(build_book_router(ctx))
    app.include_router(build_health_router(ctx))

    # Catch-all; must come after every router.
    app.mount(
        "/",
        StaticFiles(directory=settings.static_dir, html=True),
        name="static",
    )

    return app


def main() -> None:
    """Console entry point: load settings, build the app, serve until stopped."""
    setup_logging()

    try:
        settings = load_settings()
    except PydanticValidationError as e:
        logger.critical("Invalid configuration: %s", e)
        sys.exit(1)
    setup_logging(settings.log_level)

    try:
        app = create_app(settings)
        host, port = settings.listen_address()
    except ConfigurationError as e:
        logger.critical("Startup failed: %s | Context: %s", e.message, e.context)
        sys.exit(1)

    uvicorn.run(app, host=host, port=port, log_config=None, proxy_headers=True)


if __name__ == "__main__":
    main()
