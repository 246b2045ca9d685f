"""
FastAPI application for the Reading Tracker API.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import Optional

import structlog
from fastapi import Depends, FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.config import APIConfig
from api.dependencies import Services, build_services, get_services
from api.models import ErrorResponse, HealthResponse, to_payload
from api.routers import auth, books, notes
from catalog.lookup import CatalogLookup
from tracker.database import MongoDBManager
from tracker.errors import TrackerError
from tracker.repositories import Repositories
from utilities.config import LookupConfig
from utilities.logger import setup_logging

# Setup logging
logger = structlog.get_logger(__name__)


def _error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=error, message=message).model_dump(exclude_none=True)
    )


def _validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "query", "path"))
    return f"{location}: {first.get('msg')}" if location else first.get("msg", "Invalid request")


def install_exception_handlers(app: FastAPI) -> None:
    """Render every failure as ``{"error": ..., "message": ...}``."""

    @app.exception_handler(TrackerError)
    async def tracker_error_handler(request, exc: TrackerError):
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request, exc: RequestValidationError):
        return _error_response(status.HTTP_400_BAD_REQUEST, "validation_error", _validation_message(exc))

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request, exc: StarletteHTTPException):
        """Unknown routes and unsupported methods."""
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            return _error_response(status.HTTP_404_NOT_FOUND, "not_found", "Endpoint not found")
        return _error_response(exc.status_code, "http_error", str(exc.detail))

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path)
        return _error_response(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "server_error",
            "An internal server error occurred"
        )


def create_app(config: Optional[APIConfig] = None, services: Optional[Services] = None) -> FastAPI:
    """
    Build the application.

    Args:
        config: API settings; read from the environment when omitted
        services: Pre-built services. When given, the lifespan does not open
            a database connection or an HTTP client.
    """
    config = config or APIConfig()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        setup_logging(
            log_level=config.log_level,
            log_format=config.log_format,
            log_file=config.log_file or None,
            debug=config.debug
        )

        if services is not None:
            yield
            return

        # Startup
        logger.info("Starting Reading Tracker API")
        db_manager = MongoDBManager(config.mongodb_url, config.mongodb_database)
        try:
            await db_manager.connect()
        except Exception as e:
            logger.error("Failed to connect to database", error=str(e))
            raise

        lookup = CatalogLookup(LookupConfig())
        app.state.services = build_services(config, Repositories(db_manager.database), lookup, db_manager)

        yield

        # Shutdown
        logger.info("Shutting down Reading Tracker API")
        await lookup.aclose()
        await db_manager.disconnect()

    app = FastAPI(
        title=config.api_title,
        description=config.api_description,
        version=config.api_version,
        lifespan=lifespan
    )

    if services is not None:
        app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=config.cors_allow_credentials,
        allow_methods=config.cors_allow_methods,
        allow_headers=config.cors_allow_headers,
    )

    install_exception_handlers(app)

    app.include_router(auth.router, prefix=config.api_prefix)
    app.include_router(books.router, prefix=config.api_prefix)
    app.include_router(notes.router, prefix=config.api_prefix)

    # Health check endpoint (no authentication required)
    @app.get("/health", tags=["Health"])
    async def health_check(current: Services = Depends(get_services)):
        """Health check endpoint."""
        db_status = "unknown"
        if current.database is not None:
            health_info = await current.database.health_check()
            db_status = health_info.get("status", "unknown")

        return to_payload(HealthResponse(
            status="ok",
            timestamp=datetime.utcnow(),
            version=config.api_version,
            database_status=db_status
        ))

    return app
