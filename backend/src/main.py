"""Order Desk Backend - Main FastAPI Application

This module creates and configures the FastAPI application, including:
- Matching and observability routers
- Request ID middleware
- Exception handlers
- Lifespan wiring of the shared catalog index and inference provider
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError

from config import Settings, get_settings
from database import create_db_engine, create_session_factory
from infrastructure.repositories import SessionScopedCatalogStore
from matching.ports import CatalogUnavailable
from matching.router import router as matching_router
from matching.service import build_catalog_index, build_llm_provider
from observability.logging_config import configure_logging
from observability.middleware import RequestIDMiddleware
from observability.router import router as observability_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    - Startup: create the engine, load the catalog index, build the provider
    - Shutdown: close the provider and dispose the engine

    A failed catalog load does not stop startup: matching requests answer
    503 until POST /api/v1/catalog/reload succeeds.
    """
    settings: Settings = app.state.settings
    logger.info("Order Desk API starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")

    engine = create_db_engine(settings.DATABASE_URL)
    session_factory = create_session_factory(engine)

    # Each (re)load of the shared index reads through its own session
    index = build_catalog_index(SessionScopedCatalogStore(session_factory), settings)
    try:
        index.load()
    except CatalogUnavailable as e:
        logger.error(f"Catalog index not loaded at startup: {e}")

    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.catalog_index = index
    app.state.llm_provider = build_llm_provider(settings)

    yield

    logger.info("Order Desk API shutting down...")
    provider = app.state.llm_provider
    if provider is not None and hasattr(provider, "aclose"):
        await provider.aclose()
    engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Settings (defaults to get_settings())
    """
    settings = settings or get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

    is_production = settings.ENVIRONMENT == "production"
    app = FastAPI(
        title="Order Desk API",
        description="Order item to catalog product matching",
        version="0.1.0",
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
        openapi_url=None if is_production else "/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestIDMiddleware)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError
    ) -> JSONResponse:
        """Return a structured error response with field-level details."""
        logger.warning(f"Validation error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": "validation_error",
                "message": "Request validation failed",
                "details": jsonable_errors(exc),
            },
        )

    @app.exception_handler(SQLAlchemyError)
    async def database_exception_handler(
        request: Request,
        exc: SQLAlchemyError
    ) -> JSONResponse:
        """Log the full database error but return a generic message."""
        logger.error(
            f"Database error on {request.method} {request.url.path}",
            exc_info=exc
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "database_error",
                "message": "A database error occurred. Please try again later.",
            },
        )

    app.include_router(observability_router)
    app.include_router(matching_router)

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, Any]:
        return {"name": "Order Desk API", "version": "0.1.0"}

    return app


def jsonable_errors(exc: RequestValidationError) -> list:
    """Validation errors without the non-serializable ``ctx`` payloads."""
    return [
        {key: value for key, value in error.items() if key != "ctx"}
        for error in exc.errors()
    ]


# =============================================================================
# DEVELOPMENT SERVER
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8000,
        reload=get_settings().ENVIRONMENT == "development",
        log_config=None,
    )
