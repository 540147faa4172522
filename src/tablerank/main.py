# src/tablerank/main.py

"""Main FastAPI application for TableRank."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .api import match, player
from .db.session import engine, init_models
from .exceptions import (
    MatchDeletionForbiddenError,
    RatingEngineError,
    ResourceNotFoundError,
    StorageFailureError,
    TableRankError,
    ValidationError,
)
from .logging_config import setup_logging
from .middleware.logging import RequestLoggingMiddleware

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan context manager for startup and shutdown events."""
    setup_logging()
    await init_models()
    yield
    # Shutdown: Dispose of database connections gracefully
    await engine.dispose()


app = FastAPI(title="TableRank API", lifespan=lifespan)

# Add middleware (order matters - first added = outermost)
app.add_middleware(RequestLoggingMiddleware)


# =============================================================================
# Global Exception Handlers
# =============================================================================


@app.exception_handler(ResourceNotFoundError)
async def resource_not_found_handler(
    request: Request, exc: ResourceNotFoundError
) -> JSONResponse:
    """Handle all resource not found errors -> 404."""
    logger.warning("Resource not found: %s", exc.message, extra=exc.details)
    return JSONResponse(
        status_code=404,
        content={"detail": exc.message, "error_type": type(exc).__name__},
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(
    request: Request, exc: ValidationError
) -> JSONResponse:
    """Handle all validation errors -> 422."""
    logger.warning("Validation error: %s", exc.message, extra=exc.details)
    return JSONResponse(
        status_code=422,
        content={"detail": exc.message, "error_type": type(exc).__name__},
    )


@app.exception_handler(MatchDeletionForbiddenError)
async def forbidden_handler(
    request: Request, exc: MatchDeletionForbiddenError
) -> JSONResponse:
    """Handle permission errors -> 403."""
    logger.warning("Forbidden: %s", exc.message, extra=exc.details)
    return JSONResponse(
        status_code=403,
        content={"detail": exc.message, "error_type": type(exc).__name__},
    )


@app.exception_handler(StorageFailureError)
async def storage_failure_handler(
    request: Request, exc: StorageFailureError
) -> JSONResponse:
    """Handle storage failures -> 503, the whole operation was rolled back."""
    logger.error("Storage failure: %s", exc.message, extra=exc.details)
    return JSONResponse(
        status_code=503,
        content={
            "detail": "Storage temporarily unavailable, no changes were saved",
            "error_type": type(exc).__name__,
            "retryable": exc.retryable,
        },
    )


@app.exception_handler(RatingEngineError)
async def rating_engine_error_handler(
    request: Request, exc: RatingEngineError
) -> JSONResponse:
    """Handle rating engine errors -> 500."""
    logger.error(
        "Rating engine error: %s", exc.message, extra=exc.details, exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={
            "detail": "Rating calculation failed",
            "error_type": type(exc).__name__,
        },
    )


@app.exception_handler(TableRankError)
async def tablerank_error_handler(
    request: Request, exc: TableRankError
) -> JSONResponse:
    """Catch-all for any other TableRank errors -> 500."""
    logger.error("TableRank error: %s", exc.message, extra=exc.details, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": exc.message, "error_type": type(exc).__name__},
    )


@app.exception_handler(SQLAlchemyError)
async def sqlalchemy_error_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """Catch-all for SQLAlchemy errors that escaped the key-value store."""
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal database error occurred"},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions."""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal server error occurred"},
    )


# Include routers into the main application
app.include_router(player.router)
app.include_router(match.router)


@app.get("/", tags=["Root"])
async def read_root() -> dict[str, str]:
    """Provides a welcome message."""
    return {"message": "Welcome to the TableRank API"}


@app.get("/health", tags=["Health"])
async def health_check() -> dict[str, str]:
    """Health check endpoint for monitoring."""
    return {"status": "healthy"}
