"""
Global Error Handlers for FastAPI Application

- Domain errors (not found, already decided, invalid input) are returned verbatim
- Request validation errors are returned without echoing the rejected input
- Database failures map to 503/500 and are logged to file
- Anything else is a logged 500 with a generic message
"""

import logging

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DatabaseError, OperationalError
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError

from domain.exceptions import AlreadyDecidedError, DomainError, NotFoundError, ValidationError
from shared.monitoring.error_logger import ErrorLogger

logger = logging.getLogger(__name__)

DOMAIN_STATUS = {
    NotFoundError: status.HTTP_404_NOT_FOUND,
    AlreadyDecidedError: status.HTTP_409_CONFLICT,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def _error_logger(request: Request) -> ErrorLogger:
    return request.app.state.error_logger


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Surface caller-facing domain errors with their own message"""
    status_code = next(
        (code for error_cls, code in DOMAIN_STATUS.items() if isinstance(exc, error_cls)),
        status.HTTP_400_BAD_REQUEST,
    )
    logger.info(f"{request.method} {request.url.path} -> {status_code}: {exc.message}")
    return JSONResponse(
        status_code=status_code,
        content={"error": type(exc).__name__, "detail": exc.message},
    )


async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Rejected input may hold values JSON cannot encode, e.g. Infinity
    errors = [
        {"type": error.get("type"), "loc": list(error.get("loc", ())), "msg": error.get("msg")}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content={"detail": errors})


async def database_timeout_handler(request: Request, exc: SQLAlchemyTimeoutError) -> JSONResponse:
    """Handle database connection pool timeouts"""
    error_data = _error_logger(request).log_database_error(
        exc, operation="database_query", endpoint=str(request.url.path), method=request.method
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={**error_data, "detail": "Please wait a few seconds and retry.", "retry_after": 5},
    )


async def database_operational_error_handler(
    request: Request, exc: OperationalError
) -> JSONResponse:
    """Handle database operational errors"""
    error_data = _error_logger(request).log_database_error(
        exc, operation="database_connection", endpoint=str(request.url.path), method=request.method
    )
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            **error_data,
            "detail": "The database is temporarily unavailable.",
            "retry_after": 10,
        },
    )


async def general_database_error_handler(request: Request, exc: DatabaseError) -> JSONResponse:
    error_data = _error_logger(request).log_database_error(
        exc, operation="database_operation", endpoint=str(request.url.path), method=request.method
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={**error_data, "detail": "Please try again. If the problem persists, contact support."},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other uncaught exceptions"""
    error_data = _error_logger(request).log_error(
        exc,
        context={
            "endpoint": str(request.url.path),
            "method": request.method,
            "error_category": "unhandled",
        },
        user_message="An unexpected error occurred.",
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={**error_data, "detail": "The error has been logged. Please try again later."},
    )


def register_error_handlers(app):
    """
    Register all error handlers with the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_error_handler)
    app.add_exception_handler(SQLAlchemyTimeoutError, database_timeout_handler)
    app.add_exception_handler(OperationalError, database_operational_error_handler)
    app.add_exception_handler(DatabaseError, general_database_error_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("✓ Global error handlers registered")
