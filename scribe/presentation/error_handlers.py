"""Centralized error handling for the presentation layer."""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from ..domain.exceptions import (
    DomainError,
    TranscriptionNotFoundError,
    ValidationError,
)
from ..logging_config import get_logger
from .problem_details import ProblemDetail, ProblemDetailFactory

logger = get_logger(__name__)


def _problem_response(problem: ProblemDetail) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status,
        content=problem.model_dump(exclude_none=True),
        media_type="application/problem+json",
    )


def handle_domain_error(error: DomainError, request: Request) -> JSONResponse:
    """Convert domain errors to appropriate HTTP responses."""
    instance = str(request.url.path)
    problem: ProblemDetail
    if isinstance(error, TranscriptionNotFoundError):
        problem = ProblemDetailFactory.resource_not_found(
            resource_type="transcription",
            detail=str(error),
            instance=instance,
        )
    elif isinstance(error, ValidationError):
        problem = ProblemDetailFactory.validation_failed(
            detail=str(error), instance=instance
        )
    else:
        problem = ProblemDetailFactory.internal_server_error(
            detail="An unexpected error occurred. Please try again.",
            instance=instance,
        )
    return _problem_response(problem)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    """Global handler for domain-specific errors."""
    logger.warning(
        "Domain error occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
    )
    return handle_domain_error(exc, request)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Global handler for Pydantic request validation errors."""
    logger.warning(
        "Request validation error occurred",
        errors=exc.errors(),
        path=request.url.path,
        method=request.method,
    )

    field_errors = []
    for error in exc.errors():
        field_name = ".".join(
            str(loc) for loc in error["loc"] if loc not in ("body", "path", "query")
        )
        field_errors.append(
            {
                "field": field_name or "unknown",
                "code": error["type"],
                "message": error["msg"],
            }
        )

    return _problem_response(
        ProblemDetailFactory.validation_failed(
            detail="Request validation failed",
            instance=str(request.url.path),
            field_errors=field_errors,
        )
    )


async def database_error_handler(
    request: Request, exc: SQLAlchemyError
) -> JSONResponse:
    """Global handler for database errors."""
    logger.error(
        "Database error occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )
    return _problem_response(
        ProblemDetailFactory.internal_server_error(
            detail="A database error occurred. Please try again.",
            instance=str(request.url.path),
        )
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global handler for unexpected errors."""
    logger.error(
        "Unexpected error occurred",
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=True,
    )
    return _problem_response(
        ProblemDetailFactory.internal_server_error(
            detail="An unexpected error occurred. Please try again.",
            instance=str(request.url.path),
        )
    )


def register_error_handlers(app: FastAPI) -> None:
    handlers = {
        DomainError: domain_error_handler,
        RequestValidationError: validation_exception_handler,
        SQLAlchemyError: database_error_handler,
        Exception: general_exception_handler,
    }
    for exc_class, handler in handlers.items():
        app.add_exception_handler(exc_class, handler)  # type: ignore[arg-type]
