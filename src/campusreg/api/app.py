"""FastAPI application setup."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from campusreg import __version__
from campusreg.api.dependencies import (
    close_registration_service,
    close_registry,
    close_statistics,
    init_registration_service,
    init_registry,
    init_settings,
    init_statistics,
)
from campusreg.api.exceptions import AuthenticationRequiredError, RoleNotAllowedError
from campusreg.api.models import APIResponse
from campusreg.api.routes import catalog, registrations, semesters
from campusreg.config import Settings
from campusreg.logging import sanitize_for_log
from campusreg.registration import (
    DropWindowClosedError,
    ForbiddenError,
    RegistrationClosedError,
    RegistrationService,
    StatisticsAggregator,
    ValidationError,
)
from campusreg.registry import (
    AlreadyDroppedError,
    ConcurrentUpdateError,
    CourseExistsError,
    CourseNotFoundError,
    DuplicateRegistrationError,
    InvalidGradeError,
    RegistrationNotFoundError,
    RegistryError,
    SemesterHasCoursesError,
    SemesterHasRegistrationsError,
    SemesterNotFoundError,
    SemesterValidationError,
    StudentExistsError,
    StudentNotFoundError,
)

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable, Callable

logger = logging.getLogger(__name__)

# Handlers are looked up along the exception's MRO, so these win over the
# RegistryError fallback registered below.
ERROR_STATUS: list[tuple[type[Exception], int]] = [
    (AuthenticationRequiredError, status.HTTP_401_UNAUTHORIZED),
    (RoleNotAllowedError, status.HTTP_403_FORBIDDEN),
    (ForbiddenError, status.HTTP_403_FORBIDDEN),
    (StudentNotFoundError, status.HTTP_404_NOT_FOUND),
    (SemesterNotFoundError, status.HTTP_404_NOT_FOUND),
    (CourseNotFoundError, status.HTTP_404_NOT_FOUND),
    (RegistrationNotFoundError, status.HTTP_404_NOT_FOUND),
    (ValidationError, status.HTTP_400_BAD_REQUEST),
    (SemesterValidationError, status.HTTP_400_BAD_REQUEST),
    (RegistrationClosedError, status.HTTP_400_BAD_REQUEST),
    (DropWindowClosedError, status.HTTP_400_BAD_REQUEST),
    (DuplicateRegistrationError, status.HTTP_400_BAD_REQUEST),
    (InvalidGradeError, status.HTTP_400_BAD_REQUEST),
    (AlreadyDroppedError, status.HTTP_400_BAD_REQUEST),
    (SemesterHasRegistrationsError, status.HTTP_409_CONFLICT),
    (SemesterHasCoursesError, status.HTTP_409_CONFLICT),
    (CourseExistsError, status.HTTP_409_CONFLICT),
    (StudentExistsError, status.HTTP_409_CONFLICT),
    (ConcurrentUpdateError, status.HTTP_409_CONFLICT),
]


def _error_response(status_code: int, message: str, code: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=APIResponse[None](data=None, error=message, code=code).model_dump(),
    )


def _domain_error_handler(
    status_code: int,
) -> Callable[[Request, Exception], Awaitable[JSONResponse]]:
    async def handler(_request: Request, exc: Exception) -> JSONResponse:
        return _error_response(status_code, str(exc), getattr(exc, "code", "ERROR"))

    return handler


async def request_validation_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Report malformed requests as 400 VALIDATION_FAILED with the first problem."""
    errors = exc.errors() if isinstance(exc, RequestValidationError) else []
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"Validation failed: {location}: {first.get('msg', 'invalid value')}"
    else:
        message = "Validation failed"
    return _error_response(status.HTTP_400_BAD_REQUEST, message, "VALIDATION_FAILED")


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log unexpected storage failures and hide their details from the caller."""
    logger.error(
        "Internal error on %s %s: %s: %s",
        request.method,
        request.url.path,
        type(exc).__name__,
        sanitize_for_log(str(exc)),
    )
    return _error_response(
        status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "INTERNAL_ERROR"
    )


def install_exception_handlers(app: FastAPI) -> None:
    """Map domain exceptions onto HTTP status codes and the error envelope."""
    for exc_class, status_code in ERROR_STATUS:
        app.add_exception_handler(exc_class, _domain_error_handler(status_code))
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(RegistryError, internal_error_handler)
    app.add_exception_handler(SQLAlchemyError, internal_error_handler)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings

    # Startup
    init_settings(settings)
    registry = init_registry(
        settings.db_path,
        max_update_retries=settings.max_update_retries,
        busy_timeout=settings.busy_timeout_seconds,
    )
    init_registration_service(RegistrationService.from_registry(registry))
    init_statistics(
        StatisticsAggregator.from_registry(registry, top_courses_limit=settings.top_courses_limit)
    )
    logger.info("Registry opened at %s", settings.db_path)

    yield
    # Shutdown
    close_statistics()
    close_registration_service()
    close_registry()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or Settings()

    app = FastAPI(
        title="Campus Registration API",
        description="REST API for semester course registration",
        version=__version__,
        lifespan=lifespan,
    )

    # Store config for lifespan manager
    app.state.settings = settings

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_exception_handlers(app)

    # Include routers
    app.include_router(registrations.router, prefix="/api/v1")
    app.include_router(semesters.router, prefix="/api/v1")
    app.include_router(catalog.router, prefix="/api/v1")

    return app


# Default app instance
app = create_app()
