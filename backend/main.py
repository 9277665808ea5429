# ruff: noqa: E402
# E402 disabled: load_dotenv() must run before other imports for Sentry DSN

import os
import time
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager

from dotenv import load_dotenv

load_dotenv()

import sentry_sdk
from fastapi import Depends, FastAPI, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.base import BaseHTTPMiddleware

import models.schemas as schemas
from core.correlation import (
    generate_correlation_id,
    get_correlation_id,
    set_correlation_id,
)
from core.logging_config import configure_logging
from core.sentry_config import init_sentry
from helpers.rate_limiter import limiter
from models.config import settings
from models.exceptions import (
    AuthenticationException,
    BusinessRuleException,
    ConflictException,
    DomainException,
    GoneException,
    NotFoundException,
    PermissionDeniedException,
    ValidationException,
)
from repositories.database import Base, engine, get_db
from routers import (
    comments_router,
    feedback_router,
    invites_router,
    members_router,
    portal_router,
    projects_router,
    sdk_router,
    sdk_tokens_router,
    tags_router,
    votes_router,
)

# Initialize Sentry BEFORE app creation
init_sentry()

# Configure logging with Loguru
configure_logging(os.getenv("ENVIRONMENT", settings.ENVIRONMENT))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Creates tables on startup when `AUTO_CREATE_DB` is enabled (development);
    otherwise the schema is managed with Alembic.
    """
    if settings.AUTO_CREATE_DB:
        logger.info(
            "AUTO_CREATE_DB enabled; creating database tables via SQLAlchemy create_all()"
        )
        Base.metadata.create_all(bind=engine)
    else:
        logger.info("AUTO_CREATE_DB disabled; skipping automatic create_all()")

    yield


app = FastAPI(title="Feedback Platform API", lifespan=lifespan)

# Attach rate limiter to app
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)  # type: ignore[arg-type]


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Inject correlation ID into request context and Sentry."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        # Dashboards and SDKs may send their own ID
        correlation_id = (
            request.headers.get("X-Correlation-ID") or generate_correlation_id()
        )
        set_correlation_id(correlation_id)
        sentry_sdk.set_tag("correlation_id", correlation_id)

        response = await call_next(request)
        response.headers["X-Correlation-ID"] = correlation_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log all incoming requests with performance monitoring."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        start_time = time.perf_counter()

        client_host = request.client.host if request.client else "unknown"
        logger.info(f"Request: {request.method} {request.url.path} from {client_host}")

        response = await call_next(request)

        duration = time.perf_counter() - start_time
        logger.info(
            f"Response: {request.method} {request.url.path} "
            f"status={response.status_code} duration={duration:.3f}s"
        )

        if duration > settings.SLOW_REQUEST_THRESHOLD:
            logger.warning(
                f"Slow request: {request.method} {request.url.path} "
                f"took {duration:.2f}s (threshold: {settings.SLOW_REQUEST_THRESHOLD}s)"
            )

        response.headers["X-Response-Time"] = f"{duration:.3f}s"
        return response


# Middleware runs in reverse order of registration: logging sees the
# correlation ID set by the outer middleware.
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)

# In development, allow all origins for local SDK and dashboard testing
cors_origins = ["*"] if settings.is_development else settings.CORS_ORIGINS
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=not settings.is_development,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Correlation-ID"],
)


# Global unhandled exception handler (returns generic 500 and logs details)
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch all unhandled exceptions with full Sentry capture."""
    correlation_id = get_correlation_id() or generate_correlation_id()

    sentry_sdk.set_tag("correlation_id", correlation_id)
    sentry_sdk.capture_exception(exc)

    # repr() escapes curly braces that loguru would treat as placeholders
    logger.exception(
        f"Unhandled exception: {exc!r}",
        correlation_id=correlation_id,
        path=str(request.url.path),
        method=request.method,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "detail": "Internal server error",
            "code": "internal_error",
            "correlation_id": correlation_id,
        },
    )


def _domain_error_response(
    request: Request,
    exc: DomainException,
    status_code: int,
    label: str,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    """Log a domain exception and render the standard error body."""
    sentry_sdk.set_tag("correlation_id", exc.correlation_id)
    sentry_sdk.set_tag("exception_type", exc.__class__.__name__)

    logger.warning(
        f"{label}: {exc.message}",
        correlation_id=exc.correlation_id,
        exception_type=exc.__class__.__name__,
        code=exc.code,
        path=str(request.url.path),
    )

    content: dict = {
        "detail": exc.message,
        "code": exc.code,
        "correlation_id": exc.correlation_id,
    }
    if isinstance(exc, ValidationException) and exc.has_errors():
        content["fields"] = exc.fields

    return JSONResponse(status_code=status_code, content=content, headers=headers)


# Centralized exception handlers
@app.exception_handler(NotFoundException)
async def not_found_exception_handler(
    request: Request, exc: NotFoundException
) -> JSONResponse:
    return _domain_error_response(request, exc, status.HTTP_404_NOT_FOUND, "Not found")


@app.exception_handler(PermissionDeniedException)
async def permission_denied_exception_handler(
    request: Request, exc: PermissionDeniedException
) -> JSONResponse:
    return _domain_error_response(
        request, exc, status.HTTP_403_FORBIDDEN, "Permission denied"
    )


@app.exception_handler(AuthenticationException)
async def authentication_exception_handler(
    request: Request, exc: AuthenticationException
) -> JSONResponse:
    """Handle authentication exceptions; SDK token failures land here too."""
    return _domain_error_response(
        request,
        exc,
        status.HTTP_401_UNAUTHORIZED,
        "Authentication failed",
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(ConflictException)
async def conflict_exception_handler(
    request: Request, exc: ConflictException
) -> JSONResponse:
    return _domain_error_response(request, exc, status.HTTP_409_CONFLICT, "Conflict")


@app.exception_handler(ValidationException)
async def validation_exception_handler(
    request: Request, exc: ValidationException
) -> JSONResponse:
    return _domain_error_response(
        request, exc, status.HTTP_422_UNPROCESSABLE_CONTENT, "Validation error"
    )


@app.exception_handler(BusinessRuleException)
async def business_rule_exception_handler(
    request: Request, exc: BusinessRuleException
) -> JSONResponse:
    return _domain_error_response(
        request, exc, status.HTTP_400_BAD_REQUEST, "Business rule violation"
    )


@app.exception_handler(GoneException)
async def gone_exception_handler(request: Request, exc: GoneException) -> JSONResponse:
    return _domain_error_response(request, exc, status.HTTP_410_GONE, "Gone")


@app.exception_handler(DomainException)
async def domain_exception_handler(
    request: Request, exc: DomainException
) -> JSONResponse:
    """Handle domain exceptions outside the known kinds."""
    # Unexpected domain exceptions are worth a Sentry event
    sentry_sdk.capture_exception(exc)
    return _domain_error_response(
        request, exc, status.HTTP_400_BAD_REQUEST, "Domain exception"
    )


app.include_router(projects_router.router, prefix="/api")
app.include_router(members_router.router, prefix="/api")
app.include_router(invites_router.router, prefix="/api")
app.include_router(feedback_router.router, prefix="/api")
app.include_router(feedback_router.identified_users_router, prefix="/api")
app.include_router(votes_router.router, prefix="/api")
app.include_router(comments_router.router, prefix="/api")
app.include_router(tags_router.router, prefix="/api")
app.include_router(sdk_router.router, prefix="/api")
app.include_router(sdk_tokens_router.router, prefix="/api")
app.include_router(portal_router.router, prefix="/api")


@app.get("/health", response_model=schemas.HealthStatus)
def health_check(db: Session = Depends(get_db)) -> schemas.HealthStatus:
    """Liveness endpoint; also reports whether the database answers."""
    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error(f"Health check database query failed: {e}")
        database = "unavailable"
    return schemas.HealthStatus(
        status="healthy" if database == "ok" else "degraded", database=database
    )
