"""
Shared request plumbing: service lookup, session cookie handling and
translation of service errors into HTTP errors.
"""

from datetime import datetime, timezone

import structlog
from fastapi import Depends, HTTPException, Request, Response

from faceauth.models.internal_models import Identity
from faceauth.services import ServiceContainer
from faceauth.services.errors import (
    AuthenticationError,
    ClientInputError,
    ConflictError,
    InternalServiceError,
    NotFoundError,
    ServiceError,
)

logger = structlog.get_logger()

_STATUS_CODES = (
    (ClientInputError, 400),
    (AuthenticationError, 401),
    (NotFoundError, 404),
    (ConflictError, 409),
)


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_correlation_id(request: Request) -> str:
    return getattr(request.state, "correlation_id", "unknown")


def get_session_token(request: Request):
    return request.cookies.get(request.app.state.settings.session_cookie_name)


def api_error(error_type: str, message: str, correlation_id: str, status_code: int) -> HTTPException:
    """Create standardized error response."""
    return HTTPException(
        status_code=status_code,
        detail={
            "error": error_type,
            "message": message,
            "correlationId": correlation_id,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
    )


def to_http_error(error: ServiceError, correlation_id: str) -> HTTPException:
    """Map a service error onto its HTTP status; internal details stay server-side."""
    if isinstance(error, InternalServiceError):
        return api_error("InternalServerError", error.message, correlation_id, 500)

    for error_class, status_code in _STATUS_CODES:
        if isinstance(error, error_class):
            return api_error(type(error).__name__, error.message, correlation_id, status_code)

    return api_error("InternalServerError", "An unexpected error occurred", correlation_id, 500)


async def require_identity(
    request: Request,
    services: ServiceContainer = Depends(get_services)
) -> Identity:
    """Dependency for every protected endpoint."""
    try:
        return await services.auth.require_identity(get_session_token(request))
    except ServiceError as e:
        logger.info("Rejected unauthenticated request", path=request.url.path, error=e.message)
        raise to_http_error(e, get_correlation_id(request))


def set_session_cookie(request: Request, response: Response, session_id: str) -> None:
    settings = request.app.state.settings
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session_id,
        max_age=settings.session_ttl_seconds,
        path="/",
        httponly=settings.session_cookie_httponly,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(request: Request, response: Response) -> None:
    settings = request.app.state.settings
    response.set_cookie(
        key=settings.session_cookie_name,
        value="",
        max_age=0,
        path="/",
        httponly=settings.session_cookie_httponly,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )
