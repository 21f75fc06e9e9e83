"""
Authentication API endpoints for face enrollment, login, session check and logout.
"""

import time

import structlog
from fastapi import APIRouter, Depends, Request, Response

from faceauth.api.dependencies import (
    api_error,
    clear_session_cookie,
    get_correlation_id,
    get_services,
    get_session_token,
    set_session_cookie,
    to_http_error,
)
from faceauth.models.api_models import (
    ERROR_RESPONSES,
    EnrollmentRequest,
    EnrollmentResponse,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    MessageResponse,
    SessionCheckResponse,
)
from faceauth.observability import (
    record_enrollment_metrics,
    record_login_metrics,
    trace_function,
)
from faceauth.services import ServiceContainer
from faceauth.services.errors import ServiceError

logger = structlog.get_logger()
router = APIRouter(
    prefix="/api/auth",
    tags=["authentication"],
    responses={**ERROR_RESPONSES, 409: {"model": ErrorResponse, "description": "Enrollment step out of order"}}
)


@router.post("/enroll", response_model=EnrollmentResponse, response_model_exclude_none=True)
@trace_function("enrollment_endpoint")
async def enroll(
    body: EnrollmentRequest,
    request: Request,
    response: Response,
    services: ServiceContainer = Depends(get_services)
) -> EnrollmentResponse:
    """
    Record one enrollment step.

    Step 1 creates the identity and issues the session cookie; later steps
    must carry that cookie and append one more descriptor. The cookie is
    re-issued on every step.
    """
    correlation_id = get_correlation_id(request)
    start_time = time.time()
    progress = body.progress if isinstance(body.progress, int) else None

    logger.info(
        "Enrollment request received",
        progress=body.progress,
        descriptor_length=len(body.vector) if isinstance(body.vector, list) else None
    )

    try:
        result = await services.enrollment.submit(
            body.progress,
            body.vector,
            session_id=get_session_token(request)
        )
    except ServiceError as e:
        record_enrollment_metrics(False, time.time() - start_time, progress)
        logger.warning("Enrollment step rejected", error_type=type(e).__name__, error=e.message)
        raise to_http_error(e, correlation_id)

    record_enrollment_metrics(True, time.time() - start_time, progress)
    set_session_cookie(request, response, result.session_id)

    total = services.enrollment.total_steps
    if result.completed:
        message = "Enrollment completed successfully"
    else:
        message = f"Enrollment progress: {result.progress}/{total}"

    return EnrollmentResponse(
        identityId=result.identity_id,
        sessionId=result.session_id,
        completed=result.completed,
        progress=None if result.completed else result.progress,
        message=message
    )


@router.post("/face", response_model=LoginResponse)
@trace_function("face_login_endpoint")
async def face_login(
    body: LoginRequest,
    request: Request,
    response: Response,
    services: ServiceContainer = Depends(get_services)
) -> LoginResponse:
    """Log in by matching a face descriptor against every enrolled identity."""
    correlation_id = get_correlation_id(request)
    start_time = time.time()

    try:
        result = await services.auth.login(body.vector)
    except ServiceError as e:
        record_login_metrics(False, time.time() - start_time, None)
        logger.warning("Face login rejected", error_type=type(e).__name__, error=e.message)
        raise to_http_error(e, correlation_id)

    if result is None:
        record_login_metrics(False, time.time() - start_time, None)
        raise api_error(
            "FaceNotRecognized",
            "Face not recognized. Please enroll first.",
            correlation_id,
            401
        )

    record_login_metrics(True, time.time() - start_time, result.distance)
    set_session_cookie(request, response, result.session_id)

    logger.info("Face login successful", identity_id=result.identity.id, distance=round(result.distance, 4))
    return LoginResponse(identityId=result.identity.id, message="Authentication successful")


@router.get("/check", response_model=SessionCheckResponse)
async def check_session(
    request: Request,
    services: ServiceContainer = Depends(get_services)
) -> SessionCheckResponse:
    """Return the public profile behind the session cookie."""
    try:
        identity = await services.auth.require_identity(get_session_token(request))
    except ServiceError as e:
        raise to_http_error(e, get_correlation_id(request))

    return SessionCheckResponse(identity=services.profiles.get_profile(identity))


@router.post("/logout", response_model=MessageResponse)
async def logout(
    request: Request,
    response: Response,
    services: ServiceContainer = Depends(get_services)
) -> MessageResponse:
    """Revoke the current session and clear the cookie."""
    try:
        await services.auth.logout(get_session_token(request))
    except ServiceError as e:
        raise to_http_error(e, get_correlation_id(request))

    clear_session_cookie(request, response)
    return MessageResponse(message="Logged out successfully")
