"""Profile endpoints for the authenticated identity."""

import structlog
from fastapi import APIRouter, Depends, Request

from faceauth.api.dependencies import get_correlation_id, get_services, require_identity, to_http_error
from faceauth.models.api_models import ERROR_RESPONSES, ErrorResponse, ProfileResponse, ProfileUpdateRequest
from faceauth.models.internal_models import Identity
from faceauth.services import ServiceContainer
from faceauth.services.errors import ServiceError

logger = structlog.get_logger()
router = APIRouter(
    prefix="/api/profile",
    tags=["profile"],
    responses={**ERROR_RESPONSES, 404: {"model": ErrorResponse, "description": "Identity no longer exists"}}
)


@router.get("", response_model=ProfileResponse)
async def get_profile(
    identity: Identity = Depends(require_identity),
    services: ServiceContainer = Depends(get_services)
) -> ProfileResponse:
    return ProfileResponse(**services.profiles.get_profile(identity))


@router.put("", response_model=ProfileResponse)
async def update_profile(
    body: ProfileUpdateRequest,
    request: Request,
    identity: Identity = Depends(require_identity),
    services: ServiceContainer = Depends(get_services)
) -> ProfileResponse:
    try:
        updated = await services.profiles.update_profile(
            identity,
            display_name=body.displayName,
            email=body.email,
            phone=body.phone,
            bio=body.bio
        )
    except ServiceError as e:
        logger.warning("Profile update rejected", identity_id=identity.id, error=e.message)
        raise to_http_error(e, get_correlation_id(request))

    return ProfileResponse(**services.profiles.get_profile(updated))
