"""Profile read and update for an authenticated identity."""

import logging
from typing import Optional

from faceauth.clients.base import IdentityRepository
from faceauth.models.internal_models import Identity
from faceauth.services.errors import ClientInputError, InternalServiceError, NotFoundError

logger = logging.getLogger(__name__)


class ProfileValidationError(ClientInputError):
    """Raised when a profile update is rejected."""


class ProfileService:

    def __init__(self, identities: IdentityRepository):
        self.identities = identities

    def get_profile(self, identity: Identity) -> dict:
        return identity.public_profile()

    async def update_profile(
        self,
        identity: Identity,
        display_name: Optional[str],
        email: Optional[str] = None,
        phone: Optional[str] = None,
        bio: Optional[str] = None
    ) -> Identity:
        """Trim and store profile fields; a display name is required."""
        display_name = (display_name or "").strip()
        if not display_name:
            raise ProfileValidationError("Display name is required")

        try:
            updated = await self.identities.update_profile(
                identity.id,
                display_name=display_name,
                email=(email or "").strip(),
                phone=(phone or "").strip(),
                bio=(bio or "").strip(),
            )
        except Exception as e:
            logger.error(f"Failed to update profile for identity {identity.id}: {e}")
            raise InternalServiceError("Failed to update profile") from e

        if updated is None:
            raise NotFoundError("Identity no longer exists")

        logger.info(f"Updated profile for identity {identity.id}")
        return updated
