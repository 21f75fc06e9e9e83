"""
Authentication gateway for face login, logout and request authentication.

This module provides the single place where a session token is turned into
an identity. Every protected operation calls require_identity() before it
touches user data.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from faceauth.clients.base import IdentityRepository
from faceauth.models.internal_models import Identity
from faceauth.services.descriptor_service import DescriptorValidator
from faceauth.services.errors import AuthenticationError, InternalServiceError, ServiceError
from faceauth.services.matcher import IdentityMatcher
from faceauth.services.session_service import SessionManager

logger = logging.getLogger(__name__)


class NotAuthenticatedError(AuthenticationError):
    """Raised when a protected operation has no live session behind it."""


@dataclass
class LoginResult:
    identity: Identity
    session_id: str
    distance: float


class AuthGateway:
    """
    Resolves the caller's identity and performs face login and logout.

    A missing token, an unknown or expired session, and a session whose
    identity was deleted all resolve to "unauthenticated" rather than an
    error.
    """

    def __init__(
        self,
        identities: IdentityRepository,
        sessions: SessionManager,
        matcher: IdentityMatcher,
        validator: DescriptorValidator
    ):
        self.identities = identities
        self.sessions = sessions
        self.matcher = matcher
        self.validator = validator

    async def current_identity(self, session_token: Optional[str]) -> Optional[Identity]:
        """
        Resolve the identity behind a session token.

        Args:
            session_token: Value of the session cookie, if any

        Returns:
            The authenticated identity, or None
        """
        if not session_token:
            return None

        session = await self.sessions.resolve(session_token)
        if session is None:
            return None

        identity = await self.identities.get(session.identity_id)
        if identity is None:
            logger.warning(f"Session references deleted identity {session.identity_id}")
            return None

        return identity

    async def require_identity(self, session_token: Optional[str]) -> Identity:
        try:
            identity = await self.current_identity(session_token)
        except Exception as e:
            logger.error(f"Failed to resolve session: {e}")
            raise InternalServiceError("Authentication check failed") from e

        if identity is None:
            raise NotAuthenticatedError("Unauthorized")
        return identity

    async def login(self, vector: Any) -> Optional[LoginResult]:
        """
        Log in with a face descriptor.

        Returns:
            LoginResult with a fresh session, or None if no identity matches

        Raises:
            DescriptorValidationError: If the descriptor is malformed
            InternalServiceError: If the store fails
        """
        probe = self.validator.validate(vector)

        try:
            match = await self.matcher.find_match(probe)
            if match is None:
                logger.info("Face login failed: no identity matched")
                return None

            session_id = await self.sessions.create(match.identity.id)
            logger.info(f"Face login successful for identity {match.identity.id}")
            return LoginResult(identity=match.identity, session_id=session_id, distance=match.distance)

        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error during face login: {e}")
            raise InternalServiceError("Authentication failed") from e

    async def logout(self, session_token: Optional[str]) -> None:
        try:
            await self.sessions.revoke(session_token)
        except Exception as e:
            logger.error(f"Failed to revoke session: {e}")
            raise InternalServiceError("Logout failed") from e
