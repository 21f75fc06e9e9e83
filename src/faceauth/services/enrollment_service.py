"""
Multi-step face enrollment.

The client submits N descriptors one step at a time. Step 1 creates the
identity and a session; every later step carries that session and appends
one more descriptor to the identity it authenticates.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from faceauth.clients.base import IdentityRepository
from faceauth.models.internal_models import Identity
from faceauth.services.descriptor_service import DescriptorValidator
from faceauth.services.errors import (
    AuthenticationError,
    ClientInputError,
    ConflictError,
    InternalServiceError,
    ServiceError,
)
from faceauth.services.session_service import SessionManager

logger = logging.getLogger(__name__)


class InvalidProgressError(ClientInputError):
    """Raised when the enrollment step is outside [1, N]."""


class EnrollmentSessionError(AuthenticationError):
    """Base class for enrollment steps that cannot be tied to a session."""


class NoActiveEnrollmentSessionError(EnrollmentSessionError):
    """Raised when a follow-up step arrives without a session token."""


class InvalidEnrollmentSessionError(EnrollmentSessionError):
    """Raised when the session token is unknown, expired or dangling."""


class EnrollmentStepOutOfOrderError(ConflictError):
    """Raised in strict mode when a step is replayed or skipped."""


@dataclass
class EnrollmentResult:
    identity_id: str
    session_id: str
    completed: bool
    progress: int


class EnrollmentCoordinator:
    """
    Accumulates reference descriptors for one identity across N steps.

    Each call is atomic: it either stores the descriptor or fails without
    observable changes. Steps are trusted to arrive in order unless
    enforce_order is set, in which case the next expected step is tracked on
    the session record and replayed or skipped steps are rejected.
    """

    def __init__(
        self,
        identities: IdentityRepository,
        sessions: SessionManager,
        validator: DescriptorValidator,
        total_steps: int = 5,
        enforce_order: bool = False
    ):
        self.identities = identities
        self.sessions = sessions
        self.validator = validator
        self.total_steps = total_steps
        self.enforce_order = enforce_order

    def _check_progress(self, progress: Any) -> int:
        if isinstance(progress, bool) or not isinstance(progress, int):
            raise InvalidProgressError("Invalid progress value: must be an integer")
        if not 1 <= progress <= self.total_steps:
            raise InvalidProgressError(
                f"Invalid progress value: {progress} (expected 1 to {self.total_steps})"
            )
        return progress

    async def submit(self, progress: Any, vector: Any, session_id: Optional[str] = None) -> EnrollmentResult:
        """
        Submit one enrollment step.

        Args:
            progress: Step number, 1 to total_steps
            vector: Face descriptor captured for this step
            session_id: Token returned by step 1; required for later steps

        Returns:
            EnrollmentResult for this step

        Raises:
            InvalidProgressError, DescriptorValidationError: On malformed input
            EnrollmentSessionError: If a follow-up step has no live session
            EnrollmentStepOutOfOrderError: In strict mode, on replayed or skipped steps
            InternalServiceError: If the store fails
        """
        progress = self._check_progress(progress)
        descriptor = self.validator.validate(vector)

        try:
            if progress == 1:
                identity_id, session_id = await self._start(descriptor)
            else:
                identity_id = await self._append(progress, descriptor, session_id)

            completed = progress == self.total_steps
            if completed:
                logger.info(f"Enrollment completed for identity {identity_id}")
            else:
                logger.info(f"Enrollment progress {progress}/{self.total_steps} for identity {identity_id}")

            return EnrollmentResult(
                identity_id=identity_id,
                session_id=session_id,
                completed=completed,
                progress=progress,
            )

        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error during enrollment step {progress}: {e}")
            raise InternalServiceError("Enrollment failed") from e

    async def _start(self, descriptor) -> tuple[str, str]:
        identity = Identity.new(descriptor)
        await self.identities.create(identity)
        logger.info(f"Created identity {identity.id} with first face descriptor")

        try:
            session_id = await self.sessions.create(identity.id, enrollment_step=1)
        except Exception:
            # No identity may outlive a failed first step
            try:
                await self.identities.delete(identity.id)
            except Exception as cleanup_error:
                logger.error(f"Failed to remove identity {identity.id} after session error: {cleanup_error}")
            raise

        return identity.id, session_id

    async def _append(self, progress: int, descriptor, session_id: Optional[str]) -> str:
        if not session_id:
            raise NoActiveEnrollmentSessionError("No active enrollment session")

        session = await self.sessions.resolve(session_id)
        if session is None:
            raise InvalidEnrollmentSessionError("Invalid enrollment session")

        if self.enforce_order:
            advanced = await self.sessions.advance_enrollment_step(session.id, progress - 1, progress)
            if not advanced:
                raise EnrollmentStepOutOfOrderError(
                    f"Enrollment step {progress} is out of order for this session"
                )

        try:
            appended = await self.identities.append_descriptor(session.identity_id, descriptor)
        except Exception:
            if self.enforce_order:
                await self.sessions.advance_enrollment_step(session.id, progress, progress - 1)
            raise

        if not appended:
            if self.enforce_order:
                await self.sessions.advance_enrollment_step(session.id, progress, progress - 1)
            logger.warning(f"Session references missing identity {session.identity_id}")
            raise InvalidEnrollmentSessionError("Invalid enrollment session")

        return session.identity_id
