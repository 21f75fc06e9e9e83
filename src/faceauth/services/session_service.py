"""
Session lifecycle: issue, resolve with lazy expiry, revoke, and sweep.

A session is Active until its expiry passes, at which point the next read
deletes it. Resolving never extends the expiry.
"""

import asyncio
import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

from faceauth.clients.base import SessionRepository
from faceauth.models.internal_models import Session, utcnow

logger = logging.getLogger(__name__)


class SessionManager:
    """Issues and validates session tokens bound to an identity."""

    def __init__(
        self,
        repository: SessionRepository,
        ttl: timedelta = timedelta(hours=24),
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.repository = repository
        self.ttl = ttl
        self.clock = clock or utcnow

    @staticmethod
    def _generate_token() -> str:
        return secrets.token_hex(16)

    async def create(self, identity_id: str, enrollment_step: Optional[int] = None) -> str:
        """Create a session for an identity and return its token."""
        now = self.clock()
        session = Session(
            id=self._generate_token(),
            identity_id=identity_id,
            expires_at=now + self.ttl,
            created_at=now,
            enrollment_step=enrollment_step,
        )
        await self.repository.create(session)

        logger.info(f"Created session for identity {identity_id}, expires at {session.expires_at.isoformat()}")
        return session.id

    async def resolve(self, session_id: Optional[str]) -> Optional[Session]:
        """Return the live session for a token, deleting it if it has expired."""
        if not session_id:
            return None

        session = await self.repository.get(session_id)
        if session is None:
            return None

        if session.is_expired(self.clock()):
            await self.repository.delete(session_id)
            logger.info(f"Session for identity {session.identity_id} expired and was removed")
            return None

        return session

    async def revoke(self, session_id: Optional[str]) -> None:
        """Delete a session; revoking an unknown token is not an error."""
        if not session_id:
            return
        deleted = await self.repository.delete(session_id)
        logger.debug(f"Session revoke requested, deleted={deleted}")

    async def sweep_expired(self) -> int:
        removed = await self.repository.delete_expired(self.clock())
        if removed:
            logger.info(f"Swept {removed} expired sessions")
        return removed

    async def advance_enrollment_step(self, session_id: str, expected: int, new: int) -> bool:
        return await self.repository.compare_and_set_enrollment_step(session_id, expected, new)


class SessionSweeper:
    """Periodically removes expired sessions to bound storage growth."""

    def __init__(self, manager: SessionManager, interval_seconds: float):
        self.manager = manager
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.manager.sweep_expired()
            except Exception as e:
                logger.warning(f"Session sweep failed, will retry next interval: {e}")

    def start(self) -> None:
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Session sweeper started with interval {self.interval_seconds}s")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Session sweeper stopped")
