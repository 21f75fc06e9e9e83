"""Store interfaces shared by the in-memory and Supabase backends."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

import numpy as np

from faceauth.models.internal_models import Identity, Session, StoredFile


class StorageError(Exception):
    """Raised when the backing store fails or is unreachable."""


class IdentityRepository(ABC):
    """Repository for enrolled identities."""

    @abstractmethod
    async def create(self, identity: Identity) -> Identity: ...

    @abstractmethod
    async def get(self, identity_id: str) -> Optional[Identity]: ...

    @abstractmethod
    async def list_all(self) -> List[Identity]:
        """Every identity, in a stable enumeration order."""

    @abstractmethod
    async def append_descriptor(self, identity_id: str, descriptor: np.ndarray) -> bool:
        """Atomically append one descriptor. Returns False if the identity is gone."""

    @abstractmethod
    async def update_profile(
        self,
        identity_id: str,
        display_name: str,
        email: str,
        phone: str,
        bio: str
    ) -> Optional[Identity]: ...

    @abstractmethod
    async def delete(self, identity_id: str) -> bool: ...


class SessionRepository(ABC):
    """Repository for login sessions."""

    @abstractmethod
    async def create(self, session: Session) -> Session: ...

    @abstractmethod
    async def get(self, session_id: str) -> Optional[Session]: ...

    @abstractmethod
    async def delete(self, session_id: str) -> bool: ...

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int: ...

    @abstractmethod
    async def compare_and_set_enrollment_step(self, session_id: str, expected: int, new: int) -> bool: ...


class FileRepository(ABC):
    """Repository for stored file metadata."""

    @abstractmethod
    async def create(self, stored_file: StoredFile) -> StoredFile: ...

    @abstractmethod
    async def get(self, file_id: str) -> Optional[StoredFile]: ...

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> List[StoredFile]: ...

    @abstractmethod
    async def delete(self, file_id: str) -> bool: ...


class BlobStore(ABC):
    """Id-addressed binary storage."""

    @abstractmethod
    async def put(self, blob_id: str, data: bytes, content_type: str) -> str: ...

    @abstractmethod
    async def get(self, blob_id: str) -> bytes: ...

    @abstractmethod
    async def delete(self, blob_id: str) -> None: ...


class DatabaseManager:
    """Bundles the repositories of one backend with an explicit lifecycle."""

    def __init__(
        self,
        client,
        identities: IdentityRepository,
        sessions: SessionRepository,
        files: FileRepository,
        blobs: BlobStore
    ):
        self.client = client
        self.identities = identities
        self.sessions = sessions
        self.files = files
        self.blobs = blobs

    async def init(self) -> None:
        await self.client.connect()

    async def close(self) -> None:
        await self.client.close()

    async def health_check(self) -> bool:
        """Check overall database health."""
        return await self.client.health_check()
