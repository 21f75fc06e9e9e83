"""In-process store backend used for development and tests."""

import asyncio
import copy
import logging
from datetime import datetime
from typing import Dict, List, Optional

import numpy as np

from faceauth.clients.base import (
    BlobStore,
    DatabaseManager,
    FileRepository,
    IdentityRepository,
    SessionRepository,
    StorageError,
)
from faceauth.models.internal_models import Identity, Session, StoredFile

logger = logging.getLogger(__name__)


class InMemoryClient:
    """Holds the collections shared by the in-memory repositories.

    Records are copied on the way in and out so callers never alias stored
    state; a single lock makes every multi-step mutation atomic.
    """

    def __init__(self):
        self.identities: Dict[str, Identity] = {}
        self.sessions: Dict[str, Session] = {}
        self.files: Dict[str, StoredFile] = {}
        self.blobs: Dict[str, bytes] = {}
        self.lock = asyncio.Lock()
        self.connected = False

    async def connect(self) -> None:
        self.connected = True
        logger.info("In-memory store initialized")

    async def close(self) -> None:
        self.connected = False
        logger.info("In-memory store closed")

    async def health_check(self) -> bool:
        return self.connected


class InMemoryIdentityRepository(IdentityRepository):

    def __init__(self, client: InMemoryClient):
        self.client = client

    async def create(self, identity: Identity) -> Identity:
        async with self.client.lock:
            if identity.id in self.client.identities:
                raise StorageError(f"Identity {identity.id} already exists")
            self.client.identities[identity.id] = copy.deepcopy(identity)
        return identity

    async def get(self, identity_id: str) -> Optional[Identity]:
        identity = self.client.identities.get(identity_id)
        return copy.deepcopy(identity) if identity else None

    async def list_all(self) -> List[Identity]:
        return [copy.deepcopy(identity) for identity in self.client.identities.values()]

    async def append_descriptor(self, identity_id: str, descriptor: np.ndarray) -> bool:
        async with self.client.lock:
            identity = self.client.identities.get(identity_id)
            if identity is None:
                return False
            identity.descriptors.append(np.array(descriptor, dtype=np.float64))
        return True

    async def update_profile(
        self,
        identity_id: str,
        display_name: str,
        email: str,
        phone: str,
        bio: str
    ) -> Optional[Identity]:
        async with self.client.lock:
            identity = self.client.identities.get(identity_id)
            if identity is None:
                return None
            identity.display_name = display_name
            identity.email = email
            identity.phone = phone
            identity.bio = bio
            return copy.deepcopy(identity)

    async def delete(self, identity_id: str) -> bool:
        async with self.client.lock:
            return self.client.identities.pop(identity_id, None) is not None


class InMemorySessionRepository(SessionRepository):

    def __init__(self, client: InMemoryClient):
        self.client = client

    async def create(self, session: Session) -> Session:
        async with self.client.lock:
            self.client.sessions[session.id] = copy.copy(session)
        return session

    async def get(self, session_id: str) -> Optional[Session]:
        session = self.client.sessions.get(session_id)
        return copy.copy(session) if session else None

    async def delete(self, session_id: str) -> bool:
        async with self.client.lock:
            return self.client.sessions.pop(session_id, None) is not None

    async def delete_expired(self, now: datetime) -> int:
        async with self.client.lock:
            expired = [sid for sid, session in self.client.sessions.items() if session.is_expired(now)]
            for session_id in expired:
                del self.client.sessions[session_id]
        return len(expired)

    async def compare_and_set_enrollment_step(self, session_id: str, expected: int, new: int) -> bool:
        async with self.client.lock:
            session = self.client.sessions.get(session_id)
            if session is None or session.enrollment_step != expected:
                return False
            session.enrollment_step = new
        return True


class InMemoryFileRepository(FileRepository):

    def __init__(self, client: InMemoryClient):
        self.client = client

    async def create(self, stored_file: StoredFile) -> StoredFile:
        async with self.client.lock:
            self.client.files[stored_file.id] = copy.copy(stored_file)
        return stored_file

    async def get(self, file_id: str) -> Optional[StoredFile]:
        stored_file = self.client.files.get(file_id)
        return copy.copy(stored_file) if stored_file else None

    async def list_by_owner(self, owner_id: str) -> List[StoredFile]:
        files = [copy.copy(f) for f in self.client.files.values() if f.owner_id == owner_id]
        return sorted(files, key=lambda f: f.uploaded_at, reverse=True)

    async def delete(self, file_id: str) -> bool:
        async with self.client.lock:
            return self.client.files.pop(file_id, None) is not None


class InMemoryBlobStore(BlobStore):

    def __init__(self, client: InMemoryClient):
        self.client = client

    async def put(self, blob_id: str, data: bytes, content_type: str) -> str:
        self.client.blobs[blob_id] = bytes(data)
        return blob_id

    async def get(self, blob_id: str) -> bytes:
        try:
            return self.client.blobs[blob_id]
        except KeyError:
            raise StorageError(f"Blob {blob_id} not found")

    async def delete(self, blob_id: str) -> None:
        self.client.blobs.pop(blob_id, None)


def create_memory_database() -> DatabaseManager:
    client = InMemoryClient()
    return DatabaseManager(
        client=client,
        identities=InMemoryIdentityRepository(client),
        sessions=InMemorySessionRepository(client),
        files=InMemoryFileRepository(client),
        blobs=InMemoryBlobStore(client),
    )
