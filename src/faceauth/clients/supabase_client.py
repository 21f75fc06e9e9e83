"""Supabase client for database and blob storage operations."""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import numpy as np
from supabase import create_client, Client
from postgrest.exceptions import APIError

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


def _parse_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value.replace('Z', '+00:00'))


class SupabaseClient:
    """Client for Supabase database operations."""

    def __init__(self, url: str, key: str, storage_bucket: str = "files"):
        """Initialize Supabase client with configuration; connect() opens it."""
        self._client: Optional[Client] = None
        self._url = url
        self._key = key
        self.storage_bucket = storage_bucket

    async def connect(self) -> None:
        if self._client is None:
            self._client = create_client(self._url, self._key)
            logger.info("Supabase client connected")

    async def close(self) -> None:
        self._client = None
        logger.info("Supabase client closed")

    @property
    def client(self) -> Client:
        if self._client is None:
            raise StorageError("Supabase client is not connected")
        return self._client

    def execute(self, query, action: str):
        """Run a prepared query, translating backend failures into StorageError."""
        try:
            return query.execute()
        except APIError as e:
            logger.error(f"Database error while trying to {action}: {e}")
            raise StorageError(f"Failed to {action}") from e
        except StorageError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error while trying to {action}: {e}")
            raise StorageError(f"Failed to {action}") from e

    async def health_check(self) -> bool:
        """Check if database connection is healthy."""
        try:
            # Simple query to test connection
            self.client.table("identities").select("id", count="exact").limit(0).execute()
            return True
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False


class SupabaseIdentityRepository(IdentityRepository):
    """Repository for identity rows in the `identities` table."""

    def __init__(self, supabase_client: SupabaseClient):
        self.client = supabase_client

    @staticmethod
    def _to_row(identity: Identity) -> Dict[str, Any]:
        return {
            "id": identity.id,
            "display_name": identity.display_name,
            "email": identity.email,
            "phone": identity.phone,
            "bio": identity.bio,
            # Convert numpy arrays to lists for JSON serialization
            "descriptors": [d.tolist() for d in identity.descriptors],
            "created_at": identity.created_at.isoformat(),
        }

    @staticmethod
    def _from_row(row: Dict[str, Any]) -> Identity:
        return Identity(
            id=row["id"],
            descriptors=[np.array(d, dtype=np.float64) for d in row["descriptors"]],
            created_at=_parse_timestamp(row["created_at"]),
            display_name=row.get("display_name") or "",
            email=row.get("email") or "",
            phone=row.get("phone") or "",
            bio=row.get("bio") or "",
        )

    async def create(self, identity: Identity) -> Identity:
        query = self.client.client.table("identities").insert(self._to_row(identity))
        result = self.client.execute(query, f"create identity {identity.id}")

        if not result.data:
            raise StorageError(f"Failed to create identity {identity.id}")

        logger.info(f"Successfully created identity {identity.id}")
        return identity

    async def get(self, identity_id: str) -> Optional[Identity]:
        query = self.client.client.table("identities").select("*").eq("id", identity_id)
        result = self.client.execute(query, f"retrieve identity {identity_id}")

        if not result.data:
            return None
        return self._from_row(result.data[0])

    async def list_all(self) -> List[Identity]:
        query = (
            self.client.client.table("identities")
            .select("*")
            .order("created_at")
            .order("id")
        )
        result = self.client.execute(query, "list identities")
        return [self._from_row(row) for row in result.data]

    async def append_descriptor(self, identity_id: str, descriptor: np.ndarray) -> bool:
        # Server-side array append, see sql/schema.sql
        query = self.client.client.rpc(
            "append_identity_descriptor",
            {"p_identity_id": identity_id, "p_descriptor": np.asarray(descriptor).tolist()}
        )
        result = self.client.execute(query, f"append descriptor to identity {identity_id}")
        return bool(result.data)

    async def update_profile(
        self,
        identity_id: str,
        display_name: str,
        email: str,
        phone: str,
        bio: str
    ) -> Optional[Identity]:
        query = (
            self.client.client.table("identities")
            .update({"display_name": display_name, "email": email, "phone": phone, "bio": bio})
            .eq("id", identity_id)
        )
        result = self.client.execute(query, f"update profile of identity {identity_id}")

        if not result.data:
            return None
        return self._from_row(result.data[0])

    async def delete(self, identity_id: str) -> bool:
        query = self.client.client.table("identities").delete().eq("id", identity_id)
        result = self.client.execute(query, f"delete identity {identity_id}")

        success = len(result.data) > 0
        if success:
            logger.info(f"Successfully deleted identity {identity_id}")
        else:
            logger.warning(f"Identity {identity_id} not found for deletion")
        return success


class SupabaseSessionRepository(SessionRepository):
    """Repository for session rows in the `sessions` table."""

    def __init__(self, supabase_client: SupabaseClient):
        self.client = supabase_client

    async def create(self, session: Session) -> Session:
        session_data = {
            "id": session.id,
            "identity_id": session.identity_id,
            "expires_at": session.expires_at.isoformat(),
            "created_at": session.created_at.isoformat(),
            "enrollment_step": session.enrollment_step,
        }
        query = self.client.client.table("sessions").insert(session_data)
        result = self.client.execute(query, "create session")

        if not result.data:
            raise StorageError("Failed to create session")
        return session

    async def get(self, session_id: str) -> Optional[Session]:
        query = self.client.client.table("sessions").select("*").eq("id", session_id)
        result = self.client.execute(query, "retrieve session")

        if not result.data:
            return None

        row = result.data[0]
        return Session(
            id=row["id"],
            identity_id=row["identity_id"],
            expires_at=_parse_timestamp(row["expires_at"]),
            created_at=_parse_timestamp(row["created_at"]),
            enrollment_step=row.get("enrollment_step"),
        )

    async def delete(self, session_id: str) -> bool:
        query = self.client.client.table("sessions").delete().eq("id", session_id)
        result = self.client.execute(query, "delete session")
        return len(result.data) > 0

    async def delete_expired(self, now: datetime) -> int:
        query = self.client.client.table("sessions").delete().lt("expires_at", now.isoformat())
        result = self.client.execute(query, "delete expired sessions")
        return len(result.data)

    async def compare_and_set_enrollment_step(self, session_id: str, expected: int, new: int) -> bool:
        query = (
            self.client.client.table("sessions")
            .update({"enrollment_step": new})
            .eq("id", session_id)
            .eq("enrollment_step", expected)
        )
        result = self.client.execute(query, "advance enrollment step")
        return len(result.data) > 0


class SupabaseFileRepository(FileRepository):
    """Repository for file metadata rows in the `files` table."""

    def __init__(self, supabase_client: SupabaseClient):
        self.client = supabase_client

    @staticmethod
    def _from_row(row: Dict[str, Any]) -> StoredFile:
        return StoredFile(
            id=row["id"],
            owner_id=row["owner_id"],
            filename=row["filename"],
            original_name=row["original_name"],
            content_type=row["content_type"],
            size=row["size"],
            blob_id=row["blob_id"],
            uploaded_at=_parse_timestamp(row["uploaded_at"]),
        )

    async def create(self, stored_file: StoredFile) -> StoredFile:
        file_data = {
            "id": stored_file.id,
            "owner_id": stored_file.owner_id,
            "filename": stored_file.filename,
            "original_name": stored_file.original_name,
            "content_type": stored_file.content_type,
            "size": stored_file.size,
            "blob_id": stored_file.blob_id,
            "uploaded_at": stored_file.uploaded_at.isoformat(),
        }
        query = self.client.client.table("files").insert(file_data)
        result = self.client.execute(query, f"create file {stored_file.id}")

        if not result.data:
            raise StorageError(f"Failed to create file {stored_file.id}")
        return stored_file

    async def get(self, file_id: str) -> Optional[StoredFile]:
        query = self.client.client.table("files").select("*").eq("id", file_id)
        result = self.client.execute(query, f"retrieve file {file_id}")

        if not result.data:
            return None
        return self._from_row(result.data[0])

    async def list_by_owner(self, owner_id: str) -> List[StoredFile]:
        query = (
            self.client.client.table("files")
            .select("*")
            .eq("owner_id", owner_id)
            .order("uploaded_at", desc=True)
        )
        result = self.client.execute(query, f"list files of identity {owner_id}")
        return [self._from_row(row) for row in result.data]

    async def delete(self, file_id: str) -> bool:
        query = self.client.client.table("files").delete().eq("id", file_id)
        result = self.client.execute(query, f"delete file {file_id}")
        return len(result.data) > 0


class SupabaseBlobStore(BlobStore):
    """Blob storage backed by a Supabase Storage bucket."""

    def __init__(self, supabase_client: SupabaseClient):
        self.client = supabase_client

    def _bucket(self):
        return self.client.client.storage.from_(self.client.storage_bucket)

    async def put(self, blob_id: str, data: bytes, content_type: str) -> str:
        try:
            self._bucket().upload(blob_id, data, {"content-type": content_type})
            return blob_id
        except Exception as e:
            logger.error(f"Blob upload failed for {blob_id}: {e}")
            raise StorageError(f"Failed to store blob {blob_id}") from e

    async def get(self, blob_id: str) -> bytes:
        try:
            return self._bucket().download(blob_id)
        except Exception as e:
            logger.error(f"Blob download failed for {blob_id}: {e}")
            raise StorageError(f"Failed to read blob {blob_id}") from e

    async def delete(self, blob_id: str) -> None:
        try:
            self._bucket().remove([blob_id])
        except Exception as e:
            logger.error(f"Blob removal failed for {blob_id}: {e}")
            raise StorageError(f"Failed to delete blob {blob_id}") from e


def create_supabase_database(url: str, key: str, storage_bucket: str = "files") -> DatabaseManager:
    client = SupabaseClient(url, key, storage_bucket)
    return DatabaseManager(
        client=client,
        identities=SupabaseIdentityRepository(client),
        sessions=SupabaseSessionRepository(client),
        files=SupabaseFileRepository(client),
        blobs=SupabaseBlobStore(client),
    )
